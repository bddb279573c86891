"""
Batch sources built on ingestion.base.BatchSource.

Modules:
    xml_reader: XML node reader with processed-file tracking
"""

from ingestion.sources.xml_reader import XMLReaderSource

__all__ = ["XMLReaderSource"]
