"""
Pydantic schemas for data validation and serialization.

Schemas:
    config: XML reader source properties and their validation
    records: Output record schema of the XML reader
    api: API endpoint response models

Usage:
    from schemas.config import XMLReaderConfig
    from schemas.records import XML_RECORD_SCHEMA, XMLRecord

Example:
    config = XMLReaderConfig(
        referenceName="books",
        path="/data/incoming/*",
        nodePath="/catalog/book",
        tableName="books_tracker",
    )
    config.validate_or_raise()
"""

__all__ = [
    "FileAction",
    "XMLReaderConfig",
    "XMLRecord",
    "XML_RECORD_SCHEMA",
    "HealthCheckResponse",
    "RunSummary",
    "TrackerResponse",
]
