"""
SQLAlchemy ORM models for database tables.

Models:
    base: Declarative base and shared enums (RunStatus)
    key_value: Named byte key-value tables backing processed-file trackers
    xml_run: XML reader run audit trail
    xml_record: Records emitted by the XML reader

Usage:
    from models.base import Base, RunStatus
    from models.key_value import KeyValueEntry
    from models.xml_run import XMLReaderRun
    from models.xml_record import XMLRecordRow

Relationships:
    - XMLReaderRun → XMLRecordRow (one-to-many, via etl_run_id)
"""

__all__ = [
    "Base",
    "RunStatus",
    "KeyValueEntry",
    "XMLReaderRun",
    "XMLRecordRow",
]
