from sqlalchemy import Column, BigInteger, String, Text, DateTime, ForeignKey, Index, Integer
from datetime import datetime
from models.base import Base


class XMLRecordRow(Base):
    """
    One XML node emitted by the reader.

    Design:
    - (reference_name, filename, offset) is unique, so reprocessing a file
      overwrites its records instead of duplicating them
    - record holds the exact XML text of the node
    """
    __tablename__ = "xml_records"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)

    reference_name = Column(String(255), nullable=False, index=True)
    filename = Column(String(2048), nullable=False)
    offset = Column(BigInteger, nullable=False)
    record = Column(Text, nullable=False)

    ingested_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    etl_run_id = Column(BigInteger, ForeignKey("xml_reader_runs.id"), nullable=True, index=True)

    __table_args__ = (
        Index("idx_xml_record_identity", "reference_name", "filename", "offset", unique=True),
    )
