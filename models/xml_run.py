from sqlalchemy import Column, BigInteger, String, Enum, DateTime, Float, Integer, Text, Index, Uuid
from datetime import datetime
import uuid
from models.base import Base, RunStatus, JSONType


class XMLReaderRun(Base):
    """
    Audit record for each XML reader run.

    Purpose:
    - Trace every run through preparing, processing and finalizing
    - Record how many files were excluded, processed and committed
    - Keep the config snapshot a run was executed with
    """
    __tablename__ = "xml_reader_runs"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    run_id = Column(Uuid, default=uuid.uuid4, unique=True, nullable=False, index=True)

    # Source identification
    reference_name = Column(String(255), nullable=False, index=True)
    table_name = Column(String(255), nullable=True)

    status = Column(Enum(RunStatus), default=RunStatus.PREPARING, nullable=False, index=True)

    # Timestamps
    logical_start_time = Column(DateTime, nullable=False)
    started_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    completed_at = Column(DateTime, nullable=True)
    duration_seconds = Column(Float, nullable=True)

    # Statistics
    files_discovered = Column(Integer, default=0)
    files_excluded = Column(Integer, default=0)
    files_processed = Column(Integer, default=0)
    files_failed = Column(Integer, default=0)
    files_committed = Column(Integer, default=0)
    records_emitted = Column(Integer, default=0)

    # Error tracking
    error_message = Column(Text, nullable=True)
    error_details = Column(JSONType, nullable=True)

    # Configuration snapshot
    config_snapshot = Column(JSONType, nullable=True)

    __table_args__ = (
        Index("idx_xml_run_reference_started", "reference_name", "started_at"),
        Index("idx_xml_run_status", "status", "started_at"),
    )
