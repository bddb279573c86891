from sqlalchemy import Column, String, LargeBinary, DateTime, Index
from datetime import datetime
from models.base import Base


class KeyValueEntry(Base):
    """
    Byte-keyed, byte-valued entry of a named key-value table.

    Purpose:
    - Durable storage for processed-file tracker tables
    - Many logical tables share one physical table, partitioned by table_name

    Design:
    - (table_name, key) is the primary key, so a put is an upsert
    - Values are opaque bytes; the tracker stores epoch milliseconds
    """
    __tablename__ = "key_value_entries"

    table_name = Column(String(255), primary_key=True)
    key = Column(LargeBinary, primary_key=True)
    value = Column(LargeBinary, nullable=False)

    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index("idx_key_value_table", "table_name"),
    )
