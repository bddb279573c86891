"""
Load emitted XML records with upsert logic (idempotency)
"""

from datetime import datetime
from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.dialects import postgresql, sqlite
from models.xml_record import XMLRecordRow
from schemas.records import XMLRecord
import logging

logger = logging.getLogger(__name__)


class RecordLoader:
    """
    Load XML records with idempotent upsert operations.

    Ensures:
    - Reprocessing a file rewrites its records instead of duplicating them
    - One transaction per call
    """

    def __init__(self, db_session: AsyncSession):
        self.db = db_session

    def _insert(self):
        bind = getattr(self.db, "bind", None)
        dialect = getattr(getattr(bind, "dialect", None), "name", None)
        if dialect == "sqlite":
            return sqlite.insert(XMLRecordRow)
        return postgresql.insert(XMLRecordRow)

    async def load(
        self,
        records: List[XMLRecord],
        reference_name: str,
        etl_run_id: Optional[int] = None
    ) -> int:
        """
        Load records with upsert logic (INSERT ON CONFLICT UPDATE).

        Args:
            records: Records extracted from one or more files
            reference_name: Reader the records belong to
            etl_run_id: Run ID for tracking

        Returns:
            Number of records loaded
        """
        if not records:
            return 0

        loaded_count = 0
        ingested_at = datetime.utcnow()

        for record in records:
            stmt = self._insert().values(
                reference_name=reference_name,
                filename=record.filename,
                offset=record.offset,
                record=record.record,
                ingested_at=ingested_at,
                etl_run_id=etl_run_id
            )

            # Unique constraint: (reference_name, filename, offset)
            stmt = stmt.on_conflict_do_update(
                index_elements=["reference_name", "filename", "offset"],
                set_={
                    "record": stmt.excluded.record,
                    "etl_run_id": stmt.excluded.etl_run_id,
                    "ingested_at": stmt.excluded.ingested_at,
                }
            )

            await self.db.execute(stmt)
            loaded_count += 1

        await self.db.commit()

        logger.info(f"Loaded {loaded_count} records for {reference_name}")
        return loaded_count
