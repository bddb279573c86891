"""
Durable byte key-value tables.

The tracker only needs get/put/delete/scan over bytes, so it is written
against ``KeyValueStore``. ``SQLKeyValueStore`` keeps each logical table as a
partition of ``key_value_entries``; ``InMemoryKeyValueStore`` is a drop-in
substitute for tests and dry runs.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, List, Optional, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete, func
from models.key_value import KeyValueEntry
import logging

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """A named table of byte keys to byte values."""

    def __init__(self, table_name: str):
        self.table_name = table_name

    @abstractmethod
    async def get(self, key: bytes) -> Optional[bytes]:
        pass

    @abstractmethod
    async def put(self, key: bytes, value: bytes) -> None:
        pass

    @abstractmethod
    async def put_many(self, items: Dict[bytes, bytes]) -> None:
        """Write several entries as one unit"""
        pass

    @abstractmethod
    async def delete(self, key: bytes) -> bool:
        """Delete a key; returns whether it existed"""
        pass

    @abstractmethod
    async def scan(self) -> List[Tuple[bytes, bytes]]:
        """Return every (key, value) pair of the table"""
        pass


class SQLKeyValueStore(KeyValueStore):
    """
    Key-value table persisted through SQLAlchemy.

    Writes are committed immediately; each call is one transaction.
    """

    def __init__(self, db_session: AsyncSession, table_name: str):
        super().__init__(table_name)
        self.db = db_session

    async def get(self, key: bytes) -> Optional[bytes]:
        result = await self.db.execute(
            select(KeyValueEntry.value).where(
                KeyValueEntry.table_name == self.table_name,
                KeyValueEntry.key == key
            )
        )
        return result.scalar_one_or_none()

    async def put(self, key: bytes, value: bytes) -> None:
        await self.put_many({key: value})

    async def put_many(self, items: Dict[bytes, bytes]) -> None:
        if not items:
            return
        try:
            now = datetime.utcnow()
            for key, value in items.items():
                # merge() is a portable upsert on the (table_name, key) primary key
                await self.db.merge(
                    KeyValueEntry(table_name=self.table_name, key=key, value=value, updated_at=now)
                )
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

    async def delete(self, key: bytes) -> bool:
        try:
            result = await self.db.execute(
                delete(KeyValueEntry).where(
                    KeyValueEntry.table_name == self.table_name,
                    KeyValueEntry.key == key
                )
            )
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        return (result.rowcount or 0) > 0

    async def scan(self) -> List[Tuple[bytes, bytes]]:
        result = await self.db.execute(
            select(KeyValueEntry.key, KeyValueEntry.value)
            .where(KeyValueEntry.table_name == self.table_name)
            .order_by(KeyValueEntry.key)
        )
        return [(row.key, row.value) for row in result.all()]

    async def count(self) -> int:
        result = await self.db.execute(
            select(func.count()).select_from(KeyValueEntry).where(
                KeyValueEntry.table_name == self.table_name
            )
        )
        return result.scalar() or 0


class InMemoryKeyValueStore(KeyValueStore):
    """Process-local key-value table"""

    def __init__(self, table_name: str = "in_memory", data: Optional[Dict[bytes, bytes]] = None):
        super().__init__(table_name)
        self.data: Dict[bytes, bytes] = dict(data or {})

    async def get(self, key: bytes) -> Optional[bytes]:
        return self.data.get(key)

    async def put(self, key: bytes, value: bytes) -> None:
        self.data[key] = value

    async def put_many(self, items: Dict[bytes, bytes]) -> None:
        self.data.update(items)

    async def delete(self, key: bytes) -> bool:
        return self.data.pop(key, None) is not None

    async def scan(self) -> List[Tuple[bytes, bytes]]:
        return sorted(self.data.items())
