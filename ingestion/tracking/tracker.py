"""
Processed-file tracker: which files were already ingested, and when.

Entries map a filename to the epoch milliseconds at which the run that
processed it was committed. The tracker is only ever written by the run
coordinator, once per successful run; workers never touch it.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, FrozenSet, Iterable, Optional
import logging
import struct

from ingestion.tracking.key_value import KeyValueStore
from core.exceptions import TrackerScanError, TrackerCommitError

logger = logging.getLogger(__name__)

# Same layout as a Java long: 8 bytes, big-endian, signed
_TIMESTAMP = struct.Struct(">q")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def encode_timestamp(moment: datetime) -> bytes:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return _TIMESTAMP.pack(int(moment.timestamp() * 1000))


def decode_timestamp(value: bytes) -> datetime:
    (millis,) = _TIMESTAMP.unpack(value)
    return datetime.fromtimestamp(millis / 1000, tz=timezone.utc)


@dataclass(frozen=True)
class ExpiryPolicy:
    """Entries older than ``retention_days`` are purged; None or 0 keeps everything"""
    retention_days: Optional[int] = None

    @property
    def enabled(self) -> bool:
        return self.retention_days is not None and self.retention_days > 0

    def cutoff(self, now: datetime) -> Optional[datetime]:
        if not self.enabled:
            return None
        return now - timedelta(days=self.retention_days)


class ProcessedFileTracker:
    """
    Durable filename → processed-at mapping.

    Responsibilities:
    - Compute the exclusion set for a new run, purging expired entries
    - Record the files of a successful run in one commit
    """

    def __init__(self, store: KeyValueStore, clock: Callable[[], datetime] = utc_now):
        self.store = store
        self.clock = clock

    @property
    def table_name(self) -> str:
        return self.store.table_name

    async def load_exclusion_set(self, expiry: ExpiryPolicy) -> FrozenSet[str]:
        """
        Return the filenames that must not be read again.

        Entries processed strictly before ``now - retention_days`` are deleted
        from the store and become eligible for reprocessing.

        Raises:
            TrackerScanError: If the store cannot be scanned or pruned
        """
        cutoff = expiry.cutoff(self.clock())
        excluded = set()
        expired = []

        try:
            for key, value in await self.store.scan():
                processed_at = decode_timestamp(value)
                if cutoff is not None and processed_at < cutoff:
                    expired.append(key)
                else:
                    excluded.add(key.decode("utf-8"))

            for key in expired:
                await self.store.delete(key)

        except Exception as e:
            raise TrackerScanError(
                "Failed to load processed files",
                context={
                    "table_name": self.table_name,
                    "retention_days": expiry.retention_days
                },
                original_exception=e
            )

        if expired:
            logger.info(
                f"Purged {len(expired)} expired entries from '{self.table_name}' "
                f"(older than {cutoff.isoformat()})"
            )
        logger.info(f"Excluding {len(excluded)} previously processed files")
        return frozenset(excluded)

    async def commit(self, filenames: Iterable[str], at: Optional[datetime] = None) -> int:
        """
        Upsert every filename with ``at`` (defaults to now).

        Returns:
            Number of filenames written

        Raises:
            TrackerCommitError: If the store write fails
        """
        at = at or self.clock()
        value = encode_timestamp(at)
        items = {name.encode("utf-8"): value for name in set(filenames)}

        if not items:
            return 0

        try:
            await self.store.put_many(items)
        except Exception as e:
            raise TrackerCommitError(
                "Failed to commit processed files",
                context={
                    "table_name": self.table_name,
                    "file_count": len(items)
                },
                original_exception=e
            )

        logger.info(f"Committed {len(items)} processed files to '{self.table_name}'")
        return len(items)

    async def tracked_files(self) -> Dict[str, datetime]:
        return {
            key.decode("utf-8"): decode_timestamp(value)
            for key, value in await self.store.scan()
        }

    async def forget(self, filename: str) -> bool:
        """Drop one entry so the file is read again by the next run"""
        removed = await self.store.delete(filename.encode("utf-8"))
        if removed:
            logger.info(f"Removed '{filename}' from '{self.table_name}'")
        return removed
