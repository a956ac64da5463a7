"""Storage protocol for sleep records.

The ingestion pipeline depends only on this protocol, never on a concrete
store. Implementations are stateless per call: every operation carries the
user id it acts on.
"""

from datetime import date
from typing import Protocol, runtime_checkable

from sleeplog.domain.models import SleepRecord


@runtime_checkable
class SleepRecordStore(Protocol):
    """Keyed storage for SleepRecords. Natural key: (user_id, date)."""

    async def upsert(self, user_id: str, record: SleepRecord) -> SleepRecord:
        """Insert or fully replace the record for (user_id, record.date).

        Returns the stored record, including storage-assigned created_at.
        Raises StorageError on backend failure.
        """
        ...

    async def fetch_by_user(self, user_id: str, limit: int = 7) -> list[SleepRecord]:
        """Return up to `limit` records for the user, newest date first."""
        ...

    async def delete_by_key(self, user_id: str, day: date) -> bool:
        """Remove the record for (user_id, day). Returns False if none existed."""
        ...

    async def count_by_user(self, user_id: str) -> int:
        """Return how many records are stored for the user."""
        ...
