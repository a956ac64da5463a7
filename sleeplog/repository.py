"""SleepRecord repository: all DB access for the sleep log.

PostgreSQL implementation of the SleepRecordStore protocol. Every write is
committed on its own, so a failed row never rolls back rows stored before it.
Backend failures are rolled back and re-raised as StorageError.
"""

from datetime import date

import structlog
from sqlalchemy import delete, func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from shared.exceptions import StorageError
from shared.metrics import storage_failures_total
from sleeplog.domain.models import SleepRecord
from sleeplog.domain.orm import SleepRecordModel

logger = structlog.get_logger()

# Every value column is replaced on conflict; nothing is merged.
_REPLACED_COLUMNS = (
    "sleep_duration_hours",
    "deep_sleep_hours",
    "rem_sleep_hours",
    "light_sleep_hours",
    "resting_heart_rate_bpm",
    "temperature_deviation_c",
    "bedtime_start",
    "bedtime_end",
)


class SleepRecordRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def _fail(self, operation: str, exc: SQLAlchemyError) -> StorageError:
        await self.session.rollback()
        storage_failures_total.labels(operation=operation).inc()
        logger.warning("storage_operation_failed", operation=operation, error=str(exc))
        return StorageError(operation, exc.__class__.__name__)

    async def upsert(self, user_id: str, record: SleepRecord) -> SleepRecord:
        """Insert or fully replace the row for (user_id, record.date)."""
        values = {**record.storage_values(), "user_id": user_id}
        stmt = pg_insert(SleepRecordModel).values(values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "date"],
            set_={col: stmt.excluded[col] for col in _REPLACED_COLUMNS},
        ).returning(SleepRecordModel)
        try:
            result = await self.session.scalars(
                stmt, execution_options={"populate_existing": True}
            )
            row = result.one()
            stored = row.to_domain()
            await self.session.commit()
        except SQLAlchemyError as exc:
            raise await self._fail("upsert", exc) from exc
        return stored

    async def fetch_by_user(self, user_id: str, limit: int = 7) -> list[SleepRecord]:
        """Fetch the user's most recent records, newest date first."""
        query = (
            select(SleepRecordModel)
            .where(SleepRecordModel.user_id == user_id)
            .order_by(SleepRecordModel.date.desc())
            .limit(limit)
        )
        try:
            result = await self.session.scalars(query)
            rows = list(result.all())
        except SQLAlchemyError as exc:
            raise await self._fail("fetch", exc) from exc
        return [r.to_domain() for r in rows]

    async def delete_by_key(self, user_id: str, day: date) -> bool:
        stmt = delete(SleepRecordModel).where(
            SleepRecordModel.user_id == user_id,
            SleepRecordModel.date == day,
        )
        try:
            result = await self.session.execute(stmt)
            await self.session.commit()
        except SQLAlchemyError as exc:
            raise await self._fail("delete", exc) from exc
        return result.rowcount > 0

    async def count_by_user(self, user_id: str) -> int:
        query = (
            select(func.count())
            .select_from(SleepRecordModel)
            .where(SleepRecordModel.user_id == user_id)
        )
        try:
            result = await self.session.execute(query)
            return result.scalar_one()
        except SQLAlchemyError as exc:
            raise await self._fail("count", exc) from exc
