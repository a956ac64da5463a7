"""SQLAlchemy ORM model for the sleep_records table.

One row per (user_id, date). Check constraints mirror the validator's range
rules so the database rejects anything that slipped past the pipeline.
"""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    Float,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from sleeplog.domain.models import SleepRecord


class Base(DeclarativeBase):
    pass


class SleepRecordModel(Base):
    __tablename__ = "sleep_records"

    # Identity
    id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False)
    date = mapped_column(Date, nullable=False)

    # Durations (hours)
    sleep_duration_hours: Mapped[float | None] = mapped_column(Float, nullable=True)
    deep_sleep_hours: Mapped[float | None] = mapped_column(Float, nullable=True)
    rem_sleep_hours: Mapped[float | None] = mapped_column(Float, nullable=True)
    light_sleep_hours: Mapped[float | None] = mapped_column(Float, nullable=True)

    # Physiology
    resting_heart_rate_bpm: Mapped[int | None] = mapped_column(Integer, nullable=True)
    temperature_deviation_c: Mapped[float | None] = mapped_column(Float, nullable=True)

    # Bedtime window, stored as exported
    bedtime_start: Mapped[str | None] = mapped_column(Text, nullable=True)
    bedtime_end: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("now()")
    )

    __table_args__ = (
        UniqueConstraint("user_id", "date", name="uq_sleep_records_user_date"),
        CheckConstraint(
            "sleep_duration_hours >= 0 AND sleep_duration_hours <= 24",
            name="chk_sleep_duration_hours",
        ),
        CheckConstraint("deep_sleep_hours >= 0", name="chk_deep_sleep_hours"),
        CheckConstraint("rem_sleep_hours >= 0", name="chk_rem_sleep_hours"),
        CheckConstraint("light_sleep_hours >= 0", name="chk_light_sleep_hours"),
        CheckConstraint(
            "resting_heart_rate_bpm >= 30 AND resting_heart_rate_bpm <= 200",
            name="chk_resting_heart_rate_bpm",
        ),
        CheckConstraint(
            "temperature_deviation_c >= -3 AND temperature_deviation_c <= 3",
            name="chk_temperature_deviation_c",
        ),
        Index("idx_sleep_records_user_date", "user_id", date.desc()),
    )

    def to_domain(self) -> SleepRecord:
        return SleepRecord(
            user_id=self.user_id,
            date=self.date,
            sleep_duration_hours=self.sleep_duration_hours,
            deep_sleep_hours=self.deep_sleep_hours,
            rem_sleep_hours=self.rem_sleep_hours,
            light_sleep_hours=self.light_sleep_hours,
            resting_heart_rate_bpm=self.resting_heart_rate_bpm,
            temperature_deviation_c=self.temperature_deviation_c,
            bedtime_start=self.bedtime_start,
            bedtime_end=self.bedtime_end,
            created_at=self.created_at,
        )
