"""Canonical SleepRecord domain model and ingestion result types.

Represents one user's sleep for one calendar day, decoded from a wearable
CSV export and normalized into a common schema.

Design principles:
- Natural key: (user_id, date); re-ingesting a key replaces the record wholesale
- Nullable measurement fields: None = "export did not provide", not "zero"
- Immutable after normalization
- created_at is owned by the storage layer
"""

import datetime as dt
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


@dataclass(frozen=True)
class ValidationError:
    """A field-tagged diagnostic. Returned, never raised."""

    field: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"field": self.field, "message": self.message}


class SleepRecord(BaseModel):
    """Canonical representation of one day's sleep."""

    model_config = ConfigDict(frozen=True)

    # Identity
    user_id: str
    date: dt.date

    # Durations in hours (nullable = not provided)
    sleep_duration_hours: float | None = Field(None, ge=0.0, le=24.0)
    deep_sleep_hours: float | None = Field(None, ge=0.0)
    rem_sleep_hours: float | None = Field(None, ge=0.0)
    light_sleep_hours: float | None = Field(None, ge=0.0)

    # Physiology
    resting_heart_rate_bpm: int | None = Field(None, ge=30, le=200)
    temperature_deviation_c: float | None = Field(None, ge=-3.0, le=3.0)

    # Bedtime window, original timestamp strings
    bedtime_start: str | None = None
    bedtime_end: str | None = None

    # Set by storage
    created_at: dt.datetime | None = None

    def storage_values(self) -> dict[str, Any]:
        """Column values for a full-record write. Excludes created_at."""
        return self.model_dump(exclude={"created_at"})


@dataclass
class RowFailure:
    """All errors for one rejected row, tagged with its position in the file."""

    row_index: int
    errors: list[ValidationError]

    def to_dict(self) -> dict[str, Any]:
        return {"row_index": self.row_index, "errors": [e.to_dict() for e in self.errors]}


@dataclass
class IngestionSummary:
    """Aggregate result of one ingestion run."""

    succeeded: int = 0
    failed: int = 0
    row_errors: list[RowFailure] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.succeeded + self.failed

    def record_failure(self, row_index: int, errors: list[ValidationError]) -> None:
        self.failed += 1
        self.row_errors.append(RowFailure(row_index=row_index, errors=list(errors)))

    def to_dict(self) -> dict[str, Any]:
        return {
            "succeeded": self.succeeded,
            "failed": self.failed,
            "total": self.total,
            "row_errors": [f.to_dict() for f in self.row_errors],
        }
