"""Validated row → canonical SleepRecord.

Only ever called on rows that passed validate_sleep_row. The validator is
re-run here and any violation raises InternalInvariantError, so a broken
contract between the two stages can never produce a corrupt record.
"""

import math
from datetime import datetime
from typing import Any

import structlog

from shared.exceptions import InternalInvariantError
from sleeplog.domain.models import SleepRecord
from sleeplog.domain.validation import parse_calendar_date, validate_sleep_row

logger = structlog.get_logger()

_FLOAT_FIELDS = (
    "sleep_duration_hours",
    "deep_sleep_hours",
    "rem_sleep_hours",
    "light_sleep_hours",
    "temperature_deviation_c",
)


def _to_float(value: Any) -> float | None:
    return float(value) if value is not None else None


def _round_half_up(value: Any) -> int | None:
    """Round to the nearest integer, halves upward (29.5 -> 30)."""
    return math.floor(float(value) + 0.5) if value is not None else None


def _timestamp_text(value: Any) -> str | None:
    if not value:
        return None
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def normalize_sleep_row(user_id: str, row: dict[str, Any]) -> SleepRecord:
    errors = validate_sleep_row(row)
    if errors:
        violations = [e.to_dict() for e in errors]
        logger.error("normalization_invariant_violated", user_id=user_id, violations=violations)
        raise InternalInvariantError(violations)

    return SleepRecord(
        user_id=user_id,
        date=parse_calendar_date(row["date"]),
        resting_heart_rate_bpm=_round_half_up(row.get("resting_heart_rate_bpm")),
        bedtime_start=_timestamp_text(row.get("bedtime_start")),
        bedtime_end=_timestamp_text(row.get("bedtime_end")),
        **{name: _to_float(row.get(name)) for name in _FLOAT_FIELDS},
    )
