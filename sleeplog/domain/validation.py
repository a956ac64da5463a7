"""Domain validation rules for decoded sleep rows.

Rules check canonical-level fields only and never depend on other rows or on
stored data. Every rule runs; a row with several problems reports all of
them. Returns a list of ValidationError; empty list means valid.
"""

import math
import re
from datetime import date, datetime
from typing import Any

from sleeplog.domain.models import ValidationError

MAX_SLEEP_HOURS = 24.0
STAGE_SUM_TOLERANCE_HOURS = 0.1
HEART_RATE_RANGE = (30, 200)
TEMPERATURE_DEVIATION_RANGE = (-3.0, 3.0)

# YYYY-MM-DD only; fromisoformat also takes week dates such as 2024-W11-4
_ISO_DATE = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")

STAGE_FIELDS: dict[str, str] = {
    "deep_sleep_hours": "Deep sleep",
    "rem_sleep_hours": "REM sleep",
    "light_sleep_hours": "Light sleep",
}

NUMERIC_FIELDS = (
    "sleep_duration_hours",
    *STAGE_FIELDS,
    "resting_heart_rate_bpm",
    "temperature_deviation_c",
)


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def parse_calendar_date(value: Any) -> date | None:
    """Return the calendar date for a YYYY-MM-DD string or date, else None."""
    if isinstance(value, datetime):
        return None
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not _ISO_DATE.fullmatch(value):
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def parse_timestamp(value: Any) -> datetime | None:
    """Return the datetime for an ISO 8601 string or datetime, else None."""
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


def validate_sleep_row(row: dict[str, Any]) -> list[ValidationError]:
    """Validate a decoded sleep row before normalization.

    Returns an empty list if valid; otherwise returns all violations.
    """
    errors: list[ValidationError] = []

    # Rule 1: Required, parseable date
    day = row.get("date")
    if day is None or day == "":
        errors.append(ValidationError("date", "Date is required"))
    elif parse_calendar_date(day) is None:
        errors.append(ValidationError("date", "Invalid date format"))

    # Rule 2: Numeric fields hold numbers
    numbers: dict[str, float | None] = {}
    for name in NUMERIC_FIELDS:
        value = row.get(name)
        if value is not None and not _is_number(value):
            errors.append(ValidationError(name, f"{name} must be a number"))
            value = None
        numbers[name] = value

    # Rule 3: Sleep duration range [0, 24]
    total = numbers["sleep_duration_hours"]
    if total is not None and (total < 0 or total > MAX_SLEEP_HOURS):
        errors.append(
            ValidationError("sleep_duration_hours", "Sleep duration must be between 0 and 24 hours")
        )

    # Rule 4: Each stage non-negative and within total (missing total counts as 0)
    total_or_zero = total or 0.0
    for name, label in STAGE_FIELDS.items():
        stage = numbers[name]
        if stage is None:
            continue
        if stage < 0:
            errors.append(ValidationError(name, f"{label} cannot be negative"))
        elif stage > total_or_zero:
            errors.append(ValidationError(name, f"{label} cannot exceed total sleep duration"))

    # Rule 5: Stage sum consistency (0.1h slack for rounding)
    stage_sum = sum(numbers[name] or 0.0 for name in STAGE_FIELDS)
    if stage_sum > total_or_zero + STAGE_SUM_TOLERANCE_HOURS:
        errors.append(
            ValidationError("sleep_stages", "Total sleep stages cannot exceed total sleep duration")
        )

    # Rule 6: Resting heart rate [30, 200], inclusive
    hr = numbers["resting_heart_rate_bpm"]
    low, high = HEART_RATE_RANGE
    if hr is not None and (hr < low or hr > high):
        errors.append(
            ValidationError("resting_heart_rate_bpm", "Heart rate must be between 30 and 200")
        )

    # Rule 7: Temperature deviation [-3, 3]
    temp = numbers["temperature_deviation_c"]
    low_t, high_t = TEMPERATURE_DEVIATION_RANGE
    if temp is not None and (temp < low_t or temp > high_t):
        errors.append(
            ValidationError(
                "temperature_deviation_c", "Temperature deviation must be between -3 and 3"
            )
        )

    # Rule 8: Parseable bedtimes
    bedtimes: dict[str, datetime | None] = {}
    for ts_field in ("bedtime_start", "bedtime_end"):
        raw = row.get(ts_field)
        parsed = parse_timestamp(raw) if raw else None
        if raw and parsed is None:
            errors.append(ValidationError(ts_field, "Invalid timestamp format"))
        bedtimes[ts_field] = parsed

    # Rule 9: Bedtime ordering (start < end, strict)
    start, end = bedtimes["bedtime_start"], bedtimes["bedtime_end"]
    if start is not None and end is not None:
        if (start.tzinfo is None) != (end.tzinfo is None):
            errors.append(
                ValidationError(
                    "bedtime", "Bedtime start and end must both include or both omit a UTC offset"
                )
            )
        elif start >= end:
            errors.append(ValidationError("bedtime", "Bedtime end must be after bedtime start"))

    return errors
