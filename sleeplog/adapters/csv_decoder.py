"""Oura CSV export → decoded sleep rows.

Inbound anti-corruption layer: translates the vendor's column headers and
units into canonical field names. The column table below is a versioned
contract with the vendor; a new column means a new table entry, not new
parsing logic.

Known limitations:
- Cells are split on "," only. Quoted fields and embedded commas are not
  supported.
- A non-numeric value in a numeric column does not become None. The cell is
  reported as an error on its row and the orchestrator rejects that row.
"""

import math
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from os import PathLike
from pathlib import Path
from typing import IO, Any

from shared.exceptions import MalformedInputError
from sleeplog.domain.models import ValidationError

CSV_MAPPING_VERSION = "oura-daily-v1"

_SECONDS_PER_HOUR = 3600.0


def _seconds_to_hours(seconds: float) -> float:
    return seconds / _SECONDS_PER_HOUR


def _identity(value: float) -> float:
    return value


@dataclass(frozen=True)
class ColumnSpec:
    """How one vendor column maps onto a canonical field."""

    field: str
    numeric: bool = False
    convert: Callable[[float], float] = _identity


COLUMN_MAP: dict[str, ColumnSpec] = {
    "date": ColumnSpec("date"),
    "Total Sleep Duration": ColumnSpec("sleep_duration_hours", True, _seconds_to_hours),
    "Deep Sleep Duration": ColumnSpec("deep_sleep_hours", True, _seconds_to_hours),
    "REM Sleep Duration": ColumnSpec("rem_sleep_hours", True, _seconds_to_hours),
    "Light Sleep Duration": ColumnSpec("light_sleep_hours", True, _seconds_to_hours),
    "Average Resting Heart Rate": ColumnSpec("resting_heart_rate_bpm", True),
    "Temperature Deviation (°C)": ColumnSpec("temperature_deviation_c", True),
    # Same column as exported through a latin-1 round trip
    "Temperature Deviation (Â°C)": ColumnSpec("temperature_deviation_c", True),
    "Bedtime Start": ColumnSpec("bedtime_start"),
    "Bedtime End": ColumnSpec("bedtime_end"),
}

CANONICAL_FIELDS: tuple[str, ...] = tuple(
    dict.fromkeys(spec.field for spec in COLUMN_MAP.values())
)


@dataclass
class DecodedRow:
    """One body line of the export, decoded but not yet validated."""

    row_index: int
    line_number: int
    values: dict[str, Any]
    errors: list[ValidationError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def _parse_number(raw: str) -> float:
    value = float(raw)
    if not math.isfinite(value):
        raise ValueError(f"non-finite value {raw!r}")
    return value


def _decode_cell(spec: ColumnSpec, raw: str | None) -> tuple[Any, ValidationError | None]:
    if raw is None or raw == "":
        return None, None
    if not spec.numeric:
        return raw, None
    try:
        return spec.convert(_parse_number(raw)), None
    except ValueError:
        return None, ValidationError(spec.field, f"Value {raw!r} is not a number")


def _split_header(line: str) -> list[str]:
    return [h.strip() for h in line.split(",")]


def decode_sleep_csv(text: str) -> Iterator[DecodedRow]:
    """Decode CSV export text into rows, lazily and in file order.

    The header is checked eagerly: a missing header raises MalformedInputError
    on the call itself, before any row is produced.
    """
    if text.startswith("\ufeff"):
        text = text[1:]
    lines = text.split("\n")
    header_line = lines[0].rstrip("\r")
    if not header_line.strip():
        raise MalformedInputError("CSV input has no header line")

    headers = _split_header(header_line)
    mapped = [(pos, COLUMN_MAP[name]) for pos, name in enumerate(headers) if name in COLUMN_MAP]
    return _iter_rows(lines[1:], mapped)


def _iter_rows(body: list[str], mapped: list[tuple[int, ColumnSpec]]) -> Iterator[DecodedRow]:
    row_index = 0
    for offset, line in enumerate(body):
        line = line.rstrip("\r")
        if not line.strip():
            continue

        cells = [c.strip() for c in line.split(",")]
        values: dict[str, Any] = dict.fromkeys(CANONICAL_FIELDS)
        errors: list[ValidationError] = []
        for pos, spec in mapped:
            raw = cells[pos] if pos < len(cells) else None
            value, error = _decode_cell(spec, raw)
            if error is not None:
                errors.append(error)
            elif value is not None or values[spec.field] is None:
                values[spec.field] = value

        yield DecodedRow(row_index=row_index, line_number=offset + 2, values=values, errors=errors)
        row_index += 1


def read_csv_resource(source: str | PathLike[str] | IO[Any], encoding: str = "utf-8") -> str:
    """Read the full text of a CSV input resource.

    Accepts a filesystem path or an open file-like object (text or binary).
    Paths are opened and closed here; file objects are read but left to the
    caller to close. Any read or decode failure is raised as
    MalformedInputError.
    """
    try:
        if isinstance(source, (str, PathLike)):
            with Path(source).open("r", encoding=encoding, newline="") as fh:
                return fh.read()
        content = source.read()
        if isinstance(content, bytes):
            return content.decode(encoding)
        return content
    except (OSError, UnicodeDecodeError) as exc:
        raise MalformedInputError(f"CSV input could not be read: {exc}") from exc
