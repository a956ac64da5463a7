"""Shared test fixtures."""

import sys
from datetime import UTC, date, datetime
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from shared.exceptions import StorageError  # noqa: E402
from sleeplog.domain.models import SleepRecord  # noqa: E402

FIXTURES_DIR = Path(__file__).parent / "fixtures"
USER_ID = "user-a1b2c3d4"

CSV_HEADER = (
    "date,Total Sleep Duration,Deep Sleep Duration,REM Sleep Duration,"
    "Light Sleep Duration,Average Resting Heart Rate,Temperature Deviation (°C),"
    "Bedtime Start,Bedtime End"
)


def load_fixture(name: str) -> str:
    return (FIXTURES_DIR / name).read_text(encoding="utf-8")


def csv_line(
    day: str,
    total: object = 28800,
    deep: object = 5400,
    rem: object = 7200,
    light: object = 14400,
    hr: object = 52,
    temp: object = 0.1,
    start: str = "",
    end: str = "",
) -> str:
    """One body line in CSV_HEADER column order. Durations in seconds."""
    return ",".join(str(v) for v in (day, total, deep, rem, light, hr, temp, start, end))


def build_csv(*lines: str) -> str:
    return "\n".join([CSV_HEADER, *lines]) + "\n"


class InMemorySleepStore:
    """SleepRecordStore fake keyed on (user_id, date), with failure injection."""

    def __init__(self, fail_dates: set[date] | None = None, fail_reads: bool = False):
        self.records: dict[tuple[str, date], SleepRecord] = {}
        self.fail_dates = fail_dates or set()
        self.fail_reads = fail_reads
        self.upsert_calls = 0

    async def upsert(self, user_id: str, record: SleepRecord) -> SleepRecord:
        self.upsert_calls += 1
        if record.date in self.fail_dates:
            raise StorageError("upsert", "simulated outage")
        existing = self.records.get((user_id, record.date))
        created_at = existing.created_at if existing else datetime.now(UTC)
        stored = record.model_copy(update={"user_id": user_id, "created_at": created_at})
        self.records[(user_id, record.date)] = stored
        return stored

    async def fetch_by_user(self, user_id: str, limit: int = 7) -> list[SleepRecord]:
        if self.fail_reads:
            raise StorageError("fetch", "simulated outage")
        mine = [r for (uid, _), r in self.records.items() if uid == user_id]
        return sorted(mine, key=lambda r: r.date, reverse=True)[:limit]

    async def delete_by_key(self, user_id: str, day: date) -> bool:
        if self.fail_reads:
            raise StorageError("delete", "simulated outage")
        return self.records.pop((user_id, day), None) is not None

    async def count_by_user(self, user_id: str) -> int:
        return sum(1 for uid, _ in self.records if uid == user_id)


@pytest.fixture
def user_id():
    return USER_ID


@pytest.fixture
def store():
    return InMemorySleepStore()


@pytest.fixture
def oura_csv():
    return load_fixture("oura_sleep_export.csv")


@pytest.fixture
def valid_sleep_row():
    """A fully valid decoded sleep row for validation testing."""
    return {
        "date": "2024-03-14",
        "sleep_duration_hours": 8.0,
        "deep_sleep_hours": 1.5,
        "rem_sleep_hours": 2.0,
        "light_sleep_hours": 4.0,
        "resting_heart_rate_bpm": 52.4,
        "temperature_deviation_c": 0.12,
        "bedtime_start": "2024-03-13T23:10:00-05:00",
        "bedtime_end": "2024-03-14T07:20:00-05:00",
    }
