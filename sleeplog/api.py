"""FastAPI router for the sleep log.

Endpoints:
- POST   /api/v1/users/{user_id}/sleep/upload   (body: raw CSV export)
- GET    /api/v1/users/{user_id}/sleep
- GET    /api/v1/users/{user_id}/sleep/count
- DELETE /api/v1/users/{user_id}/sleep/{day}
"""

import io
import time
from datetime import UTC, date, datetime
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Path, Query, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config import settings
from shared.database import get_session
from shared.exceptions import PayloadTooLargeError, RecordNotFoundError
from shared.metrics import api_requests_total, api_response_duration_seconds
from shared.middleware import request_id_var
from sleeplog.adapters.csv_decoder import read_csv_resource
from sleeplog.domain.models import SleepRecord
from sleeplog.pipeline import ingest_sleep_csv
from sleeplog.repository import SleepRecordRepository
from sleeplog.storage.protocol import SleepRecordStore

router = APIRouter(prefix="/api/v1")

UserId = Annotated[str, Path(min_length=1, max_length=128)]


async def get_store(session: AsyncSession = Depends(get_session)) -> SleepRecordStore:
    return SleepRecordRepository(session)


# --- Response helpers ---


def _meta() -> dict[str, Any]:
    return {
        "request_id": request_id_var.get(""),
        "timestamp": datetime.now(UTC).isoformat(),
        "api_version": settings.api_version,
    }


def _record_to_dict(record: SleepRecord) -> dict[str, Any]:
    return {
        "date": record.date.isoformat(),
        "sleep_duration_hours": record.sleep_duration_hours,
        "stages": {
            "deep_sleep_hours": record.deep_sleep_hours,
            "rem_sleep_hours": record.rem_sleep_hours,
            "light_sleep_hours": record.light_sleep_hours,
        },
        "resting_heart_rate_bpm": record.resting_heart_rate_bpm,
        "temperature_deviation_c": record.temperature_deviation_c,
        "bedtime_start": record.bedtime_start,
        "bedtime_end": record.bedtime_end,
        "created_at": record.created_at.isoformat() if record.created_at else None,
    }


async def _read_limited_body(request: Request, limit: int) -> bytes:
    """Read the request body, stopping as soon as it passes `limit` bytes."""
    declared = request.headers.get("content-length", "")
    if declared.isdigit() and int(declared) > limit:
        raise PayloadTooLargeError(int(declared), limit)

    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > limit:
            raise PayloadTooLargeError(len(body), limit)
    return bytes(body)


def _observe(endpoint: str, method: str, status_code: int, start_time: float) -> None:
    api_requests_total.labels(endpoint=endpoint, method=method, status_code=str(status_code)).inc()
    api_response_duration_seconds.labels(endpoint=endpoint).observe(time.monotonic() - start_time)


# --- Endpoints ---


@router.post("/users/{user_id}/sleep/upload")
async def upload_sleep_csv(
    user_id: UserId,
    request: Request,
    store: SleepRecordStore = Depends(get_store),
):
    """Ingest a wearable CSV export for a user.

    The request body is the raw CSV text (UTF-8). Rows are processed
    independently: invalid rows are reported in `row_errors` and do not block
    valid ones. Re-uploading the same file overwrites, never duplicates.

    HTTP status codes:
    - 200: file processed (check `failed` / `row_errors` for rejected rows)
    - 400: malformed input (no header line, not UTF-8); nothing was written
    - 413: body larger than the configured upload limit
    """
    start_time = time.monotonic()
    body = await _read_limited_body(request, settings.max_upload_bytes)

    text = read_csv_resource(io.BytesIO(body))
    summary = await ingest_sleep_csv(store, user_id, text)

    _observe("upload", "POST", 200, start_time)
    return {"data": summary.to_dict(), "meta": _meta()}


@router.get("/users/{user_id}/sleep")
async def list_sleep_records(
    user_id: UserId,
    store: SleepRecordStore = Depends(get_store),
    limit: int = Query(settings.default_fetch_limit, ge=1, le=settings.max_fetch_limit),
):
    """Get the user's most recent sleep records, newest date first."""
    start_time = time.monotonic()
    records = await store.fetch_by_user(user_id, limit=limit)

    _observe("list", "GET", 200, start_time)
    return {"data": [_record_to_dict(r) for r in records], "meta": _meta()}


@router.get("/users/{user_id}/sleep/count")
async def count_sleep_records(
    user_id: UserId,
    store: SleepRecordStore = Depends(get_store),
):
    start_time = time.monotonic()
    count = await store.count_by_user(user_id)

    _observe("count", "GET", 200, start_time)
    return {"data": {"user_id": user_id, "record_count": count}, "meta": _meta()}


@router.delete("/users/{user_id}/sleep/{day}", status_code=204)
async def delete_sleep_record(
    user_id: UserId,
    day: date,
    store: SleepRecordStore = Depends(get_store),
):
    """Delete the record for (user_id, day)."""
    start_time = time.monotonic()
    deleted = await store.delete_by_key(user_id, day)
    if not deleted:
        _observe("delete", "DELETE", 404, start_time)
        raise RecordNotFoundError(user_id, day.isoformat())

    _observe("delete", "DELETE", 204, start_time)
    return Response(status_code=204)
