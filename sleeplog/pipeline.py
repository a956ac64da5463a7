"""Ingestion pipeline: CSV text → decode → validate → normalize → upsert.

The pipeline is idempotent end-to-end:
- Same input always produces the same normalized records
- Upsert is keyed on (user_id, date), so a replay overwrites instead of duplicating

Failure policy:
- MalformedInputError (no header, unreadable input) aborts the run before any write
- A row with decode or validation errors is skipped and reported; the run continues
- A StorageError on one row's upsert is counted as that row's failure; no retry
- InternalInvariantError propagates: it means the validator and normalizer disagree
"""

import time
from os import PathLike
from typing import IO, Any

import structlog

from shared.exceptions import MalformedInputError, StorageError
from shared.metrics import (
    ingestion_duration_seconds,
    ingestion_rows_total,
    ingestion_runs_total,
    validation_failures_total,
)
from sleeplog.adapters.csv_decoder import (
    CSV_MAPPING_VERSION,
    DecodedRow,
    decode_sleep_csv,
    read_csv_resource,
)
from sleeplog.domain.models import IngestionSummary, ValidationError
from sleeplog.domain.normalization import normalize_sleep_row
from sleeplog.domain.validation import validate_sleep_row
from sleeplog.storage.protocol import SleepRecordStore

logger = structlog.get_logger()


# Validator errors that compare a field against the total sleep duration
_TOTAL_DEPENDENT = {"deep_sleep_hours", "rem_sleep_hours", "light_sleep_hours", "sleep_stages"}
_STAGE_FIELDS = _TOTAL_DEPENDENT - {"sleep_stages"}


def _row_errors(row: DecodedRow) -> list[ValidationError]:
    """Decode errors plus validator errors that do not involve an undecodable cell."""
    if not row.errors:
        return validate_sleep_row(row.values)
    failed = {e.field for e in row.errors}
    if "sleep_duration_hours" in failed:
        failed |= _TOTAL_DEPENDENT
    elif failed & _STAGE_FIELDS:
        # the stage sum is unknown, but other stages still compare against the total
        failed.add("sleep_stages")
    return row.errors + [e for e in validate_sleep_row(row.values) if e.field not in failed]


async def ingest_sleep_csv(
    store: SleepRecordStore,
    user_id: str,
    raw_csv_text: str,
) -> IngestionSummary:
    """Run the full ingestion pipeline for one uploaded CSV export.

    Steps:
    1. Decode every row (a malformed file is rejected wholesale)
    2. Validate each row; rejected rows are recorded by index
    3. Normalize valid rows into SleepRecords
    4. Upsert each record keyed on (user_id, date)

    Returns IngestionSummary with counts and per-row errors in file order.
    """
    start_time = time.monotonic()
    summary = IngestionSummary()

    try:
        rows = list(decode_sleep_csv(raw_csv_text))
    except MalformedInputError:
        ingestion_runs_total.labels(outcome="malformed").inc()
        logger.warning("ingestion_rejected_malformed", user_id=user_id)
        raise

    logger.info(
        "ingestion_started",
        user_id=user_id,
        rows=len(rows),
        mapping_version=CSV_MAPPING_VERSION,
    )

    for row in rows:
        errors = _row_errors(row)
        if errors:
            summary.record_failure(row.row_index, errors)
            ingestion_rows_total.labels(status="rejected").inc()
            for e in errors:
                validation_failures_total.labels(field=e.field).inc()
            logger.warning(
                "row_rejected",
                user_id=user_id,
                row_index=row.row_index,
                line_number=row.line_number,
                fields=[e.field for e in errors],
            )
            continue

        record = normalize_sleep_row(user_id, row.values)
        try:
            await store.upsert(user_id, record)
        except StorageError as exc:
            summary.record_failure(row.row_index, [ValidationError("storage", exc.detail)])
            ingestion_rows_total.labels(status="storage_failed").inc()
            logger.warning(
                "row_storage_failed",
                user_id=user_id,
                row_index=row.row_index,
                date=record.date.isoformat(),
                error=exc.detail,
            )
            continue

        summary.succeeded += 1
        ingestion_rows_total.labels(status="stored").inc()
        logger.debug(
            "row_upserted",
            user_id=user_id,
            row_index=row.row_index,
            date=record.date.isoformat(),
        )

    ingestion_runs_total.labels(outcome="completed").inc()
    ingestion_duration_seconds.observe(time.monotonic() - start_time)
    logger.info(
        "ingestion_completed",
        user_id=user_id,
        succeeded=summary.succeeded,
        failed=summary.failed,
    )
    return summary


async def ingest_sleep_file(
    store: SleepRecordStore,
    user_id: str,
    source: str | PathLike[str] | IO[Any],
) -> IngestionSummary:
    """Read a CSV input resource and ingest it. Read failures are MalformedInputError."""
    return await ingest_sleep_csv(store, user_id, read_csv_resource(source))
