#!/usr/bin/env python3
"""Ingest an Oura CSV export from disk into the configured database.

Usage:
    python scripts/ingest_csv.py --user-id u-123 oura_export.csv
    python scripts/ingest_csv.py --user-id u-123 --json oura_export.csv
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

from shared.config import settings
from shared.database import async_session_factory, dispose_engine
from shared.exceptions import MalformedInputError
from shared.logging import configure_logging
from sleeplog.domain.models import IngestionSummary
from sleeplog.pipeline import ingest_sleep_file
from sleeplog.repository import SleepRecordRepository


async def run(user_id: str, path: Path) -> IngestionSummary:
    try:
        async with async_session_factory() as session:
            return await ingest_sleep_file(SleepRecordRepository(session), user_id, path)
    finally:
        await dispose_engine()


def print_summary(summary: IngestionSummary) -> None:
    print(f"Stored {summary.succeeded} of {summary.total} rows. Failed: {summary.failed}")
    for failure in summary.row_errors:
        for error in failure.errors:
            print(f"  row {failure.row_index}: {error.field}: {error.message}")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Ingest a sleep CSV export")
    parser.add_argument("path", type=Path, help="Path to the CSV export")
    parser.add_argument("--user-id", required=True, help="Owner of the records")
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the ingestion summary as JSON instead of text",
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    configure_logging(json_output=settings.log_json, level=settings.log_level)

    try:
        summary = asyncio.run(run(args.user_id, args.path))
    except MalformedInputError as exc:
        print(f"ERROR: {exc.detail}", file=sys.stderr)
        sys.exit(2)

    if args.json:
        print(json.dumps(summary.to_dict(), indent=2))
    else:
        print_summary(summary)
    sys.exit(1 if summary.failed else 0)


if __name__ == "__main__":
    main()
