"""FastAPI application entry point.

Wires together: middleware, exception handlers, routes, metrics.
Validates config at startup.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from shared.config import settings
from shared.database import dispose_engine
from shared.exceptions import ProblemDetailError
from shared.logging import configure_logging
from shared.metrics import create_metrics_app
from shared.middleware import (
    RequestIdMiddleware,
    http_exception_handler,
    problem_detail_handler,
    request_validation_handler,
)
from sleeplog.adapters.csv_decoder import CSV_MAPPING_VERSION
from sleeplog.api import router as sleep_router

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle."""
    configure_logging(json_output=settings.log_json, level=settings.log_level)
    logger.info(
        "app_starting",
        csv_mapping_version=CSV_MAPPING_VERSION,
        database_url=settings.database_url.split("@")[-1],  # hide credentials
    )
    yield
    logger.info("app_shutting_down")
    await dispose_engine()


app = FastAPI(
    title="Sleep Log API",
    description=(
        "Ingests daily sleep records from wearable CSV exports (Oura), validates "
        "and normalizes them, and stores one record per user and day."
    ),
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(RequestIdMiddleware)

# All errors emit application/problem+json (RFC 9457)
app.add_exception_handler(ProblemDetailError, problem_detail_handler)
app.add_exception_handler(RequestValidationError, request_validation_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)

app.include_router(sleep_router)

metrics_app = create_metrics_app()
app.mount("/metrics", metrics_app)


@app.get("/health")
async def health():
    return {"status": "ok"}
