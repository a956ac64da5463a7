"""FastAPI middleware for request ID injection and error handling."""

from collections.abc import Callable
from contextvars import ContextVar
from uuid import uuid4

import structlog
from fastapi import Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from shared.exceptions import ProblemDetailError, RequestValidationFailedError

request_id_var: ContextVar[str] = ContextVar("request_id", default="")

logger = structlog.get_logger()

PROBLEM_MEDIA_TYPE = "application/problem+json"


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Inject a unique request ID into every request and response.

    Header name: X-Request-ID. Default format: UUID v4.
    """

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Callable[..., Response]]
    ):
        rid = request.headers.get("X-Request-ID", str(uuid4()))
        request_id_var.set(rid)
        structlog.contextvars.bind_contextvars(request_id=rid)

        try:
            response = await call_next(request)
            response.headers["X-Request-ID"] = rid
            return response
        finally:
            structlog.contextvars.unbind_contextvars("request_id")


def _problem_response(request: Request, exc: ProblemDetailError) -> JSONResponse:
    body: dict = {
        "type": exc.type_uri,
        "title": exc.title,
        "status": exc.status,
        "detail": exc.detail,
        "instance": str(request.url.path),
    }
    if exc.violations:
        body["violations"] = exc.violations
    return JSONResponse(status_code=exc.status, content=body, media_type=PROBLEM_MEDIA_TYPE)


async def problem_detail_handler(request: Request, exc: ProblemDetailError) -> JSONResponse:
    """Convert ProblemDetailError exceptions into RFC 9457 responses."""
    if exc.status >= 500:
        logger.error("request_failed", title=exc.title, detail=exc.detail, status=exc.status)
    return _problem_response(request, exc)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Convert FastAPI/Pydantic request validation errors into RFC 9457 format.

    Path and query parameter errors (bad date, out-of-range limit) share the
    violations shape used for CSV row errors: {field, message}.
    """
    violations = []
    for err in exc.errors():
        loc = err.get("loc", ())
        field = ".".join(str(part) for part in loc if part not in ("body", "path", "query"))
        violations.append(
            {
                "field": field or "(root)",
                "message": err.get("msg", "Validation error"),
            }
        )
    return _problem_response(request, RequestValidationFailedError(violations))


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Convert generic HTTP exceptions (404 route, 405 method) into RFC 9457 format."""
    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    body = {
        "type": "about:blank",
        "title": detail if isinstance(exc.detail, str) else "Error",
        "status": exc.status_code,
        "detail": detail,
        "instance": str(request.url.path),
    }
    return JSONResponse(status_code=exc.status_code, content=body, media_type=PROBLEM_MEDIA_TYPE)
