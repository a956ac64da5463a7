"""RFC 9457 Problem Details exception hierarchy.

All service errors extend ProblemDetailError and are converted to
application/problem+json responses by the exception handler middleware.
Row-level validation failures are NOT exceptions; they are returned as
ValidationError values inside the ingestion summary.
"""

PROBLEM_BASE_URI = "https://api.sleeplog.app/problems"


class ProblemDetailError(Exception):
    def __init__(
        self,
        type_uri: str,
        title: str,
        status: int,
        detail: str,
        violations: list[dict] | None = None,
    ):
        self.type_uri = type_uri
        self.title = title
        self.status = status
        self.detail = detail
        self.violations = violations
        super().__init__(detail)


class MalformedInputError(ProblemDetailError):
    """The input resource is unreadable or has no header row. Fatal to the run."""

    def __init__(self, detail: str):
        super().__init__(
            type_uri=f"{PROBLEM_BASE_URI}/malformed-input",
            title="Malformed Input",
            status=400,
            detail=detail,
        )


class StorageError(ProblemDetailError):
    """The storage backend rejected or failed a read, upsert or delete."""

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        super().__init__(
            type_uri=f"{PROBLEM_BASE_URI}/storage-unavailable",
            title="Storage Error",
            status=503,
            detail=f"Storage {operation} failed: {detail}",
        )


class InternalInvariantError(ProblemDetailError):
    """A row that should have been rejected by validation reached normalization."""

    def __init__(self, violations: list[dict]):
        super().__init__(
            type_uri=f"{PROBLEM_BASE_URI}/internal-invariant",
            title="Internal Invariant Violated",
            status=500,
            detail=(
                f"Normalization received a row with {len(violations)} validation "
                "error(s); the validator/normalizer contract was broken"
            ),
            violations=violations,
        )


class RequestValidationFailedError(ProblemDetailError):
    def __init__(self, violations: list[dict]):
        super().__init__(
            type_uri=f"{PROBLEM_BASE_URI}/validation-error",
            title="Validation Error",
            status=422,
            detail=f"Request contains {len(violations)} validation error(s)",
            violations=violations,
        )


class RecordNotFoundError(ProblemDetailError):
    def __init__(self, user_id: str, day: str):
        super().__init__(
            type_uri=f"{PROBLEM_BASE_URI}/not-found",
            title="Not Found",
            status=404,
            detail=f"No sleep record for user '{user_id}' on {day}",
        )


class PayloadTooLargeError(ProblemDetailError):
    def __init__(self, size: int, limit: int):
        super().__init__(
            type_uri=f"{PROBLEM_BASE_URI}/payload-too-large",
            title="Payload Too Large",
            status=413,
            detail=f"Upload is {size} bytes; the limit is {limit} bytes",
        )
