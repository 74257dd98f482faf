"""Custom exceptions and FastAPI exception handlers.

The pivot engine is lenient by default: malformed filter rules, non-numeric
aggregation inputs, and missing grouping values degrade to "ignore", 0, and
"Unknown" respectively. The exceptions below are raised only at API
boundaries, on hard limits, or when strict mode is switched on.

Each class fixes its machine-readable ``code``, HTTP ``status_code`` and a
default message; raising sites pass a specific message and ``details``.
"""

from typing import Any, ClassVar

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError

from retailpivot.core.logging import get_logger
from retailpivot.core.problem_details import ProblemDetailResponse, problem_response

logger = get_logger(__name__)


# =============================================================================
# Exception Classes
# =============================================================================


class RetailPivotError(Exception):
    """Base exception for RetailPivot application errors.

    Attributes:
        message: Human-readable error message.
        code: Machine-readable error code; selects the problem type URI.
        status_code: HTTP status code.
        details: Structured context, rendered as the problem's ``context``.
    """

    default_code: ClassVar[str] = "INTERNAL_ERROR"
    default_status: ClassVar[int] = 500
    default_message: ClassVar[str] = "Internal error"

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
        code: str | None = None,
        status_code: int | None = None,
    ) -> None:
        """Initialize application error.

        Args:
            message: Human-readable error message. Defaults per class.
            details: Additional error context.
            code: Override of the class error code.
            status_code: Override of the class HTTP status.
        """
        self.message = message or self.default_message
        super().__init__(self.message)
        self.code = code or self.default_code
        self.status_code = status_code or self.default_status
        self.details = details or {}

    @property
    def title(self) -> str:
        """RFC 7807 title - short summary of problem type."""
        return self.code.replace("_", " ").title()


class NotFoundError(RetailPivotError):
    """Unknown dimension, aggregation, or node id."""

    default_code = "NOT_FOUND"
    default_status = 404
    default_message = "Resource not found"


class ValidationError(RetailPivotError):
    """Input validation error."""

    default_code = "VALIDATION_ERROR"
    default_status = 422
    default_message = "Validation failed"


class ConflictError(RetailPivotError):
    """Duplicate registration or selection in a DimensionCatalog."""

    default_code = "CONFLICT"
    default_status = 409
    default_message = "Resource conflict"


class BadRequestError(RetailPivotError):
    """Malformed request, e.g. more records than the engine accepts."""

    default_code = "BAD_REQUEST"
    default_status = 400
    default_message = "Bad request"


class InvalidFilterRuleError(ValidationError):
    """Filter rule with an operator illegal for its value type, or missing its value.

    Raised only in strict mode; lenient evaluation ignores such rules.
    """

    default_code = "INVALID_FILTER_RULE"
    default_message = "Invalid filter rule"


class AggregationCoercionError(ValidationError):
    """Non-numeric value folded into a numeric aggregation under strict mode."""

    default_code = "COERCION_FALLBACK"
    default_message = "Non-numeric aggregation input"


class PivotLimitExceededError(ValidationError):
    """Pivot tree grew past the configured node cap."""

    default_code = "PIVOT_LIMIT_EXCEEDED"
    default_message = "Pivot node limit exceeded"


class PivotBuildCancelledError(RetailPivotError):
    """A cooperative cancellation check stopped an in-progress build."""

    default_code = "PIVOT_BUILD_CANCELLED"
    default_status = 409
    default_message = "Pivot build cancelled"


# =============================================================================
# Exception Handlers (RFC 7807)
# =============================================================================


async def retailpivot_exception_handler(
    _request: Request,
    exc: RetailPivotError,
) -> ProblemDetailResponse:
    """Handle RetailPivotError exceptions with RFC 7807 Problem Details.

    Args:
        _request: FastAPI request object.
        exc: The raised exception.

    Returns:
        RFC 7807 Problem Detail response.
    """
    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        "app.error_handled",
        error=exc.message,
        error_type=type(exc).__name__,
        error_code=exc.code,
        status_code=exc.status_code,
        details=exc.details,
    )

    return problem_response(
        status=exc.status_code,
        title=exc.title,
        detail=exc.message,
        error_code=exc.code,
        context=exc.details,
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> ProblemDetailResponse:
    """Handle Pydantic request validation errors with RFC 7807 Problem Details.

    Args:
        request: FastAPI request object.
        exc: Pydantic validation error.

    Returns:
        RFC 7807 Problem Detail response with field-level errors.
    """
    field_errors: list[dict[str, str]] = []
    for error in exc.errors():
        loc = error.get("loc", [])
        field_path = ".".join(str(part) for part in loc if part != "body")
        field_errors.append(
            {
                "field": field_path,
                "message": str(error.get("msg", "Validation failed")),
                "type": str(error.get("type", "unknown")),
            }
        )

    logger.warning(
        "app.validation_error",
        error_count=len(field_errors),
        path=str(request.url.path),
        fields=[e["field"] for e in field_errors],
    )

    return problem_response(
        status=422,
        title="Validation Error",
        detail=f"Request validation failed with {len(field_errors)} error(s). "
        "Check the 'errors' field for details.",
        error_code="VALIDATION_ERROR",
        errors=field_errors,
    )


async def unhandled_exception_handler(
    request: Request,
    exc: Exception,
) -> ProblemDetailResponse:
    """Handle unexpected exceptions with RFC 7807 Problem Details."""
    logger.error(
        "app.unhandled_error",
        error=str(exc),
        error_type=type(exc).__name__,
        path=str(request.url.path),
        exc_info=True,
    )

    return problem_response(
        status=500,
        title="Internal Server Error",
        detail="An unexpected error occurred. Contact support with the request_id.",
        error_code="INTERNAL_ERROR",
    )


# =============================================================================
# Handler Registration
# =============================================================================


def register_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers with FastAPI app.

    Args:
        app: FastAPI application instance.
    """
    app.add_exception_handler(RetailPivotError, retailpivot_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_exception_handler)
