"""Domain exceptions and the handlers that render them as error envelopes.

Draft and quote routes raise `QuoteWizardException` subclasses; everything
else that escapes a route is mapped to the same envelope shape.
"""

import logging
from typing import Union

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError, OperationalError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class QuoteWizardException(Exception):
    """Base exception for quote wizard application errors."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_code: str = "INTERNAL_ERROR",
        details: Union[dict, list, None] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details
        super().__init__(self.message)


class ResourceNotFoundError(QuoteWizardException):
    """Exception for resources not found."""

    def __init__(self, resource: str, identifier: str):
        super().__init__(
            message=f"{resource} not found: {identifier}",
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="RESOURCE_NOT_FOUND",
        )


class DraftGoneError(QuoteWizardException):
    """The draft existed but has already been submitted."""

    def __init__(self, draft_id: str):
        self.draft_id = draft_id
        super().__init__(
            message="This quote has already been submitted.",
            status_code=status.HTTP_410_GONE,
            error_code="DRAFT_COMPLETED",
        )


class UploadRejectedError(QuoteWizardException):
    """An uploaded file failed size, type or count checks."""

    def __init__(self, message: str, field: str):
        self.field = field
        super().__init__(
            message=message,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_code="UPLOAD_REJECTED",
            details={"field": field},
        )


class VerificationFailedError(QuoteWizardException):
    """Bot verification token missing, invalid or scored too low."""

    def __init__(self, message: str = "Security verification failed. Please refresh the page and try again."):
        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code="VERIFICATION_FAILED",
        )


def create_error_response(
    status_code: int,
    message: str,
    error_code: str = "ERROR",
    details: Union[dict, list, None] = None,
) -> JSONResponse:
    """Build the `{"error": {"code", "message", "details?"}}` envelope."""
    content = {"error": {"code": error_code, "message": message}}
    if details:
        content["error"]["details"] = details
    return JSONResponse(status_code=status_code, content=content)


def _where(request: Request) -> dict:
    return {"path": request.url.path, "method": request.method}


async def quote_wizard_exception_handler(
    request: Request,
    exc: QuoteWizardException,
) -> JSONResponse:
    logger.warning(
        "%s on %s: %s", exc.error_code, request.url.path, exc.message,
        extra={"error_code": exc.error_code, **_where(request)},
    )
    return create_error_response(
        status_code=exc.status_code,
        message=exc.message,
        error_code=exc.error_code,
        details=exc.details,
    )


async def http_exception_handler(
    request: Request,
    exc: Union[HTTPException, StarletteHTTPException],
) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("HTTP %s: %s", exc.status_code, exc.detail, extra=_where(request))
    return create_error_response(
        status_code=exc.status_code,
        message=str(exc.detail),
        error_code=f"HTTP_{exc.status_code}",
    )


async def validation_exception_handler(
    request: Request,
    exc: Union[RequestValidationError, ValidationError],
) -> JSONResponse:
    """Request bodies, the multipart `data` payload and draft fields all land here."""
    errors = [
        {
            "field": " -> ".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]
    logger.warning(
        "Validation error on %s (%d fields)", request.url.path, len(errors),
        extra={**_where(request), "errors": errors},
    )
    return create_error_response(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        message="Validation error",
        error_code="VALIDATION_ERROR",
        details={"errors": errors},
    )


async def database_exception_handler(
    request: Request,
    exc: IntegrityError,
) -> JSONResponse:
    """Constraint violations that escaped the draft store and quote intake.

    The partial unique index on active drafts is the usual source: two tabs
    of one session racing to create the first draft.
    """
    detail = str(getattr(exc, "orig", exc)).lower()
    logger.error("Integrity error on %s: %s", request.url.path, detail, extra=_where(request))

    if "unique" in detail:
        message, error_code = "This draft or quote was saved concurrently. Please retry.", "DUPLICATE_RECORD"
    elif "foreign key" in detail:
        message, error_code = "Referenced record does not exist", "FOREIGN_KEY_VIOLATION"
    elif "not null" in detail:
        message, error_code = "Required field is missing", "NULL_VALUE_NOT_ALLOWED"
    else:
        message, error_code = "Database constraint violation", "INTEGRITY_ERROR"

    return create_error_response(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        message=message,
        error_code=error_code,
    )


async def operational_exception_handler(
    request: Request,
    exc: OperationalError,
) -> JSONResponse:
    logger.error("Database unavailable on %s: %s", request.url.path, exc, extra=_where(request))
    return create_error_response(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        message="Database temporarily unavailable. Please try again.",
        error_code="DATABASE_UNAVAILABLE",
    )


async def general_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    # Internal details stay in the log.
    logger.error("Unhandled exception on %s", request.url.path, extra=_where(request), exc_info=exc)
    return create_error_response(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        message="An unexpected error occurred. Please try again later.",
        error_code="INTERNAL_SERVER_ERROR",
    )


def register_exception_handlers(app):
    """Attach the envelope handlers; the most specific class wins."""
    app.add_exception_handler(QuoteWizardException, quote_wizard_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(ValidationError, validation_exception_handler)
    app.add_exception_handler(IntegrityError, database_exception_handler)
    app.add_exception_handler(OperationalError, operational_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)
