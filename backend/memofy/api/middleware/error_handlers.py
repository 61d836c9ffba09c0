"""
Error Handlers

Render DomainError subclasses (permission denied, resource locked, invalid
transition, not found...) as {"error": {code, message, details}} with the
error's HTTP status.
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder

from ...domain.errors import DomainError, AuthenticationError
from ...utils.logger import get_logger, get_correlation_id

logger = get_logger(__name__)


def _headers(extra: dict = None) -> dict:
    headers = {"X-Correlation-Id": get_correlation_id() or ""}
    if extra:
        headers.update(extra)
    return headers


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    """Expected business errors; logged at warning level."""
    logger.warning(
        f"Domain error: {exc.error_code} - {exc.message}",
        extra={"error_code": exc.error_code, "action": f"{request.method} {request.url.path}"}
    )
    extra_headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationError) else None
    return JSONResponse(
        status_code=exc.http_status,
        content=jsonable_encoder(exc.to_dict()),
        headers=_headers(extra_headers)
    )


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Request body/query does not match the expected schema."""
    logger.warning(
        f"Validation error: {exc.errors()}, path={request.url.path}, method={request.method}"
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=jsonable_encoder({
            "error": {
                "code": "VALIDATION_ERROR",
                "message": "Request validation failed",
                "details": {"errors": exc.errors()}
            }
        }),
        headers=_headers()
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Unhandled errors; full stack trace goes to the error log."""
    logger.error(f"Unexpected error: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred",
                "details": {"hint": "Check server logs for details"}
            }
        },
        headers=_headers()
    )


def register_error_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI application."""
    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, general_exception_handler)
