"""
Error handlers - global exception handlers for the marketplace API.

    - MarketplaceError -> its http_status with {"errors": {code, message, details}}
    - RequestValidationError -> 422 with field-level details
    - Exception (catch-all) -> 500, never leaks internal details
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from marketplace.core.errors import MarketplaceError, RateLimitedError

logger = logging.getLogger(__name__)


def register_error_handlers(app: FastAPI) -> None:
    """Register all global error handlers on the FastAPI app."""

    @app.exception_handler(MarketplaceError)
    async def marketplace_error_handler(request: Request, exc: MarketplaceError):
        level = logging.ERROR if exc.http_status >= 500 else logging.INFO
        logger.log(level, "%s: %s", type(exc).__name__, exc.message, extra={"error_code": exc.code, "path": request.url.path})
        headers = None
        if exc.http_status == status.HTTP_401_UNAUTHORIZED:
            headers = {"WWW-Authenticate": "Bearer"}
        elif isinstance(exc, RateLimitedError):
            headers = {"Retry-After": str(exc.retry_after_seconds)}
        return JSONResponse(status_code=exc.http_status, content=exc.to_response(), headers=headers)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        logger.info("validation error on %s", request.url.path, extra={"error_code": "validation_error"})
        return JSONResponse(
            status_code=422,
            content=_build_validation_error_response(exc),
        )

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception):
        """Catch-all - never leaks internal details."""
        logger.error("unhandled exception on %s: %s", request.url.path, exc, exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"errors": {"code": "internal_error", "message": "An unexpected error occurred"}},
        )


def _build_validation_error_response(exc: RequestValidationError) -> dict:
    """Group pydantic errors by field, mirroring ValidationError.field_errors."""
    details: dict[str, list[str]] = {}
    for e in exc.errors():
        loc = [str(part) for part in e["loc"] if part not in ("body", "user", "item", "comment")]
        details.setdefault(".".join(loc) or "body", []).append(e["msg"])
    return {"errors": {"code": "validation_error", "message": "Invalid request data", "details": details}}
