"""Global exception handlers for FastAPI."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.responses import JSONResponse

from api.base import error_response, ErrorCodes
from core.exceptions import EInvoiceError

logger = logging.getLogger(__name__)

# kind -> HTTP status
STATUS_BY_KIND = {
    "SCHEMA_VIOLATION": 400,
    "BUSINESS_RULE_VIOLATION": 422,
    "NOT_FOUND": 404,
    "NOT_ALLOWED": 403,
    "NOT_INITIALIZED": 500,
    "UNAVAILABLE": 503,
    "STORAGE_IO": 500,
}


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


def _error_json(request: Request, status_code: int, code: str, message: str, details=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=error_response(
            code, message, details, request_id=_request_id(request)
        ).model_dump(mode="json"),
    )


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the app."""

    @app.exception_handler(EInvoiceError)
    async def einvoice_error_handler(request: Request, exc: EInvoiceError):
        status_code = STATUS_BY_KIND.get(exc.kind, 500)
        details = None
        if hasattr(exc, "errors"):
            details = [e.model_dump(mode="json") for e in exc.errors]

        if status_code >= 500:
            logger.error(f"{exc.kind}: {exc.message}")
        else:
            logger.info(f"{exc.kind}: {exc.message}")

        return _error_json(request, status_code, exc.kind, exc.message, details)

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        return _error_json(request, 400, ErrorCodes.INVALID_REQUEST, str(exc))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return _error_json(
            request,
            422,
            ErrorCodes.VALIDATION_ERROR,
            "Request validation failed",
            [
                {"field": ".".join(str(p) for p in e["loc"]), "message": e["msg"]}
                for e in exc.errors()
            ],
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception")
        return _error_json(
            request, 500, ErrorCodes.INTERNAL_ERROR, "An internal error occurred"
        )
