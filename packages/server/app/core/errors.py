"""
Uniform error envelope for every failure the API reports.

All errors are rendered as ``{"error": {"code", "message", "status"}}``,
the same shape the CSRF middleware uses, so a client can show one inline
banner regardless of where the failure came from.
"""

from __future__ import annotations

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import JSONResponse

log = structlog.get_logger()

ERROR_CODES = {
    400: "BAD_REQUEST",
    401: "AUTHENTICATION_REQUIRED",
    403: "ACCESS_DENIED",
    404: "NOT_FOUND",
    409: "CONFLICT",
    422: "VALIDATION_FAILED",
    503: "DATA_STORE_UNAVAILABLE",
}


def error_body(status: int, message: str, code: str | None = None) -> dict:
    return {
        "error": {
            "code": code or ERROR_CODES.get(status, "ERROR"),
            "message": message,
            "status": status,
        }
    }


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.status_code, str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = [".".join(str(p) for p in err.get("loc", ())) for err in exc.errors()]
    message = "Invalid request: " + ", ".join(fields) if fields else "Invalid request"
    return JSONResponse(status_code=422, content=error_body(422, message))


async def data_store_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    log.error("data_store.error", path=request.url.path, error=exc.__class__.__name__)
    return JSONResponse(
        status_code=503,
        content=error_body(503, "The data store is unavailable. Please try again later."),
    )


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(SQLAlchemyError, data_store_exception_handler)
