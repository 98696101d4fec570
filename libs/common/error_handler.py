"""Global exception handlers producing consistent ``{"message": ...}`` bodies."""

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from libs.common.config import get_settings
from libs.common.errors import AppError
from libs.common.logging import get_logger

logger = get_logger(__name__)


def _error_body(message: str, exc: Exception | None = None) -> dict:
    body = {"message": message}
    if exc is not None and get_settings().exposes_error_details:
        body["error"] = str(exc)
    return body


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        cause = exc.__cause__ if isinstance(exc.__cause__, Exception) else None
        return JSONResponse(
            status_code=exc.status_code, content=_error_body(exc.message, cause)
        )
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": message},
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = [
        {"loc": list(err.get("loc", [])), "msg": err.get("msg")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400, content={"message": "Invalid request", "errors": errors}
    )


async def database_exception_handler(
    request: Request, exc: SQLAlchemyError
) -> JSONResponse:
    logger.exception("Datastore failure on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500, content=_error_body("Internal server error", exc)
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500, content=_error_body("Internal server error", exc)
    )


def add_exception_handlers(app: FastAPI) -> None:
    """Register the global exception handlers on ``app``."""
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(SQLAlchemyError, database_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
