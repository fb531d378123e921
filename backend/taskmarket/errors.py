"""
Domain errors raised by services and rendered by the API layer.

Every expected failure carries a discriminating ``code`` and the HTTP status
it maps to. Handlers registered in ``install_error_handlers`` turn them into
``{"success": false, "code": ..., "message": ...}`` bodies.
"""
from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import InterfaceError, OperationalError

logger = logging.getLogger(__name__)


class MarketError(Exception):
    code = "error"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationFailed(MarketError):
    code = "validation_error"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class NotFound(MarketError):
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class Forbidden(MarketError):
    code = "forbidden"
    status_code = status.HTTP_403_FORBIDDEN


class Unauthorized(MarketError):
    code = "unauthorized"
    status_code = status.HTTP_401_UNAUTHORIZED


class Conflict(MarketError):
    code = "conflict"
    status_code = status.HTTP_409_CONFLICT


class UpstreamFailure(MarketError):
    code = "upstream_failure"
    status_code = status.HTTP_502_BAD_GATEWAY


class StorageUnavailable(MarketError):
    code = "storage_unavailable"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


def _error_body(code: str, message: str) -> dict:
    return {"success": False, "code": code, "message": message}


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(MarketError)
    async def market_error_handler(request: Request, exc: MarketError):
        if exc.status_code >= 500:
            logger.warning(f"[api] {request.method} {request.url.path} -> {exc.code}: {exc.message}")
        headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthorized) else None
        return JSONResponse(_error_body(exc.code, exc.message), status_code=exc.status_code, headers=headers)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        first = exc.errors()[0] if exc.errors() else {}
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg', 'invalid input')}" if location else first.get("msg", "invalid input")
        return JSONResponse(
            _error_body(ValidationFailed.code, message),
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        )

    @app.exception_handler(OperationalError)
    @app.exception_handler(InterfaceError)
    async def storage_error_handler(request: Request, exc: Exception):
        logger.error(f"[api] storage unavailable on {request.method} {request.url.path}: {exc}")
        return JSONResponse(
            _error_body(StorageUnavailable.code, "Storage unavailable"),
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url)
        return JSONResponse({"success": False, "message": "Internal Server Error"}, status_code=500)
