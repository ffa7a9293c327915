"""Error taxonomy for devgate.

Request-scoped failures derive from :class:`ApiError` and are rendered by a
single FastAPI exception handler as ``{"kind": ..., "message": ..., ...}``.
:class:`ConfigError` is startup-only and never reaches a client.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Invalid or ambiguous configuration; the gateway must not start."""


class ApiError(Exception):
    """Base class for errors that translate into an API response."""

    kind = "api_error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, **extra: Any) -> None:
        super().__init__(message)
        self.message = message
        self.extra = extra

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "message": self.message, **self.extra}


class Unauthorized(ApiError):
    kind = "unauthorized"
    status_code = status.HTTP_401_UNAUTHORIZED


class BadRequest(ApiError):
    kind = "bad_request"
    status_code = status.HTTP_400_BAD_REQUEST


class NotFound(ApiError):
    kind = "not_found"
    status_code = status.HTTP_404_NOT_FOUND

    @classmethod
    def device(cls, name: str) -> NotFound:
        return cls(f"Unknown device: {name}", device=name)


class UpstreamFailure(ApiError):
    """A device driver or the discovery service failed; the cause is kept."""

    kind = "upstream_failure"
    status_code = status.HTTP_502_BAD_GATEWAY

    def __init__(self, message: str, cause: BaseException | None = None, **extra: Any) -> None:
        if cause is not None:
            extra.setdefault("cause", str(cause) or type(cause).__name__)
        super().__init__(message, **extra)
        self.__cause__ = cause


class PersistenceFailure(ApiError):
    kind = "persistence_failure"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


# ── FastAPI wiring ────────────────────────────────────────────────

async def _api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthorized) else None
    return JSONResponse(exc.to_dict(), status_code=exc.status_code, headers=headers)


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    err = BadRequest("Invalid request", errors=jsonable_encoder(exc.errors()))
    return JSONResponse(err.to_dict(), status_code=err.status_code)


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        {"kind": "internal_error", "message": "Internal server error"},
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, _api_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
