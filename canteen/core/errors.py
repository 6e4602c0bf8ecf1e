"""Error taxonomy shared by the services and the HTTP layer.

Services raise these; ``register_exception_handlers`` renders every one of
them as ``{"error": <message>, "code": <code>}`` with the matching status.
"""
from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class CanteenError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_code = "INTERNAL_ERROR"

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code

    def to_dict(self) -> dict[str, str]:
        return {"error": self.message, "code": self.code}


class InvalidInput(CanteenError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "INVALID_INPUT"


class NotFound(CanteenError):
    status_code = status.HTTP_404_NOT_FOUND
    default_code = "NOT_FOUND"


class ReferenceNotFound(NotFound):
    default_code = "REFERENCE_NOT_FOUND"


class NotAuthenticated(CanteenError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_code = "NOT_AUTHENTICATED"


class Forbidden(CanteenError):
    status_code = status.HTTP_403_FORBIDDEN
    default_code = "FORBIDDEN"


def _canteen_error_handler(_request: Request, exc: CanteenError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def _validation_error_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        location = ".".join(str(part) for part in errors[0].get("loc", ()) if part != "body")
        detail = errors[0].get("msg", "")
        message = f"Invalid request: {location} {detail}".strip()
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": message, "code": "INVALID_REQUEST"},
    )


def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error", "code": "INTERNAL_ERROR"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(CanteenError, _canteen_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
