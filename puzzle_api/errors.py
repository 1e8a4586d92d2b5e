"""
Error taxonomy for the puzzle API and its FastAPI exception handlers.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code = 500
    default_message = "Internal Server Error"

    def __init__(self, message: str | None = None, *, plain_text: bool = False):
        self.message = message or self.default_message
        self.plain_text = plain_text
        super().__init__(self.message)

    def to_response(self) -> Response:
        if self.plain_text:
            return PlainTextResponse(self.message, status_code=self.status_code)
        return JSONResponse({"error": self.message}, status_code=self.status_code)


class ValidationError(ApiError):
    status_code = 400
    default_message = "Invalid request"


class AuthError(ApiError):
    status_code = 401
    default_message = "Invalid credentials"


class NotFoundError(ApiError):
    status_code = 404
    default_message = "Not Found"


class ConflictError(ApiError):
    status_code = 409
    default_message = "Conflict"


class InternalError(ApiError):
    """Unexpected store or blob failure. Details stay in the server log."""

    status_code = 500


class UnsupportedOperationError(ApiError):
    status_code = 501
    default_message = "Not Implemented"


async def _api_error_handler(request: Request, exc: ApiError) -> Response:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return exc.to_response()


async def _request_validation_handler(
    request: Request, exc: RequestValidationError
) -> Response:
    # Malformed JSON and wrongly typed fields are client errors, not 422s.
    first = exc.errors()[0] if exc.errors() else {}
    loc = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    if loc:
        message = f"{loc}: {message}"
    return ValidationError(message).to_response()


async def _http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> Response:
    return JSONResponse(
        {"error": str(exc.detail)},
        status_code=exc.status_code,
        headers=getattr(exc, "headers", None),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, _api_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
