"""
CORS handling and the top-level error trap.

Every response leaves through here: preflight requests are answered before
routing, and anything a handler did not turn into an ``ApiError`` becomes a
generic 500 whose detail only reaches the server log.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, Response

from puzzle_api.errors import InternalError

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}


def _with_cors(response: Response) -> Response:
    for key, value in CORS_HEADERS.items():
        response.headers[key] = value
    return response


async def cors_and_errors(request: Request, call_next) -> Response:
    if request.method == "OPTIONS":
        return _with_cors(Response(status_code=200))

    try:
        response = await call_next(request)
    except Exception:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        response = InternalError().to_response()

    logger.info("%s %s -> %s", request.method, request.url.path, response.status_code)
    return _with_cors(response)


def install_middleware(app: FastAPI) -> None:
    app.middleware("http")(cors_and_errors)
