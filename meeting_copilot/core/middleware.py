"""
HTTP middleware and exception handlers
"""

import time
import uuid
from typing import Callable

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.status import HTTP_400_BAD_REQUEST, HTTP_500_INTERNAL_SERVER_ERROR

from meeting_copilot.core.exceptions import CopilotException
from meeting_copilot.core.logging import api_logger


def error_response(status_code: int, message: str, headers: dict = None) -> JSONResponse:
    """Shape every error the same way: ``{"success": false, "error": ...}``."""
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message},
        headers=headers,
    )


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log each request with an id and timing."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = str(uuid.uuid4())[:8]
        request.state.request_id = request_id

        start_time = time.time()
        api_logger.info(f"[{request_id}] {request.method} {request.url.path} started")

        try:
            response = await call_next(request)
        except Exception as e:
            process_time = time.time() - start_time
            api_logger.error(
                f"[{request_id}] {request.method} {request.url.path} failed "
                f"after {process_time:.4f}s: {e}"
            )
            raise

        process_time = time.time() - start_time
        api_logger.info(
            f"[{request_id}] {request.method} {request.url.path} -> "
            f"{response.status_code} in {process_time:.4f}s"
        )

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = str(round(process_time, 4))
        return response


class ExceptionHandlingMiddleware(BaseHTTPMiddleware):
    """Turn anything that escaped the route handlers into a generic 500."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            request_id = getattr(request.state, "request_id", "unknown")
            api_logger.opt(exception=exc).error(
                f"[{request_id}] Unhandled {type(exc).__name__} on {request.url.path}: {exc}"
            )
            return error_response(HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


async def copilot_exception_handler(request: Request, exc: CopilotException) -> JSONResponse:
    if exc.status_code == HTTP_500_INTERNAL_SERVER_ERROR:
        # Internal detail stays in the logs
        api_logger.error(f"{exc.code} on {request.url.path}: {exc.message}")
        return error_response(exc.status_code, "Internal server error")
    if exc.status_code > HTTP_500_INTERNAL_SERVER_ERROR:
        api_logger.error(f"{exc.code} on {request.url.path}: {exc.message}")
        return error_response(exc.status_code, exc.message)
    api_logger.warning(f"{exc.code} on {request.url.path}: {exc.message}")
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return error_response(exc.status_code, exc.message, headers)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    api_logger.warning(f"HTTP {exc.status_code} on {request.url.path}: {exc.detail}")
    return error_response(exc.status_code, str(exc.detail), getattr(exc, "headers", None))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", []) if part != "body")
        message = f"{location}: {first.get('msg')}" if location else first.get("msg", "Invalid request")
    else:
        message = "Invalid request"
    api_logger.warning(f"Validation failed on {request.url.path}: {message}")
    return error_response(HTTP_400_BAD_REQUEST, message)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(CopilotException, copilot_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
