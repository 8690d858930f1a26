"""
Exam Portal - Error Handling
Consistent error response format
"""

import traceback
from typing import Callable

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from examportal.core.exceptions import ExamError, TransientStorageError

logger = structlog.get_logger(__name__)


def error_response(request: Request, error_code: str, status_code: int, detail: str) -> JSONResponse:
    """Build the public error body."""
    return JSONResponse(
        status_code=status_code,
        content={
            "error": error_code,
            "detail": detail,
            "request_id": getattr(request.state, "request_id", None),
        },
    )


async def exam_error_handler(request: Request, exc: ExamError) -> JSONResponse:
    """Map domain errors to their status code and public message."""
    log = logger.error if isinstance(exc, TransientStorageError) else logger.info
    log(
        "Request failed",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
        method=request.method,
        request_id=getattr(request.state, "request_id", None),
    )
    return error_response(request, exc.error_code, exc.status_code, exc.public_detail)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies and parameters are plain 400s."""
    logger.info(
        "Request validation failed",
        path=request.url.path,
        errors=[{"loc": list(e.get("loc", ())), "type": e.get("type")} for e in exc.errors()],
    )
    return error_response(request, "VALIDATION_ERROR", 400, "Invalid request format")


def register_exception_handlers(app: FastAPI) -> None:
    """Install handlers for the exam error taxonomy."""
    app.add_exception_handler(ExamError, exam_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Global error handler middleware.

    Catches all unhandled exceptions and returns a generic 500 without
    internal diagnostics; the traceback goes to the log.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable,
    ) -> Response:
        """
        Process request and handle any exceptions.

        Args:
            request: Incoming request
            call_next: Next middleware/handler

        Returns:
            Response or error response
        """
        try:
            return await call_next(request)

        except Exception as exc:
            logger.error(
                "Unhandled exception",
                error=str(exc),
                error_type=type(exc).__name__,
                path=request.url.path,
                method=request.method,
                request_id=getattr(request.state, "request_id", None),
                traceback=traceback.format_exc(),
            )

            return error_response(request, "INTERNAL_ERROR", 500, "An unexpected error occurred")
