"""Exception Wrappers and FastAPI Exception Handlers

Runtime operations (session store, playback, artifact API) raise the
exception wrappers below. Each carries an AppError, so the same
structured payload is logged, returned over HTTP, or recorded in a
compile report.
"""
from __future__ import annotations

from typing import ClassVar, NoReturn

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from core.logging import get_logger

from .types import AppError, ErrorCode, ErrorContext

log = get_logger("errors.handlers")


class AppErrorException(Exception):
    """Exception wrapper for AppError.

    Use this when you need to raise an AppError in code that
    doesn't use the Result monad.
    """

    default_code: ClassVar[ErrorCode] = ErrorCode.E9000_INTERNAL_GENERIC

    def __init__(self, error: AppError | str):
        if isinstance(error, str):
            error = AppError(code=self.default_code, message=error)
        self.error = error
        super().__init__(str(error))

    @property
    def code(self) -> ErrorCode:
        return self.error.code

    @property
    def message(self) -> str:
        return self.error.message


class ValidationError(AppErrorException):
    """Malformed or incomplete raw module definition."""
    default_code = ErrorCode.E2000_VALIDATION_GENERIC


class NotFoundError(AppErrorException):
    """Requested module or artifact does not exist."""
    default_code = ErrorCode.E4010_NOT_FOUND


class TransportError(AppErrorException):
    """Artifact fetch or write failure."""
    default_code = ErrorCode.E1001_FETCH_FAILED


class InvalidSelectionError(AppErrorException):
    """Selection, page or cross-reference target outside the active scope."""
    default_code = ErrorCode.E5001_INVALID_SELECTION


class PlaybackError(AppErrorException):
    """Narration provider reported a failure mid-utterance."""
    default_code = ErrorCode.E7001_NARRATION_FAILED


_EXCEPTIONS_BY_CATEGORY: dict[str, type[AppErrorException]] = {
    "transport": TransportError,
    "validation": ValidationError,
    "not_found": NotFoundError,
    "selection": InvalidSelectionError,
    "resource": TransportError,
    "playback": PlaybackError,
}


def exception_for(error: AppError) -> AppErrorException:
    """Wrap an AppError in the exception class matching its category."""
    exc_type = _EXCEPTIONS_BY_CATEGORY.get(error.code.category, AppErrorException)
    return exc_type(error)


def raise_error(error: AppError) -> NoReturn:
    """Raise AppError as its category exception.

    Usage:
        if module_id not in catalog:
            raise_error(not_found("Module", module_id).error)
    """
    raise exception_for(error) from error.cause


def result_to_response(error: AppError) -> JSONResponse:
    """Convert AppError to FastAPI JSONResponse."""
    status_code = error.code.http_status

    log_method = log.warning if status_code < 500 else log.error
    log_method(
        "error_response",
        error_code=error.code.name,
        error_code_num=error.code.value,
        message=error.message,
        category=error.code.category,
        correlation_id=error.context.correlation_id,
        origin=error.context.origin,
        metadata=error.metadata,
    )

    return JSONResponse(
        status_code=status_code,
        content=error.to_dict(),
    )


async def app_error_handler(request: Request, exc: AppErrorException) -> JSONResponse:
    """Handle AppErrorException raised in route handlers."""
    error = exc.error.with_context(
        request_id=request.headers.get("X-Request-ID"),
        correlation_id=request.headers.get("X-Correlation-ID"),
    )
    return result_to_response(error)


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Handle standard HTTP exceptions with structured error response."""
    status_code = exc.status_code
    code_map = {
        404: ErrorCode.E4010_NOT_FOUND,
        405: ErrorCode.E5000_SELECTION_GENERIC,
        422: ErrorCode.E2000_VALIDATION_GENERIC,
    }

    code = code_map.get(status_code)
    if code is None:
        code = ErrorCode.E9001_UNEXPECTED_ERROR if status_code >= 500 else ErrorCode.E9000_INTERNAL_GENERIC

    error = AppError(
        code=code,
        message=str(exc.detail) if exc.detail else f"HTTP {status_code}",
        context=ErrorContext(
            correlation_id=request.headers.get("X-Correlation-ID", ""),
            origin="http",
        ),
    )

    return result_to_response(error)


async def unhandled_exception_handler(
    request: Request, exc: Exception
) -> JSONResponse:
    """Catch-all handler for unhandled exceptions.

    Converts to internal error and logs full traceback.
    """
    error = AppError(
        code=ErrorCode.E9001_UNEXPECTED_ERROR,
        message="An unexpected error occurred",
        context=ErrorContext(
            correlation_id=request.headers.get("X-Correlation-ID", ""),
            origin="unhandled",
        ),
        cause=exc,
    )

    log.exception(
        "unhandled_exception",
        error_type=type(exc).__name__,
        error_message=str(exc),
        correlation_id=error.context.correlation_id,
    )

    return result_to_response(error)


def register_error_handlers(app: FastAPI) -> None:
    """Register all error handlers on FastAPI app."""
    app.add_exception_handler(AppErrorException, app_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
