"""Monadic Error Handling Types

Result/Either types for deterministic, composable error propagation.
Compiler units report through Ok/Err; runtime operations raise the
exception wrappers in handlers.py, which carry the same AppError.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Generic, TypeVar, Union, final
from uuid import uuid4

T = TypeVar("T")
U = TypeVar("U")
E = TypeVar("E", bound="AppError")


class ErrorCode(Enum):
    """Hierarchical error code taxonomy.

    E1xxx: Transport failures (artifact fetch)
    E2xxx: Validation errors (raw module definitions)
    E4xxx: Missing artifacts / modules
    E5xxx: Selection and state errors
    E6xxx: File resource errors (artifact write)
    E7xxx: Playback / narration errors
    E9xxx: Internal/Unknown errors
    """
    # Transport (E1xxx)
    E1000_TRANSPORT_GENERIC = 1000
    E1001_FETCH_FAILED = 1001
    E1002_TIMEOUT = 1002
    E1003_MALFORMED_BODY = 1003
    E1020_HTTP_CLIENT_ERROR = 1020
    E1021_HTTP_SERVER_ERROR = 1021

    # Validation (E2xxx)
    E2000_VALIDATION_GENERIC = 2000
    E2001_REQUIRED_FIELD_MISSING = 2001
    E2002_INVALID_FORMAT = 2002
    E2003_OUT_OF_RANGE = 2003
    E2004_INVALID_TYPE = 2004
    E2005_CONSTRAINT_VIOLATION = 2005
    E2021_INVALID_YAML = 2021

    # Not found (E4xxx)
    E4010_NOT_FOUND = 4010

    # Selection / state (E5xxx)
    E5000_SELECTION_GENERIC = 5000
    E5001_INVALID_SELECTION = 5001
    E5002_PAGE_OUT_OF_RANGE = 5002
    E5003_NO_ACTIVE_MODULE = 5003

    # Resource (E6xxx)
    E6000_RESOURCE_GENERIC = 6000
    E6001_FILE_NOT_FOUND = 6001
    E6002_FILE_READ_ERROR = 6002
    E6003_FILE_WRITE_ERROR = 6003

    # Playback (E7xxx)
    E7000_PLAYBACK_GENERIC = 7000
    E7001_NARRATION_FAILED = 7001

    # Internal (E9xxx)
    E9000_INTERNAL_GENERIC = 9000
    E9001_UNEXPECTED_ERROR = 9001

    @property
    def http_status(self) -> int:
        """Map error code to appropriate HTTP status."""
        code = self.value
        if 1000 <= code < 1100:
            return 504 if code == 1002 else 502
        if 2000 <= code < 2100:
            return 422
        if code == 4010:
            return 404
        if 5000 <= code < 5100:
            return 409
        if code == 6001:
            return 404
        return 500

    @property
    def category(self) -> str:
        """Human-readable error category."""
        code = self.value
        if 1000 <= code < 2000:
            return "transport"
        if 2000 <= code < 3000:
            return "validation"
        if 4000 <= code < 5000:
            return "not_found"
        if 5000 <= code < 6000:
            return "selection"
        if 6000 <= code < 7000:
            return "resource"
        if 7000 <= code < 8000:
            return "playback"
        return "internal"


@dataclass(frozen=True, slots=True)
class ErrorContext:
    """Immutable context for error tracing and debugging."""
    correlation_id: str = field(default_factory=lambda: str(uuid4())[:8])
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    origin: str = ""
    request_id: str | None = None


@dataclass(frozen=True, slots=True)
class AppError:
    """Base application error with full context.

    All errors carry:
    - Typed error code from taxonomy
    - Human-readable message
    - Structured metadata for debugging
    - Tracing context
    - Optional cause for error chaining
    """
    code: ErrorCode
    message: str
    context: ErrorContext = field(default_factory=ErrorContext)
    metadata: dict = field(default_factory=dict)
    cause: Exception | None = None

    def with_context(self, **kwargs) -> AppError:
        """Create new error with updated context."""
        new_ctx = ErrorContext(
            correlation_id=kwargs.get("correlation_id") or self.context.correlation_id,
            timestamp=self.context.timestamp,
            origin=kwargs.get("origin", self.context.origin),
            request_id=kwargs.get("request_id", self.context.request_id),
        )
        return AppError(
            code=self.code,
            message=self.message,
            context=new_ctx,
            metadata=self.metadata,
            cause=self.cause,
        )

    def to_dict(self) -> dict:
        """Serialize error for API responses and compile reports."""
        return {
            "error": {
                "code": self.code.name,
                "code_num": self.code.value,
                "message": self.message,
                "category": self.code.category,
                "correlation_id": self.context.correlation_id,
                "timestamp": self.context.timestamp.isoformat(),
                "metadata": self.metadata,
            }
        }

    def __str__(self) -> str:
        return f"[{self.code.name}] {self.message} (correlation_id={self.context.correlation_id})"


@final
@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Success variant of Result monad."""
    value: T

    def flat_map(self, f: Callable[[T], Result[U, AppError]]) -> Result[U, AppError]:
        """Chain operations that may fail."""
        return f(self.value)


@final
@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    """Failure variant of Result monad."""
    error: E

    def flat_map(self, f: Callable[[T], Result[U, E]]) -> Result[U, E]:
        """No-op for Err variant."""
        return self  # type: ignore


# Type alias for Result monad
Result = Union[Ok[T], Err[E]]
