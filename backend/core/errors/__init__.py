"""Monadic Error Handling System

Key components:
- Result[T, E]: Monadic container for success/failure
- AppError: Base error type with full context
- ErrorCode: Hierarchical error code taxonomy
- Builder functions: Ergonomic error construction
- Exception wrappers: ValidationError, NotFoundError, TransportError,
  InvalidSelectionError, PlaybackError

Usage:
    from core.errors import Ok, Err, Result, AppError, required_field

    def check_unit(raw: dict, source: str) -> Result[dict, AppError]:
        if not raw.get("id"):
            return required_field("id", source=source, origin="compiler")
        return Ok(raw)

    match check_unit(raw, "basics.yaml"):
        case Ok(module):
            print(f"Compiled: {module['id']}")
        case Err(error):
            log.warning("module_skipped", code=error.code.name)
"""
from .types import (
    # Core types
    Result,
    Ok,
    Err,
    AppError,
    ErrorCode,
    ErrorContext,
)

from .builders import (
    # Transport (E1xxx)
    transport_error,
    fetch_failed,
    malformed_body,
    # Validation (E2xxx)
    validation_error,
    required_field,
    invalid_format,
    invalid_yaml,
    constraint_violation,
    # Not found (E4xxx)
    not_found,
    # Selection (E5xxx)
    selection_error,
    invalid_selection,
    page_out_of_range,
    no_active_module,
    # Resource (E6xxx)
    resource_error,
    write_failed,
    # Playback (E7xxx)
    narration_failed,
)

from .handlers import (
    AppErrorException,
    ValidationError,
    NotFoundError,
    TransportError,
    InvalidSelectionError,
    PlaybackError,
    exception_for,
    register_error_handlers,
    result_to_response,
    raise_error,
)

__all__ = [
    # Core types
    "Result",
    "Ok",
    "Err",
    "AppError",
    "ErrorCode",
    "ErrorContext",
    # Transport (E1xxx)
    "transport_error",
    "fetch_failed",
    "malformed_body",
    # Validation (E2xxx)
    "validation_error",
    "required_field",
    "invalid_format",
    "invalid_yaml",
    "constraint_violation",
    # Not found (E4xxx)
    "not_found",
    # Selection (E5xxx)
    "selection_error",
    "invalid_selection",
    "page_out_of_range",
    "no_active_module",
    # Resource (E6xxx)
    "resource_error",
    "write_failed",
    # Playback (E7xxx)
    "narration_failed",
    # Exceptions and handlers
    "AppErrorException",
    "ValidationError",
    "NotFoundError",
    "TransportError",
    "InvalidSelectionError",
    "PlaybackError",
    "exception_for",
    "register_error_handlers",
    "result_to_response",
    "raise_error",
]
