"""Domain-Specific Error Builders

Ergonomic constructors for typed errors across all domains.
Each builder creates AppError with appropriate code and context.
"""
from .types import AppError, ErrorCode, ErrorContext, Err


# =============================================================================
# Transport Errors (E1xxx)
# =============================================================================

def transport_error(
    message: str,
    *,
    code: ErrorCode = ErrorCode.E1001_FETCH_FAILED,
    resource: str | None = None,
    url: str | None = None,
    status_code: int | None = None,
    origin: str = "",
    cause: Exception | None = None,
    **metadata,
) -> Err[AppError]:
    """Create artifact fetch error."""
    meta = {"resource": resource, "url": url, "status_code": status_code, **metadata}
    return Err(AppError(
        code=code,
        message=message,
        context=ErrorContext(origin=origin),
        metadata={k: v for k, v in meta.items() if v is not None},
        cause=cause,
    ))


def fetch_failed(
    resource: str,
    status_code: int | None = None,
    *,
    origin: str = "",
    cause: Exception | None = None,
    **metadata,
) -> Err[AppError]:
    msg = f"Failed to load {resource}"
    if status_code is not None:
        msg += f" ({status_code})"
    if status_code is None:
        code = ErrorCode.E1001_FETCH_FAILED
    elif status_code >= 500:
        code = ErrorCode.E1021_HTTP_SERVER_ERROR
    else:
        code = ErrorCode.E1020_HTTP_CLIENT_ERROR
    return transport_error(
        msg,
        code=code,
        resource=resource,
        status_code=status_code,
        origin=origin,
        cause=cause,
        **metadata,
    )


def malformed_body(resource: str, reason: str, origin: str = "", cause: Exception | None = None) -> Err[AppError]:
    return transport_error(
        f"Failed to load {resource}: malformed body ({reason})",
        code=ErrorCode.E1003_MALFORMED_BODY,
        resource=resource,
        origin=origin,
        cause=cause,
    )


# =============================================================================
# Validation Errors (E2xxx)
# =============================================================================

def validation_error(
    message: str,
    *,
    code: ErrorCode = ErrorCode.E2000_VALIDATION_GENERIC,
    field: str | None = None,
    value: str | None = None,
    source: str | None = None,
    origin: str = "",
    **metadata,
) -> Err[AppError]:
    """Create validation error."""
    meta = {"field": field, "value": value, "source": source, **metadata}
    return Err(AppError(
        code=code,
        message=message,
        context=ErrorContext(origin=origin),
        metadata={k: v for k, v in meta.items() if v is not None},
    ))


def required_field(field: str, source: str | None = None, origin: str = "") -> Err[AppError]:
    msg = f"Required field '{field}' is missing"
    if source:
        msg += f" in {source}"
    return validation_error(
        msg,
        code=ErrorCode.E2001_REQUIRED_FIELD_MISSING,
        field=field,
        source=source,
        origin=origin,
    )


def invalid_format(
    field: str, expected: str, got: str | None = None, source: str | None = None, origin: str = ""
) -> Err[AppError]:
    msg = f"Invalid format for '{field}': expected {expected}"
    if got:
        msg += f", got '{got}'"
    return validation_error(
        msg,
        code=ErrorCode.E2002_INVALID_FORMAT,
        field=field,
        expected=expected,
        source=source,
        origin=origin,
    )


def invalid_yaml(message: str, source: str | None = None, origin: str = "") -> Err[AppError]:
    return validation_error(
        f"Invalid YAML: {message}",
        code=ErrorCode.E2021_INVALID_YAML,
        source=source,
        origin=origin,
    )


def constraint_violation(message: str, source: str | None = None, origin: str = "", **metadata) -> Err[AppError]:
    return validation_error(
        message,
        code=ErrorCode.E2005_CONSTRAINT_VIOLATION,
        source=source,
        origin=origin,
        **metadata,
    )


# =============================================================================
# Not Found Errors (E4xxx)
# =============================================================================

def not_found(
    entity: str,
    id: str | None = None,
    origin: str = "",
) -> Err[AppError]:
    msg = f"{entity} not found"
    if id:
        msg += f": {id}"
    meta = {"entity": entity, "entity_id": id}
    return Err(AppError(
        code=ErrorCode.E4010_NOT_FOUND,
        message=msg,
        context=ErrorContext(origin=origin),
        metadata={k: v for k, v in meta.items() if v is not None},
    ))


# =============================================================================
# Selection Errors (E5xxx)
# =============================================================================

def selection_error(
    message: str,
    *,
    code: ErrorCode = ErrorCode.E5001_INVALID_SELECTION,
    origin: str = "",
    **metadata,
) -> Err[AppError]:
    """Create selection/scope error."""
    return Err(AppError(
        code=code,
        message=message,
        context=ErrorContext(origin=origin),
        metadata=metadata,
    ))


def invalid_selection(phrase_id: str, module_id: str | None, origin: str = "") -> Err[AppError]:
    return selection_error(
        f"Phrase '{phrase_id}' is not part of module '{module_id}'",
        phrase_id=phrase_id,
        module_id=module_id,
        origin=origin,
    )


def page_out_of_range(page: int, total_pages: int, origin: str = "") -> Err[AppError]:
    return selection_error(
        f"Page {page} is outside 1..{total_pages}",
        code=ErrorCode.E5002_PAGE_OUT_OF_RANGE,
        page=page,
        total_pages=total_pages,
        origin=origin,
    )


def no_active_module(operation: str, origin: str = "") -> Err[AppError]:
    return selection_error(
        f"Operation '{operation}' requires an active module",
        code=ErrorCode.E5003_NO_ACTIVE_MODULE,
        operation=operation,
        origin=origin,
    )


# =============================================================================
# Resource Errors (E6xxx)
# =============================================================================

def resource_error(
    message: str,
    *,
    code: ErrorCode = ErrorCode.E6000_RESOURCE_GENERIC,
    path: str | None = None,
    origin: str = "",
    cause: Exception | None = None,
) -> Err[AppError]:
    """Create file resource error."""
    return Err(AppError(
        code=code,
        message=message,
        context=ErrorContext(origin=origin),
        metadata={"path": path} if path else {},
        cause=cause,
    ))


def write_failed(path: str, reason: str, origin: str = "", cause: Exception | None = None) -> Err[AppError]:
    return resource_error(
        f"Failed to write artifacts to {path}: {reason}",
        code=ErrorCode.E6003_FILE_WRITE_ERROR,
        path=path,
        origin=origin,
        cause=cause,
    )


# =============================================================================
# Playback Errors (E7xxx)
# =============================================================================

def narration_failed(phrase_id: str | None, reason: str = "", origin: str = "") -> Err[AppError]:
    msg = "Narration failed"
    if phrase_id:
        msg += f" for phrase '{phrase_id}'"
    if reason:
        msg += f": {reason}"
    return Err(AppError(
        code=ErrorCode.E7001_NARRATION_FAILED,
        message=msg,
        context=ErrorContext(origin=origin),
        metadata={"phrase_id": phrase_id} if phrase_id else {},
    ))
