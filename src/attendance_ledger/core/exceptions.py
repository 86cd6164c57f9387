from __future__ import annotations


class DomainError(Exception):
    """Base exception for business rule violations."""

    code = "domain_error"


class ValidationError(DomainError):
    """Raised when input data is invalid. Nothing has been written."""

    code = "validation_error"


class InvalidEnum(ValidationError):
    """Raised when a value is outside an enumerated set (status, session type)."""

    code = "invalid_enum"

    def __init__(self, field: str, value: object, allowed: list[str]):
        self.field = field
        self.value = value
        self.allowed = allowed
        super().__init__(f"{field} must be one of {', '.join(allowed)} (got {value!r})")


class ConstraintViolation(ValidationError):
    """Raised when a required field is missing or malformed."""

    code = "constraint_violation"

    def __init__(self, field: str, message: str | None = None):
        self.field = field
        super().__init__(message or f"{field} is required")


class InvalidArgument(ValidationError):
    """Raised for invalid query arguments (thresholds, date ranges, ...)."""

    code = "invalid_argument"


class NotFound(DomainError):
    """Raised when a lookup or update targets a record that does not exist."""

    code = "not_found"


class BatchError(DomainError):
    """All-or-nothing batch failure. Wraps the first per-record cause."""

    code = "batch_error"

    def __init__(self, index: int, cause: BaseException):
        self.index = index
        self.cause = cause
        super().__init__(f"record {index}: {cause}")
