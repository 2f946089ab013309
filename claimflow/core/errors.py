"""Error taxonomy for the claim workflow."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorType(Enum):
    """Enumeration of outcome types surfaced to callers."""

    UNAUTHORIZED = "UNAUTHORIZED"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    PRECONDITION_FAILED = "PRECONDITION_FAILED"
    STORAGE_FAILURE = "STORAGE_FAILURE"


@dataclass
class FieldError:
    """A single field-scoped validation message."""

    field: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {"field": self.field, "message": self.message}


class ClaimFlowError(Exception):
    """
    Base exception for all workflow errors.

    Attributes:
        error_type: ErrorType of the failure
        message: Human-readable message shown to the actor
        details: Optional extra context for logging/serialization
    """

    error_type: ErrorType = ErrorType.NOT_FOUND
    retryable: bool = False

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        return f"{self.error_type.value}: {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert error to dictionary for logging/serialization.

        Returns:
            Dictionary representation of error
        """
        return {
            "error": self.error_type.value,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }


class Unauthorized(ClaimFlowError):
    """Actor is not authenticated, lacks the role, or does not own the claim."""

    error_type = ErrorType.UNAUTHORIZED


class InvalidTransition(ClaimFlowError):
    """The claim's current status does not allow the requested action."""

    error_type = ErrorType.INVALID_TRANSITION

    def __init__(self, message: str, current_status: Any):
        status_value = getattr(current_status, "value", current_status)
        self.current_status = current_status
        super().__init__(message, {"current_status": status_value})


class ValidationError(ClaimFlowError):
    """One or more field-scoped violations, collected before reporting."""

    error_type = ErrorType.VALIDATION_ERROR

    def __init__(self, errors: List[FieldError]):
        self.errors = list(errors)
        message = "Please fix the following errors: " + ", ".join(e.message for e in self.errors)
        super().__init__(message, {"fields": [e.to_dict() for e in self.errors]})

    @property
    def fields(self) -> List[str]:
        return [e.field for e in self.errors]

    def messages_for(self, field: str) -> List[str]:
        return [e.message for e in self.errors if e.field == field]


class NotFound(ClaimFlowError):
    """A claim or user id does not resolve."""

    error_type = ErrorType.NOT_FOUND


class ConflictError(ClaimFlowError):
    """An update was attempted against a stale version of the record."""

    error_type = ErrorType.CONFLICT
    retryable = True


class PreconditionFailed(ClaimFlowError):
    """A delete's expected owner or status no longer matches the record."""

    error_type = ErrorType.PRECONDITION_FAILED


class StorageFailure(ClaimFlowError):
    """Writing or reading a documentation file failed."""

    error_type = ErrorType.STORAGE_FAILURE
    retryable = True


class ValidationCollector:
    """Accumulates field errors so every violation is reported together."""

    def __init__(self):
        self.errors: List[FieldError] = []

    def add(self, field: str, message: str) -> None:
        self.errors.append(FieldError(field, message))

    def raise_if_any(self) -> None:
        if self.errors:
            raise ValidationError(self.errors)
