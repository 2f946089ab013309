# Core module - states, models and errors
from .states import ClaimStatus, Role, ClaimAction, TERMINAL_STATUSES
from .models import (
    Actor,
    AuditLogEntry,
    Claim,
    ClaimDraft,
    UploadedDocument,
    User,
    UserCreate,
    UserPublic,
    UserUpdate,
)
from .errors import (
    ClaimFlowError,
    ConflictError,
    InvalidTransition,
    NotFound,
    PreconditionFailed,
    StorageFailure,
    Unauthorized,
    ValidationError,
)

__all__ = [
    "ClaimStatus",
    "Role",
    "ClaimAction",
    "TERMINAL_STATUSES",
    "Actor",
    "AuditLogEntry",
    "Claim",
    "ClaimDraft",
    "UploadedDocument",
    "User",
    "UserCreate",
    "UserPublic",
    "UserUpdate",
    "ClaimFlowError",
    "ConflictError",
    "InvalidTransition",
    "NotFound",
    "PreconditionFailed",
    "StorageFailure",
    "Unauthorized",
    "ValidationError",
]
