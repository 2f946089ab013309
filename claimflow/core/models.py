"""
Claim and User Pydantic Models

Defines the records persisted by the repositories and the request
payloads accepted by the API.
"""
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from .states import ClaimAction, ClaimStatus, Role


class AuditLogEntry(BaseModel):
    """Entry in the claim audit trail."""
    actor_id: str = Field(..., description="User that performed the action")
    actor_role: Role = Field(..., description="Role held by the actor at the time")
    action: ClaimAction = Field(..., description="The action performed")
    detail: str = Field(default="", description="Free-text detail such as a rejection reason")
    timestamp: datetime = Field(default_factory=datetime.now)


class Claim(BaseModel):
    """
    Lecturer Claim Model

    Represents a claim for hours worked moving through the approval chain.
    `status` is the authoritative current state; the approval flags are history.
    """
    id: Optional[str] = Field(default=None, description="Assigned by the repository on create")
    owner_id: str = Field(..., description="Submitting lecturer")
    title: str
    description: str
    hours_worked: Decimal
    amount: Decimal = Field(default=Decimal("0.00"), description="hours_worked x owner hourly rate")
    status: ClaimStatus = ClaimStatus.SUBMITTED
    submission_date: datetime = Field(default_factory=datetime.now)
    documentation_ref: Optional[str] = None
    original_file_name: Optional[str] = None
    coordinator_approved: Optional[bool] = None
    manager_approved: Optional[bool] = None
    rejection_reason: Optional[str] = None
    version: int = Field(default=0, description="Incremented by every successful update")
    audit_log: List[AuditLogEntry] = Field(default_factory=list)

    def add_audit_entry(self, actor: "Actor", action: ClaimAction, detail: str = "") -> None:
        """Add an entry to the audit trail."""
        self.audit_log.append(
            AuditLogEntry(actor_id=actor.id, actor_role=actor.role, action=action, detail=detail)
        )


class User(BaseModel):
    """A portal account. Lecturers need an hourly rate to earn a non-zero amount."""
    id: Optional[str] = None
    name: str
    surname: str
    email: str
    password_hash: str = ""
    hourly_rate: Optional[Decimal] = None
    role: Role
    is_active: bool = True
    created_date: datetime = Field(default_factory=datetime.now)

    @property
    def full_name(self) -> str:
        return f"{self.name} {self.surname}".strip()


class UserPublic(BaseModel):
    """User as returned by the API (no credential)."""
    id: str
    name: str
    surname: str
    email: str
    hourly_rate: Optional[Decimal] = None
    role: Role
    is_active: bool
    created_date: datetime

    @classmethod
    def from_user(cls, user: User) -> "UserPublic":
        return cls(**user.model_dump(exclude={"password_hash"}))


class UserCreate(BaseModel):
    """Request model for HR creating an account."""
    name: str = Field(..., min_length=1)
    surname: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=1)
    hourly_rate: Optional[Decimal] = Field(default=None, ge=0)
    role: Role
    is_active: bool = True


class UserUpdate(BaseModel):
    """Request model for HR editing an account. Omitted fields are kept."""
    name: Optional[str] = None
    surname: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    hourly_rate: Optional[Decimal] = Field(default=None, ge=0)
    role: Optional[Role] = None
    is_active: Optional[bool] = None


@dataclass(frozen=True)
class Actor:
    """The caller of a lifecycle operation, resolved once per request."""
    id: str
    role: Optional[Role]
    is_authenticated: bool = True

    @classmethod
    def anonymous(cls) -> "Actor":
        return cls(id="", role=None, is_authenticated=False)


@dataclass(frozen=True)
class UploadedDocument:
    """A supporting document received with a create or edit request."""
    filename: str
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def extension(self) -> str:
        if "." not in self.filename:
            return ""
        return self.filename.rsplit(".", 1)[1].lower()


@dataclass(frozen=True)
class ClaimDraft:
    """Lecturer-supplied claim fields. The amount is never part of it."""
    title: Optional[str] = None
    description: Optional[str] = None
    hours_worked: Optional[Decimal] = None
