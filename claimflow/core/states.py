"""
Claim Status and Role Definitions

Defines the closed set of claim statuses and user roles used by the
approval workflow.
"""
from enum import Enum


class ClaimStatus(str, Enum):
    """
    Enum representing the possible statuses of a lecturer claim.

    Approval chain: Submitted -> ApprovedByCoordinator -> Paid
    Rejected is reachable from any non-terminal status.
    """
    SUBMITTED = "Submitted"
    APPROVED_BY_COORDINATOR = "ApprovedByCoordinator"
    REJECTED = "Rejected"
    PAID = "Paid"


TERMINAL_STATUSES = frozenset({ClaimStatus.PAID, ClaimStatus.REJECTED})


class Role(str, Enum):
    """User roles. Each user holds exactly one."""
    HR = "HR"
    LECTURER = "Lecturer"
    PROGRAMME_COORDINATOR = "ProgrammeCoordinator"
    ACADEMIC_MANAGER = "AcademicManager"


class ClaimAction(str, Enum):
    """Actions an actor can request against a claim."""
    OWNER_SUBMIT = "OWNER_SUBMIT"
    OWNER_EDIT = "OWNER_EDIT"
    OWNER_DELETE = "OWNER_DELETE"
    COORDINATOR_APPROVE = "COORDINATOR_APPROVE"
    COORDINATOR_REJECT = "COORDINATOR_REJECT"
    MANAGER_APPROVE = "MANAGER_APPROVE"
    MANAGER_REJECT = "MANAGER_REJECT"
