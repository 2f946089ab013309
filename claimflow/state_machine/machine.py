"""
Claim State Machine

Holds the fixed transition table of the approval chain and the
authorization predicate attached to each transition.
"""
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from claimflow.core.errors import InvalidTransition, Unauthorized
from claimflow.core.models import Actor, Claim
from claimflow.core.states import ClaimAction, ClaimStatus, Role, TERMINAL_STATUSES

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Transition:
    """One row of the transition table."""
    action: ClaimAction
    from_status: Optional[ClaimStatus]  # None for creation
    to_status: Optional[ClaimStatus]  # None when the status is unchanged or the record is removed
    required_role: Role
    owner_only: bool = False
    requires_reason: bool = False
    denied_message: str = ""


class ClaimStateMachine:
    """
    State machine for the lecturer claim approval chain.

    Standard flow: Submitted -> ApprovedByCoordinator -> Paid
    Rejected is absorbing and reachable from both non-terminal statuses.
    Any (status, action) pair not listed in TRANSITIONS is refused.
    """

    TRANSITIONS: Dict[ClaimAction, Transition] = {
        ClaimAction.OWNER_SUBMIT: Transition(
            action=ClaimAction.OWNER_SUBMIT,
            from_status=None,
            to_status=ClaimStatus.SUBMITTED,
            required_role=Role.LECTURER,
        ),
        ClaimAction.OWNER_EDIT: Transition(
            action=ClaimAction.OWNER_EDIT,
            from_status=ClaimStatus.SUBMITTED,
            to_status=None,
            required_role=Role.LECTURER,
            owner_only=True,
            denied_message="Only submitted claims can be edited",
        ),
        ClaimAction.OWNER_DELETE: Transition(
            action=ClaimAction.OWNER_DELETE,
            from_status=ClaimStatus.SUBMITTED,
            to_status=None,
            required_role=Role.LECTURER,
            owner_only=True,
            denied_message="Only submitted claims can be deleted",
        ),
        ClaimAction.COORDINATOR_APPROVE: Transition(
            action=ClaimAction.COORDINATOR_APPROVE,
            from_status=ClaimStatus.SUBMITTED,
            to_status=ClaimStatus.APPROVED_BY_COORDINATOR,
            required_role=Role.PROGRAMME_COORDINATOR,
            denied_message="Only submitted claims can be approved by a programme coordinator",
        ),
        ClaimAction.COORDINATOR_REJECT: Transition(
            action=ClaimAction.COORDINATOR_REJECT,
            from_status=ClaimStatus.SUBMITTED,
            to_status=ClaimStatus.REJECTED,
            required_role=Role.PROGRAMME_COORDINATOR,
            requires_reason=True,
            denied_message="Only submitted claims can be rejected by a programme coordinator",
        ),
        ClaimAction.MANAGER_APPROVE: Transition(
            action=ClaimAction.MANAGER_APPROVE,
            from_status=ClaimStatus.APPROVED_BY_COORDINATOR,
            to_status=ClaimStatus.PAID,
            required_role=Role.ACADEMIC_MANAGER,
            denied_message="Only coordinator-approved claims can be approved by an academic manager",
        ),
        ClaimAction.MANAGER_REJECT: Transition(
            action=ClaimAction.MANAGER_REJECT,
            from_status=ClaimStatus.APPROVED_BY_COORDINATOR,
            to_status=ClaimStatus.REJECTED,
            required_role=Role.ACADEMIC_MANAGER,
            requires_reason=True,
            denied_message="Only coordinator-approved claims can be rejected by an academic manager",
        ),
    }

    # Which stage each reviewer role works on
    REVIEW_STAGES: Dict[Role, ClaimStatus] = {
        Role.PROGRAMME_COORDINATOR: ClaimStatus.SUBMITTED,
        Role.ACADEMIC_MANAGER: ClaimStatus.APPROVED_BY_COORDINATOR,
    }

    APPROVE_ACTIONS: Dict[Role, ClaimAction] = {
        Role.PROGRAMME_COORDINATOR: ClaimAction.COORDINATOR_APPROVE,
        Role.ACADEMIC_MANAGER: ClaimAction.MANAGER_APPROVE,
    }

    REJECT_ACTIONS: Dict[Role, ClaimAction] = {
        Role.PROGRAMME_COORDINATOR: ClaimAction.COORDINATOR_REJECT,
        Role.ACADEMIC_MANAGER: ClaimAction.MANAGER_REJECT,
    }

    def get_transition(self, action: ClaimAction) -> Transition:
        """Look up the table row for an action."""
        try:
            return self.TRANSITIONS[action]
        except KeyError:
            raise ValueError(f"Unknown action: {action}") from None

    def can_transition(self, status: Optional[ClaimStatus], action: ClaimAction) -> bool:
        """Check whether an action is legal from the given status."""
        return self.get_transition(action).from_status == status

    def get_valid_actions(self, status: ClaimStatus) -> List[ClaimAction]:
        """List the actions legal from a status. Terminal statuses have none."""
        if status in TERMINAL_STATUSES:
            return []
        return [t.action for t in self.TRANSITIONS.values() if t.from_status == status]

    def get_allowed_actions(self, actor: Actor, claim: Claim) -> List[ClaimAction]:
        """Actions this actor may perform on this claim right now."""
        allowed = []
        for action in self.get_valid_actions(claim.status):
            try:
                self.authorize(actor, action, claim)
            except Unauthorized:
                continue
            allowed.append(action)
        return allowed

    def authorize(self, actor: Actor, action: ClaimAction, claim: Optional[Claim] = None) -> Transition:
        """
        Check that the actor may perform the action.

        Called once without a claim (role check, before the record is
        loaded) and once with it (ownership check).

        Raises:
            Unauthorized: if the actor is unauthenticated, holds the wrong
                role, does not own the claim (Owner* actions) or owns the
                claim it is trying to review.
        """
        transition = self.get_transition(action)

        if not actor.is_authenticated:
            raise Unauthorized("Please login to continue")

        if actor.role != transition.required_role:
            logger.warning(
                f"Actor {actor.id} ({actor.role.value}) denied {action.value}: "
                f"requires {transition.required_role.value}"
            )
            raise Unauthorized(f"Access denied: {action.value} requires the {transition.required_role.value} role")

        if claim is not None:
            if transition.owner_only and claim.owner_id != actor.id:
                logger.warning(f"Actor {actor.id} denied {action.value} on claim {claim.id}: not the owner")
                raise Unauthorized("You don't have permission to modify this claim")
            if not transition.owner_only and claim.owner_id == actor.id:
                logger.warning(f"Actor {actor.id} denied {action.value} on own claim {claim.id}")
                raise Unauthorized("You cannot review your own claim")

        return transition

    def check_status(self, claim: Claim, action: ClaimAction) -> Transition:
        """
        Check the claim's current status against the action's precondition.

        Raises:
            InvalidTransition: naming the current status
        """
        transition = self.get_transition(action)
        if not self.can_transition(claim.status, action):
            raise InvalidTransition(
                f"{transition.denied_message}. Current status: {claim.status.value}",
                current_status=claim.status,
            )
        return transition

    def transition(self, claim: Claim, action: ClaimAction, actor: Actor, reason: Optional[str] = None) -> Claim:
        """
        Execute a review transition on a claim.

        Sets the new status and the stage's audit flag. Authorization
        and status checks must already have passed.

        Returns:
            The updated claim
        """
        transition = self.check_status(claim, action)
        if transition.to_status is None:
            raise ValueError(f"{action.value} does not change the claim status")

        approved = transition.to_status != ClaimStatus.REJECTED
        if transition.required_role == Role.PROGRAMME_COORDINATOR:
            claim.coordinator_approved = approved
        elif transition.required_role == Role.ACADEMIC_MANAGER:
            claim.manager_approved = approved

        previous_status = claim.status
        claim.status = transition.to_status
        if not approved:
            claim.rejection_reason = reason

        claim.add_audit_entry(actor, action, detail=reason or "")
        logger.info(f"Claim {claim.id} transitioned from {previous_status.value} to {claim.status.value}")
        return claim
