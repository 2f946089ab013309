"""
Claim Lifecycle Service

Validates, authorizes and applies every mutation of a claim before
handing the finished record to the repository.
"""
import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional, Tuple

from claimflow.core.errors import NotFound, StorageFailure, Unauthorized, ValidationCollector
from claimflow.core.models import Actor, Claim, ClaimDraft, UploadedDocument
from claimflow.core.states import ClaimAction, ClaimStatus, Role
from claimflow.services.validation import validate_claim_fields, validate_document, validate_rejection_reason
from claimflow.state_machine.machine import ClaimStateMachine
from claimflow.storage.base import ClaimRepository, UserDirectory
from claimflow.storage.files import FileStore

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")

# Roles that may open any claim's detail page
OVERSIGHT_ROLES = {Role.HR, Role.PROGRAMME_COORDINATOR, Role.ACADEMIC_MANAGER}


class ClaimLifecycle:
    """
    Owns the legality of every claim mutation.

    Each public method takes the acting user explicitly, performs the
    role check before touching storage, and either persists a complete
    record or raises without writing anything.
    """

    def __init__(
        self,
        claims: ClaimRepository,
        users: UserDirectory,
        files: FileStore,
        state_machine: Optional[ClaimStateMachine] = None,
    ):
        self.claims = claims
        self.users = users
        self.files = files
        self.state_machine = state_machine or ClaimStateMachine()

    # --- DERIVED AMOUNT ---

    def compute_amount(self, owner_id: str, hours_worked: Decimal) -> Decimal:
        """hours_worked x the owner's current hourly rate (a missing rate counts as 0)."""
        owner = self.users.get(owner_id)
        rate = owner.hourly_rate or Decimal("0")
        return (hours_worked * rate).quantize(CENT, rounding=ROUND_HALF_UP)

    def preview_amount(self, actor: Actor, hours_worked: Decimal) -> Decimal:
        """Amount a lecturer would be paid for the given hours at their current rate."""
        self.state_machine.authorize(actor, ClaimAction.OWNER_SUBMIT)
        return self.compute_amount(actor.id, hours_worked)

    # --- LECTURER OPERATIONS ---

    def submit(self, actor: Actor, draft: ClaimDraft, document: Optional[UploadedDocument]) -> Claim:
        """
        Create a new claim in Submitted status.

        Raises:
            Unauthorized: actor is not a lecturer
            ValidationError: every field and documentation violation at once
            StorageFailure: the document could not be stored
        """
        self.state_machine.authorize(actor, ClaimAction.OWNER_SUBMIT)

        collector = ValidationCollector()
        validate_claim_fields(collector, draft.title, draft.description, draft.hours_worked)
        validate_document(collector, document, required=True)
        collector.raise_if_any()

        amount = self.compute_amount(actor.id, draft.hours_worked)
        reference = self.files.store(document.content, document.filename)

        claim = Claim(
            owner_id=actor.id,
            title=draft.title.strip(),
            description=draft.description.strip(),
            hours_worked=draft.hours_worked,
            amount=amount,
            status=ClaimStatus.SUBMITTED,
            documentation_ref=reference,
            original_file_name=document.filename,
        )
        claim.add_audit_entry(actor, ClaimAction.OWNER_SUBMIT)

        try:
            claim_id = self.claims.create(claim)
        except Exception:
            self._release(reference)
            raise

        logger.info(f"Claim {claim_id} submitted by {actor.id}: {draft.hours_worked}h = {amount}")
        return self.claims.get(claim_id)

    def edit(
        self,
        actor: Actor,
        claim_id: str,
        draft: ClaimDraft,
        document: Optional[UploadedDocument] = None,
    ) -> Claim:
        """
        Change a Submitted claim's details. Omitted draft fields are kept.

        The amount is recomputed from the owner's current rate. A new
        document replaces the old one, which is released after the update
        commits.
        """
        self.state_machine.authorize(actor, ClaimAction.OWNER_EDIT)
        claim = self.claims.get(claim_id)
        self.state_machine.authorize(actor, ClaimAction.OWNER_EDIT, claim)
        self.state_machine.check_status(claim, ClaimAction.OWNER_EDIT)

        title = draft.title if draft.title is not None else claim.title
        description = draft.description if draft.description is not None else claim.description
        hours_worked = draft.hours_worked if draft.hours_worked is not None else claim.hours_worked

        collector = ValidationCollector()
        validate_claim_fields(collector, title, description, hours_worked)
        validate_document(collector, document, required=False)
        collector.raise_if_any()

        claim.title = title.strip()
        claim.description = description.strip()
        claim.hours_worked = hours_worked
        claim.amount = self.compute_amount(claim.owner_id, hours_worked)

        old_reference = claim.documentation_ref
        new_reference = None
        if document is not None and document.size > 0:
            new_reference = self.files.store(document.content, document.filename)
            claim.documentation_ref = new_reference
            claim.original_file_name = document.filename

        claim.add_audit_entry(actor, ClaimAction.OWNER_EDIT)

        try:
            updated = self.claims.update(claim)
        except Exception:
            if new_reference:
                self._release(new_reference)
            raise

        if new_reference and old_reference:
            self._release(old_reference)

        logger.info(f"Claim {claim_id} updated by {actor.id}")
        return updated

    def delete(self, actor: Actor, claim_id: str) -> None:
        """Remove a Submitted claim owned by the actor."""
        self.state_machine.authorize(actor, ClaimAction.OWNER_DELETE)
        claim = self.claims.get(claim_id)
        self.state_machine.authorize(actor, ClaimAction.OWNER_DELETE, claim)
        self.state_machine.check_status(claim, ClaimAction.OWNER_DELETE)

        self.claims.delete(claim_id, expected_owner_id=actor.id, expected_status=ClaimStatus.SUBMITTED)
        if claim.documentation_ref:
            self._release(claim.documentation_ref)

        logger.info(f"Claim {claim_id} deleted by {actor.id}")

    def list_own(self, actor: Actor) -> List[Claim]:
        """The actor's claims, newest first."""
        self.state_machine.authorize(actor, ClaimAction.OWNER_SUBMIT)
        return self.claims.list_by_owner(actor.id)

    # --- REVIEW OPERATIONS ---

    def coordinator_approve(self, actor: Actor, claim_id: str) -> Claim:
        return self._review(actor, claim_id, ClaimAction.COORDINATOR_APPROVE)

    def coordinator_reject(self, actor: Actor, claim_id: str, reason: Optional[str]) -> Claim:
        return self._review(actor, claim_id, ClaimAction.COORDINATOR_REJECT, reason)

    def manager_approve(self, actor: Actor, claim_id: str) -> Claim:
        return self._review(actor, claim_id, ClaimAction.MANAGER_APPROVE)

    def manager_reject(self, actor: Actor, claim_id: str, reason: Optional[str]) -> Claim:
        return self._review(actor, claim_id, ClaimAction.MANAGER_REJECT, reason)

    def approve(self, actor: Actor, claim_id: str) -> Claim:
        """Approve at the stage belonging to the actor's role."""
        action = self.state_machine.APPROVE_ACTIONS.get(actor.role) if actor.is_authenticated else None
        if action is None:
            # Coordinator approval is the entry stage; its role check produces the denial
            action = ClaimAction.COORDINATOR_APPROVE
        return self._review(actor, claim_id, action)

    def reject(self, actor: Actor, claim_id: str, reason: Optional[str]) -> Claim:
        """Reject at the stage belonging to the actor's role."""
        action = self.state_machine.REJECT_ACTIONS.get(actor.role) if actor.is_authenticated else None
        if action is None:
            action = ClaimAction.COORDINATOR_REJECT
        return self._review(actor, claim_id, action, reason)

    def review_queue(self, actor: Actor) -> List[Claim]:
        """Claims waiting at the actor's stage, oldest first."""
        if not actor.is_authenticated:
            raise Unauthorized("Please login to continue")
        stage = self.state_machine.REVIEW_STAGES.get(actor.role)
        if stage is None:
            raise Unauthorized("Access denied: only reviewers have a review queue")
        return [c for c in self.claims.list_by_status(stage) if c.owner_id != actor.id]

    def _review(self, actor: Actor, claim_id: str, action: ClaimAction, reason: Optional[str] = None) -> Claim:
        transition = self.state_machine.authorize(actor, action)
        claim = self.claims.get(claim_id)
        self.state_machine.authorize(actor, action, claim)
        self.state_machine.check_status(claim, action)

        if transition.requires_reason:
            collector = ValidationCollector()
            validate_rejection_reason(collector, reason)
            collector.raise_if_any()
            reason = reason.strip()

        self.state_machine.transition(claim, action, actor, reason)
        return self.claims.update(claim)

    # --- READ ACCESS ---

    def get_claim(self, actor: Actor, claim_id: str) -> Claim:
        """Owners see their own claims; reviewers and HR see any claim."""
        if not actor.is_authenticated:
            raise Unauthorized("Please login to continue")
        claim = self.claims.get(claim_id)
        if claim.owner_id != actor.id and actor.role not in OVERSIGHT_ROLES:
            raise Unauthorized("You don't have permission to view this claim")
        return claim

    def allowed_actions(self, actor: Actor, claim: Claim) -> List[ClaimAction]:
        return self.state_machine.get_allowed_actions(actor, claim)

    def open_documentation(self, actor: Actor, claim_id: str) -> Tuple[bytes, str]:
        """Content and display name of a claim's supporting document."""
        claim = self.get_claim(actor, claim_id)
        if not claim.documentation_ref:
            raise NotFound(f"Claim {claim_id} has no documentation")
        content = self.files.open(claim.documentation_ref)
        return content, claim.original_file_name or claim.documentation_ref

    def _release(self, reference: str) -> None:
        """Best-effort removal of a file reference that is no longer used."""
        try:
            self.files.delete(reference)
        except (StorageFailure, NotFound) as e:
            logger.warning(f"Could not delete old file {reference}: {e}")
