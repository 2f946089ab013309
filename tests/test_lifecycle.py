# tests/test_lifecycle.py
from decimal import Decimal

import pytest

from claimflow.core.errors import ConflictError, InvalidTransition, NotFound, StorageFailure, Unauthorized, ValidationError
from claimflow.core.models import ClaimDraft, UploadedDocument
from claimflow.core.states import ClaimAction, ClaimStatus
from claimflow.services.lifecycle import ClaimLifecycle
from claimflow.storage import InMemoryClaimRepository, SqlClaimRepository, create_sql_engine
from tests.conftest import draft, pdf

MB = 1024 * 1024


@pytest.fixture(params=["memory", "sql"])
def stored_lifecycle(request, directory, files):
    """Lifecycle over each claim repository implementation."""
    if request.param == "memory":
        claims = InMemoryClaimRepository()
    else:
        claims = SqlClaimRepository(create_sql_engine("sqlite:///:memory:"))
    return ClaimLifecycle(claims, directory, files)


def submit(lifecycle, actor, hours="10", document=None):
    return lifecycle.submit(actor, draft(hours=hours), document or pdf())


# --- CREATE ---

def test_submit_computes_amount_from_rate(lifecycle, people):
    claim = submit(lifecycle, people["lecturer"], hours="10")
    assert claim.status == ClaimStatus.SUBMITTED
    assert claim.amount == Decimal("1500.00")
    assert claim.documentation_ref
    assert claim.original_file_name == "timesheet.pdf"
    assert claim.version == 1


def test_submit_accepts_upper_bound_hours(lifecycle, people):
    claim = submit(lifecycle, people["lecturer"], hours="180.00")
    assert claim.hours_worked == Decimal("180.00")


@pytest.mark.parametrize("hours", ["180.01", "0", "-1"])
def test_submit_rejects_hours_out_of_range(lifecycle, people, hours):
    with pytest.raises(ValidationError) as exc_info:
        submit(lifecycle, people["lecturer"], hours=hours)
    assert exc_info.value.fields == ["hours_worked"]


def test_submit_rejects_exe_document(lifecycle, people):
    with pytest.raises(ValidationError) as exc_info:
        submit(lifecycle, people["lecturer"], document=pdf(name="setup.exe"))
    assert exc_info.value.fields == ["documentation"]


def test_submit_rejects_oversized_pdf(lifecycle, people):
    with pytest.raises(ValidationError) as exc_info:
        submit(lifecycle, people["lecturer"], document=pdf(size=6 * MB))
    assert "5MB" in exc_info.value.messages_for("documentation")[0]


def test_submit_accepts_4mb_png(lifecycle, people):
    claim = submit(lifecycle, people["lecturer"], document=pdf(size=4 * MB, name="SCAN.PNG"))
    assert claim.original_file_name == "SCAN.PNG"


def test_submit_collects_every_violation(lifecycle, people, claims):
    bad = ClaimDraft(title="", description="x" * 1001, hours_worked=Decimal("200"))
    with pytest.raises(ValidationError) as exc_info:
        lifecycle.submit(people["lecturer"], bad, None)
    assert set(exc_info.value.fields) == {"title", "description", "hours_worked", "documentation"}
    assert claims.list_by_owner(people["lecturer"].id) == []


def test_submit_requires_lecturer(lifecycle, people):
    for key in ("coordinator", "manager", "hr"):
        with pytest.raises(Unauthorized):
            submit(lifecycle, people[key])


def test_submit_storage_failure_writes_nothing(lifecycle, people, claims, monkeypatch):
    def broken_store(content, original_name):
        raise StorageFailure("Error uploading file. Please try again.")

    monkeypatch.setattr(lifecycle.files, "store", broken_store)
    with pytest.raises(StorageFailure):
        submit(lifecycle, people["lecturer"])
    assert claims.list_by_owner(people["lecturer"].id) == []


# --- EDIT ---

def test_edit_recomputes_amount_from_current_rate(lifecycle, people, directory):
    claim = submit(lifecycle, people["lecturer"], hours="4")

    lecturer = directory.get(people["lecturer"].id)
    lecturer.hourly_rate = Decimal("150.00")
    directory.update(lecturer)

    edited = lifecycle.edit(people["lecturer"], claim.id, ClaimDraft(hours_worked=Decimal("10")))
    assert edited.amount == Decimal("1500.00")
    assert edited.title == claim.title
    assert edited.version == claim.version + 1


def test_edit_uses_rate_changed_after_submission(lifecycle, people, directory):
    claim = submit(lifecycle, people["lecturer"], hours="10")

    lecturer = directory.get(people["lecturer"].id)
    lecturer.hourly_rate = Decimal("175.50")
    directory.update(lecturer)

    edited = lifecycle.edit(people["lecturer"], claim.id, ClaimDraft(title="Updated title"))
    assert edited.amount == Decimal("1755.00")


def test_edit_after_coordinator_approval_is_invalid(lifecycle, people, claims):
    claim = submit(lifecycle, people["lecturer"])
    lifecycle.coordinator_approve(people["coordinator"], claim.id)

    with pytest.raises(InvalidTransition) as exc_info:
        lifecycle.edit(people["lecturer"], claim.id, ClaimDraft(title="Too late"))
    assert "ApprovedByCoordinator" in exc_info.value.message
    assert claims.get(claim.id).title == claim.title


def test_edit_by_other_lecturer_is_unauthorized(lifecycle, people):
    claim = submit(lifecycle, people["lecturer"])
    with pytest.raises(Unauthorized):
        lifecycle.edit(people["other_lecturer"], claim.id, ClaimDraft(title="Mine now"))


def test_edit_replaces_document_and_releases_old_file(lifecycle, people, files):
    claim = submit(lifecycle, people["lecturer"])
    old_reference = claim.documentation_ref

    replacement = UploadedDocument(filename="corrected.docx", content=b"new content")
    edited = lifecycle.edit(people["lecturer"], claim.id, ClaimDraft(), replacement)

    assert edited.documentation_ref != old_reference
    assert edited.original_file_name == "corrected.docx"
    assert files.open(edited.documentation_ref) == b"new content"
    with pytest.raises(NotFound):
        files.open(old_reference)


def test_edit_succeeds_when_old_file_cannot_be_released(lifecycle, people, files, monkeypatch):
    claim = submit(lifecycle, people["lecturer"])

    def broken_delete(reference):
        raise StorageFailure("disk is read-only")

    monkeypatch.setattr(files, "delete", broken_delete)
    edited = lifecycle.edit(people["lecturer"], claim.id, ClaimDraft(), pdf(name="v2.pdf"))
    assert edited.original_file_name == "v2.pdf"


def test_edit_against_stale_version_conflicts_and_releases_new_file(lifecycle, people, claims, files):
    claim = submit(lifecycle, people["lecturer"])
    stored_before = set(files.root.iterdir())

    real_get = claims.get

    def stale_get(claim_id):
        stale = real_get(claim_id)
        # Another request commits between our read and our write
        claims.update(real_get(claim_id))
        return stale

    claims.get = stale_get
    with pytest.raises(ConflictError):
        lifecycle.edit(people["lecturer"], claim.id, ClaimDraft(title="Race"), pdf(name="race.pdf"))
    assert set(files.root.iterdir()) == stored_before


# --- DELETE ---

def test_delete_removes_claim_and_document(lifecycle, people, claims, files):
    claim = submit(lifecycle, people["lecturer"])
    lifecycle.delete(people["lecturer"], claim.id)

    with pytest.raises(NotFound):
        claims.get(claim.id)
    with pytest.raises(NotFound):
        files.open(claim.documentation_ref)


def test_delete_paid_claim_is_invalid(lifecycle, people):
    claim = submit(lifecycle, people["lecturer"])
    lifecycle.coordinator_approve(people["coordinator"], claim.id)
    lifecycle.manager_approve(people["manager"], claim.id)

    with pytest.raises(InvalidTransition, match="Paid"):
        lifecycle.delete(people["lecturer"], claim.id)


def test_delete_unknown_claim(lifecycle, people):
    with pytest.raises(NotFound):
        lifecycle.delete(people["lecturer"], "missing")


# --- REVIEW ---

def test_full_approval_chain(lifecycle, people):
    claim = submit(lifecycle, people["lecturer"])

    approved = lifecycle.coordinator_approve(people["coordinator"], claim.id)
    assert approved.status == ClaimStatus.APPROVED_BY_COORDINATOR
    assert approved.coordinator_approved is True

    paid = lifecycle.manager_approve(people["manager"], claim.id)
    assert paid.status == ClaimStatus.PAID
    assert paid.manager_approved is True
    actions = [entry.action for entry in paid.audit_log]
    assert actions == [ClaimAction.OWNER_SUBMIT, ClaimAction.COORDINATOR_APPROVE, ClaimAction.MANAGER_APPROVE]
    assert people["lecturer"].id not in {e.actor_id for e in paid.audit_log[1:]}


def test_manager_cannot_skip_coordinator(lifecycle, people):
    claim = submit(lifecycle, people["lecturer"])
    with pytest.raises(InvalidTransition, match="Submitted"):
        lifecycle.manager_approve(people["manager"], claim.id)


def test_failed_coordinator_approve_leaves_record_unchanged(lifecycle, people, claims):
    claim = submit(lifecycle, people["lecturer"])
    lifecycle.coordinator_approve(people["coordinator"], claim.id)
    before = claims.get(claim.id)

    for _ in range(2):
        with pytest.raises(InvalidTransition):
            lifecycle.coordinator_approve(people["coordinator"], claim.id)
    assert claims.get(claim.id) == before


def test_non_coordinator_approve_is_unauthorized_in_any_status(lifecycle, people, claims):
    claim = submit(lifecycle, people["lecturer"])
    lifecycle.coordinator_approve(people["coordinator"], claim.id)
    for key in ("lecturer", "manager", "hr"):
        with pytest.raises(Unauthorized):
            lifecycle.coordinator_approve(people[key], claim.id)
    with pytest.raises(Unauthorized):
        lifecycle.coordinator_approve(people["manager"], "missing")


def test_reject_requires_reason(lifecycle, people, claims):
    claim = submit(lifecycle, people["lecturer"])
    with pytest.raises(ValidationError) as exc_info:
        lifecycle.coordinator_reject(people["coordinator"], claim.id, "   ")
    assert exc_info.value.fields == ["rejection_reason"]
    assert claims.get(claim.id).status == ClaimStatus.SUBMITTED


def test_rejected_is_absorbing(lifecycle, people):
    claim = submit(lifecycle, people["lecturer"])
    rejected = lifecycle.coordinator_reject(people["coordinator"], claim.id, " Missing timesheet ")
    assert rejected.status == ClaimStatus.REJECTED
    assert rejected.coordinator_approved is False
    assert rejected.rejection_reason == "Missing timesheet"

    with pytest.raises(InvalidTransition):
        lifecycle.coordinator_approve(people["coordinator"], claim.id)
    with pytest.raises(InvalidTransition):
        lifecycle.manager_approve(people["manager"], claim.id)


def test_approve_dispatches_on_role(lifecycle, people):
    claim = submit(lifecycle, people["lecturer"])
    assert lifecycle.approve(people["coordinator"], claim.id).status == ClaimStatus.APPROVED_BY_COORDINATOR
    rejected = lifecycle.reject(people["manager"], claim.id, "Budget exceeded")
    assert rejected.status == ClaimStatus.REJECTED
    assert rejected.manager_approved is False

    with pytest.raises(Unauthorized):
        lifecycle.approve(people["hr"], claim.id)


def test_review_queue_per_stage(lifecycle, people):
    first = submit(lifecycle, people["lecturer"])
    second = submit(lifecycle, people["other_lecturer"])
    lifecycle.coordinator_approve(people["coordinator"], second.id)

    assert [c.id for c in lifecycle.review_queue(people["coordinator"])] == [first.id]
    assert [c.id for c in lifecycle.review_queue(people["manager"])] == [second.id]
    with pytest.raises(Unauthorized):
        lifecycle.review_queue(people["lecturer"])


# --- READ ---

def test_get_claim_visibility(lifecycle, people):
    claim = submit(lifecycle, people["lecturer"])
    for key in ("lecturer", "coordinator", "manager", "hr"):
        assert lifecycle.get_claim(people[key], claim.id).id == claim.id
    with pytest.raises(Unauthorized):
        lifecycle.get_claim(people["other_lecturer"], claim.id)


def test_open_documentation(lifecycle, people):
    claim = lifecycle.submit(people["lecturer"], draft(), UploadedDocument("proof.pdf", b"%PDF-1.4"))
    content, name = lifecycle.open_documentation(people["coordinator"], claim.id)
    assert content == b"%PDF-1.4"
    assert name == "proof.pdf"


def test_preview_amount(lifecycle, people):
    assert lifecycle.preview_amount(people["other_lecturer"], Decimal("2.5")) == Decimal("500.00")


def test_missing_rate_gives_zero_amount(lifecycle, people, directory):
    lecturer = directory.get(people["lecturer"].id)
    lecturer.hourly_rate = None
    directory.update(lecturer)
    assert submit(lifecycle, people["lecturer"]).amount == Decimal("0.00")


# --- STORED ROUND TRIP ---

@pytest.mark.parametrize("hours", ["10.005", "179.999", "7.1234"])
def test_submit_rejects_more_than_two_decimal_places(stored_lifecycle, people, hours):
    with pytest.raises(ValidationError) as exc_info:
        submit(stored_lifecycle, people["lecturer"], hours=hours)
    assert exc_info.value.fields == ["hours_worked"]
    assert "2 decimal places" in exc_info.value.messages_for("hours_worked")[0]


@pytest.mark.parametrize("hours, amount", [("10.01", "1501.50"), ("180.00", "27000.00"), ("0.01", "1.50")])
def test_stored_amount_matches_stored_hours(stored_lifecycle, people, hours, amount):
    claim = submit(stored_lifecycle, people["lecturer"], hours=hours)

    stored = stored_lifecycle.claims.get(claim.id)
    assert stored.hours_worked == Decimal(hours)
    assert stored.amount == Decimal(amount)
    assert stored.amount == stored.hours_worked * Decimal("150.00")


def test_edit_rejects_more_than_two_decimal_places(stored_lifecycle, people):
    claim = submit(stored_lifecycle, people["lecturer"], hours="4")
    with pytest.raises(ValidationError):
        stored_lifecycle.edit(people["lecturer"], claim.id, ClaimDraft(hours_worked=Decimal("4.255")))
    assert stored_lifecycle.claims.get(claim.id).amount == Decimal("600.00")

    edited = stored_lifecycle.edit(people["lecturer"], claim.id, ClaimDraft(hours_worked=Decimal("4.25")))
    assert stored_lifecycle.claims.get(edited.id).amount == Decimal("637.50")


def test_approval_chain_on_each_repository(stored_lifecycle, people):
    claim = submit(stored_lifecycle, people["lecturer"])
    stored_lifecycle.coordinator_approve(people["coordinator"], claim.id)
    paid = stored_lifecycle.manager_approve(people["manager"], claim.id)

    stored = stored_lifecycle.claims.get(paid.id)
    assert stored.status == ClaimStatus.PAID
    assert stored.coordinator_approved is True
    assert stored.manager_approved is True
    assert stored.version == 3
    assert [e.action for e in stored.audit_log][-1] == ClaimAction.MANAGER_APPROVE
