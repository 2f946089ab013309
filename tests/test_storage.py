# tests/test_storage.py
from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from claimflow.core.errors import ConflictError, NotFound, PreconditionFailed
from claimflow.core.models import Actor, Claim, User
from claimflow.core.states import ClaimAction, ClaimStatus, Role
from claimflow.storage import (
    InMemoryClaimRepository,
    InMemoryUserDirectory,
    SqlClaimRepository,
    SqlUserDirectory,
    create_sql_engine,
)

SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"
BASE_DATE = datetime(2025, 3, 1, 9, 0)


@pytest.fixture(params=["memory", "sql"])
def repo(request):
    if request.param == "memory":
        return InMemoryClaimRepository()
    return SqlClaimRepository(create_sql_engine(SQLALCHEMY_DATABASE_URL))


@pytest.fixture(params=["memory", "sql"])
def users(request):
    if request.param == "memory":
        return InMemoryUserDirectory()
    return SqlUserDirectory(create_sql_engine(SQLALCHEMY_DATABASE_URL))


def make_claim(owner_id="lec-1", days=0, status=ClaimStatus.SUBMITTED) -> Claim:
    return Claim(
        owner_id=owner_id,
        title=f"Claim day {days}",
        description="Marking",
        hours_worked=Decimal("12.50"),
        amount=Decimal("1875.00"),
        status=status,
        submission_date=BASE_DATE + timedelta(days=days),
        documentation_ref="ref.pdf",
        original_file_name="marking.pdf",
    )


def test_create_and_get(repo):
    claim = make_claim()
    claim.add_audit_entry(Actor(id="lec-1", role=Role.LECTURER), ClaimAction.OWNER_SUBMIT)
    claim_id = repo.create(claim)

    stored = repo.get(claim_id)
    assert stored.id == claim_id
    assert stored.version == 1
    assert stored.hours_worked == Decimal("12.50")
    assert stored.amount == Decimal("1875.00")
    assert stored.status == ClaimStatus.SUBMITTED
    assert stored.coordinator_approved is None
    assert stored.audit_log[0].action == ClaimAction.OWNER_SUBMIT


def test_get_missing(repo):
    with pytest.raises(NotFound):
        repo.get("missing")


def test_list_by_owner_newest_first(repo):
    ids = [repo.create(make_claim(days=d)) for d in (1, 3, 2)]
    repo.create(make_claim(owner_id="lec-2"))
    listed = [c.id for c in repo.list_by_owner("lec-1")]
    assert listed == [ids[1], ids[2], ids[0]]


def test_list_by_status_oldest_first(repo):
    late = repo.create(make_claim(days=5))
    early = repo.create(make_claim(days=1))
    repo.create(make_claim(days=2, status=ClaimStatus.PAID))
    assert [c.id for c in repo.list_by_status(ClaimStatus.SUBMITTED)] == [early, late]


def test_update_increments_version(repo):
    claim = repo.get(repo.create(make_claim()))
    claim.status = ClaimStatus.APPROVED_BY_COORDINATOR
    claim.coordinator_approved = True

    updated = repo.update(claim)
    assert updated.version == 2
    stored = repo.get(claim.id)
    assert stored.status == ClaimStatus.APPROVED_BY_COORDINATOR
    assert stored.coordinator_approved is True
    assert stored.version == 2


def test_stale_update_conflicts_without_writing(repo):
    claim_id = repo.create(make_claim())
    first = repo.get(claim_id)
    second = repo.get(claim_id)

    first.status = ClaimStatus.APPROVED_BY_COORDINATOR
    repo.update(first)

    second.status = ClaimStatus.REJECTED
    second.rejection_reason = "Duplicate"
    with pytest.raises(ConflictError):
        repo.update(second)

    stored = repo.get(claim_id)
    assert stored.status == ClaimStatus.APPROVED_BY_COORDINATOR
    assert stored.rejection_reason is None


def test_update_missing(repo):
    claim = make_claim()
    claim.id = "missing"
    claim.version = 1
    with pytest.raises(NotFound):
        repo.update(claim)


def test_delete_checks_preconditions(repo):
    claim_id = repo.create(make_claim())
    with pytest.raises(PreconditionFailed):
        repo.delete(claim_id, expected_owner_id="lec-2", expected_status=ClaimStatus.SUBMITTED)
    with pytest.raises(PreconditionFailed):
        repo.delete(claim_id, expected_owner_id="lec-1", expected_status=ClaimStatus.PAID)

    repo.delete(claim_id, expected_owner_id="lec-1", expected_status=ClaimStatus.SUBMITTED)
    with pytest.raises(NotFound):
        repo.get(claim_id)
    with pytest.raises(NotFound):
        repo.delete(claim_id, expected_owner_id="lec-1", expected_status=ClaimStatus.SUBMITTED)


def test_returned_claims_are_copies(repo):
    claim_id = repo.create(make_claim())
    fetched = repo.get(claim_id)
    fetched.title = "Changed locally"
    assert repo.get(claim_id).title == "Claim day 0"


# --- USERS ---

def make_user(email, role=Role.LECTURER, is_active=True, minutes=0) -> User:
    return User(
        name="Thandi",
        surname="Nkosi",
        email=email,
        password_hash="hash",
        hourly_rate=Decimal("150.00") if role == Role.LECTURER else None,
        role=role,
        is_active=is_active,
        created_date=BASE_DATE + timedelta(minutes=minutes),
    )


def test_user_round_trip(users):
    created = users.add(make_user("t.nkosi@uni.ac.za"))
    fetched = users.get(created.id)
    assert fetched.email == "t.nkosi@uni.ac.za"
    assert fetched.hourly_rate == Decimal("150.00")
    assert fetched.role == Role.LECTURER


def test_get_by_email_is_case_sensitive(users):
    users.add(make_user("t.nkosi@uni.ac.za"))
    assert users.get_by_email("t.nkosi@uni.ac.za") is not None
    assert users.get_by_email("T.Nkosi@uni.ac.za") is None


def test_list_filters_inactive(users):
    active = users.add(make_user("a@uni.ac.za", minutes=1))
    inactive = users.add(make_user("b@uni.ac.za", is_active=False, minutes=2))
    assert [u.id for u in users.list()] == [active.id]
    assert [u.id for u in users.list(active_only=False)] == [active.id, inactive.id]


def test_user_update(users):
    user = users.add(make_user("a@uni.ac.za"))
    user.hourly_rate = Decimal("210.00")
    user.is_active = False
    users.update(user)
    stored = users.get(user.id)
    assert stored.hourly_rate == Decimal("210.00")
    assert stored.is_active is False

    user.id = "missing"
    with pytest.raises(NotFound):
        users.update(user)
