# tests/test_users.py
from decimal import Decimal

import pytest

from claimflow.core.errors import NotFound, Unauthorized, ValidationError
from claimflow.core.models import Actor, UserCreate, UserUpdate
from claimflow.core.states import Role
from claimflow.services.users import UserService
from tests.conftest import PASSWORD


@pytest.fixture
def service(directory):
    return UserService(directory)


def new_lecturer(email="lecturer@uni.ac.za", rate="150.00") -> UserCreate:
    return UserCreate(
        name="Sipho",
        surname="Dlamini",
        email=email,
        password=PASSWORD,
        hourly_rate=Decimal(rate),
        role=Role.LECTURER,
    )


def test_hr_creates_user_with_hashed_password(service, people):
    user = service.create_user(people["hr"], new_lecturer(email="sipho@uni.ac.za"))
    assert user.id
    assert user.password_hash != PASSWORD
    assert service.authenticate("sipho@uni.ac.za", PASSWORD).id == user.id


def test_only_hr_manages_users(service, people):
    for key in ("lecturer", "coordinator", "manager"):
        with pytest.raises(Unauthorized):
            service.create_user(people[key], new_lecturer(email="x@uni.ac.za"))
        with pytest.raises(Unauthorized):
            service.list_users(people[key])
    with pytest.raises(Unauthorized):
        service.list_users(Actor.anonymous())


def test_duplicate_email_is_a_field_error(service, people):
    with pytest.raises(ValidationError) as exc_info:
        service.create_user(people["hr"], new_lecturer(email="lecturer@uni.ac.za"))
    assert exc_info.value.fields == ["email"]


def test_email_comparison_is_case_sensitive(service, people):
    user = service.create_user(people["hr"], new_lecturer(email="Lecturer@uni.ac.za"))
    assert user.email == "Lecturer@uni.ac.za"


def test_update_keeps_email_unique(service, people):
    with pytest.raises(ValidationError):
        service.update_user(people["hr"], people["other_lecturer"].id, UserUpdate(email="lecturer@uni.ac.za"))

    updated = service.update_user(people["hr"], people["lecturer"].id, UserUpdate(email="lecturer@uni.ac.za"))
    assert updated.email == "lecturer@uni.ac.za"


def test_update_rate_and_password(service, people):
    user_id = people["lecturer"].id
    service.update_user(people["hr"], user_id, UserUpdate(hourly_rate=Decimal("320.00"), password="new-pass"))
    assert service.users.get(user_id).hourly_rate == Decimal("320.00")
    assert service.authenticate("lecturer@uni.ac.za", "new-pass").id == user_id
    with pytest.raises(Unauthorized):
        service.authenticate("lecturer@uni.ac.za", PASSWORD)


def test_update_missing_user(service, people):
    with pytest.raises(NotFound):
        service.update_user(people["hr"], "missing", UserUpdate(name="Nobody"))


def test_inactive_user_cannot_login_or_act(service, people):
    user_id = people["lecturer"].id
    service.update_user(people["hr"], user_id, UserUpdate(is_active=False))

    with pytest.raises(Unauthorized):
        service.authenticate("lecturer@uni.ac.za", PASSWORD)
    assert service.resolve_actor(user_id).is_authenticated is False
    assert [u.id for u in service.list_users(people["hr"])].count(user_id) == 0
    assert user_id in [u.id for u in service.list_users(people["hr"], active_only=False)]


def test_resolve_actor(service, people):
    actor = service.resolve_actor(people["manager"].id)
    assert actor == Actor(id=people["manager"].id, role=Role.ACADEMIC_MANAGER)
    assert service.resolve_actor(None) == Actor.anonymous()
    assert service.resolve_actor("missing") == Actor.anonymous()


def test_bootstrap_hr_is_created_once(service):
    first = service.ensure_bootstrap_hr("admin@uni.ac.za", "admin-pass")
    second = service.ensure_bootstrap_hr("admin@uni.ac.za", "admin-pass")
    assert first.id == second.id
    assert first.role == Role.HR
    assert service.ensure_bootstrap_hr("", "") is None
