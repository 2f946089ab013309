# conftest.py
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from werkzeug.security import generate_password_hash

from claimflow.api.deps import Services, get_services
from claimflow.config import Settings
from claimflow.core.models import Actor, ClaimDraft, UploadedDocument, User
from claimflow.core.states import Role
from claimflow.main import app
from claimflow.services.lifecycle import ClaimLifecycle
from claimflow.services.reports import ReportService
from claimflow.services.users import UserService
from claimflow.storage import InMemoryClaimRepository, InMemoryUserDirectory, LocalFileStore

PASSWORD = "secret123"


def make_settings(upload_dir: str) -> Settings:
    return Settings(
        database_url="",
        upload_dir=upload_dir,
        secret_key="test-secret",
        token_ttl_seconds=3600,
        log_level="DEBUG",
        api_url="http://test",
        currency="R",
        bootstrap_hr_email="",
        bootstrap_hr_password="",
    )


def add_user(directory, role: Role, email: str, hourly_rate=None, is_active: bool = True) -> User:
    return directory.add(
        User(
            name=role.value,
            surname="Tester",
            email=email,
            password_hash=generate_password_hash(PASSWORD),
            hourly_rate=hourly_rate,
            role=role,
            is_active=is_active,
        )
    )


def pdf(size: int = 1024, name: str = "timesheet.pdf") -> UploadedDocument:
    return UploadedDocument(filename=name, content=b"%" * size)


def draft(title="March lectures", description="Lectures for PROG6212", hours="10") -> ClaimDraft:
    return ClaimDraft(
        title=title,
        description=description,
        hours_worked=Decimal(hours) if hours is not None else None,
    )


@pytest.fixture
def claims():
    return InMemoryClaimRepository()


@pytest.fixture
def directory():
    return InMemoryUserDirectory()


@pytest.fixture
def files(tmp_path):
    return LocalFileStore(str(tmp_path / "uploads"))


@pytest.fixture
def lifecycle(claims, directory, files):
    return ClaimLifecycle(claims, directory, files)


@pytest.fixture
def people(directory):
    """One account per role plus a second lecturer, as actors."""
    users = {
        "lecturer": add_user(directory, Role.LECTURER, "lecturer@uni.ac.za", Decimal("150.00")),
        "other_lecturer": add_user(directory, Role.LECTURER, "other@uni.ac.za", Decimal("200.00")),
        "coordinator": add_user(directory, Role.PROGRAMME_COORDINATOR, "pc@uni.ac.za"),
        "manager": add_user(directory, Role.ACADEMIC_MANAGER, "am@uni.ac.za"),
        "hr": add_user(directory, Role.HR, "hr@uni.ac.za"),
    }
    return {key: Actor(id=user.id, role=user.role) for key, user in users.items()}


@pytest.fixture
def services(tmp_path, claims, directory, files):
    return Services(
        settings=make_settings(str(tmp_path / "uploads")),
        lifecycle=ClaimLifecycle(claims, directory, files),
        users=UserService(directory),
        reports=ReportService(claims, directory),
    )


@pytest.fixture
def client(services):
    app.dependency_overrides[get_services] = lambda: services
    yield TestClient(app)
    app.dependency_overrides.clear()
