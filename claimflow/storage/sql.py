"""
SQLAlchemy Repositories

Relational storage for claims and users. Claim updates are a single
UPDATE guarded by the version column.
"""
import logging
from datetime import datetime
from typing import List, Optional
from uuid import uuid4

from sqlalchemy import (Boolean, Column, DateTime, Integer, JSON, Numeric, String, Text, create_engine, delete,
                        select, update)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from claimflow.core.errors import ConflictError, NotFound, PreconditionFailed
from claimflow.core.models import Claim, User
from claimflow.core.states import ClaimStatus, Role
from claimflow.storage.base import ClaimRepository, UserDirectory

logger = logging.getLogger(__name__)

Base = declarative_base()


class UserRecord(Base):
    __tablename__ = "users"

    id = Column(String(32), primary_key=True)
    name = Column(String(100), nullable=False)
    surname = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    password_hash = Column(String(255), nullable=False, default="")
    hourly_rate = Column(Numeric(10, 2))
    role = Column(String(30), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_date = Column(DateTime, default=datetime.now)


class ClaimRecord(Base):
    __tablename__ = "claims"

    id = Column(String(32), primary_key=True)
    owner_id = Column(String(32), index=True, nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(String(1000), nullable=False)
    hours_worked = Column(Numeric(6, 2), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    status = Column(String(30), index=True, nullable=False)
    submission_date = Column(DateTime, nullable=False)
    documentation_ref = Column(String(300))
    original_file_name = Column(String(255))
    coordinator_approved = Column(Boolean)
    manager_approved = Column(Boolean)
    rejection_reason = Column(Text)
    version = Column(Integer, nullable=False, default=1)
    audit_log = Column(JSON, default=list)


def create_sql_engine(url: str) -> Engine:
    """Create an engine; in-memory SQLite is shared across threads."""
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url or url in ("sqlite://", "sqlite+pysqlite://"):
            kwargs["poolclass"] = StaticPool
        engine = create_engine(url, **kwargs)
    else:
        engine = create_engine(url)
    Base.metadata.create_all(engine)
    return engine


def _claim_values(claim: Claim) -> dict:
    return {
        "owner_id": claim.owner_id,
        "title": claim.title,
        "description": claim.description,
        "hours_worked": claim.hours_worked,
        "amount": claim.amount,
        "status": claim.status.value,
        "submission_date": claim.submission_date,
        "documentation_ref": claim.documentation_ref,
        "original_file_name": claim.original_file_name,
        "coordinator_approved": claim.coordinator_approved,
        "manager_approved": claim.manager_approved,
        "rejection_reason": claim.rejection_reason,
        "audit_log": [entry.model_dump(mode="json") for entry in claim.audit_log],
    }


def _to_claim(record: ClaimRecord) -> Claim:
    return Claim(
        id=record.id,
        owner_id=record.owner_id,
        title=record.title,
        description=record.description,
        hours_worked=record.hours_worked,
        amount=record.amount,
        status=ClaimStatus(record.status),
        submission_date=record.submission_date,
        documentation_ref=record.documentation_ref,
        original_file_name=record.original_file_name,
        coordinator_approved=record.coordinator_approved,
        manager_approved=record.manager_approved,
        rejection_reason=record.rejection_reason,
        version=record.version,
        audit_log=record.audit_log or [],
    )


def _to_user(record: UserRecord) -> User:
    return User(
        id=record.id,
        name=record.name,
        surname=record.surname,
        email=record.email,
        password_hash=record.password_hash,
        hourly_rate=record.hourly_rate,
        role=Role(record.role),
        is_active=record.is_active,
        created_date=record.created_date,
    )


class SqlClaimRepository(ClaimRepository):
    """Claim store backed by a relational database."""

    def __init__(self, engine: Engine):
        self.SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

    def create(self, claim: Claim) -> str:
        claim_id = uuid4().hex
        with self.SessionLocal() as session:
            session.add(ClaimRecord(id=claim_id, version=1, **_claim_values(claim)))
            session.commit()
        logger.debug(f"Stored claim {claim_id}")
        return claim_id

    def get(self, claim_id: str) -> Claim:
        with self.SessionLocal() as session:
            record = session.get(ClaimRecord, claim_id)
            if record is None:
                raise NotFound(f"Claim {claim_id} not found")
            return _to_claim(record)

    def list_by_owner(self, owner_id: str) -> List[Claim]:
        stmt = (
            select(ClaimRecord)
            .where(ClaimRecord.owner_id == owner_id)
            .order_by(ClaimRecord.submission_date.desc())
        )
        with self.SessionLocal() as session:
            return [_to_claim(r) for r in session.scalars(stmt)]

    def list_by_status(self, status: ClaimStatus) -> List[Claim]:
        stmt = (
            select(ClaimRecord)
            .where(ClaimRecord.status == status.value)
            .order_by(ClaimRecord.submission_date.asc())
        )
        with self.SessionLocal() as session:
            return [_to_claim(r) for r in session.scalars(stmt)]

    def update(self, claim: Claim) -> Claim:
        stmt = (
            update(ClaimRecord)
            .where(ClaimRecord.id == claim.id, ClaimRecord.version == claim.version)
            .values(version=claim.version + 1, **_claim_values(claim))
        )
        with self.SessionLocal() as session:
            try:
                result = session.execute(stmt)
                if result.rowcount == 0:
                    session.rollback()
                    current = session.get(ClaimRecord, claim.id)
                    if current is None:
                        raise NotFound(f"Claim {claim.id} not found")
                    raise ConflictError(
                        f"Claim {claim.id} was changed by someone else. Please reload and try again.",
                        {"expected_version": claim.version, "current_version": current.version},
                    )
                session.commit()
            except Exception:
                session.rollback()
                raise
        return claim.model_copy(update={"version": claim.version + 1}, deep=True)

    def delete(self, claim_id: str, expected_owner_id: str, expected_status: ClaimStatus) -> None:
        stmt = delete(ClaimRecord).where(
            ClaimRecord.id == claim_id,
            ClaimRecord.owner_id == expected_owner_id,
            ClaimRecord.status == expected_status.value,
        )
        with self.SessionLocal() as session:
            result = session.execute(stmt)
            if result.rowcount == 0:
                session.rollback()
                current = session.get(ClaimRecord, claim_id)
                if current is None:
                    raise NotFound(f"Claim {claim_id} not found")
                raise PreconditionFailed(
                    f"Claim {claim_id} no longer matches the expected owner and status",
                    {"current_status": current.status},
                )
            session.commit()


class SqlUserDirectory(UserDirectory):
    """User store backed by a relational database."""

    def __init__(self, engine: Engine):
        self.SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

    def add(self, user: User) -> User:
        stored = user.model_copy(update={"id": uuid4().hex})
        with self.SessionLocal() as session:
            session.add(UserRecord(role=stored.role.value, **stored.model_dump(exclude={"role"})))
            session.commit()
        return stored

    def get(self, user_id: str) -> User:
        with self.SessionLocal() as session:
            record = session.get(UserRecord, user_id)
            if record is None:
                raise NotFound(f"User {user_id} not found")
            return _to_user(record)

    def get_by_email(self, email: str) -> Optional[User]:
        with self.SessionLocal() as session:
            record = session.scalars(select(UserRecord).where(UserRecord.email == email)).first()
            return _to_user(record) if record else None

    def list(self, active_only: bool = True) -> List[User]:
        stmt = select(UserRecord).order_by(UserRecord.created_date)
        if active_only:
            stmt = stmt.where(UserRecord.is_active.is_(True))
        with self.SessionLocal() as session:
            return [_to_user(r) for r in session.scalars(stmt)]

    def update(self, user: User) -> User:
        with self.SessionLocal() as session:
            record = session.get(UserRecord, user.id)
            if record is None:
                raise NotFound(f"User {user.id} not found")
            record.name = user.name
            record.surname = user.surname
            record.email = user.email
            record.password_hash = user.password_hash
            record.hourly_rate = user.hourly_rate
            record.role = user.role.value
            record.is_active = user.is_active
            session.commit()
        return user.model_copy(deep=True)
