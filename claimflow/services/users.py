"""
User Directory Service

HR-managed accounts. Lecturers' hourly rates live here and feed the
claim amount calculation.
"""
import logging
from typing import List, Optional

from werkzeug.security import check_password_hash, generate_password_hash

from claimflow.core.errors import NotFound, Unauthorized, ValidationCollector
from claimflow.core.models import Actor, User, UserCreate, UserUpdate
from claimflow.core.states import Role
from claimflow.storage.base import UserDirectory

logger = logging.getLogger(__name__)


def _normalize_email(email: str) -> str:
    return email.strip()


class UserService:
    """Account management for HR plus credential checks for login."""

    def __init__(self, users: UserDirectory):
        self.users = users

    def _require_hr(self, actor: Actor) -> None:
        if not actor.is_authenticated:
            raise Unauthorized("Please login to continue")
        if actor.role != Role.HR:
            logger.warning(f"Actor {actor.id} denied user management: role {actor.role.value}")
            raise Unauthorized("Access denied: user management requires the HR role")

    def _check_email_free(self, email: str, user_id: Optional[str] = None) -> None:
        collector = ValidationCollector()
        if "@" not in email:
            collector.add("email", "Please enter a valid email address")
        else:
            existing = self.users.get_by_email(email)
            if existing is not None and existing.id != user_id:
                collector.add("email", "Email already exists")
        collector.raise_if_any()

    def create_user(self, actor: Actor, request: UserCreate) -> User:
        """
        Add an account.

        Raises:
            Unauthorized: actor is not HR
            ValidationError: email is malformed or already used
        """
        self._require_hr(actor)
        return self._add(request)

    def _add(self, request: UserCreate) -> User:
        email = _normalize_email(request.email)
        self._check_email_free(email)

        user = User(
            name=request.name.strip(),
            surname=request.surname.strip(),
            email=email,
            password_hash=generate_password_hash(request.password),
            hourly_rate=request.hourly_rate,
            role=request.role,
            is_active=request.is_active,
        )
        created = self.users.add(user)
        logger.info(f"Created {created.role.value} account {created.id} ({created.email})")
        return created

    def update_user(self, actor: Actor, user_id: str, request: UserUpdate) -> User:
        """Apply the fields present in the request. The email stays unique."""
        self._require_hr(actor)
        user = self.users.get(user_id)

        changes = request.model_dump(exclude_unset=True, exclude={"password"})
        if "email" in changes and changes["email"] is not None:
            changes["email"] = _normalize_email(changes["email"])
            self._check_email_free(changes["email"], user_id)

        for field, value in changes.items():
            if value is not None or field == "hourly_rate":
                setattr(user, field, value)
        if request.password:
            user.password_hash = generate_password_hash(request.password)

        updated = self.users.update(user)
        logger.info(f"Updated account {user_id}")
        return updated

    def get_user(self, actor: Actor, user_id: str) -> User:
        self._require_hr(actor)
        return self.users.get(user_id)

    def list_users(self, actor: Actor, active_only: bool = True) -> List[User]:
        self._require_hr(actor)
        return self.users.list(active_only=active_only)

    def authenticate(self, email: str, password: str) -> User:
        """
        Check a login.

        Raises:
            Unauthorized: unknown email, wrong password or inactive account
        """
        user = self.users.get_by_email(_normalize_email(email))
        if user is None or not user.is_active or not check_password_hash(user.password_hash, password):
            logger.warning(f"Failed login for {email}")
            raise Unauthorized("Invalid email or password")
        return user

    def resolve_actor(self, user_id: Optional[str]) -> Actor:
        """Turn a token's user id into an actor; unknown or inactive users are anonymous."""
        if not user_id:
            return Actor.anonymous()
        try:
            user = self.users.get(user_id)
        except NotFound:
            return Actor.anonymous()
        if not user.is_active:
            return Actor.anonymous()
        return Actor(id=user.id, role=user.role)

    def ensure_bootstrap_hr(self, email: str, password: str) -> Optional[User]:
        """Seed the first HR account so the directory can be managed at all."""
        if not email or not password:
            return None
        existing = self.users.get_by_email(_normalize_email(email))
        if existing is not None:
            return existing
        user = self._add(
            UserCreate(name="HR", surname="Administrator", email=email, password=password, role=Role.HR)
        )
        logger.info(f"Seeded bootstrap HR account {user.email}")
        return user
