"""
In-Memory Repositories

Dict-backed stores used by default and in tests. Records are copied in
and out so callers never hold a reference to stored state.
"""
import logging
from threading import Lock
from typing import Dict, List, Optional
from uuid import uuid4

from claimflow.core.errors import ConflictError, NotFound, PreconditionFailed
from claimflow.core.models import Claim, User
from claimflow.core.states import ClaimStatus
from claimflow.storage.base import ClaimRepository, UserDirectory

logger = logging.getLogger(__name__)


class InMemoryClaimRepository(ClaimRepository):
    """Claim store keyed by id. A lock makes each update compare-and-set."""

    def __init__(self):
        self._claims: Dict[str, Claim] = {}
        self._lock = Lock()

    def create(self, claim: Claim) -> str:
        stored = claim.model_copy(deep=True)
        stored.id = uuid4().hex
        stored.version = 1
        with self._lock:
            self._claims[stored.id] = stored
        logger.debug(f"Stored claim {stored.id}")
        return stored.id

    def get(self, claim_id: str) -> Claim:
        with self._lock:
            claim = self._claims.get(claim_id)
            if claim is None:
                raise NotFound(f"Claim {claim_id} not found")
            return claim.model_copy(deep=True)

    def list_by_owner(self, owner_id: str) -> List[Claim]:
        with self._lock:
            claims = [c.model_copy(deep=True) for c in self._claims.values() if c.owner_id == owner_id]
        return sorted(claims, key=lambda c: c.submission_date, reverse=True)

    def list_by_status(self, status: ClaimStatus) -> List[Claim]:
        with self._lock:
            claims = [c.model_copy(deep=True) for c in self._claims.values() if c.status == status]
        return sorted(claims, key=lambda c: c.submission_date)

    def update(self, claim: Claim) -> Claim:
        with self._lock:
            current = self._claims.get(claim.id)
            if current is None:
                raise NotFound(f"Claim {claim.id} not found")
            if current.version != claim.version:
                raise ConflictError(
                    f"Claim {claim.id} was changed by someone else. Please reload and try again.",
                    {"expected_version": claim.version, "current_version": current.version},
                )
            stored = claim.model_copy(deep=True)
            stored.version = current.version + 1
            self._claims[claim.id] = stored
            return stored.model_copy(deep=True)

    def delete(self, claim_id: str, expected_owner_id: str, expected_status: ClaimStatus) -> None:
        with self._lock:
            current = self._claims.get(claim_id)
            if current is None:
                raise NotFound(f"Claim {claim_id} not found")
            if current.owner_id != expected_owner_id or current.status != expected_status:
                raise PreconditionFailed(
                    f"Claim {claim_id} no longer matches the expected owner and status",
                    {"current_status": current.status.value},
                )
            del self._claims[claim_id]


class InMemoryUserDirectory(UserDirectory):
    """User store keyed by id."""

    def __init__(self):
        self._users: Dict[str, User] = {}
        self._lock = Lock()

    def add(self, user: User) -> User:
        stored = user.model_copy(deep=True)
        stored.id = uuid4().hex
        with self._lock:
            self._users[stored.id] = stored
        return stored.model_copy(deep=True)

    def get(self, user_id: str) -> User:
        with self._lock:
            user = self._users.get(user_id)
            if user is None:
                raise NotFound(f"User {user_id} not found")
            return user.model_copy(deep=True)

    def get_by_email(self, email: str) -> Optional[User]:
        with self._lock:
            for user in self._users.values():
                if user.email == email:
                    return user.model_copy(deep=True)
        return None

    def list(self, active_only: bool = True) -> List[User]:
        with self._lock:
            users = [u.model_copy(deep=True) for u in self._users.values() if u.is_active or not active_only]
        return sorted(users, key=lambda u: u.created_date)

    def update(self, user: User) -> User:
        with self._lock:
            if user.id not in self._users:
                raise NotFound(f"User {user.id} not found")
            self._users[user.id] = user.model_copy(deep=True)
            return user.model_copy(deep=True)
