"""
Persistence Interfaces

The repositories keep records intact and nothing more: authorization
and business rules live in the lifecycle service.
"""
from abc import ABC, abstractmethod
from typing import List, Optional

from claimflow.core.models import Claim, User
from claimflow.core.states import ClaimStatus


class ClaimRepository(ABC):
    """Persistence boundary for claims."""

    @abstractmethod
    def create(self, claim: Claim) -> str:
        """Persist a new claim and return its assigned id."""

    @abstractmethod
    def get(self, claim_id: str) -> Claim:
        """
        Fetch a claim by id.

        Raises:
            NotFound: if the id does not resolve
        """

    @abstractmethod
    def list_by_owner(self, owner_id: str) -> List[Claim]:
        """Claims of one lecturer, newest submission first."""

    @abstractmethod
    def list_by_status(self, status: ClaimStatus) -> List[Claim]:
        """Claims in one status, oldest submission first."""

    @abstractmethod
    def update(self, claim: Claim) -> Claim:
        """
        Replace a stored claim in a single step.

        The claim's version must match the stored one; the stored
        version is incremented.

        Raises:
            NotFound: if the claim no longer exists
            ConflictError: if the stored version has moved on
        """

    @abstractmethod
    def delete(self, claim_id: str, expected_owner_id: str, expected_status: ClaimStatus) -> None:
        """
        Remove a claim if it still has the expected owner and status.

        Raises:
            NotFound: if the claim does not exist
            PreconditionFailed: if owner or status differ
        """


class UserDirectory(ABC):
    """Persistence boundary for user accounts."""

    @abstractmethod
    def add(self, user: User) -> User:
        """Persist a new user and return it with its id."""

    @abstractmethod
    def get(self, user_id: str) -> User:
        """
        Raises:
            NotFound: if the id does not resolve
        """

    @abstractmethod
    def get_by_email(self, email: str) -> Optional[User]:
        """Exact, case-sensitive email lookup."""

    @abstractmethod
    def list(self, active_only: bool = True) -> List[User]:
        """Users ordered by creation date."""

    @abstractmethod
    def update(self, user: User) -> User:
        """
        Raises:
            NotFound: if the id does not resolve
        """
