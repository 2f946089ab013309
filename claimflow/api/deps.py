"""
Request Dependencies

Wires the stores and services once per process and resolves the
calling actor from the bearer token on every request.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from claimflow.config import Settings, get_settings
from claimflow.core.models import Actor
from claimflow.services.lifecycle import ClaimLifecycle
from claimflow.services.reports import ReportService
from claimflow.services.tokens import read_token
from claimflow.services.users import UserService
from claimflow.storage import (
    InMemoryClaimRepository,
    InMemoryUserDirectory,
    LocalFileStore,
    SqlClaimRepository,
    SqlUserDirectory,
    create_sql_engine,
)

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class Services:
    """Everything a request handler needs, built from one Settings."""
    settings: Settings
    lifecycle: ClaimLifecycle
    users: UserService
    reports: ReportService

    @classmethod
    def from_settings(cls, settings: Settings) -> "Services":
        if settings.database_url:
            engine = create_sql_engine(settings.database_url)
            claims = SqlClaimRepository(engine)
            directory = SqlUserDirectory(engine)
            logger.info("Using SQL storage")
        else:
            claims = InMemoryClaimRepository()
            directory = InMemoryUserDirectory()
            logger.info("Using in-memory storage")

        files = LocalFileStore(settings.upload_dir)
        return cls(
            settings=settings,
            lifecycle=ClaimLifecycle(claims, directory, files),
            users=UserService(directory),
            reports=ReportService(claims, directory),
        )


_services: Optional[Services] = None


def get_services() -> Services:
    global _services
    if _services is None:
        _services = Services.from_settings(get_settings())
    return _services


def get_actor(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    services: Services = Depends(get_services),
) -> Actor:
    """Resolve the caller. Missing, invalid or stale tokens give an anonymous actor."""
    if credentials is None:
        return Actor.anonymous()
    user_id = read_token(credentials.credentials, services.settings.secret_key)
    return services.users.resolve_actor(user_id)
