"""Login and current-user endpoints."""
import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from claimflow.api.deps import Services, get_actor, get_services
from claimflow.core.errors import Unauthorized
from claimflow.core.models import Actor, UserPublic
from claimflow.services.tokens import issue_token

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


class LoginRequest(BaseModel):
    email: str
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserPublic


@router.post("/login", response_model=TokenResponse)
async def login(request: LoginRequest, services: Services = Depends(get_services)) -> TokenResponse:
    """
    Exchange email and password for a bearer token.
    """
    user = services.users.authenticate(request.email, request.password)
    token = issue_token(user.id, services.settings.secret_key, services.settings.token_ttl_seconds)
    logger.info(f"User {user.id} logged in as {user.role.value}")
    return TokenResponse(access_token=token, user=UserPublic.from_user(user))


@router.get("/me", response_model=UserPublic)
async def me(actor: Actor = Depends(get_actor), services: Services = Depends(get_services)) -> UserPublic:
    if not actor.is_authenticated:
        raise Unauthorized("Please login to continue")
    return UserPublic.from_user(services.users.users.get(actor.id))
