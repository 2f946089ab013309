"""
HR Endpoints

User directory management and claims reports.
"""
import logging
from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends, status
from fastapi.responses import Response

from claimflow.api.deps import Services, get_actor, get_services
from claimflow.core.models import Actor, UserCreate, UserPublic, UserUpdate
from claimflow.core.states import ClaimStatus
from claimflow.services.pdf_report import render_pdf
from claimflow.services.reports import ClaimsReport, render_csv

logger = logging.getLogger(__name__)

users_router = APIRouter(prefix="/users", tags=["users"])
reports_router = APIRouter(prefix="/reports", tags=["reports"])


@users_router.get("/", response_model=List[UserPublic])
async def list_users(
    active_only: bool = True,
    actor: Actor = Depends(get_actor),
    services: Services = Depends(get_services),
) -> List[UserPublic]:
    return [UserPublic.from_user(u) for u in services.users.list_users(actor, active_only)]


@users_router.post("/", response_model=UserPublic, status_code=status.HTTP_201_CREATED)
async def create_user(
    request: UserCreate,
    actor: Actor = Depends(get_actor),
    services: Services = Depends(get_services),
) -> UserPublic:
    """
    Create an account. Lecturers should be given an hourly rate.
    """
    return UserPublic.from_user(services.users.create_user(actor, request))


@users_router.get("/{user_id}", response_model=UserPublic)
async def get_user(
    user_id: str,
    actor: Actor = Depends(get_actor),
    services: Services = Depends(get_services),
) -> UserPublic:
    return UserPublic.from_user(services.users.get_user(actor, user_id))


@users_router.put("/{user_id}", response_model=UserPublic)
async def update_user(
    user_id: str,
    request: UserUpdate,
    actor: Actor = Depends(get_actor),
    services: Services = Depends(get_services),
) -> UserPublic:
    """
    Update an account. A new hourly rate applies to claims priced afterwards.
    """
    return UserPublic.from_user(services.users.update_user(actor, user_id, request))


@reports_router.get("/summary", response_model=ClaimsReport)
async def report_summary(
    claim_status: ClaimStatus = ClaimStatus.PAID,
    actor: Actor = Depends(get_actor),
    services: Services = Depends(get_services),
) -> ClaimsReport:
    return services.reports.generate(actor, claim_status)


@reports_router.get("/claims.csv")
async def report_csv(
    claim_status: ClaimStatus = ClaimStatus.PAID,
    actor: Actor = Depends(get_actor),
    services: Services = Depends(get_services),
) -> Response:
    """
    Claims report as CSV.
    """
    report = services.reports.generate(actor, claim_status)
    filename = f"ClaimsReport_{datetime.now().strftime('%Y%m%d')}.csv"
    return Response(
        content=render_csv(report),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@reports_router.get("/claims.pdf")
async def report_pdf(
    claim_status: ClaimStatus = ClaimStatus.PAID,
    actor: Actor = Depends(get_actor),
    services: Services = Depends(get_services),
) -> Response:
    """
    Claims report as a printable PDF.
    """
    report = services.reports.generate(actor, claim_status)
    filename = f"ClaimsReport_{datetime.now().strftime('%Y%m%d_%H%M%S')}.pdf"
    return Response(
        content=render_pdf(report, services.settings.currency),
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
