"""
FastAPI Endpoints for Lecturer Claims

Provides REST API for submitting, editing and reviewing claims.
Workflow errors propagate to the handlers registered in claimflow.main.
"""
import logging
import mimetypes
from decimal import Decimal, InvalidOperation
from typing import List, Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from fastapi.responses import Response
from pydantic import BaseModel, Field

from claimflow.api.deps import Services, get_actor, get_services
from claimflow.core.models import Actor, Claim, ClaimDraft, UploadedDocument
from claimflow.core.states import ClaimAction
from claimflow.storage.files import safe_document_name

logger = logging.getLogger(__name__)

# Initialize routers
router = APIRouter(prefix="/claims", tags=["claims"])
review_router = APIRouter(prefix="/review", tags=["review"])


class ClaimResponse(BaseModel):
    """Response model for claim operations."""
    claim: Claim
    message: str
    allowed_actions: List[ClaimAction]


class DeleteResponse(BaseModel):
    claim_id: str
    message: str


class AmountPreviewRequest(BaseModel):
    hours_worked: Decimal = Field(..., description="Hours to price at the caller's current rate")


class AmountPreviewResponse(BaseModel):
    hours_worked: Decimal
    amount: Decimal
    formatted: str


class RejectRequest(BaseModel):
    """Request model for rejecting a claim."""
    reason: Optional[str] = None


def _parse_hours(value: Optional[str]) -> Optional[Decimal]:
    # Unparseable input becomes NaN so validation reports it with the other field errors
    if value is None or not value.strip():
        return None
    try:
        return Decimal(value.strip())
    except InvalidOperation:
        return Decimal("NaN")


async def _read_document(upload: Optional[UploadFile]) -> Optional[UploadedDocument]:
    if upload is None or not upload.filename:
        return None
    content = await upload.read()
    return UploadedDocument(filename=upload.filename, content=content)


def _content_disposition(filename: str) -> str:
    # ASCII fallback for old clients, RFC 5987 form for the real name
    fallback = safe_document_name(filename)
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename)}"


def _respond(services: Services, actor: Actor, claim: Claim, message: str) -> ClaimResponse:
    return ClaimResponse(
        claim=claim,
        message=message,
        allowed_actions=services.lifecycle.allowed_actions(actor, claim),
    )


@router.get("/", response_model=List[Claim])
async def list_my_claims(
    actor: Actor = Depends(get_actor),
    services: Services = Depends(get_services),
) -> List[Claim]:
    """
    List the calling lecturer's claims, newest first.
    """
    return services.lifecycle.list_own(actor)


@router.post("/", response_model=ClaimResponse, status_code=status.HTTP_201_CREATED)
async def submit_claim(
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    hours_worked: Optional[str] = Form(None),
    documentation: Optional[UploadFile] = File(None, description="Supporting document (PDF, Word or image, max 5MB)"),
    actor: Actor = Depends(get_actor),
    services: Services = Depends(get_services),
) -> ClaimResponse:
    """
    Submit a new claim.

    The amount is calculated from the lecturer's hourly rate. The claim
    starts in Submitted status.
    """
    draft = ClaimDraft(title=title, description=description, hours_worked=_parse_hours(hours_worked))
    document = await _read_document(documentation)

    claim = services.lifecycle.submit(actor, draft, document)
    return _respond(services, actor, claim, f"Claim submitted successfully with ID {claim.id}")


@router.post("/amount-preview", response_model=AmountPreviewResponse)
async def preview_amount(
    request: AmountPreviewRequest,
    actor: Actor = Depends(get_actor),
    services: Services = Depends(get_services),
) -> AmountPreviewResponse:
    """
    Price a number of hours at the caller's current hourly rate.
    """
    amount = services.lifecycle.preview_amount(actor, request.hours_worked)
    return AmountPreviewResponse(hours_worked=request.hours_worked, amount=amount, formatted=f"{amount:.2f}")


@router.get("/{claim_id}", response_model=ClaimResponse)
async def get_claim(
    claim_id: str,
    actor: Actor = Depends(get_actor),
    services: Services = Depends(get_services),
) -> ClaimResponse:
    """
    Get details of a specific claim.
    """
    claim = services.lifecycle.get_claim(actor, claim_id)
    return _respond(services, actor, claim, f"Claim {claim_id} retrieved")


@router.put("/{claim_id}", response_model=ClaimResponse)
async def edit_claim(
    claim_id: str,
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    hours_worked: Optional[str] = Form(None),
    documentation: Optional[UploadFile] = File(None, description="Replacement document (optional)"),
    actor: Actor = Depends(get_actor),
    services: Services = Depends(get_services),
) -> ClaimResponse:
    """
    Edit a claim that is still in Submitted status.

    Omitted fields keep their current value. The amount is recalculated.
    """
    draft = ClaimDraft(title=title, description=description, hours_worked=_parse_hours(hours_worked))
    document = await _read_document(documentation)

    claim = services.lifecycle.edit(actor, claim_id, draft, document)
    return _respond(services, actor, claim, "Claim updated successfully")


@router.delete("/{claim_id}", response_model=DeleteResponse)
async def delete_claim(
    claim_id: str,
    actor: Actor = Depends(get_actor),
    services: Services = Depends(get_services),
) -> DeleteResponse:
    """
    Delete a claim that is still in Submitted status.
    """
    services.lifecycle.delete(actor, claim_id)
    return DeleteResponse(claim_id=claim_id, message="Claim deleted successfully")


@router.get("/{claim_id}/documentation")
async def download_documentation(
    claim_id: str,
    actor: Actor = Depends(get_actor),
    services: Services = Depends(get_services),
) -> Response:
    """
    Download the supporting document of a claim.
    """
    content, filename = services.lifecycle.open_documentation(actor, claim_id)
    media_type = mimetypes.guess_type(filename)[0] or "application/octet-stream"
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": _content_disposition(filename)},
    )


# ============================================
# REVIEW ENDPOINTS (Coordinator / Manager)
# ============================================

@review_router.get("/queue", response_model=List[Claim])
async def review_queue(
    actor: Actor = Depends(get_actor),
    services: Services = Depends(get_services),
) -> List[Claim]:
    """
    Claims waiting at the caller's review stage, oldest first.

    Programme coordinators see Submitted claims; academic managers see
    coordinator-approved claims.
    """
    return services.lifecycle.review_queue(actor)


@review_router.post("/{claim_id}/approve", response_model=ClaimResponse)
async def approve_claim(
    claim_id: str,
    actor: Actor = Depends(get_actor),
    services: Services = Depends(get_services),
) -> ClaimResponse:
    """
    Approve a claim at the caller's stage.

    A coordinator moves it to ApprovedByCoordinator, a manager to Paid.
    """
    claim = services.lifecycle.approve(actor, claim_id)
    return _respond(services, actor, claim, f"Claim approved. Moved to {claim.status.value}")


@review_router.post("/{claim_id}/reject", response_model=ClaimResponse)
async def reject_claim(
    claim_id: str,
    request: Optional[RejectRequest] = None,
    actor: Actor = Depends(get_actor),
    services: Services = Depends(get_services),
) -> ClaimResponse:
    """
    Reject a claim at the caller's stage. A reason is required.
    """
    reason = request.reason if request else None
    claim = services.lifecycle.reject(actor, claim_id, reason)
    return _respond(services, actor, claim, f"Claim rejected. Reason: {claim.rejection_reason}")
