"""Field rules applied before a claim is created, edited or rejected."""
from decimal import Decimal
from typing import Optional

from claimflow.core.errors import ValidationCollector
from claimflow.core.models import UploadedDocument

MAX_TITLE_LENGTH = 255
MAX_DESCRIPTION_LENGTH = 1000
MIN_HOURS = Decimal("0.01")
MAX_HOURS = Decimal("180")

ALLOWED_EXTENSIONS = {"pdf", "doc", "docx", "jpg", "jpeg", "png"}
MAX_DOCUMENT_SIZE = 5 * 1024 * 1024


def validate_claim_fields(
    collector: ValidationCollector,
    title: Optional[str],
    description: Optional[str],
    hours_worked: Optional[Decimal],
) -> None:
    if not title or not title.strip():
        collector.add("title", "Claim title is required")
    elif len(title) > MAX_TITLE_LENGTH:
        collector.add("title", f"Title cannot exceed {MAX_TITLE_LENGTH} characters")

    if not description or not description.strip():
        collector.add("description", "Description is required")
    elif len(description) > MAX_DESCRIPTION_LENGTH:
        collector.add("description", f"Description cannot exceed {MAX_DESCRIPTION_LENGTH} characters")

    if hours_worked is None:
        collector.add("hours_worked", "Hours worked is required")
    elif not hours_worked.is_finite():
        collector.add("hours_worked", "Hours worked must be a number")
    elif hours_worked > MAX_HOURS:
        collector.add("hours_worked", "Hours worked cannot exceed 180 hours per month")
    elif hours_worked < MIN_HOURS:
        collector.add("hours_worked", "Hours worked must be between 0.01 and 180")
    elif hours_worked != hours_worked.quantize(MIN_HOURS):
        collector.add("hours_worked", "Hours worked can have at most 2 decimal places")


def validate_document(collector: ValidationCollector, document: Optional[UploadedDocument], required: bool) -> None:
    """Extension and size checks for an uploaded supporting document."""
    if document is None or document.size == 0:
        if required:
            collector.add("documentation", "Please upload a supporting document")
        return

    if document.extension not in ALLOWED_EXTENSIONS:
        collector.add(
            "documentation",
            "Please upload a PDF, Word document, or image file (PDF, DOC, DOCX, JPG, JPEG, PNG)",
        )
    if document.size > MAX_DOCUMENT_SIZE:
        collector.add("documentation", "File size cannot exceed 5MB")


def validate_rejection_reason(collector: ValidationCollector, reason: Optional[str]) -> None:
    if not reason or not reason.strip():
        collector.add("rejection_reason", "A rejection reason is required")
