"""
Claims Report

Read-only projection for HR over claims of one status (Paid by
default) and the active lecturers, with a CSV export.
"""
import csv
import io
import logging
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from claimflow.core.errors import NotFound, Unauthorized
from claimflow.core.models import Actor, Claim, User
from claimflow.core.states import ClaimStatus, Role
from claimflow.storage.base import ClaimRepository, UserDirectory

logger = logging.getLogger(__name__)

CSV_HEADERS = ["Lecturer", "Title", "SubmissionDate", "HoursWorked", "Amount", "Status", "Description"]


class ReportSummary(BaseModel):
    total_claims: int = 0
    total_amount: Decimal = Decimal("0.00")
    total_hours: Decimal = Decimal("0")
    active_lecturers: int = 0


class ClaimReportRow(BaseModel):
    claim_id: str
    lecturer: str
    title: str
    description: str
    submission_date: datetime
    hours_worked: Decimal
    amount: Decimal
    status: ClaimStatus


class LecturerReportRow(BaseModel):
    user_id: str
    name: str
    email: str
    hourly_rate: Optional[Decimal] = None
    claim_count: int = Field(default=0, description="Claims of this lecturer in the report")


class ClaimsReport(BaseModel):
    """The full report: summary, claim rows newest first, lecturer rows."""
    generated_at: datetime = Field(default_factory=datetime.now)
    status: ClaimStatus = ClaimStatus.PAID
    summary: ReportSummary
    claims: List[ClaimReportRow]
    lecturers: List[LecturerReportRow]


def build_report(
    claims: List[Claim],
    owners: Dict[str, User],
    lecturers: List[User],
    status: ClaimStatus = ClaimStatus.PAID,
) -> ClaimsReport:
    """Project claims and lecturers into report rows. Performs no I/O."""
    ordered = sorted(claims, key=lambda c: c.submission_date, reverse=True)

    claim_rows = []
    counts: Dict[str, int] = {}
    for claim in ordered:
        owner = owners.get(claim.owner_id)
        claim_rows.append(
            ClaimReportRow(
                claim_id=claim.id,
                lecturer=owner.full_name if owner else "Unknown",
                title=claim.title,
                description=claim.description,
                submission_date=claim.submission_date,
                hours_worked=claim.hours_worked,
                amount=claim.amount,
                status=claim.status,
            )
        )
        counts[claim.owner_id] = counts.get(claim.owner_id, 0) + 1

    lecturer_rows = [
        LecturerReportRow(
            user_id=user.id,
            name=user.full_name,
            email=user.email,
            hourly_rate=user.hourly_rate,
            claim_count=counts.get(user.id, 0),
        )
        for user in lecturers
    ]

    summary = ReportSummary(
        total_claims=len(claim_rows),
        total_amount=sum((row.amount for row in claim_rows), Decimal("0.00")),
        total_hours=sum((row.hours_worked for row in claim_rows), Decimal("0")),
        active_lecturers=len(lecturer_rows),
    )
    return ClaimsReport(status=status, summary=summary, claims=claim_rows, lecturers=lecturer_rows)


def render_csv(report: ClaimsReport) -> str:
    """One row per claim, amounts with two decimals and ISO dates."""
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(CSV_HEADERS)

    for row in report.claims:
        writer.writerow([
            row.lecturer,
            row.title,
            row.submission_date.strftime("%Y-%m-%d"),
            f"{row.hours_worked:.2f}",
            f"{row.amount:.2f}",
            row.status.value,
            row.description,
        ])

    return output.getvalue()


class ReportService:
    """Gathers report inputs from the stores for HR."""

    def __init__(self, claims: ClaimRepository, users: UserDirectory):
        self.claims = claims
        self.users = users

    def generate(self, actor: Actor, status: ClaimStatus = ClaimStatus.PAID) -> ClaimsReport:
        if not actor.is_authenticated:
            raise Unauthorized("Please login to continue")
        if actor.role != Role.HR:
            logger.warning(f"Actor {actor.id} denied report access: role {actor.role.value}")
            raise Unauthorized("Access denied: reports require the HR role")

        claims = self.claims.list_by_status(status)
        owners: Dict[str, User] = {}
        for claim in claims:
            if claim.owner_id in owners:
                continue
            try:
                owners[claim.owner_id] = self.users.get(claim.owner_id)
            except NotFound:
                logger.warning(f"Claim {claim.id} references missing user {claim.owner_id}")

        lecturers = [u for u in self.users.list(active_only=True) if u.role == Role.LECTURER]
        report = build_report(claims, owners, lecturers, status)
        logger.info(f"Generated {status.value} report: {report.summary.total_claims} claims")
        return report
