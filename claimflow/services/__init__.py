# Services module - lifecycle, users, reports
from .lifecycle import ClaimLifecycle
from .pdf_report import render_pdf
from .reports import ClaimsReport, ReportService, build_report, render_csv
from .tokens import issue_token, read_token
from .users import UserService

__all__ = [
    "ClaimLifecycle",
    "UserService",
    "ReportService",
    "ClaimsReport",
    "build_report",
    "render_csv",
    "render_pdf",
    "issue_token",
    "read_token",
]
