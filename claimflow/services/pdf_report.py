"""PDF rendering of the claims report."""
import io
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from claimflow.services.reports import ClaimsReport

HEADER_STYLE = [
    ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#003366")),
    ("TEXTCOLOR", (0, 0), (-1, 0), colors.whitesmoke),
    ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
    ("FONTSIZE", (0, 0), (-1, -1), 9),
    ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
    ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
]


def _money(amount, currency: str) -> str:
    return f"{currency} {amount:,.2f}"


def render_pdf(report: ClaimsReport, currency: str = "R") -> bytes:
    """Build the monthly report document and return its bytes."""
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=A4, title="Claims Report")
    story = []
    styles = getSampleStyleSheet()

    title_style = ParagraphStyle(
        "ReportTitle",
        parent=styles["Heading1"],
        fontSize=16,
        textColor=colors.HexColor("#003366"),
        spaceAfter=12,
        alignment=TA_CENTER,
    )
    story.append(Paragraph("CLAIMS MANAGEMENT SYSTEM", title_style))
    story.append(Paragraph(f"MONTHLY REPORT - {report.generated_at.strftime('%B %Y')}", styles["Heading2"]))
    story.append(Paragraph(f"Generated: {report.generated_at.strftime('%d/%m/%Y %H:%M')}", styles["Normal"]))
    story.append(Spacer(1, 0.2 * inch))

    # Summary
    story.append(Paragraph("<b>SUMMARY</b>", styles["Heading2"]))
    summary = report.summary
    summary_table = Table(
        [
            ["Total Claims", str(summary.total_claims)],
            ["Total Amount", _money(summary.total_amount, currency)],
            ["Total Hours", f"{summary.total_hours:.1f}"],
            ["Active Lecturers", str(summary.active_lecturers)],
        ],
        colWidths=[2 * inch, 3 * inch],
    )
    summary_table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (0, -1), colors.lightgrey),
        ("FONTNAME", (0, 0), (0, -1), "Helvetica-Bold"),
        ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
    ]))
    story.append(summary_table)
    story.append(Spacer(1, 0.3 * inch))

    # Claim details
    story.append(Paragraph(f"<b>{report.status.value.upper()} CLAIMS</b>", styles["Heading2"]))
    if report.claims:
        rows = [["Lecturer", "Title", "Submitted", "Hours", "Amount", "Status"]]
        for row in report.claims:
            rows.append([
                row.lecturer,
                Paragraph(escape(row.title), styles["Normal"]),
                row.submission_date.strftime("%d/%m/%Y"),
                f"{row.hours_worked:.1f}",
                _money(row.amount, currency),
                row.status.value,
            ])
        claims_table = Table(rows, repeatRows=1, colWidths=[1.3 * inch, 1.9 * inch, 0.9 * inch, 0.6 * inch, 1.1 * inch, 1.0 * inch])
        claims_table.setStyle(TableStyle(HEADER_STYLE))
        story.append(claims_table)
    else:
        story.append(Paragraph("No claims found for this report.", styles["Normal"]))
    story.append(Spacer(1, 0.3 * inch))

    # Lecturer summary
    story.append(Paragraph("<b>LECTURER SUMMARY</b>", styles["Heading2"]))
    rows = [["Name", "Email", "Hourly Rate", "Claims"]]
    for lecturer in report.lecturers:
        rate = _money(lecturer.hourly_rate, currency) if lecturer.hourly_rate is not None else "N/A"
        rows.append([lecturer.name, lecturer.email, rate, str(lecturer.claim_count)])
    lecturer_table = Table(rows, repeatRows=1)
    lecturer_table.setStyle(TableStyle(HEADER_STYLE))
    story.append(lecturer_table)

    doc.build(story)
    return buffer.getvalue()
