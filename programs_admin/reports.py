"""Verification reports for a program: PDF (reportlab) and CSV."""

import csv
import io
from pathlib import Path

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from programs_core.models import FormQuestion, Program
from programs_core.scoring import Tier, format_percentage

CSV_HEADERS = [
    "registration_id",
    "created_at",
    "name",
    "mobile",
    "panchayath_id",
    "ward",
    "verification_status",
    "total_score",
    "max_score",
    "percentage",
    "tier",
    "verified_by",
    "verified_at",
]

TIER_COLORS = {
    Tier.HIGH.value: colors.HexColor("#166534"),
    Tier.MEDIUM.value: colors.HexColor("#854d0e"),
    Tier.LOW.value: colors.HexColor("#991b1b"),
}


def _tier(row: dict) -> str:
    badge = row.get("badge") or {}
    return badge.get("tier", "")


def tier_counts(rows: list[dict]) -> dict:
    counts = {"pending": 0, Tier.HIGH.value: 0, Tier.MEDIUM.value: 0, Tier.LOW.value: 0}
    for row in rows:
        if row.get("verification_status") == "verified":
            tier = _tier(row)
            if tier:
                counts[tier] += 1
        else:
            counts["pending"] += 1
    return counts


def export_csv(rows: list[dict], questions: list[FormQuestion] | None = None) -> str:
    """Registration rows (as listed by VerificationService) to CSV, one score column per question."""
    questions = questions or []
    headers = CSV_HEADERS + [f"score:{q.label or q.id}" for q in questions]
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(headers)
    for row in rows:
        scores = row.get("verification_scores") or {}
        percentage = row.get("percentage")
        writer.writerow(
            [
                row["id"],
                row.get("created_at") or "",
                row.get("name") or "",
                row.get("mobile") or "",
                row.get("panchayath_id") or "",
                row.get("ward") or "",
                row.get("verification_status"),
                "" if row.get("total_score") is None else row["total_score"],
                "" if row.get("max_score") is None else row["max_score"],
                "" if percentage is None else round(percentage, 1),
                _tier(row),
                row.get("verified_by") or "",
                row.get("verified_at") or "",
            ]
            + [scores.get(q.id, "") for q in questions]
        )
    return buffer.getvalue()


class VerificationReportPDF:
    """Renders a program's registrations with scores and tiers."""

    def __init__(self, output_path: str | Path | None = None):
        self.output_path = Path(output_path) if output_path else None

    def build(self, program: Program, rows: list[dict]) -> bytes:
        """
        Build the PDF. Returns the bytes; also writes them to output_path when set.

        Args:
            program: The program the registrations belong to.
            rows: Registration views from VerificationService.list_registrations().
        """
        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=landscape(A4),
            rightMargin=0.5 * inch,
            leftMargin=0.5 * inch,
            topMargin=0.5 * inch,
            bottomMargin=0.5 * inch,
        )

        styles = getSampleStyleSheet()
        title_style = ParagraphStyle(
            "ReportTitle",
            parent=styles["Heading1"],
            fontSize=16,
            spaceAfter=8,
            alignment=TA_CENTER,
        )
        body_style = styles["Normal"]

        story = [Paragraph(f"{program.name} – Verification Report", title_style)]
        counts = tier_counts(rows)
        story.append(
            Paragraph(
                f"Registrations: {len(rows)} &nbsp; Pending: {counts['pending']} &nbsp; "
                f"High: {counts['High']} &nbsp; Medium: {counts['Medium']} &nbsp; Low: {counts['Low']}",
                body_style,
            )
        )
        story.append(Spacer(1, 0.2 * inch))

        if not program.verification_enabled:
            story.append(Paragraph("Verification is not enabled for this program.", body_style))

        data = [["Name", "Mobile", "Ward", "Registered", "Status", "Score", "Percentage", "Tier"]]
        styles_cmds = [
            ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#e5e7eb")),
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
            ("FONTSIZE", (0, 0), (-1, -1), 8),
            ("GRID", (0, 0), (-1, -1), 0.25, colors.grey),
            ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
        ]
        for i, row in enumerate(rows, start=1):
            verified = row.get("verification_status") == "verified"
            tier = _tier(row)
            data.append(
                [
                    row.get("name") or "-",
                    row.get("mobile") or "-",
                    str(row.get("ward") or "-"),
                    (row.get("created_at") or "")[:10],
                    "Verified" if verified else "Pending",
                    f"{row.get('total_score') or 0:g} / {row.get('max_score') or 0:g}" if verified else "-",
                    format_percentage(row.get("percentage")) if verified else "-",
                    tier or "-",
                ]
            )
            if tier:
                styles_cmds.append(("TEXTCOLOR", (7, i), (7, i), TIER_COLORS[tier]))

        table = Table(data, repeatRows=1)
        table.setStyle(TableStyle(styles_cmds))
        story.append(table)

        doc.build(story)
        pdf_bytes = buffer.getvalue()
        if self.output_path:
            self.output_path.parent.mkdir(parents=True, exist_ok=True)
            self.output_path.write_bytes(pdf_bytes)
        return pdf_bytes
