"""
Registration exports: CSV, PDF report and Excel workbook.

All three formats carry the same base columns followed by one column
per custom field key (the union across the exported registrations, in
first-seen order).  The PDF is a human-readable report rather than a
table: a summary block followed by one entry per registration.
"""

import csv
import io
import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List
from xml.sax.saxutils import escape

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer

from event_checkin_api.app.schemas.registration import (
    RegistrationRead,
    RegistrationStatus,
    TeamMember,
)


logger = logging.getLogger(__name__)

CSV_BASE_HEADERS = [
    "ID",
    "Name",
    "Email",
    "Phone",
    "Organization",
    "Group Size",
    "Scans",
    "Max Scans",
    "Has QR",
    "Status",
    "Created At",
    "Team Members",
]
ATTACHED_ASSET_PREFIX = "/attached_assets/"
EXPORT_MEDIA_TYPES = {
    "csv": "text/csv; charset=utf-8",
    "pdf": "application/pdf",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}


def custom_field_keys(registrations: Iterable[RegistrationRead]) -> List[str]:
    """Union of custom field keys across registrations, in first-seen order."""
    keys: Dict[str, None] = {}
    for registration in registrations:
        for key in registration.custom_field_data:
            keys.setdefault(key, None)
    return list(keys)


def _cell(value: Any) -> str:
    if value is None or value == "":
        return ""
    return str(value)


def _team_members_short(members: List[TeamMember]) -> str:
    return "; ".join(f"{m.name} ({m.email or 'N/A'})" for m in members)


def _team_member_line(member: TeamMember) -> str:
    line = member.name
    if member.email:
        line += f" ({member.email})"
    if member.phone:
        line += f" - {member.phone}"
    return line


def _entries(registrations: Iterable[RegistrationRead]) -> int:
    admitted = {RegistrationStatus.CHECKED_IN, RegistrationStatus.EXHAUSTED}
    return sum(1 for r in registrations if r.status in admitted)


def _report_styles():
    styles = getSampleStyleSheet()
    styles.add(ParagraphStyle(
        name="ReportTitle",
        parent=styles["Title"],
        fontSize=20,
        alignment=TA_CENTER,
        spaceAfter=6,
    ))
    styles.add(ParagraphStyle(
        name="ReportSubtitle",
        parent=styles["Normal"],
        fontSize=12,
        alignment=TA_CENTER,
        textColor=colors.HexColor("#4a5568"),
        spaceAfter=24,
    ))
    styles.add(ParagraphStyle(
        name="SectionHeader",
        parent=styles["Heading2"],
        fontSize=14,
        spaceBefore=12,
        spaceAfter=8,
    ))
    styles.add(ParagraphStyle(
        name="EntryTitle",
        parent=styles["Normal"],
        fontSize=11,
        fontName="Helvetica-Bold",
        spaceBefore=10,
    ))
    styles.add(ParagraphStyle(
        name="EntryDetail",
        parent=styles["Normal"],
        fontSize=9,
        leftIndent=14,
    ))
    styles.add(ParagraphStyle(
        name="MemberDetail",
        parent=styles["Normal"],
        fontSize=9,
        leftIndent=28,
    ))
    return styles


class ExportService:
    """Render registration lists into downloadable formats."""

    @staticmethod
    def export_to_csv(registrations: List[RegistrationRead]) -> str:
        """Render registrations as CSV with every cell quoted.

        Rows are separated by ``\\n``; there is no trailing newline.
        """
        extra_keys = custom_field_keys(registrations)
        buffer = io.StringIO()
        writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
        # Header row is written unquoted; data cells are always quoted.
        buffer.write(",".join(CSV_BASE_HEADERS + extra_keys) + "\n")
        for r in registrations:
            writer.writerow(
                [
                    r.id,
                    r.name,
                    r.email,
                    r.phone,
                    r.organization,
                    str(r.group_size),
                    str(r.scans),
                    str(r.max_scans),
                    "Yes" if r.has_qr else "No",
                    r.status.value,
                    r.created_at,
                    _team_members_short(r.team_members),
                ]
                + [_cell(r.custom_field_data.get(key)) for key in extra_keys]
            )
        return buffer.getvalue().rstrip("\n")

    @staticmethod
    def export_to_pdf(registrations: List[RegistrationRead]) -> bytes:
        """Render a registration report as PDF bytes."""
        styles = _report_styles()
        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=letter,
            leftMargin=0.7 * inch,
            rightMargin=0.7 * inch,
            topMargin=0.7 * inch,
            bottomMargin=0.7 * inch,
            title="Event Registration Report",
        )
        elements: list = [
            Paragraph("Event Registration Report", styles["ReportTitle"]),
            Paragraph(
                f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
                styles["ReportSubtitle"],
            ),
            Paragraph("Summary", styles["SectionHeader"]),
            Paragraph(f"Total Registrations: {len(registrations)}", styles["Normal"]),
            Paragraph(
                f"QR Codes Generated: {sum(1 for r in registrations if r.has_qr)}",
                styles["Normal"],
            ),
            Paragraph(f"Total Check-ins: {_entries(registrations)}", styles["Normal"]),
            Spacer(1, 0.3 * inch),
            Paragraph("Registrations", styles["SectionHeader"]),
        ]

        for index, reg in enumerate(registrations, start=1):
            elements.append(Paragraph(f"{index}. {escape(reg.name)} ({escape(reg.id)})", styles["EntryTitle"]))
            details = [
                f"Email: {reg.email}",
                f"Phone: {reg.phone}",
                f"Organization: {reg.organization}",
                f"Group Size: {reg.group_size} | Scans: {reg.scans}/{reg.max_scans} | Status: {reg.status.value}",
            ]
            for line in details:
                elements.append(Paragraph(escape(line), styles["EntryDetail"]))
            if reg.team_members:
                elements.append(Paragraph("Team Members:", styles["EntryDetail"]))
                for member_index, member in enumerate(reg.team_members, start=1):
                    elements.append(
                        Paragraph(f"{member_index}. {escape(_team_member_line(member))}", styles["MemberDetail"])
                    )
            for key, value in reg.custom_field_data.items():
                display = str(value)
                if display.startswith(ATTACHED_ASSET_PREFIX):
                    display = f"[Photo: {display}]"
                elements.append(Paragraph(escape(f"{key}: {display}"), styles["EntryDetail"]))

        doc.build(elements)
        logger.debug("Rendered PDF report with %s registrations", len(registrations))
        return buffer.getvalue()

    @staticmethod
    def export_to_excel(registrations: List[RegistrationRead]) -> bytes:
        """Render registrations as an ``.xlsx`` workbook with one sheet."""
        rows: List[Dict[str, Any]] = []
        for r in registrations:
            row: Dict[str, Any] = {
                "ID": r.id,
                "Name": r.name,
                "Email": r.email,
                "Phone": r.phone,
                "Organization": r.organization,
                "Group Size": r.group_size,
                "Scans Used": r.scans,
                "Max Scans": r.max_scans,
                "Has QR": "Yes" if r.has_qr else "No",
                "Status": r.status.value,
                "Created At": r.created_at,
                "Team Members": "; ".join(_team_member_line(m) for m in r.team_members),
            }
            for key, value in r.custom_field_data.items():
                row[key] = value if isinstance(value, (str, int, float, bool)) or value is None else str(value)
            rows.append(row)

        headers: Dict[str, None] = {}
        for row in rows:
            for key in row:
                headers.setdefault(key, None)
        columns = list(headers)

        workbook = Workbook()
        sheet = workbook.active
        sheet.title = "Registrations"
        if columns:
            sheet.append(columns)
            for cell in sheet[1]:
                cell.font = Font(bold=True)
            for row in rows:
                sheet.append([row.get(column) for column in columns])
            for index, column in enumerate(columns, start=1):
                width = max(len(str(column)), *(len(str(row.get(column) or "")) for row in rows))
                sheet.column_dimensions[get_column_letter(index)].width = min(width + 2, 60)

        buffer = io.BytesIO()
        workbook.save(buffer)
        return buffer.getvalue()
