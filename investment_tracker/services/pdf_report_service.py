# investment_tracker/services/pdf_report_service.py
from datetime import datetime
from io import BytesIO
from typing import List, Optional, Sequence, Tuple
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import landscape, A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer

from investment_tracker.models.project import Project
from investment_tracker.services.clock import utc_now, to_epoch_ms
from investment_tracker.services.csv_export_service import DEFAULT_EXPORT_PREFIX, format_number

THEME_COLOR = "#006A3E"
DEFAULT_REPORT_TITLE = "NASIDA Projects Report"

PDF_COLUMNS = [
    "Project Name",
    "Stage",
    "Location",
    "Investment Worth ($)",
    "Jobs Created",
    "Modified By",
]


def format_currency(value) -> str:
    '''50000000 -> $50,000,000 ; fractional amounts keep their cents.'''
    value = value or 0
    if isinstance(value, float) and not value.is_integer():
        return f"${value:,.2f}"
    return f"${int(value):,}"


def pdf_table(projects: Sequence[Project]) -> Tuple[List[str], List[List[str]]]:
    '''Header and body rows for the summary PDF, one row per project.'''
    rows = [
        [
            p.project_name,
            p.project_stage.value,
            p.project_location.value,
            format_currency(p.investment_worth),
            format_number(p.jobs_to_be_created or 0),
            p.last_modified_by,
        ]
        for p in projects
    ]
    return list(PDF_COLUMNS), rows


def render_pdf(
    title: str,
    columns: Sequence[str],
    rows: Sequence[Sequence[str]],
    theme_color: str = THEME_COLOR,
) -> bytes:
    """
    Render a landscape A4 table report.

    :param title: heading printed above the table
    :type title: str
    :param columns: header labels
    :param rows: body cells, already formatted as text
    :return: PDF document bytes
    :rtype: bytes
    """
    buffer = BytesIO()
    margin = 30
    doc = SimpleDocTemplate(buffer, pagesize=landscape(A4), leftMargin=margin, rightMargin=margin)

    styles = getSampleStyleSheet()
    title_style = styles["Title"]
    title_style.textColor = colors.HexColor(theme_color)
    cell_style = styles["Normal"]
    cell_style.fontSize = 8
    cell_style.leading = 10

    data = [list(columns)]
    for row in rows:
        # Paragraph parses markup, so & and < must be escaped
        data.append([Paragraph(escape(str(cell)), cell_style) for cell in row])

    table = Table(data, repeatRows=1)
    table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor(theme_color)),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.white),
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, -1), 8),
        # striped body
        ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, colors.HexColor("#F2F2F2")]),
        ('VALIGN', (0, 0), (-1, -1), 'TOP'),
        ('ALIGN', (0, 0), (-1, -1), 'LEFT'),
        ('LEFTPADDING', (0, 0), (-1, -1), 4),
        ('RIGHTPADDING', (0, 0), (-1, -1), 4),
    ]))

    doc.build([Paragraph(escape(title), title_style), Spacer(1, 12), table])
    return buffer.getvalue()


def render_projects_pdf(projects: Sequence[Project], title: str = DEFAULT_REPORT_TITLE) -> bytes:
    columns, rows = pdf_table(projects)
    return render_pdf(title, columns, rows)


def pdf_filename(prefix: str = DEFAULT_EXPORT_PREFIX, now: Optional[datetime] = None) -> str:
    return f"{prefix}_report_{to_epoch_ms(now or utc_now())}.pdf"
