# investment_tracker/services/csv_export_service.py
import io
import re
from datetime import date
from typing import Any, List, Optional, Sequence

import pandas as pd

from investment_tracker.db.enums import STAGE_PROGRESS
from investment_tracker.models.project import Project
from investment_tracker.services.clock import parse_iso, utc_now

DEFAULT_EXPORT_PREFIX = "nasida"

SUFFIX_ALL = "all_system"
SUFFIX_SELECTED = "bulk_selected"
SUFFIX_FILTERED = "filtered"

EXPORT_COLUMNS = [
    "Project ID",
    "Project Name",
    "Description",
    "Progress (%)",
    "Lifecycle Stage",
    "Sector",
    "LGA Location",
    "Sub-Location",
    "Investment Type",
    "Investment Worth ($)",
    "Jobs to be Created",
    "Requires Follow-Up",
    "Focal Person Name",
    "Focal Person Email",
    "Focal Person Phone",
    "Created By",
    "Created Date",
    "Last Modified By",
    "Last Modified Date",
]

WORTH_COLUMN = EXPORT_COLUMNS.index("Investment Worth ($)")
JOBS_COLUMN = EXPORT_COLUMNS.index("Jobs to be Created")

BOM = "\ufeff"


# ======================================================
# 🔤 Cell formatting
# ======================================================

def quote(value: Any) -> str:
    '''Quoted text cell: internal quotes doubled, line breaks flattened to spaces.'''
    text = "" if value is None else str(value)
    text = re.sub(r"\r\n|\r|\n", " ", text).replace('"', '""')
    return f'"{text}"'


def format_number(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def format_date(value: str) -> str:
    '''ISO timestamp -> "YYYY-MM-DD HH:MM" (UTC); unparsable input -> "".'''
    moment = parse_iso(value)
    return moment.strftime("%Y-%m-%d %H:%M") if moment else ""


def _flag(value: bool) -> str:
    return "YES" if value else "NO"


def project_row(project: Project) -> List[str]:
    return [
        quote(project.id),
        quote(project.project_name),
        quote(project.project_description),
        format_number(STAGE_PROGRESS[project.project_stage]),
        quote(project.project_stage.value),
        quote(project.project_sector),
        quote(project.project_location.value),
        quote(project.project_sub_location),
        quote(project.investment_type.value),
        format_number(project.investment_worth),
        format_number(project.jobs_to_be_created),
        _flag(project.requires_follow_up),
        quote(project.focal_person_name),
        quote(project.focal_person_email),
        quote(project.focal_person_phone),
        quote(project.created_by),
        quote(format_date(project.created_at)),
        quote(project.last_modified_by),
        quote(format_date(project.updated_at)),
    ]


def total_row(projects: Sequence[Project]) -> List[str]:
    row = [""] * len(EXPORT_COLUMNS)
    row[0] = quote("TOTAL")
    row[1] = str(len(projects))
    row[WORTH_COLUMN] = format_number(sum(p.investment_worth for p in projects))
    row[JOBS_COLUMN] = format_number(sum(p.jobs_to_be_created for p in projects))
    return row


# ======================================================
# 📤 CSV
# ======================================================

def to_csv(projects: Sequence[Project]) -> str:
    """
    Serialize projects to spreadsheet-friendly CSV.

    Layout: byte-order mark, header line, one line per project, then a TOTAL
    line carrying the row count and the worth / jobs sums.
    """
    lines = [",".join(EXPORT_COLUMNS)]
    lines.extend(",".join(project_row(p)) for p in projects)
    lines.append(",".join(total_row(projects)))
    return BOM + "\n".join(lines)


def export_suffix(projects: Sequence[Project], default: str = SUFFIX_FILTERED) -> str:
    '''A single exported project names the file after itself.'''
    if len(projects) == 1:
        return re.sub(r"\s+", "_", projects[0].project_name).lower()
    return default


def export_filename(
    suffix: str,
    prefix: str = DEFAULT_EXPORT_PREFIX,
    today: Optional[date] = None,
    extension: str = "csv",
) -> str:
    today = today or utc_now().date()
    return f"{prefix}_{suffix}_report_{today.isoformat()}.{extension}"


# ======================================================
# 📊 Excel
# ======================================================

def to_dataframe(projects: Sequence[Project]) -> pd.DataFrame:
    records = [
        [
            p.id,
            p.project_name,
            p.project_description,
            STAGE_PROGRESS[p.project_stage],
            p.project_stage.value,
            p.project_sector,
            p.project_location.value,
            p.project_sub_location,
            p.investment_type.value,
            p.investment_worth,
            p.jobs_to_be_created,
            _flag(p.requires_follow_up),
            p.focal_person_name,
            p.focal_person_email,
            p.focal_person_phone,
            p.created_by,
            format_date(p.created_at),
            p.last_modified_by,
            format_date(p.updated_at),
        ]
        for p in projects
    ]
    return pd.DataFrame(records, columns=EXPORT_COLUMNS)


def to_excel_bytes(projects: Sequence[Project], sheet_name: str = "Projects") -> bytes:
    '''Same columns as the CSV export, written as .xlsx with a TOTAL row.'''
    df = to_dataframe(projects)
    total = {column: "" for column in EXPORT_COLUMNS}
    total[EXPORT_COLUMNS[0]] = "TOTAL"
    total[EXPORT_COLUMNS[1]] = len(projects)
    total[EXPORT_COLUMNS[WORTH_COLUMN]] = sum(p.investment_worth for p in projects)
    total[EXPORT_COLUMNS[JOBS_COLUMN]] = sum(p.jobs_to_be_created for p in projects)
    df = pd.concat([df, pd.DataFrame([total])], ignore_index=True)

    output = io.BytesIO()
    with pd.ExcelWriter(output, engine="openpyxl") as writer:
        df.to_excel(writer, index=False, sheet_name=sheet_name)
    return output.getvalue()
