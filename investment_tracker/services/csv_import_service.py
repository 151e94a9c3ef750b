# investment_tracker/services/csv_import_service.py
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple
from uuid import uuid4

import pandas as pd

from investment_tracker.db.enums import (
    ProjectStage,
    ProjectLocation,
    InvestmentType,
    DEFAULT_STAGE,
    DEFAULT_IMPORT_LOCATION,
    DEFAULT_INVESTMENT_TYPE,
)
from investment_tracker.models.project import Project
from investment_tracker.services.clock import utc_now, to_iso
from investment_tracker.logger import get_logger

logger = get_logger(__name__)

EMPTY_FILE_ERROR = "The file is empty or missing data rows."

# a comma followed by an even number of double quotes up to end of line
_FIELD_SPLIT = re.compile(r',(?=(?:(?:[^"]*"){2})*[^"]*$)')
_LEADING_FLOAT = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_LEADING_INT = re.compile(r"^[+-]?\d+")
_NUMBER_NOISE = re.compile(r"[$,\s]")

TRUTHY_FLAGS = {"true", "1", "yes"}


@dataclass
class ImportResult:
    accepted: List[Project] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    total_rows: int = 0

    @property
    def success_count(self) -> int:
        return len(self.accepted)

    def summary(self) -> str:
        return f"{self.success_count} of {self.total_rows} projects imported"


# ======================================================
# 🔤 Cell level helpers
# ======================================================

def split_row(line: str) -> List[str]:
    '''Split one CSV line on commas outside quotes; strip and unquote each field.'''
    return [_unquote(value) for value in _FIELD_SPLIT.split(line)]


def _unquote(value: str) -> str:
    value = value.strip()
    if value.startswith('"'):
        value = value[1:]
    if value.endswith('"'):
        value = value[:-1]
    return value.replace('""', '"')


def parse_number(value: str) -> float:
    '''
    Permissive float: "$50,000,000" -> 50000000, "12.5 units" -> 12.5.
    No leading number -> 0; negatives clamp to 0.
    '''
    match = _LEADING_FLOAT.match(_NUMBER_NOISE.sub("", value or ""))
    if not match:
        return 0
    number = float(match.group(0))
    if number != number or number in (float("inf"), float("-inf")):
        return 0
    return max(0, int(number) if number.is_integer() else number)


def parse_int(value: str) -> int:
    match = _LEADING_INT.match(_NUMBER_NOISE.sub("", value or ""))
    return max(0, int(match.group(0))) if match else 0


def parse_flag(value: str) -> bool:
    return value.strip().lower() in TRUTHY_FLAGS


# ======================================================
# 🧭 Header keyword rules
# ======================================================
# Evaluated in order, first match wins per header cell.
# "investment" is checked before "type", so "Investment Type" feeds investmentWorth.

HeaderRule = Tuple[Callable[[str], bool], str, Callable[[str], Any]]

HEADER_RULES: List[HeaderRule] = [
    (lambda h: "name" in h and "project" in h, "projectName", str),
    (lambda h: "description" in h, "projectDescription", str),
    (lambda h: "stage" in h, "projectStage", str),
    (lambda h: "sector" in h, "projectSector", str),
    (lambda h: "location" in h and "sub" not in h, "projectLocation", str),
    (lambda h: "sub-location" in h or "sublocation" in h, "projectSubLocation", str),
    (lambda h: "worth" in h or "investment" in h, "investmentWorth", parse_number),
    (lambda h: "jobs" in h, "jobsToBeCreated", parse_int),
    (lambda h: "type" in h, "investmentType", str),
    (lambda h: "focal" in h and "name" in h, "focalPersonName", str),
    (lambda h: "focal" in h and "phone" in h, "focalPersonPhone", str),
    (lambda h: "focal" in h and "email" in h, "focalPersonEmail", str),
    (lambda h: "follow" in h or "up" in h, "requiresFollowUp", parse_flag),
]


def match_header(header: str) -> Optional[HeaderRule]:
    lowered = header.strip().lower()
    for rule in HEADER_RULES:
        if rule[0](lowered):
            return rule
    return None


def map_row(headers: Sequence[str], values: Sequence[str]) -> Dict[str, Any]:
    '''Apply header rules to one data row. Empty cells are skipped; later columns overwrite earlier ones.'''
    data: Dict[str, Any] = {}
    for index, header in enumerate(headers):
        value = values[index] if index < len(values) else ""
        if not value:
            continue
        rule = match_header(header)
        if rule is None:
            continue
        _, target, convert = rule
        data[target] = convert(value)
    return data


def _enum_or_default(enum_cls, value: Any, default):
    try:
        return enum_cls(value)
    except ValueError:
        return default


# ======================================================
# 📥 Row pipeline
# ======================================================

def import_rows(
    headers: Sequence[str],
    rows: Iterable[Sequence[str]],
    *,
    existing: Iterable[Project],
    actor: str,
    now: Optional[str] = None,
) -> ImportResult:
    """
    Validate and stamp already-split rows.
    A bad row is reported and skipped, it never aborts the batch.

    :param headers: header cells of the file
    :type headers: Sequence[str]
    :param rows: data rows, each a sequence of cell strings
    :param existing: projects already in the collection (duplicate check)
    :param actor: username stamped as creator and modifier
    :type actor: str
    :param now: ISO timestamp for createdAt/updatedAt, defaults to current UTC time
    :return: ImportResult
    :rtype: ImportResult
    """
    now = now or to_iso(utc_now())
    taken = {p.normalized_name for p in existing}
    result = ImportResult()

    for row_number, values in enumerate(rows, start=1):
        result.total_rows += 1
        data = map_row(headers, values)

        # 1️⃣ required fields
        reasons: List[str] = []
        name = data.get("projectName", "")
        if not name.strip():
            reasons.append("Missing Project Name")
        if not data.get("projectSector", "").strip():
            reasons.append("Missing Project Sector")
        if not data.get("focalPersonName", "").strip():
            reasons.append("Missing Focal Person Name")

        # 2️⃣ duplicate against the collection and earlier rows of this batch
        if name and name.strip().lower() in taken:
            reasons.append(f'Duplicate Name: "{name}"')

        if reasons:
            result.errors.append(f"Row {row_number}: {', '.join(reasons)}")
            continue

        # 3️⃣ stamp
        project = Project(
            id=str(uuid4()),
            projectName=name.strip(),
            projectDescription=data.get("projectDescription", ""),
            projectStage=_enum_or_default(ProjectStage, data.get("projectStage"), DEFAULT_STAGE),
            projectSector=data["projectSector"],
            projectLocation=_enum_or_default(ProjectLocation, data.get("projectLocation"), DEFAULT_IMPORT_LOCATION),
            projectSubLocation=data.get("projectSubLocation", ""),
            investmentWorth=data.get("investmentWorth", 0),
            jobsToBeCreated=data.get("jobsToBeCreated", 0),
            investmentType=_enum_or_default(InvestmentType, data.get("investmentType"), DEFAULT_INVESTMENT_TYPE),
            focalPersonName=data["focalPersonName"].strip(),
            focalPersonPhone=data.get("focalPersonPhone", ""),
            focalPersonEmail=data.get("focalPersonEmail", ""),
            requiresFollowUp=bool(data.get("requiresFollowUp", False)),
            createdBy=actor,
            createdAt=now,
            lastModifiedBy=actor,
            updatedAt=now,
        )
        taken.add(project.normalized_name)
        result.accepted.append(project)

    logger.info(
        f"Import parsed: {result.success_count} accepted, "
        f"{len(result.errors)} rejected, {result.total_rows} rows"
    )
    return result


def parse_csv(
    text: str,
    existing: Iterable[Project],
    actor: str,
    now: Optional[str] = None,
) -> ImportResult:
    """
    Parse uploaded CSV text into stamped projects.
    Headers are matched by keyword, so column order and label wording may vary.
    """
    if text.startswith("\ufeff"):
        text = text[1:]
    lines = [line for line in re.split(r"\r?\n", text) if line.strip()]
    if len(lines) < 2:
        return ImportResult(errors=[EMPTY_FILE_ERROR], total_rows=0)

    headers = [h.lower() for h in split_row(lines[0])]
    rows = (split_row(line.strip()) for line in lines[1:])
    return import_rows(headers, rows, existing=existing, actor=actor, now=now)


def _cell(value: Any) -> str:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def parse_excel(
    source: Any,
    existing: Iterable[Project],
    actor: str,
    now: Optional[str] = None,
) -> ImportResult:
    """
    Parse the first sheet of an .xlsx workbook through the same row pipeline as CSV.

    :param source: path or binary file-like object
    :raises ValueError: if the workbook cannot be read
    """
    try:
        df = pd.read_excel(source, engine="openpyxl")
    except Exception as e:
        raise ValueError(f"Failed to read Excel: {e}")

    df = df.dropna(how="all")
    if df.empty:
        return ImportResult(errors=[EMPTY_FILE_ERROR], total_rows=0)

    headers = [str(column).strip().lower() for column in df.columns]
    rows = ([_cell(v) for v in record] for record in df.itertuples(index=False, name=None))
    return import_rows(headers, rows, existing=existing, actor=actor, now=now)
