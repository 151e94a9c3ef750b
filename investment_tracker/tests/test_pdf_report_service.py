# investment_tracker/tests/test_pdf_report_service.py
from datetime import datetime, timezone

from investment_tracker.db.enums import ProjectLocation, ProjectStage
from investment_tracker.services.pdf_report_service import (
    PDF_COLUMNS,
    format_currency,
    pdf_filename,
    pdf_table,
    render_pdf,
    render_projects_pdf,
)


def test_currency_format():
    assert format_currency(50000000) == "$50,000,000"
    assert format_currency(1234.5) == "$1,234.50"
    assert format_currency(0) == "$0"


def test_table_rows(make_project):
    project = make_project(
        "Keffi Mall",
        projectStage=ProjectStage.MOU_SIGNED,
        projectLocation=ProjectLocation.KEFFI,
        investmentWorth=75000000,
        jobsToBeCreated=200,
        lastModifiedBy="alice",
    )
    columns, rows = pdf_table([project])

    assert columns == PDF_COLUMNS
    assert rows == [["Keffi Mall", "MoU Signed", "Keffi", "$75,000,000", "200", "alice"]]


def test_render_produces_pdf_document(make_project):
    projects = [make_project(f"Project <{i}> & Co", projectSector="ICT & Innovation") for i in range(40)]

    document = render_projects_pdf(projects)

    assert document.startswith(b"%PDF")
    assert len(document) > 1000


def test_render_with_no_rows():
    assert render_pdf("Empty", ["A", "B"], []).startswith(b"%PDF")


def test_filename_uses_epoch_millis():
    now = datetime(2025, 1, 1, tzinfo=timezone.utc)
    assert pdf_filename("nasida", now) == "nasida_report_1735689600000.pdf"
