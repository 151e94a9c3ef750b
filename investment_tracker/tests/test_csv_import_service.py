# investment_tracker/tests/test_csv_import_service.py
import pandas as pd
import pytest

from investment_tracker.db.enums import ProjectStage, ProjectLocation, InvestmentType
from investment_tracker.services.csv_import_service import (
    EMPTY_FILE_ERROR,
    match_header,
    parse_csv,
    parse_excel,
    parse_int,
    parse_number,
    split_row,
)

NOW = "2025-01-31T09:15:00.000Z"


def test_two_rows_one_missing_name():
    text = "Project Name,Sector,Focal Person Name\nAlpha,Energy,Bob\n,Energy,Carol"
    result = parse_csv(text, [], "alice", NOW)

    assert [p.project_name for p in result.accepted] == ["Alpha"]
    assert result.errors == ["Row 2: Missing Project Name"]
    assert result.total_rows == 2
    assert result.summary() == "1 of 2 projects imported"


def test_accepted_rows_are_stamped():
    text = "Project Name,Sector,Focal Person Name\nAlpha,Energy,Bob"
    project = parse_csv(text, [], "alice", NOW).accepted[0]

    assert project.id
    assert project.created_by == project.last_modified_by == "alice"
    assert project.created_at == project.updated_at == NOW


@pytest.mark.parametrize("text", ["", "\n\n", "Project Name,Sector\n", "   \r\n  "])
def test_file_without_data_rows(text):
    result = parse_csv(text, [], "alice", NOW)

    assert result.errors == [EMPTY_FILE_ERROR]
    assert result.total_rows == 0
    assert result.accepted == []


def test_bom_crlf_and_blank_lines_are_tolerated():
    text = "\ufeffProject Name,Sector,Focal Person Name\r\n\r\nAlpha,Energy,Bob\r\n   \r\nBeta,Mining,Ann\r\n"
    result = parse_csv(text, [], "alice", NOW)

    assert [p.project_name for p in result.accepted] == ["Alpha", "Beta"]
    assert result.total_rows == 2


def test_quoted_fields_keep_commas_and_quotes():
    text = (
        'Project Name,Description,Sector,Focal Person Name\n'
        '"Port, Phase 1","He said ""go"", twice","Transportation","Ada"'
    )
    project = parse_csv(text, [], "alice", NOW).accepted[0]

    assert project.project_name == "Port, Phase 1"
    assert project.project_description == 'He said "go", twice'


def test_header_order_and_wording_may_vary():
    text = (
        "focal person NAME,Investment Worth ($),PROJECT NAME,Jobs,Lifecycle Stage,LGA Location,"
        "Sub-Location,Type,Sector,Focal Person Phone,Focal Person Email,Requires Follow-Up\n"
        "Ada,\"$1,500,000\",Glass Works,120 jobs,Completed,Karu,Masaka,FDI,Manufacturing,"
        "0803 111 2222,ada@example.com,yes"
    )
    project = parse_csv(text, [], "alice", NOW).accepted[0]

    assert project.project_name == "Glass Works"
    assert project.focal_person_name == "Ada"
    assert project.investment_worth == 1500000
    assert project.jobs_to_be_created == 120
    assert project.project_stage == ProjectStage.COMPLETED
    assert project.project_location == ProjectLocation.KARU
    assert project.project_sub_location == "Masaka"
    assert project.investment_type == InvestmentType.FDI
    assert project.project_sector == "Manufacturing"
    assert project.focal_person_phone == "0803 111 2222"
    assert project.focal_person_email == "ada@example.com"
    assert project.requires_follow_up is True


def test_enum_fallbacks_and_bad_numbers():
    text = (
        "Project Name,Sector,Focal Person Name,Stage,Location,Type,Investment Worth,Jobs\n"
        "Alpha,Energy,Bob,Done,Abuja,Grant,lots,-4"
    )
    project = parse_csv(text, [], "alice", NOW).accepted[0]

    assert project.project_stage == ProjectStage.INITIATION
    assert project.project_location == ProjectLocation.LAFIA
    assert project.investment_type == InvestmentType.DDI
    assert project.investment_worth == 0
    assert project.jobs_to_be_created == 0


def test_investment_type_header_feeds_worth_rule():
    # "investment" matches the worth rule first; the later worth column wins
    assert match_header("Investment Type")[1] == "investmentWorth"
    assert match_header("Type")[1] == "investmentType"
    assert match_header("Sub-Location")[1] == "projectSubLocation"
    assert match_header("LGA Location")[1] == "projectLocation"
    assert match_header("Created By") is None


def test_duplicates_against_existing_and_same_batch(make_project):
    existing = [make_project("Solar One")]
    text = (
        "Project Name,Sector,Focal Person Name\n"
        " solar one ,Energy,Bob\n"
        "Hydro,Energy,Bob\n"
        "HYDRO,Energy,Ann\n"
    )
    result = parse_csv(text, existing, "alice", NOW)

    assert [p.project_name for p in result.accepted] == ["Hydro"]
    assert result.errors == [
        'Row 1: Duplicate Name: "solar one"',
        'Row 3: Duplicate Name: "HYDRO"',
    ]


def test_row_with_several_defects_reports_all_reasons():
    text = "Project Name,Sector,Focal Person Name\nGhost,,"
    result = parse_csv(text, [], "alice", NOW)

    assert result.errors == ["Row 1: Missing Project Sector, Missing Focal Person Name"]


def test_bad_rows_never_abort_the_import():
    lines = ["Project Name,Sector,Focal Person Name"]
    for i in range(10):
        lines.append(f"P{i},Energy,Bob" if i % 3 else f"P{i},,Bob")
    result = parse_csv("\n".join(lines), [], "alice", NOW)

    missing = 4  # rows 0, 3, 6, 9
    assert result.total_rows == 10
    assert result.success_count == 10 - missing
    assert len(result.errors) == missing


def test_cell_helpers():
    assert split_row('a, "b,c" ,d') == ["a", "b,c", "d"]
    assert parse_number("$2,500.75") == 2500.75
    assert parse_number("12abc") == 12
    assert parse_number("abc") == 0
    assert parse_int("7.9") == 7
    assert parse_int("n/a") == 0


def test_excel_goes_through_same_pipeline(tmp_path):
    path = tmp_path / "projects.xlsx"
    pd.DataFrame(
        {
            "Project Name": ["Alpha", None],
            "Sector": ["Energy", "Energy"],
            "Focal Person Name": ["Bob", "Carol"],
            "Investment Worth ($)": [2500000, 10],
            "Requires Follow-Up": ["YES", "NO"],
        }
    ).to_excel(path, index=False)

    result = parse_excel(path, [], "alice", NOW)

    assert [p.project_name for p in result.accepted] == ["Alpha"]
    assert result.accepted[0].investment_worth == 2500000
    assert result.accepted[0].requires_follow_up is True
    assert result.errors == ["Row 2: Missing Project Name"]


def test_unreadable_excel_raises(tmp_path):
    path = tmp_path / "broken.xlsx"
    path.write_bytes(b"not a workbook")
    with pytest.raises(ValueError):
        parse_excel(path, [], "alice", NOW)
