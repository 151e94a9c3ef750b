# investment_tracker/tests/test_summary_service.py
from investment_tracker.db.enums import ProjectStage, InvestmentType
from investment_tracker.services.summary_service import (
    UNSPECIFIED_SECTOR,
    most_recent,
    stage_progress,
    summarize,
)


def test_empty_collection_is_zero_filled():
    stats = summarize([])

    assert stats.count == 0
    assert stats.total_worth == 0
    assert stats.total_jobs == 0
    assert stats.stage_counts == {stage: 0 for stage in ProjectStage}
    assert stats.investment_type_totals == {t: 0 for t in InvestmentType}
    assert stats.sector_totals == {}
    assert stats.featured == []
    assert stats.top_sectors() == []
    assert all(v == 0.0 for v in stats.stage_percentages().values())
    assert all(v == 0.0 for v in stats.investment_type_shares().values())
    assert stats.average_worth == 0.0


def test_stage_counts_for_three_stages(make_project):
    stats = summarize([
        make_project(projectStage=ProjectStage.INITIATION),
        make_project(projectStage=ProjectStage.MOU_SIGNED),
        make_project(projectStage=ProjectStage.MOVED_TO_SITE),
    ])

    assert stats.stage_counts == {
        ProjectStage.INITIATION: 1,
        ProjectStage.MOU_SIGNED: 1,
        ProjectStage.MOVED_TO_SITE: 1,
        ProjectStage.COMPLETED: 0,
    }


def test_totals_and_type_breakdown(make_project):
    stats = summarize([
        make_project(investmentWorth=100, jobsToBeCreated=10, investmentType=InvestmentType.FDI),
        make_project(investmentWorth=300, jobsToBeCreated=5, investmentType=InvestmentType.FDI),
        make_project(investmentWorth=600, jobsToBeCreated=1, investmentType=InvestmentType.MIXED),
    ])

    assert stats.count == 3
    assert stats.total_worth == 1000
    assert stats.total_jobs == 16
    assert stats.investment_type_totals == {
        InvestmentType.DDI: 0,
        InvestmentType.FDI: 400,
        InvestmentType.MIXED: 600,
    }
    shares = stats.investment_type_shares()
    assert shares[InvestmentType.FDI] == 40.0
    assert shares[InvestmentType.MIXED] == 60.0


def test_sector_totals_keep_literal_keys_and_unspecified(make_project):
    stats = summarize([
        make_project(projectSector="Energy", investmentWorth=5),
        make_project(projectSector="energy", investmentWorth=7),
        make_project(projectSector="", investmentWorth=1),
        make_project(projectSector="Energy", investmentWorth=5),
    ])

    assert list(stats.sector_totals) == ["Energy", "energy", UNSPECIFIED_SECTOR]
    assert stats.sector_totals["Energy"].count == 2
    assert stats.sector_totals["Energy"].total_worth == 10


def test_top_sectors_ties_keep_input_order(make_project):
    stats = summarize([
        make_project(projectSector="Tourism", investmentWorth=50),
        make_project(projectSector="Mining", investmentWorth=80),
        make_project(projectSector="Energy", investmentWorth=50),
        make_project(projectSector="Water Resources", investmentWorth=10),
    ])

    assert [name for name, _ in stats.top_sectors(3)] == ["Mining", "Tourism", "Energy"]


def test_featured_are_most_recently_updated(make_project):
    projects = [
        make_project("old", updatedAt="2025-01-01T00:00:00.000Z", createdAt="2024-01-01T00:00:00.000Z"),
        make_project("newest", updatedAt="2025-03-01T00:00:00.000Z", createdAt="2024-01-01T00:00:00.000Z"),
        make_project("middle", updatedAt="2025-02-01T00:00:00.000Z", createdAt="2024-01-01T00:00:00.000Z"),
    ]

    assert [p.project_name for p in summarize(projects, featured_limit=2).featured] == ["newest", "middle"]
    assert [p.project_name for p in most_recent(projects, 10)] == ["newest", "middle", "old"]


def test_stage_percentages(make_project):
    stats = summarize([
        make_project(projectStage=ProjectStage.COMPLETED),
        make_project(projectStage=ProjectStage.COMPLETED),
        make_project(projectStage=ProjectStage.INITIATION),
        make_project(projectStage=ProjectStage.MOU_SIGNED),
    ])

    assert stats.stage_percentages()[ProjectStage.COMPLETED] == 50.0
    assert stats.stage_percentages()[ProjectStage.MOVED_TO_SITE] == 0.0


def test_stage_progress_lookup():
    assert stage_progress(ProjectStage.INITIATION) == 25
    assert stage_progress(ProjectStage.MOU_SIGNED) == 50
    assert stage_progress(ProjectStage.MOVED_TO_SITE) == 75
    assert stage_progress("Completed") == 100
