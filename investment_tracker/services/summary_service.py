# investment_tracker/services/summary_service.py
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Tuple

from investment_tracker.db.enums import ProjectStage, InvestmentType, STAGE_PROGRESS
from investment_tracker.models.project import Number, Project
from investment_tracker.services.clock import parse_iso

UNSPECIFIED_SECTOR = "Unspecified"
FEATURED_SUMMARY_LIMIT = 5
FEATURED_SLIDESHOW_LIMIT = 10

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


@dataclass
class SectorTotal:
    count: int = 0
    total_worth: Number = 0


@dataclass
class ProjectStats:
    """
    Aggregates over a project collection.
    Every stage and investment type is always present (zero-filled).
    """

    count: int = 0
    total_worth: Number = 0
    total_jobs: Number = 0
    stage_counts: Dict[ProjectStage, int] = field(
        default_factory=lambda: {stage: 0 for stage in ProjectStage}
    )
    # insertion ordered: first sector seen comes first
    sector_totals: Dict[str, SectorTotal] = field(default_factory=dict)
    investment_type_totals: Dict[InvestmentType, Number] = field(
        default_factory=lambda: {t: 0 for t in InvestmentType}
    )
    featured: List[Project] = field(default_factory=list)

    def top_sectors(self, n: int = 3) -> List[Tuple[str, SectorTotal]]:
        '''Sectors by descending total worth; ties keep first-seen order.'''
        ranked = sorted(
            self.sector_totals.items(),
            key=lambda item: item[1].total_worth,
            reverse=True,
        )
        return ranked[:n]

    def stage_percentages(self) -> Dict[ProjectStage, float]:
        if self.count <= 0:
            return {stage: 0.0 for stage in ProjectStage}
        return {
            stage: self.stage_counts[stage] * 100 / self.count
            for stage in ProjectStage
        }

    def investment_type_shares(self) -> Dict[InvestmentType, float]:
        if self.total_worth <= 0:
            return {t: 0.0 for t in InvestmentType}
        return {
            t: self.investment_type_totals[t] * 100 / self.total_worth
            for t in InvestmentType
        }

    @property
    def average_worth(self) -> float:
        return self.total_worth / self.count if self.count > 0 else 0.0


def stage_progress(stage: ProjectStage) -> int:
    return STAGE_PROGRESS[ProjectStage(stage)]


def most_recent(projects: Iterable[Project], limit: int) -> List[Project]:
    '''The `limit` most recently updated projects, newest first.'''
    ranked = sorted(
        projects,
        key=lambda p: parse_iso(p.updated_at) or _EPOCH,
        reverse=True,
    )
    return ranked[: max(0, limit)]


def summarize(
    projects: Iterable[Project],
    featured_limit: int = FEATURED_SUMMARY_LIMIT,
) -> ProjectStats:
    """
    Compute totals, per-stage/sector/type breakdowns and featured projects.

    :param projects: collection to aggregate (not modified)
    :type projects: Iterable[Project]
    :param featured_limit: how many most-recently-updated projects to feature
    :type featured_limit: int
    :return: ProjectStats
    :rtype: ProjectStats
    """
    items = list(projects)
    stats = ProjectStats()

    for project in items:
        stats.count += 1
        stats.total_worth += project.investment_worth
        stats.total_jobs += project.jobs_to_be_created
        stats.stage_counts[project.project_stage] += 1
        stats.investment_type_totals[project.investment_type] += project.investment_worth

        sector = project.project_sector or UNSPECIFIED_SECTOR
        bucket = stats.sector_totals.setdefault(sector, SectorTotal())
        bucket.count += 1
        bucket.total_worth += project.investment_worth

    stats.featured = most_recent(items, featured_limit)
    return stats
