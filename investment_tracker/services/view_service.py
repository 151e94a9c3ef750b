# investment_tracker/services/view_service.py
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional, Set

from investment_tracker.db.enums import (
    SortKey,
    SortOrder,
    STAGE_ORDER,
    PREDEFINED_SECTORS,
    ALL_STAGES_FILTER,
    ALL_SECTORS_FILTER,
)
from investment_tracker.models.project import Project


@dataclass(frozen=True)
class SortState:
    key: Optional[SortKey] = None
    order: SortOrder = SortOrder.NONE

    @property
    def active(self) -> bool:
        return self.key is not None and self.order != SortOrder.NONE


NO_SORT = SortState()


def next_sort_state(current: SortState, key: SortKey) -> SortState:
    '''
    Column-header click: asc -> desc -> none for the same column,
    a different column always starts at asc.
    '''
    key = SortKey(key)
    if current.key != key or current.order == SortOrder.NONE:
        return SortState(key, SortOrder.ASC)
    if current.order == SortOrder.ASC:
        return SortState(key, SortOrder.DESC)
    return SortState(key, SortOrder.NONE)


@dataclass(frozen=True)
class ViewCriteria:
    stage_filter: str = ALL_STAGES_FILTER
    sector_filter: str = ALL_SECTORS_FILTER
    search_term: str = ""
    sort: SortState = NO_SORT


def _matches_search(project: Project, term: str) -> bool:
    haystack = (
        project.project_name,
        project.project_description,
        project.project_sector,
        project.project_location.value,
        project.id,
    )
    return any(term in value.lower() for value in haystack)


def _sort_value(project: Project, key: SortKey) -> Any:
    if key == SortKey.PROJECT_STAGE:
        return STAGE_ORDER[project.project_stage]
    value = getattr(project, Project.field_name(key.value))
    if isinstance(value, str):
        # enum members compare by their value
        return getattr(value, "value", value)
    return value


def view(projects: Iterable[Project], criteria: ViewCriteria) -> List[Project]:
    """
    Filter, search and sort projects for display.
    Pure: the input sequence is not modified and equal inputs give equal outputs.

    :param projects: collection in store order
    :type projects: Iterable[Project]
    :param criteria: active filters, search term and sort
    :type criteria: ViewCriteria
    :return: new list of matching projects
    :rtype: List[Project]
    """
    result = list(projects)

    if criteria.stage_filter and criteria.stage_filter != ALL_STAGES_FILTER:
        result = [p for p in result if p.project_stage.value == criteria.stage_filter]

    if criteria.sector_filter and criteria.sector_filter != ALL_SECTORS_FILTER:
        result = [p for p in result if p.project_sector == criteria.sector_filter]

    # blank input disables search; otherwise the term is matched as typed (not trimmed)
    term = criteria.search_term or ""
    if term.strip():
        result = [p for p in result if _matches_search(p, term.lower())]

    sort = criteria.sort
    if sort.active:
        # sorted() is stable, equal keys keep their store order
        result = sorted(
            result,
            key=lambda p: _sort_value(p, sort.key),
            reverse=sort.order == SortOrder.DESC,
        )
    return result


def available_sectors(projects: Iterable[Project]) -> List[str]:
    '''Distinct non-blank sectors for the sector filter dropdown.'''
    return sorted({p.project_sector for p in projects if p.project_sector.strip()})


def sector_suggestions(projects: Iterable[Project]) -> List[str]:
    '''Predefined sectors plus every sector already in use, for the form autocomplete.'''
    existing = {p.project_sector.strip() for p in projects if p.project_sector.strip()}
    return sorted(set(PREDEFINED_SECTORS) | existing)


# ======================================================
# ☑️ Row selection
# ======================================================

@dataclass
class SelectionState:
    selected: Set[str] = field(default_factory=set)

    def toggle(self, project_id: str) -> None:
        if project_id in self.selected:
            self.selected.discard(project_id)
        else:
            self.selected.add(project_id)

    def select_all(self, visible_ids: Iterable[str]) -> None:
        self.selected |= set(visible_ids)

    def deselect_visible(self, visible_ids: Iterable[str]) -> None:
        self.selected -= set(visible_ids)

    def clear(self) -> None:
        self.selected.clear()

    def reconcile(self, visible_ids: Iterable[str]) -> None:
        '''Drop selected ids that are no longer visible.'''
        self.selected &= set(visible_ids)

    def all_selected(self, visible_ids: Iterable[str]) -> bool:
        visible = set(visible_ids)
        return bool(visible) and visible <= self.selected

    def __contains__(self, project_id: str) -> bool:
        return project_id in self.selected

    def __len__(self) -> int:
        return len(self.selected)
