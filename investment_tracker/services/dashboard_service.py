# investment_tracker/services/dashboard_service.py
from dataclasses import replace
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Tuple

from investment_tracker.db.enums import (
    SortKey,
    SortOrder,
    UserRole,
    GUEST_ACTOR,
    ALL_STAGES_FILTER,
    ALL_SECTORS_FILTER,
)
from investment_tracker.models.project import Project, ProjectDraft
from investment_tracker.models.user import User
from investment_tracker.services.access_control import Action, require
from investment_tracker.services.clock import Clock, utc_now
from investment_tracker.services.csv_export_service import (
    DEFAULT_EXPORT_PREFIX,
    SUFFIX_ALL,
    SUFFIX_SELECTED,
    SUFFIX_FILTERED,
    export_filename,
    export_suffix,
    to_csv,
    to_excel_bytes,
)
from investment_tracker.services.csv_import_service import ImportResult
from investment_tracker.services.pdf_report_service import pdf_filename, render_projects_pdf
from investment_tracker.services.project_service import ProjectService
from investment_tracker.services.slideshow_service import (
    SlideshowController,
    DEFAULT_SLIDE_DURATION_MS,
    DEFAULT_TICK_MS,
)
from investment_tracker.services.summary_service import (
    ProjectStats,
    summarize,
    FEATURED_SUMMARY_LIMIT,
    FEATURED_SLIDESHOW_LIMIT,
)
from investment_tracker.services.user_service import UserService
from investment_tracker.services.validation_service import (
    ProjectFormError,
    validate_project_form,
    validate_bulk_focal_update,
    focal_person_updates,
)
from investment_tracker.services.view_service import (
    SelectionState,
    SortState,
    ViewCriteria,
    available_sectors,
    next_sort_state,
    sector_suggestions,
    view,
)
from investment_tracker.logger import get_logger

logger = get_logger(__name__)

# (filename, payload)
ExportFile = Tuple[str, Any]

DEFAULT_DASHBOARD_SORT = SortState(SortKey.UPDATED_AT, SortOrder.DESC)


class DashboardSession:
    """
    One operator's session over the tracker: who is logged in, what the table
    currently shows, which rows are selected.

    Mutations and exports are gated by the logged-in role before they reach
    ProjectService / UserService. A session with nobody logged in acts as
    "guest" and may only view.
    """

    def __init__(
        self,
        project_service: ProjectService,
        user_service: UserService,
        *,
        export_prefix: str = DEFAULT_EXPORT_PREFIX,
        featured_summary_limit: int = FEATURED_SUMMARY_LIMIT,
        featured_slideshow_limit: int = FEATURED_SLIDESHOW_LIMIT,
        slide_duration_ms: int = DEFAULT_SLIDE_DURATION_MS,
        slide_tick_ms: int = DEFAULT_TICK_MS,
        clock: Clock = utc_now,
    ):
        self.project_service = project_service
        self.user_service = user_service
        self.export_prefix = export_prefix
        self.featured_summary_limit = featured_summary_limit
        self.featured_slideshow_limit = featured_slideshow_limit
        self.slide_duration_ms = slide_duration_ms
        self.slide_tick_ms = slide_tick_ms
        self.clock = clock

        self.current_user: Optional[User] = None
        self.criteria = ViewCriteria(sort=DEFAULT_DASHBOARD_SORT)
        self.selection = SelectionState()

    # ======================================================
    # 🔑 Login
    # ======================================================

    @property
    def role(self) -> Optional[UserRole]:
        return self.current_user.role if self.current_user else None

    @property
    def actor(self) -> str:
        return self.current_user.username if self.current_user else GUEST_ACTOR

    def login(self, username: str, password: str) -> User:
        '''Raises ValueError("Invalid username or password.") on failure.'''
        user = self.user_service.authenticate(username=username, password=password)
        self.current_user = user
        logger.info(f"Logged in: {user.username} ({user.role.value})")
        return user

    def logout(self) -> None:
        self.current_user = None
        self.selection.clear()

    # ======================================================
    # 🔎 Filter / search / sort
    # ======================================================

    def set_stage_filter(self, stage: Optional[str]) -> None:
        self.criteria = replace(self.criteria, stage_filter=stage or ALL_STAGES_FILTER)

    def set_sector_filter(self, sector: Optional[str]) -> None:
        self.criteria = replace(self.criteria, sector_filter=sector or ALL_SECTORS_FILTER)

    def set_search_term(self, term: str) -> None:
        self.criteria = replace(self.criteria, search_term=term or "")

    def click_sort(self, key: SortKey) -> SortState:
        sort = next_sort_state(self.criteria.sort, key)
        self.criteria = replace(self.criteria, sort=sort)
        return sort

    def reset_filters(self) -> None:
        self.criteria = ViewCriteria(sort=self.criteria.sort)

    def visible_projects(self) -> List[Project]:
        '''The table rows; selection is trimmed to what is visible.'''
        rows = view(self.project_service.projects, self.criteria)
        self.selection.reconcile(p.id for p in rows)
        return rows

    def sector_options(self) -> List[str]:
        return available_sectors(self.project_service.projects)

    def sector_suggestions(self) -> List[str]:
        return sector_suggestions(self.project_service.projects)

    # ======================================================
    # ☑️ Selection
    # ======================================================

    def toggle_selection(self, project_id: str) -> None:
        self.selection.toggle(project_id)

    def select_all_visible(self) -> None:
        self.selection.select_all(p.id for p in self.visible_projects())

    def deselect_visible(self) -> None:
        self.selection.deselect_visible(p.id for p in self.visible_projects())

    def clear_selection(self) -> None:
        self.selection.clear()

    def selected_projects(self) -> List[Project]:
        return [p for p in self.visible_projects() if p.id in self.selection]

    # ======================================================
    # ✏️ Gated mutations
    # ======================================================

    def validate_project(self, data: Mapping[str, Any], exclude_id: Optional[str] = None) -> Dict[str, str]:
        return validate_project_form(data, self.project_service.projects, exclude_id)

    def _edit_errors(self, project: Project, updates: Mapping[str, Any]) -> Dict[str, str]:
        '''
        Form errors for applying `updates` to `project`.
        Only fields the updates touch are reported; an unchanged name is not re-checked.
        '''
        merged = project.to_record()
        touched = set()
        for key, value in updates.items():
            try:
                alias = ProjectDraft.model_fields[ProjectDraft.field_name(key)].alias
            except KeyError:
                # audit and unknown keys are ProjectService's concern
                continue
            merged[alias] = value
            touched.add(alias)

        errors = validate_project_form(merged, self.project_service.projects, exclude_id=project.id)
        name = merged.get("projectName")
        if isinstance(name, str) and name.strip().lower() == project.normalized_name:
            touched.discard("projectName")
        return {field: message for field, message in errors.items() if field in touched}

    def add_project(self, data: Mapping[str, Any]) -> Project:
        '''
        :raises PermissionError: role may not create
        :raises ProjectFormError: form invalid, `errors` holds the per-field messages
        '''
        require(self.role, Action.CREATE)
        # 1️⃣ 表单校验
        errors = self.validate_project(data)
        if errors:
            raise ProjectFormError(errors)
        # 2️⃣ 写入
        return self.project_service.add_project(data=data, actor=self.actor)

    def update_project(self, project_id: str, updates: Mapping[str, Any]) -> Optional[Project]:
        require(self.role, Action.UPDATE)
        project = self.project_service.get_project(project_id)
        if project is not None:
            errors = self._edit_errors(project, updates)
            if errors:
                raise ProjectFormError(errors)
        return self.project_service.update_project(
            project_id=project_id, updates=updates, actor=self.actor
        )

    def bulk_update_selected(self, updates: Mapping[str, Any]) -> int:
        '''All selected rows are checked before any is written; one invalid row rejects the batch.'''
        require(self.role, Action.UPDATE)
        selected = self.selected_projects()
        for project in selected:
            errors = self._edit_errors(project, updates)
            if errors:
                raise ProjectFormError(errors)
        ids = [p.id for p in selected]
        count = self.project_service.bulk_update(project_ids=ids, updates=updates, actor=self.actor)
        self.selection.clear()
        return count

    def bulk_update_focal_person(self, name: str = "", phone: str = "", email: str = "") -> Optional[str]:
        '''Returns the form error when every focal field is blank, else applies the update.'''
        require(self.role, Action.UPDATE)
        updates = focal_person_updates(name, phone, email)
        error = validate_bulk_focal_update(updates)
        if error:
            return error
        self.bulk_update_selected(updates)
        return None

    def delete_project(self, project_id: str) -> bool:
        require(self.role, Action.DELETE)
        self.selection.selected.discard(project_id)
        return self.project_service.delete_project(project_id)

    def bulk_delete_selected(self) -> int:
        require(self.role, Action.DELETE)
        removed = self.project_service.bulk_delete(p.id for p in self.selected_projects())
        self.selection.clear()
        return removed

    def import_csv(self, text: str) -> ImportResult:
        require(self.role, Action.CREATE)
        return self.project_service.import_csv(text=text, actor=self.actor)

    def import_excel(self, source: Any) -> ImportResult:
        require(self.role, Action.CREATE)
        return self.project_service.import_excel(source=source, actor=self.actor)

    def view_project(self, project_id: str) -> Optional[Project]:
        project = self.project_service.get_project(project_id)
        if project is not None:
            self.project_service.record_view(project_id)
        return project

    def recently_viewed(self) -> List[Tuple[Project, int]]:
        return self.project_service.recently_viewed()

    def clear_history(self) -> None:
        self.project_service.clear_history()

    # ======================================================
    # 👥 User management (admin only)
    # ======================================================

    def add_user(self, username: str, password: str, role: UserRole = UserRole.VIEWER) -> User:
        require(self.role, Action.MANAGE_USERS)
        return self.user_service.add_user(username=username, password=password, role=role)

    def delete_user(self, user_id: str) -> None:
        require(self.role, Action.MANAGE_USERS)
        self.user_service.delete_user(user_id)

    def update_user_role(self, user_id: str, role: UserRole) -> Optional[User]:
        require(self.role, Action.MANAGE_USERS)
        return self.user_service.update_user_role(user_id=user_id, role=role)

    # ======================================================
    # 📤 Exports
    # ======================================================
    # Empty exports produce nothing (None).

    def _today(self):
        return self.clock().date()

    def _csv(self, projects: List[Project], suffix: str) -> Optional[ExportFile]:
        require(self.role, Action.EXPORT)
        if not projects:
            return None
        name = export_filename(suffix, self.export_prefix, self._today())
        return name, to_csv(projects)

    def export_all_csv(self) -> Optional[ExportFile]:
        return self._csv(self.project_service.list_projects(), SUFFIX_ALL)

    def export_selected_csv(self) -> Optional[ExportFile]:
        return self._csv(self.selected_projects(), SUFFIX_SELECTED)

    def export_visible_csv(self) -> Optional[ExportFile]:
        rows = self.visible_projects()
        return self._csv(rows, export_suffix(rows, SUFFIX_FILTERED))

    def export_project_csv(self, project_id: str) -> Optional[ExportFile]:
        project = self.project_service.get_project(project_id)
        rows = [project] if project else []
        return self._csv(rows, export_suffix(rows))

    def export_all_excel(self) -> Optional[ExportFile]:
        require(self.role, Action.EXPORT)
        projects = self.project_service.list_projects()
        if not projects:
            return None
        name = export_filename(SUFFIX_ALL, self.export_prefix, self._today(), extension="xlsx")
        return name, to_excel_bytes(projects)

    def _pdf(self, projects: List[Project]) -> Optional[ExportFile]:
        require(self.role, Action.EXPORT)
        if not projects:
            return None
        now: datetime = self.clock()
        return pdf_filename(self.export_prefix, now), render_projects_pdf(projects)

    def export_all_pdf(self) -> Optional[ExportFile]:
        return self._pdf(self.project_service.list_projects())

    def export_selected_pdf(self) -> Optional[ExportFile]:
        return self._pdf(self.selected_projects())

    # ======================================================
    # 📊 Summary / presentation
    # ======================================================

    def summary(self) -> ProjectStats:
        return summarize(self.project_service.projects, self.featured_summary_limit)

    def slideshow(self) -> SlideshowController:
        stats = summarize(self.project_service.projects, self.featured_slideshow_limit)
        return SlideshowController(
            stats,
            slide_duration_ms=self.slide_duration_ms,
            tick_ms=self.slide_tick_ms,
            featured_limit=self.featured_slideshow_limit,
        )
