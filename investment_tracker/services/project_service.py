# investment_tracker/services/project_service.py
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union
from uuid import uuid4

from investment_tracker.db.enums import GUEST_ACTOR
from investment_tracker.models.project import Project, ProjectDraft, IMMUTABLE_PROJECT_FIELDS
from investment_tracker.models.view_history import ViewHistoryEntry, MAX_HISTORY_ENTRIES
from investment_tracker.services.clock import Clock, utc_now, to_iso, to_epoch_ms, next_timestamp
from investment_tracker.services.csv_import_service import ImportResult, parse_csv, parse_excel
from investment_tracker.services.persistence_service import PersistenceService
from investment_tracker.services.validation_service import name_taken
from investment_tracker.logger import get_logger

logger = get_logger(__name__)

# stamped by the service, never taken from caller updates
_AUDIT_FIELDS = IMMUTABLE_PROJECT_FIELDS | {"last_modified_by", "updated_at"}


class ProjectService:
    """
    Owns the in-memory project collection and the view history.

    Every mutation updates memory first and then saves the whole affected
    collection (write-through), so a reload never sees newer state than was saved.
    Newest projects are kept at the front of the collection.
    """

    def __init__(self, persistence: PersistenceService, *, clock: Clock = utc_now):
        self.persistence = persistence
        self.clock = clock
        self.projects: List[Project] = persistence.load_projects()
        self.history: List[ViewHistoryEntry] = persistence.load_view_history()

    # ======================================================
    # 🔍 Lookup
    # ======================================================

    def list_projects(self) -> List[Project]:
        return list(self.projects)

    def get_project(self, project_id: str) -> Optional[Project]:
        return next((p for p in self.projects if p.id == project_id), None)

    # ======================================================
    # ➕ Create
    # ======================================================

    def add_project(
        self,
        *,
        data: Union[ProjectDraft, Mapping[str, Any]],
        actor: Optional[str] = None,
    ) -> Project:
        """
        Create a project from form data and put it at the front of the collection.

        :param data: form payload (ProjectDraft or a dict keyed by store keys)
        :type data: Union[ProjectDraft, Mapping[str, Any]]
        :param actor: username of the operator, "guest" when nobody is logged in
        :type actor: Optional[str]
        :return: the stamped Project
        :rtype: Project
        """
        draft = data if isinstance(data, ProjectDraft) else ProjectDraft.model_validate(dict(data))

        # 1️⃣ 名称唯一性校验
        if name_taken(draft.project_name, self.projects):
            raise ValueError(f"Project '{draft.project_name}' already exists")

        # 2️⃣ 盖章
        actor = actor or GUEST_ACTOR
        now = to_iso(self.clock())
        project = Project(
            id=str(uuid4()),
            createdBy=actor,
            createdAt=now,
            lastModifiedBy=actor,
            updatedAt=now,
            **draft.model_dump(by_alias=True),
        )

        self.projects.insert(0, project)
        self.persistence.save_projects(self.projects)
        logger.info(f"Project created: {project.project_name} ({project.id}) by {actor}")
        return project

    def bulk_add_projects(self, projects: Iterable[Project]) -> None:
        '''Prepend an already stamped batch (from import), keeping batch order.'''
        batch = list(projects)
        if not batch:
            return
        self.projects[:0] = batch
        self.persistence.save_projects(self.projects)
        logger.info(f"Bulk added {len(batch)} projects")

    # ======================================================
    # ✏️ Update
    # ======================================================

    def _merge(self, project: Project, updates: Mapping[str, Any], actor: str) -> Project:
        record = project.model_dump()
        for key, value in updates.items():
            try:
                name = Project.field_name(key)
            except KeyError:
                raise ValueError(f"Unknown project field '{key}'")
            if name in _AUDIT_FIELDS:
                continue
            record[name] = value

        record["last_modified_by"] = actor
        record["updated_at"] = next_timestamp(project.updated_at, self.clock)
        return Project.model_validate(record)

    def _check_rename(self, original: Project, merged: Project, others: Iterable[Project]) -> None:
        if merged.normalized_name == original.normalized_name:
            return
        if name_taken(merged.project_name, others, exclude_id=merged.id):
            raise ValueError(f"Another project named '{merged.project_name}' already exists")

    def update_project(
        self,
        *,
        project_id: str,
        updates: Mapping[str, Any],
        actor: Optional[str] = None,
    ) -> Optional[Project]:
        """
        Merge partial updates into one project and restamp it.
        id / createdAt / createdBy cannot change; unknown id is a silent no-op.

        :param project_id: target project id
        :type project_id: str
        :param updates: changed fields, keyed by store key or attribute name
        :type updates: Mapping[str, Any]
        :param actor: operator username
        :type actor: Optional[str]
        :return: the updated Project, or None when the id no longer exists
        :rtype: Optional[Project]
        """
        actor = actor or GUEST_ACTOR
        for index, project in enumerate(self.projects):
            if project.id != project_id:
                continue
            merged = self._merge(project, updates, actor)
            self._check_rename(project, merged, self.projects)
            self.projects[index] = merged
            self.persistence.save_projects(self.projects)
            logger.info(f"Project updated: {merged.id} by {actor} ({', '.join(updates)})")
            return merged

        logger.info(f"Update skipped, project {project_id} not found")
        return None

    def bulk_update(
        self,
        *,
        project_ids: Iterable[str],
        updates: Mapping[str, Any],
        actor: Optional[str] = None,
    ) -> int:
        '''Apply the same partial update to every matching id; returns how many changed.'''
        actor = actor or GUEST_ACTOR
        targets = set(project_ids)
        updated = list(self.projects)
        count = 0
        for index, project in enumerate(updated):
            if project.id not in targets:
                continue
            merged = self._merge(project, updates, actor)
            self._check_rename(project, merged, updated)
            updated[index] = merged
            count += 1

        if count:
            self.projects = updated
            self.persistence.save_projects(self.projects)
            logger.info(f"Bulk updated {count} projects by {actor}")
        return count

    # ======================================================
    # 🗑️ Delete
    # ======================================================

    def delete_project(self, project_id: str) -> bool:
        return self.bulk_delete([project_id]) > 0

    def bulk_delete(self, project_ids: Iterable[str]) -> int:
        '''Set-based removal; history entries of removed projects are purged too.'''
        doomed = set(project_ids)
        remaining = [p for p in self.projects if p.id not in doomed]
        removed = len(self.projects) - len(remaining)
        if not removed:
            return 0

        self.projects = remaining
        self.persistence.save_projects(self.projects)

        history = [e for e in self.history if e.project_id not in doomed]
        if len(history) != len(self.history):
            self.history = history
            self.persistence.save_view_history(self.history)

        logger.info(f"Deleted {removed} projects")
        return removed

    # ======================================================
    # 📥 Import
    # ======================================================

    def import_csv(self, *, text: str, actor: Optional[str] = None) -> ImportResult:
        result = parse_csv(text, self.projects, actor or GUEST_ACTOR, now=to_iso(self.clock()))
        self.bulk_add_projects(result.accepted)
        return result

    def import_excel(self, *, source: Any, actor: Optional[str] = None) -> ImportResult:
        result = parse_excel(source, self.projects, actor or GUEST_ACTOR, now=to_iso(self.clock()))
        self.bulk_add_projects(result.accepted)
        return result

    # ======================================================
    # 🕘 Recently viewed
    # ======================================================

    def record_view(self, project_id: str) -> None:
        '''Move (or add) the project to the front of the history, keeping at most 6 entries.'''
        if self.get_project(project_id) is None:
            return
        entry = ViewHistoryEntry(id=project_id, timestamp=to_epoch_ms(self.clock()))
        rest = [e for e in self.history if e.project_id != project_id]
        self.history = [entry] + rest[: MAX_HISTORY_ENTRIES - 1]
        self.persistence.save_view_history(self.history)

    def clear_history(self) -> None:
        self.history = []
        self.persistence.save_view_history(self.history)

    def recently_viewed(self) -> List[Tuple[Project, int]]:
        '''(project, viewed_at_ms) pairs, most recent first; deleted projects are skipped.'''
        by_id: Dict[str, Project] = {p.id: p for p in self.projects}
        return [
            (by_id[e.project_id], e.timestamp)
            for e in self.history
            if e.project_id in by_id
        ]
