# investment_tracker/services/persistence_service.py
import json
import math
from typing import Any, Callable, Dict, List, Optional, Set, TypeVar
from uuid import uuid4

from pydantic import BaseModel

from investment_tracker.db.enums import (
    ProjectStage,
    ProjectLocation,
    InvestmentType,
    UserRole,
    DEFAULT_STAGE,
    DEFAULT_LOCATION,
    DEFAULT_INVESTMENT_TYPE,
    SYSTEM_ACTOR,
    RESERVED_ADMIN_USERNAME,
)
from investment_tracker.db.store import KeyValueStore
from investment_tracker.models.project import Project, coerce_non_negative
from investment_tracker.models.user import User
from investment_tracker.models.view_history import ViewHistoryEntry, MAX_HISTORY_ENTRIES
from investment_tracker.services.clock import Clock, utc_now, to_iso
from investment_tracker.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T", bound=BaseModel)

PROJECTS_KEY = "investmentProjects"
USERS_KEY = "investmentUsers"
VIEW_HISTORY_KEY = "recentlyViewedProjects_v2"

RESERVED_ADMIN_PASSWORD = "admin123"


# ======================================================
# 🌱 Seed data
# ======================================================

def seed_projects(clock: Clock = utc_now) -> List[Project]:
    '''The demo projects shown on a first visit (or after the store is wiped).'''
    now = to_iso(clock())
    rows = [
        {
            "projectName": "Solar Farm Alpha",
            "projectDescription": "100MW solar farm development providing clean energy to Keffi and surrounding areas.",
            "focalPersonName": "Alice Wonderland",
            "focalPersonPhone": "555-123-4567",
            "focalPersonEmail": "alice@example.com",
            "projectStage": ProjectStage.INITIATION,
            "projectLocation": ProjectLocation.KEFFI,
            "projectSubLocation": "Keffi GRA Extension",
            "projectSector": "Energy",
            "jobsToBeCreated": 150,
            "investmentWorth": 50000000,
            "investmentType": InvestmentType.FDI,
            "requiresFollowUp": True,
        },
        {
            "projectName": "Wind Turbine Project Beta",
            "projectDescription": "Regional wind turbine installation focused on renewable power generation in Karu.",
            "focalPersonName": "Bob The Builder",
            "focalPersonPhone": "555-987-6543",
            "focalPersonEmail": "bob@example.com",
            "projectStage": ProjectStage.MOU_SIGNED,
            "projectLocation": ProjectLocation.KARU,
            "projectSubLocation": "Mararaba Hills",
            "projectSector": "Energy",
            "jobsToBeCreated": 200,
            "investmentWorth": 75000000,
            "investmentType": InvestmentType.MIXED,
            "requiresFollowUp": False,
        },
        {
            "projectName": "Agri-Processing Hub Gamma",
            "projectDescription": "Large scale cassava processing and starch production facility.",
            "focalPersonName": "Carol Danvers",
            "focalPersonPhone": "555-111-2222",
            "focalPersonEmail": "carol@example.com",
            "projectStage": ProjectStage.MOVED_TO_SITE,
            "projectLocation": ProjectLocation.LAFIA,
            "projectSubLocation": "Shabu Industrial Area",
            "projectSector": "Agriculture",
            "jobsToBeCreated": 300,
            "investmentWorth": 25000000,
            "investmentType": InvestmentType.DDI,
            "requiresFollowUp": True,
        },
    ]
    return [
        Project(
            id=str(uuid4()),
            createdBy=SYSTEM_ACTOR,
            createdAt=now,
            lastModifiedBy=SYSTEM_ACTOR,
            updatedAt=now,
            **row,
        )
        for row in rows
    ]


def seed_users(clock: Clock = utc_now) -> List[User]:
    return [
        User(
            id=str(uuid4()),
            username=RESERVED_ADMIN_USERNAME,
            password=RESERVED_ADMIN_PASSWORD,
            role=UserRole.ADMIN,
            createdAt=to_iso(clock()),
        )
    ]


# ======================================================
# 🧹 Field-by-field reconciliation
# ======================================================

def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _enum(enum_cls, value: Any, default):
    try:
        return enum_cls(value)
    except ValueError:
        return default


def _timestamp(value: Any, fallback: str) -> str:
    return value if isinstance(value, str) and value else fallback


def reconcile_project(
    raw: Any,
    *,
    seen_ids: Optional[Set[str]] = None,
    clock: Clock = utc_now,
) -> Optional[Project]:
    """
    Rebuild a stored project record with a named default for every field.
    Records written by an older schema load with the missing fields filled in.

    :param raw: decoded JSON value of one record
    :type raw: Any
    :param seen_ids: ids already accepted in this load; a repeated id is regenerated
    :type seen_ids: Optional[Set[str]]
    :return: Project, or None when the record is not an object
    :rtype: Optional[Project]
    """
    if not isinstance(raw, dict):
        return None

    now = to_iso(clock())
    project_id = raw.get("id")
    if not isinstance(project_id, str) or not project_id or (
        seen_ids is not None and project_id in seen_ids
    ):
        project_id = str(uuid4())
    if seen_ids is not None:
        seen_ids.add(project_id)

    return Project(
        id=project_id,
        projectName=_text(raw.get("projectName")),
        projectDescription=_text(raw.get("projectDescription")),
        focalPersonName=_text(raw.get("focalPersonName")),
        focalPersonPhone=_text(raw.get("focalPersonPhone")),
        focalPersonEmail=_text(raw.get("focalPersonEmail")),
        projectStage=_enum(ProjectStage, raw.get("projectStage"), DEFAULT_STAGE),
        projectLocation=_enum(ProjectLocation, raw.get("projectLocation"), DEFAULT_LOCATION),
        projectSubLocation=_text(raw.get("projectSubLocation")),
        projectSector=_text(raw.get("projectSector")),
        jobsToBeCreated=_stored_number(raw.get("jobsToBeCreated")),
        investmentWorth=_stored_number(raw.get("investmentWorth")),
        investmentType=_enum(InvestmentType, raw.get("investmentType"), DEFAULT_INVESTMENT_TYPE),
        requiresFollowUp=bool(raw.get("requiresFollowUp")),
        createdBy=_text(raw.get("createdBy")) or SYSTEM_ACTOR,
        createdAt=_timestamp(raw.get("createdAt"), now),
        lastModifiedBy=_text(raw.get("lastModifiedBy")) or SYSTEM_ACTOR,
        updatedAt=_timestamp(raw.get("updatedAt"), now),
    )


def _stored_number(value: Any):
    # stored numbers must already be numbers; numeric strings are not trusted here
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    if isinstance(value, float) and not math.isfinite(value):
        return 0
    return coerce_non_negative(value)


def reconcile_user(raw: Any, *, clock: Clock = utc_now) -> Optional[User]:
    if not isinstance(raw, dict):
        return None
    username = _text(raw.get("username")).strip()
    if not username:
        return None
    user_id = raw.get("id")
    return User(
        id=user_id if isinstance(user_id, str) and user_id else str(uuid4()),
        username=username,
        password=_text(raw.get("password")),
        role=_enum(UserRole, raw.get("role"), UserRole.VIEWER),
        createdAt=_timestamp(raw.get("createdAt"), to_iso(clock())),
    )


def reconcile_view_entry(raw: Any) -> Optional[ViewHistoryEntry]:
    if not isinstance(raw, dict):
        return None
    project_id = raw.get("id")
    if not isinstance(project_id, str) or not project_id:
        return None
    timestamp = raw.get("timestamp")
    if isinstance(timestamp, bool) or not isinstance(timestamp, (int, float)) or not math.isfinite(timestamp):
        timestamp = 0
    return ViewHistoryEntry(id=project_id, timestamp=int(timestamp))


# ======================================================
# 💾 Persistence service
# ======================================================

class PersistenceService:
    """
    Loads and saves the three collections (projects, users, view history).

    Reads never raise: an absent key, an empty value, corrupt JSON or a
    non-list payload all degrade to the collection's default.
    Writes replace the whole collection; failures are logged and re-raised.
    """

    def __init__(
        self,
        store: KeyValueStore,
        *,
        projects_key: str = PROJECTS_KEY,
        users_key: str = USERS_KEY,
        view_history_key: str = VIEW_HISTORY_KEY,
        clock: Clock = utc_now,
    ):
        self.store = store
        self.projects_key = projects_key
        self.users_key = users_key
        self.view_history_key = view_history_key
        self.clock = clock

    # ======================================================
    # 🔧 Generic load / save
    # ======================================================

    def load(
        self,
        key: str,
        reconcile: Callable[[Any], Optional[T]],
        fallback: Callable[[], List[T]],
    ) -> List[T]:
        """
        Decode the list stored under key and reconcile each record.

        :param key: store key
        :type key: str
        :param reconcile: maps a raw record to a model, or None to drop it
        :param fallback: produces the default collection
        :return: reconciled records, or fallback() when nothing usable is stored
        :rtype: List[T]
        """
        try:
            raw = self.store.get(key)
        except Exception:
            # whatever the backend raises on read, fall back to defaults
            logger.exception(f"Failed to read '{key}' from store, using defaults")
            return fallback()

        if raw is None or not raw.strip():
            logger.info(f"No stored value for '{key}', using defaults")
            return fallback()

        try:
            decoded = json.loads(raw)
        except (json.JSONDecodeError, TypeError) as e:
            logger.warning(f"Stored value for '{key}' is not valid JSON ({e}), using defaults")
            return fallback()

        if not isinstance(decoded, list) or not decoded:
            logger.warning(f"Stored value for '{key}' is not a non-empty list, using defaults")
            return fallback()

        items: List[T] = []
        for record in decoded:
            item = reconcile(record)
            if item is None:
                logger.warning(f"Dropped unreadable record under '{key}': {record!r}")
                continue
            items.append(item)
        return items

    def save(self, key: str, items: List[BaseModel]) -> None:
        payload = json.dumps(
            [item.model_dump(mode="json", by_alias=True) for item in items],
            ensure_ascii=False,
        )
        try:
            self.store.set(key, payload)
        except Exception:
            logger.exception(f"Failed to save '{key}' ({len(items)} records)")
            raise

    # ======================================================
    # 📦 Collections
    # ======================================================

    def load_projects(self) -> List[Project]:
        seen_ids: Set[str] = set()
        return self.load(
            self.projects_key,
            lambda raw: reconcile_project(raw, seen_ids=seen_ids, clock=self.clock),
            lambda: seed_projects(self.clock),
        )

    def save_projects(self, projects: List[Project]) -> None:
        self.save(self.projects_key, projects)

    def load_users(self) -> List[User]:
        return self.load(
            self.users_key,
            lambda raw: reconcile_user(raw, clock=self.clock),
            lambda: seed_users(self.clock),
        )

    def save_users(self, users: List[User]) -> None:
        self.save(self.users_key, users)

    def load_view_history(self) -> List[ViewHistoryEntry]:
        entries = self.load(self.view_history_key, reconcile_view_entry, list)
        unique: List[ViewHistoryEntry] = []
        seen: Set[str] = set()
        for entry in entries:
            if entry.project_id in seen:
                continue
            seen.add(entry.project_id)
            unique.append(entry)
        return unique[:MAX_HISTORY_ENTRIES]

    def save_view_history(self, entries: List[ViewHistoryEntry]) -> None:
        self.save(self.view_history_key, entries)
