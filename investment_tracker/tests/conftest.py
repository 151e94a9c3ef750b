# investment_tracker/tests/conftest.py
import os
import tempfile
from datetime import datetime, timedelta, timezone

import pytest

# 测试日志写到临时目录，不污染工作区
os.environ.setdefault("LOG_DIR", os.path.join(tempfile.gettempdir(), "investment_tracker_test_logs"))

from investment_tracker.app_factory import TrackerConfig, create_app
from investment_tracker.db.enums import ProjectStage, ProjectLocation, InvestmentType
from investment_tracker.db.store import InMemoryStore
from investment_tracker.models.project import Project
from investment_tracker.services.clock import to_iso
from investment_tracker.services.persistence_service import PersistenceService
from investment_tracker.services.project_service import ProjectService
from investment_tracker.services.user_service import UserService


class FixedClock:
    '''可手动推进的时钟，所有 service 共享同一个实例'''

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FixedClock(datetime(2025, 1, 31, 9, 15, tzinfo=timezone.utc))


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def persistence(store, clock):
    return PersistenceService(store, clock=clock)


@pytest.fixture
def project_service(persistence, clock):
    # 空存储 -> 三个种子项目
    return ProjectService(persistence, clock=clock)


@pytest.fixture
def user_service(persistence, clock):
    return UserService(persistence, clock=clock)


@pytest.fixture
def make_project(clock):
    counter = {"n": 0}

    def _make(name: str = None, **fields) -> Project:
        counter["n"] += 1
        now = to_iso(clock())
        data = {
            "id": f"p-{counter['n']}",
            "projectName": name or f"Project {counter['n']}",
            "projectSector": "Energy",
            "focalPersonName": "Jane Doe",
            "projectStage": ProjectStage.INITIATION,
            "projectLocation": ProjectLocation.KEFFI,
            "investmentType": InvestmentType.DDI,
            "createdAt": now,
            "updatedAt": now,
        }
        data.update(fields)
        return Project.model_validate(data)

    return _make


@pytest.fixture
def tracker(store, clock):
    config = TrackerConfig(database_url="sqlite://")
    return create_app(config, store=store, clock=clock)
