'''“组装 Tracker 的工厂”（不启动，无行为副作用）
app_factory.py 负责读取配置、选择存储后端、把各个 service 拼接好，
但不负责运行任何命令。会被 run.py / create_admin.py / 单元测试调用'''
# investment_tracker/app_factory.py
import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

from investment_tracker.db.store import KeyValueStore, SqlAlchemyStore
from investment_tracker.services.clock import Clock, utc_now
from investment_tracker.services.dashboard_service import DashboardSession
from investment_tracker.services.persistence_service import (
    PersistenceService,
    PROJECTS_KEY,
    USERS_KEY,
    VIEW_HISTORY_KEY,
)
from investment_tracker.services.project_service import ProjectService
from investment_tracker.services.user_service import UserService

# 加载环境变量
load_dotenv()

# 获取项目根目录（使用绝对路径）
BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


def _default_db_url() -> str:
    return f"sqlite:///{os.path.join(BASE_DIR, 'tracker_store.db')}"


@dataclass
class TrackerConfig:
    database_url: str = field(default_factory=_default_db_url)
    projects_key: str = PROJECTS_KEY
    users_key: str = USERS_KEY
    view_history_key: str = VIEW_HISTORY_KEY
    export_prefix: str = "nasida"
    hash_passwords: bool = False
    slide_duration_ms: int = 10000
    slide_tick_ms: int = 100
    featured_summary_limit: int = 5
    featured_slideshow_limit: int = 10

    @classmethod
    def from_env(cls) -> "TrackerConfig":
        return cls(
            database_url=os.getenv("DATABASE_URL", _default_db_url()),
            projects_key=os.getenv("PROJECTS_KEY", PROJECTS_KEY),
            users_key=os.getenv("USERS_KEY", USERS_KEY),
            view_history_key=os.getenv("VIEW_HISTORY_KEY", VIEW_HISTORY_KEY),
            export_prefix=os.getenv("EXPORT_PREFIX", "nasida"),
            hash_passwords=_env_flag("HASH_PASSWORDS"),
            slide_duration_ms=int(os.getenv("SLIDE_DURATION_MS", 10000)),
            slide_tick_ms=int(os.getenv("SLIDE_TICK_MS", 100)),
            featured_summary_limit=int(os.getenv("FEATURED_SUMMARY_LIMIT", 5)),
            featured_slideshow_limit=int(os.getenv("FEATURED_SLIDESHOW_LIMIT", 10)),
        )


@dataclass
class TrackerApp:
    config: TrackerConfig
    store: KeyValueStore
    persistence: PersistenceService
    users: UserService
    projects: ProjectService
    clock: Clock = utc_now

    def new_session(self) -> DashboardSession:
        return DashboardSession(
            self.projects,
            self.users,
            export_prefix=self.config.export_prefix,
            featured_summary_limit=self.config.featured_summary_limit,
            featured_slideshow_limit=self.config.featured_slideshow_limit,
            slide_duration_ms=self.config.slide_duration_ms,
            slide_tick_ms=self.config.slide_tick_ms,
            clock=self.clock,
        )


def create_app(
    config: Optional[TrackerConfig] = None,
    *,
    store: Optional[KeyValueStore] = None,
    clock: Clock = utc_now,
) -> TrackerApp:
    """应用工厂函数"""
    config = config or TrackerConfig.from_env()
    # 未注入存储时使用数据库（表在首次读写时自动创建）
    store = store if store is not None else SqlAlchemyStore(config.database_url)

    persistence = PersistenceService(
        store,
        projects_key=config.projects_key,
        users_key=config.users_key,
        view_history_key=config.view_history_key,
        clock=clock,
    )
    users = UserService(persistence, hash_passwords=config.hash_passwords, clock=clock)
    projects = ProjectService(persistence, clock=clock)

    return TrackerApp(
        config=config,
        store=store,
        persistence=persistence,
        users=users,
        projects=projects,
        clock=clock,
    )
