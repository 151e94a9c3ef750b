# investment_tracker/db/session.py
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
import os

from investment_tracker.logger import get_logger

logger = get_logger(__name__)

_engines = {}
_session_factories = {}


def get_engine(db_url: str = None) -> Engine:
    '''
    Return the (cached) engine for db_url, falling back to DATABASE_URL.
    '''
    db_url = db_url or os.environ.get("DATABASE_URL")
    if not db_url:
        raise RuntimeError("DATABASE_URL not set")
    if db_url not in _engines:
        logger.info(f"Using database URL: {db_url}")
        connect_args = {"check_same_thread": False} if db_url.startswith("sqlite") else {}
        _engines[db_url] = create_engine(db_url, connect_args=connect_args)
    return _engines[db_url]


def get_session(db_url: str = None) -> Session:
    engine = get_engine(db_url)
    key = str(engine.url)
    if key not in _session_factories:
        _session_factories[key] = sessionmaker(
            autocommit=False,
            autoflush=False,
            bind=engine,
        )
    return _session_factories[key]()


def dispose_engines() -> None:
    '''Close every pooled connection (tests / shutdown).'''
    for engine in _engines.values():
        engine.dispose()
    _engines.clear()
    _session_factories.clear()
