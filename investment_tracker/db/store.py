# investment_tracker/db/store.py
"""
Durable key-value store used by the persistence layer.

Two implementations:
- InMemoryStore: dict backed, for tests and throwaway sessions
- SqlAlchemyStore: one row per key in `store_entries`
"""
from abc import ABC, abstractmethod
from typing import Dict, Optional

from sqlalchemy import inspect

from investment_tracker.db.session import get_engine, get_session
from investment_tracker.db.init_db import init_db
from investment_tracker.models.store_entry import StoreEntry
from investment_tracker.logger import get_logger

logger = get_logger(__name__)


class KeyValueStore(ABC):
    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        '''Return the raw text stored under key, or None when absent.'''

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        '''Overwrite the raw text stored under key.'''


class InMemoryStore(KeyValueStore):
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def __contains__(self, key: str) -> bool:
        return key in self._data


class SqlAlchemyStore(KeyValueStore):
    """
    Key-value store on top of a SQLAlchemy engine.
    Every set() is its own committed transaction (write-through).
    """

    def __init__(self, db_url: Optional[str] = None):
        self.db_url = db_url
        self._ready = False

    def _ensure_tables(self) -> None:
        if self._ready:
            return
        engine = get_engine(self.db_url)
        if "store_entries" not in inspect(engine).get_table_names():
            logger.info("store_entries table missing, creating it")
            init_db(self.db_url)
        self._ready = True

    def get(self, key: str) -> Optional[str]:
        self._ensure_tables()
        db = get_session(self.db_url)
        try:
            entry = db.get(StoreEntry, key)
            return entry.value if entry else None
        finally:
            db.close()

    def set(self, key: str, value: str) -> None:
        self._ensure_tables()
        db = get_session(self.db_url)
        try:
            entry = db.get(StoreEntry, key)
            if entry:
                entry.value = value
            else:
                db.add(StoreEntry(key=key, value=value))
            db.commit()
        except Exception:
            db.rollback()
            logger.exception(f"Failed to write store key '{key}'")
            raise
        finally:
            db.close()
