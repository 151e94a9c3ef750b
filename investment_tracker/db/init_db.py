from investment_tracker.db.session import get_engine
from investment_tracker.db.base import Base
# register tables on Base.metadata
from investment_tracker.models.store_entry import StoreEntry  # noqa: F401

def init_db(db_url: str = None):
    engine = get_engine(db_url)
    Base.metadata.create_all(bind=engine)
