# investment_tracker/models/store_entry.py
from datetime import datetime

from sqlalchemy import String, Text, DateTime, func
from sqlalchemy.orm import Mapped, mapped_column

from investment_tracker.db.base import Base


class StoreEntry(Base):
    """
    One durable key-value slot. Each collection (projects / users /
    view-history) lives under its own key as a JSON array.
    """

    __tablename__ = "store_entries"

    key: Mapped[str] = mapped_column(
        String(100),
        primary_key=True,
        comment="Collection key",
    )

    value: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Serialized collection (JSON text)",
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
        comment="Last write timestamp",
    )

    def __repr__(self) -> str:
        return f"<StoreEntry key={self.key} size={len(self.value or '')}>"
