# investment_tracker/models/user.py
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field

from investment_tracker.db.enums import UserRole


class User(BaseModel):
    """
    System operator of the dashboard.
    `password` is compared in plaintext unless password hashing is enabled.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str
    username: str
    password: str = ""
    role: UserRole = UserRole.VIEWER
    created_at: str = Field(alias="createdAt")

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def to_record(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
