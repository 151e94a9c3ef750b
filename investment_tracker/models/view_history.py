# investment_tracker/models/view_history.py
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field

MAX_HISTORY_ENTRIES = 6


class ViewHistoryEntry(BaseModel):
    '''A recently viewed project reference, stored as {id, timestamp}.'''

    model_config = ConfigDict(populate_by_name=True)

    project_id: str = Field(alias="id")
    timestamp: int = 0  # epoch milliseconds

    def to_record(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
