# investment_tracker/models/project.py
import math
from typing import Any, Dict, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from investment_tracker.db.enums import (
    ProjectStage,
    ProjectLocation,
    InvestmentType,
    DEFAULT_STAGE,
    DEFAULT_LOCATION,
    DEFAULT_INVESTMENT_TYPE,
    SYSTEM_ACTOR,
)

Number = Union[int, float]


def coerce_non_negative(value: Any) -> Number:
    '''
    Coerce a numeric input to a finite, non-negative number.
    Integral floats collapse to int so 150.0 is stored as 150.
    Anything that is not a number (or a numeric string) becomes 0.
    '''
    if isinstance(value, bool):
        return 0
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return 0
    if not isinstance(value, (int, float)):
        return 0
    if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
        return 0
    value = max(0, value)
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


class ProjectDraft(BaseModel):
    """
    Editable project payload (the add / edit form).
    No identity or audit fields: those are stamped by ProjectService.
    """

    model_config = ConfigDict(populate_by_name=True)

    # =========
    # ✍️ Business editable
    # =========
    project_name: str = Field("", alias="projectName")
    project_description: str = Field("", alias="projectDescription")
    focal_person_name: str = Field("", alias="focalPersonName")
    focal_person_phone: str = Field("", alias="focalPersonPhone")
    focal_person_email: str = Field("", alias="focalPersonEmail")
    project_stage: ProjectStage = Field(DEFAULT_STAGE, alias="projectStage")
    project_location: ProjectLocation = Field(DEFAULT_LOCATION, alias="projectLocation")
    project_sub_location: str = Field("", alias="projectSubLocation")
    project_sector: str = Field("", alias="projectSector")
    jobs_to_be_created: Number = Field(0, alias="jobsToBeCreated")
    investment_worth: Number = Field(0, alias="investmentWorth")
    investment_type: InvestmentType = Field(DEFAULT_INVESTMENT_TYPE, alias="investmentType")
    requires_follow_up: bool = Field(False, alias="requiresFollowUp")

    @field_validator("jobs_to_be_created", "investment_worth", mode="before")
    @classmethod
    def _clamp_numbers(cls, value: Any) -> Number:
        return coerce_non_negative(value)

    @classmethod
    def field_name(cls, key: str) -> str:
        '''
        Resolve a camelCase store key or a snake_case attribute to the attribute name.
        Raises KeyError for unknown fields.
        '''
        if key in cls.model_fields:
            return key
        for name, info in cls.model_fields.items():
            if info.alias == key:
                return name
        raise KeyError(key)


class Project(ProjectDraft):
    """
    Investment project record.

    Invariants:
    - id is immutable
    - created_at <= updated_at
    - numeric fields are never negative
    """

    # =========
    # 🔒 Immutable facts
    # =========
    id: str
    created_by: str = Field(SYSTEM_ACTOR, alias="createdBy")
    created_at: str = Field(alias="createdAt")

    # =========
    # 🔁 System maintained
    # =========
    last_modified_by: str = Field(SYSTEM_ACTOR, alias="lastModifiedBy")
    updated_at: str = Field(alias="updatedAt")

    @model_validator(mode="after")
    def _order_timestamps(self) -> "Project":
        # ISO-8601 UTC strings compare chronologically
        if self.updated_at < self.created_at:
            self.updated_at = self.created_at
        return self

    @property
    def normalized_name(self) -> str:
        return self.project_name.strip().lower()

    def to_record(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

    def __repr__(self) -> str:
        return f"<Project id={self.id} name={self.project_name}>"


IMMUTABLE_PROJECT_FIELDS = frozenset({"id", "created_at", "created_by"})
