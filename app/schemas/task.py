from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

UPDATABLE_FIELDS = {"title", "completed"}


def _check_title(v: str) -> str:
    if not v.strip():
        raise ValueError("title cannot be empty")
    return v.strip()


class TaskCreate(BaseModel):
    # anything else in the body (owner included) is ignored
    title: str
    completed: bool = False

    @field_validator("title")
    @classmethod
    def title_not_empty(cls, v):
        return _check_title(v)


class TaskUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = None
    completed: Optional[bool] = None

    @field_validator("title")
    @classmethod
    def title_not_empty(cls, v):
        return _check_title(v) if v is not None else v


class TaskOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    completed: bool
    owner_id: str = Field(serialization_alias="owner")
    created_at: datetime = Field(serialization_alias="createdAt")
    updated_at: datetime = Field(serialization_alias="updatedAt")


class TaskPage(BaseModel):
    result: List[TaskOut]
    total_count: int = Field(serialization_alias="totalCount")
