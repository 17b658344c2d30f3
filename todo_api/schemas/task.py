import uuid
from datetime import date, datetime
from typing import List, Optional

from pydantic import field_validator

from todo_api.schemas.common import CamelModel


def _clean_title(v: str) -> str:
    if not v.strip():
        raise ValueError("title cannot be empty")
    return v.strip()


class TaskCreate(CamelModel):
    title: str
    description: Optional[str] = None
    completed: bool = False
    due_date: Optional[date] = None

    @field_validator("title")
    @classmethod
    def title_not_empty(cls, v):
        return _clean_title(v)


class TaskUpdate(CamelModel):
    """Partial update: only the fields present in the body are written."""

    title: Optional[str] = None
    description: Optional[str] = None
    completed: Optional[bool] = None
    due_date: Optional[date] = None

    @field_validator("title", "completed")
    @classmethod
    def not_null(cls, v, info):
        # defaults are not validated, so None here means an explicit null
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        if info.field_name == "title":
            return _clean_title(v)
        return v

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


class TaskOut(CamelModel):
    id: uuid.UUID
    owner_id: uuid.UUID
    title: str
    description: Optional[str] = None
    completed: bool
    due_date: Optional[date] = None
    created_at: datetime
    updated_at: datetime


class TaskPage(CamelModel):
    items: List[TaskOut]
    page: int
    limit: int
    total: int
    pages: int
