"""Pydantic schemas for tasks.

Learn: Separate schemas for create/update/read keeps the API clean.
- TaskCreate: what you POST to create a task ({"task": {...}})
- TaskUpdate: what you PATCH to modify a task (only sent fields applied)
- TaskRead: what the API returns

`user_id` is not accepted by either write schema: ownership comes from
the access token and never changes after creation.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field, field_validator

TITLE_MAX_LENGTH = 200
CONTENT_MAX_LENGTH = 2000


def _title_present(value: Optional[str]) -> str:
    if value is None or not value.strip():
        raise ValueError("can't be blank")
    return value


def _utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class TaskCreate(BaseModel):
    title: str = Field(..., max_length=TITLE_MAX_LENGTH)
    content: Optional[str] = Field(None, max_length=CONTENT_MAX_LENGTH)
    checked: bool = False
    due_to: Optional[datetime] = None

    @field_validator("title")
    @classmethod
    def title_present(cls, v: str) -> str:
        return _title_present(v)

    @field_validator("due_to")
    @classmethod
    def due_to_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _utc(v)


class TaskCreateRequest(BaseModel):
    task: TaskCreate


class TaskUpdate(BaseModel):
    """Partial update — only fields present in the body are applied.

    An explicit `"title": null` is a validation error, not a no-op.
    """
    title: Optional[str] = Field(None, max_length=TITLE_MAX_LENGTH)
    content: Optional[str] = Field(None, max_length=CONTENT_MAX_LENGTH)
    checked: Optional[bool] = None
    due_to: Optional[datetime] = None

    @field_validator("title")
    @classmethod
    def title_present(cls, v: Optional[str]) -> str:
        return _title_present(v)

    @field_validator("checked")
    @classmethod
    def checked_not_null(cls, v: Optional[bool]) -> bool:
        if v is None:
            raise ValueError("must be true or false")
        return v

    @field_validator("due_to")
    @classmethod
    def due_to_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _utc(v)

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


class TaskUpdateRequest(BaseModel):
    task: TaskUpdate


class TaskRead(BaseModel):
    id: int
    title: str
    content: Optional[str]
    checked: bool
    due_to: Optional[datetime]
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @field_validator("due_to", "created_at", "updated_at")
    @classmethod
    def as_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _utc(v)
