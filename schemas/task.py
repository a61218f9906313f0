"""Task schemas."""
from datetime import datetime
from typing import ClassVar, Optional, Tuple

from pydantic import field_validator

from .common import ContactRef, FieldBag, Record

# Conventional values only; the store accepts any string.
PRIORITIES = ("low", "medium", "high")


class TaskCreate(FieldBag):
    title: Optional[str] = None
    contact_id: Optional[int] = None
    description: Optional[str] = None
    due_at: Optional[datetime] = None
    assigned_to: Optional[str] = None
    priority: str = "medium"

    @field_validator("priority", mode="before")
    @classmethod
    def _medium_by_default(cls, value):
        return value or "medium"


class TaskUpdate(FieldBag):
    NOT_NULL: ClassVar[Tuple[str, ...]] = ("title", "priority")

    title: Optional[str] = None
    contact_id: Optional[int] = None
    description: Optional[str] = None
    due_at: Optional[datetime] = None
    assigned_to: Optional[str] = None
    priority: Optional[str] = None


class TaskRead(Record):
    id: int
    agent_id: str
    contact_id: Optional[int] = None
    title: str
    description: Optional[str] = None
    due_at: Optional[datetime] = None
    assigned_to: Optional[str] = None
    priority: str = "medium"
    completed: bool = False
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    contact: Optional[ContactRef] = None
