"""Interaction schemas."""
from datetime import datetime
from typing import Any, ClassVar, Dict, Optional, Tuple

from pydantic import AliasChoices, Field, field_validator

from .common import ContactRef, FieldBag, Record


class InteractionCreate(FieldBag):
    contact_id: Optional[int] = None
    type: Optional[str] = None
    subject: Optional[str] = None
    content: Optional[str] = None
    created_by: Optional[str] = None
    created_by_type: str = "agent"
    scheduled_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("created_by_type", mode="before")
    @classmethod
    def _agent_by_default(cls, value):
        return value or "agent"

    @field_validator("metadata", mode="before")
    @classmethod
    def _empty_when_none(cls, value):
        return {} if value is None else value


class InteractionUpdate(FieldBag):
    NOT_NULL: ClassVar[Tuple[str, ...]] = ("type", "metadata")

    type: Optional[str] = None
    subject: Optional[str] = None
    content: Optional[str] = None
    scheduled_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    metadata: Optional[Dict[str, Any]] = None


class InteractionRead(Record):
    id: int
    agent_id: str
    contact_id: int
    type: str
    subject: Optional[str] = None
    content: Optional[str] = None
    created_by: str
    created_by_type: str = "agent"
    scheduled_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    # The ORM attribute is `meta`; the column and this field are "metadata".
    metadata: Dict[str, Any] = Field(
        default_factory=dict, validation_alias=AliasChoices("meta", "metadata")
    )
    created_at: Optional[datetime] = None
    contact: Optional[ContactRef] = None
