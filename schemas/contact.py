"""Contact schemas."""
from datetime import datetime
from decimal import Decimal
from typing import Any, ClassVar, Dict, List, Optional, Tuple

from pydantic import Field, field_validator

from .common import FieldBag, Record, StageRef

DEFAULT_CURRENCY = "AUD"


class ContactCreate(FieldBag):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    company: Optional[str] = None
    role: Optional[str] = None
    stage_id: Optional[int] = None
    source: Optional[str] = None
    source_detail: Optional[str] = None
    assigned_to: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    custom_fields: Dict[str, Any] = Field(default_factory=dict)
    deal_value: Optional[Decimal] = None
    currency: str = DEFAULT_CURRENCY
    is_active: bool = True

    @field_validator("currency", mode="before")
    @classmethod
    def _currency_default(cls, value):
        return value or DEFAULT_CURRENCY

    @field_validator("tags", "custom_fields", mode="before")
    @classmethod
    def _empty_when_none(cls, value, info):
        if value is None:
            return [] if info.field_name == "tags" else {}
        return value

    @field_validator("is_active", mode="before")
    @classmethod
    def _active_unless_false(cls, value):
        return True if value is None else value


class ContactUpdate(FieldBag):
    """Partial update. Only keys the caller actually sent are written."""

    NOT_NULL: ClassVar[Tuple[str, ...]] = (
        "name", "tags", "custom_fields", "currency", "is_active",
    )

    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    company: Optional[str] = None
    role: Optional[str] = None
    stage_id: Optional[int] = None
    source: Optional[str] = None
    source_detail: Optional[str] = None
    assigned_to: Optional[str] = None
    tags: Optional[List[str]] = None
    custom_fields: Optional[Dict[str, Any]] = None
    deal_value: Optional[Decimal] = None
    currency: Optional[str] = None
    is_active: Optional[bool] = None
    lost_reason: Optional[str] = None
    last_contact_at: Optional[datetime] = None


class ContactRead(Record):
    id: int
    agent_id: str
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    company: Optional[str] = None
    role: Optional[str] = None
    stage_id: Optional[int] = None
    stage_entered_at: Optional[datetime] = None
    source: Optional[str] = None
    source_detail: Optional[str] = None
    assigned_to: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    custom_fields: Dict[str, Any] = Field(default_factory=dict)
    deal_value: Optional[Decimal] = None
    currency: str = DEFAULT_CURRENCY
    is_active: bool = True
    lost_reason: Optional[str] = None
    last_contact_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    stage: Optional[StageRef] = None
