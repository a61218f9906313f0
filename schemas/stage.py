"""Pipeline stage schemas."""
from datetime import datetime
from typing import ClassVar, List, Literal, Optional, Tuple

from pydantic import BaseModel

from .common import FieldBag, Record


class StageCreate(FieldBag):
    name: Optional[str] = None
    position: Optional[int] = None
    color: Optional[str] = None


class StageUpdate(FieldBag):
    NOT_NULL: ClassVar[Tuple[str, ...]] = ("name", "position")

    name: Optional[str] = None
    position: Optional[int] = None
    color: Optional[str] = None


class StageRead(Record):
    id: int
    agent_id: str
    name: str
    position: int
    color: Optional[str] = None
    created_at: Optional[datetime] = None


class StageInitResult(BaseModel):
    status: Literal["initialized", "already_initialized"]
    stages: List[StageRead]
