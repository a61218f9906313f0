"""Shared base classes and display references."""
from typing import ClassVar, Optional, Tuple

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class FieldBag(BaseModel):
    """Caller-supplied input. Accepts snake_case or camelCase keys.

    Unknown keys are dropped, not rejected.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    # Fields a partial update may not set to None or blank.
    NOT_NULL: ClassVar[Tuple[str, ...]] = ()


class Record(BaseModel):
    """Read model built from an ORM row."""

    model_config = ConfigDict(from_attributes=True)


class StageRef(Record):
    name: str
    color: Optional[str] = None


class ContactRef(Record):
    name: str
    email: Optional[str] = None
    company: Optional[str] = None
