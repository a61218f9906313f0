"""SQLAlchemy 2.0 ORM models for the CRM.

Covers 4 tables, each partitioned by agent_id (the tenant key):
  - crm_stages:       ordered pipeline steps
  - crm_contacts:     people moving through the pipeline
  - crm_interactions: logged touchpoints (calls, emails, notes, ...)
  - crm_tasks:        follow-up action items
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    JSON,
    Numeric,
    Text,
)
from sqlalchemy.dialects import postgresql
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql import func


# ---------------------------------------------------------------------------
# Shared base
# ---------------------------------------------------------------------------


class Base(DeclarativeBase):
    pass


# BIGSERIAL on PostgreSQL; SQLite only autoincrements INTEGER PRIMARY KEY.
_PK = BigInteger().with_variant(Integer, "sqlite")

# TEXT[] on PostgreSQL (overlap queries); a JSON array on SQLite.
_TAGS = postgresql.ARRAY(Text).with_variant(JSON, "sqlite")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ===========================================================================
# Pipeline
# ===========================================================================


class Stage(Base):
    """crm_stages: a named, ordered step in a tenant's sales pipeline."""

    __tablename__ = "crm_stages"
    __table_args__ = (Index("ix_crm_stages_agent_position", "agent_id", "position"),)

    id: Mapped[int] = mapped_column(_PK, primary_key=True, autoincrement=True)
    agent_id: Mapped[str] = mapped_column(Text, nullable=False, server_default="default")
    name: Mapped[str] = mapped_column(Text, nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    color: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )


class Contact(Base):
    """crm_contacts: a person (lead, prospect or customer) in the pipeline."""

    __tablename__ = "crm_contacts"
    __table_args__ = (
        Index("ix_crm_contacts_agent_stage", "agent_id", "stage_id"),
        Index("ix_crm_contacts_agent_updated", "agent_id", "updated_at"),
    )

    id: Mapped[int] = mapped_column(_PK, primary_key=True, autoincrement=True)
    agent_id: Mapped[str] = mapped_column(Text, nullable=False, server_default="default")
    name: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    company: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    role: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    stage_id: Mapped[Optional[int]] = mapped_column(
        _PK, ForeignKey("crm_stages.id", ondelete="SET NULL"), nullable=True
    )
    stage_entered_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    source: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    source_detail: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    assigned_to: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    tags: Mapped[list[str]] = mapped_column(_TAGS, nullable=False, default=list)
    custom_fields: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    deal_value: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 2), nullable=True)
    currency: Mapped[str] = mapped_column(Text, nullable=False, default="AUD", server_default="AUD")
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default="true"
    )
    lost_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    last_contact_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
        nullable=False,
    )

    # Display join for read records; always loaded with the contact.
    stage: Mapped[Optional["Stage"]] = relationship("Stage", lazy="joined")


class Interaction(Base):
    """crm_interactions: a logged touchpoint with a contact.

    `type` is free-form (call, email, meeting, note, ...). The JSON column is
    named "metadata" in the table; the attribute is `meta` because
    DeclarativeBase reserves `metadata`.
    """

    __tablename__ = "crm_interactions"
    __table_args__ = (
        Index("ix_crm_interactions_agent_created", "agent_id", "created_at"),
        Index("ix_crm_interactions_contact", "contact_id"),
    )

    id: Mapped[int] = mapped_column(_PK, primary_key=True, autoincrement=True)
    agent_id: Mapped[str] = mapped_column(Text, nullable=False, server_default="default")
    contact_id: Mapped[int] = mapped_column(
        _PK, ForeignKey("crm_contacts.id", ondelete="CASCADE"), nullable=False
    )
    type: Mapped[str] = mapped_column(Text, nullable=False)
    subject: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_by: Mapped[str] = mapped_column(Text, nullable=False)
    created_by_type: Mapped[str] = mapped_column(
        Text, nullable=False, default="agent", server_default="agent"
    )
    scheduled_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    meta: Mapped[dict[str, Any]] = mapped_column("metadata", JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    contact: Mapped["Contact"] = relationship("Contact", lazy="joined")


class Task(Base):
    """crm_tasks: a follow-up item, optionally tied to a contact."""

    __tablename__ = "crm_tasks"
    __table_args__ = (
        Index("ix_crm_tasks_agent_completed_due", "agent_id", "completed", "due_at"),
    )

    id: Mapped[int] = mapped_column(_PK, primary_key=True, autoincrement=True)
    agent_id: Mapped[str] = mapped_column(Text, nullable=False, server_default="default")
    contact_id: Mapped[Optional[int]] = mapped_column(
        _PK, ForeignKey("crm_contacts.id", ondelete="CASCADE"), nullable=True
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    due_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    assigned_to: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    priority: Mapped[str] = mapped_column(
        Text, nullable=False, default="medium", server_default="medium"
    )
    completed: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="false"
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    contact: Mapped[Optional["Contact"]] = relationship("Contact", lazy="joined")
