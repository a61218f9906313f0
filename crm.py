"""CRM façade: pipeline stages, contacts, interactions, tasks and reports.

One CRM instance is bound to one tenant (agent_id). Every method opens its
own unit of work, so each call is a single transaction against the store.
Inputs are plain field bags (dicts with snake_case or camelCase keys, or the
matching pydantic model); outputs are read records from `schemas`.

Usage:
    async with CRM(agent_id="acme") as crm:
        await crm.initialize_default_stages()
        contact = await crm.create_contact({"name": "Jane", "dealValue": 500})
        await crm.log_call(contact.id, created_by="alice", duration=300)
"""
import logging
from datetime import datetime
from typing import Any, Mapping, Optional, Type, TypeVar, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

import db.repositories.contacts as contacts_repo
import db.repositories.interactions as interactions_repo
import db.repositories.stages as stages_repo
import db.repositories.stats as stats_repo
import db.repositories.tasks as tasks_repo
from crm_config import get_agent_id
from crm_errors import MissingFieldError, ValidationError
from db.connection import dispose_engine, get_db
from db.models import utcnow
from schemas import (
    ActivityStats,
    ContactCreate,
    ContactRead,
    ContactUpdate,
    FieldBag,
    InteractionCreate,
    InteractionRead,
    InteractionUpdate,
    PipelineStats,
    StageCreate,
    StageInitResult,
    StageRead,
    StageUpdate,
    StatsOverview,
    TaskCreate,
    TaskRead,
    TaskUpdate,
)

logger = logging.getLogger(__name__)

DEFAULT_STAGES = (
    {"name": "Lead", "position": 1, "color": "#6366f1"},
    {"name": "Contacted", "position": 2, "color": "#8b5cf6"},
    {"name": "Qualified", "position": 3, "color": "#a855f7"},
    {"name": "Proposal", "position": 4, "color": "#d946ef"},
    {"name": "Negotiation", "position": 5, "color": "#ec4899"},
    {"name": "Won", "position": 6, "color": "#22c55e"},
)

M = TypeVar("M", bound=BaseModel)
Fields = Union[Mapping[str, Any], BaseModel, None]


def _parse(schema: Type[M], data: Fields) -> M:
    """Coerce a field bag into `schema`, reporting the first bad field."""
    if isinstance(data, schema):
        return data
    if isinstance(data, BaseModel):
        data = data.model_dump(exclude_unset=True)
    try:
        return schema.model_validate(dict(data or {}))
    except PydanticValidationError as exc:
        error = exc.errors()[0]
        field = ".".join(str(part) for part in error["loc"]) or schema.__name__
        raise ValidationError(field, f"{field}: {error['msg']}") from exc


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _require(bag: BaseModel, *fields: str) -> None:
    for field in fields:
        if _blank(getattr(bag, field)):
            raise MissingFieldError(field)


def _changes(schema: Type[FieldBag], data: Fields) -> dict:
    """Parse a partial update into the keys the caller actually sent.

    Sending None (or a blank string) for a NOT_NULL field raises
    MissingFieldError instead of reaching the store.
    """
    changes = _parse(schema, data).model_dump(exclude_unset=True)
    for field in schema.NOT_NULL:
        if field in changes and _blank(changes[field]):
            raise MissingFieldError(field)
    return changes


class CRM:
    """Tenant-scoped entry point for every CRM operation."""

    def __init__(
        self,
        agent_id: Optional[str] = None,
        sessionmaker: Optional[async_sessionmaker[AsyncSession]] = None,
    ):
        self.agent_id = agent_id or get_agent_id()
        # None means the process-wide engine built from DATABASE_URL.
        self._sessionmaker = sessionmaker

    async def __aenter__(self) -> "CRM":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def _db(self):
        return get_db(self._sessionmaker)

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def list_stages(self) -> list[StageRead]:
        async with self._db() as session:
            stages = await stages_repo.list_stages(session, self.agent_id)
            return [StageRead.model_validate(s) for s in stages]

    async def get_stage(self, stage_id: int) -> StageRead:
        async with self._db() as session:
            stage = await stages_repo.get_stage(session, self.agent_id, stage_id)
            return StageRead.model_validate(stage)

    async def create_stage(self, data: Fields) -> StageRead:
        """Create a stage; without a position it goes to the end (count + 1).

        The count and the insert are not guarded against a concurrent
        create_stage for the same tenant, so two callers can end up sharing
        a position. reorder_stages repairs that.
        """
        bag = _parse(StageCreate, data)
        _require(bag, "name")
        async with self._db() as session:
            position = bag.position
            if position is None:
                position = await stages_repo.count_stages(session, self.agent_id) + 1
            stage = await stages_repo.create_stage(
                session, self.agent_id, bag.name, position, bag.color
            )
            return StageRead.model_validate(stage)

    async def update_stage(self, stage_id: int, data: Fields) -> StageRead:
        changes = _changes(StageUpdate, data)
        async with self._db() as session:
            stage = await stages_repo.update_stage(session, self.agent_id, stage_id, changes)
            return StageRead.model_validate(stage)

    async def delete_stage(self, stage_id: int) -> None:
        """Delete a stage. Contacts in it become unstaged, not deleted."""
        async with self._db() as session:
            await stages_repo.delete_stage(session, self.agent_id, stage_id)

    async def reorder_stages(self, stage_ids: list[int]) -> list[StageRead]:
        """Rewrite positions so list_stages returns exactly this id order."""
        async with self._db() as session:
            stages = await stages_repo.reorder_stages(session, self.agent_id, list(stage_ids))
            return [StageRead.model_validate(s) for s in stages]

    async def initialize_default_stages(self) -> StageInitResult:
        """Seed the six default stages unless the tenant already has any."""
        async with self._db() as session:
            existing = await stages_repo.list_stages(session, self.agent_id)
            if existing:
                return StageInitResult(
                    status="already_initialized",
                    stages=[StageRead.model_validate(s) for s in existing],
                )
            created = []
            for defaults in DEFAULT_STAGES:
                created.append(
                    await stages_repo.create_stage(session, self.agent_id, **defaults)
                )
            logger.info("Seeded %d default stages for agent %s", len(created), self.agent_id)
            return StageInitResult(
                status="initialized",
                stages=[StageRead.model_validate(s) for s in created],
            )

    # ------------------------------------------------------------------
    # Contacts
    # ------------------------------------------------------------------

    async def list_contacts(
        self,
        *,
        stage_id: Optional[int] = None,
        is_active: Optional[bool] = None,
        assigned_to: Optional[str] = None,
        tags: Optional[list[str]] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> list[ContactRead]:
        async with self._db() as session:
            contacts = await contacts_repo.list_contacts(
                session,
                self.agent_id,
                stage_id=stage_id,
                is_active=is_active,
                assigned_to=assigned_to,
                tags=tags,
                limit=limit,
                offset=offset,
            )
            return [ContactRead.model_validate(c) for c in contacts]

    async def get_contact(self, contact_id: int) -> ContactRead:
        async with self._db() as session:
            contact = await contacts_repo.get_contact(session, self.agent_id, contact_id)
            return ContactRead.model_validate(contact)

    async def create_contact(self, data: Fields) -> ContactRead:
        bag = _parse(ContactCreate, data)
        _require(bag, "name")
        async with self._db() as session:
            contact = await contacts_repo.create_contact(
                session, self.agent_id, bag.model_dump()
            )
            return ContactRead.model_validate(contact)

    async def update_contact(self, contact_id: int, data: Fields) -> ContactRead:
        """Partial update; keys the contact does not have are ignored."""
        changes = _changes(ContactUpdate, data)
        async with self._db() as session:
            contact = await contacts_repo.update_contact(
                session, self.agent_id, contact_id, changes
            )
            return ContactRead.model_validate(contact)

    async def move_stage(self, contact_id: int, stage_id: Optional[int]) -> ContactRead:
        """Move a contact to a stage, restarting its time-in-stage clock."""
        async with self._db() as session:
            contact = await contacts_repo.move_stage(
                session, self.agent_id, contact_id, stage_id
            )
            return ContactRead.model_validate(contact)

    async def mark_lost(self, contact_id: int, reason: Optional[str] = None) -> ContactRead:
        return await self.update_contact(
            contact_id, {"is_active": False, "lost_reason": reason}
        )

    async def reactivate(self, contact_id: int) -> ContactRead:
        return await self.update_contact(
            contact_id, {"is_active": True, "lost_reason": None}
        )

    async def delete_contact(self, contact_id: int) -> None:
        """Delete a contact together with its interactions and tasks."""
        async with self._db() as session:
            await contacts_repo.delete_contact(session, self.agent_id, contact_id)

    async def search_contacts(
        self, query: Optional[str], limit: Optional[int] = None
    ) -> list[ContactRead]:
        if not query or not query.strip():
            return []
        async with self._db() as session:
            contacts = await contacts_repo.search_contacts(
                session, self.agent_id, query, limit=limit
            )
            return [ContactRead.model_validate(c) for c in contacts]

    # ------------------------------------------------------------------
    # Interactions
    # ------------------------------------------------------------------

    async def list_interactions(
        self,
        *,
        contact_id: Optional[int] = None,
        interaction_type: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[InteractionRead]:
        async with self._db() as session:
            interactions = await interactions_repo.list_interactions(
                session,
                self.agent_id,
                contact_id=contact_id,
                interaction_type=interaction_type,
                limit=limit,
            )
            return [InteractionRead.model_validate(i) for i in interactions]

    async def get_interaction(self, interaction_id: int) -> InteractionRead:
        async with self._db() as session:
            interaction = await interactions_repo.get_interaction(
                session, self.agent_id, interaction_id
            )
            return InteractionRead.model_validate(interaction)

    async def add_interaction(self, data: Fields) -> InteractionRead:
        """Log a touchpoint and stamp the contact's last_contact_at.

        contact_id, type and created_by are required. The insert and the
        contact refresh commit together or not at all.
        """
        bag = _parse(InteractionCreate, data)
        _require(bag, "contact_id", "type", "created_by")
        async with self._db() as session:
            interaction = await interactions_repo.add_interaction(
                session, self.agent_id, bag.model_dump()
            )
            return InteractionRead.model_validate(interaction)

    async def update_interaction(self, interaction_id: int, data: Fields) -> InteractionRead:
        changes = _changes(InteractionUpdate, data)
        async with self._db() as session:
            interaction = await interactions_repo.update_interaction(
                session, self.agent_id, interaction_id, changes
            )
            return InteractionRead.model_validate(interaction)

    async def delete_interaction(self, interaction_id: int) -> None:
        async with self._db() as session:
            await interactions_repo.delete_interaction(session, self.agent_id, interaction_id)

    async def add_note(
        self, contact_id: int, content: Optional[str], created_by: Optional[str]
    ) -> InteractionRead:
        return await self.add_interaction(
            {"contact_id": contact_id, "type": "note", "content": content, "created_by": created_by}
        )

    async def log_call(
        self,
        contact_id: int,
        *,
        subject: Optional[str] = None,
        content: Optional[str] = None,
        created_by: Optional[str] = None,
        duration: Optional[int] = None,
    ) -> InteractionRead:
        """Log a call; duration (seconds) is kept in metadata when given."""
        return await self.add_interaction(
            {
                "contact_id": contact_id,
                "type": "call",
                "subject": subject,
                "content": content,
                "created_by": created_by,
                "metadata": {"duration": duration} if duration is not None else {},
            }
        )

    async def log_email(
        self,
        contact_id: int,
        *,
        subject: Optional[str] = None,
        content: Optional[str] = None,
        created_by: Optional[str] = None,
    ) -> InteractionRead:
        return await self.add_interaction(
            {
                "contact_id": contact_id,
                "type": "email",
                "subject": subject,
                "content": content,
                "created_by": created_by,
            }
        )

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    async def list_tasks(
        self,
        *,
        contact_id: Optional[int] = None,
        completed: Optional[bool] = None,
        assigned_to: Optional[str] = None,
        priority: Optional[str] = None,
        due_before: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> list[TaskRead]:
        """Open tasks first, then by due date with undated tasks last."""
        async with self._db() as session:
            tasks = await tasks_repo.list_tasks(
                session,
                self.agent_id,
                contact_id=contact_id,
                completed=completed,
                assigned_to=assigned_to,
                priority=priority,
                due_before=due_before,
                limit=limit,
            )
            return [TaskRead.model_validate(t) for t in tasks]

    async def get_task(self, task_id: int) -> TaskRead:
        async with self._db() as session:
            task = await tasks_repo.get_task(session, self.agent_id, task_id)
            return TaskRead.model_validate(task)

    async def add_task(self, data: Fields) -> TaskRead:
        bag = _parse(TaskCreate, data)
        _require(bag, "title")
        async with self._db() as session:
            task = await tasks_repo.add_task(session, self.agent_id, bag.model_dump())
            return TaskRead.model_validate(task)

    async def update_task(self, task_id: int, data: Fields) -> TaskRead:
        changes = _changes(TaskUpdate, data)
        async with self._db() as session:
            task = await tasks_repo.update_task(session, self.agent_id, task_id, changes)
            return TaskRead.model_validate(task)

    async def complete_task(self, task_id: int) -> TaskRead:
        async with self._db() as session:
            task = await tasks_repo.complete_task(session, self.agent_id, task_id)
            return TaskRead.model_validate(task)

    async def uncomplete_task(self, task_id: int) -> TaskRead:
        """Reopen a completed task."""
        async with self._db() as session:
            task = await tasks_repo.uncomplete_task(session, self.agent_id, task_id)
            return TaskRead.model_validate(task)

    async def delete_task(self, task_id: int) -> None:
        async with self._db() as session:
            await tasks_repo.delete_task(session, self.agent_id, task_id)

    async def get_overdue_tasks(self) -> list[TaskRead]:
        async with self._db() as session:
            tasks = await tasks_repo.get_overdue_tasks(session, self.agent_id)
            return [TaskRead.model_validate(t) for t in tasks]

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    async def get_pipeline_stats(self) -> PipelineStats:
        async with self._db() as session:
            return await stats_repo.pipeline_stats(session, self.agent_id)

    async def get_activity_stats(self, days: int = 30) -> ActivityStats:
        if isinstance(days, bool) or not isinstance(days, int) or days < 0:
            raise ValidationError("days", "days must be a non-negative integer")
        async with self._db() as session:
            return await stats_repo.activity_stats(session, self.agent_id, days)

    async def get_stats(self) -> StatsOverview:
        """Pipeline plus 30-day activity in one overview."""
        pipeline = await self.get_pipeline_stats()
        activity = await self.get_activity_stats()
        return StatsOverview(
            agent_id=self.agent_id,
            pipeline=pipeline,
            activity=activity,
            generated_at=utcnow(),
        )

    async def close(self) -> None:
        """Release the shared engine. Injected sessionmakers are left alone."""
        if self._sessionmaker is None:
            await dispose_engine()
