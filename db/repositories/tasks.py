"""Task repository: follow-up items and their open/completed state."""
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from crm_errors import NotFoundError
from db.models import Task, utcnow
from db.repositories.contacts import get_contact

logger = logging.getLogger(__name__)

# Open tasks first, then soonest due; undated tasks sink to the bottom.
_WORKLIST_ORDER = (Task.completed.asc(), Task.due_at.asc().nulls_last(), Task.id.asc())


async def list_tasks(
    session: AsyncSession,
    agent_id: str,
    *,
    contact_id: Optional[int] = None,
    completed: Optional[bool] = None,
    assigned_to: Optional[str] = None,
    priority: Optional[str] = None,
    due_before: Optional[datetime] = None,
    limit: Optional[int] = None,
) -> list[Task]:
    stmt = select(Task).where(Task.agent_id == agent_id)
    if contact_id is not None:
        stmt = stmt.where(Task.contact_id == contact_id)
    if completed is not None:
        stmt = stmt.where(Task.completed == completed)
    if assigned_to:
        stmt = stmt.where(Task.assigned_to == assigned_to)
    if priority:
        stmt = stmt.where(Task.priority == priority)
    if due_before is not None:
        stmt = stmt.where(Task.due_at <= due_before)
    stmt = stmt.order_by(*_WORKLIST_ORDER)
    if limit:
        stmt = stmt.limit(limit)
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def get_task(session: AsyncSession, agent_id: str, task_id: int) -> Task:
    result = await session.execute(
        select(Task)
        .where(Task.id == task_id)
        .where(Task.agent_id == agent_id)
        .execution_options(populate_existing=True)
    )
    task = result.scalar_one_or_none()
    if task is None:
        raise NotFoundError("Task", task_id)
    return task


async def add_task(session: AsyncSession, agent_id: str, data: dict) -> Task:
    """Insert a task.

    data dict keys: title, contact_id, description, due_at, assigned_to, priority
    """
    if data.get("contact_id") is not None:
        await get_contact(session, agent_id, data["contact_id"])
    task = Task(agent_id=agent_id, completed=False, **data)
    session.add(task)
    await session.flush()
    logger.info("Created task %s for agent %s", task.id, agent_id)
    return await get_task(session, agent_id, task.id)


async def _write(session: AsyncSession, agent_id: str, task_id: int, values: dict) -> Task:
    result = await session.execute(
        update(Task)
        .where(Task.id == task_id)
        .where(Task.agent_id == agent_id)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise NotFoundError("Task", task_id)
    return await get_task(session, agent_id, task_id)


async def update_task(
    session: AsyncSession, agent_id: str, task_id: int, changes: dict
) -> Task:
    """Partial update. changes keys: title, description, due_at, assigned_to,
    priority, contact_id"""
    if not changes:
        return await get_task(session, agent_id, task_id)
    if changes.get("contact_id") is not None:
        await get_contact(session, agent_id, changes["contact_id"])
    return await _write(session, agent_id, task_id, changes)


async def complete_task(session: AsyncSession, agent_id: str, task_id: int) -> Task:
    return await _write(
        session, agent_id, task_id, {"completed": True, "completed_at": utcnow()}
    )


async def uncomplete_task(session: AsyncSession, agent_id: str, task_id: int) -> Task:
    return await _write(
        session, agent_id, task_id, {"completed": False, "completed_at": None}
    )


async def delete_task(session: AsyncSession, agent_id: str, task_id: int) -> None:
    result = await session.execute(
        delete(Task)
        .where(Task.id == task_id)
        .where(Task.agent_id == agent_id)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise NotFoundError("Task", task_id)
    logger.info("Deleted task %s for agent %s", task_id, agent_id)


async def get_overdue_tasks(
    session: AsyncSession, agent_id: str, now: Optional[datetime] = None
) -> list[Task]:
    """Return open tasks whose due_at has passed, oldest due first."""
    now = now or utcnow()
    result = await session.execute(
        select(Task)
        .where(Task.agent_id == agent_id)
        .where(Task.completed.is_(False))
        .where(Task.due_at < now)
        .order_by(Task.due_at.asc(), Task.id.asc())
    )
    return list(result.scalars().all())
