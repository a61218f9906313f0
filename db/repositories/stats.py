"""Read-only pipeline and activity reports.

Each report issues a handful of narrow SELECTs and reduces the rows in
memory; no report writes.
"""
import logging
from collections import Counter, defaultdict
from datetime import datetime
from decimal import Decimal
from typing import Optional

from dateutil.relativedelta import relativedelta
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db.models import Contact, Interaction, Task, utcnow
from db.repositories.stages import list_stages
from schemas.stats import (
    UNSTAGED_COLOR,
    UNSTAGED_NAME,
    ActivityStats,
    ContactActivity,
    InteractionActivity,
    PipelineStats,
    StageSummary,
    TaskActivity,
)

logger = logging.getLogger(__name__)

_ZERO = Decimal("0")


async def pipeline_stats(session: AsyncSession, agent_id: str) -> PipelineStats:
    """Count and sum deal values of ACTIVE contacts per stage.

    Buckets follow stage position. An "Unstaged" bucket (position 0) is
    prepended when at least one active contact has no stage. Contacts whose
    stage_id is not one of the tenant's stages land in Unstaged too, so the
    buckets always add up to the totals.
    """
    stages = await list_stages(session, agent_id)
    result = await session.execute(
        select(Contact.stage_id, Contact.deal_value)
        .where(Contact.agent_id == agent_id)
        .where(Contact.is_active.is_(True))
    )
    rows = result.all()

    known_ids = {stage.id for stage in stages}
    counts: dict[Optional[int], int] = defaultdict(int)
    values: dict[Optional[int], Decimal] = defaultdict(lambda: _ZERO)
    for stage_id, deal_value in rows:
        bucket = stage_id if stage_id in known_ids else None
        counts[bucket] += 1
        values[bucket] += deal_value or _ZERO

    buckets = [
        StageSummary(
            id=stage.id,
            name=stage.name,
            color=stage.color,
            position=stage.position,
            count=counts.get(stage.id, 0),
            value=values.get(stage.id, _ZERO),
        )
        for stage in stages
    ]
    if counts.get(None):
        buckets.insert(
            0,
            StageSummary(
                id=None,
                name=UNSTAGED_NAME,
                color=UNSTAGED_COLOR,
                position=0,
                count=counts[None],
                value=values[None],
            ),
        )

    return PipelineStats(
        stages=buckets,
        total_contacts=len(rows),
        total_value=sum((deal_value or _ZERO for _, deal_value in rows), _ZERO),
    )


async def activity_stats(
    session: AsyncSession,
    agent_id: str,
    days: int = 30,
    now: Optional[datetime] = None,
) -> ActivityStats:
    """Summarize what was CREATED in the last `days` days.

    tasks.completed counts tasks created in the window that are completed
    now; completion time itself is not filtered.
    """
    since = (now or utcnow()) - relativedelta(days=days)

    interaction_types = (
        await session.execute(
            select(Interaction.type)
            .where(Interaction.agent_id == agent_id)
            .where(Interaction.created_at >= since)
        )
    ).scalars().all()
    task_flags = (
        await session.execute(
            select(Task.completed)
            .where(Task.agent_id == agent_id)
            .where(Task.created_at >= since)
        )
    ).scalars().all()
    contact_flags = (
        await session.execute(
            select(Contact.is_active)
            .where(Contact.agent_id == agent_id)
            .where(Contact.created_at >= since)
        )
    ).scalars().all()

    return ActivityStats(
        period=f"{days} days",
        days=days,
        since=since,
        interactions=InteractionActivity(
            total=len(interaction_types),
            by_type=dict(Counter(interaction_types)),
        ),
        tasks=TaskActivity(
            created=len(task_flags),
            completed=sum(1 for flag in task_flags if flag),
        ),
        contacts=ContactActivity(
            created=len(contact_flags),
            active=sum(1 for flag in contact_flags if flag),
        ),
    )
