"""Pipeline and activity report schemas."""
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

UNSTAGED_NAME = "Unstaged"
UNSTAGED_COLOR = "#888888"


class StageSummary(BaseModel):
    """One pipeline bucket. The Unstaged bucket has id=None and position 0."""

    id: Optional[int] = None
    name: str
    color: Optional[str] = None
    position: int
    count: int = 0
    value: Decimal = Decimal("0")


class PipelineStats(BaseModel):
    stages: List[StageSummary]
    total_contacts: int
    total_value: Decimal


class InteractionActivity(BaseModel):
    total: int = 0
    by_type: Dict[str, int] = Field(default_factory=dict)


class TaskActivity(BaseModel):
    created: int = 0
    completed: int = Field(
        default=0,
        description=(
            "Tasks created inside the window that are completed now. "
            "Tasks created earlier and completed inside the window are not counted."
        ),
    )


class ContactActivity(BaseModel):
    created: int = 0
    active: int = 0


class ActivityStats(BaseModel):
    period: str
    days: int
    since: datetime
    interactions: InteractionActivity
    tasks: TaskActivity
    contacts: ContactActivity


class StatsOverview(BaseModel):
    agent_id: str
    pipeline: PipelineStats
    activity: ActivityStats
    generated_at: datetime
