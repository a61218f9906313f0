from .common import ContactRef, FieldBag, StageRef
from .stage import StageCreate, StageInitResult, StageRead, StageUpdate
from .contact import DEFAULT_CURRENCY, ContactCreate, ContactRead, ContactUpdate
from .interaction import InteractionCreate, InteractionRead, InteractionUpdate
from .task import PRIORITIES, TaskCreate, TaskRead, TaskUpdate
from .stats import (
    ActivityStats,
    ContactActivity,
    InteractionActivity,
    PipelineStats,
    StageSummary,
    StatsOverview,
    TaskActivity,
)

__all__ = [
    "FieldBag", "StageRef", "ContactRef",
    "StageCreate", "StageUpdate", "StageRead", "StageInitResult",
    "DEFAULT_CURRENCY", "ContactCreate", "ContactUpdate", "ContactRead",
    "InteractionCreate", "InteractionUpdate", "InteractionRead",
    "PRIORITIES", "TaskCreate", "TaskUpdate", "TaskRead",
    "PipelineStats", "StageSummary",
    "ActivityStats", "InteractionActivity", "TaskActivity", "ContactActivity",
    "StatsOverview",
]
