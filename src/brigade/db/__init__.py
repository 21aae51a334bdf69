"""Database layer for brigade."""

from .engine import get_db_path, init_db
from .repositories import (
    ActionPlanRepository,
    ActivityLogRepository,
    ChecklistRepository,
    DuelRepository,
    ProfileRepository,
    SectorRepository,
    TemplateRepository,
)

__all__ = [
    "ActionPlanRepository",
    "ActivityLogRepository",
    "ChecklistRepository",
    "DuelRepository",
    "get_db_path",
    "init_db",
    "ProfileRepository",
    "SectorRepository",
    "TemplateRepository",
]
