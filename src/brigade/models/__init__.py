"""Data models for brigade."""

from .action_plan import ActionPlan, ActionPlanDraft, ActionPlanStatus, CostType
from .execution import Checklist, ChecklistResponse, ChecklistStatus
from .gamification import (
    Accessory,
    ActivityLog,
    Duel,
    DuelStatus,
    Profile,
    Role,
    Sector,
    get_level_info,
)
from .schedule import Recurrence, ScheduleConfig
from .template import (
    ChecklistTemplate,
    ComparisonOperator,
    ConditionalRule,
    Difficulty,
    Question,
    QuestionType,
    RuleAction,
    Section,
    TemplateVersion,
)

__all__ = [
    "Accessory",
    "ActionPlan",
    "ActionPlanDraft",
    "ActionPlanStatus",
    "ActivityLog",
    "Checklist",
    "ChecklistResponse",
    "ChecklistStatus",
    "ChecklistTemplate",
    "ComparisonOperator",
    "ConditionalRule",
    "CostType",
    "Difficulty",
    "Duel",
    "DuelStatus",
    "get_level_info",
    "Profile",
    "Question",
    "QuestionType",
    "Recurrence",
    "Role",
    "RuleAction",
    "ScheduleConfig",
    "Section",
    "Sector",
    "TemplateVersion",
]
