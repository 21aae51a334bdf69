"""Application services for brigade."""

from .action_plans import ActionPlanService
from .completion import CompletionService, CompletionSummary
from .duels import DuelService
from .evidence import EvidenceStore
from .notion_sync import NotionSync
from .webhooks import WebhookDispatcher

__all__ = [
    "ActionPlanService",
    "CompletionService",
    "CompletionSummary",
    "DuelService",
    "EvidenceStore",
    "NotionSync",
    "WebhookDispatcher",
]
