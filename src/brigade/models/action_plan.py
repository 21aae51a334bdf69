"""Action plan model for non-conformities."""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum


class ActionPlanStatus(str, Enum):
    """Lifecycle of an action plan."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CANCELED = "canceled"


class CostType(str, Enum):
    """Whether fixing the problem costs money or only time."""

    MONEY = "money"
    TIME_ONLY = "time_only"


ACTION_PLAN_TITLE_PREFIX = "Non-conformity: "


@dataclass
class ActionPlan:
    """A task raised to fix a problem found during a checklist."""

    title: str
    description: str = ""  # benefit of solving it
    step_by_step: str = ""
    due_date: date | None = None
    cost_type: CostType = CostType.TIME_ONLY
    estimated_cost: float | None = None
    status: ActionPlanStatus = ActionPlanStatus.PENDING
    awarded_xp: int = 0
    assignee_id: int | None = None
    sector_id: int | None = None
    checklist_id: int | None = None
    checklist_response_id: int | None = None
    created_by: int | None = None
    notion_page_id: str | None = None
    resolved_at: datetime | None = None
    photo_url: str | None = None
    file_url: str | None = None
    closing_comment: str | None = None
    satisfaction_rating: int | None = None
    id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def set_status(self, status: ActionPlanStatus, is_returning: bool = False) -> None:
        """Move to a new status.

        Resolving stamps `resolved_at`; any other status clears it.
        Sending a plan back to in-progress with `is_returning` clears the
        previous closing feedback.
        """
        self.status = status
        self.resolved_at = datetime.now() if status == ActionPlanStatus.RESOLVED else None
        if status == ActionPlanStatus.IN_PROGRESS and is_returning:
            self.closing_comment = None
            self.satisfaction_rating = None

    def to_dict(self) -> dict:
        """Convert to dictionary for storage."""
        return {
            "title": self.title,
            "description": self.description,
            "step_by_step": self.step_by_step,
            "due_date": self.due_date.isoformat() if self.due_date else None,
            "cost_type": self.cost_type.value,
            "estimated_cost": self.estimated_cost,
            "status": self.status.value,
            "awarded_xp": self.awarded_xp,
            "assignee_id": self.assignee_id,
            "sector_id": self.sector_id,
            "checklist_id": self.checklist_id,
            "checklist_response_id": self.checklist_response_id,
            "created_by": self.created_by,
            "notion_page_id": self.notion_page_id,
            "resolved_at": self.resolved_at.isoformat() if self.resolved_at else None,
            "photo_url": self.photo_url,
            "file_url": self.file_url,
            "closing_comment": self.closing_comment,
            "satisfaction_rating": self.satisfaction_rating,
        }

    @classmethod
    def from_dict(
        cls,
        data: dict,
        id: int | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ) -> "ActionPlan":
        """Create from dictionary."""
        due_date = data.get("due_date") or None
        resolved_at = data.get("resolved_at") or None
        return cls(
            id=id,
            title=data["title"],
            description=data.get("description") or "",
            step_by_step=data.get("step_by_step") or "",
            due_date=date.fromisoformat(due_date[:10]) if due_date else None,
            cost_type=CostType(data.get("cost_type") or "time_only"),
            estimated_cost=data.get("estimated_cost"),
            status=ActionPlanStatus(data.get("status") or "pending"),
            awarded_xp=data.get("awarded_xp") or 0,
            assignee_id=data.get("assignee_id"),
            sector_id=data.get("sector_id"),
            checklist_id=data.get("checklist_id"),
            checklist_response_id=data.get("checklist_response_id"),
            created_by=data.get("created_by"),
            notion_page_id=data.get("notion_page_id"),
            resolved_at=datetime.fromisoformat(resolved_at) if resolved_at else None,
            photo_url=data.get("photo_url"),
            file_url=data.get("file_url"),
            closing_comment=data.get("closing_comment"),
            satisfaction_rating=data.get("satisfaction_rating"),
            created_at=created_at,
            updated_at=updated_at,
        )

    def get_status_display(self) -> str:
        status_map = {
            ActionPlanStatus.PENDING: "Pending",
            ActionPlanStatus.IN_PROGRESS: "In Progress",
            ActionPlanStatus.RESOLVED: "Resolved",
            ActionPlanStatus.CANCELED: "Canceled",
        }
        return status_map.get(self.status, self.status.value)


@dataclass
class ActionPlanDraft:
    """Pre-filled action plan offered after a non-conformity.

    Drafts are shown one at a time before the checklist is signed. The
    user can complete and submit a draft or skip it.
    """

    question_id: str
    question_text: str
    reason: str  # "rule" or "issue"
    answer: str = ""
    rule_id: str | None = None

    @property
    def title(self) -> str:
        return f"{ACTION_PLAN_TITLE_PREFIX}{self.question_text}"

    def to_action_plan(self, **fields) -> ActionPlan:
        """Build the action plan, letting the user override any field."""
        fields.setdefault("title", self.title)
        return ActionPlan(**fields)

    def to_dict(self) -> dict:
        return {
            "question_id": self.question_id,
            "question_text": self.question_text,
            "reason": self.reason,
            "answer": self.answer,
            "rule_id": self.rule_id,
            "title": self.title,
        }
