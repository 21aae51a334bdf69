"""Checklist execution tracking model."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class ChecklistStatus(str, Enum):
    """Checklist execution status."""

    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELED = "canceled"


def _parse_dt(value) -> datetime | None:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


@dataclass
class ChecklistResponse:
    """A single answer recorded during an execution."""

    question_id: str
    value: Any = None  # bool, str, number or list of str
    photo_urls: list[str] = field(default_factory=list)
    comment: str = ""
    has_issue: bool = False
    answered_at: datetime | None = None
    checklist_id: int | None = None
    id: int | None = None

    def to_dict(self) -> dict:
        return {
            "question_id": self.question_id,
            "value": self.value,
            "photo_urls": self.photo_urls,
            "comment": self.comment,
            "has_issue": self.has_issue,
            "answered_at": self.answered_at.isoformat() if self.answered_at else None,
        }

    @classmethod
    def from_dict(
        cls, data: dict, id: int | None = None, checklist_id: int | None = None
    ) -> "ChecklistResponse":
        return cls(
            id=id,
            checklist_id=checklist_id,
            question_id=str(data["question_id"]),
            value=data.get("value"),
            photo_urls=list(data.get("photo_urls") or []),
            comment=data.get("comment") or "",
            has_issue=bool(data.get("has_issue", False)),
            answered_at=_parse_dt(data.get("answered_at")),
        )


@dataclass
class Checklist:
    """One execution of a template by a user.

    Tracks status and timestamps, along with the score and conformity
    recorded when the checklist is finished.
    """

    template_id: int
    user_id: int | None = None
    sector_id: int | None = None
    status: ChecklistStatus = ChecklistStatus.IN_PROGRESS
    score: int | None = None
    conformity: float | None = None
    signature: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    responses: list[ChecklistResponse] = field(default_factory=list)
    id: int | None = None

    def start(self) -> None:
        """Mark the checklist as started."""
        self.started_at = datetime.now()
        self.status = ChecklistStatus.IN_PROGRESS

    def complete(self, score: int, conformity: float, signature: str | None = None) -> None:
        """Mark the checklist as completed with its final results."""
        self.status = ChecklistStatus.COMPLETED
        self.score = score
        self.conformity = conformity
        self.signature = signature
        self.completed_at = datetime.now()

    def cancel(self) -> None:
        self.status = ChecklistStatus.CANCELED

    @property
    def is_open(self) -> bool:
        return self.status == ChecklistStatus.IN_PROGRESS

    def response_map(self) -> dict[str, ChecklistResponse]:
        """Responses keyed by question id."""
        return {r.question_id: r for r in self.responses}

    def to_dict(self) -> dict:
        """Convert to dictionary for storage."""
        return {
            "template_id": self.template_id,
            "user_id": self.user_id,
            "sector_id": self.sector_id,
            "status": self.status.value,
            "score": self.score,
            "conformity": self.conformity,
            "signature": self.signature,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "responses": [r.to_dict() for r in self.responses],
        }

    @classmethod
    def from_dict(cls, data: dict, id: int | None = None) -> "Checklist":
        """Create from dictionary."""
        return cls(
            id=id,
            template_id=data["template_id"],
            user_id=data.get("user_id"),
            sector_id=data.get("sector_id"),
            status=ChecklistStatus(data.get("status", "in_progress")),
            score=data.get("score"),
            conformity=data.get("conformity"),
            signature=data.get("signature"),
            started_at=_parse_dt(data.get("started_at")),
            completed_at=_parse_dt(data.get("completed_at")),
            responses=[ChecklistResponse.from_dict(r) for r in data.get("responses", [])],
        )

    def get_status_display(self) -> str:
        """Get a human-readable status string."""
        status_map = {
            ChecklistStatus.IN_PROGRESS: "In Progress",
            ChecklistStatus.COMPLETED: "Completed",
            ChecklistStatus.CANCELED: "Canceled",
        }
        return status_map.get(self.status, self.status.value)

    def get_duration_display(self) -> str:
        """Get elapsed time between start and completion as mm:ss."""
        if not self.started_at or not self.completed_at:
            return "-"
        seconds = int((self.completed_at - self.started_at).total_seconds())
        return f"{seconds // 60:02d}:{seconds % 60:02d}"
