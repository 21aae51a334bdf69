"""Upcoming scheduled checklists."""

from dataclasses import dataclass
from datetime import date, datetime, timedelta

from ..models.template import ChecklistTemplate


@dataclass
class DueChecklist:
    """A scheduled template occurrence."""

    template: ChecklistTemplate
    due_at: datetime

    @property
    def notify_at(self) -> datetime:
        return self.due_at - timedelta(minutes=self.template.schedule.notify_before_minutes)

    def to_dict(self) -> dict:
        return {
            "template_id": self.template.id,
            "title": self.template.title,
            "due_at": self.due_at.isoformat(),
            "notify_at": self.notify_at.isoformat(),
        }


def upcoming(
    templates: list[ChecklistTemplate], start: date, days: int = 7
) -> list[DueChecklist]:
    """All scheduled occurrences in the next `days` days, soonest first."""
    end = start + timedelta(days=days - 1)
    due = [
        DueChecklist(template=template, due_at=when)
        for template in templates
        for when in template.schedule.occurrences(start, end)
    ]
    return sorted(due, key=lambda d: (d.due_at, d.template.title))
