"""Template scheduling model."""

import calendar
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from enum import Enum


class Recurrence(str, Enum):
    """How often a scheduled checklist repeats."""

    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


RECURRENCE_LABELS = {
    Recurrence.NONE: "No repeat",
    Recurrence.DAILY: "Daily",
    Recurrence.WEEKLY: "Weekly",
    Recurrence.BIWEEKLY: "Biweekly",
    Recurrence.MONTHLY: "Monthly",
    Recurrence.QUARTERLY: "Quarterly",
    Recurrence.YEARLY: "Yearly",
}

# 0 = Sunday, matching the stored days_of_week encoding
WEEKDAY_LABELS = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]


def _sunday_based(day: date) -> int:
    """Convert Python's Monday=0 weekday to the Sunday=0 encoding."""
    return (day.weekday() + 1) % 7


def _add_months(day: date, months: int, day_of_month: int) -> date:
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day_of_month, last_day))


@dataclass
class ScheduleConfig:
    """Recurrence settings attached to a checklist template."""

    enabled: bool = False
    recurrence: Recurrence = Recurrence.NONE
    days_of_week: list[int] = field(default_factory=list)
    day_of_month: int | None = None
    start_date: date | None = None
    end_date: date | None = None
    deadline_time: time | None = None
    notify_before_minutes: int = 60
    auto_create: bool = True

    def occurrences(self, start: date, end: date) -> list[datetime]:
        """List due datetimes between start and end (inclusive).

        The window is clipped to the configured start/end dates. Each
        occurrence is due at `deadline_time`, or midnight when unset.
        """
        if not self.enabled:
            return []

        first = max(start, self.start_date) if self.start_date else start
        last = min(end, self.end_date) if self.end_date else end
        if first > last:
            return []

        due_at = self.deadline_time or time(0, 0)
        anchor = self.start_date or first
        days: list[date] = []

        if self.recurrence == Recurrence.NONE:
            if anchor >= first and anchor <= last:
                days.append(anchor)

        elif self.recurrence == Recurrence.DAILY:
            current = first
            while current <= last:
                days.append(current)
                current += timedelta(days=1)

        elif self.recurrence in (Recurrence.WEEKLY, Recurrence.BIWEEKLY):
            weekdays = set(self.days_of_week) or {_sunday_based(anchor)}
            # Biweekly counts weeks from the Sunday on or before the anchor
            anchor_week = anchor - timedelta(days=_sunday_based(anchor))
            current = first
            while current <= last:
                if _sunday_based(current) in weekdays:
                    weeks_since = (current - anchor_week).days // 7
                    if self.recurrence == Recurrence.WEEKLY or weeks_since % 2 == 0:
                        days.append(current)
                current += timedelta(days=1)

        else:
            step = {
                Recurrence.MONTHLY: 1,
                Recurrence.QUARTERLY: 3,
                Recurrence.YEARLY: 12,
            }[self.recurrence]
            target_day = self.day_of_month or anchor.day
            offset = 0
            while True:
                current = _add_months(anchor.replace(day=1), offset, target_day)
                if current > last:
                    break
                if current >= first:
                    days.append(current)
                offset += step

        return [datetime.combine(d, due_at) for d in days]

    def next_occurrence(self, after: datetime, horizon_days: int = 400) -> datetime | None:
        """Return the first due datetime strictly after `after`."""
        for due in self.occurrences(after.date(), after.date() + timedelta(days=horizon_days)):
            if due > after:
                return due
        return None

    def summary(self) -> str:
        """One-line human readable description."""
        if not self.enabled or self.recurrence == Recurrence.NONE:
            return "Not scheduled"
        label = RECURRENCE_LABELS[self.recurrence]
        time_text = f" at {self.deadline_time.strftime('%H:%M')}" if self.deadline_time else ""
        if self.recurrence in (Recurrence.WEEKLY, Recurrence.BIWEEKLY):
            day_names = ", ".join(WEEKDAY_LABELS[d] for d in sorted(self.days_of_week))
            return f"{label} ({day_names}){time_text}"
        if self.recurrence == Recurrence.MONTHLY and self.day_of_month:
            return f"{label} (day {self.day_of_month}){time_text}"
        return f"{label}{time_text}"

    def to_dict(self) -> dict:
        """Convert to dictionary for storage."""
        return {
            "enabled": self.enabled,
            "recurrence": self.recurrence.value,
            "days_of_week": self.days_of_week,
            "day_of_month": self.day_of_month,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "deadline_time": (
                self.deadline_time.strftime("%H:%M") if self.deadline_time else None
            ),
            "notify_before_minutes": self.notify_before_minutes,
            "auto_create": self.auto_create,
        }

    @classmethod
    def from_dict(cls, data: dict | None) -> "ScheduleConfig":
        """Create from dictionary. Empty strings are treated as unset."""
        if not data:
            return cls()

        start_date = data.get("start_date") or None
        end_date = data.get("end_date") or None
        deadline = data.get("deadline_time") or None

        return cls(
            enabled=bool(data.get("enabled", False)),
            recurrence=Recurrence(data.get("recurrence") or "none"),
            days_of_week=sorted(int(d) for d in data.get("days_of_week", [])),
            day_of_month=data.get("day_of_month"),
            start_date=date.fromisoformat(start_date) if start_date else None,
            end_date=date.fromisoformat(end_date) if end_date else None,
            deadline_time=time.fromisoformat(deadline) if deadline else None,
            notify_before_minutes=data.get("notify_before_minutes", 60),
            auto_create=data.get("auto_create", True),
        )
