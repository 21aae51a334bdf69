"""Profiles, levels, streaks and duels."""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum


class Role(str, Enum):
    """Team member role."""

    MEMBER = "member"
    MANAGER = "manager"
    ADMIN = "admin"
    OWNER = "owner"


# Roles allowed to award XP and manage templates
MANAGER_ROLES = {Role.MANAGER, Role.ADMIN, Role.OWNER}


@dataclass(frozen=True)
class Level:
    """A level threshold."""

    number: int
    title: str
    min_xp: int


LEVELS = [
    Level(1, "Beginner", 0),
    Level(2, "Apprentice", 500),
    Level(3, "Competent", 1500),
    Level(4, "Proficient", 3000),
    Level(5, "Expert", 5000),
    Level(6, "Master", 8000),
    Level(7, "Grandmaster", 12000),
]


@dataclass
class LevelInfo:
    """Where a total XP sits on the level ladder."""

    level: Level
    next_level: Level | None
    progress: float  # percent toward next level, 100 at the top

    @property
    def xp_to_next(self) -> int:
        return 0 if self.next_level is None else self.next_level.min_xp


def get_level_info(total_xp: int) -> LevelInfo:
    """Find the level for a total XP amount."""
    current = LEVELS[0]
    for level in LEVELS:
        if total_xp >= level.min_xp:
            current = level
    index = LEVELS.index(current)
    if index == len(LEVELS) - 1:
        return LevelInfo(level=current, next_level=None, progress=100.0)

    next_level = LEVELS[index + 1]
    span = next_level.min_xp - current.min_xp
    progress = min(100.0, (total_xp - current.min_xp) / span * 100)
    return LevelInfo(level=current, next_level=next_level, progress=progress)


class Accessory(str, Enum):
    """Avatar accessories."""

    NONE = "none"
    GLASSES = "glasses"
    CROWN = "crown"


ACCESSORY_MIN_LEVEL = {
    Accessory.NONE: 1,
    Accessory.GLASSES: 1,
    Accessory.CROWN: 5,
}


@dataclass
class Sector:
    """A restaurant area (kitchen, bar, dining room...)."""

    name: str
    is_active: bool = True
    notion_page_id: str | None = None
    id: int | None = None

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "is_active": self.is_active,
            "notion_page_id": self.notion_page_id,
        }

    @classmethod
    def from_dict(cls, data: dict, id: int | None = None) -> "Sector":
        return cls(
            id=id,
            name=data["name"],
            is_active=bool(data.get("is_active", True)),
            notion_page_id=data.get("notion_page_id"),
        )


@dataclass
class Profile:
    """A team member and their game state."""

    name: str
    role: Role = Role.MEMBER
    email: str = ""
    sector_id: int | None = None
    total_xp: int = 0
    level: int = 1
    streak_days: int = 0
    last_activity_date: date | None = None
    streak_shield_available: bool = False
    avatar_url: str | None = None
    is_active: bool = True
    notion_page_id: str | None = None
    id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def can_manage(self) -> bool:
        return self.role in MANAGER_ROLES

    @property
    def level_info(self) -> LevelInfo:
        return get_level_info(self.total_xp)

    def add_xp(self, amount: int) -> None:
        """Add (or remove) XP, never dropping below zero, and refresh level."""
        self.total_xp = max(0, self.total_xp + amount)
        self.level = get_level_info(self.total_xp).level.number

    def register_activity(self, today: date) -> bool:
        """Update the daily streak for activity on `today`.

        Returns True when a streak shield was consumed to bridge a gap.
        """
        last = self.last_activity_date
        self.last_activity_date = today

        if last is None:
            self.streak_days = 1
            return False

        gap = (today - last).days
        if gap <= 0:
            self.streak_days = max(self.streak_days, 1)
            return False
        if gap == 1:
            self.streak_days += 1
            return False
        if self.streak_shield_available:
            self.streak_shield_available = False
            self.streak_days += 1
            return True

        self.streak_days = 1
        return False

    @property
    def accessory(self) -> Accessory:
        if self.avatar_url and self.avatar_url.startswith("avatar_"):
            try:
                return Accessory(self.avatar_url.removeprefix("avatar_"))
            except ValueError:
                return Accessory.NONE
        return Accessory.NONE

    def equip(self, accessory: Accessory) -> bool:
        """Equip an accessory if the level allows it."""
        if self.level_info.level.number < ACCESSORY_MIN_LEVEL[accessory]:
            return False
        self.avatar_url = f"avatar_{accessory.value}"
        return True

    def to_dict(self) -> dict:
        """Convert to dictionary for storage."""
        return {
            "name": self.name,
            "role": self.role.value,
            "email": self.email,
            "sector_id": self.sector_id,
            "total_xp": self.total_xp,
            "level": self.level,
            "streak_days": self.streak_days,
            "last_activity_date": (
                self.last_activity_date.isoformat() if self.last_activity_date else None
            ),
            "streak_shield_available": self.streak_shield_available,
            "avatar_url": self.avatar_url,
            "is_active": self.is_active,
            "notion_page_id": self.notion_page_id,
        }

    @classmethod
    def from_dict(
        cls,
        data: dict,
        id: int | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ) -> "Profile":
        """Create from dictionary."""
        last_activity = data.get("last_activity_date") or None
        return cls(
            id=id,
            name=data["name"],
            role=Role(data.get("role") or "member"),
            email=data.get("email") or "",
            sector_id=data.get("sector_id"),
            total_xp=data.get("total_xp") or 0,
            level=data.get("level") or 1,
            streak_days=data.get("streak_days") or 0,
            last_activity_date=(
                date.fromisoformat(last_activity[:10]) if last_activity else None
            ),
            streak_shield_available=bool(data.get("streak_shield_available", False)),
            avatar_url=data.get("avatar_url"),
            is_active=bool(data.get("is_active", True)),
            notion_page_id=data.get("notion_page_id"),
            created_at=created_at,
            updated_at=updated_at,
        )


class DuelStatus(str, Enum):
    """Duel lifecycle."""

    PENDING = "pending"
    ACTIVE = "active"
    DECLINED = "declined"
    COMPLETED = "completed"


@dataclass
class Duel:
    """Two members racing through the same template for an XP wager."""

    challenger_id: int
    opponent_id: int
    template_id: int
    wager: int = 0
    challenger_progress: float = 0.0
    opponent_progress: float = 0.0
    challenger_score: int = 0
    opponent_score: int = 0
    status: DuelStatus = DuelStatus.PENDING
    winner_id: int | None = None
    id: int | None = None
    created_at: datetime | None = None
    completed_at: datetime | None = None

    def side_of(self, user_id: int) -> str:
        """Return "challenger" or "opponent" for a participant."""
        if user_id == self.challenger_id:
            return "challenger"
        if user_id == self.opponent_id:
            return "opponent"
        raise ValueError(f"User {user_id} is not part of duel {self.id}")

    @property
    def both_finished(self) -> bool:
        return self.challenger_progress >= 100 and self.opponent_progress >= 100

    def decide_winner(self) -> int | None:
        """Winner by score; None on a tie."""
        if self.challenger_score > self.opponent_score:
            return self.challenger_id
        if self.opponent_score > self.challenger_score:
            return self.opponent_id
        return None

    def loser_of(self, winner_id: int) -> int:
        return self.opponent_id if winner_id == self.challenger_id else self.challenger_id

    def to_dict(self) -> dict:
        return {
            "challenger_id": self.challenger_id,
            "opponent_id": self.opponent_id,
            "template_id": self.template_id,
            "wager": self.wager,
            "challenger_progress": self.challenger_progress,
            "opponent_progress": self.opponent_progress,
            "challenger_score": self.challenger_score,
            "opponent_score": self.opponent_score,
            "status": self.status.value,
            "winner_id": self.winner_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }


@dataclass
class ActivityLog:
    """Feed entry for something a member did."""

    user_id: int
    action_type: str
    description: str = ""
    xp_earned: int = 0
    id: int | None = None
    created_at: datetime | None = None

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "action_type": self.action_type,
            "description": self.description,
            "xp_earned": self.xp_earned,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
