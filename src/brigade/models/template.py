"""Checklist template data models."""

import json
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from .schedule import ScheduleConfig


class QuestionType(str, Enum):
    """How a question is answered."""

    YES_NO = "yes_no"
    TEXT = "text"
    NUMBER = "number"
    OPTIONS = "options"
    MULTIPLE_SELECTION = "multiple_selection"
    PHOTO = "photo"
    RATING = "rating"

    @classmethod
    def _missing_(cls, value):
        # Older templates used these names for the same two types
        aliases = {"multi_choice": cls.OPTIONS, "checkbox": cls.MULTIPLE_SELECTION}
        return aliases.get(value)


class ComparisonOperator(str, Enum):
    """Operators a conditional rule can compare with."""

    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    GTE = "gte"
    LTE = "lte"


class RuleAction(str, Enum):
    """What happens when a conditional rule matches."""

    SHOW_QUESTIONS = "show_questions"
    REQUIRE_PHOTO = "require_photo"
    CREATE_ACTION_PLAN = "create_action_plan"
    NOTIFY_SUPERVISOR = "notify_supervisor"


class Difficulty(str, Enum):
    """Template difficulty, used as a score multiplier."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"

    @property
    def multiplier(self) -> float:
        return DIFFICULTY_MULTIPLIER[self]


DIFFICULTY_MULTIPLIER = {
    Difficulty.EASY: 1.0,
    Difficulty.MEDIUM: 1.2,
    Difficulty.HARD: 1.5,
}

DEFAULT_QUESTION_POINTS = 10
MIN_WEIGHT = 1
MAX_WEIGHT = 5


def _pick(data: dict, *keys, default=None):
    """Return the first present key; accepts snake_case and camelCase exports."""
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


@dataclass
class ConditionalRule:
    """Trigger condition -> action mapping attached to a question."""

    id: str
    operator: ComparisonOperator = ComparisonOperator.EQUALS
    compare_value: str = ""
    action: RuleAction = RuleAction.SHOW_QUESTIONS
    target_question_ids: list[str] = field(default_factory=list)
    nested_rules: list["ConditionalRule"] = field(default_factory=list)
    trigger_answer: str = ""  # legacy, used when compare_value is empty

    @property
    def effective_value(self) -> str:
        return self.compare_value if self.compare_value != "" else self.trigger_answer

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "operator": self.operator.value,
            "compare_value": self.compare_value,
            "trigger_answer": self.trigger_answer,
            "action": self.action.value,
            "target_question_ids": self.target_question_ids,
            "nested_rules": [r.to_dict() for r in self.nested_rules],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ConditionalRule":
        return cls(
            id=str(data["id"]),
            operator=ComparisonOperator(_pick(data, "operator", default="equals")),
            compare_value=str(_pick(data, "compare_value", "compareValue", default="")),
            trigger_answer=str(_pick(data, "trigger_answer", "triggerAnswer", default="")),
            action=RuleAction(data["action"]),
            target_question_ids=list(
                _pick(data, "target_question_ids", "targetQuestionIds", default=[])
            ),
            nested_rules=[
                cls.from_dict(r) for r in _pick(data, "nested_rules", "nestedRules", default=[])
            ],
        )


@dataclass
class MediaInstruction:
    """Reference image or video shown with a question."""

    id: str
    type: str  # "image" or "video"
    url: str
    caption: str = ""


@dataclass
class OptionItem:
    """Selectable option with its own score."""

    label: str
    score: int = 0


@dataclass
class Question:
    """A single question in a template section."""

    id: str
    text: str
    type: QuestionType = QuestionType.YES_NO
    required: bool = True
    points: int = DEFAULT_QUESTION_POINTS
    weight: int = 1  # 1-5, conformity multiplier
    options: list[str] = field(default_factory=list)
    option_items: list[OptionItem] = field(default_factory=list)
    placeholder: str = ""
    help_text: str = ""
    min_value: float | None = None
    max_value: float | None = None
    allow_photo: bool = False
    photo_required: bool = False
    media_instructions: list[MediaInstruction] = field(default_factory=list)
    conditional_rules: list[ConditionalRule] = field(default_factory=list)
    conditional_parent_id: str | None = None
    order: int = 0

    def __post_init__(self):
        self.weight = max(MIN_WEIGHT, min(MAX_WEIGHT, int(self.weight)))

    @property
    def choices(self) -> list[str]:
        """Option labels, preferring scored option items."""
        if self.option_items:
            return [item.label for item in self.option_items]
        return self.options

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "text": self.text,
            "type": self.type.value,
            "required": self.required,
            "points": self.points,
            "weight": self.weight,
            "options": self.options,
            "option_items": [{"label": o.label, "score": o.score} for o in self.option_items],
            "placeholder": self.placeholder,
            "help_text": self.help_text,
            "min_value": self.min_value,
            "max_value": self.max_value,
            "allow_photo": self.allow_photo,
            "photo_required": self.photo_required,
            "media_instructions": [
                {"id": m.id, "type": m.type, "url": m.url, "caption": m.caption}
                for m in self.media_instructions
            ],
            "conditional_rules": [r.to_dict() for r in self.conditional_rules],
            "conditional_parent_id": self.conditional_parent_id,
            "order": self.order,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Question":
        return cls(
            id=str(data["id"]),
            text=_pick(data, "text", "title", default=""),
            type=QuestionType(data.get("type", "yes_no")),
            required=bool(_pick(data, "required", "is_required", default=True)),
            points=int(data.get("points", DEFAULT_QUESTION_POINTS)),
            weight=int(data.get("weight", 1)),
            options=list(data.get("options") or []),
            option_items=[
                OptionItem(label=o["label"], score=o.get("score", 0))
                for o in _pick(data, "option_items", "optionItems", default=[])
            ],
            placeholder=data.get("placeholder") or "",
            help_text=_pick(data, "help_text", "helpText", default=""),
            min_value=data.get("min_value"),
            max_value=data.get("max_value"),
            allow_photo=bool(data.get("allow_photo", False)),
            photo_required=bool(data.get("photo_required", False)),
            media_instructions=[
                MediaInstruction(
                    id=str(m["id"]), type=m.get("type", "image"),
                    url=m.get("url", ""), caption=m.get("caption", ""),
                )
                for m in _pick(data, "media_instructions", "mediaInstructions", default=[])
            ],
            conditional_rules=[
                ConditionalRule.from_dict(r)
                for r in _pick(data, "conditional_rules", "conditionalRules", default=[])
            ],
            conditional_parent_id=_pick(data, "conditional_parent_id", "conditionalParentId"),
            order=int(data.get("order", 0)),
        )


@dataclass
class Section:
    """A titled group of questions."""

    id: str
    title: str
    description: str = ""
    color: str = ""
    icon: str = ""
    order: int = 0
    questions: list[Question] = field(default_factory=list)

    def to_blob(self) -> str:
        """Section metadata as embedded on each stored question row."""
        return json.dumps({
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "color": self.color,
            "icon": self.icon,
            "order": self.order,
        })

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "color": self.color,
            "icon": self.icon,
            "order": self.order,
            "questions": [q.to_dict() for q in self.questions],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Section":
        return cls(
            id=str(data["id"]),
            title=data.get("title", "Section"),
            description=data.get("description") or "",
            color=data.get("color") or "",
            icon=data.get("icon") or "",
            order=int(data.get("order", 0)),
            questions=[Question.from_dict(q) for q in data.get("questions", [])],
        )


def parse_section_blob(raw: str | None) -> Section:
    """Parse the section JSON stored on a question row.

    Rows written by older clients hold a plain section name instead of JSON;
    that name is used as both id and title.
    """
    if not raw:
        return Section(id="default", title="Section")
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        return Section(id=raw, title=raw)
    if not isinstance(parsed, dict):
        return Section(id=raw, title=raw)
    return Section(
        id=str(parsed.get("id") or "unknown"),
        title=parsed.get("title") or "Section",
        description=parsed.get("description") or "",
        color=parsed.get("color") or "",
        icon=parsed.get("icon") or "",
        order=parsed.get("order") or 0,
    )


@dataclass
class ChecklistTemplate:
    """Reusable checklist definition."""

    title: str
    sections: list[Section] = field(default_factory=list)
    description: str = ""
    icon: str = ""
    category: str = ""
    sector_id: int | None = None
    difficulty: Difficulty = Difficulty.EASY
    estimated_minutes: int | None = None
    schedule: ScheduleConfig = field(default_factory=ScheduleConfig)
    current_version: int = 0
    is_published: bool = False
    created_by: int | None = None
    id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def questions(self) -> list[Question]:
        """All questions in section order, then question order."""
        ordered = []
        for section in sorted(self.sections, key=lambda s: s.order):
            ordered.extend(sorted(section.questions, key=lambda q: q.order))
        return ordered

    def get_question(self, question_id: str) -> Question | None:
        for question in self.questions:
            if question.id == question_id:
                return question
        return None

    def section_of(self, question_id: str) -> Section | None:
        for section in self.sections:
            if any(q.id == question_id for q in section.questions):
                return section
        return None

    @property
    def total_weight(self) -> int:
        return sum(q.weight for q in self.questions)

    @property
    def max_points(self) -> int:
        return sum(q.points for q in self.questions)

    def to_dict(self) -> dict:
        """Convert to dictionary for storage/export."""
        return {
            "title": self.title,
            "description": self.description,
            "icon": self.icon,
            "category": self.category,
            "sector_id": self.sector_id,
            "difficulty": self.difficulty.value,
            "estimated_minutes": self.estimated_minutes,
            "schedule": self.schedule.to_dict(),
            "is_published": self.is_published,
            "sections": [s.to_dict() for s in self.sections],
        }

    @classmethod
    def from_dict(
        cls,
        data: dict,
        id: int | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ) -> "ChecklistTemplate":
        """Create from dictionary."""
        return cls(
            id=id,
            title=_pick(data, "title", "name", default=""),
            description=data.get("description") or "",
            icon=data.get("icon") or "",
            category=data.get("category") or "",
            sector_id=data.get("sector_id"),
            difficulty=Difficulty(data.get("difficulty") or "easy"),
            estimated_minutes=_pick(data, "estimated_minutes", "estimatedTime"),
            schedule=ScheduleConfig.from_dict(data.get("schedule")),
            current_version=data.get("current_version", 0),
            is_published=bool(_pick(data, "is_published", "isPublished", default=False)),
            sections=[Section.from_dict(s) for s in data.get("sections", [])],
            created_at=created_at,
            updated_at=updated_at,
        )


@dataclass
class TemplateVersion:
    """Snapshot of a template's sections taken on save."""

    template_id: int
    version: int
    sections: list[Section]
    changes: str = ""
    questions_added: int = 0
    questions_removed: int = 0
    questions_modified: int = 0
    created_by: int | None = None
    created_at: datetime | None = None
    id: int | None = None

    def to_dict(self) -> dict:
        return {
            "template_id": self.template_id,
            "version": self.version,
            "changes": self.changes,
            "questions_added": self.questions_added,
            "questions_removed": self.questions_removed,
            "questions_modified": self.questions_modified,
            "created_by": self.created_by,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "sections": [s.to_dict() for s in self.sections],
        }


def diff_sections(old: list[Section], new: list[Section]) -> tuple[int, int, int]:
    """Count questions added, removed and modified between two snapshots."""
    old_questions = {q.id: q.to_dict() for s in old for q in s.questions}
    new_questions = {q.id: q.to_dict() for s in new for q in s.questions}

    added = len(new_questions.keys() - old_questions.keys())
    removed = len(old_questions.keys() - new_questions.keys())
    modified = sum(
        1
        for qid in new_questions.keys() & old_questions.keys()
        if new_questions[qid] != old_questions[qid]
    )
    return added, removed, modified


def describe_changes(added: int, removed: int, modified: int) -> str:
    """Short change summary for a version entry."""
    if not (added or removed or modified):
        return "No question changes"
    parts = []
    if added:
        parts.append(f"{added} added")
    if removed:
        parts.append(f"{removed} removed")
    if modified:
        parts.append(f"{modified} modified")
    return "Questions " + ", ".join(parts)
