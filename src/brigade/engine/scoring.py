"""Checklist score computation.

Points come from positively answered questions, then speed and focus
bonuses are added and the total is scaled by the template difficulty.
"""

import math
from dataclasses import dataclass
from typing import Any, Iterable

from ..models.template import ChecklistTemplate, Difficulty, Question, QuestionType

SPEED_BONUS_RATE = 0.2
FOCUS_BONUS_RATE = 0.15
COMBO_BONUS_RATE = 0.2
COMBO_THRESHOLD = 3

NOT_APPLICABLE = "na"


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple, dict)):
        return len(value) == 0
    return False


def counts_as_positive(question: Question, value: Any, photo_urls: list[str] | None = None) -> bool:
    """Whether an answer earns the question's points."""
    if question.type == QuestionType.YES_NO:
        if isinstance(value, bool):
            return value
        return isinstance(value, str) and value.strip().casefold() == "yes"

    if question.type == QuestionType.PHOTO:
        return bool(photo_urls) or not _is_empty(value)

    if isinstance(value, bool):
        return value
    return not _is_empty(value)


def base_score(
    template: ChecklistTemplate,
    answers: dict[str, Any],
    visible: Iterable[str] | None = None,
    photos: dict[str, list[str]] | None = None,
) -> int:
    """Sum the points of visible, positively answered questions."""
    shown = set(visible) if visible is not None else {q.id for q in template.questions}
    photos = photos or {}
    return sum(
        q.points
        for q in template.questions
        if q.id in shown
        and q.id in answers
        and counts_as_positive(q, answers[q.id], photos.get(q.id))
    )


def speed_bonus(base: int, elapsed_seconds: float, estimated_minutes: int) -> int:
    """floor(base * 0.2) when finished within the estimate."""
    if elapsed_seconds <= estimated_minutes * 60:
        return math.floor(base * SPEED_BONUS_RATE)
    return 0


def focus_bonus(base: int, had_inactivity_penalty: bool) -> int:
    """floor(base * 0.15) when the user never went idle for too long."""
    if had_inactivity_penalty:
        return 0
    return math.floor(base * FOCUS_BONUS_RATE)


def difficulty_multiplier(difficulty: Difficulty | str | None) -> float:
    try:
        return Difficulty(difficulty).multiplier
    except ValueError:
        return 1.0


def combo_bonus(points: int, combo: int) -> int:
    """Bonus for the `combo`-th consecutive first-time answer."""
    if combo >= COMBO_THRESHOLD:
        return math.floor(points * COMBO_BONUS_RATE)
    return 0


@dataclass
class ScoreBreakdown:
    """All the parts that make up a final score."""

    base: int
    speed_bonus: int
    focus_bonus: int
    combo_bonus: int
    multiplier: float
    final: int

    def to_dict(self) -> dict:
        return {
            "base": self.base,
            "speed_bonus": self.speed_bonus,
            "focus_bonus": self.focus_bonus,
            "combo_bonus": self.combo_bonus,
            "multiplier": self.multiplier,
            "final": self.final,
        }


def compute_score(
    base: int,
    elapsed_seconds: float,
    estimated_minutes: int,
    had_inactivity_penalty: bool,
    difficulty: Difficulty | str | None,
    combo: int = 0,
    include_combo: bool = False,
) -> ScoreBreakdown:
    """Combine base points, bonuses and difficulty into a final score.

    `combo` is the accumulated combo bonus; it only joins the base when
    `include_combo` is set.
    """
    if include_combo:
        base += combo
    speed = speed_bonus(base, elapsed_seconds, estimated_minutes)
    focus = focus_bonus(base, had_inactivity_penalty)
    multiplier = difficulty_multiplier(difficulty)
    # Integer percent keeps e.g. 135 * 1.2 from flooring to 161
    final = (base + speed + focus) * round(multiplier * 100) // 100
    return ScoreBreakdown(
        base=base,
        speed_bonus=speed,
        focus_bonus=focus,
        combo_bonus=combo,
        multiplier=multiplier,
        final=final,
    )


def conformity(
    template: ChecklistTemplate,
    answers: dict[str, Any],
    visible: Iterable[str] | None = None,
    photos: dict[str, list[str]] | None = None,
) -> float:
    """Weighted share of positive answers, as a percentage.

    Every visible question weighs in, answered or not; only questions
    answered "na" are left out of the total. With no weight to measure
    against the checklist is fully conforming.
    """
    shown = set(visible) if visible is not None else {q.id for q in template.questions}
    photos = photos or {}
    total = 0
    earned = 0
    for question in template.questions:
        if question.id not in shown:
            continue
        answer = answers.get(question.id)
        if isinstance(answer, str) and answer.strip().casefold() == NOT_APPLICABLE:
            continue
        total += question.weight
        if question.id in answers and counts_as_positive(
            question, answer, photos.get(question.id)
        ):
            earned += question.weight

    if total <= 0:
        return 100.0
    return earned / total * 100
