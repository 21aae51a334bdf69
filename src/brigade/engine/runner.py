"""Checklist execution state machine.

A run moves through three phases: answering questions, walking the
queue of action-plan drafts raised by non-conformities, and signing.
Signing stops the timer and produces the final result.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from ..errors import ChecklistStateError
from ..models.action_plan import ActionPlan, ActionPlanDraft
from ..models.execution import ChecklistResponse
from ..models.template import ChecklistTemplate, QuestionType, RuleAction
from .rules import RuleEvaluation, RuleOutcome, evaluate_rules, evaluate_template, stringify
from .scoring import ScoreBreakdown, base_score, combo_bonus, compute_score, conformity
from .timer import ChecklistTimer

logger = logging.getLogger(__name__)

DEFAULT_ESTIMATED_MINUTES = 15


class RunPhase(str, Enum):
    ANSWERING = "answering"
    ACTION_PLANS = "action_plans"
    SIGNATURE = "signature"
    FINISHED = "finished"


@dataclass
class AnswerResult:
    """Feedback for a single answer."""

    question_id: str
    first_time: bool
    combo: int
    combo_bonus: int
    outcomes: list[RuleOutcome]


@dataclass
class ChecklistResult:
    """Everything a finished run produced."""

    responses: list[ChecklistResponse]
    score: ScoreBreakdown
    conformity: float
    elapsed_seconds: float
    had_inactivity_penalty: bool
    signature: str
    action_plans: list[ActionPlan] = field(default_factory=list)
    plan_question_ids: list[str] = field(default_factory=list)  # parallel to action_plans
    notifications: list[RuleOutcome] = field(default_factory=list)
    max_combo: int = 0

    def to_dict(self) -> dict:
        return {
            "responses": [r.to_dict() for r in self.responses],
            "score": self.score.to_dict(),
            "conformity": round(self.conformity, 1),
            "elapsed_seconds": round(self.elapsed_seconds),
            "had_inactivity_penalty": self.had_inactivity_penalty,
            "signature": self.signature,
            "action_plans": [p.to_dict() for p in self.action_plans],
            "notifications": [n.to_dict() for n in self.notifications],
            "max_combo": self.max_combo,
        }


class ChecklistRun:
    """Drives one execution of a template."""

    def __init__(
        self,
        template: ChecklistTemplate,
        timer: ChecklistTimer | None = None,
        include_combo_bonus: bool = False,
        default_estimated_minutes: int = DEFAULT_ESTIMATED_MINUTES,
        responses: list[ChecklistResponse] | None = None,
    ):
        self.template = template
        self.estimated_minutes = template.estimated_minutes or default_estimated_minutes
        self.timer = timer or ChecklistTimer(self.estimated_minutes)
        self.include_combo_bonus = include_combo_bonus
        self.phase = RunPhase.ANSWERING
        self.responses: dict[str, ChecklistResponse] = {
            r.question_id: r for r in (responses or [])
        }
        self.combo = 0
        self.max_combo = 0
        self.combo_total = 0
        self.queue: list[ActionPlanDraft] = []
        self.action_plans: list[ActionPlan] = []
        self.plan_question_ids: list[str] = []
        self._queue_index = 0
        self._questions = {q.id: q for q in template.questions}

        # Restored answers rebuild the combo in the order they were given
        for response in sorted(
            self.responses.values(), key=lambda r: r.answered_at or datetime.min
        ):
            if response.question_id in self._questions:
                self._count_first_answer(self._questions[response.question_id])

        if not self.timer.is_running:
            self.timer.start()

    @property
    def answers(self) -> dict[str, Any]:
        return {qid: r.value for qid, r in self.responses.items()}

    @property
    def photos(self) -> dict[str, list[str]]:
        return {qid: r.photo_urls for qid, r in self.responses.items()}

    def evaluate(self) -> RuleEvaluation:
        return evaluate_template(self.template, self.answers)

    def visible_questions(self):
        """Visible questions in display order."""
        visible = self.evaluate().visible
        return [q for q in self.template.questions if q.id in visible]

    def _require_phase(self, phase: RunPhase) -> None:
        if self.phase != phase:
            raise ChecklistStateError(
                f"Checklist is in the {self.phase.value} phase, not {phase.value}"
            )

    def _count_first_answer(self, question) -> int:
        self.combo += 1
        self.max_combo = max(self.max_combo, self.combo)
        bonus = combo_bonus(question.points, self.combo)
        self.combo_total += bonus
        return bonus

    def answer(
        self,
        question_id: str,
        value: Any,
        photo_urls: list[str] | None = None,
        comment: str = "",
        has_issue: bool = False,
    ) -> AnswerResult:
        """Record (or change) the answer to a visible question."""
        self._require_phase(RunPhase.ANSWERING)
        question = self._questions.get(question_id)
        if question is None:
            raise ChecklistStateError(f"Unknown question: {question_id}")
        if question_id not in self.evaluate().visible:
            raise ChecklistStateError(f"Question {question_id} is not visible")

        self.timer.record_activity()
        previous = self.responses.get(question_id)
        first_time = previous is None

        self.responses[question_id] = ChecklistResponse(
            question_id=question_id,
            value=value,
            photo_urls=list(photo_urls) if photo_urls is not None
            else (previous.photo_urls if previous else []),
            comment=comment,
            has_issue=has_issue,
            answered_at=datetime.now(),
        )

        bonus = self._count_first_answer(question) if first_time else 0

        outcomes = evaluate_rules(question, value)
        logger.debug(
            "Answered %s with %r (%d rules fired)",
            question_id, stringify(value), len(outcomes),
        )
        return AnswerResult(
            question_id=question_id,
            first_time=first_time,
            combo=self.combo,
            combo_bonus=bonus,
            outcomes=outcomes,
        )

    def missing_required(self) -> list[str]:
        """Visible questions still blocking submission, in display order.

        A required question needs an answer; a question that requires
        photo evidence needs at least one photo (photo questions can hold
        the photo as their answer).
        """
        evaluation = self.evaluate()
        missing = []
        for question in self.template.questions:
            if question.id not in evaluation.visible:
                continue
            response = self.responses.get(question.id)
            answered = response is not None and stringify(response.value).strip() != ""
            if question.type == QuestionType.PHOTO and response and response.photo_urls:
                answered = True
            if question.required and not answered:
                missing.append(question.id)
                continue
            if question.id in evaluation.photo_required:
                has_photo = bool(response and response.photo_urls) or (
                    question.type == QuestionType.PHOTO and answered
                )
                if not has_photo:
                    missing.append(question.id)
        return missing

    def submit(self) -> list[ActionPlanDraft]:
        """Finish answering and build the action-plan queue."""
        self._require_phase(RunPhase.ANSWERING)
        missing = self.missing_required()
        if missing:
            raise ChecklistStateError(
                f"{len(missing)} required question(s) unanswered: {', '.join(missing)}"
            )

        evaluation = self.evaluate()
        drafts: list[ActionPlanDraft] = []
        queued: set[str] = set()
        rule_by_question: dict[str, str] = {}
        for outcome in evaluation.outcomes:
            if outcome.action == RuleAction.CREATE_ACTION_PLAN:
                rule_by_question.setdefault(outcome.question_id, outcome.rule_id)
        for question_id in evaluation.action_plan_question_ids():
            drafts.append(self._draft(question_id, "rule", rule_by_question.get(question_id)))
            queued.add(question_id)

        for question in self.template.questions:
            response = self.responses.get(question.id)
            if (
                response is not None
                and response.has_issue
                and question.id in evaluation.visible
                and question.id not in queued
            ):
                drafts.append(self._draft(question.id, "issue"))
                queued.add(question.id)

        self.queue = drafts
        self._queue_index = 0
        self.phase = RunPhase.ACTION_PLANS if drafts else RunPhase.SIGNATURE
        logger.info("Checklist submitted with %d action plan draft(s)", len(drafts))
        return drafts

    def _draft(self, question_id: str, reason: str, rule_id: str | None = None) -> ActionPlanDraft:
        question = self._questions[question_id]
        response = self.responses.get(question_id)
        return ActionPlanDraft(
            question_id=question_id,
            question_text=question.text,
            reason=reason,
            answer=stringify(response.value) if response else "",
            rule_id=rule_id,
        )

    @property
    def current_draft(self) -> ActionPlanDraft | None:
        if self.phase != RunPhase.ACTION_PLANS:
            return None
        return self.queue[self._queue_index]

    def _advance_queue(self) -> None:
        self._queue_index += 1
        if self._queue_index >= len(self.queue):
            self.phase = RunPhase.SIGNATURE

    def submit_action_plan(self, **fields) -> ActionPlan:
        """Turn the current draft into an action plan and move on."""
        self._require_phase(RunPhase.ACTION_PLANS)
        self.timer.record_activity()
        plan = self.current_draft.to_action_plan(**fields)
        self.action_plans.append(plan)
        self.plan_question_ids.append(self.current_draft.question_id)
        self._advance_queue()
        return plan

    def skip_action_plan(self) -> None:
        self._require_phase(RunPhase.ACTION_PLANS)
        self.timer.record_activity()
        self._advance_queue()

    def sign(self, signature: str) -> ChecklistResult:
        """Sign the checklist, stop the timer and compute the result."""
        self._require_phase(RunPhase.SIGNATURE)
        if not signature or not signature.strip():
            raise ChecklistStateError("A signature is required to finish the checklist")

        elapsed = self.timer.stop()
        penalty = self.timer.had_inactivity_penalty
        evaluation = self.evaluate()
        answers = self.answers

        base = base_score(self.template, answers, evaluation.visible, self.photos)
        breakdown = compute_score(
            base=base,
            elapsed_seconds=elapsed,
            estimated_minutes=self.estimated_minutes,
            had_inactivity_penalty=penalty,
            difficulty=self.template.difficulty,
            combo=self.combo_total,
            include_combo=self.include_combo_bonus,
        )
        self.phase = RunPhase.FINISHED

        responses = [
            self.responses[q.id]
            for q in self.template.questions
            if q.id in self.responses and q.id in evaluation.visible
        ]
        return ChecklistResult(
            responses=responses,
            score=breakdown,
            conformity=conformity(self.template, answers, evaluation.visible, self.photos),
            elapsed_seconds=elapsed,
            had_inactivity_penalty=penalty,
            signature=signature,
            action_plans=list(self.action_plans),
            plan_question_ids=list(self.plan_question_ids),
            notifications=evaluation.notifications(),
            max_combo=self.max_combo,
        )
