"""Conditional rule evaluation.

Rules hang off a question and compare the respondent's answer against a
value. Matching rules reveal follow-up questions, demand photo evidence,
queue an action plan or notify a supervisor.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable

from ..models.template import (
    ChecklistTemplate,
    ComparisonOperator,
    ConditionalRule,
    Question,
    RuleAction,
)

logger = logging.getLogger(__name__)

# Actions whose targets become visible when the rule matches
REVEALING_ACTIONS = {RuleAction.SHOW_QUESTIONS, RuleAction.REQUIRE_PHOTO}


def stringify(value: Any) -> str:
    """Render an answer the way rules compare it."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "yes" if value else "no"
    if isinstance(value, (list, tuple)):
        return ", ".join(stringify(v) for v in value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _to_number(text: str) -> float | None:
    text = text.strip()
    if not text:
        return None
    try:
        return float(text)
    except ValueError:
        return None


def matches(rule: ConditionalRule, value: Any) -> bool:
    """Check a single rule's condition (ignoring nested rules)."""
    answer = stringify(value)
    expected = rule.effective_value

    if rule.operator == ComparisonOperator.EQUALS:
        return answer.strip().casefold() == expected.strip().casefold()
    if rule.operator == ComparisonOperator.NOT_EQUALS:
        return answer.strip().casefold() != expected.strip().casefold()

    left = _to_number(answer)
    right = _to_number(expected)
    if left is None or right is None:
        return False

    if rule.operator == ComparisonOperator.GREATER_THAN:
        return left > right
    if rule.operator == ComparisonOperator.LESS_THAN:
        return left < right
    if rule.operator == ComparisonOperator.GTE:
        return left >= right
    if rule.operator == ComparisonOperator.LTE:
        return left <= right
    return False


@dataclass
class RuleOutcome:
    """A rule that fired for a question's answer."""

    rule_id: str
    action: RuleAction
    question_id: str
    target_question_ids: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "rule_id": self.rule_id,
            "action": self.action.value,
            "question_id": self.question_id,
            "target_question_ids": self.target_question_ids,
        }


def _collect(
    rules: Iterable[ConditionalRule],
    question_id: str,
    value: Any,
    seen: set[str],
    outcomes: list[RuleOutcome],
) -> None:
    for rule in rules:
        if not matches(rule, value):
            continue
        if rule.id not in seen:
            seen.add(rule.id)
            outcomes.append(
                RuleOutcome(
                    rule_id=rule.id,
                    action=rule.action,
                    question_id=question_id,
                    target_question_ids=list(rule.target_question_ids),
                )
            )
        # Nested rules only apply once their parent matched
        _collect(rule.nested_rules, question_id, value, seen, outcomes)


def evaluate_rules(question: Question, value: Any) -> list[RuleOutcome]:
    """Evaluate a question's rules against an answer.

    Sibling rules are checked in order and every match fires. Each rule
    fires at most once per answer.
    """
    outcomes: list[RuleOutcome] = []
    _collect(question.conditional_rules, question.id, value, set(), outcomes)
    return outcomes


@dataclass
class RuleEvaluation:
    """Rule effects across a whole template for a set of answers."""

    visible: set[str]
    outcomes: list[RuleOutcome]
    photo_required: set[str]

    def action_plan_question_ids(self) -> list[str]:
        """Questions whose answers asked for an action plan, in firing order."""
        ordered: list[str] = []
        for outcome in self.outcomes:
            if outcome.action == RuleAction.CREATE_ACTION_PLAN:
                if outcome.question_id not in ordered:
                    ordered.append(outcome.question_id)
        return ordered

    def notifications(self) -> list[RuleOutcome]:
        return [o for o in self.outcomes if o.action == RuleAction.NOTIFY_SUPERVISOR]


def initially_visible(template: ChecklistTemplate) -> set[str]:
    """Questions shown before any answer: everything not gated by a rule."""
    gated = set()
    for question in template.questions:
        for rule in _walk(question.conditional_rules):
            if rule.action == RuleAction.SHOW_QUESTIONS:
                gated.update(rule.target_question_ids)
    return {
        q.id
        for q in template.questions
        if q.id not in gated and not q.conditional_parent_id
    }


def _walk(rules: Iterable[ConditionalRule]) -> Iterable[ConditionalRule]:
    for rule in rules:
        yield rule
        yield from _walk(rule.nested_rules)


def evaluate_template(template: ChecklistTemplate, answers: dict[str, Any]) -> RuleEvaluation:
    """Evaluate every visible answered question until visibility settles.

    Visibility only grows, so chains of reveals (including cycles) stop
    once a pass adds nothing new.
    """
    by_id = {q.id: q for q in template.questions}
    visible = initially_visible(template)

    while True:
        outcomes: list[RuleOutcome] = []
        for question in template.questions:
            if question.id in visible and question.id in answers:
                outcomes.extend(evaluate_rules(question, answers[question.id]))

        revealed = {
            target
            for outcome in outcomes
            if outcome.action in REVEALING_ACTIONS
            for target in outcome.target_question_ids
            if target in by_id
        }
        if revealed <= visible:
            break
        visible |= revealed

    photo_required = {q.id for q in template.questions if q.photo_required and q.id in visible}
    for outcome in outcomes:
        if outcome.action == RuleAction.REQUIRE_PHOTO:
            targets = outcome.target_question_ids or [outcome.question_id]
            photo_required.update(t for t in targets if t in visible)

    logger.debug(
        "Rules evaluated: %d visible, %d fired", len(visible), len(outcomes)
    )
    return RuleEvaluation(visible=visible, outcomes=outcomes, photo_required=photo_required)
