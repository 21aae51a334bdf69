"""Checklist execution engine: rules, scoring, timer and run state."""

from .rules import RuleEvaluation, RuleOutcome, evaluate_rules, evaluate_template, stringify
from .runner import ChecklistResult, ChecklistRun, RunPhase
from .scoring import ScoreBreakdown, compute_score, conformity, counts_as_positive
from .timer import ChecklistTimer, format_duration

__all__ = [
    "ChecklistResult",
    "ChecklistRun",
    "ChecklistTimer",
    "compute_score",
    "conformity",
    "counts_as_positive",
    "evaluate_rules",
    "evaluate_template",
    "format_duration",
    "RuleEvaluation",
    "RuleOutcome",
    "RunPhase",
    "ScoreBreakdown",
    "stringify",
]
