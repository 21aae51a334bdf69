"""Tests for conditional rule evaluation."""

import pytest

from brigade.engine.rules import (
    evaluate_rules,
    evaluate_template,
    initially_visible,
    matches,
    stringify,
)
from brigade.models.template import (
    ChecklistTemplate,
    ComparisonOperator,
    ConditionalRule,
    Question,
    RuleAction,
    Section,
)


def rule(rule_id="r1", operator="equals", value="no", action="show_questions", targets=None, nested=None):
    return ConditionalRule(
        id=rule_id,
        operator=ComparisonOperator(operator),
        compare_value=value,
        action=RuleAction(action),
        target_question_ids=targets or [],
        nested_rules=nested or [],
    )


class TestStringify:
    """Tests for answer stringification."""

    def test_booleans(self):
        assert stringify(True) == "yes"
        assert stringify(False) == "no"

    def test_none_and_lists(self):
        assert stringify(None) == ""
        assert stringify(["a", "b"]) == "a, b"

    def test_whole_floats_drop_decimal(self):
        assert stringify(8.0) == "8"
        assert stringify(8.5) == "8.5"


class TestMatches:
    """Tests for single rule conditions."""

    def test_equals_is_case_and_space_insensitive(self):
        assert matches(rule(value="No"), " no ")
        assert not matches(rule(value="no"), "yes")

    def test_equals_boolean_answer(self):
        assert matches(rule(value="no"), False)

    def test_not_equals(self):
        assert matches(rule(operator="not_equals", value="yes"), "no")
        assert not matches(rule(operator="not_equals", value="yes"), "YES")

    @pytest.mark.parametrize(
        "operator,answer,expected",
        [
            ("greater_than", 9, True),
            ("greater_than", 8, False),
            ("less_than", 7.5, True),
            ("gte", 8, True),
            ("lte", 8.1, False),
        ],
    )
    def test_numeric_operators(self, operator, answer, expected):
        assert matches(rule(operator=operator, value="8"), answer) is expected

    def test_numeric_operator_with_text_never_matches(self):
        assert not matches(rule(operator="greater_than", value="8"), "warm")
        assert not matches(rule(operator="less_than", value=""), 3)

    def test_legacy_trigger_answer(self):
        legacy = ConditionalRule(
            id="old", trigger_answer="no", action=RuleAction.NOTIFY_SUPERVISOR
        )
        assert matches(legacy, "no")


class TestEvaluateRules:
    """Tests for a question's rule list."""

    def test_matching_rule_fires_exactly_once(self):
        question = Question(id="q", text="Q", conditional_rules=[rule(targets=["x"])])
        outcomes = evaluate_rules(question, "no")
        assert len(outcomes) == 1
        assert outcomes[0].rule_id == "r1"
        assert outcomes[0].target_question_ids == ["x"]

    def test_all_matching_siblings_fire_in_order(self):
        question = Question(
            id="q",
            text="Q",
            conditional_rules=[
                rule("a", action="create_action_plan"),
                rule("b", value="yes"),
                rule("c", action="notify_supervisor"),
            ],
        )
        assert [o.rule_id for o in evaluate_rules(question, "no")] == ["a", "c"]

    def test_nested_rules_need_parent_match(self):
        nested = rule("child", operator="not_equals", value="", action="notify_supervisor")
        question = Question(
            id="q", text="Q", conditional_rules=[rule("parent", value="no", nested=[nested])]
        )
        assert [o.rule_id for o in evaluate_rules(question, "no")] == ["parent", "child"]
        assert evaluate_rules(question, "yes") == []

    def test_duplicate_rule_ids_fire_once(self):
        question = Question(id="q", text="Q", conditional_rules=[rule("same"), rule("same")])
        assert len(evaluate_rules(question, "no")) == 1


class TestEvaluateTemplate:
    """Tests for template-wide visibility."""

    def test_gated_questions_start_hidden(self, sample_template):
        visible = initially_visible(sample_template)
        assert visible == {"fridge_ok", "floor_clean", "notes"}

    def test_answer_reveals_follow_up(self, sample_template):
        evaluation = evaluate_template(sample_template, {"fridge_ok": "no"})
        assert "fridge_temp" in evaluation.visible
        assert evaluation.action_plan_question_ids() == ["fridge_ok"]

    def test_positive_answer_keeps_follow_up_hidden(self, sample_template):
        evaluation = evaluate_template(sample_template, {"fridge_ok": "yes"})
        assert "fridge_temp" not in evaluation.visible
        assert evaluation.outcomes == []

    def test_hidden_answers_are_ignored(self, sample_template):
        evaluation = evaluate_template(
            sample_template, {"fridge_ok": "yes", "fridge_temp": 12}
        )
        assert evaluation.notifications() == []

    def test_chained_reveal_notifies(self, sample_template):
        evaluation = evaluate_template(sample_template, {"fridge_ok": "no", "fridge_temp": 12})
        notifications = evaluation.notifications()
        assert [n.question_id for n in notifications] == ["fridge_temp"]

    def test_require_photo_without_targets_applies_to_question(self, sample_template):
        evaluation = evaluate_template(sample_template, {"floor_clean": "no"})
        assert evaluation.photo_required == {"floor_clean"}

    def test_reveal_cycle_terminates(self):
        template = ChecklistTemplate(
            title="Loop",
            sections=[
                Section(
                    id="s",
                    title="S",
                    questions=[
                        Question(id="a", text="A", conditional_rules=[rule("ra", targets=["b"])]),
                        Question(
                            id="b",
                            text="B",
                            order=1,
                            conditional_rules=[rule("rb", targets=["a"])],
                        ),
                    ],
                )
            ],
        )
        # Both questions gate each other, so neither is visible at first
        evaluation = evaluate_template(template, {"a": "no", "b": "no"})
        assert evaluation.visible == set()
