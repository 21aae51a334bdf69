"""Tests for the checklist run state machine."""

from datetime import datetime

import pytest

from brigade.engine.runner import ChecklistRun, RunPhase
from brigade.engine.timer import ChecklistTimer
from brigade.errors import ChecklistStateError
from brigade.models.action_plan import CostType
from brigade.models.execution import ChecklistResponse
from brigade.models.template import ChecklistTemplate


@pytest.fixture
def make_run(clock):
    def _make(template, **kwargs):
        timer = ChecklistTimer(template.estimated_minutes or 15, clock=clock)
        return ChecklistRun(template, timer=timer, **kwargs)

    return _make


class TestAnswering:
    """Tests for the answering phase."""

    def test_visible_questions_follow_answers(self, sample_template, make_run):
        run = make_run(sample_template)
        assert [q.id for q in run.visible_questions()] == ["fridge_ok", "floor_clean", "notes"]
        run.answer("fridge_ok", "no")
        assert [q.id for q in run.visible_questions()] == [
            "fridge_ok",
            "fridge_temp",
            "floor_clean",
            "notes",
        ]

    def test_hidden_question_cannot_be_answered(self, sample_template, make_run):
        run = make_run(sample_template)
        with pytest.raises(ChecklistStateError):
            run.answer("fridge_temp", 4)

    def test_unknown_question(self, sample_template, make_run):
        with pytest.raises(ChecklistStateError):
            make_run(sample_template).answer("nope", "yes")

    def test_answer_reports_fired_rules(self, sample_template, make_run):
        result = make_run(sample_template).answer("fridge_ok", "no")
        assert {o.rule_id for o in result.outcomes} == {"r_fridge_plan", "r_fridge_temp"}

    def test_combo_counts_first_answers_only(self, sample_template, make_run):
        run = make_run(sample_template)
        run.answer("fridge_ok", "yes")
        run.answer("fridge_ok", "yes")
        run.answer("floor_clean", "yes")
        third = run.answer("notes", "fine")
        assert third.combo == 3
        assert third.combo_bonus == 1
        assert run.max_combo == 3

    def test_missing_required_includes_photo(self, sample_template, make_run):
        run = make_run(sample_template)
        assert run.missing_required() == ["fridge_ok", "floor_clean"]
        run.answer("fridge_ok", "yes")
        run.answer("floor_clean", "no")
        assert run.missing_required() == ["floor_clean"]
        run.answer("floor_clean", "no", photo_urls=["/evidence/c/floor.jpg"])
        assert run.missing_required() == []

    def test_submit_blocked_until_complete(self, sample_template, make_run):
        run = make_run(sample_template)
        with pytest.raises(ChecklistStateError):
            run.submit()
        assert run.phase == RunPhase.ANSWERING

    def test_resume_from_saved_responses(self, sample_template, make_run):
        run = make_run(
            sample_template,
            responses=[ChecklistResponse(question_id="fridge_ok", value="no")],
        )
        assert "fridge_temp" in {q.id for q in run.visible_questions()}

    def test_resume_rebuilds_combo(self, sample_template, make_run):
        run = make_run(
            sample_template,
            responses=[
                ChecklistResponse(
                    question_id="floor_clean", value="yes", answered_at=datetime(2024, 5, 1, 8, 1)
                ),
                ChecklistResponse(
                    question_id="fridge_ok", value="yes", answered_at=datetime(2024, 5, 1, 8, 0)
                ),
            ],
        )
        assert run.combo == 2
        third = run.answer("notes", "fine")
        assert third.combo == 3
        assert third.combo_bonus == 1
        assert run.combo_total == 1


class TestActionPlanQueue:
    """Tests for the action-plan and signature phases."""

    def _answer_all(self, run, fridge="no", floor="yes"):
        run.answer("fridge_ok", fridge)
        if fridge == "no":
            run.answer("fridge_temp", 12)
        run.answer("floor_clean", floor, photo_urls=["/evidence/x.jpg"] if floor == "no" else None)

    def test_no_non_conformities_goes_to_signature(self, sample_template, make_run):
        run = make_run(sample_template)
        self._answer_all(run, fridge="yes")
        assert run.submit() == []
        assert run.phase == RunPhase.SIGNATURE
        assert run.current_draft is None

    def test_rule_and_issue_drafts_queue_in_order(self, sample_template, make_run):
        run = make_run(sample_template)
        self._answer_all(run)
        run.answer("floor_clean", "yes", has_issue=True)
        drafts = run.submit()
        assert [(d.question_id, d.reason) for d in drafts] == [
            ("fridge_ok", "rule"),
            ("floor_clean", "issue"),
        ]
        assert drafts[0].rule_id == "r_fridge_plan"
        assert drafts[0].title == "Non-conformity: Is the walk-in fridge below 5C?"

    def test_issue_on_rule_question_is_not_duplicated(self, sample_template, make_run):
        run = make_run(sample_template)
        self._answer_all(run)
        run.answer("fridge_ok", "no", has_issue=True)
        assert len(run.submit()) == 1

    def test_walk_queue_and_sign(self, sample_template, make_run, clock):
        run = make_run(sample_template)
        self._answer_all(run)
        run.answer("floor_clean", "yes", has_issue=True)
        run.submit()

        plan = run.submit_action_plan(description="Keeps food safe", cost_type=CostType.MONEY)
        assert plan.title.startswith("Non-conformity: ")
        assert run.phase == RunPhase.ACTION_PLANS
        run.skip_action_plan()
        assert run.phase == RunPhase.SIGNATURE

        with pytest.raises(ChecklistStateError):
            run.sign("   ")

        clock.advance(120)
        result = run.sign("Ana")
        assert run.phase == RunPhase.FINISHED
        assert result.elapsed_seconds == 120
        assert len(result.action_plans) == 1
        assert result.plan_question_ids == ["fridge_ok"]
        assert [n.question_id for n in result.notifications] == ["fridge_temp"]
        # fridge_temp (5) + floor_clean (10); medium difficulty
        assert result.score.base == 15
        assert result.score.final == (15 + 3 + 2) * 120 // 100

    def test_cannot_answer_after_submit(self, sample_template, make_run):
        run = make_run(sample_template)
        self._answer_all(run, fridge="yes")
        run.submit()
        with pytest.raises(ChecklistStateError):
            run.answer("notes", "late")

    def test_hidden_responses_are_dropped_from_result(self, sample_template, make_run):
        run = make_run(sample_template)
        run.answer("fridge_ok", "no")
        run.answer("fridge_temp", 3)
        run.answer("fridge_ok", "yes")
        run.answer("floor_clean", "yes")
        run.submit()
        result = run.sign("Ana")
        assert [r.question_id for r in result.responses] == ["fridge_ok", "floor_clean"]
        # notes is visible but unanswered, so its weight of 1 is not earned
        assert result.conformity == pytest.approx(75.0)

    def test_photo_answer_counts_toward_conformity(self, make_run):
        template = ChecklistTemplate.from_dict(
            {
                "title": "Display",
                "sections": [
                    {
                        "id": "main",
                        "title": "Main",
                        "questions": [
                            {"id": "shelf", "text": "Shelf photo", "type": "photo", "points": 10}
                        ],
                    }
                ],
            }
        )
        run = make_run(template)
        run.answer("shelf", None, photo_urls=["/evidence/a.jpg"])
        run.submit()
        result = run.sign("Ana")
        assert result.score.base == 10
        assert result.conformity == pytest.approx(100.0)
