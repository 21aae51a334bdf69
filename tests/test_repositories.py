"""Tests for the SQLite repositories."""

import pytest

from brigade.db import (
    ActionPlanRepository,
    ActivityLogRepository,
    ChecklistRepository,
    DuelRepository,
    ProfileRepository,
    SectorRepository,
    TemplateRepository,
)
from brigade.errors import TemplateValidationError
from brigade.models.action_plan import ActionPlan, ActionPlanStatus
from brigade.models.execution import ChecklistResponse, ChecklistStatus
from brigade.models.gamification import ActivityLog, Duel, DuelStatus, Profile, Sector
from brigade.models.template import ChecklistTemplate, Question


class TestTemplateRepository:
    """Tests for template storage and versioning."""

    @pytest.mark.asyncio
    async def test_save_and_get(self, db_path, sample_template):
        repo = TemplateRepository(db_path)
        template_id = await repo.save(sample_template)

        assert sample_template.id == template_id
        assert sample_template.current_version == 1

        loaded = await repo.get(template_id)
        assert loaded.title == "Kitchen Opening"
        assert [s.id for s in loaded.sections] == ["cold", "hygiene"]
        assert [q.id for q in loaded.questions] == [
            "fridge_ok",
            "fridge_temp",
            "floor_clean",
            "notes",
        ]
        assert loaded.get_question("fridge_temp").conditional_parent_id == "fridge_ok"
        assert loaded.current_version == 1

    @pytest.mark.asyncio
    async def test_save_again_records_diff(self, db_path, sample_template):
        repo = TemplateRepository(db_path)
        template_id = await repo.save(sample_template)

        sample_template.sections[1].questions.append(Question(id="bins", text="Bins emptied?"))
        await repo.save(sample_template)

        versions = await repo.list_versions(template_id)
        assert [v.version for v in versions] == [2, 1]
        assert versions[0].questions_added == 1
        assert versions[0].changes == "Questions 1 added"
        assert len(versions[1].sections[1].questions) == 2

        loaded = await repo.get(template_id)
        assert loaded.current_version == 2
        assert loaded.get_question("bins") is not None

    @pytest.mark.asyncio
    async def test_title_required(self, db_path):
        with pytest.raises(TemplateValidationError):
            await TemplateRepository(db_path).save(ChecklistTemplate(title="  "))

    @pytest.mark.asyncio
    async def test_list_published_only(self, db_path, sample_template, simple_template):
        repo = TemplateRepository(db_path)
        simple_template.is_published = True
        await repo.save(sample_template)
        await repo.save(simple_template)

        published = await repo.list_all(published_only=True)
        assert [t.title for t in published] == ["Quick check"]
        assert len(await repo.list_all()) == 2

    @pytest.mark.asyncio
    async def test_delete(self, db_path, simple_template):
        repo = TemplateRepository(db_path)
        template_id = await repo.save(simple_template)
        await repo.delete(template_id)
        assert await repo.get(template_id) is None
        assert await repo.list_versions(template_id) == []


class TestChecklistRepository:
    """Tests for executions and responses."""

    @pytest.mark.asyncio
    async def test_start_resumes_open_execution(self, db_path):
        repo = ChecklistRepository(db_path)
        first = await repo.start(1, user_id=7)
        again = await repo.start(1, user_id=7)
        other = await repo.start(1, user_id=8)

        assert first.id == again.id
        assert other.id != first.id
        assert again.status == ChecklistStatus.IN_PROGRESS

    @pytest.mark.asyncio
    async def test_save_responses_replaces(self, db_path):
        repo = ChecklistRepository(db_path)
        checklist = await repo.start(1, user_id=7)

        await repo.save_responses(
            checklist.id, [ChecklistResponse(question_id="q1", value="no", has_issue=True)]
        )
        saved = await repo.save_responses(
            checklist.id,
            [
                ChecklistResponse(question_id="q1", value="yes"),
                ChecklistResponse(question_id="q2", value=["a", "b"], photo_urls=["/e/1.jpg"]),
            ],
        )
        assert all(r.id is not None for r in saved)

        loaded = await repo.get(checklist.id)
        assert [(r.question_id, r.value) for r in loaded.responses] == [
            ("q1", "yes"),
            ("q2", ["a", "b"]),
        ]
        assert loaded.responses[1].photo_urls == ["/e/1.jpg"]
        assert not loaded.responses[0].has_issue

    @pytest.mark.asyncio
    async def test_complete_only_once(self, db_path):
        repo = ChecklistRepository(db_path)
        checklist = await repo.start(1, user_id=7)

        assert await repo.complete(checklist.id, 162, 87.54, "Ana")
        assert not await repo.complete(checklist.id, 200, 100.0, "Ana")

        loaded = await repo.get(checklist.id)
        assert loaded.status == ChecklistStatus.COMPLETED
        assert loaded.score == 162
        assert loaded.conformity == 87.5
        assert loaded.completed_at is not None

    @pytest.mark.asyncio
    async def test_start_after_complete_is_new(self, db_path):
        repo = ChecklistRepository(db_path)
        first = await repo.start(1, user_id=7)
        await repo.complete(first.id, 10, 100.0, "Ana")
        second = await repo.start(1, user_id=7)
        assert second.id != first.id

    @pytest.mark.asyncio
    async def test_cancel_and_list(self, db_path):
        repo = ChecklistRepository(db_path)
        first = await repo.start(1, user_id=7)
        await repo.start(2, user_id=7)
        assert await repo.cancel(first.id)
        assert not await repo.cancel(first.id)

        canceled = await repo.list_recent(user_id=7, status=ChecklistStatus.CANCELED)
        assert [c.id for c in canceled] == [first.id]
        assert len(await repo.list_recent(user_id=7)) == 2
        assert len(await repo.list_recent(template_id=2)) == 1


class TestActionPlanRepository:
    @pytest.mark.asyncio
    async def test_create_update_filter(self, db_path):
        repo = ActionPlanRepository(db_path)
        seal = ActionPlan(title="Replace fridge seal", assignee_id=1, checklist_id=5)
        mop = ActionPlan(title="Buy mop", assignee_id=2)
        await repo.create(seal)
        await repo.create(mop)
        assert seal.id is not None

        seal.set_status(ActionPlanStatus.RESOLVED)
        seal.notion_page_id = "page-1"
        await repo.update(seal)

        loaded = await repo.get(seal.id)
        assert loaded.status == ActionPlanStatus.RESOLVED
        assert loaded.resolved_at is not None
        assert (await repo.get_by_notion_page("page-1")).id == seal.id

        assert [p.title for p in await repo.list_all(assignee_id=2)] == ["Buy mop"]
        assert [p.id for p in await repo.list_all(status=ActionPlanStatus.RESOLVED)] == [seal.id]
        assert [p.id for p in await repo.list_all(checklist_id=5)] == [seal.id]

    @pytest.mark.asyncio
    async def test_update_requires_id(self, db_path):
        with pytest.raises(ValueError):
            await ActionPlanRepository(db_path).update(ActionPlan(title="x"))


class TestDuelRepository:
    """Tests for conditional duel updates."""

    @pytest.mark.asyncio
    async def test_transitions_are_guarded(self, db_path):
        repo = DuelRepository(db_path)
        duel = Duel(challenger_id=1, opponent_id=2, template_id=3, wager=50)
        await repo.create(duel)

        assert not await repo.record_progress(duel.id, "challenger", 50, 10)
        assert await repo.transition(duel.id, DuelStatus.PENDING, DuelStatus.ACTIVE)
        assert not await repo.transition(duel.id, DuelStatus.PENDING, DuelStatus.DECLINED)

        assert await repo.record_progress(duel.id, "opponent", 140, 90)
        assert await repo.complete(duel.id, 2)
        assert not await repo.complete(duel.id, 1)

        loaded = await repo.get(duel.id)
        assert loaded.status == DuelStatus.COMPLETED
        assert loaded.opponent_progress == 100.0
        assert loaded.opponent_score == 90
        assert loaded.winner_id == 2

    @pytest.mark.asyncio
    async def test_bad_side(self, db_path):
        with pytest.raises(ValueError):
            await DuelRepository(db_path).record_progress(1, "referee", 10, 1)

    @pytest.mark.asyncio
    async def test_list_for_user(self, db_path):
        repo = DuelRepository(db_path)
        await repo.create(Duel(challenger_id=1, opponent_id=2, template_id=3))
        await repo.create(Duel(challenger_id=3, opponent_id=1, template_id=3))
        await repo.create(Duel(challenger_id=2, opponent_id=3, template_id=3))
        assert len(await repo.list_for_user(1)) == 2


class TestProfileRepository:
    @pytest.mark.asyncio
    async def test_create_update_leaderboard(self, db_path):
        sectors = SectorRepository(db_path)
        kitchen_id = await sectors.create(Sector(name="Kitchen"))
        assert (await sectors.get_by_name("Kitchen")).id == kitchen_id

        repo = ProfileRepository(db_path)
        ana = Profile(name="Ana", sector_id=kitchen_id)
        ana.id = await repo.create(ana)
        bruno = Profile(name="Bruno", total_xp=900)
        bruno.id = await repo.create(bruno)
        idle = Profile(name="Carla", total_xp=5000, is_active=False)
        await repo.create(idle)

        ana.add_xp(1200)
        ana.streak_shield_available = True
        await repo.update(ana)

        loaded = await repo.get(ana.id)
        assert loaded.total_xp == 1200
        assert loaded.level == 2
        assert loaded.streak_shield_available
        assert loaded.sector_id == kitchen_id

        ranked = await repo.leaderboard()
        assert [p.name for p in ranked] == ["Ana", "Bruno"]

    @pytest.mark.asyncio
    async def test_activity_feed(self, db_path):
        repo = ActivityLogRepository(db_path)
        await repo.create(ActivityLog(user_id=1, action_type="checklist_completed", xp_earned=120))
        await repo.create(ActivityLog(user_id=2, action_type="level_up"))
        await repo.create(ActivityLog(user_id=1, action_type="streak"))

        entries = await repo.list_recent(user_id=1)
        assert [e.action_type for e in entries] == ["streak", "checklist_completed"]
        assert entries[1].xp_earned == 120
