"""Persisting a finished checklist run and its side effects."""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path

from ..db.repositories import ActivityLogRepository, ChecklistRepository, ProfileRepository
from ..engine.rules import stringify
from ..engine.runner import ChecklistResult
from ..errors import ChecklistStateError, DuelStateError
from ..models.execution import Checklist
from ..models.gamification import ActivityLog
from ..models.template import ChecklistTemplate
from .action_plans import ActionPlanService
from .duels import DuelService
from .webhooks import WebhookDispatcher

logger = logging.getLogger(__name__)


@dataclass
class CompletionSummary:
    """What finishing a checklist changed."""

    checklist_id: int
    score: int
    conformity: float
    xp_awarded: int = 0
    level: int = 1
    level_up: bool = False
    streak_days: int = 0
    shield_used: bool = False
    action_plan_ids: list[int] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "checklist_id": self.checklist_id,
            "score": self.score,
            "conformity": round(self.conformity, 1),
            "xp_awarded": self.xp_awarded,
            "level": self.level,
            "level_up": self.level_up,
            "streak_days": self.streak_days,
            "shield_used": self.shield_used,
            "action_plan_ids": self.action_plan_ids,
        }


class CompletionService:
    """Writes a finished run to the store in one step.

    Marks the execution completed, replaces its responses, creates the
    submitted action plans, awards XP and streak, logs the activity,
    advances any active duel on the same template and fires webhooks.
    """

    def __init__(
        self,
        db_path: Path | None = None,
        action_plans: ActionPlanService | None = None,
        webhooks: WebhookDispatcher | None = None,
    ):
        self.checklists = ChecklistRepository(db_path)
        self.profiles = ProfileRepository(db_path)
        self.activity = ActivityLogRepository(db_path)
        self.webhooks = webhooks or WebhookDispatcher()
        self.action_plans = action_plans or ActionPlanService(db_path, webhooks=self.webhooks)
        self.duels = DuelService(db_path)

    async def finish(
        self,
        checklist: Checklist,
        template: ChecklistTemplate,
        result: ChecklistResult,
        today: date | None = None,
    ) -> CompletionSummary:
        """Persist a signed run.

        Raises:
            ChecklistStateError: if the execution was already closed.
        """
        score = result.score.final
        if not await self.checklists.complete(
            checklist.id, score, result.conformity, result.signature
        ):
            raise ChecklistStateError(f"Checklist {checklist.id} is not in progress")

        responses = await self.checklists.save_responses(checklist.id, result.responses)
        response_ids = {r.question_id: r.id for r in responses}

        summary = CompletionSummary(
            checklist_id=checklist.id, score=score, conformity=result.conformity
        )

        for plan, question_id in zip(result.action_plans, result.plan_question_ids):
            plan.checklist_id = checklist.id
            plan.checklist_response_id = response_ids.get(question_id)
            if plan.sector_id is None:
                plan.sector_id = checklist.sector_id or template.sector_id
            if plan.assignee_id is None:
                plan.assignee_id = checklist.user_id
            if plan.created_by is None:
                plan.created_by = checklist.user_id
            await self.action_plans.create(plan)
            summary.action_plan_ids.append(plan.id)

        profile = None
        if checklist.user_id is not None:
            profile = await self.profiles.get(checklist.user_id)

        if profile is not None:
            level_before = profile.level_info.level.number
            profile.add_xp(score)
            summary.shield_used = profile.register_activity(today or date.today())
            await self.profiles.update(profile)
            await self.activity.create(
                ActivityLog(
                    user_id=profile.id,
                    action_type="checklist_completed",
                    description=f"Completed checklist: {template.title}",
                    xp_earned=score,
                )
            )
            summary.xp_awarded = score
            summary.level = profile.level
            summary.level_up = profile.level > level_before
            summary.streak_days = profile.streak_days

            for duel in await self.duels.active_for(profile.id, template.id):
                try:
                    await self.duels.record_progress(duel.id, profile.id, 100, score)
                except DuelStateError as e:
                    logger.warning("Could not record duel %s progress: %s", duel.id, e)

        user_name = profile.name if profile else ""
        await self.webhooks.checklist_complete(
            checklist.id, template.title, user_name, score, datetime.now()
        )
        for outcome in result.notifications:
            question = template.get_question(outcome.question_id)
            answer = next(
                (r.value for r in result.responses if r.question_id == outcome.question_id),
                None,
            )
            await self.webhooks.supervisor_notified(
                checklist.id,
                question.text if question else outcome.question_id,
                stringify(answer),
                user_name,
            )

        logger.info(
            "Checklist %s completed: score=%d conformity=%.1f plans=%d",
            checklist.id, score, result.conformity, len(summary.action_plan_ids),
        )
        return summary
