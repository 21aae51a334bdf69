"""Action plan lifecycle: creation, status changes and XP awards."""

import logging
from pathlib import Path

from ..db.repositories import ActionPlanRepository, ActivityLogRepository, ProfileRepository
from ..errors import BrigadeError, NotionError, PermissionDenied
from ..models.action_plan import ActionPlan, ActionPlanStatus
from ..models.gamification import ActivityLog
from .notion_sync import NotionSync
from .webhooks import WebhookDispatcher

logger = logging.getLogger(__name__)


class ActionPlanService:
    """Persists action plans and keeps Notion and automations informed.

    Notion and webhook failures never undo a local change; they are
    logged and the local result is returned.
    """

    def __init__(
        self,
        db_path: Path | None = None,
        notion: NotionSync | None = None,
        webhooks: WebhookDispatcher | None = None,
    ):
        self.plans = ActionPlanRepository(db_path)
        self.profiles = ProfileRepository(db_path)
        self.activity = ActivityLogRepository(db_path)
        self.notion = notion or NotionSync(db_path)
        self.webhooks = webhooks or WebhookDispatcher()

    async def create(self, plan: ActionPlan, push: bool = True) -> ActionPlan:
        """Store a new plan, then push it to Notion and announce it."""
        if not plan.title or not plan.title.strip():
            raise BrigadeError("Action plan title is required")

        await self.plans.create(plan)
        logger.info("Created action plan %s: %s", plan.id, plan.title)

        if push:
            try:
                await self.notion.push_action_plan(plan)
            except NotionError as e:
                logger.warning("Could not push action plan %s to Notion: %s", plan.id, e)

        responsible = ""
        if plan.assignee_id is not None:
            assignee = await self.profiles.get(plan.assignee_id)
            responsible = assignee.name if assignee else ""
        await self.webhooks.action_plan_created(
            plan.id, plan.title, plan.description, responsible
        )
        return plan

    async def push(self, plan_id: int) -> str | None:
        """Push an existing plan to Notion (raises NotionError on failure)."""
        plan = await self._get(plan_id)
        return await self.notion.push_action_plan(plan)

    async def _get(self, plan_id: int) -> ActionPlan:
        plan = await self.plans.get(plan_id)
        if plan is None:
            raise BrigadeError(f"Action plan {plan_id} not found")
        return plan

    async def update_status(
        self,
        plan_id: int,
        status: ActionPlanStatus,
        is_returning: bool = False,
        photo_url: str | None = None,
        file_url: str | None = None,
        closing_comment: str | None = None,
        satisfaction_rating: int | None = None,
    ) -> ActionPlan:
        """Change a plan's status, attaching any closing evidence."""
        plan = await self._get(plan_id)

        if photo_url:
            plan.photo_url = photo_url
        if file_url:
            plan.file_url = file_url
        if closing_comment:
            plan.closing_comment = closing_comment
        if satisfaction_rating:
            plan.satisfaction_rating = satisfaction_rating
        plan.set_status(status, is_returning=is_returning)

        await self.plans.update(plan)
        logger.info("Action plan %s is now %s", plan.id, plan.status.value)

        try:
            await self.notion.push_status(plan)
        except NotionError as e:
            logger.error("Failed to update status in Notion for plan %s: %s", plan.id, e)
        return plan

    async def assign_xp(self, plan_id: int, xp: int, awarded_by: int) -> ActionPlan:
        """Award XP for a plan's resolution.

        Raises:
            PermissionDenied: if the awarding profile is not a manager,
                admin or owner.
        """
        awarder = await self.profiles.get(awarded_by)
        if awarder is None or not awarder.can_manage:
            raise PermissionDenied("Only managers can award XP")
        if xp < 0:
            raise BrigadeError("XP must not be negative")

        plan = await self._get(plan_id)
        previous = plan.awarded_xp
        plan.awarded_xp = xp
        await self.plans.update(plan)

        if plan.assignee_id is not None:
            assignee = await self.profiles.get(plan.assignee_id)
            if assignee is not None:
                # Only the change is credited so re-awarding never doubles up
                assignee.add_xp(xp - previous)
                await self.profiles.update(assignee)
            await self.activity.create(
                ActivityLog(
                    user_id=plan.assignee_id,
                    action_type="action_plan_resolved",
                    description=f"Resolved action plan: {plan.title}",
                    xp_earned=xp,
                )
            )

        try:
            await self.notion.push_xp(plan)
        except NotionError as e:
            logger.error("Failed to update XP in Notion for plan %s: %s", plan.id, e)
        return plan
