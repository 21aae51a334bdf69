"""Two-way synchronisation of action plans, profiles and sectors with Notion."""

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

import httpx

from ..clients.notion import NotionClient
from ..clients.notion import mapping
from ..config import NotionConfig, get_config
from ..db.repositories import ActionPlanRepository, ProfileRepository, SectorRepository
from ..errors import NotionError
from ..models.action_plan import ActionPlan
from ..models.gamification import Profile, Sector

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    """Outcome of pulling action plans from Notion."""

    created: int = 0
    updated: int = 0

    def to_dict(self) -> dict:
        return {"success": True, "created": self.created, "updated": self.updated}


class NotionSync:
    """Pushes local changes to Notion and pulls action plans back.

    When no API key is configured every push is a no-op returning None.
    """

    def __init__(
        self,
        db_path: Path | None = None,
        config: NotionConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config or get_config().notion
        self.transport = transport
        self.plans = ActionPlanRepository(db_path)
        self.profiles = ProfileRepository(db_path)
        self.sectors = SectorRepository(db_path)

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    def _client(self) -> NotionClient:
        return NotionClient(self.config, transport=self.transport)

    async def push_action_plan(self, plan: ActionPlan) -> str | None:
        """Create the Notion page for a stored plan and remember its id."""
        if not self.enabled:
            return None

        assignee_page = None
        if plan.assignee_id is not None:
            assignee = await self.profiles.get(plan.assignee_id)
            assignee_page = assignee.notion_page_id if assignee else None
        sector_page = None
        if plan.sector_id is not None:
            sector = await self.sectors.get(plan.sector_id)
            sector_page = sector.notion_page_id if sector else None

        async with self._client() as client:
            page = await client.create_page(
                self.config.action_plans_database_id,
                mapping.action_plan_properties(plan, assignee_page, sector_page),
            )

        plan.notion_page_id = page["id"]
        if plan.id is not None:
            await self.plans.update(plan)
        logger.info("Pushed action plan %s to Notion page %s", plan.id, page["id"])
        return page["id"]

    async def push_status(self, plan: ActionPlan) -> None:
        if not self.enabled or not plan.notion_page_id:
            return
        async with self._client() as client:
            await client.update_page(plan.notion_page_id, mapping.status_properties(plan))

    async def push_xp(self, plan: ActionPlan) -> None:
        if not self.enabled or not plan.notion_page_id:
            return
        async with self._client() as client:
            await client.update_page(plan.notion_page_id, mapping.xp_properties(plan.awarded_xp))

    async def _upsert_member(self, database_id: str, record: Profile | Sector) -> str:
        properties = mapping.member_properties(record)
        async with self._client() as client:
            existing = await client.query_database(
                database_id, filter=mapping.local_id_filter(record.id)
            )
            if existing:
                page_id = existing[0]["id"]
                await client.update_page(page_id, properties)
                return page_id
            page = await client.create_page(database_id, properties)
            return page["id"]

    async def sync_profile(self, profile: Profile) -> str | None:
        """Create or update the profile's row in the users database."""
        if not self.enabled:
            return None
        page_id = await self._upsert_member(self.config.users_database_id, profile)
        profile.notion_page_id = page_id
        stored = await self.profiles.get(profile.id)
        if stored is not None and stored.notion_page_id != page_id:
            stored.notion_page_id = page_id
            await self.profiles.update(stored)
        return page_id

    async def sync_sector(self, sector: Sector) -> str | None:
        """Create or update the sector's row in the sectors database."""
        if not self.enabled:
            return None
        page_id = await self._upsert_member(self.config.sectors_database_id, sector)
        sector.notion_page_id = page_id
        stored = await self.sectors.get(sector.id)
        if stored is not None and stored.notion_page_id != page_id:
            stored.notion_page_id = page_id
            await self.sectors.update(stored)
        return page_id

    async def sync_from_notion(
        self, user_id: int, edited_since: datetime | None = None
    ) -> dict:
        """Pull the action plans assigned to a user into the local store.

        Plans carrying a local id are updated; plans created directly in
        Notion are inserted and their new local id is written back.
        Returns a result dict, or `{"error": ...}` on failure.
        """
        if not self.enabled:
            return {"error": "Notion is not configured"}

        profile = await self.profiles.get(user_id)
        if profile is None:
            return {"error": f"Profile {user_id} not found"}
        if not profile.notion_page_id:
            return {"error": "Profile has no Notion mapping"}

        result = SyncResult()
        try:
            async with self._client() as client:
                pages = await client.query_database(
                    self.config.action_plans_database_id,
                    filter=mapping.assigned_to_filter(
                        profile.notion_page_id,
                        edited_since.isoformat() if edited_since else None,
                    ),
                    sorts=mapping.LAST_EDITED_DESC,
                )
                for page in pages:
                    created = await self._apply_page(client, page, profile)
                    if created:
                        result.created += 1
                    else:
                        result.updated += 1
        except NotionError as e:
            logger.error("Notion sync failed for profile %s: %s", user_id, e)
            return {"error": str(e)}

        logger.info(
            "Notion sync for profile %s: %d created, %d updated",
            user_id, result.created, result.updated,
        )
        return result.to_dict()

    async def _apply_page(self, client: NotionClient, page: dict, profile: Profile) -> bool:
        """Store one page locally. Returns True when a new plan was created."""
        fields = mapping.page_to_action_plan_fields(page)
        local_id = fields.pop("local_id")
        sector_page_id = fields.pop("sector_page_id")

        sector_id = None
        if sector_page_id:
            for sector in await self.sectors.list_all():
                if sector.notion_page_id == sector_page_id:
                    sector_id = sector.id
                    break

        existing = await self.plans.get(local_id) if local_id is not None else None
        if existing is None:
            existing = await self.plans.get_by_notion_page(fields["notion_page_id"])

        if existing is not None:
            for key, value in fields.items():
                setattr(existing, key, value)
            existing.assignee_id = profile.id
            existing.sector_id = sector_id
            await self.plans.update(existing)
            return False

        plan = ActionPlan(**fields, assignee_id=profile.id, sector_id=sector_id)
        new_id = await self.plans.create(plan)
        await client.update_page(page["id"], mapping.local_id_properties(new_id))
        return True

    async def handle_change_event(self, payload: dict) -> dict:
        """Mirror a database change event for profiles or sectors into Notion.

        The payload has `type` (INSERT/UPDATE/DELETE), `table`, `record`
        and `old_record`. Deleted rows are marked inactive.
        """
        table = payload.get("table")
        event_type = (payload.get("type") or "").upper()
        record = payload.get("record") or {}
        if event_type == "DELETE":
            record = dict(payload.get("old_record") or {}, is_active=False)

        if table not in ("profiles", "sectors"):
            return {"skipped": True, "reason": f"Unhandled table: {table}"}
        if record.get("id") is None:
            return {"error": "Record has no id"}
        if not self.enabled:
            return {"skipped": True, "reason": "Notion is not configured"}

        name = record.get("name") or record.get("full_name") or "Unnamed"
        try:
            if table == "profiles":
                page_id = await self.sync_profile(
                    Profile(
                        id=int(record["id"]),
                        name=name,
                        is_active=bool(record.get("is_active", True)),
                        notion_page_id=record.get("notion_page_id"),
                    )
                )
            else:
                page_id = await self.sync_sector(
                    Sector(
                        id=int(record["id"]),
                        name=name,
                        is_active=bool(record.get("is_active", True)),
                        notion_page_id=record.get("notion_page_id"),
                    )
                )
        except NotionError as e:
            logger.error("Failed to mirror %s %s: %s", table, record.get("id"), e)
            return {"error": str(e)}

        return {"success": True, "notion_page_id": page_id}
