"""Tests for the Notion client, property mapping and sync."""

import json
from datetime import date

import httpx
import pytest

from brigade.clients.notion import NotionClient, mapping
from brigade.config import NotionConfig
from brigade.db import ActionPlanRepository, ProfileRepository, SectorRepository
from brigade.errors import NotionError
from brigade.models.action_plan import ActionPlan, ActionPlanStatus, CostType
from brigade.models.gamification import Profile, Sector
from brigade.services.notion_sync import NotionSync


def _page(page_id, title, local_id="", status="Pendente", **extra):
    properties = {
        mapping.PROP_TITLE: {"title": [{"plain_text": title}]},
        mapping.PROP_STATUS: {"select": {"name": status}},
        mapping.PROP_LOCAL_ID: {"rich_text": [{"plain_text": local_id}] if local_id else []},
    }
    properties.update(extra)
    return {"id": page_id, "properties": properties}


class FakeNotion:
    """Records requests and answers them from canned data."""

    def __init__(self, query_pages=None):
        self.query_pages = query_pages or []
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else {}
        self.requests.append((request.method, request.url.path, body))
        if request.url.path.endswith("/query"):
            return httpx.Response(200, json={"results": self.query_pages, "has_more": False})
        if request.method == "POST" and request.url.path == "/v1/pages":
            return httpx.Response(200, json={"id": f"new-page-{len(self.requests)}"})
        return httpx.Response(200, json={"id": request.url.path.rsplit("/", 1)[-1]})

    def calls(self, method):
        return [(path, body) for m, path, body in self.requests if m == method]


@pytest.fixture
def notion_config():
    return NotionConfig(api_key="test")


class TestMapping:
    """Tests for property translation."""

    def test_action_plan_properties(self):
        plan = ActionPlan(
            id=12,
            title="Fix seal",
            description="Food stays cold",
            due_date=date(2024, 6, 1),
            cost_type=CostType.MONEY,
            checklist_response_id=40,
        )
        props = mapping.action_plan_properties(plan, assignee_page_id="user-1")

        assert props[mapping.PROP_TITLE]["title"][0]["text"]["content"] == "Fix seal"
        assert props[mapping.PROP_STATUS] == {"select": {"name": "Pendente"}}
        assert props[mapping.PROP_COST_TYPE] == {"select": {"name": "Dinheiro"}}
        assert props[mapping.PROP_DUE_DATE] == {"date": {"start": "2024-06-01"}}
        assert props[mapping.PROP_ASSIGNEE] == {"relation": [{"id": "user-1"}]}
        assert props[mapping.PROP_LOCAL_ID]["rich_text"][0]["text"]["content"] == "12"
        assert props[mapping.PROP_CHECKLIST_ID]["rich_text"][0]["text"]["content"] == "40"
        assert mapping.PROP_SECTOR not in props
        assert mapping.PROP_STEPS not in props

    def test_status_properties_carry_closing_evidence(self):
        plan = ActionPlan(
            title="Fix seal",
            status=ActionPlanStatus.RESOLVED,
            photo_url="/evidence/p.jpg",
            closing_comment="Seal replaced",
            satisfaction_rating=5,
        )
        props = mapping.status_properties(plan)
        assert props[mapping.PROP_STATUS] == {"select": {"name": "Resolvido"}}
        assert props[mapping.PROP_PHOTO] == {"url": "/evidence/p.jpg"}
        assert props[mapping.PROP_SATISFACTION] == {"number": 5}
        assert mapping.PROP_FILE not in props

    def test_page_to_fields(self):
        page = _page(
            "page-1",
            "Broken tap",
            local_id="7",
            status="Em andamento",
            **{
                mapping.PROP_DUE_DATE: {"date": {"start": "2024-06-01T10:00:00.000Z"}},
                mapping.PROP_COST_TYPE: {"select": {"name": "Dinheiro"}},
                mapping.PROP_XP: {"number": 30},
                mapping.PROP_SECTOR: {"relation": [{"id": "sector-1"}]},
            },
        )
        fields = mapping.page_to_action_plan_fields(page)
        assert fields["title"] == "Broken tap"
        assert fields["status"] == ActionPlanStatus.IN_PROGRESS
        assert fields["due_date"] == date(2024, 6, 1)
        assert fields["cost_type"] == CostType.MONEY
        assert fields["awarded_xp"] == 30
        assert fields["local_id"] == 7
        assert fields["sector_page_id"] == "sector-1"
        assert fields["notion_page_id"] == "page-1"

    def test_page_defaults(self):
        fields = mapping.page_to_action_plan_fields({"id": "p", "properties": {}})
        assert fields["title"] == mapping.UNTITLED
        assert fields["status"] == ActionPlanStatus.PENDING
        assert fields["cost_type"] == CostType.TIME_ONLY
        assert fields["local_id"] is None

    @pytest.mark.parametrize("text,expected", [("12", 12), (" 3 ", 3), ("abc-uuid", None), ("", None)])
    def test_parse_local_id(self, text, expected):
        assert mapping.parse_local_id(text) == expected

    def test_assigned_to_filter(self):
        only_user = mapping.assigned_to_filter("user-1")
        assert len(only_user["and"]) == 1
        since = mapping.assigned_to_filter("user-1", "2024-05-01T00:00:00")
        assert since["and"][1]["last_edited_time"] == {"on_or_after": "2024-05-01T00:00:00"}


class TestNotionClient:
    def test_requires_api_key(self):
        with pytest.raises(NotionError):
            NotionClient(NotionConfig(api_key=None))

    @pytest.mark.asyncio
    async def test_query_follows_pagination(self, notion_config):
        bodies = []

        def handler(request):
            body = json.loads(request.content)
            bodies.append(body)
            assert request.headers["Authorization"] == "Bearer test"
            assert request.headers["Notion-Version"] == notion_config.api_version
            if "start_cursor" not in body:
                return httpx.Response(
                    200, json={"results": [{"id": "a"}], "has_more": True, "next_cursor": "c1"}
                )
            return httpx.Response(200, json={"results": [{"id": "b"}], "has_more": False})

        async with NotionClient(notion_config, transport=httpx.MockTransport(handler)) as client:
            pages = await client.query_database("db-1", filter={"x": 1})

        assert [p["id"] for p in pages] == ["a", "b"]
        assert bodies[1]["start_cursor"] == "c1"
        assert bodies[0]["filter"] == {"x": 1}

    @pytest.mark.asyncio
    async def test_error_status_raises(self, notion_config):
        def handler(request):
            return httpx.Response(400, json={"message": "Invalid property"})

        async with NotionClient(notion_config, transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(NotionError) as exc_info:
                await client.update_page("p1", {})

        assert exc_info.value.status_code == 400
        assert "Invalid property" in str(exc_info.value)


class TestNotionSync:
    """Tests for pushing to and pulling from Notion."""

    @pytest.mark.asyncio
    async def test_disabled_is_a_no_op(self, db_path):
        sync = NotionSync(db_path, config=NotionConfig(api_key=None))
        assert await sync.push_action_plan(ActionPlan(title="x")) is None
        assert await sync.sync_profile(Profile(name="Ana", id=1)) is None
        assert "error" in await sync.sync_from_notion(1)

    @pytest.mark.asyncio
    async def test_push_action_plan_stores_page_id(self, db_path, notion_config):
        profiles = ProfileRepository(db_path)
        ana = Profile(name="Ana", notion_page_id="user-page")
        ana.id = await profiles.create(ana)
        plans = ActionPlanRepository(db_path)
        plan = ActionPlan(title="Fix seal", assignee_id=ana.id)
        await plans.create(plan)

        fake = FakeNotion()
        sync = NotionSync(db_path, config=notion_config, transport=httpx.MockTransport(fake))
        page_id = await sync.push_action_plan(plan)

        assert (await plans.get(plan.id)).notion_page_id == page_id
        (path, body), = fake.calls("POST")
        assert body["parent"] == {"database_id": notion_config.action_plans_database_id}
        assert body["properties"][mapping.PROP_ASSIGNEE] == {"relation": [{"id": "user-page"}]}

    @pytest.mark.asyncio
    async def test_push_status_skips_unlinked_plans(self, db_path, notion_config):
        fake = FakeNotion()
        sync = NotionSync(db_path, config=notion_config, transport=httpx.MockTransport(fake))
        await sync.push_status(ActionPlan(title="x"))
        await sync.push_xp(ActionPlan(title="x", notion_page_id="p1", awarded_xp=40))
        assert fake.calls("PATCH") == [("/v1/pages/p1", {"properties": {mapping.PROP_XP: {"number": 40}}})]

    @pytest.mark.asyncio
    async def test_sync_from_notion_updates_and_creates(self, db_path, notion_config):
        profiles = ProfileRepository(db_path)
        ana = Profile(name="Ana", notion_page_id="user-page")
        ana.id = await profiles.create(ana)
        sector_id = await SectorRepository(db_path).create(
            Sector(name="Kitchen", notion_page_id="sector-page")
        )
        plans = ActionPlanRepository(db_path)
        existing = ActionPlan(title="Old title", notion_page_id="page-a")
        await plans.create(existing)

        fake = FakeNotion(
            query_pages=[
                _page("page-a", "Seal replaced", local_id=str(existing.id), status="Resolvido"),
                _page(
                    "page-b",
                    "Created in Notion",
                    **{mapping.PROP_SECTOR: {"relation": [{"id": "sector-page"}]}},
                ),
            ]
        )
        sync = NotionSync(db_path, config=notion_config, transport=httpx.MockTransport(fake))
        result = await sync.sync_from_notion(ana.id)

        assert result == {"success": True, "created": 1, "updated": 1}

        updated = await plans.get(existing.id)
        assert updated.title == "Seal replaced"
        assert updated.status == ActionPlanStatus.RESOLVED
        assert updated.assignee_id == ana.id

        created = await plans.get_by_notion_page("page-b")
        assert created.sector_id == sector_id
        assert created.assignee_id == ana.id

        # the new local id is written back to the page
        (path, body), = fake.calls("PATCH")
        assert path == "/v1/pages/page-b"
        assert body["properties"][mapping.PROP_LOCAL_ID]["rich_text"][0]["text"]["content"] == str(
            created.id
        )

    @pytest.mark.asyncio
    async def test_sync_from_notion_needs_mapping(self, db_path, notion_config):
        profiles = ProfileRepository(db_path)
        ana_id = await profiles.create(Profile(name="Ana"))
        sync = NotionSync(db_path, config=notion_config)
        assert await sync.sync_from_notion(ana_id) == {"error": "Profile has no Notion mapping"}
        assert "error" in await sync.sync_from_notion(999)

    @pytest.mark.asyncio
    async def test_sync_from_notion_reports_api_errors(self, db_path, notion_config):
        profiles = ProfileRepository(db_path)
        ana_id = await profiles.create(Profile(name="Ana", notion_page_id="user-page"))
        transport = httpx.MockTransport(
            lambda request: httpx.Response(401, json={"message": "Unauthorized"})
        )
        sync = NotionSync(db_path, config=notion_config, transport=transport)
        assert await sync.sync_from_notion(ana_id) == {"error": "Unauthorized"}


class TestChangeEvents:
    """Tests for mirroring database change events."""

    @pytest.mark.asyncio
    async def test_unhandled_table(self, db_path, notion_config):
        sync = NotionSync(db_path, config=notion_config)
        result = await sync.handle_change_event({"type": "INSERT", "table": "orders", "record": {"id": 1}})
        assert result["skipped"]

    @pytest.mark.asyncio
    async def test_record_without_id(self, db_path, notion_config):
        sync = NotionSync(db_path, config=notion_config)
        result = await sync.handle_change_event({"type": "INSERT", "table": "profiles", "record": {}})
        assert result == {"error": "Record has no id"}

    @pytest.mark.asyncio
    async def test_disabled(self, db_path):
        sync = NotionSync(db_path, config=NotionConfig(api_key=None))
        result = await sync.handle_change_event(
            {"type": "INSERT", "table": "sectors", "record": {"id": 1, "name": "Bar"}}
        )
        assert result["reason"] == "Notion is not configured"

    @pytest.mark.asyncio
    async def test_insert_creates_page_and_links_profile(self, db_path, notion_config):
        profiles = ProfileRepository(db_path)
        ana_id = await profiles.create(Profile(name="Ana"))

        fake = FakeNotion()
        sync = NotionSync(db_path, config=notion_config, transport=httpx.MockTransport(fake))
        result = await sync.handle_change_event(
            {"type": "INSERT", "table": "profiles", "record": {"id": ana_id, "full_name": "Ana"}}
        )

        assert result["success"]
        assert (await profiles.get(ana_id)).notion_page_id == result["notion_page_id"]

    @pytest.mark.asyncio
    async def test_delete_marks_existing_page_inactive(self, db_path, notion_config):
        fake = FakeNotion(query_pages=[{"id": "sector-page"}])
        sync = NotionSync(db_path, config=notion_config, transport=httpx.MockTransport(fake))
        result = await sync.handle_change_event(
            {"type": "DELETE", "table": "sectors", "old_record": {"id": 4, "name": "Bar"}}
        )

        assert result == {"success": True, "notion_page_id": "sector-page"}
        (path, body), = fake.calls("PATCH")
        assert path == "/v1/pages/sector-page"
        assert body["properties"][mapping.PROP_ACTIVE] == {"checkbox": False}
