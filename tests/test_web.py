"""Tests for the web API."""

import copy

import pytest
from fastapi.testclient import TestClient

from brigade.config import reset_config
from brigade.web import create_app


@pytest.fixture
def client(tmp_path):
    app = create_app(tmp_path / "web.db", tmp_path / "evidence")
    with TestClient(app) as client:
        yield client


@pytest.fixture
def template_id(client, template_data):
    return client.post("/templates", json=template_data).json()["id"]


@pytest.fixture
def ana_id(client):
    return client.post("/profiles", json={"name": "Ana"}).json()["id"]


def _answer(client, checklist_id, question_id, value, **extra):
    response = client.post(
        f"/checklists/{checklist_id}/answer",
        json={"question_id": question_id, "value": value, **extra},
    )
    return response.json()


class TestTemplates:
    """Tests for template routes."""

    def test_health(self, client):
        response = client.get("/health", headers={"X-Request-ID": "req-1"})
        assert response.json()["status"] == "healthy"
        assert response.headers["X-Request-ID"] == "req-1"

    def test_create_and_get(self, client, template_data):
        created = client.post("/templates", json=template_data).json()
        assert created["version"] == 1

        template = client.get(f"/templates/{created['id']}").json()
        assert template["title"] == "Kitchen Opening"
        assert [s["id"] for s in template["sections"]] == ["cold", "hygiene"]

        listed = client.get("/templates").json()["templates"]
        assert [t["id"] for t in listed] == [created["id"]]

    def test_update_records_version(self, client, template_data, template_id):
        changed = copy.deepcopy(template_data)
        changed["sections"][1]["questions"].pop()
        assert client.put(f"/templates/{template_id}", json=changed).json()["version"] == 2

        versions = client.get(f"/templates/{template_id}/versions").json()["versions"]
        assert [v["version"] for v in versions] == [2, 1]
        assert versions[0]["questions_removed"] == 1

    def test_missing_title(self, client):
        assert "error" in client.post("/templates", json={"title": "", "sections": []}).json()

    def test_unknown_template(self, client):
        assert client.get("/templates/404").json() == {"error": "Template not found"}


class TestChecklistFlow:
    """Tests for running a checklist over HTTP."""

    def test_start_answer_finish(self, client, template_id, ana_id):
        started = client.post(
            "/checklists/start", json={"template_id": template_id, "user_id": ana_id}
        ).json()
        checklist_id = started["checklist_id"]
        assert not started["resumed"]
        assert [q["id"] for q in started["visible_questions"]] == [
            "fridge_ok",
            "floor_clean",
            "notes",
        ]

        answered = _answer(client, checklist_id, "fridge_ok", "no")
        assert {r["rule_id"] for r in answered["rules_fired"]} == {
            "r_fridge_plan",
            "r_fridge_temp",
        }
        assert "fridge_temp" in [q["id"] for q in answered["visible_questions"]]

        _answer(client, checklist_id, "fridge_temp", 12)
        _answer(client, checklist_id, "floor_clean", "yes")

        resumed = client.post(
            "/checklists/start", json={"template_id": template_id, "user_id": ana_id}
        ).json()
        assert resumed["checklist_id"] == checklist_id
        assert resumed["resumed"]
        assert resumed["missing_required"] == []

        finished = client.post(
            f"/checklists/{checklist_id}/finish",
            json={
                "signature": "Ana",
                "elapsed_seconds": 120,
                "action_plans": {
                    "fridge_ok": {"title": "Call the technician", "due_date": "2024-06-01"}
                },
            },
        ).json()
        assert finished["score"] > 0
        assert finished["breakdown"]["final"] == finished["score"]
        assert len(finished["action_plan_ids"]) == 1

        again = client.post(f"/checklists/{checklist_id}/finish", json={"signature": "Ana"})
        assert again.json() == {"error": "Checklist is already closed"}

        plans = client.get("/action-plans", params={"assignee_id": ana_id}).json()
        assert [p["title"] for p in plans["action_plans"]] == ["Call the technician"]

        profile = client.get(f"/profiles/{ana_id}").json()
        assert profile["total_xp"] == finished["score"]
        assert profile["streak_days"] == 1
        assert profile["activity"][0]["action_type"] == "checklist_completed"

        report = client.get(f"/checklists/{checklist_id}/report")
        assert report.status_code == 200
        assert "Kitchen Opening" in report.text
        assert "Current fridge temperature" in report.text

    def test_combo_bonus_survives_between_requests(self, client, ana_id, monkeypatch):
        monkeypatch.setenv("INCLUDE_COMBO_BONUS", "true")
        reset_config()
        questions = [
            {"id": f"q{i}", "text": f"Check {i}", "type": "yes_no", "points": 100}
            for i in range(1, 4)
        ]
        template_id = client.post(
            "/templates",
            json={
                "title": "Close",
                "difficulty": "easy",
                "estimated_minutes": 10,
                "sections": [{"id": "main", "title": "Main", "questions": questions}],
            },
        ).json()["id"]
        checklist_id = client.post(
            "/checklists/start", json={"template_id": template_id, "user_id": ana_id}
        ).json()["checklist_id"]
        for question in questions:
            _answer(client, checklist_id, question["id"], "yes")

        finished = client.post(
            f"/checklists/{checklist_id}/finish",
            json={"signature": "Ana", "elapsed_seconds": 60},
        ).json()
        breakdown = finished["breakdown"]
        assert breakdown["combo_bonus"] == 20
        assert breakdown["base"] == 320
        assert breakdown["final"] == 320 + 64 + 48

    def test_hidden_question_is_rejected(self, client, template_id, ana_id):
        checklist_id = client.post(
            "/checklists/start", json={"template_id": template_id, "user_id": ana_id}
        ).json()["checklist_id"]
        assert "error" in _answer(client, checklist_id, "fridge_temp", 4)

    def test_finish_requires_answers(self, client, template_id, ana_id):
        checklist_id = client.post(
            "/checklists/start", json={"template_id": template_id, "user_id": ana_id}
        ).json()["checklist_id"]
        result = client.post(f"/checklists/{checklist_id}/finish", json={"signature": "Ana"})
        assert "error" in result.json()
        assert client.get(f"/checklists/{checklist_id}").json()["status"] == "in_progress"

    def test_unknown_template(self, client):
        result = client.post("/checklists/start", json={"template_id": 404})
        assert result.json() == {"error": "Template not found"}

    def test_report_not_found(self, client):
        assert client.get("/checklists/404/report").status_code == 404

    def test_evidence_upload(self, client):
        uploaded = client.post(
            "/checklists/1/evidence", files={"file": ("floor.jpg", b"jpeg-bytes", "image/jpeg")}
        ).json()
        assert uploaded["url"].startswith("/evidence/checklist_1/")
        assert client.get(uploaded["url"]).content == b"jpeg-bytes"

        rejected = client.post(
            "/checklists/1/evidence", files={"file": ("run.sh", b"echo", "text/plain")}
        ).json()
        assert "error" in rejected


class TestActionPlans:
    def test_create_and_resolve(self, client, ana_id):
        plan = client.post(
            "/action-plans", json={"title": "Buy mop", "assignee_id": ana_id, "cost_type": "money"}
        ).json()
        assert plan["status"] == "pending"

        updated = client.post(
            f"/action-plans/{plan['id']}/status",
            json={"status": "resolved", "closing_comment": "Bought", "satisfaction_rating": 5},
        ).json()
        assert updated["action_plan"]["status"] == "resolved"
        assert updated["action_plan"]["resolved_at"] is not None

    def test_bad_status(self, client):
        plan = client.post("/action-plans", json={"title": "Buy mop"}).json()
        result = client.post(f"/action-plans/{plan['id']}/status", json={"status": "done"})
        assert "error" in result.json()

    def test_xp_requires_manager(self, client, ana_id):
        plan = client.post("/action-plans", json={"title": "Buy mop", "assignee_id": ana_id}).json()
        result = client.post(
            f"/action-plans/{plan['id']}/xp", json={"xp": 30, "awarded_by": ana_id}
        ).json()
        assert result["permission_denied"]

        boss_id = client.post("/profiles", json={"name": "Boss", "role": "manager"}).json()["id"]
        result = client.post(
            f"/action-plans/{plan['id']}/xp", json={"xp": 30, "awarded_by": boss_id}
        ).json()
        assert result == {"success": True, "awarded_xp": 30}

    def test_push_without_notion(self, client):
        plan = client.post("/action-plans", json={"title": "Buy mop"}).json()
        result = client.post(f"/action-plans/{plan['id']}/push").json()
        assert result == {"error": "Notion is not configured"}


class TestProfilesAndDuels:
    """Tests for gamification routes."""

    def test_leaderboard(self, client, ana_id):
        client.post("/profiles", json={"name": "Bruno"})
        board = client.get("/profiles/leaderboard").json()["leaderboard"]
        assert [row["rank"] for row in board] == [1, 2]

    def test_profile_view(self, client, ana_id):
        profile = client.get(f"/profiles/{ana_id}").json()
        assert profile["level_title"] == "Beginner"
        assert profile["next_level_xp"] == 500

    def test_locked_accessory(self, client, ana_id):
        result = client.post(f"/profiles/{ana_id}/avatar", json={"accessory": "crown"}).json()
        assert "error" in result
        result = client.post(f"/profiles/{ana_id}/avatar", json={"accessory": "glasses"}).json()
        assert result["success"]

    def test_profile_requires_name(self, client):
        assert client.post("/profiles", json={}).json() == {"error": "Name is required"}

    def test_sectors(self, client):
        created = client.post("/sectors", json={"name": "Kitchen"}).json()
        sectors = client.get("/sectors").json()["sectors"]
        assert [s["id"] for s in sectors] == [created["id"]]

    def test_duel_errors(self, client, ana_id):
        assert client.post("/duels", json={}).json() == {"error": "Missing field: challenger_id"}
        result = client.post(
            "/duels", json={"challenger_id": ana_id, "opponent_id": ana_id, "template_id": 1}
        ).json()
        assert result == {"error": "You cannot duel yourself"}

    def test_duel_round_trip(self, client, ana_id):
        bruno_id = client.post("/profiles", json={"name": "Bruno"}).json()["id"]
        duel = client.post(
            "/duels", json={"challenger_id": ana_id, "opponent_id": bruno_id, "template_id": 1}
        ).json()
        accepted = client.post(f"/duels/{duel['id']}/accept", json={"user_id": bruno_id}).json()
        assert accepted["status"] == "active"

        client.post(
            f"/duels/{duel['id']}/progress", json={"user_id": ana_id, "progress": 100, "score": 50}
        )
        done = client.post(
            f"/duels/{duel['id']}/progress",
            json={"user_id": bruno_id, "progress": 100, "score": 70},
        ).json()
        assert done["status"] == "completed"
        assert done["winner_id"] == bruno_id
        assert len(client.get("/duels", params={"user_id": ana_id}).json()["duels"]) == 1


class TestWebhookRoute:
    def test_unhandled_table_is_skipped(self, client):
        result = client.post(
            "/webhooks/database-change", json={"type": "INSERT", "table": "orders", "record": {}}
        ).json()
        assert result["skipped"]
