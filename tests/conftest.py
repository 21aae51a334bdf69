"""Pytest configuration and fixtures."""

import asyncio
import tempfile
from pathlib import Path

import pytest

from brigade.config import reset_config
from brigade.db import init_db
from brigade.models.template import ChecklistTemplate


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    """Point configuration at a scratch directory with integrations off."""
    for var in (
        "NOTION_API_KEY",
        "N8N_WEBHOOK_BASE_URL",
        "BRIGADE_DB_PATH",
        "BRIGADE_EVIDENCE_DIR",
        "INCLUDE_COMBO_BONUS",
        "DEFAULT_ESTIMATED_MINUTES",
    ):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("BRIGADE_DATA_DIR", str(tmp_path / "data"))
    reset_config()
    yield
    reset_config()


@pytest.fixture
def temp_db_path():
    """Create a temporary database path."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir) / "test.db"


@pytest.fixture
def template_data():
    """A kitchen opening checklist exercising every rule action."""
    return {
        "title": "Kitchen Opening",
        "description": "Run before the first service",
        "category": "opening",
        "difficulty": "medium",
        "estimated_minutes": 10,
        "sections": [
            {
                "id": "cold",
                "title": "Cold storage",
                "order": 0,
                "questions": [
                    {
                        "id": "fridge_ok",
                        "text": "Is the walk-in fridge below 5C?",
                        "type": "yes_no",
                        "points": 10,
                        "weight": 2,
                        "order": 0,
                        "conditional_rules": [
                            {
                                "id": "r_fridge_plan",
                                "operator": "equals",
                                "compare_value": "no",
                                "action": "create_action_plan",
                            },
                            {
                                "id": "r_fridge_temp",
                                "operator": "equals",
                                "compare_value": "no",
                                "action": "show_questions",
                                "target_question_ids": ["fridge_temp"],
                            },
                        ],
                    },
                    {
                        "id": "fridge_temp",
                        "text": "Current fridge temperature",
                        "type": "number",
                        "points": 5,
                        "order": 1,
                        "conditional_parent_id": "fridge_ok",
                        "conditional_rules": [
                            {
                                "id": "r_temp_alert",
                                "operator": "greater_than",
                                "compare_value": "8",
                                "action": "notify_supervisor",
                            }
                        ],
                    },
                ],
            },
            {
                "id": "hygiene",
                "title": "Hygiene",
                "order": 1,
                "questions": [
                    {
                        "id": "floor_clean",
                        "text": "Is the floor clean?",
                        "type": "yes_no",
                        "points": 10,
                        "order": 0,
                        "conditional_rules": [
                            {
                                "id": "r_floor_photo",
                                "operator": "equals",
                                "compare_value": "no",
                                "action": "require_photo",
                            }
                        ],
                    },
                    {
                        "id": "notes",
                        "text": "Anything else?",
                        "type": "text",
                        "required": False,
                        "points": 5,
                        "order": 1,
                    },
                ],
            },
        ],
    }


@pytest.fixture
def sample_template(template_data):
    """The kitchen opening checklist as a model (not yet stored)."""
    return ChecklistTemplate.from_dict(template_data)


@pytest.fixture
def simple_template():
    """One yes/no question worth 100 points, 10 minutes, medium difficulty."""
    return ChecklistTemplate.from_dict(
        {
            "title": "Quick check",
            "difficulty": "medium",
            "estimated_minutes": 10,
            "sections": [
                {
                    "id": "main",
                    "title": "Main",
                    "questions": [
                        {"id": "q1", "text": "All good?", "type": "yes_no", "points": 100}
                    ],
                }
            ],
        }
    )


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def db_path(temp_db_path):
    """A temporary database with the schema created."""
    asyncio.run(init_db(temp_db_path))
    return temp_db_path
