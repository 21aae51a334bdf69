"""brigade configuration management.

Loads configuration from environment variables (and a `.env` file when
present) with defaults suitable for a single-restaurant local install.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env file if present
load_dotenv()

# Default data directory (repository root / data)
DEFAULT_DATA_DIR = Path(__file__).parent.parent.parent / "data"


@dataclass
class NotionConfig:
    """Notion workspace access."""

    api_key: str | None = None
    api_version: str = "2022-06-28"
    base_url: str = "https://api.notion.com/v1"
    timeout: float = 30.0
    sectors_database_id: str = "315ad933-b441-8146-acd9-decf7303d529"
    users_database_id: str = "315ad933-b441-8191-8371-c4b79dfda69b"
    action_plans_database_id: str = "315ad933-b441-8171-97a6-c913beb098be"

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)


@dataclass
class WebhookConfig:
    """Outbound automation webhooks (n8n)."""

    base_url: str = ""
    timeout: float = 10.0

    @property
    def enabled(self) -> bool:
        return bool(self.base_url)


@dataclass
class ScoringConfig:
    """Knobs for the checklist scoring engine."""

    include_combo_bonus: bool = False
    default_estimated_minutes: int = 15


@dataclass
class AppConfig:
    """Root application configuration."""

    data_dir: Path = DEFAULT_DATA_DIR
    db_path: Path | None = None
    evidence_dir: Path | None = None
    log_level: str = "INFO"
    json_logs: bool = False

    notion: NotionConfig = field(default_factory=NotionConfig)
    webhooks: WebhookConfig = field(default_factory=WebhookConfig)
    scoring: ScoringConfig = field(default_factory=ScoringConfig)

    def __post_init__(self):
        if self.db_path is None:
            self.db_path = self.data_dir / "brigade.db"
        if self.evidence_dir is None:
            self.evidence_dir = self.data_dir / "evidence"

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Load configuration from environment variables.

        Optional (with defaults):
        - BRIGADE_DATA_DIR: directory for the database and evidence files
        - BRIGADE_DB_PATH: explicit SQLite file path
        - LOG_LEVEL / JSON_LOGS: logging verbosity and format
        - NOTION_API_KEY and NOTION_*_DATABASE_ID: Notion sync
        - N8N_WEBHOOK_BASE_URL: automation webhooks
        - INCLUDE_COMBO_BONUS: add combo bonus points to the base score
        """
        data_dir = Path(os.getenv("BRIGADE_DATA_DIR", str(DEFAULT_DATA_DIR)))
        db_path = os.getenv("BRIGADE_DB_PATH")
        evidence_dir = os.getenv("BRIGADE_EVIDENCE_DIR")

        defaults = NotionConfig()
        return cls(
            data_dir=data_dir,
            db_path=Path(db_path) if db_path else None,
            evidence_dir=Path(evidence_dir) if evidence_dir else None,
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            json_logs=os.getenv("JSON_LOGS", "false").lower() == "true",
            notion=NotionConfig(
                api_key=os.getenv("NOTION_API_KEY") or None,
                api_version=os.getenv("NOTION_API_VERSION", defaults.api_version),
                sectors_database_id=os.getenv(
                    "NOTION_SECTORS_DATABASE_ID", defaults.sectors_database_id
                ),
                users_database_id=os.getenv(
                    "NOTION_USERS_DATABASE_ID", defaults.users_database_id
                ),
                action_plans_database_id=os.getenv(
                    "NOTION_ACTION_PLANS_DATABASE_ID", defaults.action_plans_database_id
                ),
            ),
            webhooks=WebhookConfig(
                base_url=os.getenv("N8N_WEBHOOK_BASE_URL", "").rstrip("/"),
            ),
            scoring=ScoringConfig(
                include_combo_bonus=os.getenv("INCLUDE_COMBO_BONUS", "false").lower()
                == "true",
                default_estimated_minutes=int(os.getenv("DEFAULT_ESTIMATED_MINUTES", "15")),
            ),
        )


# Singleton instance (lazy-loaded)
_config: AppConfig | None = None


def get_config() -> AppConfig:
    """Get or create the singleton AppConfig built from the environment."""
    global _config
    if _config is None:
        _config = AppConfig.from_env()
    return _config


def reset_config() -> None:
    """Forget the cached configuration (used by tests)."""
    global _config
    _config = None
