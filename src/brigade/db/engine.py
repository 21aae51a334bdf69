"""Database engine setup and initialization."""

import logging
from pathlib import Path

import aiosqlite

from ..config import get_config

logger = logging.getLogger(__name__)


def get_db_path(db_path: Path | None = None) -> Path:
    """Get the database file path, creating its directory."""
    if db_path is None:
        db_path = get_config().db_path
    db_path.parent.mkdir(parents=True, exist_ok=True)
    return db_path


async def _run_migrations(db: aiosqlite.Connection) -> None:
    """Run database migrations for schema updates."""
    cursor = await db.execute("PRAGMA table_info(action_plans)")
    columns = await cursor.fetchall()
    plan_columns = {col[1] for col in columns}

    for col, ddl in [
        ("photo_url", "TEXT"),
        ("file_url", "TEXT"),
        ("closing_comment", "TEXT"),
        ("satisfaction_rating", "INTEGER"),
    ]:
        if col not in plan_columns:
            await db.execute(f"ALTER TABLE action_plans ADD COLUMN {col} {ddl}")

    cursor = await db.execute("PRAGMA table_info(profiles)")
    columns = await cursor.fetchall()
    profile_columns = {col[1] for col in columns}

    if "streak_shield_available" not in profile_columns:
        await db.execute(
            "ALTER TABLE profiles ADD COLUMN streak_shield_available INTEGER DEFAULT 0"
        )
    if "avatar_url" not in profile_columns:
        await db.execute("ALTER TABLE profiles ADD COLUMN avatar_url TEXT")

    await db.commit()


async def init_db(db_path: Path | None = None) -> None:
    """Initialize the database schema."""
    db_path = get_db_path(db_path)

    async with aiosqlite.connect(db_path) as db:
        await db.execute("""
            CREATE TABLE IF NOT EXISTS sectors (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                is_active INTEGER DEFAULT 1,
                notion_page_id TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS profiles (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                email TEXT DEFAULT '',
                role TEXT DEFAULT 'member',
                sector_id INTEGER,
                total_xp INTEGER DEFAULT 0,
                level INTEGER DEFAULT 1,
                streak_days INTEGER DEFAULT 0,
                last_activity_date TEXT,
                streak_shield_available INTEGER DEFAULT 0,
                avatar_url TEXT,
                is_active INTEGER DEFAULT 1,
                notion_page_id TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                FOREIGN KEY (sector_id) REFERENCES sectors(id)
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS checklist_templates (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                title TEXT NOT NULL,
                description TEXT DEFAULT '',
                icon TEXT DEFAULT '',
                category TEXT DEFAULT '',
                sector_id INTEGER,
                difficulty TEXT DEFAULT 'easy',
                estimated_minutes INTEGER,
                schedule TEXT DEFAULT '{}',
                current_version INTEGER DEFAULT 0,
                is_published INTEGER DEFAULT 0,
                created_by INTEGER,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                FOREIGN KEY (sector_id) REFERENCES sectors(id)
            )
        """)

        # One row per question; the section travels as a JSON blob
        await db.execute("""
            CREATE TABLE IF NOT EXISTS template_questions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                template_id INTEGER NOT NULL,
                question_id TEXT NOT NULL,
                section TEXT NOT NULL,
                position INTEGER DEFAULT 0,
                data TEXT NOT NULL,
                FOREIGN KEY (template_id) REFERENCES checklist_templates(id) ON DELETE CASCADE
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS template_versions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                template_id INTEGER NOT NULL,
                version INTEGER NOT NULL,
                changes TEXT DEFAULT '',
                questions_added INTEGER DEFAULT 0,
                questions_removed INTEGER DEFAULT 0,
                questions_modified INTEGER DEFAULT 0,
                snapshot TEXT NOT NULL,
                created_by INTEGER,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                FOREIGN KEY (template_id) REFERENCES checklist_templates(id) ON DELETE CASCADE
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS checklists (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                template_id INTEGER NOT NULL,
                user_id INTEGER,
                sector_id INTEGER,
                status TEXT DEFAULT 'in_progress',
                score INTEGER,
                conformity REAL,
                signature TEXT,
                started_at TIMESTAMP,
                completed_at TIMESTAMP,
                FOREIGN KEY (template_id) REFERENCES checklist_templates(id),
                FOREIGN KEY (user_id) REFERENCES profiles(id)
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS checklist_responses (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                checklist_id INTEGER NOT NULL,
                question_id TEXT NOT NULL,
                value TEXT,
                photo_urls TEXT DEFAULT '[]',
                comment TEXT DEFAULT '',
                has_issue INTEGER DEFAULT 0,
                answered_at TIMESTAMP,
                FOREIGN KEY (checklist_id) REFERENCES checklists(id) ON DELETE CASCADE
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS action_plans (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                title TEXT NOT NULL,
                description TEXT DEFAULT '',
                step_by_step TEXT DEFAULT '',
                due_date TEXT,
                cost_type TEXT DEFAULT 'time_only',
                estimated_cost REAL,
                status TEXT DEFAULT 'pending',
                awarded_xp INTEGER DEFAULT 0,
                assignee_id INTEGER,
                sector_id INTEGER,
                checklist_id INTEGER,
                checklist_response_id INTEGER,
                created_by INTEGER,
                notion_page_id TEXT,
                resolved_at TIMESTAMP,
                photo_url TEXT,
                file_url TEXT,
                closing_comment TEXT,
                satisfaction_rating INTEGER,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                FOREIGN KEY (assignee_id) REFERENCES profiles(id),
                FOREIGN KEY (checklist_id) REFERENCES checklists(id)
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS duels (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                challenger_id INTEGER NOT NULL,
                opponent_id INTEGER NOT NULL,
                template_id INTEGER NOT NULL,
                wager INTEGER DEFAULT 0,
                challenger_progress REAL DEFAULT 0,
                opponent_progress REAL DEFAULT 0,
                challenger_score INTEGER DEFAULT 0,
                opponent_score INTEGER DEFAULT 0,
                status TEXT DEFAULT 'pending',
                winner_id INTEGER,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                completed_at TIMESTAMP,
                FOREIGN KEY (challenger_id) REFERENCES profiles(id),
                FOREIGN KEY (opponent_id) REFERENCES profiles(id)
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS activity_logs (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id INTEGER NOT NULL,
                action_type TEXT NOT NULL,
                description TEXT DEFAULT '',
                xp_earned INTEGER DEFAULT 0,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                FOREIGN KEY (user_id) REFERENCES profiles(id)
            )
        """)

        # Create indexes for common queries
        await db.execute("""
            CREATE INDEX IF NOT EXISTS idx_template_questions_template
            ON template_questions(template_id)
        """)
        await db.execute("""
            CREATE INDEX IF NOT EXISTS idx_template_versions_template
            ON template_versions(template_id)
        """)
        await db.execute("""
            CREATE INDEX IF NOT EXISTS idx_checklists_user_template
            ON checklists(user_id, template_id, status)
        """)
        await db.execute("""
            CREATE INDEX IF NOT EXISTS idx_checklist_responses_checklist
            ON checklist_responses(checklist_id)
        """)
        await db.execute("""
            CREATE INDEX IF NOT EXISTS idx_action_plans_assignee
            ON action_plans(assignee_id)
        """)
        await db.execute("""
            CREATE INDEX IF NOT EXISTS idx_activity_logs_user
            ON activity_logs(user_id)
        """)

        await db.commit()

        # Run migrations for existing databases
        await _run_migrations(db)

    logger.debug("Database ready at %s", db_path)
