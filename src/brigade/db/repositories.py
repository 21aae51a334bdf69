"""Data access layer for brigade."""

import json
from datetime import datetime
from pathlib import Path

import aiosqlite

from ..errors import TemplateValidationError
from ..models.action_plan import ActionPlan, ActionPlanStatus
from ..models.execution import Checklist, ChecklistResponse, ChecklistStatus
from ..models.gamification import ActivityLog, Duel, DuelStatus, Profile, Sector
from ..models.schedule import ScheduleConfig
from ..models.template import (
    ChecklistTemplate,
    Difficulty,
    Question,
    Section,
    TemplateVersion,
    describe_changes,
    diff_sections,
    parse_section_blob,
)
from .engine import get_db_path


def _dt(value) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


class SectorRepository:
    """Repository for sectors."""

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or get_db_path()

    async def create(self, sector: Sector) -> int:
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(
                "INSERT INTO sectors (name, is_active, notion_page_id) VALUES (?, ?, ?)",
                (sector.name, int(sector.is_active), sector.notion_page_id),
            )
            await db.commit()
            return cursor.lastrowid

    async def get(self, sector_id: int) -> Sector | None:
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute("SELECT * FROM sectors WHERE id = ?", (sector_id,))
            row = await cursor.fetchone()
            if row is None:
                return None
            return self._row_to_sector(row)

    async def get_by_name(self, name: str) -> Sector | None:
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                "SELECT * FROM sectors WHERE name = ? COLLATE NOCASE", (name,)
            )
            row = await cursor.fetchone()
            if row is None:
                return None
            return self._row_to_sector(row)

    async def list_all(self, active_only: bool = False) -> list[Sector]:
        query = "SELECT * FROM sectors"
        if active_only:
            query += " WHERE is_active = 1"
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(query + " ORDER BY name")
            rows = await cursor.fetchall()
            return [self._row_to_sector(row) for row in rows]

    async def update(self, sector: Sector) -> None:
        if sector.id is None:
            raise ValueError("Sector must have an ID to update")
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                "UPDATE sectors SET name = ?, is_active = ?, notion_page_id = ? WHERE id = ?",
                (sector.name, int(sector.is_active), sector.notion_page_id, sector.id),
            )
            await db.commit()

    def _row_to_sector(self, row: aiosqlite.Row) -> Sector:
        return Sector(
            id=row["id"],
            name=row["name"],
            is_active=bool(row["is_active"]),
            notion_page_id=row["notion_page_id"],
        )


class ProfileRepository:
    """Repository for team member profiles."""

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or get_db_path()

    async def create(self, profile: Profile) -> int:
        """Create a new profile."""
        data = profile.to_dict()
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(
                """
                INSERT INTO profiles
                (name, email, role, sector_id, total_xp, level, streak_days,
                 last_activity_date, streak_shield_available, avatar_url, is_active,
                 notion_page_id)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    data["name"],
                    data["email"],
                    data["role"],
                    data["sector_id"],
                    data["total_xp"],
                    data["level"],
                    data["streak_days"],
                    data["last_activity_date"],
                    int(data["streak_shield_available"]),
                    data["avatar_url"],
                    int(data["is_active"]),
                    data["notion_page_id"],
                ),
            )
            await db.commit()
            return cursor.lastrowid

    async def get(self, profile_id: int) -> Profile | None:
        """Get a profile by ID."""
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute("SELECT * FROM profiles WHERE id = ?", (profile_id,))
            row = await cursor.fetchone()
            if row is None:
                return None
            return self._row_to_profile(row)

    async def list_all(self) -> list[Profile]:
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute("SELECT * FROM profiles ORDER BY name")
            rows = await cursor.fetchall()
            return [self._row_to_profile(row) for row in rows]

    async def leaderboard(self, limit: int = 10) -> list[Profile]:
        """Active profiles ranked by total XP."""
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                """
                SELECT * FROM profiles WHERE is_active = 1
                ORDER BY total_xp DESC, name LIMIT ?
                """,
                (limit,),
            )
            rows = await cursor.fetchall()
            return [self._row_to_profile(row) for row in rows]

    async def update(self, profile: Profile) -> None:
        """Update an existing profile."""
        if profile.id is None:
            raise ValueError("Profile must have an ID to update")

        data = profile.to_dict()
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                """
                UPDATE profiles SET
                    name = ?, email = ?, role = ?, sector_id = ?, total_xp = ?,
                    level = ?, streak_days = ?, last_activity_date = ?,
                    streak_shield_available = ?, avatar_url = ?, is_active = ?,
                    notion_page_id = ?, updated_at = CURRENT_TIMESTAMP
                WHERE id = ?
                """,
                (
                    data["name"],
                    data["email"],
                    data["role"],
                    data["sector_id"],
                    data["total_xp"],
                    data["level"],
                    data["streak_days"],
                    data["last_activity_date"],
                    int(data["streak_shield_available"]),
                    data["avatar_url"],
                    int(data["is_active"]),
                    data["notion_page_id"],
                    profile.id,
                ),
            )
            await db.commit()

    def _row_to_profile(self, row: aiosqlite.Row) -> Profile:
        """Convert a database row to a Profile."""
        data = {key: row[key] for key in row.keys()}
        return Profile.from_dict(
            data,
            id=row["id"],
            created_at=_dt(row["created_at"]),
            updated_at=_dt(row["updated_at"]),
        )


class TemplateRepository:
    """Repository for checklist templates and their version history."""

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or get_db_path()

    async def save(self, template: ChecklistTemplate, created_by: int | None = None) -> int:
        """Create or update a template and record a version snapshot.

        Raises:
            TemplateValidationError: if the template has no title.
        """
        if not template.title or not template.title.strip():
            raise TemplateValidationError("Template title is required")

        previous = []
        latest_version = 0
        if template.id is not None:
            latest = await self.get_latest_version(template.id)
            if latest is not None:
                previous = latest.sections
                latest_version = latest.version

        async with aiosqlite.connect(self.db_path) as db:
            if template.id is None:
                cursor = await db.execute(
                    """
                    INSERT INTO checklist_templates
                    (title, description, icon, category, sector_id, difficulty,
                     estimated_minutes, schedule, is_published, created_by)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        template.title.strip(),
                        template.description,
                        template.icon,
                        template.category,
                        template.sector_id,
                        template.difficulty.value,
                        template.estimated_minutes,
                        json.dumps(template.schedule.to_dict()),
                        int(template.is_published),
                        created_by,
                    ),
                )
                template.id = cursor.lastrowid
            else:
                await db.execute(
                    """
                    UPDATE checklist_templates SET
                        title = ?, description = ?, icon = ?, category = ?,
                        sector_id = ?, difficulty = ?, estimated_minutes = ?,
                        schedule = ?, is_published = ?, updated_at = CURRENT_TIMESTAMP
                    WHERE id = ?
                    """,
                    (
                        template.title.strip(),
                        template.description,
                        template.icon,
                        template.category,
                        template.sector_id,
                        template.difficulty.value,
                        template.estimated_minutes,
                        json.dumps(template.schedule.to_dict()),
                        int(template.is_published),
                        template.id,
                    ),
                )
                await db.execute(
                    "DELETE FROM template_questions WHERE template_id = ?", (template.id,)
                )

            position = 0
            for section in sorted(template.sections, key=lambda s: s.order):
                blob = section.to_blob()
                for question in sorted(section.questions, key=lambda q: q.order):
                    await db.execute(
                        """
                        INSERT INTO template_questions
                        (template_id, question_id, section, position, data)
                        VALUES (?, ?, ?, ?, ?)
                        """,
                        (
                            template.id,
                            question.id,
                            blob,
                            position,
                            json.dumps(question.to_dict()),
                        ),
                    )
                    position += 1

            added, removed, modified = diff_sections(previous, template.sections)
            template.current_version = latest_version + 1
            await db.execute(
                """
                INSERT INTO template_versions
                (template_id, version, changes, questions_added, questions_removed,
                 questions_modified, snapshot, created_by)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    template.id,
                    template.current_version,
                    describe_changes(added, removed, modified),
                    added,
                    removed,
                    modified,
                    json.dumps([s.to_dict() for s in template.sections]),
                    created_by,
                ),
            )
            await db.execute(
                "UPDATE checklist_templates SET current_version = ? WHERE id = ?",
                (template.current_version, template.id),
            )
            await db.commit()
            return template.id

    async def get(self, template_id: int) -> ChecklistTemplate | None:
        """Get a template with its sections and questions."""
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                "SELECT * FROM checklist_templates WHERE id = ?", (template_id,)
            )
            row = await cursor.fetchone()
            if row is None:
                return None
            cursor = await db.execute(
                """
                SELECT * FROM template_questions
                WHERE template_id = ? ORDER BY position
                """,
                (template_id,),
            )
            question_rows = await cursor.fetchall()
            return self._row_to_template(row, question_rows)

    async def list_all(self, published_only: bool = False) -> list[ChecklistTemplate]:
        """List templates (without loading their questions)."""
        query = "SELECT * FROM checklist_templates"
        if published_only:
            query += " WHERE is_published = 1"
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(query + " ORDER BY updated_at DESC, id DESC")
            rows = await cursor.fetchall()
            return [self._row_to_template(row, []) for row in rows]

    async def delete(self, template_id: int) -> None:
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute("DELETE FROM template_questions WHERE template_id = ?", (template_id,))
            await db.execute("DELETE FROM template_versions WHERE template_id = ?", (template_id,))
            await db.execute("DELETE FROM checklist_templates WHERE id = ?", (template_id,))
            await db.commit()

    async def list_versions(self, template_id: int) -> list[TemplateVersion]:
        """Version history, newest first."""
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                """
                SELECT * FROM template_versions
                WHERE template_id = ? ORDER BY version DESC
                """,
                (template_id,),
            )
            rows = await cursor.fetchall()
            return [self._row_to_version(row) for row in rows]

    async def get_latest_version(self, template_id: int) -> TemplateVersion | None:
        versions = await self.list_versions(template_id)
        return versions[0] if versions else None

    async def get_version(self, template_id: int, version: int) -> TemplateVersion | None:
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                "SELECT * FROM template_versions WHERE template_id = ? AND version = ?",
                (template_id, version),
            )
            row = await cursor.fetchone()
            if row is None:
                return None
            return self._row_to_version(row)

    def _row_to_template(
        self, row: aiosqlite.Row, question_rows: list[aiosqlite.Row]
    ) -> ChecklistTemplate:
        """Rebuild sections from the section blob on each question row."""
        sections: dict[str, Section] = {}
        for qrow in question_rows:
            section = parse_section_blob(qrow["section"])
            if section.id not in sections:
                sections[section.id] = section
            sections[section.id].questions.append(Question.from_dict(json.loads(qrow["data"])))

        return ChecklistTemplate(
            id=row["id"],
            title=row["title"],
            description=row["description"] or "",
            icon=row["icon"] or "",
            category=row["category"] or "",
            sector_id=row["sector_id"],
            difficulty=Difficulty(row["difficulty"] or "easy"),
            estimated_minutes=row["estimated_minutes"],
            schedule=ScheduleConfig.from_dict(json.loads(row["schedule"] or "{}")),
            current_version=row["current_version"] or 0,
            is_published=bool(row["is_published"]),
            created_by=row["created_by"],
            sections=list(sections.values()),
            created_at=_dt(row["created_at"]),
            updated_at=_dt(row["updated_at"]),
        )

    def _row_to_version(self, row: aiosqlite.Row) -> TemplateVersion:
        return TemplateVersion(
            id=row["id"],
            template_id=row["template_id"],
            version=row["version"],
            changes=row["changes"] or "",
            questions_added=row["questions_added"],
            questions_removed=row["questions_removed"],
            questions_modified=row["questions_modified"],
            sections=[Section.from_dict(s) for s in json.loads(row["snapshot"])],
            created_by=row["created_by"],
            created_at=_dt(row["created_at"]),
        )


class ChecklistRepository:
    """Repository for checklist executions and their responses."""

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or get_db_path()

    async def start(
        self, template_id: int, user_id: int | None, sector_id: int | None = None
    ) -> Checklist:
        """Resume the user's open execution of a template, or start a new one."""
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                """
                SELECT id FROM checklists
                WHERE template_id = ? AND user_id IS ? AND status = 'in_progress'
                ORDER BY started_at DESC, id DESC LIMIT 1
                """,
                (template_id, user_id),
            )
            row = await cursor.fetchone()
            if row is None:
                checklist = Checklist(
                    template_id=template_id, user_id=user_id, sector_id=sector_id
                )
                checklist.start()
                cursor = await db.execute(
                    """
                    INSERT INTO checklists
                    (template_id, user_id, sector_id, status, started_at)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (
                        template_id,
                        user_id,
                        sector_id,
                        checklist.status.value,
                        checklist.started_at.isoformat(),
                    ),
                )
                await db.commit()
                checklist.id = cursor.lastrowid
                return checklist

        return await self.get(row["id"])

    async def get(self, checklist_id: int) -> Checklist | None:
        """Get an execution with its responses."""
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute("SELECT * FROM checklists WHERE id = ?", (checklist_id,))
            row = await cursor.fetchone()
            if row is None:
                return None
            cursor = await db.execute(
                "SELECT * FROM checklist_responses WHERE checklist_id = ? ORDER BY id",
                (checklist_id,),
            )
            response_rows = await cursor.fetchall()
            checklist = self._row_to_checklist(row)
            checklist.responses = [self._row_to_response(r) for r in response_rows]
            return checklist

    async def save_responses(
        self, checklist_id: int, responses: list[ChecklistResponse]
    ) -> list[ChecklistResponse]:
        """Replace the stored responses of an execution.

        Returns the responses with their new row ids filled in.
        """
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                "DELETE FROM checklist_responses WHERE checklist_id = ?", (checklist_id,)
            )
            for response in responses:
                cursor = await db.execute(
                    """
                    INSERT INTO checklist_responses
                    (checklist_id, question_id, value, photo_urls, comment, has_issue,
                     answered_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        checklist_id,
                        response.question_id,
                        json.dumps(response.value),
                        json.dumps(response.photo_urls),
                        response.comment,
                        int(response.has_issue),
                        response.answered_at.isoformat() if response.answered_at else None,
                    ),
                )
                response.id = cursor.lastrowid
                response.checklist_id = checklist_id
            await db.commit()
        return responses

    async def complete(
        self, checklist_id: int, score: int, conformity: float, signature: str
    ) -> bool:
        """Mark an open execution completed. Returns False if it was not open."""
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(
                """
                UPDATE checklists SET
                    status = 'completed', score = ?, conformity = ?, signature = ?,
                    completed_at = ?
                WHERE id = ? AND status = 'in_progress'
                """,
                (score, round(conformity, 1), signature, datetime.now().isoformat(), checklist_id),
            )
            await db.commit()
            return cursor.rowcount == 1

    async def cancel(self, checklist_id: int) -> bool:
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(
                """
                UPDATE checklists SET status = 'canceled'
                WHERE id = ? AND status = 'in_progress'
                """,
                (checklist_id,),
            )
            await db.commit()
            return cursor.rowcount == 1

    async def list_recent(
        self,
        user_id: int | None = None,
        template_id: int | None = None,
        status: ChecklistStatus | None = None,
        limit: int = 20,
    ) -> list[Checklist]:
        """List executions, newest first (responses not loaded)."""
        clauses = []
        params: list = []
        if user_id is not None:
            clauses.append("user_id = ?")
            params.append(user_id)
        if template_id is not None:
            clauses.append("template_id = ?")
            params.append(template_id)
        if status is not None:
            clauses.append("status = ?")
            params.append(status.value)

        query = "SELECT * FROM checklists"
        if clauses:
            query += " WHERE " + " AND ".join(clauses)
        query += " ORDER BY started_at DESC, id DESC LIMIT ?"
        params.append(limit)

        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(query, params)
            rows = await cursor.fetchall()
            return [self._row_to_checklist(row) for row in rows]

    def _row_to_checklist(self, row: aiosqlite.Row) -> Checklist:
        return Checklist(
            id=row["id"],
            template_id=row["template_id"],
            user_id=row["user_id"],
            sector_id=row["sector_id"],
            status=ChecklistStatus(row["status"]),
            score=row["score"],
            conformity=row["conformity"],
            signature=row["signature"],
            started_at=_dt(row["started_at"]),
            completed_at=_dt(row["completed_at"]),
        )

    def _row_to_response(self, row: aiosqlite.Row) -> ChecklistResponse:
        return ChecklistResponse(
            id=row["id"],
            checklist_id=row["checklist_id"],
            question_id=row["question_id"],
            value=json.loads(row["value"]) if row["value"] is not None else None,
            photo_urls=json.loads(row["photo_urls"] or "[]"),
            comment=row["comment"] or "",
            has_issue=bool(row["has_issue"]),
            answered_at=_dt(row["answered_at"]),
        )


class ActionPlanRepository:
    """Repository for action plans."""

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or get_db_path()

    async def create(self, plan: ActionPlan) -> int:
        """Create a new action plan."""
        data = plan.to_dict()
        columns = list(data.keys())
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(
                f"""
                INSERT INTO action_plans ({", ".join(columns)})
                VALUES ({", ".join("?" for _ in columns)})
                """,
                [data[c] for c in columns],
            )
            await db.commit()
            plan.id = cursor.lastrowid
            return plan.id

    async def get(self, plan_id: int) -> ActionPlan | None:
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute("SELECT * FROM action_plans WHERE id = ?", (plan_id,))
            row = await cursor.fetchone()
            if row is None:
                return None
            return self._row_to_plan(row)

    async def get_by_notion_page(self, page_id: str) -> ActionPlan | None:
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                "SELECT * FROM action_plans WHERE notion_page_id = ?", (page_id,)
            )
            row = await cursor.fetchone()
            if row is None:
                return None
            return self._row_to_plan(row)

    async def list_all(
        self,
        assignee_id: int | None = None,
        status: ActionPlanStatus | None = None,
        checklist_id: int | None = None,
    ) -> list[ActionPlan]:
        """List action plans, newest first, optionally filtered."""
        clauses = []
        params: list = []
        if assignee_id is not None:
            clauses.append("assignee_id = ?")
            params.append(assignee_id)
        if status is not None:
            clauses.append("status = ?")
            params.append(status.value)
        if checklist_id is not None:
            clauses.append("checklist_id = ?")
            params.append(checklist_id)

        query = "SELECT * FROM action_plans"
        if clauses:
            query += " WHERE " + " AND ".join(clauses)
        query += " ORDER BY created_at DESC, id DESC"

        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(query, params)
            rows = await cursor.fetchall()
            return [self._row_to_plan(row) for row in rows]

    async def update(self, plan: ActionPlan) -> None:
        """Update an existing action plan."""
        if plan.id is None:
            raise ValueError("Action plan must have an ID to update")

        data = plan.to_dict()
        columns = list(data.keys())
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                f"""
                UPDATE action_plans SET
                    {", ".join(f"{c} = ?" for c in columns)},
                    updated_at = CURRENT_TIMESTAMP
                WHERE id = ?
                """,
                [data[c] for c in columns] + [plan.id],
            )
            await db.commit()

    def _row_to_plan(self, row: aiosqlite.Row) -> ActionPlan:
        data = {key: row[key] for key in row.keys()}
        return ActionPlan.from_dict(
            data,
            id=row["id"],
            created_at=_dt(row["created_at"]),
            updated_at=_dt(row["updated_at"]),
        )


class DuelRepository:
    """Repository for duels.

    Status changes are conditional updates: each method names the status
    the duel must currently be in and reports whether the row changed.
    """

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or get_db_path()

    async def create(self, duel: Duel) -> int:
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(
                """
                INSERT INTO duels (challenger_id, opponent_id, template_id, wager, status)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    duel.challenger_id,
                    duel.opponent_id,
                    duel.template_id,
                    duel.wager,
                    duel.status.value,
                ),
            )
            await db.commit()
            duel.id = cursor.lastrowid
            return duel.id

    async def get(self, duel_id: int) -> Duel | None:
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute("SELECT * FROM duels WHERE id = ?", (duel_id,))
            row = await cursor.fetchone()
            if row is None:
                return None
            return self._row_to_duel(row)

    async def list_for_user(self, user_id: int) -> list[Duel]:
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                """
                SELECT * FROM duels WHERE challenger_id = ? OR opponent_id = ?
                ORDER BY created_at DESC, id DESC
                """,
                (user_id, user_id),
            )
            rows = await cursor.fetchall()
            return [self._row_to_duel(row) for row in rows]

    async def transition(
        self, duel_id: int, expected: DuelStatus, new_status: DuelStatus
    ) -> bool:
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(
                "UPDATE duels SET status = ? WHERE id = ? AND status = ?",
                (new_status.value, duel_id, expected.value),
            )
            await db.commit()
            return cursor.rowcount == 1

    async def record_progress(
        self, duel_id: int, side: str, progress: float, score: int
    ) -> bool:
        """Store one side's progress while the duel is active."""
        if side not in ("challenger", "opponent"):
            raise ValueError(f"Unknown duel side: {side}")
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(
                f"""
                UPDATE duels SET {side}_progress = ?, {side}_score = ?
                WHERE id = ? AND status = 'active'
                """,
                (min(100.0, max(0.0, progress)), score, duel_id),
            )
            await db.commit()
            return cursor.rowcount == 1

    async def complete(self, duel_id: int, winner_id: int | None) -> bool:
        """Close an active duel. False if someone else already closed it."""
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(
                """
                UPDATE duels SET status = 'completed', winner_id = ?, completed_at = ?
                WHERE id = ? AND status = 'active'
                """,
                (winner_id, datetime.now().isoformat(), duel_id),
            )
            await db.commit()
            return cursor.rowcount == 1

    def _row_to_duel(self, row: aiosqlite.Row) -> Duel:
        return Duel(
            id=row["id"],
            challenger_id=row["challenger_id"],
            opponent_id=row["opponent_id"],
            template_id=row["template_id"],
            wager=row["wager"],
            challenger_progress=row["challenger_progress"],
            opponent_progress=row["opponent_progress"],
            challenger_score=row["challenger_score"],
            opponent_score=row["opponent_score"],
            status=DuelStatus(row["status"]),
            winner_id=row["winner_id"],
            created_at=_dt(row["created_at"]),
            completed_at=_dt(row["completed_at"]),
        )


class ActivityLogRepository:
    """Repository for the activity feed."""

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or get_db_path()

    async def create(self, entry: ActivityLog) -> int:
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(
                """
                INSERT INTO activity_logs (user_id, action_type, description, xp_earned)
                VALUES (?, ?, ?, ?)
                """,
                (entry.user_id, entry.action_type, entry.description, entry.xp_earned),
            )
            await db.commit()
            return cursor.lastrowid

    async def list_recent(self, user_id: int | None = None, limit: int = 20) -> list[ActivityLog]:
        query = "SELECT * FROM activity_logs"
        params: list = []
        if user_id is not None:
            query += " WHERE user_id = ?"
            params.append(user_id)
        query += " ORDER BY created_at DESC, id DESC LIMIT ?"
        params.append(limit)

        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(query, params)
            rows = await cursor.fetchall()
            return [
                ActivityLog(
                    id=row["id"],
                    user_id=row["user_id"],
                    action_type=row["action_type"],
                    description=row["description"] or "",
                    xp_earned=row["xp_earned"] or 0,
                    created_at=_dt(row["created_at"]),
                )
                for row in rows
            ]
