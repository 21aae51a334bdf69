"""Interactive checklist execution in the terminal."""

from datetime import date
from pathlib import Path
from typing import Awaitable, Callable

import click
import questionary
from questionary import Style

from ...engine.runner import ChecklistRun
from ...errors import BrigadeError
from ...models.action_plan import ActionPlan, CostType
from ...models.template import Question, QuestionType
from ...services.evidence import EvidenceStore

custom_style = Style(
    [
        ("qmark", "fg:#e65100 bold"),
        ("question", "bold"),
        ("answer", "fg:#2e7d32 bold"),
        ("pointer", "fg:#e65100 bold"),
        ("highlighted", "fg:#e65100 bold"),
        ("selected", "fg:#2e7d32"),
        ("separator", "fg:#9e9e9e"),
        ("instruction", ""),
        ("text", ""),
    ]
)


class ConsoleChecklistClient:
    """Walks a ChecklistRun through questionary prompts.

    Answers are asked in display order; a question revealed by a rule is
    asked as soon as it becomes visible.
    """

    def __init__(
        self,
        run: ChecklistRun,
        evidence: EvidenceStore,
        folder: str,
        on_answer: Callable[[ChecklistRun], Awaitable[None]] | None = None,
    ):
        self.run = run
        self.on_answer = on_answer
        self.evidence = evidence
        self.folder = folder
        self.skipped: set[str] = set()

    def _next_question(self) -> Question | None:
        for question in self.run.visible_questions():
            if question.id not in self.run.responses and question.id not in self.skipped:
                return question
        return None

    async def answer_all(self) -> None:
        """Ask every visible question until none are left."""
        while (question := self._next_question()) is not None:
            click.echo(click.style(f"  {self.run.timer.display()}", dim=True))
            value = await self._ask(question)
            if value is None:
                if question.required:
                    stop = await questionary.confirm(
                        "This question is required. Stop the checklist for now?",
                        default=False,
                        style=custom_style,
                    ).ask_async()
                    if stop is not False:
                        raise click.Abort()
                    continue
                self.skipped.add(question.id)
                continue

            photos = []
            if question.type == QuestionType.PHOTO:
                photos = [value]
            has_issue = False
            if question.type == QuestionType.YES_NO and value == "no":
                has_issue = await questionary.confirm(
                    "Flag this as an issue?", default=False, style=custom_style
                ).ask_async()

            result = self.run.answer(question.id, value, photo_urls=photos, has_issue=bool(has_issue))
            for outcome in result.outcomes:
                click.echo(click.style(f"  -> {outcome.action.value}", fg="cyan"))
            if result.combo_bonus:
                click.echo(click.style(f"  Combo x{result.combo}! +{result.combo_bonus}", fg="magenta"))

            if question.id in self.run.evaluate().photo_required and question.type != QuestionType.PHOTO:
                url = await self._ask_photo("Photo evidence required (file path):")
                if url is not None:
                    self.run.answer(question.id, value, photo_urls=[url], has_issue=bool(has_issue))

            if self.on_answer is not None:
                await self.on_answer(self.run)

    async def _ask(self, question: Question):
        label = question.text + ("" if question.required else " (optional)")
        if question.help_text:
            click.echo(click.style(f"  {question.help_text}", dim=True))

        if question.type == QuestionType.YES_NO:
            return await questionary.select(
                label,
                choices=[
                    questionary.Choice("Yes", "yes"),
                    questionary.Choice("No", "no"),
                    questionary.Choice("Not applicable", "na"),
                ],
                style=custom_style,
            ).ask_async()

        if question.type == QuestionType.OPTIONS:
            return await questionary.select(
                label, choices=question.choices, style=custom_style
            ).ask_async()

        if question.type == QuestionType.MULTIPLE_SELECTION:
            selected = await questionary.checkbox(
                label, choices=question.choices, style=custom_style
            ).ask_async()
            return selected or None

        if question.type == QuestionType.RATING:
            rating = await questionary.select(
                label, choices=[str(n) for n in range(1, 6)], style=custom_style
            ).ask_async()
            return int(rating) if rating else None

        if question.type == QuestionType.NUMBER:
            text = await questionary.text(label, style=custom_style).ask_async()
            try:
                return float(text)
            except (TypeError, ValueError):
                return None

        if question.type == QuestionType.PHOTO:
            return await self._ask_photo(label)

        text = await questionary.text(
            label, default=question.placeholder, style=custom_style
        ).ask_async()
        return text.strip() if text and text.strip() else None

    async def _ask_photo(self, label: str) -> str | None:
        path_str = await questionary.path(label, style=custom_style).ask_async()
        if not path_str:
            return None
        path = Path(path_str).expanduser()
        if not path.is_file():
            click.echo(click.style(f"  File not found: {path}", fg="yellow"))
            return None
        try:
            return self.evidence.store(self.folder, path.name, path.read_bytes())
        except BrigadeError as e:
            click.echo(click.style(f"  {e}", fg="yellow"))
            return None

    async def collect_action_plans(self) -> list[ActionPlan]:
        """Fill in (or skip) each queued action plan."""
        while (draft := self.run.current_draft) is not None:
            click.echo()
            click.echo(click.style(f"Non-conformity: {draft.question_text}", fg="red", bold=True))
            click.echo(f"  Answer: {draft.answer or '-'}")
            create = await questionary.confirm(
                "Create an action plan?", default=True, style=custom_style
            ).ask_async()
            if not create:
                self.run.skip_action_plan()
                continue

            title = await questionary.text(
                "Title:", default=draft.title, style=custom_style
            ).ask_async()
            description = await questionary.text(
                "What is the benefit of solving it?", style=custom_style
            ).ask_async()
            steps = await questionary.text(
                "Basic step by step:", style=custom_style
            ).ask_async()
            due = await questionary.text(
                "Due date (YYYY-MM-DD, optional):", style=custom_style
            ).ask_async()
            cost_type = await questionary.select(
                "Will it cost money or only time?",
                choices=[
                    questionary.Choice("Only time", CostType.TIME_ONLY),
                    questionary.Choice("Money", CostType.MONEY),
                ],
                style=custom_style,
            ).ask_async()

            due_date = None
            if due:
                try:
                    due_date = date.fromisoformat(due.strip())
                except ValueError:
                    click.echo(click.style("  Ignoring invalid due date", fg="yellow"))

            self.run.submit_action_plan(
                title=title or draft.title,
                description=description or "",
                step_by_step=steps or "",
                due_date=due_date,
                cost_type=cost_type or CostType.TIME_ONLY,
            )
        return self.run.action_plans

    async def ask_signature(self, default: str = "") -> str:
        signature = ""
        while not signature.strip():
            signature = await questionary.text(
                "Sign with your name:", default=default, style=custom_style
            ).ask_async() or ""
        return signature
