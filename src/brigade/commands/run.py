"""Run a checklist interactively."""

import click

from ..clients.console import ConsoleChecklistClient
from ..config import get_config
from ..db import ChecklistRepository, ProfileRepository, TemplateRepository
from ..engine.runner import ChecklistRun
from ..errors import ChecklistStateError
from ..services.completion import CompletionService
from ..services.evidence import EvidenceStore
from .base import async_command, echo_error, echo_info, echo_success, ensure_initialized


@click.command()
@click.argument("template_id", type=int)
@click.option("--user", "-u", "user_id", type=int, help="Profile ID of the person running it")
@click.option("--sector", "-s", "sector_id", type=int, help="Sector ID (defaults to the template's)")
@click.pass_context
@async_command
async def run(ctx, template_id: int, user_id: int | None, sector_id: int | None):
    """Fill in a checklist in the terminal.

    An unfinished checklist for the same template and user is resumed.
    Answers are saved as you go; non-conformities queue action plans
    that are filled in before signing.
    """
    ensure_initialized(ctx)

    template = await TemplateRepository().get(template_id)
    if not template:
        echo_error(f"Template ID {template_id} not found")
        ctx.exit(1)

    profile = None
    if user_id is not None:
        profile = await ProfileRepository().get(user_id)
        if not profile:
            echo_error(f"Profile ID {user_id} not found")
            ctx.exit(1)

    checklists = ChecklistRepository()
    checklist = await checklists.start(template.id, user_id, sector_id or template.sector_id)
    if checklist.responses:
        echo_info(f"Resuming checklist {checklist.id} ({len(checklist.responses)} answers saved)")

    config = get_config()
    checklist_run = ChecklistRun(
        template,
        include_combo_bonus=config.scoring.include_combo_bonus,
        default_estimated_minutes=config.scoring.default_estimated_minutes,
        responses=checklist.responses,
    )

    async def save(r: ChecklistRun) -> None:
        await checklists.save_responses(checklist.id, list(r.responses.values()))

    client = ConsoleChecklistClient(
        checklist_run,
        EvidenceStore(config.evidence_dir),
        folder=f"checklist_{checklist.id}",
        on_answer=save,
    )

    click.echo()
    click.echo(click.style(template.title, bold=True))
    click.echo(f"Estimated time: {checklist_run.estimated_minutes} min")
    click.echo()

    await client.answer_all()

    missing = checklist_run.missing_required()
    if missing:
        echo_error("Some required answers or photos are missing:")
        for question_id in missing:
            question = template.get_question(question_id)
            click.echo(f"  - {question.text if question else question_id}")
        echo_info(f"Run 'brigade run {template_id}' again to continue")
        ctx.exit(1)

    try:
        drafts = checklist_run.submit()
        if drafts:
            echo_info(f"{len(drafts)} non-conformit{'y' if len(drafts) == 1 else 'ies'} found")
            await client.collect_action_plans()
        signature = await client.ask_signature(profile.name if profile else "")
        result = checklist_run.sign(signature)
        summary = await CompletionService().finish(checklist, template, result)
    except ChecklistStateError as e:
        echo_error(str(e))
        ctx.exit(1)

    breakdown = result.score
    click.echo()
    echo_success(f"Checklist {checklist.id} completed in {checklist_run.timer.display()}")
    click.echo(f"  Base points:   {breakdown.base}")
    click.echo(f"  Speed bonus:   +{breakdown.speed_bonus}")
    click.echo(f"  Focus bonus:   +{breakdown.focus_bonus}")
    click.echo(f"  Difficulty:    x{breakdown.multiplier}")
    click.echo(click.style(f"  Score:         {breakdown.final}", bold=True))
    click.echo(f"  Conformity:    {summary.conformity:.1f}%")
    if summary.action_plan_ids:
        click.echo(f"  Action plans:  {', '.join(str(i) for i in summary.action_plan_ids)}")
    if profile:
        click.echo(f"  Streak:        {summary.streak_days} day(s)")
        if summary.shield_used:
            click.echo("  Streak shield used to keep your streak alive")
        if summary.level_up:
            click.echo(click.style(f"  Level up! You are now level {summary.level}", fg="green"))
