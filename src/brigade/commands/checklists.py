"""Checklist history commands."""

import click

from ..db import ChecklistRepository, TemplateRepository
from ..models.execution import ChecklistStatus
from .base import (
    async_command,
    echo_error,
    echo_info,
    echo_success,
    ensure_initialized,
    format_table,
)


@click.group()
@click.pass_context
def checklists(ctx):
    """Browse and manage checklist executions."""
    ensure_initialized(ctx)


@checklists.command(name="list")
@click.option("--user", "-u", "user_id", type=int, help="Filter by profile ID")
@click.option("--template", "-t", "template_id", type=int, help="Filter by template ID")
@click.option(
    "--status",
    type=click.Choice([s.value for s in ChecklistStatus]),
    help="Filter by status",
)
@click.option("--limit", "-n", default=20, show_default=True)
@async_command
async def list_checklists(
    user_id: int | None, template_id: int | None, status: str | None, limit: int
):
    """List recent checklists."""
    recent = await ChecklistRepository().list_recent(
        user_id=user_id,
        template_id=template_id,
        status=ChecklistStatus(status) if status else None,
        limit=limit,
    )
    if not recent:
        echo_info("No checklists found")
        return

    titles = {t.id: t.title for t in await TemplateRepository().list_all()}
    rows = [
        [
            str(c.id),
            titles.get(c.template_id, str(c.template_id)),
            str(c.user_id) if c.user_id is not None else "-",
            c.get_status_display(),
            str(c.score) if c.score is not None else "-",
            f"{c.conformity:.0f}%" if c.conformity is not None else "-",
            c.get_duration_display(),
            c.started_at.strftime("%Y-%m-%d %H:%M") if c.started_at else "N/A",
        ]
        for c in recent
    ]
    click.echo()
    click.echo(
        format_table(
            ["ID", "Template", "User", "Status", "Score", "Conformity", "Time", "Started"], rows
        )
    )


@checklists.command()
@click.argument("checklist_id", type=int)
@click.pass_context
@async_command
async def show(ctx, checklist_id: int):
    """Show a checklist's answers."""
    checklist = await ChecklistRepository().get(checklist_id)
    if not checklist:
        echo_error(f"Checklist ID {checklist_id} not found")
        ctx.exit(1)
    template = await TemplateRepository().get(checklist.template_id)

    click.echo()
    click.echo(f"Checklist {checklist.id}: {template.title if template else checklist.template_id}")
    click.echo(f"Status: {checklist.get_status_display()}  Duration: {checklist.get_duration_display()}")
    if checklist.score is not None:
        click.echo(f"Score: {checklist.score}  Conformity: {checklist.conformity:.1f}%")
    click.echo()
    for response in checklist.responses:
        question = template.get_question(response.question_id) if template else None
        flag = click.style(" [issue]", fg="red") if response.has_issue else ""
        click.echo(f"  {question.text if question else response.question_id}: {response.value}{flag}")
        if response.comment:
            click.echo(f"    {response.comment}")
        for url in response.photo_urls:
            click.echo(f"    photo: {url}")


@checklists.command()
@click.argument("checklist_id", type=int)
@click.pass_context
@async_command
async def cancel(ctx, checklist_id: int):
    """Cancel an unfinished checklist."""
    if not await ChecklistRepository().cancel(checklist_id):
        echo_error(f"Checklist {checklist_id} is not in progress")
        ctx.exit(1)
    echo_success(f"Checklist {checklist_id} canceled")
