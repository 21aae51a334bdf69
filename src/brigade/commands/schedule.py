"""Checklist schedule command."""

from datetime import date

import click

from ..db import TemplateRepository
from ..services.schedule import upcoming
from .base import async_command, echo_info, ensure_initialized, format_table


@click.command()
@click.option("--days", "-d", default=7, show_default=True, help="How many days ahead")
@click.pass_context
@async_command
async def schedule(ctx, days: int):
    """Show scheduled checklists for the coming days."""
    ensure_initialized(ctx)

    templates = await TemplateRepository().list_all(published_only=True)
    due = upcoming(templates, date.today(), days)
    if not due:
        echo_info(f"Nothing scheduled in the next {days} day(s)")
        return

    rows = [
        [
            d.due_at.strftime("%a %Y-%m-%d %H:%M"),
            d.template.title,
            d.notify_at.strftime("%H:%M"),
            d.template.schedule.summary(),
        ]
        for d in due
    ]
    click.echo()
    click.echo(format_table(["Due", "Checklist", "Reminder", "Repeats"], rows))
