"""Action plan commands."""

from datetime import datetime

import click

from ..db import ActionPlanRepository
from ..errors import BrigadeError, NotionError, PermissionDenied
from ..models.action_plan import ActionPlanStatus
from ..services.action_plans import ActionPlanService
from ..services.notion_sync import NotionSync
from .base import (
    async_command,
    echo_error,
    echo_info,
    echo_success,
    echo_warning,
    ensure_initialized,
    format_table,
    truncate,
)

STATUS_CHOICES = [s.value for s in ActionPlanStatus]


@click.group()
@click.pass_context
def plans(ctx):
    """Track action plans raised by non-conformities."""
    ensure_initialized(ctx)


@plans.command(name="list")
@click.option("--assignee", "-a", "assignee_id", type=int, help="Filter by assignee profile ID")
@click.option("--status", type=click.Choice(STATUS_CHOICES), help="Filter by status")
@async_command
async def list_plans(assignee_id: int | None, status: str | None):
    """List action plans, newest first."""
    all_plans = await ActionPlanRepository().list_all(
        assignee_id=assignee_id, status=ActionPlanStatus(status) if status else None
    )
    if not all_plans:
        echo_info("No action plans found")
        return

    rows = [
        [
            str(p.id),
            truncate(p.title, 40),
            p.get_status_display(),
            p.due_date.isoformat() if p.due_date else "-",
            str(p.assignee_id) if p.assignee_id is not None else "-",
            str(p.awarded_xp),
            "yes" if p.notion_page_id else "no",
        ]
        for p in all_plans
    ]
    click.echo()
    click.echo(format_table(["ID", "Title", "Status", "Due", "Assignee", "XP", "Notion"], rows))
    click.echo()
    click.echo(f"Total: {len(all_plans)} action plan(s)")


@plans.command()
@click.argument("plan_id", type=int)
@click.argument("status", type=click.Choice(STATUS_CHOICES))
@click.option("--returning", is_flag=True, help="Reopen a resolved plan, clearing its closing notes")
@click.option("--comment", help="Closing comment")
@click.option("--rating", type=click.IntRange(1, 5), help="Satisfaction rating (1-5)")
@click.option("--photo", "photo_url", help="Evidence photo URL")
@click.option("--file", "file_url", help="Evidence file URL")
@click.pass_context
@async_command
async def status(
    ctx,
    plan_id: int,
    status: str,
    returning: bool,
    comment: str | None,
    rating: int | None,
    photo_url: str | None,
    file_url: str | None,
):
    """Change a plan's status."""
    try:
        plan = await ActionPlanService().update_status(
            plan_id,
            ActionPlanStatus(status),
            is_returning=returning,
            photo_url=photo_url,
            file_url=file_url,
            closing_comment=comment,
            satisfaction_rating=rating,
        )
    except BrigadeError as e:
        echo_error(str(e))
        ctx.exit(1)
    echo_success(f"Action plan {plan.id} is now {plan.get_status_display()}")


@plans.command(name="assign-xp")
@click.argument("plan_id", type=int)
@click.argument("xp", type=int)
@click.option("--by", "awarded_by", type=int, required=True, help="Manager profile ID")
@click.pass_context
@async_command
async def assign_xp(ctx, plan_id: int, xp: int, awarded_by: int):
    """Award XP to the assignee of a plan."""
    try:
        plan = await ActionPlanService().assign_xp(plan_id, xp, awarded_by)
    except PermissionDenied as e:
        echo_error(str(e))
        ctx.exit(1)
    except BrigadeError as e:
        echo_error(str(e))
        ctx.exit(1)
    echo_success(f"Awarded {plan.awarded_xp} XP for action plan {plan.id}")


@plans.command()
@click.argument("plan_id", type=int)
@click.pass_context
@async_command
async def push(ctx, plan_id: int):
    """Create a plan's Notion page."""
    try:
        page_id = await ActionPlanService().push(plan_id)
    except (BrigadeError, NotionError) as e:
        echo_error(str(e))
        ctx.exit(1)
    if page_id is None:
        echo_warning("Notion is not configured (set NOTION_API_KEY)")
        return
    echo_success(f"Action plan {plan_id} pushed to Notion page {page_id}")


@plans.command(name="sync-notion")
@click.option("--user", "-u", "user_id", type=int, required=True, help="Profile ID to sync")
@click.option(
    "--since",
    type=click.DateTime(formats=["%Y-%m-%d", "%Y-%m-%dT%H:%M:%S"]),
    help="Only pages edited on or after this time",
)
@click.pass_context
@async_command
async def sync_notion(ctx, user_id: int, since: datetime | None):
    """Pull a member's action plans from Notion."""
    result = await NotionSync().sync_from_notion(user_id, since)
    if "error" in result:
        echo_error(result["error"])
        ctx.exit(1)
    echo_success(f"Synced from Notion: {result['created']} created, {result['updated']} updated")
