"""Duel commands."""

import click

from ..db import DuelRepository
from ..errors import DuelStateError
from ..services.duels import DuelService
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
def duels(ctx):
    """Challenge teammates to race through a checklist for XP."""
    ensure_initialized(ctx)


@duels.command()
@click.argument("challenger_id", type=int)
@click.argument("opponent_id", type=int)
@click.argument("template_id", type=int)
@click.option("--wager", "-w", default=0, show_default=True, help="XP at stake")
@click.pass_context
@async_command
async def challenge(ctx, challenger_id: int, opponent_id: int, template_id: int, wager: int):
    """Invite OPPONENT_ID to a duel on TEMPLATE_ID."""
    try:
        duel = await DuelService().challenge(challenger_id, opponent_id, template_id, wager)
    except DuelStateError as e:
        echo_error(str(e))
        ctx.exit(1)
    echo_success(f"Duel {duel.id} sent ({duel.wager} XP at stake)")


@duels.command()
@click.argument("duel_id", type=int)
@click.option("--user", "-u", "user_id", type=int, required=True, help="Invited profile ID")
@click.pass_context
@async_command
async def accept(ctx, duel_id: int, user_id: int):
    """Accept a duel invitation."""
    try:
        await DuelService().accept(duel_id, user_id)
    except DuelStateError as e:
        echo_error(str(e))
        ctx.exit(1)
    echo_success(f"Duel {duel_id} is on")


@duels.command()
@click.argument("duel_id", type=int)
@click.option("--user", "-u", "user_id", type=int, required=True, help="Invited profile ID")
@click.pass_context
@async_command
async def decline(ctx, duel_id: int, user_id: int):
    """Decline a duel invitation."""
    try:
        await DuelService().decline(duel_id, user_id)
    except DuelStateError as e:
        echo_error(str(e))
        ctx.exit(1)
    echo_success(f"Duel {duel_id} declined")


@duels.command(name="list")
@click.option("--user", "-u", "user_id", type=int, required=True, help="Profile ID")
@async_command
async def list_duels(user_id: int):
    """List a member's duels."""
    all_duels = await DuelRepository().list_for_user(user_id)
    if not all_duels:
        echo_info("No duels yet")
        return
    rows = [
        [
            str(d.id),
            f"{d.challenger_id} vs {d.opponent_id}",
            str(d.template_id),
            str(d.wager),
            d.status.value,
            f"{d.challenger_progress:.0f}% / {d.opponent_progress:.0f}%",
            str(d.winner_id) if d.winner_id is not None else "-",
        ]
        for d in all_duels
    ]
    click.echo()
    click.echo(format_table(["ID", "Players", "Template", "Wager", "Status", "Progress", "Winner"], rows))
