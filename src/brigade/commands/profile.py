"""Team member commands."""

import click

from ..db import ActivityLogRepository, ProfileRepository, SectorRepository
from ..errors import NotionError
from ..models.gamification import ACCESSORY_MIN_LEVEL, Accessory, Profile, Role, Sector
from ..services.notion_sync import NotionSync
from .base import (
    async_command,
    echo_error,
    echo_info,
    echo_success,
    echo_warning,
    ensure_initialized,
    format_table,
)


@click.group()
@click.pass_context
def profile(ctx):
    """Manage team members, sectors and the leaderboard."""
    ensure_initialized(ctx)


@profile.command()
@click.argument("name")
@click.option("--email", default="", help="Email address")
@click.option(
    "--role",
    type=click.Choice([r.value for r in Role]),
    default=Role.MEMBER.value,
    show_default=True,
)
@click.option("--sector", "sector_id", type=int, help="Sector ID")
@async_command
async def create(name: str, email: str, role: str, sector_id: int | None):
    """Add a team member."""
    member = Profile(name=name, email=email, role=Role(role), sector_id=sector_id)
    member.id = await ProfileRepository().create(member)
    echo_success(f"Created profile {member.id}: {member.name} ({member.role.value})")
    try:
        page_id = await NotionSync().sync_profile(member)
    except NotionError as e:
        echo_warning(f"Could not sync to Notion: {e}")
        return
    if page_id:
        echo_info(f"Linked to Notion page {page_id}")


@profile.command()
@click.argument("profile_id", type=int)
@click.pass_context
@async_command
async def show(ctx, profile_id: int):
    """Show a member's level, streak and recent activity."""
    member = await ProfileRepository().get(profile_id)
    if not member:
        echo_error(f"Profile ID {profile_id} not found")
        ctx.exit(1)

    info = member.level_info
    click.echo()
    click.echo(f"{member.name} ({member.role.value})")
    click.echo("-" * 40)
    click.echo(f"Level {info.level.number}: {info.level.title}")
    click.echo(f"XP: {member.total_xp}")
    if info.next_level:
        click.echo(f"Next: {info.next_level.title} at {info.next_level.min_xp} XP ({info.progress:.0f}%)")
    click.echo(f"Streak: {member.streak_days} day(s)" + (" [shield]" if member.streak_shield_available else ""))
    click.echo(f"Avatar: {member.accessory.value}")

    activity = await ActivityLogRepository().list_recent(profile_id, limit=10)
    if activity:
        click.echo()
        click.echo("Recent activity:")
        for entry in activity:
            when = entry.created_at.strftime("%Y-%m-%d") if entry.created_at else ""
            click.echo(f"  {when} {entry.description} ({entry.xp_earned:+d} XP)")


@profile.command()
@click.option("--limit", "-n", default=10, show_default=True)
@async_command
async def leaderboard(limit: int):
    """Show the top members by XP."""
    top = await ProfileRepository().leaderboard(limit)
    if not top:
        echo_info("No profiles yet")
        return
    rows = [
        [str(i + 1), p.name, str(p.total_xp), f"{p.level} {p.level_info.level.title}", str(p.streak_days)]
        for i, p in enumerate(top)
    ]
    click.echo()
    click.echo(format_table(["#", "Name", "XP", "Level", "Streak"], rows))


@profile.command()
@click.argument("profile_id", type=int)
@click.argument("accessory", type=click.Choice([a.value for a in Accessory]))
@click.pass_context
@async_command
async def avatar(ctx, profile_id: int, accessory: str):
    """Equip an avatar accessory."""
    repo = ProfileRepository()
    member = await repo.get(profile_id)
    if not member:
        echo_error(f"Profile ID {profile_id} not found")
        ctx.exit(1)

    choice = Accessory(accessory)
    if not member.equip(choice):
        echo_error(f"{choice.value} unlocks at level {ACCESSORY_MIN_LEVEL[choice]}")
        ctx.exit(1)
    await repo.update(member)
    echo_success(f"{member.name} is now wearing: {choice.value}")


@profile.command(name="add-sector")
@click.argument("name")
@async_command
async def add_sector(name: str):
    """Add a restaurant sector."""
    sector = Sector(name=name)
    sector.id = await SectorRepository().create(sector)
    echo_success(f"Created sector {sector.id}: {sector.name}")
    try:
        await NotionSync().sync_sector(sector)
    except NotionError as e:
        echo_warning(f"Could not sync to Notion: {e}")


@profile.command()
@async_command
async def sectors():
    """List sectors."""
    all_sectors = await SectorRepository().list_all()
    if not all_sectors:
        echo_info("No sectors yet")
        return
    rows = [[str(s.id), s.name, "yes" if s.is_active else "no"] for s in all_sectors]
    click.echo()
    click.echo(format_table(["ID", "Name", "Active"], rows))
