"""Initialize the local store."""

import click

from ..config import get_config
from ..db import get_db_path, init_db
from .base import async_command, echo_info, echo_success, echo_warning


@click.command()
@async_command
async def init():
    """Create the data directory and SQLite database.

    Safe to run again: existing tables are kept and pending migrations
    are applied.
    """
    config = get_config()
    db_path = get_db_path()

    echo_info(f"Initializing brigade in {config.data_dir}")
    config.evidence_dir.mkdir(parents=True, exist_ok=True)

    await init_db(db_path)
    echo_success(f"Database ready at {db_path}")

    if not config.notion.enabled:
        echo_warning("NOTION_API_KEY is not set; action plans will stay local")
    if not config.webhooks.enabled:
        echo_warning("N8N_WEBHOOK_BASE_URL is not set; webhooks are disabled")

    click.echo()
    click.echo("Next steps:")
    click.echo("  1. Create your team:")
    click.echo('     brigade profile create "Ana" --role manager')
    click.echo("  2. Import a checklist template:")
    click.echo("     brigade templates import opening.json --publish")
    click.echo("  3. Run it:")
    click.echo("     brigade run 1 --user 1")
