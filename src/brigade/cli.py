"""CLI entry point for brigade."""

import click

from . import __version__
from .commands import checklists, duels, init, plans, profile, run, schedule, serve, templates
from .logging_config import configure_logging


@click.group()
@click.version_option(version=__version__, prog_name="brigade")
@click.option("--log-level", default=None, help="Override LOG_LEVEL (DEBUG, INFO, ...)")
def main(log_level: str | None):
    """brigade: restaurant checklists with scoring and action plans.

    Run operational checklists, turn non-conformities into action plans
    synced with Notion, and keep the team engaged with XP, levels,
    streaks and duels.

    Example usage:

        # Initialize the database
        brigade init

        # Import a template and run it
        brigade templates import opening.json --publish
        brigade run 1 --user 1

        # Follow up on action plans
        brigade plans list --status pending
        brigade plans status 3 resolved --comment "Fixed the seal"

        # Serve the HTTP API
        brigade serve
    """
    configure_logging(log_level)


main.add_command(init)
main.add_command(templates)
main.add_command(run)
main.add_command(checklists)
main.add_command(plans)
main.add_command(profile)
main.add_command(duels)
main.add_command(schedule)
main.add_command(serve)


if __name__ == "__main__":
    main()
