"""Checklist template commands."""

import json
from pathlib import Path

import click

from ..db import TemplateRepository
from ..errors import TemplateValidationError
from ..models.template import ChecklistTemplate
from .base import (
    async_command,
    echo_error,
    echo_info,
    echo_success,
    ensure_initialized,
    format_table,
    truncate,
)


@click.group()
@click.pass_context
def templates(ctx):
    """Manage checklist templates.

    Templates are authored as JSON (snake_case or camelCase keys) and
    versioned on every save.
    """
    ensure_initialized(ctx)


@templates.command(name="import")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--id", "template_id", type=int, help="Replace an existing template")
@click.option("--publish", is_flag=True, help="Mark the template as published")
@click.option("--author", type=int, help="Profile ID recorded on the version")
@click.pass_context
@async_command
async def import_template(
    ctx, path: Path, template_id: int | None, publish: bool, author: int | None
):
    """Create or update a template from a JSON file."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        template = ChecklistTemplate.from_dict(data, id=template_id)
    except (json.JSONDecodeError, KeyError, ValueError) as e:
        echo_error(f"Invalid template file: {e}")
        ctx.exit(1)

    if publish:
        template.is_published = True

    try:
        saved_id = await TemplateRepository().save(template, created_by=author)
    except TemplateValidationError as e:
        echo_error(str(e))
        ctx.exit(1)

    echo_success(
        f"Saved '{template.title}' as template {saved_id} (version {template.current_version}, "
        f"{len(template.questions)} questions)"
    )


@templates.command(name="list")
@click.option("--published", is_flag=True, help="Only published templates")
@async_command
async def list_templates(published: bool):
    """List templates."""
    all_templates = await TemplateRepository().list_all(published_only=published)
    if not all_templates:
        echo_info("No templates found. Import one with 'brigade templates import'")
        return

    rows = [
        [
            str(t.id),
            truncate(t.title),
            t.difficulty.value,
            f"{t.estimated_minutes} min" if t.estimated_minutes else "-",
            f"v{t.current_version}",
            "yes" if t.is_published else "no",
            t.schedule.summary(),
        ]
        for t in all_templates
    ]
    click.echo()
    click.echo(
        format_table(["ID", "Title", "Difficulty", "Time", "Version", "Published", "Schedule"], rows)
    )
    click.echo()
    click.echo(f"Total: {len(all_templates)} template(s)")


@templates.command()
@click.argument("template_id", type=int)
@click.option("--rules", "-r", is_flag=True, help="Show conditional rules")
@click.pass_context
@async_command
async def show(ctx, template_id: int, rules: bool):
    """Show a template's sections and questions."""
    template = await TemplateRepository().get(template_id)
    if not template:
        echo_error(f"Template ID {template_id} not found")
        ctx.exit(1)

    click.echo()
    click.echo("=" * 60)
    click.echo(f"{template.title} (ID: {template.id}, v{template.current_version})")
    click.echo("=" * 60)
    if template.description:
        click.echo(template.description)
    click.echo(
        f"Difficulty: {template.difficulty.value} (x{template.difficulty.multiplier})  "
        f"Max points: {template.max_points}"
    )
    click.echo(f"Schedule: {template.schedule.summary()}")

    for section in sorted(template.sections, key=lambda s: s.order):
        click.echo()
        click.echo(section.title)
        click.echo("-" * 40)
        for question in sorted(section.questions, key=lambda q: q.order):
            marker = "*" if question.required else " "
            hidden = " (conditional)" if question.conditional_parent_id else ""
            click.echo(f" {marker} [{question.id}] {question.text} <{question.type.value}>{hidden}")
            if rules:
                for rule in question.conditional_rules:
                    targets = ", ".join(rule.target_question_ids) or "-"
                    click.echo(
                        f"      if {rule.operator.value} '{rule.effective_value}' "
                        f"-> {rule.action.value} [{targets}]"
                    )


@templates.command()
@click.argument("template_id", type=int)
@async_command
async def versions(template_id: int):
    """Show a template's version history."""
    history = await TemplateRepository().list_versions(template_id)
    if not history:
        echo_info(f"No versions recorded for template {template_id}")
        return

    rows = [
        [
            f"v{v.version}",
            v.created_at.strftime("%Y-%m-%d %H:%M") if v.created_at else "N/A",
            str(v.created_by) if v.created_by is not None else "-",
            v.changes,
        ]
        for v in history
    ]
    click.echo()
    click.echo(format_table(["Version", "Saved", "By", "Changes"], rows))


@templates.command()
@click.argument("template_id", type=int)
@click.argument("output", type=click.Path(dir_okay=False, path_type=Path))
@click.pass_context
@async_command
async def export(ctx, template_id: int, output: Path):
    """Write a template to a JSON file."""
    template = await TemplateRepository().get(template_id)
    if not template:
        echo_error(f"Template ID {template_id} not found")
        ctx.exit(1)
    output.write_text(json.dumps(template.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8")
    echo_success(f"Exported template {template_id} to {output}")
