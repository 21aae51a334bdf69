"""Checklist template routes."""

from datetime import date

from fastapi import APIRouter, Body, Request

from ...db.repositories import TemplateRepository
from ...errors import TemplateValidationError
from ...models.template import ChecklistTemplate
from ...services.schedule import upcoming

router = APIRouter(prefix="/templates", tags=["templates"])


def get_db(request: Request):
    """Get the database path from app state."""
    return request.app.state.db_path


def _summary(template: ChecklistTemplate) -> dict:
    return {
        "id": template.id,
        "title": template.title,
        "category": template.category,
        "difficulty": template.difficulty.value,
        "estimated_minutes": template.estimated_minutes,
        "current_version": template.current_version,
        "is_published": template.is_published,
        "schedule": template.schedule.summary(),
    }


@router.get("")
async def list_templates(request: Request, published_only: bool = False):
    """List templates."""
    repo = TemplateRepository(get_db(request))
    return {"templates": [_summary(t) for t in await repo.list_all(published_only)]}


@router.post("")
async def create_template(request: Request, payload: dict = Body(...)):
    """Create a template from its JSON definition."""
    repo = TemplateRepository(get_db(request))
    try:
        template = ChecklistTemplate.from_dict(payload)
        template_id = await repo.save(template, created_by=payload.get("created_by"))
    except TemplateValidationError as e:
        return {"error": str(e)}
    except (KeyError, ValueError) as e:
        return {"error": f"Invalid template: {e}"}
    return {"id": template_id, "version": template.current_version}


@router.get("/{template_id}")
async def get_template(request: Request, template_id: int):
    repo = TemplateRepository(get_db(request))
    template = await repo.get(template_id)
    if not template:
        return {"error": "Template not found"}
    return {"id": template.id, "current_version": template.current_version, **template.to_dict()}


@router.put("/{template_id}")
async def update_template(request: Request, template_id: int, payload: dict = Body(...)):
    """Replace a template definition, recording a new version."""
    repo = TemplateRepository(get_db(request))
    existing = await repo.get(template_id)
    if not existing:
        return {"error": "Template not found"}
    try:
        template = ChecklistTemplate.from_dict(payload, id=template_id)
        await repo.save(template, created_by=payload.get("created_by"))
    except TemplateValidationError as e:
        return {"error": str(e)}
    except (KeyError, ValueError) as e:
        return {"error": f"Invalid template: {e}"}
    return {"id": template_id, "version": template.current_version}


@router.get("/{template_id}/versions")
async def list_versions(request: Request, template_id: int):
    repo = TemplateRepository(get_db(request))
    versions = await repo.list_versions(template_id)
    return {
        "versions": [
            {k: v for k, v in version.to_dict().items() if k != "sections"}
            for version in versions
        ]
    }


@router.get("/{template_id}/schedule")
async def template_schedule(request: Request, template_id: int, days: int = 14):
    """Upcoming due dates for a template."""
    repo = TemplateRepository(get_db(request))
    template = await repo.get(template_id)
    if not template:
        return {"error": "Template not found"}
    return {
        "summary": template.schedule.summary(),
        "upcoming": [d.to_dict() for d in upcoming([template], date.today(), days)],
    }
