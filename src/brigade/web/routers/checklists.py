"""Checklist execution routes."""

from datetime import datetime

from fastapi import APIRouter, Body, File, Request, UploadFile
from fastapi.responses import HTMLResponse

from ...config import get_config
from ...db.repositories import (
    ActionPlanRepository,
    ChecklistRepository,
    ProfileRepository,
    TemplateRepository,
)
from ...engine.runner import ChecklistRun
from ...engine.timer import ChecklistTimer
from ...errors import BrigadeError, ChecklistStateError
from ...models.action_plan import CostType
from ...services.completion import CompletionService
from ...services.evidence import EvidenceStore

router = APIRouter(prefix="/checklists", tags=["checklists"])


def get_db(request: Request):
    """Get the database path from app state."""
    return request.app.state.db_path


def get_templates(request: Request):
    """Get templates from app state."""
    return request.app.state.templates


def _question_view(question, photo_required: bool) -> dict:
    return {
        "id": question.id,
        "text": question.text,
        "type": question.type.value,
        "required": question.required,
        "points": question.points,
        "choices": question.choices,
        "help_text": question.help_text,
        "photo_required": photo_required,
    }


def _run_state(run: ChecklistRun) -> dict:
    evaluation = run.evaluate()
    return {
        "visible_questions": [
            _question_view(q, q.id in evaluation.photo_required)
            for q in run.visible_questions()
        ],
        "answered": sorted(run.responses),
        "missing_required": run.missing_required(),
    }


async def _load(request: Request, checklist_id: int):
    checklist = await ChecklistRepository(get_db(request)).get(checklist_id)
    if checklist is None:
        return None, None
    template = await TemplateRepository(get_db(request)).get(checklist.template_id)
    return checklist, template


@router.get("")
async def list_checklists(
    request: Request, user_id: int | None = None, template_id: int | None = None, limit: int = 20
):
    repo = ChecklistRepository(get_db(request))
    checklists = await repo.list_recent(user_id=user_id, template_id=template_id, limit=limit)
    return {"checklists": [{"id": c.id, **c.to_dict()} for c in checklists]}


@router.post("/start")
async def start_checklist(request: Request, payload: dict = Body(...)):
    """Start a checklist, or resume the user's unfinished one."""
    template = await TemplateRepository(get_db(request)).get(payload.get("template_id", 0))
    if not template:
        return {"error": "Template not found"}

    checklist = await ChecklistRepository(get_db(request)).start(
        template.id, payload.get("user_id"), payload.get("sector_id") or template.sector_id
    )
    run = ChecklistRun(template, responses=checklist.responses)
    return {
        "checklist_id": checklist.id,
        "resumed": bool(checklist.responses),
        "template": {"id": template.id, "title": template.title},
        "estimated_minutes": run.estimated_minutes,
        **_run_state(run),
    }


@router.get("/{checklist_id}")
async def get_checklist(request: Request, checklist_id: int):
    checklist, _ = await _load(request, checklist_id)
    if not checklist:
        return {"error": "Checklist not found"}
    return {"id": checklist.id, **checklist.to_dict()}


@router.post("/{checklist_id}/answer")
async def answer_question(request: Request, checklist_id: int, payload: dict = Body(...)):
    """Record one answer and return the updated visibility."""
    checklist, template = await _load(request, checklist_id)
    if not checklist or not template:
        return {"error": "Checklist not found"}
    if not checklist.is_open:
        return {"error": "Checklist is already closed"}

    run = ChecklistRun(template, responses=checklist.responses)
    try:
        result = run.answer(
            payload["question_id"],
            payload.get("value"),
            photo_urls=payload.get("photo_urls"),
            comment=payload.get("comment", ""),
            has_issue=bool(payload.get("has_issue", False)),
        )
    except KeyError:
        return {"error": "question_id is required"}
    except ChecklistStateError as e:
        return {"error": str(e)}

    await ChecklistRepository(get_db(request)).save_responses(
        checklist_id, list(run.responses.values())
    )
    return {
        "question_id": result.question_id,
        "rules_fired": [o.to_dict() for o in result.outcomes],
        **_run_state(run),
    }


@router.post("/{checklist_id}/evidence")
async def upload_evidence(request: Request, checklist_id: int, file: UploadFile = File(...)):
    """Store a photo for a checklist and return its URL."""
    store = EvidenceStore(request.app.state.evidence_dir)
    try:
        url = store.store(f"checklist_{checklist_id}", file.filename or "photo.jpg", await file.read())
    except BrigadeError as e:
        return {"error": str(e)}
    return {"url": url}


@router.post("/{checklist_id}/finish")
async def finish_checklist(request: Request, checklist_id: int, payload: dict = Body(...)):
    """Submit, walk the action-plan queue and sign in one request.

    `action_plans` maps question ids to plan fields; drafts without an
    entry are skipped. `elapsed_seconds` and `had_inactivity_penalty`
    come from the client-side timer.
    """
    checklist, template = await _load(request, checklist_id)
    if not checklist or not template:
        return {"error": "Checklist not found"}
    if not checklist.is_open:
        return {"error": "Checklist is already closed"}

    scoring = get_config().scoring
    estimated = template.estimated_minutes or scoring.default_estimated_minutes
    elapsed = payload.get("elapsed_seconds")
    if elapsed is None and checklist.started_at:
        elapsed = (datetime.now() - checklist.started_at).total_seconds()

    run = ChecklistRun(
        template,
        timer=ChecklistTimer.restore(
            estimated, float(elapsed or 0), bool(payload.get("had_inactivity_penalty", False))
        ),
        include_combo_bonus=scoring.include_combo_bonus,
        responses=checklist.responses,
    )
    plan_fields = payload.get("action_plans") or {}

    try:
        run.submit()
        while run.current_draft is not None:
            fields = plan_fields.get(run.current_draft.question_id)
            if fields is None:
                run.skip_action_plan()
                continue
            run.submit_action_plan(**_plan_kwargs(fields))
        result = run.sign(payload.get("signature", ""))
        summary = await CompletionService(get_db(request)).finish(checklist, template, result)
    except (ChecklistStateError, ValueError) as e:
        return {"error": str(e)}

    return {**summary.to_dict(), "breakdown": result.score.to_dict()}


def _plan_kwargs(fields: dict) -> dict:
    """Action plan fields accepted from the finish form."""
    kwargs = {}
    for key in ("title", "description", "step_by_step", "assignee_id", "sector_id"):
        if fields.get(key) not in (None, ""):
            kwargs[key] = fields[key]
    if fields.get("due_date"):
        kwargs["due_date"] = datetime.fromisoformat(fields["due_date"]).date()
    if fields.get("cost_type"):
        kwargs["cost_type"] = CostType(fields["cost_type"])
    if fields.get("estimated_cost") not in (None, ""):
        kwargs["estimated_cost"] = float(fields["estimated_cost"])
    return kwargs


@router.get("/{checklist_id}/report", response_class=HTMLResponse)
async def checklist_report(request: Request, checklist_id: int):
    """Printable report of a finished checklist."""
    checklist, template = await _load(request, checklist_id)
    if not checklist or not template:
        return HTMLResponse("<h1>Checklist not found</h1>", status_code=404)

    user = None
    if checklist.user_id is not None:
        user = await ProfileRepository(get_db(request)).get(checklist.user_id)
    plans = await ActionPlanRepository(get_db(request)).list_all(checklist_id=checklist.id)
    responses = checklist.response_map()

    sections = []
    for section in sorted(template.sections, key=lambda s: s.order):
        rows = [
            {"question": q, "response": responses.get(q.id)}
            for q in sorted(section.questions, key=lambda q: q.order)
            if q.id in responses
        ]
        if rows:
            sections.append({"section": section, "rows": rows})

    return get_templates(request).TemplateResponse(
        request,
        "report.html",
        {
            "checklist": checklist,
            "template": template,
            "user": user,
            "sections": sections,
            "plans": plans,
            "duration": checklist.get_duration_display(),
        },
    )
