"""Action plan routes."""

from datetime import date, datetime

from fastapi import APIRouter, Body, Request

from ...db.repositories import ActionPlanRepository
from ...errors import BrigadeError, NotionError, PermissionDenied
from ...models.action_plan import ActionPlan, ActionPlanStatus, CostType
from ...services.action_plans import ActionPlanService
from ...services.notion_sync import NotionSync

router = APIRouter(prefix="/action-plans", tags=["action-plans"])


def get_db(request: Request):
    """Get the database path from app state."""
    return request.app.state.db_path


def _view(plan: ActionPlan) -> dict:
    return {"id": plan.id, **plan.to_dict()}


@router.get("")
async def list_plans(
    request: Request, assignee_id: int | None = None, status: str | None = None
):
    repo = ActionPlanRepository(get_db(request))
    try:
        status_filter = ActionPlanStatus(status) if status else None
    except ValueError:
        return {"error": f"Unknown status: {status}"}
    plans = await repo.list_all(assignee_id=assignee_id, status=status_filter)
    return {"action_plans": [_view(p) for p in plans]}


@router.post("")
async def create_plan(request: Request, payload: dict = Body(...)):
    """Create a plan from the action plan form and push it to Notion."""
    try:
        plan = ActionPlan(
            title=payload.get("title", ""),
            description=payload.get("description") or payload.get("benefit") or "",
            step_by_step=payload.get("step_by_step") or "",
            due_date=date.fromisoformat(payload["due_date"]) if payload.get("due_date") else None,
            cost_type=CostType(payload.get("cost_type") or "time_only"),
            estimated_cost=payload.get("estimated_cost"),
            assignee_id=payload.get("assignee_id"),
            sector_id=payload.get("sector_id"),
            checklist_id=payload.get("checklist_id"),
            checklist_response_id=payload.get("checklist_response_id"),
            created_by=payload.get("created_by"),
        )
        await ActionPlanService(get_db(request)).create(plan)
    except (BrigadeError, ValueError) as e:
        return {"error": str(e)}
    return _view(plan)


@router.get("/{plan_id}")
async def get_plan(request: Request, plan_id: int):
    plan = await ActionPlanRepository(get_db(request)).get(plan_id)
    if not plan:
        return {"error": "Action plan not found"}
    return _view(plan)


@router.post("/{plan_id}/status")
async def update_status(request: Request, plan_id: int, payload: dict = Body(...)):
    """Move a plan to a new status with optional closing evidence."""
    try:
        plan = await ActionPlanService(get_db(request)).update_status(
            plan_id,
            ActionPlanStatus(payload.get("status", "")),
            is_returning=bool(payload.get("is_returning", False)),
            photo_url=payload.get("photo_url"),
            file_url=payload.get("file_url"),
            closing_comment=payload.get("closing_comment"),
            satisfaction_rating=payload.get("satisfaction_rating"),
        )
    except (BrigadeError, ValueError) as e:
        return {"error": str(e)}
    return {"success": True, "action_plan": _view(plan)}


@router.post("/{plan_id}/xp")
async def assign_xp(request: Request, plan_id: int, payload: dict = Body(...)):
    """Award XP for a resolved plan (managers only)."""
    try:
        plan = await ActionPlanService(get_db(request)).assign_xp(
            plan_id, int(payload.get("xp", 0)), int(payload.get("awarded_by", 0))
        )
    except PermissionDenied as e:
        return {"error": str(e), "permission_denied": True}
    except (BrigadeError, ValueError) as e:
        return {"error": str(e)}
    return {"success": True, "awarded_xp": plan.awarded_xp}


@router.post("/{plan_id}/push")
async def push_plan(request: Request, plan_id: int):
    """Create the plan's Notion page."""
    try:
        page_id = await ActionPlanService(get_db(request)).push(plan_id)
    except (BrigadeError, NotionError) as e:
        return {"error": str(e)}
    if page_id is None:
        return {"error": "Notion is not configured"}
    return {"success": True, "notion_page_id": page_id}


@router.post("/sync")
async def sync_from_notion(request: Request, payload: dict = Body(...)):
    """Pull a user's action plans from Notion."""
    since = payload.get("since")
    try:
        edited_since = datetime.fromisoformat(since) if since else None
    except ValueError:
        return {"error": f"Invalid timestamp: {since}"}
    return await NotionSync(get_db(request)).sync_from_notion(
        int(payload.get("user_id", 0)), edited_since
    )
