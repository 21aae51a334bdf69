"""Translation between local records and Notion page properties.

Property names are those of the restaurant's Notion workspace and must
match it exactly.
"""

from datetime import date
from typing import Any

from ...models.action_plan import ActionPlan, ActionPlanStatus, CostType
from ...models.gamification import Profile, Sector

# Action plans database
PROP_TITLE = "Tarefa ou Problema"
PROP_BENEFIT = "Qual o benefício de solucionar?"
PROP_STEPS = "Qual o passo a passo básico?"
PROP_DUE_DATE = "Qual o prazo final?"
PROP_COST_TYPE = "Vai custar dinheiro ou só tempo?"
PROP_XP = "XP Concedido"
PROP_STATUS = "Status"
PROP_LOCAL_ID = "Supabase_ID"
PROP_CHECKLIST_ID = "Checklist_ID"
PROP_SECTOR = "Em que setor?"
PROP_ASSIGNEE = "Quem vai resolver?"
PROP_PHOTO = "Foto"
PROP_FILE = "Arquivo"
PROP_CLOSING_COMMENT = "Comentário de Finalização"
PROP_SATISFACTION = "Satisfação"

# Users and sectors databases
PROP_NAME = "Nome"
PROP_ACTIVE = "Ativo"

STATUS_TO_NOTION = {
    ActionPlanStatus.PENDING: "Pendente",
    ActionPlanStatus.IN_PROGRESS: "Em andamento",
    ActionPlanStatus.RESOLVED: "Resolvido",
    ActionPlanStatus.CANCELED: "Cancelado",
}
STATUS_FROM_NOTION = {v: k for k, v in STATUS_TO_NOTION.items()}

COST_TO_NOTION = {
    CostType.MONEY: "Dinheiro",
    CostType.TIME_ONLY: "Apenas Tempo",
}

UNTITLED = "Untitled"


def title(text: str) -> dict:
    return {"title": [{"text": {"content": text}}]}


def rich_text(text: str) -> dict:
    return {"rich_text": [{"text": {"content": text}}]}


def select(name: str) -> dict:
    return {"select": {"name": name}}


def relation(*page_ids: str) -> dict:
    return {"relation": [{"id": page_id} for page_id in page_ids]}


def _plain(prop: dict | None, kind: str) -> str:
    if not prop:
        return ""
    parts = prop.get(kind) or []
    if not parts:
        return ""
    first = parts[0]
    return first.get("plain_text") or first.get("text", {}).get("content", "")


def parse_local_id(text: str) -> int | None:
    """Local ids are integers; anything else is treated as missing."""
    text = (text or "").strip()
    return int(text) if text.isdigit() else None


def action_plan_properties(
    plan: ActionPlan,
    assignee_page_id: str | None = None,
    sector_page_id: str | None = None,
) -> dict:
    """Properties for creating an action plan page."""
    props: dict[str, Any] = {
        PROP_TITLE: title(plan.title),
        PROP_STATUS: select(STATUS_TO_NOTION[plan.status]),
        PROP_LOCAL_ID: rich_text(str(plan.id) if plan.id is not None else ""),
        PROP_COST_TYPE: select(COST_TO_NOTION[plan.cost_type]),
    }
    if plan.description:
        props[PROP_BENEFIT] = rich_text(plan.description)
    if plan.step_by_step:
        props[PROP_STEPS] = rich_text(plan.step_by_step)
    if plan.due_date:
        props[PROP_DUE_DATE] = {"date": {"start": plan.due_date.isoformat()}}
    if assignee_page_id:
        props[PROP_ASSIGNEE] = relation(assignee_page_id)
    if sector_page_id:
        props[PROP_SECTOR] = relation(sector_page_id)
    if plan.checklist_response_id is not None:
        props[PROP_CHECKLIST_ID] = rich_text(str(plan.checklist_response_id))
    return props


def status_properties(plan: ActionPlan) -> dict:
    """Properties for a status change, including closing evidence if set."""
    props: dict[str, Any] = {PROP_STATUS: select(STATUS_TO_NOTION[plan.status])}
    if plan.photo_url:
        props[PROP_PHOTO] = {"url": plan.photo_url}
    if plan.file_url:
        props[PROP_FILE] = {"url": plan.file_url}
    if plan.closing_comment:
        props[PROP_CLOSING_COMMENT] = rich_text(plan.closing_comment)
    if plan.satisfaction_rating:
        props[PROP_SATISFACTION] = {"number": plan.satisfaction_rating}
    return props


def xp_properties(xp: int) -> dict:
    return {PROP_XP: {"number": xp}}


def local_id_properties(local_id: int) -> dict:
    return {PROP_LOCAL_ID: rich_text(str(local_id))}


def page_to_action_plan_fields(page: dict) -> dict:
    """Extract action plan fields from an action plan page.

    Returns a dict with the plan fields plus `local_id`,
    `sector_page_id` and `notion_page_id`.
    """
    props = page.get("properties", {})

    due = (props.get(PROP_DUE_DATE) or {}).get("date") or {}
    cost_name = ((props.get(PROP_COST_TYPE) or {}).get("select") or {}).get("name")
    status_name = ((props.get(PROP_STATUS) or {}).get("select") or {}).get("name")
    sector_relation = (props.get(PROP_SECTOR) or {}).get("relation") or []
    xp = (props.get(PROP_XP) or {}).get("number")
    satisfaction = (props.get(PROP_SATISFACTION) or {}).get("number")

    return {
        "title": _plain(props.get(PROP_TITLE), "title") or UNTITLED,
        "description": _plain(props.get(PROP_BENEFIT), "rich_text"),
        "step_by_step": _plain(props.get(PROP_STEPS), "rich_text"),
        "due_date": date.fromisoformat(due["start"][:10]) if due.get("start") else None,
        "cost_type": CostType.MONEY if cost_name == COST_TO_NOTION[CostType.MONEY]
        else CostType.TIME_ONLY,
        "status": STATUS_FROM_NOTION.get(status_name, ActionPlanStatus.PENDING),
        "awarded_xp": int(xp) if xp else 0,
        "checklist_response_id": parse_local_id(
            _plain(props.get(PROP_CHECKLIST_ID), "rich_text")
        ),
        "photo_url": (props.get(PROP_PHOTO) or {}).get("url"),
        "file_url": (props.get(PROP_FILE) or {}).get("url"),
        "closing_comment": _plain(props.get(PROP_CLOSING_COMMENT), "rich_text") or None,
        "satisfaction_rating": int(satisfaction) if satisfaction else None,
        "local_id": parse_local_id(_plain(props.get(PROP_LOCAL_ID), "rich_text")),
        "sector_page_id": sector_relation[0]["id"] if sector_relation else None,
        "notion_page_id": page.get("id"),
    }


def member_properties(record: Profile | Sector) -> dict:
    """Properties for a users or sectors database row."""
    return {
        PROP_NAME: title(record.name),
        PROP_LOCAL_ID: rich_text(str(record.id)),
        PROP_ACTIVE: {"checkbox": record.is_active},
    }


def assigned_to_filter(assignee_page_id: str, edited_since: str | None = None) -> dict:
    """Filter for plans assigned to a user, optionally edited since a timestamp."""
    conditions: list[dict] = [
        {"property": PROP_ASSIGNEE, "relation": {"contains": assignee_page_id}},
    ]
    if edited_since:
        conditions.append(
            {"timestamp": "last_edited_time", "last_edited_time": {"on_or_after": edited_since}}
        )
    return {"and": conditions}


def local_id_filter(local_id: int) -> dict:
    return {"property": PROP_LOCAL_ID, "rich_text": {"equals": str(local_id)}}


LAST_EDITED_DESC = [{"timestamp": "last_edited_time", "direction": "descending"}]
