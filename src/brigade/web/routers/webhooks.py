"""Inbound webhook routes."""

import structlog
from fastapi import APIRouter, Body, Request

from ...services.notion_sync import NotionSync

logger = structlog.get_logger()

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@router.post("/database-change")
async def database_change(request: Request, payload: dict = Body(...)):
    """Mirror profile and sector changes into Notion.

    Expects `{type, table, record, old_record}`.
    """
    logger.info("database_change", type=payload.get("type"), table=payload.get("table"))
    return await NotionSync(request.app.state.db_path).handle_change_event(payload)
