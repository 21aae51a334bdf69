"""Outbound automation webhooks (n8n)."""

import logging
from datetime import datetime, timezone
from typing import Any

import httpx

from ..config import WebhookConfig, get_config

logger = logging.getLogger(__name__)

WEBHOOK_PATHS = {
    "onChecklistComplete": "checklist-complete",
    "onActionPlanCreated": "action-plan-created",
    "onSupervisorNotified": "supervisor-notified",
}


class WebhookDispatcher:
    """Posts `{event, timestamp, data}` envelopes to the automation server.

    Delivery is best effort: failures are logged and reported as False.
    """

    def __init__(
        self,
        config: WebhookConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config or get_config().webhooks
        self.transport = transport

    async def trigger(self, event: str, data: dict[str, Any]) -> bool:
        """Send one event. Returns True when the server accepted it."""
        if event not in WEBHOOK_PATHS:
            raise ValueError(f"Unknown webhook event: {event}")
        if not self.config.enabled:
            logger.debug("Webhooks disabled, skipping %s", event)
            return False

        url = f"{self.config.base_url}/{WEBHOOK_PATHS[event]}"
        payload = {
            "event": event,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "data": data,
        }
        try:
            async with httpx.AsyncClient(
                timeout=self.config.timeout, transport=self.transport
            ) as client:
                response = await client.post(url, json=payload)
        except httpx.HTTPError as e:
            logger.error("Webhook %s failed: %s", event, e)
            return False

        if not response.is_success:
            logger.error(
                "Webhook %s rejected: status=%s response=%s",
                event, response.status_code, response.text,
            )
            return False

        logger.info("Webhook %s delivered", event)
        return True

    async def checklist_complete(
        self,
        checklist_id: int,
        template_title: str,
        user_name: str,
        score: int,
        completed_at: datetime,
    ) -> bool:
        return await self.trigger(
            "onChecklistComplete",
            {
                "entry_id": checklist_id,
                "template_title": template_title,
                "user_name": user_name,
                "score": score,
                "completed_at": completed_at.isoformat(),
            },
        )

    async def action_plan_created(
        self, plan_id: int, title: str, description: str, responsible_user: str
    ) -> bool:
        return await self.trigger(
            "onActionPlanCreated",
            {
                "plan_id": plan_id,
                "title": title,
                "description": description,
                "responsible_user": responsible_user,
            },
        )

    async def supervisor_notified(
        self, checklist_id: int, question_text: str, answer: str, user_name: str
    ) -> bool:
        return await self.trigger(
            "onSupervisorNotified",
            {
                "entry_id": checklist_id,
                "question": question_text,
                "answer": answer,
                "user_name": user_name,
            },
        )
