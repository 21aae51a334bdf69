"""Minimal async client for the Notion REST API."""

import logging
from typing import Any

import httpx

from ...config import NotionConfig, get_config
from ...errors import NotionError

logger = logging.getLogger(__name__)


class NotionClient:
    """Query databases and create or update pages.

    Use as an async context manager so the underlying connection pool is
    closed. Every non-2xx answer raises `NotionError`.
    """

    def __init__(
        self,
        config: NotionConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config or get_config().notion
        if not self.config.api_key:
            raise NotionError("NOTION_API_KEY is not configured")

        self.client = httpx.AsyncClient(
            base_url=self.config.base_url,
            timeout=self.config.timeout,
            transport=transport,
            headers={
                "Authorization": f"Bearer {self.config.api_key}",
                "Notion-Version": self.config.api_version,
                "Content-Type": "application/json",
            },
        )

    async def __aenter__(self) -> "NotionClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        await self.client.aclose()

    async def _request(self, method: str, path: str, payload: dict | None = None) -> dict:
        try:
            response = await self.client.request(method, path, json=payload)
        except httpx.HTTPError as e:
            raise NotionError(f"Notion request failed: {e}") from e

        if response.status_code >= 400:
            try:
                message = response.json().get("message", response.text)
            except ValueError:
                message = response.text
            logger.warning(
                "Notion %s %s failed: status=%s message=%s",
                method, path, response.status_code, message,
            )
            raise NotionError(message, status_code=response.status_code)
        return response.json()

    async def query_database(
        self,
        database_id: str,
        filter: dict | None = None,
        sorts: list[dict] | None = None,
        page_size: int = 100,
    ) -> list[dict[str, Any]]:
        """Return every page matching the filter, following pagination."""
        payload: dict[str, Any] = {"page_size": page_size}
        if filter:
            payload["filter"] = filter
        if sorts:
            payload["sorts"] = sorts

        results: list[dict[str, Any]] = []
        while True:
            data = await self._request("POST", f"/databases/{database_id}/query", payload)
            results.extend(data.get("results", []))
            if not data.get("has_more") or not data.get("next_cursor"):
                break
            payload["start_cursor"] = data["next_cursor"]

        logger.debug("Queried Notion database %s: %d page(s)", database_id, len(results))
        return results

    async def create_page(self, database_id: str, properties: dict) -> dict:
        return await self._request(
            "POST",
            "/pages",
            {"parent": {"database_id": database_id}, "properties": properties},
        )

    async def update_page(self, page_id: str, properties: dict) -> dict:
        return await self._request("PATCH", f"/pages/{page_id}", {"properties": properties})
