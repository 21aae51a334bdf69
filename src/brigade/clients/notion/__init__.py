"""Notion workspace integration."""

from .client import NotionClient

__all__ = ["NotionClient"]
