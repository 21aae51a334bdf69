"""Interactive terminal checklist runner."""

from .client import ConsoleChecklistClient

__all__ = ["ConsoleChecklistClient"]
