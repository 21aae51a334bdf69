"""brigade: gamified restaurant checklists with Notion action-plan sync."""

__version__ = "0.1.0"
