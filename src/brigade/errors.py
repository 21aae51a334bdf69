"""Exception types raised by brigade."""


class BrigadeError(Exception):
    """Base class for domain errors."""


class TemplateValidationError(BrigadeError):
    """Raised when a template cannot be saved as given."""


class ChecklistStateError(BrigadeError):
    """Raised when a checklist run is asked to do something out of order."""


class DuelStateError(BrigadeError):
    """Raised when a duel transition is not allowed from its current status."""


class PermissionDenied(BrigadeError):
    """Raised when a profile lacks the role required for an operation."""


class NotionError(BrigadeError):
    """Raised when the Notion API returns an error response."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
