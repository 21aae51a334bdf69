"""Web API for brigade."""

from .app import create_app

__all__ = ["create_app"]
