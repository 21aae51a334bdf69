"""CLI commands for brigade."""

from .checklists import checklists
from .duels import duels
from .init import init
from .plans import plans
from .profile import profile
from .run import run
from .schedule import schedule
from .serve import serve
from .templates import templates

__all__ = [
    "checklists",
    "duels",
    "init",
    "plans",
    "profile",
    "run",
    "schedule",
    "serve",
    "templates",
]
