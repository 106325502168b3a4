"""API endpoint modules for version 1."""

from .credits import router as credits_router
from .issues import router as issues_router
from .notifications import router as notifications_router
from .system import router as system_router
from .votes import router as votes_router

__all__ = [
    "credits_router",
    "votes_router",
    "issues_router",
    "notifications_router",
    "system_router",
]
