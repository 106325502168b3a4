"""Version 1 API endpoints."""

from .endpoints import (
    credits_router,
    issues_router,
    notifications_router,
    system_router,
    votes_router,
)

__all__ = [
    "credits_router",
    "votes_router",
    "issues_router",
    "notifications_router",
    "system_router",
]
