# src/inkwell/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import (
    admin_router,
    auth_router,
    comments_router,
    posts_router,
    uploads_router,
    users_router,
)

__all__ = [
    "admin_router",
    "auth_router",
    "comments_router",
    "posts_router",
    "uploads_router",
    "users_router",
]
