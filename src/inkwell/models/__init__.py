# src/inkwell/models/__init__.py
"""SQLAlchemy models for the Inkwell application."""

from .comment import Comment, CommentLike, CommentReport
from .post import BlockKind, LifecycleState, Post, PostLike, PostStatus
from .user import User, UserRole

__all__ = [
    "Comment", "CommentLike", "CommentReport",
    "BlockKind", "LifecycleState", "Post", "PostLike", "PostStatus",
    "User", "UserRole",
]
