# src/inkwell/services/__init__.py
"""Business logic services for the Inkwell application."""

from .comment_service import CommentTreeService
from .identity import IdentityService
from .image_sweep import ImageSweepWorker
from .media import MediaStore
from .post_service import PostLifecycleService

__all__ = [
    "CommentTreeService",
    "IdentityService",
    "ImageSweepWorker",
    "MediaStore",
    "PostLifecycleService",
]
