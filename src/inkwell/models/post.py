# src/inkwell/models/post.py
"""SQLAlchemy models for posts and their likes."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from inkwell.db.session import Base
from inkwell.db.time import utcnow
from inkwell.models.user import User


class PostStatus(str, Enum):
    """Publication status, independent of the trash flags."""

    DRAFT = "draft"
    UNDER_REVIEW = "under_review"
    PUBLISHED = "published"


class BlockKind(str, Enum):
    """Kinds of content block a post body is made of."""

    TEXT = "text"
    IMAGE = "image"
    HEADING = "heading"


class LifecycleState(str, Enum):
    """Single tag combining status with the deletion flags."""

    DRAFT = "draft"
    UNDER_REVIEW = "under_review"
    PUBLISHED = "published"
    TRASHED = "trashed"
    ANONYMIZED_TRASHED = "anonymized_trashed"


class Post(Base):
    """Authored article with a soft-delete lifecycle.

    ``status`` and ``is_deleted`` are separate axes: trashing a post leaves its
    status untouched so a restore knows what it was. Permanent removal by the
    author swaps ``author_id`` for the anonymous sentinel and keeps the real
    author in ``original_author_id``.
    """

    __tablename__ = "posts"
    __table_args__ = (
        Index("ix_posts_status_deleted", "status", "is_deleted"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # Derived from the title; recomputed on every title change.
    slug: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False, default="Uncategorized")
    tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    # Ordered list of {"type": <BlockKind>, "value": <str>}.
    content_blocks: Mapped[list[dict[str, Any]]] = mapped_column(
        JSON, nullable=False, default=list
    )
    cover_image: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Lower-cased title, tags and block values; what search matches against.
    search_text: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PostStatus.DRAFT.value, index=True
    )
    views_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    author_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False, index=True
    )

    # Soft delete
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    deleted_by_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=True
    )

    # Restore tracking
    restored_by_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=True
    )
    restored_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Author-initiated permanent delete
    is_user_deleted_permanently: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    original_author_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    author: Mapped[User] = relationship("User", foreign_keys=[author_id], lazy="joined")

    @property
    def lifecycle_state(self) -> LifecycleState:
        """Collapse status and deletion flags into one state tag."""
        if self.is_deleted:
            if self.is_user_deleted_permanently:
                return LifecycleState.ANONYMIZED_TRASHED
            return LifecycleState.TRASHED
        return LifecycleState(self.status)


def referenced_images(
    cover_image: str | None, content_blocks: list[dict[str, Any]] | None
) -> set[str]:
    """Return the image URLs a post's cover and image blocks point at."""
    urls = {
        block["value"]
        for block in content_blocks or []
        if block.get("type") == BlockKind.IMAGE.value and block.get("value")
    }
    if cover_image:
        urls.add(cover_image)
    return urls


class PostLike(Base):
    """One user's like on a post.

    The composite primary key gives the like set its no-duplicates semantics.
    """

    __tablename__ = "post_likes"

    post_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("posts.id", ondelete="CASCADE"),
        primary_key=True,
    )
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )
