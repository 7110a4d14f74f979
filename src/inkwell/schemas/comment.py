"""Comment-related Pydantic schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from inkwell.schemas.common import Page
from inkwell.schemas.user import UserSummary


class CommentCreate(BaseModel):
    """Schema for a new comment or reply."""

    content: str = Field(..., min_length=1, max_length=1000)

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: str) -> str:
        """Reject whitespace-only comments."""
        v = v.strip()
        if not v:
            raise ValueError("Comment content is required")
        return v


class CommentUpdate(CommentCreate):
    """Schema for editing a comment."""


class CommentResponse(BaseModel):
    """A single comment without its replies."""

    id: int
    post_id: int
    user_id: int
    user: UserSummary | None = None
    content: str
    parent_comment_id: int | None
    is_hidden: bool
    is_approved: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CommentNode(CommentResponse):
    """Comment decorated for display, with its replies nested beneath it."""

    likes: list[int] = Field(default_factory=list)
    likes_count: int = 0
    time_ago: str
    reply_count: int = 0
    is_owner: bool = False
    can_edit: bool = False
    replies: list[CommentNode] = Field(default_factory=list)


CommentNode.model_rebuild()


class CommentPage(Page):
    """One page of top-level comments with their full reply trees."""

    comments: list[CommentNode]


class CommentLikeResponse(BaseModel):
    """Result of a comment like toggle."""

    liked: bool
    likes_count: int


class ReportResponse(BaseModel):
    """Result of reporting a comment."""

    reports_count: int
    is_hidden: bool
