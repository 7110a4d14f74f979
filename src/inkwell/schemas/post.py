# src/inkwell/schemas/post.py
"""Post-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from inkwell.models.post import BlockKind, LifecycleState, PostStatus
from inkwell.schemas.common import Page
from inkwell.schemas.user import UserSummary

# Statuses an author may request directly; under_review is reached via admin restore.
AUTHOR_STATUSES = (PostStatus.DRAFT, PostStatus.PUBLISHED)


class ContentBlock(BaseModel):
    """One block of a post body."""

    type: BlockKind
    value: str = Field(..., min_length=1, max_length=20000)


def _clean_tags(tags: list[str] | None) -> list[str] | None:
    if tags is None:
        return None
    seen: list[str] = []
    for tag in tags:
        tag = tag.strip()
        if tag and tag not in seen:
            seen.append(tag)
    return seen


def _author_status(status: PostStatus | None) -> PostStatus | None:
    if status is not None and status not in AUTHOR_STATUSES:
        raise ValueError("Status must be either draft or published")
    return status


class PostCreate(BaseModel):
    """Schema for creating a new post."""

    title: str = Field(..., min_length=1, max_length=200)
    content_blocks: list[ContentBlock] = Field(..., min_length=1, alias="contentBlocks")
    category: str = Field("Uncategorized", min_length=1, max_length=100)
    tags: list[str] = Field(default_factory=list, max_length=20)
    cover_image: str | None = Field(None, max_length=2048, alias="coverImage")
    status: PostStatus = PostStatus.DRAFT

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("title")
    @classmethod
    def _strip_title(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Title is required")
        return value

    @field_validator("tags")
    @classmethod
    def _tags(cls, value: list[str]) -> list[str]:
        return _clean_tags(value) or []

    @field_validator("status")
    @classmethod
    def _status(cls, value: PostStatus) -> PostStatus:
        return _author_status(value) or PostStatus.DRAFT


class PostUpdate(BaseModel):
    """Partial update; only provided fields change."""

    title: str | None = Field(None, min_length=1, max_length=200)
    content_blocks: list[ContentBlock] | None = Field(
        None, min_length=1, alias="contentBlocks"
    )
    category: str | None = Field(None, min_length=1, max_length=100)
    tags: list[str] | None = Field(None, max_length=20)
    cover_image: str | None = Field(None, max_length=2048, alias="coverImage")
    status: PostStatus | None = None

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("title")
    @classmethod
    def _strip_title(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip()
        if not value:
            raise ValueError("Title must not be blank")
        return value

    @field_validator("tags")
    @classmethod
    def _tags(cls, value: list[str] | None) -> list[str] | None:
        return _clean_tags(value)

    @field_validator("status")
    @classmethod
    def _status(cls, value: PostStatus | None) -> PostStatus | None:
        return _author_status(value)


class RepublishRequest(BaseModel):
    """Admin republish options."""

    give_back_ownership: bool = Field(..., alias="giveBackOwnership")

    model_config = ConfigDict(populate_by_name=True)


class PostResponse(BaseModel):
    """Schema for post information returned by the API."""

    id: int
    slug: str
    title: str
    category: str
    tags: list[str]
    content_blocks: list[ContentBlock]
    cover_image: str | None
    status: PostStatus
    lifecycle_state: LifecycleState
    views_count: int
    likes_count: int = 0
    likes: list[int] = Field(default_factory=list)
    author_id: int
    author: UserSummary | None = None
    is_deleted: bool
    deleted_at: datetime | None
    deleted_by_id: int | None
    restored_by_id: int | None
    restored_at: datetime | None
    is_user_deleted_permanently: bool
    original_author_id: int | None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PostPage(Page):
    """One page of posts."""

    posts: list[PostResponse]


class LikeResponse(BaseModel):
    """Result of a like toggle."""

    liked: bool
    likes_count: int


class UsedImagesResponse(BaseModel):
    """Image URLs currently referenced by posts."""

    urls: list[str]
    count: int
