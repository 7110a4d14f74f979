# src/inkwell/services/post_service.py
"""Post lifecycle: creation, editing, trash, restore, republish and removal.

A post moves between ``draft``, ``under_review`` and ``published`` on its
``status`` axis, and independently in and out of the trash on its
``is_deleted`` axis. :attr:`Post.lifecycle_state` folds both into one tag,
which is what the transition guards below check.
"""

from __future__ import annotations

import logging
from datetime import datetime

from slugify import slugify
from sqlalchemy.orm import Session

from inkwell.db.time import utcnow
from inkwell.models import LifecycleState, Post, PostStatus, User
from inkwell.repositories.post_repo import PostRepository
from inkwell.schemas.common import Page
from inkwell.schemas.post import PostCreate, PostPage, PostResponse, PostUpdate
from inkwell.services.anonymization import resolve_anonymous_sentinel
from inkwell.services.errors import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    ValidationFailedError,
    commit_or_raise,
)
from inkwell.services.permissions import Action, authorize, can

logger = logging.getLogger(__name__)

DUPLICATE_TITLE = "A post with this title already exists"
LIVE_STATES = frozenset(
    {LifecycleState.DRAFT, LifecycleState.UNDER_REVIEW, LifecycleState.PUBLISHED}
)


def make_slug(title: str) -> str:
    """Derive the URL slug for ``title``.

    Raises:
        ValidationFailedError: If the title has no letters or digits to slug
    """
    slug = slugify(title, max_length=200)
    if not slug:
        raise ValidationFailedError("Title must contain letters or digits")
    return slug


def build_search_text(title: str, tags: list[str], blocks: list[dict[str, object]]) -> str:
    """Return the lower-cased text that search matches against."""
    parts = [title, *tags]
    parts.extend(str(block.get("value", "")) for block in blocks)
    return "\n".join(parts).lower()


class PostLifecycleService:
    """Applies lifecycle transitions to posts on behalf of a caller."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.posts = PostRepository(db)

    # Lookups

    def _get(self, post_id: int) -> Post:
        post = self.posts.get_by_id(post_id)
        if post is None:
            raise NotFoundError("Post not found")
        return post

    def _commit(self, post: Post, context: str, conflict: str | None = None) -> Post:
        commit_or_raise(self.db, context, conflict)
        self.db.refresh(post)
        return post

    def get_post(self, caller: User | None, post_id: int, *, count_view: bool = True) -> Post:
        """Return a post, hiding trashed ones from everyone but admins.

        Reading a live post bumps its view counter.
        """
        post = self._get(post_id)
        if post.is_deleted:
            if not can(caller, Action.VIEW_DELETED_POST, post):
                raise NotFoundError("Post not found")
            return post
        if count_view:
            self.posts.increment_views(post.id)
            self._commit(post, "recording a view")
        return post

    # Creation and editing

    def create(self, caller: User, data: PostCreate) -> Post:
        """Create a post in ``draft`` or ``published`` status.

        Raises:
            ForbiddenError: If the caller cannot write posts
            ConflictError: If another post already derives the same slug
        """
        authorize(caller, Action.CREATE_POST)
        slug = make_slug(data.title)
        if self.posts.slug_taken(slug):
            raise ConflictError(DUPLICATE_TITLE)

        blocks = [block.model_dump(mode="json") for block in data.content_blocks]
        post = self.posts.create(
            slug=slug,
            title=data.title,
            category=data.category,
            tags=list(data.tags),
            content_blocks=blocks,
            cover_image=data.cover_image,
            search_text=build_search_text(data.title, data.tags, blocks),
            status=data.status.value,
            author_id=caller.id,
        )
        self._commit(post, "creating a post", conflict=DUPLICATE_TITLE)
        logger.info("Post %s created by user %s as %s", post.id, caller.id, post.status)
        return post

    def update(self, caller: User, post_id: int, data: PostUpdate) -> Post:
        """Apply the provided fields; a new title also gets a new slug."""
        post = self._get(post_id)
        authorize(caller, Action.UPDATE_POST, post)
        if post.is_deleted:
            raise InvalidTransitionError("Restore the post before editing it")

        changes = data.model_dump(exclude_unset=True, mode="json")
        if changes.get("title") is not None:
            slug = make_slug(changes["title"])
            if self.posts.slug_taken(slug, exclude_id=post.id):
                raise ConflictError(DUPLICATE_TITLE)
            post.title = changes["title"]
            post.slug = slug
        if changes.get("content_blocks") is not None:
            post.content_blocks = changes["content_blocks"]
        if changes.get("category") is not None:
            post.category = changes["category"]
        if changes.get("tags") is not None:
            post.tags = changes["tags"]
        if "cover_image" in changes:
            post.cover_image = changes["cover_image"]
        if changes.get("status") is not None and changes["status"] != post.status:
            if post.status == PostStatus.UNDER_REVIEW.value and not caller.is_admin:
                raise InvalidTransitionError("Post is awaiting admin review")
            post.status = changes["status"]

        post.search_text = build_search_text(post.title, post.tags, post.content_blocks)
        return self._commit(post, "updating a post", conflict=DUPLICATE_TITLE)

    # Trash and restore

    @staticmethod
    def _mark_trashed(post: Post, caller: User, now: datetime) -> None:
        post.is_deleted = True
        post.deleted_at = now
        post.deleted_by_id = caller.id

    @staticmethod
    def _mark_restored(post: Post, caller: User, now: datetime, status: PostStatus) -> None:
        post.is_deleted = False
        post.deleted_at = None
        post.deleted_by_id = None
        post.restored_by_id = caller.id
        post.restored_at = now
        post.status = status.value

    def trash(self, caller: User, post_id: int) -> Post:
        """Soft-delete a post, leaving its status for a later restore."""
        post = self._get(post_id)
        authorize(caller, Action.TRASH_POST, post)
        if post.lifecycle_state not in LIVE_STATES:
            raise InvalidTransitionError("Post is already in trash")

        self._mark_trashed(post, caller, utcnow())
        self._commit(post, "trashing a post")
        logger.info("Post %s trashed by user %s", post.id, caller.id)
        return post

    def author_restore(self, caller: User, post_id: int) -> Post:
        """Bring the caller's own post back from the trash as a draft."""
        post = self._get(post_id)
        authorize(caller, Action.AUTHOR_RESTORE, post)
        if post.lifecycle_state is not LifecycleState.TRASHED:
            raise InvalidTransitionError("Post is not in trash")

        self._mark_restored(post, caller, utcnow(), PostStatus.DRAFT)
        self._commit(post, "restoring a post")
        logger.info("Post %s restored to draft by its author %s", post.id, caller.id)
        return post

    def admin_restore(self, caller: User, post_id: int) -> Post:
        """Bring any trashed post back, gated behind review.

        An anonymized post keeps its ``original_author_id`` so a later
        republish can hand ownership back.
        """
        authorize(caller, Action.ADMIN_RESTORE)
        post = self._get(post_id)
        if post.lifecycle_state in LIVE_STATES:
            raise InvalidTransitionError("Post is not in trash")

        self._mark_restored(post, caller, utcnow(), PostStatus.UNDER_REVIEW)
        post.is_user_deleted_permanently = False
        self._commit(post, "restoring a post")
        logger.info("Post %s restored to review by admin %s", post.id, caller.id)
        return post

    def republish(self, caller: User, post_id: int, give_back_ownership: bool) -> Post:
        """Publish a post awaiting review, optionally returning it to its author."""
        authorize(caller, Action.REPUBLISH)
        post = self._get(post_id)
        if post.lifecycle_state is not LifecycleState.UNDER_REVIEW:
            raise InvalidTransitionError("Only posts under review can be republished")

        post.status = PostStatus.PUBLISHED.value
        if give_back_ownership and post.original_author_id is not None:
            post.author_id = post.original_author_id
            post.original_author_id = None
            logger.info("Post %s ownership returned to user %s", post.id, post.author_id)
        self._commit(post, "republishing a post")
        logger.info("Post %s republished by admin %s", post.id, caller.id)
        return post

    # Permanent removal

    def user_permanent_delete(self, caller: User, post_id: int) -> Post:
        """Detach a post from its author by handing it to the anonymous user.

        The trash step is committed on its own first, so if anonymization
        fails the post is still left in the trash.
        """
        post = self._get(post_id)
        authorize(caller, Action.USER_PERMANENT_DELETE, post)
        if post.lifecycle_state is LifecycleState.ANONYMIZED_TRASHED:
            return post

        if not post.is_deleted:
            self._mark_trashed(post, caller, utcnow())
            self._commit(post, "trashing a post")
            logger.info("Post %s trashed ahead of permanent delete", post.id)

        sentinel = resolve_anonymous_sentinel(self.db)
        post.original_author_id = post.author_id
        post.author_id = sentinel.id
        post.is_user_deleted_permanently = True
        self._commit(post, "anonymizing a post")
        logger.info("Post %s anonymized; original author %s", post.id, post.original_author_id)
        return post

    def admin_erase(self, caller: User, post_id: int) -> None:
        """Remove a post and everything hanging off it for good."""
        authorize(caller, Action.ADMIN_PERMANENT_DELETE)
        post = self._get(post_id)
        self.posts.erase(post)
        commit_or_raise(self.db, "erasing a post")
        logger.info("Post %s erased by admin %s", post_id, caller.id)

    # Likes

    def toggle_like(self, caller: User, post_id: int) -> tuple[bool, int]:
        """Flip the caller's like on a live post.

        Returns:
            Whether the caller now likes the post, and the new like count
        """
        authorize(caller, Action.LIKE_POST)
        post = self._get(post_id)
        if post.is_deleted:
            raise NotFoundError("Post not found")
        liked = self.posts.toggle_like(post.id, caller.id)
        commit_or_raise(self.db, "toggling a like")
        return liked, self.posts.like_count(post.id)

    # Listings

    def list_published(self, page: int, limit: int) -> tuple[list[Post], int]:
        """Return live published posts, newest first."""
        return self.posts.list_published(page, limit)

    def search(self, term: str, page: int, limit: int) -> tuple[list[Post], int]:
        """Return live posts matching ``term`` in title, tags or content."""
        if not term or not term.strip():
            raise ValidationFailedError("Search query is required")
        return self.posts.search(term.strip().lower(), page, limit)

    def list_mine(self, caller: User, page: int, limit: int) -> tuple[list[Post], int]:
        """Return the caller's live posts in any status."""
        return self.posts.list_by_author(caller.id, page, limit)

    def list_my_trash(self, caller: User) -> list[Post]:
        """Return the caller's trashed posts."""
        authorize(caller, Action.VIEW_TRASH)
        return self.posts.list_trashed(author_id=caller.id)

    def list_all_trash(self, caller: User) -> list[Post]:
        """Return every trashed post."""
        authorize(caller, Action.VIEW_DELETED_POST)
        return self.posts.list_trashed()

    def list_under_review(self, caller: User) -> list[Post]:
        """Return live posts waiting for an admin to republish them."""
        authorize(caller, Action.REVIEW_POSTS)
        return self.posts.list_by_status(PostStatus.UNDER_REVIEW)

    def used_image_urls(self, caller: User) -> set[str]:
        """Return every image URL a post still references."""
        authorize(caller, Action.AUDIT_IMAGES)
        return self.posts.used_image_urls()

    # Views

    def describe(self, post: Post) -> PostResponse:
        """Return the API view of one post, with its likes."""
        likes = self.posts.liked_user_ids(post.id)
        response = PostResponse.model_validate(post)
        return response.model_copy(update={"likes": likes, "likes_count": len(likes)})

    def describe_many(self, posts: list[Post]) -> list[PostResponse]:
        """Return API views for a listing, with like counts only."""
        counts = self.posts.like_counts(post.id for post in posts)
        return [
            PostResponse.model_validate(post).model_copy(
                update={"likes_count": counts.get(post.id, 0)}
            )
            for post in posts
        ]

    def page(self, posts: list[Post], total: int, page: int, limit: int) -> PostPage:
        """Wrap one page of posts with its pagination metadata."""
        return PostPage(posts=self.describe_many(posts), **Page.meta(total, page, limit))
