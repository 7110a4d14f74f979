"""Data access helpers for working with posts."""
from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import ColumnElement, delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from inkwell.models.comment import Comment, CommentLike, CommentReport
from inkwell.models.post import Post, PostLike, PostStatus, referenced_images

__all__ = ["PostRepository", "escape_like"]


def escape_like(term: str) -> str:
    """Escape LIKE wildcards so user input matches literally."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class PostRepository:
    """Thin wrapper around database access for post entities."""

    def __init__(self, session: Session) -> None:
        """Initialize the repository with a SQLAlchemy session."""
        self.session = session

    def get_by_id(self, post_id: int) -> Post | None:
        """Return a post by identifier, trashed or not."""
        return self.session.get(Post, post_id)

    def slug_taken(self, slug: str, exclude_id: int | None = None) -> bool:
        """Return True if another post already uses ``slug``."""
        stmt = select(Post.id).where(Post.slug == slug)
        if exclude_id is not None:
            stmt = stmt.where(Post.id != exclude_id)
        return self.session.execute(stmt.limit(1)).first() is not None

    def create(self, **fields: object) -> Post:
        """Insert a new post and flush so the id is assigned."""
        post = Post(**fields)
        self.session.add(post)
        self.session.flush()
        return post

    def _page(
        self,
        *conditions: ColumnElement[bool],
        page: int,
        limit: int,
        order_by: Iterable[ColumnElement[object]] | None = None,
    ) -> tuple[list[Post], int]:
        total = self.session.execute(
            select(func.count()).select_from(Post).where(*conditions)
        ).scalar_one()
        ordering = list(order_by) if order_by else [Post.created_at.desc(), Post.id.desc()]
        result = self.session.execute(
            select(Post)
            .where(*conditions)
            .order_by(*ordering)
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().unique()), total

    def list_published(self, page: int, limit: int) -> tuple[list[Post], int]:
        """Return live published posts, newest first."""
        return self._page(
            Post.is_deleted.is_(False),
            Post.status == PostStatus.PUBLISHED.value,
            page=page,
            limit=limit,
        )

    def search(self, term: str, page: int, limit: int) -> tuple[list[Post], int]:
        """Return live posts whose title, tags or content match ``term``."""
        pattern = f"%{escape_like(term.strip())}%"
        return self._page(
            Post.is_deleted.is_(False),
            Post.search_text.ilike(pattern, escape="\\"),
            page=page,
            limit=limit,
        )

    def list_by_author(self, author_id: int, page: int, limit: int) -> tuple[list[Post], int]:
        """Return an author's live posts in any status."""
        return self._page(
            Post.is_deleted.is_(False),
            Post.author_id == author_id,
            page=page,
            limit=limit,
        )

    def list_by_status(self, status: PostStatus) -> list[Post]:
        """Return live posts in ``status``, most recently touched first."""
        result = self.session.execute(
            select(Post)
            .where(Post.is_deleted.is_(False), Post.status == status.value)
            .order_by(Post.updated_at.desc(), Post.id.desc())
        )
        return list(result.scalars().unique())

    def list_trashed(self, author_id: int | None = None) -> list[Post]:
        """Return trashed posts, most recently deleted first."""
        stmt = select(Post).where(Post.is_deleted.is_(True))
        if author_id is not None:
            stmt = stmt.where(Post.author_id == author_id)
        result = self.session.execute(
            stmt.order_by(Post.deleted_at.desc(), Post.id.desc())
        )
        return list(result.scalars().unique())

    def increment_views(self, post_id: int) -> None:
        """Atomically bump the view counter."""
        self.session.execute(
            update(Post)
            .where(Post.id == post_id)
            .values(views_count=Post.views_count + 1)
            .execution_options(synchronize_session=False)
        )

    def toggle_like(self, post_id: int, user_id: int) -> bool:
        """Add or remove ``user_id`` in the post's like set.

        Removal is a conditional delete and addition an insert guarded by the
        composite primary key, so concurrent togglers never lose updates.

        Returns:
            True if the user now likes the post, False if the like was removed.
        """
        removed = self.session.execute(
            delete(PostLike).where(PostLike.post_id == post_id, PostLike.user_id == user_id)
        )
        if removed.rowcount:
            return False
        try:
            with self.session.begin_nested():
                self.session.add(PostLike(post_id=post_id, user_id=user_id))
        except IntegrityError:
            # A concurrent request from the same user inserted the like first.
            return True
        return True

    def like_count(self, post_id: int) -> int:
        """Return the size of the post's like set."""
        return self.session.execute(
            select(func.count()).select_from(PostLike).where(PostLike.post_id == post_id)
        ).scalar_one()

    def like_counts(self, post_ids: Iterable[int]) -> dict[int, int]:
        """Return like counts keyed by post id; posts without likes are absent."""
        ids = list(post_ids)
        if not ids:
            return {}
        result = self.session.execute(
            select(PostLike.post_id, func.count())
            .where(PostLike.post_id.in_(ids))
            .group_by(PostLike.post_id)
        )
        return {post_id: count for post_id, count in result}

    def liked_user_ids(self, post_id: int) -> list[int]:
        """Return the ids of users who like the post."""
        result = self.session.execute(
            select(PostLike.user_id).where(PostLike.post_id == post_id).order_by(PostLike.user_id)
        )
        return list(result.scalars())

    def erase(self, post: Post) -> None:
        """Delete a post with its comments, likes and reports."""
        comment_ids = select(Comment.id).where(Comment.post_id == post.id)
        self.session.execute(
            delete(CommentLike).where(CommentLike.comment_id.in_(comment_ids))
        )
        self.session.execute(
            delete(CommentReport).where(CommentReport.comment_id.in_(comment_ids))
        )
        self.session.execute(
            delete(Comment)
            .where(Comment.post_id == post.id)
            .execution_options(synchronize_session=False)
        )
        self.session.execute(delete(PostLike).where(PostLike.post_id == post.id))
        self.session.delete(post)
        self.session.flush()

    def used_image_urls(self) -> set[str]:
        """Return every image URL referenced by any post, trashed ones included."""
        urls: set[str] = set()
        result = self.session.execute(select(Post.cover_image, Post.content_blocks))
        for cover_image, blocks in result:
            urls |= referenced_images(cover_image, blocks)
        return urls
