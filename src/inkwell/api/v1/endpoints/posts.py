# src/inkwell/api/v1/endpoints/posts.py
"""Post-related endpoints for the Inkwell API."""

from fastapi import APIRouter, Query, status

from inkwell.api.v1.dependencies import CurrentUserDep, OptionalUserDep, SessionDep
from inkwell.core.settings import settings
from inkwell.schemas.post import (
    LikeResponse,
    PostCreate,
    PostPage,
    PostResponse,
    PostUpdate,
    UsedImagesResponse,
)
from inkwell.services.post_service import PostLifecycleService

router = APIRouter(prefix="/posts", tags=["posts"])

PageQuery = Query(1, ge=1, description="Page number, starting at 1")
LimitQuery = Query(
    settings.posts_page_size,
    ge=1,
    le=settings.posts_page_max,
    description="Maximum number of posts to return",
)


@router.get("/", response_model=PostPage)
async def list_posts(
    db: SessionDep,
    page: int = PageQuery,
    limit: int = LimitQuery,
) -> PostPage:
    """List published posts, newest first."""
    service = PostLifecycleService(db)
    posts, total = service.list_published(page, limit)
    return service.page(posts, total, page, limit)


@router.get("/search", response_model=PostPage)
async def search_posts(
    db: SessionDep,
    q: str = Query("", max_length=200, description="Text to look for"),
    page: int = PageQuery,
    limit: int = LimitQuery,
) -> PostPage:
    """Search live posts by title, tags and content.

    Raises:
        ValidationFailedError: If the query is blank
    """
    service = PostLifecycleService(db)
    posts, total = service.search(q, page, limit)
    return service.page(posts, total, page, limit)


@router.get("/mine", response_model=PostPage)
async def list_my_posts(
    current_user: CurrentUserDep,
    db: SessionDep,
    page: int = PageQuery,
    limit: int = LimitQuery,
) -> PostPage:
    """List the caller's posts that are not in the trash."""
    service = PostLifecycleService(db)
    posts, total = service.list_mine(current_user, page, limit)
    return service.page(posts, total, page, limit)


@router.get("/trash/mine", response_model=list[PostResponse])
async def list_my_trash(current_user: CurrentUserDep, db: SessionDep) -> list[PostResponse]:
    """List the caller's trashed posts, most recently deleted first."""
    service = PostLifecycleService(db)
    return service.describe_many(service.list_my_trash(current_user))


@router.get("/trash/all", response_model=list[PostResponse])
async def list_all_trash(current_user: CurrentUserDep, db: SessionDep) -> list[PostResponse]:
    """List every trashed post (admin only)."""
    service = PostLifecycleService(db)
    return service.describe_many(service.list_all_trash(current_user))


@router.get("/images/used", response_model=UsedImagesResponse)
async def used_images(current_user: CurrentUserDep, db: SessionDep) -> UsedImagesResponse:
    """Return the image URLs referenced by any post (admin only)."""
    urls = PostLifecycleService(db).used_image_urls(current_user)
    return UsedImagesResponse(urls=sorted(urls), count=len(urls))


@router.post("/", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def create_post(
    payload: PostCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> PostResponse:
    """Create a post as a draft or published.

    Raises:
        ConflictError: If a post with the same title already exists
    """
    service = PostLifecycleService(db)
    return service.describe(service.create(current_user, payload))


@router.get("/{post_id}", response_model=PostResponse)
async def get_post(post_id: int, current_user: OptionalUserDep, db: SessionDep) -> PostResponse:
    """Get a post by ID; trashed posts are only visible to admins."""
    service = PostLifecycleService(db)
    return service.describe(service.get_post(current_user, post_id))


@router.put("/{post_id}", response_model=PostResponse)
async def update_post(
    post_id: int,
    payload: PostUpdate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> PostResponse:
    """Update the provided fields of a post."""
    service = PostLifecycleService(db)
    return service.describe(service.update(current_user, post_id, payload))


@router.delete("/{post_id}", response_model=PostResponse)
async def trash_post(post_id: int, current_user: CurrentUserDep, db: SessionDep) -> PostResponse:
    """Move a post to the trash."""
    service = PostLifecycleService(db)
    return service.describe(service.trash(current_user, post_id))


@router.put("/{post_id}/restore", response_model=PostResponse)
async def restore_post(
    post_id: int,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> PostResponse:
    """Restore the caller's own trashed post as a draft."""
    service = PostLifecycleService(db)
    return service.describe(service.author_restore(current_user, post_id))


@router.put("/{post_id}/like", response_model=LikeResponse)
async def toggle_like(post_id: int, current_user: CurrentUserDep, db: SessionDep) -> LikeResponse:
    """Like the post, or remove the caller's like."""
    liked, count = PostLifecycleService(db).toggle_like(current_user, post_id)
    return LikeResponse(liked=liked, likes_count=count)


@router.delete("/{post_id}/user-permanent", response_model=PostResponse)
async def user_permanent_delete(
    post_id: int,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> PostResponse:
    """Permanently detach the caller from their post.

    The post is handed to the anonymous user and stays in the trash.
    """
    service = PostLifecycleService(db)
    return service.describe(service.user_permanent_delete(current_user, post_id))


@router.delete("/{post_id}/admin-permanent", status_code=status.HTTP_204_NO_CONTENT)
async def admin_permanent_delete(post_id: int, current_user: CurrentUserDep, db: SessionDep) -> None:
    """Erase a post with its comments and likes (admin only)."""
    PostLifecycleService(db).admin_erase(current_user, post_id)
