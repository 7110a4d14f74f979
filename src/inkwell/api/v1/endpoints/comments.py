# src/inkwell/api/v1/endpoints/comments.py
"""Comment endpoints: threaded reads, replies, likes and reports."""

from fastapi import APIRouter, Query, status

from inkwell.api.v1.dependencies import CurrentUserDep, OptionalUserDep, SessionDep
from inkwell.core.settings import settings
from inkwell.models import Comment
from inkwell.schemas.comment import (
    CommentCreate,
    CommentLikeResponse,
    CommentPage,
    CommentResponse,
    CommentUpdate,
    ReportResponse,
)
from inkwell.schemas.common import Message
from inkwell.services.comment_service import CommentTreeService

router = APIRouter(prefix="/comments", tags=["comments"])


@router.get("/post/{post_id}", response_model=CommentPage)
async def get_comments(
    post_id: int,
    current_user: OptionalUserDep,
    db: SessionDep,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.comments_page_size, ge=1, le=settings.comments_page_max),
) -> CommentPage:
    """Return a page of top-level comments with every reply nested beneath."""
    return CommentTreeService(db).read_thread(current_user, post_id, page=page, limit=limit)


@router.post(
    "/post/{post_id}",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_comment(
    post_id: int,
    payload: CommentCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> Comment:
    """Add a top-level comment to a post."""
    return CommentTreeService(db).create(current_user, post_id, payload.content)


@router.post(
    "/{comment_id}/reply",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def reply_to_comment(
    comment_id: int,
    payload: CommentCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> Comment:
    """Reply to a comment."""
    return CommentTreeService(db).reply(current_user, comment_id, payload.content)


@router.put("/{comment_id}", response_model=CommentResponse)
async def update_comment(
    comment_id: int,
    payload: CommentUpdate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> Comment:
    """Edit the caller's own comment."""
    return CommentTreeService(db).update(current_user, comment_id, payload.content)


@router.delete("/{comment_id}", response_model=Message)
async def delete_comment(comment_id: int, current_user: CurrentUserDep, db: SessionDep) -> Message:
    """Delete a comment together with its replies."""
    removed = CommentTreeService(db).delete(current_user, comment_id)
    return Message(message=f"Deleted {removed} comment(s)")


@router.put("/{comment_id}/like", response_model=CommentLikeResponse)
async def toggle_like(
    comment_id: int,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> CommentLikeResponse:
    """Like the comment, or remove the caller's like."""
    liked, count = CommentTreeService(db).toggle_like(current_user, comment_id)
    return CommentLikeResponse(liked=liked, likes_count=count)


@router.post("/{comment_id}/report", response_model=ReportResponse)
async def report_comment(
    comment_id: int,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> ReportResponse:
    """Report a comment; enough distinct reports hide it.

    Raises:
        ConflictError: If the caller already reported the comment
    """
    service = CommentTreeService(db)
    comment = service.report(current_user, comment_id)
    return ReportResponse(
        reports_count=service.report_count(comment.id),
        is_hidden=comment.is_hidden,
    )
