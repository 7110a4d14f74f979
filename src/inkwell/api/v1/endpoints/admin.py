# src/inkwell/api/v1/endpoints/admin.py
"""Administrative endpoints: review queue, restores, roles and comment moderation."""

from fastapi import APIRouter

from inkwell.api.v1.dependencies import CurrentUserDep, SessionDep
from inkwell.models import Comment, User
from inkwell.schemas.comment import CommentResponse
from inkwell.schemas.post import PostResponse, RepublishRequest
from inkwell.schemas.user import RoleUpdateRequest, UserResponse
from inkwell.services.comment_service import CommentTreeService
from inkwell.services.identity import IdentityService
from inkwell.services.post_service import PostLifecycleService

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/posts/under-review", response_model=list[PostResponse])
async def list_under_review(current_user: CurrentUserDep, db: SessionDep) -> list[PostResponse]:
    """List restored posts waiting to be republished."""
    service = PostLifecycleService(db)
    return service.describe_many(service.list_under_review(current_user))


@router.put("/posts/{post_id}/restore", response_model=PostResponse)
async def admin_restore(post_id: int, current_user: CurrentUserDep, db: SessionDep) -> PostResponse:
    """Restore any trashed post into the review queue."""
    service = PostLifecycleService(db)
    return service.describe(service.admin_restore(current_user, post_id))


@router.put("/posts/{post_id}/republish", response_model=PostResponse)
async def republish(
    post_id: int,
    payload: RepublishRequest,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> PostResponse:
    """Publish a post under review, optionally returning it to its original author."""
    service = PostLifecycleService(db)
    post = service.republish(current_user, post_id, payload.give_back_ownership)
    return service.describe(post)


@router.put("/users/role", response_model=UserResponse)
async def update_user_role(
    payload: RoleUpdateRequest,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> User:
    """Change a user's role."""
    return IdentityService(db).set_role(current_user, payload.user_id, payload.role)


@router.get("/comments/hidden", response_model=list[CommentResponse])
async def list_hidden_comments(current_user: CurrentUserDep, db: SessionDep) -> list[Comment]:
    """List comments hidden by user reports."""
    return CommentTreeService(db).list_hidden(current_user)


@router.put("/comments/{comment_id}/unhide", response_model=CommentResponse)
async def unhide_comment(comment_id: int, current_user: CurrentUserDep, db: SessionDep) -> Comment:
    """Make a hidden comment visible again and clear its reports."""
    return CommentTreeService(db).unhide(current_user, comment_id)
