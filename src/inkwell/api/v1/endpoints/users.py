# src/inkwell/api/v1/endpoints/users.py
"""Profile endpoints for the signed-in user."""

from fastapi import APIRouter

from inkwell.api.v1.dependencies import CurrentUserDep, SessionDep
from inkwell.models import User
from inkwell.schemas.user import ProfileUpdateRequest, UserResponse
from inkwell.services.identity import IdentityService

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/profile", response_model=UserResponse)
async def get_profile(current_user: CurrentUserDep) -> User:
    """Return the caller's profile."""
    return current_user


@router.put("/profile", response_model=UserResponse)
async def update_profile(
    payload: ProfileUpdateRequest,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> User:
    """Update the caller's name, bio or avatar."""
    return IdentityService(db).update_profile(
        current_user,
        name=payload.name,
        bio=payload.bio,
        avatar=payload.avatar,
    )
