# src/inkwell/schemas/__init__.py
"""Pydantic schemas for API request/response validation."""

from .comment import (
    CommentCreate,
    CommentLikeResponse,
    CommentNode,
    CommentPage,
    CommentResponse,
    CommentUpdate,
    ReportResponse,
)
from .common import Message, Page
from .media import ImageUploadResponse
from .post import (
    ContentBlock,
    LikeResponse,
    PostCreate,
    PostPage,
    PostResponse,
    PostUpdate,
    RepublishRequest,
    UsedImagesResponse,
)
from .user import (
    FederatedLoginRequest,
    ForgotPasswordRequest,
    LastLoginDetails,
    LoginRequest,
    LoginResponse,
    OtpResetRequest,
    ProfileUpdateRequest,
    RegisterRequest,
    ResetPasswordRequest,
    RoleUpdateRequest,
    UserResponse,
    UserSummary,
)

__all__ = [
    # Comments
    "CommentCreate",
    "CommentLikeResponse",
    "CommentNode",
    "CommentPage",
    "CommentResponse",
    "CommentUpdate",
    "ReportResponse",
    # Common
    "Message",
    "Page",
    # Media
    "ImageUploadResponse",
    # Posts
    "ContentBlock",
    "LikeResponse",
    "PostCreate",
    "PostPage",
    "PostResponse",
    "PostUpdate",
    "RepublishRequest",
    "UsedImagesResponse",
    # Users
    "FederatedLoginRequest",
    "ForgotPasswordRequest",
    "LastLoginDetails",
    "LoginRequest",
    "LoginResponse",
    "OtpResetRequest",
    "ProfileUpdateRequest",
    "RegisterRequest",
    "ResetPasswordRequest",
    "RoleUpdateRequest",
    "UserResponse",
    "UserSummary",
]
