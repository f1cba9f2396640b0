"""
Pydantic schemas for API request/response validation.
"""

from minjok.schemas.auth import (
    SignUpRequest,
    SignInRequest,
    ProfileResponse,
    TokenResponse,
    RefreshTokenRequest,
)
from minjok.schemas.catalog import IssueResponse, IssueSummary, VolumeResponse
from minjok.schemas.comment import CommentCreate, CommentResponse, CommentUpdate, ThreadResponse
from minjok.schemas.common import (
    PaginatedResponse,
    ErrorResponse,
    SuccessResponse,
    HealthResponse,
)
from minjok.schemas.community import PostResponse, PostWrite, QuestionResponse, ReplyResponse, ReplyWrite
from minjok.schemas.paper import (
    PaperDetailResponse,
    PaperSummary,
    PublishRequest,
    VersionResponse,
)
from minjok.schemas.profile import (
    AdminProfileUpdate,
    ProfileDetailResponse,
    ProfileUpdate,
    PublicProfileResponse,
)

__all__ = [
    "SignUpRequest",
    "SignInRequest",
    "ProfileResponse",
    "TokenResponse",
    "RefreshTokenRequest",
    "IssueResponse",
    "IssueSummary",
    "VolumeResponse",
    "CommentCreate",
    "CommentResponse",
    "CommentUpdate",
    "ThreadResponse",
    "PaginatedResponse",
    "ErrorResponse",
    "SuccessResponse",
    "HealthResponse",
    "PostResponse",
    "PostWrite",
    "QuestionResponse",
    "ReplyResponse",
    "ReplyWrite",
    "PaperDetailResponse",
    "PaperSummary",
    "PublishRequest",
    "VersionResponse",
    "AdminProfileUpdate",
    "ProfileDetailResponse",
    "ProfileUpdate",
    "PublicProfileResponse",
]
