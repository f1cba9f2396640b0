"""
Kernel Data Models

Core SQLAlchemy models for Minjok Journal.
"""

from minjok.kernel.models.base import Base, TimestampMixin, generate_uuid, utc_now, enum_value
from minjok.kernel.models.profile import Profile, ProfileRole, AdminType, RefreshToken
from minjok.kernel.models.article import Article, ArticleStatus, ArticleVersion, ArticleAuthor
from minjok.kernel.models.comment import Comment
from minjok.kernel.models.community import BoardPost, QnaQuestion, QnaReply
from minjok.kernel.models.catalog import Issue, IssueArticle, Volume, VolumeIssue, ReleaseStatus
from minjok.kernel.models.event_log import EventLog, EventType

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    "generate_uuid",
    "utc_now",
    "enum_value",
    # Profile
    "Profile",
    "ProfileRole",
    "AdminType",
    "RefreshToken",
    # Articles
    "Article",
    "ArticleStatus",
    "ArticleVersion",
    "ArticleAuthor",
    # Discussion
    "Comment",
    "BoardPost",
    "QnaQuestion",
    "QnaReply",
    # Catalog
    "Issue",
    "IssueArticle",
    "Volume",
    "VolumeIssue",
    "ReleaseStatus",
    # Event Log
    "EventLog",
    "EventType",
]
