"""
Services layer - paper, comment, community, catalog and profile operations.

Services take an AsyncSession and run inside the caller's transaction; they
flush but never commit.
"""

from minjok.services.article_service import ArticleService
from minjok.services.catalog_service import CatalogService
from minjok.services.comment_service import CommentService
from minjok.services.community_service import CommunityService
from minjok.services.profile_service import ProfileService

__all__ = [
    "ArticleService",
    "CatalogService",
    "CommentService",
    "CommunityService",
    "ProfileService",
]
