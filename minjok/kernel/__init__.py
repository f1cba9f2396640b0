"""
Kernel Layer

Foundational components every feature builds on:
- Data models (profiles, articles, versions, comments, catalog)
- Immutable Event Log (all mutations logged)
- Identity Core (accounts, tokens, current-actor cache)
- Authorization policy (ownership and role predicates)
- Object storage boundary
"""

from minjok.kernel.models import (
    Profile,
    ProfileRole,
    AdminType,
    Article,
    ArticleStatus,
    ArticleVersion,
    EventLog,
    EventType,
)

__all__ = [
    "Profile",
    "ProfileRole",
    "AdminType",
    "Article",
    "ArticleStatus",
    "ArticleVersion",
    "EventLog",
    "EventType",
]
