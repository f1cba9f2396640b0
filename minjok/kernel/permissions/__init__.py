"""
Authorization policy - ownership and role predicates.
"""

from minjok.kernel.permissions.policy import (
    is_admin,
    can_mutate,
    can_reply,
    can_manage_catalog,
    can_review,
    require_mutate,
    require_reply,
    require_catalog_manager,
)

__all__ = [
    "is_admin",
    "can_mutate",
    "can_reply",
    "can_manage_catalog",
    "can_review",
    "require_mutate",
    "require_reply",
    "require_catalog_manager",
]
