"""
Authorization predicates.

Every route and service asks these functions instead of comparing roles
inline, so the admin rule lives in exactly one place.

An actor is an admin when role == "admin" OR admin_type == "admin".
"""

import uuid
from typing import TYPE_CHECKING, Optional, Union

from minjok.kernel.errors import ForbiddenError
from minjok.kernel.models.profile import AdminType, ProfileRole

if TYPE_CHECKING:
    from minjok.kernel.identity.actor import Actor

RoleLike = Union[ProfileRole, str]

REVIEWER_ROLES = frozenset({ProfileRole.MENTOR.value, ProfileRole.PROF.value, ProfileRole.ADMIN.value})


def _value(role: Optional[RoleLike]) -> Optional[str]:
    return role.value if hasattr(role, "value") else role


def is_admin(role: Optional[RoleLike], admin_type: Optional[Union[AdminType, str]]) -> bool:
    """The single canonical admin predicate."""
    return _value(role) == ProfileRole.ADMIN.value or _value(admin_type) == AdminType.ADMIN.value


def can_mutate(actor_id: uuid.UUID, actor_is_admin: bool, owner_id: uuid.UUID) -> bool:
    """Owner or admin may edit/delete a resource."""
    return actor_id == owner_id or actor_is_admin


def can_reply(actor_role: Optional[RoleLike], actor_is_admin: bool) -> bool:
    """Mentors and admins may answer Q&A questions."""
    return _value(actor_role) == ProfileRole.MENTOR.value or actor_is_admin


def can_manage_catalog(actor_role: Optional[RoleLike], actor_is_admin: bool = False) -> bool:
    """Admins create and delete issues, volumes and board posts."""
    return _value(actor_role) == ProfileRole.ADMIN.value or actor_is_admin


def can_review(actor_role: Optional[RoleLike], actor_is_admin: bool = False) -> bool:
    """Mentors, professors and admins see the review queue."""
    return _value(actor_role) in REVIEWER_ROLES or actor_is_admin


def require_mutate(actor: "Actor", owner_id: uuid.UUID, message: str = "You do not have permission to modify this resource") -> None:
    if not can_mutate(actor.id, actor.is_admin, owner_id):
        raise ForbiddenError(message)


def require_reply(actor: "Actor") -> None:
    if not can_reply(actor.role, actor.is_admin):
        raise ForbiddenError("Only mentors and admins can reply to questions")


def require_catalog_manager(actor: "Actor") -> None:
    if not can_manage_catalog(actor.role, actor.is_admin):
        raise ForbiddenError("Admin access required")
