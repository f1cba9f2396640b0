"""
Immutable snapshot of the authenticated profile for one request.
"""

import uuid
from dataclasses import dataclass

from minjok.kernel.models.base import enum_value
from minjok.kernel.models.profile import Profile, ProfileRole
from minjok.kernel.permissions.policy import is_admin


@dataclass(frozen=True)
class Actor:
    """Who is acting. Detached from any database session."""

    id: uuid.UUID
    email: str
    full_name: str
    role: ProfileRole
    admin_type: str

    @property
    def is_admin(self) -> bool:
        return is_admin(self.role, self.admin_type)

    @classmethod
    def from_profile(cls, profile: Profile) -> "Actor":
        return cls(
            id=profile.id,
            email=profile.email,
            full_name=profile.full_name,
            role=ProfileRole(enum_value(profile.role)),
            admin_type=enum_value(profile.admin_type),
        )
