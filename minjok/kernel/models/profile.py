"""
Profile model: the application-level identity record.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import Boolean, DateTime, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from minjok.kernel.models.base import Base, TimestampMixin, generate_uuid, utc_now


class ProfileRole(str, Enum):
    """Academic role of a profile."""
    MENTEE = "mentee"
    MENTOR = "mentor"
    PROF = "prof"
    ADMIN = "admin"


class AdminType(str, Enum):
    """Parallel privilege flag kept alongside the role."""
    USER = "user"
    ADMIN = "admin"


class Profile(Base, TimestampMixin):
    """A signed-up member. Profiles are never deleted by the application."""

    __tablename__ = "profiles"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False,
    )
    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    full_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    intro: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )
    role: Mapped[ProfileRole] = mapped_column(
        String(20),
        default=ProfileRole.MENTEE,
        nullable=False,
    )
    admin_type: Mapped[AdminType] = mapped_column(
        String(20),
        default=AdminType.USER,
        nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )
    confirmed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<Profile {self.email}>"


class RefreshToken(Base):
    """Refresh token for JWT authentication."""

    __tablename__ = "refresh_tokens"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    profile_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        nullable=False,
        index=True,
    )
    token_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    revoked: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
    )
