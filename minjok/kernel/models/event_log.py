"""
Immutable event log for audit trail.

Every mutation appends a row here inside the same transaction.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, String, Text, func, Index, JSON, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from minjok.kernel.models.base import Base, generate_uuid, utc_now


class EventType(str, Enum):
    """All event types for the audit log."""

    # Profile events
    PROFILE_SIGNED_UP = "profile.signed_up"
    PROFILE_SIGNED_IN = "profile.signed_in"
    PROFILE_SIGNED_OUT = "profile.signed_out"
    PROFILE_CONFIRMED = "profile.confirmed"
    PROFILE_PASSWORD_RESET = "profile.password_reset"
    PROFILE_UPDATED = "profile.updated"
    PROFILE_ROLE_CHANGED = "profile.role_changed"

    # Article events
    ARTICLE_CREATED = "article.created"
    ARTICLE_DELETED = "article.deleted"
    ARTICLE_STATUS_CHANGED = "article.status_changed"

    # Version events
    VERSION_CREATED = "version.created"
    VERSION_DELETED = "version.deleted"

    # Comment events
    COMMENT_ADDED = "comment.added"
    COMMENT_EDITED = "comment.edited"
    COMMENT_DELETED = "comment.deleted"

    # Board events
    BOARD_POST_CREATED = "board.post_created"
    BOARD_POST_UPDATED = "board.post_updated"
    BOARD_POST_DELETED = "board.post_deleted"

    # Q&A events
    QUESTION_CREATED = "qna.question_created"
    QUESTION_UPDATED = "qna.question_updated"
    QUESTION_DELETED = "qna.question_deleted"
    REPLY_CREATED = "qna.reply_created"
    REPLY_UPDATED = "qna.reply_updated"
    REPLY_DELETED = "qna.reply_deleted"

    # Catalog events
    ISSUE_CREATED = "catalog.issue_created"
    ISSUE_DELETED = "catalog.issue_deleted"
    VOLUME_CREATED = "catalog.volume_created"
    VOLUME_DELETED = "catalog.volume_deleted"


class EventLog(Base):
    """
    Immutable audit event log.

    This table is append-only - no updates or deletes allowed.
    """

    __tablename__ = "event_logs"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    event_type: Mapped[EventType] = mapped_column(
        String(100),
        nullable=False,
        index=True,
    )
    entity_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )
    entity_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        nullable=False,
        index=True,
    )
    # Actor; None for system events
    profile_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(),
        nullable=True,
        index=True,
    )
    payload: Mapped[dict] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
    )
    ip_address: Mapped[Optional[str]] = mapped_column(
        String(45),  # IPv6 max length
        nullable=True,
    )
    user_agent: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        server_default=func.now(),
        nullable=False,
        index=True,
    )

    __table_args__ = (
        Index("ix_event_logs_entity", "entity_type", "entity_id"),
        Index("ix_event_logs_profile_time", "profile_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<EventLog {self.event_type} {self.entity_type}:{self.entity_id}>"
