"""
State machine for the paper (article) lifecycle.

    draft -> in_review -> published -> draft
                  \\-----------------> draft

Valid transitions and who may trigger them are defined here. There is no
direct draft -> published edge.
"""

import uuid
from enum import Enum
from typing import Dict, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from minjok.kernel.errors import ForbiddenError, InvalidTransitionError, ValidationError
from minjok.kernel.events.event_store import EventStore
from minjok.kernel.identity.actor import Actor
from minjok.kernel.models.article import Article, ArticleStatus
from minjok.kernel.models.base import enum_value
from minjok.kernel.models.event_log import EventType
from minjok.kernel.permissions.policy import can_mutate
from minjok.logging_config import get_logger

logger = get_logger(__name__)


class Trigger(str, Enum):
    """Who may fire a transition."""
    AUTHOR = "author"
    AUTHOR_OR_ADMIN = "author_or_admin"


_DRAFT = ArticleStatus.DRAFT.value
_IN_REVIEW = ArticleStatus.IN_REVIEW.value
_PUBLISHED = ArticleStatus.PUBLISHED.value

# (from_state, to_state) -> who may trigger
_TRANSITIONS: Dict[Tuple[str, str], Trigger] = {
    (_DRAFT, _IN_REVIEW): Trigger.AUTHOR,
    (_IN_REVIEW, _PUBLISHED): Trigger.AUTHOR_OR_ADMIN,
    (_PUBLISHED, _DRAFT): Trigger.AUTHOR_OR_ADMIN,
    # Unpublishing a paper still under review is allowed as well
    (_IN_REVIEW, _DRAFT): Trigger.AUTHOR_OR_ADMIN,
}


def valid_transitions(from_state: str) -> List[str]:
    """Return list of valid target states from given state."""
    return sorted(t for (f, t) in _TRANSITIONS if f == from_state)


def can_transition(
    actor_id: uuid.UUID,
    actor_is_admin: bool,
    author_id: uuid.UUID,
    from_state: str,
    to_state: str,
) -> bool:
    """Check if the actor may move a paper from_state -> to_state."""
    trigger = _TRANSITIONS.get((from_state, to_state))
    if trigger is None:
        return False
    if trigger is Trigger.AUTHOR:
        return actor_id == author_id
    return can_mutate(actor_id, actor_is_admin, author_id)


class StateMachine:
    """Service for performing paper status transitions with audit logging."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.event_store = EventStore(session)

    async def transition(
        self,
        article: Article,
        to_state: ArticleStatus,
        actor: Actor,
        title: Optional[str] = None,
        description: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> Article:
        """
        Move an article to a new status.

        Publishing doubles as metadata finalisation: the supplied title and
        description replace the draft values.

        Raises:
            InvalidTransitionError: No such edge from the current status
            ForbiddenError: The actor may not fire this edge
            ValidationError: Publishing without a title
        """
        from_state = enum_value(article.status)
        target = to_state.value

        if (from_state, target) not in _TRANSITIONS:
            raise InvalidTransitionError(
                f"Invalid transition: {from_state} -> {target}"
            )
        if not can_transition(actor.id, actor.is_admin, article.author_id, from_state, target):
            raise ForbiddenError("You do not have permission to change this paper's status")

        payload = {"from_state": from_state, "to_state": target}
        if to_state is ArticleStatus.PUBLISHED:
            clean_title = (title or "").strip()
            if not clean_title:
                raise ValidationError("Title is required.")
            article.title = clean_title
            article.description = (description or "").strip() or None
            payload["title"] = article.title

        article.status = to_state
        await self.session.flush()

        await self.event_store.log(
            event_type=EventType.ARTICLE_STATUS_CHANGED,
            entity_type="article",
            entity_id=article.id,
            profile_id=actor.id,
            payload=payload,
            ip_address=ip_address,
        )
        logger.info(
            "Article status changed",
            extra={"article_id": str(article.id), "from_state": from_state, "to_state": target},
        )
        return article
