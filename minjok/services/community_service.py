"""
Community service - announcement board and Q&A.
"""

import uuid
from dataclasses import dataclass, field
from typing import List, Optional

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from minjok.config import Settings, get_settings
from minjok.kernel.errors import NotFoundError, ValidationError
from minjok.kernel.events.event_store import EventStore
from minjok.kernel.identity.actor import Actor
from minjok.kernel.models.base import enum_value
from minjok.kernel.models.comment import Comment
from minjok.kernel.models.community import BoardPost, QnaQuestion, QnaReply
from minjok.kernel.models.event_log import EventType
from minjok.kernel.models.profile import Profile
from minjok.kernel.permissions.policy import require_catalog_manager, require_mutate, require_reply
from minjok.services.pagination import Page, ilike_pattern, page_bounds


def _required(value: Optional[str], label: str) -> str:
    text = (value or "").strip()
    if not text:
        raise ValidationError(f"{label} is required.")
    return text


@dataclass
class PostView:
    post: BoardPost
    author_name: str


@dataclass
class ReplyView:
    reply: QnaReply
    author_name: str
    author_role: str


@dataclass
class QuestionView:
    question: QnaQuestion
    author_name: str
    replies: List[ReplyView] = field(default_factory=list)


class CommunityService:
    def __init__(self, session: AsyncSession, settings: Optional[Settings] = None):
        self.session = session
        self.settings = settings or get_settings()
        self.event_store = EventStore(session)

    # ------------------------------------------------------------------
    # Board
    # ------------------------------------------------------------------

    async def get_post(self, post_id: uuid.UUID) -> BoardPost:
        post = (
            await self.session.execute(select(BoardPost).where(BoardPost.id == post_id))
        ).scalar_one_or_none()
        if post is None:
            raise NotFoundError("Post not found")
        return post

    async def get_post_view(self, post_id: uuid.UUID) -> PostView:
        row = (
            await self.session.execute(
                select(BoardPost, Profile.full_name)
                .join(Profile, BoardPost.author_id == Profile.id)
                .where(BoardPost.id == post_id)
            )
        ).one_or_none()
        if row is None:
            raise NotFoundError("Post not found")
        return PostView(post=row[0], author_name=row[1])

    async def list_posts(self, page: int = 1, search: Optional[str] = None) -> Page[PostView]:
        """Newest first, ``board_page_size`` per page, substring search on
        title and content."""
        per_page = self.settings.board_page_size
        conditions = []
        if search and search.strip():
            pattern = ilike_pattern(search.strip())
            conditions.append(
                or_(
                    BoardPost.title.ilike(pattern, escape="\\"),
                    BoardPost.content.ilike(pattern, escape="\\"),
                )
            )

        total = (
            await self.session.execute(select(func.count(BoardPost.id)).where(*conditions))
        ).scalar() or 0

        offset, limit = page_bounds(page, per_page)
        query = (
            select(BoardPost, Profile.full_name)
            .join(Profile, BoardPost.author_id == Profile.id)
            .where(*conditions)
            .order_by(BoardPost.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        items = [PostView(post=p, author_name=n) for p, n in (await self.session.execute(query)).all()]
        return Page(items=items, total=total, page=max(page, 1), per_page=per_page)

    async def create_post(
        self,
        actor: Actor,
        title: Optional[str],
        content: Optional[str],
        ip_address: Optional[str] = None,
    ) -> BoardPost:
        require_catalog_manager(actor)
        post = BoardPost(
            author_id=actor.id,
            title=_required(title, "Title"),
            content=_required(content, "Content"),
        )
        self.session.add(post)
        await self.session.flush()
        await self._log(EventType.BOARD_POST_CREATED, "board_post", post.id, actor, {"title": post.title}, ip_address)
        return post

    async def edit_post(
        self,
        post_id: uuid.UUID,
        actor: Actor,
        title: Optional[str],
        content: Optional[str],
        ip_address: Optional[str] = None,
    ) -> BoardPost:
        post = await self.get_post(post_id)
        require_mutate(actor, post.author_id, "Only the author or an admin can edit this post")
        post.title = _required(title, "Title")
        post.content = _required(content, "Content")
        await self.session.flush()
        await self._log(EventType.BOARD_POST_UPDATED, "board_post", post.id, actor, {"title": post.title}, ip_address)
        return post

    async def delete_post(self, post_id: uuid.UUID, actor: Actor, ip_address: Optional[str] = None) -> None:
        post = await self.get_post(post_id)
        require_mutate(actor, post.author_id, "Only the author or an admin can delete this post")
        await self.session.execute(delete(Comment).where(Comment.board_post_id == post.id))
        await self.session.delete(post)
        await self.session.flush()
        await self._log(EventType.BOARD_POST_DELETED, "board_post", post_id, actor, {"title": post.title}, ip_address)

    # ------------------------------------------------------------------
    # Q&A
    # ------------------------------------------------------------------

    async def get_question(self, question_id: uuid.UUID) -> QnaQuestion:
        question = (
            await self.session.execute(select(QnaQuestion).where(QnaQuestion.id == question_id))
        ).scalar_one_or_none()
        if question is None:
            raise NotFoundError("Question not found")
        return question

    async def get_reply(self, reply_id: uuid.UUID) -> QnaReply:
        reply = (
            await self.session.execute(select(QnaReply).where(QnaReply.id == reply_id))
        ).scalar_one_or_none()
        if reply is None:
            raise NotFoundError("Reply not found")
        return reply

    async def list_questions(self) -> List[QuestionView]:
        """Every question, newest first, with its replies oldest first."""
        rows = (
            await self.session.execute(
                select(QnaQuestion, Profile.full_name)
                .join(Profile, QnaQuestion.author_id == Profile.id)
                .order_by(QnaQuestion.created_at.desc())
            )
        ).all()
        views = {q.id: QuestionView(question=q, author_name=name) for q, name in rows}
        if views:
            for reply_view in await self._replies(list(views)):
                views[reply_view.reply.question_id].replies.append(reply_view)
        return list(views.values())

    async def get_question_view(self, question_id: uuid.UUID) -> QuestionView:
        row = (
            await self.session.execute(
                select(QnaQuestion, Profile.full_name)
                .join(Profile, QnaQuestion.author_id == Profile.id)
                .where(QnaQuestion.id == question_id)
            )
        ).one_or_none()
        if row is None:
            raise NotFoundError("Question not found")
        return QuestionView(question=row[0], author_name=row[1], replies=await self._replies([question_id]))

    async def ask_question(
        self,
        actor: Actor,
        title: Optional[str],
        content: Optional[str],
        ip_address: Optional[str] = None,
    ) -> QnaQuestion:
        question = QnaQuestion(
            author_id=actor.id,
            title=_required(title, "Title"),
            content=_required(content, "Content"),
        )
        self.session.add(question)
        await self.session.flush()
        await self._log(EventType.QUESTION_CREATED, "qna_question", question.id, actor, {"title": question.title}, ip_address)
        return question

    async def edit_question(
        self,
        question_id: uuid.UUID,
        actor: Actor,
        title: Optional[str],
        content: Optional[str],
        ip_address: Optional[str] = None,
    ) -> QnaQuestion:
        question = await self.get_question(question_id)
        require_mutate(actor, question.author_id, "Only the author or an admin can edit this question")
        question.title = _required(title, "Title")
        question.content = _required(content, "Content")
        await self.session.flush()
        await self._log(EventType.QUESTION_UPDATED, "qna_question", question.id, actor, {"title": question.title}, ip_address)
        return question

    async def delete_question(self, question_id: uuid.UUID, actor: Actor, ip_address: Optional[str] = None) -> None:
        question = await self.get_question(question_id)
        require_mutate(actor, question.author_id, "Only the author or an admin can delete this question")
        await self.session.execute(delete(QnaReply).where(QnaReply.question_id == question.id))
        await self.session.delete(question)
        await self.session.flush()
        await self._log(EventType.QUESTION_DELETED, "qna_question", question_id, actor, None, ip_address)

    async def reply(
        self,
        question_id: uuid.UUID,
        actor: Actor,
        content: Optional[str],
        ip_address: Optional[str] = None,
    ) -> QnaReply:
        require_reply(actor)
        question = await self.get_question(question_id)
        reply = QnaReply(
            question_id=question.id,
            author_id=actor.id,
            content=_required(content, "Content"),
        )
        self.session.add(reply)
        await self.session.flush()
        await self._log(EventType.REPLY_CREATED, "qna_reply", reply.id, actor, {"question_id": question.id}, ip_address)
        return reply

    async def edit_reply(
        self,
        reply_id: uuid.UUID,
        actor: Actor,
        content: Optional[str],
        ip_address: Optional[str] = None,
    ) -> QnaReply:
        reply = await self.get_reply(reply_id)
        require_mutate(actor, reply.author_id, "Only the author or an admin can edit this reply")
        reply.content = _required(content, "Content")
        await self.session.flush()
        await self._log(EventType.REPLY_UPDATED, "qna_reply", reply.id, actor, {"question_id": reply.question_id}, ip_address)
        return reply

    async def delete_reply(self, reply_id: uuid.UUID, actor: Actor, ip_address: Optional[str] = None) -> None:
        reply = await self.get_reply(reply_id)
        require_mutate(actor, reply.author_id, "Only the author or an admin can delete this reply")
        await self.session.delete(reply)
        await self.session.flush()
        await self._log(EventType.REPLY_DELETED, "qna_reply", reply_id, actor, {"question_id": reply.question_id}, ip_address)

    async def _replies(self, question_ids: List[uuid.UUID]) -> List[ReplyView]:
        rows = (
            await self.session.execute(
                select(QnaReply, Profile.full_name, Profile.role)
                .join(Profile, QnaReply.author_id == Profile.id)
                .where(QnaReply.question_id.in_(question_ids))
                .order_by(QnaReply.created_at)
            )
        ).all()
        return [
            ReplyView(reply=reply, author_name=name, author_role=enum_value(role))
            for reply, name, role in rows
        ]

    async def _log(
        self,
        event_type: EventType,
        entity_type: str,
        entity_id: uuid.UUID,
        actor: Actor,
        payload: Optional[dict],
        ip_address: Optional[str],
    ) -> None:
        await self.event_store.log(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            profile_id=actor.id,
            payload=payload,
            ip_address=ip_address,
        )
