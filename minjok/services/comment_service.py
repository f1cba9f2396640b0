"""
Comment threads on paper versions and board posts.

Threads are exactly one level deep: a reply may only point at a top-level
comment. The data model would allow longer chains; the service refuses them.
"""

import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from minjok.kernel.errors import NotFoundError, ValidationError
from minjok.kernel.events.event_store import EventStore
from minjok.kernel.identity.actor import Actor
from minjok.kernel.models.article import Article, ArticleStatus
from minjok.kernel.models.base import enum_value
from minjok.kernel.models.comment import Comment
from minjok.kernel.models.community import BoardPost
from minjok.kernel.models.event_log import EventType
from minjok.kernel.models.profile import Profile
from minjok.kernel.permissions.policy import require_mutate


@dataclass
class CommentView:
    comment: Comment
    author_name: str


@dataclass
class Thread:
    root: CommentView
    replies: List[CommentView] = field(default_factory=list)


def _clean_body(body: Optional[str]) -> str:
    text = (body or "").strip()
    if not text:
        raise ValidationError("Comment cannot be empty.")
    return text


class CommentService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.event_store = EventStore(session)

    async def get_comment(self, comment_id: uuid.UUID) -> Comment:
        comment = (
            await self.session.execute(select(Comment).where(Comment.id == comment_id))
        ).scalar_one_or_none()
        if comment is None:
            raise NotFoundError("Comment not found")
        return comment

    async def post_paper_comment(
        self,
        article_id: uuid.UUID,
        actor: Actor,
        body: Optional[str],
        parent_id: Optional[uuid.UUID] = None,
        ip_address: Optional[str] = None,
    ) -> Comment:
        """
        Comment on a published paper.

        The comment is pinned to the paper's current version at the time of
        posting, whichever version the client was looking at.
        """
        article = (
            await self.session.execute(select(Article).where(Article.id == article_id))
        ).scalar_one_or_none()
        if article is None:
            raise NotFoundError("Paper not found")
        if enum_value(article.status) != ArticleStatus.PUBLISHED.value:
            raise ValidationError("Comments are only accepted on published papers.")
        if article.current_version_id is None:
            raise ValidationError("This paper has no version to comment on.")

        text = _clean_body(body)
        if parent_id is not None:
            parent = await self.get_comment(parent_id)
            if parent.article_id != article.id:
                raise ValidationError("Parent comment belongs to another paper.")
            self._check_depth(parent)

        comment = Comment(
            article_id=article.id,
            version_id=article.current_version_id,
            author_id=actor.id,
            body=text,
            parent_id=parent_id,
        )
        return await self._add(comment, actor, ip_address)

    async def post_board_comment(
        self,
        post_id: uuid.UUID,
        actor: Actor,
        body: Optional[str],
        parent_id: Optional[uuid.UUID] = None,
        ip_address: Optional[str] = None,
    ) -> Comment:
        post = (
            await self.session.execute(select(BoardPost).where(BoardPost.id == post_id))
        ).scalar_one_or_none()
        if post is None:
            raise NotFoundError("Post not found")

        text = _clean_body(body)
        if parent_id is not None:
            parent = await self.get_comment(parent_id)
            if parent.board_post_id != post.id:
                raise ValidationError("Parent comment belongs to another post.")
            self._check_depth(parent)

        comment = Comment(
            board_post_id=post.id,
            author_id=actor.id,
            body=text,
            parent_id=parent_id,
        )
        return await self._add(comment, actor, ip_address)

    async def edit_comment(
        self,
        comment_id: uuid.UUID,
        actor: Actor,
        body: Optional[str],
        ip_address: Optional[str] = None,
    ) -> Comment:
        comment = await self.get_comment(comment_id)
        require_mutate(actor, comment.author_id, "You can only edit your own comments")

        comment.body = _clean_body(body)
        await self.session.flush()

        await self.event_store.log(
            event_type=EventType.COMMENT_EDITED,
            entity_type="comment",
            entity_id=comment.id,
            profile_id=actor.id,
            payload={"content_preview": comment.body[:100]},
            ip_address=ip_address,
        )
        return comment

    async def delete_comment(
        self,
        comment_id: uuid.UUID,
        actor: Actor,
        ip_address: Optional[str] = None,
    ) -> None:
        """Delete a comment; a top-level comment takes its replies with it."""
        comment = await self.get_comment(comment_id)
        require_mutate(actor, comment.author_id, "You can only delete your own comments")

        await self.session.execute(
            delete(Comment).where(or_(Comment.parent_id == comment.id, Comment.id == comment.id))
        )

        await self.event_store.log(
            event_type=EventType.COMMENT_DELETED,
            entity_type="comment",
            entity_id=comment_id,
            profile_id=actor.id,
            payload={
                "article_id": comment.article_id,
                "board_post_id": comment.board_post_id,
            },
            ip_address=ip_address,
        )

    async def list_version_threads(self, version_id: uuid.UUID) -> List[Thread]:
        return await self._threads(Comment.version_id == version_id)

    async def list_board_threads(self, post_id: uuid.UUID) -> List[Thread]:
        return await self._threads(Comment.board_post_id == post_id)

    async def list_article_comments(self, article_id: uuid.UUID) -> List[Thread]:
        """Threads across every version of a paper."""
        return await self._threads(Comment.article_id == article_id)

    async def _threads(self, target_filter) -> List[Thread]:
        query = (
            select(Comment, Profile.full_name)
            .join(Profile, Comment.author_id == Profile.id)
            .where(target_filter)
            .order_by(Comment.created_at, Comment.id)
        )
        rows = (await self.session.execute(query)).all()

        views = [CommentView(comment=comment, author_name=author_name) for comment, author_name in rows]
        top_level = {view.comment.id for view in views if view.comment.parent_id is None}

        # Replies pinned to a different version than their parent stand alone,
        # in their chronological place among the roots.
        threads: Dict[uuid.UUID, Thread] = {
            view.comment.id: Thread(root=view) for view in views if view.comment.parent_id not in top_level
        }
        for view in views:
            if view.comment.id not in threads:
                threads[view.comment.parent_id].replies.append(view)
        return list(threads.values())

    @staticmethod
    def _check_depth(parent: Comment) -> None:
        if parent.parent_id is not None:
            raise ValidationError("Replies can only be attached to top-level comments.")

    async def _add(self, comment: Comment, actor: Actor, ip_address: Optional[str]) -> Comment:
        self.session.add(comment)
        await self.session.flush()

        await self.event_store.log(
            event_type=EventType.COMMENT_ADDED,
            entity_type="comment",
            entity_id=comment.id,
            profile_id=actor.id,
            payload={
                "article_id": comment.article_id,
                "version_id": comment.version_id,
                "board_post_id": comment.board_post_id,
                "parent_id": comment.parent_id,
                "content_preview": comment.body[:100],
            },
            ip_address=ip_address,
        )
        return comment
