"""Tests for the announcement board and mentor Q&A."""

import uuid

import pytest
from sqlalchemy import func, select

from minjok.config import get_settings
from minjok.kernel.errors import ForbiddenError, NotFoundError, ValidationError
from minjok.kernel.models.comment import Comment
from minjok.kernel.models.community import QnaReply
from minjok.services.comment_service import CommentService
from minjok.services.community_service import CommunityService


@pytest.fixture
def community(db_session) -> CommunityService:
    return CommunityService(db_session)


class TestBoard:
    async def test_only_admins_post(self, community, admin_actor, mentor_actor, other_actor):
        post = await community.create_post(admin_actor, " Call for papers ", "Submit by June")
        assert post.title == "Call for papers"

        for actor in (mentor_actor, other_actor):
            with pytest.raises(ForbiddenError):
                await community.create_post(actor, "Not allowed", "Nope")

    async def test_title_and_content_required(self, community, admin_actor):
        with pytest.raises(ValidationError, match="Title is required"):
            await community.create_post(admin_actor, "", "Body")
        with pytest.raises(ValidationError, match="Content is required"):
            await community.create_post(admin_actor, "Title", "  ")

    async def test_listing_pages_and_search(self, community, admin_actor):
        per_page = get_settings().board_page_size
        for n in range(per_page + 2):
            await community.create_post(admin_actor, f"Notice {n}", "routine")
        await community.create_post(admin_actor, "Workshop", "Writing 100% better abstracts")

        first = await community.list_posts(page=1)
        assert first.total == per_page + 3
        assert len(first.items) == per_page
        assert first.pages == 2
        assert first.has_more is True
        assert first.items[0].author_name == "Choi Admin"

        second = await community.list_posts(page=2)
        assert len(second.items) == 3
        assert second.has_more is False

        found = await community.list_posts(search="100%")
        assert [v.post.title for v in found.items] == ["Workshop"]

    async def test_edit_and_delete(self, db_session, community, admin_actor, other_actor):
        post = await community.create_post(admin_actor, "Draft notice", "v1")
        await CommentService(db_session).post_board_comment(post.id, other_actor, "Question")

        with pytest.raises(ForbiddenError):
            await community.edit_post(post.id, other_actor, "Edited", "v2")

        edited = await community.edit_post(post.id, admin_actor, "Final notice", "v2")
        assert (edited.title, edited.content) == ("Final notice", "v2")

        await community.delete_post(post.id, admin_actor)
        with pytest.raises(NotFoundError):
            await community.get_post_view(post.id)
        remaining = (
            await db_session.execute(select(func.count(Comment.id)).where(Comment.board_post_id == post.id))
        ).scalar()
        assert remaining == 0


class TestQna:
    async def test_anyone_asks_mentors_answer(self, db_session, community, other_actor, mentor_actor, author_actor):
        question = await community.ask_question(other_actor, "How to cite?", "APA or MLA?")

        reply = await community.reply(question.id, mentor_actor, "Use APA.")
        assert reply.question_id == question.id

        with pytest.raises(ForbiddenError, match="mentors"):
            await community.reply(question.id, author_actor, "I think MLA")
        stored = (
            await db_session.execute(select(QnaReply.author_id).where(QnaReply.question_id == question.id))
        ).scalars().all()
        assert stored == [mentor_actor.id]

        view = await community.get_question_view(question.id)
        assert view.author_name == "Lee Other"
        assert [(r.author_name, r.author_role) for r in view.replies] == [("Park Mentor", "mentor")]

    async def test_admin_may_reply(self, community, other_actor, admin_actor):
        question = await community.ask_question(other_actor, "Deadline?", "When is it?")
        reply = await community.reply(question.id, admin_actor, "Friday")
        assert reply.author_id == admin_actor.id

    async def test_reply_to_missing_question(self, community, mentor_actor):
        with pytest.raises(NotFoundError):
            await community.reply(uuid.uuid4(), mentor_actor, "Hello")

    async def test_listing_newest_first_with_replies(self, community, other_actor, author_actor, mentor_actor):
        older = await community.ask_question(other_actor, "Older", "First question")
        newer = await community.ask_question(author_actor, "Newer", "Second question")
        await community.reply(older.id, mentor_actor, "Answer")

        views = await community.list_questions()
        assert {v.question.id for v in views} == {older.id, newer.id}
        replies = {v.question.id: len(v.replies) for v in views}
        assert replies == {older.id: 1, newer.id: 0}

    async def test_owner_edits_and_deletes(self, community, other_actor, author_actor, mentor_actor):
        question = await community.ask_question(other_actor, "Typo", "Qestion")
        reply = await community.reply(question.id, mentor_actor, "Answer")

        with pytest.raises(ForbiddenError):
            await community.edit_question(question.id, author_actor, "Mine now", "x")
        edited = await community.edit_question(question.id, other_actor, "Fixed", "Question")
        assert edited.title == "Fixed"

        with pytest.raises(ForbiddenError):
            await community.edit_reply(reply.id, other_actor, "Changed")
        assert (await community.edit_reply(reply.id, mentor_actor, "Better answer")).content == "Better answer"

        await community.delete_question(question.id, other_actor)
        with pytest.raises(NotFoundError):
            await community.get_reply(reply.id)
        with pytest.raises(NotFoundError):
            await community.get_question(question.id)

    async def test_delete_reply(self, community, other_actor, mentor_actor, admin_actor):
        question = await community.ask_question(other_actor, "Q", "Body")
        reply = await community.reply(question.id, mentor_actor, "A")

        await community.delete_reply(reply.id, admin_actor)

        view = await community.get_question_view(question.id)
        assert view.replies == []
