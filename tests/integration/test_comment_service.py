"""Tests for version-pinned paper comments and board comments."""

import uuid
from datetime import timedelta

import pytest

from minjok.kernel.errors import ForbiddenError, NotFoundError, ValidationError
from minjok.services.comment_service import CommentService
from minjok.services.community_service import CommunityService


@pytest.fixture
def comments(db_session) -> CommentService:
    return CommentService(db_session)


class TestPaperComments:
    async def test_comment_pinned_to_current_version(
        self, comments, article_service, make_published_paper, author_actor, other_actor, make_file
    ):
        article = await make_published_paper()
        v1_id = article.current_version_id

        first = await comments.post_paper_comment(article.id, other_actor, "  Great start  ")
        v2 = await article_service.upload_version(article.id, author_actor, make_file("v2.pdf"))
        second = await comments.post_paper_comment(article.id, other_actor, "Better now")

        assert first.body == "Great start"
        assert first.version_id == v1_id
        assert second.version_id == v2.id

        v1_threads = await comments.list_version_threads(v1_id)
        assert [t.root.comment.id for t in v1_threads] == [first.id]
        assert v1_threads[0].root.author_name == "Lee Other"

        everything = await comments.list_article_comments(article.id)
        assert {t.root.comment.id for t in everything} == {first.id, second.id}

    async def test_unpublished_paper_rejects_comments(self, comments, article_service, author_actor, make_file):
        article = await article_service.create_article(author_actor, "Draft", make_file())

        with pytest.raises(ValidationError, match="published"):
            await comments.post_paper_comment(article.id, author_actor, "Too early")

    async def test_missing_paper(self, comments, other_actor):
        with pytest.raises(NotFoundError):
            await comments.post_paper_comment(uuid.uuid4(), other_actor, "Hello")

    async def test_empty_body_rejected(self, comments, make_published_paper, other_actor):
        article = await make_published_paper()

        with pytest.raises(ValidationError, match="empty"):
            await comments.post_paper_comment(article.id, other_actor, "   ")

    async def test_threads_are_one_level_deep(self, comments, make_published_paper, author_actor, other_actor):
        article = await make_published_paper()
        root = await comments.post_paper_comment(article.id, other_actor, "Question about section 2")
        reply = await comments.post_paper_comment(article.id, author_actor, "Clarified", parent_id=root.id)

        with pytest.raises(ValidationError, match="top-level"):
            await comments.post_paper_comment(article.id, other_actor, "Thanks", parent_id=reply.id)

        threads = await comments.list_version_threads(article.current_version_id)
        assert len(threads) == 1
        assert [r.comment.id for r in threads[0].replies] == [reply.id]

    async def test_parent_must_belong_to_same_paper(
        self, comments, make_published_paper, other_actor
    ):
        first = await make_published_paper("First")
        second = await make_published_paper("Second")
        root = await comments.post_paper_comment(first.id, other_actor, "On the first paper")

        with pytest.raises(ValidationError, match="another paper"):
            await comments.post_paper_comment(second.id, other_actor, "Cross-linked", parent_id=root.id)

    async def test_reply_on_newer_version_shows_as_root(
        self, comments, article_service, make_published_paper, author_actor, other_actor, make_file
    ):
        article = await make_published_paper()
        root = await comments.post_paper_comment(article.id, other_actor, "On v1")
        v2 = await article_service.upload_version(article.id, author_actor, make_file("v2.pdf"))
        reply = await comments.post_paper_comment(article.id, author_actor, "Fixed in v2", parent_id=root.id)

        v2_threads = await comments.list_version_threads(v2.id)
        assert [t.root.comment.id for t in v2_threads] == [reply.id]

        all_threads = await comments.list_article_comments(article.id)
        assert len(all_threads) == 1
        assert [r.comment.id for r in all_threads[0].replies] == [reply.id]

    async def test_promoted_reply_keeps_chronological_place(
        self, db_session, comments, article_service, make_published_paper, author_actor, other_actor, make_file
    ):
        article = await make_published_paper()
        root = await comments.post_paper_comment(article.id, other_actor, "On v1")
        v2 = await article_service.upload_version(article.id, author_actor, make_file("v2.pdf"))
        reply = await comments.post_paper_comment(article.id, author_actor, "Fixed in v2", parent_id=root.id)
        later = await comments.post_paper_comment(article.id, other_actor, "Thanks")
        reply.created_at = root.created_at + timedelta(seconds=1)
        later.created_at = root.created_at + timedelta(seconds=2)
        await db_session.flush()

        v2_threads = await comments.list_version_threads(v2.id)
        assert [t.root.comment.id for t in v2_threads] == [reply.id, later.id]


class TestEditAndDelete:
    async def test_only_author_or_admin_edits(
        self, comments, make_published_paper, other_actor, author_actor, admin_actor
    ):
        article = await make_published_paper()
        comment = await comments.post_paper_comment(article.id, other_actor, "Original")

        with pytest.raises(ForbiddenError):
            await comments.edit_comment(comment.id, author_actor, "Hijacked")

        edited = await comments.edit_comment(comment.id, other_actor, " Revised ")
        assert edited.body == "Revised"

        moderated = await comments.edit_comment(comment.id, admin_actor, "Moderated")
        assert moderated.body == "Moderated"

    async def test_edit_requires_body(self, comments, make_published_paper, other_actor):
        article = await make_published_paper()
        comment = await comments.post_paper_comment(article.id, other_actor, "Original")

        with pytest.raises(ValidationError):
            await comments.edit_comment(comment.id, other_actor, "")

    async def test_deleting_root_removes_replies(
        self, comments, make_published_paper, author_actor, other_actor
    ):
        article = await make_published_paper()
        root = await comments.post_paper_comment(article.id, other_actor, "Root")
        await comments.post_paper_comment(article.id, author_actor, "Reply", parent_id=root.id)
        keeper = await comments.post_paper_comment(article.id, author_actor, "Unrelated")

        await comments.delete_comment(root.id, other_actor)

        threads = await comments.list_article_comments(article.id)
        assert [t.root.comment.id for t in threads] == [keeper.id]
        assert threads[0].replies == []

    async def test_stranger_cannot_delete(self, comments, make_published_paper, other_actor, author_actor):
        article = await make_published_paper()
        comment = await comments.post_paper_comment(article.id, other_actor, "Mine")

        with pytest.raises(ForbiddenError):
            await comments.delete_comment(comment.id, author_actor)

    async def test_missing_comment(self, comments, other_actor):
        with pytest.raises(NotFoundError):
            await comments.delete_comment(uuid.uuid4(), other_actor)


class TestBoardComments:
    async def test_comment_on_board_post(self, db_session, comments, admin_actor, other_actor):
        post = await CommunityService(db_session).create_post(admin_actor, "Notice", "Deadline is Friday")

        root = await comments.post_board_comment(post.id, other_actor, "Noted")
        await comments.post_board_comment(post.id, admin_actor, "Thanks", parent_id=root.id)

        threads = await comments.list_board_threads(post.id)
        assert len(threads) == 1
        assert threads[0].root.comment.article_id is None
        assert [r.author_name for r in threads[0].replies] == ["Choi Admin"]

    async def test_missing_post(self, comments, other_actor):
        with pytest.raises(NotFoundError):
            await comments.post_board_comment(uuid.uuid4(), other_actor, "Hello?")
