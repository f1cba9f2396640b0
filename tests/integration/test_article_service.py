"""Tests for paper creation, the version ledger and deletion cascades."""

import logging
import uuid

import pytest
from sqlalchemy import func, select

from minjok.kernel.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    StoreFailure,
    ThrottleError,
    ValidationError,
)
from minjok.kernel.identity.actor import Actor
from minjok.kernel.models.article import Article, ArticleAuthor, ArticleVersion
from minjok.kernel.models.base import enum_value
from minjok.kernel.models.comment import Comment
from minjok.kernel.storage.object_storage import (
    ARTICLES_BUCKET,
    LocalObjectStorage,
    StorageError,
    discard_pending_removals,
    run_pending_removals,
)
from minjok.services.article_service import ArticleService, version_storage_path
from minjok.services.comment_service import CommentService


class FailingStorage(LocalObjectStorage):
    async def upload(self, bucket, path, data, content_type=None):
        raise StorageError("disk full")


async def _count(session, model, *conditions) -> int:
    return (await session.execute(select(func.count()).select_from(model).where(*conditions))).scalar()


class TestCreateArticle:
    async def test_creates_draft_with_first_version(self, article_service, storage, author_actor, make_file):
        article = await article_service.create_article(
            author_actor, "  On Rivers  ", make_file("rivers.pdf"), notes="first cut"
        )

        assert article.title == "On Rivers"
        assert enum_value(article.status) == "draft"

        versions = await article_service.list_versions(article.id)
        assert [v.version_number for v in versions] == [1]
        v1 = versions[0]
        assert article.current_version_id == v1.id
        assert v1.notes == "first cut"
        assert v1.storage_path == version_storage_path(author_actor.id, article.id, 1, "rivers.pdf")
        assert (storage.root / ARTICLES_BUCKET / v1.storage_path).exists()

    async def test_submitter_is_first_corresponding_author(
        self, db_session, article_service, author_actor, other, make_file
    ):
        article = await article_service.create_article(
            author_actor, "Joint work", make_file(), coauthor_ids=[other.id, author_actor.id, other.id]
        )

        authors = (
            await db_session.execute(
                select(ArticleAuthor).where(ArticleAuthor.article_id == article.id).order_by(ArticleAuthor.position)
            )
        ).scalars().all()

        assert [a.profile_id for a in authors] == [author_actor.id, other.id]
        assert [a.is_corresponding for a in authors] == [True, False]

    async def test_title_required(self, db_session, article_service, author_actor, make_file):
        with pytest.raises(ValidationError, match="Title is required"):
            await article_service.create_article(author_actor, "  ", make_file())
        assert await _count(db_session, Article) == 0

    async def test_file_required(self, article_service, author_actor, make_file):
        with pytest.raises(ValidationError, match="File is required"):
            await article_service.create_article(author_actor, "No file", None)
        with pytest.raises(ValidationError, match="File is required"):
            await article_service.create_article(author_actor, "Empty file", make_file(content=b""))

    async def test_unknown_coauthor_rejected(self, article_service, author_actor, make_file):
        with pytest.raises(ValidationError, match="Unknown co-author"):
            await article_service.create_article(
                author_actor, "Ghost author", make_file(), coauthor_ids=[uuid.uuid4()]
            )

    async def test_per_author_cooldown(self, article_service, author_actor, other_actor, make_file, clock):
        await article_service.create_article(author_actor, "First", make_file())

        clock.advance(3)
        with pytest.raises(ThrottleError):
            await article_service.create_article(author_actor, "Second", make_file())

        # Other authors are not affected
        await article_service.create_article(other_actor, "Someone else", make_file())

        clock.advance(3)
        second = await article_service.create_article(author_actor, "Second", make_file())
        assert second.title == "Second"

    async def test_storage_failure_is_a_store_failure(self, db_session, author_actor, make_file, clock, tmp_path):
        service = ArticleService(db_session, FailingStorage(str(tmp_path / "s"), "http://test"), clock=clock)

        with pytest.raises(StoreFailure) as exc_info:
            await service.create_article(author_actor, "Doomed", make_file())
        assert isinstance(exc_info.value.cause, StorageError)


class TestUploadVersion:
    async def test_numbers_increase_and_pointer_moves(self, article_service, author_actor, make_file, clock):
        article = await article_service.create_article(author_actor, "Paper", make_file())

        clock.advance(6)
        v2 = await article_service.upload_version(article.id, author_actor, make_file("v2.pdf"), notes="fixes")
        clock.advance(6)
        v3 = await article_service.upload_version(article.id, author_actor, make_file("v3.pdf"))

        assert (v2.version_number, v3.version_number) == (2, 3)
        assert article.current_version_id == v3.id
        versions = await article_service.list_versions(article.id)
        assert [v.version_number for v in versions] == [3, 2, 1]

    async def test_per_article_cooldown_applies_to_everyone(
        self, db_session, article_service, author_actor, admin_actor, make_file, clock
    ):
        article = await article_service.create_article(author_actor, "Paper", make_file())
        first_version_id = article.current_version_id

        clock.advance(2)
        with pytest.raises(ThrottleError):
            await article_service.upload_version(article.id, admin_actor, make_file())
        assert await _count(db_session, ArticleVersion, ArticleVersion.article_id == article.id) == 1
        assert article.current_version_id == first_version_id

        clock.advance(4)
        version = await article_service.upload_version(article.id, admin_actor, make_file())
        assert version.version_number == 2

    async def test_listed_coauthor_may_upload(self, article_service, author_actor, other, make_file, clock):
        article = await article_service.create_article(
            author_actor, "Joint", make_file(), coauthor_ids=[other.id]
        )
        clock.advance(6)

        version = await article_service.upload_version(article.id, Actor.from_profile(other), make_file())
        assert version.uploaded_by == other.id

    async def test_stranger_may_not_upload(self, article_service, author_actor, other_actor, make_file, clock):
        article = await article_service.create_article(author_actor, "Paper", make_file())
        clock.advance(6)

        with pytest.raises(ForbiddenError):
            await article_service.upload_version(article.id, other_actor, make_file())

    async def test_missing_paper(self, article_service, author_actor, make_file):
        with pytest.raises(NotFoundError):
            await article_service.upload_version(uuid.uuid4(), author_actor, make_file())

    async def test_empty_file_rejected(self, article_service, author_actor, make_file, clock):
        article = await article_service.create_article(author_actor, "Paper", make_file())
        clock.advance(6)

        with pytest.raises(ValidationError):
            await article_service.upload_version(article.id, author_actor, make_file(content=b""))

    async def test_number_conflict_is_retried(
        self, article_service, author_actor, make_file, clock, monkeypatch, caplog
    ):
        article = await article_service.create_article(author_actor, "Paper", make_file())
        clock.advance(6)

        real_next = article_service.next_version_number
        calls = []

        async def stale_then_real(article_id):
            # First answer is stale, as if another upload claimed the number first
            calls.append(article_id)
            if len(calls) == 1:
                return 1
            return await real_next(article_id)

        monkeypatch.setattr(article_service, "next_version_number", stale_then_real)

        with caplog.at_level(logging.WARNING):
            version = await article_service.upload_version(article.id, author_actor, make_file("v2.pdf"))

        assert version.version_number == 2
        assert len(calls) == 2
        assert "Version number conflict" in caplog.text

    async def test_persistent_conflict_gives_up(
        self, db_session, article_service, author_actor, make_file, clock, monkeypatch
    ):
        article = await article_service.create_article(author_actor, "Paper", make_file())
        clock.advance(6)

        async def always_stale(article_id):
            return 1

        monkeypatch.setattr(article_service, "next_version_number", always_stale)

        with pytest.raises(ConflictError):
            await article_service.upload_version(article.id, author_actor, make_file("v2.pdf"))
        assert await _count(db_session, ArticleVersion, ArticleVersion.article_id == article.id) == 1


class TestVisibility:
    async def test_draft_hidden_from_strangers(self, article_service, author_actor, other_actor, make_file):
        article = await article_service.create_article(author_actor, "Secret draft", make_file())

        with pytest.raises(NotFoundError):
            await article_service.get_article_detail(article.id, other_actor)
        with pytest.raises(NotFoundError):
            await article_service.get_article_detail(article.id, None)

        detail = await article_service.get_article_detail(article.id, author_actor)
        assert detail.article.id == article.id
        assert detail.author.id == author_actor.id

    async def test_reviewers_see_papers_in_review(self, article_service, author_actor, mentor_actor, make_file):
        article = await article_service.create_article(author_actor, "Under review", make_file())
        await article_service.submit_for_review(article.id, author_actor)

        detail = await article_service.get_article_detail(article.id, mentor_actor)
        assert detail.article.id == article.id

        queue = await article_service.list_review_queue(mentor_actor)
        assert [a.id for a in queue] == [article.id]

    async def test_review_queue_forbidden_for_mentees(self, article_service, other_actor):
        with pytest.raises(ForbiddenError):
            await article_service.list_review_queue(other_actor)

    async def test_published_is_public(self, article_service, make_published_paper):
        article = await make_published_paper("Open paper")

        detail = await article_service.get_article_detail(article.id, None)
        assert detail.article.title == "Open paper"


class TestListings:
    async def test_list_published_search_and_pages(
        self, article_service, make_published_paper, author_actor, make_file
    ):
        await make_published_paper("Rivers of Korea")
        await make_published_paper("Mountain ecology", description="rivers mentioned here")
        await make_published_paper("Urban planning")
        await article_service.create_article(author_actor, "Rivers draft", make_file())

        result = await article_service.list_published(search="rivers")
        assert {a.title for a in result.items} == {"Rivers of Korea", "Mountain ecology"}
        assert result.total == 2

        everything = await article_service.list_published()
        assert everything.total == 3
        assert everything.pages == 1

    async def test_search_treats_wildcards_literally(self, article_service, make_published_paper):
        await make_published_paper("100% recall")
        await make_published_paper("Plain title")

        result = await article_service.list_published(search="%")
        assert [a.title for a in result.items] == ["100% recall"]


class TestDeletion:
    async def test_delete_current_version_moves_pointer(
        self, db_session, commit, article_service, storage, author_actor, make_file, make_published_paper, clock
    ):
        article = await make_published_paper("Paper")
        v1_id = article.current_version_id
        await CommentService(db_session).post_paper_comment(article.id, author_actor, "on v1")

        v2 = await article_service.upload_version(article.id, author_actor, make_file("v2.pdf"))
        clock.advance(6)
        v3 = await article_service.upload_version(article.id, author_actor, make_file("v3.pdf"))

        result = await article_service.delete_version(article.id, v3.id, author_actor)
        assert result.article_deleted is False
        assert result.current_version_id == v2.id
        assert article.current_version_id == v2.id
        v3_file = storage.root / ARTICLES_BUCKET / v3.storage_path
        assert v3_file.exists()
        await commit()
        assert not v3_file.exists()

        await article_service.delete_version(article.id, v1_id, author_actor)
        assert await _count(db_session, Comment, Comment.article_id == article.id) == 0
        assert [v.version_number for v in await article_service.list_versions(article.id)] == [2]

    async def test_deleting_only_version_deletes_paper(self, db_session, article_service, author_actor, make_file):
        article = await article_service.create_article(author_actor, "Short-lived", make_file())

        result = await article_service.delete_version(article.id, article.current_version_id, author_actor)

        assert result.article_deleted is True
        assert await _count(db_session, Article, Article.id == article.id) == 0

    async def test_only_author_or_admin_may_delete(
        self, article_service, author_actor, other_actor, admin_actor, make_file
    ):
        article = await article_service.create_article(author_actor, "Paper", make_file())

        with pytest.raises(ForbiddenError):
            await article_service.delete_article(article.id, other_actor)

        await article_service.delete_article(article.id, admin_actor)
        with pytest.raises(NotFoundError):
            await article_service.get_article(article.id)

    async def test_delete_article_cascades(
        self, db_session, commit, article_service, storage, author_actor, make_file, make_published_paper
    ):
        article = await make_published_paper("Doomed")
        await article_service.upload_version(article.id, author_actor, make_file("v2.pdf"))
        paths = [v.storage_path for v in await article_service.list_versions(article.id)]
        await CommentService(db_session).post_paper_comment(article.id, author_actor, "nice")

        await article_service.delete_article(article.id, author_actor)

        assert await _count(db_session, ArticleVersion, ArticleVersion.article_id == article.id) == 0
        assert await _count(db_session, ArticleAuthor, ArticleAuthor.article_id == article.id) == 0
        assert await _count(db_session, Comment, Comment.article_id == article.id) == 0
        await commit()
        for path in paths:
            assert not (storage.root / ARTICLES_BUCKET / path).exists()

    async def test_rolled_back_deletion_keeps_files(
        self, db_session, commit, article_service, storage, author_actor, make_file
    ):
        article = await article_service.create_article(author_actor, "Survivor", make_file())
        [version] = await article_service.list_versions(article.id)
        article_id, version_id = article.id, version.id
        stored_file = storage.root / ARTICLES_BUCKET / version.storage_path
        await commit()

        await article_service.delete_article(article_id, author_actor)
        discard_pending_removals(db_session)
        await db_session.rollback()
        await run_pending_removals(db_session)

        assert stored_file.exists()
        assert (await article_service.get_article(article_id)).current_version_id == version_id
