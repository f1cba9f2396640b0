"""Tests for issues and volumes."""

import uuid

import pytest
from sqlalchemy import func, select

from minjok.kernel.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from minjok.kernel.models.base import enum_value
from minjok.kernel.models.catalog import Issue, IssueArticle, ReleaseStatus
from minjok.kernel.storage.object_storage import COVERS_BUCKET, UploadedFile
from minjok.services.catalog_service import CatalogService


@pytest.fixture
def catalog(db_session, storage, clock) -> CatalogService:
    return CatalogService(db_session, storage, clock=clock)


@pytest.fixture
def cover() -> UploadedFile:
    return UploadedFile(file_name="cover.png", content=b"\x89PNG cover", content_type="image/png")


@pytest.fixture
def make_issue(catalog, admin_actor, cover, make_published_paper):
    async def _make(title: str = "Spring Issue", status: str = "released", papers: int = 1):
        ids = [(await make_published_paper(f"{title} paper {n}")).id for n in range(papers)]
        return await catalog.create_issue(admin_actor, title, None, status, cover, ids)

    return _make


class TestIssues:
    async def test_create_released_issue(self, catalog, storage, admin_actor, cover, make_published_paper, clock):
        first = await make_published_paper("First")
        second = await make_published_paper("Second")

        issue = await catalog.create_issue(
            admin_actor, " Spring 2026 ", "Student work", "released", cover, [second.id, first.id, second.id]
        )

        assert issue.title == "Spring 2026"
        assert issue.release_date == clock.now
        assert issue.cover_path == f"issues/{issue.id}/cover.png"
        assert issue.cover_url == storage.get_public_url(COVERS_BUCKET, issue.cover_path)
        assert (storage.root / COVERS_BUCKET / issue.cover_path).exists()

        [view] = await catalog.list_issues()
        assert [a.id for a in view.articles] == [second.id, first.id]

    async def test_draft_issue_hidden_from_public_listing(self, catalog, make_issue):
        issue = await make_issue(status="draft")

        assert issue.release_date is None
        assert await catalog.list_issues() == []
        assert [v.issue.id for v in await catalog.list_issues(include_drafts=True)] == [issue.id]

    async def test_requires_admin(self, catalog, author_actor, cover, make_published_paper):
        article = await make_published_paper()

        with pytest.raises(ForbiddenError):
            await catalog.create_issue(author_actor, "Mine", None, "released", cover, [article.id])

    @pytest.mark.parametrize(
        "title,status,with_cover,with_papers,message",
        [
            ("", "released", True, True, "Title is required"),
            ("Issue", "released", True, False, "at least one published paper"),
            ("Issue", "released", False, True, "Cover image is required"),
            ("Issue", "archived", True, True, "Status must be"),
        ],
    )
    async def test_validation(
        self, db_session, catalog, storage, admin_actor, cover, make_published_paper,
        title, status, with_cover, with_papers, message,
    ):
        article = await make_published_paper()

        with pytest.raises(ValidationError, match=message):
            await catalog.create_issue(
                admin_actor,
                title,
                None,
                status,
                cover if with_cover else None,
                [article.id] if with_papers else [],
            )
        assert (await db_session.execute(select(func.count(Issue.id)))).scalar() == 0
        assert not (storage.root / COVERS_BUCKET).exists()

    async def test_status_defaults_to_released(self, catalog, admin_actor, cover, make_published_paper):
        article = await make_published_paper()

        issue = await catalog.create_issue(admin_actor, "Issue", None, None, cover, [article.id])

        assert enum_value(issue.status) == ReleaseStatus.RELEASED.value
        assert issue.release_date is not None
        assert [v.issue.id for v in await catalog.list_issues()] == [issue.id]

    async def test_only_published_papers(self, catalog, admin_actor, cover, article_service, author_actor, make_file):
        draft = await article_service.create_article(author_actor, "Draft", make_file())

        with pytest.raises(ValidationError, match="Only published papers"):
            await catalog.create_issue(admin_actor, "Issue", None, "released", cover, [draft.id])

    async def test_paper_belongs_to_one_issue(self, catalog, admin_actor, cover, make_issue, db_session):
        issue = await make_issue()
        [article_id] = (
            await db_session.execute(select(IssueArticle.article_id).where(IssueArticle.issue_id == issue.id))
        ).scalars().all()

        assert article_id not in {a.id for a in await catalog.available_articles()}
        with pytest.raises(ConflictError):
            await catalog.create_issue(admin_actor, "Again", None, "released", cover, [article_id])

    async def test_available_articles(self, catalog, make_published_paper, make_issue):
        await make_issue()
        free = await make_published_paper("Unassigned")

        assert [a.id for a in await catalog.available_articles()] == [free.id]

    async def test_delete_issue_frees_papers_and_cover(
        self, catalog, storage, admin_actor, make_issue, db_session, commit
    ):
        issue = await make_issue()
        cover_file = storage.root / COVERS_BUCKET / issue.cover_path

        await catalog.delete_issue(admin_actor, issue.id)

        assert cover_file.exists()
        await commit()
        assert not cover_file.exists()
        assert len(await catalog.available_articles()) == 1
        count = (await db_session.execute(select(func.count(IssueArticle.id)))).scalar()
        assert count == 0

    async def test_delete_missing_issue(self, catalog, admin_actor):
        with pytest.raises(NotFoundError):
            await catalog.delete_issue(admin_actor, uuid.uuid4())


class TestVolumes:
    async def test_create_volume_from_released_issues(self, catalog, admin_actor, cover, make_issue):
        spring = await make_issue("Spring")
        fall = await make_issue("Fall")

        volume = await catalog.create_volume(admin_actor, "Volume 1", None, "released", cover, [spring.id, fall.id])

        assert volume.cover_path == f"volumes/{volume.id}/cover.png"
        [view] = await catalog.list_volumes()
        assert [i.id for i in view.issues] == [spring.id, fall.id]
        assert await catalog.available_issues() == []

    async def test_draft_issues_rejected(self, catalog, admin_actor, cover, make_issue):
        draft = await make_issue(status="draft")

        with pytest.raises(ValidationError, match="Only released issues"):
            await catalog.create_volume(admin_actor, "Volume", None, "released", cover, [draft.id])

    async def test_issue_belongs_to_one_volume(self, catalog, admin_actor, cover, make_issue):
        issue = await make_issue()
        await catalog.create_volume(admin_actor, "Volume 1", None, "draft", cover, [issue.id])

        with pytest.raises(ConflictError):
            await catalog.create_volume(admin_actor, "Volume 2", None, "released", cover, [issue.id])

    async def test_requires_at_least_one_issue(self, catalog, admin_actor, cover):
        with pytest.raises(ValidationError, match="at least one released issue"):
            await catalog.create_volume(admin_actor, "Empty", None, "released", cover, [])

    async def test_draft_volume_hidden(self, catalog, admin_actor, cover, make_issue):
        issue = await make_issue()
        volume = await catalog.create_volume(admin_actor, "Volume", None, "draft", cover, [issue.id])

        assert await catalog.list_volumes() == []
        assert [v.volume.id for v in await catalog.list_volumes(include_drafts=True)] == [volume.id]

    async def test_deleting_issue_detaches_it_from_volume(self, catalog, admin_actor, cover, make_issue):
        issue = await make_issue()
        volume = await catalog.create_volume(admin_actor, "Volume", None, "released", cover, [issue.id])

        await catalog.delete_issue(admin_actor, issue.id)

        [view] = await catalog.list_volumes()
        assert view.volume.id == volume.id
        assert view.issues == []

    async def test_delete_volume_frees_issues(self, catalog, admin_actor, mentor_actor, cover, make_issue):
        issue = await make_issue()
        volume = await catalog.create_volume(admin_actor, "Volume", None, "released", cover, [issue.id])

        with pytest.raises(ForbiddenError):
            await catalog.delete_volume(mentor_actor, volume.id)

        await catalog.delete_volume(admin_actor, volume.id)
        assert [i.id for i in await catalog.available_issues()] == [issue.id]
        assert await catalog.list_volumes(include_drafts=True) == []
