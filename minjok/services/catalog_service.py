"""
Catalog service: issues (bundles of published papers) and volumes
(bundles of released issues).

Creation validates everything before the first write, then inserts the
bundle row, its ordered memberships and the cover in one transaction. A
membership that another admin claimed concurrently trips the unique
constraint and surfaces as a ConflictError.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional, Sequence

from sqlalchemy import and_, delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from minjok.kernel.errors import ConflictError, NotFoundError, StoreFailure, ValidationError
from minjok.kernel.events.event_store import EventStore
from minjok.kernel.identity.actor import Actor
from minjok.kernel.models.article import Article, ArticleStatus
from minjok.kernel.models.base import utc_now
from minjok.kernel.models.catalog import Issue, IssueArticle, ReleaseStatus, Volume, VolumeIssue
from minjok.kernel.models.event_log import EventType
from minjok.kernel.permissions.policy import require_catalog_manager
from minjok.kernel.storage.object_storage import (
    COVERS_BUCKET,
    ObjectStorage,
    StorageError,
    UploadedFile,
    safe_file_name,
    schedule_removal,
)
from minjok.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class IssueView:
    issue: Issue
    articles: List[Article] = field(default_factory=list)


@dataclass
class VolumeView:
    volume: Volume
    issues: List[Issue] = field(default_factory=list)


def _dedupe(ids: Sequence[uuid.UUID]) -> List[uuid.UUID]:
    ordered: List[uuid.UUID] = []
    for item in ids:
        if item not in ordered:
            ordered.append(item)
    return ordered


def _parse_status(status: Optional[str]) -> ReleaseStatus:
    try:
        return ReleaseStatus(status or ReleaseStatus.RELEASED.value)
    except ValueError:
        raise ValidationError("Status must be 'draft' or 'released'.") from None


class CatalogService:
    def __init__(
        self,
        session: AsyncSession,
        storage: ObjectStorage,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.session = session
        self.storage = storage
        self.clock = clock
        self.event_store = EventStore(session)

    # ------------------------------------------------------------------
    # Issues
    # ------------------------------------------------------------------

    async def available_articles(self) -> List[Article]:
        """Published articles not yet attached to any issue."""
        attached = select(IssueArticle.article_id)
        query = (
            select(Article)
            .where(
                and_(
                    Article.status == ArticleStatus.PUBLISHED.value,
                    Article.id.not_in(attached),
                )
            )
            .order_by(Article.updated_at.desc())
        )
        return list((await self.session.execute(query)).scalars().all())

    async def create_issue(
        self,
        actor: Actor,
        title: Optional[str],
        description: Optional[str],
        status: Optional[str],
        cover: Optional[UploadedFile],
        article_ids: Sequence[uuid.UUID],
        ip_address: Optional[str] = None,
    ) -> Issue:
        require_catalog_manager(actor)
        clean_title = (title or "").strip()
        if not clean_title:
            raise ValidationError("Title is required.")
        ids = _dedupe(article_ids)
        if not ids:
            raise ValidationError("Select at least one published paper.")
        cover_name = self._validate_cover(cover)
        release_status = _parse_status(status)

        published = set(
            (
                await self.session.execute(
                    select(Article.id).where(
                        and_(
                            Article.id.in_(ids),
                            Article.status == ArticleStatus.PUBLISHED.value,
                        )
                    )
                )
            ).scalars().all()
        )
        if len(published) != len(ids):
            raise ValidationError("Only published papers can be added to an issue.")

        taken = (
            await self.session.execute(select(IssueArticle.article_id).where(IssueArticle.article_id.in_(ids)))
        ).scalars().all()
        if taken:
            raise ConflictError("One or more selected papers already belong to an issue.")

        issue = Issue(
            title=clean_title,
            description=(description or "").strip() or None,
            status=release_status,
            release_date=self.clock() if release_status is ReleaseStatus.RELEASED else None,
            created_by=actor.id,
        )
        self.session.add(issue)
        await self.session.flush()

        try:
            async with self.session.begin_nested():
                self.session.add_all(
                    IssueArticle(issue_id=issue.id, article_id=article_id, position=position)
                    for position, article_id in enumerate(ids)
                )
                await self.session.flush()
        except IntegrityError as exc:
            raise ConflictError("One or more selected papers were just added to another issue.") from exc

        await self._attach_cover(issue, f"issues/{issue.id}/{cover_name}", cover)

        await self.event_store.log(
            event_type=EventType.ISSUE_CREATED,
            entity_type="issue",
            entity_id=issue.id,
            profile_id=actor.id,
            payload={"title": issue.title, "article_ids": ids, "status": release_status.value},
            ip_address=ip_address,
        )
        logger.info("Issue created", extra={"issue_id": str(issue.id), "article_count": len(ids)})
        return issue

    async def list_issues(self, include_drafts: bool = False) -> List[IssueView]:
        """Issues newest first, each with its articles in position order."""
        query = select(Issue).order_by(Issue.created_at.desc())
        if not include_drafts:
            query = query.where(Issue.status == ReleaseStatus.RELEASED.value)
        issues = list((await self.session.execute(query)).scalars().all())
        views = {issue.id: IssueView(issue=issue) for issue in issues}
        if views:
            rows = (
                await self.session.execute(
                    select(IssueArticle.issue_id, Article)
                    .join(Article, IssueArticle.article_id == Article.id)
                    .where(IssueArticle.issue_id.in_(list(views)))
                    .order_by(IssueArticle.position)
                )
            ).all()
            for issue_id, article in rows:
                views[issue_id].articles.append(article)
        return list(views.values())

    async def delete_issue(self, actor: Actor, issue_id: uuid.UUID, ip_address: Optional[str] = None) -> None:
        require_catalog_manager(actor)
        issue = (await self.session.execute(select(Issue).where(Issue.id == issue_id))).scalar_one_or_none()
        if issue is None:
            raise NotFoundError("Issue not found")

        await self.session.execute(delete(VolumeIssue).where(VolumeIssue.issue_id == issue.id))
        await self.session.execute(delete(IssueArticle).where(IssueArticle.issue_id == issue.id))
        cover_path = issue.cover_path
        await self.session.delete(issue)
        await self.session.flush()
        schedule_removal(self.session, self.storage, COVERS_BUCKET, [cover_path])

        await self.event_store.log(
            event_type=EventType.ISSUE_DELETED,
            entity_type="issue",
            entity_id=issue_id,
            profile_id=actor.id,
            payload={"title": issue.title},
            ip_address=ip_address,
        )

    # ------------------------------------------------------------------
    # Volumes
    # ------------------------------------------------------------------

    async def available_issues(self) -> List[Issue]:
        """Released issues not yet attached to any volume."""
        attached = select(VolumeIssue.issue_id)
        query = (
            select(Issue)
            .where(
                and_(
                    Issue.status == ReleaseStatus.RELEASED.value,
                    Issue.id.not_in(attached),
                )
            )
            .order_by(Issue.created_at.desc())
        )
        return list((await self.session.execute(query)).scalars().all())

    async def create_volume(
        self,
        actor: Actor,
        title: Optional[str],
        description: Optional[str],
        status: Optional[str],
        cover: Optional[UploadedFile],
        issue_ids: Sequence[uuid.UUID],
        ip_address: Optional[str] = None,
    ) -> Volume:
        require_catalog_manager(actor)
        clean_title = (title or "").strip()
        if not clean_title:
            raise ValidationError("Title is required.")
        ids = _dedupe(issue_ids)
        if not ids:
            raise ValidationError("Select at least one released issue.")
        cover_name = self._validate_cover(cover)
        release_status = _parse_status(status)

        released = set(
            (
                await self.session.execute(
                    select(Issue.id).where(
                        and_(
                            Issue.id.in_(ids),
                            Issue.status == ReleaseStatus.RELEASED.value,
                        )
                    )
                )
            ).scalars().all()
        )
        if len(released) != len(ids):
            raise ValidationError("Only released issues can be added to a volume.")

        taken = (
            await self.session.execute(select(VolumeIssue.issue_id).where(VolumeIssue.issue_id.in_(ids)))
        ).scalars().all()
        if taken:
            raise ConflictError("One or more selected issues already belong to a volume.")

        volume = Volume(
            title=clean_title,
            description=(description or "").strip() or None,
            status=release_status,
            release_date=self.clock() if release_status is ReleaseStatus.RELEASED else None,
            created_by=actor.id,
        )
        self.session.add(volume)
        await self.session.flush()

        try:
            async with self.session.begin_nested():
                self.session.add_all(
                    VolumeIssue(volume_id=volume.id, issue_id=issue_id, position=position)
                    for position, issue_id in enumerate(ids)
                )
                await self.session.flush()
        except IntegrityError as exc:
            raise ConflictError("One or more selected issues were just added to another volume.") from exc

        await self._attach_cover(volume, f"volumes/{volume.id}/{cover_name}", cover)

        await self.event_store.log(
            event_type=EventType.VOLUME_CREATED,
            entity_type="volume",
            entity_id=volume.id,
            profile_id=actor.id,
            payload={"title": volume.title, "issue_ids": ids, "status": release_status.value},
            ip_address=ip_address,
        )
        logger.info("Volume created", extra={"volume_id": str(volume.id), "issue_count": len(ids)})
        return volume

    async def list_volumes(self, include_drafts: bool = False) -> List[VolumeView]:
        query = select(Volume).order_by(Volume.created_at.desc())
        if not include_drafts:
            query = query.where(Volume.status == ReleaseStatus.RELEASED.value)
        volumes = list((await self.session.execute(query)).scalars().all())
        views = {volume.id: VolumeView(volume=volume) for volume in volumes}
        if views:
            rows = (
                await self.session.execute(
                    select(VolumeIssue.volume_id, Issue)
                    .join(Issue, VolumeIssue.issue_id == Issue.id)
                    .where(VolumeIssue.volume_id.in_(list(views)))
                    .order_by(VolumeIssue.position)
                )
            ).all()
            for volume_id, issue in rows:
                views[volume_id].issues.append(issue)
        return list(views.values())

    async def delete_volume(self, actor: Actor, volume_id: uuid.UUID, ip_address: Optional[str] = None) -> None:
        require_catalog_manager(actor)
        volume = (await self.session.execute(select(Volume).where(Volume.id == volume_id))).scalar_one_or_none()
        if volume is None:
            raise NotFoundError("Volume not found")

        await self.session.execute(delete(VolumeIssue).where(VolumeIssue.volume_id == volume.id))
        cover_path = volume.cover_path
        await self.session.delete(volume)
        await self.session.flush()
        schedule_removal(self.session, self.storage, COVERS_BUCKET, [cover_path])

        await self.event_store.log(
            event_type=EventType.VOLUME_DELETED,
            entity_type="volume",
            entity_id=volume_id,
            profile_id=actor.id,
            payload={"title": volume.title},
            ip_address=ip_address,
        )

    # ------------------------------------------------------------------
    # Covers
    # ------------------------------------------------------------------

    @staticmethod
    def _validate_cover(cover: Optional[UploadedFile]) -> str:
        if cover is None or cover.is_empty:
            raise ValidationError("Cover image is required.")
        try:
            return safe_file_name(cover.file_name)
        except StorageError as exc:
            raise ValidationError(str(exc)) from exc

    async def _attach_cover(self, bundle, path: str, cover: UploadedFile) -> None:
        """Store the cover, then patch its public URL onto the bundle row."""
        try:
            await self.storage.upload(COVERS_BUCKET, path, cover.content, cover.content_type)
        except StorageError as exc:
            raise StoreFailure("Failed to store cover image", cause=exc) from exc

        try:
            bundle.cover_path = path
            bundle.cover_url = self.storage.get_public_url(COVERS_BUCKET, path)
            await self.session.flush()
        except SQLAlchemyError as exc:
            await self.storage.remove(COVERS_BUCKET, [path])
            raise StoreFailure("Failed to save cover URL", cause=exc) from exc
