"""
Article service: paper creation, the version ledger, deletion cascades and
paper listings.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Sequence

from sqlalchemy import and_, delete, exists, func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from minjok.config import Settings, get_settings
from minjok.kernel.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    StoreFailure,
    ThrottleError,
    ValidationError,
)
from minjok.kernel.events.event_store import EventStore
from minjok.kernel.identity.actor import Actor
from minjok.kernel.models.article import Article, ArticleAuthor, ArticleStatus, ArticleVersion
from minjok.kernel.models.base import enum_value, utc_now
from minjok.kernel.models.catalog import IssueArticle
from minjok.kernel.models.comment import Comment
from minjok.kernel.models.event_log import EventType
from minjok.kernel.models.profile import Profile
from minjok.kernel.permissions.policy import can_review, require_mutate
from minjok.kernel.storage.object_storage import (
    ARTICLES_BUCKET,
    ObjectStorage,
    StorageError,
    UploadedFile,
    safe_file_name,
    schedule_removal,
)
from minjok.logging_config import get_logger
from minjok.orchestration.state_machine import StateMachine
from minjok.services.comment_service import CommentService, Thread
from minjok.services.pagination import Page, ilike_pattern, page_bounds

logger = get_logger(__name__)

# Attempts at claiming the next version number before giving up
VERSION_INSERT_ATTEMPTS = 3

ARTICLE_THROTTLE_MESSAGE = "You can only upload an article every 5 seconds. Please wait a moment."
VERSION_THROTTLE_MESSAGE = "A new version was uploaded moments ago. Please wait a few seconds and try again."


@dataclass
class AuthorEntry:
    profile_id: uuid.UUID
    full_name: str
    position: int
    is_corresponding: bool


@dataclass
class ArticleDetail:
    article: Article
    author: Profile
    authors: List[AuthorEntry] = field(default_factory=list)
    versions: List[ArticleVersion] = field(default_factory=list)


@dataclass
class VersionDetail:
    article: Article
    version: ArticleVersion
    file_url: str
    threads: List[Thread] = field(default_factory=list)


@dataclass
class VersionDeletion:
    article_deleted: bool
    current_version_id: Optional[uuid.UUID] = None


def version_storage_path(actor_id: uuid.UUID, article_id: uuid.UUID, number: int, file_name: str) -> str:
    return f"{actor_id}/{article_id}/v{number}/{file_name}"


class ArticleService:
    """
    Paper operations.

    Each public method runs inside the caller's transaction; storage writes
    are compensated (removed) if a later database step in the same method
    fails.
    """

    def __init__(
        self,
        session: AsyncSession,
        storage: ObjectStorage,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.session = session
        self.storage = storage
        self.settings = settings or get_settings()
        self.clock = clock
        self.event_store = EventStore(session)
        self.state_machine = StateMachine(session)

    @property
    def cooldown(self) -> timedelta:
        return timedelta(seconds=self.settings.submission_cooldown_seconds)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def get_article(self, article_id: uuid.UUID) -> Article:
        result = await self.session.execute(select(Article).where(Article.id == article_id))
        article = result.scalar_one_or_none()
        if article is None:
            raise NotFoundError("Paper not found")
        return article

    async def get_version(self, article_id: uuid.UUID, version_id: uuid.UUID) -> ArticleVersion:
        query = select(ArticleVersion).where(
            and_(
                ArticleVersion.id == version_id,
                ArticleVersion.article_id == article_id,
            )
        )
        version = (await self.session.execute(query)).scalar_one_or_none()
        if version is None:
            raise NotFoundError("Version not found")
        return version

    async def is_listed_author(self, article_id: uuid.UUID, profile_id: uuid.UUID) -> bool:
        query = select(
            exists().where(
                and_(
                    ArticleAuthor.article_id == article_id,
                    ArticleAuthor.profile_id == profile_id,
                )
            )
        )
        return bool((await self.session.execute(query)).scalar())

    async def can_view(self, article: Article, actor: Optional[Actor]) -> bool:
        """Published papers are public; others are visible to their authors,
        admins, and (while in review) reviewers."""
        status = enum_value(article.status)
        if status == ArticleStatus.PUBLISHED.value:
            return True
        if actor is None:
            return False
        if actor.id == article.author_id or actor.is_admin:
            return True
        if status == ArticleStatus.IN_REVIEW.value and can_review(actor.role, actor.is_admin):
            return True
        return await self.is_listed_author(article.id, actor.id)

    async def get_visible_article(self, article_id: uuid.UUID, actor: Optional[Actor]) -> Article:
        article = await self.get_article(article_id)
        if not await self.can_view(article, actor):
            raise NotFoundError("Paper not found")
        return article

    async def get_article_detail(self, article_id: uuid.UUID, actor: Optional[Actor]) -> ArticleDetail:
        article = await self.get_visible_article(article_id, actor)

        author = (
            await self.session.execute(select(Profile).where(Profile.id == article.author_id))
        ).scalar_one()

        authors_q = (
            select(ArticleAuthor, Profile.full_name)
            .join(Profile, ArticleAuthor.profile_id == Profile.id)
            .where(ArticleAuthor.article_id == article.id)
            .order_by(ArticleAuthor.position)
        )
        authors = [
            AuthorEntry(
                profile_id=entry.profile_id,
                full_name=full_name,
                position=entry.position,
                is_corresponding=entry.is_corresponding,
            )
            for entry, full_name in (await self.session.execute(authors_q)).all()
        ]

        return ArticleDetail(
            article=article,
            author=author,
            authors=authors,
            versions=await self.list_versions(article.id),
        )

    async def list_versions(self, article_id: uuid.UUID) -> List[ArticleVersion]:
        """Versions of an article, newest first."""
        query = (
            select(ArticleVersion)
            .where(ArticleVersion.article_id == article_id)
            .order_by(ArticleVersion.version_number.desc())
        )
        return list((await self.session.execute(query)).scalars().all())

    def file_url(self, version: ArticleVersion) -> str:
        return self.storage.get_public_url(ARTICLES_BUCKET, version.storage_path)

    async def get_version_detail(
        self,
        article_id: uuid.UUID,
        version_id: uuid.UUID,
        actor: Optional[Actor],
    ) -> VersionDetail:
        """One version with its public file URL and the comments pinned to it."""
        article = await self.get_visible_article(article_id, actor)
        version = await self.get_version(article.id, version_id)
        threads = await CommentService(self.session).list_version_threads(version.id)
        return VersionDetail(article=article, version=version, file_url=self.file_url(version), threads=threads)

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------

    async def list_published(self, page: int = 1, search: Optional[str] = None) -> Page[Article]:
        per_page = self.settings.papers_page_size
        conditions = [Article.status == ArticleStatus.PUBLISHED.value]
        if search and search.strip():
            pattern = ilike_pattern(search.strip())
            conditions.append(
                or_(
                    Article.title.ilike(pattern, escape="\\"),
                    Article.description.ilike(pattern, escape="\\"),
                )
            )

        total = (
            await self.session.execute(select(func.count(Article.id)).where(and_(*conditions)))
        ).scalar() or 0

        offset, limit = page_bounds(page, per_page)
        query = (
            select(Article)
            .where(and_(*conditions))
            .order_by(Article.updated_at.desc())
            .offset(offset)
            .limit(limit)
        )
        items = list((await self.session.execute(query)).scalars().all())
        return Page(items=items, total=total, page=max(page, 1), per_page=per_page)

    async def list_for_author(self, author_id: uuid.UUID) -> List[Article]:
        """Every paper owned by a profile, any status, newest first."""
        query = (
            select(Article)
            .where(Article.author_id == author_id)
            .order_by(Article.created_at.desc())
        )
        return list((await self.session.execute(query)).scalars().all())

    async def list_review_queue(self, actor: Actor) -> List[Article]:
        if not can_review(actor.role, actor.is_admin):
            raise ForbiddenError("Only mentors, professors and admins can view the review queue")
        query = (
            select(Article)
            .where(Article.status == ArticleStatus.IN_REVIEW.value)
            .order_by(Article.updated_at.desc())
        )
        return list((await self.session.execute(query)).scalars().all())

    # ------------------------------------------------------------------
    # Creation and versions
    # ------------------------------------------------------------------

    async def create_article(
        self,
        actor: Actor,
        title: Optional[str],
        file: Optional[UploadedFile],
        notes: Optional[str] = None,
        description: Optional[str] = None,
        coauthor_ids: Sequence[uuid.UUID] = (),
        ip_address: Optional[str] = None,
    ) -> Article:
        """
        Create a draft paper with its author list and version 1.

        Raises:
            ValidationError: Missing title/file or unknown co-author
            ThrottleError: The actor created a paper less than the
                cooldown ago
        """
        clean_title = (title or "").strip()
        if not clean_title:
            raise ValidationError("Title is required.")
        self._validate_file(file)

        now = self.clock()
        recent = await self.session.execute(
            select(func.count(Article.id)).where(
                and_(
                    Article.author_id == actor.id,
                    Article.created_at > now - self.cooldown,
                )
            )
        )
        if recent.scalar():
            raise ThrottleError(ARTICLE_THROTTLE_MESSAGE)

        coauthors = await self._resolve_coauthors(actor.id, coauthor_ids)

        article = Article(
            title=clean_title,
            description=(description or "").strip() or None,
            author_id=actor.id,
            status=ArticleStatus.DRAFT,
            created_at=now,
            updated_at=now,
        )
        self.session.add(article)
        await self.session.flush()

        # Submitter first, as corresponding author
        for position, profile_id in enumerate([actor.id, *coauthors]):
            self.session.add(
                ArticleAuthor(
                    article_id=article.id,
                    profile_id=profile_id,
                    position=position,
                    is_corresponding=profile_id == actor.id,
                )
            )

        await self.event_store.log(
            event_type=EventType.ARTICLE_CREATED,
            entity_type="article",
            entity_id=article.id,
            profile_id=actor.id,
            payload={"title": article.title, "coauthor_ids": list(coauthors)},
            ip_address=ip_address,
        )

        await self._append_version(article, actor, file, notes, ip_address=ip_address)
        logger.info("Article created", extra={"article_id": str(article.id)})
        return article

    async def upload_version(
        self,
        article_id: uuid.UUID,
        actor: Actor,
        file: Optional[UploadedFile],
        notes: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> ArticleVersion:
        """
        Append a new version to a paper.

        The cooldown is per article: any version created less than the
        cooldown ago blocks the upload, whoever created it.

        Raises:
            NotFoundError, ForbiddenError, ValidationError, ThrottleError,
            ConflictError (numbering kept colliding), StoreFailure
        """
        article = await self.get_article(article_id)

        if not (
            actor.id == article.author_id
            or actor.is_admin
            or await self.is_listed_author(article.id, actor.id)
        ):
            raise ForbiddenError("Only the paper's authors or an admin can upload a new version")

        self._validate_file(file)

        recent = await self.session.execute(
            select(func.count(ArticleVersion.id)).where(
                and_(
                    ArticleVersion.article_id == article.id,
                    ArticleVersion.created_at > self.clock() - self.cooldown,
                )
            )
        )
        if recent.scalar():
            raise ThrottleError(VERSION_THROTTLE_MESSAGE)

        return await self._append_version(article, actor, file, notes, ip_address=ip_address)

    async def next_version_number(self, article_id: uuid.UUID) -> int:
        result = await self.session.execute(
            select(func.max(ArticleVersion.version_number)).where(
                ArticleVersion.article_id == article_id
            )
        )
        return (result.scalar() or 0) + 1

    async def _append_version(
        self,
        article: Article,
        actor: Actor,
        file: UploadedFile,
        notes: Optional[str],
        ip_address: Optional[str] = None,
    ) -> ArticleVersion:
        """Claim a version number, store the file, move the current pointer."""
        try:
            file_name = safe_file_name(file.file_name)
        except StorageError as exc:
            raise ValidationError(str(exc)) from exc

        version = None
        for attempt in range(1, VERSION_INSERT_ATTEMPTS + 1):
            number = await self.next_version_number(article.id)
            candidate = ArticleVersion(
                article_id=article.id,
                version_number=number,
                storage_path=version_storage_path(actor.id, article.id, number, file_name),
                file_name=file_name,
                file_size=file.size,
                notes=(notes or "").strip() or None,
                uploaded_by=actor.id,
                created_at=self.clock(),
            )
            try:
                # The unique (article_id, version_number) constraint is the
                # arbiter between concurrent uploads.
                async with self.session.begin_nested():
                    self.session.add(candidate)
                    await self.session.flush()
            except IntegrityError:
                logger.warning(
                    "Version number conflict, retrying",
                    extra={"article_id": str(article.id), "version_number": number, "attempt": attempt},
                )
                continue
            version = candidate
            break

        if version is None:
            raise ConflictError("Another version was uploaded at the same time. Please try again.")

        try:
            await self.storage.upload(ARTICLES_BUCKET, version.storage_path, file.content, file.content_type)
        except StorageError as exc:
            logger.error("Version upload failed", extra={"article_id": str(article.id), "error": str(exc)})
            raise StoreFailure("Failed to store version file", cause=exc) from exc

        try:
            article.current_version_id = version.id
            article.updated_at = self.clock()
            await self.session.flush()
        except SQLAlchemyError as exc:
            await self.storage.remove(ARTICLES_BUCKET, [version.storage_path])
            raise StoreFailure("Failed to update current version", cause=exc) from exc

        await self.event_store.log(
            event_type=EventType.VERSION_CREATED,
            entity_type="article_version",
            entity_id=version.id,
            profile_id=actor.id,
            payload={
                "article_id": article.id,
                "version_number": version.version_number,
                "file_name": version.file_name,
                "file_size": version.file_size,
            },
            ip_address=ip_address,
        )
        logger.info(
            "Version uploaded",
            extra={"article_id": str(article.id), "version_number": version.version_number},
        )
        return version

    # ------------------------------------------------------------------
    # Status transitions
    # ------------------------------------------------------------------

    async def submit_for_review(self, article_id: uuid.UUID, actor: Actor, ip_address: Optional[str] = None) -> Article:
        article = await self.get_article(article_id)
        return await self.state_machine.transition(article, ArticleStatus.IN_REVIEW, actor, ip_address=ip_address)

    async def publish(
        self,
        article_id: uuid.UUID,
        actor: Actor,
        title: Optional[str],
        description: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> Article:
        article = await self.get_article(article_id)
        return await self.state_machine.transition(
            article,
            ArticleStatus.PUBLISHED,
            actor,
            title=title,
            description=description,
            ip_address=ip_address,
        )

    async def unpublish(self, article_id: uuid.UUID, actor: Actor, ip_address: Optional[str] = None) -> Article:
        article = await self.get_article(article_id)
        return await self.state_machine.transition(article, ArticleStatus.DRAFT, actor, ip_address=ip_address)

    # ------------------------------------------------------------------
    # Deletion
    # ------------------------------------------------------------------

    async def delete_version(
        self,
        article_id: uuid.UUID,
        version_id: uuid.UUID,
        actor: Actor,
        ip_address: Optional[str] = None,
    ) -> VersionDeletion:
        """
        Delete one version with its comments and file.

        The current pointer falls back to the newest remaining version.
        Deleting the only version deletes the whole paper.
        """
        article = await self.get_article(article_id)
        version = await self.get_version(article_id, version_id)
        require_mutate(actor, article.author_id, "Only the author or an admin can delete a version")

        remaining = [v for v in await self.list_versions(article.id) if v.id != version.id]
        if not remaining:
            await self.delete_article(article.id, actor, ip_address=ip_address)
            return VersionDeletion(article_deleted=True)

        if article.current_version_id == version.id:
            article.current_version_id = remaining[0].id
        article.updated_at = self.clock()
        await self.session.flush()

        await self.session.execute(delete(Comment).where(Comment.version_id == version.id))
        await self.session.execute(delete(ArticleVersion).where(ArticleVersion.id == version.id))
        schedule_removal(self.session, self.storage, ARTICLES_BUCKET, [version.storage_path])

        await self.event_store.log(
            event_type=EventType.VERSION_DELETED,
            entity_type="article_version",
            entity_id=version.id,
            profile_id=actor.id,
            payload={"article_id": article.id, "version_number": version.version_number},
            ip_address=ip_address,
        )
        return VersionDeletion(article_deleted=False, current_version_id=article.current_version_id)

    async def delete_article(self, article_id: uuid.UUID, actor: Actor, ip_address: Optional[str] = None) -> None:
        """Delete a paper with its versions, comments, memberships and files."""
        article = await self.get_article(article_id)
        require_mutate(actor, article.author_id, "Only the author or an admin can delete this paper")

        paths = list(
            (
                await self.session.execute(
                    select(ArticleVersion.storage_path).where(ArticleVersion.article_id == article.id)
                )
            ).scalars().all()
        )

        await self.session.execute(
            update(Article).where(Article.id == article.id).values(current_version_id=None)
        )
        await self.session.execute(delete(Comment).where(Comment.article_id == article.id))
        await self.session.execute(delete(IssueArticle).where(IssueArticle.article_id == article.id))
        await self.session.execute(delete(ArticleVersion).where(ArticleVersion.article_id == article.id))
        await self.session.execute(delete(ArticleAuthor).where(ArticleAuthor.article_id == article.id))
        await self.session.delete(article)
        await self.session.flush()

        schedule_removal(self.session, self.storage, ARTICLES_BUCKET, paths)

        await self.event_store.log(
            event_type=EventType.ARTICLE_DELETED,
            entity_type="article",
            entity_id=article_id,
            profile_id=actor.id,
            payload={"title": article.title, "files_removed": len(paths)},
            ip_address=ip_address,
        )
        logger.info("Article deleted", extra={"article_id": str(article_id)})

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _validate_file(self, file: Optional[UploadedFile]) -> None:
        if file is None or file.is_empty:
            raise ValidationError("File is required.")
        if file.size > self.settings.max_upload_bytes:
            raise ValidationError("File is too large.")

    async def _resolve_coauthors(
        self,
        actor_id: uuid.UUID,
        coauthor_ids: Sequence[uuid.UUID],
    ) -> List[uuid.UUID]:
        ordered: List[uuid.UUID] = []
        for profile_id in coauthor_ids:
            if profile_id != actor_id and profile_id not in ordered:
                ordered.append(profile_id)
        if not ordered:
            return ordered

        found = set(
            (
                await self.session.execute(select(Profile.id).where(Profile.id.in_(ordered)))
            ).scalars().all()
        )
        missing = [str(p) for p in ordered if p not in found]
        if missing:
            raise ValidationError(f"Unknown co-author: {', '.join(missing)}")
        return ordered
