"""
Profile service - public profile pages, self-service edits and the admin
role console.
"""

import uuid
from dataclasses import dataclass, field
from typing import List, Optional

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from minjok.config import Settings, get_settings
from minjok.kernel.errors import ForbiddenError, NotFoundError, ValidationError
from minjok.kernel.events.event_store import EventStore
from minjok.kernel.identity.actor import Actor
from minjok.kernel.identity.profile_cache import ProfileCache
from minjok.kernel.models.article import Article, ArticleStatus
from minjok.kernel.models.base import enum_value
from minjok.kernel.models.event_log import EventType
from minjok.kernel.models.profile import AdminType, Profile, ProfileRole
from minjok.kernel.permissions.policy import require_catalog_manager
from minjok.logging_config import get_logger
from minjok.services.pagination import ilike_pattern

logger = get_logger(__name__)

MIN_SEARCH_LENGTH = 2


@dataclass
class ProfileDetail:
    profile: Profile
    papers: List[Article] = field(default_factory=list)


class ProfileService:
    def __init__(
        self,
        session: AsyncSession,
        cache: Optional[ProfileCache] = None,
        settings: Optional[Settings] = None,
    ):
        self.session = session
        self.cache = cache
        self.settings = settings or get_settings()
        self.event_store = EventStore(session)

    async def get_profile(self, profile_id: uuid.UUID) -> Profile:
        profile = (
            await self.session.execute(select(Profile).where(Profile.id == profile_id))
        ).scalar_one_or_none()
        if profile is None:
            raise NotFoundError("Profile not found")
        return profile

    async def get_profile_detail(self, profile_id: uuid.UUID, viewer: Optional[Actor] = None) -> ProfileDetail:
        """
        A profile page with its papers.

        The owner and admins see every paper the profile submitted; everyone
        else sees the published ones only.
        """
        profile = await self.get_profile(profile_id)
        query = select(Article).where(Article.author_id == profile.id)
        if viewer is None or (viewer.id != profile.id and not viewer.is_admin):
            query = query.where(Article.status == ArticleStatus.PUBLISHED.value)
        query = query.order_by(Article.updated_at.desc())
        papers = list((await self.session.execute(query)).scalars().all())
        return ProfileDetail(profile=profile, papers=papers)

    async def update_own_profile(
        self,
        actor: Actor,
        full_name: Optional[str] = None,
        intro: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> Profile:
        profile = await self.get_profile(actor.id)
        changes = {}
        if full_name is not None:
            name = full_name.strip()
            if not name:
                raise ValidationError("Name is required.")
            profile.full_name = name
            changes["full_name"] = name
        if intro is not None:
            profile.intro = intro.strip() or None
            changes["intro"] = profile.intro

        if changes:
            await self.session.flush()
            await self.event_store.log(
                event_type=EventType.PROFILE_UPDATED,
                entity_type="profile",
                entity_id=profile.id,
                profile_id=actor.id,
                payload=changes,
                ip_address=ip_address,
            )
            self._invalidate(profile.id)
        return profile

    async def admin_update_profile(
        self,
        actor: Actor,
        profile_id: uuid.UUID,
        role: Optional[str] = None,
        admin_type: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> Profile:
        """Change another profile's role and/or admin flag."""
        if not actor.is_admin:
            raise ForbiddenError("Admin access required")
        profile = await self.get_profile(profile_id)

        before = {"role": enum_value(profile.role), "admin_type": enum_value(profile.admin_type)}
        if role is not None:
            try:
                profile.role = ProfileRole(role)
            except ValueError:
                raise ValidationError(f"Unknown role: {role}") from None
        if admin_type is not None:
            try:
                profile.admin_type = AdminType(admin_type)
            except ValueError:
                raise ValidationError(f"Unknown admin type: {admin_type}") from None
        after = {"role": enum_value(profile.role), "admin_type": enum_value(profile.admin_type)}

        if before != after:
            await self.session.flush()
            await self.event_store.log(
                event_type=EventType.PROFILE_ROLE_CHANGED,
                entity_type="profile",
                entity_id=profile.id,
                profile_id=actor.id,
                payload={"before": before, "after": after},
                ip_address=ip_address,
            )
            self._invalidate(profile.id)
            logger.info(
                "Profile role changed",
                extra={"target_profile_id": str(profile.id), **{f"new_{k}": v for k, v in after.items()}},
            )
        return profile

    async def list_profiles(self, actor: Actor) -> List[Profile]:
        require_catalog_manager(actor)
        query = select(Profile).order_by(Profile.created_at.desc())
        return list((await self.session.execute(query)).scalars().all())

    async def search_profiles(self, term: Optional[str], exclude_id: Optional[uuid.UUID] = None) -> List[Profile]:
        """Co-author picker: name or email substring, at least two characters."""
        text = (term or "").strip()
        if len(text) < MIN_SEARCH_LENGTH:
            return []
        pattern = ilike_pattern(text)
        conditions = [
            or_(
                Profile.full_name.ilike(pattern, escape="\\"),
                Profile.email.ilike(pattern, escape="\\"),
            )
        ]
        if exclude_id is not None:
            conditions.append(Profile.id != exclude_id)
        query = (
            select(Profile)
            .where(and_(*conditions))
            .order_by(func.lower(Profile.full_name))
            .limit(self.settings.profile_search_limit)
        )
        return list((await self.session.execute(query)).scalars().all())

    def _invalidate(self, profile_id: uuid.UUID) -> None:
        if self.cache is not None:
            self.cache.invalidate_profile(profile_id)
