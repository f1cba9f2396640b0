"""
FastAPI dependencies for authentication, database sessions, object storage
and the current-actor cache.
"""

from functools import lru_cache
from typing import Annotated, Optional

from fastapi import Depends, Request, UploadFile
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from minjok.config import get_settings
from minjok.database import async_session_maker
from minjok.kernel.errors import ForbiddenError, UnauthenticatedError
from minjok.kernel.identity.actor import Actor
from minjok.kernel.identity.identity_service import IdentityService
from minjok.kernel.identity.jwt import JWTManager
from minjok.kernel.identity.profile_cache import ProfileCache
from minjok.kernel.storage.object_storage import (
    LocalObjectStorage,
    ObjectStorage,
    UploadedFile,
    discard_pending_removals,
    run_pending_removals,
)
from minjok.logging_config import actor_id_var


# Security scheme
security = HTTPBearer(auto_error=False)


async def get_db() -> AsyncSession:
    """One session per request: commit on success, roll back on any error."""
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            discard_pending_removals(session)
            await session.rollback()
            raise
        else:
            await run_pending_removals(session)
        finally:
            await session.close()


DbSession = Annotated[AsyncSession, Depends(get_db)]


@lru_cache
def get_storage() -> ObjectStorage:
    settings = get_settings()
    return LocalObjectStorage(settings.storage_root, settings.storage_public_base_url)


@lru_cache
def get_profile_cache() -> ProfileCache:
    settings = get_settings()
    return ProfileCache(
        ttl=settings.profile_cache_ttl_seconds,
        maxsize=settings.profile_cache_max_entries,
        enabled=settings.profile_cache_enabled,
    )


Storage = Annotated[ObjectStorage, Depends(get_storage)]
ActorCache = Annotated[ProfileCache, Depends(get_profile_cache)]


async def _resolve_actor(token: str, db: AsyncSession, cache: ProfileCache) -> Optional[Actor]:
    actor = cache.get(token)
    if actor is None:
        payload = JWTManager().verify_access_token(token)
        if not payload:
            return None

        profile = await IdentityService(db).get_profile_by_id(payload.profile_id)
        if not profile or not profile.is_active:
            return None

        actor = Actor.from_profile(profile)
        cache.put(token, actor)

    actor_id_var.set(str(actor.id))
    return actor


async def get_current_actor_optional(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
    db: DbSession,
    cache: ActorCache,
) -> Optional[Actor]:
    """Get the current actor if authenticated, None otherwise."""
    if not credentials:
        return None
    return await _resolve_actor(credentials.credentials, db, cache)


async def get_current_actor(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
    db: DbSession,
    cache: ActorCache,
) -> Actor:
    """Get the current actor or raise 401."""
    if not credentials:
        raise UnauthenticatedError("Not authenticated")

    actor = await _resolve_actor(credentials.credentials, db, cache)
    if actor is None:
        raise UnauthenticatedError("Invalid or expired token")
    return actor


CurrentActor = Annotated[Actor, Depends(get_current_actor)]
OptionalActor = Annotated[Optional[Actor], Depends(get_current_actor_optional)]


async def get_admin_actor(actor: CurrentActor) -> Actor:
    if not actor.is_admin:
        raise ForbiddenError("Admin access required")
    return actor


AdminActor = Annotated[Actor, Depends(get_admin_actor)]


def get_client_ip(request: Request) -> Optional[str]:
    """Extract client IP from request."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


def get_user_agent(request: Request) -> Optional[str]:
    """Extract user agent from request."""
    return request.headers.get("User-Agent")


async def read_upload(upload: Optional[UploadFile]) -> Optional[UploadedFile]:
    """Buffer a multipart upload; a missing or nameless part counts as no file."""
    if upload is None or not upload.filename:
        return None
    content = await upload.read()
    return UploadedFile(file_name=upload.filename, content=content, content_type=upload.content_type)
