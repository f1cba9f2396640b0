"""
Admin console: every profile, and role / admin-type changes.
"""

import uuid
from typing import List

from fastapi import APIRouter, Request

from minjok.api.deps import ActorCache, AdminActor, DbSession, get_client_ip
from minjok.schemas.auth import ProfileResponse
from minjok.schemas.profile import AdminProfileUpdate
from minjok.services.profile_service import ProfileService

router = APIRouter()


@router.get("/profiles", response_model=List[ProfileResponse])
async def list_profiles(actor: AdminActor, db: DbSession):
    profiles = await ProfileService(db).list_profiles(actor)
    return [ProfileResponse.model_validate(p) for p in profiles]


@router.patch("/profiles/{profile_id}", response_model=ProfileResponse)
async def update_profile(
    request: Request,
    profile_id: uuid.UUID,
    data: AdminProfileUpdate,
    actor: AdminActor,
    db: DbSession,
    cache: ActorCache,
):
    """Change a profile's role and/or admin type; its cached sessions are dropped."""
    profile = await ProfileService(db, cache=cache).admin_update_profile(
        actor,
        profile_id,
        role=data.role,
        admin_type=data.admin_type,
        ip_address=get_client_ip(request),
    )
    return ProfileResponse.model_validate(profile)
