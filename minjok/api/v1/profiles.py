"""
Profile endpoints: public profile pages, self-service edits and the
co-author picker search.
"""

import uuid
from typing import List, Optional

from fastapi import APIRouter, Query, Request

from minjok.api.deps import ActorCache, CurrentActor, DbSession, OptionalActor, get_client_ip
from minjok.schemas.auth import ProfileResponse
from minjok.schemas.paper import PaperSummary
from minjok.schemas.profile import (
    ProfileDetailResponse,
    ProfileSearchResult,
    ProfileUpdate,
    PublicProfileResponse,
)
from minjok.services.profile_service import ProfileService

router = APIRouter()


@router.get("/search", response_model=List[ProfileSearchResult])
async def search_profiles(
    actor: CurrentActor,
    db: DbSession,
    q: Optional[str] = Query(None, max_length=200),
):
    """Name or email substring search; fewer than two characters returns nothing."""
    profiles = await ProfileService(db).search_profiles(q, exclude_id=actor.id)
    return [ProfileSearchResult.model_validate(p) for p in profiles]


@router.patch("/me", response_model=ProfileResponse)
async def update_me(
    request: Request,
    data: ProfileUpdate,
    actor: CurrentActor,
    db: DbSession,
    cache: ActorCache,
):
    profile = await ProfileService(db, cache=cache).update_own_profile(
        actor,
        full_name=data.full_name,
        intro=data.intro,
        ip_address=get_client_ip(request),
    )
    return ProfileResponse.model_validate(profile)


@router.get("/{profile_id}", response_model=ProfileDetailResponse)
async def get_profile(
    profile_id: uuid.UUID,
    actor: OptionalActor,
    db: DbSession,
):
    detail = await ProfileService(db).get_profile_detail(profile_id, viewer=actor)
    return ProfileDetailResponse(
        profile=PublicProfileResponse.model_validate(detail.profile),
        papers=[PaperSummary.model_validate(a) for a in detail.papers],
    )
