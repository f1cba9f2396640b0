"""
Volume endpoints: released issues bundled under a cover.
"""

import uuid
from typing import Annotated, List, Optional

from fastapi import APIRouter, File, Form, Request, UploadFile, status

from minjok.api.deps import (
    AdminActor,
    CurrentActor,
    DbSession,
    OptionalActor,
    Storage,
    get_client_ip,
    read_upload,
)
from minjok.schemas.catalog import IssueSummary, VolumeResponse
from minjok.schemas.common import SuccessResponse
from minjok.services.catalog_service import CatalogService, VolumeView

router = APIRouter()


def _volume_response(view: VolumeView) -> VolumeResponse:
    response = VolumeResponse.model_validate(view.volume)
    response.issues = [IssueSummary.model_validate(i) for i in view.issues]
    return response


@router.get("", response_model=List[VolumeResponse])
async def list_volumes(actor: OptionalActor, db: DbSession, storage: Storage):
    include_drafts = actor is not None and actor.is_admin
    views = await CatalogService(db, storage).list_volumes(include_drafts=include_drafts)
    return [_volume_response(v) for v in views]


@router.get("/available-issues", response_model=List[IssueSummary])
async def available_issues(actor: AdminActor, db: DbSession, storage: Storage):
    """Released issues not yet in any volume."""
    issues = await CatalogService(db, storage).available_issues()
    return [IssueSummary.model_validate(i) for i in issues]


@router.post("", response_model=VolumeResponse, status_code=status.HTTP_201_CREATED)
async def create_volume(
    request: Request,
    actor: CurrentActor,
    db: DbSession,
    storage: Storage,
    title: Annotated[Optional[str], Form()] = None,
    description: Annotated[Optional[str], Form()] = None,
    status_: Annotated[Optional[str], Form(alias="status")] = None,
    issue_ids: Annotated[Optional[List[uuid.UUID]], Form()] = None,
    cover: Annotated[Optional[UploadFile], File()] = None,
):
    service = CatalogService(db, storage)
    volume = await service.create_volume(
        actor,
        title=title,
        description=description,
        status=status_,
        cover=await read_upload(cover),
        issue_ids=issue_ids or [],
        ip_address=get_client_ip(request),
    )
    views = await service.list_volumes(include_drafts=True)
    return _volume_response(next(v for v in views if v.volume.id == volume.id))


@router.delete("/{volume_id}", response_model=SuccessResponse)
async def delete_volume(
    request: Request,
    volume_id: uuid.UUID,
    actor: CurrentActor,
    db: DbSession,
    storage: Storage,
):
    await CatalogService(db, storage).delete_volume(actor, volume_id, ip_address=get_client_ip(request))
    return SuccessResponse(message="Volume deleted")
