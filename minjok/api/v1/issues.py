"""
Issue endpoints: published papers bundled under a cover.
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
from minjok.schemas.catalog import IssueResponse
from minjok.schemas.common import SuccessResponse
from minjok.schemas.paper import PaperSummary
from minjok.services.catalog_service import CatalogService, IssueView

router = APIRouter()


def _issue_response(view: IssueView) -> IssueResponse:
    response = IssueResponse.model_validate(view.issue)
    response.papers = [PaperSummary.model_validate(a) for a in view.articles]
    return response


@router.get("", response_model=List[IssueResponse])
async def list_issues(actor: OptionalActor, db: DbSession, storage: Storage):
    """Released issues, newest first; admins also see drafts."""
    include_drafts = actor is not None and actor.is_admin
    views = await CatalogService(db, storage).list_issues(include_drafts=include_drafts)
    return [_issue_response(v) for v in views]


@router.get("/available-papers", response_model=List[PaperSummary])
async def available_papers(actor: AdminActor, db: DbSession, storage: Storage):
    """Published papers not yet in any issue."""
    articles = await CatalogService(db, storage).available_articles()
    return [PaperSummary.model_validate(a) for a in articles]


@router.post("", response_model=IssueResponse, status_code=status.HTTP_201_CREATED)
async def create_issue(
    request: Request,
    actor: CurrentActor,
    db: DbSession,
    storage: Storage,
    title: Annotated[Optional[str], Form()] = None,
    description: Annotated[Optional[str], Form()] = None,
    status_: Annotated[Optional[str], Form(alias="status")] = None,
    article_ids: Annotated[Optional[List[uuid.UUID]], Form()] = None,
    cover: Annotated[Optional[UploadFile], File()] = None,
):
    """
    Multipart form: ``title``, ``cover`` and at least one ``article_ids``
    entry are required; papers keep the order they were sent in.
    """
    service = CatalogService(db, storage)
    issue = await service.create_issue(
        actor,
        title=title,
        description=description,
        status=status_,
        cover=await read_upload(cover),
        article_ids=article_ids or [],
        ip_address=get_client_ip(request),
    )
    views = await service.list_issues(include_drafts=True)
    return _issue_response(next(v for v in views if v.issue.id == issue.id))


@router.delete("/{issue_id}", response_model=SuccessResponse)
async def delete_issue(
    request: Request,
    issue_id: uuid.UUID,
    actor: CurrentActor,
    db: DbSession,
    storage: Storage,
):
    await CatalogService(db, storage).delete_issue(actor, issue_id, ip_address=get_client_ip(request))
    return SuccessResponse(message="Issue deleted")
