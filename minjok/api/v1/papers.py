"""
Paper endpoints: listings, submission, the version ledger, status
transitions and paper comments.
"""

import uuid
from typing import Annotated, List, Optional

from fastapi import APIRouter, File, Form, Query, Request, UploadFile, status

from minjok.api.deps import (
    CurrentActor,
    DbSession,
    OptionalActor,
    Storage,
    get_client_ip,
    read_upload,
)
from minjok.schemas.comment import CommentCreate, CommentResponse, ThreadResponse
from minjok.schemas.common import PaginatedResponse, SuccessResponse
from minjok.schemas.paper import (
    AuthorResponse,
    PaperCreatedResponse,
    PaperDetailResponse,
    PaperSummary,
    PublishRequest,
    VersionDeletionResponse,
    VersionDetailResponse,
    VersionResponse,
)
from minjok.services.article_service import ArticleService
from minjok.services.comment_service import CommentService, CommentView

router = APIRouter()


def _version_response(service: ArticleService, version) -> VersionResponse:
    response = VersionResponse.model_validate(version)
    response.file_url = service.file_url(version)
    return response


@router.get("", response_model=PaginatedResponse[PaperSummary])
async def list_papers(
    db: DbSession,
    storage: Storage,
    page: int = Query(1, ge=1),
    search: Optional[str] = Query(None, max_length=200),
):
    """Published papers, most recently updated first."""
    result = await ArticleService(db, storage).list_published(page=page, search=search)
    return PaginatedResponse.from_page(result, [PaperSummary.model_validate(a) for a in result.items])


@router.get("/mine", response_model=List[PaperSummary])
async def list_my_papers(actor: CurrentActor, db: DbSession, storage: Storage):
    """Every paper the caller submitted, in any status."""
    articles = await ArticleService(db, storage).list_for_author(actor.id)
    return [PaperSummary.model_validate(a) for a in articles]


@router.get("/review-queue", response_model=List[PaperSummary])
async def review_queue(actor: CurrentActor, db: DbSession, storage: Storage):
    articles = await ArticleService(db, storage).list_review_queue(actor)
    return [PaperSummary.model_validate(a) for a in articles]


@router.post("", response_model=PaperCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_paper(
    request: Request,
    actor: CurrentActor,
    db: DbSession,
    storage: Storage,
    title: Annotated[Optional[str], Form()] = None,
    description: Annotated[Optional[str], Form()] = None,
    notes: Annotated[Optional[str], Form()] = None,
    coauthor_ids: Annotated[Optional[List[uuid.UUID]], Form()] = None,
    file: Annotated[Optional[UploadFile], File()] = None,
):
    """
    Submit a new paper as a draft with its first version.

    Multipart form: ``title`` and ``file`` are required; ``coauthor_ids``
    may repeat.
    """
    service = ArticleService(db, storage)
    article = await service.create_article(
        actor,
        title=title,
        file=await read_upload(file),
        notes=notes,
        description=description,
        coauthor_ids=coauthor_ids or [],
        ip_address=get_client_ip(request),
    )
    version = await service.get_version(article.id, article.current_version_id)
    return PaperCreatedResponse(
        paper=PaperSummary.model_validate(article),
        version=_version_response(service, version),
    )


@router.get("/{paper_id}", response_model=PaperDetailResponse)
async def get_paper(
    paper_id: uuid.UUID,
    actor: OptionalActor,
    db: DbSession,
    storage: Storage,
):
    """Drafts and papers in review are only visible to their authors and reviewers."""
    service = ArticleService(db, storage)
    detail = await service.get_article_detail(paper_id, actor)
    return PaperDetailResponse(
        paper=PaperSummary.model_validate(detail.article),
        author_name=detail.author.full_name,
        authors=[AuthorResponse.model_validate(a) for a in detail.authors],
        versions=[_version_response(service, v) for v in detail.versions],
    )


@router.delete("/{paper_id}", response_model=SuccessResponse)
async def delete_paper(
    request: Request,
    paper_id: uuid.UUID,
    actor: CurrentActor,
    db: DbSession,
    storage: Storage,
):
    await ArticleService(db, storage).delete_article(paper_id, actor, ip_address=get_client_ip(request))
    return SuccessResponse(message="Paper deleted")


@router.post("/{paper_id}/submit", response_model=PaperSummary)
async def submit_paper(
    request: Request,
    paper_id: uuid.UUID,
    actor: CurrentActor,
    db: DbSession,
    storage: Storage,
):
    article = await ArticleService(db, storage).submit_for_review(paper_id, actor, ip_address=get_client_ip(request))
    return PaperSummary.model_validate(article)


@router.post("/{paper_id}/publish", response_model=PaperSummary)
async def publish_paper(
    request: Request,
    paper_id: uuid.UUID,
    data: PublishRequest,
    actor: CurrentActor,
    db: DbSession,
    storage: Storage,
):
    article = await ArticleService(db, storage).publish(
        paper_id,
        actor,
        title=data.title,
        description=data.description,
        ip_address=get_client_ip(request),
    )
    return PaperSummary.model_validate(article)


@router.post("/{paper_id}/unpublish", response_model=PaperSummary)
async def unpublish_paper(
    request: Request,
    paper_id: uuid.UUID,
    actor: CurrentActor,
    db: DbSession,
    storage: Storage,
):
    """Return a published or in-review paper to draft."""
    article = await ArticleService(db, storage).unpublish(paper_id, actor, ip_address=get_client_ip(request))
    return PaperSummary.model_validate(article)


@router.post("/{paper_id}/versions", response_model=VersionResponse, status_code=status.HTTP_201_CREATED)
async def upload_version(
    request: Request,
    paper_id: uuid.UUID,
    actor: CurrentActor,
    db: DbSession,
    storage: Storage,
    notes: Annotated[Optional[str], Form()] = None,
    file: Annotated[Optional[UploadFile], File()] = None,
):
    service = ArticleService(db, storage)
    version = await service.upload_version(
        paper_id,
        actor,
        file=await read_upload(file),
        notes=notes,
        ip_address=get_client_ip(request),
    )
    return _version_response(service, version)


@router.get("/{paper_id}/versions/{version_id}", response_model=VersionDetailResponse)
async def get_version(
    paper_id: uuid.UUID,
    version_id: uuid.UUID,
    actor: OptionalActor,
    db: DbSession,
    storage: Storage,
):
    """One version with its file URL and the comment threads pinned to it."""
    service = ArticleService(db, storage)
    detail = await service.get_version_detail(paper_id, version_id, actor)
    return VersionDetailResponse(
        paper=PaperSummary.model_validate(detail.article),
        version=_version_response(service, detail.version),
        comments=[ThreadResponse.from_thread(t) for t in detail.threads],
    )


@router.delete("/{paper_id}/versions/{version_id}", response_model=VersionDeletionResponse)
async def delete_version(
    request: Request,
    paper_id: uuid.UUID,
    version_id: uuid.UUID,
    actor: CurrentActor,
    db: DbSession,
    storage: Storage,
):
    result = await ArticleService(db, storage).delete_version(
        paper_id,
        version_id,
        actor,
        ip_address=get_client_ip(request),
    )
    return VersionDeletionResponse(
        paper_deleted=result.article_deleted,
        current_version_id=result.current_version_id,
    )


@router.get("/{paper_id}/comments", response_model=List[ThreadResponse])
async def list_paper_comments(
    paper_id: uuid.UUID,
    actor: OptionalActor,
    db: DbSession,
    storage: Storage,
):
    """Comment threads across every version of a paper."""
    article = await ArticleService(db, storage).get_visible_article(paper_id, actor)
    threads = await CommentService(db).list_article_comments(article.id)
    return [ThreadResponse.from_thread(t) for t in threads]


@router.post("/{paper_id}/comments", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
async def post_paper_comment(
    request: Request,
    paper_id: uuid.UUID,
    data: CommentCreate,
    actor: CurrentActor,
    db: DbSession,
):
    """Comment on a published paper; the comment is pinned to its current version."""
    comment = await CommentService(db).post_paper_comment(
        paper_id,
        actor,
        data.body,
        parent_id=data.parent_id,
        ip_address=get_client_ip(request),
    )
    return CommentResponse.from_view(CommentView(comment=comment, author_name=actor.full_name))
