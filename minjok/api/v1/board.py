"""
Announcement board endpoints. Only admins post; anyone signed in comments.
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Query, Request, status

from minjok.api.deps import CurrentActor, DbSession, get_client_ip
from minjok.schemas.comment import CommentCreate, CommentResponse, ThreadResponse
from minjok.schemas.common import PaginatedResponse, SuccessResponse
from minjok.schemas.community import PostDetailResponse, PostResponse, PostWrite
from minjok.services.comment_service import CommentService, CommentView
from minjok.services.community_service import CommunityService, PostView

router = APIRouter()


@router.get("", response_model=PaginatedResponse[PostResponse])
async def list_posts(
    db: DbSession,
    page: int = Query(1, ge=1),
    search: Optional[str] = Query(None, max_length=200),
):
    result = await CommunityService(db).list_posts(page=page, search=search)
    return PaginatedResponse.from_page(result, [PostResponse.from_view(v) for v in result.items])


@router.post("", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def create_post(
    request: Request,
    data: PostWrite,
    actor: CurrentActor,
    db: DbSession,
):
    post = await CommunityService(db).create_post(
        actor,
        data.title,
        data.content,
        ip_address=get_client_ip(request),
    )
    return PostResponse.from_view(PostView(post=post, author_name=actor.full_name))


@router.get("/{post_id}", response_model=PostDetailResponse)
async def get_post(post_id: uuid.UUID, db: DbSession):
    view = await CommunityService(db).get_post_view(post_id)
    threads = await CommentService(db).list_board_threads(post_id)
    return PostDetailResponse(
        post=PostResponse.from_view(view),
        comments=[ThreadResponse.from_thread(t) for t in threads],
    )


@router.put("/{post_id}", response_model=PostResponse)
async def edit_post(
    request: Request,
    post_id: uuid.UUID,
    data: PostWrite,
    actor: CurrentActor,
    db: DbSession,
):
    service = CommunityService(db)
    await service.edit_post(post_id, actor, data.title, data.content, ip_address=get_client_ip(request))
    return PostResponse.from_view(await service.get_post_view(post_id))


@router.delete("/{post_id}", response_model=SuccessResponse)
async def delete_post(
    request: Request,
    post_id: uuid.UUID,
    actor: CurrentActor,
    db: DbSession,
):
    await CommunityService(db).delete_post(post_id, actor, ip_address=get_client_ip(request))
    return SuccessResponse(message="Post deleted")


@router.post("/{post_id}/comments", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
async def post_comment(
    request: Request,
    post_id: uuid.UUID,
    data: CommentCreate,
    actor: CurrentActor,
    db: DbSession,
):
    comment = await CommentService(db).post_board_comment(
        post_id,
        actor,
        data.body,
        parent_id=data.parent_id,
        ip_address=get_client_ip(request),
    )
    return CommentResponse.from_view(CommentView(comment=comment, author_name=actor.full_name))
