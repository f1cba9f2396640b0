"""
Comment edit/delete, shared by paper and board threads.
"""

import uuid

from fastapi import APIRouter, Request

from minjok.api.deps import CurrentActor, DbSession, get_client_ip
from minjok.schemas.comment import CommentResponse, CommentUpdate
from minjok.schemas.common import SuccessResponse
from minjok.services.comment_service import CommentService, CommentView
from minjok.services.profile_service import ProfileService

router = APIRouter()


@router.patch("/{comment_id}", response_model=CommentResponse)
async def edit_comment(
    request: Request,
    comment_id: uuid.UUID,
    data: CommentUpdate,
    actor: CurrentActor,
    db: DbSession,
):
    comment = await CommentService(db).edit_comment(
        comment_id,
        actor,
        data.body,
        ip_address=get_client_ip(request),
    )
    author = await ProfileService(db).get_profile(comment.author_id)
    return CommentResponse.from_view(CommentView(comment=comment, author_name=author.full_name))


@router.delete("/{comment_id}", response_model=SuccessResponse)
async def delete_comment(
    request: Request,
    comment_id: uuid.UUID,
    actor: CurrentActor,
    db: DbSession,
):
    """Deleting a top-level comment also deletes its replies."""
    await CommentService(db).delete_comment(comment_id, actor, ip_address=get_client_ip(request))
    return SuccessResponse(message="Comment deleted")
