"""
Q&A endpoints. Anyone signed in asks; mentors and admins reply.
"""

import uuid
from typing import List

from fastapi import APIRouter, Request, status

from minjok.api.deps import CurrentActor, DbSession, get_client_ip
from minjok.kernel.models.base import enum_value
from minjok.schemas.common import SuccessResponse
from minjok.schemas.community import PostWrite, QuestionResponse, ReplyResponse, ReplyWrite
from minjok.services.community_service import CommunityService, ReplyView

router = APIRouter()


@router.get("", response_model=List[QuestionResponse])
async def list_questions(db: DbSession):
    """Every question, newest first, with its replies."""
    views = await CommunityService(db).list_questions()
    return [QuestionResponse.from_view(v) for v in views]


@router.post("", response_model=QuestionResponse, status_code=status.HTTP_201_CREATED)
async def ask_question(
    request: Request,
    data: PostWrite,
    actor: CurrentActor,
    db: DbSession,
):
    service = CommunityService(db)
    question = await service.ask_question(actor, data.title, data.content, ip_address=get_client_ip(request))
    return QuestionResponse.from_view(await service.get_question_view(question.id))


@router.get("/{question_id}", response_model=QuestionResponse)
async def get_question(question_id: uuid.UUID, db: DbSession):
    return QuestionResponse.from_view(await CommunityService(db).get_question_view(question_id))


@router.put("/{question_id}", response_model=QuestionResponse)
async def edit_question(
    request: Request,
    question_id: uuid.UUID,
    data: PostWrite,
    actor: CurrentActor,
    db: DbSession,
):
    service = CommunityService(db)
    await service.edit_question(question_id, actor, data.title, data.content, ip_address=get_client_ip(request))
    return QuestionResponse.from_view(await service.get_question_view(question_id))


@router.delete("/{question_id}", response_model=SuccessResponse)
async def delete_question(
    request: Request,
    question_id: uuid.UUID,
    actor: CurrentActor,
    db: DbSession,
):
    """Deleting a question deletes its replies."""
    await CommunityService(db).delete_question(question_id, actor, ip_address=get_client_ip(request))
    return SuccessResponse(message="Question deleted")


@router.post("/{question_id}/replies", response_model=ReplyResponse, status_code=status.HTTP_201_CREATED)
async def reply(
    request: Request,
    question_id: uuid.UUID,
    data: ReplyWrite,
    actor: CurrentActor,
    db: DbSession,
):
    created = await CommunityService(db).reply(question_id, actor, data.content, ip_address=get_client_ip(request))
    return ReplyResponse.from_view(
        ReplyView(reply=created, author_name=actor.full_name, author_role=enum_value(actor.role))
    )


@router.put("/replies/{reply_id}", response_model=SuccessResponse)
async def edit_reply(
    request: Request,
    reply_id: uuid.UUID,
    data: ReplyWrite,
    actor: CurrentActor,
    db: DbSession,
):
    await CommunityService(db).edit_reply(reply_id, actor, data.content, ip_address=get_client_ip(request))
    return SuccessResponse(message="Reply updated")


@router.delete("/replies/{reply_id}", response_model=SuccessResponse)
async def delete_reply(
    request: Request,
    reply_id: uuid.UUID,
    actor: CurrentActor,
    db: DbSession,
):
    await CommunityService(db).delete_reply(reply_id, actor, ip_address=get_client_ip(request))
    return SuccessResponse(message="Reply deleted")
