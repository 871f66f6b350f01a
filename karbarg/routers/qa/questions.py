"""Question endpoints."""
import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from karbarg.database import get_db
from karbarg.dependencies import CurrentUser, get_current_user, get_optional_user
from karbarg.routers.qa.mapping import (
    map_answer,
    map_question,
    map_question_summary,
    map_related_question,
)
from karbarg.schemas.qa import (
    AcceptRequest,
    AcceptResponse,
    AnswerCreate,
    AnswerResponse,
    HideResponse,
    QuestionCreate,
    QuestionDetailResponse,
    QuestionListResponse,
    QuestionResponse,
    QuestionSearchResponse,
    QuestionUpdate,
    RelatedQuestionsResponse,
)
from karbarg.services.answer_service import AnswerService
from karbarg.services.question_service import QuestionService, record_question_view

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=QuestionListResponse)
async def list_questions(
    category: Optional[str] = Query(default=None),
    tag: Optional[str] = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=50),
    db: AsyncSession = Depends(get_db),
):
    """Visible questions, newest first."""
    questions, total = await QuestionService(db).list_questions(category, tag, page, limit)
    return QuestionListResponse(
        questions=[map_question_summary(q) for q in questions],
        total=total,
        page=page,
        limit=limit,
    )


@router.get("/search", response_model=QuestionSearchResponse)
async def search_questions(
    q: str = Query(default=""),
    category: Optional[str] = Query(default=None),
    limit: int = Query(default=10, ge=1, le=50),
    db: AsyncSession = Depends(get_db),
):
    questions = await QuestionService(db).search_questions(q, category, limit)
    return QuestionSearchResponse(questions=[map_question_summary(x) for x in questions], query=q)


@router.post("", response_model=QuestionResponse, status_code=201)
async def create_question(
    request: QuestionCreate,
    current: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    question = await QuestionService(db).create_question(
        author_id=current.user_id,
        title=request.title,
        body=request.body,
        category=request.category,
        tags=request.tags,
    )
    return map_question(question)


@router.get("/{question_id}", response_model=QuestionDetailResponse)
async def get_question(
    question_id: UUID,
    background_tasks: BackgroundTasks,
    current: Optional[CurrentUser] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    """Question with ranked answers.

    The view counter is bumped after the response is sent; a lost increment
    is acceptable and never fails the request.
    """
    detail = await QuestionService(db).get_question_detail(
        question_id, viewer_id=current.user_id if current else None
    )
    background_tasks.add_task(record_question_view, question_id)
    return QuestionDetailResponse(
        question=map_question(detail.question),
        answers=[
            map_answer(r.answer, aqs=r.aqs, label=r.label, user_reaction=r.user_reaction)
            for r in detail.answers
        ],
        is_asker=detail.is_asker,
    )


@router.get("/{question_id}/related", response_model=RelatedQuestionsResponse)
async def get_related_questions(
    question_id: UUID,
    limit: int = Query(default=5, ge=1, le=20),
    db: AsyncSession = Depends(get_db),
):
    related = await QuestionService(db).get_related_questions(question_id, limit)
    return RelatedQuestionsResponse(
        related_questions=[map_related_question(r.question, r.relevance_score) for r in related]
    )


@router.patch("/{question_id}", response_model=QuestionResponse)
async def update_question(
    question_id: UUID,
    request: QuestionUpdate,
    current: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    question = await QuestionService(db).update_question(
        question_id, current.user_id, title=request.title, body=request.body
    )
    return map_question(question)


@router.delete("/{question_id}", response_model=HideResponse)
async def delete_question(
    question_id: UUID,
    current: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await QuestionService(db).hide_question(question_id, current.user_id, is_admin=current.is_admin)
    return HideResponse(success=True)


@router.post("/{question_id}/answers", response_model=AnswerResponse, status_code=201)
async def create_answer(
    question_id: UUID,
    request: AnswerCreate,
    current: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    answer = await AnswerService(db).create_answer(question_id, current.user_id, request.body)
    metric = answer.quality_metric
    return map_answer(answer, aqs=metric.aqs, label=metric.label)


@router.post("/{question_id}/accept", response_model=AcceptResponse)
async def accept_answer(
    question_id: UUID,
    request: AcceptRequest,
    current: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    answer = await AnswerService(db).accept_answer(question_id, request.answer_id, current.user_id)
    return AcceptResponse(success=True, question_id=question_id, accepted_answer_id=answer.answer_id)


@router.delete("/{question_id}/accept", response_model=AcceptResponse)
async def unaccept_answer(
    question_id: UUID,
    current: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await AnswerService(db).unaccept_answer(question_id, current.user_id)
    return AcceptResponse(success=True, question_id=question_id, accepted_answer_id=None)
