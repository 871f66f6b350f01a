"""Answer endpoints: edit, hide, react, flag."""
import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from karbarg.database import get_db
from karbarg.dependencies import CurrentUser, get_current_user
from karbarg.models.answer_quality_metric import AnswerQualityMetric
from karbarg.routers.qa.mapping import map_answer
from karbarg.schemas.qa import (
    AnswerResponse,
    AnswerUpdate,
    CurrentReactionResponse,
    FlagRequest,
    FlagResponse,
    HideResponse,
    ReactionRequest,
    ReactionResponse,
)
from karbarg.services.answer_service import AnswerService
from karbarg.services.flag_service import FlagService
from karbarg.services.reaction_service import ReactionService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.patch("/{answer_id}", response_model=AnswerResponse)
async def update_answer(
    answer_id: UUID,
    request: AnswerUpdate,
    current: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    answer = await AnswerService(db).update_answer(answer_id, current.user_id, request.body)
    metric: Optional[AnswerQualityMetric] = await db.get(AnswerQualityMetric, answer_id)
    if metric is None:
        return map_answer(answer)
    return map_answer(answer, aqs=metric.aqs, label=metric.label)


@router.delete("/{answer_id}", response_model=HideResponse)
async def delete_answer(
    answer_id: UUID,
    current: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await AnswerService(db).hide_answer(answer_id, current.user_id, is_admin=current.is_admin)
    return HideResponse(success=True)


@router.get("/{answer_id}/reaction", response_model=CurrentReactionResponse)
async def get_reaction(
    answer_id: UUID,
    current: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    reaction = await ReactionService(db).get_user_reaction(answer_id, current.user_id)
    return CurrentReactionResponse(reaction_type=reaction.reaction_type if reaction else None)


@router.post("/{answer_id}/reaction", response_model=ReactionResponse)
async def submit_reaction(
    answer_id: UUID,
    request: ReactionRequest,
    current: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Add, replace or toggle off the caller's reaction."""
    result = await ReactionService(db).submit_reaction(answer_id, current.user_id, request.type)
    return ReactionResponse(**result)


@router.post("/{answer_id}/flag", response_model=FlagResponse)
async def flag_answer(
    answer_id: UUID,
    request: FlagRequest,
    current: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await FlagService(db).flag_answer(answer_id, current.user_id, request.reason, request.note)
    return FlagResponse(**result)
