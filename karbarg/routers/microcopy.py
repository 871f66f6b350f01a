"""Microcopy serving and funnel tracking endpoints."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from karbarg.database import get_db
from karbarg.dependencies import CurrentUser, get_current_user, get_optional_user
from karbarg.models.base import UserSegment
from karbarg.schemas.microcopy import (
    CooldownInfo,
    CooldownsResponse,
    MicrocopyActionCreate,
    MicrocopyActionResponse,
    MicrocopyDefinitionResponse,
    MicrocopyDefinitionsResponse,
    MicrocopyEventCreate,
    MicrocopyEventResponse,
)
from karbarg.services.microcopy_service import MicrocopyService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/microcopy", tags=["microcopy"])


@router.post("/events", response_model=MicrocopyEventResponse, status_code=201)
async def record_event(
    request: MicrocopyEventCreate,
    current: Optional[CurrentUser] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    """Record a shown, clicked or dismissed event. Anonymous callers are allowed."""
    event = await MicrocopyService(db).record_event(
        microcopy_id=request.microcopy_id,
        event_type=request.event_type,
        user_id=current.user_id if current else None,
        trigger_rule_id=request.trigger_rule_id,
        page_url=request.page_url,
        question_id=request.question_id,
        metadata=request.metadata,
    )
    return MicrocopyEventResponse(event_id=event.event_id, user_segment=UserSegment(event.user_segment))


@router.get("/events", response_model=CooldownsResponse)
async def get_cooldowns(
    current: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    cooldowns = await MicrocopyService(db).get_cooldowns(current.user_id)
    return CooldownsResponse(
        cooldowns={
            microcopy_id: CooldownInfo(last_shown_at=row.last_shown_at, show_count=row.show_count)
            for microcopy_id, row in cooldowns.items()
        }
    )


@router.post("/actions", response_model=MicrocopyActionResponse, status_code=201)
async def record_action(
    request: MicrocopyActionCreate,
    current: Optional[CurrentUser] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    action = await MicrocopyService(db).record_action(
        event_id=request.microcopy_event_id,
        action_type=request.action_type,
        user_id=current.user_id if current else None,
        answer_id=request.answer_id,
        question_id=request.question_id,
        reputation_delta=request.reputation_delta,
        time_to_action_ms=request.time_to_action_ms,
    )
    return MicrocopyActionResponse(action_id=action.action_id)


@router.get("/definitions", response_model=MicrocopyDefinitionsResponse)
async def list_definitions(
    segment: Optional[UserSegment] = Query(default=None),
    db: AsyncSession = Depends(get_db),
):
    """Enabled definitions, optionally narrowed to one segment."""
    definitions = await MicrocopyService(db).list_enabled_definitions(segment.value if segment else None)
    return MicrocopyDefinitionsResponse(
        definitions=[MicrocopyDefinitionResponse.from_model(d) for d in definitions]
    )
