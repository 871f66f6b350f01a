"""Admin Q&A endpoints: runtime settings, recent answers and quality debugging."""
import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from karbarg.database import get_db
from karbarg.dependencies import CurrentUser, require_admin
from karbarg.models.answer import Answer
from karbarg.models.answer_quality_metric import AnswerQualityMetric
from karbarg.routers.qa.mapping import map_answer, map_author
from karbarg.schemas.admin import (
    AdminAnswerListResponse,
    AdminAnswerSummary,
    AnswerDebugResponse,
    FlagInfo,
    QASettingsResponse,
    QASettingUpdate,
    QASettingUpdateResponse,
    QualityMetricInfo,
    ReactionInfo,
    RecomputeResponse,
)
from karbarg.services.answer_quality_service import AnswerQualityService
from karbarg.services.flag_service import FlagService
from karbarg.services.reaction_service import ReactionService
from karbarg.services.system_config_service import SystemConfigService
from karbarg.utils.exceptions import NotFoundError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/qa")


async def _load_answer(db: AsyncSession, answer_id: UUID) -> Answer:
    # Admins can inspect hidden answers too
    result = await db.execute(
        select(Answer).options(selectinload(Answer.author)).where(Answer.answer_id == answer_id)
    )
    answer = result.scalar_one_or_none()
    if answer is None:
        raise NotFoundError("Answer not found")
    return answer


@router.get("/settings", response_model=QASettingsResponse)
async def get_settings_overview(
    admin: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    service = SystemConfigService(db)
    return QASettingsResponse(
        settings=await service.get_all_config(),
        config_schema=service.CONFIG_SCHEMA,
    )


@router.put("/settings", response_model=QASettingUpdateResponse)
async def update_setting(
    request: QASettingUpdate,
    admin: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Update one runtime setting. Threshold changes relabel stored metrics.

    Raises:
        HTTPException: 400 for an unknown key or an out-of-range value
    """
    service = SystemConfigService(db)
    try:
        entry = await service.set_config_value(request.key, request.value, updated_by=str(admin.user_id))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return QASettingUpdateResponse(
        success=True,
        key=request.key,
        value=service.deserialize_value(entry.value, entry.value_type),
        updated_at=entry.updated_at,
        updated_by=entry.updated_by,
    )


@router.get("/answers", response_model=AdminAnswerListResponse)
async def list_recent_answers(
    limit: int = Query(default=50, ge=1, le=200),
    admin: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Latest answers with their stored quality, for spot checks."""
    rows = await AnswerQualityService(db).list_recent_answers(limit)
    return AdminAnswerListResponse(
        answers=[
            AdminAnswerSummary(
                answer_id=answer.answer_id,
                question_id=answer.question_id,
                question_title=answer.question.title,
                body=answer.body,
                aqs=aqs,
                label=label,
                is_accepted=answer.is_accepted,
                is_hidden=answer.is_hidden,
                created_at=answer.created_at,
                author=map_author(answer.author),
            )
            for answer, aqs, label in rows
        ]
    )


@router.get("/answers/{answer_id}", response_model=AnswerDebugResponse)
async def debug_answer(
    answer_id: UUID,
    admin: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Stored metric next to a live recomputation, with raw reactions and flags."""
    answer = await _load_answer(db, answer_id)
    stored = await db.get(AnswerQualityMetric, answer_id)
    live, live_label, thresholds = await AnswerQualityService(db).evaluate_answer(answer)
    reactions = await ReactionService(db).list_reactions(answer_id)
    flags = await FlagService(db).list_flags(answer_id)

    stored_info = None
    if stored is not None:
        stored_info = QualityMetricInfo(
            aqs=stored.aqs,
            label=stored.label,
            breakdown=stored.breakdown,
            computed_at=stored.computed_at,
        )

    return AnswerDebugResponse(
        answer=map_answer(
            answer,
            aqs=stored.aqs if stored else live.aqs,
            label=stored.label if stored else live_label,
        ),
        is_hidden=answer.is_hidden,
        flag_count=answer.flag_count,
        stored_metric=stored_info,
        live_metric=QualityMetricInfo(aqs=live.aqs, label=live_label.value, breakdown=live.breakdown),
        thresholds={"useful": thresholds.useful, "pro": thresholds.pro},
        reactions=[
            ReactionInfo(user_id=r.user_id, reaction_type=r.reaction_type, created_at=r.created_at)
            for r in reactions
        ],
        flags=[
            FlagInfo(user_id=f.user_id, reason=f.reason, note=f.note, created_at=f.created_at)
            for f in flags
        ],
    )


@router.post("/answers/{answer_id}/recompute", response_model=RecomputeResponse)
async def recompute_answer(
    answer_id: UUID,
    admin: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    answer = await _load_answer(db, answer_id)
    metric = await AnswerQualityService(db).recompute_answer(answer)
    await db.commit()
    logger.info(f"Admin {admin.user_id} recomputed answer {answer_id}: {metric.aqs} ({metric.label})")
    return RecomputeResponse(answer_id=answer_id, aqs=metric.aqs, label=metric.label)
