"""Scheduled maintenance endpoints, called by an external scheduler."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from karbarg.config import get_settings
from karbarg.database import get_db
from karbarg.dependencies import verify_cron_token
from karbarg.schemas.admin import CronRecomputeResponse
from karbarg.services.answer_quality_service import AnswerQualityService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cron", tags=["cron"], dependencies=[Depends(verify_cron_token)])


@router.post("/recompute-quality", response_model=CronRecomputeResponse)
async def recompute_quality(
    max_age_days: Optional[int] = Query(default=None, alias="maxAgeDays", ge=0),
    limit: Optional[int] = Query(default=None, ge=1, le=1000),
    db: AsyncSession = Depends(get_db),
):
    """Recompute metrics that are missing or older than ``maxAgeDays`` for visible answers."""
    settings = get_settings()
    if max_age_days is None:
        max_age_days = settings.quality_recompute_max_age_days
    try:
        result = await AnswerQualityService(db).recompute_stale(
            max_age_days, limit or settings.quality_recompute_batch_size
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return CronRecomputeResponse(**result)
