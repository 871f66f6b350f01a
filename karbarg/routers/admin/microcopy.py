"""Admin microcopy dashboard and definition management."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from karbarg.config import get_settings
from karbarg.database import get_db
from karbarg.dependencies import CurrentUser, require_admin
from karbarg.schemas.microcopy import (
    MicrocopyDefinitionCreate,
    MicrocopyDefinitionResponse,
    MicrocopyDefinitionsResponse,
    MicrocopyDefinitionUpdate,
    MicrocopyStatsResponse,
)
from karbarg.schemas.qa import HideResponse
from karbarg.services.microcopy_service import MicrocopyService
from karbarg.services.microcopy_stats_service import MicrocopyStatsService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/microcopy")


@router.get("/stats", response_model=MicrocopyStatsResponse)
async def get_stats(
    days: Optional[int] = Query(default=None, ge=1, le=365),
    admin: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Funnel KPIs over the last ``days`` days."""
    days = days or get_settings().microcopy_default_days
    try:
        dashboard = await MicrocopyStatsService(db).get_dashboard(days)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return MicrocopyStatsResponse.model_validate(dashboard)


@router.get("/definitions", response_model=MicrocopyDefinitionsResponse)
async def list_definitions(
    admin: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    definitions = await MicrocopyService(db).list_definitions()
    return MicrocopyDefinitionsResponse(
        definitions=[MicrocopyDefinitionResponse.from_model(d) for d in definitions]
    )


@router.post("/definitions", response_model=MicrocopyDefinitionResponse, status_code=201)
async def create_definition(
    request: MicrocopyDefinitionCreate,
    admin: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    definition = await MicrocopyService(db).create_definition(
        microcopy_id=request.id,
        trigger_rule=request.trigger_rule,
        text_fa=request.text_fa,
        target_segment=request.target_segment,
        priority=request.priority,
        cooldown_hours=request.cooldown_hours,
        is_enabled=request.is_enabled,
    )
    return MicrocopyDefinitionResponse.from_model(definition)


@router.patch("/definitions", response_model=MicrocopyDefinitionResponse)
async def update_definition(
    request: MicrocopyDefinitionUpdate,
    admin: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Partial update; disabling a variant stops serving it but keeps its history."""
    changes = request.model_dump(exclude={"id"}, exclude_none=True)
    definition = await MicrocopyService(db).update_definition(request.id, **changes)
    return MicrocopyDefinitionResponse.from_model(definition)


@router.delete("/definitions/{microcopy_id}", response_model=HideResponse)
async def delete_definition(
    microcopy_id: str,
    admin: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    await MicrocopyService(db).delete_definition(microcopy_id)
    return HideResponse(success=True)
