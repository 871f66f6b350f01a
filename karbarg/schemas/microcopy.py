"""Microcopy tracking and dashboard schemas."""
from karbarg.schemas.base import BaseSchema, UTCDateTime
from pydantic import Field
from typing import Any, Optional
from uuid import UUID

from karbarg.models.base import MicrocopyActionType, MicrocopyEventType, UserSegment


class MicrocopyEventCreate(BaseSchema):
    microcopy_id: str = Field(min_length=1, max_length=100)
    trigger_rule_id: Optional[str] = Field(default=None, max_length=100)
    event_type: MicrocopyEventType
    page_url: Optional[str] = Field(default=None, max_length=500)
    question_id: Optional[UUID] = None
    metadata: Optional[dict[str, Any]] = None


class MicrocopyEventResponse(BaseSchema):
    event_id: UUID
    user_segment: UserSegment


class CooldownInfo(BaseSchema):
    last_shown_at: UTCDateTime
    show_count: int


class CooldownsResponse(BaseSchema):
    cooldowns: dict[str, CooldownInfo]


class MicrocopyActionCreate(BaseSchema):
    microcopy_event_id: UUID
    action_type: MicrocopyActionType
    answer_id: Optional[UUID] = None
    question_id: Optional[UUID] = None
    reputation_delta: Optional[int] = None
    time_to_action_ms: Optional[int] = Field(default=None, ge=0)


class MicrocopyActionResponse(BaseSchema):
    action_id: UUID
    success: bool = True


class MicrocopyDefinitionResponse(BaseSchema):
    id: str
    trigger_rule: str
    text_fa: str
    target_segment: str
    priority: int
    cooldown_hours: int
    is_enabled: bool
    created_at: Optional[UTCDateTime] = None
    updated_at: Optional[UTCDateTime] = None

    @classmethod
    def from_model(cls, definition) -> "MicrocopyDefinitionResponse":
        return cls(
            id=definition.microcopy_id,
            trigger_rule=definition.trigger_rule,
            text_fa=definition.text_fa,
            target_segment=definition.target_segment,
            priority=definition.priority,
            cooldown_hours=definition.cooldown_hours,
            is_enabled=definition.is_enabled,
            created_at=definition.created_at,
            updated_at=definition.updated_at,
        )


class MicrocopyDefinitionCreate(BaseSchema):
    id: str = Field(min_length=1, max_length=100)
    trigger_rule: str = Field(min_length=1, max_length=100)
    text_fa: str = Field(min_length=1)
    target_segment: str = "all"
    priority: Optional[int] = Field(default=None, ge=0, le=100)
    cooldown_hours: Optional[int] = Field(default=None, ge=0)
    is_enabled: bool = True


class MicrocopyDefinitionUpdate(BaseSchema):
    id: str = Field(min_length=1, max_length=100)
    trigger_rule: Optional[str] = Field(default=None, max_length=100)
    text_fa: Optional[str] = None
    target_segment: Optional[str] = None
    priority: Optional[int] = Field(default=None, ge=0, le=100)
    cooldown_hours: Optional[int] = Field(default=None, ge=0)
    is_enabled: Optional[bool] = None


class MicrocopyDefinitionsResponse(BaseSchema):
    definitions: list[MicrocopyDefinitionResponse]


class MicrocopyKPIs(BaseSchema):
    ctr: int
    conversion: int
    avg_time_to_action: str
    avg_reputation_lift: float
    fatigue_rate: int


class MicrocopyTableRow(BaseSchema):
    microcopy_id: str
    trigger_rule: str
    views: int
    clicks: int
    actions: int
    ctr: int
    conversion: int
    fatigue_rate: int
    avg_rep_plus: float
    cooldown: str
    status: str
    is_enabled: bool


class SegmentRates(BaseSchema):
    ctr: int
    conversion: int


class MicrocopyFunnel(BaseSchema):
    microcopy_id: str
    shown: int
    clicked: int
    actions: int


class MicrocopyStatsMeta(BaseSchema):
    days: int
    total_shown: int
    total_clicked: int
    total_actions: int


class MicrocopyStatsResponse(BaseSchema):
    kpis: MicrocopyKPIs
    microcopy_table: list[MicrocopyTableRow]
    segment_analysis: dict[str, dict[str, SegmentRates]]
    funnel: Optional[MicrocopyFunnel] = None
    meta: MicrocopyStatsMeta
