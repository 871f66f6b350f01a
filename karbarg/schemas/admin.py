"""Admin back-office schemas."""
from karbarg.schemas.base import BaseSchema, UTCDateTime
from typing import Any, Optional
from uuid import UUID

from karbarg.schemas.qa import AnswerResponse, AuthorSummary


class QASettingsResponse(BaseSchema):
    settings: dict[str, Any]
    config_schema: dict[str, dict[str, Any]]


class QASettingUpdate(BaseSchema):
    key: str
    value: Any


class QASettingUpdateResponse(BaseSchema):
    success: bool
    key: str
    value: Any
    updated_at: Optional[UTCDateTime] = None
    updated_by: Optional[str] = None


class QualityMetricInfo(BaseSchema):
    aqs: int
    label: str
    breakdown: Optional[dict[str, Any]] = None
    computed_at: Optional[UTCDateTime] = None


class ReactionInfo(BaseSchema):
    user_id: UUID
    reaction_type: str
    created_at: UTCDateTime


class FlagInfo(BaseSchema):
    user_id: UUID
    reason: str
    note: Optional[str] = None
    created_at: UTCDateTime


class AdminAnswerSummary(BaseSchema):
    answer_id: UUID
    question_id: UUID
    question_title: str
    body: str
    aqs: int
    label: str
    is_accepted: bool
    is_hidden: bool
    created_at: UTCDateTime
    author: Optional[AuthorSummary] = None


class AdminAnswerListResponse(BaseSchema):
    answers: list[AdminAnswerSummary]


class AnswerDebugResponse(BaseSchema):
    answer: AnswerResponse
    is_hidden: bool
    flag_count: int
    stored_metric: Optional[QualityMetricInfo] = None
    live_metric: QualityMetricInfo
    thresholds: dict[str, int]
    reactions: list[ReactionInfo]
    flags: list[FlagInfo]


class RecomputeResponse(BaseSchema):
    answer_id: UUID
    aqs: int
    label: str


class CronRecomputeResponse(BaseSchema):
    processed: int
    updated: int
