"""Leaderboard and expertise schemas."""
from karbarg.schemas.base import BaseSchema
from typing import Optional
from uuid import UUID


class ExpertLevelInfo(BaseSchema):
    code: str
    title_fa: str
    title_en: str
    min_score: int


class ReputationStatsResponse(BaseSchema):
    total_answers: int
    accepted_answers: int
    acceptance_rate: int
    helpful_reactions: int
    expert_reactions: int
    total_questions: int
    avg_aqs: int
    score: int


class LeaderboardEntryResponse(BaseSchema):
    rank: int
    user_id: UUID
    name: Optional[str] = None
    level: ExpertLevelInfo
    stats: ReputationStatsResponse


class LeaderboardResponse(BaseSchema):
    experts: list[LeaderboardEntryResponse]
    period: str
    category: Optional[str] = None
    total_experts: int


class NextLevelInfo(BaseSchema):
    level: ExpertLevelInfo
    points_needed: int


class BadgeInfo(BaseSchema):
    code: str
    title_fa: str
    title_en: str
    category: str


class ExpertiseResponse(BaseSchema):
    user_id: UUID
    name: str
    stats: ReputationStatsResponse
    level: ExpertLevelInfo
    next_level: Optional[NextLevelInfo] = None
    badges: list[BadgeInfo]
    expert_answers_by_category: dict[str, int]
