"""Q&A request and response schemas."""
from karbarg.schemas.base import BaseSchema, UTCDateTime
from pydantic import Field
from typing import Optional
from uuid import UUID

from karbarg.models.base import FlagReason, QualityLabel, ReactionAction, ReactionType


class AuthorSummary(BaseSchema):
    user_id: UUID
    display_name: str


class QuestionCreate(BaseSchema):
    title: str = Field(min_length=1, max_length=500)
    body: str = Field(min_length=1)
    category: str = Field(min_length=1, max_length=50)
    tags: list[str] = Field(default_factory=list)


class QuestionUpdate(BaseSchema):
    title: Optional[str] = None
    body: Optional[str] = None


class QuestionSummary(BaseSchema):
    question_id: UUID
    title: str
    category: str
    tags: list[str]
    answers_count: int
    view_count: int
    created_at: UTCDateTime
    author: Optional[AuthorSummary] = None


class QuestionResponse(QuestionSummary):
    body: str
    is_hidden: bool
    updated_at: Optional[UTCDateTime] = None


class QuestionListResponse(BaseSchema):
    questions: list[QuestionSummary]
    total: int
    page: int
    limit: int


class QuestionSearchResponse(BaseSchema):
    questions: list[QuestionSummary]
    query: str


class RelatedQuestionSummary(QuestionSummary):
    relevance_score: int


class RelatedQuestionsResponse(BaseSchema):
    related_questions: list[RelatedQuestionSummary]


class AnswerCreate(BaseSchema):
    body: str = Field(min_length=1)


class AnswerUpdate(BaseSchema):
    body: str = Field(min_length=1)


class AnswerResponse(BaseSchema):
    answer_id: UUID
    question_id: UUID
    body: str
    helpful_count: int
    not_helpful_count: int
    expert_badge_count: int
    is_accepted: bool
    accepted_at: Optional[UTCDateTime] = None
    created_at: UTCDateTime
    updated_at: Optional[UTCDateTime] = None
    author: Optional[AuthorSummary] = None
    aqs: int = 0
    label: QualityLabel = QualityLabel.NORMAL
    user_reaction: Optional[ReactionType] = None


class QuestionDetailResponse(BaseSchema):
    question: QuestionResponse
    answers: list[AnswerResponse]
    is_asker: bool


class ReactionRequest(BaseSchema):
    type: ReactionType


class ReactionResponse(BaseSchema):
    action: ReactionAction
    reaction_type: Optional[ReactionType] = None
    helpful_count: int
    not_helpful_count: int
    expert_badge_count: int
    aqs: int
    label: QualityLabel


class CurrentReactionResponse(BaseSchema):
    reaction_type: Optional[ReactionType] = None


class FlagRequest(BaseSchema):
    reason: FlagReason
    note: Optional[str] = Field(default=None, max_length=2000)


class FlagResponse(BaseSchema):
    created: bool
    reason: FlagReason
    flag_count: int
    aqs: int
    label: QualityLabel


class AcceptRequest(BaseSchema):
    answer_id: UUID


class AcceptResponse(BaseSchema):
    success: bool
    question_id: UUID
    accepted_answer_id: Optional[UUID] = None


class HideResponse(BaseSchema):
    success: bool


class QAStats(BaseSchema):
    total_questions: int
    total_answers: int
    verified_answers: int
    active_experts: int
    hot_today: int


class QAStatsResponse(BaseSchema):
    stats: QAStats
    unanswered_questions: list[QuestionSummary]


class TrendingQuestionResponse(BaseSchema):
    question_id: UUID
    title: str
    category: str
    answers_count: int
    views_count: int
    reactions_count: int
    trending_score: float
    created_at: UTCDateTime
    author: Optional[AuthorSummary] = None


class TrendingResponse(BaseSchema):
    trending: list[TrendingQuestionResponse]
    period: str
