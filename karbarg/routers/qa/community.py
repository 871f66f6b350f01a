"""Leaderboard, expertise, stats and trending endpoints."""
import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from karbarg.config import get_settings
from karbarg.database import get_db
from karbarg.routers.qa.mapping import map_author, map_question_summary
from karbarg.schemas.leaderboard import (
    BadgeInfo,
    ExpertiseResponse,
    ExpertLevelInfo,
    LeaderboardEntryResponse,
    LeaderboardResponse,
    NextLevelInfo,
    ReputationStatsResponse,
)
from karbarg.schemas.qa import QAStats, QAStatsResponse, TrendingQuestionResponse, TrendingResponse
from karbarg.services.expert_levels import ExpertLevel
from karbarg.services.question_service import QuestionService
from karbarg.services.reputation_service import ReputationService, ReputationStats

logger = logging.getLogger(__name__)

router = APIRouter()


def _level_info(level: ExpertLevel) -> ExpertLevelInfo:
    return ExpertLevelInfo(
        code=level.code.value,
        title_fa=level.title_fa,
        title_en=level.title_en,
        min_score=level.min_score,
    )


def _stats(stats: ReputationStats) -> ReputationStatsResponse:
    return ReputationStatsResponse(
        total_answers=stats.total_answers,
        accepted_answers=stats.accepted_answers,
        acceptance_rate=stats.acceptance_rate,
        helpful_reactions=stats.helpful_reactions,
        expert_reactions=stats.expert_reactions,
        total_questions=stats.total_questions,
        avg_aqs=stats.avg_aqs,
        score=stats.score,
    )


@router.get("/leaderboard", response_model=LeaderboardResponse)
async def get_leaderboard(
    period: str = Query(default="all"),
    category: Optional[str] = Query(default=None),
    limit: Optional[int] = Query(default=None, ge=1),
    db: AsyncSession = Depends(get_db),
):
    """Users ranked by reputation score within the period and category."""
    settings = get_settings()
    limit = min(limit or settings.leaderboard_default_limit, settings.leaderboard_max_limit)
    entries = await ReputationService(db).get_leaderboard(period, category or None, limit)
    return LeaderboardResponse(
        experts=[
            LeaderboardEntryResponse(
                rank=entry.rank,
                user_id=entry.stats.user_id,
                name=entry.display_name,
                level=_level_info(entry.level),
                stats=_stats(entry.stats),
            )
            for entry in entries
        ],
        period=period,
        category=category or None,
        total_experts=len(entries),
    )


@router.get("/users/{user_id}/expertise", response_model=ExpertiseResponse)
async def get_expertise(user_id: UUID, db: AsyncSession = Depends(get_db)):
    profile = await ReputationService(db).get_expertise(user_id)
    next_level = None
    if profile.next_level is not None:
        next_level = NextLevelInfo(
            level=_level_info(profile.next_level),
            points_needed=profile.points_to_next_level,
        )
    return ExpertiseResponse(
        user_id=profile.user.user_id,
        name=profile.user.display_name,
        stats=_stats(profile.stats),
        level=_level_info(profile.level),
        next_level=next_level,
        badges=[
            BadgeInfo(code=b.code, title_fa=b.title_fa, title_en=b.title_en, category=b.category.value)
            for b in profile.badges
        ],
        expert_answers_by_category=profile.expert_answers_by_category,
    )


@router.get("/stats", response_model=QAStatsResponse)
async def get_stats(db: AsyncSession = Depends(get_db)):
    result = await QuestionService(db).get_stats()
    return QAStatsResponse(
        stats=QAStats(**result["stats"]),
        unanswered_questions=[map_question_summary(q) for q in result["unanswered_questions"]],
    )


@router.get("/trending", response_model=TrendingResponse)
async def get_trending(
    period: str = Query(default="week"),
    limit: int = Query(default=5, ge=1, le=20),
    db: AsyncSession = Depends(get_db),
):
    trending = await QuestionService(db).get_trending(period, limit)
    return TrendingResponse(
        trending=[
            TrendingQuestionResponse(
                question_id=t.question.question_id,
                title=t.question.title,
                category=t.question.category,
                answers_count=t.answers,
                views_count=t.views,
                reactions_count=t.reactions,
                trending_score=t.score,
                created_at=t.question.created_at,
                author=map_author(t.question.author),
            )
            for t in trending
        ],
        period=period,
    )
