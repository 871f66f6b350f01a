"""Reputation aggregation, leaderboard ranking and expertise profiles."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Optional
from uuid import UUID

from sqlalchemy import select, func, case
from sqlalchemy.ext.asyncio import AsyncSession

from karbarg.models.answer import Answer
from karbarg.models.answer_quality_metric import AnswerQualityMetric
from karbarg.models.question import Question
from karbarg.models.user import User
from karbarg.services.expert_levels import (
    Badge,
    ExpertLevel,
    eligible_badges,
    get_expert_level,
    get_next_level,
)
from karbarg.utils.datetime_helpers import ensure_utc, window_start
from karbarg.utils.exceptions import NotFoundError, ValidationFailedError

logger = logging.getLogger(__name__)

ANSWER_POINTS = 10
ACCEPTED_POINTS = 50
HELPFUL_POINTS = 5
EXPERT_POINTS = 20
QUESTION_POINTS = 2

PERIOD_DAYS = {"all": None, "month": 30, "week": 7}


def reputation_score(
    total_answers: int,
    accepted_answers: int,
    helpful_reactions: int,
    expert_reactions: int,
    total_questions: int,
) -> int:
    """Weighted reputation score; acceptance weighs most, asking least."""
    counts = (total_answers, accepted_answers, helpful_reactions, expert_reactions, total_questions)
    if any(c is None or c < 0 for c in counts):
        raise ValueError(f"Reputation counters must be non-negative integers, got {counts}")
    return (
        total_answers * ANSWER_POINTS
        + accepted_answers * ACCEPTED_POINTS
        + helpful_reactions * HELPFUL_POINTS
        + expert_reactions * EXPERT_POINTS
        + total_questions * QUESTION_POINTS
    )


@dataclass
class ReputationStats:
    """Per-user aggregate within one window and category filter."""
    user_id: UUID
    total_answers: int = 0
    accepted_answers: int = 0
    helpful_reactions: int = 0
    expert_reactions: int = 0
    total_questions: int = 0
    avg_aqs: int = 0
    first_activity_at: Optional[datetime] = None

    @property
    def score(self) -> int:
        return reputation_score(
            self.total_answers,
            self.accepted_answers,
            self.helpful_reactions,
            self.expert_reactions,
            self.total_questions,
        )

    @property
    def acceptance_rate(self) -> int:
        if not self.total_answers:
            return 0
        return round(self.accepted_answers / self.total_answers * 100)

    def note_activity(self, at: Optional[datetime]) -> None:
        at = ensure_utc(at)
        if at is not None and (self.first_activity_at is None or at < self.first_activity_at):
            self.first_activity_at = at


@dataclass
class LeaderboardEntry:
    rank: int
    stats: ReputationStats
    level: ExpertLevel
    display_name: Optional[str] = None


@dataclass
class ExpertiseProfile:
    user: User
    stats: ReputationStats
    level: ExpertLevel
    next_level: Optional[ExpertLevel]
    points_to_next_level: int
    badges: list[Badge] = field(default_factory=list)
    expert_answers_by_category: dict[str, int] = field(default_factory=dict)


def _ranking_key(stats: ReputationStats):
    first = stats.first_activity_at.timestamp() if stats.first_activity_at else float("inf")
    return (-stats.score, first, str(stats.user_id))


def rank_leaderboard(stats: Iterable[ReputationStats], limit: int) -> list[LeaderboardEntry]:
    """Sort by score descending, then earliest activity, then user id.

    The secondary keys make ordering stable across calls when scores tie.
    Ranks are 1-based positions after sorting.
    """
    if limit < 1:
        raise ValueError(f"limit must be >= 1, got {limit}")
    ordered = sorted(stats, key=_ranking_key)[:limit]
    return [
        LeaderboardEntry(rank=index, stats=entry, level=get_expert_level(entry.score))
        for index, entry in enumerate(ordered, start=1)
    ]


class ReputationService:
    """Derive reputation from stored answers and questions; never writes."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def aggregate(
        self,
        period: str = "all",
        category: Optional[str] = None,
        user_id: Optional[UUID] = None,
    ) -> list[ReputationStats]:
        """Unsorted per-user aggregates for users active in the window.

        Hidden answers and anything on hidden questions are ignored. Users
        with no qualifying answer or question are not returned at all.
        """
        if period not in PERIOD_DAYS:
            raise ValidationFailedError(f"period must be one of: {', '.join(PERIOD_DAYS)}")
        since = window_start(PERIOD_DAYS[period])

        answer_filters = [Answer.is_hidden.is_(False), Question.is_hidden.is_(False)]
        question_filters = [Question.is_hidden.is_(False)]
        if since is not None:
            answer_filters.append(Answer.created_at >= since)
            question_filters.append(Question.created_at >= since)
        if category:
            answer_filters.append(Question.category == category)
            question_filters.append(Question.category == category)
        if user_id is not None:
            answer_filters.append(Answer.author_id == user_id)
            question_filters.append(Question.author_id == user_id)

        answer_rows = await self.db.execute(
            select(
                Answer.author_id,
                func.count(Answer.answer_id),
                func.sum(case((Answer.is_accepted.is_(True), 1), else_=0)),
                func.sum(Answer.helpful_count),
                func.sum(Answer.expert_badge_count),
                func.avg(func.coalesce(AnswerQualityMetric.aqs, 0)),
                func.min(Answer.created_at),
            )
            .join(Question, Question.question_id == Answer.question_id)
            .outerjoin(AnswerQualityMetric, AnswerQualityMetric.answer_id == Answer.answer_id)
            .where(*answer_filters)
            .group_by(Answer.author_id)
        )
        question_rows = await self.db.execute(
            select(Question.author_id, func.count(Question.question_id), func.min(Question.created_at))
            .where(*question_filters)
            .group_by(Question.author_id)
        )

        by_user: dict[UUID, ReputationStats] = {}
        for author_id, total, accepted, helpful, expert, avg_aqs, first_at in answer_rows.all():
            stats = by_user.setdefault(author_id, ReputationStats(user_id=author_id))
            stats.total_answers = int(total or 0)
            stats.accepted_answers = int(accepted or 0)
            stats.helpful_reactions = int(helpful or 0)
            stats.expert_reactions = int(expert or 0)
            stats.avg_aqs = round(float(avg_aqs or 0))
            stats.note_activity(first_at)
        for author_id, total, first_at in question_rows.all():
            stats = by_user.setdefault(author_id, ReputationStats(user_id=author_id))
            stats.total_questions = int(total or 0)
            stats.note_activity(first_at)

        return list(by_user.values())

    async def get_leaderboard(
        self,
        period: str = "all",
        category: Optional[str] = None,
        limit: int = 10,
    ) -> list[LeaderboardEntry]:
        entries = rank_leaderboard(await self.aggregate(period, category), limit)
        if entries:
            result = await self.db.execute(
                select(User).where(User.user_id.in_([e.stats.user_id for e in entries]))
            )
            names = {user.user_id: user.display_name for user in result.scalars().all()}
            for entry in entries:
                entry.display_name = names.get(entry.stats.user_id)
        logger.debug(f"Leaderboard period={period} category={category}: {len(entries)} entries")
        return entries

    async def _expert_answers_by_category(self, user_id: UUID) -> dict[str, int]:
        result = await self.db.execute(
            select(Question.category, func.count(Answer.answer_id))
            .join(Question, Question.question_id == Answer.question_id)
            .where(
                Answer.author_id == user_id,
                Answer.is_hidden.is_(False),
                Question.is_hidden.is_(False),
                Answer.expert_badge_count > 0,
            )
            .group_by(Question.category)
        )
        return {category: count for category, count in result.all()}

    async def get_expertise(self, user_id: UUID) -> ExpertiseProfile:
        """All-time stats, tier, progress to the next tier and earned badges."""
        user = await self.db.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")

        aggregates = await self.aggregate("all", user_id=user_id)
        stats = aggregates[0] if aggregates else ReputationStats(user_id=user_id)
        score = stats.score
        next_info = get_next_level(score)
        by_category = await self._expert_answers_by_category(user_id)

        return ExpertiseProfile(
            user=user,
            stats=stats,
            level=get_expert_level(score),
            next_level=next_info[0] if next_info else None,
            points_to_next_level=next_info[1] if next_info else 0,
            badges=eligible_badges(
                total_answers=stats.total_answers,
                helpful_reactions=stats.helpful_reactions,
                expert_reactions=stats.expert_reactions,
                accepted_answers=stats.accepted_answers,
                expert_answers_by_category=by_category,
            ),
            expert_answers_by_category=by_category,
        )
