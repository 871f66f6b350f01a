"""Question lifecycle, listing, stats and trending."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import select, func, update, cast, or_, String
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from karbarg.config import get_settings
from karbarg.database import AsyncSessionLocal
from karbarg.models.answer import Answer
from karbarg.models.answer_quality_metric import AnswerQualityMetric
from karbarg.models.question import Question
from karbarg.models.base import QualityLabel
from karbarg.services.quality_scoring import QualityLabeler
from karbarg.services.qa_lookup import get_visible_question
from karbarg.services.reaction_service import ReactionService
from karbarg.services.system_config_service import SystemConfigService
from karbarg.utils.datetime_helpers import utc_now, ensure_utc, start_of_day
from karbarg.utils.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    RateLimitExceededError,
    ServiceDisabledError,
    ValidationFailedError,
)

logger = logging.getLogger(__name__)

SEARCH_MIN_QUERY_LENGTH = 3
MAX_TAG_LENGTH = 40

TRENDING_PERIOD_DAYS = {"day": 1, "week": 7, "month": 30}
TRENDING_CANDIDATES = 100
TRENDING_VIEW_WEIGHT = 1
TRENDING_ANSWER_WEIGHT = 10
TRENDING_REACTION_WEIGHT = 5

RELATED_SAME_CATEGORY_SCORE = 10
RELATED_OTHER_CATEGORY_SCORE = 5
RELATED_TAG_WEIGHT = 5
RELATED_KEYWORD_WEIGHT = 3
RELATED_ANSWERED_BONUS = 2
RELATED_MAX_KEYWORDS = 5


@dataclass
class RankedAnswer:
    answer: Answer
    aqs: int
    label: QualityLabel
    user_reaction: Optional[str] = None


@dataclass
class QuestionDetail:
    question: Question
    answers: list[RankedAnswer] = field(default_factory=list)
    is_asker: bool = False


@dataclass
class RelatedQuestion:
    question: Question
    relevance_score: int


@dataclass
class TrendingQuestion:
    question: Question
    views: int
    answers: int
    reactions: int
    score: float


def recency_boost(age: timedelta) -> float:
    """Multiplier favouring fresh questions in the trending list."""
    if age < timedelta(days=1):
        return 2.0
    if age < timedelta(days=7):
        return 1.5
    return 1.0


def trending_score(views: int, answers: int, reactions: int, age: timedelta) -> float:
    base = (
        views * TRENDING_VIEW_WEIGHT
        + answers * TRENDING_ANSWER_WEIGHT
        + reactions * TRENDING_REACTION_WEIGHT
    )
    return round(base * recency_boost(age), 2)


def normalize_tags(tags: Optional[list[str]], max_tags: int) -> list[str]:
    """Lower-case, de-duplicate and bound a tag list, keeping the caller's order."""
    cleaned: list[str] = []
    for tag in tags or []:
        tag = (tag or "").strip().lower()
        if not tag or tag in cleaned:
            continue
        if len(tag) > MAX_TAG_LENGTH:
            raise ValidationFailedError(f"Tags must be at most {MAX_TAG_LENGTH} characters")
        cleaned.append(tag)
    if len(cleaned) > max_tags:
        raise ValidationFailedError(f"A question can have at most {max_tags} tags")
    return cleaned


def title_keywords(title: str) -> list[str]:
    """First few title words longer than three characters, lower-cased."""
    words = [word.lower() for word in (title or "").split() if len(word) > 3]
    return words[:RELATED_MAX_KEYWORDS]


def related_score(source: Question, candidate: Question, keywords: list[str]) -> int:
    """Relevance of a same-category candidate: shared tags, title keywords, answered bonus."""
    shared_tags = set(source.tags or []) & set(candidate.tags or [])
    candidate_words = (candidate.title or "").lower().split()
    keyword_hits = sum(1 for kw in keywords if any(kw in word for word in candidate_words))

    score = RELATED_SAME_CATEGORY_SCORE
    score += len(shared_tags) * RELATED_TAG_WEIGHT
    score += keyword_hits * RELATED_KEYWORD_WEIGHT
    if candidate.answers_count > 0:
        score += RELATED_ANSWERED_BONUS
    return score


def check_length(name: str, value: str, min_length: int, max_length: int) -> str:
    value = (value or "").strip()
    if len(value) < min_length:
        raise ValidationFailedError(f"{name} must be at least {min_length} characters")
    if len(value) > max_length:
        raise ValidationFailedError(f"{name} must be at most {max_length} characters")
    return value


class QuestionService:
    """Service for creating, editing, hiding and reading questions."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.settings = get_settings()
        self.config = SystemConfigService(db)

    async def ensure_enabled(self) -> None:
        if not await self.config.get_config_value("qa_enabled"):
            raise ServiceDisabledError("Q&A is currently disabled")

    async def list_questions(
        self,
        category: Optional[str] = None,
        tag: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
    ) -> tuple[list[Question], int]:
        """Visible questions, newest first, with the total for pagination."""
        await self.ensure_enabled()

        filters = [Question.is_hidden.is_(False)]
        if category:
            filters.append(Question.category == category)
        if tag:
            # Match the tag as the JSON serializer stored it, quotes and escapes included
            filters.append(cast(Question.tags, String).contains(json.dumps(tag.strip().lower()), autoescape=True))

        total = (await self.db.execute(select(func.count()).select_from(Question).where(*filters))).scalar_one()
        result = await self.db.execute(
            select(Question)
            .options(selectinload(Question.author))
            .where(*filters)
            .order_by(Question.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    async def search_questions(
        self,
        query: str,
        category: Optional[str] = None,
        limit: int = 10,
    ) -> list[Question]:
        query = (query or "").strip()
        if len(query) < SEARCH_MIN_QUERY_LENGTH:
            return []

        stmt = (
            select(Question)
            .where(Question.is_hidden.is_(False), Question.title.ilike(f"%{query}%"))
            .order_by(Question.answers_count.desc(), Question.created_at.desc())
            .limit(limit)
        )
        if category:
            stmt = stmt.where(Question.category == category)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def _count_today(self, model, author_id: UUID) -> int:
        result = await self.db.execute(
            select(func.count())
            .select_from(model)
            .where(model.author_id == author_id, model.created_at >= start_of_day())
        )
        return result.scalar_one()

    async def create_question(
        self,
        author_id: UUID,
        title: str,
        body: str,
        category: str,
        tags: Optional[list[str]] = None,
    ) -> Question:
        """Create a question, enforcing length bounds, tag count and the daily limit.

        Raises:
            ValidationFailedError: Title, body, category or tags invalid
            RateLimitExceededError: Daily question limit reached
        """
        await self.ensure_enabled()
        s = self.settings
        title = check_length("Title", title, s.question_title_min_length, s.question_title_max_length)
        body = check_length("Body", body, s.question_body_min_length, s.question_body_max_length)
        category = (category or "").strip()
        if not category:
            raise ValidationFailedError("Category is required")
        max_tags = await self.config.get_config_value("max_question_tags")
        tags = normalize_tags(tags, max_tags)

        daily_limit = await self.config.get_config_value("daily_question_limit")
        if await self._count_today(Question, author_id) >= daily_limit:
            raise RateLimitExceededError(f"Daily question limit reached ({daily_limit})")

        question = Question(
            author_id=author_id,
            title=title,
            body=body,
            category=category,
            tags=tags,
            created_at=utc_now(),
        )
        self.db.add(question)
        await self.db.commit()
        await self.db.refresh(question)
        await self.db.refresh(question, attribute_names=["author"])

        logger.info(f"Question {question.question_id} created by {author_id} in {category}")
        return question

    async def get_question_detail(self, question_id: UUID, viewer_id: Optional[UUID] = None) -> QuestionDetail:
        """Question plus visible answers ranked accepted first, then AQS, then newest.

        Labels are derived from the stored AQS with the thresholds in force
        right now, so a threshold change shows up on the next read.
        """
        await self.ensure_enabled()
        question = await get_visible_question(self.db, question_id)
        await self.db.refresh(question, attribute_names=["author"])

        aqs_col = func.coalesce(AnswerQualityMetric.aqs, 0)
        result = await self.db.execute(
            select(Answer, aqs_col)
            .options(selectinload(Answer.author))
            .outerjoin(AnswerQualityMetric, AnswerQualityMetric.answer_id == Answer.answer_id)
            .where(Answer.question_id == question_id, Answer.is_hidden.is_(False))
            .order_by(Answer.is_accepted.desc(), aqs_col.desc(), Answer.created_at.desc())
        )
        rows = result.all()

        labeler = QualityLabeler(await self.config.get_quality_thresholds())
        reactions: dict[UUID, str] = {}
        if viewer_id is not None:
            reactions = await ReactionService(self.db).get_user_reactions(
                [answer.answer_id for answer, _ in rows], viewer_id
            )

        ranked = [
            RankedAnswer(
                answer=answer,
                aqs=aqs,
                label=labeler.label(aqs, answer.is_accepted),
                user_reaction=reactions.get(answer.answer_id),
            )
            for answer, aqs in rows
        ]
        return QuestionDetail(
            question=question,
            answers=ranked,
            is_asker=viewer_id is not None and question.author_id == viewer_id,
        )

    async def get_related_questions(self, question_id: UUID, limit: int = 5) -> list[RelatedQuestion]:
        """Questions related to ``question_id``, most relevant first.

        Same-category questions are scored by shared tags, title keywords and
        whether they are answered. When those run short, questions from other
        categories whose title contains one of the keywords fill the gap with
        a flat lower score.
        """
        await self.ensure_enabled()
        source = await get_visible_question(self.db, question_id)
        keywords = title_keywords(source.title)
        visible_others = (Question.is_hidden.is_(False), Question.question_id != question_id)

        result = await self.db.execute(
            select(Question)
            .options(selectinload(Question.author))
            .where(*visible_others, Question.category == source.category)
            .order_by(Question.created_at.desc())
            .limit(limit * 2)
        )
        related = [
            RelatedQuestion(question=q, relevance_score=related_score(source, q, keywords))
            for q in result.scalars().all()
        ]
        # Stable sort keeps newest first among equal scores
        related.sort(key=lambda r: -r.relevance_score)
        related = related[:limit]

        if len(related) < limit and keywords:
            result = await self.db.execute(
                select(Question)
                .options(selectinload(Question.author))
                .where(
                    *visible_others,
                    Question.category != source.category,
                    or_(*(Question.title.icontains(kw, autoescape=True) for kw in keywords)),
                )
                .order_by(Question.answers_count.desc(), Question.created_at.desc())
                .limit(limit - len(related))
            )
            related.extend(
                RelatedQuestion(question=q, relevance_score=RELATED_OTHER_CATEGORY_SCORE)
                for q in result.scalars().all()
            )
        return related

    async def _get_owned_question(self, question_id: UUID, user_id: UUID) -> Question:
        question = await self.db.get(Question, question_id)
        if question is None:
            raise NotFoundError("Question not found")
        if question.author_id != user_id:
            raise PermissionDeniedError("Only the author can edit this question")
        return question

    async def update_question(
        self,
        question_id: UUID,
        user_id: UUID,
        title: Optional[str] = None,
        body: Optional[str] = None,
    ) -> Question:
        """Edit a question. The body is always editable; the title only until answered."""
        question = await self._get_owned_question(question_id, user_id)
        if question.is_hidden:
            raise ConflictError("Hidden questions cannot be edited")

        s = self.settings
        if title is not None:
            title = check_length("Title", title, s.question_title_min_length, s.question_title_max_length)
            if title != question.title:
                if question.answers_count > 0:
                    raise ConflictError("The title cannot change once the question has answers")
                question.title = title
        if body is not None:
            question.body = check_length("Body", body, s.question_body_min_length, s.question_body_max_length)

        question.updated_at = utc_now()
        await self.db.commit()
        await self.db.refresh(question)
        await self.db.refresh(question, attribute_names=["author"])
        logger.info(f"Question {question_id} edited by {user_id}")
        return question

    async def hide_question(self, question_id: UUID, user_id: UUID, is_admin: bool = False) -> Question:
        """Soft-delete a question. Repeating the call is a no-op."""
        question = await self.db.get(Question, question_id)
        if question is None:
            raise NotFoundError("Question not found")
        if question.author_id != user_id and not is_admin:
            raise PermissionDeniedError("Only the author can delete this question")

        if not question.is_hidden:
            question.is_hidden = True
            question.updated_at = utc_now()
            await self.db.commit()
            logger.info(f"Question {question_id} hidden by {user_id} (admin={is_admin})")
        return question

    async def increment_view(self, question_id: UUID) -> None:
        await self.db.execute(
            update(Question)
            .where(Question.question_id == question_id)
            .values(view_count=Question.view_count + 1)
        )
        await self.db.commit()

    async def get_stats(self) -> dict[str, Any]:
        """Community-wide counters for the Q&A landing page."""
        await self.ensure_enabled()
        since = utc_now() - timedelta(days=1)

        async def count(stmt) -> int:
            return (await self.db.execute(stmt)).scalar_one() or 0

        visible_answers = Answer.is_hidden.is_(False)
        stats = {
            "total_questions": await count(
                select(func.count()).select_from(Question).where(Question.is_hidden.is_(False))
            ),
            "total_answers": await count(select(func.count()).select_from(Answer).where(visible_answers)),
            "verified_answers": await count(
                select(func.count()).select_from(Answer).where(visible_answers, Answer.expert_badge_count > 0)
            ),
            "active_experts": await count(
                select(func.count(func.distinct(Answer.author_id))).where(visible_answers)
            ),
            "hot_today": await count(
                select(func.count())
                .select_from(Question)
                .where(Question.is_hidden.is_(False), Question.created_at >= since)
            ),
        }

        result = await self.db.execute(
            select(Question)
            .where(
                Question.is_hidden.is_(False),
                Question.answers_count == 0,
                Question.created_at >= since,
            )
            .order_by(Question.created_at.desc())
            .limit(5)
        )
        return {"stats": stats, "unanswered_questions": list(result.scalars().all())}

    async def get_trending(self, period: str = "week", limit: int = 5) -> list[TrendingQuestion]:
        """Rank recent questions by views, answers and reactions with a recency boost."""
        await self.ensure_enabled()
        if period not in TRENDING_PERIOD_DAYS:
            raise ValidationFailedError(f"period must be one of: {', '.join(TRENDING_PERIOD_DAYS)}")

        now = utc_now()
        since = now - timedelta(days=TRENDING_PERIOD_DAYS[period])
        result = await self.db.execute(
            select(Question)
            .options(selectinload(Question.author))
            .where(Question.is_hidden.is_(False), Question.created_at >= since)
            .order_by(Question.created_at.desc())
            .limit(TRENDING_CANDIDATES)
        )
        questions = list(result.scalars().all())
        if not questions:
            return []

        reaction_total = Answer.helpful_count + Answer.not_helpful_count + Answer.expert_badge_count
        result = await self.db.execute(
            select(Answer.question_id, func.count(), func.coalesce(func.sum(reaction_total), 0))
            .where(
                Answer.is_hidden.is_(False),
                Answer.question_id.in_([q.question_id for q in questions]),
            )
            .group_by(Answer.question_id)
        )
        per_question = {row[0]: (row[1], int(row[2])) for row in result.all()}

        trending = []
        for question in questions:
            answers, reactions = per_question.get(question.question_id, (0, 0))
            age = now - ensure_utc(question.created_at)
            trending.append(
                TrendingQuestion(
                    question=question,
                    views=question.view_count,
                    answers=answers,
                    reactions=reactions,
                    score=trending_score(question.view_count, answers, reactions, age),
                )
            )

        trending.sort(key=lambda t: (-t.score, -ensure_utc(t.question.created_at).timestamp()))
        return trending[:limit]


async def record_question_view(question_id: UUID) -> None:
    """Best-effort view counter bump run after the response is sent.

    At-most-once: a failure is logged and the view is dropped.
    """
    try:
        async with AsyncSessionLocal() as session:
            await QuestionService(session).increment_view(question_id)
    except Exception:
        logger.exception(f"Failed to record view for question {question_id}")
