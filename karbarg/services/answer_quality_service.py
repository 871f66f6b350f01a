"""Persisted answer quality metrics."""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy import func, select, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from karbarg.config import get_settings
from karbarg.models.answer import Answer
from karbarg.models.answer_quality_metric import AnswerQualityMetric
from karbarg.models.question import Question
from karbarg.models.base import QualityLabel
from karbarg.services.quality_scoring import (
    AQSCalculator,
    AQSResult,
    AQSWeights,
    AnswerSignals,
    QualityLabeler,
    QualityThresholds,
)
from karbarg.utils.datetime_helpers import utc_now

logger = logging.getLogger(__name__)


def stale_answers_query(cutoff: datetime, limit: int):
    """Visible answers with no metric or one computed before ``cutoff``.

    Missing metrics come first on every backend, then the oldest ones.
    """
    return (
        select(Answer, AnswerQualityMetric.aqs, AnswerQualityMetric.label)
        .outerjoin(AnswerQualityMetric, AnswerQualityMetric.answer_id == Answer.answer_id)
        .where(
            Answer.is_hidden.is_(False),
            or_(
                AnswerQualityMetric.answer_id.is_(None),
                AnswerQualityMetric.computed_at < cutoff,
            ),
        )
        .order_by(AnswerQualityMetric.computed_at.asc().nulls_first(), Answer.created_at.asc())
        .limit(limit)
    )


class AnswerQualityService:
    """Recompute and store AQS and labels for answers.

    Metrics are never edited directly: every write goes through
    ``recompute_answer`` (counters changed) or ``relabel_all`` (thresholds
    changed). Callers own the transaction.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.calculator = AQSCalculator(AQSWeights.from_settings(get_settings()))

    async def _labeler(self) -> QualityLabeler:
        from karbarg.services.system_config_service import SystemConfigService

        thresholds = await SystemConfigService(self.db).get_quality_thresholds()
        return QualityLabeler(thresholds)

    async def _question_views(self, question_id: UUID) -> int | None:
        result = await self.db.execute(
            select(Question.view_count).where(Question.question_id == question_id)
        )
        return result.scalar_one_or_none()

    async def _get_metric(self, answer_id: UUID) -> AnswerQualityMetric | None:
        result = await self.db.execute(
            select(AnswerQualityMetric).where(AnswerQualityMetric.answer_id == answer_id)
        )
        return result.scalar_one_or_none()

    async def evaluate_answer(self, answer: Answer) -> tuple[AQSResult, QualityLabel, QualityThresholds]:
        """Score an answer from its current counters without storing anything."""
        labeler = await self._labeler()
        views = await self._question_views(answer.question_id)
        result = self.calculator.calculate(AnswerSignals.from_answer(answer, views=views))
        return result, labeler.label(result.aqs, answer.is_accepted), labeler.thresholds

    async def recompute_answer(
        self,
        answer: Answer,
        labeler: QualityLabeler | None = None,
        views: int | None = None,
    ) -> AnswerQualityMetric:
        """Recompute the metric row for one answer from its stored counters."""
        # Counters are changed with UPDATE statements; reload before scoring
        await self.db.flush()
        await self.db.refresh(answer)
        labeler = labeler or await self._labeler()
        if views is None:
            views = await self._question_views(answer.question_id)

        result = self.calculator.calculate(AnswerSignals.from_answer(answer, views=views))
        label = labeler.label(result.aqs, answer.is_accepted)

        metric = await self._get_metric(answer.answer_id)
        if metric is None:
            metric = AnswerQualityMetric(answer_id=answer.answer_id)
            self.db.add(metric)

        metric.aqs = result.aqs
        metric.label = label.value
        metric.breakdown = result.breakdown
        metric.computed_at = utc_now()
        await self.db.flush()

        logger.debug(
            f"Recomputed AQS for answer {answer.answer_id}: {result.aqs} ({label.value})"
        )
        return metric

    async def recompute_for_question(self, question_id: UUID) -> int:
        """Recompute every answer of a question; returns the number updated."""
        labeler = await self._labeler()
        views = await self._question_views(question_id)
        result = await self.db.execute(
            select(Answer).where(Answer.question_id == question_id)
        )
        answers = result.scalars().all()
        for answer in answers:
            await self.recompute_answer(answer, labeler=labeler, views=views)
        return len(answers)

    async def relabel_all(self, thresholds: QualityThresholds) -> int:
        """Rewrite stored labels for new thresholds without touching AQS."""
        labeler = QualityLabeler(thresholds)
        result = await self.db.execute(
            select(AnswerQualityMetric, Answer.is_accepted)
            .join(Answer, Answer.answer_id == AnswerQualityMetric.answer_id)
        )
        changed = 0
        for metric, is_accepted in result.all():
            label = labeler.label(metric.aqs, is_accepted).value
            if metric.label != label:
                metric.label = label
                changed += 1
        await self.db.flush()
        return changed

    async def list_recent_answers(self, limit: int = 50) -> list[tuple[Answer, int, str]]:
        """Newest answers, hidden ones included, with their stored AQS and label.

        Answers without a metric report 0 and NORMAL.
        """
        result = await self.db.execute(
            select(
                Answer,
                func.coalesce(AnswerQualityMetric.aqs, 0),
                func.coalesce(AnswerQualityMetric.label, QualityLabel.NORMAL.value),
            )
            .options(selectinload(Answer.author), selectinload(Answer.question))
            .outerjoin(AnswerQualityMetric, AnswerQualityMetric.answer_id == Answer.answer_id)
            .order_by(Answer.created_at.desc())
            .limit(limit)
        )
        return [(answer, aqs, label) for answer, aqs, label in result.all()]

    async def recompute_stale(self, max_age_days: int, limit: int) -> dict[str, int]:
        """Recompute visible answers whose metric is missing or older than ``max_age_days``.

        Returns:
            ``{"processed": n, "updated": m}`` where ``updated`` counts
            metrics whose score or label actually changed.
        """
        if max_age_days < 0:
            raise ValueError("max_age_days must be >= 0")
        if limit < 1:
            raise ValueError("limit must be >= 1")

        cutoff = utc_now() - timedelta(days=max_age_days)
        rows = (await self.db.execute(stale_answers_query(cutoff, limit))).all()

        labeler = await self._labeler()
        processed = 0
        updated = 0
        for answer, old_aqs, old_label in rows:
            metric = await self.recompute_answer(answer, labeler=labeler)
            processed += 1
            if metric.aqs != old_aqs or metric.label != old_label:
                updated += 1

        await self.db.commit()
        logger.info(f"Quality recompute processed={processed} updated={updated} (max_age_days={max_age_days})")
        return {"processed": processed, "updated": updated}
