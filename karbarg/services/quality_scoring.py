"""Answer Quality Score (AQS) calculator and quality labeler.

Both are pure: every input arrives as an argument and nothing is cached, so
recomputing from the same counters always yields the same score and label.
"""
from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Optional

from karbarg.models.base import QualityLabel

MIN_AQS = 0
MAX_AQS = 100


@dataclass(frozen=True)
class AQSWeights:
    """Point weights applied to an answer's engagement counters."""
    helpful_points: int = 8
    expert_points: int = 15
    accepted_bonus: int = 25
    not_helpful_penalty: int = 5
    flag_penalty: int = 5
    max_flag_penalty: int = 20
    engagement_max_bonus: int = 10

    def __post_init__(self):
        for name, value in asdict(self).items():
            if value < 0:
                raise ValueError(f"AQS weight {name} must be >= 0, got {value}")

    @classmethod
    def from_settings(cls, settings) -> "AQSWeights":
        return cls(
            helpful_points=settings.aqs_helpful_points,
            expert_points=settings.aqs_expert_points,
            accepted_bonus=settings.aqs_accepted_bonus,
            not_helpful_penalty=settings.aqs_not_helpful_penalty,
            flag_penalty=settings.aqs_flag_penalty,
            max_flag_penalty=settings.aqs_max_flag_penalty,
            engagement_max_bonus=settings.aqs_engagement_max_bonus,
        )


@dataclass(frozen=True)
class AnswerSignals:
    """Stored counters the score is derived from."""
    helpful_count: int
    expert_badge_count: int
    is_accepted: bool
    not_helpful_count: int = 0
    flag_count: int = 0
    views: Optional[int] = None

    def __post_init__(self):
        for name in ("helpful_count", "expert_badge_count", "not_helpful_count", "flag_count"):
            value = getattr(self, name)
            if value is None or value < 0:
                raise ValueError(f"{name} must be a non-negative integer, got {value!r}")
        if self.views is not None and self.views < 0:
            raise ValueError(f"views must be >= 0, got {self.views}")

    @classmethod
    def from_answer(cls, answer, views: Optional[int] = None) -> "AnswerSignals":
        return cls(
            helpful_count=answer.helpful_count or 0,
            expert_badge_count=answer.expert_badge_count or 0,
            is_accepted=bool(answer.is_accepted),
            not_helpful_count=answer.not_helpful_count or 0,
            flag_count=answer.flag_count or 0,
            views=views,
        )


@dataclass(frozen=True)
class AQSResult:
    aqs: int
    breakdown: dict


@dataclass(frozen=True)
class QualityThresholds:
    """AQS cut-offs for the USEFUL and PRO tiers."""
    useful: int = 40
    pro: int = 85

    def __post_init__(self):
        if not MIN_AQS < self.useful < self.pro <= MAX_AQS:
            raise ValueError(
                f"Thresholds must satisfy {MIN_AQS} < useful < pro <= {MAX_AQS}, "
                f"got useful={self.useful}, pro={self.pro}"
            )


class AQSCalculator:
    """Derive a 0-100 quality score from an answer's counters."""

    def __init__(self, weights: AQSWeights | None = None):
        self.weights = weights or AQSWeights()

    def calculate(self, signals: AnswerSignals) -> AQSResult:
        """Score an answer.

        The score is non-decreasing in ``helpful_count`` and
        ``expert_badge_count``; acceptance adds a fixed bonus; not-helpful
        reactions and flags subtract. The raw total is clamped to [0, 100],
        so an answer with no activity sits at the floor.

        Args:
            signals: Current counters for the answer

        Returns:
            AQSResult with the integer score and the per-part breakdown
        """
        w = self.weights

        helpful = signals.helpful_count * w.helpful_points
        expert = signals.expert_badge_count * w.expert_points
        accepted = w.accepted_bonus if signals.is_accepted else 0
        engagement = self.engagement_bonus(
            signals.helpful_count + signals.expert_badge_count, signals.views, w.engagement_max_bonus
        )
        not_helpful = -signals.not_helpful_count * w.not_helpful_penalty
        flags = -min(signals.flag_count * w.flag_penalty, w.max_flag_penalty)

        raw = helpful + expert + accepted + engagement + not_helpful + flags
        aqs = max(MIN_AQS, min(MAX_AQS, raw))

        return AQSResult(
            aqs=aqs,
            breakdown={
                "helpful": helpful,
                "expert": expert,
                "accepted": accepted,
                "engagement": engagement,
                "not_helpful": not_helpful,
                "flags": flags,
                "raw": raw,
            },
        )

    @staticmethod
    def engagement_bonus(positive_reactions: int, views: Optional[int], max_bonus: int) -> int:
        """Bonus proportional to positive reactions per view, capped at ``max_bonus``.

        Unknown or zero views give no bonus.
        """
        if not views:
            return 0
        ratio = min(1.0, positive_reactions / views)
        return round(ratio * max_bonus)


class QualityLabeler:
    """Map (AQS, accepted) to a QualityLabel using configured thresholds."""

    def __init__(self, thresholds: QualityThresholds | None = None):
        self.thresholds = thresholds or QualityThresholds()

    def label(self, aqs: int, is_accepted: bool) -> QualityLabel:
        if aqs is None or not MIN_AQS <= aqs <= MAX_AQS:
            raise ValueError(f"aqs must be within [{MIN_AQS}, {MAX_AQS}], got {aqs!r}")

        if is_accepted:
            return QualityLabel.STAR
        if aqs >= self.thresholds.pro:
            return QualityLabel.PRO
        if aqs >= self.thresholds.useful:
            return QualityLabel.USEFUL
        return QualityLabel.NORMAL
