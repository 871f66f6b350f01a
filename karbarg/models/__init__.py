"""Database models."""
from karbarg.models.base import (
    QualityLabel,
    ReactionType,
    ReactionAction,
    FlagReason,
    MicrocopyEventType,
    MicrocopyActionType,
    UserSegment,
)
from karbarg.models.user import User
from karbarg.models.question import Question
from karbarg.models.answer import Answer
from karbarg.models.answer_quality_metric import AnswerQualityMetric
from karbarg.models.answer_reaction import AnswerReaction
from karbarg.models.answer_flag import AnswerFlag
from karbarg.models.qa_setting import QASetting
from karbarg.models.microcopy_definition import MicrocopyDefinition
from karbarg.models.microcopy_event import MicrocopyEvent
from karbarg.models.microcopy_action import MicrocopyAction
from karbarg.models.microcopy_cooldown import MicrocopyCooldown
from karbarg.models.career_progress import CareerLevelProgress

__all__ = [
    "QualityLabel",
    "ReactionType",
    "ReactionAction",
    "FlagReason",
    "MicrocopyEventType",
    "MicrocopyActionType",
    "UserSegment",
    "User",
    "Question",
    "Answer",
    "AnswerQualityMetric",
    "AnswerReaction",
    "AnswerFlag",
    "QASetting",
    "MicrocopyDefinition",
    "MicrocopyEvent",
    "MicrocopyAction",
    "MicrocopyCooldown",
    "CareerLevelProgress",
]
