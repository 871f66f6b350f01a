"""Base utilities and shared enumerations for SQLAlchemy models."""
from enum import Enum
import uuid
from sqlalchemy import Column, String
from sqlalchemy.dialects.postgresql import UUID as PGUUID
from sqlalchemy.sql import sqltypes


class QualityLabel(str, Enum):
    """Discrete answer quality tier shown as a badge."""
    NORMAL = "NORMAL"
    USEFUL = "USEFUL"
    PRO = "PRO"
    STAR = "STAR"


class ReactionType(str, Enum):
    """Reaction a reader can leave on an answer."""
    HELPFUL = "helpful"
    NOT_HELPFUL = "not_helpful"
    EXPERT = "expert"


class ReactionAction(str, Enum):
    """Outcome of submitting a reaction."""
    ADDED = "added"
    CHANGED = "changed"
    REMOVED = "removed"


class FlagReason(str, Enum):
    """Reasons a reader can flag an answer for moderation."""
    SPAM = "SPAM"
    ABUSE = "ABUSE"
    MISLEADING = "MISLEADING"
    LOW_QUALITY = "LOW_QUALITY"
    OTHER = "OTHER"


class MicrocopyEventType(str, Enum):
    """Impression funnel events for a microcopy variant."""
    SHOWN = "shown"
    CLICKED = "clicked"
    DISMISSED = "dismissed"


class MicrocopyActionType(str, Enum):
    """Follow-up actions credited to a microcopy impression."""
    ANSWER_CREATED = "answer_created"
    QUESTION_CREATED = "question_created"
    PROFILE_VIEWED = "profile_viewed"
    LEADERBOARD_VIEWED = "leaderboard_viewed"


class UserSegment(str, Enum):
    """Experience segment used to partition microcopy analytics."""
    NEW = "new"
    JUNIOR = "junior"
    PROFESSIONAL = "professional"


def get_uuid_column(*args, **kwargs):
    """Get a UUID column that adapts to the database dialect.

    PostgreSQL stores native UUIDs; SQLite stores lowercase hex strings.

    Example:
        answer_id = get_uuid_column(primary_key=True, default=uuid.uuid4)
        question_id = get_uuid_column(ForeignKey("qa_questions.question_id"), nullable=False)
    """
    return Column(AdaptiveUUID(), *args, **kwargs)


class AdaptiveUUID(sqltypes.TypeDecorator):
    """UUID type backed by native UUID on PostgreSQL and String elsewhere."""

    impl = sqltypes.String
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(PGUUID(as_uuid=True))
        return dialect.type_descriptor(String(36))

    @staticmethod
    def _coerce_uuid(value):
        if value is None or isinstance(value, uuid.UUID):
            return value
        return uuid.UUID(str(value))

    def process_bind_param(self, value, dialect):
        value = self._coerce_uuid(value)
        if value is None:
            return None
        if dialect.name == "postgresql":
            return value
        return value.hex

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return self._coerce_uuid(value)
