"""Moderation flag on an answer."""
import uuid
from datetime import datetime, UTC

from sqlalchemy import Column, String, DateTime, ForeignKey, Text, UniqueConstraint

from karbarg.database import Base
from karbarg.models.base import get_uuid_column


class AnswerFlag(Base):
    """One flag per (user, answer); a second submission updates the reason."""

    __tablename__ = "qa_answer_flags"

    flag_id = get_uuid_column(primary_key=True, default=uuid.uuid4)
    answer_id = get_uuid_column(
        ForeignKey("qa_answers.answer_id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = get_uuid_column(
        ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False
    )
    reason = Column(String(20), nullable=False)
    note = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False)

    __table_args__ = (
        UniqueConstraint("answer_id", "user_id", name="uq_qa_answer_flags_answer_user"),
    )

    def __repr__(self) -> str:
        return f"<AnswerFlag(answer_id={self.answer_id}, reason={self.reason})>"
