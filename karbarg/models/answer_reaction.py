"""Per-user reaction on an answer."""
import uuid
from datetime import datetime, UTC

from sqlalchemy import Column, String, DateTime, ForeignKey, UniqueConstraint

from karbarg.database import Base
from karbarg.models.base import get_uuid_column


class AnswerReaction(Base):
    """One reaction per (user, answer); re-submitting changes or removes it."""

    __tablename__ = "qa_answer_reactions"

    reaction_id = get_uuid_column(primary_key=True, default=uuid.uuid4)
    answer_id = get_uuid_column(
        ForeignKey("qa_answers.answer_id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = get_uuid_column(
        ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True
    )
    reaction_type = Column(String(20), nullable=False)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("answer_id", "user_id", name="uq_qa_answer_reactions_answer_user"),
    )

    def __repr__(self) -> str:
        return f"<AnswerReaction(answer_id={self.answer_id}, user_id={self.user_id}, type={self.reaction_type})>"
