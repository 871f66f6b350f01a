"""Q&A answer model with denormalized reaction counters."""
import uuid
from datetime import datetime, UTC

from sqlalchemy import Column, Integer, DateTime, ForeignKey, Index, Boolean, Text, true
from sqlalchemy.orm import relationship

from karbarg.database import Base
from karbarg.models.base import get_uuid_column


class Answer(Base):
    """An answer to a question.

    Counters are maintained with increment-style UPDATEs by the reaction and
    flag services. At most one answer per question may be accepted; the
    partial unique index enforces it in the store.
    """

    __tablename__ = "qa_answers"

    answer_id = get_uuid_column(primary_key=True, default=uuid.uuid4)
    question_id = get_uuid_column(
        ForeignKey("qa_questions.question_id", ondelete="CASCADE"), nullable=False, index=True
    )
    author_id = get_uuid_column(
        ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True
    )
    body = Column(Text, nullable=False)
    helpful_count = Column(Integer, default=0, nullable=False)
    not_helpful_count = Column(Integer, default=0, nullable=False)
    expert_badge_count = Column(Integer, default=0, nullable=False)
    flag_count = Column(Integer, default=0, nullable=False)
    is_accepted = Column(Boolean, default=False, nullable=False)
    accepted_at = Column(DateTime(timezone=True), nullable=True)
    is_hidden = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=True)

    question = relationship("Question", back_populates="answers")
    author = relationship("User", back_populates="answers")
    quality_metric = relationship(
        "AnswerQualityMetric", back_populates="answer", uselist=False, cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("ix_qa_answers_author_created", "author_id", "created_at"),
        Index(
            "uq_qa_answers_one_accepted_per_question",
            "question_id",
            unique=True,
            sqlite_where=is_accepted == true(),
            postgresql_where=is_accepted == true(),
        ),
    )

    def __repr__(self) -> str:
        return f"<Answer(answer_id={self.answer_id}, accepted={self.is_accepted}, hidden={self.is_hidden})>"
