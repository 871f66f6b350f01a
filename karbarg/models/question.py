"""Q&A question model."""
import uuid
from datetime import datetime, UTC

from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Index, Boolean, Text, JSON
from sqlalchemy.ext.mutable import MutableList
from sqlalchemy.orm import relationship

from karbarg.database import Base
from karbarg.models.base import get_uuid_column


class Question(Base):
    """A community question; hidden rather than deleted once answered."""

    __tablename__ = "qa_questions"

    question_id = get_uuid_column(primary_key=True, default=uuid.uuid4)
    author_id = get_uuid_column(
        ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True
    )
    title = Column(String(200), nullable=False)
    body = Column(Text, nullable=False)
    category = Column(String(50), nullable=False, index=True)
    tags = Column(MutableList.as_mutable(JSON), nullable=False, default=list)
    answers_count = Column(Integer, default=0, nullable=False)
    view_count = Column(Integer, default=0, nullable=False)
    is_hidden = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=True)

    author = relationship("User", back_populates="questions")
    answers = relationship("Answer", back_populates="question")

    __table_args__ = (
        Index("ix_qa_questions_hidden_created", "is_hidden", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Question(question_id={self.question_id}, category={self.category}, hidden={self.is_hidden})>"
