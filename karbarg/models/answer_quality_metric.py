"""Derived quality metric for an answer."""
from datetime import datetime, UTC

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship

from karbarg.database import Base
from karbarg.models.base import get_uuid_column, QualityLabel


class AnswerQualityMetric(Base):
    """AQS and label for one answer, rewritten on every recompute."""

    __tablename__ = "qa_answer_quality_metrics"

    answer_id = get_uuid_column(
        ForeignKey("qa_answers.answer_id", ondelete="CASCADE"), primary_key=True
    )
    aqs = Column(Integer, default=0, nullable=False)
    label = Column(String(10), default=QualityLabel.NORMAL.value, nullable=False, index=True)
    breakdown = Column(JSON, nullable=False, default=dict)
    computed_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False, index=True)

    answer = relationship("Answer", back_populates="quality_metric")

    def __repr__(self) -> str:
        return f"<AnswerQualityMetric(answer_id={self.answer_id}, aqs={self.aqs}, label={self.label})>"
