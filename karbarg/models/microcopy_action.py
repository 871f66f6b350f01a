"""Conversions credited to a microcopy event."""
import uuid
from datetime import datetime, UTC

from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship

from karbarg.database import Base
from karbarg.models.base import get_uuid_column


class MicrocopyAction(Base):
    """A follow-up action (answer, question, profile view) after an impression."""

    __tablename__ = "microcopy_actions"

    action_id = get_uuid_column(primary_key=True, default=uuid.uuid4)
    event_id = get_uuid_column(
        ForeignKey("microcopy_events.event_id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = get_uuid_column(
        ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True
    )
    action_type = Column(String(30), nullable=False)
    answer_id = get_uuid_column(nullable=True)
    question_id = get_uuid_column(nullable=True)
    reputation_delta = Column(Integer, default=0, nullable=False)
    time_to_action_ms = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False)

    event = relationship("MicrocopyEvent", back_populates="actions")

    __table_args__ = (
        Index("ix_microcopy_actions_created", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<MicrocopyAction(action_id={self.action_id}, type={self.action_type})>"
