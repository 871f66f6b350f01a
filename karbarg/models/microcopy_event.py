"""Microcopy impression funnel events."""
import uuid
from datetime import datetime, UTC

from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Index, JSON
from sqlalchemy.orm import relationship

from karbarg.database import Base
from karbarg.models.base import get_uuid_column


class MicrocopyEvent(Base):
    """A shown/clicked/dismissed event for one microcopy variant."""

    __tablename__ = "microcopy_events"

    event_id = get_uuid_column(primary_key=True, default=uuid.uuid4)
    microcopy_id = Column(String(100), nullable=False)
    trigger_rule_id = Column(String(100), nullable=True)
    user_id = get_uuid_column(
        ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True, index=True
    )
    event_type = Column(String(20), nullable=False)
    page_url = Column(String(500), nullable=True)
    question_id = get_uuid_column(nullable=True)
    user_segment = Column(String(20), nullable=True)
    user_answer_count = Column(Integer, default=0, nullable=False)
    context = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False)

    actions = relationship("MicrocopyAction", back_populates="event", cascade="all, delete-orphan")

    __table_args__ = (
        Index("ix_microcopy_events_microcopy_type_created", "microcopy_id", "event_type", "created_at"),
        Index("ix_microcopy_events_created", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<MicrocopyEvent(event_id={self.event_id}, microcopy_id={self.microcopy_id}, type={self.event_type})>"
