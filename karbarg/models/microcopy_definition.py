"""Microcopy variant definitions."""
from datetime import datetime, UTC

from sqlalchemy import Column, String, Integer, DateTime, Boolean, Text

from karbarg.database import Base


class MicrocopyDefinition(Base):
    """A short nudge message and the rule that triggers it.

    ``is_enabled`` only controls serving; historical events are never touched.
    """

    __tablename__ = "microcopy_definitions"

    microcopy_id = Column(String(100), primary_key=True)
    trigger_rule = Column(String(100), nullable=False)
    text_fa = Column(Text, nullable=False)
    target_segment = Column(String(20), default="all", nullable=False)
    priority = Column(Integer, default=50, nullable=False)
    cooldown_hours = Column(Integer, default=24, nullable=False)
    is_enabled = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<MicrocopyDefinition(microcopy_id={self.microcopy_id}, enabled={self.is_enabled})>"
