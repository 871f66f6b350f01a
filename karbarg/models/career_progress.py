"""Per-user career level progress."""
import uuid
from datetime import datetime, UTC

from sqlalchemy import Column, String, DateTime, ForeignKey, JSON, UniqueConstraint
from sqlalchemy.ext.mutable import MutableList

from karbarg.database import Base
from karbarg.models.base import get_uuid_column


class CareerLevelProgress(Base):
    """Append-only completed-task list for one (user, level) pair."""

    __tablename__ = "career_level_progress"

    progress_id = get_uuid_column(primary_key=True, default=uuid.uuid4)
    user_id = get_uuid_column(
        ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True
    )
    level_id = Column(String(50), nullable=False)
    completed_task_ids = Column(MutableList.as_mutable(JSON), nullable=False, default=list)
    in_progress_task_id = Column(String(50), nullable=True)
    started_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("user_id", "level_id", name="uq_career_level_progress_user_level"),
    )

    def __repr__(self) -> str:
        return (
            f"<CareerLevelProgress(user_id={self.user_id}, level_id={self.level_id}, "
            f"completed={len(self.completed_task_ids or [])})>"
        )
