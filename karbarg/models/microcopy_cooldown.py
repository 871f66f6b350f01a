"""Per-user microcopy cooldown tracking."""
from datetime import datetime, UTC

from sqlalchemy import Column, String, Integer, DateTime, ForeignKey

from karbarg.database import Base
from karbarg.models.base import get_uuid_column


class MicrocopyCooldown(Base):
    """Last time a microcopy was shown to a user and how often."""

    __tablename__ = "microcopy_cooldowns"

    user_id = get_uuid_column(
        ForeignKey("users.user_id", ondelete="CASCADE"), primary_key=True
    )
    microcopy_id = Column(String(100), primary_key=True)
    last_shown_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False)
    show_count = Column(Integer, default=1, nullable=False)

    def __repr__(self) -> str:
        return f"<MicrocopyCooldown(user_id={self.user_id}, microcopy_id={self.microcopy_id}, shows={self.show_count})>"
