"""Runtime Q&A setting overrides."""
from sqlalchemy import String, Text, DateTime
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime, timezone
from karbarg.database import Base


class QASetting(Base):
    """Admin-editable override for a typed configuration key."""

    __tablename__ = "qa_settings"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    value_type: Mapped[str] = mapped_column(String(20), nullable=False)  # 'int' or 'bool'
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str | None] = mapped_column(String(50), nullable=True)  # 'general', 'limits', 'quality'
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_by: Mapped[str | None] = mapped_column(String(100), nullable=True)  # user_id

    def __repr__(self) -> str:
        return f"<QASetting(key={self.key}, value={self.value}, type={self.value_type})>"
