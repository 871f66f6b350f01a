"""User identity mirror."""
import uuid
from datetime import datetime, UTC

from sqlalchemy import Column, String, DateTime, Boolean
from sqlalchemy.orm import relationship

from karbarg.database import Base
from karbarg.models.base import get_uuid_column


class User(Base):
    """Minimal user record owned by the identity provider.

    Only the fields the Q&A engine needs for display and ownership checks.
    """

    __tablename__ = "users"

    user_id = get_uuid_column(primary_key=True, default=uuid.uuid4)
    username = Column(String(80), unique=True, nullable=False)
    full_name = Column(String(120), nullable=True)
    email = Column(String(255), unique=True, nullable=True)
    is_admin = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False)

    questions = relationship("Question", back_populates="author")
    answers = relationship("Answer", back_populates="author")

    @property
    def display_name(self) -> str:
        return self.full_name or self.username

    def __repr__(self) -> str:
        return f"<User(user_id={self.user_id}, username={self.username})>"
