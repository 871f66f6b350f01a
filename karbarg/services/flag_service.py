"""Moderation flags on answers."""
import logging
import uuid
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from karbarg.models.answer import Answer
from karbarg.models.answer_flag import AnswerFlag
from karbarg.models.base import FlagReason
from karbarg.services.answer_quality_service import AnswerQualityService
from karbarg.services.qa_lookup import get_visible_answer
from karbarg.utils.datetime_helpers import utc_now
from karbarg.utils.db import dialect_insert
from karbarg.utils.exceptions import ValidationFailedError

logger = logging.getLogger(__name__)

MAX_NOTE_LENGTH = 500


class FlagService:
    """Record one flag per (user, answer) and keep ``flag_count`` in step."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def flag_answer(
        self,
        answer_id: UUID,
        user_id: UUID,
        reason: Any,
        note: Optional[str] = None,
    ) -> dict[str, Any]:
        """Flag an answer, or update the reason of the caller's existing flag."""
        try:
            reason = FlagReason(reason)
        except ValueError as exc:
            raise ValidationFailedError("Invalid flag reason") from exc
        if note is not None:
            note = note.strip()[:MAX_NOTE_LENGTH] or None

        answer = await get_visible_answer(self.db, answer_id)
        if answer.author_id == user_id:
            raise ValidationFailedError("You cannot flag your own answer")

        stmt = dialect_insert(self.db, AnswerFlag).values(
            flag_id=uuid.uuid4(),
            answer_id=answer_id,
            user_id=user_id,
            reason=reason.value,
            note=note,
            created_at=utc_now(),
        ).on_conflict_do_nothing(index_elements=["answer_id", "user_id"])
        result = await self.db.execute(stmt)
        created = (result.rowcount or 0) == 1

        if created:
            await self.db.execute(
                update(Answer)
                .where(Answer.answer_id == answer_id)
                .values(flag_count=Answer.flag_count + 1)
            )
        else:
            await self.db.execute(
                update(AnswerFlag)
                .where(AnswerFlag.answer_id == answer_id, AnswerFlag.user_id == user_id)
                .values(reason=reason.value, note=note)
            )

        metric = await AnswerQualityService(self.db).recompute_answer(answer)
        await self.db.commit()

        logger.info(f"Answer {answer_id} flagged by {user_id} ({reason.value}, new={created})")
        return {
            "created": created,
            "reason": reason.value,
            "flag_count": answer.flag_count,
            "aqs": metric.aqs,
            "label": metric.label,
        }

    async def list_flags(self, answer_id: UUID) -> list[AnswerFlag]:
        result = await self.db.execute(
            select(AnswerFlag)
            .where(AnswerFlag.answer_id == answer_id)
            .order_by(AnswerFlag.created_at.desc())
        )
        return list(result.scalars().all())
