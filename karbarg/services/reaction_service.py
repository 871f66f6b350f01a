"""Reactions on answers (helpful / not helpful / expert)."""
from __future__ import annotations

import logging
import uuid
from typing import Any
from uuid import UUID

from sqlalchemy import select, update, delete
from sqlalchemy.ext.asyncio import AsyncSession

from karbarg.models.answer import Answer
from karbarg.models.answer_reaction import AnswerReaction
from karbarg.models.base import ReactionType, ReactionAction
from karbarg.services.answer_quality_service import AnswerQualityService
from karbarg.services.qa_lookup import get_visible_answer
from karbarg.utils.datetime_helpers import utc_now
from karbarg.utils.db import dialect_insert, decrement_floor_zero
from karbarg.utils.exceptions import ConflictError, ValidationFailedError

logger = logging.getLogger(__name__)

COUNTER_COLUMNS = {
    ReactionType.HELPFUL: "helpful_count",
    ReactionType.NOT_HELPFUL: "not_helpful_count",
    ReactionType.EXPERT: "expert_badge_count",
}


def parse_reaction_type(value: Any) -> ReactionType:
    """Validate a raw reaction type, raising ValidationFailedError when unknown."""
    if isinstance(value, ReactionType):
        return value
    try:
        return ReactionType(value)
    except ValueError as exc:
        allowed = ", ".join(r.value for r in ReactionType)
        raise ValidationFailedError(f"Invalid reaction type; expected one of: {allowed}") from exc


class ReactionService:
    """Toggle, replace and count per-user answer reactions.

    Uniqueness of (user, answer) is enforced by the table constraint; the
    insert is an ON CONFLICT DO NOTHING upsert so concurrent first reactions
    cannot create duplicates. Counters move with increment-style UPDATEs.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user_reaction(self, answer_id: UUID, user_id: UUID) -> AnswerReaction | None:
        result = await self.db.execute(
            select(AnswerReaction).where(
                AnswerReaction.answer_id == answer_id,
                AnswerReaction.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    async def get_user_reactions(self, answer_ids: list[UUID], user_id: UUID) -> dict[UUID, str]:
        """Map answer_id -> reaction type for the given user."""
        if not answer_ids:
            return {}
        result = await self.db.execute(
            select(AnswerReaction.answer_id, AnswerReaction.reaction_type).where(
                AnswerReaction.user_id == user_id,
                AnswerReaction.answer_id.in_(answer_ids),
            )
        )
        return {row.answer_id: row.reaction_type for row in result.all()}

    async def list_reactions(self, answer_id: UUID) -> list[AnswerReaction]:
        result = await self.db.execute(
            select(AnswerReaction)
            .where(AnswerReaction.answer_id == answer_id)
            .order_by(AnswerReaction.created_at.desc())
        )
        return list(result.scalars().all())

    async def _bump(self, answer_id: UUID, reaction_type: ReactionType, delta: int) -> None:
        column_name = COUNTER_COLUMNS[reaction_type]
        column = getattr(Answer, column_name)
        new_value = column + 1 if delta > 0 else decrement_floor_zero(column)
        await self.db.execute(
            update(Answer).where(Answer.answer_id == answer_id).values({column_name: new_value})
        )

    async def _insert_reaction(self, answer_id: UUID, user_id: UUID, reaction_type: ReactionType) -> bool:
        stmt = dialect_insert(self.db, AnswerReaction).values(
            reaction_id=uuid.uuid4(),
            answer_id=answer_id,
            user_id=user_id,
            reaction_type=reaction_type.value,
            created_at=utc_now(),
        ).on_conflict_do_nothing(index_elements=["answer_id", "user_id"])
        result = await self.db.execute(stmt)
        return (result.rowcount or 0) == 1

    async def _apply_to_existing(
        self,
        existing: AnswerReaction,
        reaction_type: ReactionType,
    ) -> ReactionAction:
        previous = ReactionType(existing.reaction_type)
        if previous == reaction_type:
            await self.db.execute(
                delete(AnswerReaction).where(AnswerReaction.reaction_id == existing.reaction_id)
            )
            await self._bump(existing.answer_id, previous, -1)
            return ReactionAction.REMOVED

        await self.db.execute(
            update(AnswerReaction)
            .where(AnswerReaction.reaction_id == existing.reaction_id)
            .values(reaction_type=reaction_type.value, updated_at=utc_now())
        )
        await self._bump(existing.answer_id, previous, -1)
        await self._bump(existing.answer_id, reaction_type, +1)
        return ReactionAction.CHANGED

    async def submit_reaction(self, answer_id: UUID, user_id: UUID, reaction_type: Any) -> dict[str, Any]:
        """Add, change or remove the caller's reaction on an answer.

        Same type again removes it, a different type replaces it, otherwise
        it is added. The answer's AQS is recomputed in the same transaction.

        Raises:
            ValidationFailedError: Unknown type, or reacting to one's own answer
            NotFoundError: Answer missing or hidden
        """
        reaction_type = parse_reaction_type(reaction_type)
        answer = await get_visible_answer(self.db, answer_id)

        if answer.author_id == user_id:
            raise ValidationFailedError("You cannot react to your own answer")

        existing = await self.get_user_reaction(answer_id, user_id)
        if existing is not None:
            action = await self._apply_to_existing(existing, reaction_type)
        elif await self._insert_reaction(answer_id, user_id, reaction_type):
            await self._bump(answer_id, reaction_type, +1)
            action = ReactionAction.ADDED
        else:
            # Lost a race with a concurrent first reaction from the same user
            existing = await self.get_user_reaction(answer_id, user_id)
            if existing is not None:
                action = await self._apply_to_existing(existing, reaction_type)
            elif await self._insert_reaction(answer_id, user_id, reaction_type):
                await self._bump(answer_id, reaction_type, +1)
                action = ReactionAction.ADDED
            else:
                raise ConflictError("Reaction changed concurrently, try again")

        metric = await AnswerQualityService(self.db).recompute_answer(answer)
        await self.db.commit()

        logger.info(f"Reaction {action.value} on answer {answer_id} by {user_id}: {reaction_type.value}")

        current = None if action == ReactionAction.REMOVED else reaction_type.value
        return {
            "action": action,
            "reaction_type": current,
            "helpful_count": answer.helpful_count,
            "not_helpful_count": answer.not_helpful_count,
            "expert_badge_count": answer.expert_badge_count,
            "aqs": metric.aqs,
            "label": metric.label,
        }
