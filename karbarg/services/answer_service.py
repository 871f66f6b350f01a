"""Answer creation, editing, hiding and acceptance."""
import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import select, func, update
from sqlalchemy.ext.asyncio import AsyncSession

from karbarg.config import get_settings
from karbarg.models.answer import Answer
from karbarg.models.question import Question
from karbarg.services.answer_quality_service import AnswerQualityService
from karbarg.services.qa_lookup import get_visible_question
from karbarg.services.question_service import check_length
from karbarg.services.system_config_service import SystemConfigService
from karbarg.utils.datetime_helpers import utc_now, start_of_day
from karbarg.utils.db import decrement_floor_zero
from karbarg.utils.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    RateLimitExceededError,
    ServiceDisabledError,
    ValidationFailedError,
)

logger = logging.getLogger(__name__)


class AnswerService:
    """Service for the answer write paths.

    Acceptance is the only place two answers change together: the previous
    accepted answer is cleared before the new one is set, inside one
    transaction, and the partial unique index rejects any interleaving that
    would leave two accepted answers on a question.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.settings = get_settings()
        self.config = SystemConfigService(db)

    def _check_body(self, body: str) -> str:
        s = self.settings
        return check_length("Answer", body, s.answer_body_min_length, s.answer_body_max_length)

    async def _answers_today(self, author_id: UUID) -> int:
        result = await self.db.execute(
            select(func.count())
            .select_from(Answer)
            .where(Answer.author_id == author_id, Answer.created_at >= start_of_day())
        )
        return result.scalar_one()

    async def create_answer(self, question_id: UUID, author_id: UUID, body: str) -> Answer:
        """Post an answer and create its quality metric.

        Raises:
            ServiceDisabledError: Q&A switched off
            ValidationFailedError: Body out of bounds
            NotFoundError: Question missing or hidden
            RateLimitExceededError: Daily answer limit reached
        """
        if not await self.config.get_config_value("qa_enabled"):
            raise ServiceDisabledError("Q&A is currently disabled")
        body = self._check_body(body)
        await get_visible_question(self.db, question_id)

        daily_limit = await self.config.get_config_value("daily_answer_limit")
        if await self._answers_today(author_id) >= daily_limit:
            raise RateLimitExceededError(f"Daily answer limit reached ({daily_limit})")

        answer = Answer(
            question_id=question_id,
            author_id=author_id,
            body=body,
            created_at=utc_now(),
        )
        self.db.add(answer)
        await self.db.execute(
            update(Question)
            .where(Question.question_id == question_id)
            .values(answers_count=Question.answers_count + 1)
        )
        await AnswerQualityService(self.db).recompute_answer(answer)
        await self.db.commit()
        await self.db.refresh(answer, attribute_names=["author", "quality_metric"])

        logger.info(f"Answer {answer.answer_id} posted on question {question_id} by {author_id}")
        return answer

    async def _get_answer(self, answer_id: UUID) -> Answer:
        answer = await self.db.get(Answer, answer_id)
        if answer is None:
            raise NotFoundError("Answer not found")
        return answer

    async def update_answer(self, answer_id: UUID, user_id: UUID, body: str) -> Answer:
        answer = await self._get_answer(answer_id)
        if answer.author_id != user_id:
            raise PermissionDeniedError("Only the author can edit this answer")
        if answer.is_hidden:
            raise ConflictError("Hidden answers cannot be edited")

        answer.body = self._check_body(body)
        answer.updated_at = utc_now()
        await self.db.commit()
        await self.db.refresh(answer)
        logger.info(f"Answer {answer_id} edited by {user_id}")
        return answer

    async def hide_answer(self, answer_id: UUID, user_id: UUID, is_admin: bool = False) -> Answer:
        """Soft-delete an answer; decrements the question's count and drops acceptance."""
        answer = await self._get_answer(answer_id)
        if answer.author_id != user_id and not is_admin:
            raise PermissionDeniedError("Only the author can delete this answer")
        if answer.is_hidden:
            return answer

        was_accepted = answer.is_accepted
        answer.is_hidden = True
        answer.is_accepted = False
        answer.accepted_at = None
        answer.updated_at = utc_now()
        await self.db.execute(
            update(Question)
            .where(Question.question_id == answer.question_id)
            .values(answers_count=decrement_floor_zero(Question.answers_count))
        )
        if was_accepted:
            await AnswerQualityService(self.db).recompute_answer(answer)
        await self.db.commit()

        logger.info(f"Answer {answer_id} hidden by {user_id} (admin={is_admin}, was_accepted={was_accepted})")
        return answer

    async def _owned_question(self, question_id: UUID, user_id: UUID) -> Question:
        question = await get_visible_question(self.db, question_id, for_update=True)
        if question.author_id != user_id:
            raise ConflictError("Only the question's author can accept an answer")
        return question

    async def accept_answer(self, question_id: UUID, answer_id: UUID, user_id: UUID) -> Answer:
        """Mark one answer accepted and clear any other accepted answer on the question.

        Raises:
            NotFoundError: Question or answer missing, hidden, or not on this question
            ConflictError: Caller does not own the question
            ValidationFailedError: Caller tried to accept their own answer
        """
        await self._owned_question(question_id, user_id)

        answer = await self.db.get(Answer, answer_id)
        if answer is None or answer.is_hidden or answer.question_id != question_id:
            raise NotFoundError("Answer not found on this question")
        if answer.author_id == user_id:
            raise ValidationFailedError("You cannot accept your own answer")

        if not answer.is_accepted:
            await self.db.execute(
                update(Answer)
                .where(Answer.question_id == question_id, Answer.is_accepted.is_(True))
                .values(is_accepted=False, accepted_at=None)
            )
            await self.db.flush()
            await self.db.execute(
                update(Answer)
                .where(Answer.answer_id == answer_id)
                .values(is_accepted=True, accepted_at=utc_now())
            )
            await AnswerQualityService(self.db).recompute_for_question(question_id)

        await self.db.commit()
        await self.db.refresh(answer)
        logger.info(f"Answer {answer_id} accepted on question {question_id} by {user_id}")
        return answer

    async def unaccept_answer(self, question_id: UUID, user_id: UUID) -> Optional[UUID]:
        """Clear the accepted answer, returning the id that was accepted (if any)."""
        await self._owned_question(question_id, user_id)

        result = await self.db.execute(
            select(Answer.answer_id).where(Answer.question_id == question_id, Answer.is_accepted.is_(True))
        )
        previous = result.scalar_one_or_none()
        if previous is not None:
            await self.db.execute(
                update(Answer)
                .where(Answer.question_id == question_id)
                .values(is_accepted=False, accepted_at=None)
            )
            await AnswerQualityService(self.db).recompute_for_question(question_id)

        await self.db.commit()
        logger.info(f"Acceptance cleared on question {question_id} by {user_id} (was {previous})")
        return previous
