"""Lookups shared by the Q&A services."""
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from karbarg.models.answer import Answer
from karbarg.models.question import Question
from karbarg.utils.exceptions import NotFoundError


async def get_visible_question(db: AsyncSession, question_id: UUID, for_update: bool = False) -> Question:
    """Return a question that is not hidden, or raise NotFoundError."""
    stmt = select(Question).where(Question.question_id == question_id, Question.is_hidden.is_(False))
    if for_update:
        stmt = stmt.with_for_update()
    question = (await db.execute(stmt)).scalar_one_or_none()
    if question is None:
        raise NotFoundError("Question not found")
    return question


async def get_visible_answer(db: AsyncSession, answer_id: UUID, for_update: bool = False) -> Answer:
    """Return an answer that is visible and whose question is visible."""
    stmt = (
        select(Answer)
        .join(Question, Question.question_id == Answer.question_id)
        .where(
            Answer.answer_id == answer_id,
            Answer.is_hidden.is_(False),
            Question.is_hidden.is_(False),
        )
    )
    if for_update:
        stmt = stmt.with_for_update(of=Answer)
    answer = (await db.execute(stmt)).scalar_one_or_none()
    if answer is None:
        raise NotFoundError("Answer not found")
    return answer
