"""Map ORM rows to Q&A response schemas."""
from typing import Optional

from sqlalchemy import inspect

from karbarg.models.answer import Answer
from karbarg.models.base import QualityLabel
from karbarg.models.question import Question
from karbarg.models.user import User
from karbarg.schemas.qa import (
    AnswerResponse,
    AuthorSummary,
    QuestionResponse,
    QuestionSummary,
    RelatedQuestionSummary,
)


def _loaded_author(obj) -> Optional[User]:
    # Async sessions cannot lazy-load; only use the author when already loaded
    return None if "author" in inspect(obj).unloaded else obj.author


def map_author(user: Optional[User]) -> Optional[AuthorSummary]:
    if user is None:
        return None
    return AuthorSummary(user_id=user.user_id, display_name=user.display_name)


def map_question_summary(question: Question) -> QuestionSummary:
    return QuestionSummary(
        question_id=question.question_id,
        title=question.title,
        category=question.category,
        tags=list(question.tags or []),
        answers_count=question.answers_count,
        view_count=question.view_count,
        created_at=question.created_at,
        author=map_author(_loaded_author(question)),
    )


def map_related_question(question: Question, relevance_score: int) -> RelatedQuestionSummary:
    return RelatedQuestionSummary(
        question_id=question.question_id,
        title=question.title,
        category=question.category,
        tags=list(question.tags or []),
        answers_count=question.answers_count,
        view_count=question.view_count,
        created_at=question.created_at,
        author=map_author(_loaded_author(question)),
        relevance_score=relevance_score,
    )


def map_question(question: Question) -> QuestionResponse:
    return QuestionResponse(
        question_id=question.question_id,
        title=question.title,
        category=question.category,
        tags=list(question.tags or []),
        answers_count=question.answers_count,
        view_count=question.view_count,
        created_at=question.created_at,
        author=map_author(_loaded_author(question)),
        body=question.body,
        is_hidden=question.is_hidden,
        updated_at=question.updated_at,
    )


def map_answer(
    answer: Answer,
    aqs: int = 0,
    label: QualityLabel = QualityLabel.NORMAL,
    user_reaction: Optional[str] = None,
) -> AnswerResponse:
    return AnswerResponse(
        answer_id=answer.answer_id,
        question_id=answer.question_id,
        body=answer.body,
        helpful_count=answer.helpful_count,
        not_helpful_count=answer.not_helpful_count,
        expert_badge_count=answer.expert_badge_count,
        is_accepted=answer.is_accepted,
        accepted_at=answer.accepted_at,
        created_at=answer.created_at,
        updated_at=answer.updated_at,
        author=map_author(_loaded_author(answer)),
        aqs=aqs,
        label=label,
        user_reaction=user_reaction,
    )
