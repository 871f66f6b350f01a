"""Tests for the question, answer, reaction and flag services."""
import uuid
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, inspect, select
from sqlalchemy.dialects import postgresql

from karbarg.models.answer import Answer
from karbarg.models.answer_reaction import AnswerReaction
from karbarg.models.base import QualityLabel, ReactionAction
from karbarg.models.question import Question
from karbarg.services.answer_quality_service import AnswerQualityService, stale_answers_query
from karbarg.services.answer_service import AnswerService
from karbarg.services.flag_service import FlagService
from karbarg.services.question_service import (
    QuestionService,
    normalize_tags,
    recency_boost,
    related_score,
    title_keywords,
    trending_score,
)
from karbarg.services.reaction_service import ReactionService
from karbarg.utils.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    RateLimitExceededError,
    ValidationFailedError,
)

ANSWER_BODY = "Register on the tax portal, then file form 11 before the deadline."


@pytest.fixture
async def thread(db_session, user_factory):
    """A question with two answers from different users."""
    asker = await user_factory()
    first = await user_factory()
    second = await user_factory()
    reader = await user_factory()

    question = await QuestionService(db_session).create_question(
        author_id=asker.user_id,
        title="How do I file quarterly VAT returns?",
        body="We are a small firm and this is our first quarterly VAT filing.",
        category="tax",
        tags=["VAT", "vat", "filing"],
    )
    answers = AnswerService(db_session)
    a1 = await answers.create_answer(question.question_id, first.user_id, ANSWER_BODY)
    a2 = await answers.create_answer(question.question_id, second.user_id, ANSWER_BODY + " Keep receipts.")
    return {"question": question, "asker": asker, "a1": a1, "a2": a2, "reader": reader}


async def _accepted_count(db_session, question_id) -> int:
    result = await db_session.execute(
        select(func.count()).select_from(Answer).where(
            Answer.question_id == question_id, Answer.is_accepted.is_(True)
        )
    )
    return result.scalar_one()


def test_normalize_tags_dedupes_case_insensitively():
    assert normalize_tags([" VAT ", "vat", "Filing", ""], max_tags=3) == ["vat", "filing"]


def test_normalize_tags_enforces_limit():
    with pytest.raises(ValidationFailedError):
        normalize_tags(["a", "b", "c", "d"], max_tags=3)


def test_recency_boost_bands():
    assert recency_boost(timedelta(hours=3)) == 2.0
    assert recency_boost(timedelta(days=3)) == 1.5
    assert recency_boost(timedelta(days=10)) == 1.0


def test_trending_score_formula():
    assert trending_score(views=10, answers=2, reactions=3, age=timedelta(days=10)) == 45.0
    assert trending_score(views=10, answers=2, reactions=3, age=timedelta(hours=1)) == 90.0


@pytest.mark.asyncio
async def test_create_question_normalizes_tags(thread):
    assert thread["question"].tags == ["vat", "filing"]


@pytest.mark.asyncio
async def test_create_question_length_bounds(db_session, user_factory):
    user = await user_factory()
    service = QuestionService(db_session)

    with pytest.raises(ValidationFailedError):
        await service.create_question(user.user_id, "short", "x" * 30, "tax")
    with pytest.raises(ValidationFailedError):
        await service.create_question(user.user_id, "A long enough title", "too short", "tax")
    with pytest.raises(ValidationFailedError):
        await service.create_question(user.user_id, "A long enough title", "x" * 30, "  ")


@pytest.mark.asyncio
async def test_daily_question_limit(db_session, user_factory):
    user = await user_factory()
    service = QuestionService(db_session)

    for i in range(5):
        await service.create_question(user.user_id, f"Daily limit question {i}", "x" * 30, "tax")
    with pytest.raises(RateLimitExceededError):
        await service.create_question(user.user_id, "One question too many", "x" * 30, "tax")


@pytest.mark.asyncio
async def test_answer_increments_count_and_creates_metric(db_session, thread):
    question = await db_session.get(Question, thread["question"].question_id)
    await db_session.refresh(question)

    assert question.answers_count == 2
    assert thread["a1"].quality_metric is not None
    assert thread["a1"].quality_metric.aqs == 0
    assert thread["a1"].quality_metric.label == QualityLabel.NORMAL.value


@pytest.mark.asyncio
async def test_answer_on_missing_question(db_session, user_factory):
    user = await user_factory()
    with pytest.raises(NotFoundError):
        await AnswerService(db_session).create_answer(uuid.uuid4(), user.user_id, ANSWER_BODY)


@pytest.mark.asyncio
async def test_accept_keeps_single_accepted_answer(db_session, thread):
    service = AnswerService(db_session)
    question_id = thread["question"].question_id
    asker_id = thread["asker"].user_id

    for answer in (thread["a1"], thread["a2"], thread["a1"], thread["a1"], thread["a2"]):
        await service.accept_answer(question_id, answer.answer_id, asker_id)
        assert await _accepted_count(db_session, question_id) == 1

    await db_session.refresh(thread["a2"])
    assert thread["a2"].is_accepted
    detail = await QuestionService(db_session).get_question_detail(question_id)
    assert detail.answers[0].answer.answer_id == thread["a2"].answer_id
    assert detail.answers[0].label == QualityLabel.STAR


@pytest.mark.asyncio
async def test_unaccept_clears_acceptance(db_session, thread):
    service = AnswerService(db_session)
    question_id = thread["question"].question_id
    await service.accept_answer(question_id, thread["a1"].answer_id, thread["asker"].user_id)

    previous = await service.unaccept_answer(question_id, thread["asker"].user_id)

    assert previous == thread["a1"].answer_id
    assert await _accepted_count(db_session, question_id) == 0


@pytest.mark.asyncio
async def test_accept_requires_question_owner(db_session, thread):
    with pytest.raises(ConflictError):
        await AnswerService(db_session).accept_answer(
            thread["question"].question_id, thread["a1"].answer_id, thread["reader"].user_id
        )


@pytest.mark.asyncio
async def test_accept_answer_from_other_question(db_session, thread, user_factory):
    other_asker = await user_factory()
    other = await QuestionService(db_session).create_question(
        other_asker.user_id, "Another question about insurance", "x" * 30, "insurance"
    )
    with pytest.raises(NotFoundError):
        await AnswerService(db_session).accept_answer(
            other.question_id, thread["a1"].answer_id, other_asker.user_id
        )


@pytest.mark.asyncio
async def test_reaction_toggle_and_replace(db_session, thread):
    service = ReactionService(db_session)
    answer_id = thread["a1"].answer_id
    reader_id = thread["reader"].user_id

    added = await service.submit_reaction(answer_id, reader_id, "helpful")
    assert added["action"] == ReactionAction.ADDED
    assert added["helpful_count"] == 1
    assert added["aqs"] == 8

    changed = await service.submit_reaction(answer_id, reader_id, "expert")
    assert changed["action"] == ReactionAction.CHANGED
    assert changed["helpful_count"] == 0
    assert changed["expert_badge_count"] == 1

    removed = await service.submit_reaction(answer_id, reader_id, "expert")
    assert removed["action"] == ReactionAction.REMOVED
    assert removed["reaction_type"] is None
    assert removed["expert_badge_count"] == 0
    assert removed["aqs"] == 0


@pytest.mark.asyncio
async def test_at_most_one_reaction_per_user(db_session, thread):
    service = ReactionService(db_session)
    answer_id = thread["a1"].answer_id
    reader_id = thread["reader"].user_id

    for reaction in ("helpful", "not_helpful", "not_helpful", "expert", "helpful", "helpful", "expert"):
        await service.submit_reaction(answer_id, reader_id, reaction)
        result = await db_session.execute(
            select(func.count()).select_from(AnswerReaction).where(
                AnswerReaction.answer_id == answer_id, AnswerReaction.user_id == reader_id
            )
        )
        assert result.scalar_one() <= 1

    current = await service.get_user_reaction(answer_id, reader_id)
    assert current.reaction_type == "expert"


@pytest.mark.asyncio
async def test_reaction_validation(db_session, thread):
    service = ReactionService(db_session)

    with pytest.raises(ValidationFailedError):
        await service.submit_reaction(thread["a1"].answer_id, thread["reader"].user_id, "love")
    with pytest.raises(ValidationFailedError):
        await service.submit_reaction(thread["a1"].answer_id, thread["a1"].author_id, "helpful")
    with pytest.raises(NotFoundError):
        await service.submit_reaction(uuid.uuid4(), thread["reader"].user_id, "helpful")


@pytest.mark.asyncio
async def test_flag_counts_once_per_user(db_session, thread):
    service = FlagService(db_session)
    answer_id = thread["a1"].answer_id

    first = await service.flag_answer(answer_id, thread["reader"].user_id, "SPAM")
    again = await service.flag_answer(answer_id, thread["reader"].user_id, "ABUSE", note="rude")

    assert first["created"] is True
    assert again["created"] is False
    assert again["flag_count"] == 1
    flags = await service.list_flags(answer_id)
    assert [(f.reason, f.note) for f in flags] == [("ABUSE", "rude")]


@pytest.mark.asyncio
async def test_flag_own_answer_rejected(db_session, thread):
    with pytest.raises(ValidationFailedError):
        await FlagService(db_session).flag_answer(thread["a1"].answer_id, thread["a1"].author_id, "SPAM")


@pytest.mark.asyncio
async def test_hide_answer_updates_question(db_session, thread):
    service = AnswerService(db_session)
    question_id = thread["question"].question_id
    await service.accept_answer(question_id, thread["a1"].answer_id, thread["asker"].user_id)

    await service.hide_answer(thread["a1"].answer_id, thread["a1"].author_id)

    question = await db_session.get(Question, question_id)
    await db_session.refresh(question)
    assert question.answers_count == 1
    assert await _accepted_count(db_session, question_id) == 0
    detail = await QuestionService(db_session).get_question_detail(question_id)
    assert [r.answer.answer_id for r in detail.answers] == [thread["a2"].answer_id]


@pytest.mark.asyncio
async def test_hide_answer_requires_author_or_admin(db_session, thread):
    service = AnswerService(db_session)
    with pytest.raises(PermissionDeniedError):
        await service.hide_answer(thread["a1"].answer_id, thread["reader"].user_id)

    hidden = await service.hide_answer(thread["a1"].answer_id, thread["reader"].user_id, is_admin=True)
    assert hidden.is_hidden


@pytest.mark.asyncio
async def test_title_locked_once_answered(db_session, thread):
    service = QuestionService(db_session)
    question_id = thread["question"].question_id
    asker_id = thread["asker"].user_id

    with pytest.raises(ConflictError):
        await service.update_question(question_id, asker_id, title="A brand new title for this")

    updated = await service.update_question(question_id, asker_id, body="Updated body with more context here.")
    assert updated.body == "Updated body with more context here."


@pytest.mark.asyncio
async def test_hidden_question_cannot_be_edited(db_session, thread):
    service = QuestionService(db_session)
    question_id = thread["question"].question_id
    asker_id = thread["asker"].user_id
    await service.hide_question(question_id, asker_id)

    with pytest.raises(ConflictError):
        await service.update_question(question_id, asker_id, body="Another body that is long enough.")
    with pytest.raises(NotFoundError):
        await service.get_question_detail(question_id)
    with pytest.raises(NotFoundError):
        await ReactionService(db_session).submit_reaction(thread["a2"].answer_id, thread["reader"].user_id, "helpful")


@pytest.mark.asyncio
async def test_search_requires_three_characters(db_session, thread):
    service = QuestionService(db_session)

    assert await service.search_questions("VA") == []
    found = await service.search_questions("quarterly VAT")
    assert thread["question"].question_id in [q.question_id for q in found]


@pytest.mark.asyncio
async def test_created_and_edited_questions_carry_their_author(db_session, user_factory):
    user = await user_factory(full_name="Nima Author")
    service = QuestionService(db_session)

    question = await service.create_question(user.user_id, "Where do I register a new LLC?", "x" * 30, "legal")
    assert "author" not in inspect(question).unloaded
    assert question.author.display_name == "Nima Author"

    edited = await service.update_question(question.question_id, user.user_id, body="y" * 40)
    assert "author" not in inspect(edited).unloaded
    assert edited.author.user_id == user.user_id


@pytest.mark.asyncio
async def test_reaction_retries_when_concurrent_row_vanished(db_session, thread, monkeypatch):
    service = ReactionService(db_session)
    real_insert = service._insert_reaction
    calls = []

    async def lose_first_insert(*args):
        calls.append(args)
        if len(calls) == 1:
            return False
        return await real_insert(*args)

    monkeypatch.setattr(service, "_insert_reaction", lose_first_insert)
    result = await service.submit_reaction(thread["a1"].answer_id, thread["reader"].user_id, "helpful")

    assert len(calls) == 2
    assert result["action"] == ReactionAction.ADDED
    assert result["helpful_count"] == 1


@pytest.mark.asyncio
async def test_reaction_conflict_when_insert_keeps_losing(db_session, thread, monkeypatch):
    service = ReactionService(db_session)

    async def always_lose(*args):
        return False

    monkeypatch.setattr(service, "_insert_reaction", always_lose)
    with pytest.raises(ConflictError):
        await service.submit_reaction(thread["a1"].answer_id, thread["reader"].user_id, "helpful")


def test_title_keywords_keep_first_long_words():
    keywords = title_keywords("How to file VAT returns for a small trading company quickly")

    assert keywords == ["file", "returns", "small", "trading", "company"]


def test_related_score_weights():
    source = Question(title="Quarterly VAT filing steps", category="tax", tags=["vat", "filing"], answers_count=0)
    close = Question(title="VAT filing deadline", category="tax", tags=["vat", "filing"], answers_count=2)
    loose = Question(title="Payroll question", category="tax", tags=["payroll"], answers_count=0)
    keywords = title_keywords(source.title)

    # 10 base + 2 tags * 5 + "filing" keyword * 3 + answered bonus 2
    assert related_score(source, close, keywords) == 25
    assert related_score(source, loose, keywords) == 10


@pytest.mark.asyncio
async def test_related_questions_rank_same_category_then_keyword_matches(db_session, user_factory):
    marker = uuid.uuid4().hex[:8]
    category = f"cat{marker}"
    service = QuestionService(db_session)

    async def ask(title, category, tags=None):
        author = await user_factory()
        return await service.create_question(author.user_id, title, "x" * 30, category, tags=tags)

    source = await ask(f"Kwalpha{marker} kwbeta{marker}", category, tags=["assets"])
    tagged = await ask("Asset register format", category, tags=["assets"])
    plain = await ask("Opening balances for ledgers", category)
    elsewhere = await ask(f"Payroll and kwbeta{marker} tips", f"other{marker}")
    await ask("Completely unrelated title", f"other{marker}")
    hidden = await ask("Hidden asset question", category, tags=["assets"])
    await service.hide_question(hidden.question_id, hidden.author_id)

    related = await service.get_related_questions(source.question_id, limit=5)

    assert [(r.question.question_id, r.relevance_score) for r in related] == [
        (tagged.question_id, 15),
        (plain.question_id, 10),
        (elsewhere.question_id, 5),
    ]
    assert related[0].question.author is not None

    capped = await service.get_related_questions(source.question_id, limit=1)
    assert [r.question.question_id for r in capped] == [tagged.question_id]

    with pytest.raises(NotFoundError):
        await service.get_related_questions(hidden.question_id)


def test_stale_query_puts_missing_metrics_first_on_postgres():
    stmt = stale_answers_query(datetime(2026, 1, 1, tzinfo=timezone.utc), limit=10)
    sql = str(stmt.compile(dialect=postgresql.dialect()))

    assert "qa_answer_quality_metrics.computed_at ASC NULLS FIRST" in sql


@pytest.mark.asyncio
async def test_recent_answers_include_hidden_with_stored_quality(db_session, thread):
    await AnswerService(db_session).hide_answer(thread["a2"].answer_id, thread["a2"].author_id)

    rows = await AnswerQualityService(db_session).list_recent_answers(limit=50)
    by_id = {answer.answer_id: (answer, aqs, label) for answer, aqs, label in rows}

    answer, aqs, label = by_id[thread["a2"].answer_id]
    assert answer.is_hidden
    assert answer.question.title == thread["question"].title
    assert answer.author is not None
    assert (aqs, label) == (0, QualityLabel.NORMAL.value)
    assert thread["a1"].answer_id in by_id
