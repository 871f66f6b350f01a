"""Tests for runtime Q&A settings and threshold-driven relabeling."""
import pytest
from sqlalchemy import delete

from karbarg.models.answer_quality_metric import AnswerQualityMetric
from karbarg.models.base import QualityLabel
from karbarg.models.qa_setting import QASetting
from karbarg.services.answer_quality_service import AnswerQualityService
from karbarg.services.answer_service import AnswerService
from karbarg.services.quality_scoring import QualityThresholds
from karbarg.services.question_service import QuestionService
from karbarg.services.reaction_service import ReactionService
from karbarg.services.system_config_service import SystemConfigService
from karbarg.utils.exceptions import ServiceDisabledError


@pytest.fixture
async def config_service(db_session):
    """Config service that drops every override and restores default labels after the test."""
    yield SystemConfigService(db_session)
    await db_session.rollback()
    await db_session.execute(delete(QASetting))
    await AnswerQualityService(db_session).relabel_all(QualityThresholds())
    await db_session.commit()


@pytest.mark.asyncio
async def test_defaults_come_from_settings(config_service):
    thresholds = await config_service.get_quality_thresholds()

    assert (thresholds.useful, thresholds.pro) == (40, 85)
    assert await config_service.get_config_value("daily_answer_limit") == 10


@pytest.mark.asyncio
async def test_override_is_typed(config_service):
    entry = await config_service.set_config_value("daily_answer_limit", "12", updated_by="admin")

    assert entry.value == "12"
    assert await config_service.get_config_value("daily_answer_limit") == 12
    assert (await config_service.get_all_config())["daily_answer_limit"] == 12


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "key,value",
    [("unknown_key", 1), ("daily_answer_limit", 0), ("daily_answer_limit", "many"), ("aqs_useful_threshold", 90)],
)
async def test_invalid_values_rejected(config_service, key, value):
    with pytest.raises(ValueError):
        await config_service.set_config_value(key, value)


@pytest.mark.asyncio
async def test_threshold_change_relabels_stored_metrics(db_session, user_factory, config_service):
    asker = await user_factory()
    answerer = await user_factory()
    reader = await user_factory()
    question = await QuestionService(db_session).create_question(
        asker.user_id, "Threshold relabel question", "x" * 30, "accounting"
    )
    answer = await AnswerService(db_session).create_answer(question.question_id, answerer.user_id, "y" * 30)
    await ReactionService(db_session).submit_reaction(answer.answer_id, reader.user_id, "helpful")

    metric = await db_session.get(AnswerQualityMetric, answer.answer_id)
    assert metric.aqs == 8
    assert metric.label == QualityLabel.NORMAL.value

    await config_service.set_config_value("aqs_useful_threshold", 5)

    await db_session.refresh(metric)
    assert metric.aqs == 8
    assert metric.label == QualityLabel.USEFUL.value

    detail = await QuestionService(db_session).get_question_detail(question.question_id)
    assert detail.answers[0].label == QualityLabel.USEFUL


@pytest.mark.asyncio
async def test_disabled_qa_rejects_reads_and_writes(db_session, user_factory, config_service):
    user = await user_factory()
    await config_service.set_config_value("qa_enabled", False)

    with pytest.raises(ServiceDisabledError):
        await QuestionService(db_session).list_questions()
    with pytest.raises(ServiceDisabledError):
        await QuestionService(db_session).create_question(user.user_id, "Disabled feature question", "x" * 30, "tax")
