"""Tests for the admin API: runtime settings, answer debugging and microcopy management."""
import uuid
from datetime import datetime

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import delete

from karbarg.models.qa_setting import QASetting


API_BASE_URL = "http://test/admin"


def _client(app) -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url=API_BASE_URL)


@pytest.fixture
async def admin_headers(user_factory, auth_headers):
    admin = await user_factory(full_name="Admin", is_admin=True)
    return auth_headers(admin)


@pytest.fixture
async def clean_settings(db_session):
    """Drop any setting overrides written through the API."""
    yield
    await db_session.execute(delete(QASetting))
    await db_session.commit()


@pytest.fixture
async def answered_question(test_app, user_factory, auth_headers, question_payload):
    asker = await user_factory()
    expert = await user_factory()
    reader = await user_factory()
    async with AsyncClient(transport=ASGITransport(app=test_app), base_url="http://test/qa") as client:
        question = (await client.post("/questions", json=question_payload(), headers=auth_headers(asker))).json()
        answer = (await client.post(
            f"/questions/{question['questionId']}/answers",
            json={"body": "Keep every receipt for at least five fiscal years."},
            headers=auth_headers(expert),
        )).json()
        await client.post(
            f"/answers/{answer['answerId']}/reaction", json={"type": "helpful"}, headers=auth_headers(reader)
        )
        await client.post(
            f"/answers/{answer['answerId']}/flag", json={"reason": "OTHER", "note": "outdated"},
            headers=auth_headers(reader),
        )
    return {"question": question, "answer": answer, "reader": reader}


@pytest.mark.asyncio
async def test_admin_routes_reject_non_admins(test_app, user_factory, auth_headers):
    user = await user_factory()
    async with _client(test_app) as client:
        anonymous = await client.get("/qa/settings")
        regular = await client.get("/qa/settings", headers=auth_headers(user))
        # The admin claim comes from the token, not the stored row
        elevated = await client.get("/qa/settings", headers=auth_headers(user, is_admin=True))

    assert anonymous.status_code == 401
    assert regular.status_code == 403
    assert regular.json()["detail"] == "admin_required"
    assert elevated.status_code == 200


@pytest.mark.asyncio
async def test_settings_overview_and_update(test_app, admin_headers, clean_settings):
    async with _client(test_app) as client:
        overview = await client.get("/qa/settings", headers=admin_headers)
        updated = await client.put(
            "/qa/settings", json={"key": "daily_answer_limit", "value": 15}, headers=admin_headers
        )
        after = await client.get("/qa/settings", headers=admin_headers)

    assert overview.status_code == 200
    assert overview.json()["settings"]["daily_answer_limit"] == 10
    assert overview.json()["configSchema"]["daily_answer_limit"]["type"] == "int"

    assert updated.status_code == 200
    assert updated.json()["value"] == 15
    assert updated.json()["updatedBy"] is not None
    assert after.json()["settings"]["daily_answer_limit"] == 15


@pytest.mark.asyncio
@pytest.mark.parametrize("key,value", [
    ("daily_answer_limit", 0),
    ("no_such_setting", 1),
    ("aqs_useful_threshold", 95),
])
async def test_settings_update_rejects_bad_values(test_app, admin_headers, clean_settings, key, value):
    async with _client(test_app) as client:
        response = await client.put("/qa/settings", json={"key": key, "value": value}, headers=admin_headers)

    assert response.status_code == 400
    assert response.json()["detail"]


@pytest.mark.asyncio
async def test_answer_debug_view(test_app, admin_headers, answered_question):
    answer_id = answered_question["answer"]["answerId"]
    async with _client(test_app) as client:
        response = await client.get(f"/qa/answers/{answer_id}", headers=admin_headers)
        missing = await client.get(f"/qa/answers/{uuid.uuid4()}", headers=admin_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["answer"]["answerId"] == answer_id
    assert data["flagCount"] == 1
    assert data["storedMetric"]["aqs"] == data["liveMetric"]["aqs"]
    assert data["thresholds"] == {"useful": 40, "pro": 85}
    assert [r["reactionType"] for r in data["reactions"]] == ["helpful"]
    assert data["flags"][0]["reason"] == "OTHER"
    assert data["flags"][0]["note"] == "outdated"
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_recompute_includes_hidden_answers(test_app, admin_headers, auth_headers, answered_question):
    answer = answered_question["answer"]
    async with AsyncClient(transport=ASGITransport(app=test_app), base_url="http://test/qa") as client:
        await client.delete(f"/answers/{answer['answerId']}", headers=admin_headers)

    async with _client(test_app) as client:
        response = await client.post(f"/qa/answers/{answer['answerId']}/recompute", headers=admin_headers)
        debug = await client.get(f"/qa/answers/{answer['answerId']}", headers=admin_headers)

    assert response.status_code == 200
    assert response.json()["answerId"] == answer["answerId"]
    assert response.json()["label"] in {"NORMAL", "USEFUL", "PRO", "STAR"}
    assert debug.json()["isHidden"] is True


@pytest.mark.asyncio
async def test_microcopy_definition_management(test_app, admin_headers):
    microcopy_id = f"admin_copy_{uuid.uuid4().hex[:8]}"
    async with _client(test_app) as client:
        created = await client.post(
            "/microcopy/definitions",
            json={"id": microcopy_id, "triggerRule": "unanswered_question", "textFa": "به این سوال پاسخ دهید",
                  "targetSegment": "new", "priority": 7},
            headers=admin_headers,
        )
        duplicate = await client.post(
            "/microcopy/definitions",
            json={"id": microcopy_id, "triggerRule": "x", "textFa": "x"},
            headers=admin_headers,
        )
        bad_segment = await client.post(
            "/microcopy/definitions",
            json={"id": f"{microcopy_id}_b", "triggerRule": "x", "textFa": "x", "targetSegment": "vip"},
            headers=admin_headers,
        )
        disabled = await client.patch(
            "/microcopy/definitions", json={"id": microcopy_id, "isEnabled": False}, headers=admin_headers
        )
        listing = await client.get("/microcopy/definitions", headers=admin_headers)
        deleted = await client.delete(f"/microcopy/definitions/{microcopy_id}", headers=admin_headers)
        deleted_again = await client.delete(f"/microcopy/definitions/{microcopy_id}", headers=admin_headers)

    assert created.status_code == 201
    assert created.json()["priority"] == 7
    assert created.json()["targetSegment"] == "new"
    assert duplicate.status_code == 409
    assert bad_segment.status_code == 400
    assert disabled.status_code == 200
    assert disabled.json()["isEnabled"] is False
    assert disabled.json()["textFa"] == "به این سوال پاسخ دهید"
    ids = [d["id"] for d in listing.json()["definitions"]]
    assert microcopy_id in ids
    assert deleted.status_code == 200
    assert deleted_again.status_code == 404


@pytest.mark.asyncio
async def test_microcopy_stats_dashboard(test_app, admin_headers, user_factory, auth_headers):
    microcopy_id = f"stats_copy_{uuid.uuid4().hex[:8]}"
    viewer = await user_factory()
    async with AsyncClient(transport=ASGITransport(app=test_app), base_url="http://test/microcopy") as client:
        shown = await client.post(
            "/events", json={"microcopyId": microcopy_id, "eventType": "shown"}, headers=auth_headers(viewer)
        )
        await client.post(
            "/events", json={"microcopyId": microcopy_id, "eventType": "clicked"}, headers=auth_headers(viewer)
        )
        await client.post(
            "/actions",
            json={"microcopyEventId": shown.json()["eventId"], "actionType": "answer_created",
                  "reputationDelta": 10, "timeToActionMs": 4000},
            headers=auth_headers(viewer),
        )

    async with _client(test_app) as client:
        stats = await client.get("/microcopy/stats", params={"days": 7}, headers=admin_headers)
        out_of_range = await client.get("/microcopy/stats", params={"days": 0}, headers=admin_headers)

    assert stats.status_code == 200
    data = stats.json()
    row = next(r for r in data["microcopyTable"] if r["microcopyId"] == microcopy_id)
    assert (row["views"], row["clicks"], row["actions"]) == (1, 1, 1)
    assert row["ctr"] == 100
    assert row["conversion"] == 100
    assert row["fatigueRate"] == 0
    assert data["meta"]["days"] == 7
    assert data["meta"]["totalShown"] >= 1
    assert out_of_range.status_code == 422


@pytest.mark.asyncio
async def test_recent_answers_list(test_app, admin_headers, user_factory, auth_headers, answered_question):
    answer = answered_question["answer"]
    async with _client(test_app) as client:
        listing = await client.get("/qa/answers", headers=admin_headers)
        capped = await client.get("/qa/answers", params={"limit": 1}, headers=admin_headers)
        too_many = await client.get("/qa/answers", params={"limit": 500}, headers=admin_headers)
        regular = await client.get("/qa/answers", headers=auth_headers(await user_factory()))
        debug = await client.get(f"/qa/answers/{answer['answerId']}", headers=admin_headers)

    assert listing.status_code == 200
    rows = listing.json()["answers"]
    assert len(rows) <= 50
    row = next(r for r in rows if r["answerId"] == answer["answerId"])
    assert row["questionId"] == answered_question["question"]["questionId"]
    assert row["questionTitle"] == answered_question["question"]["title"]
    assert row["aqs"] == debug.json()["storedMetric"]["aqs"]
    assert row["label"] == debug.json()["storedMetric"]["label"]
    assert row["isAccepted"] is False
    assert row["isHidden"] is False
    assert row["author"]["userId"] == answer["author"]["userId"]
    assert row["createdAt"].endswith("Z")
    created = [datetime.fromisoformat(r["createdAt"]) for r in rows]
    assert created == sorted(created, reverse=True)
    assert len(capped.json()["answers"]) == 1
    assert too_many.status_code == 422
    assert regular.status_code == 403
