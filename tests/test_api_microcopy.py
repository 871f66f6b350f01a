"""Tests for microcopy event and action tracking endpoints."""
import uuid

import pytest
from httpx import AsyncClient, ASGITransport


API_BASE_URL = "http://test/microcopy"


def _client(app) -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url=API_BASE_URL)


@pytest.mark.asyncio
async def test_shown_events_update_cooldowns(test_app, user_factory, auth_headers):
    user = await user_factory()
    headers = auth_headers(user)
    microcopy_id = f"copy_{uuid.uuid4().hex[:8]}"
    async with _client(test_app) as client:
        first = await client.post(
            "/events",
            json={"microcopyId": microcopy_id, "eventType": "shown", "pageUrl": "/qa", "metadata": {"slot": "top"}},
            headers=headers,
        )
        await client.post("/events", json={"microcopyId": microcopy_id, "eventType": "shown"}, headers=headers)
        await client.post("/events", json={"microcopyId": microcopy_id, "eventType": "dismissed"}, headers=headers)
        cooldowns = await client.get("/events", headers=headers)

    assert first.status_code == 201
    assert first.json()["userSegment"] == "new"
    uuid.UUID(first.json()["eventId"])
    entry = cooldowns.json()["cooldowns"][microcopy_id]
    assert entry["showCount"] == 2
    assert entry["lastShownAt"].endswith("Z")


@pytest.mark.asyncio
async def test_anonymous_events_and_actions(test_app):
    microcopy_id = f"copy_{uuid.uuid4().hex[:8]}"
    async with _client(test_app) as client:
        event = await client.post("/events", json={"microcopyId": microcopy_id, "eventType": "clicked"})
        action = await client.post(
            "/actions",
            json={"microcopyEventId": event.json()["eventId"], "actionType": "leaderboard_viewed"},
        )
        cooldowns = await client.get("/events")

    assert event.status_code == 201
    assert event.json()["userSegment"] == "new"
    assert action.status_code == 201
    assert action.json()["success"] is True
    assert cooldowns.status_code == 401


@pytest.mark.asyncio
async def test_event_and_action_validation(test_app):
    async with _client(test_app) as client:
        bad_type = await client.post("/events", json={"microcopyId": "copy", "eventType": "hovered"})
        missing_id = await client.post("/events", json={"eventType": "shown"})
        negative_time = await client.post(
            "/actions",
            json={"microcopyEventId": str(uuid.uuid4()), "actionType": "answer_created", "timeToActionMs": -1},
        )
        unknown_event = await client.post(
            "/actions", json={"microcopyEventId": str(uuid.uuid4()), "actionType": "answer_created"}
        )

    assert bad_type.status_code == 422
    assert missing_id.status_code == 422
    assert missing_id.json()["errors"][0]["field"] == "microcopyId"
    assert negative_time.status_code == 422
    assert unknown_event.status_code == 404


@pytest.mark.asyncio
async def test_enabled_definitions_by_segment(test_app, db_session):
    from karbarg.services.microcopy_service import MicrocopyService

    suffix = uuid.uuid4().hex[:8]
    service = MicrocopyService(db_session)
    await service.create_definition(f"all_{suffix}", "any_page", "سلام", target_segment="all", priority=90)
    await service.create_definition(f"pro_{suffix}", "any_page", "سلام", target_segment="professional")
    await service.create_definition(f"off_{suffix}", "any_page", "سلام", is_enabled=False)

    async with _client(test_app) as client:
        new_segment = await client.get("/definitions", params={"segment": "new"})
        pro_segment = await client.get("/definitions", params={"segment": "professional"})
        bad_segment = await client.get("/definitions", params={"segment": "vip"})

    new_ids = {d["id"] for d in new_segment.json()["definitions"]}
    pro_ids = {d["id"] for d in pro_segment.json()["definitions"]}
    assert f"all_{suffix}" in new_ids
    assert f"pro_{suffix}" not in new_ids
    assert {f"all_{suffix}", f"pro_{suffix}"} <= pro_ids
    assert f"off_{suffix}" not in new_ids | pro_ids
    assert bad_segment.status_code == 422
