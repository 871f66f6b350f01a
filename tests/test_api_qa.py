"""Tests for the Q&A API endpoints."""
import uuid

import pytest
from httpx import AsyncClient, ASGITransport


API_BASE_URL = "http://test/qa"

ANSWER_BODY = "File the VAT return online through the tax portal before the 15th."


def _client(app) -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url=API_BASE_URL)


@pytest.fixture
async def people(user_factory):
    return {
        "asker": await user_factory(full_name="Sara Asker"),
        "expert": await user_factory(full_name="Reza Expert"),
        "other": await user_factory(),
        "reader": await user_factory(),
    }


async def _post_question(client, headers, payload):
    response = await client.post("/questions", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


async def _post_answer(client, question_id, headers, body=ANSWER_BODY):
    response = await client.post(f"/questions/{question_id}/answers", json={"body": body}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.asyncio
async def test_question_answer_accept_flow(test_app, people, auth_headers, question_payload):
    """Ask, answer twice, react and accept; detail reflects the ranking."""
    asker = auth_headers(people["asker"])
    async with _client(test_app) as client:
        question = await _post_question(client, asker, question_payload(tags=["VAT"]))
        assert question["tags"] == ["vat"]
        assert question["author"]["displayName"] == "Sara Asker"
        assert question["createdAt"].endswith("Z")
        question_id = question["questionId"]

        first = await _post_answer(client, question_id, auth_headers(people["expert"]))
        second = await _post_answer(client, question_id, auth_headers(people["other"]), ANSWER_BODY + " Keep copies.")
        assert first["aqs"] == 0
        assert first["label"] == "NORMAL"

        reaction = await client.post(
            f"/answers/{second['answerId']}/reaction", json={"type": "expert"}, headers=auth_headers(people["reader"])
        )
        assert reaction.status_code == 200
        assert reaction.json()["action"] == "added"
        assert reaction.json()["expertBadgeCount"] == 1

        detail = await client.get(f"/questions/{question_id}", headers=auth_headers(people["reader"]))
        assert detail.status_code == 200
        body = detail.json()
        assert [a["answerId"] for a in body["answers"]] == [second["answerId"], first["answerId"]]
        assert body["answers"][0]["userReaction"] == "expert"
        assert body["isAsker"] is False

        accept = await client.post(
            f"/questions/{question_id}/accept", json={"answerId": first["answerId"]}, headers=asker
        )
        assert accept.status_code == 200
        assert accept.json()["acceptedAnswerId"] == first["answerId"]

        accept = await client.post(
            f"/questions/{question_id}/accept", json={"answerId": second["answerId"]}, headers=asker
        )
        assert accept.status_code == 200

        detail = await client.get(f"/questions/{question_id}", headers=asker)
        answers = detail.json()["answers"]
        assert detail.json()["isAsker"] is True
        assert [a["isAccepted"] for a in answers] == [True, False]
        assert answers[0]["answerId"] == second["answerId"]
        assert answers[0]["label"] == "STAR"


@pytest.mark.asyncio
async def test_accept_by_non_owner_conflicts(test_app, people, auth_headers, question_payload):
    async with _client(test_app) as client:
        question = await _post_question(client, auth_headers(people["asker"]), question_payload())
        answer = await _post_answer(client, question["questionId"], auth_headers(people["expert"]))

        response = await client.post(
            f"/questions/{question['questionId']}/accept",
            json={"answerId": answer["answerId"]},
            headers=auth_headers(people["other"]),
        )

    assert response.status_code == 409
    assert "detail" in response.json()


@pytest.mark.asyncio
async def test_reaction_toggle_over_http(test_app, people, auth_headers, question_payload):
    async with _client(test_app) as client:
        question = await _post_question(client, auth_headers(people["asker"]), question_payload())
        answer = await _post_answer(client, question["questionId"], auth_headers(people["expert"]))
        reader = auth_headers(people["reader"])
        url = f"/answers/{answer['answerId']}/reaction"

        added = await client.post(url, json={"type": "helpful"}, headers=reader)
        changed = await client.post(url, json={"type": "not_helpful"}, headers=reader)
        current = await client.get(url, headers=reader)
        removed = await client.post(url, json={"type": "not_helpful"}, headers=reader)
        after = await client.get(url, headers=reader)

    assert added.json()["action"] == "added"
    assert changed.json()["action"] == "changed"
    assert changed.json()["helpfulCount"] == 0
    assert changed.json()["notHelpfulCount"] == 1
    assert current.json()["reactionType"] == "not_helpful"
    assert removed.json()["action"] == "removed"
    assert removed.json()["reactionType"] is None
    assert after.json()["reactionType"] is None


@pytest.mark.asyncio
async def test_invalid_reaction_type_is_validation_error(test_app, people, auth_headers, question_payload):
    async with _client(test_app) as client:
        question = await _post_question(client, auth_headers(people["asker"]), question_payload())
        answer = await _post_answer(client, question["questionId"], auth_headers(people["expert"]))

        response = await client.post(
            f"/answers/{answer['answerId']}/reaction", json={"type": "love"}, headers=auth_headers(people["reader"])
        )

    assert response.status_code == 422
    data = response.json()
    assert data["detail"] == "Request validation failed"
    assert data["errors"][0]["field"] == "type"


@pytest.mark.asyncio
async def test_write_endpoints_require_authentication(test_app, question_payload):
    async with _client(test_app) as client:
        missing = await client.post("/questions", json=question_payload())
        malformed = await client.post("/questions", json=question_payload(), headers={"Authorization": "Token abc"})
        invalid = await client.post("/questions", json=question_payload(), headers={"Authorization": "Bearer abc"})

    assert missing.status_code == 401
    assert missing.json()["detail"] == "missing_credentials"
    assert malformed.json()["detail"] == "invalid_authorization_header"
    assert invalid.json()["detail"] == "invalid_token"


@pytest.mark.asyncio
async def test_question_validation_and_missing(test_app, people, auth_headers, question_payload):
    headers = auth_headers(people["asker"])
    async with _client(test_app) as client:
        short_title = await client.post("/questions", json=question_payload(title="Tax?"), headers=headers)
        missing = await client.get(f"/questions/{uuid.uuid4()}")

    assert short_title.status_code == 400
    assert "Title" in short_title.json()["detail"]
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_edit_rules(test_app, people, auth_headers, question_payload):
    asker = auth_headers(people["asker"])
    async with _client(test_app) as client:
        question = await _post_question(client, asker, question_payload())
        question_id = question["questionId"]

        not_author = await client.patch(
            f"/questions/{question_id}", json={"body": "A different body written by someone else."},
            headers=auth_headers(people["other"]),
        )
        retitled = await client.patch(
            f"/questions/{question_id}", json={"title": "Retitled before any answers"}, headers=asker
        )
        answer = await _post_answer(client, question_id, auth_headers(people["expert"]))
        locked = await client.patch(
            f"/questions/{question_id}", json={"title": "Retitled after an answer arrived"}, headers=asker
        )
        answer_edit = await client.patch(
            f"/answers/{answer['answerId']}", json={"body": ANSWER_BODY + " Updated."},
            headers=auth_headers(people["expert"]),
        )
        hidden = await client.delete(f"/questions/{question_id}", headers=asker)
        edit_hidden = await client.patch(
            f"/questions/{question_id}", json={"body": "Editing after the question was hidden."}, headers=asker
        )
        read_hidden = await client.get(f"/questions/{question_id}")

    assert not_author.status_code == 403
    assert retitled.status_code == 200
    assert retitled.json()["title"] == "Retitled before any answers"
    assert retitled.json()["author"]["userId"] == str(people["asker"].user_id)
    assert locked.status_code == 409
    assert answer_edit.status_code == 200
    assert answer_edit.json()["body"].endswith("Updated.")
    assert hidden.status_code == 200
    assert edit_hidden.status_code == 409
    assert read_hidden.status_code == 404


@pytest.mark.asyncio
async def test_flag_answer(test_app, people, auth_headers, question_payload):
    async with _client(test_app) as client:
        question = await _post_question(client, auth_headers(people["asker"]), question_payload())
        answer = await _post_answer(client, question["questionId"], auth_headers(people["expert"]))
        url = f"/answers/{answer['answerId']}/flag"

        flagged = await client.post(url, json={"reason": "SPAM"}, headers=auth_headers(people["reader"]))
        own = await client.post(url, json={"reason": "SPAM"}, headers=auth_headers(people["expert"]))

    assert flagged.status_code == 200
    assert flagged.json()["created"] is True
    assert flagged.json()["flagCount"] == 1
    assert own.status_code == 400


@pytest.mark.asyncio
async def test_list_filters_and_search(test_app, people, auth_headers, question_payload):
    marker = uuid.uuid4().hex[:8]
    async with _client(test_app) as client:
        await _post_question(
            client, auth_headers(people["asker"]),
            question_payload(title=f"Insurance premiums {marker}", category="insurance", tags=[f"t{marker}"]),
        )
        by_tag = await client.get("/questions", params={"tag": f"t{marker}"})
        search = await client.get("/questions/search", params={"q": marker})
        too_short = await client.get("/questions/search", params={"q": "ab"})
        bad_limit = await client.get("/questions", params={"limit": 500})

    assert by_tag.status_code == 200
    assert by_tag.json()["total"] == 1
    assert by_tag.json()["questions"][0]["category"] == "insurance"
    assert [q["title"] for q in search.json()["questions"]] == [f"Insurance premiums {marker}"]
    assert too_short.json()["questions"] == []
    assert bad_limit.status_code == 422


@pytest.mark.asyncio
async def test_leaderboard_and_expertise(test_app, people, auth_headers, question_payload):
    category = f"cat{uuid.uuid4().hex[:8]}"
    async with _client(test_app) as client:
        question = await _post_question(client, auth_headers(people["asker"]), question_payload(category=category))
        answer = await _post_answer(client, question["questionId"], auth_headers(people["expert"]))
        await client.post(
            f"/questions/{question['questionId']}/accept",
            json={"answerId": answer["answerId"]},
            headers=auth_headers(people["asker"]),
        )

        board = await client.get("/leaderboard", params={"category": category, "period": "week"})
        bad_period = await client.get("/leaderboard", params={"period": "decade"})
        expertise = await client.get(f"/users/{people['expert'].user_id}/expertise")
        unknown = await client.get(f"/users/{uuid.uuid4()}/expertise")

    assert board.status_code == 200
    experts = board.json()["experts"]
    assert experts[0]["userId"] == str(people["expert"].user_id)
    assert experts[0]["rank"] == 1
    assert experts[0]["stats"]["score"] == 60
    assert experts[0]["level"]["code"] == "senior"
    assert experts[1]["stats"]["score"] == 2
    assert bad_period.status_code == 400

    assert expertise.status_code == 200
    assert expertise.json()["name"] == "Reza Expert"
    assert "FEATURED_ANSWER" in [b["code"] for b in expertise.json()["badges"]]
    assert unknown.status_code == 404


@pytest.mark.asyncio
async def test_stats_and_trending(test_app, people, auth_headers, question_payload):
    async with _client(test_app) as client:
        question = await _post_question(client, auth_headers(people["asker"]), question_payload())
        stats = await client.get("/stats")
        trending = await client.get("/trending", params={"period": "day", "limit": 20})

    assert stats.status_code == 200
    assert stats.json()["stats"]["totalQuestions"] >= 1
    assert trending.status_code == 200
    entry = next(t for t in trending.json()["trending"] if t["questionId"] == question["questionId"])
    assert entry["answersCount"] == 0
    assert entry["trendingScore"] >= 0


@pytest.mark.asyncio
async def test_related_questions(test_app, people, auth_headers, question_payload):
    marker = uuid.uuid4().hex[:8]
    category = f"rel{marker}"
    async with _client(test_app) as client:
        source = await _post_question(
            client, auth_headers(people["asker"]),
            question_payload(title=f"Relalpha{marker} relbeta{marker}", category=category, tags=["audit"]),
        )
        sibling = await _post_question(
            client, auth_headers(people["expert"]),
            question_payload(title="Audit trail requirements", category=category, tags=["audit"]),
        )
        await _post_answer(client, sibling["questionId"], auth_headers(people["other"]))
        elsewhere = await _post_question(
            client, auth_headers(people["other"]),
            question_payload(title=f"Payroll relbeta{marker} checklist", category=f"other{marker}", tags=[]),
        )

        response = await client.get(f"/questions/{source['questionId']}/related")
        capped = await client.get(f"/questions/{source['questionId']}/related", params={"limit": 1})
        bad_limit = await client.get(f"/questions/{source['questionId']}/related", params={"limit": 0})
        missing = await client.get(f"/questions/{uuid.uuid4()}/related")

    assert response.status_code == 200
    related = response.json()["relatedQuestions"]
    # Same category: 10 base + one shared tag + answered bonus
    assert [(q["questionId"], q["relevanceScore"]) for q in related] == [
        (sibling["questionId"], 17),
        (elsewhere["questionId"], 5),
    ]
    assert related[0]["author"]["userId"] == str(people["expert"].user_id)
    assert related[0]["createdAt"].endswith("Z")
    assert [q["questionId"] for q in capped.json()["relatedQuestions"]] == [sibling["questionId"]]
    assert bad_limit.status_code == 422
    assert missing.status_code == 404
