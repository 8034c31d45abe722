"""HTTP API — auth, owner scoping, error mapping and the full tutoring flow over HTTP.

Invariants:
    - Missing or forged tokens → 401 before any service runs
    - Foreign sessions answer 404 exactly like missing ones
    - Domain errors carry a stable error code in the JSON body
"""

import base64
from datetime import datetime, timedelta, timezone

import pytest

from mathcoach.schemas.analysis import DialogueReply
from mathcoach.services import behavior_logger
from mathcoach.services.problem_analyzer import retake_placeholder

from tests.services.fake_collaborators import auth_headers, sample_analysis

SMALL_IMAGE = base64.b64encode(b"\x89PNG fake image bytes").decode()
ALICE = auth_headers("user-a")
BOB = auth_headers("user-b")


async def _create(client, session_id: str = "s-http", headers=ALICE):
    return await client.post(
        "/api/v1/sessions",
        json={"session_id": session_id, "problem_text": "小明有5个苹果，吃掉了2个，还剩几个？"},
        headers=headers,
    )


# --- Auth & health --------------------------------------------------------------

async def test_missing_token_is_401(client):
    response = await client.get("/api/v1/sessions")
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "AUTHENTICATION_REQUIRED"


async def test_forged_token_is_401(client):
    response = await client.get(
        "/api/v1/users/me", headers={"Authorization": "Bearer user-a.forged"},
    )
    assert response.status_code == 401


async def test_health(client):
    response = await client.get("/api/v1/health/")
    assert response.status_code == 200
    assert response.json()["service"] == "mathcoach-api"


async def test_readiness_checks_database(client):
    response = await client.get("/api/v1/health/ready")
    assert response.status_code == 200
    assert response.json()["checks"]["database"] == "healthy"


# --- Identity -------------------------------------------------------------------

async def test_identity_resolve_issues_usable_token(client):
    response = await client.post("/api/v1/identity/resolve", json={"credential": "wx-1"})
    assert response.status_code == 200
    body = response.json()
    assert body["anonymous"] is False

    me = await client.get(
        "/api/v1/users/me",
        headers={"Authorization": f"Bearer {body['access_token']}"},
    )
    assert me.status_code == 200
    assert me.json()["user_id"] == body["user_id"]


async def test_identity_provider_down_is_anonymous(client, fakes):
    fakes.identity.fail = True
    response = await client.post("/api/v1/identity/resolve", json={"credential": "wx-1"})
    assert response.status_code == 200
    assert response.json() == {"anonymous": True, "user_id": None, "access_token": None}


# --- Problems -------------------------------------------------------------------

async def test_analyze_photo_opens_session(client):
    response = await client.post(
        "/api/v1/problems/analyze",
        json={"session_id": "s-photo", "image_base64": SMALL_IMAGE, "media_type": "image/png"},
        headers=ALICE,
    )
    assert response.status_code == 200
    body = response.json()
    assert body["needs_retake"] is False
    assert body["session_id"] == "s-photo"
    assert body["first_question"] == sample_analysis().questions[0]
    assert body["current_round"] == 1
    assert body["total_rounds"] == 3


async def test_analyze_unreadable_photo_asks_for_retake(client, fakes):
    fakes.analyzer.result = retake_placeholder()
    response = await client.post(
        "/api/v1/problems/analyze",
        json={"session_id": "s-photo", "image_base64": SMALL_IMAGE},
        headers=ALICE,
    )
    body = response.json()
    assert body["needs_retake"] is True
    assert body["session_id"] is None

    missing = await client.get("/api/v1/sessions/s-photo", headers=ALICE)
    assert missing.status_code == 404


async def test_analyze_oversized_photo_is_400(client, fakes):
    payload = base64.b64encode(b"\x00" * (2 * 1024 * 1024)).decode()
    response = await client.post(
        "/api/v1/problems/analyze",
        json={"session_id": "s-big", "image_base64": payload},
        headers=ALICE,
    )
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"
    assert fakes.analyzer.calls == []


# --- Sessions -------------------------------------------------------------------

async def test_full_session_flow_over_http(client, fakes, jobs):
    fakes.dialogue.script = [
        DialogueReply(feedback="找得很准！", next_question="要用什么运算？", is_correct=True),
    ]
    created = await _create(client)
    assert created.status_code == 201
    assert created.json()["session"]["current_round"] == 1

    for round_number, answer in enumerate(["5和2", "减法", "5 - 2 = 3"], start=1):
        response = await client.post(
            "/api/v1/sessions/s-http/answers",
            json={"answer": answer, "expected_round": round_number},
            headers=ALICE,
        )
        assert response.status_code == 200

    final = response.json()
    assert final["completed"] is True
    assert final["next_question"] is None
    assert final["report"]["score"] == 88
    assert final["report"]["source"] == "collaborator"

    report = await client.get("/api/v1/sessions/s-http/report", headers=ALICE)
    assert report.status_code == 200
    assert report.json()["score"] == 88

    again = await client.post("/api/v1/sessions/s-http/report", headers=ALICE)
    assert again.json()["created_at"] == report.json()["created_at"]
    assert len(fakes.report.calls) == 1

    await jobs.join()
    history = await client.get("/api/v1/history", headers=ALICE)
    entry = history.json()["items"][0]
    assert entry["session_id"] == "s-http"
    assert entry["status"] == "completed"
    assert entry["score"] == 88

    stats = await client.get("/api/v1/users/me/stats", headers=ALICE)
    assert stats.json()["total_questions"] == 1
    assert stats.json()["best_score"] == 88


async def test_stale_round_is_409(client):
    await _create(client)
    payload = {"answer": "5和2", "expected_round": 1}
    await client.post("/api/v1/sessions/s-http/answers", json=payload, headers=ALICE)
    response = await client.post("/api/v1/sessions/s-http/answers", json=payload, headers=ALICE)
    assert response.status_code == 409
    assert response.json()["error"]["code"] == "STALE_ROUND"
    assert response.json()["error"]["context"]["round_number"] == 2


async def test_blank_answer_is_400(client):
    await _create(client)
    response = await client.post(
        "/api/v1/sessions/s-http/answers",
        json={"answer": "   ", "expected_round": 1},
        headers=ALICE,
    )
    assert response.status_code == 400


async def test_foreign_session_is_404(client):
    await _create(client)
    for method, path in [
        ("GET", "/api/v1/sessions/s-http"),
        ("POST", "/api/v1/sessions/s-http/abandon"),
        ("GET", "/api/v1/sessions/s-http/report"),
    ]:
        response = await client.request(method, path, headers=BOB)
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"


async def test_session_id_taken_by_another_owner_is_409(client):
    await _create(client)
    response = await _create(client, headers=BOB)
    assert response.status_code == 409


async def test_report_before_completion_is_409(client):
    await _create(client)
    response = await client.post("/api/v1/sessions/s-http/report", headers=ALICE)
    assert response.status_code == 409
    assert response.json()["error"]["code"] == "SESSION_NOT_READY"


async def test_abandon_then_answer_is_rejected(client):
    await _create(client)
    abandoned = await client.post(
        "/api/v1/sessions/s-http/abandon", json={"reason": "太难了"}, headers=ALICE,
    )
    assert abandoned.json()["status"] == "abandoned"
    assert abandoned.json()["abandon_note"] == "太难了"

    response = await client.post(
        "/api/v1/sessions/s-http/answers",
        json={"answer": "3", "expected_round": 1},
        headers=ALICE,
    )
    assert response.status_code == 409
    assert response.json()["error"]["code"] == "INVALID_TRANSITION"


async def test_list_sessions_is_owner_scoped_and_filtered(client):
    await _create(client, "s-1")
    await _create(client, "s-2")
    await _create(client, "s-bob", headers=BOB)
    await client.post("/api/v1/sessions/s-1/abandon", headers=ALICE)

    listing = await client.get("/api/v1/sessions", headers=ALICE)
    assert listing.json()["total"] == 2

    active = await client.get("/api/v1/sessions?status=active", headers=ALICE)
    assert [s["session_id"] for s in active.json()["items"]] == ["s-2"]


async def test_page_size_above_limit_is_400(client):
    response = await client.get("/api/v1/sessions?page_size=500", headers=ALICE)
    assert response.status_code == 400


# --- Users ----------------------------------------------------------------------

async def test_profile_update_and_stats_recompute(client):
    patched = await client.patch(
        "/api/v1/users/me",
        json={"nickname": "  小红 ", "settings": {"sound": False}},
        headers=ALICE,
    )
    assert patched.status_code == 200
    assert patched.json()["nickname"] == "小红"
    assert patched.json()["settings"] == {"sound": False}

    await _create(client)
    stats = await client.post("/api/v1/users/me/stats/recompute", headers=ALICE)
    assert stats.status_code == 200
    assert stats.json()["total_questions"] == 1
    assert stats.json()["latest_achievement"] == "🎯 初次尝试"

    me = await client.get("/api/v1/users/me", headers=ALICE)
    assert me.json()["learning_stats"]["total_questions"] == 1


async def test_blank_abandon_reason_is_not_stored(client):
    await _create(client)
    abandoned = await client.post(
        "/api/v1/sessions/s-http/abandon", json={"reason": "   "}, headers=ALICE,
    )
    assert abandoned.status_code == 200
    assert abandoned.json()["abandon_note"] is None

    fetched = await client.get("/api/v1/sessions/s-http", headers=ALICE)
    assert fetched.json()["completion_reason"] == "user_abandoned"


# --- Reports --------------------------------------------------------------------

async def _complete(client, session_id: str, headers=ALICE):
    await _create(client, session_id, headers=headers)
    for round_number, answer in enumerate(["5和2", "减法", "5 - 2 = 3"], start=1):
        response = await client.post(
            f"/api/v1/sessions/{session_id}/answers",
            json={"answer": answer, "expected_round": round_number},
            headers=headers,
        )
    assert response.json()["completed"] is True


async def test_report_listing_is_owner_scoped_and_paged(client):
    await _complete(client, "s-1")
    await _complete(client, "s-2")
    await _complete(client, "s-bob", headers=BOB)

    first = await client.get("/api/v1/reports?page_size=1", headers=ALICE)
    assert first.status_code == 200
    body = first.json()
    assert body["total"] == 2
    assert body["has_more"] is True
    assert body["items"][0]["session_id"] == "s-2"
    assert body["items"][0]["score"] == 88

    bob = await client.get("/api/v1/reports", headers=BOB)
    assert [r["session_id"] for r in bob.json()["items"]] == ["s-bob"]


async def test_report_listing_date_range(client):
    await _complete(client, "s-1")
    today = datetime.now(timezone.utc).date()

    around = await client.get(
        "/api/v1/reports",
        params={"start_date": str(today - timedelta(days=1)), "end_date": str(today + timedelta(days=1))},
        headers=ALICE,
    )
    assert around.json()["total"] == 1

    later = await client.get(
        "/api/v1/reports", params={"start_date": str(today + timedelta(days=1))}, headers=ALICE,
    )
    assert later.json() == {
        "items": [], "total": 0, "page": 1, "page_size": 10, "has_more": False,
    }


async def test_report_listing_requires_token(client):
    response = await client.get("/api/v1/reports")
    assert response.status_code == 401


# --- Behaviors ------------------------------------------------------------------

async def test_client_behavior_is_recorded(client, jobs):
    response = await client.post(
        "/api/v1/behaviors",
        json={"action": "page_view", "page": "pages/index", "data": {"from": "share"}},
        headers=ALICE,
    )
    assert response.status_code == 202
    assert response.json() == {"accepted": True}

    await jobs.join()
    summary = await client.get("/api/v1/behaviors/summary", headers=ALICE)
    assert summary.json() == {"total": 1, "by_action": {"page_view": 1}}

    other = await client.get("/api/v1/behaviors/summary", headers=BOB)
    assert other.json() == {"total": 0, "by_action": {}}


async def test_failing_behavior_write_never_reaches_the_caller(client, jobs, monkeypatch):
    async def broken_write(*args, **kwargs):
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(behavior_logger, "write_behavior_event", broken_write)
    response = await client.post(
        "/api/v1/behaviors", json={"action": "feature_used"}, headers=ALICE,
    )
    assert response.status_code == 202
    assert response.json() == {"accepted": True}

    await jobs.join()
    summary = await client.get("/api/v1/behaviors/summary", headers=ALICE)
    assert summary.json()["total"] == 0


async def test_stopped_queue_drops_behavior_with_202(client, jobs):
    await jobs.stop()
    response = await client.post(
        "/api/v1/behaviors", json={"action": "page_view"}, headers=ALICE,
    )
    assert response.status_code == 202
    assert response.json() == {"accepted": False}


@pytest.mark.parametrize("payload", [
    {"action": "Page View"},
    {"action": ""},
    {"action": "page_view", "page": "p" * 101},
    {"page": "pages/index"},
])
async def test_malformed_behavior_is_400(client, payload):
    response = await client.post("/api/v1/behaviors", json=payload, headers=ALICE)
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


async def test_behavior_requires_token(client):
    response = await client.post("/api/v1/behaviors", json={"action": "page_view"})
    assert response.status_code == 401
