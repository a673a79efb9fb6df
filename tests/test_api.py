"""End-to-end tests for the HTTP API."""

import uuid

import pytest
from httpx import ASGITransport, AsyncClient

from backend.database import init_db
from backend.main import app

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "adminpass"


def _client() -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


async def _login(client: AsyncClient, email: str, password: str = "password1") -> dict[str, str]:
    # Registration may already have happened in another test
    await client.post("/api/auth/register", json={"email": email, "password": password})
    response = await client.post("/api/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


async def _seed_deck(client: AsyncClient, admin: dict[str, str], fronts: list[str]) -> tuple[int, int, list[int]]:
    subject = await client.post(
        "/api/content/subjects", json={"name": f"API {uuid.uuid4().hex[:8]}"}, headers=admin
    )
    assert subject.status_code == 201, subject.text
    subject_id = subject.json()["id"]
    subtopic = await client.post(
        "/api/content/subtopics", json={"subject_id": subject_id, "name": "Core"}, headers=admin
    )
    subtopic_id = subtopic.json()["id"]
    card_ids = []
    for front in fronts:
        card = await client.post(
            "/api/content/flashcards",
            json={
                "subject_id": subject_id,
                "subtopic_id": subtopic_id,
                "front_text": front,
                "back_text": front.lower(),
            },
            headers=admin,
        )
        assert card.status_code == 201, card.text
        card_ids.append(card.json()["id"])
    return subject_id, subtopic_id, card_ids


@pytest.mark.asyncio
async def test_requests_need_sign_in() -> None:
    await init_db()
    async with _client() as client:
        response = await client.get("/api/content/subjects")
        assert response.status_code == 401
        response = await client.get(
            "/api/content/subjects", headers={"Authorization": "Bearer not-a-token"}
        )
        assert response.status_code == 401


@pytest.mark.asyncio
async def test_register_validation_is_reported() -> None:
    await init_db()
    async with _client() as client:
        response = await client.post(
            "/api/auth/register",
            json={"email": "short@example.com", "password": "abc", "confirm_password": "abc"},
        )
    assert response.status_code == 422
    assert "at least 6" in response.json()["detail"]


@pytest.mark.asyncio
async def test_overlong_password_is_a_validation_error() -> None:
    await init_db()
    async with _client() as client:
        response = await client.post(
            "/api/auth/register",
            json={"email": f"long-{uuid.uuid4().hex[:8]}@example.com", "password": "x" * 100},
        )
        assert response.status_code == 422
        assert "at most 72 bytes" in response.json()["detail"]

        response = await client.post(
            "/api/auth/login", json={"email": ADMIN_EMAIL, "password": "y" * 100}
        )
        assert response.status_code == 401


@pytest.mark.asyncio
async def test_me_reports_admin_flag() -> None:
    await init_db()
    async with _client() as client:
        admin = await _login(client, ADMIN_EMAIL, ADMIN_PASSWORD)
        response = await client.get("/api/auth/me", headers=admin)
        assert response.json()["is_admin"] is True

        user = await _login(client, f"u-{uuid.uuid4().hex[:8]}@example.com")
        response = await client.get("/api/auth/me", headers=user)
        assert response.json()["is_admin"] is False


@pytest.mark.asyncio
async def test_only_admin_can_write_content() -> None:
    await init_db()
    async with _client() as client:
        user = await _login(client, f"u-{uuid.uuid4().hex[:8]}@example.com")
        response = await client.post("/api/content/subjects", json={"name": "Nope"}, headers=user)
        assert response.status_code == 403

        response = await client.get("/api/users", headers=user)
        assert response.status_code == 403


@pytest.mark.asyncio
async def test_study_session_flow() -> None:
    await init_db()
    async with _client() as client:
        admin = await _login(client, ADMIN_EMAIL, ADMIN_PASSWORD)
        subject_id, _, card_ids = await _seed_deck(client, admin, ["A", "B", "C"])
        user = await _login(client, f"s-{uuid.uuid4().hex[:8]}@example.com")

        response = await client.post(
            "/api/study/sessions", json={"mode": "subject", "subject_id": subject_id}, headers=user
        )
        assert response.status_code == 201, response.text
        state = response.json()
        session_id = state["session_id"]
        assert state["status"] == "not-started"
        assert state["total_cards"] == 3

        base = f"/api/study/sessions/{session_id}"
        state = (await client.post(f"{base}/start", headers=user)).json()
        assert state["status"] == "in-progress"
        assert state["current_card"] == {"id": card_ids[0], "text": "A", "side": "front"}

        state = (await client.post(f"{base}/flip", headers=user)).json()
        assert state["current_card"]["text"] == "a"

        await client.post(f"{base}/correct", headers=user)
        await client.post(f"{base}/wrong", headers=user)
        state = (await client.post(f"{base}/correct", headers=user)).json()
        assert state["status"] == "complete"
        assert state["missed_ids"] == [card_ids[1]]

        score = (await client.get(f"{base}/score", headers=user)).json()
        assert (score["correct"], score["total"], score["perfect"]) == (2, 3, False)

        state = (await client.post(f"{base}/review", headers=user)).json()
        assert state["is_review_round"] is True
        assert state["total_cards"] == 1
        assert state["current_card"]["id"] == card_ids[1]

        await client.post(f"{base}/correct", headers=user)
        score = (await client.get(f"{base}/score", headers=user)).json()
        assert (score["correct"], score["total"], score["perfect"]) == (1, 1, True)

        response = await client.post(f"{base}/review", headers=user)
        assert response.status_code == 409

        state = (await client.post(f"{base}/restart", headers=user)).json()
        assert state["status"] == "not-started"
        assert state["total_cards"] == 3

        mastery = (await client.get("/api/study/mastery", headers=user)).json()
        row = next(m for m in mastery if m["subject_id"] == subject_id)
        assert row["total_cards"] == 3

        assert (await client.delete(base, headers=user)).status_code == 204
        assert (await client.get(base, headers=user)).status_code == 404


@pytest.mark.asyncio
async def test_marking_before_start_conflicts() -> None:
    await init_db()
    async with _client() as client:
        admin = await _login(client, ADMIN_EMAIL, ADMIN_PASSWORD)
        _, subtopic_id, _ = await _seed_deck(client, admin, ["Only"])
        user = await _login(client, f"s-{uuid.uuid4().hex[:8]}@example.com")
        response = await client.post(
            "/api/study/sessions", json={"mode": "subtopic", "subtopic_id": subtopic_id}, headers=user
        )
        session_id = response.json()["session_id"]
        response = await client.post(f"/api/study/sessions/{session_id}/correct", headers=user)
        assert response.status_code == 409


@pytest.mark.asyncio
async def test_sessions_are_private() -> None:
    await init_db()
    async with _client() as client:
        admin = await _login(client, ADMIN_EMAIL, ADMIN_PASSWORD)
        subject_id, _, _ = await _seed_deck(client, admin, ["X"])
        owner = await _login(client, f"o-{uuid.uuid4().hex[:8]}@example.com")
        other = await _login(client, f"p-{uuid.uuid4().hex[:8]}@example.com")

        response = await client.post(
            "/api/study/sessions", json={"mode": "subject", "subject_id": subject_id}, headers=owner
        )
        session_id = response.json()["session_id"]
        response = await client.get(f"/api/study/sessions/{session_id}", headers=other)
        assert response.status_code == 404


@pytest.mark.asyncio
async def test_empty_scope_is_reported() -> None:
    await init_db()
    async with _client() as client:
        admin = await _login(client, ADMIN_EMAIL, ADMIN_PASSWORD)
        subject = await client.post(
            "/api/content/subjects", json={"name": f"Empty {uuid.uuid4().hex[:8]}"}, headers=admin
        )
        response = await client.post(
            "/api/study/sessions",
            json={"mode": "subject", "subject_id": subject.json()["id"]},
            headers=admin,
        )
        assert response.status_code == 404
        assert response.json()["detail"] == "No flashcards found for this selection."


@pytest.mark.asyncio
async def test_reorder_and_export() -> None:
    await init_db()
    async with _client() as client:
        admin = await _login(client, ADMIN_EMAIL, ADMIN_PASSWORD)
        _, subtopic_id, card_ids = await _seed_deck(client, admin, ["One", "Two", "Three"])

        response = await client.put(
            f"/api/content/subtopics/{subtopic_id}/card-order",
            json={"ordered_ids": list(reversed(card_ids))},
            headers=admin,
        )
        assert response.status_code == 200
        assert [c["id"] for c in response.json()] == list(reversed(card_ids))

        response = await client.post(
            f"/api/content/flashcards/{card_ids[2]}/move", json={"offset": 1}, headers=admin
        )
        assert [c["id"] for c in response.json()] == [card_ids[1], card_ids[2], card_ids[0]]

        export = await client.get("/api/content/flashcards/export", headers=admin)
        assert export.status_code == 200
        assert "Front: Two" in export.text


@pytest.mark.asyncio
async def test_user_exports() -> None:
    await init_db()
    async with _client() as client:
        admin = await _login(client, ADMIN_EMAIL, ADMIN_PASSWORD)
        email = f"e-{uuid.uuid4().hex[:8]}@example.com"
        await _login(client, email)

        users = (await client.get("/api/users", headers=admin)).json()
        assert email in {u["email"] for u in users}

        csv_response = await client.get("/api/users/export.csv", headers=admin)
        assert csv_response.headers["content-type"].startswith("text/csv")
        assert csv_response.text.startswith("Email,Signup Date,Email Verified")
        assert f"{email}," in csv_response.text

        emails = await client.get("/api/users/emails", headers=admin)
        assert email in emails.text.splitlines()
