"""Tests for /api/notes."""

import asyncio
import time

import pytest
from httpx import AsyncClient, ASGITransport

from studyforge.main import create_app
from studyforge.models.generation import ContentKind
from studyforge.features.generation.provider import ProviderNotConfiguredError
from studyforge.tests.mocks import (
    DownStore,
    FailingWriteStore,
    FakeProvider,
    SlowIdentity,
    SlowProbeStore,
    SlowWriteStore,
)

NOTE = {
    "title": "Photosynthesis",
    "subject": "Biology",
    "topic": "Plants",
    "prompt": "Explain how plants make food",
}


def test_create_requires_authorization(client):
    resp = client.post("/api/notes", json=NOTE)
    assert resp.status_code == 401
    body = resp.json()
    assert body["error"] == "Missing or invalid Authorization header"
    assert body["code"] == "unauthenticated"


def test_create_rejects_invalid_token(client):
    resp = client.post("/api/notes", json=NOTE, headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 401
    assert resp.json()["code"] == "invalid_token"


def test_rejected_request_does_no_work(make_client):
    provider = FakeProvider()
    down = DownStore()
    client = make_client(down, provider)
    resp = client.post("/api/notes", json=NOTE)
    assert resp.status_code == 401
    assert provider.calls == []
    assert down.calls == []


def test_create_saves_note(client, auth_headers, store, provider):
    resp = client.post("/api/notes", json=NOTE, headers=auth_headers)
    assert resp.status_code == 201
    body = resp.json()

    assert body["message"] == "Note created successfully"
    assert body["saved"] is True
    note = body["note"]
    assert note["title"] == "Photosynthesis"
    assert note["userId"] == "user_123"
    assert note["content"] == provider.content
    assert note["prompt"] == NOTE["prompt"]
    assert "createdAt" in note
    assert store.find_record(ContentKind.NOTE, note["id"], "user_123") is not None


def test_create_missing_title_is_400(client, auth_headers):
    resp = client.post("/api/notes", json={**NOTE, "title": "  "}, headers=auth_headers)
    assert resp.status_code == 400
    body = resp.json()
    assert body["code"] == "validation_error"
    assert body["error"] == "Invalid request data"
    assert any("title" in detail["loc"] for detail in body["details"])


def test_create_rejects_foreign_user_id(client, auth_headers):
    resp = client.post("/api/notes", json={**NOTE, "userId": "someone_else"}, headers=auth_headers)
    assert resp.status_code == 403
    assert resp.json()["error"] == "User ID mismatch"


def test_create_with_store_down_returns_content(make_client, auth_headers):
    provider = FakeProvider(content="Notes while offline")
    client = make_client(DownStore(), provider)

    resp = client.post("/api/notes", json=NOTE, headers=auth_headers)
    assert resp.status_code == 207
    body = resp.json()
    assert body["content"] == "Notes while offline"
    assert body["demo"] is True
    assert body["saved"] is False
    assert body["note"]["id"].startswith("demo-")
    assert body["message"] == "Note content generated in demo mode"
    assert len(provider.calls) == 1


def test_create_with_hanging_store_returns_content(make_client, auth_headers, store):
    client = make_client(SlowProbeStore(store, delay=1.0))
    resp = client.post("/api/notes", json=NOTE, headers=auth_headers)
    assert resp.status_code == 207
    assert resp.json()["reason"] == "skipped_store_down"
    assert store.list_records(ContentKind.NOTE, "user_123") == []


def test_create_with_failed_write_keeps_content(make_client, auth_headers, store):
    client = make_client(FailingWriteStore(store), FakeProvider(content="Kept"))
    resp = client.post("/api/notes", json=NOTE, headers=auth_headers)
    assert resp.status_code == 207
    body = resp.json()
    assert body["content"] == "Kept"
    assert body["reason"] == "failed_on_write"


def test_generation_failure_is_saved_as_fallback(make_client, auth_headers, store):
    client = make_client(store, FakeProvider(error=RuntimeError("provider exploded")))
    resp = client.post("/api/notes", json=NOTE, headers=auth_headers)
    assert resp.status_code == 201
    body = resp.json()
    assert body["generatedBy"] == "fallback"
    assert "AI Generation Failed" in body["note"]["content"]


def test_list_get_and_delete(client, auth_headers):
    created = client.post("/api/notes", json=NOTE, headers=auth_headers).json()["note"]

    listing = client.get("/api/notes", headers=auth_headers)
    assert listing.status_code == 200
    assert [n["id"] for n in listing.json()["notes"]] == [created["id"]]

    by_path = client.get(f"/api/notes/{created['id']}", headers=auth_headers)
    assert by_path.status_code == 200
    assert by_path.json()["note"]["title"] == "Photosynthesis"

    by_query = client.get("/api/notes", params={"id": created["id"]}, headers=auth_headers)
    assert by_query.status_code == 200
    assert by_query.json()["note"]["id"] == created["id"]

    deleted = client.delete(f"/api/notes/{created['id']}", headers=auth_headers)
    assert deleted.status_code == 200
    assert deleted.json() == {"message": "Note deleted successfully", "deleted": True}

    assert client.get(f"/api/notes/{created['id']}", headers=auth_headers).status_code == 404


def test_notes_are_owner_scoped(client, auth_headers, headers_for):
    created = client.post("/api/notes", json=NOTE, headers=auth_headers).json()["note"]
    other = headers_for("intruder_9")

    assert client.get("/api/notes", headers=other).json()["notes"] == []
    assert client.get(f"/api/notes/{created['id']}", headers=other).status_code == 404

    resp = client.delete(f"/api/notes/{created['id']}", headers=other)
    assert resp.status_code == 403
    assert resp.json()["error"] == "Not authorized to delete this note"


def test_delete_unknown_note_is_404(client, auth_headers):
    resp = client.delete("/api/notes/does-not-exist", headers=auth_headers)
    assert resp.status_code == 404
    assert resp.json()["error"] == "Note not found"


def test_reads_with_store_down_are_partial(make_client, auth_headers):
    client = make_client(DownStore())

    listing = client.get("/api/notes", headers=auth_headers)
    assert listing.status_code == 207
    assert listing.json()["notes"] == []
    assert listing.json()["demo"] is True

    single = client.get("/api/notes/abc", headers=auth_headers)
    assert single.status_code == 207
    assert single.json()["note"] is None

    deleted = client.delete("/api/notes/abc", headers=auth_headers)
    assert deleted.status_code == 207
    assert deleted.json()["deleted"] is False


@pytest.mark.asyncio
async def test_create_note_over_asgi_transport(test_settings, store, auth_headers):
    app = create_app(settings_obj=test_settings, store=store, provider=FakeProvider(content="Async notes"))
    transport = ASGITransport(app=app)

    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        res = await ac.post("/api/notes", json=NOTE, headers=auth_headers)

        assert res.status_code == 201
        assert res.json()["note"]["content"] == "Async notes"


def test_unconfigured_provider_saves_demo_content(make_client, auth_headers, store):
    provider = FakeProvider(error=ProviderNotConfiguredError("GROQ_API_KEY is not set"))
    client = make_client(store, provider)

    resp = client.post("/api/notes", json=NOTE, headers=auth_headers)
    assert resp.status_code == 201
    body = resp.json()
    assert body["generatedBy"] == "fallback"
    assert body["saved"] is True
    note = body["note"]
    assert "Demo Content" in note["content"]
    assert store.find_record(ContentKind.NOTE, note["id"], "user_123") is not None


def test_repeated_reads_return_the_same_body(client, auth_headers):
    client.post("/api/notes", json=NOTE, headers=auth_headers)

    first = client.get("/api/notes", headers=auth_headers)
    second = client.get("/api/notes", headers=auth_headers)
    assert first.status_code == second.status_code == 200
    assert first.json() == second.json()


def test_repeated_reads_with_store_down_return_the_same_body(make_client, auth_headers):
    client = make_client(DownStore())

    first = client.get("/api/notes", headers=auth_headers)
    second = client.get("/api/notes", headers=auth_headers)
    assert first.status_code == second.status_code == 207
    assert first.json() == second.json()


def test_malformed_body_without_credentials_is_401(client):
    resp = client.post("/api/notes", content=b"{not json", headers={"Content-Type": "application/json"})
    assert resp.status_code == 401
    assert resp.json()["code"] == "unauthenticated"


def test_malformed_body_with_credentials_is_400(client, auth_headers):
    resp = client.post(
        "/api/notes",
        content=b"{not json",
        headers={**auth_headers, "Content-Type": "application/json"},
    )
    assert resp.status_code == 400
    body = resp.json()
    assert body["code"] == "validation_error"
    assert body["details"][0]["loc"][0] == "body"


def test_late_write_lands_after_partial_response(make_client, auth_headers, store):
    client = make_client(SlowWriteStore(store, delay=1.0))

    resp = client.post("/api/notes", json=NOTE, headers=auth_headers)
    assert resp.status_code == 207
    body = resp.json()
    assert body["reason"] == "failed_on_write"
    assert body["note"]["id"].startswith("demo-")

    # The abandoned insert still commits once the slow store returns.
    time.sleep(1.5)
    saved = store.list_records(ContentKind.NOTE, "user_123")
    assert len(saved) == 1
    assert saved[0].id != body["note"]["id"]


@pytest.mark.asyncio
async def test_slow_token_validation_does_not_block_other_requests(test_settings, store, auth_headers):
    app = create_app(settings_obj=test_settings, store=store, identity=SlowIdentity(delay=1.0))
    transport = ASGITransport(app=app)

    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        started = time.perf_counter()
        health_elapsed = []

        async def check_health():
            await asyncio.sleep(0.05)
            res = await ac.get("/healthz")
            health_elapsed.append(time.perf_counter() - started)
            return res

        auth_res, health_res = await asyncio.gather(
            ac.post("/api/notes", json=NOTE, headers=auth_headers),
            check_health(),
        )

    assert auth_res.status_code == 503
    assert health_res.status_code == 200
    assert health_elapsed[0] < 0.5
