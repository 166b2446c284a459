"""Tests for /api/practice."""

import pytest

from studyforge.tests.mocks import DownStore, FakeProvider

PAPER = {
    "title": "Algebra drill",
    "subject": "math",
    "topic": "Algebra",
    "difficulty": "medium",
    "questions": 5,
    "prompt": "",
    "userId": "user_123",
}


def test_create_practice_paper(client, auth_headers, provider):
    resp = client.post("/api/practice", json=PAPER, headers=auth_headers)
    assert resp.status_code == 200
    body = resp.json()
    assert body["saved"] is True
    practice = body["practice"]
    assert practice["difficulty"] == "medium"
    assert practice["content"] == provider.content

    params = provider.calls[0]
    assert "exactly 5 questions" in params.prompt
    assert params.max_tokens == 2000


def test_custom_prompt_replaces_template(client, auth_headers, provider):
    resp = client.post(
        "/api/practice",
        json={**PAPER, "prompt": "Ten quadratic equations, no word problems"},
        headers=auth_headers,
    )
    assert resp.status_code == 200
    assert provider.calls[0].prompt == "Ten quadratic equations, no word problems"


@pytest.mark.parametrize("questions", [0, 16])
def test_question_count_is_bounded(client, auth_headers, questions):
    resp = client.post("/api/practice", json={**PAPER, "questions": questions}, headers=auth_headers)
    assert resp.status_code == 400
    assert resp.json()["code"] == "validation_error"


def test_user_id_is_required(client, auth_headers):
    payload = {k: v for k, v in PAPER.items() if k != "userId"}
    resp = client.post("/api/practice", json=payload, headers=auth_headers)
    assert resp.status_code == 400


def test_store_down_returns_unsaved_paper(make_client, auth_headers):
    client = make_client(DownStore(), FakeProvider(content="<h1>Paper</h1>"))
    resp = client.post("/api/practice", json=PAPER, headers=auth_headers)
    assert resp.status_code == 207
    body = resp.json()
    assert body["content"] == "<h1>Paper</h1>"
    assert body["message"] == "Practice paper generated but not saved to database"
    assert body["practice"]["id"].startswith("demo-")


def test_fallback_paper_is_labelled(make_client, auth_headers, store):
    client = make_client(store, FakeProvider(error=TimeoutError("slow")))
    resp = client.post("/api/practice", json=PAPER, headers=auth_headers)
    content = resp.json()["practice"]["content"]
    assert "Algebra drill (AI Generation Failed)" in content
    assert "<strong>Questions requested:</strong> 5" in content


def test_list_is_newest_first(client, auth_headers):
    first = client.post("/api/practice", json={**PAPER, "title": "First"}, headers=auth_headers).json()
    second = client.post("/api/practice", json={**PAPER, "title": "Second"}, headers=auth_headers).json()

    resp = client.get("/api/practice/list", headers=auth_headers)
    assert resp.status_code == 200
    ids = [p["id"] for p in resp.json()["practices"]]
    assert ids == [second["practice"]["id"], first["practice"]["id"]]


def test_list_with_store_down_shows_samples(make_client, auth_headers):
    client = make_client(DownStore())
    resp = client.get("/api/practice/list", headers=auth_headers)
    assert resp.status_code == 207
    body = resp.json()
    assert [p["id"] for p in body["practices"]] == ["demo-2", "demo-1"]
    assert all(p["userId"] == "user_123" for p in body["practices"])
    assert body["demo"] is True


def test_get_and_delete_paper(client, auth_headers, headers_for):
    paper = client.post("/api/practice", json=PAPER, headers=auth_headers).json()["practice"]

    assert client.get(f"/api/practice/{paper['id']}", headers=auth_headers).status_code == 200
    assert client.delete(f"/api/practice/{paper['id']}", headers=headers_for("other_user")).status_code == 403

    resp = client.delete(f"/api/practice/{paper['id']}", headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json()["message"] == "Practice paper deleted successfully"
    assert client.get(f"/api/practice/{paper['id']}", headers=auth_headers).status_code == 404
