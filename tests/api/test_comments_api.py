# -*- coding: utf-8 -*-
"""HTTP-level checks for the public comment endpoints."""

import uuid

import pytest

CLEAN_TEXT = "Thanks for sharing this thoughtful article about gardening"


def _ua():
    return {"User-Agent": f"pytest-{uuid.uuid4().hex[:8]}"}


@pytest.fixture()
def post(client, comment_payload):
    def _post(post_id="post-1", headers=None, **fields):
        return client.post(
            f"/api/posts/{post_id}/comments",
            json=comment_payload(**fields),
            headers=headers or _ua(),
        )
    return _post


def test_create_comment(post):
    resp = post()
    assert resp.status_code == 201
    body = resp.get_json()
    assert body["code"] == 201
    assert body["message"] == "Comment created"
    data = body["data"]
    assert data["status"] == "approved"
    assert data["requires_moderation"] is False
    assert data["reason_code"] == "CLEAN"
    assert data["depth"] == 0
    assert "author_email" not in data
    assert "author_fingerprint" not in data


def test_create_comment_needing_moderation(post):
    resp = post(content="what a great deal")
    assert resp.status_code == 201
    data = resp.get_json()["data"]
    assert data["status"] == "pending"
    assert data["requires_moderation"] is True
    assert resp.get_json()["message"] == "Comment submitted and awaiting moderation"


@pytest.mark.parametrize(
    "fields",
    [
        {"content": ""},
        {"content": "x" * 1001},
        {"author_name": ""},
        {"author_name": "n" * 51},
        {"author_email": "not-an-email"},
        {"parent_id": "abc"},
        {"parent_id": -1},
    ],
)
def test_create_comment_validation(post, fields):
    resp = post(**fields)
    assert resp.status_code == 400
    assert resp.get_json()["error_code"] == "VALIDATION_ERROR"


def test_create_comment_requires_json_object(client):
    resp = client.post("/api/posts/post-1/comments", data="nope", headers=_ua())
    assert resp.status_code == 400
    assert resp.get_json()["error_code"] == "VALIDATION_ERROR"


def test_invalid_post_id(post):
    resp = post(post_id="bad!id")
    assert resp.status_code == 400


def test_missing_post(post):
    resp = post(post_id="missing-post")
    assert resp.status_code == 404
    assert resp.get_json()["error_code"] == "POST_NOT_FOUND"


def test_reply_depth_limit(post):
    parent_id = None
    for _ in range(4):
        resp = post(parent_id=parent_id)
        assert resp.status_code == 201
        parent_id = resp.get_json()["data"]["id"]
    resp = post(parent_id=parent_id)
    assert resp.status_code == 400
    assert resp.get_json()["error_code"] == "MAX_DEPTH_EXCEEDED"


def test_burst_is_rate_limited(post):
    headers = _ua()
    assert post(headers=headers).status_code == 201
    resp = post(headers=headers, content="and another quick thought")
    assert resp.status_code == 429
    body = resp.get_json()
    assert body["error_code"] == "SPAM_PREVENTION"
    assert body["data"]["retry_after"] >= 1


def test_listing_is_threaded_and_hides_pending(client, post):
    root = post().get_json()["data"]
    post(parent_id=root["id"], content="a reply to the root")
    post(content="what a great deal")

    resp = client.get("/api/posts/post-1/comments")
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["total"] == 1
    assert data["pages"] == 1
    assert data["items"][0]["id"] == root["id"]
    assert data["items"][0]["replies"][0]["content"] == "a reply to the root"

    resp = client.get("/api/posts/post-1/comments?status=pending")
    assert resp.get_json()["data"]["total"] == 1

    assert client.get("/api/posts/post-1/comments?limit=0").status_code == 400
    assert client.get("/api/posts/post-1/comments?sort=author").status_code == 400


def test_pending_comment_visible_to_moderators_only(client, post, auth_headers):
    pending = post(content="what a great deal").get_json()["data"]
    assert client.get(f"/api/comments/{pending['id']}").status_code == 404

    resp = client.get(f"/api/comments/{pending['id']}", headers=auth_headers(role="moderator"))
    assert resp.status_code == 200
    assert resp.get_json()["data"]["risk_score"] == 5


def test_edit_by_author_and_stranger(client, post):
    headers = _ua()
    comment = post(headers=headers).get_json()["data"]

    resp = client.put(f"/api/comments/{comment['id']}", json={"content": "Edited <b>text</b> here"}, headers=headers)
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["content"] == "Edited text here"
    assert data["is_edited"] is True
    assert data["reason_code"] == "UNCHANGED"

    resp = client.put(f"/api/comments/{comment['id']}", json={"content": "hijacked"}, headers=_ua())
    assert resp.status_code == 403
    assert resp.get_json()["error_code"] == "NOT_COMMENT_AUTHOR"


def test_authenticated_author_edits_across_clients(client, post, make_token):
    token = make_token(subject="user-5")
    comment = post(headers={"Authorization": f"Bearer {token}", "User-Agent": "phone"}).get_json()["data"]
    resp = client.put(
        f"/api/comments/{comment['id']}",
        json={"content": "edited from the laptop"},
        headers={"Authorization": f"Bearer {token}", "User-Agent": "laptop"},
    )
    assert resp.status_code == 200


def test_like_once(client, post):
    comment = post().get_json()["data"]
    headers = _ua()
    resp = client.post(f"/api/comments/{comment['id']}/like", headers=headers)
    assert resp.status_code == 200
    assert resp.get_json()["data"]["likes"] == 1
    resp = client.post(f"/api/comments/{comment['id']}/like", headers=headers)
    assert resp.status_code == 409
    assert resp.get_json()["error_code"] == "ALREADY_LIKED"


def test_report_flow(client, post):
    comment = post().get_json()["data"]
    headers = _ua()
    url = f"/api/comments/{comment['id']}/report"

    resp = client.post(url, json={"reason": "Spam", "description": "  link farm  "}, headers=headers)
    assert resp.status_code == 201
    data = resp.get_json()["data"]
    assert data["report"]["reason"] == "spam"
    assert data["report"]["description"] == "link farm"
    assert data["comment"]["reports"] == 1

    resp = client.post(url, json={"reason": "spam"}, headers=headers)
    assert resp.status_code == 409
    assert resp.get_json()["error_code"] == "ALREADY_REPORTED"

    assert client.post(url, json={"reason": "meh"}, headers=_ua()).status_code == 400
    assert client.post(url, json={}, headers=_ua()).status_code == 400
    assert client.post("/api/comments/9999/report", json={"reason": "spam"}, headers=_ua()).status_code == 404

    for _ in range(2):
        resp = client.post(url, json={"reason": "spam"}, headers=_ua())
    assert resp.get_json()["data"]["comment"]["status"] == "flagged"


def test_delete_by_author(client, post):
    headers = _ua()
    comment = post(headers=headers).get_json()["data"]
    assert client.delete(f"/api/comments/{comment['id']}", headers=_ua()).status_code == 403
    resp = client.delete(f"/api/comments/{comment['id']}", headers=headers)
    assert resp.status_code == 200
    assert resp.get_json()["data"]["deleted"] is True
    assert client.get(f"/api/comments/{comment['id']}").status_code == 404


def test_stats(client, post):
    post()
    post(content="what a great deal")
    resp = client.get("/api/posts/post-1/comments/stats")
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["total"] == 2
    assert data["by_status"]["approved"] == 1
    assert data["by_status"]["pending"] == 1


def test_health_and_request_id(client, post):
    post()
    resp = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert resp.status_code == 200
    assert resp.headers["X-Request-ID"] == "req-123"
    assert resp.get_json()["data"]["tracked_identities"] == 1


def test_unknown_route_is_json_404(client):
    resp = client.get("/api/nothing-here")
    assert resp.status_code == 404
    assert resp.get_json()["message"] == "Not found"
