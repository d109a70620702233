# -*- coding: utf-8 -*-
import uuid

import pytest


def _ua():
    return {"User-Agent": f"pytest-{uuid.uuid4().hex[:8]}"}


@pytest.fixture()
def mod_headers(auth_headers):
    return auth_headers(role="moderator", subject="mod-7")


@pytest.fixture()
def new_comment(client, comment_payload):
    def _new(content="Thanks for sharing this thoughtful article about gardening"):
        resp = client.post("/api/posts/post-1/comments", json=comment_payload(content=content), headers=_ua())
        assert resp.status_code == 201
        return resp.get_json()["data"]
    return _new


@pytest.mark.parametrize(
    "method, url",
    [
        ("get", "/api/moderation/queue"),
        ("get", "/api/moderation/reports"),
        ("get", "/api/moderation/stats"),
        ("post", "/api/moderation/comments/1/approve"),
        ("post", "/api/moderation/comments/bulk"),
        ("put", "/api/moderation/reports/1"),
    ],
)
def test_moderation_requires_moderator(client, auth_headers, method, url):
    resp = getattr(client, method)(url, json={})
    assert resp.status_code == 401
    assert resp.get_json()["error_code"] == "UNAUTHORIZED"

    resp = getattr(client, method)(url, json={}, headers={"Authorization": "Bearer not.a.token"})
    assert resp.status_code == 401

    resp = getattr(client, method)(url, json={}, headers=auth_headers(role="user"))
    assert resp.status_code == 403
    assert resp.get_json()["error_code"] == "FORBIDDEN"


def test_queue_and_moderate(client, new_comment, mod_headers):
    pending = new_comment("what a great deal")
    new_comment()

    resp = client.get("/api/moderation/queue", headers=mod_headers)
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["total"] == 1
    entry = data["items"][0]
    assert entry["comment"]["id"] == pending["id"]
    assert entry["priority"] == "low"
    assert entry["open_reports"] == 0

    resp = client.post(
        f"/api/moderation/comments/{pending['id']}/approve",
        json={"reason": "looks fine"},
        headers=mod_headers,
    )
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["status"] == "approved"
    assert data["moderated_by"] == "mod-7"
    assert data["moderation_reason"] == "looks fine"

    resp = client.get("/api/moderation/queue", headers=mod_headers)
    assert resp.get_json()["data"]["total"] == 0


def test_queue_rejects_bad_filters(client, mod_headers):
    assert client.get("/api/moderation/queue?sort=oldest", headers=mod_headers).status_code == 400
    assert client.get("/api/moderation/queue?priority=urgent", headers=mod_headers).status_code == 400
    assert client.get("/api/moderation/queue?limit=101", headers=mod_headers).status_code == 400


def test_moderate_unknown_action_and_comment(client, new_comment, mod_headers):
    comment = new_comment()
    resp = client.post(f"/api/moderation/comments/{comment['id']}/publish", headers=mod_headers)
    assert resp.status_code == 400
    resp = client.post("/api/moderation/comments/9999/approve", headers=mod_headers)
    assert resp.status_code == 404


def test_bulk_moderation(client, new_comment, mod_headers):
    ids = [new_comment("what a great deal")["id"] for _ in range(3)]

    resp = client.post(
        "/api/moderation/comments/bulk",
        json={"comment_ids": ids, "action": "hide"},
        headers=mod_headers,
    )
    assert resp.status_code == 200
    assert resp.get_json()["data"] == {"requested": 3, "modified": 3, "status": "hidden"}

    resp = client.post(
        "/api/moderation/comments/bulk",
        json={"comment_ids": list(range(1, 52)), "action": "approve"},
        headers=mod_headers,
    )
    assert resp.status_code == 400

    for bad in ({"comment_ids": [], "action": "approve"}, {"comment_ids": ["1"], "action": "approve"},
                {"comment_ids": ids, "action": "erase"}):
        resp = client.post("/api/moderation/comments/bulk", json=bad, headers=mod_headers)
        assert resp.status_code == 400


def test_report_review(client, new_comment, mod_headers):
    comment = new_comment()
    resp = client.post(f"/api/comments/{comment['id']}/report", json={"reason": "harassment"}, headers=_ua())
    report_id = resp.get_json()["data"]["report"]["id"]

    resp = client.get("/api/moderation/reports?status=pending", headers=mod_headers)
    assert resp.status_code == 200
    items = resp.get_json()["data"]["items"]
    assert [r["id"] for r in items] == [report_id]
    assert items[0]["priority"] == "high"

    resp = client.put(
        f"/api/moderation/reports/{report_id}",
        json={"status": "resolved", "notes": "removed", "action_taken": "comment_removed"},
        headers=mod_headers,
    )
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["status"] == "resolved"
    assert data["reviewed_by"] == "mod-7"

    resp = client.get(f"/api/comments/{comment['id']}", headers=mod_headers)
    assert resp.get_json()["data"]["status"] == "rejected"

    resp = client.put(f"/api/moderation/reports/{report_id}", json={"status": "dismissed"}, headers=mod_headers)
    assert resp.status_code == 409
    assert resp.get_json()["error_code"] == "REPORT_ALREADY_CLOSED"

    resp = client.put(f"/api/moderation/reports/{report_id}", json={"status": "archived"}, headers=mod_headers)
    assert resp.status_code == 400
    assert client.put("/api/moderation/reports/9999", json={"status": "resolved"}, headers=mod_headers).status_code == 404


def test_banned_author_is_rejected(client, comment_payload, mod_headers, auth_headers):
    author = auth_headers(subject="troll-1")
    comment = client.post(
        "/api/posts/post-1/comments", json=comment_payload(), headers=author
    ).get_json()["data"]
    report = client.post(
        f"/api/comments/{comment['id']}/report", json={"reason": "harassment"}, headers=_ua()
    ).get_json()["data"]["report"]
    resp = client.put(
        f"/api/moderation/reports/{report['id']}",
        json={"status": "resolved", "action_taken": "user_banned"},
        headers=mod_headers,
    )
    assert resp.status_code == 200

    resp = client.post(
        "/api/posts/post-1/comments",
        json=comment_payload(content="I am back with a different opinion"),
        headers=auth_headers(subject="troll-1"),
    )
    assert resp.status_code == 201
    data = resp.get_json()["data"]
    assert data["status"] == "rejected"
    assert data["reason_code"] == "IDENTITY_BANNED"

    resp = client.post(
        "/api/posts/post-1/comments",
        json=comment_payload(content="and again right away"),
        headers=auth_headers(subject="troll-1"),
    )
    assert resp.status_code == 201
    assert resp.get_json()["data"]["reason_code"] == "IDENTITY_BANNED"


def test_moderation_stats(client, new_comment, mod_headers):
    new_comment()
    new_comment("what a great deal")
    resp = client.get("/api/moderation/stats", headers=mod_headers)
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["comments"]["total"] == 2
    assert data["queue_size"] == 1
    assert data["reports"]["total"] == 0
