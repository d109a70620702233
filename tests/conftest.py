# -*- coding: utf-8 -*-
import time
import uuid
from datetime import datetime
from typing import Optional

import pytest
import requests

import extensions.redis_client as redis_client
from app import create_app
from extensions.database import db
from extensions.jwt import create_token
from services.identity_service import IdentityContext


class FakeRedis:
    """In-memory stand-in for the handful of redis commands the service uses."""

    def __init__(self):
        self._data = {}
        self._expiry = {}

    def _alive(self, key):
        exp = self._expiry.get(key)
        if exp is not None and exp <= time.time():
            self._data.pop(key, None)
            self._expiry.pop(key, None)
        return key in self._data

    def get(self, key):
        return self._data.get(key) if self._alive(key) else None

    def set(self, key, value):
        self._data[key] = str(value)
        self._expiry.pop(key, None)
        return True

    def setex(self, key, ttl, value):
        self._data[key] = str(value)
        self._expiry[key] = time.time() + ttl
        return True

    def incr(self, key):
        value = int(self.get(key) or 0) + 1
        self._data[key] = str(value)
        return value

    def expire(self, key, seconds):
        if self._alive(key):
            self._expiry[key] = time.time() + seconds
            return True
        return False

    def ttl(self, key):
        if not self._alive(key):
            return -2
        exp = self._expiry.get(key)
        return -1 if exp is None else max(0, int(round(exp - time.time())))

    def exists(self, key):
        return 1 if self._alive(key) else 0

    def delete(self, key):
        self._expiry.pop(key, None)
        return 1 if self._data.pop(key, None) is not None else 0


class FakePostsResponse:
    def __init__(self, status_code: int):
        self.status_code = status_code


MISSING_POST_ID = "missing-post"


@pytest.fixture()
def fake_redis(monkeypatch):
    fake = FakeRedis()
    monkeypatch.setattr(redis_client, "_redis_client", fake)
    return fake


@pytest.fixture(autouse=True)
def posts_service(monkeypatch):
    """Posts service double: every post exists except MISSING_POST_ID."""

    def _get(url, timeout=None, **kwargs):
        return FakePostsResponse(404 if url.endswith(f"/{MISSING_POST_ID}") else 200)

    monkeypatch.setattr(requests, "get", _get)
    return _get


@pytest.fixture()
def app(fake_redis):
    """Flask app on an in-memory database."""

    app = create_app("testing")
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def tracker(app):
    return app.extensions["behavior_tracker"]


@pytest.fixture()
def make_identity():
    def _make(
        trust_level: str = "normal",
        is_banned: bool = False,
        is_new: bool = False,
        role: str = "user",
        user_id: Optional[str] = None,
    ) -> IdentityContext:
        return IdentityContext(
            fingerprint=uuid.uuid4().hex,
            trust_level=trust_level,
            is_banned=is_banned,
            is_new=is_new,
            user_id=user_id,
            role=role,
            ip="203.0.113.7",
        )
    return _make


@pytest.fixture()
def moderator(make_identity):
    return make_identity(role="moderator", user_id="mod-1")


@pytest.fixture()
def make_token(app):
    def _make(role="user", trust_level="normal", subject=None, **claims):
        return create_token(subject or uuid.uuid4().hex[:8], role=role, trust_level=trust_level, **claims)
    return _make


@pytest.fixture()
def auth_headers(make_token):
    def _headers(role="user", trust_level="normal", subject=None, **claims):
        token = make_token(role=role, trust_level=trust_level, subject=subject, **claims)
        return {"Authorization": f"Bearer {token}"}
    return _headers


@pytest.fixture()
def base_time():
    return datetime(2026, 3, 1, 12, 0, 0)


@pytest.fixture()
def comment_payload():
    def _payload(content="Thanks for sharing this thoughtful article about gardening", **extra):
        data = {"content": content, "author_name": "Reader", "author_email": "reader@example.com"}
        data.update(extra)
        return data
    return _payload
