# -*- coding: utf-8 -*-
from datetime import timedelta

import pytest
from redis.exceptions import RedisError

from extensions.database import db
from models import Comment, Report
from repositories.ban_repository import BanRepository
from services.comment_service import CommentService
from services.report_service import ReportService, priority_for
from utils.exceptions import (
    BizError,
    DuplicateReportError,
    RateLimitedError,
    TerminalStateError,
    ValidationError,
)


@pytest.fixture()
def approved_comment(app, make_identity, base_time):
    def _make(content="Thanks for sharing this thoughtful article about gardening"):
        comment, _ = CommentService.create(
            "post-1",
            {"content": content, "author_name": "Reader", "author_email": None, "parent_id": None},
            make_identity(),
            now=base_time,
        )
        assert comment.status == "approved"
        return comment
    return _make


@pytest.mark.parametrize(
    "reason, existing, expected",
    [
        ("violence", 0, "critical"),
        ("hate_speech", 5, "critical"),
        ("harassment", 0, "high"),
        ("spam", 3, "high"),
        ("inappropriate", 0, "medium"),
        ("misinformation", 2, "medium"),
        ("spam", 2, "low"),
        ("other", 0, "low"),
    ],
)
def test_priority_for(reason, existing, expected):
    assert priority_for(reason, existing) == expected


def test_duplicate_report_keeps_count(app, approved_comment, make_identity, base_time):
    comment = approved_comment()
    reporter = make_identity()
    ReportService.submit(comment.id, "spam", None, reporter, now=base_time)
    with pytest.raises(DuplicateReportError) as exc:
        ReportService.submit(comment.id, "other", "again", reporter, now=base_time)
    assert exc.value.code == 409
    assert db.session.get(Comment, comment.id).reports == 1
    assert Report.query.count() == 1


def test_threshold_flags_comment(app, approved_comment, make_identity, base_time):
    comment = approved_comment()
    for i in range(2):
        _, current = ReportService.submit(comment.id, "spam", None, make_identity(), now=base_time)
        assert current.status == "approved"
        assert current.reports == i + 1

    _, current = ReportService.submit(comment.id, "spam", None, make_identity(), now=base_time)
    assert current.reports == 3
    assert current.status == "flagged"
    assert current.version == 2

    _, current = ReportService.submit(comment.id, "harassment", None, make_identity(), now=base_time)
    assert current.reports == 4
    assert current.status == "flagged"


def test_reports_do_not_flag_pending_comment(app, make_identity, base_time):
    comment, _ = CommentService.create(
        "post-1",
        {"content": "what a great deal", "author_name": "Reader", "author_email": None, "parent_id": None},
        make_identity(),
        now=base_time,
    )
    assert comment.status == "pending"
    for _ in range(3):
        _, current = ReportService.submit(comment.id, "spam", None, make_identity(), now=base_time)
    assert current.status == "pending"
    assert current.reports == 3


def test_third_report_escalates_open_reports(app, approved_comment, make_identity, base_time):
    comment = approved_comment()
    first, _ = ReportService.submit(comment.id, "spam", None, make_identity(), now=base_time)
    second, _ = ReportService.submit(comment.id, "inappropriate", None, make_identity(), now=base_time)
    assert first.priority == "low"
    assert second.priority == "medium"

    third, _ = ReportService.submit(comment.id, "other", None, make_identity(), now=base_time)
    assert third.priority == "high"
    priorities = {r.priority for r in Report.query.filter_by(comment_id=comment.id)}
    assert priorities == {"high"}

    fourth, _ = ReportService.submit(comment.id, "violence", None, make_identity(), now=base_time)
    assert fourth.priority == "critical"


def test_report_rate_limit(app, approved_comment, make_identity, base_time):
    reporter = make_identity()
    comments = [approved_comment(f"Comment number {i} about the garden") for i in range(6)]
    for comment in comments[:5]:
        ReportService.submit(comment.id, "spam", None, reporter, now=base_time)
    with pytest.raises(RateLimitedError) as exc:
        ReportService.submit(comments[5].id, "spam", None, reporter, now=base_time)
    assert exc.value.error_code == "REPORT_RATE_LIMIT_EXCEEDED"
    assert exc.value.data["retry_after"] > 0
    assert db.session.get(Comment, comments[5].id).reports == 0


def test_unknown_reason_is_rejected(app, approved_comment, make_identity):
    comment = approved_comment()
    with pytest.raises(ValidationError):
        ReportService.submit(comment.id, "boring", None, make_identity())


def test_redacted_comment_cannot_be_reported(app, make_identity, base_time):
    author = make_identity()
    payload = {"content": "a parent comment here", "author_name": "Reader", "author_email": None, "parent_id": None}
    parent, _ = CommentService.create("post-1", payload, author, now=base_time)
    CommentService.create("post-1", dict(payload, content="a reply", parent_id=parent.id), make_identity(), now=base_time)
    CommentService.delete(parent.id, author, now=base_time)

    with pytest.raises(TerminalStateError) as exc:
        ReportService.submit(parent.id, "spam", None, make_identity(), now=base_time)
    assert exc.value.error_code == "COMMENT_REDACTED"


def test_closed_report_cannot_be_reviewed_again(app, approved_comment, make_identity, moderator, base_time):
    comment = approved_comment()
    report, _ = ReportService.submit(comment.id, "spam", None, make_identity(), now=base_time)

    reviewed = ReportService.review(report.id, "reviewed", moderator, now=base_time)
    assert reviewed.status == "reviewed"
    resolved = ReportService.review(report.id, "resolved", moderator, notes="checked", now=base_time + timedelta(minutes=1))
    assert resolved.status == "resolved"
    assert resolved.reviewed_by == "mod-1"
    assert resolved.review_notes == "checked"

    with pytest.raises(TerminalStateError) as exc:
        ReportService.review(report.id, "dismissed", moderator, now=base_time + timedelta(minutes=2))
    assert exc.value.error_code == "REPORT_ALREADY_CLOSED"
    assert ReportService.get_or_404(report.id).status == "resolved"


def test_review_rejects_pending_status(app, approved_comment, make_identity, moderator):
    comment = approved_comment()
    report, _ = ReportService.submit(comment.id, "spam", None, make_identity())
    with pytest.raises(ValidationError):
        ReportService.review(report.id, "pending", moderator)


def test_review_actions_update_comment(app, approved_comment, make_identity, moderator, base_time):
    removed = approved_comment("first comment to be removed")
    report, _ = ReportService.submit(removed.id, "spam", None, make_identity(), now=base_time)
    ReportService.review(report.id, "resolved", moderator, action_taken="comment_removed", now=base_time)
    stored = db.session.get(Comment, removed.id)
    assert stored.status == "rejected"
    assert stored.moderated_by == "mod-1"

    flagged = approved_comment("second comment to be flagged")
    report, _ = ReportService.submit(flagged.id, "spam", None, make_identity(), now=base_time)
    ReportService.review(report.id, "resolved", moderator, action_taken="comment_flagged", now=base_time)
    assert db.session.get(Comment, flagged.id).status == "flagged"


def test_review_can_ban_author(app, approved_comment, make_identity, moderator, base_time):
    comment = approved_comment()
    report, _ = ReportService.submit(comment.id, "harassment", None, make_identity(), now=base_time)
    reviewed = ReportService.review(report.id, "resolved", moderator, action_taken="user_banned", now=base_time)
    assert reviewed.action_taken == "user_banned"
    assert BanRepository.is_banned(comment.author_fingerprint)


def test_failed_ban_leaves_report_open_for_retry(app, approved_comment, make_identity, moderator, base_time, fake_redis, monkeypatch):
    comment = approved_comment()
    report, _ = ReportService.submit(comment.id, "harassment", None, make_identity(), now=base_time)

    real_set = fake_redis.set
    outage = {"down": True}

    def _set(key, value):
        if outage["down"]:
            raise RedisError("connection refused")
        return real_set(key, value)

    monkeypatch.setattr(fake_redis, "set", _set)
    with pytest.raises(BizError) as exc:
        ReportService.review(report.id, "resolved", moderator, action_taken="user_banned", now=base_time)
    assert exc.value.code == 503
    assert exc.value.error_code == "BAN_UNAVAILABLE"
    stored = db.session.get(Report, report.id)
    assert stored.status == "pending"
    assert stored.action_taken != "user_banned"
    assert not BanRepository.is_banned(comment.author_fingerprint)

    outage["down"] = False
    reviewed = ReportService.review(report.id, "resolved", moderator, action_taken="user_banned", now=base_time)
    assert reviewed.status == "resolved"
    assert BanRepository.is_banned(comment.author_fingerprint)


def test_list_orders_by_priority_and_summary(app, approved_comment, make_identity, base_time):
    comment = approved_comment()
    ReportService.submit(comment.id, "spam", None, make_identity(), now=base_time)
    ReportService.submit(comment.id, "violence", None, make_identity(), now=base_time + timedelta(seconds=1))

    items, total = ReportService.list()
    assert total == 2
    assert [r.priority for r in items] == ["critical", "low"]

    items, total = ReportService.list(reason="spam")
    assert total == 1

    summary = ReportService.summary()
    assert summary["total"] == 2
    assert summary["by_status"]["pending"] == 2
    assert summary["by_reason"] == {"spam": 1, "violence": 1}
    assert summary["high_priority_open"] == 1
