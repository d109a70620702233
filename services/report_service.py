# services/report_service.py
"""Report aggregation.

Submitting a report inserts one row per (comment, reporter fingerprint) and
bumps the comment's counter in the same transaction; when the counter reaches
``REPORT_FLAG_THRESHOLD`` an approved comment is flagged by that same UPDATE.
"""

import logging
from datetime import datetime
from typing import Optional, Tuple, List

from flask import current_app
from redis.exceptions import RedisError
from sqlalchemy.exc import IntegrityError

from constants.moderation import (
    CommentStatus,
    ReportAction,
    ReportPriority,
    ReportReason,
    ReportStatus,
    validate_report_action,
    validate_report_priority,
    validate_report_reason,
    validate_report_status,
)
from models.comment import Comment
from models.report import Report
from repositories.ban_repository import BanRepository
from repositories.comment_repository import CommentRepository
from repositories.report_repository import ReportRepository
from services.comment_service import CommentService
from services.identity_service import IdentityContext
from services.rate_limit_service import report_limiter
from utils.datetime_helpers import utcnow, to_naive_utc
from utils.exceptions import (
    BizError,
    DuplicateReportError,
    NotFoundError,
    TerminalStateError,
    ValidationError,
)

logger = logging.getLogger(__name__)

ESCALATION_REPORT_COUNT = 3

REVIEW_STATUSES = (
    ReportStatus.REVIEWED.value,
    ReportStatus.RESOLVED.value,
    ReportStatus.DISMISSED.value,
)

# report action -> comment status it forces
ACTION_COMMENT_STATUS = {
    ReportAction.COMMENT_REMOVED.value: CommentStatus.REJECTED.value,
    ReportAction.COMMENT_FLAGGED.value: CommentStatus.FLAGGED.value,
}


def priority_for(reason: str, existing_reports: int) -> str:
    if reason in (ReportReason.VIOLENCE.value, ReportReason.HATE_SPEECH.value):
        return ReportPriority.CRITICAL.value
    if reason == ReportReason.HARASSMENT.value or existing_reports >= ESCALATION_REPORT_COUNT:
        return ReportPriority.HIGH.value
    if reason in (ReportReason.INAPPROPRIATE.value, ReportReason.MISINFORMATION.value):
        return ReportPriority.MEDIUM.value
    return ReportPriority.LOW.value


def _now(now: Optional[datetime]) -> datetime:
    return to_naive_utc(now) if now is not None else utcnow()


class ReportService:

    @staticmethod
    def submit(
        comment_id: int,
        reason: str,
        description: Optional[str],
        identity: IdentityContext,
        now: Optional[datetime] = None,
    ) -> Tuple[Report, Comment]:
        cfg = current_app.config
        now = _now(now)
        validate_report_reason(reason)
        comment = CommentService.get_or_404(comment_id)
        if comment.is_redacted:
            raise TerminalStateError("Deleted comments cannot be reported", error_code="COMMENT_REDACTED")

        limiter = report_limiter(identity.fingerprint, cfg)
        limiter.ensure_not_limited()

        if ReportRepository.find_by_comment_and_reporter(comment.id, identity.fingerprint):
            raise DuplicateReportError("You have already reported this comment")

        existing = ReportRepository.count_for_comment(comment.id)
        prior_status = comment.status
        try:
            report = ReportRepository.create(
                comment_id=comment.id,
                reporter_fingerprint=identity.fingerprint,
                reporter_ip=identity.ip,
                reason=reason,
                description=description,
                priority=priority_for(reason, existing),
                now=now,
            )
        except IntegrityError:
            ReportRepository.rollback()
            raise DuplicateReportError("You have already reported this comment")

        CommentRepository.increment_reports(comment.id, cfg["REPORT_FLAG_THRESHOLD"], now)
        if existing + 1 >= ESCALATION_REPORT_COUNT:
            ReportRepository.escalate_pending(
                comment.id,
                (ReportPriority.LOW.value, ReportPriority.MEDIUM.value),
                ReportPriority.HIGH.value,
                now,
            )
        ReportRepository.commit()
        limiter.hit()

        comment = CommentRepository.reload(comment.id)
        report = ReportRepository.reload(report.id)
        if prior_status != comment.status:
            logger.warning(
                "comment %s reached %d reports, status %s -> %s",
                comment.id, comment.reports, prior_status, comment.status,
            )
        logger.info("report %s on comment %s (%s, %s)", report.id, comment.id, reason, report.priority)
        return report, comment

    @staticmethod
    def get_or_404(report_id: int) -> Report:
        report = ReportRepository.get_by_id(report_id)
        if not report:
            raise NotFoundError("Report not found", error_code="REPORT_NOT_FOUND")
        return report

    @staticmethod
    def review(
        report_id: int,
        status: str,
        moderator: IdentityContext,
        notes: Optional[str] = None,
        action_taken: str = ReportAction.NONE.value,
        now: Optional[datetime] = None,
    ) -> Report:
        """Review, resolve or dismiss an open report; closed reports are final."""
        now = _now(now)
        validate_report_status(status)
        if status not in REVIEW_STATUSES:
            raise ValidationError(f"status must be one of {list(REVIEW_STATUSES)}")
        validate_report_action(action_taken)
        if notes is not None and (not isinstance(notes, str) or len(notes) > 1000):
            raise ValidationError("notes must be a string of at most 1000 characters")

        report = ReportService.get_or_404(report_id)
        updated = ReportRepository.review(report.id, status, moderator.display, notes, action_taken, now)
        if not updated:
            ReportRepository.rollback()
            raise TerminalStateError(
                f"Report has already been {report.status}", error_code="REPORT_ALREADY_CLOSED"
            )

        target_status = ACTION_COMMENT_STATUS.get(action_taken)
        if target_status:
            CommentRepository.apply_moderation(
                [report.comment_id], target_status, moderator.display,
                f"report #{report.id}: {report.reason}", now,
            )

        # ban before the commit; a failed ban rolls the review back
        if action_taken == ReportAction.USER_BANNED.value:
            comment_id = report.comment_id
            comment = CommentRepository.get_by_id(comment_id)
            try:
                BanRepository.ban(comment.author_fingerprint, reason=f"report #{report.id}")
            except RedisError as e:
                ReportRepository.rollback()
                logger.error("failed to ban author of comment %s, report %s left open", comment_id, report_id, exc_info=True)
                raise BizError(
                    "Ban could not be applied, the report is still open", code=503, error_code="BAN_UNAVAILABLE"
                ) from e
            logger.warning("author of comment %s banned by %s", comment_id, moderator.display)
        ReportRepository.commit()

        logger.info("report %s %s by %s (action=%s)", report.id, status, moderator.display, action_taken)
        return ReportRepository.reload(report.id)

    @staticmethod
    def list(
        status: Optional[str] = None,
        priority: Optional[str] = None,
        reason: Optional[str] = None,
        comment_id: Optional[int] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[Report], int]:
        if status:
            validate_report_status(status)
        if priority:
            validate_report_priority(priority)
        if reason:
            validate_report_reason(reason)
        return ReportRepository.list(status, priority, reason, comment_id, page, limit)

    @staticmethod
    def summary() -> dict:
        return ReportRepository.summary()
