# services/moderation_service.py
import logging
from datetime import datetime
from typing import Optional

from flask import current_app

from constants.moderation import ModeratorAction, validate_moderator_action
from models.comment import Comment
from repositories.comment_repository import CommentRepository
from repositories.report_repository import ReportRepository
from services.comment_service import CommentService
from services.identity_service import IdentityContext
from services.moderation_decision import ModerationDecisionEngine
from services.moderation_queue_service import ModerationQueueService
from services.report_service import ReportService
from utils.datetime_helpers import utcnow, to_naive_utc
from utils.exceptions import TerminalStateError, ValidationError

logger = logging.getLogger(__name__)

# actions that settle the open reports on a comment
_REVIEWING_ACTIONS = (ModeratorAction.APPROVE.value, ModeratorAction.REJECT.value)


def _now(now: Optional[datetime]) -> datetime:
    return to_naive_utc(now) if now is not None else utcnow()


def _clean_reason(reason: Optional[str]) -> Optional[str]:
    if reason is None:
        return None
    if not isinstance(reason, str):
        raise ValidationError("reason must be a string")
    reason = reason.strip()
    if len(reason) > 500:
        raise ValidationError("reason must be at most 500 characters")
    return reason or None


class ModerationService:

    @staticmethod
    def moderate(
        comment_id: int,
        action: str,
        moderator: IdentityContext,
        reason: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Comment:
        now = _now(now)
        reason = _clean_reason(reason)
        comment = CommentService.get_or_404(comment_id)
        target = ModerationDecisionEngine.target_status(action, comment.is_redacted, comment.id)
        prior = comment.status

        updated = CommentRepository.apply_moderation([comment.id], target, moderator.display, reason, now)
        if not updated:
            CommentRepository.rollback()
            raise TerminalStateError(
                "Comment has been deleted and can no longer be moderated", error_code="COMMENT_REDACTED"
            )
        if action in _REVIEWING_ACTIONS:
            ReportRepository.mark_reviewed_for_comments([comment.id], moderator.display, now)
        CommentRepository.commit()
        logger.info("comment %s %s -> %s by %s", comment.id, prior, target, moderator.display)
        return CommentRepository.reload(comment.id)

    @staticmethod
    def bulk_moderate(
        comment_ids: list[int],
        action: str,
        moderator: IdentityContext,
        reason: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> dict:
        now = _now(now)
        validate_moderator_action(action)
        reason = _clean_reason(reason)
        limit = current_app.config["BULK_MODERATION_LIMIT"]
        if not comment_ids:
            raise ValidationError("comment_ids must be a non-empty list")
        if len(comment_ids) > limit:
            raise ValidationError(f"At most {limit} comments can be moderated at once")

        target = ModerationDecisionEngine.target_status(action)
        modified = CommentRepository.apply_moderation(comment_ids, target, moderator.display, reason, now)
        if action in _REVIEWING_ACTIONS:
            ReportRepository.mark_reviewed_for_comments(comment_ids, moderator.display, now)
        CommentRepository.commit()
        logger.info("bulk %s on %d comments by %s: %d modified", action, len(comment_ids), moderator.display, modified)
        return {"requested": len(comment_ids), "modified": modified, "status": target}

    @staticmethod
    def stats() -> dict:
        counts = CommentRepository.count_by_status()
        return {
            "comments": {"total": sum(counts.values()), "by_status": counts},
            "reports": ReportService.summary(),
            "queue_size": ModerationQueueService.size(),
        }
