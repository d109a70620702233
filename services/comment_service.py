# services/comment_service.py
import logging
from datetime import datetime, timedelta
from typing import Optional, Tuple, List

from flask import current_app
from sqlalchemy.exc import IntegrityError

from constants.moderation import CommentStatus
from models.comment import Comment
from repositories.comment_repository import CommentRepository
from repositories.like_repository import LikeRepository
from services.identity_service import IdentityContext
from services.moderation_decision import Decision
from services.moderation_pipeline import get_pipeline
from services.post_client import PostClient
from services.rate_limit_service import comment_limiter
from utils.datetime_helpers import utcnow, to_epoch, to_naive_utc
from utils.exceptions import (
    AlreadyLikedError,
    BizError,
    DepthExceededError,
    EditWindowExpiredError,
    NotFoundError,
    PolicyRejection,
    RateLimitedError,
    TerminalStateError,
    ValidationError,
)

logger = logging.getLogger(__name__)


def _now(now: Optional[datetime]) -> datetime:
    return to_naive_utc(now) if now is not None else utcnow()


class CommentService:

    @staticmethod
    def get_or_404(comment_id: int) -> Comment:
        comment = CommentRepository.get_by_id(comment_id)
        if not comment:
            raise NotFoundError("Comment not found", error_code="COMMENT_NOT_FOUND")
        return comment

    @staticmethod
    def _resolve_parent(post_id: str, parent_id: Optional[int]) -> Tuple[Optional[Comment], int]:
        if parent_id is None:
            return None, 0
        parent = CommentRepository.get_by_id(parent_id)
        if not parent:
            raise NotFoundError("Parent comment not found", error_code="PARENT_COMMENT_NOT_FOUND")
        if parent.post_id != post_id:
            raise ValidationError("Parent comment belongs to a different post", error_code="PARENT_POST_MISMATCH")
        max_depth = current_app.config["MAX_COMMENT_DEPTH"]
        if parent.depth >= max_depth:
            raise DepthExceededError(f"Maximum comment depth of {max_depth} reached")
        return parent, parent.depth + 1

    @staticmethod
    def create(
        post_id: str,
        payload: dict,
        identity: IdentityContext,
        now: Optional[datetime] = None,
    ) -> Tuple[Comment, Decision]:
        """
        Validate, check collaborators and rate limits, run moderation, persist.
        A policy rejection is still stored (status rejected) and returned.
        """
        cfg = current_app.config
        now = _now(now)
        parent, depth = CommentService._resolve_parent(post_id, payload.get("parent_id"))
        PostClient.ensure_exists(post_id)

        pipeline = get_pipeline()
        # banned identities skip the limits so every attempt is stored as IDENTITY_BANNED
        limiter = None if identity.is_banned else comment_limiter(identity.fingerprint, cfg)
        if limiter is not None:
            try:
                limiter.ensure_not_limited()
            except RateLimitedError:
                pipeline.tracker.record_violation(identity.fingerprint, to_epoch(now))
                raise

        result = pipeline.evaluate_submission(payload["content"], identity, to_epoch(now))
        if limiter is not None:
            limiter.hit()

        assessment = result.assessment
        comment = CommentRepository.create(
            post_id=post_id,
            parent_id=parent.id if parent else None,
            depth=depth,
            content=result.content.text,
            author_name=payload["author_name"],
            author_email=payload.get("author_email"),
            author_ip=identity.ip,
            author_fingerprint=identity.fingerprint,
            author_user_id=identity.user_id,
            status=result.decision.status,
            has_profanity=assessment.has_profanity,
            is_spam=assessment.is_spam,
            is_suspicious=assessment.is_suspicious,
            contains_links=assessment.contains_links,
            risk_score=assessment.score,
            moderation_reason=None if result.decision.status == CommentStatus.APPROVED.value
            else result.decision.reason_code,
            edit_deadline=now + timedelta(hours=cfg["EDIT_WINDOW_HOURS"]),
            created_at=now,
            updated_at=now,
        )
        CommentRepository.commit()
        logger.info(
            "comment %s on post %s stored as %s (score=%d)",
            comment.id, post_id, comment.status, comment.risk_score,
        )
        return comment, result.decision

    @staticmethod
    def _ensure_author(comment: Comment, identity: IdentityContext):
        if comment.author_fingerprint != identity.fingerprint:
            raise BizError("Only the author can change this comment", code=403, error_code="NOT_COMMENT_AUTHOR")

    @staticmethod
    def edit(comment_id: int, content: str, identity: IdentityContext, now: Optional[datetime] = None) -> Tuple[Comment, Decision]:
        now = _now(now)
        comment = CommentService.get_or_404(comment_id)
        if comment.is_redacted:
            raise TerminalStateError("Deleted comments cannot be edited", error_code="COMMENT_REDACTED")
        CommentService._ensure_author(comment, identity)
        if identity.is_banned:
            raise PolicyRejection("Identity is banned", error_code="IDENTITY_BANNED")
        if not now < comment.edit_deadline:
            raise EditWindowExpiredError("The edit window for this comment has expired")

        result = get_pipeline().evaluate_edit(content, identity, comment.status, comment.flags())
        prior = comment.status
        CommentRepository.update_content(
            comment,
            content=result.content.text,
            flags=result.assessment.flags(),
            risk_score=result.assessment.score,
            status=result.decision.status,
            now=now,
        )
        if prior != comment.status:
            comment.moderation_reason = result.decision.reason_code
        CommentRepository.commit()
        logger.info("comment %s edited, status %s -> %s", comment.id, prior, comment.status)
        return comment, result.decision

    @staticmethod
    def delete(comment_id: int, identity: IdentityContext, now: Optional[datetime] = None) -> dict:
        """Leaf comments are removed; comments with replies are redacted in place."""
        now = _now(now)
        comment = CommentService.get_or_404(comment_id)
        if not identity.is_moderator:
            CommentService._ensure_author(comment, identity)
        if comment.is_redacted:
            raise TerminalStateError("Comment has already been deleted", error_code="COMMENT_REDACTED")

        if CommentRepository.has_replies(comment.id):
            CommentRepository.redact(comment, now)
            CommentRepository.commit()
            logger.info("comment %s redacted (has replies)", comment_id)
            return {"id": comment_id, "deleted": False, "redacted": True}

        CommentRepository.delete(comment)
        CommentRepository.commit()
        logger.info("comment %s deleted", comment_id)
        return {"id": comment_id, "deleted": True, "redacted": False}

    @staticmethod
    def like(comment_id: int, identity: IdentityContext, now: Optional[datetime] = None) -> Comment:
        now = _now(now)
        comment = CommentService.get_or_404(comment_id)
        if comment.is_redacted or comment.status != CommentStatus.APPROVED.value:
            raise NotFoundError("Comment not found", error_code="COMMENT_NOT_FOUND")
        if LikeRepository.find(comment.id, identity.fingerprint):
            raise AlreadyLikedError("You have already liked this comment")
        try:
            LikeRepository.create(comment.id, identity.fingerprint)
            CommentRepository.increment_likes(comment.id, now)
            CommentRepository.commit()
        except IntegrityError:
            CommentRepository.rollback()
            raise AlreadyLikedError("You have already liked this comment")
        return CommentRepository.reload(comment.id)

    @staticmethod
    def get_visible(comment_id: int, identity: IdentityContext) -> Comment:
        comment = CommentService.get_or_404(comment_id)
        if comment.status != CommentStatus.APPROVED.value and not identity.is_moderator:
            raise NotFoundError("Comment not found", error_code="COMMENT_NOT_FOUND")
        return comment

    @staticmethod
    def list_threaded(
        post_id: str,
        page: int = 1,
        limit: int = 20,
        sort: str = "created_at",
        order_desc: bool = True,
        status: Optional[str] = CommentStatus.APPROVED.value,
    ) -> Tuple[List[dict], int]:
        """Top-level comments for a page, each with its reply tree."""
        roots, total = CommentRepository.list_top_level(post_id, status, page, limit, sort, order_desc)
        nodes = {c.id: dict(c.to_dict(), replies=[]) for c in roots}
        frontier = list(nodes)
        for _ in range(current_app.config["MAX_COMMENT_DEPTH"]):
            replies = CommentRepository.list_replies(frontier, status)
            if not replies:
                break
            frontier = []
            for reply in replies:
                node = dict(reply.to_dict(), replies=[])
                nodes[reply.id] = node
                nodes[reply.parent_id]["replies"].append(node)
                frontier.append(reply.id)
        return [nodes[c.id] for c in roots], total

    @staticmethod
    def stats(post_id: str) -> dict:
        counts = CommentRepository.count_by_status(post_id)
        likes, reports = CommentRepository.totals_for_post(post_id)
        return {
            "post_id": post_id,
            "total": sum(counts.values()),
            "by_status": counts,
            "total_likes": likes,
            "total_reports": reports,
        }
