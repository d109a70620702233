# repositories/comment_repository.py
from datetime import datetime
from typing import Optional, List, Tuple, Dict, Iterable
from sqlalchemy import select, update, func, desc, asc, case, and_, or_
from extensions.database import db
from models.comment import Comment, REDACTED_CONTENT, REDACTED_AUTHOR
from constants.moderation import (
    CommentStatus,
    PRIORITY_RANK,
    QUEUE_STATUSES,
    RISK_PRIORITY_BANDS,
    ReportPriority,
)
from repositories.report_repository import ReportRepository

SORTABLE_FIELDS = {
    "created_at": Comment.created_at,
    "likes": Comment.likes,
}

# newest first within every sort; the priority sort prepends the computed rank
QUEUE_ORDERS = {
    "recent": (Comment.created_at, Comment.id),
    "reports": (Comment.reports, Comment.created_at, Comment.id),
    "priority": (Comment.reports, Comment.created_at, Comment.id),
}


class CommentRepository:
    @staticmethod
    def create(**fields) -> Comment:
        comment = Comment(**fields)
        db.session.add(comment)
        db.session.flush()
        return comment

    @staticmethod
    def get_by_id(comment_id: int) -> Optional[Comment]:
        return db.session.get(Comment, comment_id)

    @staticmethod
    def reload(comment_id: int) -> Optional[Comment]:
        stmt = select(Comment).where(Comment.id == comment_id).execution_options(populate_existing=True)
        return db.session.execute(stmt).scalar_one_or_none()

    @staticmethod
    def has_replies(comment_id: int) -> bool:
        stmt = select(func.count(Comment.id)).where(Comment.parent_id == comment_id)
        return (db.session.execute(stmt).scalar() or 0) > 0

    @staticmethod
    def update_content(
        comment: Comment,
        content: str,
        flags: dict,
        risk_score: int,
        status: str,
        now: datetime,
    ) -> Comment:
        comment.content = content
        comment.has_profanity = flags["has_profanity"]
        comment.is_spam = flags["is_spam"]
        comment.is_suspicious = flags["is_suspicious"]
        comment.contains_links = flags["contains_links"]
        comment.risk_score = risk_score
        if status != comment.status:
            comment.status = status
            comment.increment_version()
        comment.is_edited = True
        comment.edited_at = now
        db.session.flush()
        return comment

    @staticmethod
    def increment_reports(comment_id: int, flag_threshold: int, now: datetime) -> int:
        """Add one report and flip approved -> flagged once the threshold is reached.

        One UPDATE statement; the status expression is evaluated against the
        pre-increment counter.
        """
        new_count = Comment.reports + 1
        stmt = (
            update(Comment)
            .where(Comment.id == comment_id)
            .ordered_values(
                (Comment.version, case(
                    (and_(Comment.status == CommentStatus.APPROVED.value, new_count >= flag_threshold),
                     Comment.version + 1),
                    else_=Comment.version,
                )),
                (Comment.status, case(
                    (and_(Comment.status == CommentStatus.APPROVED.value, new_count >= flag_threshold),
                     CommentStatus.FLAGGED.value),
                    else_=Comment.status,
                )),
                (Comment.reports, new_count),
                (Comment.updated_at, now),
            )
            .execution_options(synchronize_session=False)
        )
        return db.session.execute(stmt).rowcount

    @staticmethod
    def apply_moderation(
        comment_ids: Iterable[int],
        status: str,
        moderator: str,
        reason: Optional[str],
        now: datetime,
    ) -> int:
        """Move comments to ``status``; redacted comments are left untouched."""
        ids = list(comment_ids)
        if not ids:
            return 0
        stmt = (
            update(Comment)
            .where(Comment.id.in_(ids), Comment.is_redacted == False)  # noqa: E712
            .values(
                status=status,
                moderated_by=moderator,
                moderated_at=now,
                moderation_reason=reason,
                version=Comment.version + 1,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        return db.session.execute(stmt).rowcount

    @staticmethod
    def increment_likes(comment_id: int, now: datetime) -> int:
        stmt = (
            update(Comment)
            .where(Comment.id == comment_id)
            .values(likes=Comment.likes + 1, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        return db.session.execute(stmt).rowcount

    @staticmethod
    def redact(comment: Comment, now: datetime) -> Comment:
        comment.content = REDACTED_CONTENT
        comment.author_name = REDACTED_AUTHOR
        comment.author_email = None
        comment.status = CommentStatus.REJECTED.value
        comment.is_redacted = True
        comment.moderation_reason = "deleted by author"
        comment.moderated_at = now
        comment.increment_version()
        db.session.flush()
        return comment

    @staticmethod
    def delete(comment: Comment):
        db.session.delete(comment)
        db.session.flush()

    @staticmethod
    def list_top_level(
        post_id: str,
        status: Optional[str] = CommentStatus.APPROVED.value,
        page: int = 1,
        limit: int = 20,
        sort: str = "created_at",
        order_desc: bool = True,
    ) -> Tuple[List[Comment], int]:
        conditions = [Comment.post_id == post_id, Comment.parent_id.is_(None)]
        if status:
            conditions.append(Comment.status == status)
        count_stmt = select(func.count(Comment.id)).where(*conditions)
        column = SORTABLE_FIELDS.get(sort, Comment.created_at)
        stmt = (
            select(Comment)
            .where(*conditions)
            .order_by(desc(column) if order_desc else asc(column), desc(Comment.id))
            .offset((page - 1) * limit)
            .limit(limit)
        )
        total = db.session.execute(count_stmt).scalar() or 0
        items = db.session.execute(stmt).scalars().all()
        return items, total

    @staticmethod
    def list_replies(parent_ids: List[int], status: Optional[str] = CommentStatus.APPROVED.value) -> List[Comment]:
        if not parent_ids:
            return []
        stmt = select(Comment).where(Comment.parent_id.in_(parent_ids))
        if status:
            stmt = stmt.where(Comment.status == status)
        stmt = stmt.order_by(asc(Comment.created_at), asc(Comment.id))
        return db.session.execute(stmt).scalars().all()

    @staticmethod
    def count_by_status(post_id: Optional[str] = None) -> Dict[str, int]:
        stmt = select(Comment.status, func.count(Comment.id)).group_by(Comment.status)
        if post_id is not None:
            stmt = stmt.where(Comment.post_id == post_id)
        counts = {s: 0 for s in CommentStatus.values()}
        for status, n in db.session.execute(stmt).all():
            counts[status] = n
        return counts

    @staticmethod
    def totals_for_post(post_id: str) -> Tuple[int, int]:
        stmt = select(
            func.coalesce(func.sum(Comment.likes), 0),
            func.coalesce(func.sum(Comment.reports), 0),
        ).where(Comment.post_id == post_id)
        likes, reports = db.session.execute(stmt).one()
        return int(likes), int(reports)

    @staticmethod
    def _queue_membership():
        """Comments needing attention: pending/flagged, or approved with reports and not yet moderated."""
        return and_(
            or_(
                Comment.status.in_(QUEUE_STATUSES),
                and_(
                    Comment.status == CommentStatus.APPROVED.value,
                    Comment.reports > 0,
                    Comment.moderated_by.is_(None),
                ),
            ),
            Comment.is_redacted == False,  # noqa: E712
        )

    @staticmethod
    def queue_page(
        status: Optional[str] = None,
        priority_rank: Optional[int] = None,
        sort: str = "recent",
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[Tuple[Comment, int, int]], int]:
        """One page of the moderation queue as (comment, open reports, worst open report rank) rows."""
        open_q = ReportRepository.open_summary_subquery()
        open_reports = func.coalesce(open_q.c.open_reports, 0)
        report_rank = func.coalesce(open_q.c.priority_rank, 0)
        risk_rank = case(
            *[
                (or_(Comment.risk_score >= min_score, open_reports >= min_reports), PRIORITY_RANK[name])
                for min_score, min_reports, name in RISK_PRIORITY_BANDS
            ],
            else_=PRIORITY_RANK[ReportPriority.LOW.value],
        )
        rank = case((report_rank > risk_rank, report_rank), else_=risk_rank)

        stmt = (
            select(Comment, open_reports.label("open_reports"), report_rank.label("report_rank"))
            .outerjoin(open_q, open_q.c.comment_id == Comment.id)
            .where(CommentRepository._queue_membership())
        )
        if status:
            stmt = stmt.where(Comment.status == status)
        if priority_rank is not None:
            stmt = stmt.where(rank == priority_rank)

        total = db.session.execute(select(func.count()).select_from(stmt.subquery())).scalar() or 0

        order = QUEUE_ORDERS[sort]
        if sort == "priority":
            order = (rank,) + order
        stmt = stmt.order_by(*[desc(col) for col in order]).offset((page - 1) * limit).limit(limit)
        rows = [(c, int(n), int(r)) for c, n, r in db.session.execute(stmt).all()]
        return rows, total

    @staticmethod
    def count_queue() -> int:
        stmt = select(func.count(Comment.id)).where(CommentRepository._queue_membership())
        return db.session.execute(stmt).scalar() or 0

    @staticmethod
    def commit():
        db.session.commit()

    @staticmethod
    def rollback():
        db.session.rollback()
