# repositories/report_repository.py
from datetime import datetime
from typing import Optional, List, Tuple, Iterable
from sqlalchemy import select, update, func, desc, case
from extensions.database import db
from models.report import Report
from constants.moderation import (
    ReportStatus,
    ReportPriority,
    OPEN_REPORT_STATUSES,
    TERMINAL_REPORT_STATUSES,
    PRIORITY_RANK,
)

_PRIORITY_ORDER = case(
    *[(Report.priority == name, rank) for name, rank in PRIORITY_RANK.items()],
    else_=0,
)


class ReportRepository:
    @staticmethod
    def create(
        comment_id: int,
        reporter_fingerprint: str,
        reason: str,
        description: Optional[str],
        priority: str,
        reporter_ip: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Report:
        report = Report(
            comment_id=comment_id,
            reporter_fingerprint=reporter_fingerprint,
            reporter_ip=reporter_ip,
            reason=reason,
            description=description,
            priority=priority,
            status=ReportStatus.PENDING.value,
        )
        if now is not None:
            report.created_at = now
            report.updated_at = now
        db.session.add(report)
        db.session.flush()
        return report

    @staticmethod
    def get_by_id(report_id: int) -> Optional[Report]:
        return db.session.get(Report, report_id)

    @staticmethod
    def reload(report_id: int) -> Optional[Report]:
        stmt = select(Report).where(Report.id == report_id).execution_options(populate_existing=True)
        return db.session.execute(stmt).scalar_one_or_none()

    @staticmethod
    def find_by_comment_and_reporter(comment_id: int, reporter_fingerprint: str) -> Optional[Report]:
        stmt = select(Report).where(
            Report.comment_id == comment_id,
            Report.reporter_fingerprint == reporter_fingerprint,
        )
        return db.session.execute(stmt).scalar_one_or_none()

    @staticmethod
    def count_for_comment(comment_id: int) -> int:
        stmt = select(func.count(Report.id)).where(Report.comment_id == comment_id)
        return db.session.execute(stmt).scalar() or 0

    @staticmethod
    def escalate_pending(comment_id: int, from_priorities: Iterable[str], to_priority: str, now: datetime) -> int:
        stmt = (
            update(Report)
            .where(
                Report.comment_id == comment_id,
                Report.status == ReportStatus.PENDING.value,
                Report.priority.in_(list(from_priorities)),
            )
            .values(priority=to_priority, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        return db.session.execute(stmt).rowcount

    @staticmethod
    def review(
        report_id: int,
        status: str,
        moderator: str,
        notes: Optional[str],
        action_taken: str,
        now: datetime,
    ) -> int:
        """Compare-and-set: only a report that is still open can be reviewed."""
        stmt = (
            update(Report)
            .where(Report.id == report_id, Report.status.notin_(TERMINAL_REPORT_STATUSES))
            .values(
                status=status,
                reviewed_by=moderator,
                reviewed_at=now,
                review_notes=notes,
                action_taken=action_taken,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        return db.session.execute(stmt).rowcount

    @staticmethod
    def mark_reviewed_for_comments(comment_ids: Iterable[int], moderator: str, now: datetime) -> int:
        ids = list(comment_ids)
        if not ids:
            return 0
        stmt = (
            update(Report)
            .where(Report.comment_id.in_(ids), Report.status == ReportStatus.PENDING.value)
            .values(status=ReportStatus.REVIEWED.value, reviewed_by=moderator, reviewed_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        return db.session.execute(stmt).rowcount

    @staticmethod
    def list(
        status: Optional[str] = None,
        priority: Optional[str] = None,
        reason: Optional[str] = None,
        comment_id: Optional[int] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[Report], int]:
        conditions = []
        if status:
            conditions.append(Report.status == status)
        if priority:
            conditions.append(Report.priority == priority)
        if reason:
            conditions.append(Report.reason == reason)
        if comment_id:
            conditions.append(Report.comment_id == comment_id)
        stmt = select(Report)
        count_stmt = select(func.count(Report.id))
        if conditions:
            stmt = stmt.where(*conditions)
            count_stmt = count_stmt.where(*conditions)
        stmt = (
            stmt.order_by(desc(_PRIORITY_ORDER), desc(Report.created_at), desc(Report.id))
            .offset((page - 1) * limit)
            .limit(limit)
        )
        total = db.session.execute(count_stmt).scalar() or 0
        items = db.session.execute(stmt).scalars().all()
        return items, total

    @staticmethod
    def open_summary_subquery():
        """Per comment: number of open reports and the highest open priority rank."""
        return (
            select(
                Report.comment_id.label("comment_id"),
                func.count(Report.id).label("open_reports"),
                func.max(_PRIORITY_ORDER).label("priority_rank"),
            )
            .where(Report.status.in_(OPEN_REPORT_STATUSES))
            .group_by(Report.comment_id)
            .subquery()
        )

    @staticmethod
    def summary() -> dict:
        by_status = {s: 0 for s in ReportStatus.values()}
        for status, n in db.session.execute(
            select(Report.status, func.count(Report.id)).group_by(Report.status)
        ).all():
            by_status[status] = n
        by_reason = {
            reason: n
            for reason, n in db.session.execute(
                select(Report.reason, func.count(Report.id)).group_by(Report.reason)
            ).all()
        }
        high_priority = db.session.execute(
            select(func.count(Report.id)).where(
                Report.priority.in_([ReportPriority.HIGH.value, ReportPriority.CRITICAL.value]),
                Report.status.in_(OPEN_REPORT_STATUSES),
            )
        ).scalar() or 0
        return {
            "total": sum(by_status.values()),
            "by_status": by_status,
            "by_reason": by_reason,
            "high_priority_open": high_priority,
        }

    @staticmethod
    def commit():
        db.session.commit()

    @staticmethod
    def rollback():
        db.session.rollback()
