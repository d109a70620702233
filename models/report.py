# -*- coding: utf-8 -*-
"""
report.py
--------------------------------------------------------------------
One reporter's claim against one comment.
- (comment_id, reporter_fingerprint) is unique; a second report is a conflict.
- resolved / dismissed are terminal and carry the reviewing moderator.
"""

from extensions.database import db
from constants.moderation import ReportStatus, ReportPriority, ReportAction
from utils.datetime_helpers import datetime_to_iso
from .mixins import TimestampMixin, COMMON_TABLE_ARGS


class Report(TimestampMixin, db.Model):
    __tablename__ = "comment_report"
    __table_args__ = (
        db.UniqueConstraint("comment_id", "reporter_fingerprint", name="uq_report_comment_reporter"),
        db.Index("ix_report_status_priority", "status", "priority"),
        COMMON_TABLE_ARGS,
    )

    id = db.Column(db.Integer, primary_key=True)
    comment_id = db.Column(db.Integer, db.ForeignKey("comment.id", ondelete="CASCADE"), nullable=False, index=True)
    reporter_fingerprint = db.Column(db.String(64), nullable=False)
    reporter_ip = db.Column(db.String(64))

    reason = db.Column(db.String(32), nullable=False)
    description = db.Column(db.String(500))

    status = db.Column(db.String(16), nullable=False, default=ReportStatus.PENDING.value,
                       server_default=ReportStatus.PENDING.value)
    priority = db.Column(db.String(16), nullable=False, default=ReportPriority.LOW.value,
                         server_default=ReportPriority.LOW.value)

    reviewed_by = db.Column(db.String(64))
    reviewed_at = db.Column(db.DateTime)
    review_notes = db.Column(db.String(1000))
    action_taken = db.Column(db.String(32), nullable=False, default=ReportAction.NONE.value,
                             server_default=ReportAction.NONE.value)

    comment = db.relationship("Comment", back_populates="report_items")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "comment_id": self.comment_id,
            "reason": self.reason,
            "description": self.description,
            "status": self.status,
            "priority": self.priority,
            "reviewed_by": self.reviewed_by,
            "reviewed_at": datetime_to_iso(self.reviewed_at),
            "review_notes": self.review_notes,
            "action_taken": self.action_taken,
            "created_at": datetime_to_iso(self.created_at),
        }
