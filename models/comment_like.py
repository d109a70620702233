# -*- coding: utf-8 -*-
from extensions.database import db
from .mixins import TimestampMixin, COMMON_TABLE_ARGS


class CommentLike(TimestampMixin, db.Model):
    __tablename__ = "comment_like"
    __table_args__ = (
        db.UniqueConstraint("comment_id", "fingerprint", name="uq_like_comment_fingerprint"),
        COMMON_TABLE_ARGS,
    )

    id = db.Column(db.Integer, primary_key=True)
    comment_id = db.Column(db.Integer, db.ForeignKey("comment.id", ondelete="CASCADE"), nullable=False, index=True)
    fingerprint = db.Column(db.String(64), nullable=False)

    comment = db.relationship("Comment", back_populates="like_items")
