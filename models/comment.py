# -*- coding: utf-8 -*-
"""
comment.py
--------------------------------------------------------------------
A comment attached to a post:
- post_id references the posts service; existence is checked remotely.
- parent_id builds threads; depth = parent.depth + 1, capped by config.
- Flag columns and risk_score are written by the moderation pipeline.
- A comment with replies is redacted instead of deleted (is_redacted).
"""

from extensions.database import db
from constants.moderation import CommentStatus
from utils.datetime_helpers import datetime_to_iso
from .mixins import TimestampMixin, VersionMixin, COMMON_TABLE_ARGS

REDACTED_CONTENT = "[This comment has been deleted]"
REDACTED_AUTHOR = "[Deleted]"


class Comment(TimestampMixin, VersionMixin, db.Model):
    __tablename__ = "comment"
    __table_args__ = (
        db.Index("ix_comment_post_status", "post_id", "status"),
        db.Index("ix_comment_parent", "parent_id"),
        db.Index("ix_comment_status_created", "status", "created_at"),
        COMMON_TABLE_ARGS,
    )

    id = db.Column(db.Integer, primary_key=True)
    post_id = db.Column(db.String(64), nullable=False, index=True)
    parent_id = db.Column(db.Integer, db.ForeignKey("comment.id", ondelete="CASCADE"))
    depth = db.Column(db.Integer, nullable=False, default=0, server_default="0")

    content = db.Column(db.Text, nullable=False)

    # author descriptor
    author_name = db.Column(db.String(64), nullable=False)
    author_email = db.Column(db.String(255))
    author_ip = db.Column(db.String(64))
    author_fingerprint = db.Column(db.String(64), nullable=False, index=True)
    author_user_id = db.Column(db.String(64))

    status = db.Column(db.String(16), nullable=False, default=CommentStatus.PENDING.value,
                       server_default=CommentStatus.PENDING.value)

    likes = db.Column(db.Integer, nullable=False, default=0, server_default="0")
    reports = db.Column(db.Integer, nullable=False, default=0, server_default="0")

    # flag set
    has_profanity = db.Column(db.Boolean, nullable=False, default=False, server_default="0")
    is_spam = db.Column(db.Boolean, nullable=False, default=False, server_default="0")
    is_suspicious = db.Column(db.Boolean, nullable=False, default=False, server_default="0")
    contains_links = db.Column(db.Boolean, nullable=False, default=False, server_default="0")
    risk_score = db.Column(db.Integer, nullable=False, default=0, server_default="0")

    # moderation audit
    moderated_by = db.Column(db.String(64))
    moderated_at = db.Column(db.DateTime)
    moderation_reason = db.Column(db.String(500))

    # edits
    is_edited = db.Column(db.Boolean, nullable=False, default=False, server_default="0")
    edited_at = db.Column(db.DateTime)
    edit_deadline = db.Column(db.DateTime, nullable=False)

    is_redacted = db.Column(db.Boolean, nullable=False, default=False, server_default="0")

    replies = db.relationship(
        "Comment",
        backref=db.backref("parent", remote_side=[id]),
        order_by="Comment.created_at",
        lazy="select",
    )
    report_items = db.relationship(
        "Report", back_populates="comment", cascade="all, delete-orphan"
    )
    like_items = db.relationship(
        "CommentLike", back_populates="comment", cascade="all, delete-orphan"
    )

    def flags(self) -> dict:
        return {
            "has_profanity": bool(self.has_profanity),
            "is_spam": bool(self.is_spam),
            "is_suspicious": bool(self.is_suspicious),
            "contains_links": bool(self.contains_links),
        }

    def to_dict(self, include_moderation: bool = False) -> dict:
        data = {
            "id": self.id,
            "post_id": self.post_id,
            "parent_id": self.parent_id,
            "depth": self.depth,
            "content": self.content,
            "author_name": self.author_name,
            "status": self.status,
            "likes": self.likes,
            "reports": self.reports,
            "flags": self.flags(),
            "is_edited": bool(self.is_edited),
            "edited_at": datetime_to_iso(self.edited_at),
            "edit_deadline": datetime_to_iso(self.edit_deadline),
            "is_redacted": bool(self.is_redacted),
            "created_at": datetime_to_iso(self.created_at),
            "updated_at": datetime_to_iso(self.updated_at),
        }
        if include_moderation:
            data.update({
                "author_email": self.author_email,
                "author_ip": self.author_ip,
                "author_fingerprint": self.author_fingerprint,
                "risk_score": self.risk_score,
                "moderated_by": self.moderated_by,
                "moderated_at": datetime_to_iso(self.moderated_at),
                "moderation_reason": self.moderation_reason,
                "version": self.version,
            })
        return data
