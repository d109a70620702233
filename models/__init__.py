# -*- coding: utf-8 -*-
"""
__init__.py
--------------------------------------------------------------------
Imports every model in one place so that:
- Flask-Migrate/Alembic detects all tables.
- Callers can write: from models import Comment, Report
"""

from .mixins import TimestampMixin, VersionMixin
from .comment import Comment, REDACTED_CONTENT, REDACTED_AUTHOR
from .report import Report
from .comment_like import CommentLike

__all__ = [
    "TimestampMixin", "VersionMixin",
    "Comment", "REDACTED_CONTENT", "REDACTED_AUTHOR",
    "Report", "CommentLike",
]
