# models/mixins.py
from sqlalchemy import func, DateTime
from extensions.database import db
from utils.datetime_helpers import utcnow

COMMON_TABLE_ARGS = {
    "mysql_engine": "InnoDB",
    "mysql_charset": "utf8mb4",
    "mysql_collate": "utf8mb4_unicode_ci",
}


class TimestampMixin:
    created_at = db.Column(DateTime, nullable=False, default=utcnow, server_default=func.now(), index=True)
    updated_at = db.Column(DateTime, nullable=False, default=utcnow, server_default=func.now(), onupdate=utcnow, index=True)


class VersionMixin:
    """Row version, bumped on every status transition."""
    version = db.Column(
        db.Integer,
        nullable=False,
        default=1,
        server_default="1",
    )

    def increment_version(self):
        self.version = (self.version or 0) + 1
