# -*- coding: utf-8 -*-
"""constants/moderation.py
--------------------------------------------------------------------
Enumerations shared by the comment moderation pipeline.

- Comment status follows pending / approved / rejected / flagged / hidden.
- Report reason is a closed set; anything else is a validation error.
- values() and validate_* helpers keep service-layer checks short.
"""

from enum import Enum
from typing import Iterable

from utils.exceptions import ValidationError


class CommentStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    FLAGGED = "flagged"
    HIDDEN = "hidden"

    @classmethod
    def values(cls) -> list[str]:
        return [m.value for m in cls]


# statuses that put a comment in front of a moderator
QUEUE_STATUSES = (CommentStatus.PENDING.value, CommentStatus.FLAGGED.value)


class ModeratorAction(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"
    HIDE = "hide"
    FLAG = "flag"

    @classmethod
    def values(cls) -> list[str]:
        return [m.value for m in cls]


ACTION_TARGET_STATUS = {
    ModeratorAction.APPROVE.value: CommentStatus.APPROVED.value,
    ModeratorAction.REJECT.value: CommentStatus.REJECTED.value,
    ModeratorAction.HIDE.value: CommentStatus.HIDDEN.value,
    ModeratorAction.FLAG.value: CommentStatus.FLAGGED.value,
}


class TrustLevel(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    TRUSTED = "trusted"

    @classmethod
    def values(cls) -> list[str]:
        return [m.value for m in cls]


class ReportReason(str, Enum):
    SPAM = "spam"
    HARASSMENT = "harassment"
    HATE_SPEECH = "hate_speech"
    VIOLENCE = "violence"
    MISINFORMATION = "misinformation"
    COPYRIGHT = "copyright"
    INAPPROPRIATE = "inappropriate"
    OTHER = "other"

    @classmethod
    def values(cls) -> list[str]:
        return [m.value for m in cls]


class ReportStatus(str, Enum):
    PENDING = "pending"
    REVIEWED = "reviewed"
    RESOLVED = "resolved"
    DISMISSED = "dismissed"

    @classmethod
    def values(cls) -> list[str]:
        return [m.value for m in cls]


OPEN_REPORT_STATUSES = (ReportStatus.PENDING.value, ReportStatus.REVIEWED.value)
TERMINAL_REPORT_STATUSES = (ReportStatus.RESOLVED.value, ReportStatus.DISMISSED.value)


class ReportPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @classmethod
    def values(cls) -> list[str]:
        return [m.value for m in cls]


PRIORITY_RANK = {
    ReportPriority.LOW.value: 0,
    ReportPriority.MEDIUM.value: 1,
    ReportPriority.HIGH.value: 2,
    ReportPriority.CRITICAL.value: 3,
}

# queue priority from a comment's own risk: (minimum risk score, minimum open reports, priority)
RISK_PRIORITY_BANDS = (
    (70, 5, ReportPriority.CRITICAL.value),
    (50, 3, ReportPriority.HIGH.value),
    (30, 1, ReportPriority.MEDIUM.value),
)


class ReportAction(str, Enum):
    NONE = "none"
    COMMENT_REMOVED = "comment_removed"
    COMMENT_FLAGGED = "comment_flagged"
    USER_WARNED = "user_warned"
    USER_BANNED = "user_banned"

    @classmethod
    def values(cls) -> list[str]:
        return [m.value for m in cls]


def _validate_choice(value: str, allowed: Iterable[str], label: str):
    allowed = list(allowed)
    if value not in allowed:
        raise ValidationError(f"{label} must be one of {allowed}")


def validate_comment_status(status: str):
    _validate_choice(status, CommentStatus.values(), "status")


def validate_moderator_action(action: str):
    _validate_choice(action, ModeratorAction.values(), "action")


def validate_report_reason(reason: str):
    _validate_choice(reason, ReportReason.values(), "reason")


def validate_report_status(status: str):
    _validate_choice(status, ReportStatus.values(), "status")


def validate_report_priority(priority: str):
    _validate_choice(priority, ReportPriority.values(), "priority")


def validate_report_action(action: str):
    _validate_choice(action, ReportAction.values(), "action_taken")
