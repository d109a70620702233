# services/moderation_queue_service.py
"""Moderation queue.

The queue is not stored anywhere: membership is derived from each comment's
stored status, report counter and moderation stamp (pending or flagged, or
approved with reports and no moderator decision yet), then joined with its
open reports. Queue priority is the higher of the worst open report priority
and a priority derived from the comment's risk score and open report count.
Filtering, sorting and paging run in SQL; the page is then labelled here.
"""

from typing import Optional, Tuple, List

from constants.moderation import (
    CommentStatus,
    PRIORITY_RANK,
    RISK_PRIORITY_BANDS,
    ReportPriority,
    validate_report_priority,
)
from repositories.comment_repository import CommentRepository
from utils.exceptions import ValidationError

QUEUE_FILTER_STATUSES = (
    CommentStatus.PENDING.value,
    CommentStatus.FLAGGED.value,
    CommentStatus.APPROVED.value,
)
QUEUE_SORTS = ("recent", "reports", "priority")

_RANK_NAMES = {rank: name for name, rank in PRIORITY_RANK.items()}


def risk_priority(risk_score: int, open_reports: int) -> str:
    for min_score, min_reports, priority in RISK_PRIORITY_BANDS:
        if risk_score >= min_score or open_reports >= min_reports:
            return priority
    return ReportPriority.LOW.value


def queue_priority(risk_score: int, open_reports: int, report_rank: int = 0) -> str:
    rank = max(PRIORITY_RANK[risk_priority(risk_score, open_reports)], report_rank)
    return _RANK_NAMES[rank]


class ModerationQueueService:

    @staticmethod
    def list(
        status: Optional[str] = None,
        priority: Optional[str] = None,
        sort: str = "recent",
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[dict], int]:
        if status and status not in QUEUE_FILTER_STATUSES:
            raise ValidationError(f"status must be one of {list(QUEUE_FILTER_STATUSES)}")
        if priority:
            validate_report_priority(priority)
        if sort not in QUEUE_SORTS:
            raise ValidationError(f"sort must be one of {list(QUEUE_SORTS)}")

        rows, total = CommentRepository.queue_page(
            status=status,
            priority_rank=PRIORITY_RANK[priority] if priority else None,
            sort=sort,
            page=page,
            limit=limit,
        )
        items = [
            {
                "comment": comment.to_dict(include_moderation=True),
                "open_reports": open_reports,
                "priority": queue_priority(comment.risk_score, open_reports, report_rank),
            }
            for comment, open_reports, report_rank in rows
        ]
        return items, total

    @staticmethod
    def size() -> int:
        return CommentRepository.count_queue()
