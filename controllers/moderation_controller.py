# controllers/moderation_controller.py
from flask import Blueprint, current_app, request
from utils.response import json_response
from utils.validators import parse_id_list, parse_pagination, require_object
from constants.moderation import ReportAction
from services.moderation_service import ModerationService
from services.moderation_queue_service import ModerationQueueService
from services.report_service import ReportService
from controllers.auth_helpers import current_identity, moderator_required


moderation_bp = Blueprint("moderation", __name__, url_prefix="/api/moderation")


@moderation_bp.get("/queue")
@moderator_required()
def moderation_queue():
    args = request.args
    page, limit = parse_pagination(args)
    items, total = ModerationQueueService.list(
        status=args.get("status") or None,
        priority=args.get("priority") or None,
        sort=args.get("sort", "recent"),
        page=page,
        limit=limit,
    )
    return json_response(data={"items": items, "total": total, "page": page, "limit": limit})


@moderation_bp.post("/comments/<int:comment_id>/<action>")
@moderator_required()
def moderate_comment(comment_id: int, action: str):
    data = request.get_json(silent=True) or {}
    comment = ModerationService.moderate(comment_id, action, current_identity(), reason=data.get("reason"))
    return json_response(message=f"Comment {comment.status}", data=comment.to_dict(include_moderation=True))


@moderation_bp.post("/comments/bulk")
@moderator_required()
def bulk_moderate():
    data = require_object(request.get_json(silent=True))
    ids = parse_id_list(data.get("comment_ids"), current_app.config["BULK_MODERATION_LIMIT"])
    result = ModerationService.bulk_moderate(ids, data.get("action"), current_identity(), reason=data.get("reason"))
    return json_response(message="Bulk moderation applied", data=result)


@moderation_bp.get("/reports")
@moderator_required()
def list_reports():
    args = request.args
    page, limit = parse_pagination(args)
    items, total = ReportService.list(
        status=args.get("status") or None,
        priority=args.get("priority") or None,
        reason=args.get("reason") or None,
        comment_id=args.get("comment_id", type=int),
        page=page,
        limit=limit,
    )
    return json_response(
        data={"items": [r.to_dict() for r in items], "total": total, "page": page, "limit": limit}
    )


@moderation_bp.put("/reports/<int:report_id>")
@moderator_required()
def review_report(report_id: int):
    data = require_object(request.get_json(silent=True))
    report = ReportService.review(
        report_id,
        status=data.get("status"),
        moderator=current_identity(),
        notes=data.get("notes"),
        action_taken=data.get("action_taken") or ReportAction.NONE.value,
    )
    return json_response(message=f"Report {report.status}", data=report.to_dict())


@moderation_bp.get("/stats")
@moderator_required()
def moderation_stats():
    return json_response(data=ModerationService.stats())
