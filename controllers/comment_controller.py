# controllers/comment_controller.py
from flask import Blueprint, current_app, request
from utils.response import json_response
from utils.validators import (
    parse_order,
    parse_pagination,
    validate_comment_payload,
    validate_edit_payload,
    validate_post_id,
    validate_report_payload,
)
from constants.moderation import CommentStatus, validate_comment_status
from services.comment_service import CommentService
from services.report_service import ReportService
from controllers.auth_helpers import current_identity, identity_required


comment_bp = Blueprint("comment", __name__, url_prefix="/api")


def _comment_body(comment, decision=None):
    identity = current_identity()
    data = comment.to_dict(include_moderation=bool(identity and identity.is_moderator))
    if decision is not None:
        data["requires_moderation"] = decision.requires_moderation
        data["reason_code"] = decision.reason_code
    return data


@comment_bp.post("/posts/<post_id>/comments")
@identity_required()
def create_comment(post_id: str):
    validate_post_id(post_id)
    payload = validate_comment_payload(request.get_json(silent=True), current_app.config)
    comment, decision = CommentService.create(post_id, payload, current_identity())
    if comment.status == CommentStatus.REJECTED.value:
        message = "Comment rejected"
    elif decision.requires_moderation:
        message = "Comment submitted and awaiting moderation"
    else:
        message = "Comment created"
    return json_response(message=message, data=_comment_body(comment, decision), code=201)


@comment_bp.get("/posts/<post_id>/comments")
def list_comments(post_id: str):
    validate_post_id(post_id)
    args = request.args
    page, limit = parse_pagination(args)
    sort, order_desc = parse_order(args, ("created_at", "likes"), "created_at")
    status = args.get("status", CommentStatus.APPROVED.value)
    validate_comment_status(status)
    items, total = CommentService.list_threaded(post_id, page, limit, sort, order_desc, status)
    return json_response(
        data={
            "items": items,
            "total": total,
            "page": page,
            "limit": limit,
            "pages": (total + limit - 1) // limit,
        }
    )


@comment_bp.get("/posts/<post_id>/comments/stats")
def comment_stats(post_id: str):
    validate_post_id(post_id)
    return json_response(data=CommentService.stats(post_id))


@comment_bp.get("/comments/<int:comment_id>")
@identity_required()
def get_comment(comment_id: int):
    comment = CommentService.get_visible(comment_id, current_identity())
    return json_response(data=_comment_body(comment))


@comment_bp.put("/comments/<int:comment_id>")
@identity_required()
def edit_comment(comment_id: int):
    content = validate_edit_payload(request.get_json(silent=True), current_app.config)
    comment, decision = CommentService.edit(comment_id, content, current_identity())
    return json_response(message="Comment updated", data=_comment_body(comment, decision))


@comment_bp.delete("/comments/<int:comment_id>")
@identity_required()
def delete_comment(comment_id: int):
    result = CommentService.delete(comment_id, current_identity())
    return json_response(message="Comment deleted", data=result)


@comment_bp.post("/comments/<int:comment_id>/like")
@identity_required()
def like_comment(comment_id: int):
    comment = CommentService.like(comment_id, current_identity())
    return json_response(message="Comment liked", data={"id": comment.id, "likes": comment.likes})


@comment_bp.post("/comments/<int:comment_id>/report")
@identity_required()
def report_comment(comment_id: int):
    reason, description = validate_report_payload(request.get_json(silent=True), current_app.config)
    report, comment = ReportService.submit(comment_id, reason, description, current_identity())
    return json_response(
        message="Report submitted",
        data={
            "report": report.to_dict(),
            "comment": {"id": comment.id, "status": comment.status, "reports": comment.reports},
        },
        code=201,
    )
