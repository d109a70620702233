import re
from typing import Any, Optional, Tuple

from utils.exceptions import ValidationError

EMAIL_RE = re.compile(r"^[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}$")
POST_ID_RE = re.compile(r"^[A-Za-z0-9_-]{1,64}$")

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


def validate_email(email: str) -> bool:
    return bool(EMAIL_RE.match(email))


def require_object(payload: Any) -> dict:
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    return payload


def validate_post_id(post_id: str) -> str:
    if not isinstance(post_id, str) or not POST_ID_RE.match(post_id):
        raise ValidationError("Invalid post id")
    return post_id


def _required_text(data: dict, field: str, max_length: int) -> str:
    value = data.get(field)
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"{field} is required", data={"field": field})
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string", data={"field": field})
    if len(value) > max_length:
        raise ValidationError(
            f"{field} must be at most {max_length} characters",
            data={"field": field, "max_length": max_length},
        )
    return value


def _optional_positive_int(data: dict, field: str) -> Optional[int]:
    value = data.get(field)
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a positive integer", data={"field": field})
    try:
        value = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a positive integer", data={"field": field})
    if value <= 0:
        raise ValidationError(f"{field} must be a positive integer", data={"field": field})
    return value


def validate_comment_payload(payload: Any, config) -> dict:
    """
    Check a new-comment body before it enters moderation:
      - content: required, at most MAX_COMMENT_LENGTH characters
      - author_name: required, at most MAX_AUTHOR_NAME_LENGTH characters
      - author_email: optional, must look like an email
      - parent_id: optional positive integer
    """
    data = require_object(payload)
    content = _required_text(data, "content", config["MAX_COMMENT_LENGTH"])
    author_name = _required_text(data, "author_name", config["MAX_AUTHOR_NAME_LENGTH"]).strip()
    author_email = data.get("author_email")
    if author_email is not None and author_email != "":
        if not isinstance(author_email, str) or len(author_email) > 255 or not validate_email(author_email.strip()):
            raise ValidationError("author_email is not a valid email address", data={"field": "author_email"})
        author_email = author_email.strip().lower()
    else:
        author_email = None
    return {
        "content": content,
        "author_name": author_name,
        "author_email": author_email,
        "parent_id": _optional_positive_int(data, "parent_id"),
    }


def validate_edit_payload(payload: Any, config) -> str:
    data = require_object(payload)
    return _required_text(data, "content", config["MAX_COMMENT_LENGTH"])


def validate_report_payload(payload: Any, config) -> Tuple[str, Optional[str]]:
    data = require_object(payload)
    reason = data.get("reason")
    if not isinstance(reason, str) or not reason.strip():
        raise ValidationError("reason is required", data={"field": "reason"})
    description = data.get("description")
    if description is not None:
        if not isinstance(description, str):
            raise ValidationError("description must be a string", data={"field": "description"})
        limit = config["MAX_REPORT_DESCRIPTION_LENGTH"]
        if len(description) > limit:
            raise ValidationError(
                f"description must be at most {limit} characters",
                data={"field": "description", "max_length": limit},
            )
        description = description.strip() or None
    return reason.strip().lower(), description


def parse_pagination(args, default_limit: int = DEFAULT_PAGE_SIZE, max_limit: int = MAX_PAGE_SIZE) -> Tuple[int, int]:
    try:
        page = int(args.get("page", 1))
        limit = int(args.get("limit", default_limit))
    except (TypeError, ValueError):
        raise ValidationError("page and limit must be integers")
    if page < 1:
        raise ValidationError("page must be >= 1")
    if limit < 1 or limit > max_limit:
        raise ValidationError(f"limit must be between 1 and {max_limit}")
    return page, limit


def parse_order(args, allowed_sorts, default_sort: str) -> Tuple[str, bool]:
    sort = args.get("sort", default_sort)
    if sort not in allowed_sorts:
        raise ValidationError(f"sort must be one of {list(allowed_sorts)}")
    order = str(args.get("order", "desc")).lower()
    if order not in ("asc", "desc"):
        raise ValidationError("order must be asc or desc")
    return sort, order == "desc"


def parse_id_list(values: Any, limit: int) -> list[int]:
    if not isinstance(values, list) or not values:
        raise ValidationError("comment_ids must be a non-empty list")
    if len(values) > limit:
        raise ValidationError(f"At most {limit} comments can be moderated at once")
    ids = []
    for v in values:
        if isinstance(v, bool) or not isinstance(v, int) or v <= 0:
            raise ValidationError("comment_ids must contain positive integers")
        ids.append(v)
    return list(dict.fromkeys(ids))
