# controllers/auth_helpers.py
from __future__ import annotations

from functools import wraps

from flask import g

from services.identity_service import IdentityContext, IdentityService
from utils.response import json_response


def current_identity() -> IdentityContext | None:
    return getattr(g, "identity", None)


def identity_required():
    """
    Resolve the caller into g.identity:
      - valid Bearer token: authenticated identity with its claims
      - no token or invalid token: anonymous identity (normal trust)
    Never rejects the request.
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            g.identity = IdentityService.resolve()
            return fn(*args, **kwargs)

        return wrapper

    return decorator


def moderator_required():
    """
    Moderator/admin only:
      - no valid token: 401
      - authenticated but not moderator/admin: 403
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            identity = IdentityService.resolve()
            g.identity = identity
            if not identity.is_authenticated:
                return json_response(code=401, message="Missing or invalid Authorization", error_code="UNAUTHORIZED")
            if not identity.is_moderator:
                return json_response(code=403, message="Moderator role required", error_code="FORBIDDEN")
            return fn(*args, **kwargs)

        return wrapper

    return decorator
