from __future__ import annotations

from enum import Enum


class SystemRole(str, Enum):
    """
    Roles carried in the access token:
    - user: may comment, like and report
    - moderator: may act on comments and reports
    - admin: moderator rights plus bulk operations
    """

    USER = "user"
    MODERATOR = "moderator"
    ADMIN = "admin"

    @classmethod
    def values(cls) -> list[str]:
        return [role.value for role in cls]


ALL_ROLES: set[str] = set(SystemRole.values())

MODERATION_ROLES: set[str] = {SystemRole.MODERATOR.value, SystemRole.ADMIN.value}

DEFAULT_SYSTEM_ROLE = SystemRole.USER


def normalize_role(raw: str | None, default: SystemRole = DEFAULT_SYSTEM_ROLE) -> str:
    """
    Clean a role coming from a token:
    - None or empty => default
    - strip + lower
    - unknown values fall back to default
    """
    if not raw:
        return default.value
    value = str(raw).strip().lower()
    if value not in ALL_ROLES:
        return default.value
    return value
