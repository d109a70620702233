# services/identity_service.py
"""Resolve the submitter of a request into an ``IdentityContext``.

Missing or invalid credentials never fail the request here: the caller is
treated as an anonymous identity with normal trust whose fingerprint is an
HMAC over network and browser hints. Endpoints that need a moderator check
the resolved role themselves.
"""

import hashlib
import hmac
import logging
from dataclasses import dataclass
from typing import Optional

from flask import current_app, request
from redis.exceptions import RedisError

from constants.moderation import TrustLevel
from constants.roles import MODERATION_ROLES, SystemRole, normalize_role
from extensions.jwt import TokenError, decode_token
from repositories.ban_repository import BanRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IdentityContext:
    fingerprint: str
    trust_level: str = TrustLevel.NORMAL.value
    is_banned: bool = False
    is_new: bool = False
    user_id: Optional[str] = None
    role: str = SystemRole.USER.value
    ip: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None

    @property
    def is_moderator(self) -> bool:
        return self.role in MODERATION_ROLES

    @property
    def display(self) -> str:
        return self.user_id or f"anon:{self.fingerprint[:12]}"


def _extract_bearer(auth_header: Optional[str]) -> Optional[str]:
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header[7:].strip() or None


def _normalize_trust(raw) -> str:
    value = str(raw or "").strip().lower()
    return value if value in TrustLevel.values() else TrustLevel.NORMAL.value


class IdentityService:

    @staticmethod
    def fingerprint(*parts: str) -> str:
        secret = current_app.config["SECRET_KEY"].encode()
        message = "|".join(p or "" for p in parts).encode("utf-8")
        return hmac.new(secret, message, hashlib.sha256).hexdigest()

    @staticmethod
    def client_ip() -> Optional[str]:
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            return forwarded.split(",")[0].strip()[:64]
        return request.remote_addr

    @staticmethod
    def is_banned(fingerprint: str) -> bool:
        try:
            return BanRepository.is_banned(fingerprint)
        except RedisError:
            logger.warning("ban list unavailable, treating identity as not banned", exc_info=True)
            return False

    @staticmethod
    def decode_claims() -> Optional[dict]:
        token = _extract_bearer(request.headers.get("Authorization"))
        if token is None:
            return None
        try:
            return decode_token(token)
        except TokenError as e:
            logger.info("ignoring invalid token: %s", e)
            return None

    @staticmethod
    def resolve() -> IdentityContext:
        ip = IdentityService.client_ip()
        claims = IdentityService.decode_claims()
        if claims:
            fingerprint = IdentityService.fingerprint("user", str(claims["sub"]))
            return IdentityContext(
                fingerprint=fingerprint,
                trust_level=_normalize_trust(claims.get("trust_level")),
                is_banned=bool(claims.get("banned")) or IdentityService.is_banned(fingerprint),
                is_new=bool(claims.get("is_new")),
                user_id=str(claims["sub"]),
                role=normalize_role(claims.get("role")),
                ip=ip,
            )

        fingerprint = IdentityService.fingerprint(
            "anon",
            ip or "",
            request.headers.get("User-Agent", ""),
            request.headers.get("Accept-Language", ""),
        )
        return IdentityContext(
            fingerprint=fingerprint,
            is_banned=IdentityService.is_banned(fingerprint),
            ip=ip,
        )
