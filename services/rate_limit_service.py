# services/rate_limit_service.py
import logging

from redis.exceptions import RedisError

from repositories.rate_limit_repository import RateLimitRepository
from utils.exceptions import RateLimitedError

logger = logging.getLogger(__name__)


class FixedWindowRateLimiter:
    """Counts hits per fingerprint in a redis key that expires with the window."""

    def __init__(self, scope: str, fingerprint: str, limit: int, window_seconds: int, error_code: str, message: str):
        self.key = f"rl:{scope}:{fingerprint}"
        self.limit = limit
        self.window_seconds = window_seconds
        self.error_code = error_code
        self.message = message

    def _retry_after(self) -> int:
        ttl = RateLimitRepository.get_ttl(self.key)
        return ttl if ttl and ttl > 0 else self.window_seconds

    def ensure_not_limited(self):
        try:
            count = RateLimitRepository.get_count(self.key)
            if count >= self.limit:
                raise RateLimitedError(self.message, retry_after=self._retry_after(), error_code=self.error_code)
        except RedisError:
            # limiter unavailable: let the request through
            logger.warning("rate limiter %s unavailable, skipping check", self.key, exc_info=True)

    def hit(self) -> int:
        try:
            return RateLimitRepository.hit(self.key, self.window_seconds)
        except RedisError:
            logger.warning("rate limiter %s unavailable, hit not recorded", self.key, exc_info=True)
            return 0

    def clear(self):
        RateLimitRepository.clear(self.key)


def comment_limiter(fingerprint: str, config) -> FixedWindowRateLimiter:
    return FixedWindowRateLimiter(
        "comment",
        fingerprint,
        config["COMMENT_RATE_LIMIT"],
        config["COMMENT_RATE_WINDOW_SECONDS"],
        "COMMENT_RATE_LIMIT_EXCEEDED",
        "Too many comments. Please slow down.",
    )


def report_limiter(fingerprint: str, config) -> FixedWindowRateLimiter:
    return FixedWindowRateLimiter(
        "report",
        fingerprint,
        config["REPORT_RATE_LIMIT"],
        config["REPORT_RATE_WINDOW_SECONDS"],
        "REPORT_RATE_LIMIT_EXCEEDED",
        "Too many reports submitted. Please try again later.",
    )
