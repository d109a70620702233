# repositories/ban_repository.py
from extensions.redis_client import get_redis

_KEY = "ban:fp:{fingerprint}"


class BanRepository:
    @staticmethod
    def is_banned(fingerprint: str) -> bool:
        r = get_redis()
        return bool(r.exists(_KEY.format(fingerprint=fingerprint)))

    @staticmethod
    def ban(fingerprint: str, reason: str = "banned"):
        r = get_redis()
        r.set(_KEY.format(fingerprint=fingerprint), reason)
