# extensions/jwt.py
"""HS256 tokens issued by the auth service and consumed here.

Only ``decode_token`` is used on the request path; ``create_token`` exists
for tooling and tests.
"""
import time, json, base64, hmac, hashlib, uuid
from flask import current_app


def _b64(data: bytes):
    return base64.urlsafe_b64encode(data).rstrip(b"=")


def _b64json(obj):
    return _b64(json.dumps(obj, separators=(",", ":")).encode())


class TokenError(ValueError):
    pass


def create_token(
    subject: str,
    role: str = "user",
    trust_level: str = "normal",
    is_new: bool = False,
    banned: bool = False,
    expires_seconds: int = 8 * 3600,
):
    secret = current_app.config["JWT_SECRET_KEY"].encode()
    now = int(time.time())
    header = {"alg": "HS256", "typ": "JWT"}
    payload = {
        "sub": str(subject),
        "role": role,
        "trust_level": trust_level,
        "is_new": bool(is_new),
        "banned": bool(banned),
        "exp": now + expires_seconds,
        "iat": now,
        "jti": uuid.uuid4().hex,
    }
    h_b = _b64json(header)
    p_b = _b64json(payload)
    signing = h_b + b"." + p_b
    sig = _b64(hmac.new(secret, signing, hashlib.sha256).digest())
    return (signing + b"." + sig).decode()


def _decode_segment(seg: str):
    pad = "=" * (-len(seg) % 4)
    return json.loads(base64.urlsafe_b64decode(seg + pad).decode())


def decode_token(token: str):
    secret = current_app.config["JWT_SECRET_KEY"].encode()
    try:
        h_b, p_b, sig_b = token.split(".")
        header = _decode_segment(h_b)
        if header.get("alg") != "HS256":
            raise TokenError("unsupported algorithm")
        signing = f"{h_b}.{p_b}".encode()
        expected = _b64(hmac.new(secret, signing, hashlib.sha256).digest()).decode()
        if not hmac.compare_digest(expected, sig_b):
            raise TokenError("signature mismatch")

        payload = _decode_segment(p_b)
        exp = payload.get("exp")
        if exp and time.time() > exp:
            raise TokenError("token expired")
        if not payload.get("sub"):
            raise TokenError("token has no subject")
        return payload
    except TokenError:
        raise
    except Exception:
        raise TokenError("malformed token")
