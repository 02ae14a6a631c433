"""Signed session tokens for the single dashboard account.

Token format: ``base64url(json payload) + "." + base64url(HMAC-SHA256)``
where the payload is ``{"u": username, "exp": unix_seconds}``.
"""

import base64
import binascii
import hashlib
import hmac
import json
import time

SESSION_COOKIE_NAME = "ciudades_session"
SESSION_TTL_SECONDS = 60 * 60 * 12


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode()


def _b64decode(value: str) -> bytes | None:
    padded = value + "=" * (-len(value) % 4)
    try:
        return base64.urlsafe_b64decode(padded.encode())
    except (binascii.Error, ValueError):
        return None


def _sign(secret: str, payload: str) -> str:
    digest = hmac.new(secret.encode(), payload.encode(), hashlib.sha256).digest()
    return _b64encode(digest)


def create_session_token(username: str, secret: str, now: float | None = None) -> str:
    issued = int(now if now is not None else time.time())
    payload = _b64encode(json.dumps({"u": username, "exp": issued + SESSION_TTL_SECONDS}).encode())
    return f"{payload}.{_sign(secret, payload)}"


def verify_session_token(token: str | None, secret: str, now: float | None = None) -> bool:
    if not token:
        return False

    payload, _, signature = token.partition(".")
    if not payload or not signature:
        return False
    if not hmac.compare_digest(signature.encode(), _sign(secret, payload).encode()):
        return False

    raw = _b64decode(payload)
    if raw is None:
        return False
    try:
        data = json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError):
        return False
    if not isinstance(data, dict) or not data.get("u") or not isinstance(data.get("exp"), int):
        return False

    current = int(now if now is not None else time.time())
    return data["exp"] > current


def validate_login_credentials(username: str, password: str, expected_user: str, expected_pass: str) -> bool:
    user_ok = hmac.compare_digest(username.encode(), expected_user.encode())
    pass_ok = hmac.compare_digest(password.encode(), expected_pass.encode())
    return user_ok and pass_ok


def sanitize_redirect_path(raw_path: str | None) -> str:
    if not raw_path or not raw_path.startswith("/") or raw_path.startswith("//"):
        return "/"
    return raw_path
