"""Admin authentication for the web API: single configured identity, signed stateless cookie token."""
from __future__ import annotations

import base64
import hashlib
import hmac
import json
import time
from typing import Optional

from fastapi import HTTPException, Request, Response, status

import config


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64decode(value: str) -> bytes:
    return base64.urlsafe_b64decode(value + "=" * (-len(value) % 4))


def safe_equal(left: str, right: str) -> bool:
    """Constant-time string comparison."""
    return hmac.compare_digest(left.encode("utf-8"), right.encode("utf-8"))


def credentials_match(username: str, password: str) -> bool:
    # Evaluate both comparisons so timing doesn't reveal which one failed
    user_ok = safe_equal(username, config.ADMIN_USERNAME)
    password_ok = safe_equal(password, config.ADMIN_PASSWORD)
    return user_ok and password_ok


def sign_payload(encoded_payload: str, secret: str) -> str:
    digest = hmac.new(secret.encode("utf-8"), encoded_payload.encode("ascii"), hashlib.sha256).digest()
    return _b64encode(digest)


def create_session_token(
    username: str,
    secret: str,
    ttl_seconds: int = config.ADMIN_SESSION_TTL_SECONDS,
    now: Optional[float] = None,
) -> str:
    """<base64url JSON {username, exp}>.<base64url HMAC-SHA256 of the first segment>"""
    now = time.time() if now is None else now
    payload = {"username": username, "exp": int(now) + ttl_seconds}
    encoded = _b64encode(json.dumps(payload, separators=(",", ":")).encode("utf-8"))
    return f"{encoded}.{sign_payload(encoded, secret)}"


def verify_session_token(
    token: Optional[str],
    username: str,
    secret: str,
    now: Optional[float] = None,
) -> bool:
    """True only for a well-formed, correctly signed, unexpired token issued for username."""
    if not isinstance(token, str):
        return False
    parts = token.split(".")
    if len(parts) != 2 or not all(parts):
        return False
    encoded, signature = parts
    try:
        if not safe_equal(signature, sign_payload(encoded, secret)):
            return False
        payload = json.loads(_b64decode(encoded).decode("utf-8"))
    except (ValueError, UnicodeError):
        return False
    if not isinstance(payload, dict) or payload.get("username") != username:
        return False
    exp = payload.get("exp")
    if isinstance(exp, bool) or not isinstance(exp, (int, float)):
        return False
    now = time.time() if now is None else now
    return exp >= int(now)


def issue_admin_token() -> str:
    return create_session_token(config.ADMIN_USERNAME, config.ADMIN_SESSION_SECRET)


def is_admin_authenticated(request: Request) -> bool:
    token = request.cookies.get(config.ADMIN_SESSION_COOKIE)
    return verify_session_token(token, config.ADMIN_USERNAME, config.ADMIN_SESSION_SECRET)


def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        config.ADMIN_SESSION_COOKIE,
        token,
        max_age=config.ADMIN_SESSION_TTL_SECONDS,
        path="/",
        httponly=True,
        samesite="lax",
        secure=config.COOKIE_SECURE,
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        config.ADMIN_SESSION_COOKIE,
        path="/",
        httponly=True,
        samesite="lax",
        secure=config.COOKIE_SECURE,
    )


async def require_admin(request: Request) -> str:
    """Dependency: require a valid admin session cookie. Raises 401 otherwise."""
    if not is_admin_authenticated(request):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Admin login required.")
    return config.ADMIN_USERNAME
