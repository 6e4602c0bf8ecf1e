"""Signed, HTTP-only session cookie for signed-in users.

The cookie holds ``{"user_id", "role"}`` signed with ``SESSION_SECRET``;
itsdangerous embeds the issue timestamp, so expiry is enforced on decode
through ``max_age``. Nothing is stored server-side.
"""
from __future__ import annotations

from typing import Any, Optional
from urllib.parse import urlsplit

from fastapi import Request, Response
from itsdangerous import BadSignature, URLSafeTimedSerializer

from canteen.core import config

SESSION_COOKIE = "canteen_session"
SESSION_SALT = "canteen-session"


def _serializer() -> URLSafeTimedSerializer:
    if not config.SESSION_SECRET:
        raise RuntimeError("SESSION_SECRET must be set outside dev/test.")
    return URLSafeTimedSerializer(config.SESSION_SECRET, salt=SESSION_SALT)


def create_session(*, user_id: int, role: str) -> str:
    return _serializer().dumps({"user_id": user_id, "role": role})


def decode_session(token: str) -> Optional[dict[str, Any]]:
    try:
        payload = _serializer().loads(token, max_age=config.SESSION_MAX_AGE_SECONDS)
    except BadSignature:
        # also covers SignatureExpired
        return None
    if not isinstance(payload, dict) or "user_id" not in payload:
        return None
    return payload


def _request_host(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-host")
    if forwarded:
        return forwarded.split(",")[0].strip().split(":")[0].lower()
    return (request.url.hostname or "").lower()


def _is_cross_site(request: Request) -> bool:
    origin = (request.headers.get("origin") or "").strip()
    if not origin:
        return False
    origin_host = (urlsplit(origin).hostname or "").lower()
    host = _request_host(request)
    return bool(origin_host and host and origin_host != host)


def session_cookie_options(request: Optional[Request] = None) -> dict[str, Any]:
    secure = config.SESSION_COOKIE_SECURE
    samesite = config.SESSION_COOKIE_SAMESITE

    # A frontend served from another host only gets the cookie back with SameSite=None
    if request is not None and secure and _is_cross_site(request):
        samesite = "none"
    # Browsers drop SameSite=None cookies that are not Secure
    if samesite == "none" and not secure:
        samesite = "lax"

    return {
        "domain": config.SESSION_COOKIE_DOMAIN,
        "path": "/",
        "httponly": True,
        "secure": secure,
        "samesite": samesite,
    }


def set_session_cookie(response: Response, token: str, request: Optional[Request] = None) -> None:
    response.set_cookie(
        SESSION_COOKIE,
        token,
        max_age=config.SESSION_MAX_AGE_SECONDS,
        **session_cookie_options(request),
    )


def clear_session_cookie(response: Response, request: Optional[Request] = None) -> None:
    response.delete_cookie(SESSION_COOKIE, **session_cookie_options(request))
