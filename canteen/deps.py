# canteen/deps.py
from __future__ import annotations

import logging
from typing import Any, Iterable, Optional

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from canteen.core import config
from canteen.core.database import get_db
from canteen.core.errors import Forbidden, NotAuthenticated
from canteen.models.user import User
from canteen.services.sessions import SESSION_COOKIE, decode_session
from canteen.services.validation import coerce_int, is_missing, parse_id

logger = logging.getLogger(__name__)


def _normalize_role(role: str | None) -> str:
    return (role or "").strip().lower()


def _log_access_denied(*, reason: str, user: Optional[User], request: Request) -> None:
    endpoint = f"{request.method} {request.url.path}"
    logger.warning(
        "Access denied (%s): user_id=%s user_role=%s endpoint=%s",
        reason,
        getattr(user, "id", None),
        getattr(user, "role", None),
        endpoint,
    )


def _session_payload(request: Request) -> Optional[dict[str, Any]]:
    payload = getattr(request.state, "session_payload", None)
    if payload is None:
        # Apps built without UserSessionMiddleware still honour the cookie
        token = request.cookies.get(SESSION_COOKIE)
        payload = decode_session(token) if token else None
    return payload


def get_optional_user(
    request: Request,
    db: Session = Depends(get_db),
) -> Optional[User]:
    """User behind the session cookie, or ``None`` for anonymous requests."""
    payload = _session_payload(request)
    if not payload:
        return None

    user_id = coerce_int(payload.get("user_id"))
    if user_id is None:
        return None

    user = db.query(User).filter(User.id == user_id, User.active.is_(True)).first()
    request.state.user = user
    return user


def get_current_user(user: Optional[User] = Depends(get_optional_user)) -> User:
    if user is None:
        raise NotAuthenticated("Authentication required", "NOT_AUTHENTICATED")
    return user


def require_role(roles: Iterable[str]):
    allowed = {_normalize_role(role) for role in roles}

    def _dependency(request: Request, user: User = Depends(get_current_user)) -> User:
        if _normalize_role(user.role) not in allowed:
            _log_access_denied(reason="role_denied", user=user, request=request)
            raise Forbidden("Insufficient permissions", "FORBIDDEN")
        return user

    return _dependency


def require_admin(
    request: Request,
    user: Optional[User] = Depends(get_optional_user),
) -> Optional[User]:
    """Guard for menu mutation and order status routes.

    Open by default; with ``ADMIN_ROLE_REQUIRED`` enabled the caller must hold
    a session for a user with the ``admin`` role.
    """
    if not config.ADMIN_ROLE_REQUIRED:
        return user
    if user is None:
        _log_access_denied(reason="not_authenticated", user=None, request=request)
        raise NotAuthenticated("Authentication required", "NOT_AUTHENTICATED")
    if _normalize_role(user.role) != "admin":
        _log_access_denied(reason="role_denied", user=user, request=request)
        raise Forbidden("Admin role required", "FORBIDDEN")
    return user


def resolve_acting_user_id(explicit_user_id: Any, session_user: Optional[User]) -> Any:
    """Pick the user a cart/order request acts for.

    An explicit ``userId`` is passed through untouched so the service layer
    reports its own validation codes. Without one the session user is used.
    """
    if is_missing(explicit_user_id):
        if session_user is not None:
            return session_user.id
        return explicit_user_id

    if session_user is not None:
        parsed = coerce_int(explicit_user_id)
        if parsed is not None and parsed != session_user.id:
            logger.warning(
                "Access denied (user_mismatch): session_user_id=%s requested_user_id=%s",
                session_user.id,
                parsed,
            )
            raise Forbidden("Cannot act on behalf of another user", "FORBIDDEN")
    return explicit_user_id


def parse_path_id(value: str) -> int:
    return parse_id(value, field="ID", invalid_code="INVALID_ID")
