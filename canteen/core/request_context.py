"""Per-request identifiers made available to log records."""
from __future__ import annotations

from contextvars import ContextVar
from dataclasses import dataclass, replace


@dataclass(frozen=True)
class RequestContext:
    request_id: str | None = None
    user_id: str | None = None


_CONTEXT: ContextVar[RequestContext] = ContextVar("canteen_request_context", default=RequestContext())


def set_request_context(*, request_id: str | None = None, user_id: str | None = None) -> None:
    current = _CONTEXT.get()
    if request_id is not None:
        current = replace(current, request_id=request_id)
    if user_id is not None:
        current = replace(current, user_id=user_id)
    _CONTEXT.set(current)


def get_request_id() -> str | None:
    return _CONTEXT.get().request_id


def get_user_id() -> str | None:
    return _CONTEXT.get().user_id


def clear_request_context() -> None:
    _CONTEXT.set(RequestContext())
