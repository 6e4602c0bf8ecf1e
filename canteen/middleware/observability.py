from __future__ import annotations

import logging
import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from canteen.core.metrics import request_metrics
from canteen.core.request_context import clear_request_context, set_request_context

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class ObservabilityMiddleware(BaseHTTPMiddleware):
    """Request id propagation, per-route timing and one access log line."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.state.request_id = request_id
        set_request_context(request_id=request_id)
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            self._record(request, 500, started)
            clear_request_context()
            raise

        response.headers[REQUEST_ID_HEADER] = request_id
        self._record(request, response.status_code, started)
        clear_request_context()
        return response

    @staticmethod
    def _record(request: Request, status_code: int, started: float) -> None:
        duration_ms = round((time.perf_counter() - started) * 1000, 2)
        endpoint = _route_template(request)
        user_id = _current_user_id(request)
        if user_id:
            set_request_context(user_id=user_id)

        request_metrics.observe(endpoint, request.method, status_code, duration_ms)
        logger.info(
            "%s %s -> %s",
            request.method,
            endpoint,
            status_code,
            extra={
                "endpoint": endpoint,
                "method": request.method,
                "status_code": status_code,
                "duration_ms": duration_ms,
            },
        )


def _route_template(request: Request) -> str:
    # /orders/{order_id} rather than /orders/42 keeps the metric keys bounded
    route = request.scope.get("route")
    return getattr(route, "path", None) or "<unmatched>"


def _current_user_id(request: Request) -> str | None:
    user = getattr(request.state, "user", None)
    if user is not None:
        return str(user.id)
    payload = getattr(request.state, "session_payload", None) or {}
    user_id = payload.get("user_id")
    return str(user_id) if user_id is not None else None
