"""In-process request statistics exposed at ``/internal/metrics``.

Counters live for the lifetime of the worker process and are not shared
between uvicorn workers.
"""
from __future__ import annotations

from dataclasses import dataclass
from threading import Lock


@dataclass
class RouteStats:
    requests: int = 0
    client_errors: int = 0
    server_errors: int = 0
    total_ms: float = 0.0
    max_ms: float = 0.0

    def record(self, status_code: int, duration_ms: float) -> None:
        self.requests += 1
        self.total_ms += duration_ms
        self.max_ms = max(self.max_ms, duration_ms)
        if 400 <= status_code < 500:
            self.client_errors += 1
        elif status_code >= 500:
            self.server_errors += 1

    def as_dict(self) -> dict[str, float | int]:
        return {
            "total_requests": self.requests,
            "error_count": self.client_errors + self.server_errors,
            "client_errors": self.client_errors,
            "server_errors": self.server_errors,
            "avg_duration_ms": round(self.total_ms / self.requests, 2) if self.requests else 0.0,
            "max_duration_ms": round(self.max_ms, 2),
        }


class RequestMetrics:
    def __init__(self) -> None:
        self._routes: dict[str, RouteStats] = {}
        self._lock = Lock()

    def observe(self, endpoint: str, method: str, status_code: int, duration_ms: float) -> None:
        key = f"{method} {endpoint}"
        with self._lock:
            self._routes.setdefault(key, RouteStats()).record(status_code, duration_ms)

    def snapshot(self) -> dict[str, dict[str, float | int]]:
        with self._lock:
            return {key: stats.as_dict() for key, stats in sorted(self._routes.items())}

    def reset(self) -> None:
        with self._lock:
            self._routes.clear()


request_metrics = RequestMetrics()
