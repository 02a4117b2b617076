from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from threading import Lock

from fastapi import Request

logger = logging.getLogger("campaignforge")


@dataclass
class MetricsSnapshot:
    requests_total: int
    requests_4xx: int
    requests_5xx: int
    total_latency_ms: float


class MetricsRegistry:
    def __init__(self, *, storage_backend: str = "memory") -> None:
        self._lock = Lock()
        self.storage_backend = storage_backend
        self._requests_total = 0
        self._requests_4xx = 0
        self._requests_5xx = 0
        self._total_latency_ms = 0.0
        self._by_route_status: dict[tuple[str, str, int], int] = {}

    def record(self, *, method: str, route: str, status_code: int, latency_ms: float) -> None:
        with self._lock:
            self._requests_total += 1
            if 400 <= status_code < 500:
                self._requests_4xx += 1
            elif status_code >= 500:
                self._requests_5xx += 1
            self._total_latency_ms += latency_ms
            key = (method, route, status_code)
            self._by_route_status[key] = self._by_route_status.get(key, 0) + 1

    def snapshot(self) -> MetricsSnapshot:
        with self._lock:
            return MetricsSnapshot(
                requests_total=self._requests_total,
                requests_4xx=self._requests_4xx,
                requests_5xx=self._requests_5xx,
                total_latency_ms=self._total_latency_ms,
            )

    def to_prometheus(self, *, active_sessions: int = 0) -> str:
        snap = self.snapshot()
        avg_latency = (
            snap.total_latency_ms / snap.requests_total if snap.requests_total else 0.0
        )
        lines = [
            "# HELP campaignforge_requests_total Total HTTP requests",
            "# TYPE campaignforge_requests_total counter",
            f"campaignforge_requests_total {snap.requests_total}",
            "# HELP campaignforge_requests_4xx_total Total 4xx HTTP requests",
            "# TYPE campaignforge_requests_4xx_total counter",
            f"campaignforge_requests_4xx_total {snap.requests_4xx}",
            "# HELP campaignforge_requests_5xx_total Total 5xx HTTP requests",
            "# TYPE campaignforge_requests_5xx_total counter",
            f"campaignforge_requests_5xx_total {snap.requests_5xx}",
            "# HELP campaignforge_request_avg_latency_ms Average request latency ms",
            "# TYPE campaignforge_request_avg_latency_ms gauge",
            f"campaignforge_request_avg_latency_ms {avg_latency:.2f}",
            "# HELP campaignforge_active_sessions Server-side sessions currently valid",
            "# TYPE campaignforge_active_sessions gauge",
            f"campaignforge_active_sessions {active_sessions}",
            "# HELP campaignforge_storage_backend_info Storage backend selected at startup",
            "# TYPE campaignforge_storage_backend_info gauge",
            f'campaignforge_storage_backend_info{{backend="{self.storage_backend}"}} 1',
        ]
        with self._lock:
            for (method, route, status_code), count in sorted(self._by_route_status.items()):
                lines.append(
                    "campaignforge_route_requests_total"
                    f'{{method="{method}",route="{route}",status="{status_code}"}} {count}'
                )
        return "\n".join(lines) + "\n"


def configure_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def _route_label(request: Request) -> str:
    # Label by route template so entity ids do not explode the series count.
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


async def observe_request(
    request: Request,
    call_next,
    *,
    metrics: MetricsRegistry,
):
    start = time.perf_counter()
    try:
        response = await call_next(request)
        latency_ms = (time.perf_counter() - start) * 1000.0
        route = _route_label(request)
        metrics.record(
            method=request.method,
            route=route,
            status_code=response.status_code,
            latency_ms=latency_ms,
        )
        logger.info(
            "request_complete method=%s path=%s status=%s latency_ms=%.2f",
            request.method,
            request.url.path,
            response.status_code,
            latency_ms,
        )
        return response
    except Exception:
        latency_ms = (time.perf_counter() - start) * 1000.0
        metrics.record(
            method=request.method,
            route=_route_label(request),
            status_code=500,
            latency_ms=latency_ms,
        )
        logger.exception(
            "request_failed method=%s path=%s latency_ms=%.2f",
            request.method,
            request.url.path,
            latency_ms,
        )
        raise
