"""
ASGI middleware for tracking HTTP request metrics.
Records request count, duration, and errors.
"""
import time
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from gateway.utils.metrics import http_requests_total, http_request_duration_seconds, errors_total

KNOWN_ACTIONS = frozenset({
    "get",
    "delete",
    "mpu-create",
    "mpu-uploadpart",
    "mpu-complete",
    "mpu-abort",
})


class MetricsMiddleware(BaseHTTPMiddleware):
    """Middleware to track HTTP metrics for Prometheus."""

    async def dispatch(self, request: Request, call_next):
        """Process request and record metrics."""
        start_time = time.time()

        method = request.method
        # Paths are object keys, so label by action to keep cardinality bounded
        action = self._normalize_action(request.query_params.get("action"))

        try:
            response = await call_next(request)
        except Exception:
            errors_total.labels(error_type="exception").inc()
            raise

        status_code = response.status_code
        http_requests_total.labels(
            method=method,
            action=action,
            status=status_code
        ).inc()

        http_request_duration_seconds.labels(
            method=method,
            action=action
        ).observe(time.time() - start_time)

        # Track errors (4xx and 5xx)
        if status_code >= 400:
            errors_total.labels(error_type=f"{status_code // 100}xx").inc()

        return response

    def _normalize_action(self, action) -> str:
        if action is None:
            return "none"
        return action if action in KNOWN_ACTIONS else "unknown"
