"""
Prometheus metrics definitions for the gateway.
All metrics are registered here and can be imported by other modules.
"""
import logging
from wsgiref.simple_server import WSGIServer

from prometheus_client import Counter, Histogram, start_http_server

logger = logging.getLogger(__name__)

# HTTP request metrics
http_requests_total = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'action', 'status']
)

http_request_duration_seconds = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'action'],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
)

# Error metrics
errors_total = Counter(
    'errors_total',
    'Total errors',
    ['error_type']
)

# Authorization metrics
authorization_decisions_total = Counter(
    'authorization_decisions_total',
    'Authorization gate decisions',
    ['decision', 'reason']
)

remote_verification_requests_total = Counter(
    'remote_verification_requests_total',
    'Order verification calls by outcome',
    ['outcome']
)

remote_verification_latency_seconds = Histogram(
    'remote_verification_latency_seconds',
    'Order verification call latency in seconds',
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0]
)

# Object store metrics
store_operations_total = Counter(
    'store_operations_total',
    'Object store operations',
    ['operation', 'outcome']
)

store_operation_duration_seconds = Histogram(
    'store_operation_duration_seconds',
    'Object store operation duration in seconds',
    ['operation'],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0]
)


def start_metrics_server(port: int, host: str = '0.0.0.0') -> WSGIServer:
    """
    Serve the default registry on its own port, away from the object routes.

    Returns:
        The running server; call shutdown() to stop it
    """
    server, _ = start_http_server(port, addr=host)
    logger.info(f"Metrics server listening on {host}:{server.server_port}")
    return server
