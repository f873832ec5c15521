"""
Prometheus metrics for the message API.

This module provides:
- HTTP request counter (method, path, status)
- Request latency histogram (method, path)
- Message write and lookup outcome counters (result)

Metrics are stored in-memory using prometheus-client and served on their
own port, apart from the message routes.
"""

import logging

from prometheus_client import Counter, Histogram, generate_latest, start_http_server

logger = logging.getLogger(__name__)

_metrics_server_port = None


# =============================================================================
# Metric Definitions
# =============================================================================

http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    labelnames=["method", "path", "status"]
)

# result: created, error
message_writes_total = Counter(
    "message_writes_total",
    "Total message create outcomes",
    labelnames=["result"]
)

# result: found, not_found
message_lookups_total = Counter(
    "message_lookups_total",
    "Total message lookups by id",
    labelnames=["result"]
)

request_latency_seconds = Histogram(
    "request_latency_seconds",
    "Request latency in seconds",
    labelnames=["method", "path"]
)


# =============================================================================
# Helper Functions
# =============================================================================

def record_http_request(method: str, path: str, status: int, latency_seconds: float) -> None:
    """
    Record an HTTP request in metrics.

    Args:
        method: HTTP method (GET, POST, etc.)
        path: Route template (e.g. /{message_id}) or raw request path
        status: HTTP status code
        latency_seconds: Request processing time in seconds
    """
    http_requests_total.labels(
        method=method,
        path=path,
        status=str(status)
    ).inc()

    request_latency_seconds.labels(
        method=method,
        path=path
    ).observe(latency_seconds)


def record_message_write(result: str) -> None:
    """Record a create outcome: "created" or "error"."""
    message_writes_total.labels(result=result).inc()


def record_message_lookup(found: bool) -> None:
    message_lookups_total.labels(result="found" if found else "not_found").inc()


def start_metrics_server(port: int) -> None:
    """
    Serve the exposition format on its own port.

    Only the first call per process binds; repeated application startups
    (e.g. several lifespans in one process) reuse the running listener.
    """
    global _metrics_server_port

    if _metrics_server_port is not None:
        logger.debug(f"Metrics server already listening on port {_metrics_server_port}")
        return

    start_http_server(port)
    _metrics_server_port = port
    logger.info(f"Metrics server listening on port {port}")


def get_metrics() -> bytes:
    """
    Generate Prometheus exposition format metrics.
    """
    return generate_latest()
