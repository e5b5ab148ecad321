"""Prometheus metrics for authcore."""

from prometheus_client import Counter, Histogram

REQUEST_COUNT = Counter(
    "authcore_requests_total",
    "Total number of requests",
    ["method", "endpoint", "status"],
)
REQUEST_LATENCY = Histogram(
    "authcore_request_latency_seconds",
    "Request latency in seconds",
    ["method", "endpoint"],
)
AUTH_EVENTS = Counter(
    "authcore_auth_events_total",
    "Authentication lifecycle events",
    ["event"],
)


def observe_request(method: str, endpoint: str, status_code: int, duration_seconds: float) -> None:
    REQUEST_COUNT.labels(method=method, endpoint=endpoint, status=str(status_code)).inc()
    REQUEST_LATENCY.labels(method=method, endpoint=endpoint).observe(duration_seconds)
