"""
Prometheus instrumentation for the tracker API

HTTP traffic is measured per route template (e.g. /api/jobs/{job_id}) so
job ids never become label values. Two domain counters sit next to the
HTTP metrics:

    auth_events_total{event, outcome}
        event: login, logout, oauth_login, csrf
    job_status_transitions_total{outcome}
        outcome: accepted, terminal_violation, limit_exceeded

Usage:
    from jobtracker.middleware.metrics import setup_metrics

    setup_metrics(app)   # adds the middleware and GET /metrics
"""

import logging
import time

from fastapi import FastAPI, Request, Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.routing import Match

logger = logging.getLogger(__name__)

UNINSTRUMENTED_PATHS = frozenset({"/metrics", "/health"})

REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "Time spent handling an HTTP request",
    ["method", "endpoint", "status"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

REQUEST_COUNT = Counter(
    "http_requests_total",
    "HTTP requests handled",
    ["method", "endpoint", "status"],
)

ACTIVE_REQUESTS = Gauge(
    "http_requests_active",
    "HTTP requests currently in flight",
    ["method", "endpoint"],
)

AUTH_EVENTS = Counter(
    "auth_events_total",
    "Login, logout and CSRF decisions",
    ["event", "outcome"],
)

STATUS_TRANSITIONS = Counter(
    "job_status_transitions_total",
    "Job status changes attempted through the API",
    ["outcome"],
)


def route_template(request: Request) -> str:
    """Path pattern of the route that will serve `request`, or the raw path."""
    for route in request.app.routes:
        match, _ = route.matches(request.scope)
        if match == Match.FULL:
            return getattr(route, "path", request.url.path)
    return request.url.path


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Times every request and counts it by method, route and status."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        endpoint = route_template(request)
        if endpoint in UNINSTRUMENTED_PATHS:
            return await call_next(request)

        method = request.method
        in_flight = ACTIVE_REQUESTS.labels(method=method, endpoint=endpoint)
        in_flight.inc()
        started = time.perf_counter()
        status = "500"
        try:
            response = await call_next(request)
            status = str(response.status_code)
            return response
        finally:
            in_flight.dec()
            labels = {"method": method, "endpoint": endpoint, "status": status}
            REQUEST_LATENCY.labels(**labels).observe(time.perf_counter() - started)
            REQUEST_COUNT.labels(**labels).inc()


async def metrics_endpoint(request: Request) -> Response:
    return Response(content=generate_latest(REGISTRY), media_type=CONTENT_TYPE_LATEST)


def setup_metrics(app: FastAPI) -> None:
    app.add_middleware(PrometheusMiddleware)
    app.add_route("/metrics", metrics_endpoint, methods=["GET"], include_in_schema=False)
    logger.info("Prometheus metrics enabled at /metrics")


def record_auth_event(event: str, outcome: str) -> None:
    AUTH_EVENTS.labels(event=event, outcome=outcome).inc()


def record_status_transition(outcome: str) -> None:
    STATUS_TRANSITIONS.labels(outcome=outcome).inc()
