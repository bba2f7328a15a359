from jobtracker.middleware.metrics import (
    PrometheusMiddleware,
    record_auth_event,
    record_status_transition,
    setup_metrics,
)

__all__ = [
    "PrometheusMiddleware",
    "record_auth_event",
    "record_status_transition",
    "setup_metrics",
]
