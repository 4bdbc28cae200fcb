"""
Prometheus metrics instrumentation for the PayPal checkout service.

This module sets up FastAPI instrumentation to expose metrics in Prometheus format
at the /metrics endpoint, plus checkout counters bumped by the coordinator.
"""

from prometheus_client import Counter
from prometheus_fastapi_instrumentator import Instrumentator

checkout_created = Counter(
    "paypal_checkout_created_total",
    "Total number of PayPal payments created and awaiting approval",
)

checkout_resolved = Counter(
    "paypal_checkout_resolved_total",
    "Total number of PayPal callbacks resolved",
    ["outcome"],  # captured, failed, no_pending
)


def init_metrics(app):
    """
    Initialize Prometheus metrics instrumentation for the FastAPI app.

    Args:
        app: FastAPI application instance

    Returns:
        Instrumentator instance
    """
    inst = Instrumentator(
        should_group_status_codes=False,
        should_ignore_untemplated=True,
    )
    inst.instrument(app).expose(app, endpoint="/metrics", include_in_schema=False)
    return inst
