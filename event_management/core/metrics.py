"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Subscription metrics
subscription_attempts = Counter(
    'subscription_attempts_total',
    'Total event subscription attempts',
    ['result']  # success, event_full, already_subscribed, ...
)

subscription_latency = Histogram(
    'subscription_latency_seconds',
    'Subscribe workflow latency',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

unsubscriptions = Counter(
    'unsubscriptions_total',
    'Total unsubscribe requests',
    ['removed']  # true, false
)

# Authorization metrics
authorization_decisions = Counter(
    'authorization_decisions_total',
    'Permission checks by permission and outcome',
    ['permission', 'result']  # granted, denied
)

# Database metrics
db_operations = Counter(
    'db_operations_total',
    'Total database operations',
    ['operation']  # read, write, delete
)

subscription_conflicts = Counter(
    'subscription_conflicts_total',
    'Subscription inserts that lost a race',
    ['reason']  # duplicate, capacity, lock_contention
)


def metrics_endpoint() -> Response:
    """
    Prometheus metrics endpoint.

    Usage:
        @app.get("/metrics")
        def metrics():
            return metrics_endpoint()
    """
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


# Convenience functions for instrumentation
def record_subscription_attempt(result: str):
    """Record a subscribe outcome, labelled by its result value."""
    subscription_attempts.labels(result=result).inc()


def record_unsubscription(removed: bool):
    unsubscriptions.labels(removed=str(removed).lower()).inc()


def record_authorization(permission: str, granted: bool):
    """Record an authorization decision."""
    result = "granted" if granted else "denied"
    authorization_decisions.labels(permission=permission, result=result).inc()


def record_db_operation(operation: str):
    """Record database operation. Operation: read, write, delete"""
    db_operations.labels(operation=operation).inc()
