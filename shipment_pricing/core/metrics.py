"""Prometheus metrics for monitoring"""
from prometheus_client import Counter, Histogram, Gauge, CollectorRegistry
import time
from functools import wraps
from typing import Callable

registry = CollectorRegistry()

request_count = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'status'],
    registry=registry
)

request_duration = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint'],
    registry=registry
)

quotes_computed = Counter(
    'quotes_computed_total',
    'Total quotes computed',
    ['outcome'],
    registry=registry
)

distance_lookups = Counter(
    'distance_lookups_total',
    'Total routing distance lookups',
    ['status'],
    registry=registry
)

collaborator_failures = Counter(
    'collaborator_failures_total',
    'Total failed calls to external collaborators',
    ['resource'],
    registry=registry
)

collaborator_duration = Histogram(
    'collaborator_call_duration_seconds',
    'External collaborator call duration in seconds',
    ['resource', 'status'],
    registry=registry
)

cache_hits = Counter(
    'cache_hits_total',
    'Total cache hits',
    ['cache_key'],
    registry=registry
)

cache_misses = Counter(
    'cache_misses_total',
    'Total cache misses',
    ['cache_key'],
    registry=registry
)

jobs_submitted = Counter(
    'jobs_submitted_total',
    'Total job submissions forwarded to the backend',
    ['status'],
    registry=registry
)

redis_connected = Gauge(
    'redis_connected',
    'Redis connection status (1=connected, 0=disconnected)',
    registry=registry
)


def track_collaborator(resource: str):
    """Decorator to track external collaborator call metrics"""
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(*args, **kwargs):
            start_time = time.time()
            try:
                result = await func(*args, **kwargs)
            except Exception:
                collaborator_failures.labels(resource=resource).inc()
                collaborator_duration.labels(
                    resource=resource,
                    status='error'
                ).observe(time.time() - start_time)
                raise
            collaborator_duration.labels(
                resource=resource,
                status='success'
            ).observe(time.time() - start_time)
            return result
        return wrapper
    return decorator


def get_metrics_text() -> str:
    """Generate Prometheus metrics in text format"""
    from prometheus_client import generate_latest
    return generate_latest(registry).decode('utf-8')
