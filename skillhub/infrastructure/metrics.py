from prometheus_client import Counter, Histogram, generate_latest
from fastapi import Response

http_requests_total = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'status']
)

http_request_duration_seconds = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint']
)

cache_hits_total = Counter('cache_hits_total', 'Total cache hits')
cache_misses_total = Counter('cache_misses_total', 'Total cache misses')

# outcome: enrolled, duplicate, full, unenrolled
enrollments_total = Counter('enrollments_total', 'Enrollment ledger operations', ['outcome'])

webhook_deliveries_total = Counter('webhook_deliveries_total', 'Registration webhook deliveries', ['status'])

def metrics_endpoint():
    """Endpoint for Prometheus metrics"""
    return Response(content=generate_latest(), media_type="text/plain")
