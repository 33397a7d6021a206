from prometheus_client import Counter, Gauge, Histogram, REGISTRY
import logging

logger = logging.getLogger(__name__)


class RateLimiterMetrics:
    """Metrics for rate limiter implementations."""

    _instance = None
    _initialized = False

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(RateLimiterMetrics, cls).__new__(cls)
        return cls._instance

    def __init__(self):
        """Initialize metrics for rate limiter.
        Uses singleton pattern to ensure metrics are only registered once.
        """
        if RateLimiterMetrics._initialized:
            return

        logger.info("Initializing rate limiter metrics")

        # Counter for total requests by status and algorithm
        self.requests_total = Counter(
            'rate_limiter_requests_total',
            'Total number of requests',
            ['status', 'algorithm']  # status can be: success, rate_limited, error
        )

        # Counter specifically for rate-limited requests
        self.rate_limited_requests = Counter(
            'rate_limiter_rate_limited_total',
            'Total number of rate-limited requests',
            ['algorithm']
        )

        self.backend_errors = Counter(
            'rate_limiter_backend_errors_total',
            'Total number of failed state store transactions',
            ['backend', 'algorithm']
        )

        self.tokens_consumed = Counter(
            'rate_limiter_tokens_consumed_total',
            'Total number of tokens consumed from token buckets',
            ['algorithm']
        )

        self.memory_keys = Gauge(
            'rate_limiter_memory_keys',
            'Number of keys held by in-memory state stores',
            ['store']
        )

        # Histogram for request processing duration
        self.request_duration = Histogram(
            'rate_limiter_request_duration_seconds',
            'Time taken to process rate limit requests',
            ['algorithm'],
            buckets=(0.0001, 0.0005, 0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0)
        )

        self.throttle_wait = Histogram(
            'rate_limiter_throttle_wait_seconds',
            'Wait time reported to throttled callers',
            ['algorithm'],
            buckets=(0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 30.0, 60.0)
        )

        RateLimiterMetrics._initialized = True
        logger.info("Rate limiter metrics initialized successfully")

    def record_decision(self, algorithm: str, allowed: bool):
        """Record the outcome of one admission decision."""
        if allowed:
            self.requests_total.labels(status='success', algorithm=algorithm).inc()
        else:
            self.requests_total.labels(status='rate_limited', algorithm=algorithm).inc()
            self.rate_limited_requests.labels(algorithm=algorithm).inc()

    def record_error(self, backend: str, algorithm: str):
        self.requests_total.labels(status='error', algorithm=algorithm).inc()
        self.backend_errors.labels(backend=backend, algorithm=algorithm).inc()

    def get_registry(self):
        """Get the Prometheus registry containing all metrics."""
        return REGISTRY
