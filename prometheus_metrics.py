"""
AI Relay - Prometheus Metrics
Provides Prometheus-compatible metrics for monitoring and observability.
"""

from prometheus_client import Counter, Histogram, Gauge, start_http_server

import logger as log


# --- AI Request Metrics ---

ai_requests = Counter(
    'ai_relay_ai_requests_total',
    'Total number of AI completion requests',
    ['status']  # status: success, cached, fallback, or an error category
)

ai_request_duration = Histogram(
    'ai_relay_ai_request_duration_seconds',
    'Duration of uncached AI requests in seconds',
    buckets=[0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0]
)


# --- Cache Metrics ---

cache_events = Counter(
    'ai_relay_cache_events_total',
    'Response cache lookups',
    ['result']  # result: hit, miss
)

cache_size = Gauge(
    'ai_relay_cache_size',
    'Number of entries in the response cache'
)


# --- Limiter & Pool Metrics ---

rate_limit_hits = Counter(
    'ai_relay_rate_limit_hits_total',
    'Number of requests denied by the rate limiter',
    ['scope']  # scope: user, api, command
)

pool_active = Gauge(
    'ai_relay_pool_active_connections',
    'Outbound calls currently holding a pool slot'
)

pool_queued = Gauge(
    'ai_relay_pool_queued_acquirers',
    'Callers waiting for a pool slot'
)


# --- Circuit Breaker Metrics ---

circuit_breaker_trips = Counter(
    'ai_relay_circuit_breaker_trips_total',
    'Number of times a circuit breaker opened',
    ['breaker']
)

circuit_breaker_state = Gauge(
    'ai_relay_circuit_breaker_state',
    'Breaker state (0=closed, 1=half-open, 2=open)',
    ['breaker']
)

_STATE_VALUES = {"CLOSED": 0, "HALF_OPEN": 1, "OPEN": 2}


# --- Error & Command Metrics ---

errors_total = Counter(
    'ai_relay_errors_total',
    'Total number of errors',
    ['category']
)

commands_total = Counter(
    'ai_relay_commands_total',
    'Slash command executions',
    ['command', 'success']
)


# --- Metrics Manager ---

class MetricsManager:
    """Centralized metrics management for AI Relay."""

    def __init__(self, metrics_port: int = 8000):
        self.metrics_port = metrics_port
        self._started = False

    def start_metrics_server(self):
        """Start the Prometheus metrics HTTP server."""
        if self._started:
            return

        try:
            start_http_server(self.metrics_port)
            self._started = True
            log.info(f"Prometheus metrics server started on port {self.metrics_port}")
        except OSError as e:
            log.error(f"Failed to start metrics server: {e}")

    # --- AI Metrics ---

    def record_ai_request(self, status: str, duration_seconds: float = None):
        """Record the outcome of one generate_response call."""
        ai_requests.labels(status=status).inc()
        if duration_seconds is not None:
            ai_request_duration.observe(duration_seconds)

    # --- Cache Metrics ---

    def record_cache_lookup(self, hit: bool):
        cache_events.labels(result='hit' if hit else 'miss').inc()

    def update_cache_size(self, size: int):
        cache_size.set(size)

    # --- Limiter & Pool Metrics ---

    def record_rate_limit_hit(self, scope: str):
        """Record a rate limit denial."""
        rate_limit_hits.labels(scope=scope).inc()

    def update_pool(self, active: int, queued: int):
        pool_active.set(active)
        pool_queued.set(queued)

    # --- Breaker Metrics ---

    def record_circuit_breaker_trip(self, breaker: str):
        """Record a circuit breaker opening."""
        circuit_breaker_trips.labels(breaker=breaker).inc()

    def update_breaker_state(self, breaker: str, state: str):
        circuit_breaker_state.labels(breaker=breaker).set(_STATE_VALUES.get(state, 0))

    # --- Error & Command Metrics ---

    def record_error(self, category: str):
        """Record an error."""
        errors_total.labels(category=category).inc()

    def record_command(self, command: str, success: bool):
        commands_total.labels(command=command, success=str(success)).inc()


# Global metrics manager instance
metrics_manager = MetricsManager()
