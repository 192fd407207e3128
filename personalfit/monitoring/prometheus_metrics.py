"""Prometheus metrics definitions and helpers"""
import logging
import time
from contextlib import contextmanager

from prometheus_client import Counter, Histogram

from personalfit.config import ENABLE_PROMETHEUS

logger = logging.getLogger(__name__)


class PrometheusMetrics:
    """Container for all Prometheus metrics"""

    def __init__(self):
        if not ENABLE_PROMETHEUS:
            logger.info("Prometheus metrics disabled")
            self._enabled = False
            return

        # HTTP Request Metrics
        self.http_requests_total = Counter(
            'http_requests_total',
            'Total HTTP requests',
            ['method', 'endpoint', 'status']
        )

        self.http_request_duration_seconds = Histogram(
            'http_request_duration_seconds',
            'HTTP request latency',
            ['method', 'endpoint'],
            buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.0, 5.0, 10.0]
        )

        # Gamification Metrics
        self.xp_awarded_total = Counter(
            'gamification_xp_awarded_total',
            'Total XP awarded for completed workouts'
        )

        self.version_conflicts_total = Counter(
            'gamification_version_conflicts_total',
            'Optimistic-lock conflicts on gamification writes',
            ['operation', 'outcome']
        )

        self.shop_purchases_total = Counter(
            'gamification_shop_purchases_total',
            'Shop purchase attempts',
            ['outcome']
        )

        self.milestone_gems_total = Counter(
            'gamification_milestone_gems_total',
            'Gems granted by milestone claims'
        )

        # Accountability Metrics
        self.penalties_total = Counter(
            'accountability_penalties_total',
            'Penalties assigned',
            ['severity']
        )

        self.missed_workout_sweeps_total = Counter(
            'accountability_missed_workout_sweeps_total',
            'Missed-workout sweep runs',
            ['status']
        )

        self.missed_workout_sweep_duration_seconds = Histogram(
            'accountability_missed_workout_sweep_duration_seconds',
            'Missed-workout sweep duration',
            buckets=[0.1, 0.5, 1.0, 5.0, 10.0, 30.0, 60.0]
        )

        self._enabled = True
        logger.info("Prometheus metrics initialized")

    @property
    def enabled(self) -> bool:
        """Check if metrics are enabled"""
        return self._enabled


# Global metrics instance
metrics = PrometheusMetrics()


def record_request(method: str, endpoint: str, status_code: int, duration: float):
    """Record one HTTP request; endpoint is the route template, not the raw path"""
    if not metrics.enabled:
        return

    metrics.http_request_duration_seconds.labels(
        method=method,
        endpoint=endpoint
    ).observe(duration)

    metrics.http_requests_total.labels(
        method=method,
        endpoint=endpoint,
        status=status_code
    ).inc()


def track_xp_award(amount: int):
    """Record XP committed by a workout award"""
    if not metrics.enabled:
        return
    metrics.xp_awarded_total.inc(amount)


def track_version_conflict(operation: str, outcome: str):
    """
    Record an optimistic-lock conflict

    outcome is "retried" for a conflict followed by another attempt and
    "exhausted" when the retry budget ran out.
    """
    if not metrics.enabled:
        return
    metrics.version_conflicts_total.labels(operation=operation, outcome=outcome).inc()


def track_purchase(outcome: str):
    """Record a shop purchase attempt (success, already_owned, insufficient_gems, not_found, conflict)"""
    if not metrics.enabled:
        return
    metrics.shop_purchases_total.labels(outcome=outcome).inc()


def track_milestone_gems(amount: int):
    if not metrics.enabled:
        return
    metrics.milestone_gems_total.inc(amount)


def track_penalty(severity: str):
    if not metrics.enabled:
        return
    metrics.penalties_total.labels(severity=severity).inc()


@contextmanager
def track_missed_workout_sweep():
    """Track one missed-workout sweep run"""
    if not metrics.enabled:
        yield
        return

    start_time = time.time()
    status = "error"  # Default to error

    try:
        yield
        status = "success"
    finally:
        metrics.missed_workout_sweep_duration_seconds.observe(time.time() - start_time)
        metrics.missed_workout_sweeps_total.labels(status=status).inc()
