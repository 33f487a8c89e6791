"""
Prometheus metrics exporter for the admission governor.

Exports low-cardinality metrics only. No path, database or case labels.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from prometheus_client import Counter, Gauge
from prometheus_client.registry import CollectorRegistry

if TYPE_CHECKING:
    from canlii_mcp.connectors.governor import AdmissionGovernor


# Forbidden labels that would cause cardinality explosion
FORBIDDEN_LABELS = frozenset(
    {
        "path",
        "endpoint",
        "query",
        "database_id",
        "case_id",
        "legislation_id",
        "api_key",
    }
)


class MetricsExporter:
    """
    Prometheus metrics exporter for the AdmissionGovernor.

    Metric names:
    - canlii_gov_* : AdmissionGovernor metrics

    Usage:
        registry = CollectorRegistry()
        exporter = MetricsExporter(registry=registry)
        exporter.update(governor)
        # generate_latest(registry) -> bytes for /metrics endpoint
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self._registry = registry or CollectorRegistry()

        # Gauges
        self._gov_current_queue_depth = Gauge(
            "canlii_gov_current_queue_depth",
            "Current number of callers waiting for the governor token",
            registry=self._registry,
        )
        self._gov_in_flight = Gauge(
            "canlii_gov_in_flight",
            "1 while an upstream request holds the governor token",
            registry=self._registry,
        )
        self._gov_daily_count = Gauge(
            "canlii_gov_daily_count",
            "Admissions counted in the current quota epoch",
            registry=self._registry,
        )
        self._gov_daily_quota = Gauge(
            "canlii_gov_daily_quota",
            "Daily admission quota configured for the governor",
            registry=self._registry,
        )
        self._gov_max_wait_ms = Gauge(
            "canlii_gov_max_wait_ms",
            "Longest observed wait from acquire() to admission in milliseconds",
            registry=self._registry,
        )

        # Counters
        self._gov_requests_admitted = Counter(
            "canlii_gov_requests_admitted",
            "Total requests admitted by the governor",
            registry=self._registry,
        )
        self._gov_requests_deferred = Counter(
            "canlii_gov_requests_deferred",
            "Total requests admitted after waiting in the queue",
            registry=self._registry,
        )
        self._gov_requests_rejected_quota = Counter(
            "canlii_gov_requests_rejected_quota",
            "Total requests rejected because the daily quota was exhausted",
            registry=self._registry,
        )
        self._gov_spacing_delays = Counter(
            "canlii_gov_spacing_delays",
            "Total admissions that waited out the minimum interval",
            registry=self._registry,
        )
        self._gov_wait_ms = Counter(
            "canlii_gov_wait_ms",
            "Total milliseconds spent between acquire() and admission",
            registry=self._registry,
        )

        # Track last seen values for counter increments (counters are monotonic)
        self._last_admitted = 0
        self._last_deferred = 0
        self._last_rejected_quota = 0
        self._last_spacing_delays = 0
        self._last_wait_ms = 0

    @property
    def registry(self) -> CollectorRegistry:
        """Get the Prometheus CollectorRegistry."""
        return self._registry

    def update(self, governor: AdmissionGovernor) -> None:
        """
        Sync governor metrics into Prometheus.

        Call on every scrape or on a timer.
        """
        metrics = governor.metrics

        self._gov_current_queue_depth.set(metrics.current_queue_depth)
        self._gov_in_flight.set(metrics.current_in_flight)
        self._gov_daily_count.set(metrics.daily_count)
        self._gov_daily_quota.set(governor.config.daily_quota)
        self._gov_max_wait_ms.set(metrics.max_wait_ms)

        self._last_admitted = self._inc_delta(
            self._gov_requests_admitted, metrics.requests_admitted, self._last_admitted
        )
        self._last_deferred = self._inc_delta(
            self._gov_requests_deferred, metrics.requests_deferred, self._last_deferred
        )
        self._last_rejected_quota = self._inc_delta(
            self._gov_requests_rejected_quota,
            metrics.requests_rejected_quota,
            self._last_rejected_quota,
        )
        self._last_spacing_delays = self._inc_delta(
            self._gov_spacing_delays, metrics.spacing_delays, self._last_spacing_delays
        )
        self._last_wait_ms = self._inc_delta(
            self._gov_wait_ms, metrics.total_wait_ms, self._last_wait_ms
        )

    @staticmethod
    def _inc_delta(counter: Counter, current: int, last: int) -> int:
        delta = current - last
        if delta > 0:
            counter.inc(delta)
        return current

    def reset_counter_tracking(self) -> None:
        """
        Reset internal counter tracking.

        Use after governor.reset(). Does NOT reset the Prometheus counters.
        """
        self._last_admitted = 0
        self._last_deferred = 0
        self._last_rejected_quota = 0
        self._last_spacing_delays = 0
        self._last_wait_ms = 0


# Counters are exported with _total suffix by prometheus_client
REQUIRED_METRIC_NAMES: frozenset[str] = frozenset(
    {
        "canlii_gov_current_queue_depth",
        "canlii_gov_in_flight",
        "canlii_gov_daily_count",
        "canlii_gov_daily_quota",
        "canlii_gov_max_wait_ms",
        "canlii_gov_requests_admitted_total",
        "canlii_gov_requests_deferred_total",
        "canlii_gov_requests_rejected_quota_total",
        "canlii_gov_spacing_delays_total",
        "canlii_gov_wait_ms_total",
    }
)
