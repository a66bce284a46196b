"""
Prometheus metrics collection for KidsFind Monitor.

Counts monitoring sessions, alerts, screened calls and API requests so that
the /metrics endpoint can be scraped.
"""

from typing import Optional

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    Info,
    generate_latest,
)

from .. import __version__


class MetricsCollector:
    """Metrics for the monitoring services, bound to one registry."""

    def __init__(self, registry: Optional[CollectorRegistry] = None) -> None:
        # Each collector owns its registry so several apps can live in one process
        self.registry = registry or CollectorRegistry()
        self._initialize_metrics()

    def _initialize_metrics(self) -> None:
        """Initialize all Prometheus metrics."""

        # API Metrics
        self.api_requests_total = Counter(
            "kidsfind_api_requests_total",
            "Total number of API requests",
            ["method", "endpoint", "status_code"],
            registry=self.registry,
        )

        self.api_request_duration_seconds = Histogram(
            "kidsfind_api_request_duration_seconds",
            "API request duration in seconds",
            ["method", "endpoint"],
            buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5],
            registry=self.registry,
        )

        # Session Metrics
        self.sessions_started_total = Counter(
            "kidsfind_sessions_started_total",
            "Monitoring sessions that became active",
            ["service"],
            registry=self.registry,
        )

        self.sessions_ended_total = Counter(
            "kidsfind_sessions_ended_total",
            "Monitoring sessions that reached a terminal status",
            ["service", "status"],
            registry=self.registry,
        )

        self.active_sessions = Gauge(
            "kidsfind_active_sessions",
            "Currently active monitoring sessions",
            ["service"],
            registry=self.registry,
        )

        # Alert Metrics
        self.alerts_raised_total = Counter(
            "kidsfind_alerts_raised_total",
            "Alerts raised for parents",
            ["service", "kind"],
            registry=self.registry,
        )

        self.calls_screened_total = Counter(
            "kidsfind_calls_screened_total",
            "Incoming calls and messages screened",
            ["channel", "decision"],
            registry=self.registry,
        )

        # Error Metrics
        self.errors_total = Counter(
            "kidsfind_errors_total",
            "Total errors by component",
            ["component", "error_type"],
            registry=self.registry,
        )

        self.platform_info = Info(
            "kidsfind_platform",
            "Platform version information",
            registry=self.registry,
        )
        self.platform_info.info({"version": __version__, "component": "kidsfind"})

    def record_api_request(
        self, method: str, endpoint: str, status_code: int, duration: float
    ) -> None:
        """Record API request metrics."""
        self.api_requests_total.labels(
            method=method, endpoint=endpoint, status_code=str(status_code)
        ).inc()

        self.api_request_duration_seconds.labels(
            method=method, endpoint=endpoint
        ).observe(duration)

    def record_session_started(self, service: str) -> None:
        self.sessions_started_total.labels(service=service).inc()
        self.active_sessions.labels(service=service).inc()

    def record_session_ended(
        self, service: str, status: str, was_active: bool = True
    ) -> None:
        self.sessions_ended_total.labels(service=service, status=status).inc()
        if was_active:
            self.active_sessions.labels(service=service).dec()

    def record_alert(self, service: str, kind: str) -> None:
        self.alerts_raised_total.labels(service=service, kind=kind).inc()

    def record_screening(self, channel: str, blocked: bool) -> None:
        self.calls_screened_total.labels(
            channel=channel, decision="blocked" if blocked else "allowed"
        ).inc()

    def record_error(self, component: str, error_type: str) -> None:
        """Record error metrics."""
        self.errors_total.labels(component=component, error_type=error_type).inc()

    def get_metrics(self) -> bytes:
        """Get Prometheus metrics in text format."""
        return generate_latest(self.registry)


def create_metrics_collector() -> MetricsCollector:
    """Create a new metrics collector instance."""
    return MetricsCollector()
