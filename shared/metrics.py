"""
Shared metrics configuration for the rules engine.
"""

from prometheus_client import Counter, Histogram, Info, start_http_server, CollectorRegistry
from typing import Dict, Any, Optional


class MetricsCollector:
    """Centralized metrics collector for the rules engine."""

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        # A private registry keeps several collectors in one process apart
        self.registry = registry if registry is not None else CollectorRegistry()
        self._metrics: Dict[str, Any] = {}
        self._setup_metrics()

    def _setup_metrics(self):
        """Set up the rules engine metrics."""

        self._metrics["service_info"] = Info(
            "service_info",
            "Service information",
            registry=self.registry
        )
        self._metrics["service_info"].info({
            "service": self.service_name,
            "version": "1.0.0"
        })

        self._metrics["errors_total"] = Counter(
            "errors_total",
            "Total errors",
            ["error_type", "service"],
            registry=self.registry
        )

        # Cache metrics
        self._metrics["cache_lookups_total"] = Counter(
            "cache_lookups_total",
            "Total rule tree cache lookups",
            ["result"],
            registry=self.registry
        )

        self._metrics["cache_refresh_total"] = Counter(
            "cache_refresh_total",
            "Outcomes of stale entry reconciliation",
            ["outcome"],
            registry=self.registry
        )

        # Build metrics
        self._metrics["tree_builds_total"] = Counter(
            "tree_builds_total",
            "Total rule tree builds",
            ["outcome"],
            registry=self.registry
        )

        self._metrics["tree_build_duration_seconds"] = Histogram(
            "tree_build_duration_seconds",
            "Rule tree build duration in seconds",
            registry=self.registry
        )

    def get_metric(self, name: str):
        """Get a metric by name."""
        return self._metrics.get(name)

    def start_metrics_server(self, port: int = 9090):
        """Start the Prometheus metrics server."""
        start_http_server(port, registry=self.registry)

    def record_error(self, error_type: str, service: Optional[str] = None):
        """Record error metrics."""
        service_name = service or self.service_name
        self._metrics["errors_total"].labels(error_type=error_type, service=service_name).inc()

    def record_cache_lookup(self, hit: bool):
        """Record a cache hit or miss."""
        self._metrics["cache_lookups_total"].labels(result="hit" if hit else "miss").inc()

    def record_refresh(self, outcome: str):
        """Record the outcome of reconciling a stale entry."""
        self._metrics["cache_refresh_total"].labels(outcome=outcome).inc()

    def record_build(self, outcome: str, duration: float):
        """Record a rule tree build."""
        self._metrics["tree_builds_total"].labels(outcome=outcome).inc()
        self._metrics["tree_build_duration_seconds"].observe(duration)

    def get_sample_value(self, name: str, labels: Optional[Dict[str, str]] = None) -> Optional[float]:
        """Read back a sample from this collector's registry."""
        return self.registry.get_sample_value(name, labels or {})


def get_metrics_collector(service_name: str, registry: Optional[CollectorRegistry] = None) -> MetricsCollector:
    """Get a metrics collector for a service."""
    return MetricsCollector(service_name, registry)
