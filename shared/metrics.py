"""
Shared metrics configuration for the dashboard data layer.
"""

from typing import Any, Dict, Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, Info


class CacheMetrics:
    """Prometheus metrics for the query cache and its mutations.

    Each instance registers into its own ``CollectorRegistry`` unless one is
    supplied, so several data layers can coexist in one process.
    """

    def __init__(self, app_name: str, registry: Optional[CollectorRegistry] = None):
        self.app_name = app_name
        self.registry = registry if registry is not None else CollectorRegistry()
        self._metrics: Dict[str, Any] = {}
        self._setup_metrics()

    def _setup_metrics(self):
        """Set up the query cache metrics."""
        self._metrics["app_info"] = Info(
            "dashboard_data_layer",
            "Data layer information",
            registry=self.registry
        )
        self._metrics["app_info"].info({"app": self.app_name, "version": "1.0.0"})

        self._metrics["query_cache_hits_total"] = Counter(
            "query_cache_hits_total",
            "Reads answered from a fresh cache entry",
            ["entity"],
            registry=self.registry
        )

        self._metrics["query_fetches_total"] = Counter(
            "query_fetches_total",
            "Network fetches performed by the query accessor",
            ["entity", "result"],
            registry=self.registry
        )

        self._metrics["query_fetch_duration_seconds"] = Histogram(
            "query_fetch_duration_seconds",
            "Query fetch duration in seconds",
            ["entity"],
            registry=self.registry
        )

        self._metrics["mutations_total"] = Counter(
            "mutations_total",
            "Mutations by operation and outcome",
            ["entity", "operation", "result"],
            registry=self.registry
        )

        self._metrics["optimistic_rollbacks_total"] = Counter(
            "optimistic_rollbacks_total",
            "Optimistic updates restored from snapshot",
            ["entity"],
            registry=self.registry
        )

        self._metrics["invalidations_total"] = Counter(
            "invalidations_total",
            "Cache entries marked invalid at settlement",
            ["entity"],
            registry=self.registry
        )

        self._metrics["cached_queries"] = Gauge(
            "cached_queries",
            "Number of entries held by the query cache",
            registry=self.registry
        )

    def increment_counter(self, metric_name: str, amount: float = 1.0, **labels):
        """Increment a counter metric."""
        if metric_name in self._metrics:
            self._metrics[metric_name].labels(**labels).inc(amount)

    def set_gauge(self, metric_name: str, value: float, **labels):
        """Set a gauge metric value."""
        if metric_name in self._metrics:
            metric = self._metrics[metric_name]
            (metric.labels(**labels) if labels else metric).set(value)

    def observe_histogram(self, metric_name: str, value: float, **labels):
        """Observe a histogram metric."""
        if metric_name in self._metrics:
            self._metrics[metric_name].labels(**labels).observe(value)

    def sample(self, metric_name: str, **labels) -> float:
        """Current value of a counter or gauge sample (0.0 when absent)."""
        value = self.registry.get_sample_value(metric_name, labels)
        return value or 0.0
