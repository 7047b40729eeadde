"""
Shared metrics configuration for the Product Catalog Access service.
"""

from typing import Dict, Any, Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, Info, generate_latest


class MetricsCollector:
    """Centralized metrics collector for services.

    Each collector owns its own registry so several service instances (for
    example one per test) can coexist in a single process.
    """

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry if registry is not None else CollectorRegistry()
        self._metrics: Dict[str, Any] = {}
        self._setup_metrics()

    def _setup_metrics(self):
        """Set up common metrics for the service."""

        # Service info
        self._metrics["service_info"] = Info(
            "service_info",
            "Service information",
            registry=self.registry
        )
        self._metrics["service_info"].info({
            "service": self.service_name,
            "version": "1.0.0"
        })

        # HTTP metrics
        self._metrics["http_requests_total"] = Counter(
            "http_requests_total",
            "Total HTTP requests",
            ["method", "endpoint", "status_code"],
            registry=self.registry
        )

        self._metrics["http_request_duration_seconds"] = Histogram(
            "http_request_duration_seconds",
            "HTTP request duration in seconds",
            ["method", "endpoint"],
            registry=self.registry
        )

        # Health check metrics
        self._metrics["health_check_total"] = Counter(
            "health_check_total",
            "Total health check requests",
            ["status"],
            registry=self.registry
        )

        # Error metrics
        self._metrics["errors_total"] = Counter(
            "errors_total",
            "Total errors",
            ["error_type", "service"],
            registry=self.registry
        )

        self._setup_cache_metrics()
        self._setup_database_metrics()
        self._setup_admission_metrics()

    def _setup_cache_metrics(self):
        """Set up cache-aside metrics."""
        self._metrics["cache_lookups_total"] = Counter(
            "cache_lookups_total",
            "Cache lookups by operation and result (hit, miss, error, corrupt)",
            ["operation", "result"],
            registry=self.registry
        )

        self._metrics["cache_writes_total"] = Counter(
            "cache_writes_total",
            "Cache writes by operation and result (stored, error)",
            ["operation", "result"],
            registry=self.registry
        )

    def _setup_database_metrics(self):
        """Set up query executor metrics."""
        self._metrics["db_queries_total"] = Counter(
            "db_queries_total",
            "Database queries by operation and status",
            ["operation", "status"],
            registry=self.registry
        )

        self._metrics["db_query_duration_seconds"] = Histogram(
            "db_query_duration_seconds",
            "Database query duration in seconds",
            ["operation"],
            registry=self.registry
        )

    def _setup_admission_metrics(self):
        """Set up admission controller metrics."""
        self._metrics["admission_active_requests"] = Gauge(
            "admission_active_requests",
            "Requests currently admitted",
            registry=self.registry
        )

        self._metrics["admission_queue_depth"] = Gauge(
            "admission_queue_depth",
            "Requests waiting for an admission slot",
            registry=self.registry
        )

        self._metrics["admission_events_total"] = Counter(
            "admission_events_total",
            "Admission events (admitted, queued, promoted, timed_out, rejected, cancelled)",
            ["event"],
            registry=self.registry
        )

        self._metrics["admission_wait_seconds"] = Histogram(
            "admission_wait_seconds",
            "Time spent queued before promotion",
            registry=self.registry
        )

    def export(self) -> bytes:
        """Render the registry in Prometheus text exposition format."""
        return generate_latest(self.registry)

    def record_http_request(self, method: str, endpoint: str, status_code: int, duration: float):
        """Record HTTP request metrics."""
        self._metrics["http_requests_total"].labels(
            method=method,
            endpoint=endpoint,
            status_code=str(status_code)
        ).inc()

        self._metrics["http_request_duration_seconds"].labels(
            method=method,
            endpoint=endpoint
        ).observe(duration)

    def record_health_check(self, status: str):
        """Record health check metrics."""
        self._metrics["health_check_total"].labels(status=status).inc()

    def record_error(self, error_type: str, service: Optional[str] = None):
        """Record error metrics."""
        service_name = service or self.service_name
        self._metrics["errors_total"].labels(error_type=error_type, service=service_name).inc()

    def increment_counter(self, metric_name: str, **labels):
        """Increment a counter metric."""
        if metric_name in self._metrics:
            if labels:
                self._metrics[metric_name].labels(**labels).inc()
            else:
                self._metrics[metric_name].inc()

    def set_gauge(self, metric_name: str, value: float, **labels):
        """Set a gauge metric value."""
        if metric_name in self._metrics:
            if labels:
                self._metrics[metric_name].labels(**labels).set(value)
            else:
                self._metrics[metric_name].set(value)

    def observe_histogram(self, metric_name: str, value: float, **labels):
        """Observe a histogram metric."""
        if metric_name in self._metrics:
            if labels:
                self._metrics[metric_name].labels(**labels).observe(value)
            else:
                self._metrics[metric_name].observe(value)


def get_metrics_collector(service_name: str, registry: Optional[CollectorRegistry] = None) -> MetricsCollector:
    """Get a metrics collector for a service."""
    return MetricsCollector(service_name, registry)
