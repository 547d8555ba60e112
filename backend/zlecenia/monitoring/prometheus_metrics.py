"""
Prometheus metrics module for the zlecenia backend.

Service operation metrics are fed by the @measure_operation decorator; chat
metrics are fed by the connection registry and the command processor.
"""

from threading import Lock
from time import monotonic
from typing import Optional, cast

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

# Create a custom registry to avoid conflicts with default metrics
REGISTRY = CollectorRegistry()

http_request_duration_seconds = Histogram(
    "zlecenia_http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint", "status_code"],
    registry=REGISTRY,
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

http_requests_total = Counter(
    "zlecenia_http_requests_total",
    "Total number of HTTP requests",
    ["method", "endpoint", "status_code"],
    registry=REGISTRY,
)

service_operation_duration_seconds = Histogram(
    "zlecenia_service_operation_duration_seconds",
    "Service operation duration in seconds",
    ["service", "operation"],
    registry=REGISTRY,
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

service_operations_total = Counter(
    "zlecenia_service_operations_total",
    "Total number of service operations",
    ["service", "operation", "status"],
    registry=REGISTRY,
)

errors_total = Counter(
    "zlecenia_errors_total",
    "Total number of errors",
    ["service", "operation", "error_type"],
    registry=REGISTRY,
)

# Chat metrics
chat_active_connections = Gauge(
    "zlecenia_chat_active_connections",
    "Number of registered chat WebSocket connections",
    registry=REGISTRY,
)

chat_events_delivered_total = Counter(
    "zlecenia_chat_events_delivered_total",
    "Events pushed into connection queues",
    ["event_type"],
    registry=REGISTRY,
)

chat_delivery_failures_total = Counter(
    "zlecenia_chat_delivery_failures_total",
    "Events dropped for a connection (closed or full queue)",
    ["reason"],
    registry=REGISTRY,
)

chat_commands_total = Counter(
    "zlecenia_chat_commands_total",
    "Chat commands processed",
    ["cmd", "status"],
    registry=REGISTRY,
)

chat_notifications_received_total = Counter(
    "zlecenia_chat_notifications_received_total",
    "Notifications received by listeners",
    ["outcome"],
    registry=REGISTRY,
)


class PrometheusMetrics:
    """Manages Prometheus metrics collection and exposure."""

    _cache_lock: Lock = Lock()
    _cache_payload: Optional[bytes] = None
    _cache_ts: Optional[float] = None
    _cache_ttl_seconds: float = 1.0

    @staticmethod
    def record_http_request(method: str, endpoint: str, duration: float, status_code: int) -> None:
        labels = {"method": method, "endpoint": endpoint, "status_code": str(status_code)}

        http_request_duration_seconds.labels(**labels).observe(duration)
        http_requests_total.labels(**labels).inc()
        PrometheusMetrics._invalidate_cache()

    @staticmethod
    def record_service_operation(
        service: str,
        operation: str,
        duration: float,
        status: str = "success",
        error_type: Optional[str] = None,
    ) -> None:
        """
        Record service operation metrics from @measure_operation decorator.

        Args:
            service: Service name (e.g., 'ThreadService')
            operation: Operation/method name (e.g., 'create_or_get')
            duration: Operation duration in seconds
            status: Operation status ('success' or 'error')
            error_type: Type of error if status is 'error'
        """
        service_operation_duration_seconds.labels(service=service, operation=operation).observe(
            duration
        )
        service_operations_total.labels(service=service, operation=operation, status=status).inc()
        if status == "error" and error_type:
            errors_total.labels(service=service, operation=operation, error_type=error_type).inc()
        PrometheusMetrics._invalidate_cache()

    # Chat helpers
    @staticmethod
    def set_chat_connections(count: int) -> None:
        chat_active_connections.set(count)
        PrometheusMetrics._invalidate_cache()

    @staticmethod
    def inc_chat_delivered(event_type: str, count: int = 1) -> None:
        if count > 0:
            chat_events_delivered_total.labels(event_type=event_type).inc(count)
            PrometheusMetrics._invalidate_cache()

    @staticmethod
    def inc_chat_delivery_failure(reason: str) -> None:
        chat_delivery_failures_total.labels(reason=reason).inc()
        PrometheusMetrics._invalidate_cache()

    @staticmethod
    def inc_chat_command(cmd: str, status: str) -> None:
        chat_commands_total.labels(cmd=cmd, status=status).inc()
        PrometheusMetrics._invalidate_cache()

    @staticmethod
    def inc_chat_notification(outcome: str) -> None:
        chat_notifications_received_total.labels(outcome=outcome).inc()
        PrometheusMetrics._invalidate_cache()

    @staticmethod
    def get_metrics() -> bytes:
        """
        Generate Prometheus metrics in exposition format.

        Returns:
            Metrics data in Prometheus text format
        """
        now = monotonic()
        payload = PrometheusMetrics._cache_payload
        ts = PrometheusMetrics._cache_ts

        if payload is not None and ts is not None and (now - ts) <= PrometheusMetrics._cache_ttl_seconds:
            return payload

        with PrometheusMetrics._cache_lock:
            payload = PrometheusMetrics._cache_payload
            ts = PrometheusMetrics._cache_ts
            if payload is None or ts is None or (now - ts) > PrometheusMetrics._cache_ttl_seconds:
                PrometheusMetrics._cache_payload = cast(bytes, generate_latest(REGISTRY))
                PrometheusMetrics._cache_ts = monotonic()
                payload = PrometheusMetrics._cache_payload

        return cast(bytes, payload)

    @staticmethod
    def get_content_type() -> str:
        return cast(str, CONTENT_TYPE_LATEST)

    @staticmethod
    def _invalidate_cache() -> None:
        with PrometheusMetrics._cache_lock:
            PrometheusMetrics._cache_ts = None
            PrometheusMetrics._cache_payload = None


# Singleton instance
prometheus_metrics = PrometheusMetrics()
