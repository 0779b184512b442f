"""
Metrics Collection with Prometheus.

Exposes fulfillment and commerce API metrics for monitoring.
"""

from enum import Enum

from prometheus_client import Counter, Gauge, Histogram, Info

from digital_goods.config import settings


class MetricLabels(str, Enum):
    """Standard metric label names."""

    ENDPOINT = "endpoint"
    METHOD = "method"
    STATUS_CODE = "status_code"
    OPERATION = "operation"
    INTENT = "intent"
    OUTCOME = "outcome"
    ERROR_TYPE = "error_type"


class FulfillmentMetrics:
    """
    Centralized metrics for the fulfillment webhook.

    Covers:
    - HTTP requests (rate, duration, errors)
    - Intents handled (rate, outcome)
    - Commerce API calls (rate, duration, success/failure)
    - Purchase outcomes reported by the platform
    """

    def __init__(self) -> None:
        """Initialize all Prometheus metrics."""

        self.service_info = Info(
            "fulfillment_service",
            "Service information",
        )
        self.service_info.info(
            {
                "version": settings.api_version,
                "service_name": settings.service_name,
                "package_name": settings.package_name,
            }
        )

        self.http_requests_total = Counter(
            "fulfillment_http_requests_total",
            "Total HTTP requests",
            [MetricLabels.ENDPOINT, MetricLabels.METHOD, MetricLabels.STATUS_CODE],
        )

        self.http_request_duration_seconds = Histogram(
            "fulfillment_http_request_duration_seconds",
            "HTTP request duration in seconds",
            [MetricLabels.ENDPOINT, MetricLabels.METHOD],
            buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
        )

        self.http_requests_in_progress = Gauge(
            "fulfillment_http_requests_in_progress",
            "Number of HTTP requests currently being processed",
            [MetricLabels.ENDPOINT, MetricLabels.METHOD],
        )

        self.intents_total = Counter(
            "fulfillment_intents_total",
            "Total intents handled",
            [MetricLabels.INTENT, MetricLabels.OUTCOME],
        )

        self.commerce_calls_total = Counter(
            "fulfillment_commerce_calls_total",
            "Total commerce API calls",
            [MetricLabels.OPERATION, "success"],
        )

        self.commerce_call_duration_seconds = Histogram(
            "fulfillment_commerce_call_duration_seconds",
            "Commerce API call duration in seconds",
            [MetricLabels.OPERATION],
            buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
        )

        self.purchase_outcomes_total = Counter(
            "fulfillment_purchase_outcomes_total",
            "Purchase outcomes reported by the platform",
            ["status"],
        )

        self.errors_total = Counter(
            "fulfillment_errors_total",
            "Total errors by type",
            [MetricLabels.ERROR_TYPE, MetricLabels.OPERATION],
        )


    def record_http_request(
        self, endpoint: str, method: str, status_code: int, duration: float
    ) -> None:
        """Record HTTP request metrics."""
        self.http_requests_total.labels(
            endpoint=endpoint, method=method, status_code=status_code
        ).inc()
        self.http_request_duration_seconds.labels(endpoint=endpoint, method=method).observe(
            duration
        )

    def record_intent(self, intent: str, outcome: str) -> None:
        """Record a handled intent."""
        self.intents_total.labels(intent=intent, outcome=outcome).inc()

    def record_commerce_call(self, operation: str, success: bool, duration: float) -> None:
        """Record commerce API call metrics."""
        self.commerce_calls_total.labels(operation=operation, success=str(success)).inc()
        self.commerce_call_duration_seconds.labels(operation=operation).observe(duration)

    def record_purchase_outcome(self, status: str) -> None:
        """Record a purchase outcome. Unknown statuses share one label value."""
        self.purchase_outcomes_total.labels(status=status).inc()

    def record_error(self, error_type: str, operation: str) -> None:
        """Record error occurrence."""
        self.errors_total.labels(error_type=error_type, operation=operation).inc()


# Global metrics instance
metrics = FulfillmentMetrics()
