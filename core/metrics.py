"""
Core metrics collection for the storefront using Prometheus
"""
from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, Counter, Histogram, Info, generate_latest

from core.config import settings
from core.logging import get_logger

# Create a global registry for the application
REGISTRY = CollectorRegistry()

app_info = Info("storefront_app", "Storefront application information", registry=REGISTRY)

# Request metrics
request_count = Counter(
    "storefront_http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
    registry=REGISTRY,
)

request_duration = Histogram(
    "storefront_http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=(0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0),
    registry=REGISTRY,
)

# Payment flow metrics
checkout_sessions_created = Counter(
    "storefront_checkout_sessions_total",
    "Checkout session creation attempts",
    ["status"],
    registry=REGISTRY,
)

webhook_events = Counter(
    "storefront_webhook_events_total",
    "Verified webhook events by type and outcome",
    ["event_type", "outcome"],
    registry=REGISTRY,
)

webhook_signature_failures = Counter(
    "storefront_webhook_signature_failures_total",
    "Webhook requests rejected during signature verification",
    registry=REGISTRY,
)

purchases_fulfilled = Counter(
    "storefront_purchases_fulfilled_total",
    "Purchases recorded by the fulfillment handler",
    registry=REGISTRY,
)

revenue_total = Counter(
    "storefront_revenue_total",
    "Total revenue in major currency units",
    ["currency"],
    registry=REGISTRY,
)

downloads = Counter(
    "storefront_downloads_total",
    "Download gate decisions",
    ["outcome"],
    registry=REGISTRY,
)

# Error metrics
error_count = Counter(
    "storefront_errors_total",
    "Total number of errors",
    ["error_type", "domain"],
    registry=REGISTRY,
)


class MetricsCollector:
    """Helper class for collecting metrics"""

    def __init__(self):
        self.logger = get_logger("metrics")
        app_info.info({"version": settings.app_version, "environment": settings.environment})

    def track_request(self, method: str, endpoint: str, status: int, duration: float):
        """Track HTTP request metrics"""
        request_count.labels(method=method, endpoint=endpoint, status=str(status)).inc()
        request_duration.labels(method=method, endpoint=endpoint).observe(duration)

    def track_checkout_session(self, status: str = "created"):
        checkout_sessions_created.labels(status=status).inc()

    def track_webhook_event(self, event_type: str, outcome: str):
        webhook_events.labels(event_type=event_type, outcome=outcome).inc()

    def track_signature_failure(self):
        webhook_signature_failures.inc()

    def track_purchase(self, amount: float, currency: str):
        """Track purchase completion"""
        purchases_fulfilled.inc()
        revenue_total.labels(currency=currency or "unknown").inc(amount)

    def track_download(self, outcome: str):
        downloads.labels(outcome=outcome).inc()

    def track_error(self, error_type: str, domain: str):
        """Track errors"""
        error_count.labels(error_type=error_type, domain=domain).inc()

    def get_metrics(self) -> bytes:
        """Get current metrics in Prometheus format"""
        return generate_latest(REGISTRY)


# Global metrics collector instance
metrics = MetricsCollector()


def get_metrics_response() -> tuple[bytes, str]:
    """Get metrics response for Prometheus endpoint"""
    return metrics.get_metrics(), CONTENT_TYPE_LATEST
