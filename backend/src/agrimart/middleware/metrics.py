"""Prometheus metrics middleware and order-flow counters."""
import time
from typing import Callable

from prometheus_client import Counter, Gauge, Histogram, generate_latest
from prometheus_client import CONTENT_TYPE_LATEST
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response


# =============================================================================
# Prometheus Metrics Definitions
# =============================================================================

# Request metrics
REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
)

REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["method", "endpoint"],
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_requests_active",
    "Number of active HTTP requests",
)

# Payment webhook metrics
WEBHOOK_EVENTS = Counter(
    "payment_webhook_events_total",
    "Payment webhook deliveries by outcome",
    ["outcome"],  # paid, failed, status, duplicate, mismatch, in_progress, unknown_order, ignored, invalid_signature, error
)

# Stock reconciliation metrics
STOCK_RECONCILIATIONS = Counter(
    "stock_reconciliations_total",
    "Stock reconciliation attempts at payment confirmation",
    ["result"],  # success, insufficient, unresolved
)

# Outbound provider metrics
PROVIDER_LATENCY = Histogram(
    "provider_call_duration_seconds",
    "Latency of calls to the payment gateway and shipping provider",
    ["provider", "operation"],
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 20.0],
)


# =============================================================================
# Metrics Middleware
# =============================================================================

class PrometheusMiddleware(BaseHTTPMiddleware):
    """Middleware to collect Prometheus metrics for all HTTP requests."""

    # Endpoints to normalize for metrics (reduce cardinality)
    ENDPOINT_PATTERNS = {
        "/api/v1/payments/webhook": "/api/v1/payments/webhook",
        "/api/v1/payments": "/api/v1/payments",
        "/api/v1/shipments": "/api/v1/shipments",
        "/api/v1/orders": "/api/v1/orders",
        "/api/v1/cart": "/api/v1/cart",
        "/api/v1/addresses": "/api/v1/addresses",
        "/api/v1/notifications": "/api/v1/notifications",
        "/api/v1/analytics": "/api/v1/analytics",
        "/api/v1/auth": "/api/v1/auth",
        "/api/v1/products": "/api/v1/products",
        "/api/v1/news": "/api/v1/news",
        "/api/v1/schemes": "/api/v1/schemes",
    }

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        # Skip metrics endpoint to avoid recursion
        if request.url.path == "/metrics":
            return await call_next(request)

        # Track active requests
        ACTIVE_REQUESTS.inc()
        start_time = time.perf_counter()

        try:
            response = await call_next(request)
            status_code = response.status_code
        except Exception:
            status_code = 500
            raise
        finally:
            ACTIVE_REQUESTS.dec()
            latency = time.perf_counter() - start_time

            # Normalize endpoint for metrics (reduce cardinality)
            endpoint = self._normalize_endpoint(request.url.path)

            REQUEST_COUNT.labels(
                method=request.method,
                endpoint=endpoint,
                status=status_code,
            ).inc()

            REQUEST_LATENCY.labels(
                method=request.method,
                endpoint=endpoint,
            ).observe(latency)

        return response

    def _normalize_endpoint(self, path: str) -> str:
        """Normalize endpoint path to reduce metric cardinality."""
        for pattern, normalized in self.ENDPOINT_PATTERNS.items():
            if path.startswith(pattern):
                return normalized

        # Keep health and other endpoints as-is
        if path in ("/health", "/metrics"):
            return path

        return "/other"


# =============================================================================
# Metrics Endpoint
# =============================================================================

async def metrics_endpoint(request: Request) -> Response:
    """Prometheus metrics scrape endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )


# =============================================================================
# Helper Functions for Manual Metric Recording
# =============================================================================

def record_webhook(outcome: str) -> None:
    WEBHOOK_EVENTS.labels(outcome=outcome).inc()


def record_reconciliation(result: str) -> None:
    STOCK_RECONCILIATIONS.labels(result=result).inc()


def record_provider_call(provider: str, operation: str, duration: float) -> None:
    """Record latency of an outbound provider call."""
    PROVIDER_LATENCY.labels(provider=provider, operation=operation).observe(duration)
