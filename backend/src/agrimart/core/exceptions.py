"""Service-layer error taxonomy.

Each error carries the HTTP status it maps to so the API layer can render
every failure with the same ``{"success": false, "message": ...}`` body.
"""

from typing import Any


class ServiceError(Exception):
    """Base class for errors raised by the service layer."""

    status_code = 400

    def __init__(self, message: str, errors: list[str] | None = None):
        super().__init__(message)
        self.message = message
        self.errors = errors or []


class ValidationFailedError(ServiceError):
    """Missing or invalid request data."""

    status_code = 400


class NotFoundError(ServiceError):
    """Entity lookup failed."""

    status_code = 404


class ForbiddenError(ServiceError):
    """Caller does not own the resource."""

    status_code = 403


class ConflictError(ServiceError):
    """Business rule prevents the transition."""

    status_code = 409


class InsufficientStockError(ServiceError):
    """Requested quantity exceeds available stock."""

    status_code = 400


class StockResolutionError(ServiceError):
    """Product, seller or size no longer resolves for an order item."""

    status_code = 409


class UpstreamServiceError(ServiceError):
    """A third-party dependency failed; the provider message is passed through."""

    status_code = 500

    def __init__(
        self,
        message: str,
        status: int | None = None,
        payload: Any = None,
    ):
        super().__init__(message)
        self.upstream_status = status
        self.payload = payload


class PaymentGatewayError(UpstreamServiceError):
    """Raised for payment gateway failures."""

    pass


class ShippingProviderError(UpstreamServiceError):
    """Raised for shipping provider failures."""

    pass


class InvalidSignatureError(ServiceError):
    """Webhook signature did not match the shared secret."""

    status_code = 400
