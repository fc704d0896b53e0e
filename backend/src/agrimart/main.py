import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from agrimart.api.v1 import (
    addresses,
    analytics,
    auth,
    cart,
    news,
    notifications,
    orders,
    payments,
    products,
    schemes,
    shipments,
)
from agrimart.core.config import settings
from agrimart.core.exceptions import ServiceError, UpstreamServiceError
from agrimart.core.redis import close_redis
from agrimart.middleware.metrics import PrometheusMiddleware, metrics_endpoint
from agrimart.schemas.common import ErrorResponse
from agrimart.services.razorpay_client import build_payment_gateway
from agrimart.services.shiprocket_client import build_shipping_client

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown events."""
    logger.info("Starting application...")

    # Provider clients live for the whole process; the shipping client holds
    # the bearer token cache
    app.state.shipping_provider = build_shipping_client(settings)
    app.state.payment_gateway = build_payment_gateway()

    yield

    logger.info("Shutting down, closing Redis connections")
    await close_redis()


app = FastAPI(
    title="AgriMart",
    version="1.0.0",
    description="Agricultural marketplace order, payment and shipment backend",
    lifespan=lifespan,
)

# Prometheus Metrics Middleware (must be first to capture all requests)
app.add_middleware(PrometheusMiddleware)

# CORS Middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# Error rendering: every failure leaves as {"success": false, "message", "errors"}
# =============================================================================

def _error_response(status_code: int, message: str, errors: list[str] | None = None, headers=None):
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(message=message, errors=errors or []).model_dump(),
        headers=headers,
    )


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    if isinstance(exc, UpstreamServiceError):
        logger.error(f"{request.method} {request.url.path} upstream failure: {exc.message}")
    return _error_response(exc.status_code, exc.message, exc.errors)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return _error_response(exc.status_code, str(exc.detail), headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = [
        f"{'.'.join(str(p) for p in err['loc'] if p != 'body')}: {err['msg']}"
        for err in exc.errors()
    ]
    return _error_response(status.HTTP_400_BAD_REQUEST, "Invalid request data", errors)


# Include API routers
app.include_router(auth.router, prefix="/api/v1/auth", tags=["auth"])
app.include_router(products.router, prefix="/api/v1/products", tags=["products"])
app.include_router(cart.router, prefix="/api/v1/cart", tags=["cart"])
app.include_router(addresses.router, prefix="/api/v1/addresses", tags=["addresses"])
app.include_router(orders.router, prefix="/api/v1/orders", tags=["orders"])
app.include_router(payments.router, prefix="/api/v1/payments", tags=["payments"])
app.include_router(shipments.router, prefix="/api/v1/shipments", tags=["shipments"])
app.include_router(notifications.router, prefix="/api/v1/notifications", tags=["notifications"])
app.include_router(analytics.router, prefix="/api/v1/analytics", tags=["analytics"])
app.include_router(news.router, prefix="/api/v1/news", tags=["news"])
app.include_router(schemes.router, prefix="/api/v1/schemes", tags=["schemes"])


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


# Prometheus metrics endpoint
app.add_route("/metrics", metrics_endpoint)
