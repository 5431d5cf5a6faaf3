"""
Workflow storefront API

Wires the checkout, webhook, download and health routers into one FastAPI
app, with error rendering, CORS for the storefront frontend and request
metrics.
"""
# Sentry hooks must be installed before FastAPI is imported
import core.observability  # noqa: F401

import time
import traceback

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from core.config import settings
from core.exceptions import StorefrontError
from core.logging import get_logger
from core.metrics import get_metrics_response, metrics
from database.session import init_db

logger = get_logger(__name__)

app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Stripe checkout, webhook fulfillment and gated workflow downloads",
)

# slowapi renders 429 as {"error": "Rate limit exceeded: ..."}
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Only the storefront frontend calls this API from a browser
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url],
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["Authorization", "Content-Type"],
)


@app.middleware("http")
async def track_requests(request: Request, call_next):
    """Record count and latency per route template"""
    if request.url.path == "/metrics":
        return await call_next(request)

    started = time.perf_counter()
    response = await call_next(request)

    # Templates, not raw paths, keep product and session ids out of the labels
    route = request.scope.get("route")
    metrics.track_request(
        method=request.method,
        endpoint=getattr(route, "path", None) or "unmatched",
        status=response.status_code,
        duration=time.perf_counter() - started,
    )
    return response


def _error_content(exc: Exception, message: str, status_code: int) -> dict:
    content = {"error": message}
    if status_code >= 500 and settings.is_development:
        content["details"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return content


# Exception handlers
@app.exception_handler(StorefrontError)
async def storefront_error_handler(request: Request, exc: StorefrontError):
    """Handle custom storefront errors"""
    if exc.status_code >= 500:
        logger.error(
            f"Storefront error - error_code: {exc.error_code}, details: {exc.details}, path: {request.url.path}",
            exc_info=exc,
        )
        metrics.track_error(exc.error_code, "api")
    else:
        logger.warning(f"Request rejected - error_code: {exc.error_code}, status: {exc.status_code}, path: {request.url.path}")

    return JSONResponse(status_code=exc.status_code, content=_error_content(exc, exc.message, exc.status_code))


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    """Malformed requests are client errors, reported as 400"""
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    logger.warning(f"Request validation failed - path: {request.url.path}, errors: {len(errors)}")

    return JSONResponse(
        status_code=400,
        content={"error": f"{location}: {message}" if location else message},
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected errors"""
    logger.exception(f"Unexpected error - path: {request.url.path}", exc_info=exc)
    metrics.track_error(type(exc).__name__, "api")
    return JSONResponse(status_code=500, content=_error_content(exc, "Internal server error", 500))


@app.get("/metrics", include_in_schema=False)
async def prometheus_metrics():
    """Expose metrics for Prometheus scraping"""
    if not settings.prometheus_enabled:
        return JSONResponse(status_code=404, content={"error": "Metrics not enabled"})

    metrics_data, content_type = get_metrics_response()
    return Response(content=metrics_data, media_type=content_type)


@app.on_event("startup")
async def startup_event():
    """Initialize application on startup"""
    init_db()
    logger.info(
        f"Starting {settings.app_name} version={settings.app_version} environment={settings.environment} "
        f"stripe_configured={bool(settings.stripe_secret_key)}"
    )


@app.on_event("shutdown")
async def shutdown_event():
    logger.info(f"Shutting down {settings.app_name}")


# Routers are imported after the app so handlers above are registered first
from api.health import router as health_router  # noqa: E402
from downloads.api import router as downloads_router  # noqa: E402
from storefront.api import limiter  # noqa: E402
from storefront.api import router as storefront_router  # noqa: E402

# slowapi looks the limiter up on app.state
app.state.limiter = limiter

# Note: each router already includes the /api prefix in its definition
app.include_router(health_router)
app.include_router(storefront_router)
app.include_router(downloads_router)


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.is_development,
        log_level=settings.log_level.lower(),
    )
