"""
Health check endpoint for external monitoring
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from api.dependencies import get_stripe_gateway
from core.logging import get_logger
from storefront.stripe_client import StripeGateway

logger = get_logger(__name__)
router = APIRouter(prefix="/api", tags=["health"])


class HealthResponse(BaseModel):
    status: str = Field("ok", description="Always 'ok' while the process serves requests")
    timestamp: str = Field(..., description="ISO-8601 UTC time of the check")
    stripe: str = Field(..., description="'connected' when a Stripe secret key is configured")


@router.get("/health", response_model=HealthResponse)
async def health_check(gateway: StripeGateway = Depends(get_stripe_gateway)) -> HealthResponse:
    """
    Liveness probe

    Reports Stripe as connected when a secret key is configured; no call to
    Stripe is made.
    """
    stripe_status = "connected" if gateway.config.is_configured else "disconnected"
    if stripe_status == "disconnected":
        logger.warning("Health check: Stripe secret key is not configured")

    return HealthResponse(
        status="ok",
        timestamp=datetime.now(timezone.utc).isoformat(),
        stripe=stripe_status,
    )
