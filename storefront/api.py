"""
Storefront API

REST endpoints for checkout session creation, success-page verification and
the Stripe webhook receiver. Blocking Stripe and database calls run in the
threadpool.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import PlainTextResponse
from slowapi import Limiter
from slowapi.util import get_remote_address

from api.dependencies import get_checkout_manager, get_fulfillment_handler, get_webhook_processor
from core.config import settings
from core.logging import get_logger

from .checkout import CheckoutManager
from .fulfillment import PurchaseFulfillmentHandler
from .schemas import (
    CreateCheckoutSessionRequest,
    CreateCheckoutSessionResponse,
    DownloadAccess,
    ErrorResponse,
    VerifySessionResponse,
    WebhookAckResponse,
)
from .stripe_client import WebhookSignatureError
from .webhooks import WebhookProcessor

logger = get_logger(__name__, domain="storefront")

router = APIRouter(prefix="/api", tags=["storefront"])

# Rate limiter for checkout creation
limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limit_enabled)


@router.post(
    "/create-checkout-session",
    response_model=CreateCheckoutSessionResponse,
    responses={400: {"model": ErrorResponse}, 429: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    summary="Create a hosted checkout session",
)
# Evaluated per request
@limiter.limit(lambda: settings.checkout_rate_limit)
async def create_checkout_session(
    request: Request,
    body: Optional[CreateCheckoutSessionRequest] = None,
    manager: CheckoutManager = Depends(get_checkout_manager),
) -> CreateCheckoutSessionResponse:
    """
    Create a Stripe checkout session for the cart and return its id

    The frontend redirects the buyer to Stripe with the returned id.
    """
    body = body or CreateCheckoutSessionRequest()

    session_id = await run_in_threadpool(
        manager.create_session,
        body.items or [],
        user_id=body.metadata.user_id,
        customer_email=body.metadata.customer_email,
        metadata_items=body.metadata.items,
    )
    return CreateCheckoutSessionResponse(session_id=session_id)


@router.get(
    "/verify-session",
    response_model=VerifySessionResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    summary="Verify a checkout session was paid",
)
async def verify_session(
    session_id: Optional[str] = Query(None, description="Stripe checkout session id"),
    manager: CheckoutManager = Depends(get_checkout_manager),
    fulfillment: PurchaseFulfillmentHandler = Depends(get_fulfillment_handler),
) -> VerifySessionResponse:
    """
    Confirm payment and hand the buyer their download tokens

    The session id from the success redirect is the buyer's proof of
    purchase. Fulfillment is idempotent, so this also covers a webhook that
    has not arrived yet.
    """
    verified = await run_in_threadpool(manager.verify_session, session_id or "")
    fulfilled = await run_in_threadpool(fulfillment.issue_download_tokens, verified.session)

    return VerifySessionResponse(
        session=verified.session,
        purchased_items=verified.purchased_items,
        downloads=DownloadAccess(user_id=fulfilled.user_id, expires_at=fulfilled.expires_at, tokens=fulfilled.tokens),
    )


@router.post(
    "/webhooks/stripe",
    response_model=WebhookAckResponse,
    responses={400: {"content": {"text/plain": {}}, "description": "Signature verification failed"}},
    summary="Stripe webhook endpoint",
)
async def stripe_webhook(
    request: Request,
    processor: WebhookProcessor = Depends(get_webhook_processor),
):
    """
    Receive a Stripe event

    The raw body is required for signature verification. Once the signature
    passes the event is always acknowledged, whatever its handler did.
    """
    payload = await request.body()
    signature = request.headers.get("stripe-signature")

    try:
        result = await run_in_threadpool(processor.process_webhook, payload, signature)
    except WebhookSignatureError as e:
        return PlainTextResponse(f"Webhook Error: {e.message}", status_code=400)

    logger.info(f"Webhook event {result.event_id} acknowledged with status {result.status.value}")
    return WebhookAckResponse()
