"""
Storefront Webhooks

Stripe webhook processor: signature verification, at-most-once dispatch per
event id and routing of verified events to their handlers.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from core.logging import get_logger
from core.metrics import metrics

from .fulfillment import FulfillmentResult, PurchaseFulfillmentHandler
from .stores import WebhookEventStore
from .stripe_client import StripeGateway, WebhookSignatureError

logger = get_logger(__name__, domain="storefront")


class WebhookEventType(Enum):
    """Stripe webhook event types we handle"""

    CHECKOUT_SESSION_COMPLETED = "checkout.session.completed"
    PAYMENT_INTENT_SUCCEEDED = "payment_intent.succeeded"
    INVOICE_PAYMENT_SUCCEEDED = "invoice.payment_succeeded"


class WebhookStatus(Enum):
    """Webhook processing status"""

    COMPLETED = "completed"
    IGNORED = "ignored"
    DUPLICATE = "duplicate"
    FAILED = "failed"


@dataclass
class WebhookResult:
    event_id: str
    event_type: str
    status: WebhookStatus
    fulfillment: Optional[FulfillmentResult] = None
    error: Optional[str] = None


class WebhookProcessor:
    """
    Main webhook processor for Stripe events

    The signature is verified before anything else; a failure raises
    ``WebhookSignatureError`` and leaves no trace in the event store. Verified
    events are claimed in the event store so a redelivered event runs its
    handler at most once. Handler exceptions are recorded as failed and never
    propagate, since Stripe only needs an acknowledgement.
    """

    def __init__(
        self,
        gateway: StripeGateway,
        event_store: WebhookEventStore,
        fulfillment: PurchaseFulfillmentHandler,
    ):
        self.gateway = gateway
        self.event_store = event_store
        self.fulfillment = fulfillment

    def construct_event(self, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        if not signature:
            metrics.track_signature_failure()
            raise WebhookSignatureError("Missing stripe-signature header")

        try:
            return self.gateway.construct_event(payload, signature)
        except WebhookSignatureError as e:
            metrics.track_signature_failure()
            logger.warning(f"Webhook signature verification failed: {e.message}")
            raise

    def process_webhook(self, payload: bytes, signature: Optional[str]) -> WebhookResult:
        event = self.construct_event(payload, signature)

        event_id = event.get("id")
        event_type = event.get("type") or "unknown"
        if not event_id:
            # Verified but unidentifiable, nothing to deduplicate on
            logger.warning(f"Ignoring webhook event of type {event_type} without an id")
            return WebhookResult(event_id="", event_type=event_type, status=WebhookStatus.IGNORED)

        if not self.event_store.claim(event_id, event_type):
            logger.info(f"Duplicate event detected: {event_id}")
            metrics.track_webhook_event(event_type, WebhookStatus.DUPLICATE.value)
            return WebhookResult(event_id=event_id, event_type=event_type, status=WebhookStatus.DUPLICATE)

        logger.info(f"Processing webhook event {event_id} of type {event_type}")

        try:
            result = self._dispatch(event_id, event_type, event.get("data") or {})
        except Exception as e:
            logger.exception(f"Error processing event {event_id} of type {event_type}")
            self.event_store.mark_failed(event_id, f"{type(e).__name__}: {e}")
            metrics.track_webhook_event(event_type, WebhookStatus.FAILED.value)
            return WebhookResult(
                event_id=event_id,
                event_type=event_type,
                status=WebhookStatus.FAILED,
                error=str(e),
            )

        self.event_store.mark_completed(event_id)
        metrics.track_webhook_event(event_type, result.status.value)
        return result

    def _dispatch(self, event_id: str, event_type: str, event_data: Dict[str, Any]) -> WebhookResult:
        obj = event_data.get("object") or {}

        if event_type == WebhookEventType.CHECKOUT_SESSION_COMPLETED.value:
            fulfillment = self.fulfillment.handle_session_completed(obj)
            return WebhookResult(
                event_id=event_id,
                event_type=event_type,
                status=WebhookStatus.COMPLETED,
                fulfillment=fulfillment,
            )

        if event_type == WebhookEventType.PAYMENT_INTENT_SUCCEEDED.value:
            logger.info(f"Payment succeeded: {obj.get('id')}")
        elif event_type == WebhookEventType.INVOICE_PAYMENT_SUCCEEDED.value:
            logger.info(f"Invoice paid: {obj.get('id')}")
        else:
            logger.info(f"Unhandled event type: {event_type}")
            return WebhookResult(event_id=event_id, event_type=event_type, status=WebhookStatus.IGNORED)

        return WebhookResult(event_id=event_id, event_type=event_type, status=WebhookStatus.COMPLETED)
