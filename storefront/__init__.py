"""
Storefront & Purchase Flow

Stripe checkout sessions, webhook processing and purchase fulfillment for the
workflow storefront. The HTTP router lives in ``storefront.api``.
"""

from .checkout import CheckoutConfig, CheckoutManager, CheckoutSession, VerifiedSession
from .fulfillment import FulfillmentResult, PurchaseFulfillmentHandler
from .models import DownloadToken, Purchase, PurchaseItem, WebhookEvent, WebhookEventStatus
from .stores import PurchaseStore, SqlPurchaseStore, SqlTokenStore, SqlWebhookEventStore, TokenStore, WebhookEventStore
from .stripe_client import StripeConfig, StripeGateway, WebhookSignatureError
from .webhooks import WebhookEventType, WebhookProcessor, WebhookResult, WebhookStatus

__all__ = [
    # Models
    "Purchase",
    "PurchaseItem",
    "DownloadToken",
    "WebhookEvent",
    "WebhookEventStatus",
    # Stores
    "PurchaseStore",
    "TokenStore",
    "WebhookEventStore",
    "SqlPurchaseStore",
    "SqlTokenStore",
    "SqlWebhookEventStore",
    # Stripe Integration
    "StripeConfig",
    "StripeGateway",
    "WebhookSignatureError",
    # Checkout Flow
    "CheckoutConfig",
    "CheckoutManager",
    "CheckoutSession",
    "VerifiedSession",
    # Fulfillment
    "PurchaseFulfillmentHandler",
    "FulfillmentResult",
    # Webhook Processing
    "WebhookProcessor",
    "WebhookEventType",
    "WebhookStatus",
    "WebhookResult",
]
