"""
API dependencies

Process-wide components (Stripe gateway, stores) are built once and cached;
request-scoped collaborators are assembled from them. Tests replace any of
these through ``app.dependency_overrides``.
"""

from datetime import timedelta
from functools import lru_cache

from fastapi import Depends

from core.config import Settings, get_settings
from database.session import SessionLocal
from downloads.access import DownloadGate
from storefront.checkout import CheckoutConfig, CheckoutManager
from storefront.fulfillment import PurchaseFulfillmentHandler
from storefront.stores import SqlPurchaseStore, SqlTokenStore, SqlWebhookEventStore
from storefront.stripe_client import StripeConfig, StripeGateway
from storefront.webhooks import WebhookProcessor


@lru_cache()
def get_stripe_gateway() -> StripeGateway:
    """Get the shared Stripe gateway"""
    return StripeGateway(StripeConfig.from_settings(get_settings()))


@lru_cache()
def get_purchase_store() -> SqlPurchaseStore:
    return SqlPurchaseStore(SessionLocal)


@lru_cache()
def get_token_store() -> SqlTokenStore:
    return SqlTokenStore(SessionLocal)


@lru_cache()
def get_webhook_event_store() -> SqlWebhookEventStore:
    return SqlWebhookEventStore(SessionLocal)


def get_checkout_manager(
    gateway: StripeGateway = Depends(get_stripe_gateway),
    settings: Settings = Depends(get_settings),
) -> CheckoutManager:
    return CheckoutManager(gateway, CheckoutConfig.from_settings(settings))


def get_fulfillment_handler(
    purchase_store: SqlPurchaseStore = Depends(get_purchase_store),
    token_store: SqlTokenStore = Depends(get_token_store),
    settings: Settings = Depends(get_settings),
) -> PurchaseFulfillmentHandler:
    return PurchaseFulfillmentHandler(
        purchase_store,
        token_store,
        token_ttl=timedelta(days=settings.download_token_ttl_days),
    )


def get_webhook_processor(
    gateway: StripeGateway = Depends(get_stripe_gateway),
    event_store: SqlWebhookEventStore = Depends(get_webhook_event_store),
    fulfillment: PurchaseFulfillmentHandler = Depends(get_fulfillment_handler),
) -> WebhookProcessor:
    return WebhookProcessor(gateway, event_store, fulfillment)


def get_download_gate(
    purchase_store: SqlPurchaseStore = Depends(get_purchase_store),
    token_store: SqlTokenStore = Depends(get_token_store),
    settings: Settings = Depends(get_settings),
) -> DownloadGate:
    return DownloadGate(purchase_store, token_store, settings.downloads_dir)
