"""
Storefront Stripe gateway

Thin wrapper over the Stripe SDK. One instance is built at startup from
settings and injected into the checkout and webhook components, so tests can
substitute the SDK client with a double.
"""
from typing import Any, Dict, Optional

import stripe

from core.config import Settings
from core.exceptions import ConfigurationError, PaymentProviderError, StorefrontError
from core.logging import get_logger

logger = get_logger(__name__, domain="storefront")


class WebhookSignatureError(StorefrontError):
    """Raised when a webhook payload cannot be authenticated"""

    def __init__(self, message: str):
        super().__init__(message=message, error_code="WEBHOOK_SIGNATURE_INVALID", status_code=400)


class StripeConfig:
    """Configuration for Stripe integration"""

    def __init__(
        self,
        api_key: Optional[str] = None,
        webhook_secret: Optional[str] = None,
        api_version: Optional[str] = None,
        timeout_seconds: int = 30,
        max_network_retries: int = 2,
    ):
        self.api_key = api_key
        self.webhook_secret = webhook_secret
        self.api_version = api_version
        self.timeout_seconds = timeout_seconds
        self.max_network_retries = max_network_retries

    @classmethod
    def from_settings(cls, settings: Settings) -> "StripeConfig":
        return cls(
            api_key=settings.stripe_secret_key.get_secret_value() if settings.stripe_secret_key else None,
            webhook_secret=(
                settings.stripe_webhook_secret.get_secret_value() if settings.stripe_webhook_secret else None
            ),
            api_version=settings.stripe_api_version,
            timeout_seconds=settings.stripe_timeout_seconds,
            max_network_retries=settings.stripe_max_network_retries,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    @property
    def is_test_mode(self) -> bool:
        return bool(self.api_key) and self.api_key.startswith("sk_test_")


class StripeGateway:
    """
    Checkout-session and webhook operations against Stripe

    All results are returned as plain dicts so callers never depend on SDK
    object types.
    """

    def __init__(self, config: StripeConfig, client: Optional[stripe.StripeClient] = None):
        self.config = config
        self._client = client

    @property
    def client(self) -> stripe.StripeClient:
        """SDK client, created on first use"""
        if self._client is None:
            if not self.config.api_key:
                raise ConfigurationError("Stripe secret key is not configured", setting="STRIPE_SECRET_KEY")
            self._client = stripe.StripeClient(
                self.config.api_key,
                stripe_version=self.config.api_version,
                max_network_retries=self.config.max_network_retries,
                http_client=stripe.RequestsClient(timeout=self.config.timeout_seconds),
            )
            logger.info(f"Initialized Stripe client in {'test' if self.config.is_test_mode else 'live'} mode")
        return self._client

    def create_checkout_session(
        self, params: Dict[str, Any], idempotency_key: Optional[str] = None
    ) -> Dict[str, Any]:
        """Create a hosted checkout session"""
        options: Dict[str, Any] = {}
        if idempotency_key:
            options["idempotency_key"] = idempotency_key

        try:
            session = self.client.v1.checkout.sessions.create(params=params, options=options)
        except stripe.StripeError as e:
            logger.error(f"Error creating checkout session: {e}")
            raise PaymentProviderError(
                e.user_message or str(e) or "Failed to create checkout session",
                stripe_error_code=e.code,
            ) from e

        logger.info(f"Created checkout session: {session.id}")
        return session.to_dict()

    def retrieve_checkout_session(self, session_id: str) -> Dict[str, Any]:
        """Retrieve a checkout session by ID"""
        try:
            session = self.client.v1.checkout.sessions.retrieve(session_id)
        except stripe.InvalidRequestError as e:
            logger.warning(f"Checkout session lookup rejected for {session_id}: {e}")
            raise PaymentProviderError(
                e.user_message or str(e) or "Invalid checkout session",
                stripe_error_code=e.code,
                status_code=400,
                session_id=session_id,
            ) from e
        except stripe.StripeError as e:
            logger.error(f"Error retrieving session {session_id}: {e}")
            raise PaymentProviderError(
                e.user_message or str(e) or "Failed to retrieve checkout session",
                stripe_error_code=e.code,
                session_id=session_id,
            ) from e

        return session.to_dict()

    def construct_event(self, payload: bytes, signature: str) -> Dict[str, Any]:
        """Verify the signature header and parse the webhook payload

        Raises:
            WebhookSignatureError: If the secret is missing, the signature does
                not match, or the payload is not a valid event
        """
        if not self.config.webhook_secret:
            raise WebhookSignatureError("Webhook signing secret is not configured")

        try:
            event = stripe.Webhook.construct_event(payload, signature, self.config.webhook_secret)
        except stripe.SignatureVerificationError as e:
            raise WebhookSignatureError(str(e) or "No signatures found matching the expected signature") from e
        except ValueError as e:
            raise WebhookSignatureError(f"Invalid payload: {e}") from e

        return event.to_dict()
