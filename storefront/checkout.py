"""
Storefront Checkout

Turns a cart into Stripe checkout-session parameters, creates the session and
verifies payment for the success page.
"""

import hashlib
import json
from datetime import datetime, timezone
from numbers import Number
from typing import Any, Dict, List, Optional

from core.config import Settings
from core.exceptions import PaymentIncompleteError, StorefrontError, ValidationError
from core.logging import get_logger
from core.metrics import metrics

from .stripe_client import StripeGateway

logger = get_logger(__name__, domain="storefront")

GUEST_USER_ID = "guest"

# Stripe rejects metadata values longer than this
MAX_METADATA_VALUE_LENGTH = 500

PAYMENT_METHOD_TYPES = ["card"]
SESSION_MODE = "payment"


class CheckoutConfig:
    """Configuration for checkout flow"""

    def __init__(
        self,
        success_url: str,
        cancel_url: str,
        allowed_countries: List[str],
        currency: str = "usd",
        automatic_tax: bool = True,
        invoice_creation: bool = True,
    ):
        self.success_url = success_url
        self.cancel_url = cancel_url
        self.allowed_countries = list(allowed_countries)
        self.currency = currency
        self.automatic_tax = automatic_tax
        self.invoice_creation = invoice_creation

    @classmethod
    def from_settings(cls, settings: Settings) -> "CheckoutConfig":
        return cls(
            success_url=settings.success_url,
            cancel_url=settings.cancel_url,
            allowed_countries=settings.allowed_shipping_countries,
            currency=settings.checkout_currency,
            automatic_tax=settings.automatic_tax,
            invoice_creation=settings.invoice_creation,
        )


def to_line_item(item: Dict[str, Any], currency: str = "usd") -> Dict[str, Any]:
    """
    Convert a cart item to a Stripe line item

    Items priced with a number and carrying a title become inline
    ``price_data`` items; everything else passes through unmodified.
    """
    price = item.get("price")
    if "title" not in item or isinstance(price, bool) or not isinstance(price, Number):
        return item

    product_data: Dict[str, Any] = {"name": item["title"]}
    if item.get("description"):
        product_data["description"] = item["description"]
    if item.get("uid") is not None:
        product_data["metadata"] = {"uid": str(item["uid"])}

    return {
        "price_data": {
            "currency": currency,
            "product_data": product_data,
            # Convert to cents
            "unit_amount": int(round(float(price) * 100)),
        },
        "quantity": item.get("quantity", 1),
    }


def decode_purchased_items(metadata: Optional[Dict[str, Any]]) -> List[Any]:
    """Decode the JSON item list stored in session metadata"""
    raw = (metadata or {}).get("items") or "[]"
    try:
        items = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise StorefrontError(
            f"Could not decode purchased items: {e}",
            error_code="METADATA_DECODE_ERROR",
        ) from e

    if not isinstance(items, list):
        raise StorefrontError("Purchased items metadata is not a list", error_code="METADATA_DECODE_ERROR")
    return items


class CheckoutSession:
    """
    A single cart headed for Stripe

    Builds the session parameters and the idempotency key that keeps client
    retries of the same cart from opening duplicate sessions.
    """

    def __init__(
        self,
        items: List[Dict[str, Any]],
        config: CheckoutConfig,
        user_id: Optional[str] = None,
        customer_email: Optional[str] = None,
        metadata_items: Any = None,
        created_at: Optional[datetime] = None,
    ):
        if not items:
            raise ValidationError("No items in cart", field="items")

        self.items = items
        self.config = config
        self.user_id = user_id or GUEST_USER_ID
        self.customer_email = customer_email
        self.metadata_items = metadata_items
        # Minute precision keeps the parameters of a retried cart identical,
        # which Stripe requires when an idempotency key is reused
        self.created_at = (created_at or datetime.now(timezone.utc)).replace(second=0, microsecond=0)

        self.encoded_items = json.dumps(metadata_items if metadata_items is not None else [], separators=(",", ":"))
        if len(self.encoded_items) > MAX_METADATA_VALUE_LENGTH:
            raise ValidationError(
                f"Cart metadata exceeds {MAX_METADATA_VALUE_LENGTH} characters",
                field="metadata.items",
                length=len(self.encoded_items),
            )

    def build_line_items(self) -> List[Dict[str, Any]]:
        return [to_line_item(item, self.config.currency) for item in self.items]

    def build_metadata(self) -> Dict[str, str]:
        return {
            "items": self.encoded_items,
            "userId": self.user_id,
            "timestamp": self.created_at.isoformat(),
        }

    def build_params(self) -> Dict[str, Any]:
        """Stripe checkout-session creation parameters"""
        params: Dict[str, Any] = {
            "payment_method_types": PAYMENT_METHOD_TYPES,
            "line_items": self.build_line_items(),
            "mode": SESSION_MODE,
            "success_url": self.config.success_url,
            "cancel_url": self.config.cancel_url,
            "metadata": self.build_metadata(),
            "automatic_tax": {"enabled": self.config.automatic_tax},
            "invoice_creation": {"enabled": self.config.invoice_creation},
            "shipping_address_collection": {"allowed_countries": self.config.allowed_countries},
        }

        if self.customer_email:
            params["customer_email"] = self.customer_email

        return params

    def idempotency_key(self) -> str:
        content = json.dumps(
            {
                "line_items": self.build_line_items(),
                "items": self.encoded_items,
                "user_id": self.user_id,
                "customer_email": self.customer_email,
                "created_at": self.created_at.isoformat(),
            },
            sort_keys=True,
            default=str,
        )
        return "checkout-" + hashlib.sha256(content.encode()).hexdigest()


class VerifiedSession:
    """A paid checkout session and the items bought with it"""

    def __init__(self, session: Dict[str, Any], purchased_items: List[Any]):
        self.session = session
        self.purchased_items = purchased_items


class CheckoutManager:
    """
    High-level checkout flow manager coordinating cart handling with Stripe
    """

    def __init__(self, gateway: StripeGateway, config: CheckoutConfig):
        self.gateway = gateway
        self.config = config

    def create_session(
        self,
        items: List[Dict[str, Any]],
        user_id: Optional[str] = None,
        customer_email: Optional[str] = None,
        metadata_items: Any = None,
    ) -> str:
        """Create a Stripe checkout session and return its id"""
        checkout = CheckoutSession(
            items=items,
            config=self.config,
            user_id=user_id,
            customer_email=customer_email,
            metadata_items=metadata_items,
        )

        logger.info(f"Creating checkout session for user {checkout.user_id} with {len(items)} items")

        try:
            session = self.gateway.create_checkout_session(
                checkout.build_params(), idempotency_key=checkout.idempotency_key()
            )
        except StorefrontError:
            metrics.track_checkout_session("failed")
            raise

        metrics.track_checkout_session("created")
        return session["id"]

    def verify_session(self, session_id: str) -> VerifiedSession:
        """
        Confirm a checkout session was paid

        Raises:
            ValidationError: If no session id is given
            PaymentIncompleteError: If the session is not paid
        """
        if not session_id or not session_id.strip():
            raise ValidationError("session_id is required", field="session_id")

        session = self.gateway.retrieve_checkout_session(session_id.strip())
        payment_status = session.get("payment_status")

        if payment_status != "paid":
            logger.warning(f"Payment not completed for session {session_id}: status={payment_status}")
            raise PaymentIncompleteError(session_id, payment_status)

        purchased_items = decode_purchased_items(session.get("metadata"))
        logger.info(f"Verified paid session {session_id} with {len(purchased_items)} items")

        return VerifiedSession(session=session, purchased_items=purchased_items)
