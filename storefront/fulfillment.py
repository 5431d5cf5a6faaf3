"""
Storefront Fulfillment

Handles completed checkout sessions: records the purchase once per session
and makes sure every purchased product has a download token.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from core.exceptions import ValidationError
from core.logging import get_logger
from core.metrics import metrics

from .checkout import GUEST_USER_ID, decode_purchased_items
from .models import utcnow
from .stores import PurchaseStore, TokenStore

logger = get_logger(__name__, domain="storefront")

DEFAULT_TOKEN_TTL = timedelta(days=7)

PRODUCT_ID_KEYS = ("id", "productId", "uid")


@dataclass
class FulfillmentResult:
    """Outcome of fulfilling one checkout session"""

    purchase_id: str
    session_id: str
    user_id: str
    product_ids: List[str] = field(default_factory=list)
    amount_total: float = 0.0
    currency: Optional[str] = None
    # product id -> plaintext token minted by this call
    tokens: Dict[str, str] = field(default_factory=dict)
    expires_at: Optional[datetime] = None
    duplicate: bool = False


def extract_product_id(entry: Any) -> Optional[str]:
    """Product id from a metadata item: a bare id or an object carrying one"""
    if isinstance(entry, str):
        return entry or None
    if isinstance(entry, dict):
        for key in PRODUCT_ID_KEYS:
            value = entry.get(key)
            if value is not None and value != "":
                return str(value)
    return None


class PurchaseFulfillmentHandler:
    """Handler for ``checkout.session.completed`` events"""

    def __init__(
        self,
        purchase_store: PurchaseStore,
        token_store: TokenStore,
        token_ttl: timedelta = DEFAULT_TOKEN_TTL,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.purchase_store = purchase_store
        self.token_store = token_store
        self.token_ttl = token_ttl
        self.clock = clock

    def handle_session_completed(self, session: Dict[str, Any]) -> FulfillmentResult:
        session_id = session.get("id")
        if not session_id:
            raise ValidationError("Checkout session has no id", field="id")

        metadata = session.get("metadata") or {}
        items = decode_purchased_items(metadata)
        user_id = metadata.get("userId") or GUEST_USER_ID

        product_ids = []
        for entry in items:
            product_id = extract_product_id(entry)
            if product_id is None:
                logger.warning(f"Skipping purchased item without a product id in session {session_id}")
                continue
            product_ids.append(product_id)

        amount_total_cents = int(session.get("amount_total") or 0)
        currency = session.get("currency")
        customer_email = session.get("customer_email") or (session.get("customer_details") or {}).get("email")

        record, created = self.purchase_store.record_purchase(
            stripe_session_id=session_id,
            user_id=user_id,
            product_ids=product_ids,
            amount_total_cents=amount_total_cents,
            currency=currency,
            customer_email=customer_email,
        )

        result = FulfillmentResult(
            purchase_id=record.id,
            session_id=session_id,
            user_id=record.user_id,
            product_ids=list(record.product_ids),
            amount_total=record.amount_total_cents / 100,
            currency=record.currency,
            duplicate=not created,
        )

        # A redelivery after a partial failure mints whatever is still missing
        issued = set() if created else self.token_store.issued_products(record.id)
        self._mint_tokens(result, [p for p in record.product_ids if p not in issued])

        if not created:
            if result.tokens:
                logger.warning(
                    f"Session {session_id} already recorded as purchase {record.id}; "
                    f"issued {len(result.tokens)} missing download tokens"
                )
            else:
                logger.info(f"Session {session_id} already fulfilled as purchase {record.id}")
            return result

        metrics.track_purchase(result.amount_total, currency or "unknown")
        logger.info(
            f"Fulfilled purchase {record.id} for user {record.user_id}: "
            f"{len(result.tokens)} download tokens issued, total {result.amount_total:.2f} {currency or ''}".rstrip()
        )
        return result

    def issue_download_tokens(self, session: Dict[str, Any]) -> FulfillmentResult:
        """
        Fulfill a paid session if needed and return a token for every product

        Used by the success page: the buyer holding the session id gets fresh
        plaintext tokens even when the webhook already fulfilled the purchase.
        """
        result = self.handle_session_completed(session)

        missing = [p for p in result.product_ids if p not in result.tokens]
        self._mint_tokens(result, missing)

        logger.info(f"Handed {len(result.tokens)} download tokens to the buyer of session {result.session_id}")
        return result

    def _mint_tokens(self, result: FulfillmentResult, product_ids: List[str]) -> None:
        if not product_ids:
            return
        if result.expires_at is None:
            result.expires_at = self.clock() + self.token_ttl

        for product_id in product_ids:
            result.tokens[product_id] = self.token_store.issue(
                user_id=result.user_id,
                product_id=product_id,
                purchase_id=result.purchase_id,
                expires_at=result.expires_at,
            )
