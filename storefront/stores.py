"""
Storefront persistence interfaces

``PurchaseStore``, ``TokenStore`` and ``WebhookEventStore`` are the contracts
the fulfillment handler, webhook processor and download gate depend on. The
SQL implementations open one short transaction per call and rely on unique
constraints so concurrent duplicate deliveries resolve to a single winner.
"""

import hashlib
import secrets
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Protocol, Set, Tuple

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from core.logging import get_logger

from .models import DownloadToken, Purchase, PurchaseItem, WebhookEvent, WebhookEventStatus, utcnow

logger = get_logger(__name__, domain="storefront")


@dataclass
class PurchaseRecord:
    id: str
    stripe_session_id: str
    user_id: str
    product_ids: List[str] = field(default_factory=list)
    amount_total_cents: int = 0
    currency: Optional[str] = None
    customer_email: Optional[str] = None
    created_at: Optional[datetime] = None


class PurchaseStore(Protocol):
    def record_purchase(
        self,
        *,
        stripe_session_id: str,
        user_id: str,
        product_ids: List[str],
        amount_total_cents: int,
        currency: Optional[str] = None,
        customer_email: Optional[str] = None,
    ) -> Tuple[PurchaseRecord, bool]:
        """Insert a purchase once per session; returns the record and whether it was created"""
        ...

    def get_by_session(self, stripe_session_id: str) -> Optional[PurchaseRecord]:
        ...

    def has_purchased(self, user_id: str, product_id: str) -> bool:
        ...


class TokenStore(Protocol):
    def issue(self, *, user_id: str, product_id: str, purchase_id: str, expires_at: datetime) -> str:
        """Persist a new token and return its plaintext value"""
        ...

    def issued_products(self, purchase_id: str) -> Set[str]:
        """Product ids that already have a token for this purchase"""
        ...

    def verify(self, *, user_id: str, product_id: str, token: str, now: Optional[datetime] = None) -> bool:
        """True only for an unexpired token bound to this user and product"""
        ...


class WebhookEventStore(Protocol):
    def claim(self, event_id: str, event_type: str) -> bool:
        """Reserve an event for processing; False when already handled or in flight"""
        ...

    def mark_completed(self, event_id: str) -> None:
        ...

    def mark_failed(self, event_id: str, error: str) -> None:
        ...


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


def generate_secure_token() -> str:
    return secrets.token_hex(32)


class SqlPurchaseStore:
    """SQLAlchemy-backed ``PurchaseStore``"""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    @staticmethod
    def _to_record(purchase: Purchase) -> PurchaseRecord:
        return PurchaseRecord(
            id=purchase.id,
            stripe_session_id=purchase.stripe_session_id,
            user_id=purchase.user_id,
            product_ids=[item.product_id for item in purchase.items],
            amount_total_cents=purchase.amount_total_cents,
            currency=purchase.currency,
            customer_email=purchase.customer_email,
            created_at=purchase.created_at,
        )

    @staticmethod
    def _find(db: Session, stripe_session_id: str) -> Optional[Purchase]:
        return db.execute(
            select(Purchase).where(Purchase.stripe_session_id == stripe_session_id)
        ).scalar_one_or_none()

    def record_purchase(
        self,
        *,
        stripe_session_id: str,
        user_id: str,
        product_ids: List[str],
        amount_total_cents: int,
        currency: Optional[str] = None,
        customer_email: Optional[str] = None,
    ) -> Tuple[PurchaseRecord, bool]:
        with self._session_factory() as db:
            existing = self._find(db, stripe_session_id)
            if existing is not None:
                return self._to_record(existing), False

            purchase = Purchase(
                stripe_session_id=stripe_session_id,
                user_id=user_id,
                customer_email=customer_email,
                amount_total_cents=amount_total_cents,
                currency=currency,
            )
            # dict.fromkeys de-duplicates while keeping cart order
            purchase.items = [PurchaseItem(product_id=product_id) for product_id in dict.fromkeys(product_ids)]
            db.add(purchase)

            try:
                db.commit()
            except IntegrityError:
                db.rollback()
                logger.info(f"Purchase for session {stripe_session_id} was recorded concurrently")
                return self._to_record(self._find(db, stripe_session_id)), False

            logger.info(f"Recorded purchase {purchase.id} for session {stripe_session_id}")
            return self._to_record(purchase), True

    def get_by_session(self, stripe_session_id: str) -> Optional[PurchaseRecord]:
        with self._session_factory() as db:
            purchase = self._find(db, stripe_session_id)
            return self._to_record(purchase) if purchase is not None else None

    def has_purchased(self, user_id: str, product_id: str) -> bool:
        if not user_id or not product_id:
            return False

        with self._session_factory() as db:
            match = db.execute(
                select(PurchaseItem.id)
                .join(Purchase, PurchaseItem.purchase_id == Purchase.id)
                .where(Purchase.user_id == user_id, PurchaseItem.product_id == product_id)
                .limit(1)
            ).first()
            return match is not None


class SqlTokenStore:
    """SQLAlchemy-backed ``TokenStore``; tokens stay valid until they expire"""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def issue(self, *, user_id: str, product_id: str, purchase_id: str, expires_at: datetime) -> str:
        token = generate_secure_token()

        with self._session_factory() as db:
            db.add(
                DownloadToken(
                    token_hash=hash_token(token),
                    user_id=user_id,
                    product_id=product_id,
                    purchase_id=purchase_id,
                    expires_at=expires_at,
                )
            )
            db.commit()

        return token

    def issued_products(self, purchase_id: str) -> Set[str]:
        with self._session_factory() as db:
            rows = db.execute(
                select(DownloadToken.product_id).where(DownloadToken.purchase_id == purchase_id).distinct()
            ).scalars()
            return set(rows)

    def verify(self, *, user_id: str, product_id: str, token: str, now: Optional[datetime] = None) -> bool:
        if not user_id or not product_id or not token:
            return False

        with self._session_factory() as db:
            match = db.execute(
                select(DownloadToken.id).where(
                    DownloadToken.token_hash == hash_token(token),
                    DownloadToken.user_id == user_id,
                    DownloadToken.product_id == product_id,
                    DownloadToken.expires_at > (now or utcnow()),
                )
            ).first()
            return match is not None


class SqlWebhookEventStore:
    """SQLAlchemy-backed ``WebhookEventStore``"""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def claim(self, event_id: str, event_type: str) -> bool:
        with self._session_factory() as db:
            db.add(WebhookEvent(event_id=event_id, event_type=event_type, status=WebhookEventStatus.PROCESSING))
            try:
                db.commit()
                return True
            except IntegrityError:
                db.rollback()

            # Only a previously failed event may be picked up again
            result = db.execute(
                update(WebhookEvent)
                .where(WebhookEvent.event_id == event_id, WebhookEvent.status == WebhookEventStatus.FAILED)
                .values(
                    status=WebhookEventStatus.PROCESSING,
                    attempts=WebhookEvent.attempts + 1,
                    updated_at=utcnow(),
                )
            )
            db.commit()
            return result.rowcount == 1

    def mark_completed(self, event_id: str) -> None:
        self._set_status(event_id, WebhookEventStatus.COMPLETED, processed_at=utcnow(), last_error=None)

    def mark_failed(self, event_id: str, error: str) -> None:
        self._set_status(event_id, WebhookEventStatus.FAILED, last_error=error[:2000])

    def get_status(self, event_id: str) -> Optional[WebhookEventStatus]:
        with self._session_factory() as db:
            return db.execute(
                select(WebhookEvent.status).where(WebhookEvent.event_id == event_id)
            ).scalar_one_or_none()

    def _set_status(self, event_id: str, status: WebhookEventStatus, **values) -> None:
        with self._session_factory() as db:
            db.execute(
                update(WebhookEvent)
                .where(WebhookEvent.event_id == event_id)
                .values(status=status, updated_at=utcnow(), **values)
            )
            db.commit()
