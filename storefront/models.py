"""
Storefront Models

Purchases, download tokens and the webhook event log used for idempotent
event handling.
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime
from sqlalchemy import Enum as SQLEnum
from sqlalchemy import ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from database.base import Base


def generate_uuid():
    """Generate a new UUID"""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Naive UTC timestamp, the form stored in every DateTime column"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class WebhookEventStatus(str, enum.Enum):
    """Processing state of a received webhook event"""

    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class Purchase(Base):
    """A paid checkout session"""

    __tablename__ = "purchases"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    stripe_session_id = Column(String(255), nullable=False, unique=True, index=True)
    user_id = Column(String(255), nullable=False, index=True)
    customer_email = Column(String(255))

    amount_total_cents = Column(Integer, nullable=False, default=0)
    currency = Column(String(3))

    created_at = Column(DateTime, default=utcnow, nullable=False)

    items = relationship(
        "PurchaseItem", back_populates="purchase", cascade="all, delete-orphan", order_by="PurchaseItem.id"
    )
    tokens = relationship("DownloadToken", back_populates="purchase", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Purchase(id={self.id}, session={self.stripe_session_id}, user={self.user_id})>"


class PurchaseItem(Base):
    """A product bought in a purchase"""

    __tablename__ = "purchase_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    purchase_id = Column(String(36), ForeignKey("purchases.id", ondelete="CASCADE"), nullable=False)
    product_id = Column(String(128), nullable=False)

    purchase = relationship("Purchase", back_populates="items")

    __table_args__ = (
        UniqueConstraint("purchase_id", "product_id", name="uq_purchase_item_product"),
        Index("idx_purchase_items_product", "product_id"),
    )


class DownloadToken(Base):
    """
    Credential granting download access to one purchased product

    Only the SHA-256 hash of the token is stored.
    """

    __tablename__ = "download_tokens"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    token_hash = Column(String(64), nullable=False, unique=True, index=True)
    user_id = Column(String(255), nullable=False)
    product_id = Column(String(128), nullable=False)
    purchase_id = Column(String(36), ForeignKey("purchases.id", ondelete="CASCADE"), nullable=False)

    expires_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    purchase = relationship("Purchase", back_populates="tokens")

    __table_args__ = (Index("idx_download_tokens_user_product", "user_id", "product_id"),)


class WebhookEvent(Base):
    """Received webhook event, keyed by the processor's event id"""

    __tablename__ = "webhook_events"

    event_id = Column(String(255), primary_key=True)
    event_type = Column(String(100), nullable=False)
    status = Column(
        SQLEnum(
            WebhookEventStatus,
            native_enum=False,
            length=20,
            values_callable=lambda statuses: [s.value for s in statuses],
        ),
        nullable=False,
        default=WebhookEventStatus.PROCESSING,
    )
    attempts = Column(Integer, nullable=False, default=1)
    last_error = Column(Text)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
    processed_at = Column(DateTime)

    def __repr__(self):
        return f"<WebhookEvent(id={self.event_id}, type={self.event_type}, status={self.status})>"
