"""
Storefront Schemas

Pydantic schemas for the checkout, verification and webhook endpoints. Field
aliases keep the camelCase wire format the storefront frontend sends.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class CheckoutMetadata(BaseModel):
    """Client-supplied context stored on the checkout session"""

    model_config = ConfigDict(populate_by_name=True)

    items: Any = Field(None, description="Purchased item descriptors, JSON-encoded into session metadata")
    user_id: Optional[str] = Field(None, alias="userId", max_length=255, description="Buyer id, 'guest' if absent")
    customer_email: Optional[EmailStr] = Field(None, alias="customerEmail", description="Prefills the checkout email")


class CreateCheckoutSessionRequest(BaseModel):
    """Schema for checkout session creation request"""

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "items": [{"price": "price_1Nx...", "quantity": 1}],
                "metadata": {
                    "items": [{"id": "invoice-automation", "title": "Invoice Automation"}],
                    "userId": "user_123",
                    "customerEmail": "buyer@example.com",
                },
            }
        },
    )

    # Optional here so an empty or missing cart is answered with the cart error
    items: Optional[List[Dict[str, Any]]] = Field(None, description="Stripe line items or custom-price items")
    metadata: CheckoutMetadata = Field(default_factory=CheckoutMetadata)


class CreateCheckoutSessionResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(..., alias="sessionId")


class DownloadAccess(BaseModel):
    """Per-product download tokens for the buyer of a paid session"""

    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="userId", description="Pass as userId on download requests")
    expires_at: Optional[datetime] = Field(None, alias="expiresAt")
    tokens: Dict[str, str] = Field(default_factory=dict, description="Product id to plaintext download token")


class VerifySessionResponse(BaseModel):
    """Schema for a verified, paid checkout session"""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    session: Dict[str, Any] = Field(..., description="Stripe checkout session object")
    purchased_items: List[Any] = Field(default_factory=list, alias="purchasedItems")
    downloads: Optional[DownloadAccess] = None


class WebhookAckResponse(BaseModel):
    received: bool = True


class ErrorResponse(BaseModel):
    """Schema for error responses"""

    error: str = Field(..., description="Error message")
    details: Optional[Any] = Field(None, description="Additional detail, development only")
