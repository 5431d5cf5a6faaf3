"""Core utilities and configuration for the storefront backend"""
from core.config import settings
from core.exceptions import PaymentProviderError, StorefrontError, ValidationError
from core.logging import get_logger

__all__ = [
    "settings",
    "get_logger",
    "StorefrontError",
    "ValidationError",
    "PaymentProviderError",
]
