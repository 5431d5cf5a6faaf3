"""
Custom exceptions for the storefront backend
Each exception carries the HTTP status it maps to
"""
from typing import Any, Dict, Optional


class StorefrontError(Exception):
    """Base exception for all storefront errors"""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        self.status_code = status_code


class ValidationError(StorefrontError):
    """Raised when client input is invalid"""

    def __init__(self, message: str, field: Optional[str] = None, **details):
        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            details={"field": field, **details} if field else details,
            status_code=400,
        )


class PaymentIncompleteError(StorefrontError):
    """Raised when a checkout session has not been paid"""

    def __init__(self, session_id: str, payment_status: Optional[str]):
        super().__init__(
            message="Payment not completed",
            error_code="PAYMENT_INCOMPLETE",
            details={"session_id": session_id, "payment_status": payment_status},
            status_code=400,
        )


class AuthenticationError(StorefrontError):
    """Raised when a bearer credential is missing or invalid"""

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message=message, error_code="UNAUTHORIZED", status_code=401)


class AccessDeniedError(StorefrontError):
    """Raised when a caller has not purchased the requested product"""

    def __init__(self, product_id: str):
        super().__init__(
            message="You do not have access to this product",
            error_code="ACCESS_DENIED",
            details={"product_id": product_id},
            status_code=403,
        )


class NotFoundError(StorefrontError):
    """Raised when a resource is not found"""

    def __init__(self, resource: str, identifier: Any):
        super().__init__(
            message=f"{resource} not found: {identifier}",
            error_code="NOT_FOUND",
            details={"resource": resource, "identifier": str(identifier)},
            status_code=404,
        )


class PaymentProviderError(StorefrontError):
    """Raised when a call to the payment processor fails"""

    def __init__(
        self,
        message: str,
        stripe_error_code: Optional[str] = None,
        status_code: int = 500,
        **details,
    ):
        super().__init__(
            message=message,
            error_code="PAYMENT_PROVIDER_ERROR",
            details={"stripe_error_code": stripe_error_code, **details},
            status_code=status_code,
        )


class ConfigurationError(StorefrontError):
    """Raised when configuration is invalid or missing"""

    def __init__(self, message: str, setting: Optional[str] = None):
        super().__init__(
            message=message,
            error_code="CONFIGURATION_ERROR",
            details={"setting": setting} if setting else {},
            status_code=500,
        )
