"""
Configuration management using Pydantic Settings
Handles environment variables and validation
"""
import json
from functools import lru_cache
from typing import Annotated, List, Optional

from pydantic import ConfigDict, Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode

DEFAULT_SHIPPING_COUNTRIES = ["US", "CA", "MX", "ES", "AR", "CO", "CL", "PE", "GB", "DE", "FR", "IT"]


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    # Environment
    environment: str = Field(default="development")
    debug: bool = Field(default=False)

    # Application
    app_name: str = "Workflow Storefront"
    app_version: str = "0.1.0"
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=4242)
    frontend_url: str = Field(default="http://localhost:3000")

    # Database
    database_url: str = Field(default="sqlite:///./storefront.db")
    database_echo: bool = Field(default=False)

    # Stripe - use SecretStr for sensitive data
    stripe_secret_key: Optional[SecretStr] = Field(default=None)
    stripe_webhook_secret: Optional[SecretStr] = Field(default=None)
    stripe_api_version: str = Field(default="2023-10-16")
    stripe_timeout_seconds: int = Field(default=30, ge=1)
    stripe_max_network_retries: int = Field(default=2, ge=0, le=5)

    # Checkout
    checkout_currency: str = Field(default="usd")
    # Comma separated (US,CA) or a JSON list
    allowed_shipping_countries: Annotated[List[str], NoDecode] = Field(
        default_factory=lambda: list(DEFAULT_SHIPPING_COUNTRIES)
    )
    automatic_tax: bool = Field(default=True)
    invoice_creation: bool = Field(default=True)

    # Downloads
    downloads_dir: str = Field(default="workflows")
    download_token_ttl_days: int = Field(default=7, ge=1)
    jwt_secret: Optional[SecretStr] = Field(default=None)
    jwt_algorithm: str = Field(default="HS256")

    # Rate limiting
    rate_limit_enabled: bool = Field(default=True)
    checkout_rate_limit: str = Field(default="30/minute")

    # Logging
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json")  # json or text

    # Monitoring
    prometheus_enabled: bool = Field(default=True)
    sentry_dsn: Optional[str] = Field(default=None)
    sentry_trace_rate: float = Field(default=0.2, ge=0.0, le=1.0)

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v):
        allowed = ["development", "test", "staging", "production"]
        if v not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v

    @field_validator("frontend_url")
    @classmethod
    def strip_trailing_slash(cls, v):
        return v.rstrip("/")

    @field_validator("allowed_shipping_countries", mode="before")
    @classmethod
    def parse_country_list(cls, v):
        if isinstance(v, str):
            if v.strip().startswith("["):
                return json.loads(v)
            return v.split(",")
        return v

    @field_validator("allowed_shipping_countries")
    @classmethod
    def validate_country_codes(cls, v):
        codes = [code.strip().upper() for code in v if code.strip()]
        for code in codes:
            if len(code) != 2 or not code.isalpha():
                raise ValueError(f"Invalid ISO country code: {code}")
        if not codes:
            raise ValueError("At least one shipping country is required")
        return codes

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v):
        if v not in ("json", "text"):
            raise ValueError("log_format must be 'json' or 'text'")
        return v

    @model_validator(mode="after")
    def validate_production_settings(self):
        """Validate production-specific settings after all fields are set"""
        if self.environment == "production":
            if not self.stripe_secret_key:
                raise ValueError("STRIPE_SECRET_KEY is required in production")
            if not self.stripe_webhook_secret:
                raise ValueError("STRIPE_WEBHOOK_SECRET is required in production")
        return self

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def is_test(self) -> bool:
        return self.environment == "test"

    @property
    def success_url(self) -> str:
        # Stripe substitutes the literal {CHECKOUT_SESSION_ID} placeholder
        return f"{self.frontend_url}/success?session_id={{CHECKOUT_SESSION_ID}}"

    @property
    def cancel_url(self) -> str:
        return f"{self.frontend_url}/cancel"

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra environment variables
    )

    def model_dump(self, **kwargs):
        """Override to mask sensitive fields when serializing"""
        data = super().model_dump(**kwargs)

        sensitive_fields = ["stripe_secret_key", "stripe_webhook_secret", "jwt_secret", "sentry_dsn"]

        for field in sensitive_fields:
            if field in data and data[field]:
                if hasattr(data[field], "get_secret_value"):
                    value = data[field].get_secret_value()
                else:
                    value = str(data[field])

                # Keep first 4 chars for identification
                if len(value) > 4:
                    data[field] = value[:4] + "*" * (len(value) - 4)
                else:
                    data[field] = "*" * len(value)

        return data


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


# Global settings instance
settings = get_settings()
