"""
Tests for settings loading and validation
"""

import pytest
from pydantic import ValidationError

from core.config import DEFAULT_SHIPPING_COUNTRIES, Settings

# Mark entire module as critical - config is fundamental
pytestmark = pytest.mark.critical


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Clear the settings cache around each test"""
    from core.config import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestDefaults:
    def test_default_settings(self, monkeypatch):
        # Clear environment variables set by conftest
        for name in ("ENVIRONMENT", "DATABASE_URL", "RATE_LIMIT_ENABLED", "STRIPE_SECRET_KEY", "JWT_SECRET"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings(_env_file=None)

        assert settings.environment == "development"
        assert settings.port == 4242
        assert settings.frontend_url == "http://localhost:3000"
        assert settings.stripe_secret_key is None
        assert settings.checkout_currency == "usd"
        assert settings.allowed_shipping_countries == DEFAULT_SHIPPING_COUNTRIES
        assert settings.download_token_ttl_days == 7
        assert settings.rate_limit_enabled is True
        assert settings.is_development is True

    def test_checkout_urls(self):
        settings = Settings(_env_file=None, frontend_url="https://shop.example.com/")

        assert settings.frontend_url == "https://shop.example.com"
        assert settings.success_url == "https://shop.example.com/success?session_id={CHECKOUT_SESSION_ID}"
        assert settings.cancel_url == "https://shop.example.com/cancel"

    def test_environment_variables(self, monkeypatch):
        monkeypatch.setenv("PORT", "8080")
        monkeypatch.setenv("ALLOWED_SHIPPING_COUNTRIES", '["us", "ca"]')
        monkeypatch.setenv("STRIPE_SECRET_KEY", "sk_test_env")

        settings = Settings(_env_file=None)

        assert settings.port == 8080
        assert settings.allowed_shipping_countries == ["US", "CA"]
        assert settings.stripe_secret_key.get_secret_value() == "sk_test_env"

    @pytest.mark.parametrize("raw", ["us,ca", " US , CA ", '["us", "ca"]'])
    def test_shipping_countries_from_env(self, monkeypatch, raw):
        monkeypatch.setenv("ALLOWED_SHIPPING_COUNTRIES", raw)

        settings = Settings(_env_file=None)

        assert settings.allowed_shipping_countries == ["US", "CA"]


class TestValidation:
    def test_invalid_environment(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, environment="qa")

    @pytest.mark.parametrize("countries", [["USA"], ["1A"], []])
    def test_invalid_shipping_countries(self, countries):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, allowed_shipping_countries=countries)

    def test_invalid_log_format(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, log_format="xml")

    def test_production_requires_stripe_secrets(self):
        with pytest.raises(ValidationError) as exc_info:
            Settings(_env_file=None, environment="production", stripe_secret_key=None, stripe_webhook_secret=None)

        assert "STRIPE_SECRET_KEY is required in production" in str(exc_info.value)

    def test_production_with_secrets(self):
        settings = Settings(
            _env_file=None,
            environment="production",
            stripe_secret_key="sk_live_123",
            stripe_webhook_secret="whsec_live_123",
        )

        assert settings.is_production is True


class TestSecretMasking:
    def test_model_dump_masks_secrets(self):
        settings = Settings(
            _env_file=None,
            stripe_secret_key="sk_test_abcdef",
            stripe_webhook_secret="whsec_abcdef",
            jwt_secret="abc",
        )

        data = settings.model_dump()

        assert data["stripe_secret_key"] == "sk_t" + "*" * 10
        assert data["stripe_webhook_secret"].startswith("whse")
        assert "abcdef" not in data["stripe_webhook_secret"]
        assert data["jwt_secret"] == "***"
