"""
Shared fixtures for the storefront test suite

Stores run on a fresh in-memory SQLite database per test. The Stripe SDK
client is a MagicMock injected into a real ``StripeGateway``, so webhook
signatures are still verified by the real ``stripe.Webhook``.
"""
import hashlib
import hmac
import json
import time
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from api.dependencies import (
    get_purchase_store,
    get_stripe_gateway,
    get_token_store,
    get_webhook_event_store,
)
from core.config import Settings, get_settings
from database.base import Base
from database.session import build_engine, init_db
from storefront.stores import SqlPurchaseStore, SqlTokenStore, SqlWebhookEventStore
from storefront.stripe_client import StripeConfig, StripeGateway

WEBHOOK_SECRET = "whsec_test_storefront"
JWT_SECRET = "test-jwt-secret-with-at-least-32-bytes"
WORKFLOW_CONTENT = {"name": "Invoice Automation", "nodes": [{"type": "trigger"}]}


@pytest.fixture
def db_engine():
    """Isolated in-memory database with all storefront tables"""
    engine = build_engine("sqlite://")
    init_db(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture
def purchase_store(session_factory):
    return SqlPurchaseStore(session_factory)


@pytest.fixture
def token_store(session_factory):
    return SqlTokenStore(session_factory)


@pytest.fixture
def webhook_event_store(session_factory):
    return SqlWebhookEventStore(session_factory)


@pytest.fixture
def stripe_config():
    return StripeConfig(
        api_key="sk_test_storefront",
        webhook_secret=WEBHOOK_SECRET,
        api_version="2023-10-16",
    )


@pytest.fixture
def stripe_sdk():
    """Mock Stripe SDK client"""
    return MagicMock(name="StripeClient")


@pytest.fixture
def stripe_gateway(stripe_config, stripe_sdk):
    return StripeGateway(stripe_config, client=stripe_sdk)


@pytest.fixture
def downloads_dir(tmp_path):
    """Downloads directory holding one workflow file"""
    directory = tmp_path / "workflows"
    directory.mkdir()
    (directory / "invoice-automation.json").write_text(json.dumps(WORKFLOW_CONTENT))
    return directory


@pytest.fixture
def test_settings(downloads_dir):
    return Settings(
        _env_file=None,
        environment="test",
        frontend_url="http://localhost:3000",
        stripe_secret_key="sk_test_storefront",
        stripe_webhook_secret=WEBHOOK_SECRET,
        jwt_secret=JWT_SECRET,
        downloads_dir=str(downloads_dir),
        rate_limit_enabled=False,
    )


@pytest.fixture
def app(stripe_gateway, purchase_store, token_store, webhook_event_store, test_settings):
    """Application with every process-wide dependency replaced by a test double"""
    from main import app as fastapi_app

    fastapi_app.dependency_overrides[get_settings] = lambda: test_settings
    fastapi_app.dependency_overrides[get_stripe_gateway] = lambda: stripe_gateway
    fastapi_app.dependency_overrides[get_purchase_store] = lambda: purchase_store
    fastapi_app.dependency_overrides[get_token_store] = lambda: token_store
    fastapi_app.dependency_overrides[get_webhook_event_store] = lambda: webhook_event_store
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def sign_webhook():
    """Build a ``stripe-signature`` header the way Stripe does"""

    def _sign(payload: str, secret: str = WEBHOOK_SECRET, timestamp: int = None) -> str:
        timestamp = timestamp or int(time.time())
        signed_payload = f"{timestamp}.{payload}"
        signature = hmac.new(secret.encode("utf-8"), signed_payload.encode("utf-8"), hashlib.sha256).hexdigest()
        return f"t={timestamp},v1={signature}"

    return _sign


@pytest.fixture
def completed_session():
    """A paid checkout session as delivered in ``checkout.session.completed``"""

    def _session(
        session_id: str = "cs_test_123",
        items=None,
        user_id: str = "user_123",
        amount_total: int = 4900,
    ) -> dict:
        items = items if items is not None else [{"id": "invoice-automation", "title": "Invoice Automation"}]
        return {
            "id": session_id,
            "object": "checkout.session",
            "amount_total": amount_total,
            "currency": "usd",
            "customer_email": "buyer@example.com",
            "payment_status": "paid",
            "status": "complete",
            "metadata": {
                "items": json.dumps(items),
                "userId": user_id,
                "timestamp": "2026-10-19T12:00:00+00:00",
            },
        }

    return _session


@pytest.fixture
def make_event():
    def _event(event_type: str, obj: dict, event_id: str = "evt_test_123") -> str:
        return json.dumps(
            {
                "id": event_id,
                "object": "event",
                "type": event_type,
                "created": int(time.time()),
                "data": {"object": obj},
            }
        )

    return _event
