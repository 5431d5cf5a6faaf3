"""
Test Downloads API

Endpoint tests for token and bearer authorized workflow downloads.
"""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from storefront.models import utcnow

from tests.conftest import JWT_SECRET, WORKFLOW_CONTENT


@pytest.fixture
def purchase(purchase_store):
    purchase, _ = purchase_store.record_purchase(
        stripe_session_id="cs_test_123",
        user_id="user_123",
        product_ids=["invoice-automation"],
        amount_total_cents=4900,
        currency="usd",
    )
    return purchase


@pytest.fixture
def token(token_store, purchase):
    return token_store.issue(
        user_id="user_123",
        product_id="invoice-automation",
        purchase_id=purchase.id,
        expires_at=utcnow() + timedelta(days=7),
    )


def bearer(sub="user_123", expires_in=timedelta(hours=1), secret=JWT_SECRET):
    claims = {"sub": sub, "exp": datetime.now(timezone.utc) + expires_in}
    return {"Authorization": f"Bearer {jwt.encode(claims, secret, algorithm='HS256')}"}


class TestTokenDownload:
    def test_valid_token_serves_file(self, client, token):
        response = client.get("/api/download/invoice-automation", params={"userId": "user_123", "token": token})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("application/json")
        assert 'filename="workflow-invoice-automation.json"' in response.headers["content-disposition"]
        assert response.json() == WORKFLOW_CONTENT

    def test_token_reusable(self, client, token):
        params = {"userId": "user_123", "token": token}

        assert client.get("/api/download/invoice-automation", params=params).status_code == 200
        assert client.get("/api/download/invoice-automation", params=params).status_code == 200

    def test_no_credentials_denied(self, client, purchase):
        response = client.get("/api/download/invoice-automation")

        assert response.status_code == 403
        assert response.json() == {"error": "You do not have access to this product"}

    def test_wrong_user_denied(self, client, token):
        response = client.get("/api/download/invoice-automation", params={"userId": "user_456", "token": token})

        assert response.status_code == 403

    def test_expired_token_denied(self, client, token_store, purchase):
        expired = token_store.issue(
            user_id="user_123",
            product_id="invoice-automation",
            purchase_id=purchase.id,
            expires_at=utcnow() - timedelta(minutes=1),
        )

        response = client.get("/api/download/invoice-automation", params={"userId": "user_123", "token": expired})

        assert response.status_code == 403

    def test_invalid_product_id(self, client, token):
        response = client.get("/api/download/bad.product", params={"userId": "user_123", "token": token})

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid product id"}

    def test_missing_file(self, client, token_store, purchase):
        token = token_store.issue(
            user_id="user_123",
            product_id="lead-router",
            purchase_id=purchase.id,
            expires_at=utcnow() + timedelta(days=7),
        )

        response = client.get("/api/download/lead-router", params={"userId": "user_123", "token": token})

        assert response.status_code == 404


class TestBearerDownload:
    def test_purchased_product(self, client, purchase):
        response = client.get("/api/download/invoice-automation", headers=bearer())

        assert response.status_code == 200
        assert response.json() == WORKFLOW_CONTENT

    def test_not_purchased(self, client, purchase):
        response = client.get("/api/download/invoice-automation", headers=bearer(sub="user_456"))

        assert response.status_code == 403

    def test_expired_jwt(self, client, purchase):
        response = client.get("/api/download/invoice-automation", headers=bearer(expires_in=timedelta(hours=-1)))

        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}

    def test_jwt_with_wrong_secret(self, client, purchase):
        headers = bearer(secret="another-secret-that-is-also-32-bytes-long")

        response = client.get("/api/download/invoice-automation", headers=headers)

        assert response.status_code == 401

    def test_malformed_jwt(self, client, purchase):
        response = client.get("/api/download/invoice-automation", headers={"Authorization": "Bearer not.a.jwt"})

        assert response.status_code == 401
