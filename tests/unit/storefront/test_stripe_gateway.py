"""
Test Storefront Stripe gateway

SDK calls go to a MagicMock client; signature verification runs through the
real ``stripe.Webhook``.
"""

import json
from unittest.mock import Mock

import pytest
import stripe

from core.exceptions import ConfigurationError, PaymentProviderError
from storefront.stripe_client import StripeConfig, StripeGateway, WebhookSignatureError


def sdk_object(data):
    obj = Mock()
    obj.id = data.get("id")
    obj.to_dict.return_value = data
    return obj


class TestStripeConfig:
    def test_from_settings(self, test_settings):
        config = StripeConfig.from_settings(test_settings)

        assert config.api_key == "sk_test_storefront"
        assert config.webhook_secret == "whsec_test_storefront"
        assert config.api_version == "2023-10-16"
        assert config.timeout_seconds == 30
        assert config.max_network_retries == 2
        assert config.is_configured is True
        assert config.is_test_mode is True

    def test_unconfigured(self):
        config = StripeConfig()

        assert config.is_configured is False
        assert config.is_test_mode is False

    def test_live_key_is_not_test_mode(self):
        assert StripeConfig(api_key="sk_live_abc").is_test_mode is False


class TestStripeGateway:
    def test_client_requires_api_key(self):
        gateway = StripeGateway(StripeConfig())

        with pytest.raises(ConfigurationError):
            gateway.client

    def test_create_checkout_session(self, stripe_gateway, stripe_sdk):
        stripe_sdk.v1.checkout.sessions.create.return_value = sdk_object({"id": "cs_test_123", "object": "checkout.session"})
        params = {"mode": "payment", "line_items": [{"price": "price_123", "quantity": 1}]}

        session = stripe_gateway.create_checkout_session(params, idempotency_key="checkout-abc")

        assert session == {"id": "cs_test_123", "object": "checkout.session"}
        stripe_sdk.v1.checkout.sessions.create.assert_called_once_with(
            params=params, options={"idempotency_key": "checkout-abc"}
        )

    def test_create_checkout_session_stripe_error(self, stripe_gateway, stripe_sdk):
        stripe_sdk.v1.checkout.sessions.create.side_effect = stripe.InvalidRequestError(
            message="No such price: 'price_missing'", param="line_items[0][price]", code="resource_missing"
        )

        with pytest.raises(PaymentProviderError) as exc_info:
            stripe_gateway.create_checkout_session({"mode": "payment"})

        assert exc_info.value.status_code == 500
        assert "No such price" in exc_info.value.message
        assert exc_info.value.details["stripe_error_code"] == "resource_missing"

    def test_retrieve_checkout_session(self, stripe_gateway, stripe_sdk):
        stripe_sdk.v1.checkout.sessions.retrieve.return_value = sdk_object({"id": "cs_test_123", "payment_status": "paid"})

        session = stripe_gateway.retrieve_checkout_session("cs_test_123")

        assert session["payment_status"] == "paid"
        stripe_sdk.v1.checkout.sessions.retrieve.assert_called_once_with("cs_test_123")

    def test_retrieve_unknown_session_is_client_error(self, stripe_gateway, stripe_sdk):
        stripe_sdk.v1.checkout.sessions.retrieve.side_effect = stripe.InvalidRequestError(
            message="No such checkout.session: 'cs_missing'", param="session", code="resource_missing"
        )

        with pytest.raises(PaymentProviderError) as exc_info:
            stripe_gateway.retrieve_checkout_session("cs_missing")

        assert exc_info.value.status_code == 400

    def test_retrieve_network_failure_is_server_error(self, stripe_gateway, stripe_sdk):
        stripe_sdk.v1.checkout.sessions.retrieve.side_effect = stripe.APIConnectionError("Network is unreachable")

        with pytest.raises(PaymentProviderError) as exc_info:
            stripe_gateway.retrieve_checkout_session("cs_test_123")

        assert exc_info.value.status_code == 500


class TestConstructEvent:
    def test_valid_signature(self, stripe_gateway, sign_webhook):
        payload = json.dumps({"id": "evt_1", "object": "event", "type": "payment_intent.succeeded", "data": {"object": {"id": "pi_1"}}})

        event = stripe_gateway.construct_event(payload.encode(), sign_webhook(payload))

        assert event["id"] == "evt_1"
        assert event["type"] == "payment_intent.succeeded"

    def test_wrong_secret(self, stripe_gateway, sign_webhook):
        payload = json.dumps({"id": "evt_1", "object": "event", "type": "payment_intent.succeeded"})

        with pytest.raises(WebhookSignatureError) as exc_info:
            stripe_gateway.construct_event(payload.encode(), sign_webhook(payload, secret="whsec_other"))

        assert exc_info.value.status_code == 400

    def test_tampered_payload(self, stripe_gateway, sign_webhook):
        payload = json.dumps({"id": "evt_1", "object": "event", "type": "payment_intent.succeeded"})
        signature = sign_webhook(payload)
        tampered = payload.replace("evt_1", "evt_2")

        with pytest.raises(WebhookSignatureError):
            stripe_gateway.construct_event(tampered.encode(), signature)

    def test_malformed_header(self, stripe_gateway):
        with pytest.raises(WebhookSignatureError):
            stripe_gateway.construct_event(b"{}", "not-a-signature")

    def test_missing_webhook_secret(self, stripe_sdk, sign_webhook):
        gateway = StripeGateway(StripeConfig(api_key="sk_test_storefront"), client=stripe_sdk)
        payload = json.dumps({"id": "evt_1", "object": "event"})

        with pytest.raises(WebhookSignatureError) as exc_info:
            gateway.construct_event(payload.encode(), sign_webhook(payload))

        assert "not configured" in exc_info.value.message
