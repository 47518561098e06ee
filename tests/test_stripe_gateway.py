"""Stripe REST client (httpx.MockTransport) and webhook signature verification."""
import json
from urllib.parse import parse_qsl

import httpx
import pytest

from qrlove.services.pricing import ExternalPromotion, PromotionLookupError
from qrlove.services.stripe_gateway import (
    StripeError,
    StripeGateway,
    WebhookSignatureError,
    encode_form,
    sign_webhook_payload,
    verify_webhook_signature,
)


def gateway_with(handler):
    return StripeGateway("sk_test_123", transport=httpx.MockTransport(handler))


def test_find_active_promotion_queries_by_code():
    seen = {}

    def handler(request: httpx.Request):
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        seen["auth"] = request.headers["authorization"]
        return httpx.Response(200, json={"data": [{"id": "promo_1", "code": "STRIPE10", "active": True}]})

    promo = gateway_with(handler).find_active_promotion("STRIPE10")
    assert promo == ExternalPromotion(id="promo_1", code="STRIPE10")
    assert seen["path"] == "/v1/promotion_codes"
    assert seen["params"] == {"code": "STRIPE10", "active": "true", "limit": "1"}
    assert seen["auth"] == "Bearer sk_test_123"


def test_find_active_promotion_none_when_empty():
    promo = gateway_with(lambda r: httpx.Response(200, json={"data": []})).find_active_promotion("X")
    assert promo is None


def test_provider_error_becomes_lookup_error():
    def handler(request):
        return httpx.Response(500, json={"error": {"message": "boom"}})

    with pytest.raises(PromotionLookupError):
        gateway_with(handler).find_active_promotion("X")


def test_network_error_becomes_lookup_error():
    def handler(request):
        raise httpx.ConnectError("unreachable", request=request)

    with pytest.raises(PromotionLookupError):
        gateway_with(handler).find_active_promotion("X")


def test_create_checkout_session_posts_form():
    seen = {}

    def handler(request: httpx.Request):
        seen["method"] = request.method
        seen["form"] = parse_qsl(request.content.decode())
        return httpx.Response(200, json={"id": "cs_test_1", "url": "https://checkout.stripe.com/c/cs_test_1"})

    session = gateway_with(handler).create_checkout_session(
        {"mode": "payment", "line_items": [{"quantity": 1}], "metadata": {"planId": "1"}}
    )
    assert session.id == "cs_test_1"
    assert session.url.endswith("cs_test_1")
    assert seen["method"] == "POST"
    assert ("line_items[0][quantity]", "1") in seen["form"]
    assert ("metadata[planId]", "1") in seen["form"]


def test_create_checkout_session_error_message():
    def handler(request):
        return httpx.Response(400, json={"error": {"message": "Invalid currency"}})

    with pytest.raises(StripeError) as exc:
        gateway_with(handler).create_checkout_session({"mode": "payment"})
    assert exc.value.status_code == 400
    assert "Invalid currency" in str(exc.value)


def test_encode_form_nested():
    pairs = encode_form(
        {
            "payment_method_types": ["card", "boleto"],
            "payment_method_options": {"boleto": {"expires_after_days": 5}},
            "allow_promotion_codes": True,
            "discounts": [{"promotion_code": "promo_1"}],
            "customer": None,
        }
    )
    assert pairs == [
        ("payment_method_types[0]", "card"),
        ("payment_method_types[1]", "boleto"),
        ("payment_method_options[boleto][expires_after_days]", "5"),
        ("allow_promotion_codes", "true"),
        ("discounts[0][promotion_code]", "promo_1"),
    ]


def test_webhook_signature_roundtrip():
    payload = json.dumps({"id": "evt_1", "type": "checkout.session.completed"}).encode()
    header = sign_webhook_payload(payload, "whsec_x", timestamp=1_700_000_000)
    event = verify_webhook_signature(payload, header, "whsec_x", now=1_700_000_100)
    assert event["id"] == "evt_1"


@pytest.mark.parametrize(
    "header",
    [None, "", "t=1700000000", "v1=abc", "t=abc,v1=def", "t=1700000000,v1=deadbeef"],
)
def test_webhook_signature_rejected(header):
    with pytest.raises(WebhookSignatureError):
        verify_webhook_signature(b"{}", header, "whsec_x", now=1_700_000_000)


def test_webhook_signature_wrong_secret():
    header = sign_webhook_payload(b"{}", "whsec_other", timestamp=1_700_000_000)
    with pytest.raises(WebhookSignatureError):
        verify_webhook_signature(b"{}", header, "whsec_x", now=1_700_000_000)


def test_webhook_signature_outside_tolerance():
    header = sign_webhook_payload(b"{}", "whsec_x", timestamp=1_700_000_000)
    with pytest.raises(WebhookSignatureError):
        verify_webhook_signature(b"{}", header, "whsec_x", tolerance=300, now=1_700_000_301)


def test_malformed_promotion_list_becomes_lookup_error():
    def handler(request):
        return httpx.Response(200, json={"object": "list", "data": "promo_1"})

    with pytest.raises(PromotionLookupError):
        gateway_with(handler).find_active_promotion("X")


def test_malformed_promotion_items_are_skipped():
    def handler(request):
        return httpx.Response(200, json={"data": ["promo_1", None, {"code": "SEMID"}]})

    assert gateway_with(handler).find_active_promotion("X") is None
