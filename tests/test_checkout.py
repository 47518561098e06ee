"""Public checkout: plans, price preview, session creation with photo, success/couple pages."""
from decimal import Decimal

import httpx
from fastapi.testclient import TestClient
from sqlmodel import select

from qrlove.api.deps import get_payment_gateway
from qrlove.main import app
from qrlove.models import Coupon, Purchase, PurchaseImage
from qrlove.services.checkout import page_slug
from qrlove.services.pricing import INVALID_PROMO_MESSAGE, LOOKUP_UNAVAILABLE_MESSAGE
from qrlove.services.stripe_gateway import StripeError, StripeGateway


def add_coupon(db, code, discount_type="percentual", value="10", **kw):
    coupon = Coupon(code=code, discount_type=discount_type, discount_value=Decimal(value), **kw)
    db.add(coupon)
    db.commit()
    db.refresh(coupon)
    return coupon


def test_list_plans(client: TestClient):
    r = client.get("/api/plans")
    assert r.status_code == 200
    assert r.json() == [
        {"id": 1, "name": "Anual", "price": 1990},
        {"id": 2, "name": "Lifetime", "price": 4990},
    ]


def test_quote_without_code(client: TestClient):
    r = client.post("/api/quote", json={"planId": 2})
    assert r.status_code == 200
    j = r.json()
    assert j["baseAmount"] == 4990
    assert j["discountAmount"] == 0
    assert j["finalAmount"] == 4990
    assert j["currency"] == "brl"
    assert j["promoCode"] is None


def test_quote_with_local_coupon(client: TestClient, db):
    add_coupon(db, "QUOTE10")
    r = client.post("/api/quote", json={"planId": 1, "promoCode": " quote10 "})
    assert r.status_code == 200
    j = r.json()
    assert (j["baseAmount"], j["discountAmount"], j["finalAmount"]) == (1990, 199, 1791)
    assert j["promoCode"] == "QUOTE10"
    assert j["discountSource"] == "internal"


def test_quote_with_external_promotion(client: TestClient, gateway):
    r = client.post("/api/quote", json={"planId": 1, "promoCode": "stripe10"})
    assert r.status_code == 200
    j = r.json()
    assert j["finalAmount"] == 1990
    assert j["discountSource"] == "external"
    assert gateway.lookups == ["STRIPE10"]


def test_quote_unknown_plan(client: TestClient):
    r = client.post("/api/quote", json={"planId": 99})
    assert r.status_code == 404
    assert r.json()["error"] == "Plano não encontrado"


def test_quote_invalid_code_generic_message(client: TestClient, db, gateway):
    add_coupon(db, "EXPIRED10", active=False)
    for code in ("EXPIRED10", "NAOEXISTE"):
        r = client.post("/api/quote", json={"planId": 1, "promoCode": code})
        assert r.status_code == 400
        j = r.json()
        assert j["error"] == INVALID_PROMO_MESSAGE
        assert "request_id" in j


def test_quote_lookup_unavailable(client: TestClient, gateway):
    gateway.lookup_error = True
    r = client.post("/api/quote", json={"planId": 1, "promoCode": "QUALQUER"})
    assert r.status_code == 503
    assert r.json()["error"] == LOOKUP_UNAVAILABLE_MESSAGE


def test_quote_without_payment_provider(client: TestClient):
    app.dependency_overrides[get_payment_gateway] = lambda: None
    try:
        r = client.post("/api/quote", json={"planId": 1, "promoCode": "SEMSTRIPE"})
    finally:
        app.dependency_overrides.pop(get_payment_gateway, None)
    assert r.status_code == 503


def test_create_session_full_price(client: TestClient, gateway, db, photo_png):
    r = client.post(
        "/create-checkout-session",
        data={"coupleName": "Ana e Bia", "planId": "2", "startDate": "2020-02-14"},
        files={"photo": ("foto.png", photo_png, "image/png")},
    )
    assert r.status_code == 200, r.text
    j = r.json()
    assert j["id"].startswith("cs_test_")
    assert j["url"].endswith(j["id"])

    params = gateway.sessions[-1]
    assert params["payment_method_types"] == ["card", "boleto"]
    assert params["line_items"][0]["price_data"]["unit_amount"] == 4990
    assert params["line_items"][0]["price_data"]["currency"] == "brl"
    assert params["line_items"][0]["price_data"]["product_data"]["name"] == "Lifetime"
    assert params["payment_method_options"]["boleto"]["expires_after_days"] == 5
    assert params["allow_promotion_codes"] is True
    assert "discounts" not in params
    assert params["metadata"]["planId"] == "2"
    assert params["metadata"]["requestId"] == r.headers["X-Request-ID"]

    purchase = db.exec(select(Purchase).where(Purchase.session_id == j["id"])).one()
    assert purchase.couple_name == "Ana e Bia"
    assert purchase.status == "pending"
    assert purchase.final_amount == 4990
    assert len(purchase.unique_hash) == 32
    assert params["success_url"] == purchase.purchase_link
    assert purchase.purchase_link.endswith(f"/success/{page_slug('Ana e Bia', purchase.unique_hash)}")

    kinds = {i.kind: i.image_url for i in db.exec(select(PurchaseImage).where(PurchaseImage.purchase_id == purchase.id))}
    assert set(kinds) == {"original", "edited"}
    assert kinds["edited"].startswith("/media/edit/processed-")
    assert client.get(kinds["edited"]).status_code == 200


def test_create_session_with_local_coupon(client: TestClient, gateway, db):
    coupon = add_coupon(db, "CASAL5", discount_type="valor_fixo", value="5.00")
    r = client.post(
        "/create-checkout-session",
        data={"coupleName": "Caio & Duda", "planId": "1", "promoCode": "casal5"},
    )
    assert r.status_code == 200, r.text
    params = gateway.sessions[-1]
    assert params["line_items"][0]["price_data"]["unit_amount"] == 1490
    assert "allow_promotion_codes" not in params
    assert params["metadata"]["discountSource"] == "internal"
    assert params["metadata"]["couponId"] == str(coupon.id)
    assert params["metadata"]["discountAppliedInCents"] == "500"
    assert params["metadata"]["originalAmountInCents"] == "1990"

    purchase = db.exec(select(Purchase).where(Purchase.session_id == r.json()["id"])).one()
    assert (purchase.base_amount, purchase.discount_amount, purchase.final_amount) == (1990, 500, 1490)
    assert purchase.coupon_id == coupon.id
    assert purchase.promo_code == "CASAL5"
    # reservar não consome o cupom; só o pagamento confirmado
    db.refresh(coupon)
    assert coupon.used_count == 0


def test_create_session_with_external_promotion(client: TestClient, gateway, db):
    r = client.post("/create-checkout-session", data={"coupleName": "Eva", "planId": "1", "promoCode": "Stripe10"})
    assert r.status_code == 200, r.text
    params = gateway.sessions[-1]
    assert params["discounts"] == [{"promotion_code": "promo_stripe10"}]
    assert "allow_promotion_codes" not in params
    assert params["line_items"][0]["price_data"]["unit_amount"] == 1990
    assert params["metadata"]["promotionCodeId"] == "promo_stripe10"
    purchase = db.exec(select(Purchase).where(Purchase.session_id == r.json()["id"])).one()
    assert purchase.external_promotion_id == "promo_stripe10"


def test_create_session_invalid_code_creates_nothing(client: TestClient, gateway, db):
    add_coupon(db, "LOTADO", usage_limit=1, used_count=1)
    r = client.post("/create-checkout-session", data={"coupleName": "Gil", "planId": "1", "promoCode": "lotado"})
    assert r.status_code == 400
    assert r.json()["error"] == INVALID_PROMO_MESSAGE
    assert gateway.sessions == []
    assert db.exec(select(Purchase).where(Purchase.couple_name == "Gil")).first() is None


def test_create_session_lookup_unavailable(client: TestClient, gateway):
    gateway.lookup_error = True
    r = client.post("/create-checkout-session", data={"coupleName": "Iris", "planId": "1", "promoCode": "X1"})
    assert r.status_code == 503
    assert gateway.sessions == []


def test_create_session_validation(client: TestClient, gateway):
    r = client.post("/create-checkout-session", data={"coupleName": "  ", "planId": "1"})
    assert r.status_code == 400
    r = client.post("/create-checkout-session", data={"coupleName": "Ana", "planId": "7"})
    assert r.status_code == 404
    r = client.post("/create-checkout-session", data={"coupleName": "Ana", "planId": "1", "startDate": "14/02/2020"})
    assert r.status_code == 400
    r = client.post(
        "/create-checkout-session",
        data={"coupleName": "Ana", "planId": "1"},
        files={"photo": ("foto.gif", b"GIF89a", "image/gif")},
    )
    assert r.status_code == 400
    r = client.post("/create-checkout-session", data={"planId": "1"})
    assert r.status_code == 422
    assert gateway.sessions == []


def test_create_session_without_payment_provider(client: TestClient):
    app.dependency_overrides[get_payment_gateway] = lambda: None
    try:
        r = client.post("/create-checkout-session", data={"coupleName": "Ana", "planId": "1"})
    finally:
        app.dependency_overrides.pop(get_payment_gateway, None)
    assert r.status_code == 503


def test_success_and_couple_pages(client: TestClient, gateway, db, photo_png):
    r = client.post(
        "/create-checkout-session",
        data={"coupleName": "Léo e Mia", "planId": "1", "startDate": "2019-07-01"},
        files={"photo": ("nós.jpg", photo_png, "image/jpeg")},
    )
    assert r.status_code == 200, r.text
    purchase = db.exec(select(Purchase).where(Purchase.session_id == r.json()["id"])).one()
    slug = page_slug(purchase.couple_name, purchase.unique_hash)

    r = client.get(f"/success/{slug}")
    assert r.status_code == 200
    j = r.json()
    assert j["coupleName"] == "Léo e Mia"
    assert j["planName"] == "Anual"
    assert j["startDate"] == "2019-07-01"
    assert j["status"] == "pending"
    assert j["qrImageUrl"].startswith("/media/edit/")
    assert j["pageUrl"] == f"/pages/{slug}"

    r = client.get(f"/pages/{slug}")
    assert r.status_code == 200
    j = r.json()
    assert j["coupleName"] == "Léo e Mia"
    assert j["imageUrl"].startswith("/media/")
    assert not j["imageUrl"].startswith("/media/edit/")


def test_pages_not_found(client: TestClient):
    assert client.get("/success/Ninguem-" + "0" * 32).status_code == 404
    assert client.get("/pages/Ninguem-" + "0" * 32).status_code == 404
    r = client.get("/pages/sem-hash")
    assert r.status_code == 404
    assert r.json()["error"] == "Página personalizada não encontrada."


def test_cancel(client: TestClient):
    r = client.get("/cancel")
    assert r.status_code == 200
    assert r.text == "Pagamento cancelado."


def test_config_returns_publishable_key(client: TestClient):
    r = client.get("/config")
    assert r.status_code == 200
    assert r.json() == {"publicKey": "pk_test_dummy"}


def test_create_session_provider_failure(client: TestClient, gateway, db):
    def fail(params):
        raise StripeError("card_declined", 402)

    gateway.create_checkout_session = fail
    r = client.post("/create-checkout-session", data={"coupleName": "Hugo", "planId": "1"})
    assert r.status_code == 502
    assert db.exec(select(Purchase).where(Purchase.couple_name == "Hugo")).first() is None


def test_quote_with_malformed_provider_response_is_unavailable(client: TestClient):
    def handler(request):
        return httpx.Response(200, json={"data": {"id": "promo_1"}})

    malformed = StripeGateway("sk_test_123", transport=httpx.MockTransport(handler))
    app.dependency_overrides[get_payment_gateway] = lambda: malformed
    try:
        r = client.post("/api/quote", json={"planId": 1, "promoCode": "ESTRANHO"})
    finally:
        app.dependency_overrides.pop(get_payment_gateway, None)
    assert r.status_code == 503
    assert r.json()["error"] == LOOKUP_UNAVAILABLE_MESSAGE


def test_create_session_rejects_slash_in_couple_name(client: TestClient, gateway, db):
    r = client.post("/create-checkout-session", data={"coupleName": "Ana/Bia", "planId": "1"})
    assert r.status_code == 400
    assert "'/'" in r.json()["error"]
    assert gateway.sessions == []
    assert db.exec(select(Purchase).where(Purchase.couple_name == "Ana/Bia")).first() is None
