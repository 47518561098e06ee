"""Pytest fixtures: test client, test DB (in-memory SQLite), fake Stripe gateway, admin token."""
import io
import os
import tempfile

import pytest
from fastapi.testclient import TestClient

# In-memory SQLite e chaves de teste (antes de importar a aplicação)
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_dummy")
os.environ.setdefault("STRIPE_PUBLISHABLE_KEY", "pk_test_dummy")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test")
os.environ.setdefault("BASE_URL", "http://testserver")
# Checkout/prévia com limite alto para que todos os testes passem
os.environ.setdefault("RATE_LIMIT_CHECKOUT_PER_MINUTE", "1000")
os.environ.setdefault("MEDIA_DIR", tempfile.mkdtemp(prefix="qrlove-media-"))

from PIL import Image
from sqlmodel import Session

from qrlove.api.deps import get_payment_gateway
from qrlove.core.database import engine
from qrlove.core.security import hash_password
from qrlove.main import app
from qrlove.models import Admin
from qrlove.services.pricing import ExternalPromotion, PromotionLookupError
from qrlove.services.stripe_gateway import CheckoutSession

ADMIN_EMAIL = "admin@qrlove.test"
ADMIN_PASSWORD = "senha-segura-123"


class FakeGateway:
    """Substitui a Stripe: códigos promocionais em memória e sessões registradas."""

    def __init__(self, promotions=None, lookup_error=False):
        self.promotions = dict(promotions or {})
        self.lookup_error = lookup_error
        self.lookups = []
        self.sessions = []

    def find_active_promotion(self, code):
        self.lookups.append(code)
        if self.lookup_error:
            raise PromotionLookupError("stripe down")
        promotion_id = self.promotions.get(code)
        return ExternalPromotion(id=promotion_id, code=code) if promotion_id else None

    def create_checkout_session(self, params):
        session_id = f"cs_test_{len(self.sessions) + 1:04d}_{os.urandom(4).hex()}"
        self.sessions.append(params)
        return CheckoutSession(id=session_id, url=f"https://checkout.stripe.test/{session_id}", metadata=params["metadata"])


@pytest.fixture(scope="function")
def client():
    """TestClient; lifespan ile in-memory DB e tabelas prontas."""
    with TestClient(app) as c:
        yield c


@pytest.fixture
def gateway():
    """Gateway falso instalado via dependency_overrides (também usado pela prévia /api/quote)."""
    fake = FakeGateway(promotions={"STRIPE10": "promo_stripe10"})
    app.dependency_overrides[get_payment_gateway] = lambda: fake
    yield fake
    app.dependency_overrides.pop(get_payment_gateway, None)


@pytest.fixture
def db():
    with Session(engine) as session:
        yield session


@pytest.fixture(scope="session")
def _admin_token():
    """Um único login na sessão de testes (o login tem limite 5/min por IP)."""
    with TestClient(app) as auth_client:
        with Session(engine) as session:
            session.add(Admin(email=ADMIN_EMAIL, password_hash=hash_password(ADMIN_PASSWORD), name="Admin Teste"))
            session.commit()
        r = auth_client.post(
            "/admin/login",
            data={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD},
            headers={"X-Forwarded-For": "198.51.100.1"},
        )
        assert r.status_code == 200, f"Login failed: {r.status_code} {r.text}"
        return r.json().get("access_token")


@pytest.fixture
def admin_headers(_admin_token):
    return {"Authorization": f"Bearer {_admin_token}"}


@pytest.fixture
def photo_png():
    """Foto 800x600 em PNG para upload."""
    buffer = io.BytesIO()
    Image.new("RGB", (800, 600), (40, 120, 200)).save(buffer, format="PNG")
    return buffer.getvalue()
