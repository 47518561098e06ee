from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel import Session

from qrlove.core.config import is_stripe_configured
from qrlove.core.database import get_db
from qrlove.core.security import decode_access_token
from qrlove.models import Admin
from qrlove.services.coupon import CouponResolver, SqlCouponStore
from qrlove.services.pricing import PriceComposer, PromotionLookup, PromotionLookupError
from qrlove.services.stripe_gateway import StripeGateway

security = HTTPBearer(auto_error=False)


def get_payment_gateway() -> StripeGateway | None:
    """Cliente da Stripe; None quando STRIPE_SECRET_KEY não está configurada."""
    if not is_stripe_configured():
        return None
    return StripeGateway.from_settings()


def _lookup_unavailable(code: str):
    raise PromotionLookupError("Stripe is not configured")


def get_promotion_lookup(gateway: StripeGateway | None = Depends(get_payment_gateway)) -> PromotionLookup:
    if gateway is None:
        return _lookup_unavailable
    return gateway.find_active_promotion


def get_price_composer(db: Session = Depends(get_db)) -> PriceComposer:
    return PriceComposer(CouponResolver(SqlCouponStore(db)))


def require_admin(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: Session = Depends(get_db),
) -> Admin:
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Login de administrador necessário.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    payload = decode_access_token(credentials.credentials)
    if not payload or payload.get("scope") != "admin" or "sub" not in payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token inválido ou expirado.",
        )
    admin = db.get(Admin, int(payload["sub"]))
    if not admin:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Administrador não encontrado.")
    return admin
