"""Montagem da sessão de checkout da Stripe e gravação da compra/fotos."""
import logging
import re
import secrets
from datetime import date
from pathlib import Path
from urllib.parse import quote

from sqlmodel import Session, select

from qrlove.core.config import media_root, settings
from qrlove.models import Purchase, PurchaseImage
from qrlove.services.plans import Plan
from qrlove.services.pricing import CheckoutQuote
from qrlove.services.qr_image import QrImageError, generate_qr_artifact

log = logging.getLogger(__name__)

_HASH_RE = re.compile(r"^[0-9a-f]{32}$")
ALLOWED_PHOTO_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp"}


def generate_unique_hash() -> str:
    return secrets.token_hex(16)


def page_slug(couple_name: str, unique_hash: str) -> str:
    return f"{quote(couple_name, safe='')}-{quote(unique_hash, safe='')}"


def purchase_link(couple_name: str, unique_hash: str) -> str:
    return f"{settings.base_url}/success/{page_slug(couple_name, unique_hash)}"


def page_url(couple_name: str, unique_hash: str) -> str:
    return f"{settings.base_url}/pages/{page_slug(couple_name, unique_hash)}"


def parse_slug(slug: str) -> tuple[str, str] | None:
    """'{casal}-{hash}' -> (casal, hash). O hash é sempre o último segmento (32 hex)."""
    couple, sep, unique_hash = (slug or "").rpartition("-")
    if not sep or not couple or not _HASH_RE.match(unique_hash):
        return None
    return couple, unique_hash


def build_session_params(
    plan: Plan,
    checkout: CheckoutQuote,
    success_url: str,
    cancel_url: str,
    request_id: str | None,
) -> dict:
    params: dict = {
        "payment_method_types": ["card", "boleto"],
        "line_items": [
            {
                "price_data": {
                    "currency": settings.checkout_currency,
                    "product_data": {"name": plan.name},
                    "unit_amount": checkout.quote.final_amount,
                },
                "quantity": 1,
            }
        ],
        "mode": "payment",
        "success_url": success_url,
        "cancel_url": cancel_url,
        "payment_method_options": {
            "boleto": {"expires_after_days": settings.boleto_expires_after_days},
        },
        "metadata": {"requestId": request_id or "", "planId": str(plan.id), **checkout.metadata},
    }
    if checkout.external_promotion_id:
        params["discounts"] = [{"promotion_code": checkout.external_promotion_id}]
    elif checkout.discount is None:
        # Sem desconto aplicado aqui: o pagador ainda pode digitar um código na página da Stripe
        params["allow_promotion_codes"] = True
    return params


def save_purchase(
    db: Session,
    *,
    couple_name: str,
    plan: Plan,
    start_date: date | None,
    unique_hash: str,
    session_id: str,
    checkout: CheckoutQuote,
    request_id: str | None,
) -> Purchase:
    purchase = Purchase(
        couple_name=couple_name,
        plan_id=plan.id,
        session_id=session_id,
        start_date=start_date,
        unique_hash=unique_hash,
        purchase_link=purchase_link(couple_name, unique_hash),
        base_amount=checkout.quote.base_amount,
        discount_amount=checkout.quote.discount_amount,
        final_amount=checkout.quote.final_amount,
        currency=settings.checkout_currency,
        promo_code=checkout.code,
        coupon_id=checkout.coupon_id,
        external_promotion_id=checkout.external_promotion_id,
        request_id=request_id,
    )
    db.add(purchase)
    db.commit()
    db.refresh(purchase)
    return purchase


def store_photo(db: Session, purchase: Purchase, content: bytes, extension: str) -> PurchaseImage:
    """Grava a foto original em media/ e registra na compra."""
    root = media_root()
    root.mkdir(parents=True, exist_ok=True)
    filename = f"{secrets.token_hex(16)}{extension.lower()}"
    (root / filename).write_bytes(content)
    image = PurchaseImage(purchase_id=purchase.id, kind="original", image_url=f"/media/{filename}")
    db.add(image)
    db.commit()
    db.refresh(image)
    return image


def attach_qr_artifact(db: Session, purchase: Purchase, original: PurchaseImage) -> PurchaseImage | None:
    """Gera a versão com QR code; falha de imagem não invalida a compra (a página funciona sem ela)."""
    filename = Path(original.image_url).name
    source = media_root() / filename
    output = media_root() / "edit" / f"processed-{filename}"
    try:
        generate_qr_artifact(source, page_url(purchase.couple_name, purchase.unique_hash), output)
    except QrImageError as e:
        log.error("QR artifact failed: purchase_id=%s error=%s", purchase.id, e)
        return None
    edited = PurchaseImage(purchase_id=purchase.id, kind="edited", image_url=f"/media/edit/{output.name}")
    db.add(edited)
    db.commit()
    db.refresh(edited)
    return edited


def get_purchase_by_slug(db: Session, slug: str) -> Purchase | None:
    parsed = parse_slug(slug)
    if not parsed:
        return None
    couple_name, unique_hash = parsed
    return db.exec(
        select(Purchase).where(Purchase.couple_name == couple_name, Purchase.unique_hash == unique_hash)
    ).first()


def get_purchase_image(db: Session, purchase_id: int, kind: str) -> PurchaseImage | None:
    return db.exec(
        select(PurchaseImage)
        .where(PurchaseImage.purchase_id == purchase_id, PurchaseImage.kind == kind)
        .order_by(PurchaseImage.id.desc())
    ).first()
