"""Checkout público: planos, prévia de preço e criação da sessão de pagamento (com upload da foto)."""
import logging
from datetime import date
from pathlib import Path

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import PlainTextResponse
from sqlmodel import Session

from qrlove.api.deps import get_payment_gateway, get_price_composer, get_promotion_lookup
from qrlove.core.config import settings
from qrlove.core.database import get_db
from qrlove.core.rate_limit import limiter
from qrlove.schemas import CheckoutSessionResponse, PlanOut, QuoteRequest, QuoteResponse
from qrlove.services.checkout import (
    ALLOWED_PHOTO_EXTENSIONS,
    attach_qr_artifact,
    build_session_params,
    generate_unique_hash,
    purchase_link,
    save_purchase,
    store_photo,
)
from qrlove.services.plans import PLANS, get_plan
from qrlove.services.pricing import CheckoutRejection, PriceComposer, PromotionLookup
from qrlove.services.stripe_gateway import StripeError, StripeGateway

log = logging.getLogger("qrlove")

router = APIRouter(tags=["checkout"])
_CHECKOUT_LIMIT = f"{settings.rate_limit_checkout_per_minute}/minute"


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


def _raise_rejection(request: Request, rejection: CheckoutRejection) -> None:
    # Motivos ficam só no log; o pagador recebe a mensagem genérica
    log.warning(
        "Checkout rejected: request_id=%s kind=%s code=%s reasons=%s",
        _request_id(request),
        rejection.kind.value,
        rejection.code,
        ",".join(r.value for r in rejection.reasons) or "-",
    )
    raise HTTPException(status_code=rejection.http_status, detail=rejection.user_message)


@router.get("/api/plans", response_model=list[PlanOut])
def list_plans():
    return [PlanOut(id=p.id, name=p.name, price=p.price) for p in PLANS]


@router.post("/api/quote", response_model=QuoteResponse)
@limiter.limit(_CHECKOUT_LIMIT)
def quote_price(
    request: Request,
    body: QuoteRequest,
    composer: PriceComposer = Depends(get_price_composer),
    lookup: PromotionLookup = Depends(get_promotion_lookup),
):
    """Prévia do valor final para o formulário; não cria sessão nem grava nada."""
    plan = get_plan(body.plan_id)
    if not plan:
        raise HTTPException(status_code=404, detail="Plano não encontrado")
    result = composer.compose(plan.price, body.promo_code, lookup)
    if isinstance(result, CheckoutRejection):
        _raise_rejection(request, result)
    return QuoteResponse(
        plan_id=plan.id,
        plan_name=plan.name,
        base_amount=result.quote.base_amount,
        discount_amount=result.quote.discount_amount,
        final_amount=result.quote.final_amount,
        currency=settings.checkout_currency,
        promo_code=result.code,
        discount_source=result.discount.source_kind.value if result.discount else None,
    )


def _parse_start_date(raw: str | None) -> date | None:
    raw = (raw or "").strip()
    if not raw:
        return None
    try:
        return date.fromisoformat(raw)
    except ValueError:
        raise HTTPException(status_code=400, detail="Data de início inválida (use AAAA-MM-DD).") from None


async def _read_photo(photo: UploadFile | None) -> tuple[bytes, str] | None:
    if photo is None or not photo.filename:
        return None
    ext = Path(photo.filename).suffix.lower()
    if ext not in ALLOWED_PHOTO_EXTENSIONS:
        raise HTTPException(status_code=400, detail="Envie uma foto JPG, PNG ou WEBP.")
    content = await photo.read()
    if not content:
        raise HTTPException(status_code=400, detail="Foto vazia.")
    if len(content) > settings.upload_max_mb * 1024 * 1024:
        raise HTTPException(status_code=413, detail=f"A foto pode ter no máximo {settings.upload_max_mb} MB.")
    return content, ext


@router.post("/create-checkout-session", response_model=CheckoutSessionResponse)
@limiter.limit(_CHECKOUT_LIMIT)
async def create_checkout_session(
    request: Request,
    couple_name: str = Form(..., alias="coupleName"),
    plan_id: str = Form(..., alias="planId"),
    start_date: str | None = Form(None, alias="startDate"),
    promo_code: str | None = Form(None, alias="promoCode"),
    photo: UploadFile | None = File(None),
    db: Session = Depends(get_db),
    composer: PriceComposer = Depends(get_price_composer),
    gateway: StripeGateway | None = Depends(get_payment_gateway),
):
    rid = _request_id(request)
    couple_name = (couple_name or "").strip()
    log.info("Checkout requested: request_id=%s plan_id=%s promo_code=%s", rid, plan_id, (promo_code or "").strip() or None)
    if not couple_name:
        raise HTTPException(status_code=400, detail="Informe o nome do casal.")
    if "/" in couple_name:
        # o nome vira segmento do caminho /pages/{slug}
        raise HTTPException(status_code=400, detail="O nome do casal não pode conter '/'.")
    plan = get_plan(plan_id)
    if not plan:
        log.warning("Plan not found: request_id=%s plan_id=%s", rid, plan_id)
        raise HTTPException(status_code=404, detail="Plano não encontrado")
    parsed_start = _parse_start_date(start_date)
    upload = await _read_photo(photo)
    if gateway is None:
        raise HTTPException(status_code=503, detail="Pagamento indisponível no momento.")

    result = composer.compose(plan.price, promo_code, gateway.find_active_promotion)
    if isinstance(result, CheckoutRejection):
        _raise_rejection(request, result)

    unique_hash = generate_unique_hash()
    params = build_session_params(
        plan,
        result,
        success_url=purchase_link(couple_name, unique_hash),
        cancel_url=f"{settings.base_url}/",
        request_id=rid,
    )
    try:
        session = gateway.create_checkout_session(params)
    except StripeError as e:
        log.error("Checkout session creation failed: request_id=%s error=%s", rid, e)
        raise HTTPException(status_code=502, detail="Erro ao criar sessão de checkout. Por favor, tente novamente.") from e
    log.info("Checkout session created: request_id=%s session_id=%s final_amount=%s", rid, session.id, result.quote.final_amount)

    purchase = save_purchase(
        db,
        couple_name=couple_name,
        plan=plan,
        start_date=parsed_start,
        unique_hash=unique_hash,
        session_id=session.id,
        checkout=result,
        request_id=rid,
    )
    log.info("Purchase saved: request_id=%s purchase_id=%s", rid, purchase.id)

    if upload:
        content, ext = upload
        original = store_photo(db, purchase, content, ext)
        attach_qr_artifact(db, purchase, original)
    else:
        log.warning("No photo uploaded: request_id=%s purchase_id=%s", rid, purchase.id)

    return CheckoutSessionResponse(id=session.id, url=session.url)


@router.get("/cancel", response_class=PlainTextResponse)
def cancel():
    return "Pagamento cancelado."
