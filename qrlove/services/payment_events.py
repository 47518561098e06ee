"""Eventos da Stripe: pagamento confirmado / sessão expirada -> status da compra e resgate do cupom."""
import logging
from datetime import datetime

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from qrlove.core.config import settings
from qrlove.models import Purchase
from qrlove.services.coupon import SourceKind, SqlCouponStore

log = logging.getLogger(__name__)


def _purchase_for_session(db: Session, session_id: str | None) -> Purchase | None:
    if not session_id:
        return None
    return db.exec(select(Purchase).where(Purchase.session_id == session_id)).first()


def _redeem_coupon(db: Session, purchase: Purchase, metadata: dict) -> None:
    if not settings.redeem_coupon_on_payment:
        return
    if metadata.get("discountSource") != SourceKind.LOCAL.value or purchase.coupon_id is None:
        return
    if SqlCouponStore(db).redeem(purchase.coupon_id, commit=False):
        log.info("Coupon redeemed: coupon_id=%s purchase_id=%s", purchase.coupon_id, purchase.id)
    else:
        # Pagamento já aprovado: só registra que o limite foi ultrapassado por corrida
        log.warning("Coupon usage limit reached at redemption: coupon_id=%s purchase_id=%s", purchase.coupon_id, purchase.id)


def handle_checkout_completed(db: Session, session: dict) -> Purchase | None:
    """
    Confirma o pagamento e resgata o cupom na mesma transação.
    A troca de status é um UPDATE condicional: só uma entrega do evento confirma a compra;
    se o resgate falhar, nada é gravado e o reenvio da Stripe tenta de novo.
    """
    purchase = _purchase_for_session(db, session.get("id"))
    if not purchase:
        log.warning("Checkout completed for unknown session: session_id=%s", session.get("id"))
        return None
    if purchase.status == "paid":
        # Reenvio do mesmo evento: idempotente
        return purchase
    try:
        result = db.connection().execute(
            update(Purchase)
            .where(Purchase.id == purchase.id)
            .where(Purchase.status != "paid")
            .values(status="paid", paid_at=datetime.utcnow())
        )
        if result.rowcount != 1:
            db.rollback()
            log.info("Payment already confirmed by another delivery: purchase_id=%s", purchase.id)
            return purchase
        _redeem_coupon(db, purchase, session.get("metadata") or {})
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        log.exception("Payment confirmation failed: session_id=%s purchase_id=%s", purchase.session_id, purchase.id)
        raise
    db.refresh(purchase)
    log.info("Payment confirmed: session_id=%s purchase_id=%s", purchase.session_id, purchase.id)
    return purchase


def handle_checkout_expired(db: Session, session: dict) -> Purchase | None:
    purchase = _purchase_for_session(db, session.get("id"))
    if not purchase or purchase.status != "pending":
        return purchase
    purchase.status = "expired"
    db.add(purchase)
    db.commit()
    db.refresh(purchase)
    log.info("Checkout expired: session_id=%s purchase_id=%s", purchase.session_id, purchase.id)
    return purchase


def handle_event(db: Session, event: dict) -> str:
    """Processa um evento já verificado; retorna o tipo tratado (ou 'ignored')."""
    event_type = event.get("type") or ""
    obj = ((event.get("data") or {}).get("object")) or {}
    if event_type in ("checkout.session.completed", "checkout.session.async_payment_succeeded"):
        # Boleto: a sessão completa antes do pagamento; só conta quando payment_status == paid
        if obj.get("payment_status", "paid") == "paid":
            handle_checkout_completed(db, obj)
        else:
            log.info("Checkout completed awaiting payment: session_id=%s", obj.get("id"))
        return event_type
    if event_type in ("checkout.session.expired", "checkout.session.async_payment_failed"):
        handle_checkout_expired(db, obj)
        return event_type
    if event_type == "invoice.payment_succeeded":
        log.info("Invoice payment succeeded: invoice_id=%s", obj.get("id"))
        return event_type
    log.info("Stripe event ignored: type=%s id=%s", event_type, event.get("id"))
    return "ignored"
