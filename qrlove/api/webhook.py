"""Webhook da Stripe: corpo bruto + assinatura (Stripe-Signature)."""
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from qrlove.core.config import settings
from qrlove.core.database import get_db
from qrlove.services.payment_events import handle_event
from qrlove.services.stripe_gateway import WebhookSignatureError, verify_webhook_signature

log = logging.getLogger("qrlove")

router = APIRouter(tags=["webhook"])


@router.post("/webhook")
async def stripe_webhook(request: Request, db: Session = Depends(get_db)):
    payload = await request.body()
    try:
        event = verify_webhook_signature(
            payload,
            request.headers.get("stripe-signature"),
            settings.stripe_webhook_secret,
            tolerance=settings.webhook_tolerance_seconds,
        )
    except WebhookSignatureError as e:
        log.error("Webhook verification failed: %s", e)
        return PlainTextResponse(f"Webhook Error: {e}", status_code=400)
    try:
        handled = handle_event(db, event)
    except SQLAlchemyError:
        # 5xx: a Stripe reenvia o evento; nada foi gravado
        return PlainTextResponse("Webhook Error: falha ao registrar o pagamento", status_code=500)
    log.info("Webhook processed: event_id=%s type=%s handled=%s", event.get("id"), event.get("type"), handled)
    return JSONResponse({"received": True})
