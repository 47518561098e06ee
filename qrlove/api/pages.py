"""Página de sucesso (pós-pagamento) e página personalizada do casal, em JSON."""
import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlmodel import Session

from qrlove.core.config import settings
from qrlove.core.database import get_db
from qrlove.core.rate_limit import limiter
from qrlove.services.checkout import get_purchase_by_slug, get_purchase_image, page_slug
from qrlove.services.plans import get_plan

log = logging.getLogger("qrlove")

router = APIRouter(tags=["pages"])
# Páginas públicas: limite por IP contra varredura de hashes
_PAGES_LIMIT = f"{settings.rate_limit_per_minute}/minute"


def _plan_name(plan_id: int) -> str | None:
    plan = get_plan(plan_id)
    return plan.name if plan else None


@router.get("/success/{slug}")
@limiter.limit(_PAGES_LIMIT)
def success_page(request: Request, slug: str, db: Session = Depends(get_db)):
    purchase = get_purchase_by_slug(db, slug)
    if not purchase:
        log.warning("Success page: purchase not found slug=%s", slug)
        raise HTTPException(status_code=404, detail="Compra não encontrada.")
    edited = get_purchase_image(db, purchase.id, "edited")
    return {
        "coupleName": purchase.couple_name,
        "planId": purchase.plan_id,
        "planName": _plan_name(purchase.plan_id),
        "startDate": purchase.start_date.isoformat() if purchase.start_date else None,
        "uniqueHash": purchase.unique_hash,
        "status": purchase.status,
        "qrImageUrl": edited.image_url if edited else None,
        "pageUrl": f"/pages/{page_slug(purchase.couple_name, purchase.unique_hash)}",
    }


@router.get("/pages/{slug}")
@limiter.limit(_PAGES_LIMIT)
def couple_page(request: Request, slug: str, db: Session = Depends(get_db)):
    purchase = get_purchase_by_slug(db, slug)
    if not purchase:
        log.warning("Couple page not found: slug=%s", slug)
        raise HTTPException(status_code=404, detail="Página personalizada não encontrada.")
    original = get_purchase_image(db, purchase.id, "original")
    return {
        "coupleName": purchase.couple_name,
        "startDate": purchase.start_date.isoformat() if purchase.start_date else None,
        "planId": purchase.plan_id,
        "imageUrl": original.image_url if original else None,
    }
