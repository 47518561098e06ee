"""Parceiros: CRUD. Excluir um parceiro desvincula os cupons dele (não apaga cupons)."""
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import update
from sqlmodel import Session, select

from qrlove.core.database import get_db
from qrlove.models import Coupon, Partner
from qrlove.schemas import PartnerIn, PartnerOut

router = APIRouter()


def _get_or_404(db: Session, partner_id: int) -> Partner:
    partner = db.get(Partner, partner_id)
    if not partner:
        raise HTTPException(status_code=404, detail="Parceiro não encontrado.")
    return partner


@router.get("", response_model=list[PartnerOut])
def partners_list(status: str | None = None, db: Session = Depends(get_db)):
    stmt = select(Partner).order_by(Partner.id.desc())
    if status:
        stmt = stmt.where(Partner.status == status)
    return [PartnerOut.model_validate(p, from_attributes=True) for p in db.exec(stmt).all()]


@router.post("", response_model=PartnerOut, status_code=201)
def partner_create(body: PartnerIn, db: Session = Depends(get_db)):
    partner = Partner(**body.model_dump())
    db.add(partner)
    db.commit()
    db.refresh(partner)
    return PartnerOut.model_validate(partner, from_attributes=True)


@router.get("/{partner_id:int}")
def partner_detail(partner_id: int, db: Session = Depends(get_db)):
    partner = _get_or_404(db, partner_id)
    codes = db.exec(select(Coupon.code).where(Coupon.partner_id == partner_id).order_by(Coupon.code)).all()
    return {**PartnerOut.model_validate(partner, from_attributes=True).model_dump(mode="json"), "coupons": list(codes)}


@router.put("/{partner_id:int}", response_model=PartnerOut)
def partner_update(partner_id: int, body: PartnerIn, db: Session = Depends(get_db)):
    partner = _get_or_404(db, partner_id)
    for key, value in body.model_dump().items():
        setattr(partner, key, value)
    partner.updated_at = datetime.utcnow()
    db.add(partner)
    db.commit()
    db.refresh(partner)
    return PartnerOut.model_validate(partner, from_attributes=True)


@router.delete("/{partner_id:int}")
def partner_delete(partner_id: int, db: Session = Depends(get_db)):
    partner = _get_or_404(db, partner_id)
    # Mesmo efeito do ON DELETE SET NULL, também no SQLite sem foreign_keys
    db.connection().execute(update(Coupon).where(Coupon.partner_id == partner_id).values(partner_id=None))
    db.delete(partner)
    db.commit()
    return {"ok": True}
