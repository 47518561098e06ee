"""Gestão de cupons de desconto: CRUD do painel admin."""
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from qrlove.core.database import get_db
from qrlove.models import Coupon, Partner
from qrlove.schemas import CouponIn, CouponOut

router = APIRouter()


def _out(coupon: Coupon) -> CouponOut:
    return CouponOut.model_validate(coupon, from_attributes=True)


def _get_or_404(db: Session, coupon_id: int) -> Coupon:
    coupon = db.get(Coupon, coupon_id)
    if not coupon:
        raise HTTPException(status_code=404, detail="Cupom não encontrado.")
    return coupon


def _check_partner(db: Session, partner_id: int | None) -> None:
    if partner_id is not None and not db.get(Partner, partner_id):
        raise HTTPException(status_code=400, detail="Parceiro não encontrado.")


def _apply(coupon: Coupon, body: CouponIn) -> None:
    coupon.code = body.code
    coupon.description = (body.description or "").strip() or None
    coupon.discount_type = body.discount_type.value
    coupon.discount_value = body.discount_value
    coupon.usage_limit = body.usage_limit
    coupon.start_date = body.start_date
    coupon.end_date = body.end_date
    coupon.active = body.active
    coupon.partner_id = body.partner_id


def _commit(db: Session, coupon: Coupon) -> Coupon:
    db.add(coupon)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="Este código já existe.") from None
    db.refresh(coupon)
    return coupon


@router.get("", response_model=list[CouponOut])
@router.get("/", response_model=list[CouponOut], include_in_schema=False)
def coupons_list(active: bool | None = None, db: Session = Depends(get_db)):
    stmt = select(Coupon).order_by(Coupon.id.desc())
    if active is not None:
        stmt = stmt.where(Coupon.active == active)
    return [_out(c) for c in db.exec(stmt).all()]


@router.post("", response_model=CouponOut, status_code=201)
def coupon_create(body: CouponIn, db: Session = Depends(get_db)):
    if db.exec(select(Coupon).where(Coupon.code == body.code)).first():
        raise HTTPException(status_code=409, detail="Este código já existe.")
    _check_partner(db, body.partner_id)
    coupon = Coupon(code=body.code, discount_type=body.discount_type.value, discount_value=body.discount_value)
    _apply(coupon, body)
    return _out(_commit(db, coupon))


@router.get("/{coupon_id:int}", response_model=CouponOut)
def coupon_detail(coupon_id: int, db: Session = Depends(get_db)):
    return _out(_get_or_404(db, coupon_id))


@router.put("/{coupon_id:int}", response_model=CouponOut)
def coupon_update(coupon_id: int, body: CouponIn, db: Session = Depends(get_db)):
    coupon = _get_or_404(db, coupon_id)
    existing = db.exec(select(Coupon).where(Coupon.code == body.code, Coupon.id != coupon_id)).first()
    if existing:
        raise HTTPException(status_code=409, detail="Este código já é usado por outro cupom.")
    _check_partner(db, body.partner_id)
    _apply(coupon, body)
    coupon.updated_at = datetime.utcnow()
    return _out(_commit(db, coupon))


@router.delete("/{coupon_id:int}")
def coupon_delete(coupon_id: int, db: Session = Depends(get_db)):
    coupon = _get_or_404(db, coupon_id)
    db.delete(coupon)
    db.commit()
    return {"ok": True}
