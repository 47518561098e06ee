"""Dashboard: compras por status, receita confirmada e cupons mais usados."""
from fastapi import APIRouter, Depends
from sqlmodel import Session, func, select

from qrlove.core.database import get_db
from qrlove.models import Coupon, Purchase

router = APIRouter()


@router.get("/dashboard")
def dashboard(db: Session = Depends(get_db)):
    by_status = {"pending": 0, "paid": 0, "expired": 0}
    for status, count in db.exec(select(Purchase.status, func.count(Purchase.id)).group_by(Purchase.status)).all():
        by_status[status] = count or 0
    revenue_cents = db.exec(select(func.sum(Purchase.final_amount)).where(Purchase.status == "paid")).one() or 0
    discount_cents = db.exec(select(func.sum(Purchase.discount_amount)).where(Purchase.status == "paid")).one() or 0
    top_coupons = db.exec(
        select(Coupon.code, Coupon.used_count).where(Coupon.used_count > 0).order_by(Coupon.used_count.desc()).limit(5)
    ).all()
    return {
        "purchases": by_status,
        "revenue_cents": revenue_cents,
        "discounts_cents": discount_cents,
        "top_coupons": [{"code": code, "used_count": used} for code, used in top_coupons],
    }
