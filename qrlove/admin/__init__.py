"""Painel admin (API JSON): parceiros, cupons e lançamentos financeiros, sob /admin."""
from fastapi import APIRouter, Depends

from qrlove.admin.routers import coupons, dashboard, finance, partners
from qrlove.api.deps import require_admin

admin_router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])

admin_router.include_router(dashboard.router)
admin_router.include_router(partners.router, prefix="/partners", tags=["admin-partners"])
admin_router.include_router(coupons.router, prefix="/coupons", tags=["admin-coupons"])
admin_router.include_router(finance.router, prefix="/finance", tags=["admin-finance"])
