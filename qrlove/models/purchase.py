from datetime import date, datetime

from sqlmodel import Field, SQLModel


class Purchase(SQLModel, table=True):
    """Compra de uma página: criada junto com a sessão de checkout, paga via webhook."""

    __tablename__ = "purchases"

    id: int | None = Field(default=None, primary_key=True)
    couple_name: str = Field(max_length=255)
    plan_id: int
    session_id: str = Field(index=True, max_length=255)
    start_date: date | None = None  # data de início do relacionamento (exibida na página)
    unique_hash: str = Field(unique=True, index=True, max_length=64)
    purchase_link: str = Field(max_length=512)
    # Valores em centavos (BRL)
    base_amount: int
    discount_amount: int = 0
    final_amount: int
    currency: str = "brl"
    promo_code: str | None = Field(default=None, max_length=100)  # código canônico aplicado
    coupon_id: int | None = Field(default=None, foreign_key="coupons.id", ondelete="SET NULL")
    external_promotion_id: str | None = Field(default=None, max_length=255)
    status: str = Field(default="pending", max_length=16)  # pending | paid | expired
    request_id: str | None = Field(default=None, max_length=64)
    paid_at: datetime | None = None
    created_at: datetime | None = Field(default_factory=datetime.utcnow)


class PurchaseImage(SQLModel, table=True):
    """Foto enviada pelo casal (original) e a versão com QR code (edited)."""

    __tablename__ = "purchase_images"

    id: int | None = Field(default=None, primary_key=True)
    purchase_id: int = Field(foreign_key="purchases.id", index=True, ondelete="CASCADE")
    kind: str = Field(max_length=16)  # original | edited
    image_url: str = Field(max_length=512)
    created_at: datetime | None = Field(default_factory=datetime.utcnow)
