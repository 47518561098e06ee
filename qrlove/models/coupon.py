"""Cupom de desconto local: percentual ou valor fixo, janela de validade e limite de uso."""
from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from sqlmodel import Field, SQLModel


class DiscountType(str, Enum):
    PERCENTAGE = "percentual"
    FIXED_AMOUNT = "valor_fixo"


def canonical_code(code: str | None) -> str:
    """Forma canônica do código (sem espaços nas pontas, maiúsculas)."""
    return (code or "").strip().upper()


class Coupon(SQLModel, table=True):
    """Cupom criado no painel admin e aplicado no checkout."""

    __tablename__ = "coupons"

    id: int | None = Field(default=None, primary_key=True)
    code: str = Field(unique=True, index=True, max_length=100)  # sempre canônico (maiúsculas)
    description: str | None = None
    discount_type: str = Field(max_length=16)  # "percentual" | "valor_fixo"
    # percentual: 0-100; valor_fixo: reais (unidade maior), convertido para centavos na leitura
    discount_value: Decimal = Field(max_digits=10, decimal_places=2)
    usage_limit: int | None = Field(default=None)  # null = ilimitado
    used_count: int = Field(default=0)
    start_date: date | None = Field(default=None)  # inclusivo
    end_date: date | None = Field(default=None)  # inclusivo
    active: bool = Field(default=True)
    # Referência fraca: excluir o parceiro zera o campo, nunca apaga o cupom
    partner_id: int | None = Field(default=None, foreign_key="partners.id", ondelete="SET NULL")
    created_at: datetime | None = Field(default_factory=datetime.utcnow)
    updated_at: datetime | None = Field(default_factory=datetime.utcnow)
