from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, EmailStr, field_validator, model_validator

from qrlove.models import PARTNER_STATUSES, TRANSACTION_TYPES, DiscountType, canonical_code


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class PartnerIn(BaseModel):
    name: str
    email: EmailStr | None = None
    phone: str | None = None
    status: str = "pendente"
    notes: str | None = None

    @field_validator("name")
    @classmethod
    def name_required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("Nome do parceiro é obrigatório.")
        return v

    @field_validator("status")
    @classmethod
    def status_known(cls, v: str) -> str:
        v = (v or "").strip().lower()
        if v not in PARTNER_STATUSES:
            raise ValueError("Status deve ser ativo, inativo ou pendente.")
        return v


class PartnerOut(BaseModel):
    id: int
    name: str
    email: str | None = None
    phone: str | None = None
    status: str
    notes: str | None = None
    created_at: datetime | None = None


class CouponIn(BaseModel):
    code: str
    description: str | None = None
    discount_type: DiscountType
    discount_value: Decimal
    usage_limit: int | None = None
    start_date: date | None = None
    end_date: date | None = None
    active: bool = True
    partner_id: int | None = None

    @field_validator("code")
    @classmethod
    def code_canonical(cls, v: str) -> str:
        v = canonical_code(v)
        if not v:
            raise ValueError("Código não pode ser vazio.")
        return v

    @field_validator("usage_limit")
    @classmethod
    def usage_limit_positive(cls, v: int | None) -> int | None:
        # 0 ou negativo = ilimitado (mesmo comportamento do formulário antigo)
        return v if v is not None and v > 0 else None

    @model_validator(mode="after")
    def check_value_and_window(self):
        if self.discount_value <= 0:
            raise ValueError("Valor do desconto deve ser maior que zero.")
        if self.discount_type is DiscountType.PERCENTAGE and self.discount_value >= 100:
            raise ValueError("Desconto percentual deve ser menor que 100.")
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("Data inicial deve ser anterior à data final.")
        return self


class CouponOut(BaseModel):
    id: int
    code: str
    description: str | None = None
    discount_type: str
    discount_value: Decimal
    usage_limit: int | None = None
    used_count: int
    start_date: date | None = None
    end_date: date | None = None
    active: bool
    partner_id: int | None = None
    created_at: datetime | None = None


class TransactionIn(BaseModel):
    transaction_type: str
    amount: Decimal
    description: str | None = None
    reference: str | None = None
    occurred_at: date

    @field_validator("transaction_type")
    @classmethod
    def type_known(cls, v: str) -> str:
        v = (v or "").strip().lower()
        if v not in TRANSACTION_TYPES:
            raise ValueError("Tipo deve ser entrada ou saida.")
        return v

    @field_validator("amount")
    @classmethod
    def amount_positive(cls, v: Decimal) -> Decimal:
        if v <= 0:
            raise ValueError("Valor deve ser maior que zero.")
        return v.quantize(Decimal("0.01"))


class TransactionOut(BaseModel):
    id: int
    transaction_type: str
    amount: Decimal
    description: str | None = None
    reference: str | None = None
    occurred_at: date
    created_at: datetime | None = None
