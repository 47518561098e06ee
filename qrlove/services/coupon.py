"""
Resolução de cupons locais: validação temporal/uso e cálculo do desconto em centavos.

O resolver só lê o cupom. O incremento de used_count acontece em
SqlCouponStore.redeem, com UPDATE condicional atômico.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Protocol

from sqlalchemy import or_, update
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from qrlove.models import Coupon, DiscountType, canonical_code

log = logging.getLogger(__name__)

_END_OF_DAY = time(23, 59, 59, 999000)


class RejectionReason(str, Enum):
    INACTIVE = "Inactive"
    BEFORE_WINDOW = "BeforeWindow"
    AFTER_WINDOW = "AfterWindow"
    USAGE_EXHAUSTED = "UsageExhausted"
    INVALID_DISCOUNT_VALUE = "InvalidDiscountValue"
    INVALID_COMPUTED_AMOUNT = "InvalidComputedAmount"
    DISCOUNT_EXCEEDS_PRICE = "DiscountExceedsPrice"
    NOT_FOUND_EXTERNALLY = "NotFoundExternally"


class SourceKind(str, Enum):
    LOCAL = "internal"
    EXTERNAL = "external"


class CouponStoreUnavailable(Exception):
    """Falha de infraestrutura ao ler cupons (não significa código inválido)."""


class CouponStore(Protocol):
    def get_by_code(self, code: str) -> Coupon | None: ...


def round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def start_of_day(d: date) -> datetime:
    return datetime.combine(d, time.min, tzinfo=timezone.utc)


def end_of_day(d: date) -> datetime:
    return datetime.combine(d, _END_OF_DAY, tzinfo=timezone.utc)


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


@dataclass(frozen=True)
class CouponTerms:
    """Cupom normalizado na leitura: valores fixos já em centavos, janela em UTC."""

    coupon_id: int | None
    code: str
    discount_type: DiscountType | None
    discount_value: Decimal
    fixed_amount_minor_units: int | None
    usage_limit: int | None
    used_count: int
    valid_from: datetime | None
    valid_until: datetime | None
    active: bool

    @classmethod
    def from_coupon(cls, coupon: Coupon) -> "CouponTerms":
        try:
            discount_type = DiscountType(coupon.discount_type)
        except ValueError:
            discount_type = None
        try:
            value = Decimal(str(coupon.discount_value))
        except (InvalidOperation, TypeError):
            value = Decimal("0")
        fixed = round_half_up(value * 100) if discount_type is DiscountType.FIXED_AMOUNT else None
        return cls(
            coupon_id=coupon.id,
            code=canonical_code(coupon.code),
            discount_type=discount_type,
            discount_value=value,
            fixed_amount_minor_units=fixed,
            usage_limit=coupon.usage_limit,
            used_count=coupon.used_count or 0,
            valid_from=start_of_day(coupon.start_date) if coupon.start_date else None,
            valid_until=end_of_day(coupon.end_date) if coupon.end_date else None,
            active=bool(coupon.active),
        )

    def violations(self, at: datetime) -> list[RejectionReason]:
        """Todas as condições de uso que falham no instante `at`."""
        reasons: list[RejectionReason] = []
        if not self.active:
            reasons.append(RejectionReason.INACTIVE)
        if self.valid_from is not None and at < self.valid_from:
            reasons.append(RejectionReason.BEFORE_WINDOW)
        if self.valid_until is not None and at > self.valid_until:
            reasons.append(RejectionReason.AFTER_WINDOW)
        if self.usage_limit is not None and self.used_count >= self.usage_limit:
            reasons.append(RejectionReason.USAGE_EXHAUSTED)
        if not self._value_is_valid():
            reasons.append(RejectionReason.INVALID_DISCOUNT_VALUE)
        return reasons

    def _value_is_valid(self) -> bool:
        if self.discount_type is None or self.discount_value <= 0:
            return False
        if self.discount_type is DiscountType.PERCENTAGE:
            return self.discount_value <= 100
        return True

    def discount_for(self, base_price: int) -> int:
        if self.discount_type is DiscountType.PERCENTAGE:
            return round_half_up(Decimal(base_price) * self.discount_value / 100)
        return self.fixed_amount_minor_units or 0


@dataclass(frozen=True)
class ResolvedDiscount:
    source_kind: SourceKind
    discount_amount_minor_units: int
    code_canonical: str
    coupon_id: int | None = None
    external_promotion_id: str | None = None


@dataclass(frozen=True)
class NoCodeProvided:
    pass


@dataclass(frozen=True)
class DeferToExternal:
    code: str


@dataclass(frozen=True)
class Rejected:
    code: str
    reasons: tuple[RejectionReason, ...]
    coupon_id: int | None = None


@dataclass(frozen=True)
class Accepted:
    discount: ResolvedDiscount
    terms: CouponTerms


ResolutionOutcome = NoCodeProvided | DeferToExternal | Rejected | Accepted


class SqlCouponStore:
    """Leitura de cupons por código canônico e resgate atômico."""

    def __init__(self, db: Session):
        self.db = db

    def get_by_code(self, code: str) -> Coupon | None:
        try:
            return self.db.exec(select(Coupon).where(Coupon.code == canonical_code(code))).first()
        except SQLAlchemyError as e:
            raise CouponStoreUnavailable(str(e)) from e

    def redeem(self, coupon_id: int, commit: bool = True) -> bool:
        """
        Incrementa used_count se o cupom ainda tem uso disponível.
        Retorna False quando o limite já foi atingido (ou o cupom sumiu/foi desativado).
        Com commit=False o UPDATE fica na transação do chamador.
        """
        stmt = (
            update(Coupon)
            .where(Coupon.id == coupon_id)
            .where(Coupon.active.is_(True))
            .where(or_(Coupon.usage_limit.is_(None), Coupon.used_count < Coupon.usage_limit))
            .values(used_count=Coupon.used_count + 1, updated_at=datetime.utcnow())
        )
        result = self.db.connection().execute(stmt)
        if commit:
            self.db.commit()
        return result.rowcount == 1


class CouponResolver:
    def __init__(self, store: CouponStore):
        self.store = store

    def resolve(self, raw_code: str | None, reference_time: datetime, base_price: int) -> ResolutionOutcome:
        code = canonical_code(raw_code)
        if not code:
            return NoCodeProvided()

        coupon = self.store.get_by_code(code)
        if coupon is None:
            return DeferToExternal(code)

        terms = CouponTerms.from_coupon(coupon)
        reasons = terms.violations(_as_utc(reference_time))
        if reasons:
            return Rejected(code, tuple(reasons), terms.coupon_id)

        amount = terms.discount_for(base_price)
        if amount <= 0:
            return Rejected(code, (RejectionReason.INVALID_COMPUTED_AMOUNT,), terms.coupon_id)
        if amount >= base_price:
            return Rejected(code, (RejectionReason.DISCOUNT_EXCEEDS_PRICE,), terms.coupon_id)

        return Accepted(
            ResolvedDiscount(
                source_kind=SourceKind.LOCAL,
                discount_amount_minor_units=amount,
                code_canonical=code,
                coupon_id=terms.coupon_id,
            ),
            terms,
        )
