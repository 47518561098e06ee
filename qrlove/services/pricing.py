"""
Composição do preço do checkout: preço base do plano + código promocional opcional.

Ordem de resolução: cupom local primeiro; se o código não existir localmente,
consulta o código promocional na Stripe. Nenhuma falha sai daqui como exceção:
o resultado é sempre um CheckoutQuote ou um CheckoutRejection.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable

from qrlove.services.coupon import (
    Accepted,
    CouponResolver,
    CouponStoreUnavailable,
    DeferToExternal,
    NoCodeProvided,
    Rejected,
    RejectionReason,
    ResolvedDiscount,
    SourceKind,
)

log = logging.getLogger(__name__)

INVALID_PROMO_MESSAGE = "Código promocional inválido ou expirado."
LOOKUP_UNAVAILABLE_MESSAGE = "Não foi possível validar o código promocional. Tente novamente em instantes."


class PromotionLookupError(Exception):
    """Falha transitória ao consultar o provedor de pagamento."""


@dataclass(frozen=True)
class ExternalPromotion:
    id: str
    code: str


PromotionLookup = Callable[[str], ExternalPromotion | None]


@dataclass(frozen=True)
class PriceQuote:
    base_amount: int
    discount_amount: int
    final_amount: int

    def __post_init__(self):
        if self.final_amount != self.base_amount - self.discount_amount:
            raise ValueError("final_amount must equal base_amount - discount_amount")
        if self.final_amount <= 0 or self.discount_amount < 0:
            raise ValueError("a discount can never reduce the charge to zero or below")


@dataclass(frozen=True)
class CheckoutQuote:
    quote: PriceQuote
    discount: ResolvedDiscount | None = None
    # Metadados para a sessão de checkout (valores string, como a Stripe exige)
    metadata: dict[str, str] = field(default_factory=dict)

    @property
    def external_promotion_id(self) -> str | None:
        return self.discount.external_promotion_id if self.discount else None

    @property
    def coupon_id(self) -> int | None:
        return self.discount.coupon_id if self.discount else None

    @property
    def code(self) -> str | None:
        return self.discount.code_canonical if self.discount else None


class RejectionKind(str, Enum):
    INVALID_PROMO_CODE = "InvalidPromoCode"
    LOOKUP_UNAVAILABLE = "LookupUnavailable"


@dataclass(frozen=True)
class CheckoutRejection:
    kind: RejectionKind
    code: str | None = None
    # Somente para logs; nunca devolvido ao pagador
    reasons: tuple[RejectionReason, ...] = ()

    @property
    def http_status(self) -> int:
        return 400 if self.kind is RejectionKind.INVALID_PROMO_CODE else 503

    @property
    def user_message(self) -> str:
        if self.kind is RejectionKind.INVALID_PROMO_CODE:
            return INVALID_PROMO_MESSAGE
        return LOOKUP_UNAVAILABLE_MESSAGE


ComposeResult = CheckoutQuote | CheckoutRejection


def _local_metadata(accepted: Accepted, base_price: int) -> dict[str, str]:
    terms = accepted.terms
    return {
        "discountSource": SourceKind.LOCAL.value,
        "couponId": str(terms.coupon_id),
        "couponCode": accepted.discount.code_canonical,
        "discountType": terms.discount_type.value if terms.discount_type else "",
        "discountValue": str(terms.discount_value),
        "discountAppliedInCents": str(accepted.discount.discount_amount_minor_units),
        "originalAmountInCents": str(base_price),
    }


class PriceComposer:
    def __init__(self, resolver: CouponResolver):
        self.resolver = resolver

    def compose(
        self,
        base_price: int,
        raw_code: str | None,
        external_lookup: PromotionLookup,
        reference_time: datetime | None = None,
    ) -> ComposeResult:
        if isinstance(base_price, bool) or not isinstance(base_price, int) or base_price <= 0:
            raise ValueError("base_price must be a positive integer amount in minor units")
        now = reference_time or datetime.now(timezone.utc)

        try:
            outcome = self.resolver.resolve(raw_code, now, base_price)
        except CouponStoreUnavailable as e:
            log.error("Coupon store lookup failed: %s", e)
            return CheckoutRejection(RejectionKind.LOOKUP_UNAVAILABLE, code=(raw_code or "").strip().upper() or None)

        if isinstance(outcome, NoCodeProvided):
            return CheckoutQuote(PriceQuote(base_price, 0, base_price))

        if isinstance(outcome, Rejected):
            log.warning(
                "Promo code rejected: code=%s coupon_id=%s reasons=%s",
                outcome.code,
                outcome.coupon_id,
                ",".join(r.value for r in outcome.reasons),
            )
            return CheckoutRejection(RejectionKind.INVALID_PROMO_CODE, outcome.code, outcome.reasons)

        if isinstance(outcome, Accepted):
            discount = outcome.discount.discount_amount_minor_units
            log.info(
                "Coupon applied: code=%s coupon_id=%s discount=%s base=%s",
                outcome.discount.code_canonical,
                outcome.discount.coupon_id,
                discount,
                base_price,
            )
            return CheckoutQuote(
                PriceQuote(base_price, discount, base_price - discount),
                outcome.discount,
                _local_metadata(outcome, base_price),
            )

        return self._compose_external(base_price, outcome, external_lookup)

    def _compose_external(
        self,
        base_price: int,
        outcome: DeferToExternal,
        external_lookup: PromotionLookup,
    ) -> ComposeResult:
        try:
            promotion = external_lookup(outcome.code)
        except PromotionLookupError as e:
            log.error("External promotion lookup failed: code=%s error=%s", outcome.code, e)
            return CheckoutRejection(RejectionKind.LOOKUP_UNAVAILABLE, outcome.code)

        if promotion is None:
            log.warning("Promo code rejected: code=%s reasons=%s", outcome.code, RejectionReason.NOT_FOUND_EXTERNALLY.value)
            return CheckoutRejection(
                RejectionKind.INVALID_PROMO_CODE,
                outcome.code,
                (RejectionReason.NOT_FOUND_EXTERNALLY,),
            )

        log.info("External promotion applied: code=%s promotion_id=%s", promotion.code, promotion.id)
        # O desconto é aplicado pela própria Stripe; aqui só vai a referência
        discount = ResolvedDiscount(
            source_kind=SourceKind.EXTERNAL,
            discount_amount_minor_units=0,
            code_canonical=outcome.code,
            external_promotion_id=promotion.id,
        )
        return CheckoutQuote(
            PriceQuote(base_price, 0, base_price),
            discount,
            {
                "discountSource": SourceKind.EXTERNAL.value,
                "promoCode": promotion.code,
                "promotionCodeId": promotion.id,
            },
        )
