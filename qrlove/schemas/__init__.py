from .admin import (
    CouponIn,
    CouponOut,
    PartnerIn,
    PartnerOut,
    Token,
    TransactionIn,
    TransactionOut,
)
from .checkout import CheckoutSessionResponse, PlanOut, QuoteRequest, QuoteResponse

__all__ = [
    "CheckoutSessionResponse",
    "CouponIn",
    "CouponOut",
    "PartnerIn",
    "PartnerOut",
    "PlanOut",
    "QuoteRequest",
    "QuoteResponse",
    "Token",
    "TransactionIn",
    "TransactionOut",
]
