from .admin import Admin
from .coupon import Coupon, DiscountType, canonical_code
from .financial import TRANSACTION_TYPES, FinancialTransaction
from .partner import PARTNER_STATUSES, Partner
from .purchase import Purchase, PurchaseImage

__all__ = [
    "Admin",
    "Coupon",
    "DiscountType",
    "FinancialTransaction",
    "PARTNER_STATUSES",
    "Partner",
    "Purchase",
    "PurchaseImage",
    "TRANSACTION_TYPES",
    "canonical_code",
]
