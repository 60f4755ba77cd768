"""ORM models package export."""

from marketplace.models.booking import Booking, BookingItem, BookingStatus
from marketplace.models.checkout import (
    CheckoutDraft,
    CheckoutDraftStatus,
    PaymentMethod,
)
from marketplace.models.platform_settings import (
    FeeType,
    MinimumBookingSetting,
    PlatformFee,
)
from marketplace.models.promo_code import DiscountType, PromoCode
from marketplace.models.service import Service, ServicePriceVariant

__all__ = [
    "Booking",
    "BookingItem",
    "BookingStatus",
    "CheckoutDraft",
    "CheckoutDraftStatus",
    "DiscountType",
    "FeeType",
    "MinimumBookingSetting",
    "PaymentMethod",
    "PlatformFee",
    "PromoCode",
    "Service",
    "ServicePriceVariant",
]
