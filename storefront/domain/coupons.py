# storefront/domain/coupons.py
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict

from storefront.errors import CouponMinimumNotMetError, InvalidCouponError

PERCENTAGE = "percentage"
FREE_SHIPPING = "free_shipping"


@dataclass(frozen=True)
class Coupon:
    code: str
    type: str
    value: Decimal
    min_amount: Decimal


COUPONS: Dict[str, Coupon] = {
    "SAVE10": Coupon("SAVE10", PERCENTAGE, Decimal("10"), Decimal("25")),
    "SAVE20": Coupon("SAVE20", PERCENTAGE, Decimal("20"), Decimal("50")),
    "FREESHIP": Coupon("FREESHIP", FREE_SHIPPING, Decimal("0"), Decimal("0")),
}


def normalize_code(code: str) -> str:
    return code.strip().upper()


def lookup_coupon(code: str) -> Coupon:
    coupon = COUPONS.get(normalize_code(code))
    if coupon is None:
        raise InvalidCouponError(code)
    return coupon


def resolve_coupon(code: str, subtotal: Decimal) -> Coupon:
    """Return the coupon for ``code`` if it applies to ``subtotal``.

    Checks run in order: the code must exist, then the subtotal must reach
    the coupon minimum.
    """
    coupon = lookup_coupon(code)
    if subtotal < coupon.min_amount:
        raise CouponMinimumNotMetError(coupon.min_amount)
    return coupon
