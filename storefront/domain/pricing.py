# storefront/domain/pricing.py
"""Cart and order pricing.

All money is ``Decimal``. Line totals are rounded to cents once, so the
subtotal is an exact sum of what the customer sees per line; tax and discount
are rounded after their own multiplication and the total is an exact sum of
already-rounded parts.
"""
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, Optional, Tuple

from storefront.domain.coupons import Coupon, FREE_SHIPPING, PERCENTAGE
from storefront.utils.settings import TAX_RATE

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

FREE_SHIPPING_THRESHOLD = Decimal("50.00")
DEFAULT_SHIPPING_METHOD = "standard"


@dataclass(frozen=True)
class ShippingMethod:
    id: str
    name: str
    cost: Decimal
    min_days: int
    max_days: int

    @property
    def days(self) -> str:
        if self.min_days == self.max_days:
            return str(self.max_days)
        return f"{self.min_days}-{self.max_days}"


SHIPPING_METHODS: Dict[str, ShippingMethod] = {
    "standard": ShippingMethod("standard", "Standard Shipping (5-7 days)", Decimal("9.99"), 5, 7),
    "express": ShippingMethod("express", "Express Shipping (2-3 days)", Decimal("19.99"), 2, 3),
    "overnight": ShippingMethod("overnight", "Overnight Shipping (1 day)", Decimal("39.99"), 1, 1),
}


@dataclass(frozen=True)
class Totals:
    subtotal: Decimal
    discount: Decimal
    tax: Decimal
    shipping: Decimal
    total: Decimal
    tax_rate: Decimal = TAX_RATE


def round_money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def line_total(unit_price: Decimal, quantity: int) -> Decimal:
    return round_money(Decimal(unit_price) * quantity)


def get_shipping_method(method: Optional[str]) -> ShippingMethod:
    # nieznana metoda -> standard
    return SHIPPING_METHODS.get(method or DEFAULT_SHIPPING_METHOD, SHIPPING_METHODS[DEFAULT_SHIPPING_METHOD])


def shipping_cost(subtotal: Decimal, method: Optional[str] = DEFAULT_SHIPPING_METHOD) -> Decimal:
    shipping = get_shipping_method(method)
    # darmowa wysylka tylko dla standard i subtotal > 50 (nie >=)
    if shipping.id == DEFAULT_SHIPPING_METHOD and subtotal > FREE_SHIPPING_THRESHOLD:
        return ZERO
    return shipping.cost


def coupon_discount(coupon: Optional[Coupon], subtotal: Decimal) -> Decimal:
    if coupon is None or coupon.type != PERCENTAGE:
        return ZERO
    return round_money(subtotal * coupon.value / Decimal(100))


def compute_totals(
    lines: Iterable[Tuple[Decimal, int]],
    shipping_method: Optional[str] = DEFAULT_SHIPPING_METHOD,
    coupon: Optional[Coupon] = None,
    tax_rate: Decimal = TAX_RATE,
) -> Totals:
    """Price a list of ``(unit_price, quantity)`` lines.

    The coupon is assumed to be valid for this subtotal already; use
    ``coupons.resolve_coupon`` to check the minimum first.
    """
    subtotal = sum((line_total(price, qty) for price, qty in lines), ZERO)
    discount = coupon_discount(coupon, subtotal)

    shipping = shipping_cost(subtotal, shipping_method)
    if coupon is not None and coupon.type == FREE_SHIPPING:
        shipping = ZERO

    tax = round_money((subtotal - discount) * tax_rate)
    total = subtotal - discount + tax + shipping

    return Totals(
        subtotal=round_money(subtotal),
        discount=discount,
        tax=tax,
        shipping=shipping,
        total=round_money(total),
        tax_rate=tax_rate,
    )


EMPTY_TOTALS = Totals(subtotal=ZERO, discount=ZERO, tax=ZERO, shipping=ZERO, total=ZERO)
