# storefront/domain/cart.py
import json
from datetime import datetime, timezone
from decimal import Decimal

from storefront.domain import pricing
from storefront.domain.coupons import lookup_coupon
from storefront.domain.schemas import AppliedCoupon, Cart, CartLine, CartTotals
from storefront.errors import CartItemNotFoundError
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def line_id(product_id: int, variant_id: int | None) -> str:
    return f"{product_id}_{variant_id or 'default'}"


def find_line(cart: Cart, item_id: str) -> CartLine | None:
    for line in cart.items:
        if line.id == item_id:
            return line
    return None


def get_line(cart: Cart, item_id: str) -> CartLine:
    line = find_line(cart, item_id)
    if line is None:
        raise CartItemNotFoundError(item_id)
    return line


def set_quantity(line: CartLine, quantity: int):
    line.quantity = quantity
    line.total_price = pricing.line_total(line.unit_price, quantity)


def product_quantity(cart: Cart, product_id: int, exclude: str | None = None) -> int:
    """Units of ``product_id`` across all lines (every variant), minus line ``exclude``."""
    return sum(line.quantity for line in cart.items if line.product_id == product_id and line.id != exclude)


def remove_ordered(cart: Cart, ordered: dict[str, int]) -> Cart:
    """Take the ordered quantities (line id -> units) out of the cart.

    Lines added or topped up after checkout read the cart keep the surplus.
    """
    remaining = []
    for line in cart.items:
        left = line.quantity - ordered.get(line.id, 0)
        if left > 0:
            if left != line.quantity:
                set_quantity(line, left)
            remaining.append(line)
    cart.items = remaining
    return reprice(cart)


def reprice(cart: Cart) -> Cart:
    """Recompute every total of the cart from its lines.

    A coupon whose minimum is no longer met after the change is dropped.
    """
    lines = [(line.unit_price, line.quantity) for line in cart.items]
    subtotal = sum((pricing.line_total(p, q) for p, q in lines), pricing.ZERO)

    coupon = None
    if cart.coupon is not None:
        coupon = lookup_coupon(cart.coupon.code)
        if subtotal < coupon.min_amount or not cart.items:
            logger.info(
                f"Coupon {coupon.code} dropped from cart of user {cart.user_id}, "
                f"subtotal {subtotal} below minimum {coupon.min_amount}"
            )
            coupon = None

    # pusty koszyk - same zera, bez oplaty za wysylke
    totals = pricing.compute_totals(lines, coupon=coupon) if lines else pricing.EMPTY_TOTALS
    cart.totals = CartTotals(
        subtotal=totals.subtotal,
        discount=totals.discount,
        tax=totals.tax,
        shipping=totals.shipping,
        total=totals.total,
    )
    cart.coupon = (
        AppliedCoupon(code=coupon.code, type=coupon.type, value=coupon.value, discount=totals.discount)
        if coupon
        else None
    )
    cart.updated_at = datetime.now(timezone.utc)
    return cart


def empty_cart(user_id: int) -> Cart:
    return Cart(user_id=user_id)


#serializacja do store - bez snapshotu produktu, Decimal jako string
def dump_cart(cart: Cart) -> str:
    data = cart.model_dump(exclude={"items": {"__all__": {"product"}}, "item_count": True})
    return json.dumps(data, default=_json_default)


def load_cart(raw: str | bytes) -> Cart:
    return Cart.model_validate(json.loads(raw))


def _json_default(value):
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Cannot serialize {type(value).__name__}")
