"""Domain exceptions for the storefront service.

Services raise these; the API layer maps each class to an HTTP status and
renders the ``{"success": false, "error": {...}}`` envelope.
"""
from decimal import Decimal
from typing import Any, Dict, Optional


class StoreError(Exception):
    """Base exception for all storefront errors."""

    code: Optional[str] = None

    def __init__(self, message: str, **extra: Any):
        super().__init__(message)
        self.message = message
        self.extra = extra

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"message": self.message}
        if self.code:
            payload["code"] = self.code
        payload.update({k: v for k, v in self.extra.items() if v is not None})
        return payload


# --- 400: business rules ---


class BusinessRuleError(StoreError):
    """A request that is well formed but not allowed in the current state."""


class EmptyCartError(BusinessRuleError):
    def __init__(self):
        super().__init__("Cart is empty")


class InsufficientStockError(BusinessRuleError):
    def __init__(
        self,
        message: str = "Insufficient inventory",
        available_quantity: Optional[int] = None,
        current_cart_quantity: Optional[int] = None,
    ):
        super().__init__(
            message,
            availableQuantity=available_quantity,
            currentCartQuantity=current_cart_quantity,
        )
        self.available_quantity = available_quantity


class ProductUnavailableError(BusinessRuleError):
    """Raised at checkout when a product in the cart went inactive."""

    def __init__(self, product_ref: str):
        self.product_ref = product_ref
        super().__init__(f"Product {product_ref} is no longer available")


class InvalidCouponError(BusinessRuleError):
    def __init__(self, code: str):
        self.coupon_code = code
        super().__init__("Invalid coupon code")


class CouponMinimumNotMetError(BusinessRuleError):
    def __init__(self, minimum: Decimal):
        self.minimum = minimum
        super().__init__(f"Minimum order amount of ${minimum} required for this coupon")


class OrderNotCancellableError(BusinessRuleError):
    def __init__(self):
        super().__init__("Order cannot be cancelled at this stage")


class InvalidStatusTransitionError(BusinessRuleError):
    def __init__(self, current: str, target: str, reason: Optional[str] = None):
        self.current = current
        self.target = target
        msg = f"Cannot change order status from {current} to {target}"
        if reason:
            msg = f"{msg} ({reason})"
        super().__init__(msg)


class RefundNotAllowedError(BusinessRuleError):
    pass


class PaymentDeclinedError(BusinessRuleError):
    code = "PAYMENT_FAILED"


class RefundDeclinedError(BusinessRuleError):
    code = "REFUND_FAILED"


# --- 401 / 403 ---


class AuthenticationError(StoreError):
    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class PermissionDeniedError(StoreError):
    def __init__(self, message: str = "Access denied"):
        super().__init__(message)


# --- 404 ---


class NotFoundError(StoreError):
    pass


class ProductNotFoundError(NotFoundError):
    def __init__(self, message: str = "Product not found or unavailable"):
        super().__init__(message)


class CategoryNotFoundError(NotFoundError):
    def __init__(self, category_id: int):
        self.category_id = category_id
        super().__init__(f"Category not found: {category_id}")


class CartNotFoundError(NotFoundError):
    def __init__(self):
        super().__init__("Cart not found")


class CartItemNotFoundError(NotFoundError):
    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__("Cart item not found")


class OrderNotFoundError(NotFoundError):
    def __init__(self, message: str = "Order not found"):
        super().__init__(message)


# --- 409 ---


class ConflictError(StoreError):
    pass


class CartConflictError(ConflictError):
    """Raised when a cart was modified by another request since it was read."""

    def __init__(self, user_id: int):
        self.user_id = user_id
        super().__init__("Cart was modified by another request, please retry")


class DuplicateError(ConflictError):
    pass


# --- 500 ---


class PaymentGatewayError(StoreError):
    code = "PAYMENT_ERROR"

    def __init__(self, message: str = "Payment processing failed"):
        super().__init__(message)
