# storefront/domain/schemas.py
from datetime import datetime, timezone
from decimal import Decimal
from typing import Annotated, Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, computed_field, model_validator
from pydantic.alias_generators import to_camel


# Decimal w srodku, liczba w JSON
Money = Annotated[Decimal, PlainSerializer(lambda v: float(v), return_type=float, when_used="json")]

ShippingMethodId = Literal["standard", "express", "overnight"]
PaymentMethodId = Literal["credit_card", "debit_card", "paypal", "stripe", "apple_pay", "google_pay"]
OrderStatusValue = Literal["pending", "confirmed", "processing", "shipped", "delivered", "cancelled", "refunded"]


class ApiModel(BaseModel):
    """Base for everything that crosses the HTTP boundary (camelCase on the wire)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# =====================================================
# CART
# =====================================================
class Attribute(ApiModel):
    name: str
    value: str


class VariantSnapshot(ApiModel):
    id: int
    name: str
    sku: str
    attributes: List[Attribute] = []


class ImageOut(ApiModel):
    url: str
    alt: str
    is_primary: bool = False


class CartProductOut(ApiModel):
    """Live product data attached to a cart line when the cart is read."""

    id: int
    name: str
    slug: str
    price: Money
    primary_image: Optional[ImageOut] = None
    is_available: bool
    stock_status: str


class CartLine(ApiModel):
    id: str
    product_id: int
    variant_id: Optional[int] = None
    variant: Optional[VariantSnapshot] = None
    quantity: int
    unit_price: Money
    total_price: Money
    product: Optional[CartProductOut] = None


class AppliedCoupon(ApiModel):
    code: str
    type: str
    value: Money
    discount: Money


class CartTotals(ApiModel):
    subtotal: Money = Decimal("0.00")
    discount: Money = Decimal("0.00")
    tax: Money = Decimal("0.00")
    shipping: Money = Decimal("0.00")
    total: Money = Decimal("0.00")


class Cart(ApiModel):
    user_id: int
    items: List[CartLine] = []
    coupon: Optional[AppliedCoupon] = None
    totals: CartTotals = Field(default_factory=CartTotals)
    version: int = 0
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @computed_field(alias="itemCount")
    @property
    def item_count(self) -> int:
        return sum(i.quantity for i in self.items)


class AddCartItemIn(ApiModel):
    product_id: int = Field(..., gt=0)
    variant_id: Optional[int] = Field(None, gt=0)
    quantity: int = Field(1, ge=1, le=99, description="Quantity must be between 1 and 99")


class UpdateCartItemIn(ApiModel):
    quantity: int = Field(..., ge=1, le=99, description="Quantity must be between 1 and 99")


class ApplyCouponIn(ApiModel):
    coupon_code: str = Field(..., min_length=1, max_length=50, pattern=r"^\s*[A-Za-z0-9]+\s*$")


# =====================================================
# CHECKOUT / ORDERS
# =====================================================
class AddressIn(ApiModel):
    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=50)
    company: Optional[str] = Field(None, max_length=100)
    address1: str = Field(..., min_length=1, max_length=100)
    address2: Optional[str] = Field(None, max_length=100)
    city: str = Field(..., min_length=1, max_length=50)
    state: str = Field(..., min_length=1, max_length=50)
    postal_code: str = Field(..., min_length=1, max_length=20)
    country: str = Field("United States", min_length=1, max_length=50)
    phone: Optional[str] = Field(None, max_length=20)


class CheckoutSummaryIn(ApiModel):
    shipping_method: ShippingMethodId = "standard"
    coupon_code: Optional[str] = Field(None, min_length=1, max_length=50, pattern=r"^\s*[A-Za-z0-9]+\s*$")


class ShippingOptionOut(ApiModel):
    id: str
    name: str
    cost: Money
    days: str
    selected: bool = False


class SummaryCouponOut(ApiModel):
    code: str
    discount: Money = Decimal("0.00")
    error: Optional[str] = None


class SummaryTotalsOut(CartTotals):
    tax_rate: Money


class CheckoutSummaryOut(ApiModel):
    items: List[CartLine]
    item_count: int
    totals: SummaryTotalsOut
    shipping_options: List[ShippingOptionOut]
    coupon: Optional[SummaryCouponOut] = None


class CreateOrderIn(ApiModel):
    shipping_address: AddressIn
    billing_address: AddressIn
    payment_method: PaymentMethodId
    shipping_method: ShippingMethodId = "standard"
    customer_notes: Optional[str] = Field(None, max_length=1000)


class CancelOrderIn(ApiModel):
    reason: Optional[str] = Field(None, min_length=1, max_length=500)


class UpdateOrderStatusIn(ApiModel):
    status: OrderStatusValue
    note: Optional[str] = Field(None, min_length=1, max_length=500)
    tracking_number: Optional[str] = Field(None, min_length=1, max_length=100)
    carrier: Optional[str] = Field(None, min_length=1, max_length=50)


class UpdateOrderAdminIn(ApiModel):
    shipping_address: Optional[AddressIn] = None
    billing_address: Optional[AddressIn] = None
    tracking_number: Optional[str] = Field(None, min_length=1, max_length=100)
    carrier: Optional[str] = Field(None, min_length=1, max_length=50)
    customer_notes: Optional[str] = Field(None, max_length=1000)
    internal_notes: Optional[str] = Field(None, max_length=1000)


class OrderItemOut(ApiModel):
    id: int
    product_id: int
    product_name: str
    product_slug: str
    image_url: str
    image_alt: str
    variant_id: Optional[int] = None
    variant_name: Optional[str] = None
    variant_sku: Optional[str] = None
    variant_attributes: Optional[List[Attribute]] = None
    quantity: int
    unit_price: Money
    total_price: Money


class StatusHistoryOut(ApiModel):
    status: str
    timestamp: datetime
    note: Optional[str] = None
    updated_by: Optional[int] = None


class PaymentInfoOut(ApiModel):
    method: str
    status: str
    transaction_id: Optional[str] = None
    payment_intent_id: Optional[str] = None
    last4: Optional[str] = None
    brand: Optional[str] = None
    paid_at: Optional[datetime] = None
    refunded_at: Optional[datetime] = None
    refund_amount: Money = Decimal("0.00")


class ShippingInfoOut(ApiModel):
    method: str
    name: str
    cost: Money
    tracking_number: Optional[str] = None
    carrier: Optional[str] = None
    shipped_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    estimated_delivery_date: Optional[datetime] = None


class OrderTotalsOut(ApiModel):
    subtotal: Money
    discount: Money
    tax: Money
    tax_rate: Money
    shipping: Money
    total: Money


class OrderUserOut(ApiModel):
    id: int
    email: str
    name: str


class OrderOut(ApiModel):
    id: int
    order_number: str
    user: OrderUserOut
    status: str
    status_display: str
    items: List[OrderItemOut]
    total_items: int
    shipping_address: Dict[str, Any]
    billing_address: Dict[str, Any]
    payment_info: PaymentInfoOut
    shipping_info: ShippingInfoOut
    totals: OrderTotalsOut
    status_history: List[StatusHistoryOut]
    coupon_code: Optional[str] = None
    customer_notes: Optional[str] = None
    internal_notes: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    cancel_reason: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, order) -> "OrderOut":
        return cls(
            id=order.id,
            order_number=order.order_number,
            user=OrderUserOut(id=order.user_id, email=order.user_email, name=order.user_name),
            status=order.status,
            status_display=order.status_display,
            items=[OrderItemOut.model_validate(i) for i in order.items],
            total_items=order.total_items,
            shipping_address=order.shipping_address,
            billing_address=order.billing_address,
            payment_info=PaymentInfoOut(
                method=order.payment_method,
                status=order.payment_status,
                transaction_id=order.transaction_id,
                payment_intent_id=order.payment_intent_id,
                last4=order.card_last4,
                brand=order.card_brand,
                paid_at=order.paid_at,
                refunded_at=order.refunded_at,
                refund_amount=order.refund_amount,
            ),
            shipping_info=ShippingInfoOut(
                method=order.shipping_method,
                name=order.shipping_method_name,
                cost=order.shipping_cost,
                tracking_number=order.tracking_number,
                carrier=order.carrier,
                shipped_at=order.shipped_at,
                delivered_at=order.delivered_at,
                estimated_delivery_date=order.estimated_delivery_date,
            ),
            totals=OrderTotalsOut(
                subtotal=order.subtotal,
                discount=order.discount,
                tax=order.tax,
                tax_rate=order.tax_rate,
                shipping=order.shipping,
                total=order.total,
            ),
            status_history=[StatusHistoryOut.model_validate(h) for h in order.status_history],
            coupon_code=order.coupon_code,
            customer_notes=order.customer_notes,
            internal_notes=order.internal_notes,
            cancelled_at=order.cancelled_at,
            cancel_reason=order.cancel_reason,
            created_at=order.created_at,
            updated_at=order.updated_at,
        )


class TrackingOut(ApiModel):
    order_number: str
    status: str
    status_display: str
    estimated_delivery_date: Optional[datetime] = None
    shipping_info: ShippingInfoOut
    status_history: List[StatusHistoryOut]
    order_date: datetime
    total: Money
    item_count: int


# =====================================================
# PAYMENTS
# =====================================================
class CardDetailsIn(ApiModel):
    number: Optional[str] = Field(None, pattern=r"^\d{13,19}$")
    expiry_month: Optional[int] = Field(None, ge=1, le=12)
    expiry_year: Optional[int] = None
    cvv: Optional[str] = Field(None, pattern=r"^\d{3,4}$")
    holder_name: Optional[str] = Field(None, min_length=1, max_length=100)
    brand: Optional[str] = None

    @model_validator(mode="after")
    def _check_expiry_year(self):
        if self.expiry_year is not None:
            year = datetime.now(timezone.utc).year
            if not year <= self.expiry_year <= year + 20:
                raise ValueError("Expiry year must be valid")
        return self


class ProcessPaymentIn(ApiModel):
    order_id: int = Field(..., gt=0)
    payment_method: PaymentMethodId
    payment_token: Optional[str] = Field(None, min_length=1, max_length=500)
    card_details: Optional[CardDetailsIn] = None


class RefundIn(ApiModel):
    order_id: int = Field(..., gt=0)
    amount: Optional[Decimal] = Field(None, ge=Decimal("0.01"))
    reason: str = Field(..., min_length=1, max_length=500)


class PaymentMethodOut(ApiModel):
    id: str
    name: str
    description: str
    enabled: bool
    fees: Money


# =====================================================
# CATALOG
# =====================================================
class CategoryIn(ApiModel):
    name: str = Field(..., min_length=1, max_length=100)
    slug: Optional[str] = Field(None, pattern=r"^[a-z0-9-]+$")
    description: Optional[str] = Field(None, max_length=500)
    parent_id: Optional[int] = None


class CategoryOut(ApiModel):
    id: int
    name: str
    slug: str
    description: Optional[str] = None
    parent_id: Optional[int] = None
    level: int
    path: str
    full_path: str
    product_count: int
    is_active: bool


class ProductImageIn(ApiModel):
    url: str = Field(..., min_length=1)
    alt: str = Field(..., min_length=1)
    is_primary: bool = False


class VariantIn(ApiModel):
    name: str = Field(..., min_length=1)
    sku: str = Field(..., min_length=1)
    price: Optional[Decimal] = Field(None, ge=0)
    inventory: int = Field(0, ge=0)
    attributes: List[Attribute] = []
    is_active: bool = True


class InventoryIn(ApiModel):
    count: int = Field(0, ge=0)
    track_inventory: bool = True
    allow_backorder: bool = False
    low_stock_threshold: int = Field(5, ge=0)


class ProductIn(ApiModel):
    name: str = Field(..., min_length=1, max_length=200)
    slug: Optional[str] = None
    description: str = Field(..., min_length=1, max_length=2000)
    price: Decimal = Field(..., ge=0)
    compare_at_price: Optional[Decimal] = Field(None, ge=0)
    images: List[ProductImageIn] = Field(..., min_length=1)
    category_id: int
    variants: List[VariantIn] = []
    inventory: InventoryIn = Field(default_factory=InventoryIn)
    is_active: bool = True

    @model_validator(mode="after")
    def _compare_at_above_price(self):
        if self.compare_at_price is not None and self.compare_at_price <= self.price:
            raise ValueError("Compare at price must be greater than regular price")
        return self


class InventoryUpdateIn(ApiModel):
    count: Optional[int] = Field(None, ge=0)
    track_inventory: Optional[bool] = None
    allow_backorder: Optional[bool] = None
    low_stock_threshold: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None


class VariantOut(ApiModel):
    id: int
    name: str
    sku: str
    price: Optional[Money] = None
    inventory: int
    attributes: List[Attribute] = []
    is_active: bool


class InventoryOut(ApiModel):
    count: int
    track_inventory: bool
    allow_backorder: bool
    low_stock_threshold: int


class ProductOut(ApiModel):
    id: int
    name: str
    slug: str
    description: str
    price: Money
    compare_at_price: Optional[Money] = None
    category_id: int
    images: List[ImageOut]
    primary_image: Optional[ImageOut] = None
    variants: List[VariantOut]
    inventory: InventoryOut
    is_active: bool
    is_available: bool
    stock_status: str

    @classmethod
    def from_model(cls, product) -> "ProductOut":
        return cls(
            id=product.id,
            name=product.name,
            slug=product.slug,
            description=product.description,
            price=product.price,
            compare_at_price=product.compare_at_price,
            category_id=product.category_id,
            images=[ImageOut.model_validate(i) for i in product.images],
            primary_image=ImageOut.model_validate(product.primary_image) if product.primary_image else None,
            variants=[VariantOut.model_validate(v) for v in product.variants],
            inventory=InventoryOut(
                count=product.inventory_count,
                track_inventory=product.track_inventory,
                allow_backorder=product.allow_backorder,
                low_stock_threshold=product.low_stock_threshold,
            ),
            is_active=product.is_active,
            is_available=product.is_available,
            stock_status=product.stock_status,
        )


# =====================================================
# USERS
# =====================================================
class UserCreate(ApiModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class UserRead(ApiModel):
    id: int
    name: str
    email: str
    role: str


class UserCreated(UserRead):
    api_token: str
