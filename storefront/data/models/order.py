# storefront/data/models/order.py
import secrets
import string
import time
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, Numeric, String, Text, event
from sqlalchemy.orm import relationship

from storefront.data.database import Base
from storefront.domain.order_status import STATUS_DISPLAY, OrderStatus, PaymentStatus

_BASE36 = string.digits + string.ascii_uppercase


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    # sqlite oddaje naive datetime
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def generate_order_number() -> str:
    """ORD-<last 8 digits of epoch millis>-<4 random base36 chars>."""
    millis = str(int(time.time() * 1000))[-8:]
    suffix = "".join(secrets.choice(_BASE36) for _ in range(4))
    return f"ORD-{millis}-{suffix}"


class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    order_number = Column(String(32), nullable=False, unique=True, index=True)

    # snapshot uzytkownika w momencie zamowienia
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    user_email = Column(String(255), nullable=False)
    user_name = Column(String(100), nullable=False)

    status = Column(String(20), nullable=False, default=OrderStatus.PENDING.value, index=True)

    shipping_address = Column(JSON, nullable=False)
    billing_address = Column(JSON, nullable=False)

    payment_method = Column(String(20), nullable=False)
    payment_status = Column(String(20), nullable=False, default=PaymentStatus.PENDING.value)
    transaction_id = Column(String(64), nullable=True, index=True)
    payment_intent_id = Column(String(64), nullable=True)
    card_last4 = Column(String(4), nullable=True)
    card_brand = Column(String(20), nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    refunded_at = Column(DateTime(timezone=True), nullable=True)
    refund_amount = Column(Numeric(10, 2), nullable=False, default=Decimal("0.00"))

    shipping_method = Column(String(20), nullable=False)
    shipping_method_name = Column(String(100), nullable=False)
    shipping_cost = Column(Numeric(10, 2), nullable=False)
    delivery_min_days = Column(Integer, nullable=True)
    delivery_max_days = Column(Integer, nullable=True)
    tracking_number = Column(String(100), nullable=True, index=True)
    carrier = Column(String(50), nullable=True)
    shipped_at = Column(DateTime(timezone=True), nullable=True)
    delivered_at = Column(DateTime(timezone=True), nullable=True)

    subtotal = Column(Numeric(10, 2), nullable=False)
    discount = Column(Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    tax = Column(Numeric(10, 2), nullable=False)
    tax_rate = Column(Numeric(5, 4), nullable=False)
    shipping = Column(Numeric(10, 2), nullable=False)
    total = Column(Numeric(10, 2), nullable=False)

    coupon_code = Column(String(50), nullable=True)
    customer_notes = Column(Text, nullable=True)
    internal_notes = Column(Text, nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancel_reason = Column(String(500), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=utcnow)

    items = relationship(
        "OrderItemModel",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItemModel.id",
        lazy="selectin",
    )
    status_history = relationship(
        "OrderStatusHistoryModel",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderStatusHistoryModel.id",
        lazy="selectin",
    )

    # =====================================================
    # widoki
    # =====================================================
    @property
    def total_items(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def status_display(self) -> str:
        try:
            return STATUS_DISPLAY[OrderStatus(self.status)]
        except ValueError:
            return self.status

    @property
    def estimated_delivery_date(self) -> datetime | None:
        if not self.shipped_at:
            return None
        days = self.delivery_max_days or self.delivery_min_days or 7
        return as_utc(self.shipped_at) + timedelta(days=days)

    @property
    def refundable_amount(self) -> Decimal:
        return Decimal(self.total) - Decimal(self.refund_amount or 0)

    # =====================================================
    # zmiany stanu
    # =====================================================
    def recalculate_totals(self):
        self.subtotal = sum((Decimal(item.total_price) for item in self.items), Decimal("0.00"))
        self.total = self.subtotal - Decimal(self.discount or 0) + Decimal(self.tax) + Decimal(self.shipping)

    def record_status(self, status: str, note: str | None = None, updated_by: int | None = None):
        """Move to ``status`` and append the change to the history.

        Does not validate the transition; callers check it first.
        """
        now = utcnow()
        self.status = status
        self.status_history.append(
            OrderStatusHistoryModel(
                status=status,
                timestamp=now,
                note=note or f"Status changed to {status}",
                updated_by=updated_by,
            )
        )

        if status == OrderStatus.SHIPPED.value and not self.shipped_at:
            self.shipped_at = now
        elif status == OrderStatus.DELIVERED.value and not self.delivered_at:
            self.delivered_at = now
        elif status == OrderStatus.CANCELLED.value and not self.cancelled_at:
            self.cancelled_at = now

    def add_tracking_info(self, tracking_number: str, carrier: str, updated_by: int | None = None):
        self.tracking_number = tracking_number
        self.carrier = carrier.lower()

        if self.status == OrderStatus.PROCESSING.value:
            self.record_status(
                OrderStatus.SHIPPED.value,
                f"Shipped via {self.carrier} ({tracking_number})",
                updated_by,
            )

    def apply_refund(self, amount: Decimal, reason: str, updated_by: int | None = None):
        self.refund_amount = Decimal(self.refund_amount or 0) + amount
        self.refunded_at = utcnow()

        note = f"Refund processed: ${amount:.2f}. Reason: {reason}"
        if self.refund_amount >= Decimal(self.total):
            self.payment_status = PaymentStatus.REFUNDED.value
            self.record_status(OrderStatus.REFUNDED.value, note, updated_by)
        else:
            self.payment_status = PaymentStatus.PARTIALLY_REFUNDED.value
            # status zamowienia bez zmian, tylko wpis w historii
            self.status_history.append(
                OrderStatusHistoryModel(status=self.status, timestamp=utcnow(), note=note, updated_by=updated_by)
            )


class OrderItemModel(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)

    product_id = Column(Integer, nullable=False, index=True)
    product_name = Column(String(200), nullable=False)
    product_slug = Column(String(220), nullable=False)
    image_url = Column(String(500), nullable=False, default="")
    image_alt = Column(String(200), nullable=False, default="")

    variant_id = Column(Integer, nullable=True)
    variant_name = Column(String(100), nullable=True)
    variant_sku = Column(String(64), nullable=True)
    variant_attributes = Column(JSON, nullable=True)

    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)
    total_price = Column(Numeric(10, 2), nullable=False)
    # ile faktycznie zdjeto ze stanu (0 dla backorder / bez sledzenia)
    reserved_quantity = Column(Integer, nullable=False, default=0)

    order = relationship("OrderModel", back_populates="items")


class OrderStatusHistoryModel(Base):
    __tablename__ = "order_status_history"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(20), nullable=False)
    timestamp = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    note = Column(String(500), nullable=True)
    updated_by = Column(Integer, nullable=True)

    order = relationship("OrderModel", back_populates="status_history")


@event.listens_for(OrderModel, "before_insert")
def _prepare_new_order(mapper, connection, order: OrderModel):
    if not order.order_number:
        order.order_number = generate_order_number()
    order.recalculate_totals()
