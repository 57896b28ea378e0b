# storefront/services/payment_service.py
from decimal import Decimal
from typing import List, Tuple

from sqlalchemy.orm import Session

from storefront.data.models.order import OrderModel, utcnow
from storefront.data.models.user import UserModel
from storefront.domain.order_status import REFUNDABLE_PAYMENT, OrderStatus, PaymentStatus
from storefront.domain.pricing import round_money
from storefront.domain.schemas import PaymentMethodOut, ProcessPaymentIn, RefundIn
from storefront.errors import (
    OrderNotFoundError,
    PaymentDeclinedError,
    PaymentGatewayError,
    RefundDeclinedError,
    RefundNotAllowedError,
)
from storefront.repos.order_repo import OrderRepo
from storefront.services.notification_service import NotificationService
from storefront.services.payment_gateway import ChargeResult, PaymentGateway, RefundResult
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class PaymentService:
    """
    Platnosci za zamowienia przez PaymentGateway.
    Jedna proba, bez retry - odrzucenie zostawia zamowienie w pending.
    """

    def __init__(self, db: Session, gateway: PaymentGateway, notifications: NotificationService | None = None):
        self.orders = OrderRepo(db)
        self.gateway = gateway
        self.notifications = notifications or NotificationService()

    def list_payment_methods(self) -> List[PaymentMethodOut]:
        return [PaymentMethodOut.model_validate(m) for m in self.gateway.methods()]

    def process_payment(self, user: UserModel, payload: ProcessPaymentIn) -> Tuple[OrderModel, ChargeResult]:
        order = self.orders.get_user_order(payload.order_id, user.id)
        if not order or order.status != OrderStatus.PENDING.value:
            raise OrderNotFoundError("Order not found or cannot be processed")

        order.payment_method = payload.payment_method
        card_details = payload.card_details.model_dump() if payload.card_details else None

        try:
            result = self.gateway.charge(order, payload.payment_method, payload.payment_token, card_details)
        except Exception as e:
            logger.error(f"Payment gateway error for order {order.order_number}: {e}")
            order.payment_status = PaymentStatus.FAILED.value
            self.orders.commit()
            raise PaymentGatewayError() from e

        if not result.success:
            order.payment_status = PaymentStatus.FAILED.value
            self.orders.commit()
            logger.info(f"Payment for order {order.order_number} declined: {result.error}")
            raise PaymentDeclinedError(result.error or "Payment processing failed")

        order.payment_status = PaymentStatus.COMPLETED.value
        order.transaction_id = result.transaction_id
        order.payment_intent_id = result.payment_intent_id
        order.card_last4 = result.card_last4
        order.card_brand = result.card_brand
        order.paid_at = utcnow()
        order.record_status(
            OrderStatus.CONFIRMED.value,
            f"Payment completed via {payload.payment_method} ({result.transaction_id})",
            user.id,
        )
        self.orders.commit()

        logger.info(f"Payment {result.transaction_id} completed for order {order.order_number}")
        self.notifications.payment_completed(order)
        return order, result

    def refund_payment(self, actor: UserModel, payload: RefundIn) -> Tuple[OrderModel, RefundResult, Decimal]:
        order = self.orders.get_order(payload.order_id)
        if not order:
            raise OrderNotFoundError()

        if PaymentStatus(order.payment_status) not in REFUNDABLE_PAYMENT:
            raise RefundNotAllowedError("Order payment is not completed")

        remaining = round_money(order.refundable_amount)
        amount = round_money(payload.amount) if payload.amount is not None else remaining
        if amount > remaining:
            raise RefundNotAllowedError(f"Maximum refund amount is ${remaining:.2f}")
        if amount <= 0:
            raise RefundNotAllowedError("Nothing left to refund")

        try:
            result = self.gateway.refund(order, amount, payload.reason)
        except Exception as e:
            logger.error(f"Refund gateway error for order {order.order_number}: {e}")
            raise PaymentGatewayError("Refund processing failed") from e

        if not result.success:
            logger.info(f"Refund of ${amount} for order {order.order_number} declined: {result.error}")
            raise RefundDeclinedError(result.error or "Refund processing failed")

        order.apply_refund(amount, payload.reason, actor.id)
        self.orders.commit()

        logger.info(
            f"Refunded ${amount} for order {order.order_number} ({result.refund_id}), "
            f"payment status {order.payment_status}"
        )
        self.notifications.order_refunded(order)
        return order, result, amount
