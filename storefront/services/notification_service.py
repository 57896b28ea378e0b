# storefront/services/notification_service.py
from kombu.exceptions import OperationalError

from storefront.celery_worker import celery_app
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

ORDER_PLACED = "order_placed"
PAYMENT_COMPLETED = "payment_completed"
STATUS_CHANGED = "status_changed"
ORDER_CANCELLED = "order_cancelled"
ORDER_REFUNDED = "order_refunded"


class NotificationService:
    """
    Powiadomienia o zdarzeniach zamowienia.
    Wysylane asynchronicznie przez Celery, blad brokera nie psuje requestu.
    """

    def order_placed(self, order):
        self._send(order, ORDER_PLACED, f"Order {order.order_number} placed, total ${order.total}")

    def payment_completed(self, order):
        self._send(order, PAYMENT_COMPLETED, f"Payment {order.transaction_id} received")

    def status_changed(self, order):
        self._send(order, STATUS_CHANGED, f"Order {order.order_number} is now {order.status}")

    def order_cancelled(self, order):
        self._send(order, ORDER_CANCELLED, f"Order {order.order_number} cancelled: {order.cancel_reason}")

    def order_refunded(self, order):
        self._send(order, ORDER_REFUNDED, f"Refunded ${order.refund_amount} for order {order.order_number}")

    @staticmethod
    def _send(order, event: str, message: str):
        try:
            send_order_notification_task.delay(order.user_id, order.id, event, message)
        except OperationalError as e:
            logger.warning(f"Could not queue {event} notification for order {order.id}: {e}")


@celery_app.task(name="storefront.services.notification_service.send_order_notification_task")
def send_order_notification_task(user_id: int, order_id: int, event: str, message: str):
    """
    Celery task - tu bylby email / SMS / push.
    Na razie tylko log.
    """
    logger.info(f"[NOTIFICATION] User {user_id}: order {order_id} {event}: {message}")
    return {"user_id": user_id, "order_id": order_id, "event": event, "status": "sent"}
