# storefront/tasks/expire.py
from datetime import timedelta

from storefront.celery_worker import celery_app
from storefront.data.database import SessionLocal
from storefront.repos.cart_store import get_cart_store
from storefront.services.order_service import OrderService
from storefront.utils.logging import get_logger
from storefront.utils.settings import PENDING_ORDER_TTL_HOURS

logger = get_logger(__name__)


@celery_app.task(name="storefront.tasks.expire.expire_stale_orders_task")
def expire_stale_orders_task(ttl_hours: int = PENDING_ORDER_TTL_HOURS):
    logger.info("Expire stale orders task started")

    db = SessionLocal()
    try:
        service = OrderService(db, get_cart_store())
        expired = service.expire_stale_orders(timedelta(hours=ttl_hours))
        logger.info(f"Expired {expired} pending orders older than {ttl_hours}h")
        return expired
    finally:
        db.close()
