"""Background expiry of unpaid orders."""

import logging
from datetime import timedelta

from storefront.celery_worker import celery_app
from storefront.data.models.order import OrderModel, utcnow
from storefront.tasks.expire import expire_stale_orders_task
from tests.conftest import auth, stock


def backdate(db, order_id, hours=48):
    order = db.get(OrderModel, order_id)
    order.created_at = utcnow() - timedelta(hours=hours)
    db.commit()


def test_stale_pending_order_cancelled(client, customer, db, product_id, pending_order, caplog):
    backdate(db, pending_order["id"])

    with caplog.at_level(logging.INFO, logger="storefront.services.order_service"):
        assert expire_stale_orders_task() == 1

    order = client.get(f"/api/orders/{pending_order['id']}", headers=auth(customer)).json()["data"]["order"]
    assert order["status"] == "cancelled"
    assert order["cancelReason"] == "Payment not received in time"
    # aktor systemowy: brak uzytkownika w historii
    assert order["statusHistory"][-1]["updatedBy"] is None
    assert f"Order {pending_order['orderNumber']} cancelled by system" in caplog.text
    assert stock(db, product_id) == 10


def test_recent_and_paid_orders_kept(client, customer, db, product_id, paid_order):
    backdate(db, paid_order["id"])
    client.post("/api/cart/items", json={"productId": product_id, "quantity": 1}, headers=auth(customer))
    client.post(
        "/api/orders",
        json={
            "shippingAddress": paid_order["shippingAddress"],
            "billingAddress": paid_order["billingAddress"],
            "paymentMethod": "paypal",
        },
        headers=auth(customer),
    )

    assert expire_stale_orders_task() == 0
    assert stock(db, product_id) == 7


def test_custom_ttl(db, pending_order):
    backdate(db, pending_order["id"], hours=3)

    assert expire_stale_orders_task(ttl_hours=24) == 0
    assert expire_stale_orders_task.delay(ttl_hours=2).get() == 1


def test_scheduled_every_fifteen_minutes():
    entry = celery_app.conf.beat_schedule["expire-stale-orders-every-15-minutes"]

    assert entry["task"] == expire_stale_orders_task.name
    assert entry["schedule"] == 900
