# storefront/api/routers/orders.py
from datetime import datetime

from fastapi import APIRouter, Depends, Query

from storefront.api.deps import get_current_user, get_optional_user, get_order_service, require_admin
from storefront.api.responses import ok, pagination
from storefront.data.models.user import UserModel
from storefront.domain.schemas import (
    CancelOrderIn,
    CheckoutSummaryIn,
    CreateOrderIn,
    OrderOut,
    OrderStatusValue,
    UpdateOrderAdminIn,
    UpdateOrderStatusIn,
)
from storefront.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["orders"])


# trasy ze stalym prefiksem przed /{order_id}
@router.post("/checkout/summary")
def checkout_summary(
    payload: CheckoutSummaryIn,
    user: UserModel = Depends(get_current_user),
    svc: OrderService = Depends(get_order_service),
):
    """Wycena koszyka bez zapisu."""
    summary = svc.checkout_summary(user, payload.shipping_method, payload.coupon_code)
    return ok({"summary": summary})


@router.get("/tracking/{reference}")
def order_tracking(
    reference: str,
    user: UserModel | None = Depends(get_optional_user),
    svc: OrderService = Depends(get_order_service),
):
    return ok({"tracking": svc.tracking(reference, user)})


@router.get("/admin/all", dependencies=[Depends(require_admin)])
def list_all_orders(
    status: OrderStatusValue | None = None,
    date_from: datetime | None = Query(None, alias="dateFrom"),
    date_to: datetime | None = Query(None, alias="dateTo"),
    search: str | None = Query(None, min_length=1, max_length=100),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    svc: OrderService = Depends(get_order_service),
):
    orders, total = svc.list_all_orders(status, date_from, date_to, search, page, limit)
    return ok({"orders": [OrderOut.from_model(o) for o in orders], "pagination": pagination(page, limit, total)})


@router.get("/admin/attention", dependencies=[Depends(require_admin)])
def orders_requiring_attention(
    limit: int = Query(20, ge=1, le=100),
    svc: OrderService = Depends(get_order_service),
):
    orders = svc.orders_requiring_attention(limit)
    return ok({"orders": [OrderOut.from_model(o) for o in orders], "count": len(orders)})


@router.get("/admin/{order_id}", dependencies=[Depends(require_admin)])
def get_order_admin(order_id: int, svc: OrderService = Depends(get_order_service)):
    return ok({"order": OrderOut.from_model(svc.get_order_admin(order_id))})


@router.put("/admin/{order_id}")
def update_order_admin(
    order_id: int,
    payload: UpdateOrderAdminIn,
    admin: UserModel = Depends(require_admin),
    svc: OrderService = Depends(get_order_service),
):
    order = svc.update_order_admin(admin, order_id, payload)
    return ok({"order": OrderOut.from_model(order)}, "Order updated successfully")


@router.get("")
def list_orders(
    status: OrderStatusValue | None = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    user: UserModel = Depends(get_current_user),
    svc: OrderService = Depends(get_order_service),
):
    orders, total = svc.list_orders(user, status, page, limit)
    return ok({"orders": [OrderOut.from_model(o) for o in orders], "pagination": pagination(page, limit, total)})


@router.post("", status_code=201)
def create_order(
    payload: CreateOrderIn,
    user: UserModel = Depends(get_current_user),
    svc: OrderService = Depends(get_order_service),
):
    """
    Tworzy zamowienie z koszyka uzytkownika.
    Powiadomienie idzie asynchronicznie.
    """
    order = svc.create_order(user, payload)
    return ok({"order": OrderOut.from_model(order)}, "Order created successfully")


@router.get("/{order_id}")
def get_order(
    order_id: int,
    user: UserModel = Depends(get_current_user),
    svc: OrderService = Depends(get_order_service),
):
    return ok({"order": OrderOut.from_model(svc.get_order(user, order_id))})


@router.put("/{order_id}/cancel")
def cancel_order(
    order_id: int,
    payload: CancelOrderIn | None = None,
    user: UserModel = Depends(get_current_user),
    svc: OrderService = Depends(get_order_service),
):
    reason = payload.reason if payload else None
    order = svc.cancel_order(user, order_id, reason, as_admin=user.is_admin)
    return ok({"order": OrderOut.from_model(order)}, "Order cancelled successfully")


@router.put("/{order_id}/status")
def update_order_status(
    order_id: int,
    payload: UpdateOrderStatusIn,
    admin: UserModel = Depends(require_admin),
    svc: OrderService = Depends(get_order_service),
):
    order = svc.update_status(admin, order_id, payload)
    return ok({"order": OrderOut.from_model(order)}, "Order status updated successfully")
