# storefront/api/routers/carts.py
from fastapi import APIRouter, Depends

from storefront.api.deps import get_cart_service, get_current_user
from storefront.api.responses import ok
from storefront.data.models.user import UserModel
from storefront.domain.schemas import AddCartItemIn, ApplyCouponIn, UpdateCartItemIn
from storefront.services.cart_service import CartService

router = APIRouter(prefix="/cart", tags=["cart"])


@router.get("")
def get_cart(user: UserModel = Depends(get_current_user), svc: CartService = Depends(get_cart_service)):
    return ok({"cart": svc.get_cart(user.id)})


@router.delete("")
def clear_cart(user: UserModel = Depends(get_current_user), svc: CartService = Depends(get_cart_service)):
    return ok({"cart": svc.clear_cart(user.id)}, "Cart cleared successfully")


@router.post("/items", status_code=201)
def add_item(
    payload: AddCartItemIn,
    user: UserModel = Depends(get_current_user),
    svc: CartService = Depends(get_cart_service),
):
    cart = svc.add_item(user.id, payload.product_id, payload.variant_id, payload.quantity)
    return ok({"cart": cart}, "Item added to cart successfully")


@router.put("/items/{item_id}")
def update_item(
    item_id: str,
    payload: UpdateCartItemIn,
    user: UserModel = Depends(get_current_user),
    svc: CartService = Depends(get_cart_service),
):
    return ok({"cart": svc.update_item(user.id, item_id, payload.quantity)}, "Cart item updated successfully")


@router.delete("/items/{item_id}")
def remove_item(
    item_id: str,
    user: UserModel = Depends(get_current_user),
    svc: CartService = Depends(get_cart_service),
):
    return ok({"cart": svc.remove_item(user.id, item_id)}, "Item removed from cart successfully")


@router.post("/coupon")
def apply_coupon(
    payload: ApplyCouponIn,
    user: UserModel = Depends(get_current_user),
    svc: CartService = Depends(get_cart_service),
):
    return ok({"cart": svc.apply_coupon(user.id, payload.coupon_code)}, "Coupon applied successfully")


@router.delete("/coupon")
def remove_coupon(user: UserModel = Depends(get_current_user), svc: CartService = Depends(get_cart_service)):
    return ok({"cart": svc.remove_coupon(user.id)}, "Coupon removed successfully")
