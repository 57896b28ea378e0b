# storefront/services/order_service.py
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.data.models.order import OrderItemModel, OrderModel, utcnow
from storefront.data.models.product import ProductModel, ProductVariantModel
from storefront.data.models.user import UserModel
from storefront.domain import cart as carts
from storefront.domain import pricing
from storefront.domain.coupons import Coupon, resolve_coupon
from storefront.domain.order_status import OrderStatus, check_transition, is_cancellable
from storefront.domain.schemas import (
    Cart,
    CartLine,
    CheckoutSummaryOut,
    CreateOrderIn,
    ShippingInfoOut,
    ShippingOptionOut,
    StatusHistoryOut,
    SummaryCouponOut,
    SummaryTotalsOut,
    TrackingOut,
    UpdateOrderAdminIn,
    UpdateOrderStatusIn,
)
from storefront.errors import (
    AuthenticationError,
    CartConflictError,
    CouponMinimumNotMetError,
    EmptyCartError,
    InsufficientStockError,
    InvalidCouponError,
    OrderNotCancellableError,
    OrderNotFoundError,
    ProductUnavailableError,
)
from storefront.repos.cart_store import CartStore
from storefront.repos.order_repo import OrderRepo
from storefront.repos.product_repo import ProductRepo
from storefront.services.cart_service import attach_products
from storefront.services.notification_service import NotificationService
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

# wpisy historii bez uzytkownika (updated_by = null) pochodza od systemu
SYSTEM_ACTOR = None
DEFAULT_CANCEL_REASON = "Cancelled by customer"
CART_CLEANUP_ATTEMPTS = 3

ValidatedLine = Tuple[CartLine, ProductModel, Optional[ProductVariantModel]]


class OrderService:
    """
    Serwis domeny zamowien.
    -checkout: koszyk -> zamowienie, rezerwacja stanow w jednej transakcji
    -anulowanie i zmiany statusu (historia tylko dopisywana)
    -zapytania klienta i admina
    """

    def __init__(self, db: Session, store: CartStore, notifications: NotificationService | None = None):
        self.db = db
        self.orders = OrderRepo(db)
        self.products = ProductRepo(db)
        self.store = store
        self.notifications = notifications or NotificationService()

    # =====================================================
    # checkout
    # =====================================================
    def checkout_summary(
        self,
        user: UserModel,
        shipping_method: str = pricing.DEFAULT_SHIPPING_METHOD,
        coupon_code: str | None = None,
    ) -> CheckoutSummaryOut:
        """Price the current cart without persisting anything.

        Coupon problems are reported inside the summary rather than failing it.
        """
        cart = self._require_items(user.id)
        validated = self._validate_lines(cart)
        lines = [(line.unit_price, line.quantity) for line, _, _ in validated]
        subtotal = sum((pricing.line_total(p, q) for p, q in lines), pricing.ZERO)

        code = coupon_code or (cart.coupon.code if cart.coupon else None)
        coupon, coupon_error = None, None
        if code:
            try:
                coupon = resolve_coupon(code, subtotal)
            except (InvalidCouponError, CouponMinimumNotMetError) as e:
                coupon_error = e.message

        totals = pricing.compute_totals(lines, shipping_method, coupon)
        selected = pricing.get_shipping_method(shipping_method).id

        #podglad produktu jak w koszyku
        presented = attach_products(cart, {line.product_id: product for line, product, _ in validated})

        return CheckoutSummaryOut(
            items=presented.items,
            item_count=presented.item_count,
            totals=SummaryTotalsOut(
                subtotal=totals.subtotal,
                discount=totals.discount,
                tax=totals.tax,
                tax_rate=totals.tax_rate,
                shipping=totals.shipping,
                total=totals.total,
            ),
            shipping_options=[
                ShippingOptionOut(id=m.id, name=m.name, cost=m.cost, days=m.days, selected=m.id == selected)
                for m in pricing.SHIPPING_METHODS.values()
            ],
            coupon=SummaryCouponOut(code=code.strip().upper(), discount=totals.discount, error=coupon_error)
            if code
            else None,
        )

    def create_order(self, user: UserModel, payload: CreateOrderIn) -> OrderModel:
        """
        Use case: zamowienie z koszyka.

        1. koszyk niepusty, produkty aktywne, stany wystarczaja
        2. snapshot pozycji + ceny z pricing engine
        3. insert zamowienia + rezerwacja stanow - jedna transakcja, wszystko albo nic
        4. po commicie usun koszyk i wyslij powiadomienie
        """
        cart = self._require_items(user.id)
        validated = self._validate_lines(cart)
        lines = [(line.unit_price, line.quantity) for line, _, _ in validated]
        subtotal = sum((pricing.line_total(p, q) for p, q in lines), pricing.ZERO)

        coupon = self._cart_coupon(cart, subtotal)
        totals = pricing.compute_totals(lines, payload.shipping_method, coupon)
        shipping = pricing.get_shipping_method(payload.shipping_method)

        order = OrderModel(
            user_id=user.id,
            user_email=user.email,
            user_name=user.name,
            status=OrderStatus.PENDING.value,
            shipping_address=payload.shipping_address.model_dump(by_alias=True),
            billing_address=payload.billing_address.model_dump(by_alias=True),
            payment_method=payload.payment_method,
            shipping_method=shipping.id,
            shipping_method_name=shipping.name,
            shipping_cost=totals.shipping,
            delivery_min_days=shipping.min_days,
            delivery_max_days=shipping.max_days,
            subtotal=totals.subtotal,
            discount=totals.discount,
            tax=totals.tax,
            tax_rate=totals.tax_rate,
            shipping=totals.shipping,
            total=totals.total,
            coupon_code=coupon.code if coupon else None,
            customer_notes=payload.customer_notes,
            items=[self._snapshot_item(line, product, variant) for line, product, variant in validated],
        )
        order.record_status(OrderStatus.PENDING.value, "Order created", user.id)

        try:
            self.orders.add_order(order)
            shortfall = self._reserve_stock(order, validated)
        except SQLAlchemyError:
            self.orders.rollback()
            raise

        if shortfall is not None:
            # rollback zdejmuje zamowienie i wszystkie dotychczasowe rezerwacje
            self.orders.rollback()
            logger.info(
                f"Checkout of user {user.id} rejected, product {shortfall.id} has "
                f"only {shortfall.inventory_count} left"
            )
            raise InsufficientStockError(
                f"Insufficient inventory for {shortfall.name}",
                available_quantity=shortfall.inventory_count,
            )

        self.orders.commit()
        logger.info(f"Order {order.order_number} ({order.id}) created for user {user.id}, total ${order.total}")

        try:
            self._clear_ordered_cart(cart, order)
        except RedisError as e:
            logger.warning(f"Could not clear cart of user {user.id} after order {order.order_number}: {e}")

        self.notifications.order_placed(order)
        return order

    # =====================================================
    # query - klient
    # =====================================================
    def list_orders(
        self, user: UserModel, status: str | None = None, page: int = 1, limit: int = 10
    ) -> Tuple[List[OrderModel], int]:
        return self.orders.list_user_orders(user.id, status=status, page=page, limit=limit)

    def get_order(self, user: UserModel, order_id: int) -> OrderModel:
        order = self.orders.get_user_order(order_id, user.id)
        if not order:
            raise OrderNotFoundError()
        return order

    def tracking(self, reference: str, user: UserModel | None = None) -> TrackingOut:
        """Numer zamowienia (ORD-...) publicznie, id tylko dla wlasciciela."""
        if reference.upper().startswith("ORD-"):
            order = self.orders.get_by_number(reference)
        else:
            if user is None:
                raise AuthenticationError()
            try:
                order_id = int(reference)
            except ValueError:
                raise OrderNotFoundError()
            order = self.orders.get_user_order(order_id, user.id)

        if not order:
            raise OrderNotFoundError()

        return TrackingOut(
            order_number=order.order_number,
            status=order.status,
            status_display=order.status_display,
            estimated_delivery_date=order.estimated_delivery_date,
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
            status_history=[StatusHistoryOut.model_validate(h) for h in order.status_history],
            order_date=order.created_at,
            total=order.total,
            item_count=order.total_items,
        )

    # =====================================================
    # commands - status
    # =====================================================
    def cancel_order(
        self,
        actor: UserModel,
        order_id: int,
        reason: str | None = None,
        as_admin: bool = False,
    ) -> OrderModel:
        order = self.orders.get_order(order_id) if as_admin else self.orders.get_user_order(order_id, actor.id)
        if not order:
            raise OrderNotFoundError()
        return self._cancel(order, reason or DEFAULT_CANCEL_REASON, actor.id)

    def update_status(self, actor: UserModel, order_id: int, payload: UpdateOrderStatusIn) -> OrderModel:
        order = self._require_order(order_id)
        target = payload.status
        has_tracking = bool(payload.tracking_number and payload.carrier)

        # tracking na processing wysyla zamowienie, wtedy dozwolone shipped albo od razu delivered
        ships_now = (
            has_tracking
            and order.status == OrderStatus.PROCESSING.value
            and target in (OrderStatus.SHIPPED.value, OrderStatus.DELIVERED.value)
        )
        if not ships_now:
            check_transition(order.status, target)
        elif target == OrderStatus.DELIVERED.value:
            check_transition(OrderStatus.SHIPPED.value, target)

        if target == OrderStatus.CANCELLED.value:
            return self._cancel(order, payload.note or "Cancelled by admin", actor.id)

        if has_tracking:
            order.add_tracking_info(payload.tracking_number, payload.carrier, actor.id)
        if order.status != target:
            order.record_status(target, payload.note, actor.id)

        self.orders.commit()
        logger.info(f"Order {order.order_number} status -> {order.status} by user {actor.id}")
        self.notifications.status_changed(order)
        return order

    # =====================================================
    # admin
    # =====================================================
    def list_all_orders(
        self,
        status: str | None = None,
        date_from: datetime | None = None,
        date_to: datetime | None = None,
        search: str | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[OrderModel], int]:
        return self.orders.list_orders(
            status=status,
            date_from=date_from,
            date_to=date_to,
            search=search,
            page=page,
            limit=limit,
        )

    def get_order_admin(self, order_id: int) -> OrderModel:
        return self._require_order(order_id)

    def update_order_admin(self, actor: UserModel, order_id: int, payload: UpdateOrderAdminIn) -> OrderModel:
        order = self._require_order(order_id)
        changes = payload.model_dump(exclude_unset=True)

        if payload.shipping_address is not None:
            order.shipping_address = payload.shipping_address.model_dump(by_alias=True)
        if payload.billing_address is not None:
            order.billing_address = payload.billing_address.model_dump(by_alias=True)
        if payload.tracking_number is not None:
            order.tracking_number = payload.tracking_number
        if payload.carrier is not None:
            order.carrier = payload.carrier.lower()
        if "customer_notes" in changes:
            order.customer_notes = payload.customer_notes
        if "internal_notes" in changes:
            order.internal_notes = payload.internal_notes

        self.orders.commit()
        logger.info(f"Order {order.order_number} updated by admin {actor.id}: {sorted(changes)}")
        return order

    def orders_requiring_attention(self, limit: int = 20) -> List[OrderModel]:
        now = utcnow()
        return self.orders.list_requiring_attention(
            pending_before=now - timedelta(hours=24),
            confirmed_before=now - timedelta(hours=48),
            payment_pending_before=now - timedelta(hours=2),
            limit=limit,
        )

    def expire_stale_orders(self, older_than: timedelta) -> int:
        """Cancel unpaid pending orders older than ``older_than``."""
        stale = self.orders.list_stale_pending(utcnow() - older_than)
        for order in stale:
            self._cancel(order, "Payment not received in time", SYSTEM_ACTOR)
        if stale:
            logger.info(f"Expired {len(stale)} stale pending orders")
        return len(stale)

    # =====================================================
    # pomocnicze
    # =====================================================
    def _require_items(self, user_id: int) -> Cart:
        #sprawdz czy koszyk nie jest pusty
        cart = self.store.get(user_id)
        if cart is None or not cart.items:
            raise EmptyCartError()
        return cart

    def _require_order(self, order_id: int) -> OrderModel:
        order = self.orders.get_order(order_id)
        if not order:
            raise OrderNotFoundError()
        return order

    def _validate_lines(self, cart: Cart) -> List[ValidatedLine]:
        validated = []
        requested: Dict[int, int] = {}
        for line in cart.items:
            product = self.products.get_product(line.product_id)
            if not product or not product.is_active:
                raise ProductUnavailableError(str(line.product_id))

            variant = None
            if line.variant_id is not None:
                variant = product.find_variant(line.variant_id)
                if not variant or not variant.is_active:
                    label = line.variant.name if line.variant else line.variant_id
                    raise ProductUnavailableError(f"{product.name} ({label})")

            # warianty tego samego produktu biora z jednego stanu
            requested[product.id] = requested.get(product.id, 0) + line.quantity
            if not product.is_in_stock(requested[product.id]):
                raise InsufficientStockError(
                    f"Insufficient inventory for {product.name}",
                    available_quantity=product.inventory_count,
                )
            validated.append((line, product, variant))
        return validated

    @staticmethod
    def _cart_coupon(cart: Cart, subtotal: Decimal) -> Coupon | None:
        if cart.coupon is None:
            return None
        try:
            return resolve_coupon(cart.coupon.code, subtotal)
        except (InvalidCouponError, CouponMinimumNotMetError) as e:
            logger.info(f"Coupon {cart.coupon.code} no longer applies to cart of user {cart.user_id}: {e.message}")
            return None

    @staticmethod
    def _snapshot_item(line: CartLine, product: ProductModel, variant: ProductVariantModel | None) -> OrderItemModel:
        image = product.primary_image
        return OrderItemModel(
            product_id=product.id,
            product_name=product.name,
            product_slug=product.slug,
            image_url=image.url if image else "",
            image_alt=image.alt if image else product.name,
            variant_id=variant.id if variant else None,
            variant_name=variant.name if variant else None,
            variant_sku=variant.sku if variant else None,
            variant_attributes=list(variant.attributes or []) if variant else None,
            quantity=line.quantity,
            unit_price=line.unit_price,
            total_price=pricing.line_total(line.unit_price, line.quantity),
            reserved_quantity=0,
        )

    def _clear_ordered_cart(self, cart: Cart, order: OrderModel):
        """Take the ordered lines out of the stored cart.

        Guarded by the version read at checkout; when the cart changed in the
        meantime only the ordered quantities are removed and the rest is kept.
        """
        ordered = {line.id: line.quantity for line in cart.items}
        current = cart
        for _ in range(CART_CLEANUP_ATTEMPTS):
            expected_version = current.version
            carts.remove_ordered(current, ordered)
            try:
                if current.items:
                    self.store.save(current, expected_version)
                    logger.info(
                        f"Kept {len(current.items)} cart lines of user {cart.user_id} "
                        f"added during checkout of order {order.order_number}"
                    )
                else:
                    self.store.delete(cart.user_id, expected_version=expected_version)
                return
            except CartConflictError:
                current = self.store.get(cart.user_id)
                if current is None:
                    return
        logger.warning(f"Cart of user {cart.user_id} kept changing, ordered lines of {order.order_number} left in it")

    def _reserve_stock(self, order: OrderModel, validated: List[ValidatedLine]) -> ProductModel | None:
        """Reserve every line inside the open transaction.

        Returns the first product that could not be reserved, or None.
        """
        for item, (line, product, _) in zip(order.items, validated):
            if not product.reserves_stock:
                continue
            if not self.products.reserve_stock(product.id, line.quantity):
                return product
            item.reserved_quantity = line.quantity
            logger.info(f"Reserved {line.quantity} of product {product.id} for order {order.order_number}")
        return None

    def _cancel(self, order: OrderModel, reason: str, actor_id: int | None) -> OrderModel:
        if not is_cancellable(order.status):
            raise OrderNotCancellableError()

        order.cancel_reason = reason
        order.record_status(OrderStatus.CANCELLED.value, f"Order cancelled: {reason}", actor_id)
        self.orders.commit()
        logger.info(f"Order {order.order_number} cancelled by {actor_id or 'system'}: {reason}")

        self._release_stock(order)
        self.notifications.order_cancelled(order)
        return order

    def _release_stock(self, order: OrderModel):
        # best effort - status juz zapisany, bledy tylko logujemy
        for item in order.items:
            if not item.reserved_quantity:
                continue
            quantity = item.reserved_quantity
            try:
                if not self.products.release_stock(item.product_id, quantity):
                    # produkt usuniety albo bez sledzenia stanu, rezerwacja zostaje na pozycji
                    logger.warning(
                        f"Could not release {quantity} of product {item.product_id} for order "
                        f"{order.order_number}: product missing or not tracking inventory"
                    )
                    continue
                item.reserved_quantity = 0
                self.orders.commit()
                logger.info(f"Released {quantity} of product {item.product_id} from order {order.order_number}")
            except SQLAlchemyError as e:
                self.orders.rollback()
                logger.warning(
                    f"Failed to release {quantity} of product {item.product_id} "
                    f"for order {order.order_number}: {e}"
                )
