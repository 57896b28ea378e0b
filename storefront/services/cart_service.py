from decimal import Decimal
from typing import Dict

from sqlalchemy.orm import Session

from storefront.data.models.product import ProductModel
from storefront.domain import cart as carts
from storefront.domain import pricing
from storefront.domain.coupons import resolve_coupon
from storefront.domain.schemas import AppliedCoupon, Cart, CartLine, CartProductOut, ImageOut, VariantSnapshot
from storefront.errors import (
    CartNotFoundError,
    EmptyCartError,
    InsufficientStockError,
    NotFoundError,
    ProductNotFoundError,
)
from storefront.repos.cart_store import CartStore
from storefront.repos.product_repo import ProductRepo
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class CartService:
    """
    Use case'y koszyka
    commands (add, update, remove, clear, coupon) modyfikuja stan w cart store
    query (get) tylko odczyt + dolaczenie aktualnych danych produktu
    kazdy zapis to compare-and-set na wersji koszyka
    """

    def __init__(self, db: Session, store: CartStore):
        self.products = ProductRepo(db)
        self.store = store

    #query - odczyt
    def get_cart(self, user_id: int) -> Cart:
        cart = self.store.get(user_id)
        if cart is None:
            return carts.empty_cart(user_id)

        expected_version = cart.version
        products = self._load_products(cart)

        #usun pozycje ktorych produkt zniknal albo jest nieaktywny
        live = [line for line in cart.items if self._is_live(products.get(line.product_id))]
        if len(live) != len(cart.items):
            live_ids = {line.id for line in live}
            dropped = [line.id for line in cart.items if line.id not in live_ids]
            logger.info(f"Dropping unavailable items {dropped} from cart of user {user_id}")
            cart.items = live
            carts.reprice(cart)
            cart = self.store.save(cart, expected_version)

        return attach_products(cart, products)

    #commands
    def add_item(self, user_id: int, product_id: int, variant_id: int | None = None, quantity: int = 1) -> Cart:
        product = self.products.get_product(product_id)
        if not self._is_live(product):
            raise ProductNotFoundError()

        if not product.is_in_stock(quantity):
            raise InsufficientStockError("Insufficient inventory", available_quantity=product.inventory_count)

        variant = None
        unit_price = Decimal(product.price)
        if variant_id is not None:
            variant = product.find_variant(variant_id)
            if not variant or not variant.is_active:
                raise NotFoundError("Product variant not found or unavailable")
            if variant.price is not None:
                unit_price = Decimal(variant.price)

        cart = self.store.get(user_id) or carts.empty_cart(user_id)
        expected_version = cart.version
        item_id = carts.line_id(product_id, variant_id)

        # stan liczony dla produktu, wszystkie warianty razem
        in_cart = carts.product_quantity(cart, product_id)
        if not product.is_in_stock(in_cart + quantity):
            raise InsufficientStockError(
                "Insufficient inventory for requested quantity",
                available_quantity=product.inventory_count,
                current_cart_quantity=in_cart,
            )

        existing = carts.find_line(cart, item_id)
        if existing:
            new_quantity = existing.quantity + quantity
            logger.info(
                f"Item {item_id} already in cart of user {user_id}, "
                f"quantity {existing.quantity} -> {new_quantity}"
            )
            carts.set_quantity(existing, new_quantity)
        else:
            logger.info(f"Adding item {item_id} x{quantity} to cart of user {user_id}")
            cart.items.append(
                CartLine(
                    id=item_id,
                    product_id=product_id,
                    variant_id=variant_id,
                    variant=VariantSnapshot(
                        id=variant.id,
                        name=variant.name,
                        sku=variant.sku,
                        attributes=variant.attributes or [],
                    )
                    if variant
                    else None,
                    quantity=quantity,
                    unit_price=pricing.round_money(unit_price),
                    total_price=pricing.line_total(unit_price, quantity),
                )
            )

        return self._save(cart, expected_version)

    def update_item(self, user_id: int, item_id: str, quantity: int) -> Cart:
        cart = self._require_cart(user_id)
        expected_version = cart.version
        line = carts.get_line(cart, item_id)

        product = self.products.get_product(line.product_id)
        if not self._is_live(product):
            raise ProductNotFoundError("Product no longer available")
        if not product.is_in_stock(quantity + carts.product_quantity(cart, line.product_id, exclude=item_id)):
            raise InsufficientStockError("Insufficient inventory", available_quantity=product.inventory_count)

        logger.info(f"Updating item {item_id} in cart of user {user_id} to quantity {quantity}")
        carts.set_quantity(line, quantity)
        return self._save(cart, expected_version)

    def remove_item(self, user_id: int, item_id: str) -> Cart:
        cart = self._require_cart(user_id)
        expected_version = cart.version
        line = carts.get_line(cart, item_id)

        logger.info(f"Removing item {item_id} from cart of user {user_id}")
        cart.items.remove(line)
        return self._save(cart, expected_version)

    def clear_cart(self, user_id: int) -> Cart:
        self.store.delete(user_id)
        logger.info(f"Cleared cart of user {user_id}")
        return carts.empty_cart(user_id)

    def apply_coupon(self, user_id: int, code: str) -> Cart:
        cart = self.store.get(user_id)
        if cart is None or not cart.items:
            raise EmptyCartError()
        expected_version = cart.version

        coupon = resolve_coupon(code, cart.totals.subtotal)
        # jeden kupon naraz, nowy zastepuje poprzedni
        cart.coupon = AppliedCoupon(code=coupon.code, type=coupon.type, value=coupon.value, discount=Decimal("0.00"))
        logger.info(f"Applied coupon {coupon.code} to cart of user {user_id}")
        return self._save(cart, expected_version)

    def remove_coupon(self, user_id: int) -> Cart:
        cart = self._require_cart(user_id)
        expected_version = cart.version
        cart.coupon = None
        logger.info(f"Removed coupon from cart of user {user_id}")
        return self._save(cart, expected_version)

    # =====================================================
    # pomocnicze
    # =====================================================
    @staticmethod
    def _is_live(product: ProductModel | None) -> bool:
        return product is not None and product.is_active

    def _require_cart(self, user_id: int) -> Cart:
        cart = self.store.get(user_id)
        if cart is None:
            raise CartNotFoundError()
        return cart

    def _save(self, cart: Cart, expected_version: int) -> Cart:
        carts.reprice(cart)
        saved = self.store.save(cart, expected_version)
        return attach_products(saved, self._load_products(saved))

    def _load_products(self, cart: Cart) -> Dict[int, ProductModel]:
        products = {}
        for line in cart.items:
            if line.product_id not in products:
                products[line.product_id] = self.products.get_product(line.product_id)
        return products


def attach_products(cart: Cart, products: Dict[int, ProductModel | None]) -> Cart:
    #aktualne dane produktu do kazdej pozycji
    for line in cart.items:
        product = products.get(line.product_id)
        if product is None:
            continue
        image = product.primary_image
        line.product = CartProductOut(
            id=product.id,
            name=product.name,
            slug=product.slug,
            price=product.price,
            primary_image=ImageOut.model_validate(image) if image else None,
            is_available=product.is_available,
            stock_status=product.stock_status,
        )
    return cart
