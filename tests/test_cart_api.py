"""Cart endpoints through the FastAPI test client."""

from decimal import Decimal

import pytest

from storefront.domain.schemas import InventoryIn, ProductImageIn, ProductIn, VariantIn
from storefront.errors import CartConflictError
from storefront.services.catalog_service import CatalogService
from tests.conftest import auth


def add(client, user, product_id, quantity=1, variant_id=None):
    body = {"productId": product_id, "quantity": quantity}
    if variant_id is not None:
        body["variantId"] = variant_id
    return client.post("/api/cart/items", json=body, headers=auth(user))


def test_requires_authentication(client):
    resp = client.get("/api/cart")

    assert resp.status_code == 401
    assert resp.json() == {"success": False, "error": {"message": "Authentication required"}}


def test_unknown_token_rejected(client):
    resp = client.get("/api/cart", headers={"Authorization": "Bearer nope"})

    assert resp.status_code == 401


def test_empty_cart(client, customer):
    resp = client.get("/api/cart", headers=auth(customer))

    assert resp.status_code == 200
    cart = resp.json()["data"]["cart"]
    assert cart["items"] == []
    assert cart["totals"]["total"] == 0


def test_add_item_prices_cart(client, customer, product_id):
    resp = add(client, customer, product_id, quantity=2)

    assert resp.status_code == 201
    body = resp.json()
    assert body["success"] is True
    assert body["message"] == "Item added to cart successfully"

    cart = body["data"]["cart"]
    assert cart["itemCount"] == 2
    line = cart["items"][0]
    assert line["id"] == f"{product_id}_default"
    assert line["unitPrice"] == 25.0
    assert line["totalPrice"] == 50.0
    assert line["product"]["stockStatus"] == "in_stock"
    assert cart["totals"] == {"subtotal": 50.0, "discount": 0.0, "tax": 4.0, "shipping": 9.99, "total": 63.99}


def test_adding_same_product_merges_lines(client, customer, product_id):
    add(client, customer, product_id, quantity=1)
    cart = add(client, customer, product_id, quantity=2).json()["data"]["cart"]

    assert len(cart["items"]) == 1
    assert cart["items"][0]["quantity"] == 3
    assert cart["totals"]["shipping"] == 0


def test_merge_beyond_stock_reports_quantities(client, customer, product_id):
    add(client, customer, product_id, quantity=2)

    resp = add(client, customer, product_id, quantity=9)

    assert resp.status_code == 400
    assert resp.json()["error"] == {
        "message": "Insufficient inventory for requested quantity",
        "availableQuantity": 10,
        "currentCartQuantity": 2,
    }


def test_new_line_beyond_stock(client, customer, make_product):
    pid = make_product(count=1)

    resp = add(client, customer, pid, quantity=2)

    assert resp.status_code == 400
    assert resp.json()["error"] == {"message": "Insufficient inventory", "availableQuantity": 1}


def test_unknown_product(client, customer):
    resp = add(client, customer, 999)

    assert resp.status_code == 404
    assert resp.json()["error"]["message"] == "Product not found or unavailable"


@pytest.mark.parametrize("quantity", [0, 100])
def test_quantity_bounds_validated(client, customer, product_id, quantity):
    resp = add(client, customer, product_id, quantity=quantity)

    assert resp.status_code == 400
    error = resp.json()["error"]
    assert error["message"] == "Validation failed"
    assert error["details"][0]["field"] == "quantity"


def test_variant_price_overrides_product_price(client, customer, db, category):
    product = CatalogService(db).create_product(
        ProductIn(
            name="T-Shirt",
            description="Cotton",
            price=Decimal("20.00"),
            images=[ProductImageIn(url="https://img.example.com/t.jpg", alt="T-Shirt")],
            category_id=category.id,
            inventory=InventoryIn(count=5),
            variants=[VariantIn(name="XL", sku="TS-XL", price=Decimal("22.00"), inventory=5,
                                attributes=[{"name": "size", "value": "XL"}])],
        )
    )
    variant_id = product.variants[0].id

    cart = add(client, customer, product.id, variant_id=variant_id).json()["data"]["cart"]

    line = cart["items"][0]
    assert line["id"] == f"{product.id}_{variant_id}"
    assert line["unitPrice"] == 22.0
    assert line["variant"]["sku"] == "TS-XL"
    assert line["variant"]["attributes"] == [{"name": "size", "value": "XL"}]


def test_unknown_variant(client, customer, product_id):
    resp = add(client, customer, product_id, variant_id=12345)

    assert resp.status_code == 404
    assert resp.json()["error"]["message"] == "Product variant not found or unavailable"


def test_update_item_reprices(client, customer, product_id):
    add(client, customer, product_id, quantity=1)

    resp = client.put(f"/api/cart/items/{product_id}_default", json={"quantity": 3}, headers=auth(customer))

    assert resp.status_code == 200
    totals = resp.json()["data"]["cart"]["totals"]
    assert totals == {"subtotal": 75.0, "discount": 0.0, "tax": 6.0, "shipping": 0.0, "total": 81.0}


def test_update_missing_item(client, customer, product_id):
    add(client, customer, product_id)

    resp = client.put("/api/cart/items/999_default", json={"quantity": 1}, headers=auth(customer))

    assert resp.status_code == 404
    assert resp.json()["error"]["message"] == "Cart item not found"


def test_update_without_cart(client, customer):
    resp = client.put("/api/cart/items/1_default", json={"quantity": 1}, headers=auth(customer))

    assert resp.status_code == 404
    assert resp.json()["error"]["message"] == "Cart not found"


def test_remove_last_item_zeroes_totals(client, customer, product_id):
    add(client, customer, product_id)

    resp = client.delete(f"/api/cart/items/{product_id}_default", headers=auth(customer))

    cart = resp.json()["data"]["cart"]
    assert cart["items"] == []
    assert cart["totals"]["total"] == 0


def test_clear_cart(client, customer, product_id):
    add(client, customer, product_id)

    client.delete("/api/cart", headers=auth(customer))

    assert client.get("/api/cart", headers=auth(customer)).json()["data"]["cart"]["items"] == []


def test_carts_are_per_user(client, customer, other_customer, product_id):
    add(client, customer, product_id, quantity=2)

    cart = client.get("/api/cart", headers=auth(other_customer)).json()["data"]["cart"]

    assert cart["items"] == []


class TestSharedVariantStock:
    def test_variants_draw_from_product_stock(self, client, customer, sized_product):
        pid, (medium, large) = sized_product
        add(client, customer, pid, quantity=8, variant_id=medium)

        resp = add(client, customer, pid, quantity=8, variant_id=large)

        assert resp.status_code == 400
        assert resp.json()["error"] == {
            "message": "Insufficient inventory for requested quantity",
            "availableQuantity": 10,
            "currentCartQuantity": 8,
        }

    def test_variants_within_stock(self, client, customer, sized_product):
        pid, (medium, large) = sized_product
        add(client, customer, pid, quantity=6, variant_id=medium)

        resp = add(client, customer, pid, quantity=4, variant_id=large)

        assert resp.status_code == 201
        assert resp.json()["data"]["cart"]["itemCount"] == 10

    def test_update_counts_other_variants(self, client, customer, sized_product):
        pid, (medium, large) = sized_product
        add(client, customer, pid, quantity=6, variant_id=medium)
        add(client, customer, pid, quantity=2, variant_id=large)

        resp = client.put(f"/api/cart/items/{pid}_{large}", json={"quantity": 5}, headers=auth(customer))

        assert resp.status_code == 400
        assert resp.json()["error"] == {"message": "Insufficient inventory", "availableQuantity": 10}
        assert client.put(
            f"/api/cart/items/{pid}_{large}", json={"quantity": 4}, headers=auth(customer)
        ).status_code == 200


class TestCoupons:
    def test_apply_save10(self, client, customer, make_product):
        pid = make_product(price="15.00")
        add(client, customer, pid, quantity=2)

        resp = client.post("/api/cart/coupon", json={"couponCode": "save10"}, headers=auth(customer))

        assert resp.status_code == 200
        cart = resp.json()["data"]["cart"]
        assert cart["coupon"]["code"] == "SAVE10"
        assert cart["totals"]["discount"] == 3.0
        assert cart["totals"]["total"] == 39.15

    def test_minimum_not_met(self, client, customer, make_product):
        pid = make_product(price="10.00")
        add(client, customer, pid, quantity=2)

        resp = client.post("/api/cart/coupon", json={"couponCode": "SAVE10"}, headers=auth(customer))

        assert resp.status_code == 400
        assert resp.json()["error"]["message"] == "Minimum order amount of $25 required for this coupon"

    def test_invalid_code(self, client, customer, product_id):
        add(client, customer, product_id)

        resp = client.post("/api/cart/coupon", json={"couponCode": "BOGUS"}, headers=auth(customer))

        assert resp.status_code == 400
        assert resp.json()["error"]["message"] == "Invalid coupon code"

    def test_empty_cart(self, client, customer):
        resp = client.post("/api/cart/coupon", json={"couponCode": "SAVE10"}, headers=auth(customer))

        assert resp.status_code == 400
        assert resp.json()["error"]["message"] == "Cart is empty"

    def test_new_coupon_replaces_old(self, client, customer, make_product):
        pid = make_product(price="30.00")
        add(client, customer, pid, quantity=2)
        client.post("/api/cart/coupon", json={"couponCode": "SAVE10"}, headers=auth(customer))

        cart = client.post(
            "/api/cart/coupon", json={"couponCode": "SAVE20"}, headers=auth(customer)
        ).json()["data"]["cart"]

        assert cart["coupon"]["code"] == "SAVE20"
        assert cart["totals"]["discount"] == 12.0

    def test_coupon_dropped_when_subtotal_falls(self, client, customer, make_product):
        pid = make_product(price="15.00")
        add(client, customer, pid, quantity=2)
        client.post("/api/cart/coupon", json={"couponCode": "SAVE10"}, headers=auth(customer))

        resp = client.put(f"/api/cart/items/{pid}_default", json={"quantity": 1}, headers=auth(customer))

        cart = resp.json()["data"]["cart"]
        assert cart["coupon"] is None
        assert cart["totals"]["discount"] == 0

    def test_remove_coupon(self, client, customer, make_product):
        pid = make_product(price="15.00")
        add(client, customer, pid, quantity=2)
        client.post("/api/cart/coupon", json={"couponCode": "FREESHIP"}, headers=auth(customer))

        cart = client.delete("/api/cart/coupon", headers=auth(customer)).json()["data"]["cart"]

        assert cart["coupon"] is None
        assert cart["totals"]["shipping"] == 9.99


def test_inactive_products_dropped_on_read(client, customer, admin, product_id, make_product):
    keep = make_product()
    add(client, customer, product_id)
    add(client, customer, keep)

    client.put(f"/api/products/{product_id}/inventory", json={"isActive": False}, headers=auth(admin))
    cart = client.get("/api/cart", headers=auth(customer)).json()["data"]["cart"]

    assert [line["productId"] for line in cart["items"]] == [keep]
    assert cart["totals"]["subtotal"] == 25.0


def test_concurrent_write_conflict(client, customer, product_id, cart_store):
    add(client, customer, product_id)
    stale = cart_store.get(customer.id)
    add(client, customer, product_id)

    with pytest.raises(CartConflictError):
        cart_store.save(stale, expected_version=stale.version)
