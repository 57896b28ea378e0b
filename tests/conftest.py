"""Pytest fixtures for storefront tests."""

import os

# konfiguracja przed importem storefront (settings czytane przy imporcie)
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CART_STORE_BACKEND"] = "memory"
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "true"
os.environ["PAYMENT_SIMULATOR_DELAY"] = "0"

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from storefront.data.database import Base, SessionLocal, engine
from storefront.data.models.product import ProductModel
from storefront.data.models.user import ROLE_ADMIN
from storefront.domain.schemas import CategoryIn, InventoryIn, ProductImageIn, ProductIn, VariantIn
from storefront.main import app
from storefront.repos.cart_store import MemoryCartStore, get_cart_store
from storefront.services.catalog_service import CatalogService
from storefront.services.payment_gateway import SimulatedGateway, get_payment_gateway
from storefront.services.user_service import UserService

ADDRESS = {
    "firstName": "Jan",
    "lastName": "Kowalski",
    "address1": "Main Street 1",
    "city": "Springfield",
    "state": "IL",
    "postalCode": "62701",
    "country": "United States",
}


class FixedRandom:
    """Stand-in for random.Random that always returns the same draw."""

    def __init__(self, value: float):
        self.value = value

    def random(self) -> float:
        return self.value


APPROVE = FixedRandom(0.0)
DECLINE = FixedRandom(0.999)


def auth(user) -> dict:
    return {"Authorization": f"Bearer {user.api_token}"}


@pytest.fixture(autouse=True)
def tables():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def cart_store():
    return MemoryCartStore()


@pytest.fixture
def gateway():
    return SimulatedGateway(rng=APPROVE, delay=0)


@pytest.fixture
def client(cart_store, gateway):
    app.dependency_overrides[get_cart_store] = lambda: cart_store
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def customer(db):
    return UserService(db).create_user("Jan Kowalski", "jan@example.com")


@pytest.fixture
def other_customer(db):
    return UserService(db).create_user("Anna Nowak", "anna@example.com")


@pytest.fixture
def admin(db):
    return UserService(db).create_user("Admin", "admin@example.com", role=ROLE_ADMIN)


@pytest.fixture
def category(db):
    return CatalogService(db).create_category(CategoryIn(name="Electronics"))


@pytest.fixture
def make_product(db, category):
    """Factory: create an active product and return its id."""
    counter = {"n": 0}

    def _make(price="25.00", count=10, name=None, **inventory):
        counter["n"] += 1
        name = name or f"Product {counter['n']}"
        product = CatalogService(db).create_product(
            ProductIn(
                name=name,
                description=f"{name} description",
                price=Decimal(price),
                images=[ProductImageIn(url=f"https://img.example.com/{counter['n']}.jpg", alt=name)],
                category_id=category.id,
                inventory=InventoryIn(count=count, **inventory),
            )
        )
        return product.id

    return _make


@pytest.fixture
def product_id(make_product):
    return make_product()


@pytest.fixture
def sized_product(db, category):
    """T-Shirt in sizes M and L sharing one stock of 10. Returns (product id, [variant ids])."""
    product = CatalogService(db).create_product(
        ProductIn(
            name="T-Shirt",
            description="Cotton",
            price=Decimal("20.00"),
            images=[ProductImageIn(url="https://img.example.com/shirt.jpg", alt="T-Shirt")],
            category_id=category.id,
            inventory=InventoryIn(count=10),
            variants=[VariantIn(name="M", sku="TS-M"), VariantIn(name="L", sku="TS-L")],
        )
    )
    return product.id, [v.id for v in product.variants]


def add_to_cart(client, user, product_id, quantity=1):
    resp = client.post("/api/cart/items", json={"productId": product_id, "quantity": quantity}, headers=auth(user))
    assert resp.status_code == 201, resp.json()
    return resp.json()["data"]["cart"]


def place_order(client, user, **overrides):
    body = {"shippingAddress": ADDRESS, "billingAddress": ADDRESS, "paymentMethod": "credit_card"}
    body.update(overrides)
    return client.post("/api/orders", json=body, headers=auth(user))


def stock(db, product_id) -> int:
    # rezerwacje ida przez UPDATE, sesja testu musi odczytac na nowo
    db.expire_all()
    return db.get(ProductModel, product_id).inventory_count


@pytest.fixture
def pending_order(client, customer, product_id):
    """Order for 2 x 25.00 with standard shipping: total 63.99."""
    add_to_cart(client, customer, product_id, quantity=2)
    resp = place_order(client, customer)
    assert resp.status_code == 201, resp.json()
    return resp.json()["data"]["order"]


@pytest.fixture
def paid_order(client, customer, pending_order):
    resp = client.post(
        "/api/payments/process",
        json={"orderId": pending_order["id"], "paymentMethod": "credit_card"},
        headers=auth(customer),
    )
    assert resp.status_code == 200, resp.json()
    return resp.json()["data"]["order"]
