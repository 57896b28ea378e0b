"""Users, categories and products through the API."""

from tests.conftest import auth


def product_body(category_id, **overrides):
    body = {
        "name": "Wireless Mouse",
        "description": "Ergonomic mouse",
        "price": 29.99,
        "images": [
            {"url": "https://img.example.com/mouse.jpg", "alt": "Mouse"},
            {"url": "https://img.example.com/mouse-2.jpg", "alt": "Mouse side", "isPrimary": True},
        ],
        "categoryId": category_id,
        "inventory": {"count": 3, "lowStockThreshold": 5},
    }
    body.update(overrides)
    return body


def test_health(client):
    assert client.get("/api/health").json() == {"success": True, "data": {"status": "ok"}}


class TestUsers:
    def test_register_and_me(self, client):
        resp = client.post("/api/users", json={"name": "Ola", "email": "Ola@Example.com"})

        assert resp.status_code == 201
        user = resp.json()["data"]["user"]
        assert user["email"] == "ola@example.com"
        assert user["role"] == "customer"

        me = client.get("/api/users/me", headers={"Authorization": f"Bearer {user['apiToken']}"})
        assert me.json()["data"]["user"] == {"id": user["id"], "name": "Ola", "email": "ola@example.com", "role": "customer"}

    def test_duplicate_email(self, client, customer):
        resp = client.post("/api/users", json={"name": "Jan", "email": "JAN@example.com"})

        assert resp.status_code == 409
        assert resp.json()["error"]["message"] == "User with this email already exists"

    def test_invalid_email(self, client):
        resp = client.post("/api/users", json={"name": "Jan", "email": "not-an-email"})

        assert resp.status_code == 400


class TestCategories:
    def test_nested_category_path(self, client, admin):
        parent = client.post("/api/categories", json={"name": "Audio Gear"}, headers=auth(admin)).json()
        child = client.post(
            "/api/categories",
            json={"name": "Headphones", "parentId": parent["data"]["category"]["id"]},
            headers=auth(admin),
        )

        assert child.status_code == 201
        category = child.json()["data"]["category"]
        assert parent["data"]["category"]["slug"] == "audio-gear"
        assert category["level"] == 1
        assert category["path"] == "Audio Gear|audio-gear"
        assert category["fullPath"] == "Audio Gear > Headphones"

    def test_depth_limit(self, client, admin):
        parent_id = None
        for level in range(6):
            body = {"name": f"Level {level}", "parentId": parent_id}
            parent_id = client.post("/api/categories", json=body, headers=auth(admin)).json()["data"]["category"]["id"]

        resp = client.post("/api/categories", json={"name": "Too deep", "parentId": parent_id}, headers=auth(admin))

        assert resp.status_code == 400

    def test_duplicate_slug(self, client, admin, category):
        resp = client.post("/api/categories", json={"name": "Electronics"}, headers=auth(admin))

        assert resp.status_code == 409

    def test_unknown_parent(self, client, admin):
        resp = client.post("/api/categories", json={"name": "Orphan", "parentId": 42}, headers=auth(admin))

        assert resp.status_code == 404

    def test_admin_only(self, client, customer):
        resp = client.post("/api/categories", json={"name": "Toys"}, headers=auth(customer))

        assert resp.status_code == 403


class TestProducts:
    def test_create_product(self, client, admin, category):
        resp = client.post("/api/products", json=product_body(category.id), headers=auth(admin))

        assert resp.status_code == 201
        product = resp.json()["data"]["product"]
        assert product["slug"] == "wireless-mouse"
        assert product["price"] == 29.99
        assert product["primaryImage"]["alt"] == "Mouse side"
        assert [i["isPrimary"] for i in product["images"]] == [False, True]
        assert product["stockStatus"] == "low_stock"

        categories = client.get("/api/categories").json()["data"]["categories"]
        assert categories[0]["productCount"] == 1

    def test_compare_at_price_must_exceed_price(self, client, admin, category):
        resp = client.post(
            "/api/products", json=product_body(category.id, compareAtPrice=19.99), headers=auth(admin)
        )

        assert resp.status_code == 400

    def test_list_and_get(self, client, admin, category, product_id):
        listed = client.get(f"/api/products?categoryId={category.id}").json()["data"]["products"]
        assert [p["id"] for p in listed] == [product_id]

        client.put(f"/api/products/{product_id}/inventory", json={"isActive": False}, headers=auth(admin))

        assert client.get(f"/api/products/{product_id}").status_code == 404
        assert client.get("/api/products").json()["data"]["products"] == []

    def test_inventory_update(self, client, admin, product_id):
        resp = client.put(
            f"/api/products/{product_id}/inventory",
            json={"count": 0, "allowBackorder": True},
            headers=auth(admin),
        )

        product = resp.json()["data"]["product"]
        assert product["inventory"]["count"] == 0
        assert product["stockStatus"] == "backorder"
        assert product["isAvailable"] is True

    def test_delete_decrements_category_count(self, client, admin, product_id):
        resp = client.delete(f"/api/products/{product_id}", headers=auth(admin))

        assert resp.json() == {"success": True, "message": "Product deleted successfully"}
        assert client.get("/api/categories").json()["data"]["categories"][0]["productCount"] == 0
