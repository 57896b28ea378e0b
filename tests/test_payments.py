"""Payment processing and refunds against the simulated gateway."""

import pytest

from tests.conftest import APPROVE, DECLINE, auth


def pay(client, user, order_id, method="credit_card", **extra):
    body = {"orderId": order_id, "paymentMethod": method}
    body.update(extra)
    return client.post("/api/payments/process", json=body, headers=auth(user))


def refund(client, user, order_id, reason="Customer request", amount=None):
    body = {"orderId": order_id, "reason": reason}
    if amount is not None:
        body["amount"] = amount
    return client.post("/api/payments/refund", json=body, headers=auth(user))


def test_payment_methods(client):
    resp = client.get("/api/payments/methods")

    methods = resp.json()["data"]["paymentMethods"]
    assert [m["id"] for m in methods] == [
        "credit_card",
        "debit_card",
        "paypal",
        "stripe",
        "apple_pay",
        "google_pay",
    ]
    assert all(m["enabled"] and m["fees"] == 0 for m in methods)


def test_successful_payment_confirms_order(client, customer, pending_order):
    resp = pay(client, customer, pending_order["id"])

    assert resp.status_code == 200
    body = resp.json()
    assert body["message"] == "Payment processed successfully"
    payment = body["data"]["payment"]
    assert payment["transactionId"].startswith("cc_")
    assert payment["status"] == "completed"
    assert payment["amount"] == 63.99
    assert payment["method"] == "credit_card"

    order = body["data"]["order"]
    assert order["status"] == "confirmed"
    assert order["paymentInfo"]["status"] == "completed"
    assert order["paymentInfo"]["paidAt"] is not None
    assert order["paymentInfo"]["last4"] == "4242"
    assert [h["status"] for h in order["statusHistory"]] == ["pending", "confirmed"]


@pytest.mark.parametrize(
    "method, prefix",
    [
        ("credit_card", "cc_"),
        ("debit_card", "cc_"),
        ("paypal", "pp_"),
        ("stripe", "ch_"),
        ("apple_pay", "ap_"),
        ("google_pay", "gp_"),
    ],
)
def test_transaction_prefix_per_method(client, customer, pending_order, method, prefix):
    payment = pay(client, customer, pending_order["id"], method=method).json()["data"]["payment"]

    assert payment["transactionId"].startswith(prefix)
    assert payment["method"] == method


def test_stripe_returns_payment_intent(client, customer, pending_order):
    payment = pay(client, customer, pending_order["id"], method="stripe").json()["data"]["payment"]

    assert payment["paymentIntentId"].startswith("pi_")


def test_card_details_recorded(client, customer, pending_order):
    card = {"number": "4111111111111111", "expiryMonth": 12, "cvv": "123", "brand": "mastercard"}

    order = pay(client, customer, pending_order["id"], cardDetails=card).json()["data"]["order"]

    assert order["paymentInfo"]["last4"] == "1111"
    assert order["paymentInfo"]["brand"] == "mastercard"


def test_invalid_card_number_rejected(client, customer, pending_order):
    resp = pay(client, customer, pending_order["id"], cardDetails={"number": "12ab"})

    assert resp.status_code == 400
    assert resp.json()["error"]["message"] == "Validation failed"


def test_declined_payment_keeps_order_pending(client, customer, gateway, pending_order):
    gateway.rng = DECLINE

    resp = pay(client, customer, pending_order["id"])

    assert resp.status_code == 400
    assert resp.json()["error"] == {"message": "Card payment declined", "code": "PAYMENT_FAILED"}
    order = client.get(f"/api/orders/{pending_order['id']}", headers=auth(customer)).json()["data"]["order"]
    assert order["status"] == "pending"
    assert order["paymentInfo"]["status"] == "failed"

    # ponowna proba po odrzuceniu
    gateway.rng = APPROVE
    assert pay(client, customer, pending_order["id"]).status_code == 200


def test_gateway_failure_is_server_error(client, customer, gateway, pending_order, monkeypatch):
    def broken(*args, **kwargs):
        raise ConnectionError("processor unreachable")

    monkeypatch.setattr(gateway, "charge", broken)

    resp = pay(client, customer, pending_order["id"])

    assert resp.status_code == 500
    assert resp.json()["error"] == {"message": "Payment processing failed", "code": "PAYMENT_ERROR"}


def test_paid_order_cannot_be_paid_again(client, customer, paid_order):
    resp = pay(client, customer, paid_order["id"])

    assert resp.status_code == 404
    assert resp.json()["error"]["message"] == "Order not found or cannot be processed"


def test_cannot_pay_someone_elses_order(client, other_customer, pending_order):
    resp = pay(client, other_customer, pending_order["id"])

    assert resp.status_code == 404


class TestRefunds:
    def test_full_refund(self, client, admin, paid_order):
        resp = refund(client, admin, paid_order["id"], reason="Damaged in transit")

        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["refund"]["transactionId"].startswith("re_")
        assert data["refund"]["amount"] == 63.99
        assert data["refund"]["reason"] == "Damaged in transit"
        assert data["order"]["status"] == "refunded"
        assert data["order"]["paymentInfo"]["status"] == "refunded"
        assert data["order"]["paymentInfo"]["refundAmount"] == 63.99
        assert data["order"]["paymentInfo"]["refundedAt"] is not None

    def test_partial_refunds_accumulate(self, client, admin, paid_order):
        resp = refund(client, admin, paid_order["id"], reason="Late delivery", amount=10)

        order = resp.json()["data"]["order"]
        assert order["status"] == "confirmed"
        assert order["paymentInfo"]["status"] == "partially_refunded"
        assert order["paymentInfo"]["refundAmount"] == 10.0
        assert order["statusHistory"][-1]["note"] == "Refund processed: $10.00. Reason: Late delivery"

        over = refund(client, admin, paid_order["id"], amount=60)
        assert over.status_code == 400
        assert over.json()["error"]["message"] == "Maximum refund amount is $53.99"

        rest = refund(client, admin, paid_order["id"]).json()["data"]
        assert rest["refund"]["amount"] == 53.99
        assert rest["order"]["status"] == "refunded"
        assert rest["order"]["paymentInfo"]["refundAmount"] == 63.99

    def test_nothing_left_after_full_refund(self, client, admin, paid_order):
        refund(client, admin, paid_order["id"])

        resp = refund(client, admin, paid_order["id"])

        assert resp.status_code == 400
        assert resp.json()["error"]["message"] == "Order payment is not completed"

    def test_unpaid_order(self, client, admin, pending_order):
        resp = refund(client, admin, pending_order["id"])

        assert resp.status_code == 400
        assert resp.json()["error"]["message"] == "Order payment is not completed"

    def test_unknown_order(self, client, admin):
        resp = refund(client, admin, 999)

        assert resp.status_code == 404

    def test_declined_refund(self, client, admin, gateway, paid_order):
        gateway.rng = DECLINE

        resp = refund(client, admin, paid_order["id"])

        assert resp.status_code == 400
        assert resp.json()["error"] == {"message": "Refund processing failed", "code": "REFUND_FAILED"}

    def test_admin_only(self, client, customer, paid_order):
        resp = refund(client, customer, paid_order["id"])

        assert resp.status_code == 403
        assert resp.json()["error"]["message"] == "Admin access required"
