"""
HTTP-level tests for the ledger API.
"""
from decimal import Decimal

from conftest import make_token


def record(client, headers, order_id, amount, method="Cash"):
    return client.post(
        "/api/payments",
        json={"order_id": order_id, "amount": amount, "payment_method": method},
        headers=headers,
    )


class TestAuth:

    def test_missing_token(self, client, make_order) -> None:
        response = client.get(f"/api/orders/{make_order()}/summary")
        assert response.status_code == 401

    def test_invalid_token(self, client, make_order) -> None:
        headers = {"Authorization": f"Bearer {make_token(secret='wrong-secret')}"}
        response = client.get(f"/api/orders/{make_order()}/summary", headers=headers)
        assert response.status_code == 403

    def test_actor_comes_from_token(self, client, make_order) -> None:
        headers = {"Authorization": f"Bearer {make_token('cashier-7')}"}
        response = record(client, headers, make_order(), 100)
        assert response.status_code == 201
        assert response.json()["created_by"] == "cashier-7"


class TestPaymentEndpoints:

    def test_create_payment(self, client, auth_headers, make_order) -> None:
        order_id = make_order(total="1000.00")

        response = record(client, auth_headers, order_id, 400, method="UPI")

        assert response.status_code == 201
        body = response.json()
        assert body["order_id"] == order_id
        assert Decimal(body["amount_paid"]) == Decimal("400")
        assert body["payment_method"] == "UPI"
        assert body["status"] == "Partial"
        assert Decimal(body["order_balance_amount"]) == Decimal("600")

    def test_invalid_amount(self, client, auth_headers, make_order) -> None:
        response = record(client, auth_headers, make_order(), 0)

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "ValidationError"
        assert body["code"] == "INVALID_AMOUNT"
        assert body["retryable"] is False
        assert "greater than zero" in body["detail"]

    def test_unknown_order(self, client, auth_headers) -> None:
        response = record(client, auth_headers, 9999, 10)

        assert response.status_code == 404
        body = response.json()
        assert body["error"] == "NotFoundError"
        assert body["code"] == "UNKNOWN_ORDER"

    def test_overpayment(self, client, auth_headers, make_order) -> None:
        response = record(client, auth_headers, make_order(total="100.00"), 150)

        assert response.status_code == 422
        assert response.json()["code"] == "OVERPAYMENT_REJECTED"

    def test_malformed_body(self, client, auth_headers) -> None:
        response = client.post("/api/payments", json={"amount": 10}, headers=auth_headers)
        assert response.status_code == 422

    def test_update_and_history(self, client, auth_headers, make_order) -> None:
        order_id = make_order(total="1000.00")
        payment_id = record(client, auth_headers, order_id, 500).json()["id"]

        response = client.patch(f"/api/payments/{payment_id}", json={"amount": 300}, headers=auth_headers)

        assert response.status_code == 200
        assert Decimal(response.json()["order_amount_received"]) == Decimal("300")

        history = client.get(f"/api/payments/{payment_id}/history", headers=auth_headers)
        assert history.status_code == 200
        entries = history.json()
        assert [e["action"] for e in entries] == ["UPDATE", "CREATE"]
        change = entries[0]["changes"]["amount_paid"]
        assert Decimal(change["old"]) == Decimal("500")
        assert Decimal(change["new"]) == Decimal("300")
        assert set(entries[0]["changes"]) == {"amount_paid"}

    def test_update_without_fields(self, client, auth_headers, make_order) -> None:
        payment_id = record(client, auth_headers, make_order(), 10).json()["id"]

        response = client.patch(f"/api/payments/{payment_id}", json={}, headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["code"] == "NO_FIELDS"

    def test_delete_payment(self, client, auth_headers, make_order) -> None:
        order_id = make_order(total="1000.00")
        payment_id = record(client, auth_headers, order_id, 250).json()["id"]

        response = client.delete(f"/api/payments/{payment_id}", headers=auth_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["deleted"] is True
        assert body["payment_id"] == payment_id
        assert Decimal(body["order_balance_amount"]) == Decimal("1000")

        assert client.get(f"/api/payments/{payment_id}", headers=auth_headers).status_code == 404
        archived = client.get(f"/api/payments/{payment_id}?include_deleted=true", headers=auth_headers)
        assert archived.status_code == 200
        assert archived.json()["is_deleted"] is True


class TestOrderEndpoints:

    def test_summary_and_payments(self, client, auth_headers, make_order) -> None:
        order_id = make_order(total="1000.00")
        record(client, auth_headers, order_id, 300)
        record(client, auth_headers, order_id, 200)

        summary = client.get(f"/api/orders/{order_id}/summary", headers=auth_headers).json()
        assert Decimal(summary["amount_received"]) == Decimal("500")
        assert Decimal(summary["balance_amount"]) == Decimal("500")
        assert summary["status"] == "Partial"
        assert summary["overpaid"] is False

        payments = client.get(f"/api/orders/{order_id}/payments", headers=auth_headers).json()
        assert len(payments) == 2

    def test_reconcile(self, client, auth_headers, make_order) -> None:
        order_id = make_order(total="1000.00")
        record(client, auth_headers, order_id, 300)

        check = client.get(f"/api/orders/{order_id}/reconcile", headers=auth_headers)
        assert check.status_code == 200
        assert check.json()["consistent"] is True

        repair = client.post(f"/api/orders/{order_id}/reconcile", headers=auth_headers)
        assert repair.status_code == 200
        assert repair.json()["repaired"] is False

    def test_bulk_status_partial_failure(self, client, auth_headers, make_order) -> None:
        first = make_order()
        last = make_order()

        response = client.post(
            "/api/orders/bulk/status",
            json={"order_ids": [first, 9999, last], "new_status": "Delivered"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["succeeded"] == [first, last]
        assert body["failed"] == [
            {
                "id": 9999,
                "error": "NotFoundError",
                "code": "UNKNOWN_ORDER",
                "detail": "Order with ID 9999 not found",
            }
        ]

    def test_bulk_status_rejects_unknown_status(self, client, auth_headers, make_order) -> None:
        response = client.post(
            "/api/orders/bulk/status",
            json={"order_ids": [make_order()], "new_status": "Shipped"},
            headers=auth_headers,
        )
        assert response.status_code == 422

    def test_bulk_delete(self, client, auth_headers, make_order) -> None:
        order_id = make_order()

        response = client.post("/api/orders/bulk/delete", json={"order_ids": [order_id]}, headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["succeeded"] == [order_id]
        summary = client.get(f"/api/orders/{order_id}/summary", headers=auth_headers)
        assert summary.status_code == 404


class TestMetricsEndpoints:

    def test_metrics(self, client, auth_headers, make_order) -> None:
        order_id = make_order(total="1000.00")
        record(client, auth_headers, order_id, 400, method="Card")

        response = client.get("/api/metrics?period_days=30", headers=auth_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["total_orders"] == 1
        assert body["payment_methods"] == {"Card": 1}
        assert body["orders_by_status"]["partial"] == 1

    def test_invalid_period(self, client, auth_headers) -> None:
        response = client.get("/api/metrics?period_days=0", headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_PERIOD"

    def test_dues(self, client, auth_headers, make_order) -> None:
        make_order(total="700.00", customer_name="Meena Studio")

        response = client.get("/api/metrics/dues", headers=auth_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["customers"][0]["customer_name"] == "Meena Studio"
        assert Decimal(body["total_due_overall"]) == Decimal("700")


class TestApp:

    def test_health(self, client) -> None:
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["database"] is True

    def test_unknown_route(self, client) -> None:
        response = client.get("/api/nowhere")
        assert response.status_code == 404
        assert response.json() == {"error": "Route not found"}
