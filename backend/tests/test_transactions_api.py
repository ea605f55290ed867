"""
HTTP tests for /api/transactions.
"""

import pytest
from sqlalchemy.exc import OperationalError

from pharmapos.models import Order, StockBatch
from pharmapos.services import concurrency, transaction_service
from pharmapos.services.sale_repository import SqlSaleRepository


def sale_body(product_id, quantity=1, unit_price=50, **extra):
    body = {
        "paymentMethod": "cash",
        "userId": "auth-cashier-1",
        "items": [{"productId": product_id, "quantity": quantity, "unitPrice": unit_price}],
    }
    body.update(extra)
    return body


class TestCreateTransaction:
    def test_creates_sale(self, client, db_session, cashier, senior_discount, paracetamol, paracetamol_batches):
        resp = client.post("/api/transactions", json=sale_body(
            paracetamol.id,
            quantity=2,
            subtotal=100,
            isSeniorPWDActive=True,
            seniorPWDID="SC-0001",
            cashReceived=100,
            change=10.4,
        ))

        assert resp.status_code == 201
        data = resp.get_json()
        assert data["success"] is True
        assert data["message"] == "Transaction created successfully"
        assert data["referenceNo"].startswith("CASH-")
        assert data["calculatedAmounts"] == {
            "subtotal": 100.0,
            "discount": 20.0,
            "vat": 9.6,
            "total": 89.6,
            "isSeniorPWDActive": True,
        }
        assert data["allocations"] == [
            {"productId": paracetamol.id, "batches": [
                {"productItemId": paracetamol_batches[0].id, "quantity": 2},
            ]},
        ]

        order = db_session.get(Order, data["transactionId"])
        assert order.payment_method == "Cash"
        assert order.senior_pwd_id == "SC-0001"

    def test_client_subtotal_is_not_trusted(self, client, db_session, cashier, paracetamol, paracetamol_batches):
        resp = client.post("/api/transactions", json=sale_body(paracetamol.id, quantity=1, subtotal=1))

        assert resp.status_code == 201
        assert resp.get_json()["calculatedAmounts"]["subtotal"] == 50.0

    def test_insufficient_stock(self, client, db_session, cashier, paracetamol, paracetamol_batches):
        resp = client.post("/api/transactions", json=sale_body(paracetamol.id, quantity=100))

        assert resp.status_code == 409
        data = resp.get_json()
        assert data["success"] is False
        assert data["message"] == "Insufficient stock. Available: 15, Requested: 100"
        assert data["details"] == {"productId": paracetamol.id, "available": 15, "requested": 100}
        assert "error" not in data

        assert db_session.query(Order).count() == 0
        assert db_session.get(StockBatch, paracetamol_batches[0].id).stock == 5

    def test_validation_error(self, client, db_session):
        resp = client.post("/api/transactions", json={"items": []})

        assert resp.status_code == 400
        assert resp.get_json() == {"success": False, "message": "items must be a non-empty list"}

    def test_unknown_payment_method(self, client, db_session, cashier, paracetamol, paracetamol_batches):
        resp = client.post("/api/transactions", json=sale_body(paracetamol.id, paymentMethod="card"))
        assert resp.status_code == 400

    def test_no_user_resolves(self, client, db_session, paracetamol):
        resp = client.post("/api/transactions", json=sale_body(paracetamol.id))
        assert resp.status_code == 422

    def test_unknown_product(self, client, db_session, cashier):
        resp = client.post("/api/transactions", json=sale_body(9999))
        assert resp.status_code == 404

    def test_duplicate_reference(self, client, db_session, cashier, paracetamol, paracetamol_batches):
        first = client.post("/api/transactions", json=sale_body(paracetamol.id, referenceNo="OR-1"))
        second = client.post("/api/transactions", json=sale_body(paracetamol.id, referenceNo="OR-1"))

        assert first.status_code == 201
        assert second.status_code == 409
        assert second.get_json()["details"] == {"referenceNo": "OR-1"}


class TestReadAndDelete:
    def test_list_get_are_idempotent(self, client, db_session, cashier, paracetamol, paracetamol_batches):
        created = client.post("/api/transactions", json=sale_body(paracetamol.id, quantity=3)).get_json()

        first = client.get("/api/transactions?page=1&limit=10").get_json()
        second = client.get("/api/transactions?page=1&limit=10").get_json()
        assert first == second
        assert first["data"][0]["TransactionID"] == created["transactionId"]
        assert first["data"][0]["ItemCount"] == 1

        detail = client.get(f"/api/transactions/{created['transactionId']}")
        assert detail.status_code == 200
        assert detail.get_json()["data"]["Transaction_Item"][0]["Quantity"] == 3
        assert db_session.get(StockBatch, paracetamol_batches[0].id).stock == 2

    def test_get_missing(self, client, db_session):
        resp = client.get("/api/transactions/12345")
        assert resp.status_code == 404
        assert resp.get_json()["message"] == "Transaction not found"

    def test_delete_keeps_stock_deducted(self, client, db_session, cashier, paracetamol, paracetamol_batches):
        created = client.post("/api/transactions", json=sale_body(paracetamol.id, quantity=4)).get_json()

        resp = client.delete(f"/api/transactions/{created['transactionId']}")

        assert resp.status_code == 200
        assert resp.get_json() == {"success": True, "message": "Transaction deleted successfully"}
        assert client.get(f"/api/transactions/{created['transactionId']}").status_code == 404
        assert db_session.get(StockBatch, paracetamol_batches[0].id).stock == 1


def _locked_error():
    return OperationalError('INSERT INTO "Transaction"', {}, Exception("database is locked"))


class TestStoreFailures:
    @pytest.fixture
    def insert_attempts(self, monkeypatch):
        """Every insert_order hits a locked database; backoff sleeps are skipped."""
        attempts = []

        class LockedRepository(SqlSaleRepository):
            def insert_order(self, header):
                attempts.append(header.reference_no)
                raise _locked_error()

        monkeypatch.setattr(transaction_service, "SqlSaleRepository", LockedRepository)
        monkeypatch.setattr(concurrency.time, "sleep", lambda _: None)
        return attempts

    def test_persistence_error_envelope(self, client, db_session, cashier, paracetamol, paracetamol_batches,
                                        insert_attempts):
        resp = client.post("/api/transactions", json=sale_body(paracetamol.id, quantity=2))

        assert resp.status_code == 500
        assert resp.get_json() == {"success": False, "message": "Failed to create transaction"}
        assert len(insert_attempts) == 3
        assert db_session.query(Order).count() == 0
        assert db_session.get(StockBatch, paracetamol_batches[0].id).stock == 5

    def test_error_detail_when_enabled(self, app, client, db_session, cashier, paracetamol, paracetamol_batches,
                                       insert_attempts, monkeypatch):
        monkeypatch.setitem(app.config, "EXPOSE_ERROR_DETAILS", True)

        resp = client.post("/api/transactions", json=sale_body(paracetamol.id))

        assert resp.status_code == 500
        data = resp.get_json()
        assert data["message"] == "Failed to create transaction"
        assert "database is locked" in data["error"]
        assert len(insert_attempts) == 3
        assert db_session.query(Order).count() == 0

    def test_domain_errors_carry_no_detail_even_when_enabled(self, app, client, db_session, cashier, paracetamol,
                                                           monkeypatch):
        monkeypatch.setitem(app.config, "EXPOSE_ERROR_DETAILS", True)

        data = client.post("/api/transactions", json=sale_body(paracetamol.id)).get_json()

        assert data["message"] == "Insufficient stock. Available: 0, Requested: 1"
        assert "error" not in data

    def test_transient_lock_is_retried(self, client, db_session, cashier, paracetamol, paracetamol_batches,
                                       monkeypatch):
        attempts = []

        class FlakyRepository(SqlSaleRepository):
            def insert_order(self, header):
                attempts.append(header.reference_no)
                if len(attempts) == 1:
                    raise _locked_error()
                return super().insert_order(header)

        monkeypatch.setattr(transaction_service, "SqlSaleRepository", FlakyRepository)
        monkeypatch.setattr(concurrency.time, "sleep", lambda _: None)

        resp = client.post("/api/transactions", json=sale_body(paracetamol.id, quantity=2, referenceNo="OR-9"))

        assert resp.status_code == 201
        assert attempts == ["OR-9", "OR-9"]
        assert db_session.query(Order).count() == 1
        assert db_session.get(StockBatch, paracetamol_batches[0].id).stock == 3

    def test_string_false_senior_flag_is_not_a_discount(self, client, db_session, cashier, senior_discount,
                                                        paracetamol, paracetamol_batches):
        resp = client.post("/api/transactions", json=sale_body(paracetamol.id, quantity=2, isSeniorPWDActive="false"))

        assert resp.status_code == 201
        amounts = resp.get_json()["calculatedAmounts"]
        assert amounts["discount"] == 0.0
        assert amounts["isSeniorPWDActive"] is False

    def test_unrecognized_senior_flag_rejected(self, client, db_session, cashier, paracetamol, paracetamol_batches):
        resp = client.post("/api/transactions", json=sale_body(paracetamol.id, isSeniorPWDActive="sometimes"))
        assert resp.status_code == 400
