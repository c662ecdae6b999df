"""
Sale ledger: recording, price snapshot, stock checks, customer validation.
"""

import pytest

from smart_inventory.extensions import db
from smart_inventory.models import SaleRecord, StockItem
from smart_inventory.services import sales_service
from smart_inventory.services.sales_service import (
    InsufficientStockError,
    InvalidQuantityError,
    ItemNotFoundError,
)
from smart_inventory.validation import ValidationError

from tests.conftest import fresh


class TestEndToEnd:

    def test_create_sell_oversell(self, client, admin_headers, employee_headers):
        resp = client.post(
            "/api/inventories",
            json={"name": "Mug", "category": "Kitchen", "price_cents": 20, "quantity": 5, "reorder_threshold": 2},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        item_id = resp.get_json()["id"]

        resp = client.post("/api/sales", json={"item_id": item_id, "quantity": 3}, headers=employee_headers)
        assert resp.status_code == 201
        sale = resp.get_json()["sale"]
        assert sale["total_cents"] == 60
        assert sale["unit_price_cents"] == 20
        assert sale["item_name"] == "Mug"

        item = client.get(f"/api/inventories/{item_id}", headers=employee_headers).get_json()
        assert item["quantity"] == 2
        assert item["low_stock"] is True

        resp = client.post("/api/sales", json={"item_id": item_id, "quantity": 5}, headers=employee_headers)
        assert resp.status_code == 409
        body = resp.get_json()
        assert body["error"] == "Insufficient stock"
        assert body["details"]["on_hand"] == 2
        assert body["details"]["requested_quantity"] == 5

        item = client.get(f"/api/inventories/{item_id}", headers=employee_headers).get_json()
        assert item["quantity"] == 2
        assert db.session.query(SaleRecord).count() == 1

    def test_itemId_alias_accepted(self, client, employee_headers, make_item):
        item_id = make_item()
        resp = client.post("/api/sales", json={"itemId": item_id, "quantity": 1}, headers=employee_headers)
        assert resp.status_code == 201

    def test_sale_records_seller(self, client, employee_user, employee_headers, make_item):
        item_id = make_item()
        resp = client.post("/api/sales", json={"item_id": item_id, "quantity": 1}, headers=employee_headers)
        assert resp.get_json()["sale"]["created_by_user_id"] == employee_user.id


class TestPriceSnapshot:

    def test_price_change_does_not_rewrite_history(self, client, manager_headers, make_item):
        item_id = make_item(price_cents=1000, quantity=10)
        resp = client.post("/api/sales", json={"item_id": item_id, "quantity": 2}, headers=manager_headers)
        sale_id = resp.get_json()["sale"]["id"]

        resp = client.put(f"/api/inventories/{item_id}", json={"price_cents": 9999}, headers=manager_headers)
        assert resp.status_code == 200

        sale = client.get(f"/api/sales/{sale_id}", headers=manager_headers).get_json()["sale"]
        assert sale["unit_price_cents"] == 1000
        assert sale["total_cents"] == 2000

        resp = client.post("/api/sales", json={"item_id": item_id, "quantity": 1}, headers=manager_headers)
        assert resp.get_json()["sale"]["unit_price_cents"] == 9999


class TestValidation:

    @pytest.mark.parametrize("quantity", [0, -1, 1.5, "2", True, None, 10**20, 2**63])
    def test_bad_quantity(self, client, employee_headers, make_item, quantity):
        item_id = make_item(quantity=5)
        resp = client.post("/api/sales", json={"item_id": item_id, "quantity": quantity}, headers=employee_headers)
        assert resp.status_code == 400
        assert fresh(StockItem, item_id).quantity == 5

    def test_missing_item_id(self, client, employee_headers):
        resp = client.post("/api/sales", json={"quantity": 1}, headers=employee_headers)
        assert resp.status_code == 400

    def test_unknown_item(self, client, employee_headers):
        resp = client.post("/api/sales", json={"item_id": 4242, "quantity": 1}, headers=employee_headers)
        assert resp.status_code == 404

    @pytest.mark.parametrize("item_id", [10**20, -(10**20), "100000000000000000000"])
    def test_item_id_out_of_range(self, client, employee_headers, item_id):
        resp = client.post("/api/sales", json={"item_id": item_id, "quantity": 1}, headers=employee_headers)
        assert resp.status_code == 400

    def test_total_too_large_to_store(self, client, employee_headers, make_item):
        item_id = make_item(price_cents=100, quantity=2**62)
        resp = client.post("/api/sales", json={"item_id": item_id, "quantity": 2**62}, headers=employee_headers)
        assert resp.status_code == 400
        assert fresh(StockItem, item_id).quantity == 2**62
        assert db.session.query(SaleRecord).count() == 0

    def test_client_cannot_supply_total(self, client, employee_headers, make_item):
        item_id = make_item()
        resp = client.post(
            "/api/sales",
            json={"item_id": item_id, "quantity": 1, "total": 1},
            headers=employee_headers,
        )
        assert resp.status_code == 400

    def test_valid_customer(self, client, employee_headers, make_item):
        item_id = make_item()
        resp = client.post(
            "/api/sales",
            json={
                "item_id": item_id,
                "quantity": 1,
                "customer": {"name": " Jane Doe ", "email": "jane@example.com", "phone": "5551234567"},
            },
            headers=employee_headers,
        )
        assert resp.status_code == 201
        assert resp.get_json()["sale"]["customer"] == {
            "name": "Jane Doe",
            "email": "jane@example.com",
            "phone": "5551234567",
        }

    def test_partial_customer(self, client, employee_headers, make_item):
        item_id = make_item()
        resp = client.post(
            "/api/sales",
            json={"item_id": item_id, "quantity": 1, "customer": {"phone": "5551234567"}},
            headers=employee_headers,
        )
        assert resp.status_code == 201
        assert resp.get_json()["sale"]["customer"]["email"] is None

    @pytest.mark.parametrize("customer", [
        {"email": "not-an-email"},
        {"phone": "12345"},
        {"phone": "555-123-4567"},
        {"name": 42},
        "Jane",
    ])
    def test_malformed_customer_rejects_whole_sale(self, client, employee_headers, make_item, customer):
        item_id = make_item(quantity=5)
        resp = client.post(
            "/api/sales",
            json={"item_id": item_id, "quantity": 1, "customer": customer},
            headers=employee_headers,
        )
        assert resp.status_code == 400
        assert fresh(StockItem, item_id).quantity == 5
        assert db.session.query(SaleRecord).count() == 0


class TestService:

    def test_total_invariant(self, app, make_item):
        item_id = make_item(price_cents=333, quantity=100)
        for qty in (1, 3, 7, 11):
            sales_service.record_sale(item_id, qty)
        for sale in db.session.query(SaleRecord).all():
            assert sale.total_cents == sale.quantity * sale.unit_price_cents

    def test_total_follows_quantity_and_price(self):
        sale = SaleRecord(quantity=2, unit_price_cents=150)
        assert sale.total_cents == 300
        sale.quantity = 3
        assert sale.total_cents == 450
        sale.unit_price_cents = 100
        assert sale.total_cents == 300

    def test_errors(self, app, make_item):
        item_id = make_item(quantity=1)
        with pytest.raises(InvalidQuantityError):
            sales_service.record_sale(item_id, 0)
        with pytest.raises(ItemNotFoundError):
            sales_service.record_sale(999, 1)
        with pytest.raises(InsufficientStockError):
            sales_service.record_sale(item_id, 2)
        with pytest.raises(ValidationError):
            sales_service.record_sale(item_id, 1, customer={"phone": "abc"})
        assert fresh(StockItem, item_id).quantity == 1

    def test_exact_stock_can_be_sold(self, app, make_item):
        item_id = make_item(quantity=4)
        sales_service.record_sale(item_id, 4)
        assert fresh(StockItem, item_id).quantity == 0

    def test_failed_insert_rolls_back_decrement(self, app, make_item, monkeypatch):
        item_id = make_item(quantity=5)

        def boom():
            raise RuntimeError("disk on fire")

        monkeypatch.setattr(sales_service, "utcnow", boom)
        with pytest.raises(RuntimeError):
            sales_service.record_sale(item_id, 2)

        assert fresh(StockItem, item_id).quantity == 5
        assert db.session.query(SaleRecord).count() == 0


class TestListing:

    def test_newest_first_with_item_names(self, client, employee_headers, make_item):
        a = make_item(name="Apple", quantity=10)
        b = make_item(name="Banana", quantity=10)
        client.post("/api/sales", json={"item_id": a, "quantity": 1}, headers=employee_headers)
        client.post("/api/sales", json={"item_id": b, "quantity": 1}, headers=employee_headers)

        data = client.get("/api/sales", headers=employee_headers).get_json()
        assert data["count"] == 2
        assert [s["item_name"] for s in data["sales"]] == ["Banana", "Apple"]

    def test_pagination(self, client, employee_headers, make_item):
        item_id = make_item(quantity=10)
        for _ in range(3):
            client.post("/api/sales", json={"item_id": item_id, "quantity": 1}, headers=employee_headers)

        data = client.get("/api/sales?page=2&per_page=2", headers=employee_headers).get_json()
        assert data["count"] == 1
        assert data["pagination"]["total"] == 3
        assert data["pagination"]["has_prev"] is True
        assert data["pagination"]["has_next"] is False

    @pytest.mark.parametrize("per_page", [-1, -50, 0])
    def test_per_page_never_below_one(self, client, employee_headers, make_item, per_page):
        item_id = make_item(quantity=10)
        for _ in range(3):
            client.post("/api/sales", json={"item_id": item_id, "quantity": 1}, headers=employee_headers)

        data = client.get(f"/api/sales?page=1&per_page={per_page}", headers=employee_headers).get_json()
        pagination = data["pagination"]
        assert pagination["per_page"] >= 1
        assert pagination["total_pages"] >= 1
        assert data["count"] == min(3, pagination["per_page"])

    def test_page_past_the_end_is_empty(self, client, employee_headers, make_item):
        item_id = make_item(quantity=10)
        client.post("/api/sales", json={"item_id": item_id, "quantity": 1}, headers=employee_headers)

        data = client.get(f"/api/sales?page={10**20}&per_page=10", headers=employee_headers).get_json()
        assert data["sales"] == []
        assert data["pagination"]["has_next"] is False

    def test_get_missing_sale(self, client, employee_headers):
        assert client.get("/api/sales/999", headers=employee_headers).status_code == 404
