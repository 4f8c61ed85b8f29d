"""
HTTP API tests: status codes and payload shapes per blueprint.
"""

import pytest

from tillpoint.services.record_store import RecordStoreError, get_record_store

from helpers import current_stock


def _submit(client, lines, **extra):
    return client.post("/api/orders", json={"lines": lines, **extra})


@pytest.fixture
def stocked(make_product):
    make_product("COF", price="18.50", stock=10, purchase_price="9.75", barcode="4006381333931")
    make_product("TEA", price="4.20", stock=3, purchase_price="1.90")


class TestSystem:
    def test_health(self, client, db_session):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["status"] == "healthy"
        assert body["database"]["details"] == {"products": 0, "orders": 0, "returns": 0}


class TestProductsApi:
    def test_create_and_fetch(self, client, db_session):
        resp = client.post("/api/products", json={
            "product_id": "SKU-1", "product_name": "Mug", "list_price": 7, "is_sellable": True,
        })
        assert resp.status_code == 201
        assert resp.get_json()["product"]["list_price"] == 7.0

        assert client.get("/api/products/SKU-1").status_code == 200
        assert client.get("/api/products/SKU-2").status_code == 404

    def test_duplicate_is_conflict(self, client, stocked):
        resp = client.post("/api/products", json={"product_id": "COF", "product_name": "x", "list_price": 1})
        assert resp.status_code == 409

    def test_invalid_barcode(self, client, db_session):
        resp = client.post("/api/products", json={
            "product_id": "X", "product_name": "x", "list_price": 1, "barcode": "12345",
        })
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Barcode must be between 8 and 14 digits"

    def test_patch_rejects_key_change(self, client, stocked):
        resp = client.patch("/api/products/COF", json={"product_id": "NEW"})
        assert resp.status_code == 400

    def test_barcode_lookup(self, client, stocked):
        assert client.get("/api/products/by-barcode/4006381333931").get_json()["product"]["product_id"] == "COF"
        assert client.get("/api/products/by-barcode/4006381333932").status_code == 400
        assert client.get("/api/products/by-barcode/40123455").status_code == 404

    def test_stock(self, client, stocked):
        resp = client.post("/api/inventory/TEA", json={"stock_level": 12})
        assert resp.status_code == 201
        items = {row["product_id"]: row for row in client.get("/api/inventory").get_json()["items"]}
        assert items["TEA"]["stock_level"] == 12
        assert items["COF"]["stock_level"] == 10

    def test_stock_for_unknown_product(self, client, db_session):
        assert client.post("/api/inventory/NOPE", json={"stock_level": 1}).status_code == 404

    def test_validate_barcode(self, client):
        body = client.post("/api/barcodes/validate", json={"barcode": "036000291452"}).get_json()
        assert body == {"valid": True, "error": "", "format": "UPC-A"}

        body = client.post("/api/barcodes/validate", json={"barcode": "036000291453"}).get_json()
        assert body["valid"] is False
        assert body["error"] == "Invalid UPC-A barcode checksum"

        assert client.post("/api/barcodes/validate", json={"barcode": 40123455}).status_code == 400


class TestOrdersApi:
    def test_submit(self, client, stocked):
        resp = _submit(client, [{"product_id": "COF", "quantity": 2}, {"product_id": "TEA", "quantity": 3}])
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["complete"] is True
        assert body["order"]["total_amount"] == 49.60
        assert current_stock("TEA") == 0

    def test_validation_failure_lists_lines(self, client, stocked):
        resp = _submit(client, [{"product_id": "TEA", "quantity": 4}, {"product_id": "GONE", "quantity": 1}])
        assert resp.status_code == 400
        errors = resp.get_json()["details"]["lines"]
        assert [e["error"] for e in errors] == ["Only 3 of TEA in stock", "Product GONE not found"]

    def test_lines_must_be_a_list(self, client, db_session):
        assert client.post("/api/orders", json={"lines": "COF"}).status_code == 400

    def test_partial_failure_is_multi_status(self, client, stocked, monkeypatch):
        store = get_record_store()

        def failing_update(*args, **kwargs):
            raise RecordStoreError("disk full")

        monkeypatch.setattr(store, "update", failing_update)

        resp = _submit(client, [{"product_id": "COF", "quantity": 1}])
        assert resp.status_code == 207
        assert resp.get_json()["failed_lines"][0]["step"] == "inventory"

    def test_history(self, client, stocked):
        order_id = _submit(client, [{"product_id": "COF", "quantity": 1}], order_number="A-17").get_json()["order"]["id"]
        _submit(client, [{"product_id": "COF", "quantity": 1}], order_number="B-18")

        assert client.get("/api/orders").get_json()["count"] == 2
        assert [o["order_number"] for o in client.get("/api/orders/search?q=A-*").get_json()["items"]] == ["A-17"]
        assert client.get("/api/orders/search?q=").status_code == 400

        detail = client.get(f"/api/orders/{order_id}").get_json()
        assert detail["items"][0]["product_id"] == "COF"
        assert detail["returns"] == []
        assert client.get("/api/orders/9999").status_code == 404

    def test_status_update(self, client, stocked):
        order_id = _submit(client, [{"product_id": "COF", "quantity": 1}]).get_json()["order"]["id"]
        resp = client.patch(f"/api/orders/{order_id}/status", json={"status": "cancelled"})
        assert resp.get_json()["order"]["status"] == "cancelled"
        assert client.patch(f"/api/orders/{order_id}/status", json={}).status_code == 400
        assert client.patch("/api/orders/9999/status", json={"status": "x"}).status_code == 404


class TestReturnsApi:
    def _order(self, client):
        body = _submit(client, [{"product_id": "COF", "quantity": 2}]).get_json()
        return body["order"]["id"], body["items"][0]["id"]

    def test_return_flow(self, client, stocked):
        order_id, item_id = self._order(client)

        form = client.get(f"/api/returns/orders/{order_id}/returnable").get_json()
        assert form["lines"][0]["max_returnable"] == 2

        resp = client.post("/api/returns", json={
            "order_id": order_id,
            "reason": "Damaged in transit",
            "lines": [{"order_item_id": item_id, "quantity_to_return": 1, "condition": "damaged"}],
        })
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["return"]["total_refund_amount"] == 18.50
        assert body["returnable"][0]["max_returnable"] == 1
        return_id = body["return"]["id"]

        assert client.post(f"/api/returns/{return_id}/status", json={"status": "refunded"}).status_code == 409
        assert client.post(f"/api/returns/{return_id}/status", json={"status": "approved"}).status_code == 200
        assert client.post(f"/api/returns/{return_id}/status", json={"status": "lost"}).status_code == 400

        assert client.get(f"/api/returns?order_id={order_id}").get_json()["count"] == 1
        assert client.get(f"/api/returns/{return_id}").get_json()["items"][0]["condition"] == "damaged"
        assert current_stock("COF") == 8

    def test_over_return(self, client, stocked):
        order_id, item_id = self._order(client)
        resp = client.post("/api/returns", json={
            "order_id": order_id,
            "lines": [{"order_item_id": item_id, "quantity_to_return": 3, "condition": "new"}],
        })
        assert resp.status_code == 400
        assert resp.get_json()["details"]["lines"][0]["error"] == "Cannot return 3; at most 2 can be returned"

    def test_bad_requests(self, client, stocked):
        assert client.post("/api/returns", json={"order_id": "1", "lines": []}).status_code == 400
        assert client.post("/api/returns", json={"order_id": 9999, "lines": []}).status_code == 404
        assert client.get("/api/returns/orders/9999/returnable").status_code == 404
        assert client.get("/api/returns/9999").status_code == 404


class TestDashboardApi:
    def test_day_view(self, client, stocked):
        _submit(client, [{"product_id": "COF", "quantity": 2}], order_date="2026-10-19T09:30:00Z")
        _submit(client, [{"product_id": "TEA", "quantity": 1}], order_date="2026-10-18T09:30:00Z")
        client.put("/api/notes/2026-10-19", json={"note_text": "Coffee promo"})

        body = client.get("/api/dashboard?date=2026-10-19").get_json()
        assert body["summary"] == {
            "total_sales": 37.0,
            "total_orders": 1,
            "average_order_value": 37.0,
            "total_profit": 17.5,
        }
        assert body["hourly"][9]["total_sales"] == 37.0
        assert body["note"]["note_text"] == "Coffee promo"

    def test_all_time_view_has_no_series(self, client, db_session):
        body = client.get("/api/dashboard").get_json()
        assert body["summary"]["total_orders"] == 0
        assert "hourly" not in body

    def test_bad_date(self, client, db_session):
        assert client.get("/api/dashboard?date=yesterday").status_code == 400

    def test_notes(self, client, db_session):
        assert client.get("/api/notes/2026-10-19").status_code == 404
        assert client.put("/api/notes/2026-10-19", json={"note_text": "x" * 201}).status_code == 400
        assert client.put("/api/notes/2026-10-19", json={"note_text": "Till 2 sticky"}).status_code == 200
        assert client.get("/api/notes/2026-10-19").get_json()["note"]["note_text"] == "Till 2 sticky"
        assert client.delete("/api/notes/2026-10-19").status_code == 200
        assert client.delete("/api/notes/2026-10-19").status_code == 404
        assert client.get("/api/notes/not-a-day").status_code == 400


class TestCli:
    def test_validate_barcode(self, app):
        runner = app.test_cli_runner()
        ok = runner.invoke(args=["catalog", "validate-barcode", "4006381333931"])
        assert ok.exit_code == 0
        assert "EAN-13" in ok.output

        bad = runner.invoke(args=["catalog", "validate-barcode", "4006381333932"])
        assert bad.exit_code == 1
        assert "Invalid EAN-13 barcode checksum" in bad.output

    def test_seed_demo_is_repeatable(self, app, db_session):
        runner = app.test_cli_runner()
        first = runner.invoke(args=["catalog", "seed-demo"])
        assert first.exit_code == 0
        assert first.output.count("PASS") == 3

        second = runner.invoke(args=["catalog", "seed-demo"])
        assert second.output.count("SKIP") == 3

    def test_daily_report(self, app, stocked):
        _submit(app.test_client(), [{"product_id": "COF", "quantity": 1}], order_date="2026-10-19T14:00:00Z")
        result = app.test_cli_runner().invoke(args=["reports", "daily", "--date", "2026-10-19"])
        assert result.exit_code == 0
        assert "18.50" in result.output
        assert "14:00" in result.output


class TestMalformedRequests:
    """Wrong JSON shapes get a 400, never a 500."""

    @pytest.mark.parametrize("method, url", [
        ("post", "/api/orders"),
        ("patch", "/api/orders/1/status"),
        ("post", "/api/returns"),
        ("post", "/api/returns/1/status"),
        ("put", "/api/notes/2026-10-19"),
        ("post", "/api/barcodes/validate"),
        ("post", "/api/products"),
        ("patch", "/api/products/COF"),
        ("post", "/api/inventory/COF"),
    ])
    def test_array_body(self, client, stocked, method, url):
        resp = getattr(client, method)(url, json=[{"status": "approved"}])
        assert resp.status_code == 400

    @pytest.mark.parametrize("field", ["order_number", "status"])
    def test_non_string_order_fields(self, client, stocked, field):
        resp = _submit(client, [{"product_id": "COF", "quantity": 1}], **{field: 42})
        assert resp.status_code == 400
        assert resp.get_json()["error"] == f"{field} must be a string"
        assert client.get("/api/orders").get_json()["count"] == 0

    def test_non_string_status_updates(self, client, stocked):
        order_id = _submit(client, [{"product_id": "COF", "quantity": 1}]).get_json()["order"]["id"]
        assert client.patch(f"/api/orders/{order_id}/status", json={"status": 3}).status_code == 400
        assert client.post("/api/returns/1/status", json={"status": ["approved"]}).status_code == 400

    @pytest.mark.parametrize("quantity", ["²", "٣"])
    def test_non_ascii_digit_quantity(self, client, stocked, quantity):
        resp = _submit(client, [{"product_id": "COF", "quantity": quantity}])
        assert resp.status_code == 400
        assert resp.get_json()["details"]["lines"][0]["error"] == "quantity must be a positive integer"

    def test_non_ascii_digit_return_quantity(self, client, stocked):
        body = _submit(client, [{"product_id": "COF", "quantity": 2}]).get_json()
        resp = client.post("/api/returns", json={
            "order_id": body["order"]["id"],
            "lines": [{"order_item_id": body["items"][0]["id"], "quantity_to_return": "²", "condition": "new"}],
        })
        assert resp.status_code == 400

    @pytest.mark.parametrize("order_date", [10**20, 1e20, "99999999999999999999"])
    def test_out_of_range_order_date(self, client, stocked, order_date):
        resp = _submit(client, [{"product_id": "COF", "quantity": 1}], order_date=order_date)
        assert resp.status_code == 400
        assert current_stock("COF") == 10

    def test_out_of_range_history_bounds(self, client, db_session):
        assert client.get("/api/orders?start=99999999999999999999").status_code == 400
