"""
HTTP workflow tests
Steps: setup business and shop, create invoice, edit, settle, list, delete
"""
from decimal import Decimal

from shopbill.core.exceptions import ConflictError, TransientStorageError
from shopbill.services import invoice_service

WIDGET = {
    "description": "Widget",
    "quantity": 2,
    "unit_price": 100,
    "discount": 10,
    "tax_rate": 18,
    "tax_type": "GST",
}


def _body(business, shop, **overrides):
    body = {"business_id": business.id, "shop_id": shop.id, "items": [dict(WIDGET)]}
    body.update(overrides)
    return body


def _money(value) -> Decimal:
    return Decimal(str(value))


class TestCreateEndpoint:

    def test_create_returns_201_with_totals(self, client, business, shop, customer):
        resp = client.post("/invoices", json=_body(business, shop, customer_id=customer.id))

        assert resp.status_code == 201
        data = resp.json()
        assert data["number"] == "INV-0001"
        assert data["status"] == "ISSUED"
        assert data["customer_name"] == "Rajesh Kumar"
        assert _money(data["sub_total"]) == Decimal("200.00")
        assert _money(data["discount_total"]) == Decimal("10.00")
        assert _money(data["tax_total"]) == Decimal("34.20")
        assert _money(data["grand_total"]) == Decimal("224.20")
        assert _money(data["amount_paid"]) == Decimal("0")
        assert len(data["items"]) == 1
        assert _money(data["items"][0]["line_total"]) == Decimal("224.20")

    def test_empty_items_is_400(self, client, business, shop):
        resp = client.post("/invoices", json=_body(business, shop, items=[]))

        assert resp.status_code == 400
        assert "items" in resp.json()["detail"]

    def test_zero_quantity_is_400(self, client, business, shop):
        resp = client.post("/invoices", json=_body(business, shop, items=[dict(WIDGET, quantity=0)]))

        assert resp.status_code == 400

    def test_tax_rate_beyond_column_range_is_400(self, client, business, shop):
        resp = client.post("/invoices", json=_body(business, shop, items=[dict(WIDGET, tax_rate=1000)]))

        assert resp.status_code == 400
        assert "tax_rate" in resp.json()["detail"]

    def test_non_numeric_quantity_is_400_with_issues(self, client, business, shop):
        resp = client.post("/invoices", json=_body(business, shop, items=[dict(WIDGET, quantity="abc")]))

        assert resp.status_code == 400
        assert resp.json()["issues"]

    def test_unknown_business_is_404(self, client, shop):
        resp = client.post("/invoices", json={"business_id": 999, "shop_id": shop.id, "items": [WIDGET]})

        assert resp.status_code == 404
        assert resp.json()["detail"] == "Business not found"

    def test_idempotency_key_replays_first_invoice(self, client, business, shop):
        headers = {"Idempotency-Key": "order-7781"}

        first = client.post("/invoices", json=_body(business, shop), headers=headers)
        second = client.post("/invoices", json=_body(business, shop), headers=headers)
        other = client.post("/invoices", json=_body(business, shop))

        assert first.status_code == second.status_code == 201
        assert second.json()["id"] == first.json()["id"]
        assert other.json()["number"] == "INV-0002"

    def test_repeated_conflict_is_500(self, client, business, shop, monkeypatch):
        def always_conflicts(*args, **kwargs):
            raise ConflictError("UNIQUE constraint failed: invoices.business_id, invoices.number")

        monkeypatch.setattr(invoice_service, "_create_once", always_conflicts)

        resp = client.post("/invoices", json=_body(business, shop))

        assert resp.status_code == 500
        # storage details stay in the log
        assert "UNIQUE" not in resp.json()["detail"]

    def test_storage_outage_is_503(self, client, business, shop, monkeypatch):
        def unavailable(*args, **kwargs):
            raise TransientStorageError("database is locked")

        monkeypatch.setattr(invoice_service, "_create_once", unavailable)

        resp = client.post("/invoices", json=_body(business, shop))

        assert resp.status_code == 503


class TestEditEndpoints:

    def test_put_replaces_items_and_totals(self, client, business, shop):
        created = client.post("/invoices", json=_body(business, shop)).json()

        resp = client.put(
            f"/invoices/{created['id']}",
            json=_body(business, shop, items=[{"description": "Tea", "quantity": 3, "unit_price": 40}], notes="reprice"),
        )

        assert resp.status_code == 200
        data = resp.json()
        assert data["number"] == created["number"]
        assert data["status"] == "ISSUED"
        assert data["notes"] == "reprice"
        assert [item["description"] for item in data["items"]] == ["Tea"]
        assert _money(data["grand_total"]) == Decimal("120.00")

    def test_put_missing_invoice_is_404(self, client, business, shop):
        resp = client.put("/invoices/4040", json=_body(business, shop))

        assert resp.status_code == 404

    def test_patch_paid_settles_in_full(self, client, business, shop):
        created = client.post("/invoices", json=_body(business, shop)).json()

        resp = client.patch(f"/invoices/{created['id']}", json={"status": "PAID"})

        assert resp.status_code == 200
        assert resp.json()["status"] == "PAID"
        assert _money(resp.json()["amount_paid"]) == Decimal("224.20")

    def test_patch_partial_payment(self, client, business, shop):
        created = client.post("/invoices", json=_body(business, shop)).json()

        resp = client.patch(
            f"/invoices/{created['id']}", json={"status": "PARTIALLY_PAID", "amount_paid": "100.005"},
        )

        assert resp.status_code == 200
        assert _money(resp.json()["amount_paid"]) == Decimal("100.01")

    def test_patch_negative_payment_is_400(self, client, business, shop):
        created = client.post("/invoices", json=_body(business, shop)).json()

        resp = client.patch(f"/invoices/{created['id']}", json={"amount_paid": -5})

        assert resp.status_code == 400

    def test_patch_unknown_status_is_400(self, client, business, shop):
        created = client.post("/invoices", json=_body(business, shop)).json()

        resp = client.patch(f"/invoices/{created['id']}", json={"status": "REFUNDED"})

        assert resp.status_code == 400

    def test_delete_then_404(self, client, business, shop):
        created = client.post("/invoices", json=_body(business, shop)).json()

        resp = client.delete(f"/invoices/{created['id']}")
        assert resp.status_code == 200
        assert resp.json() == {"success": True, "id": created["id"]}

        assert client.get(f"/invoices/{created['id']}").status_code == 404
        assert client.delete(f"/invoices/{created['id']}").status_code == 404


class TestListEndpoint:

    def test_search_by_customer_name(self, client, business, shop, customer):
        client.post("/invoices", json=_body(business, shop, customer_id=customer.id))
        client.post("/invoices", json=_body(business, shop))

        resp = client.get("/invoices", params={"businessId": business.id, "search": "rajesh"})

        assert resp.status_code == 200
        data = resp.json()
        assert data["total"] == 1
        assert data["data"][0]["customer_name"] == "Rajesh Kumar"
        assert "items" not in data["data"][0]

    def test_newest_first_with_paging(self, client, business, shop):
        for _ in range(3):
            client.post("/invoices", json=_body(business, shop))

        resp = client.get("/invoices", params={"businessId": business.id, "limit": 2})

        data = resp.json()
        assert data["total"] == 3
        assert [row["number"] for row in data["data"]] == ["INV-0003", "INV-0002"]


class TestRecordEndpoints:

    def test_business_numbering_settings(self, client, shop, business):
        resp = client.patch(
            f"/businesses/{business.id}",
            json={"invoice_prefix": "SB-", "invoice_next_number": 50, "invoice_number_padding": 3},
        )
        assert resp.status_code == 200
        assert resp.json()["invoice_prefix"] == "SB-"

        created = client.post("/invoices", json=_body(business, shop))
        assert created.json()["number"] == "SB-050"

        assert client.get(f"/businesses/{business.id}").json()["invoice_next_number"] == 51

    def test_business_counter_below_one_is_400(self, client, business):
        resp = client.patch(f"/businesses/{business.id}", json={"invoice_next_number": 0})

        assert resp.status_code == 400

    def test_create_business_shop_customer_product(self, client):
        business = client.post("/businesses", json={"name": "Gupta Medical"})
        assert business.status_code == 201
        business_id = business.json()["id"]
        assert business.json()["invoice_prefix"] == "INV-"

        shop = client.post("/shops", json={"business_id": business_id, "name": "Counter A"})
        assert shop.status_code == 201

        customer = client.post("/customers", json={"business_id": business_id, "name": "Meena Joshi"})
        assert customer.status_code == 201

        product = client.post(
            "/products",
            json={"business_id": business_id, "name": "ORS Sachet", "unit_price": "20", "tax_rate": "5"},
        )
        assert product.status_code == 201

        customers = client.get("/customers", params={"businessId": business_id}).json()
        assert customers["total"] == 1
        products = client.get("/products", params={"businessId": business_id}).json()
        assert [p["name"] for p in products] == ["ORS Sachet"]

    def test_missing_records_are_404(self, client):
        assert client.get("/shops/77").status_code == 404
        assert client.get("/customers/77").status_code == 404
        assert client.delete("/products/77").status_code == 404

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}
