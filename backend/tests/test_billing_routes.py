"""
Billing route tests: invoice creation, listing and ownership.
"""

import pytest

from paint_erp.models import Invoice, Product


class TestCreateInvoiceRoute:

    def test_create(self, client, db_session, headers, user, product):
        response = client.post("/api/billing/invoices", json={
            "items": [{"productId": product.id, "quantity": 2, "price": 500, "size": "1L"}],
            "taxRate": 18,
        }, headers=headers)

        assert response.status_code == 201
        data = response.json["data"]
        assert data["subtotal"] == 1000.0
        assert data["tax"] == 180.0
        assert data["total"] == 1180.0
        assert data["taxRate"] == 18.0
        assert data["status"] == "completed"
        assert data["user"] == {"id": user.id, "name": "Counter Staff", "email": "staff@paintshop.test"}
        assert data["items"] == [{
            "product": {"id": product.id, "name": "Royale Luxury Emulsion", "brand": product.brand_id, "price": 450.0},
            "productName": "Royale Luxury Emulsion",
            "size": "1L",
            "quantity": 2,
            "price": 500.0,
            "total": 1000.0,
        }]

        db_session.expire_all()
        assert db_session.get(Product, product.id).stock_by_size["1L"] == 8

    def test_empty_cart(self, client, headers, db_session):
        response = client.post("/api/billing/invoices", json={"items": []}, headers=headers)

        assert response.status_code == 400
        assert response.json == {"success": False, "message": "Invoice must have at least one item"}

    def test_insufficient_stock_rolls_back(self, client, db_session, headers, product, legacy_product):
        response = client.post("/api/billing/invoices", json={
            "items": [
                {"productId": legacy_product.id, "quantity": 1},
                {"productId": product.id, "quantity": 11, "size": "1L", "price": 500},
            ],
        }, headers=headers)

        assert response.status_code == 400
        assert response.json["message"] == "Insufficient stock for Royale Luxury Emulsion (1L). Available: 10"
        assert response.json["details"]["requested_quantity"] == 11

        db_session.expire_all()
        assert db_session.get(Product, legacy_product.id).stock == 20
        assert db_session.query(Invoice).count() == 0

    def test_unknown_product(self, client, headers, db_session):
        response = client.post("/api/billing/invoices", json={"items": [{"productId": 77, "quantity": 1}]}, headers=headers)

        assert response.status_code == 404
        assert response.json["message"] == "Product with ID 77 not found"


class TestReadInvoiceRoutes:

    @pytest.fixture
    def invoices(self, client, headers, legacy_product):
        created = []
        for quantity in (1, 2, 3):
            response = client.post("/api/billing/invoices", json={
                "items": [{"productId": legacy_product.id, "quantity": quantity}],
            }, headers=headers)
            created.append(response.json["data"])
        return created

    def test_list_with_pagination(self, client, headers, invoices):
        response = client.get("/api/billing/invoices?page=1&limit=2", headers=headers)

        assert response.status_code == 200
        assert response.json["pagination"] == {"page": 1, "limit": 2, "total": 3, "pages": 2}
        assert [inv["id"] for inv in response.json["data"]] == [invoices[2]["id"], invoices[1]["id"]]

    def test_list_defaults(self, client, headers, invoices):
        response = client.get("/api/billing/invoices", headers=headers)
        assert response.json["pagination"]["limit"] == 10
        assert response.json["pagination"]["page"] == 1

    @pytest.mark.parametrize("query", ["page=0", "limit=-1", "page=abc"])
    def test_list_bad_paging(self, client, headers, db_session, query):
        assert client.get(f"/api/billing/invoices?{query}", headers=headers).status_code == 400

    def test_list_is_owner_scoped(self, client, other_headers, invoices):
        response = client.get("/api/billing/invoices", headers=other_headers)
        assert response.json["data"] == []

    def test_get(self, client, headers, invoices):
        response = client.get(f"/api/billing/invoices/{invoices[0]['id']}", headers=headers)

        assert response.status_code == 200
        assert response.json["data"]["invoiceNo"] == invoices[0]["invoiceNo"]

    def test_get_by_non_owner(self, client, other_headers, invoices):
        response = client.get(f"/api/billing/invoices/{invoices[0]['id']}", headers=other_headers)

        assert response.status_code == 404
        assert response.json["message"] == "Invoice not found"


class TestAppLevelHandlers:

    def test_health(self, client, db_session):
        response = client.get("/api/health")

        assert response.status_code == 200
        assert response.json["success"] is True
        assert response.json["data"]["checks"]["database"]["status"] == "healthy"

    def test_unknown_route(self, client):
        response = client.get("/api/nope")

        assert response.status_code == 404
        assert response.json == {"success": False, "message": "Route not found"}

    def test_method_not_allowed(self, client):
        response = client.delete("/api/health")

        assert response.status_code == 405
        assert response.json["success"] is False

    def test_cors_for_dev_origin(self, client):
        response = client.get("/api/health", headers={"Origin": "http://localhost:5173"})
        assert response.headers["Access-Control-Allow-Origin"] == "http://localhost:5173"

    def test_no_cors_for_unknown_origin(self, client):
        response = client.get("/api/health", headers={"Origin": "http://evil.example"})
        assert "Access-Control-Allow-Origin" not in response.headers
