"""
HTTP API tests.

Verifies:
- every protected endpoint answers 401 without a token
- role enforcement per endpoint (403 with the required permission)
- error taxonomy maps to status codes: 400, 404, 409, 403, 503
- the sale walkthrough end to end over HTTP
- health and version endpoints
"""

import pytest

from stocksense.extensions import get_services


# =============================================================================
# UNAUTHENTICATED ACCESS - 401
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/auth/me"),
            ("POST", "/api/auth/logout"),
            ("GET", "/api/users"),
            ("POST", "/api/users"),
            ("GET", "/api/products"),
            ("POST", "/api/products"),
            ("GET", "/api/products/alerts/low-stock"),
            ("GET", "/api/sales"),
            ("POST", "/api/sales"),
            ("DELETE", "/api/sales/1"),
            ("GET", "/api/analytics/home"),
            ("GET", "/api/analytics/sales-trend"),
            ("GET", "/api/analytics/predictions"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"
        assert resp.get_json()["code"] == "unauthorized"


# =============================================================================
# ROLE ENFORCEMENT - 403
# =============================================================================


class TestRoleEnforcement:

    @pytest.mark.parametrize(
        "path",
        [
            "/api/analytics/sales-trend",
            "/api/analytics/category-breakdown",
            "/api/analytics/top-products",
            "/api/analytics/predictions",
            "/api/products/alerts/low-stock",
            "/api/products/alerts/out-of-stock",
            "/api/users",
        ],
    )
    def test_staff_denied(self, client, staff_headers, path):
        resp = client.get(path, headers=staff_headers)

        assert resp.status_code == 403
        body = resp.get_json()
        assert body["code"] == "forbidden"
        assert "required_permission" in body["details"]

    def test_staff_cannot_create_product(self, client, staff_headers):
        resp = client.post(
            "/api/products",
            json={"sku": "X", "name": "X", "category": "X", "price_cents": 1, "reorder_point": 0},
            headers=staff_headers,
        )

        assert resp.status_code == 403
        assert resp.get_json()["details"] == {"required_permission": "manage-catalog"}

    def test_manager_cannot_manage_users(self, client, manager_headers):
        assert client.get("/api/users", headers=manager_headers).status_code == 403

    def test_admin_cannot_see_analytics(self, client, admin_headers):
        assert client.get("/api/analytics/home", headers=admin_headers).status_code == 403

    @pytest.mark.parametrize("fixture", ["admin_headers", "manager_headers", "staff_headers"])
    def test_everyone_can_browse_products(self, client, request, fixture):
        headers = request.getfixturevalue(fixture)

        assert client.get("/api/products", headers=headers).status_code == 200

    def test_staff_sees_home_dashboard(self, client, staff_headers):
        resp = client.get("/api/analytics/home", headers=staff_headers)

        assert resp.status_code == 200
        assert resp.get_json()["inventory_count"] == 0


# =============================================================================
# PRODUCTS
# =============================================================================


def _create_product(client, headers, **fields):
    payload = {
        "sku": "SNK-001",
        "name": "Piattos",
        "category": "Snacks",
        "quantity": 10,
        "price_cents": 1000,
        "reorder_point": 5,
    }
    payload.update(fields)
    return client.post("/api/products", json=payload, headers=headers)


class TestProductRoutes:

    def test_crud(self, client, manager_headers):
        created = _create_product(client, manager_headers)
        assert created.status_code == 201
        product_id = created.get_json()["id"]

        fetched = client.get(f"/api/products/{product_id}", headers=manager_headers)
        assert fetched.get_json()["name"] == "Piattos"

        updated = client.put(
            f"/api/products/{product_id}", json={"price_cents": 1200}, headers=manager_headers
        )
        assert updated.status_code == 200
        assert updated.get_json()["price_cents"] == 1200

        deleted = client.delete(f"/api/products/{product_id}", headers=manager_headers)
        assert deleted.status_code == 200
        assert deleted.get_json()["ok"] is True

        assert client.get(f"/api/products/{product_id}", headers=manager_headers).status_code == 404

    def test_validation_error_is_400(self, client, manager_headers):
        resp = _create_product(client, manager_headers, price_cents=10.5)

        assert resp.status_code == 400
        assert resp.get_json()["code"] == "validation_error"

    @pytest.mark.parametrize("field", ["quantity", "reorder_point"])
    def test_oversized_integer_is_400(self, client, manager_headers, field):
        resp = _create_product(client, manager_headers, **{field: 10**30})

        assert resp.status_code == 400
        assert resp.get_json()["details"] == {"field": field}

    def test_duplicate_sku_is_409(self, client, manager_headers):
        _create_product(client, manager_headers)

        resp = _create_product(client, manager_headers)

        assert resp.status_code == 409
        assert resp.get_json()["code"] == "conflict"

    def test_alerts(self, client, manager_headers):
        _create_product(client, manager_headers, sku="A", quantity=2)
        _create_product(client, manager_headers, sku="B", quantity=0)

        low = client.get("/api/products/alerts/low-stock", headers=manager_headers).get_json()
        out = client.get("/api/products/alerts/out-of-stock", headers=manager_headers).get_json()

        assert [p["sku"] for p in low["items"]] == ["B", "A"]
        assert out["count"] == 1


# =============================================================================
# SALES
# =============================================================================


class TestSaleRoutes:

    @pytest.fixture
    def product(self, client, manager_headers):
        return _create_product(client, manager_headers).get_json()

    def test_walkthrough(self, client, manager_headers, staff_headers, product):
        resp = client.post(
            "/api/sales",
            json={"items": [{"product_id": product["id"], "quantity": 3, "unit_price_cents": 1000}]},
            headers=staff_headers,
        )
        assert resp.status_code == 201
        assert resp.get_json()["count"] == 1

        fetched = client.get(f"/api/products/{product['id']}", headers=staff_headers).get_json()
        assert fetched["quantity"] == 7

        home = client.get("/api/analytics/home", headers=staff_headers).get_json()
        assert home["today_sales"] == 1
        assert home["today_revenue_cents"] == 3000

        overdraw = client.post(
            "/api/sales",
            json={"items": [{"product_id": product["id"], "quantity": 10}]},
            headers=staff_headers,
        )
        assert overdraw.status_code == 409
        body = overdraw.get_json()
        assert body["code"] == "insufficient_stock"
        assert body["details"]["items"][0]["on_hand"] == 7

        listed = client.get("/api/sales", headers=staff_headers).get_json()
        assert listed["count"] == 1
        assert listed["items"][0]["total_price_cents"] == 3000

    def test_reverse(self, client, staff_headers, product):
        sale_ids = client.post(
            "/api/sales",
            json={"items": [{"product_id": product["id"], "quantity": 4}]},
            headers=staff_headers,
        ).get_json()["sale_ids"]

        resp = client.delete(f"/api/sales/{sale_ids[0]}", headers=staff_headers)

        assert resp.status_code == 200
        assert resp.get_json()["sale"]["product_quantity_after"] == 10
        assert client.get(f"/api/sales/{sale_ids[0]}", headers=staff_headers).status_code == 404

    def test_unknown_product_is_404(self, client, staff_headers, product):
        resp = client.post(
            "/api/sales",
            json={"items": [{"product_id": 999_999, "quantity": 1}]},
            headers=staff_headers,
        )

        assert resp.status_code == 404
        assert resp.get_json()["details"]["item_index"] == 0

    @pytest.mark.parametrize(
        "payload",
        [
            {},
            {"items": []},
            {"items": [{"product_id": 1, "quantity": 0}]},
            {"items": [{"product_id": 1, "quantity": 2.5}]},
            {"items": [{"product_id": 1, "quantity": "--5"}]},
            {"items": [{"product_id": 1, "quantity": 1, "unit_price_cents": 10**30}]},
            {"items": [{"product_id": 1, "quantity": 1}], "sale_date": "not-a-date"},
        ],
    )
    def test_bad_payload_is_400(self, client, staff_headers, payload):
        resp = client.post("/api/sales", json=payload, headers=staff_headers)

        assert resp.status_code == 400
        assert resp.get_json()["code"] == "validation_error"

    @pytest.mark.parametrize("limit", ["--1", "²", "0"])
    def test_bad_list_limit_is_400(self, client, manager_headers, limit):
        resp = client.get("/api/sales", query_string={"limit": limit}, headers=manager_headers)

        assert resp.status_code == 400
        assert resp.get_json()["code"] == "validation_error"

    def test_lock_timeout_is_503(self, client, app, staff_headers, product):
        store = get_services()["store"]
        original_timeout = store.lock_timeout
        store._writer.timeout = 0.05
        held = store.begin()
        try:
            resp = client.post(
                "/api/sales",
                json={"items": [{"product_id": product["id"], "quantity": 1}]},
                headers=staff_headers,
            )
        finally:
            store.rollback(held)
            store._writer.timeout = original_timeout

        assert resp.status_code == 503
        assert resp.get_json()["code"] == "transaction_failed"


# =============================================================================
# ANALYTICS
# =============================================================================


class TestAnalyticsRoutes:

    def test_reports_for_manager(self, client, manager_headers):
        product = _create_product(client, manager_headers).get_json()
        client.post(
            "/api/sales",
            json={"items": [{"product_id": product["id"], "quantity": 2}]},
            headers=manager_headers,
        )

        trend = client.get("/api/analytics/sales-trend?days=7", headers=manager_headers).get_json()
        filled = client.get(
            "/api/analytics/sales-trend?days=7&include_empty_days=true", headers=manager_headers
        ).get_json()
        categories = client.get("/api/analytics/category-breakdown", headers=manager_headers).get_json()
        top = client.get("/api/analytics/top-products?limit=5", headers=manager_headers).get_json()
        predictions = client.get("/api/analytics/predictions", headers=manager_headers).get_json()

        assert trend["sparse"] is True
        assert len(trend["rows"]) == 1
        assert len(filled["rows"]) == 8
        assert categories["rows"] == [{"category": "Snacks", "sales_count": 1, "revenue_cents": 2000}]
        assert top["rows"][0]["total_sold"] == 2
        assert predictions["rows"][0]["quantity"] == 8

    @pytest.mark.parametrize(
        "path",
        [
            "/api/analytics/sales-trend?days=0",
            "/api/analytics/sales-trend?days=abc",
            "/api/analytics/predictions?days=400",
            "/api/analytics/top-products?limit=0",
            "/api/analytics/top-products?limit=--1",
            "/api/analytics/sales-trend?days=%C2%B2",
            "/api/analytics/home?date=yesterday",
        ],
    )
    def test_bad_parameters_are_400(self, client, manager_headers, path):
        assert client.get(path, headers=manager_headers).status_code == 400


# =============================================================================
# USERS
# =============================================================================


class TestUserRoutes:

    def test_admin_manages_users(self, client, admin_headers):
        created = client.post(
            "/api/users",
            json={"id_number": "STAFF009", "password": "Password123!", "role": "Staff", "full_name": "Temp"},
            headers=admin_headers,
        )
        assert created.status_code == 201
        user_id = created.get_json()["user"]["id"]

        role = client.put(f"/api/users/{user_id}/role", json={"role": "Manager"}, headers=admin_headers)
        assert role.get_json()["user"]["role"] == "Manager"

        weak = client.put(f"/api/users/{user_id}/password", json={"password": "weak"}, headers=admin_headers)
        assert weak.status_code == 400

        deleted = client.delete(f"/api/users/{user_id}", headers=admin_headers)
        assert deleted.status_code == 200

    def test_default_admin_delete_is_403(self, client, admin_headers, users):
        resp = client.delete(f"/api/users/{users['Admin'].id}", headers=admin_headers)

        assert resp.status_code == 403
        assert resp.get_json()["error"] == "Cannot delete default admin"


# =============================================================================
# SYSTEM
# =============================================================================


class TestSystemRoutes:

    def test_health(self, client, db_session):
        resp = client.get("/health")

        assert resp.status_code == 200
        body = resp.get_json()
        assert body["status"] == "healthy"
        assert set(body["checks"]) == {"database", "ledger_lock"}

    def test_health_degraded_while_lock_held(self, client, db_session):
        store = get_services()["store"]
        original_timeout = store.lock_timeout
        store._writer.timeout = 0.05
        held = store.begin()
        try:
            resp = client.get("/health")
        finally:
            store.rollback(held)
            store._writer.timeout = original_timeout

        assert resp.status_code == 200
        assert resp.get_json()["status"] == "degraded"

    def test_version(self, client):
        body = client.get("/version").get_json()

        assert body["api_version"] == "1.0.0"
        assert "SECRET_KEY" not in str(body)
