"""
Authorization and HTTP mapping tests.

Verifies:
- Unauthenticated requests return 401
- Staff are denied admin-only ledgers (403)
- Staff may read and act on their own records only
- Service errors map to 400 / 404 with an {"error": ...} body
"""

import pytest

from conftest import STAFF_PASSWORD, auth_headers, get_auth_token


# =============================================================================
# UNAUTHENTICATED ACCESS (401)
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/auth/me"),
            ("POST", "/api/auth/logout"),
            ("GET", "/api/users/"),
            ("GET", "/api/users/staff"),
            ("GET", "/api/tasks/"),
            ("POST", "/api/tasks/"),
            ("GET", "/api/tasks/staff/1"),
            ("GET", "/api/payments/"),
            ("GET", "/api/payments/pending"),
            ("POST", "/api/payments/staff/1/payout-request"),
            ("GET", "/api/expenses/"),
            ("GET", "/api/taxes/"),
            ("GET", "/api/dashboard/metrics"),
            ("POST", "/api/files/upload-url"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_garbage_token(self, client, db_session):
        resp = client.get("/api/auth/me", headers=auth_headers("garbage"))
        assert resp.status_code == 401
        assert resp.json["error"] == "Invalid or expired token"


# =============================================================================
# STAFF DENIED ADMIN LEDGERS (403)
# =============================================================================


class TestStaffDeniedAdminRoutes:
    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/users/"),
            ("POST", "/api/users/"),
            ("GET", "/api/tasks/"),
            ("POST", "/api/tasks/"),
            ("GET", "/api/payments/"),
            ("GET", "/api/payments/pending"),
            ("POST", "/api/payments/1/process"),
            ("GET", "/api/expenses/"),
            ("GET", "/api/expenses/summary"),
            ("GET", "/api/taxes/"),
            ("GET", "/api/dashboard/metrics"),
            ("GET", "/api/dashboard/monthly"),
        ],
    )
    def test_admin_only(self, client, staff_headers, method, path):
        resp = getattr(client, method.lower())(path, headers=staff_headers)
        assert resp.status_code == 403, f"{method} {path} returned {resp.status_code}"
        assert resp.json["error"] == "Admin access required"

    def test_cannot_read_other_staff(self, client, staff_headers, make_user):
        other = make_user()
        for path in (
            f"/api/users/{other.id}",
            f"/api/tasks/staff/{other.id}",
            f"/api/payments/staff/{other.id}",
            f"/api/payments/staff/{other.id}/summary",
        ):
            resp = client.get(path, headers=staff_headers)
            assert resp.status_code == 403, path

    def test_cannot_request_payout_for_other_staff(self, client, staff_headers, make_user):
        other = make_user()
        resp = client.post(f"/api/payments/staff/{other.id}/payout-request", headers=staff_headers)
        assert resp.status_code == 403


# =============================================================================
# SELF ACCESS
# =============================================================================


class TestStaffSelfAccess:
    def test_reads_own_records(self, client, staff_user, staff_headers):
        for path in (
            f"/api/users/{staff_user.id}",
            f"/api/tasks/staff/{staff_user.id}",
            f"/api/payments/staff/{staff_user.id}",
            f"/api/payments/staff/{staff_user.id}/summary",
            f"/api/users/{staff_user.id}/staff-profile",
        ):
            resp = client.get(path, headers=staff_headers)
            assert resp.status_code == 200, path

    def test_completes_own_profile(self, client, staff_user, staff_headers):
        assert client.get("/api/auth/me", headers=staff_headers).json["firstLoginRequired"] is True

        resp = client.put(
            f"/api/users/{staff_user.id}/staff-profile",
            json={"role_name": "Editor", "payment_method": "bank_transfer", "bank_name": "First Bank"},
            headers=staff_headers,
        )
        assert resp.status_code == 200

        assert client.get("/api/auth/me", headers=staff_headers).json["firstLoginRequired"] is False

    def test_payout_below_minimum_is_400(self, client, staff_user, staff_headers):
        resp = client.post(f"/api/payments/staff/{staff_user.id}/payout-request", headers=staff_headers)
        assert resp.status_code == 400
        assert resp.json["error"] == "No pending payments available"


# =============================================================================
# ADMIN FLOWS OVER HTTP
# =============================================================================


class TestAdminFlows:
    def test_task_to_expense_round_trip(self, client, admin_headers, staff_user):
        resp = client.post("/api/tasks/", json={
            "project_name": "Brand film",
            "client_name": "Acme",
            "task_type": "video",
            "deadline": "2026-12-01T00:00:00Z",
            "received_date": "2026-10-01T00:00:00Z",
            "total_budget": 1000,
            "payment_status": "paid",
        }, headers=admin_headers)
        assert resp.status_code == 201
        task_id = resp.json["task"]["id"]
        assert resp.json["task"]["status"] == "pending"

        resp = client.post(f"/api/tasks/{task_id}/assignments", json={
            "staff_id": staff_user.id,
            "assigned_role": "Editor",
            "assigned_salary": 400,
        }, headers=admin_headers)
        assert resp.status_code == 201

        assert client.post(f"/api/tasks/{task_id}/complete", headers=admin_headers).status_code == 200

        resp = client.post(f"/api/payments/staff/{staff_user.id}/payout-request", headers=admin_headers)
        assert resp.status_code == 201
        payment_id = resp.json["payment"]["id"]

        resp = client.post(f"/api/payments/{payment_id}/process", json={"notes": "Bank"}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["payment"]["status"] == "completed"

        summary = client.get("/api/expenses/summary", headers=admin_headers).json
        assert summary["by_type"]["staff_salary"] == 400

        metrics = client.get("/api/dashboard/metrics?timeRange=all", headers=admin_headers).json
        assert metrics["net_profit"] == 600

    def test_validation_error_is_400(self, client, admin_headers):
        resp = client.post("/api/expenses/", json={"type": "lunch"}, headers=admin_headers)
        assert resp.status_code == 400
        assert "error" in resp.json

    def test_missing_record_is_404(self, client, admin_headers):
        assert client.get("/api/tasks/9999", headers=admin_headers).status_code == 404
        assert client.post("/api/payments/9999/process", headers=admin_headers).status_code == 404
        assert client.delete("/api/expenses/9999", headers=admin_headers).status_code == 404

    def test_bad_time_range_is_400(self, client, admin_headers):
        resp = client.get("/api/dashboard/metrics?timeRange=1w", headers=admin_headers)
        assert resp.status_code == 400

    def test_disabled_staff_loses_access(self, client, admin_headers, staff_user, staff_headers):
        resp = client.post(f"/api/users/{staff_user.id}/disable", headers=admin_headers)
        assert resp.status_code == 200

        assert client.get("/api/auth/me", headers=staff_headers).status_code == 401
        assert get_auth_token(client, staff_user.username, STAFF_PASSWORD) is None

    def test_user_patch_validation_is_400(self, client, admin_headers, staff_user):
        for body in ({"username": None}, {"user_id": 5}, {"status": "archived"}):
            resp = client.patch(f"/api/users/{staff_user.id}", json=body, headers=admin_headers)
            assert resp.status_code == 400, body

    def test_super_admin_patch_cannot_disable(self, client, admin_headers, admin_user):
        resp = client.patch(
            f"/api/users/{admin_user.id}",
            json={"role": "staff", "status": "disabled"},
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert client.get("/api/auth/me", headers=admin_headers).json["user"]["role"] == "super_admin"


# =============================================================================
# AUTH ENDPOINTS / PUBLIC
# =============================================================================


class TestAuthEndpoints:
    def test_login_payload(self, client, staff_user):
        resp = client.post("/api/auth/login", json={
            "username": staff_user.username,
            "password": STAFF_PASSWORD,
        })
        assert resp.status_code == 200
        assert resp.json["token"]
        assert resp.json["user"]["id"] == staff_user.id
        assert "password_hash" not in resp.json["user"]

    def test_bad_login_is_401(self, client, staff_user):
        resp = client.post("/api/auth/login", json={"username": staff_user.username, "password": "nope"})
        assert resp.status_code == 401

    def test_login_requires_both_fields(self, client, db_session):
        assert client.post("/api/auth/login", json={"username": "x"}).status_code == 400

    def test_non_string_credentials_are_400(self, client, staff_user):
        resp = client.post("/api/auth/login", json={"username": staff_user.username, "password": 12345})
        assert resp.status_code == 400
        resp = client.post("/api/auth/login", json={"username": ["x"], "password": STAFF_PASSWORD})
        assert resp.status_code == 400

    def test_logout_revokes_token(self, client, staff_headers):
        assert client.post("/api/auth/logout", headers=staff_headers).status_code == 200
        assert client.get("/api/auth/me", headers=staff_headers).status_code == 401

    def test_setup_admin_is_idempotent(self, client, db_session):
        first = client.post("/api/auth/setup-admin")
        second = client.post("/api/auth/setup-admin")

        assert first.status_code == 201
        assert second.status_code == 200
        assert second.json["message"] == "Admin already exists"

    def test_health(self, client, db_session):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json["status"] == "ok"
