"""Tests for caller identity, permission checks and the /me endpoint."""
from unittest.mock import patch

from marina.models.base import RoleEnum


class TestIdentity:

    def test_missing_header_is_401(self, api_client):
        resp = api_client.get("/api/v1/me")
        assert resp.status_code == 401

    def test_unknown_user_is_401(self, api_client, profiles):
        resp = api_client.get("/api/v1/me", headers={"X-User-Id": "9999"})
        assert resp.status_code == 401

    def test_inactive_user_is_401(self, api_client, db, profiles, auth):
        profiles[RoleEnum.OPERATOR].is_active = False
        db.commit()
        resp = api_client.get("/api/v1/me", headers=auth(RoleEnum.OPERATOR))
        assert resp.status_code == 401


class TestMe:

    def test_inspector_profile(self, api_client, auth):
        data = api_client.get("/api/v1/me", headers=auth(RoleEnum.INSPECTOR)).json()
        assert data["role"] == "inspector"
        assert "RECORD_INSPECTION" in data["permissions"]
        assert "MANAGE_USERS" not in data["permissions"]
        hrefs = [n["href"] for n in data["navigation"]]
        assert "/inspection" in hrefs
        assert "/bookings" not in hrefs

    def test_admin_has_every_permission(self, api_client, auth):
        from marina.modules.rbac import PERMISSIONS

        data = api_client.get("/api/v1/me", headers=auth(RoleEnum.ADMIN)).json()
        assert set(data["permissions"]) == set(PERMISSIONS)


class TestPermissionGate:

    def test_inspector_cannot_create_bookings(self, api_client, auth, berth):
        resp = api_client.post("/api/v1/bookings", headers=auth(RoleEnum.INSPECTOR), json={
            "berth_id": berth.berth_id,
            "check_in_date": "2025-07-10",
            "check_out_date": "2025-07-12",
            "guest_name": "Ana Horvat",
        })
        assert resp.status_code == 403
        assert "EDIT_BOOKINGS" in resp.json()["detail"]

    def test_operator_cannot_manage_berths(self, api_client, auth):
        resp = api_client.post("/api/v1/berths", headers=auth(RoleEnum.OPERATOR), json={
            "code": "A-09", "latitude": 43.5, "longitude": 16.4,
        })
        assert resp.status_code == 403

    def test_manager_cannot_read_audit_log(self, api_client, auth):
        assert api_client.get("/api/v1/audit-log", headers=auth(RoleEnum.MANAGER)).status_code == 403


class TestAPIKeyGate:

    def test_key_required_when_configured(self, api_client, auth):
        with patch("marina.main.settings.MARINA_API_KEY", "s3cret"):
            assert api_client.get("/api/v1/me", headers=auth(RoleEnum.ADMIN)).status_code == 401
            ok = api_client.get("/api/v1/me", headers={**auth(RoleEnum.ADMIN), "X-API-Key": "s3cret"})
            assert ok.status_code == 200
            assert api_client.get("/health").status_code == 200
