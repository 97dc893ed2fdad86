"""
Authentication route tests.

Covers registration, login, logout, /me, and that every protected route
rejects requests without a valid bearer token.
"""

from datetime import timedelta

import pytest

from paint_erp.models import SessionToken, User
from paint_erp.services import session_service
from paint_erp.time_utils import utcnow


PROTECTED_ROUTES = [
    ("GET", "/api/auth/me"),
    ("POST", "/api/auth/logout"),
    ("GET", "/api/inventory/brands"),
    ("POST", "/api/inventory/brands"),
    ("GET", "/api/inventory/types"),
    ("GET", "/api/inventory/types/1"),
    ("POST", "/api/inventory/types"),
    ("GET", "/api/inventory/products"),
    ("POST", "/api/inventory/products"),
    ("GET", "/api/inventory/products/low-stock"),
    ("POST", "/api/inventory/products/bulk"),
    ("GET", "/api/inventory/products/1"),
    ("GET", "/api/inventory/products/1/Emulsion"),
    ("PUT", "/api/inventory/products/1"),
    ("DELETE", "/api/inventory/products/1"),
    ("PATCH", "/api/inventory/products/1/stock"),
    ("POST", "/api/billing/invoices"),
    ("GET", "/api/billing/invoices"),
    ("GET", "/api/billing/invoices/1"),
]


class TestAuthenticationRequired:
    """Protected routes return 401 in the envelope."""

    @pytest.mark.parametrize("method,path", PROTECTED_ROUTES)
    def test_missing_token(self, client, db_session, method, path):
        response = client.open(path, method=method, json={})

        assert response.status_code == 401
        assert response.json == {"success": False, "message": "Authentication required"}

    @pytest.mark.parametrize("method,path", PROTECTED_ROUTES)
    def test_bogus_token(self, client, db_session, method, path):
        response = client.open(path, method=method, json={}, headers={"Authorization": "Bearer not-a-real-token"})

        assert response.status_code == 401
        assert response.json["message"] == "Invalid or expired token"


class TestRegisterAndLogin:

    def test_register_returns_token(self, client, db_session):
        response = client.post("/api/auth/register", json={
            "name": "New Staff",
            "email": "New@PaintShop.test",
            "password": "Password123",
        })

        assert response.status_code == 201
        body = response.json
        assert body["success"] is True
        assert body["data"]["user"]["email"] == "new@paintshop.test"
        assert body["data"]["user"]["role"] == "staff"

        me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {body['data']['token']}"})
        assert me.status_code == 200
        assert me.json["data"]["name"] == "New Staff"

    def test_register_cannot_pick_role(self, client, db_session):
        response = client.post("/api/auth/register", json={
            "name": "Sneaky",
            "email": "sneaky@paintshop.test",
            "password": "Password123",
            "role": "super_admin",
        })
        assert response.status_code == 201
        assert response.json["data"]["user"]["role"] == "staff"

    @pytest.mark.parametrize("payload,message", [
        ({"name": "", "email": "a@b.co", "password": "Password123"}, "Name is required"),
        ({"name": "A", "email": "not-an-email", "password": "Password123"}, "A valid email is required"),
        ({"name": "A", "email": "a@b.co", "password": "short1"}, "Password must be at least 8 characters long"),
        ({"name": "A", "email": "a@b.co", "password": "longpassword"}, "Password must contain at least one digit"),
    ])
    def test_register_validation(self, client, db_session, payload, message):
        response = client.post("/api/auth/register", json=payload)

        assert response.status_code == 400
        assert response.json["message"] == message

    def test_register_duplicate_email(self, client, db_session, user):
        response = client.post("/api/auth/register", json={
            "name": "Again",
            "email": "STAFF@paintshop.test",
            "password": "Password123",
        })
        assert response.status_code == 400
        assert response.json["message"] == "User with this email already exists"

    def test_login(self, client, db_session, user):
        response = client.post("/api/auth/login", json={"email": "staff@paintshop.test", "password": "Password123"})

        assert response.status_code == 200
        assert response.json["data"]["token"]
        db_session.expire_all()
        assert db_session.get(User, user.id).last_login_at is not None

    @pytest.mark.parametrize("payload,status", [
        ({"email": "staff@paintshop.test", "password": "WrongPass1"}, 401),
        ({"email": "nobody@paintshop.test", "password": "Password123"}, 401),
        ({"email": "staff@paintshop.test"}, 400),
        ({}, 400),
    ])
    def test_login_failures(self, client, db_session, user, payload, status):
        response = client.post("/api/auth/login", json=payload)

        assert response.status_code == status
        assert response.json["success"] is False

    def test_inactive_user_cannot_login(self, client, db_session, user):
        user.is_active = False
        db_session.commit()

        response = client.post("/api/auth/login", json={"email": "staff@paintshop.test", "password": "Password123"})
        assert response.status_code == 401


class TestSessions:

    def test_logout_revokes_token(self, client, db_session, user, headers_for):
        headers = headers_for(user)

        assert client.post("/api/auth/logout", headers=headers).status_code == 200
        assert client.get("/api/auth/me", headers=headers).status_code == 401

    def test_idle_session_is_revoked(self, client, db_session, user):
        session, token = session_service.create_session(user_id=user.id)
        session.last_activity_at = utcnow() - timedelta(hours=3)
        db_session.commit()

        assert client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"}).status_code == 401

        db_session.expire_all()
        revoked = db_session.get(SessionToken, session.id)
        assert revoked.is_revoked is True
        assert revoked.revoked_reason == "Idle timeout"

    def test_expired_session(self, client, db_session, user):
        session, token = session_service.create_session(user_id=user.id)
        session.expires_at = utcnow() - timedelta(minutes=1)
        db_session.commit()

        assert client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"}).status_code == 401

    def test_deactivated_user_loses_session(self, client, db_session, user, headers_for):
        headers = headers_for(user)
        user.is_active = False
        db_session.commit()

        assert client.get("/api/auth/me", headers=headers).status_code == 401

    def test_cleanup_expired_sessions(self, db_session, user):
        session, _ = session_service.create_session(user_id=user.id)
        session.expires_at = utcnow() - timedelta(days=40)
        session.created_at = utcnow() - timedelta(days=41)
        db_session.commit()

        assert session_service.cleanup_expired_sessions(retention_days=30) == 1
        assert db_session.query(SessionToken).count() == 0
