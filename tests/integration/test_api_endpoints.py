"""
Integration tests for API endpoints.

These tests drive the whole serverless application in-process: lazy
initialization, SQLite database, session middleware, admin routes and the
JSON error stage.

To run these tests:
    pytest tests/integration/test_api_endpoints.py -v
"""

import pytest
from fastapi.testclient import TestClient

from app.serverless import ServerlessApplication


ADMIN_USERNAME = "ops"
ADMIN_PASSWORD = "bootstrap-password"

CONTACT = {
    "name": "Dana Miner",
    "email": "dana@example.com",
    "phone": "+1 555 0100",
    "company": "Hashworks",
    "service": "colocation",
    "message": "We need rack space for 200 ASICs.",
}

APPOINTMENT = {
    "name": "Dana Miner",
    "email": "dana@example.com",
    "service": "site-visit",
    "notes": "Morning preferred",
    "requested_time": "2030-03-15T10:00:00",
    "timezone": "America/New_York",
}


@pytest.fixture
def client(make_config, static_dir, tmp_path):
    config = make_config(
        DATABASE_URL=f"sqlite:///{tmp_path / 'hosting.db'}",
        SESSION_SECRET="integration-secret",
        SESSION_COOKIE_SECURE="false",
        STATIC_DIR=str(static_dir),
        ADMIN_BOOTSTRAP_USERNAME=ADMIN_USERNAME,
        ADMIN_BOOTSTRAP_PASSWORD=ADMIN_PASSWORD,
    )
    return TestClient(ServerlessApplication(config_loader=lambda: config))


@pytest.fixture
def auth_headers(client):
    response = client.post(
        "/api/admin/login",
        json={"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD},
    )
    assert response.status_code == 200
    client.cookies.clear()
    return {"Authorization": f"Bearer {response.json()['token']}"}


class TestPublicEndpoints:

    def test_health(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_submit_contact(self, client):
        response = client.post("/api/contact", json=CONTACT)

        assert response.status_code == 201
        data = response.json()
        assert data["id"]
        assert data["status"] == "unread"
        assert data["email"] == CONTACT["email"]

    def test_submit_contact_invalid_email(self, client):
        response = client.post("/api/contact", json={**CONTACT, "email": "not-an-email"})

        assert response.status_code == 422
        body = response.json()
        assert body["error"] == "Invalid request"
        assert any(d["field"] == "email" for d in body["details"])

    def test_submit_contact_blank_message(self, client):
        response = client.post("/api/contact", json={**CONTACT, "message": "   "})
        assert response.status_code == 422

    def test_book_appointment(self, client):
        response = client.post("/api/appointments", json=APPOINTMENT)

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "pending"
        assert data["timezone"] == "America/New_York"
        # 10:00 in New York (EDT) is 14:00 UTC
        assert data["requested_time"].startswith("2030-03-15T14:00:00")

    def test_book_appointment_unknown_timezone(self, client):
        response = client.post("/api/appointments", json={**APPOINTMENT, "timezone": "Mars/Olympus"})
        assert response.status_code == 422


class TestAdminAuthentication:

    def test_login_returns_token_and_cookie(self, client):
        response = client.post(
            "/api/admin/login",
            json={"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["token"]
        assert data["token_type"] == "bearer"
        assert data["admin"]["username"] == ADMIN_USERNAME
        assert "admin_session" in response.cookies

    def test_cookie_session(self, client):
        client.post(
            "/api/admin/login",
            json={"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD},
        )

        response = client.get("/api/admin/me")

        assert response.status_code == 200
        assert response.json()["username"] == ADMIN_USERNAME

    def test_wrong_password_and_unknown_user_look_the_same(self, client):
        wrong_password = client.post(
            "/api/admin/login",
            json={"username": ADMIN_USERNAME, "password": "nope"},
        )
        unknown_user = client.post(
            "/api/admin/login",
            json={"username": "nobody", "password": ADMIN_PASSWORD},
        )

        assert wrong_password.status_code == unknown_user.status_code == 401
        assert wrong_password.json() == unknown_user.json() == {"error": "Invalid username or password"}

    def test_protected_endpoints_require_session(self, client):
        for path in ["/api/admin/me", "/api/admin/contacts", "/api/admin/appointments"]:
            response = client.get(path)
            assert response.status_code == 401
            assert response.json() == {"error": "Not authenticated"}

    def test_logout_revokes_token(self, client, auth_headers):
        assert client.get("/api/admin/me", headers=auth_headers).status_code == 200

        response = client.post("/api/admin/logout", headers=auth_headers)
        assert response.status_code == 204

        assert client.get("/api/admin/me", headers=auth_headers).status_code == 401

    def test_logout_is_idempotent(self, client, auth_headers):
        assert client.post("/api/admin/logout", headers=auth_headers).status_code == 204
        assert client.post("/api/admin/logout", headers=auth_headers).status_code == 204
        assert client.post("/api/admin/logout").status_code == 204

    def test_create_admin_user(self, client, auth_headers):
        response = client.post(
            "/api/admin/users",
            json={"username": "second", "password": "another-password"},
            headers=auth_headers,
        )
        assert response.status_code == 201

        login = client.post(
            "/api/admin/login",
            json={"username": "second", "password": "another-password"},
        )
        assert login.status_code == 200

    def test_duplicate_admin_user(self, client, auth_headers):
        response = client.post(
            "/api/admin/users",
            json={"username": ADMIN_USERNAME, "password": "another-password"},
            headers=auth_headers,
        )
        assert response.status_code == 400


class TestAdminContacts:

    def test_list_and_update(self, client, auth_headers):
        created = client.post("/api/contact", json=CONTACT).json()
        client.post("/api/contact", json={**CONTACT, "name": "Second"})

        listing = client.get("/api/admin/contacts", headers=auth_headers)
        assert listing.status_code == 200
        assert listing.json()["total"] == 2

        updated = client.patch(
            f"/api/admin/contacts/{created['id']}",
            json={"status": "responded"},
            headers=auth_headers,
        )
        assert updated.status_code == 200
        assert updated.json()["status"] == "responded"

        unread = client.get("/api/admin/contacts?status=unread", headers=auth_headers).json()
        assert unread["total"] == 1
        assert unread["items"][0]["name"] == "Second"

    def test_get_single(self, client, auth_headers):
        created = client.post("/api/contact", json=CONTACT).json()

        response = client.get(f"/api/admin/contacts/{created['id']}", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["message"] == CONTACT["message"]

    def test_unknown_id(self, client, auth_headers):
        response = client.get("/api/admin/contacts/does-not-exist", headers=auth_headers)

        assert response.status_code == 404
        assert "not found" in response.json()["error"]

    def test_invalid_status(self, client, auth_headers):
        created = client.post("/api/contact", json=CONTACT).json()

        response = client.patch(
            f"/api/admin/contacts/{created['id']}",
            json={"status": "archived"},
            headers=auth_headers,
        )
        assert response.status_code == 422


class TestAdminAppointments:

    def test_approve(self, client, auth_headers):
        created = client.post("/api/appointments", json=APPOINTMENT).json()

        response = client.patch(
            f"/api/admin/appointments/{created['id']}",
            json={"status": "approved"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json()["status"] == "approved"

        pending = client.get("/api/admin/appointments?status=pending", headers=auth_headers).json()
        assert pending["total"] == 0

    def test_reject_unknown(self, client, auth_headers):
        response = client.patch(
            "/api/admin/appointments/does-not-exist",
            json={"status": "rejected"},
            headers=auth_headers,
        )
        assert response.status_code == 404

    def test_list(self, client, auth_headers):
        client.post("/api/appointments", json=APPOINTMENT)

        response = client.get("/api/admin/appointments", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["total"] == 1
        assert response.json()["items"][0]["service"] == "site-visit"
