"""
Tests for the user endpoints.
"""

import uuid
from datetime import datetime, timedelta, timezone

import jwt
import pytest


def _register(client, username="alice", password="pw", role="reader", headers=None):
    return client.post(
        "/users",
        json={"username": username, "password": password, "role": role},
        headers=headers,
    )


class TestRegistration:
    """Test cases for POST /users."""

    def test_reader_registration_is_open(self, client):
        response = _register(client)

        assert response.status_code == 201
        data = response.json()
        assert data["message"] == f"user created with id: {data['id']}"

    def test_registered_reader_can_sign_in(self, client):
        _register(client, password="pw")

        response = client.post("/signin", json={"username": "alice", "password": "pw"})

        assert response.status_code == 201
        assert response.json()["role"] == "reader"

    def test_duplicate_username(self, client):
        assert _register(client).status_code == 201

        response = _register(client, password="other")

        assert response.status_code == 409
        assert response.json() == {"message": "username already exists"}

    @pytest.mark.parametrize("role", ["", "admin", "superuser", "Reader"])
    def test_unknown_role(self, client, role):
        response = _register(client, role=role)

        assert response.status_code == 400
        assert response.json() == {"message": "wrong user role"}

    def test_missing_username(self, client):
        response = _register(client, username="  ")
        assert response.status_code == 400

    def test_missing_password(self, client):
        response = _register(client, password="")
        assert response.status_code == 400

    def test_reader_registration_ignores_stale_token(self, client, signing_key):
        expired = jwt.encode(
            {
                "username": "someone",
                "role": "reader",
                "exp": datetime.now(timezone.utc) - timedelta(minutes=1),
            },
            signing_key,
            algorithm="HS256",
        )

        response = _register(client, headers={"Authorization": f"Bearer {expired}"})

        assert response.status_code == 201

    def test_reader_registration_ignores_malformed_header(self, client):
        response = _register(client, headers={"Authorization": "garbage"})
        assert response.status_code == 201

    def test_administrator_with_invalid_token(self, client):
        response = _register(
            client,
            username="root",
            role="administrator",
            headers={"Authorization": "Bearer not.a.token"},
        )
        assert response.status_code == 401

    def test_administrator_requires_token(self, client):
        response = _register(client, username="root", role="administrator")
        assert response.status_code == 401

    def test_administrator_requires_administrator_token(self, client, reader_headers):
        response = _register(client, username="root", role="administrator", headers=reader_headers)
        assert response.status_code == 401

    def test_administrator_creates_administrator(self, client, admin_headers):
        response = _register(client, username="root", role="administrator", headers=admin_headers)
        assert response.status_code == 201

        users = client.get("/users", headers=admin_headers).json()
        assert {"root", "admin"} <= {user["username"] for user in users}


class TestUserManagement:
    """Test cases for listing, updating and deleting users."""

    def test_list_hides_passwords(self, client, admin_headers):
        _register(client)

        response = client.get("/users", headers=admin_headers)

        assert response.status_code == 200
        for user in response.json():
            assert set(user) == {"id", "username", "role"}

    def test_reader_cannot_list_users(self, client, reader_headers):
        response = client.get("/users", headers=reader_headers)
        assert response.status_code == 401

    def test_get_user(self, client, admin_headers):
        user_id = _register(client).json()["id"]

        response = client.get(f"/users/{user_id}", headers=admin_headers)

        assert response.status_code == 200
        assert response.json() == {"id": user_id, "username": "alice", "role": "reader"}

    def test_password_update_is_hashed(self, client, admin_headers):
        user_id = _register(client, password="old").json()["id"]

        response = client.put(f"/users/{user_id}", headers=admin_headers, json={"password": "new"})

        assert response.status_code == 200
        assert response.json() == {"message": "user updated"}
        assert client.post("/signin", json={"username": "alice", "password": "new"}).status_code == 201
        assert client.post("/signin", json={"username": "alice", "password": "old"}).status_code == 401

    def test_partial_update_keeps_other_fields(self, client, admin_headers):
        user_id = _register(client).json()["id"]

        client.put(f"/users/{user_id}", headers=admin_headers, json={"role": "administrator"})

        user = client.get(f"/users/{user_id}", headers=admin_headers).json()
        assert user == {"id": user_id, "username": "alice", "role": "administrator"}

    def test_update_with_bad_role(self, client, admin_headers):
        user_id = _register(client).json()["id"]

        response = client.put(f"/users/{user_id}", headers=admin_headers, json={"role": "boss"})

        assert response.status_code == 400

    def test_rename_to_taken_username(self, client, admin_headers):
        user_id = _register(client).json()["id"]

        response = client.put(f"/users/{user_id}", headers=admin_headers, json={"username": "admin"})

        assert response.status_code == 409

    def test_update_unknown_user(self, client, admin_headers):
        response = client.put(f"/users/{uuid.uuid4()}", headers=admin_headers, json={"username": "x"})
        assert response.status_code == 404

    def test_delete_user(self, client, admin_headers):
        user_id = _register(client).json()["id"]

        response = client.delete(f"/users/{user_id}", headers=admin_headers)

        assert response.status_code == 200
        assert response.json() == {"message": "user deleted"}
        assert client.get(f"/users/{user_id}", headers=admin_headers).status_code == 404

    def test_delete_unknown_user(self, client, admin_headers):
        user_id = str(uuid.uuid4())

        response = client.delete(f"/users/{user_id}", headers=admin_headers)

        assert response.status_code == 404
        assert response.json() == {"message": f"user with id: {user_id} not found"}

    def test_reader_cannot_delete(self, client, admin_headers, reader_headers):
        user_id = _register(client).json()["id"]

        response = client.delete(f"/users/{user_id}", headers=reader_headers)

        assert response.status_code == 401
        assert client.get(f"/users/{user_id}", headers=admin_headers).status_code == 200
