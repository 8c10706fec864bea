"""
Infinite Notepad — Auth API Integration Tests
===============================================
"""

import pytest

from notepad.config import settings
from notepad.services import auth_service as auth_module

from conftest import TEST_PASSWORD


class TestSignup:
    @pytest.mark.asyncio
    async def test_signup_returns_token_and_user(self, client):
        response = await client.post(
            "/api/auth/signup", json={"email": "Alice@Example.com", "password": TEST_PASSWORD}
        )

        assert response.status_code == 201
        body = response.json()
        assert body["token"]
        assert body["requiresConfirmation"] is False
        assert body["user"]["email"] == "alice@example.com"
        assert set(body["user"]) == {"id", "email", "created_at", "email_confirmed_at"}

    @pytest.mark.asyncio
    async def test_duplicate_email(self, client, auth_headers):
        response = await client.post(
            "/api/auth/signup", json={"email": "alice@example.com", "password": TEST_PASSWORD}
        )
        assert response.status_code == 400
        assert response.json()["details"]["field"] == "email"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [
            {"email": "not-an-email", "password": TEST_PASSWORD},
            {"email": "a@example.com", "password": "short"},
            {"email": "a@example.com"},
        ],
    )
    async def test_invalid_signup(self, client, body):
        response = await client.post("/api/auth/signup", json=body)
        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    @pytest.mark.asyncio
    async def test_confirmation_required(self, client, monkeypatch):
        monkeypatch.setattr(settings, "require_email_confirmation", True)
        issued = []
        original = auth_module.create_confirmation_token

        def capture(user):
            token = original(user)
            issued.append(token)
            return token

        monkeypatch.setattr(auth_module, "create_confirmation_token", capture)

        response = await client.post(
            "/api/auth/signup", json={"email": "carol@example.com", "password": TEST_PASSWORD}
        )
        assert response.status_code == 201
        assert response.json()["token"] is None
        assert response.json()["requiresConfirmation"] is True

        login = await client.post(
            "/api/auth/login", json={"email": "carol@example.com", "password": TEST_PASSWORD}
        )
        assert login.status_code == 401

        confirm = await client.get("/api/auth/confirm", params={"token": issued[0]})
        assert confirm.status_code == 200
        assert confirm.json()["user"]["email_confirmed_at"] is not None

        login = await client.post(
            "/api/auth/login", json={"email": "carol@example.com", "password": TEST_PASSWORD}
        )
        assert login.status_code == 200


class TestLogin:
    @pytest.mark.asyncio
    async def test_login(self, client, auth_headers):
        response = await client.post(
            "/api/auth/login", json={"email": "alice@example.com", "password": TEST_PASSWORD}
        )
        assert response.status_code == 200
        token = response.json()["token"]

        notes = await client.get("/api/notes", headers={"Authorization": f"Bearer {token}"})
        assert notes.status_code == 200

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "email,password",
        [("alice@example.com", "wrong-password"), ("nobody@example.com", TEST_PASSWORD)],
    )
    async def test_bad_credentials(self, client, auth_headers, email, password):
        response = await client.post("/api/auth/login", json={"email": email, "password": password})
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid email or password"


class TestVerify:
    @pytest.mark.asyncio
    async def test_verify(self, client, auth_headers):
        response = await client.get("/api/auth/verify", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["user"]["email"] == "alice@example.com"

    @pytest.mark.asyncio
    async def test_verify_without_token(self, client):
        response = await client.get("/api/auth/verify")
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_confirmation_token_is_not_a_bearer_token(self, client, monkeypatch):
        issued = []
        original = auth_module.create_confirmation_token
        monkeypatch.setattr(
            auth_module, "create_confirmation_token", lambda user: issued.append(original(user)) or issued[-1]
        )
        await client.post("/api/auth/signup", json={"email": "dave@example.com", "password": TEST_PASSWORD})

        response = await client.get("/api/auth/verify", headers={"Authorization": f"Bearer {issued[0]}"})
        assert response.status_code == 401
