"""
Authentication and password flow tests
"""

import re
from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from meeting_copilot.api.v1.endpoints.auth import FORGOT_PASSWORD_MESSAGE
from meeting_copilot.core.auth import hash_reset_token
from meeting_copilot.models.user import User, VerificationToken
from meeting_copilot.tests.conftest import headers_for


def token_from_mail(mail: dict) -> str:
    return re.search(r"token=([0-9a-f]+)", mail["body"]).group(1)


async def login(client: AsyncClient, email: str, password: str):
    return await client.post("/api/auth/login", json={"email": email, "password": password})


class TestRegisterAndLogin:

    @pytest.mark.asyncio
    async def test_register_returns_token_and_notifies_admin(
        self, client: AsyncClient, mail_sender
    ):
        response = await client.post(
            "/api/auth/register",
            json={"email": "new@example.com", "password": "longenough", "name": "New"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["user"]["email"] == "new@example.com"
        assert "hashed_password" not in data["user"]

        me = await client.get(
            "/api/auth/me", headers={"Authorization": f"Bearer {data['accessToken']}"}
        )
        assert me.json()["user"]["id"] == data["user"]["id"]

        assert [m["to"] for m in mail_sender.sent] == ["admin@example.com"]
        assert "new@example.com" in mail_sender.sent[0]["body"]

    @pytest.mark.asyncio
    async def test_duplicate_email_is_rejected(self, client: AsyncClient, test_user: User):
        response = await client.post(
            "/api/auth/register", json={"email": test_user.email, "password": "longenough"}
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Email already registered"

    @pytest.mark.asyncio
    async def test_short_password_is_rejected(self, client: AsyncClient):
        response = await client.post(
            "/api/auth/register", json={"email": "short@example.com", "password": "short"}
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_login(self, client: AsyncClient, test_user: User):
        response = await login(client, "test@example.com", "testpassword")
        assert response.status_code == 200
        assert response.json()["user"]["id"] == test_user.id

    @pytest.mark.asyncio
    async def test_wrong_password(self, client: AsyncClient, test_user: User):
        response = await login(client, "test@example.com", "nope-nope")
        assert response.status_code == 401
        assert response.json() == {"success": False, "error": "Incorrect email or password"}

    @pytest.mark.asyncio
    async def test_federated_user_cannot_use_password_login(
        self, client: AsyncClient, federated_user: User
    ):
        response = await login(client, federated_user.email, "anything")
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_me_requires_token(self, client: AsyncClient):
        response = await client.get("/api/auth/me")
        assert response.status_code == 401


class TestChangePassword:

    @pytest.mark.asyncio
    async def test_change_password(self, client: AsyncClient, auth_headers: dict):
        response = await client.post(
            "/api/auth/change-password",
            json={"currentPassword": "testpassword", "newPassword": "brandnewpassword"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json()["message"] == "Password changed successfully"
        assert (await login(client, "test@example.com", "brandnewpassword")).status_code == 200
        assert (await login(client, "test@example.com", "testpassword")).status_code == 401

    @pytest.mark.asyncio
    async def test_wrong_current_password(self, client: AsyncClient, auth_headers: dict):
        response = await client.post(
            "/api/auth/change-password",
            json={"currentPassword": "not-it", "newPassword": "brandnewpassword"},
            headers=auth_headers,
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Current password is incorrect"

    @pytest.mark.asyncio
    async def test_missing_fields(self, client: AsyncClient, auth_headers: dict):
        response = await client.post(
            "/api/auth/change-password", json={"newPassword": "brandnewpassword"}, headers=auth_headers
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_weak_new_password(self, client: AsyncClient, auth_headers: dict):
        response = await client.post(
            "/api/auth/change-password",
            json={"currentPassword": "testpassword", "newPassword": "short"},
            headers=auth_headers,
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Password must be at least 8 characters"

    @pytest.mark.asyncio
    async def test_federated_account_has_no_password(
        self, client: AsyncClient, federated_user: User
    ):
        response = await client.post(
            "/api/auth/change-password",
            json={"currentPassword": "whatever", "newPassword": "brandnewpassword"},
            headers=headers_for(federated_user),
        )
        assert response.status_code == 400


class TestForgotPassword:

    @pytest.mark.asyncio
    async def test_answer_does_not_reveal_account_state(
        self, client: AsyncClient, test_user: User, federated_user: User, mail_sender, db_session
    ):
        answers = []
        for email in ("nobody@example.com", federated_user.email, test_user.email):
            response = await client.post("/api/auth/forgot-password", json={"email": email})
            assert response.status_code == 200
            answers.append(response.json())

        assert answers == [{"success": True, "message": FORGOT_PASSWORD_MESSAGE}] * 3

        assert [m["to"] for m in mail_sender.sent] == [test_user.email]
        result = await db_session.execute(select(VerificationToken))
        tokens = result.scalars().all()
        assert [t.identifier for t in tokens] == [test_user.email]
        # Only the hash is stored
        assert tokens[0].token == hash_reset_token(token_from_mail(mail_sender.sent[0]))

    @pytest.mark.asyncio
    async def test_new_request_replaces_old_token(
        self, client: AsyncClient, test_user: User, db_session
    ):
        await client.post("/api/auth/forgot-password", json={"email": test_user.email})
        await client.post("/api/auth/forgot-password", json={"email": test_user.email})

        result = await db_session.execute(select(VerificationToken))
        assert len(result.scalars().all()) == 1

    @pytest.mark.asyncio
    async def test_mixed_case_address_as_registered(
        self, client: AsyncClient, mail_sender, db_session
    ):
        registered = await client.post(
            "/api/auth/register",
            json={"email": "Alice@Example.COM", "password": "longenough"},
        )
        stored_email = registered.json()["user"]["email"]
        mail_sender.sent.clear()

        response = await client.post("/api/auth/forgot-password", json={"email": "Alice@Example.COM"})

        assert response.json() == {"success": True, "message": FORGOT_PASSWORD_MESSAGE}
        assert [m["to"] for m in mail_sender.sent] == [stored_email]
        result = await db_session.execute(select(VerificationToken))
        assert [t.identifier for t in result.scalars().all()] == [stored_email]

        token = token_from_mail(mail_sender.sent[0])
        reset = await client.post(
            "/api/auth/reset-password", json={"token": token, "password": "resetpassword"}
        )
        assert reset.status_code == 200
        assert (await login(client, "alice@example.com", "resetpassword")).status_code == 200

    @pytest.mark.asyncio
    async def test_email_required(self, client: AsyncClient):
        response = await client.post("/api/auth/forgot-password", json={})
        assert response.status_code == 400
        assert response.json()["error"] == "Email required"


class TestResetPassword:

    @pytest.mark.asyncio
    async def test_reset_with_emailed_token(
        self, client: AsyncClient, test_user: User, mail_sender, db_session
    ):
        await client.post("/api/auth/forgot-password", json={"email": test_user.email})
        token = token_from_mail(mail_sender.sent[0])

        response = await client.post(
            "/api/auth/reset-password", json={"token": token, "password": "resetpassword"}
        )

        assert response.status_code == 200
        assert response.json()["message"] == "Password reset successfully"
        assert (await login(client, test_user.email, "resetpassword")).status_code == 200

        # Tokens are single use
        again = await client.post(
            "/api/auth/reset-password", json={"token": token, "password": "anotherpassword"}
        )
        assert again.status_code == 400
        assert again.json()["error"] == "Invalid or expired token"

    @pytest.mark.asyncio
    async def test_unknown_token(self, client: AsyncClient):
        response = await client.post(
            "/api/auth/reset-password", json={"token": "deadbeef", "password": "resetpassword"}
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid or expired token"

    @pytest.mark.asyncio
    async def test_expired_token_is_deleted(
        self, client: AsyncClient, test_user: User, db_session
    ):
        db_session.add(
            VerificationToken(
                identifier=test_user.email,
                token=hash_reset_token("expired"),
                expires=datetime.now(timezone.utc) - timedelta(minutes=1),
            )
        )
        await db_session.commit()

        response = await client.post(
            "/api/auth/reset-password", json={"token": "expired", "password": "resetpassword"}
        )

        assert response.status_code == 400
        assert "expired" in response.json()["error"]
        result = await db_session.execute(select(VerificationToken))
        assert result.scalars().all() == []
        assert (await login(client, test_user.email, "testpassword")).status_code == 200

    @pytest.mark.asyncio
    async def test_missing_fields(self, client: AsyncClient):
        response = await client.post("/api/auth/reset-password", json={"token": "abc"})
        assert response.status_code == 400
