"""
Admin API tests
"""

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select

from meeting_copilot.models.meeting import Meeting
from meeting_copilot.models.user import Account, User
from meeting_copilot.tests.conftest import headers_for


class TestAdminAccess:

    @pytest.mark.asyncio
    async def test_non_admin_is_forbidden(self, client: AsyncClient, auth_headers: dict):
        response = await client.get("/api/admin/users", headers=auth_headers)
        assert response.status_code == 403
        assert response.json() == {"success": False, "error": "Access denied"}

    @pytest.mark.asyncio
    async def test_anonymous_is_unauthorized(self, client: AsyncClient):
        response = await client.get("/api/admin/users")
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_no_admin_configured(
        self, client: AsyncClient, admin_headers: dict, monkeypatch
    ):
        from meeting_copilot.config import settings

        monkeypatch.setattr(settings, "admin_email", None)
        response = await client.get("/api/admin/users", headers=admin_headers)
        assert response.status_code == 403


class TestListUsers:

    @pytest.mark.asyncio
    async def test_lists_users_with_counts(
        self, client: AsyncClient, admin_headers: dict, test_user: User,
        federated_user: User, make_meeting
    ):
        await make_meeting(test_user)
        await make_meeting(test_user)

        response = await client.get("/api/admin/users", headers=admin_headers)

        assert response.status_code == 200
        users = {u["email"]: u for u in response.json()["users"]}
        assert set(users) == {"admin@example.com", test_user.email, federated_user.email}
        assert users[test_user.email]["meetingCount"] == 2
        assert users[test_user.email]["accountCount"] == 0
        assert users[federated_user.email]["accountCount"] == 1
        assert users["admin@example.com"]["meetingCount"] == 0
        assert "hashed_password" not in users[test_user.email]


class TestDeleteUser:

    @pytest.mark.asyncio
    async def test_delete_cascades(
        self, client: AsyncClient, admin_headers: dict, test_user: User, make_meeting,
        live_store, db_session
    ):
        started = await client.post("/api/meeting/start", headers=headers_for(test_user))
        live_id = started.json()["meeting"]["id"]
        await make_meeting(test_user)
        await make_meeting(test_user)
        email = test_user.email
        user_id = test_user.id

        response = await client.delete(f"/api/admin/users/{user_id}", headers=admin_headers)

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "message": f"User {email} deleted successfully",
            "deletedMeetings": 3,
        }
        assert live_store.get(live_id) is None

        count = await db_session.execute(
            select(func.count(Meeting.id)).where(Meeting.user_id == user_id)
        )
        assert count.scalar() == 0

        listed = await client.get("/api/admin/users", headers=admin_headers)
        assert email not in {u["email"] for u in listed.json()["users"]}

    @pytest.mark.asyncio
    async def test_delete_removes_linked_accounts(
        self, client: AsyncClient, admin_headers: dict, federated_user: User, db_session
    ):
        user_id = federated_user.id

        response = await client.delete(f"/api/admin/users/{user_id}", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["deletedMeetings"] == 0
        count = await db_session.execute(
            select(func.count(Account.id)).where(Account.user_id == user_id)
        )
        assert count.scalar() == 0

    @pytest.mark.asyncio
    async def test_cannot_delete_self(
        self, client: AsyncClient, admin_headers: dict, admin_user: User
    ):
        response = await client.delete(f"/api/admin/users/{admin_user.id}", headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["error"] == "You cannot delete your own admin account"
        listed = await client.get("/api/admin/users", headers=admin_headers)
        assert admin_user.email in {u["email"] for u in listed.json()["users"]}

    @pytest.mark.asyncio
    async def test_unknown_user(self, client: AsyncClient, admin_headers: dict):
        response = await client.delete("/api/admin/users/missing", headers=admin_headers)
        assert response.status_code == 404
        assert response.json()["error"] == "User not found"

    @pytest.mark.asyncio
    async def test_deleted_users_token_stops_working(
        self, client: AsyncClient, admin_headers: dict, test_user: User
    ):
        headers = headers_for(test_user)
        await client.delete(f"/api/admin/users/{test_user.id}", headers=admin_headers)

        response = await client.get("/api/meetings", headers=headers)
        assert response.status_code == 401


class TestAdminResetPassword:

    @pytest.mark.asyncio
    async def test_reset_local_account(
        self, client: AsyncClient, admin_headers: dict, test_user: User
    ):
        response = await client.post(
            f"/api/admin/users/{test_user.id}/reset-password",
            json={"newPassword": "adminchosen"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        login = await client.post(
            "/api/auth/login", json={"email": test_user.email, "password": "adminchosen"}
        )
        assert login.status_code == 200

    @pytest.mark.asyncio
    async def test_weak_password(self, client: AsyncClient, admin_headers: dict, test_user: User):
        response = await client.post(
            f"/api/admin/users/{test_user.id}/reset-password",
            json={"newPassword": "short"},
            headers=admin_headers,
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_federated_account(
        self, client: AsyncClient, admin_headers: dict, federated_user: User
    ):
        response = await client.post(
            f"/api/admin/users/{federated_user.id}/reset-password",
            json={"newPassword": "adminchosen"},
            headers=admin_headers,
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_own_account(self, client: AsyncClient, admin_headers: dict, admin_user: User):
        response = await client.post(
            f"/api/admin/users/{admin_user.id}/reset-password",
            json={"newPassword": "adminchosen"},
            headers=admin_headers,
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_unknown_user(self, client: AsyncClient, admin_headers: dict):
        response = await client.post(
            "/api/admin/users/missing/reset-password",
            json={"newPassword": "adminchosen"},
            headers=admin_headers,
        )
        assert response.status_code == 404
