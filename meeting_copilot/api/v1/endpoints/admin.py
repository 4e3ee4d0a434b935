"""
Admin endpoints, reserved to the configured admin email
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends

from meeting_copilot.core.auth import require_admin_user
from meeting_copilot.models.user import User
from meeting_copilot.schemas.user import AdminResetPasswordRequest
from meeting_copilot.services.account import AccountService, get_account_service

router = APIRouter()


@router.get("/users", summary="List users")
async def list_users(
    admin: User = Depends(require_admin_user),
    accounts: AccountService = Depends(get_account_service),
) -> Dict[str, Any]:
    return {"users": await accounts.list_users()}


@router.delete("/users/{user_id}", summary="Delete a user and their meetings")
async def delete_user(
    user_id: str,
    admin: User = Depends(require_admin_user),
    accounts: AccountService = Depends(get_account_service),
) -> Dict[str, Any]:
    user, deleted_meetings = await accounts.delete_user(user_id, admin)
    return {
        "success": True,
        "message": f"User {user.email} deleted successfully",
        "deletedMeetings": deleted_meetings,
    }


@router.post("/users/{user_id}/reset-password", summary="Set a user's password")
async def reset_user_password(
    user_id: str,
    body: AdminResetPasswordRequest,
    admin: User = Depends(require_admin_user),
    accounts: AccountService = Depends(get_account_service),
) -> Dict[str, Any]:
    user = await accounts.admin_reset_password(user_id, body.new_password, admin)
    return {"success": True, "message": f"Password of {user.email} reset successfully"}
