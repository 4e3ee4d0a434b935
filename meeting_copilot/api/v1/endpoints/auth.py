"""
Authentication endpoints
"""

from typing import Any, Dict

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from meeting_copilot.core.auth import auth_service, require_current_user
from meeting_copilot.core.exceptions import AuthenticationException
from meeting_copilot.core.logging import api_logger as logger
from meeting_copilot.core.mail import MailSender, get_mail_sender
from meeting_copilot.db.database import get_db
from meeting_copilot.models.user import User
from meeting_copilot.schemas.user import (
    ChangePasswordRequest,
    ForgotPasswordRequest,
    LoginRequest,
    RegisterRequest,
    ResetPasswordRequest,
)
from meeting_copilot.services.account import AccountService, get_account_service, user_to_api

router = APIRouter()

FORGOT_PASSWORD_MESSAGE = "If this account exists, a password reset email has been sent."


@router.post("/register", summary="Register a local account")
async def register(
    body: RegisterRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    mail: MailSender = Depends(get_mail_sender),
) -> Dict[str, Any]:
    """
    Create a password account and sign it in.

    - **email**: unique address
    - **password**: at least 8 characters
    - **name**: optional display name
    """
    user = await auth_service.create_user(db, body.email, body.password, body.name)
    background_tasks.add_task(mail.send_new_account_notification, user.email, user.name)
    logger.info(f"Registered user {user.id}")

    return {
        "success": True,
        "user": user_to_api(user),
        "accessToken": auth_service.issue_token(user),
    }


@router.post("/login", summary="Sign in with email and password")
async def login(body: LoginRequest, db: AsyncSession = Depends(get_db)) -> Dict[str, Any]:
    user = await auth_service.authenticate_user(db, body.email, body.password)
    if not user:
        raise AuthenticationException("Incorrect email or password")

    return {
        "success": True,
        "user": user_to_api(user),
        "accessToken": auth_service.issue_token(user),
    }


@router.get("/me", summary="Current user")
async def me(current_user: User = Depends(require_current_user)) -> Dict[str, Any]:
    return {"success": True, "user": user_to_api(current_user)}


@router.post("/change-password", summary="Change own password")
async def change_password(
    body: ChangePasswordRequest,
    current_user: User = Depends(require_current_user),
    accounts: AccountService = Depends(get_account_service),
) -> Dict[str, Any]:
    await accounts.change_password(current_user, body.current_password, body.new_password)
    return {"success": True, "message": "Password changed successfully"}


@router.post("/forgot-password", summary="Request a password reset link")
async def forgot_password(
    body: ForgotPasswordRequest,
    background_tasks: BackgroundTasks,
    accounts: AccountService = Depends(get_account_service),
    mail: MailSender = Depends(get_mail_sender),
) -> Dict[str, Any]:
    """
    The answer is the same whether the account exists, is federated or is
    a local account that was just sent a link.
    """
    issued = await accounts.request_password_reset(body.email)
    if issued:
        address, token = issued
        background_tasks.add_task(mail.send_password_reset_email, address, token)
    return {"success": True, "message": FORGOT_PASSWORD_MESSAGE}


@router.post("/reset-password", summary="Set a new password with a reset token")
async def reset_password(
    body: ResetPasswordRequest,
    accounts: AccountService = Depends(get_account_service),
) -> Dict[str, Any]:
    await accounts.reset_password(body.token, body.password)
    return {"success": True, "message": "Password reset successfully"}
