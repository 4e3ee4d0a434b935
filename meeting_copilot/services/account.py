"""
Account management: admin user operations and password flows
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

from fastapi import Depends
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from meeting_copilot.config import settings
from meeting_copilot.core.auth import auth_service, generate_reset_token, hash_reset_token
from meeting_copilot.core.exceptions import ResourceNotFoundException, ValidationException
from meeting_copilot.core.live_store import LiveMeetingStore, get_live_store
from meeting_copilot.core.logging import service_logger as logger
from meeting_copilot.db.database import get_db
from meeting_copilot.models.meeting import Meeting
from meeting_copilot.models.user import Account, User, VerificationToken


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def user_to_api(user: User) -> Dict[str, Any]:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "emailVerified": _isoformat(user.email_verified),
        "image": user.image,
        "createdAt": _isoformat(user.created_at),
        "updatedAt": _isoformat(user.updated_at),
    }


class AccountService:
    """User administration and password lifecycle."""

    def __init__(self, db: AsyncSession, live_store: Optional[LiveMeetingStore] = None):
        self.db = db
        self.live_store = live_store

    async def _get_user(self, user_id: str) -> User:
        user = await auth_service.get_user_by_id(self.db, user_id)
        if user is None:
            raise ResourceNotFoundException("User")
        return user

    async def list_users(self) -> List[Dict[str, Any]]:
        """All users newest first, with meeting and linked account counts."""
        meeting_counts = (
            select(Meeting.user_id, func.count(Meeting.id).label("meeting_count"))
            .group_by(Meeting.user_id)
            .subquery()
        )
        account_counts = (
            select(Account.user_id, func.count(Account.id).label("account_count"))
            .group_by(Account.user_id)
            .subquery()
        )
        result = await self.db.execute(
            select(
                User,
                func.coalesce(meeting_counts.c.meeting_count, 0),
                func.coalesce(account_counts.c.account_count, 0),
            )
            .outerjoin(meeting_counts, meeting_counts.c.user_id == User.id)
            .outerjoin(account_counts, account_counts.c.user_id == User.id)
            .order_by(User.created_at.desc(), User.id.desc())
        )

        users = []
        for user, meeting_count, account_count in result.all():
            data = user_to_api(user)
            data["meetingCount"] = meeting_count
            data["accountCount"] = account_count
            users.append(data)
        return users

    async def delete_user(self, user_id: str, current_user: User) -> Tuple[User, int]:
        """
        Delete a user together with their meetings and linked accounts.

        Returns the deleted user and how many meetings went with it.
        """
        if user_id == current_user.id:
            raise ValidationException("You cannot delete your own admin account")

        user = await self._get_user(user_id)
        result = await self.db.execute(select(Meeting.id).where(Meeting.user_id == user.id))
        meeting_ids = list(result.scalars().all())

        await self.db.execute(delete(Meeting).where(Meeting.user_id == user.id))
        await self.db.execute(delete(Account).where(Account.user_id == user.id))
        await self.db.execute(
            delete(VerificationToken).where(VerificationToken.identifier == user.email)
        )
        await self.db.delete(user)
        await self.db.commit()

        if self.live_store is not None:
            for meeting_id in meeting_ids:
                self.live_store.remove(meeting_id)

        logger.info(f"Deleted user {user.email} and {len(meeting_ids)} meetings")
        return user, len(meeting_ids)

    async def admin_reset_password(
        self, user_id: str, new_password: Optional[str], current_user: User
    ) -> User:
        auth_service.check_password_strength(new_password or "")

        user = await self._get_user(user_id)
        if await auth_service.is_federated(self.db, user):
            raise ValidationException("Cannot reset the password of a federated account")
        if user.id == current_user.id:
            raise ValidationException("Use the account settings to change your own password")

        user.hashed_password = auth_service.get_password_hash(new_password)
        await self.db.commit()
        logger.info(f"Admin {current_user.email} reset the password of {user.email}")
        return user

    async def change_password(
        self, user: User, current_password: Optional[str], new_password: Optional[str]
    ) -> None:
        if not current_password or not new_password:
            raise ValidationException("Current and new password are required")
        auth_service.check_password_strength(new_password)

        if await auth_service.is_federated(self.db, user):
            raise ValidationException(
                "Your account signs in through an identity provider; it has no password to change"
            )
        if not auth_service.verify_password(current_password, user.hashed_password):
            raise ValidationException("Current password is incorrect")

        user.hashed_password = auth_service.get_password_hash(new_password)
        await self.db.commit()
        logger.info(f"User {user.id} changed their password")

    async def request_password_reset(
        self, email: Optional[str]
    ) -> Optional[Tuple[str, str]]:
        """
        Issue a reset token for a local account.

        Returns the stored address and the raw token to email it, or None
        when no email must be sent (unknown or federated account). Callers
        answer identically either way.
        """
        if not email:
            raise ValidationException("Email required")

        user = await auth_service.get_user_by_email(self.db, email)
        if user is None or await auth_service.is_federated(self.db, user):
            logger.info("Password reset requested for an account without a local password")
            return None

        token = generate_reset_token()
        await self.db.execute(
            delete(VerificationToken).where(VerificationToken.identifier == user.email)
        )
        self.db.add(
            VerificationToken(
                identifier=user.email,
                token=hash_reset_token(token),
                expires=datetime.now(timezone.utc)
                + timedelta(seconds=settings.reset_token_ttl_seconds),
            )
        )
        await self.db.commit()
        return user.email, token

    async def reset_password(self, token: Optional[str], password: Optional[str]) -> User:
        if not token or not password:
            raise ValidationException("Token and password are required")
        auth_service.check_password_strength(password)

        hashed = hash_reset_token(token)
        result = await self.db.execute(
            select(VerificationToken).where(VerificationToken.token == hashed)
        )
        verification = result.scalar_one_or_none()
        if verification is None:
            raise ValidationException("Invalid or expired token")

        if _as_utc(verification.expires) < datetime.now(timezone.utc):
            await self.db.delete(verification)
            await self.db.commit()
            raise ValidationException("This link has expired. Please request a new one.")

        user = await auth_service.get_user_by_email(self.db, verification.identifier)
        if user is None:
            raise ResourceNotFoundException("User")

        user.hashed_password = auth_service.get_password_hash(password)
        await self.db.delete(verification)
        await self.db.commit()
        logger.info(f"Password reset completed for user {user.id}")
        return user


async def get_account_service(
    db: AsyncSession = Depends(get_db),
    live_store: LiveMeetingStore = Depends(get_live_store),
) -> AccountService:
    return AccountService(db, live_store)
