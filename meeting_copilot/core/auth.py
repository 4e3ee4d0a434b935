"""
Authentication and authorization
"""

import hashlib
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from loguru import logger
from passlib.context import CryptContext
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from meeting_copilot.config import settings
from meeting_copilot.core.exceptions import (
    AuthenticationException,
    PermissionDeniedException,
    ValidationException,
)
from meeting_copilot.db.database import get_db
from meeting_copilot.models.user import Account, User

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

security = HTTPBearer(auto_error=False)


def hash_reset_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def generate_reset_token() -> str:
    return secrets.token_hex(32)


class AuthService:
    """Password hashing, token issuing and user lookup"""

    def __init__(self):
        self.secret_key = settings.secret_key
        self.algorithm = settings.algorithm
        self.access_token_expire_minutes = settings.access_token_expire_minutes

    def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        return pwd_context.verify(plain_password, hashed_password)

    def get_password_hash(self, password: str) -> str:
        return pwd_context.hash(password)

    def create_access_token(
        self, data: Dict[str, Any], expires_delta: Optional[timedelta] = None
    ) -> str:
        to_encode = data.copy()
        expire = datetime.now(timezone.utc) + (
            expires_delta or timedelta(minutes=self.access_token_expire_minutes)
        )
        to_encode.update({"exp": expire, "type": "access"})
        return jwt.encode(to_encode, self.secret_key, algorithm=self.algorithm)

    def verify_token(self, token: str, token_type: str = "access") -> Optional[Dict[str, Any]]:
        """Return the payload, or None when the token is invalid or expired."""
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            logger.warning("Token expired")
            return None
        except jwt.InvalidTokenError as e:
            logger.warning(f"JWT decode error: {e}")
            return None

        if payload.get("type") != token_type:
            return None
        return payload

    async def get_user_by_email(self, db: AsyncSession, email: str) -> Optional[User]:
        # Registration normalizes the domain part, so compare case-insensitively
        result = await db.execute(
            select(User).where(func.lower(User.email) == email.strip().lower())
        )
        return result.scalars().first()

    async def get_user_by_id(self, db: AsyncSession, user_id: str) -> Optional[User]:
        result = await db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def is_federated(self, db: AsyncSession, user: User) -> bool:
        """True when the user signs in through an identity provider."""
        if not user.hashed_password:
            return True
        result = await db.execute(
            select(func.count(Account.id)).where(Account.user_id == user.id)
        )
        return (result.scalar() or 0) > 0

    async def authenticate_user(
        self, db: AsyncSession, email: str, password: str
    ) -> Optional[User]:
        user = await self.get_user_by_email(db, email)
        if not user or not user.hashed_password:
            return None
        if not self.verify_password(password, user.hashed_password):
            return None
        return user

    def check_password_strength(self, password: str) -> None:
        if len(password) < settings.password_min_length:
            raise ValidationException(
                f"Password must be at least {settings.password_min_length} characters"
            )

    async def create_user(
        self, db: AsyncSession, email: str, password: str, name: Optional[str] = None
    ) -> User:
        if await self.get_user_by_email(db, email):
            raise ValidationException("Email already registered")
        self.check_password_strength(password)

        user = User(email=email, name=name, hashed_password=self.get_password_hash(password))
        db.add(user)
        await db.commit()
        await db.refresh(user)
        return user

    def issue_token(self, user: User) -> str:
        return self.create_access_token(data={"sub": user.id, "email": user.email})


auth_service = AuthService()


async def get_current_user_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Optional[str]:
    if not credentials:
        return None
    return credentials.credentials


async def require_current_user(
    token: Optional[str] = Depends(get_current_user_token),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Resolve the caller from the bearer token or fail with 401."""
    if not token:
        raise AuthenticationException("Not authenticated")

    payload = auth_service.verify_token(token)
    if not payload:
        raise AuthenticationException("Invalid token")

    user_id = payload.get("sub")
    if not user_id:
        raise AuthenticationException("Invalid token payload")

    # Tokens of deleted users stop working immediately
    user = await auth_service.get_user_by_id(db, str(user_id))
    if not user:
        raise AuthenticationException("User not found")
    return user


def is_admin(user: User) -> bool:
    return bool(settings.admin_email) and user.email == settings.admin_email


async def require_admin_user(current_user: User = Depends(require_current_user)) -> User:
    """Only the configured admin email gets through."""
    if not is_admin(current_user):
        raise PermissionDeniedException("Access denied")
    return current_user
