"""
User, federated account and verification token models
"""

from sqlalchemy import Column, DateTime, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from meeting_copilot.db.database import BaseModel


class User(BaseModel):
    """A person who can sign in"""
    __tablename__ = "users"

    name = Column(String(255), nullable=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    email_verified = Column(DateTime(timezone=True), nullable=True)
    image = Column(String(500), nullable=True)
    # Null for accounts that only sign in through an identity provider
    hashed_password = Column(String(255), nullable=True)

    meetings = relationship(
        "Meeting", back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )
    accounts = relationship(
        "Account", back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )

    __table_args__ = (
        Index("ix_users_created_at", "created_at"),
    )

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}')>"


class Account(BaseModel):
    """Link between a user and an external identity provider"""
    __tablename__ = "accounts"

    user_id = Column(String(32), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    provider = Column(String(50), nullable=False)
    provider_account_id = Column(String(255), nullable=False)
    access_token = Column(Text, nullable=True)
    refresh_token = Column(Text, nullable=True)

    user = relationship("User", back_populates="accounts")

    __table_args__ = (
        UniqueConstraint("provider", "provider_account_id", name="uq_accounts_provider_account"),
    )


class VerificationToken(BaseModel):
    """Single-use password reset token; only the SHA-256 of the token is stored"""
    __tablename__ = "verification_tokens"

    identifier = Column(String(255), nullable=False, index=True)
    token = Column(String(64), unique=True, nullable=False)
    expires = Column(DateTime(timezone=True), nullable=False)
