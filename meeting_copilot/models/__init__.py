"""
ORM models
"""

from .user import User, Account, VerificationToken
from .meeting import Meeting

__all__ = [
    "User",
    "Account",
    "VerificationToken",
    "Meeting",
]
