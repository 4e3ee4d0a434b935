"""
Account request bodies
"""

from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from meeting_copilot.schemas.meeting import CamelModel


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., max_length=128)
    name: Optional[str] = Field(None, max_length=255)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class ChangePasswordRequest(CamelModel):
    current_password: Optional[str] = None
    new_password: Optional[str] = None


class ForgotPasswordRequest(BaseModel):
    # Plain string: a malformed address gets the same answer as an unknown one
    email: Optional[str] = None


class ResetPasswordRequest(BaseModel):
    token: Optional[str] = None
    password: Optional[str] = None


class AdminResetPasswordRequest(CamelModel):
    new_password: Optional[str] = None
