"""
Pydantic models for registration requests.
"""

from pydantic import BaseModel, EmailStr, Field

from app.schemas.auth import USER_NAME_PATTERN

__all__ = ["RegisterModel", "ResendVerificationEmailModel"]


class RegisterModel(BaseModel):
    """Request body for account registration."""
    userName: str = Field(..., pattern=USER_NAME_PATTERN)
    emailAddress: EmailStr
    name: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=1)


class ResendVerificationEmailModel(BaseModel):
    """Request body for resending the verification email."""
    emailAddress: EmailStr
