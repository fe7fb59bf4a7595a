"""
Pydantic models for profile and password updates.
"""

from pydantic import BaseModel, EmailStr, Field

from app.schemas.auth import USER_NAME_PATTERN

__all__ = [
    "ChangePasswordModel",
    "UpdateEmailAddressModel",
    "UpdateNameModel",
    "UpdateUserNameModel",
]


class ChangePasswordModel(BaseModel):
    """Request body for changing the password of a signed-in user."""
    currentPassword: str = Field(..., min_length=1)
    newPassword: str = Field(..., min_length=1)
    rememberMe: bool = Field(default=False, description="Also issue a persistent token")


class UpdateEmailAddressModel(BaseModel):
    emailAddress: EmailStr


class UpdateNameModel(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)


class UpdateUserNameModel(BaseModel):
    userName: str = Field(..., pattern=USER_NAME_PATTERN)
