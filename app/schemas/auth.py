"""
Pydantic models for sign-in, token renewal and password reset requests.
"""

from pydantic import BaseModel, Field

__all__ = [
    "USER_NAME_PATTERN",
    "SignInModel",
    "RenewTokenModel",
    "SendPasswordResetModel",
    "ResetPasswordModel",
]

USER_NAME_PATTERN = r"^[0-9A-Za-z\-._~!*]{4,32}$"


class SignInModel(BaseModel):
    """Request body for password sign-in."""
    userName: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)
    rememberMe: bool = Field(default=False, description="Also issue a persistent token")


class RenewTokenModel(BaseModel):
    """Request body for renewing a session token with a persistent token."""
    userId: str = Field(..., min_length=1)
    clientId: str = Field(..., min_length=1)
    clientToken: str = Field(..., min_length=1)


class SendPasswordResetModel(BaseModel):
    """Request body for requesting a password reset email."""
    userName: str = Field(..., pattern=USER_NAME_PATTERN)


class ResetPasswordModel(BaseModel):
    """Request body for resetting a password with an emailed token."""
    serializedToken: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)
