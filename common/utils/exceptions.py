"""
Identity exceptions with error codes.

Every exception carries a human-readable message, a machine-readable code
and optional details so callers can translate them into their own error
responses without parsing messages.

Example:
    from common.utils.exceptions import UserDoesNotExistException

    user = await user_service.get_user_by_user_name(user_name)
    if not user:
        raise UserDoesNotExistException(details={"userName": user_name})
"""

from typing import Optional, Any, Dict


class IdentityException(Exception):
    """
    Base identity exception with error code support.

    Provides a consistent error shape across services and pipelines.
    """

    default_message = "Identity error"
    default_code = "IDENTITY_ERROR"

    def __init__(
        self,
        message: Optional[str] = None,
        code: Optional[str] = None,
        details: Optional[Any] = None,
    ):
        """
        Create an identity exception.

        Args:
            message: Human-readable error message
            code: Machine-readable error code
            details: Additional error details
        """
        self.message = message or self.default_message
        self.code = code or self.default_code
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the exception for an error response."""
        detail: Dict[str, Any] = {"message": self.message, "code": self.code}

        if self.details is not None:
            detail["details"] = self.details

        return detail


# ─────────────────────────────────────────────────────────────────
# Argument and state errors
# ─────────────────────────────────────────────────────────────────


class InvalidArgumentException(IdentityException, ValueError):
    """A caller supplied a missing or malformed argument."""

    default_message = "Invalid argument"
    default_code = "INVALID_ARGUMENT"


class InvalidEnumValueException(InvalidArgumentException):
    """An enum value outside the known set was supplied."""

    default_message = "Invalid enum value"
    default_code = "INVALID_ENUM_VALUE"


class InvalidOperationException(IdentityException, RuntimeError):
    """The operation cannot run in the current state."""

    default_message = "Invalid operation"
    default_code = "INVALID_OPERATION"


# ─────────────────────────────────────────────────────────────────
# User errors
# ─────────────────────────────────────────────────────────────────


class UserDoesNotExistException(IdentityException):
    default_message = "User does not exist"
    default_code = "USER_DOES_NOT_EXIST"


class UserSuspendedException(IdentityException):
    default_message = "User is suspended"
    default_code = "USER_SUSPENDED"


class UserAlreadyExistsException(IdentityException):
    default_message = "User already exists"
    default_code = "USER_ALREADY_EXISTS"


class UserMustChangePasswordException(IdentityException):
    default_message = "User must change password"
    default_code = "USER_MUST_CHANGE_PASSWORD"


class EmailAddressNotVerifiedException(IdentityException):
    default_message = "Email address is not verified"
    default_code = "EMAIL_ADDRESS_NOT_VERIFIED"


class EmailAddressAlreadyVerifiedException(IdentityException):
    default_message = "Email address is already verified"
    default_code = "EMAIL_ADDRESS_ALREADY_VERIFIED"


# ─────────────────────────────────────────────────────────────────
# Password errors
# ─────────────────────────────────────────────────────────────────


class PasswordException(IdentityException):
    """Base class for password policy violations."""

    default_message = "Password error"
    default_code = "PASSWORD_ERROR"


class PasswordIsIdenticalException(PasswordException):
    default_message = "New password must differ from the current password"
    default_code = "PASSWORD_IS_IDENTICAL"


class PasswordChangeTooRecentException(PasswordException):
    default_message = "Password was changed too recently"
    default_code = "PASSWORD_CHANGE_TOO_RECENT"


class InsecurePasswordException(PasswordException):
    default_message = "Password does not meet the strength requirements"
    default_code = "INSECURE_PASSWORD"


class InvalidPasswordException(IdentityException):
    default_message = "Password is incorrect"
    default_code = "INVALID_PASSWORD"


# ─────────────────────────────────────────────────────────────────
# Verification errors
# ─────────────────────────────────────────────────────────────────


class VerificationException(IdentityException):
    """Base class for verification workflow errors."""

    default_message = "Verification error"
    default_code = "VERIFICATION_ERROR"


class VerificationTooRecentException(VerificationException):
    default_message = "A verification was issued too recently"
    default_code = "VERIFICATION_TOO_RECENT"


class InvalidTokenException(IdentityException):
    default_message = "Token is invalid"
    default_code = "INVALID_TOKEN"
