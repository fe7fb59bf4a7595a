"""
Result mappings between workflow enums and flow outcomes.

Every mapping is total over its source enum; anything else raises
InvalidEnumValueException rather than falling through to a default.
"""

from app.auth.models import (
    AuthenticationResult,
    EmailVerificationResult,
    PasswordVerificationResult,
    PersistentTokenVerificationResult,
    ResetPasswordResult,
    VerificationTokenVerificationResult,
)
from common.utils.exceptions import InvalidEnumValueException

_PASSWORD_TO_AUTHENTICATION = {
    PasswordVerificationResult.NOT_VERIFIED: AuthenticationResult.NOT_AUTHENTICATED,
    PasswordVerificationResult.VERIFIED: AuthenticationResult.AUTHENTICATED,
    PasswordVerificationResult.VERIFIED_AND_EXPIRED: AuthenticationResult.PASSWORD_EXPIRED,
}

_PERSISTENT_TOKEN_TO_AUTHENTICATION = {
    PersistentTokenVerificationResult.NO_TOKEN_AVAILABLE: AuthenticationResult.NOT_AUTHENTICATED,
    PersistentTokenVerificationResult.NOT_VERIFIED: AuthenticationResult.NOT_AUTHENTICATED,
    PersistentTokenVerificationResult.VERIFIED: AuthenticationResult.AUTHENTICATED,
}

_VERIFICATION_TO_RESET_PASSWORD = {
    VerificationTokenVerificationResult.NOT_VERIFIED: ResetPasswordResult.TOKEN_NOT_VERIFIED,
    VerificationTokenVerificationResult.TOKEN_EXPIRED: ResetPasswordResult.TOKEN_EXPIRED,
    VerificationTokenVerificationResult.VERIFIED: ResetPasswordResult.PASSWORD_RESET,
}

_VERIFICATION_TO_EMAIL_VERIFICATION = {
    VerificationTokenVerificationResult.NOT_VERIFIED: EmailVerificationResult.NOT_VERIFIED,
    VerificationTokenVerificationResult.TOKEN_EXPIRED: EmailVerificationResult.TOKEN_EXPIRED,
    VerificationTokenVerificationResult.VERIFIED: EmailVerificationResult.VERIFIED,
}


def _lookup(table: dict, value, source: type, target: type):
    try:
        if not isinstance(value, source):
            raise KeyError(value)
        return table[value]
    except KeyError:
        raise InvalidEnumValueException(
            message=f"Cannot map {value!r} to {target.__name__}",
            details={"value": str(value), "target": target.__name__},
        ) from None


def password_result_to_authentication_result(
    value: PasswordVerificationResult,
) -> AuthenticationResult:
    return _lookup(_PASSWORD_TO_AUTHENTICATION, value, PasswordVerificationResult, AuthenticationResult)


def persistent_token_result_to_authentication_result(
    value: PersistentTokenVerificationResult,
) -> AuthenticationResult:
    return _lookup(_PERSISTENT_TOKEN_TO_AUTHENTICATION, value, PersistentTokenVerificationResult, AuthenticationResult)


def verification_result_to_reset_password_result(
    value: VerificationTokenVerificationResult,
) -> ResetPasswordResult:
    return _lookup(_VERIFICATION_TO_RESET_PASSWORD, value, VerificationTokenVerificationResult, ResetPasswordResult)


def verification_result_to_email_verification_result(
    value: VerificationTokenVerificationResult,
) -> EmailVerificationResult:
    return _lookup(_VERIFICATION_TO_EMAIL_VERIFICATION, value, VerificationTokenVerificationResult, EmailVerificationResult)
