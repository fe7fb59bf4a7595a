"""
Auth system pipeline functions.

Stateless orchestration logic for sign-in, token renewal and password
reset flows.
"""

import logging
from typing import TYPE_CHECKING, Optional

from app.auth.mapping import (
    password_result_to_authentication_result,
    persistent_token_result_to_authentication_result,
    verification_result_to_reset_password_result,
)
from app.auth.models import (
    AuthenticationData,
    AuthenticationResult,
    EmailTokenData,
    PasswordVerificationResult,
    PersistentTokenModel,
    RenewTokenResult,
    ResetPasswordResult,
    SignInResult,
    UserStatus,
    VerificationTokenVerificationResult,
    VerificationType,
)
from app.schemas.auth import (
    RenewTokenModel,
    ResetPasswordModel,
    SendPasswordResetModel,
    SignInModel,
)
from app.user.services.user_service import user_status_of
from common.utils.exceptions import EmailAddressNotVerifiedException, InsecurePasswordException
from common.utils.password import PasswordValidationResult

if TYPE_CHECKING:
    from app.dependencies import IdentityServices

logger = logging.getLogger(__name__)

SIGN_IN_COUNTER_PREFIX = "signin:"

# Status a user moves to when their password turns out to be expired.
_STATUS_AFTER_PASSWORD_EXPIRED = {
    UserStatus.OK: UserStatus.PASSWORD_CHANGE_REQUIRED,
    UserStatus.EMAIL_NOT_VERIFIED: UserStatus.EMAIL_NOT_VERIFIED_AND_PASSWORD_CHANGE_REQUIRED,
}


def validate_new_password(services: "IdentityServices", password: str) -> None:
    """
    Reject passwords that fail the strength checks.

    Raises:
        InsecurePasswordException: Insufficient entropy, too long or blacklisted
    """
    result = services.password_validator.validate(password)
    if result is not PasswordValidationResult.VALID:
        raise InsecurePasswordException(details={"reason": result.value})


async def sign_in_pipeline(
    services: "IdentityServices",
    data: AuthenticationData[SignInModel],
) -> SignInResult:
    """
    Orchestrates the password sign-in flow.

    Args:
        services: Identity services
        data: Sign-in model plus client fingerprint headers

    Returns:
        SignInResult with the authentication result, a session token for
        AUTHENTICATED and PASSWORD_EXPIRED, and a persistent token when
        AUTHENTICATED with rememberMe

    Raises:
        InvalidOperationException: Stored user status is unknown

    Side Effects:
        - Increments the user's sign-in attempt counter (not for suspended users)
        - Moves users with an expired password to a password-change status
        - Records an authentication event for every attempt
    """
    model = data.model
    user = await services.user_service.get_user_by_user_name(model.userName)

    if user is None:
        logger.info("Sign-in attempt for unknown user name")
        await services.authentication_events.record(data, None, AuthenticationResult.NOT_AUTHENTICATED)
        return SignInResult(authentication_result=AuthenticationResult.NOT_AUTHENTICATED)

    user_id = str(user["_id"])
    user_status = user_status_of(user)

    if user_status is UserStatus.SUSPENDED:
        result = AuthenticationResult.SUSPENDED
    else:
        attempts = await services.cache.increment_counter(f"{SIGN_IN_COUNTER_PREFIX}{user_id}")

        if attempts > services.authentication_options.max_password_attempts:
            logger.warning(f"User {user_id} is locked out after {attempts} sign-in attempts")
            result = AuthenticationResult.LOCKED_OUT
        else:
            result = await _verify_password(services, user_id, user_status, model.password)

    session_token: Optional[str] = None
    persistent_token: Optional[PersistentTokenModel] = None

    if result in (AuthenticationResult.AUTHENTICATED, AuthenticationResult.PASSWORD_EXPIRED):
        session_token = services.security_token_issuer.issue(user_id, user)

    if result is AuthenticationResult.AUTHENTICATED and model.rememberMe:
        persistent_token = await services.persistent_token_issuer.issue(user_id)

    await services.authentication_events.record(data, user_id, result)

    logger.info(f"Sign-in for user {user_id}: {result.value}")
    return SignInResult(
        authentication_result=result,
        session_token=session_token,
        persistent_token=persistent_token,
    )


async def _verify_password(
    services: "IdentityServices",
    user_id: str,
    user_status: UserStatus,
    password: str,
) -> AuthenticationResult:
    password_result = await services.password_store.verify_password(user_id, password)

    if password_result is PasswordVerificationResult.VERIFIED_AND_EXPIRED:
        next_status = _STATUS_AFTER_PASSWORD_EXPIRED.get(user_status)
        if next_status is not None:
            await services.user_status_cache.set_user_status(user_id, next_status)
        return AuthenticationResult.PASSWORD_EXPIRED

    if password_result is PasswordVerificationResult.VERIFIED and user_status.requires_password_change:
        return AuthenticationResult.PASSWORD_EXPIRED

    return password_result_to_authentication_result(password_result)


async def renew_token_pipeline(
    services: "IdentityServices",
    data: AuthenticationData[RenewTokenModel],
) -> RenewTokenResult:
    """
    Orchestrates session renewal with a persistent token.

    Args:
        services: Identity services
        data: Renew-token model plus client fingerprint headers

    Returns:
        RenewTokenResult with a session token only when AUTHENTICATED

    Raises:
        UserDoesNotExistException: User not found
        UserSuspendedException: User is suspended
    """
    model = data.model
    user = await services.user_service.require_user_by_id(model.userId)
    user_id = str(user["_id"])
    user_status = user_status_of(user)

    if user_status.requires_password_change:
        result = AuthenticationResult.PASSWORD_EXPIRED
    else:
        token_result = await services.persistent_token_store.verify_persistent_token(
            user_id, model.clientId, model.clientToken
        )
        result = persistent_token_result_to_authentication_result(token_result)

    session_token: Optional[str] = None
    if result is AuthenticationResult.AUTHENTICATED:
        session_token = services.security_token_issuer.issue(user_id, user)

    await services.authentication_events.record(data, user_id, result)

    logger.info(f"Token renewal for user {user_id}: {result.value}")
    return RenewTokenResult(authentication_result=result, session_token=session_token)


async def send_password_reset_pipeline(
    services: "IdentityServices",
    model: SendPasswordResetModel,
) -> None:
    """
    Orchestrates the forgot-password email flow.

    Raises:
        UserDoesNotExistException: User not found
        UserSuspendedException: User is suspended
        EmailAddressNotVerifiedException: Email address not yet verified
        VerificationTooRecentException: A reset email was sent too recently
    """
    user = await services.user_service.require_user_by_user_name(model.userName)
    user_id = str(user["_id"])

    if not user_status_of(user).is_email_verified:
        raise EmailAddressNotVerifiedException(details={"userId": user_id})

    token = await services.verification_service.generate_verification_token(
        user_id, user["emailAddress"], VerificationType.PASSWORD_RESET
    )

    await services.email_service.send_forgot_password_email(
        user["emailAddress"],
        user.get("name", ""),
        EmailTokenData(
            pepper=token.pepper,
            token=token.token,
            user_name=user["userName"],
            validity_period=services.verification_options.max_verification_age,
        ),
    )
    logger.info(f"Password reset email sent for user {user_id}")


async def reset_password_pipeline(
    services: "IdentityServices",
    model: ResetPasswordModel,
) -> ResetPasswordResult:
    """
    Orchestrates the password reset flow.

    Args:
        services: Identity services
        model: Serialized emailed token and the new password

    Returns:
        PASSWORD_RESET, TOKEN_NOT_VERIFIED or TOKEN_EXPIRED

    Raises:
        InsecurePasswordException: New password fails the strength checks
        InvalidTokenException: Token cannot be deserialized
        UserDoesNotExistException: User not found
        UserSuspendedException: User is suspended
        PasswordException: New password rejected by the password policy
    """
    validate_new_password(services, model.password)

    pepper, token, user_name = services.email_token_serializer.deserialize(model.serializedToken)
    user = await services.user_service.require_user_by_user_name(user_name)
    user_id = str(user["_id"])

    # The password policy runs only for a matching token and before the token is consumed.
    check_result = await services.verification_service.check_token(
        user_id, user["emailAddress"], VerificationType.PASSWORD_RESET, token, pepper
    )
    if check_result is VerificationTokenVerificationResult.VERIFIED:
        await services.password_store.check_new_password(user_id, model.password)

    verify_result = await services.verification_service.verify_token(
        user_id, user["emailAddress"], VerificationType.PASSWORD_RESET, token, pepper
    )

    if verify_result is VerificationTokenVerificationResult.VERIFIED:
        await services.password_store.save_password(user_id, model.password)
        await services.user_status_cache.invalidate(user_id)

    result = verification_result_to_reset_password_result(verify_result)
    logger.info(f"Password reset for user {user_id}: {result.value}")
    return result
