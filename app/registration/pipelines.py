"""
Registration pipeline functions.

Stateless orchestration logic for registration, email verification,
resending verification emails and rejecting registrations.
"""

import asyncio
import logging
import re
from typing import TYPE_CHECKING

from app.auth.mapping import verification_result_to_email_verification_result
from app.auth.models import (
    EmailTokenData,
    EmailVerificationResult,
    ResendVerificationEmailResult,
    UserStatus,
    VerificationTokenVerificationResult,
    VerificationType,
)
from app.auth.pipelines import validate_new_password
from app.schemas.auth import USER_NAME_PATTERN
from app.schemas.registration import RegisterModel, ResendVerificationEmailModel
from app.user.services.user_service import format_user_response, user_status_of
from common.utils.exceptions import (
    EmailAddressAlreadyVerifiedException,
    InvalidTokenException,
    UserAlreadyExistsException,
)
from common.utils.password import PasswordValidationResult

if TYPE_CHECKING:
    from app.dependencies import IdentityServices

logger = logging.getLogger(__name__)

COOLDOWN_PREFIX = "cooldown:"

_USER_NAME_REGEX = re.compile(USER_NAME_PATTERN)


async def register_pipeline(services: "IdentityServices", model: RegisterModel) -> dict:
    """
    Orchestrates the user registration flow.

    Args:
        services: Identity services
        model: User name, email address, display name and password

    Returns:
        The created user, formatted for a response

    Raises:
        InsecurePasswordException: Password fails the strength checks
        UserAlreadyExistsException: User name or email address already taken

    Side Effects:
        - Inserts the user with status EmailNotVerified
        - Saves the password
        - Generates an email verification token and sends it
        - Starts the resend cooldown for the email address
    """
    validate_new_password(services, model.password)

    email_address = str(model.emailAddress)
    count = await services.user_service.count_users(
        {"$or": [{"userName": model.userName}, {"emailAddress": email_address}]}
    )
    if count > 0:
        raise UserAlreadyExistsException(details={"userName": model.userName})

    user = await services.user_service.create_user(
        user_name=model.userName,
        email_address=email_address,
        name=model.name,
        user_status=UserStatus.EMAIL_NOT_VERIFIED,
    )

    # The user document exists now; finish the registration even if the
    # caller goes away.
    await asyncio.shield(_complete_registration(services, user, model.password))

    logger.info(f"User registered: {user['_id']}")
    return format_user_response(user)


async def _complete_registration(services: "IdentityServices", user: dict, password: str) -> None:
    user_id = str(user["_id"])

    await services.password_store.save_password(user_id, password)
    await send_verification_email(services, user)

    # Seed the cooldown so the user cannot immediately ask for a resend.
    await services.cache.get_cooldown_status(f"{COOLDOWN_PREFIX}{user['emailAddress']}")


async def send_verification_email(services: "IdentityServices", user: dict) -> None:
    """Generate an email verification token for the user's address and email it."""
    token = await services.verification_service.generate_verification_token(
        str(user["_id"]), user["emailAddress"], VerificationType.EMAIL_VERIFICATION
    )
    await services.email_service.send_verification_email(
        user["emailAddress"],
        user.get("name", ""),
        EmailTokenData(
            pepper=token.pepper,
            token=token.token,
            user_name=user["userName"],
            validity_period=services.verification_options.max_verification_age,
        ),
    )


async def is_user_name_available_pipeline(services: "IdentityServices", user_name: str) -> bool:
    """Check that a user name is well-formed and not taken."""
    if not user_name or not _USER_NAME_REGEX.match(user_name):
        return False
    return await services.user_service.count_users({"userName": user_name}) == 0


def validate_password_pipeline(services: "IdentityServices", password: str) -> PasswordValidationResult:
    """Report how a candidate password fares against the strength checks."""
    return services.password_validator.validate(password)


async def verify_email_address_pipeline(
    services: "IdentityServices",
    serialized_token: str,
) -> EmailVerificationResult:
    """
    Orchestrates the email verification flow.

    Args:
        services: Identity services
        serialized_token: Token from the verification email link

    Returns:
        VERIFIED, NOT_VERIFIED or TOKEN_EXPIRED

    Raises:
        InvalidTokenException: Token cannot be deserialized
        UserDoesNotExistException: User not found
        UserSuspendedException: User is suspended
    """
    pepper, token, user_name = services.email_token_serializer.deserialize(serialized_token)
    user = await services.user_service.require_user_by_user_name(user_name)
    user_id = str(user["_id"])

    verify_result = await services.verification_service.verify_token(
        user_id, user["emailAddress"], VerificationType.EMAIL_VERIFICATION, token, pepper
    )

    if verify_result is VerificationTokenVerificationResult.VERIFIED:
        await services.user_status_cache.invalidate(user_id)

    result = verification_result_to_email_verification_result(verify_result)
    logger.info(f"Email verification for user {user_id}: {result.value}")
    return result


async def resend_verification_email_pipeline(
    services: "IdentityServices",
    model: ResendVerificationEmailModel,
) -> ResendVerificationEmailResult:
    """
    Orchestrates resending the verification email.

    Args:
        services: Identity services
        model: Email address to resend to

    Returns:
        ResendVerificationEmailResult; email_sent is False while the
        cooldown for the address is running

    Raises:
        UserDoesNotExistException: No user with this email address
        UserSuspendedException: User is suspended
        EmailAddressAlreadyVerifiedException: Nothing left to verify
    """
    user = await services.user_service.require_user_by_email(str(model.emailAddress))

    if user_status_of(user).is_email_verified:
        raise EmailAddressAlreadyVerifiedException(details={"userId": str(user["_id"])})

    cooldown = await services.cache.get_cooldown_status(f"{COOLDOWN_PREFIX}{user['emailAddress']}")

    if cooldown.is_on_cooldown:
        logger.info(f"Verification email for user {user['_id']} is on cooldown")
    else:
        logger.debug("Cooldown has expired. Resending the verification email.")
        await send_verification_email(services, user)

    return ResendVerificationEmailResult(
        email_sent=not cooldown.is_on_cooldown,
        time_to_live=cooldown.time_to_live,
        expire_time=cooldown.expire_time,
    )


async def reject_registration_pipeline(services: "IdentityServices", serialized_token: str) -> None:
    """
    Orchestrates rejecting a registration from the verification email.

    A verified token suspends the account.

    Raises:
        InvalidTokenException: Token cannot be deserialized or does not verify
        UserDoesNotExistException: User not found
        UserSuspendedException: User is already suspended
    """
    pepper, token, user_name = services.email_token_serializer.deserialize(serialized_token)
    user = await services.user_service.require_user_by_user_name(user_name)
    user_id = str(user["_id"])

    verify_result = await services.verification_service.verify_token(
        user_id, user["emailAddress"], VerificationType.EMAIL_VERIFICATION, token, pepper
    )

    if verify_result is not VerificationTokenVerificationResult.VERIFIED:
        raise InvalidTokenException(details={"result": verify_result.value})

    logger.info(f"Registration rejected. User {user_id} will be suspended.")
    await services.user_status_cache.set_user_status(user_id, UserStatus.SUSPENDED)

