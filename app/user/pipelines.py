"""
User profile pipeline functions.

Stateless orchestration logic for reading the profile, changing the
password and updating the email address, display name and user name.
"""

import asyncio
import logging
from typing import TYPE_CHECKING, Optional

from app.auth.models import (
    PasswordVerificationResult,
    PersistentTokenModel,
    TokenResponse,
    UserStatus,
)
from app.auth.pipelines import validate_new_password
from app.registration.pipelines import send_verification_email
from app.schemas.user import (
    ChangePasswordModel,
    UpdateEmailAddressModel,
    UpdateNameModel,
    UpdateUserNameModel,
)
from app.user.services.user_service import format_user_response, user_status_of
from common.utils.exceptions import InvalidPasswordException, UserAlreadyExistsException

if TYPE_CHECKING:
    from app.dependencies import IdentityServices

logger = logging.getLogger(__name__)


async def get_user_pipeline(services: "IdentityServices", user_id: str) -> dict:
    """
    Get the current user's profile.

    Raises:
        UserDoesNotExistException: User not found
        UserSuspendedException: User is suspended
    """
    user = await services.user_service.require_user_by_id(user_id)
    return format_user_response(user)


async def change_password_pipeline(
    services: "IdentityServices",
    user_id: str,
    model: ChangePasswordModel,
) -> TokenResponse:
    """
    Orchestrates a password change for a signed-in user.

    Saving a new password invalidates every persistent token, so a fresh
    session token (and persistent token, with rememberMe) is returned.

    Args:
        services: Identity services
        user_id: MongoDB user ID
        model: Current password, new password and rememberMe

    Returns:
        TokenResponse

    Raises:
        InsecurePasswordException: New password fails the strength checks
        InvalidPasswordException: Current password is wrong
        UserDoesNotExistException: User not found
        UserSuspendedException: User is suspended
        PasswordException: New password rejected by the password policy
    """
    validate_new_password(services, model.newPassword)

    user = await services.user_service.require_user_by_id(user_id)
    verify_result = await services.password_store.verify_password(user_id, model.currentPassword)

    if verify_result is PasswordVerificationResult.NOT_VERIFIED:
        raise InvalidPasswordException(details={"userId": user_id})

    await services.password_store.save_password(user_id, model.newPassword)
    await services.user_status_cache.invalidate(user_id)

    session_token = services.security_token_issuer.issue(user_id, user)

    persistent_token: Optional[PersistentTokenModel] = None
    if model.rememberMe:
        persistent_token = await services.persistent_token_issuer.issue(user_id)

    logger.info(f"Password changed for user {user_id}")
    return TokenResponse(session_token=session_token, persistent_token=persistent_token)


async def update_email_address_pipeline(
    services: "IdentityServices",
    user_id: str,
    model: UpdateEmailAddressModel,
) -> dict:
    """
    Orchestrates an email address change.

    The new address must be verified again before the account is fully active.

    Raises:
        UserDoesNotExistException: User not found
        UserSuspendedException: User is suspended
        UserAlreadyExistsException: Address belongs to another user
    """
    user = await services.user_service.require_user_by_id(user_id)
    email_address = str(model.emailAddress)

    if email_address == user.get("emailAddress"):
        return format_user_response(user)

    if await services.user_service.count_users({"emailAddress": email_address}) > 0:
        raise UserAlreadyExistsException(details={"emailAddress": email_address})

    await services.user_service.update_field(user_id, "emailAddress", email_address)

    status = user_status_of(user)
    new_status = (
        UserStatus.EMAIL_NOT_VERIFIED_AND_PASSWORD_CHANGE_REQUIRED
        if status.requires_password_change
        else UserStatus.EMAIL_NOT_VERIFIED
    )

    user = dict(user, emailAddress=email_address, userStatus=new_status.value)

    # The address is already changed; the status change and the new
    # verification email must follow even if the caller goes away.
    await asyncio.shield(_complete_email_address_update(services, user_id, user, new_status))

    logger.info(f"Email address updated for user {user_id}")
    return format_user_response(user)


async def _complete_email_address_update(
    services: "IdentityServices",
    user_id: str,
    user: dict,
    new_status: UserStatus,
) -> None:
    await services.user_status_cache.set_user_status(user_id, new_status)
    await send_verification_email(services, user)


async def update_name_pipeline(
    services: "IdentityServices",
    user_id: str,
    model: UpdateNameModel,
) -> dict:
    """
    Update the display name.

    Raises:
        EmailAddressNotVerifiedException, UserMustChangePasswordException,
        UserSuspendedException: User status is not OK
    """
    await services.user_status_validator.validate_user_status(user_id)
    await services.user_service.update_field(user_id, "name", model.name)
    return await get_user_pipeline(services, user_id)


async def update_user_name_pipeline(
    services: "IdentityServices",
    user_id: str,
    model: UpdateUserNameModel,
) -> dict:
    """
    Update the user name.

    Raises:
        EmailAddressNotVerifiedException, UserMustChangePasswordException,
        UserSuspendedException: User status is not OK
        UserAlreadyExistsException: User name is taken
    """
    await services.user_status_validator.validate_user_status(user_id)

    if await services.user_service.count_users({"userName": model.userName}) > 0:
        raise UserAlreadyExistsException(details={"userName": model.userName})

    await services.user_service.update_field(user_id, "userName", model.userName)
    return await get_user_pipeline(services, user_id)
