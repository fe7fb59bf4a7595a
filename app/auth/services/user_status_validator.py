"""
User status checks for operations that need a fully active account.
"""

import logging

from app.auth.models import UserStatus
from app.auth.services.user_status_cache import UserStatusCache
from common.utils.exceptions import (
    EmailAddressNotVerifiedException,
    UserMustChangePasswordException,
    UserSuspendedException,
)

logger = logging.getLogger(__name__)

_STATUS_ERRORS = {
    UserStatus.EMAIL_NOT_VERIFIED: EmailAddressNotVerifiedException,
    UserStatus.EMAIL_NOT_VERIFIED_AND_PASSWORD_CHANGE_REQUIRED: EmailAddressNotVerifiedException,
    UserStatus.PASSWORD_CHANGE_REQUIRED: UserMustChangePasswordException,
    UserStatus.SUSPENDED: UserSuspendedException,
}


class UserStatusValidator:
    def __init__(self, user_status_cache: UserStatusCache):
        self._user_status_cache = user_status_cache

    async def validate_user_status(self, user_id: str) -> UserStatus:
        """
        Ensure a user's status is OK.

        Raises:
            EmailAddressNotVerifiedException: Email address not yet verified
            UserMustChangePasswordException: Password change required
            UserSuspendedException: User is suspended
            UserDoesNotExistException: User not found
        """
        status = await self._user_status_cache.get_user_status(user_id)
        error = _STATUS_ERRORS.get(status)
        if error is not None:
            logger.info(f"User {user_id} rejected with status {status.value}")
            raise error(details={"userId": user_id})
        return status
