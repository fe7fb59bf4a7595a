"""
Password credential store.

Owns the ``passwordHash`` sub-document of a user: saving a new password
under the age and reuse policy, verifying passwords with transparent
rehashing, and downgrading "password change required" statuses once a new
password is saved.
"""

import logging
from datetime import datetime
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from app.auth.models import (
    PasswordHash,
    PasswordVerificationResult,
    UserStatus,
    VerifyPasswordResult,
)
from app.auth.services.password_hasher import PasswordHasher, get_version
from app.database.collections import USERS, to_object_id
from app.options import PasswordOptions
from common.utils.clock import Clock, truncate_to_milliseconds, utcnow
from common.utils.exceptions import (
    InvalidArgumentException,
    PasswordChangeTooRecentException,
    PasswordIsIdenticalException,
    UserDoesNotExistException,
)

logger = logging.getLogger(__name__)

# Status a user moves to once a new password is saved.
_STATUS_AFTER_PASSWORD_SAVE = {
    UserStatus.PASSWORD_CHANGE_REQUIRED: UserStatus.OK,
    UserStatus.EMAIL_NOT_VERIFIED_AND_PASSWORD_CHANGE_REQUIRED: UserStatus.EMAIL_NOT_VERIFIED,
}


class PasswordStore:
    """
    Saves and verifies user passwords.
    Password hashes are stored as the passwordHash sub-document of the user.
    """

    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        options: PasswordOptions,
        password_hasher: PasswordHasher,
        clock: Clock = utcnow,
    ):
        """
        Initialize PasswordStore.

        Args:
            db: MongoDB database connection
            options: Password age and reuse policy
            password_hasher: Hasher configured with the current version
            clock: Source of the current UTC time
        """
        self._options = options
        self._password_hasher = password_hasher
        self._clock = clock
        self._users_collection = db[USERS]

    async def save_password(self, user_id: str, password: str) -> None:
        """
        Save a new password for a user.

        Args:
            user_id: MongoDB user ID
            password: New plain-text password

        Raises:
            InvalidArgumentException: Blank user_id or password
            UserDoesNotExistException: User not found
            PasswordChangeTooRecentException: Inside the minimum password age
            PasswordIsIdenticalException: Password matches the current one

        Side Effects:
            - Replaces user.passwordHash
            - Moves PasswordChangeRequired statuses to their next status
        """
        _require(user_id, "user_id")
        _require(password, "password")

        user = await self._get_user(user_id)
        now = self._clock()
        self._check_policy(user, user_id, password, now)

        await self._write_password_hash(user["_id"], user_id, password, now)

        status = _parse_status(user.get("userStatus"))
        next_status = _STATUS_AFTER_PASSWORD_SAVE.get(status)
        if next_status is not None:
            await self._update_user_status(user["_id"], user_id, next_status)

    async def check_new_password(self, user_id: str, password: str) -> None:
        """
        Apply the age and reuse policy to a new password without saving it.

        Raises:
            InvalidArgumentException: Blank user_id or password
            UserDoesNotExistException: User not found
            PasswordChangeTooRecentException: Inside the minimum password age
            PasswordIsIdenticalException: Password matches the current one
        """
        _require(user_id, "user_id")
        _require(password, "password")

        user = await self._get_user(user_id)
        self._check_policy(user, user_id, password, self._clock())

    async def verify_password(self, user_id: str, password: str) -> PasswordVerificationResult:
        """
        Verify a user's password.

        Args:
            user_id: MongoDB user ID
            password: Candidate plain-text password

        Returns:
            NOT_VERIFIED, VERIFIED, or VERIFIED_AND_EXPIRED when the password
            matches but its expiration date has passed

        Raises:
            InvalidArgumentException: Blank user_id or password
            UserDoesNotExistException: User not found

        Side Effects:
            - Rehashes with the current version when the stored hash is older
        """
        _require(user_id, "user_id")
        _require(password, "password")

        user = await self._get_user(user_id)
        current = PasswordHash.from_document(user.get("passwordHash"))

        if current is None or not current.hash:
            return PasswordVerificationResult.NOT_VERIFIED

        result = self._password_hasher.verify_password(
            get_version(current.version),
            current.salt,
            current.hash,
            password,
        )

        if result is VerifyPasswordResult.NOT_VERIFIED:
            return PasswordVerificationResult.NOT_VERIFIED

        if result is VerifyPasswordResult.VERIFIED_AND_REHASH_REQUIRED:
            # A rehash is not a password change; keep the original dates.
            await self._write_password_hash(
                user["_id"],
                user_id,
                password,
                current.last_change_date,
                current.expiration_date,
            )

        expiration_date = current.expiration_date
        if expiration_date is not None and expiration_date <= self._clock():
            return PasswordVerificationResult.VERIFIED_AND_EXPIRED

        return PasswordVerificationResult.VERIFIED

    def _check_policy(self, user: dict, user_id: str, password: str, now: datetime) -> None:
        current = PasswordHash.from_document(user.get("passwordHash"))
        if current is None or not current.hash:
            return

        min_age = self._options.min_password_age
        if min_age is not None and now <= current.last_change_date + min_age:
            raise PasswordChangeTooRecentException(details={"userId": user_id})

        if self._options.disallow_saving_identical_passwords:
            result = self._password_hasher.verify_password(
                get_version(current.version),
                current.salt,
                current.hash,
                password,
            )
            if result is not VerifyPasswordResult.NOT_VERIFIED:
                raise PasswordIsIdenticalException(details={"userId": user_id})

    async def _get_user(self, user_id: str) -> dict:
        object_id = to_object_id(user_id)
        user = None
        if object_id is not None:
            user = await self._users_collection.find_one({"_id": object_id})
        if user is None:
            raise UserDoesNotExistException(details={"userId": user_id})
        return user

    async def _write_password_hash(
        self,
        object_id,
        user_id: str,
        password: str,
        last_change_date: datetime,
        expiration_date: Optional[datetime] = None,
    ) -> None:
        hash_result = self._password_hasher.hash_password(password)
        last_change_date = truncate_to_milliseconds(last_change_date)

        if expiration_date is None and self._options.max_password_age is not None:
            expiration_date = last_change_date + self._options.max_password_age

        password_hash = PasswordHash(
            hash=hash_result.hash,
            salt=hash_result.salt,
            version=hash_result.version.name,
            last_change_date=last_change_date,
            expiration_date=expiration_date,
        )

        result = await self._users_collection.update_one(
            {"_id": object_id},
            {"$set": {"passwordHash": password_hash.to_document()}},
        )

        if result.modified_count > 0:
            logger.info(f"Successfully updated the user's password: {user_id}")
        else:
            logger.warning(
                f"The user's password was not modified. Did another thread delete the user? {user_id}"
            )

    async def _update_user_status(self, object_id, user_id: str, user_status: UserStatus) -> None:
        result = await self._users_collection.update_one(
            {"_id": object_id},
            {"$set": {"userStatus": user_status.value}},
        )

        if result.modified_count > 0:
            logger.info(f"Successfully updated the user status of {user_id} to {user_status.value}")
        else:
            logger.warning(
                f"The user status of {user_id} was not modified. Did another thread delete the user?"
            )


def _require(value: Optional[str], name: str) -> None:
    if not value or not value.strip():
        raise InvalidArgumentException(message=f"{name} must not be empty")


def _parse_status(value) -> Optional[UserStatus]:
    try:
        return UserStatus(value)
    except ValueError:
        return None
