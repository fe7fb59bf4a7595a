"""
User service for user document access.

Handles user creation, lookup and single-field updates on the users
collection. Credential fields (passwordHash, persistentTokens) are owned by
the auth stores and never written here.
"""

import logging
from typing import Any, Dict, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from app.auth.models import UserStatus
from app.database.collections import USERS, to_object_id
from common.utils.clock import Clock, utcnow
from common.utils.exceptions import (
    InvalidArgumentException,
    InvalidOperationException,
    UserDoesNotExistException,
    UserSuspendedException,
)

logger = logging.getLogger(__name__)


class UserService:
    """
    Manages user documents.
    """

    def __init__(self, db: AsyncIOMotorDatabase, clock: Clock = utcnow):
        """
        Initialize UserService.

        Args:
            db: MongoDB database connection
            clock: Source of the current UTC time
        """
        self._db = db
        self._clock = clock
        self._users_collection = db[USERS]

    # ─────────────────────────────────────────────────────────────────
    # Lookups
    # ─────────────────────────────────────────────────────────────────

    async def get_user_by_id(self, user_id: str) -> Optional[dict]:
        object_id = to_object_id(user_id)
        if object_id is None:
            return None
        return await self._users_collection.find_one({"_id": object_id})

    async def get_user_by_user_name(self, user_name: str) -> Optional[dict]:
        return await self._users_collection.find_one({"userName": user_name})

    async def get_user_by_email(self, email_address: str) -> Optional[dict]:
        return await self._users_collection.find_one({"emailAddress": email_address})

    async def require_user_by_id(self, user_id: str) -> dict:
        """
        Get a user by id that exists and is not suspended.

        Raises:
            UserDoesNotExistException: No user with this id
            UserSuspendedException: User is suspended
        """
        return _ensure_active(await self.get_user_by_id(user_id), {"userId": user_id})

    async def require_user_by_user_name(self, user_name: str) -> dict:
        """
        Get a user by user name that exists and is not suspended.

        Raises:
            UserDoesNotExistException: No user with this user name
            UserSuspendedException: User is suspended
        """
        return _ensure_active(
            await self.get_user_by_user_name(user_name), {"userName": user_name}
        )

    async def require_user_by_email(self, email_address: str) -> dict:
        """
        Get a user by email address that exists and is not suspended.

        Raises:
            UserDoesNotExistException: No user with this email address
            UserSuspendedException: User is suspended
        """
        return _ensure_active(
            await self.get_user_by_email(email_address), {"emailAddress": email_address}
        )

    async def count_users(self, query: Dict[str, Any]) -> int:
        return await self._users_collection.count_documents(query)

    # ─────────────────────────────────────────────────────────────────
    # Mutations
    # ─────────────────────────────────────────────────────────────────

    async def create_user(
        self,
        user_name: str,
        email_address: str,
        name: str,
        user_status: UserStatus = UserStatus.EMAIL_NOT_VERIFIED,
    ) -> dict:
        """
        Create a new user record.

        Args:
            user_name: Unique user name
            email_address: Unique email address
            name: Display name
            user_status: Initial status

        Returns:
            The inserted user document
        """
        now = self._clock()
        user = {
            "userName": user_name,
            "emailAddress": email_address,
            "name": name,
            "userStatus": user_status.value,
            "passwordHash": None,
            "persistentTokens": {},
            "createdAt": now,
            "updatedAt": now,
        }

        result = await self._users_collection.insert_one(user)
        user["_id"] = result.inserted_id

        logger.info(f"User created: {result.inserted_id}")
        return user

    async def update_field(self, user_id: str, field: str, value: Any) -> bool:
        """
        Set a single top-level field on a user document.

        Args:
            user_id: MongoDB user ID
            field: Document field name
            value: New value

        Returns:
            True if the document was modified

        Raises:
            InvalidArgumentException: field is a credential field
            UserDoesNotExistException: user_id is not a valid id
        """
        if field in ("_id", "passwordHash", "persistentTokens"):
            raise InvalidArgumentException(message=f"Field cannot be updated: {field}")

        object_id = to_object_id(user_id)
        if object_id is None:
            raise UserDoesNotExistException(details={"userId": user_id})

        result = await self._users_collection.update_one(
            {"_id": object_id},
            {"$set": {field: value, "updatedAt": self._clock()}},
        )

        if result.modified_count == 0:
            logger.warning(
                f"User {user_id} field {field} was not updated. Did another thread delete the user?"
            )
            return False

        logger.info(f"User {user_id} field {field} updated")
        return True


def _ensure_active(user: Optional[dict], details: Dict[str, Any]) -> dict:
    if user is None:
        raise UserDoesNotExistException(details=details)
    if user.get("userStatus") == UserStatus.SUSPENDED.value:
        raise UserSuspendedException(details=details)
    return user


def user_status_of(user: dict) -> UserStatus:
    """
    Read the status of a user document.

    Raises:
        InvalidOperationException: Stored status is not a known UserStatus
    """
    try:
        return UserStatus(user.get("userStatus"))
    except ValueError:
        raise InvalidOperationException(
            message="User has an unknown status",
            details={"userId": str(user.get("_id")), "userStatus": user.get("userStatus")},
        ) from None


def format_user_response(user: dict) -> dict:
    """Format user document for a response. Credentials are never included."""
    return {
        "id": str(user["_id"]),
        "userName": user.get("userName"),
        "emailAddress": user.get("emailAddress"),
        "name": user.get("name"),
        "userStatus": user.get("userStatus"),
        "createdAt": user.get("createdAt"),
        "updatedAt": user.get("updatedAt"),
    }
