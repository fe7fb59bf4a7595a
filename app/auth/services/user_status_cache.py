"""
Cached user status.

Reads go to Redis first and fall back to the users collection. Writes
update the cache and then the database; once started they run to
completion even if the caller is cancelled.
"""

import asyncio
import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from app.auth.models import UserStatus
from app.database.collections import USERS, to_object_id
from app.user.services.user_service import user_status_of
from common.cache import CacheClient
from common.utils.exceptions import UserDoesNotExistException

logger = logging.getLogger(__name__)

KEY_PREFIX = "userstatus:"


class UserStatusCache:
    """User status backed by Redis and MongoDB."""

    def __init__(self, db: AsyncIOMotorDatabase, cache: CacheClient):
        self._cache = cache
        self._users_collection = db[USERS]

    async def get_user_status(self, user_id: str) -> UserStatus:
        """
        Get a user's status.

        Raises:
            UserDoesNotExistException: User not found
        """
        cached = await self._cache.get_value(_key(user_id))
        if cached:
            try:
                return UserStatus(cached)
            except ValueError:
                logger.warning(f"Discarding unknown cached status for user {user_id}: {cached}")

        object_id = to_object_id(user_id)
        user = None
        if object_id is not None:
            user = await self._users_collection.find_one({"_id": object_id}, {"userStatus": 1})
        if user is None:
            raise UserDoesNotExistException(details={"userId": user_id})

        status = user_status_of(user)
        await self._cache.set_value(_key(user_id), status.value)
        return status

    async def set_user_status(self, user_id: str, user_status: UserStatus) -> None:
        """Set a user's status in the cache and the database."""
        await asyncio.shield(self._set_user_status(user_id, user_status))

    async def invalidate(self, user_id: str) -> None:
        """Drop the cached status so the next read comes from the database."""
        await self._cache.delete_value(_key(user_id))

    async def _set_user_status(self, user_id: str, user_status: UserStatus) -> None:
        await self._cache.set_value(_key(user_id), user_status.value)

        object_id = to_object_id(user_id)
        if object_id is None:
            raise UserDoesNotExistException(details={"userId": user_id})

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


def _key(user_id: Optional[str]) -> str:
    return f"{KEY_PREFIX}{user_id}"
