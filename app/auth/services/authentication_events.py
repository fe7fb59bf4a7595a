"""
Authentication audit events.

Every sign-in and token renewal attempt is recorded with its outcome and a
fingerprint of the client headers it arrived with.
"""

import hashlib
import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from app.auth.models import AuthenticationData, AuthenticationResult
from app.database.collections import AUTHENTICATION_EVENTS
from common.utils.clock import Clock, utcnow

logger = logging.getLogger(__name__)


def fingerprint(data: AuthenticationData) -> str:
    """
    Fingerprint the client headers.

    MD5 is used as a grouping key for audit queries, not as a security
    control.
    """
    material = (
        (data.accept or "")
        + (data.content_encoding or "")
        + (data.content_language or "")
        + (data.remote_ip or "")
        + (data.user_agent or "")
    )
    return hashlib.md5(material.encode("utf-8"), usedforsecurity=False).hexdigest().upper()


class AuthenticationEventService:
    """Writes authentication events."""

    def __init__(self, db: AsyncIOMotorDatabase, clock: Clock = utcnow):
        self._events_collection = db[AUTHENTICATION_EVENTS]
        self._clock = clock

    async def record(
        self,
        data: AuthenticationData,
        user_id: Optional[str],
        authentication_result: AuthenticationResult,
    ) -> None:
        event = {
            "userId": user_id,
            "authenticationResult": authentication_result.value,
            "hash": fingerprint(data),
            "accept": data.accept,
            "contentEncoding": data.content_encoding,
            "contentLanguage": data.content_language,
            "remoteIp": data.remote_ip,
            "userAgent": data.user_agent,
            "creationDate": self._clock(),
        }

        await self._events_collection.insert_one(event)
        logger.info(f"Authentication event for user {user_id}: {authentication_result.value}")
