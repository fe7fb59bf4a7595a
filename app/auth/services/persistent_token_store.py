"""
Persistent ("remember me") token store.

Tokens live in the user document as a mapping keyed by client id:

    persistentTokens: {<clientId>: {clientId, expirationDate, hash}}

The hash is derived from ``clientId + clientSecret`` salted with the
user's current password hash, so saving a new password invalidates every
persistent token without touching them.
"""

import logging
from datetime import datetime
from typing import Dict, List

from motor.motor_asyncio import AsyncIOMotorDatabase

from app.auth.models import (
    PasswordHash,
    PersistentToken,
    PersistentTokenVerificationResult,
    VerifyPasswordResult,
)
from app.auth.services.password_hasher import PasswordHasher
from app.database.collections import USERS, to_object_id
from app.options import PersistentTokenOptions
from common.utils.clock import Clock, truncate_to_milliseconds, utcnow
from common.utils.exceptions import (
    InvalidArgumentException,
    InvalidOperationException,
    UserDoesNotExistException,
)

logger = logging.getLogger(__name__)

TOKENS_FIELD = "persistentTokens"


class PersistentTokenStore:
    """
    Saves and verifies persistent tokens.
    """

    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        options: PersistentTokenOptions,
        password_hasher: PasswordHasher,
        clock: Clock = utcnow,
    ):
        """
        Initialize PersistentTokenStore.

        Args:
            db: MongoDB database connection
            options: Token lifetime settings
            password_hasher: Hasher configured with the current version
            clock: Source of the current UTC time
        """
        self._options = options
        self._password_hasher = password_hasher
        self._clock = clock
        self._users_collection = db[USERS]

    async def save_persistent_token(self, user_id: str, client_id: str, client_secret: str) -> datetime:
        """
        Save (or refresh) the token for a client.

        Args:
            user_id: MongoDB user ID
            client_id: Client identifier, used as the mapping key
            client_secret: Secret handed to the client

        Returns:
            The token's expiration date

        Raises:
            InvalidArgumentException: Blank or unusable arguments
            UserDoesNotExistException: User not found
            InvalidOperationException: User has no password hash

        Side Effects:
            - Sets persistentTokens.<client_id>
            - Removes other clients' expired tokens
        """
        _require(user_id, "user_id")
        _require_client_id(client_id)
        _require(client_secret, "client_secret")

        user = await self._get_user(user_id)
        password_hash = PasswordHash.from_document(user.get("passwordHash"))
        if password_hash is None or not password_hash.hash:
            raise InvalidOperationException(
                message="User has no password hash",
                code="PASSWORD_HASH_MISSING",
                details={"userId": user_id},
            )

        now = self._clock()
        expiration_date = truncate_to_milliseconds(now + self._options.max_token_age)
        hash_result = self._password_hasher.hash_password(
            client_id + client_secret,
            salt=password_hash.hash,
            version=self._password_hasher.current_version,
        )
        token = PersistentToken(
            client_id=client_id,
            expiration_date=expiration_date,
            hash=hash_result.hash,
        )

        result = await self._users_collection.update_one(
            {"_id": user["_id"]},
            {"$set": {f"{TOKENS_FIELD}.{client_id}": token.to_document()}},
        )

        if result.modified_count > 0:
            logger.info(f"Persistent token saved for user {user_id}, client {client_id}")
        else:
            logger.warning(
                f"Persistent token for user {user_id} was not saved. Did another thread delete the user?"
            )

        tokens = _load_tokens(user)
        tokens.pop(client_id, None)
        await self._purge_expired_tokens(user["_id"], user_id, tokens, now)

        return expiration_date

    async def verify_persistent_token(
        self,
        user_id: str,
        client_id: str,
        client_secret: str,
    ) -> PersistentTokenVerificationResult:
        """
        Verify a client's persistent token.

        Args:
            user_id: MongoDB user ID
            client_id: Client identifier
            client_secret: Secret presented by the client

        Returns:
            NO_TOKEN_AVAILABLE when there is no unexpired token for the client
            or the user has no password hash; VERIFIED or NOT_VERIFIED otherwise

        Raises:
            InvalidArgumentException: Blank arguments
            UserDoesNotExistException: User not found

        Side Effects:
            - Removes expired tokens
        """
        _require(user_id, "user_id")
        _require(client_id, "client_id")
        _require(client_secret, "client_secret")

        user = await self._get_user(user_id)
        now = self._clock()
        tokens = _load_tokens(user)

        result = PersistentTokenVerificationResult.NO_TOKEN_AVAILABLE
        token = tokens.get(client_id)
        password_hash = PasswordHash.from_document(user.get("passwordHash"))

        if (
            token is not None
            and token.expiration_date > now
            and password_hash is not None
            and password_hash.hash
        ):
            # Tokens are always hashed and checked with the current version,
            # so a rehash can never be requested here.
            verify_result = self._password_hasher.verify_password(
                self._password_hasher.current_version,
                password_hash.hash,
                token.hash,
                client_id + client_secret,
            )
            result = (
                PersistentTokenVerificationResult.VERIFIED
                if verify_result is VerifyPasswordResult.VERIFIED
                else PersistentTokenVerificationResult.NOT_VERIFIED
            )

        await self._purge_expired_tokens(user["_id"], user_id, tokens, now)

        logger.debug(f"Persistent token for user {user_id}, client {client_id}: {result.value}")
        return result

    async def _get_user(self, user_id: str) -> dict:
        object_id = to_object_id(user_id)
        user = None
        if object_id is not None:
            user = await self._users_collection.find_one({"_id": object_id})
        if user is None:
            raise UserDoesNotExistException(details={"userId": user_id})
        return user

    async def _purge_expired_tokens(
        self,
        object_id,
        user_id: str,
        tokens: Dict[str, PersistentToken],
        now: datetime,
    ) -> None:
        expired: List[str] = [
            client_id for client_id, token in tokens.items() if token.expiration_date <= now
        ]
        if not expired:
            return

        # Each key is only removed if it is still expired, so a concurrent
        # refresh of the same client survives.
        query = {"_id": object_id}
        for client_id in expired:
            query[f"{TOKENS_FIELD}.{client_id}.expirationDate"] = {"$lte": now}

        result = await self._users_collection.update_one(
            query,
            {"$unset": {f"{TOKENS_FIELD}.{client_id}": "" for client_id in expired}},
        )

        if result.modified_count > 0:
            logger.info(f"Removed {len(expired)} expired persistent tokens for user {user_id}")
        else:
            logger.warning(
                f"Expired persistent tokens for user {user_id} were not removed. "
                "Did another thread modify them?"
            )


def _load_tokens(user: dict) -> Dict[str, PersistentToken]:
    raw = user.get(TOKENS_FIELD) or {}
    return {
        client_id: PersistentToken.from_document(doc)
        for client_id, doc in raw.items()
        if doc
    }


def _require(value: str, name: str) -> None:
    if not value or not value.strip():
        raise InvalidArgumentException(message=f"{name} must not be empty")


def _require_client_id(client_id: str) -> None:
    _require(client_id, "client_id")
    if "." in client_id or client_id.startswith("$"):
        raise InvalidArgumentException(
            message="client_id must not contain '.' or start with '$'",
            details={"clientId": client_id},
        )
