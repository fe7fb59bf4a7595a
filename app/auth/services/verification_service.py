"""
Verification workflow for email verification and password reset.

Keeps at most one active verification per (user, email address, type).
Generating a new verification expires the previous one; verifying a token
expires it too, which makes every token single use.
"""

import base64
import binascii
import hmac
import logging
import secrets
from datetime import datetime
from typing import Callable, Optional, Tuple, Union

from motor.motor_asyncio import AsyncIOMotorDatabase

from app.auth.models import (
    UserStatus,
    Verification,
    VerificationToken,
    VerificationTokenVerificationResult,
    VerificationType,
)
from app.auth.services.verification_token import create_token
from app.database.collections import USERS, VERIFICATIONS, to_object_id
from app.options import VerificationOptions
from common.utils.clock import Clock, truncate_to_milliseconds, utcnow
from common.utils.exceptions import (
    InvalidArgumentException,
    InvalidEnumValueException,
    VerificationTooRecentException,
)

logger = logging.getLogger(__name__)

# Status a user moves to after a successful verification of each type.
_STATUS_AFTER_VERIFICATION = {
    VerificationType.EMAIL_VERIFICATION: {
        UserStatus.EMAIL_NOT_VERIFIED: UserStatus.OK,
        UserStatus.EMAIL_NOT_VERIFIED_AND_PASSWORD_CHANGE_REQUIRED: UserStatus.PASSWORD_CHANGE_REQUIRED,
    },
    VerificationType.PASSWORD_RESET: {
        UserStatus.PASSWORD_CHANGE_REQUIRED: UserStatus.OK,
        UserStatus.EMAIL_NOT_VERIFIED_AND_PASSWORD_CHANGE_REQUIRED: UserStatus.EMAIL_NOT_VERIFIED,
    },
}


class VerificationService:
    """
    Generates and verifies single-use verification tokens.
    """

    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        options: VerificationOptions,
        clock: Clock = utcnow,
        random_bytes: Callable[[int], bytes] = secrets.token_bytes,
    ):
        """
        Initialize VerificationService.

        Args:
            db: MongoDB database connection
            options: Pepper, salt, hash and age settings
            clock: Source of the current UTC time
            random_bytes: CSPRNG used for salts and peppers
        """
        self._options = options
        self._clock = clock
        self._random_bytes = random_bytes
        self._users_collection = db[USERS]
        self._verifications_collection = db[VERIFICATIONS]

    async def generate_verification_token(
        self,
        user_id: str,
        email_address: str,
        verification_type: Union[VerificationType, str],
    ) -> VerificationToken:
        """
        Create a verification and return its token.

        Args:
            user_id: MongoDB user ID
            email_address: Address being verified
            verification_type: EmailVerification or PasswordReset

        Returns:
            VerificationToken (token and pepper, base64)

        Raises:
            InvalidArgumentException: Blank user_id or email_address
            InvalidEnumValueException: Unknown verification type
            VerificationTooRecentException: Previous verification is younger
                than the minimum verification age

        Side Effects:
            - Expires every previous active verification
            - Inserts a verification document
        """
        _require(user_id, "user_id")
        _require(email_address, "email_address")
        verification_type = _parse_type(verification_type)

        prior = await self._get_active_verification(user_id, email_address, verification_type)
        if prior is not None:
            await self._expire_verification(prior, override_min_age=False)
            await self._expire_remaining_verifications(user_id, email_address, verification_type)
        else:
            logger.info("There is no prior verification to expire")

        verification = await self._create_verification(user_id, email_address, verification_type)
        pepper = self._random_bytes(self._options.pepper_length)
        return create_token(verification, pepper, self._options.hash_name)

    async def check_token(
        self,
        user_id: str,
        email_address: str,
        verification_type: Union[VerificationType, str],
        token: str,
        pepper: str,
    ) -> VerificationTokenVerificationResult:
        """
        Match a token against the active verification without consuming it.

        Same results as verify_token, but the verification stays active and
        the user status is left alone.
        """
        _, result = await self._match_token(user_id, email_address, verification_type, token, pepper)
        return result

    async def verify_token(
        self,
        user_id: str,
        email_address: str,
        verification_type: Union[VerificationType, str],
        token: str,
        pepper: str,
    ) -> VerificationTokenVerificationResult:
        """
        Verify a token against the active verification.

        Args:
            user_id: MongoDB user ID
            email_address: Address the token was issued for
            verification_type: EmailVerification or PasswordReset
            token: Base64 token presented by the user
            pepper: Base64 pepper presented by the user

        Returns:
            NOT_VERIFIED when there is no active verification, the pepper is
            malformed or the token does not match; TOKEN_EXPIRED when the
            verification expired; VERIFIED otherwise

        Side Effects:
            - On VERIFIED, expires the verification and advances the user status
        """
        verification, result = await self._match_token(
            user_id, email_address, verification_type, token, pepper
        )

        if result is VerificationTokenVerificationResult.VERIFIED:
            logger.info(f"Token was verified for verification {verification.id}")
            await self._expire_verification(verification, override_min_age=True)
            await self._advance_user_status(user_id, verification.type)
        elif verification is not None:
            logger.info(f"Token was not verified for verification {verification.id}: {result.value}")

        return result

    async def _match_token(
        self,
        user_id: str,
        email_address: str,
        verification_type: Union[VerificationType, str],
        token: str,
        pepper: str,
    ) -> Tuple[Optional[Verification], VerificationTokenVerificationResult]:
        _require(user_id, "user_id")
        _require(email_address, "email_address")
        verification_type = _parse_type(verification_type)

        if not token or not pepper:
            return None, VerificationTokenVerificationResult.NOT_VERIFIED

        verification = await self._get_active_verification(user_id, email_address, verification_type)
        if verification is None:
            logger.info("No corresponding verification was found")
            return None, VerificationTokenVerificationResult.NOT_VERIFIED

        try:
            pepper_bytes = base64.b64decode(pepper, validate=True)
        except (binascii.Error, ValueError):
            logger.info("Token was not verified: malformed pepper")
            return None, VerificationTokenVerificationResult.NOT_VERIFIED

        expected = create_token(verification, pepper_bytes, self._options.hash_name)
        now = self._clock()

        if verification.expiration_date is not None and verification.expiration_date <= now:
            return verification, VerificationTokenVerificationResult.TOKEN_EXPIRED
        if hmac.compare_digest(token.encode("utf-8"), expected.token.encode("utf-8")):
            return verification, VerificationTokenVerificationResult.VERIFIED
        return verification, VerificationTokenVerificationResult.NOT_VERIFIED

    def _active_query(
        self,
        user_id: str,
        email_address: str,
        verification_type: VerificationType,
    ) -> dict:
        return {
            "userId": user_id,
            "emailAddress": email_address,
            "type": verification_type.value,
            "$or": [
                {"expirationDate": None},
                {"expirationDate": {"$gt": self._clock()}},
            ],
        }

    async def _get_active_verification(
        self,
        user_id: str,
        email_address: str,
        verification_type: VerificationType,
    ) -> Optional[Verification]:
        doc = await self._verifications_collection.find_one(
            self._active_query(user_id, email_address, verification_type),
            sort=[("creationDate", -1)],
        )
        return Verification.from_document(doc) if doc else None

    async def _expire_remaining_verifications(
        self,
        user_id: str,
        email_address: str,
        verification_type: VerificationType,
    ) -> None:
        # Concurrent generate calls can leave more than one active verification behind.
        result = await self._verifications_collection.update_many(
            self._active_query(user_id, email_address, verification_type),
            {"$set": {"expirationDate": self._clock()}},
        )

        if result.modified_count > 0:
            logger.warning(
                f"Expired {result.modified_count} additional active verifications for user {user_id}"
            )

    async def _create_verification(
        self,
        user_id: str,
        email_address: str,
        verification_type: VerificationType,
    ) -> Verification:
        # The creation date feeds the token hash and must survive storage unchanged.
        creation_date = truncate_to_milliseconds(self._clock())
        max_age = self._options.max_verification_age

        verification = Verification(
            user_id=user_id,
            email_address=email_address,
            type=verification_type,
            creation_date=creation_date,
            salt=self._random_bytes(self._options.salt_length),
            expiration_date=creation_date + max_age if max_age is not None else None,
        )

        result = await self._verifications_collection.insert_one(verification.to_document())
        verification.id = result.inserted_id

        logger.info(f"Verification created: {verification.id} ({verification_type.value})")
        return verification

    async def _expire_verification(self, verification: Verification, override_min_age: bool) -> None:
        now = self._clock()
        min_age = self._options.min_verification_age

        if not override_min_age and min_age is not None and now < verification.creation_date + min_age:
            raise VerificationTooRecentException(details={"verificationId": str(verification.id)})

        if not _is_after(verification.expiration_date, now):
            logger.info(f"Verification has already expired: {verification.id}")
            return

        result = await self._verifications_collection.update_one(
            {"_id": verification.id},
            {"$set": {"expirationDate": now}},
        )

        if result.modified_count > 0:
            logger.info(f"Verification was successfully expired: {verification.id}")
        else:
            logger.warning(
                f"Verification {verification.id} was not modified. Did another thread delete it?"
            )

    async def _advance_user_status(self, user_id: str, verification_type: VerificationType) -> None:
        object_id = to_object_id(user_id)
        if object_id is None:
            logger.warning(f"Cannot update status of user with invalid id: {user_id}")
            return

        user = await self._users_collection.find_one({"_id": object_id}, {"userStatus": 1})
        if user is None:
            logger.warning(f"User {user_id} was not found. Did another thread delete the user?")
            return

        try:
            current = UserStatus(user.get("userStatus"))
        except ValueError:
            logger.warning(f"User {user_id} has an unknown status: {user.get('userStatus')}")
            return

        new_status = _STATUS_AFTER_VERIFICATION[verification_type].get(current)
        if new_status is None:
            return

        result = await self._users_collection.update_one(
            {"_id": object_id},
            {"$set": {"userStatus": new_status.value}},
        )

        if result.modified_count > 0:
            logger.info(f"Successfully updated the user status of {user_id} to {new_status.value}")
        else:
            logger.warning(
                f"The user status of {user_id} was not modified. Did another thread delete the user?"
            )


def _is_after(expiration_date: Optional[datetime], now: datetime) -> bool:
    # No expiration date means the verification never expires on its own.
    return expiration_date is None or now < expiration_date


def _parse_type(value: Union[VerificationType, str]) -> VerificationType:
    try:
        return VerificationType(value)
    except ValueError:
        raise InvalidEnumValueException(
            message=f"Unknown verification type: {value}",
            details={"type": str(value)},
        ) from None


def _require(value: Optional[str], name: str) -> None:
    if not value or not value.strip():
        raise InvalidArgumentException(message=f"{name} must not be empty")
