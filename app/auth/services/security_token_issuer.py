"""
Session token (JWT) issuing.

Tokens are HMAC-signed with python-jose. The subject is the user name and
the user id travels in a private ``uid`` claim.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from jose import JWTError, jwt

from app.options import SecurityTokenOptions
from common.utils.clock import Clock, utcnow
from common.utils.exceptions import InvalidArgumentException, InvalidTokenException

logger = logging.getLogger(__name__)

USER_ID_CLAIM = "uid"


class SecurityTokenIssuer:
    """Issues and decodes session tokens."""

    def __init__(self, options: SecurityTokenOptions, clock: Clock = utcnow):
        self._options = options
        self._clock = clock

    def issue(self, user_id: str, user: dict, valid_to: Optional[datetime] = None) -> str:
        """
        Issue a session token for a user.

        Args:
            user_id: MongoDB user ID
            user: User document (userName and name are read)
            valid_to: Explicit expiry; defaults to now + token expiry

        Returns:
            Encoded JWT
        """
        if not user:
            raise InvalidArgumentException(message="user must not be empty")

        now = self._clock()
        claims: Dict[str, Any] = {
            "sub": user.get("userName"),
            "name": user.get("name"),
            USER_ID_CLAIM: user_id,
            "iat": int(now.timestamp()),
            "nbf": int(now.timestamp()),
            "exp": int((valid_to or now + self._options.token_expiry).timestamp()),
        }
        if self._options.issuer:
            claims["iss"] = self._options.issuer
        if self._options.audience:
            claims["aud"] = self._options.audience

        token = jwt.encode(claims, self._options.secret_key, algorithm=self._options.algorithm)
        logger.info(f"Session token issued for user {user_id}")
        return token

    def decode(self, token: str) -> Dict[str, Any]:
        """
        Decode and validate a session token.

        Raises:
            InvalidTokenException: Signature, expiry, issuer or audience invalid
        """
        try:
            return jwt.decode(
                token,
                self._options.secret_key,
                algorithms=[self._options.algorithm],
                audience=self._options.audience,
                issuer=self._options.issuer,
            )
        except JWTError as e:
            logger.warning(f"Session token rejected: {e}")
            raise InvalidTokenException() from e
