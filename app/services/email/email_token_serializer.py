"""
Serialization of verification tokens for email links.

The link carries a single URL-safe base64 string:

    pepper bytes || token bytes || user name (UTF-8)

The pepper length and the digest size of the verification hash are fixed
by configuration, which is what makes the split unambiguous.
"""

import base64
import binascii
from typing import Tuple

from app.auth.services.verification_token import digest_size
from app.options import VerificationOptions
from common.utils.exceptions import InvalidTokenException


class EmailTokenSerializer:
    def __init__(self, options: VerificationOptions):
        self._options = options

    def serialize(self, pepper: str, token: str, user_name: str) -> str:
        """
        Pack a pepper, token and user name into one link-safe string.

        Args:
            pepper: Base64 pepper
            token: Base64 token
            user_name: User name

        Returns:
            URL-safe base64 string
        """
        raw = base64.b64decode(pepper) + base64.b64decode(token) + user_name.encode("utf-8")
        return base64.urlsafe_b64encode(raw).decode("ascii")

    def deserialize(self, serialized_token: str) -> Tuple[str, str, str]:
        """
        Unpack a string produced by serialize.

        Returns:
            (pepper, token, user_name) with pepper and token as base64

        Raises:
            InvalidTokenException: Not base64, too short, or the user name
                is not valid UTF-8
        """
        try:
            raw = base64.b64decode(serialized_token, altchars=b"-_", validate=True)
        except (binascii.Error, ValueError, TypeError) as e:
            raise InvalidTokenException() from e

        pepper_length = self._options.pepper_length
        token_length = digest_size(self._options.hash_name)

        if len(raw) <= pepper_length + token_length:
            raise InvalidTokenException()

        pepper = raw[:pepper_length]
        token = raw[pepper_length:pepper_length + token_length]

        try:
            user_name = raw[pepper_length + token_length:].decode("utf-8")
        except UnicodeDecodeError as e:
            raise InvalidTokenException() from e

        return (
            base64.b64encode(pepper).decode("ascii"),
            base64.b64encode(token).decode("ascii"),
            user_name,
        )
