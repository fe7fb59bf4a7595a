"""
Versioned PBKDF2 password hashing.

Each stored hash records only the name of the parameter set that produced
it. Verifying against an older set succeeds but reports that the password
should be rehashed with the current one.
"""

import hashlib
import logging
import secrets
from types import MappingProxyType
from typing import Callable, Mapping, Optional

from app.auth.models import HashPasswordResult, PasswordHashVersion, VerifyPasswordResult
from common.utils.exceptions import InvalidArgumentException

logger = logging.getLogger(__name__)

HMACSHA512 = PasswordHashVersion(
    name="HMACSHA512",
    iterations=210_000,
    prf="sha512",
    key_length=64,
    salt_length=64,
)

# Legacy parameters; kept so existing hashes still verify.
IDENTITY_V3 = PasswordHashVersion(
    name="IdentityV3",
    iterations=100_000,
    prf="sha256",
    key_length=32,
    salt_length=16,
)

PASSWORD_HASH_VERSIONS: Mapping[str, PasswordHashVersion] = MappingProxyType(
    {version.name: version for version in (IDENTITY_V3, HMACSHA512)}
)


def get_version(name: str) -> PasswordHashVersion:
    """
    Resolve a hash version by name.

    Raises:
        InvalidArgumentException: Unknown version name
    """
    try:
        return PASSWORD_HASH_VERSIONS[name]
    except KeyError:
        raise InvalidArgumentException(
            message=f"Unknown password hash version: {name}",
            code="UNKNOWN_PASSWORD_HASH_VERSION",
        ) from None


def are_equal(a: bytes, b: bytes) -> bool:
    """
    Compare two hashes without exiting early on content.

    Lengths are compared first; equal-length buffers are always walked to
    the end.
    """
    if a is None or b is None or len(a) != len(b):
        return False

    equal = True
    for x, y in zip(a, b):
        equal &= x == y
    return equal


class PasswordHasher:
    """PBKDF2 hashing against the named version registry."""

    def __init__(
        self,
        current_version: PasswordHashVersion = HMACSHA512,
        random_bytes: Callable[[int], bytes] = secrets.token_bytes,
    ):
        """
        Initialize PasswordHasher.

        Args:
            current_version: Version used for new hashes and rehash decisions
            random_bytes: CSPRNG used for fresh salts
        """
        self._current_version = current_version
        self._random_bytes = random_bytes

    @property
    def current_version(self) -> PasswordHashVersion:
        return self._current_version

    def hash_password(
        self,
        password: str,
        salt: Optional[bytes] = None,
        version: Optional[PasswordHashVersion] = None,
    ) -> HashPasswordResult:
        """
        Hash a password.

        Args:
            password: Plain-text password (must not be blank)
            salt: Salt to use; a fresh one of the version's length if omitted
            version: Parameter set (defaults to the current version)

        Returns:
            HashPasswordResult with hash, salt and version

        Raises:
            InvalidArgumentException: Blank password or non-bytes salt
        """
        if not password or not password.strip():
            raise InvalidArgumentException(message="Password must not be empty")

        version = version or self._current_version

        if salt is None:
            salt = self._random_bytes(version.salt_length)
        elif not isinstance(salt, (bytes, bytearray)):
            raise InvalidArgumentException(message="Salt must be bytes")

        hash_bytes = _derive(password, bytes(salt), version)
        return HashPasswordResult(hash=hash_bytes, salt=bytes(salt), version=version)

    def verify_password(
        self,
        version: PasswordHashVersion,
        salt: bytes,
        expected_hash: bytes,
        candidate: str,
    ) -> VerifyPasswordResult:
        """
        Verify a candidate password against a stored hash.

        Args:
            version: Version the stored hash was produced with
            salt: Stored salt
            expected_hash: Stored hash
            candidate: Password to check

        Returns:
            NOT_VERIFIED on mismatch; VERIFIED when it matches under the
            current version; VERIFIED_AND_REHASH_REQUIRED when it matches
            under any other version

        Raises:
            InvalidArgumentException: Blank candidate, missing version, or
                non-bytes salt or hash
        """
        if not candidate or not candidate.strip():
            raise InvalidArgumentException(message="Password must not be empty")
        if version is None:
            raise InvalidArgumentException(message="Password hash version is required")
        if not isinstance(salt, (bytes, bytearray)):
            raise InvalidArgumentException(message="Salt must be bytes")
        if not isinstance(expected_hash, (bytes, bytearray)):
            raise InvalidArgumentException(message="Expected hash must be bytes")

        actual = _derive(candidate, bytes(salt), version)

        if not are_equal(actual, bytes(expected_hash)):
            return VerifyPasswordResult.NOT_VERIFIED

        if version != self._current_version:
            logger.debug(f"Password verified with {version.name}; rehash required")
            return VerifyPasswordResult.VERIFIED_AND_REHASH_REQUIRED

        return VerifyPasswordResult.VERIFIED


def _derive(password: str, salt: bytes, version: PasswordHashVersion) -> bytes:
    return hashlib.pbkdf2_hmac(
        version.prf,
        password.encode("utf-8"),
        salt,
        version.iterations,
        dklen=version.key_length,
    )
