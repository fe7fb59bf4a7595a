"""
Verification token derivation.

A token is a digest over the verification's email address, creation date
(epoch milliseconds, 8 bytes big-endian), stored salt and a per-token
pepper that is handed to the user but never stored.
"""

import base64
import hashlib
import struct

from app.auth.models import Verification, VerificationToken
from common.utils.clock import to_epoch_milliseconds
from common.utils.exceptions import InvalidOperationException


def _new_hash(hash_name: str):
    try:
        return hashlib.new(hash_name)
    except (ValueError, TypeError):
        raise InvalidOperationException(
            message=f"Unknown hash algorithm: {hash_name}",
            code="UNKNOWN_HASH_ALGORITHM",
        ) from None


def digest_size(hash_name: str) -> int:
    """Size in bytes of the digest produced by hash_name."""
    return _new_hash(hash_name).digest_size


def create_token(verification: Verification, pepper: bytes, hash_name: str) -> VerificationToken:
    """
    Derive the token for a verification.

    Deterministic: the same verification, pepper and hash name always give
    the same token.

    Args:
        verification: Stored verification record
        pepper: Per-token random bytes
        hash_name: hashlib algorithm name

    Returns:
        VerificationToken with base64 token and pepper

    Raises:
        InvalidOperationException: hash_name cannot be resolved
    """
    digest = _new_hash(hash_name)
    digest.update(verification.email_address.encode("utf-8"))
    digest.update(struct.pack(">q", to_epoch_milliseconds(verification.creation_date)))
    digest.update(bytes(verification.salt))
    digest.update(bytes(pepper))

    return VerificationToken(
        token=base64.b64encode(digest.digest()).decode("ascii"),
        pepper=base64.b64encode(bytes(pepper)).decode("ascii"),
    )
