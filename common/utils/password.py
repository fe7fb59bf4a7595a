"""
Password strength validation.

Estimates entropy from the character classes a password draws on and its
length, then checks length limits and an optional blacklist.

Example:
    from common.utils.password import PasswordValidator

    validator = PasswordValidator(min_entropy=60, max_length=256)
    result = validator.validate("correct horse battery staple")
    if result is not PasswordValidationResult.VALID:
        print("Password rejected:", result.value)
"""

import logging
import math
import re
from enum import Enum
from pathlib import Path
from typing import Iterable, Optional, FrozenSet

logger = logging.getLogger(__name__)

# Sizes of the character spaces a password can draw from. Non-ASCII text is
# counted as the size of printable ASCII, since it is usually just another
# alphabet rather than the whole of Unicode.
CHARACTER_SPACES = (
    (re.compile(r"[0-9]"), 10),
    (re.compile(r"[a-z]"), 26),
    (re.compile(r"[^\u0000-\u007F]"), 94),
    (re.compile(r"[ !\"'(),\-./:;?`]"), 15),
    (re.compile(r"[#$%&*+<=>@\[\\\]^_{|}~]"), 19),
    (re.compile(r"[A-Z]"), 26),
)


class PasswordValidationResult(str, Enum):
    VALID = "Valid"
    INSUFFICIENT_ENTROPY = "InsufficientEntropy"
    TOO_LONG = "TooLong"
    BLACKLISTED = "Blacklisted"


def calculate_entropy(password: str) -> float:
    """
    Estimate password entropy in bits.

    Args:
        password: The password to analyze

    Returns:
        log2(character_space ** length), or 0.0 for an empty password
    """
    if not password:
        return 0.0

    character_space = sum(
        size for pattern, size in CHARACTER_SPACES if pattern.search(password)
    )
    if character_space == 0:
        return 0.0

    return len(password) * math.log2(character_space)


def load_blacklist(path: Optional[str]) -> FrozenSet[str]:
    """
    Load a newline-separated password blacklist.

    Args:
        path: File path, or None for an empty blacklist

    Returns:
        Frozen set of blacklisted passwords
    """
    if not path:
        return frozenset()

    with open(Path(path), "r", encoding="utf-8") as f:
        entries = frozenset(line.rstrip("\r\n") for line in f if line.strip())

    logger.info(f"Loaded {len(entries)} blacklisted passwords")
    return entries


class PasswordValidator:
    """Entropy, length and blacklist checks for new passwords."""

    def __init__(
        self,
        min_entropy: float = 60.0,
        max_length: int = 256,
        blacklist: Optional[Iterable[str]] = None,
    ):
        self._min_entropy = min_entropy
        self._max_length = max_length
        self._blacklist = frozenset(blacklist or ())

    def validate(self, password: Optional[str]) -> PasswordValidationResult:
        """
        Validate password strength.

        Args:
            password: The password to validate

        Returns:
            PasswordValidationResult, checked in order: entropy, length, blacklist
        """
        if not password or calculate_entropy(password) < self._min_entropy:
            return PasswordValidationResult.INSUFFICIENT_ENTROPY

        if len(password) > self._max_length:
            return PasswordValidationResult.TOO_LONG

        if password in self._blacklist:
            return PasswordValidationResult.BLACKLISTED

        return PasswordValidationResult.VALID
