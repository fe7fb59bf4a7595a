"""
Utilities module - Exceptions, time helpers and password validation.
"""

from common.utils.clock import utcnow, as_utc, truncate_to_milliseconds, to_epoch_milliseconds
from common.utils.exceptions import (
    IdentityException,
    InvalidArgumentException,
    InvalidEnumValueException,
    InvalidOperationException,
)
from common.utils.password import PasswordValidator, PasswordValidationResult

__all__ = [
    "utcnow",
    "as_utc",
    "truncate_to_milliseconds",
    "to_epoch_milliseconds",
    "IdentityException",
    "InvalidArgumentException",
    "InvalidEnumValueException",
    "InvalidOperationException",
    "PasswordValidator",
    "PasswordValidationResult",
]
