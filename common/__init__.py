"""
Common library for reusable infrastructure components.

- database: Async MongoDB connection with Motor
- cache: Async Redis cooldowns, counters and values
- utils: Exceptions, time helpers, password validation
- config: Base settings class
"""

from common.database import MongoDB
from common.cache import CacheClient, CooldownStatus
from common.utils import (
    IdentityException,
    InvalidArgumentException,
    InvalidOperationException,
    PasswordValidator,
    PasswordValidationResult,
)
from common.config import BaseAppSettings

__all__ = [
    # Database
    "MongoDB",
    # Cache
    "CacheClient",
    "CooldownStatus",
    # Utils
    "IdentityException",
    "InvalidArgumentException",
    "InvalidOperationException",
    "PasswordValidator",
    "PasswordValidationResult",
    # Config
    "BaseAppSettings",
]
