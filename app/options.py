"""
Option groups passed to service constructors.

Each group is a frozen dataclass built from ``Settings`` so services never
read configuration from module state.
"""

from dataclasses import dataclass
from datetime import timedelta
from typing import Optional


@dataclass(frozen=True)
class PasswordOptions:
    hash_version: str = "HMACSHA512"
    min_password_age: Optional[timedelta] = timedelta(hours=1)
    max_password_age: Optional[timedelta] = None
    disallow_saving_identical_passwords: bool = True


@dataclass(frozen=True)
class PasswordValidatorOptions:
    min_password_entropy: float = 60.0
    max_password_length: int = 256
    password_blacklist_path: Optional[str] = None


@dataclass(frozen=True)
class PersistentTokenOptions:
    max_token_age: timedelta = timedelta(days=30)
    client_token_length: int = 32


@dataclass(frozen=True)
class VerificationOptions:
    hash_name: str = "sha512"
    pepper_length: int = 32
    salt_length: int = 32
    min_verification_age: Optional[timedelta] = timedelta(minutes=5)
    max_verification_age: Optional[timedelta] = timedelta(days=1)


@dataclass(frozen=True)
class AuthenticationOptions:
    max_password_attempts: int = 10


@dataclass(frozen=True)
class CacheOptions:
    cooldown_time_to_live: timedelta = timedelta(minutes=5)
    counter_time_to_live: timedelta = timedelta(minutes=15)
    value_time_to_live: timedelta = timedelta(days=1)


@dataclass(frozen=True)
class SecurityTokenOptions:
    secret_key: str
    algorithm: str = "HS512"
    issuer: Optional[str] = None
    audience: Optional[str] = None
    token_expiry: timedelta = timedelta(minutes=30)


@dataclass(frozen=True)
class EmailOptions:
    mode: str = "console"
    smtp_host: Optional[str] = None
    smtp_port: int = 465
    smtp_user: Optional[str] = None
    smtp_password: Optional[str] = None
    from_email: str = "noreply@example.com"
    from_name: str = "Flashcards"
    verify_email_url: str = "http://localhost:3000/verify-email"
    reset_password_url: str = "http://localhost:3000/reset-password"
    reject_registration_url: str = "http://localhost:3000/reject-registration"
    token_query_parameter: str = "token"
