"""
Identity service configuration.

Extends BaseAppSettings with password, token, verification, cache, session
and email settings, and builds the option groups services are constructed
with.
"""

from datetime import timedelta
from typing import Optional

from common.config import BaseAppSettings
from app.options import (
    AuthenticationOptions,
    CacheOptions,
    EmailOptions,
    PasswordOptions,
    PasswordValidatorOptions,
    PersistentTokenOptions,
    SecurityTokenOptions,
    VerificationOptions,
)


class Settings(BaseAppSettings):
    """Identity service settings."""

    # ==========================================================================
    # Password Settings
    # ==========================================================================
    PASSWORD_HASH_VERSION: str = "HMACSHA512"
    MIN_PASSWORD_AGE: Optional[timedelta] = timedelta(hours=1)
    MAX_PASSWORD_AGE: Optional[timedelta] = None
    DISALLOW_SAVING_IDENTICAL_PASSWORDS: bool = True

    MIN_PASSWORD_ENTROPY: float = 60.0
    MAX_PASSWORD_LENGTH: int = 256
    PASSWORD_BLACKLIST_PATH: Optional[str] = None

    # ==========================================================================
    # Persistent Token Settings
    # ==========================================================================
    MAX_TOKEN_AGE: timedelta = timedelta(days=30)
    CLIENT_TOKEN_LENGTH: int = 32

    # ==========================================================================
    # Verification Settings
    # ==========================================================================
    VERIFICATION_HASH_NAME: str = "sha512"
    PEPPER_LENGTH: int = 32
    VERIFICATION_SALT_LENGTH: int = 32
    MIN_VERIFICATION_AGE: Optional[timedelta] = timedelta(minutes=5)
    MAX_VERIFICATION_AGE: Optional[timedelta] = timedelta(days=1)

    # ==========================================================================
    # Authentication Settings
    # ==========================================================================
    MAX_PASSWORD_ATTEMPTS: int = 10

    # ==========================================================================
    # Cache Settings
    # ==========================================================================
    COOLDOWN_TIME_TO_LIVE: timedelta = timedelta(minutes=5)
    COUNTER_TIME_TO_LIVE: timedelta = timedelta(minutes=15)
    VALUE_TIME_TO_LIVE: timedelta = timedelta(days=1)

    # ==========================================================================
    # Session Token Settings
    # ==========================================================================
    SECURITY_TOKEN_SECRET: Optional[str] = None
    SECURITY_TOKEN_ALGORITHM: str = "HS512"
    SECURITY_TOKEN_ISSUER: Optional[str] = None
    SECURITY_TOKEN_AUDIENCE: Optional[str] = None
    SECURITY_TOKEN_EXPIRE_MINUTES: int = 30

    # ==========================================================================
    # Email Settings
    # ==========================================================================
    EMAIL_MODE: str = "console"  # "console" or "smtp"
    SMTP_HOST: Optional[str] = None
    SMTP_PORT: int = 465
    SMTP_USER: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    SMTP_FROM_EMAIL: str = "noreply@example.com"
    SMTP_FROM_NAME: str = "Flashcards"
    VERIFY_EMAIL_URL: str = "http://localhost:3000/verify-email"
    RESET_PASSWORD_URL: str = "http://localhost:3000/reset-password"
    REJECT_REGISTRATION_URL: str = "http://localhost:3000/reject-registration"
    TOKEN_QUERY_PARAMETER: str = "token"

    def collect_errors(self) -> list:
        errors = super().collect_errors()

        if not self.SECURITY_TOKEN_SECRET:
            errors.append("SECURITY_TOKEN_SECRET is required to issue session tokens")

        if self.EMAIL_MODE == "smtp" and not self.SMTP_HOST:
            errors.append("SMTP_HOST is required when EMAIL_MODE is smtp")

        if self.MAX_PASSWORD_ATTEMPTS < 1:
            errors.append("MAX_PASSWORD_ATTEMPTS must be at least 1")

        return errors

    # ==========================================================================
    # Option groups
    # ==========================================================================

    def password_options(self) -> PasswordOptions:
        return PasswordOptions(
            hash_version=self.PASSWORD_HASH_VERSION,
            min_password_age=self.MIN_PASSWORD_AGE,
            max_password_age=self.MAX_PASSWORD_AGE,
            disallow_saving_identical_passwords=self.DISALLOW_SAVING_IDENTICAL_PASSWORDS,
        )

    def password_validator_options(self) -> PasswordValidatorOptions:
        return PasswordValidatorOptions(
            min_password_entropy=self.MIN_PASSWORD_ENTROPY,
            max_password_length=self.MAX_PASSWORD_LENGTH,
            password_blacklist_path=self.PASSWORD_BLACKLIST_PATH,
        )

    def persistent_token_options(self) -> PersistentTokenOptions:
        return PersistentTokenOptions(
            max_token_age=self.MAX_TOKEN_AGE,
            client_token_length=self.CLIENT_TOKEN_LENGTH,
        )

    def verification_options(self) -> VerificationOptions:
        return VerificationOptions(
            hash_name=self.VERIFICATION_HASH_NAME,
            pepper_length=self.PEPPER_LENGTH,
            salt_length=self.VERIFICATION_SALT_LENGTH,
            min_verification_age=self.MIN_VERIFICATION_AGE,
            max_verification_age=self.MAX_VERIFICATION_AGE,
        )

    def authentication_options(self) -> AuthenticationOptions:
        return AuthenticationOptions(max_password_attempts=self.MAX_PASSWORD_ATTEMPTS)

    def cache_options(self) -> CacheOptions:
        return CacheOptions(
            cooldown_time_to_live=self.COOLDOWN_TIME_TO_LIVE,
            counter_time_to_live=self.COUNTER_TIME_TO_LIVE,
            value_time_to_live=self.VALUE_TIME_TO_LIVE,
        )

    def security_token_options(self) -> SecurityTokenOptions:
        if not self.SECURITY_TOKEN_SECRET:
            raise ValueError("SECURITY_TOKEN_SECRET is not configured")
        return SecurityTokenOptions(
            secret_key=self.SECURITY_TOKEN_SECRET,
            algorithm=self.SECURITY_TOKEN_ALGORITHM,
            issuer=self.SECURITY_TOKEN_ISSUER,
            audience=self.SECURITY_TOKEN_AUDIENCE,
            token_expiry=timedelta(minutes=self.SECURITY_TOKEN_EXPIRE_MINUTES),
        )

    def email_options(self) -> EmailOptions:
        return EmailOptions(
            mode=self.EMAIL_MODE,
            smtp_host=self.SMTP_HOST,
            smtp_port=self.SMTP_PORT,
            smtp_user=self.SMTP_USER,
            smtp_password=self.SMTP_PASSWORD,
            from_email=self.SMTP_FROM_EMAIL,
            from_name=self.SMTP_FROM_NAME,
            verify_email_url=self.VERIFY_EMAIL_URL,
            reset_password_url=self.RESET_PASSWORD_URL,
            reject_registration_url=self.REJECT_REGISTRATION_URL,
            token_query_parameter=self.TOKEN_QUERY_PARAMETER,
        )
