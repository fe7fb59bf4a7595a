"""
Identity data types.

Enums are ``str`` enums whose values are what MongoDB stores. Dataclasses
convert to and from the camelCase documents the services persist.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, Generic, Optional, TypeVar

from common.utils.clock import as_utc


# ─────────────────────────────────────────────────────────────────
# Enums
# ─────────────────────────────────────────────────────────────────


class UserStatus(str, Enum):
    EMAIL_NOT_VERIFIED = "EmailNotVerified"
    PASSWORD_CHANGE_REQUIRED = "PasswordChangeRequired"
    EMAIL_NOT_VERIFIED_AND_PASSWORD_CHANGE_REQUIRED = "EmailNotVerifiedAndPasswordChangeRequired"
    OK = "OK"
    SUSPENDED = "Suspended"

    @property
    def requires_password_change(self) -> bool:
        return self in (
            UserStatus.PASSWORD_CHANGE_REQUIRED,
            UserStatus.EMAIL_NOT_VERIFIED_AND_PASSWORD_CHANGE_REQUIRED,
        )

    @property
    def is_email_verified(self) -> bool:
        return self in (UserStatus.OK, UserStatus.PASSWORD_CHANGE_REQUIRED)


class VerificationType(str, Enum):
    EMAIL_VERIFICATION = "EmailVerification"
    PASSWORD_RESET = "PasswordReset"


class VerifyPasswordResult(str, Enum):
    NOT_VERIFIED = "NotVerified"
    VERIFIED = "Verified"
    VERIFIED_AND_REHASH_REQUIRED = "VerifiedAndRehashRequired"


class PasswordVerificationResult(str, Enum):
    NOT_VERIFIED = "NotVerified"
    VERIFIED = "Verified"
    VERIFIED_AND_EXPIRED = "VerifiedAndExpired"


class PersistentTokenVerificationResult(str, Enum):
    NO_TOKEN_AVAILABLE = "NoTokenAvailable"
    NOT_VERIFIED = "NotVerified"
    VERIFIED = "Verified"


class VerificationTokenVerificationResult(str, Enum):
    NOT_VERIFIED = "NotVerified"
    TOKEN_EXPIRED = "TokenExpired"
    VERIFIED = "Verified"


class AuthenticationResult(str, Enum):
    NOT_AUTHENTICATED = "NotAuthenticated"
    AUTHENTICATED = "Authenticated"
    PASSWORD_EXPIRED = "PasswordExpired"
    LOCKED_OUT = "LockedOut"
    SUSPENDED = "Suspended"


class ResetPasswordResult(str, Enum):
    TOKEN_NOT_VERIFIED = "TokenNotVerified"
    TOKEN_EXPIRED = "TokenExpired"
    PASSWORD_RESET = "PasswordReset"


class EmailVerificationResult(str, Enum):
    NOT_VERIFIED = "NotVerified"
    TOKEN_EXPIRED = "TokenExpired"
    VERIFIED = "Verified"


# ─────────────────────────────────────────────────────────────────
# Stored credentials
# ─────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class PasswordHashVersion:
    """Named, immutable PBKDF2 parameter set. Only the name is persisted."""

    name: str
    iterations: int
    prf: str
    key_length: int
    salt_length: int


@dataclass(frozen=True)
class HashPasswordResult:
    hash: bytes = field(repr=False)
    salt: bytes = field(repr=False)
    version: PasswordHashVersion


@dataclass
class PasswordHash:
    hash: bytes = field(repr=False)
    salt: bytes = field(repr=False)
    version: str
    last_change_date: datetime
    expiration_date: Optional[datetime] = None

    @classmethod
    def from_document(cls, doc: Optional[Dict[str, Any]]) -> Optional["PasswordHash"]:
        if not doc:
            return None
        return cls(
            hash=bytes(doc["hash"]),
            salt=bytes(doc["salt"]),
            version=doc["version"],
            last_change_date=as_utc(doc["lastChangeDate"]),
            expiration_date=as_utc(doc.get("expirationDate")),
        )

    def to_document(self) -> Dict[str, Any]:
        return {
            "hash": self.hash,
            "salt": self.salt,
            "version": self.version,
            "lastChangeDate": self.last_change_date,
            "expirationDate": self.expiration_date,
        }


@dataclass
class PersistentToken:
    client_id: str
    expiration_date: datetime
    hash: bytes = field(repr=False)

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "PersistentToken":
        return cls(
            client_id=doc["clientId"],
            expiration_date=as_utc(doc["expirationDate"]),
            hash=bytes(doc["hash"]),
        )

    def to_document(self) -> Dict[str, Any]:
        return {
            "clientId": self.client_id,
            "expirationDate": self.expiration_date,
            "hash": self.hash,
        }


@dataclass
class Verification:
    user_id: str
    email_address: str
    type: VerificationType
    creation_date: datetime
    salt: bytes = field(repr=False)
    expiration_date: Optional[datetime] = None
    id: Optional[Any] = None

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "Verification":
        return cls(
            id=doc.get("_id"),
            user_id=doc["userId"],
            email_address=doc["emailAddress"],
            type=VerificationType(doc["type"]),
            creation_date=as_utc(doc["creationDate"]),
            salt=bytes(doc["salt"]),
            expiration_date=as_utc(doc.get("expirationDate")),
        )

    def to_document(self) -> Dict[str, Any]:
        doc = {
            "userId": self.user_id,
            "emailAddress": self.email_address,
            "type": self.type.value,
            "creationDate": self.creation_date,
            "salt": self.salt,
            "expirationDate": self.expiration_date,
        }
        if self.id is not None:
            doc["_id"] = self.id
        return doc


@dataclass(frozen=True)
class VerificationToken:
    """Base64 token and pepper handed to the user. Never stored."""

    token: str
    pepper: str = field(repr=False)


# ─────────────────────────────────────────────────────────────────
# Authentication flow types
# ─────────────────────────────────────────────────────────────────

T = TypeVar("T")


@dataclass
class AuthenticationData(Generic[T]):
    """A request model plus the client fingerprint headers it arrived with."""

    model: T
    accept: str = ""
    content_encoding: str = ""
    content_language: str = ""
    remote_ip: str = ""
    user_agent: str = ""


@dataclass(frozen=True)
class PersistentTokenModel:
    user_id: str
    client_id: str
    client_token: str = field(repr=False)
    expiration_date: datetime


@dataclass(frozen=True)
class SignInResult:
    authentication_result: AuthenticationResult
    session_token: Optional[str] = field(default=None, repr=False)
    persistent_token: Optional[PersistentTokenModel] = None


@dataclass(frozen=True)
class RenewTokenResult:
    authentication_result: AuthenticationResult
    session_token: Optional[str] = field(default=None, repr=False)


@dataclass(frozen=True)
class TokenResponse:
    session_token: str = field(repr=False)
    persistent_token: Optional[PersistentTokenModel] = None


@dataclass(frozen=True)
class EmailTokenData:
    """Everything the email templates need to build a verification link."""

    pepper: str = field(repr=False)
    token: str = field(repr=False)
    user_name: str
    validity_period: Optional[timedelta] = None


@dataclass(frozen=True)
class ResendVerificationEmailResult:
    email_sent: bool
    time_to_live: Optional[timedelta] = None
    expire_time: Optional[datetime] = None
