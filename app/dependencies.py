"""
Service wiring for the identity application.

Builds every service from Settings and explicit connections. Pipelines
receive the resulting IdentityServices container instead of reaching for
module state.
"""

import logging
import secrets
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from motor.motor_asyncio import AsyncIOMotorDatabase
from redis.asyncio import Redis

from app.auth.services.authentication_events import AuthenticationEventService
from app.auth.services.password_hasher import PasswordHasher, get_version
from app.auth.services.password_store import PasswordStore
from app.auth.services.persistent_token_issuer import PersistentTokenIssuer
from app.auth.services.persistent_token_store import PersistentTokenStore
from app.auth.services.security_token_issuer import SecurityTokenIssuer
from app.auth.services.user_status_cache import UserStatusCache
from app.auth.services.user_status_validator import UserStatusValidator
from app.auth.services.verification_service import VerificationService
from app.config import Settings
from app.database.collections import INDEXES
from app.options import AuthenticationOptions, VerificationOptions
from app.services.email import EmailService, EmailTokenSerializer
from app.user.services.user_service import UserService
from common.cache import CacheClient, create_redis_client
from common.database import MongoDB
from common.utils.clock import Clock, utcnow
from common.utils.password import PasswordValidator, load_blacklist

logger = logging.getLogger(__name__)


@dataclass
class IdentityServices:
    """Everything the pipelines need, built once at startup."""

    user_service: UserService
    password_hasher: PasswordHasher
    password_store: PasswordStore
    password_validator: PasswordValidator
    persistent_token_store: PersistentTokenStore
    persistent_token_issuer: PersistentTokenIssuer
    verification_service: VerificationService
    security_token_issuer: SecurityTokenIssuer
    authentication_events: AuthenticationEventService
    user_status_cache: UserStatusCache
    user_status_validator: UserStatusValidator
    cache: CacheClient
    email_service: EmailService
    email_token_serializer: EmailTokenSerializer
    verification_options: VerificationOptions
    authentication_options: AuthenticationOptions


def build_services(
    db: AsyncIOMotorDatabase,
    redis: Redis,
    settings: Settings,
    clock: Clock = utcnow,
    random_bytes: Callable[[int], bytes] = secrets.token_bytes,
) -> IdentityServices:
    """
    Build the identity services.

    Args:
        db: MongoDB database connection
        redis: Redis asyncio connection
        settings: Application settings
        clock: Source of the current UTC time
        random_bytes: CSPRNG for salts, peppers and client tokens

    Returns:
        IdentityServices container
    """
    password_options = settings.password_options()
    validator_options = settings.password_validator_options()
    token_options = settings.persistent_token_options()
    verification_options = settings.verification_options()
    cache_options = settings.cache_options()

    password_hasher = PasswordHasher(
        current_version=get_version(password_options.hash_version),
        random_bytes=random_bytes,
    )
    persistent_token_store = PersistentTokenStore(db, token_options, password_hasher, clock)
    cache = CacheClient(
        redis,
        cooldown_time_to_live=cache_options.cooldown_time_to_live,
        counter_time_to_live=cache_options.counter_time_to_live,
        value_time_to_live=cache_options.value_time_to_live,
        clock=clock,
    )
    user_status_cache = UserStatusCache(db, cache)
    email_token_serializer = EmailTokenSerializer(verification_options)

    services = IdentityServices(
        user_service=UserService(db, clock),
        password_hasher=password_hasher,
        password_store=PasswordStore(db, password_options, password_hasher, clock),
        password_validator=PasswordValidator(
            min_entropy=validator_options.min_password_entropy,
            max_length=validator_options.max_password_length,
            blacklist=load_blacklist(validator_options.password_blacklist_path),
        ),
        persistent_token_store=persistent_token_store,
        persistent_token_issuer=PersistentTokenIssuer(
            persistent_token_store, token_options, random_bytes=random_bytes
        ),
        verification_service=VerificationService(db, verification_options, clock, random_bytes),
        security_token_issuer=SecurityTokenIssuer(settings.security_token_options(), clock),
        authentication_events=AuthenticationEventService(db, clock),
        user_status_cache=user_status_cache,
        user_status_validator=UserStatusValidator(user_status_cache),
        cache=cache,
        email_service=EmailService(settings.email_options(), email_token_serializer),
        email_token_serializer=email_token_serializer,
        verification_options=verification_options,
        authentication_options=settings.authentication_options(),
    )

    logger.info(f"Identity services built (password hash version {password_hasher.current_version.name})")
    return services


async def connect_services(
    settings: Settings,
    mongo: Optional[MongoDB] = None,
) -> Tuple[MongoDB, Redis, IdentityServices]:
    """
    Connect to MongoDB and Redis and build the services.

    Called once at application startup.

    Raises:
        ValueError: Required settings are missing
    """
    settings.validate_required()

    mongo = mongo or MongoDB()
    await mongo.connect(uri=settings.MONGODB_URI, database_name=settings.MONGODB_DATABASE)
    await mongo.ensure_indexes(INDEXES)

    redis = create_redis_client(settings.REDIS_URL)
    return mongo, redis, build_services(mongo.db, redis, settings)
