"""
Persistent token issuing.

Generates a client id and client token for a user and stores the token's
hash through the PersistentTokenStore. The client token is only ever
returned here.
"""

import base64
import logging
import secrets
import uuid
from typing import Callable

from app.auth.models import PersistentTokenModel
from app.auth.services.persistent_token_store import PersistentTokenStore
from app.options import PersistentTokenOptions

logger = logging.getLogger(__name__)


class PersistentTokenIssuer:
    """Issues new persistent tokens."""

    def __init__(
        self,
        store: PersistentTokenStore,
        options: PersistentTokenOptions,
        random_bytes: Callable[[int], bytes] = secrets.token_bytes,
        generate_client_id: Callable[[], str] = lambda: uuid.uuid4().hex,
    ):
        self._store = store
        self._options = options
        self._random_bytes = random_bytes
        self._generate_client_id = generate_client_id

    async def issue(self, user_id: str) -> PersistentTokenModel:
        client_id = self._generate_client_id()
        client_token = base64.b64encode(
            self._random_bytes(self._options.client_token_length)
        ).decode("ascii")

        expiration_date = await self._store.save_persistent_token(user_id, client_id, client_token)

        logger.debug(f"Persistent token issued for user {user_id}, client {client_id}")
        return PersistentTokenModel(
            user_id=user_id,
            client_id=client_id,
            client_token=client_token,
            expiration_date=expiration_date,
        )
