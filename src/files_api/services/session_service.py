"""
Session service: opaque bearer tokens stored in Redis.

A token maps ``auth_<token>`` to the owning user id for a fixed lifetime.
There is no sliding expiry; a fresh login issues a fresh token.
"""

import logging
import secrets
from typing import Optional

from bson import ObjectId

from database.redis_adapter import RedisAdapter
from files_api.errors import StoreUnavailable, Unauthorized, ValidationError
from files_api.identifiers import parse_object_id
from files_api.schemas import User

logger = logging.getLogger(__name__)

TOKEN_KEY_PREFIX = "auth_"
DEFAULT_TOKEN_TTL = 60 * 60 * 24
TOKEN_BYTES = 32


def token_key(token: str) -> str:
    return f"{TOKEN_KEY_PREFIX}{token}"


class SessionService:
    """Issues, resolves and revokes session tokens"""

    def __init__(self, kv_store: RedisAdapter, ttl_seconds: int = DEFAULT_TOKEN_TTL):
        self.kv_store = kv_store
        self.ttl_seconds = ttl_seconds

    def issue(self, user: Optional[User]) -> str:
        """Create a token for an authenticated ``user``.

        Raises:
            Unauthorized: No user was supplied.
            StoreUnavailable: The token could not be stored.
        """
        if user is None:
            raise Unauthorized()

        token = secrets.token_urlsafe(TOKEN_BYTES)
        if not self.kv_store.set(token_key(token), str(user.id), self.ttl_seconds):
            raise StoreUnavailable()

        logger.info(f"Issued session token for user {user.id}")
        return token

    def resolve(self, token: Optional[str]) -> Optional[str]:
        """Return the user id owning ``token``, or None for a missing or expired token"""
        if not token:
            return None
        return self.kv_store.get(token_key(token))

    def revoke(self, token: Optional[str]) -> None:
        if not token:
            return
        if self.kv_store.delete(token_key(token)):
            logger.info("Revoked session token")

    def authenticate(self, token: Optional[str]) -> ObjectId:
        """Resolve ``token`` to a user id or raise ``Unauthorized``"""
        user_id = self.resolve(token)
        if user_id is None:
            raise Unauthorized()
        try:
            return parse_object_id(user_id, "userId")
        except ValidationError:
            logger.error(f"Session token maps to malformed user id {user_id!r}")
            raise Unauthorized() from None
