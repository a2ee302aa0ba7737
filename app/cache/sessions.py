import logging

from redis.asyncio import RedisError

from app.cache import keys
from app.cache.store import RedisStore
from app.core.config import Settings, get_settings

logger = logging.getLogger(__name__)


class SessionRegistry:
    """
    Issued sessions, one key per (user, token id).

    The key's existence is what matters; the stored token string is kept
    only for inspection. Validation fails open: while Redis is unreachable
    every well-signed token is accepted, so revocation is not enforced
    during an outage.
    """

    def __init__(self, store: RedisStore, settings: Settings | None = None):
        self.store = store
        self.ttl = (settings or get_settings()).session_ttl_seconds

    async def store_session(self, user_id: str, token_id: str, token: str):
        if not await self.store.ensure_connection():
            return
        try:
            await self.store.client.set(
                keys.session_key(user_id, token_id), token, ex=self.ttl
            )
        except RedisError as e:
            logger.error("Session store error for user %s: %s", user_id, e)
            self.store.mark_failed(e)

    async def validate_session(self, user_id: str, token_id: str) -> bool:
        if not await self.store.ensure_connection():
            return True
        try:
            exists = await self.store.client.exists(keys.session_key(user_id, token_id))
        except RedisError as e:
            logger.error("Session validation error for user %s: %s", user_id, e)
            self.store.mark_failed(e)
            return True
        return exists == 1

    async def revoke_session(self, user_id: str, token_id: str):
        if not await self.store.ensure_connection():
            return
        try:
            await self.store.client.delete(keys.session_key(user_id, token_id))
        except RedisError as e:
            logger.error("Session revocation error for user %s: %s", user_id, e)
            self.store.mark_failed(e)

    async def revoke_all_user_sessions(self, user_id: str) -> int:
        """
        Delete every session of a user, returning how many were removed.

        Keys are collected with SCAN and deleted in one call afterwards; a
        session stored in between survives until its TTL.
        """
        if not await self.store.ensure_connection():
            return 0
        try:
            found = [
                key
                async for key in self.store.client.scan_iter(
                    match=keys.session_pattern(user_id), count=100
                )
            ]
            if not found:
                return 0
            deleted = await self.store.client.delete(*found)
            logger.info("Revoked %d sessions for user %s", deleted, user_id)
            return deleted
        except RedisError as e:
            logger.error("Session revocation error for user %s: %s", user_id, e)
            self.store.mark_failed(e)
            return 0
