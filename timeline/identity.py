"""Resolve user handles to stable numeric identities."""

import logging
from typing import Any

from timeline.cache.service import CacheService
from timeline.errors import NotFoundError
from timeline.sources.models import Identity
from timeline.upstream.client import UpstreamClient

logger = logging.getLogger(__name__)


def _key(handle: str) -> str:
    """Generate the cache key for a handle's user lookup."""
    return f"twitter-userdata-{handle}"


class IdentityResolver:
    """Maps a screen name or ``+<numeric id>`` handle to an Identity.

    Lookups are cached under content expiry. Handles that do not resolve
    are cached as an empty sentinel so repeated requests for them do not
    reach upstream until the entry expires.
    """

    def __init__(self, cache: CacheService, client: UpstreamClient):
        self.cache = cache
        self.client = client

    async def _lookup(self, handle: str) -> dict[str, Any]:
        if handle.startswith("+"):
            operation = "UserByRestId"
            variables = {"userId": handle[1:], "withSafetyModeUserFields": True}
        else:
            operation = "UserByScreenName"
            variables = {"screen_name": handle, "withSafetyModeUserFields": True}

        return await self.client.graphql(
            operation, variables, field_toggles={"withAuxiliaryUserLabels": False}
        )

    async def resolve(self, handle: str) -> Identity:
        """
        Resolve a handle.

        Args:
            handle: Screen name, or ``+`` followed by a numeric account id

        Returns:
            The account's identity

        Raises:
            NotFoundError: If the handle does not resolve (now or per the
                negative cache)
            UpstreamError: If the upstream lookup itself fails
        """
        key = _key(handle)
        looked_up = False

        async def _produce() -> dict[str, Any]:
            nonlocal looked_up
            looked_up = True
            return await self._lookup(handle)

        user_data = await self.cache.try_get(key, _produce, ttl=self.cache.content_expire)

        identity = Identity.from_user_data(user_data) if isinstance(user_data, dict) else None
        if identity is None:
            # Hits on the sentinel leave its expiry alone
            if looked_up:
                await self.cache.set(key, "", self.cache.content_expire)
                logger.info(f"User {handle} not found, caching negative result")
            raise NotFoundError(handle)

        return identity

    async def get_profile(self, handle: str) -> Identity:
        """Profile fields of a handle; same lookup and caching as resolve."""
        return await self.resolve(handle)

    async def invalidate(self, handle: str) -> bool:
        """Drop the cached lookup for a handle, positive or negative."""
        return await self.cache.delete(_key(handle))
