from typing import Protocol

from redis.asyncio import Redis

from visitbox.shared import Logger
from visitbox.shared.config import Store

__all__ = ["KeyValueStore", "create_store"]

logger = Logger(__name__).get_logger()


class KeyValueStore(Protocol):
    """The slice of the Redis command set the counter relies on."""

    async def get(self, name: str) -> str | bytes | None: ...

    async def set(self, name: str, value: int) -> bool | None: ...

    async def incr(self, name: str) -> int: ...


def create_store(settings: Store) -> Redis:
    """Build the asyncio Redis client. No connection is made until first use."""
    logger.debug(
        "Creating Redis client for %s:%s (db %s)",
        settings.host,
        settings.port,
        settings.db,
    )
    return Redis(
        host=settings.host,
        port=settings.port,
        db=settings.db,
        decode_responses=True,
        socket_timeout=settings.timeout,
        socket_connect_timeout=settings.timeout,
    )
