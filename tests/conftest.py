import asyncio
import random
import re

import pytest
from redis.exceptions import ConnectionError, NoPermissionError, ResponseError

from visitbox.core.envelope import RsaKeyPair, generate_rsa_keys

INTEGER_PATTERN = re.compile(r"-?[0-9]+", re.ASCII)
INT64_MAX = 2**63 - 1
INT64_MIN = -(2**63)


class InMemoryStore:
    """
    Async stand-in for the Redis client.

    ``max_yields`` makes every command give control back to the event loop
    a random number of times, so concurrent callers interleave differently
    from one seed to the next. INCR never yields between its read and write.
    """

    def __init__(self, seed=None, max_yields=0, broken=False):
        self.data: dict[str, str] = {}
        self.broken = broken
        self.calls: list[str] = []
        self._random = random.Random(seed)
        self._max_yields = max_yields

    async def _enter(self, command: str):
        self.calls.append(command)
        for _ in range(self._random.randint(0, self._max_yields)):
            await asyncio.sleep(0)
        if self.broken:
            raise ConnectionError("Error 111 connecting to redis-server:6379.")

    async def get(self, name):
        await self._enter("get")
        return self.data.get(name)

    async def set(self, name, value):
        await self._enter("set")
        self.data[name] = str(value)
        return True

    async def incr(self, name):
        await self._enter("incr")
        raw = self.data.get(name, "0")
        # Redis only takes an optional minus sign and digits, within int64
        if not INTEGER_PATTERN.fullmatch(raw) or not INT64_MIN <= int(raw) <= INT64_MAX:
            raise ResponseError("value is not an integer or out of range")
        if int(raw) == INT64_MAX:
            raise ResponseError("increment or decrement would overflow")
        value = int(raw) + 1
        self.data[name] = str(value)
        return value


class DeniedIncrStore(InMemoryStore):
    """Every command works except INCR, which the ACL refuses."""

    async def incr(self, name):
        await self._enter("incr")
        raise NoPermissionError(
            "this user has no permissions to run the 'incr' command"
        )


class HangingStore(InMemoryStore):
    async def _enter(self, command: str):
        self.calls.append(command)
        await asyncio.sleep(3600)


class FlakyStore(InMemoryStore):
    """Fails the first ``failures`` commands, then behaves."""

    def __init__(self, failures: int):
        super().__init__()
        self.failures = failures

    async def _enter(self, command: str):
        self.calls.append(command)
        if self.failures > 0:
            self.failures -= 1
            raise ConnectionError("Connection reset by peer")


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture(scope="session")
def rsa_keys() -> RsaKeyPair:
    # Smaller than the default modulus to keep the suite fast
    return generate_rsa_keys(2048)
