import asyncio
import re
from collections.abc import Awaitable, Callable
from typing import Literal

from redis.exceptions import RedisError, ResponseError

from visitbox.core.errors import MalformedCounterValue, StoreUnavailable
from visitbox.core.store import KeyValueStore
from visitbox.shared import Logger
from visitbox.shared.config import Store

__all__ = ["CounterMode", "VisitCounter", "parse_counter"]

logger = Logger(__name__).get_logger()

type CounterMode = Literal["atomic", "read-write"]

COUNT_PATTERN = re.compile(r"[0-9]+", re.ASCII)


def parse_counter(key: str, raw: str | bytes | None) -> int:
    """
    Interpret a stored counter. An absent key counts as zero.

    Only plain ASCII digits are a count, the same strings INCR accepts
    minus the negative ones.
    """
    if raw is None:
        return 0

    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")

    if not isinstance(raw, str) or not COUNT_PATTERN.fullmatch(raw):
        raise MalformedCounterValue(key, raw)

    return int(raw)


class VisitCounter:
    """
    Visit counter kept in an external key/value store.

    Two modes are supported:
    - ``atomic`` asks the store to INCR the key, so concurrent visits are
      never lost.
    - ``read-write`` reads the key and writes back value + 1. Two visits
      that overlap may both read the same value, losing one of them.

    In both modes the write is acknowledged before the visit count is
    returned, so the reported count always matches what was persisted.
    """

    def __init__(
        self,
        store: KeyValueStore,
        key: str = "visits",
        *,
        mode: CounterMode = "atomic",
        timeout: float = 2.0,
        retries: int = 0,
        backoff: float = 0.1,
    ):
        if mode not in ("atomic", "read-write"):
            raise ValueError(f"Unknown counter mode: {mode!r}")

        self.store = store
        self.key = key
        self.mode = mode
        self.timeout = timeout
        self.retries = retries
        self.backoff = backoff

    @classmethod
    def from_settings(cls, store: KeyValueStore, settings: Store) -> "VisitCounter":
        return cls(
            store,
            settings.key,
            mode=settings.mode,
            timeout=settings.timeout,
            retries=settings.retries,
            backoff=settings.backoff,
        )

    async def initialize(self) -> None:
        await self._call("set", self.store.set, self.key, 0)
        logger.info("Counter '%s' initialised to 0 (%s mode)", self.key, self.mode)

    async def record_visit(self) -> int:
        """Return the number of visits before this one and store one more."""
        if self.mode == "atomic":
            visits = await self._record_atomic()
        else:
            visits = await self._record_read_write()

        logger.debug("Counter '%s' advanced from %s", self.key, visits)
        return visits

    async def _record_atomic(self) -> int:
        try:
            new_value = await self._call("incr", self.store.incr, self.key)
        except StoreUnavailable as e:
            if not isinstance(e.__cause__, ResponseError):
                raise
            # Permission denials and overflows are faults too, only a bad value resets
            raw = await self._call("get", self.store.get, self.key)
            try:
                parse_counter(self.key, raw)
            except MalformedCounterValue as malformed:
                return await self._reset_malformed(malformed)
            raise

        visits = int(new_value) - 1
        if visits < 0:
            # INCR happily counts up from a negative value
            return await self._reset_malformed(
                MalformedCounterValue(self.key, str(visits))
            )

        return visits

    async def _reset_malformed(self, error: MalformedCounterValue) -> int:
        logger.warning("%s, counting from zero", error)
        await self._call("set", self.store.set, self.key, 1)
        return 0

    async def _record_read_write(self) -> int:
        raw = await self._call("get", self.store.get, self.key)

        try:
            visits = parse_counter(self.key, raw)
        except MalformedCounterValue as e:
            logger.warning("%s, counting from zero", e)
            visits = 0

        await self._call("set", self.store.set, self.key, visits + 1)
        return visits

    async def _call[T](
        self,
        operation: str,
        command: Callable[..., Awaitable[T]],
        *args,
    ) -> T:
        attempt = 0
        while True:
            try:
                async with asyncio.timeout(self.timeout):
                    return await command(*args)

            except ResponseError as e:
                # The store answered, retrying will not change its mind
                raise StoreUnavailable(operation, self.key, str(e)) from e

            except (RedisError, OSError, TimeoutError) as e:
                reason = str(e) or type(e).__name__
                if attempt >= self.retries:
                    logger.error(
                        "Store %s on '%s' failed after %s attempt(s): %s",
                        operation,
                        self.key,
                        attempt + 1,
                        reason,
                    )
                    raise StoreUnavailable(operation, self.key, reason) from e

                delay = self.backoff * 2**attempt
                logger.warning(
                    "Store %s on '%s' failed (%s), retrying in %.2fs",
                    operation,
                    self.key,
                    reason,
                    delay,
                )
                attempt += 1
                await asyncio.sleep(delay)
