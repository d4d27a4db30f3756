from collections.abc import Iterable

__all__ = [
    "EncryptionContextMismatch",
    "MalformedCounterValue",
    "StoreUnavailable",
    "VisitboxError",
]


class VisitboxError(Exception):
    """Base class for every error raised by visitbox itself."""


class StoreUnavailable(VisitboxError):
    """The key/value store timed out or answered with a fault."""

    def __init__(self, operation: str, key: str, reason: str):
        super().__init__(f"Store {operation} on '{key}' failed: {reason}")
        self.operation = operation
        self.key = key
        self.reason = reason


class MalformedCounterValue(VisitboxError):
    """The counter key holds something other than a non-negative integer."""

    def __init__(self, key: str, value: object):
        super().__init__(f"Counter '{key}' does not hold a visit count: {value!r}")
        self.key = key
        self.value = value


class EncryptionContextMismatch(VisitboxError):
    """A required encryption-context pair is missing or altered after decrypt."""

    def __init__(self, keys: Iterable[str]):
        self.keys = sorted(keys)
        super().__init__(
            "Encryption Context does not match expected values: "
            + ", ".join(self.keys)
        )
