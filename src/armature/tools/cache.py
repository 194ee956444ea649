"""Short-lived cache for work shared between should_confirm and execute."""

import json
import time
from typing import Any, Callable, Generic, Optional, TypeVar

T = TypeVar("T")

# Results computed while asking for confirmation stay valid this long
DEFAULT_TTL_SECONDS = 30.0


def args_key(args: dict[str, Any]) -> str:
    """Stable cache key for a tool argument dict."""
    return json.dumps(args, sort_keys=True, default=str)


class TimedCache(Generic[T]):
    """Mapping whose entries expire after a fixed time-to-live."""

    def __init__(
        self,
        ttl: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._ttl = ttl
        self._clock = clock
        self._entries: dict[str, tuple[float, T]] = {}

    def get(self, key: str) -> Optional[T]:
        """Return a fresh entry, dropping it if it has gone stale."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, value = entry
        if self._clock() - stored_at > self._ttl:
            del self._entries[key]
            return None
        return value

    def put(self, key: str, value: T) -> None:
        """Store a value, stamped with the current time."""
        self._entries[key] = (self._clock(), value)

    def pop(self, key: str) -> Optional[T]:
        """Return a fresh entry and remove it."""
        value = self.get(key)
        self._entries.pop(key, None)
        return value

    def clear(self) -> None:
        """Drop every entry."""
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
