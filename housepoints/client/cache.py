import logging
import threading
from collections.abc import Callable
from typing import Any

from housepoints.client.feed import RESYNC_REQUIRED, WEBSOCKET_CONNECTED
from housepoints.realtime.bus import EventBus
from housepoints.realtime.events import CLASS_UPDATED, HOUSE_UPDATED, POD_UPDATED, POINTS_UPDATED

logger = logging.getLogger(__name__)

ALL_KEYS = "*"

INVALIDATION_MAP: dict[str, tuple[str, ...]] = {
    POINTS_UPDATED: ("behavior-points", "students", "houses", "pods", "classes"),
    CLASS_UPDATED: ("classes", "pods"),
    POD_UPDATED: ("pods", "classes"),
    HOUSE_UPDATED: ("houses",),
    WEBSOCKET_CONNECTED: (ALL_KEYS,),
    RESYNC_REQUIRED: (ALL_KEYS,),
}


def key_matches(key: str, prefix: str) -> bool:
    return prefix == ALL_KEYS or key == prefix or key.startswith(f"{prefix}/")


class QueryCache:
    """Keyed read cache that invalidates and refetches on bus events.

    ``fetcher`` is usually :meth:`PointsApiClient.fetch`. Only keys that
    have been read at least once are refetched.
    Its handlers subscribe early, so widgets reading through :meth:`get`
    see refetched data whatever order they were built in.
    """

    def __init__(self, bus: EventBus, fetcher: Callable[[str], Any]) -> None:
        self.bus = bus
        self.fetcher = fetcher
        self._data: dict[str, Any] = {}
        self._lock = threading.Lock()
        self._unsubscribers = [
            bus.subscribe(name, self._make_handler(prefixes), early=True)
            for name, prefixes in INVALIDATION_MAP.items()
        ]

    def _make_handler(self, prefixes: tuple[str, ...]) -> Callable[[Any], None]:
        def _handler(_payload: Any) -> None:
            self.refresh(*prefixes)

        return _handler

    def get(self, key: str) -> Any:
        with self._lock:
            if key in self._data:
                return self._data[key]
        value = self.fetcher(key)
        with self._lock:
            self._data[key] = value
        return value

    def peek(self, key: str) -> Any:
        with self._lock:
            return self._data.get(key)

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._data)

    def invalidate(self, *prefixes: str) -> list[str]:
        with self._lock:
            stale = [key for key in self._data if any(key_matches(key, prefix) for prefix in prefixes)]
            for key in stale:
                del self._data[key]
        return stale

    def refresh(self, *prefixes: str) -> list[str]:
        """Drop every cached key under ``prefixes`` and read it again."""
        stale = self.invalidate(*prefixes)
        for key in stale:
            try:
                self.get(key)
            except Exception:
                logger.exception("Refetch of %r failed, will retry on next read.", key)
        return stale

    def close(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
