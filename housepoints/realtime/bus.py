import logging
import threading
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

Handler = Callable[[Any], None]


class EventBus:
    """Named publish/subscribe registry.

    Used on the server to decouple mutations from the socket hub, and on the
    client to let many widgets react to one socket without owning it.
    Delivery is synchronous and only reaches handlers subscribed at publish time.

    Each name maps to a set of handlers kept in subscription order, so
    subscribing the same handler twice still delivers once. Handlers
    subscribed with ``early=True`` run before all the others; caches use
    this to invalidate before the views that read from them re-render.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, dict[Handler, bool]] = {}
        self._lock = threading.Lock()

    def subscribe(self, name: str, handler: Handler, *, early: bool = False) -> Callable[[], None]:
        with self._lock:
            handlers = self._handlers.setdefault(name, {})
            handlers[handler] = handlers.get(handler, False) or early

        def _unsubscribe() -> None:
            self.unsubscribe(name, handler)

        return _unsubscribe

    def unsubscribe(self, name: str, handler: Handler) -> None:
        with self._lock:
            handlers = self._handlers.get(name)
            if not handlers or handler not in handlers:
                return
            del handlers[handler]
            if not handlers:
                del self._handlers[name]

    def publish(self, name: str, payload: Any = None) -> int:
        with self._lock:
            registered = self._handlers.get(name, {})
            handlers = [h for h, early in registered.items() if early]
            handlers += [h for h, early in registered.items() if not early]
        if not handlers:
            return 0

        delivered = 0
        for handler in handlers:
            try:
                handler(payload)
                delivered += 1
            except Exception:
                logger.exception("Subscriber for '%s' failed.", name)
        return delivered

    def subscriber_count(self, name: str) -> int:
        with self._lock:
            return len(self._handlers.get(name, ()))

    def clear(self) -> None:
        with self._lock:
            self._handlers.clear()
