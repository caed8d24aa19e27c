from collections.abc import Callable
from typing import Any

from housepoints.client.feed import RESYNC_REQUIRED, WEBSOCKET_CONNECTED
from housepoints.realtime.bus import EventBus


class StandingsWidget:
    """A dashboard panel that re-reads its data whenever one of its topics fires.

    ``topics`` are bus names: wire types such as ``"house-updated"`` or
    per-entity names such as ``"class-<id>-updated"``.
    """

    def __init__(self, bus: EventBus, key: str, loader: Callable[[str], Any], topics: list[str]) -> None:
        self.key = key
        self.loader = loader
        self.notifications = 0
        self.renders = 0
        self.data: Any = None
        names = list(dict.fromkeys([*topics, WEBSOCKET_CONNECTED, RESYNC_REQUIRED]))
        self._unsubscribers = [bus.subscribe(name, self._on_event) for name in names]
        self.render()

    def _on_event(self, _payload: Any) -> None:
        self.notifications += 1
        self.render()

    def render(self) -> Any:
        self.data = self.loader(self.key)
        self.renders += 1
        return self.data

    def close(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
