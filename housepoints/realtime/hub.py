import asyncio
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from uuid import uuid4

from fastapi import WebSocket

from housepoints.realtime.bus import EventBus
from housepoints.realtime.events import WIRE_EVENT_TYPES, Connected, Envelope, ScopeEvent

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class Connection:
    websocket: WebSocket
    queue: asyncio.Queue
    loop: asyncio.AbstractEventLoop
    id: str = field(default_factory=lambda: uuid4().hex[:12])


class BroadcastHub:
    """Fans scope events out to every connected dashboard socket.

    Best-effort and at-most-once: a socket that is not connected when an
    event is broadcast never sees it, and a slow socket loses its oldest
    queued messages. Each envelope carries a per-scope sequence number so
    clients can notice a gap and refetch.
    """

    def __init__(self, queue_size: int = 100) -> None:
        self.queue_size = queue_size
        self._connections: dict[str, Connection] = {}
        self._sequences: dict[str, int] = {}
        self._lock = threading.Lock()

    @property
    def connection_count(self) -> int:
        with self._lock:
            return len(self._connections)

    def sequences(self) -> dict[str, int]:
        with self._lock:
            return dict(self._sequences)

    def attach(self, bus: EventBus) -> Callable[[], None]:
        unsubscribers = [bus.subscribe(event_type, self.broadcast) for event_type in WIRE_EVENT_TYPES]

        def _detach() -> None:
            for unsubscribe in unsubscribers:
                unsubscribe()

        return _detach

    async def connect(self, websocket: WebSocket) -> Connection:
        await websocket.accept()
        connection = Connection(
            websocket=websocket,
            queue=asyncio.Queue(maxsize=self.queue_size),
            loop=asyncio.get_running_loop(),
        )
        with self._lock:
            self._connections[connection.id] = connection
            hello = Envelope.wrap(Connected(sequences=dict(self._sequences)))
        connection.queue.put_nowait(hello.to_json())
        logger.info("Live client %s connected (%d total).", connection.id, self.connection_count)
        return connection

    def disconnect(self, connection: Connection) -> None:
        with self._lock:
            removed = self._connections.pop(connection.id, None)
        if removed is not None:
            logger.info("Live client %s disconnected (%d total).", connection.id, self.connection_count)

    def broadcast(self, event: ScopeEvent) -> int:
        """Queue one envelope for every connection without waiting on any of them."""
        with self._lock:
            sequence = self._sequences.get(event.scope, 0) + 1
            self._sequences[event.scope] = sequence
            connections = list(self._connections.values())

        message = Envelope.wrap(event, sequence=sequence).to_json()
        logger.debug("Broadcasting %s seq=%d to %d client(s).", event.type, sequence, len(connections))

        queued = 0
        for connection in connections:
            try:
                connection.loop.call_soon_threadsafe(self._enqueue, connection, message)
                queued += 1
            except RuntimeError:
                logger.debug("Live client %s loop is closed, dropping it.", connection.id)
                self.disconnect(connection)
        return queued

    def reply(self, connection: Connection, message: str) -> None:
        """Queue a message for one connection; must be called on its loop."""
        self._enqueue(connection, message)

    def _enqueue(self, connection: Connection, message: str | None) -> None:
        try:
            connection.queue.put_nowait(message)
        except asyncio.QueueFull:
            try:
                connection.queue.get_nowait()
            except asyncio.QueueEmpty:
                pass
            connection.queue.put_nowait(message)
            logger.debug("Live client %s is slow, dropped its oldest message.", connection.id)

    async def pump(self, connection: Connection) -> None:
        while True:
            message = await connection.queue.get()
            if message is None:
                break
            try:
                await connection.websocket.send_text(message)
            except Exception as exc:
                logger.debug("Send to live client %s failed: %s", connection.id, exc)
                break
        self.disconnect(connection)

    def close(self) -> None:
        with self._lock:
            connections = list(self._connections.values())
            self._connections.clear()
        for connection in connections:
            try:
                connection.loop.call_soon_threadsafe(self._enqueue, connection, None)
            except RuntimeError:
                continue
