import asyncio
import contextlib
import logging

import websockets
from websockets.exceptions import WebSocketException

from housepoints.client.feed import LiveFeed

logger = logging.getLogger(__name__)

DEFAULT_RECONNECT_DELAY = 3.0


def live_url(base_url: str, path: str = "/ws") -> str:
    """Turn an ``http(s)://`` API base URL into the matching ``ws(s)://`` socket URL."""
    if base_url.startswith("https://"):
        base_url = "wss://" + base_url[len("https://") :]
    elif base_url.startswith("http://"):
        base_url = "ws://" + base_url[len("http://") :]
    return base_url.rstrip("/") + path


class LiveConnection:
    """Keeps one socket open to the server and feeds every message to a :class:`LiveFeed`.

    A dropped channel is reported through ``feed.connection_lost()`` and
    reopened after ``reconnect_delay`` seconds. Nothing is replayed: the
    server's hello on reconnect makes listeners refetch.
    """

    def __init__(self, url: str, feed: LiveFeed, *, reconnect_delay: float = DEFAULT_RECONNECT_DELAY) -> None:
        self.url = url
        self.feed = feed
        self.reconnect_delay = reconnect_delay
        self.connects = 0
        self._stop = asyncio.Event()

    async def run(self) -> None:
        while not self._stop.is_set():
            try:
                async with websockets.connect(self.url) as socket:
                    self.connects += 1
                    logger.info("Live channel open: %s", self.url)
                    await self._listen(socket)
            except (OSError, WebSocketException) as exc:
                logger.info("Live channel to %s unavailable: %s", self.url, exc)

            if self.feed.connected:
                self.feed.connection_lost()
            if self._stop.is_set():
                break
            with contextlib.suppress(asyncio.TimeoutError):
                await asyncio.wait_for(self._stop.wait(), timeout=self.reconnect_delay)

    async def _listen(self, socket) -> None:
        stop_waiter = asyncio.ensure_future(self._stop.wait())
        try:
            while True:
                receiver = asyncio.ensure_future(socket.recv())
                done, _ = await asyncio.wait({receiver, stop_waiter}, return_when=asyncio.FIRST_COMPLETED)
                if stop_waiter in done:
                    receiver.cancel()
                    return
                self.feed.handle_message(receiver.result())
        finally:
            stop_waiter.cancel()

    def stop(self) -> None:
        self._stop.set()
