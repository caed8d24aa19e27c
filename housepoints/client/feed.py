import logging
from typing import Any

from pydantic import ValidationError

from housepoints.realtime.bus import EventBus
from housepoints.realtime.events import (
    CONNECTION,
    ClassUpdated,
    Envelope,
    HouseUpdated,
    PodUpdated,
    PointsUpdated,
    parse_envelope,
)

logger = logging.getLogger(__name__)

WEBSOCKET_CONNECTED = "websocket-connected"
WEBSOCKET_DISCONNECTED = "websocket-disconnected"
RESYNC_REQUIRED = "resync-required"


def scoped_names(event: Any) -> list[str]:
    """Per-entity bus names a scope event fans out to, e.g. ``class-<id>-updated``."""
    if isinstance(event, PointsUpdated):
        return [f"student-{student_id}-updated" for student_id in event.student_ids]
    if isinstance(event, ClassUpdated):
        return [f"class-{event.class_id}-updated"]
    if isinstance(event, PodUpdated):
        return [f"pod-{event.pod_id}-updated"]
    if isinstance(event, HouseUpdated):
        return [f"house-{event.house_id}-updated"]
    return []


class LiveFeed:
    """Republishes socket envelopes onto a local :class:`EventBus`.

    Tracks the last sequence seen per scope. When a message skips ahead,
    ``resync-required`` is published before the message so listeners
    refetch everything instead of trusting what they missed.
    """

    def __init__(self, bus: EventBus) -> None:
        self.bus = bus
        self._sequences: dict[str, int] = {}
        self._synced = False

    @property
    def connected(self) -> bool:
        return self._synced

    def last_sequence(self, scope: str) -> int | None:
        return self._sequences.get(scope)

    def handle_message(self, raw: str | bytes | dict) -> Envelope | None:
        try:
            envelope = parse_envelope(raw)
        except ValidationError as exc:
            logger.warning("Ignoring malformed live message: %s", exc.errors()[:1])
            return None

        if envelope.type == CONNECTION:
            self._sequences = dict(envelope.data.sequences)
            self._synced = True
            self.bus.publish(WEBSOCKET_CONNECTED, envelope.data)
            return envelope

        self._track_sequence(envelope)
        self.bus.publish(envelope.type, envelope.data)
        for name in scoped_names(envelope.data):
            self.bus.publish(name, envelope.data)
        return envelope

    def connection_lost(self) -> None:
        self._synced = False
        self._sequences.clear()
        self.bus.publish(WEBSOCKET_DISCONNECTED)

    def _track_sequence(self, envelope: Envelope) -> None:
        previous = self._sequences.get(envelope.scope, 0 if self._synced else None)
        self._sequences[envelope.scope] = max(envelope.sequence, previous or 0)
        if previous is None or envelope.sequence <= previous + 1:
            return
        logger.info(
            "Missed %d message(s) on %s, requesting resync.", envelope.sequence - previous - 1, envelope.scope
        )
        self.bus.publish(
            RESYNC_REQUIRED,
            {"scope": envelope.scope, "expected": previous + 1, "received": envelope.sequence},
        )
