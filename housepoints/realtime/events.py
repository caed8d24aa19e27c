"""Wire format for live dashboard notifications.

Every message pushed over the socket is an :class:`Envelope` whose ``type``
selects the payload model. Payloads only say *what* changed; clients re-read
totals through the regular HTTP endpoints.
"""

from datetime import UTC, datetime
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter, model_validator

POINTS_UPDATED = "points-updated"
CLASS_UPDATED = "class-updated"
POD_UPDATED = "pod-updated"
HOUSE_UPDATED = "house-updated"
CONNECTION = "connection"

WIRE_EVENT_TYPES = (POINTS_UPDATED, CLASS_UPDATED, POD_UPDATED, HOUSE_UPDATED)


class PointsUpdated(BaseModel):
    type: Literal["points-updated"] = POINTS_UPDATED
    student_ids: list[str]
    point_ids: list[str] = Field(default_factory=list)
    delta: int = 0

    @property
    def scope(self) -> str:
        return "points"


class ClassUpdated(BaseModel):
    type: Literal["class-updated"] = CLASS_UPDATED
    class_id: str
    delta: int = 0

    @property
    def scope(self) -> str:
        return f"class:{self.class_id}"


class PodUpdated(BaseModel):
    type: Literal["pod-updated"] = POD_UPDATED
    pod_id: str
    delta: int = 0

    @property
    def scope(self) -> str:
        return f"pod:{self.pod_id}"


class HouseUpdated(BaseModel):
    type: Literal["house-updated"] = HOUSE_UPDATED
    house_id: str
    delta: int = 0

    @property
    def scope(self) -> str:
        return f"house:{self.house_id}"


class Connected(BaseModel):
    type: Literal["connection"] = CONNECTION
    message: str = "Connected to school behavior points"
    sequences: dict[str, int] = Field(default_factory=dict)

    @property
    def scope(self) -> str:
        return CONNECTION


ScopeEvent = Union[PointsUpdated, ClassUpdated, PodUpdated, HouseUpdated]
WireEvent = Annotated[Union[PointsUpdated, ClassUpdated, PodUpdated, HouseUpdated, Connected], Field(discriminator="type")]


class Envelope(BaseModel):
    type: str
    data: WireEvent
    timestamp: datetime
    scope: str
    sequence: int = 0

    @model_validator(mode="after")
    def check_type_matches_data(self):
        if self.data.type != self.type:
            raise ValueError(f"envelope type {self.type!r} does not match payload type {self.data.type!r}")
        return self

    @classmethod
    def wrap(cls, event: ScopeEvent | Connected, sequence: int = 0) -> "Envelope":
        return cls(
            type=event.type,
            data=event,
            timestamp=datetime.now(UTC),
            scope=event.scope,
            sequence=sequence,
        )

    def to_json(self) -> str:
        return self.model_dump_json()


_WIRE_ADAPTER: TypeAdapter[WireEvent] = TypeAdapter(WireEvent)


def parse_envelope(raw: str | bytes | dict) -> Envelope:
    """Parse a wire message, routing ``data`` through the tagged union.

    Senders that omit ``type`` inside ``data`` get the envelope's ``type``.
    """
    if isinstance(raw, (str, bytes)):
        return Envelope.model_validate_json(raw)
    payload = dict(raw)
    data = dict(payload.get("data") or {})
    data.setdefault("type", payload.get("type"))
    payload["data"] = _WIRE_ADAPTER.validate_python(data)
    return Envelope.model_validate(payload)
