"""Envelope models carried over the bus and the push stream.

Each recognized ``type`` has its own model so consumers can branch on the
class; anything else parses into :class:`UnknownEnvelope`, which keeps the
raw extra fields. Wire names are camelCase (``connectionId``, ``channelId``).
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class EnvelopeType(str, Enum):
    CONNECTED = "connected"
    AUTH_WEBHOOK_HIT = "auth_webhook.hit"
    EVENT_WEBHOOK_HIT = "event_webhook.hit"
    CONNECTION_CREATED = "connection.created"
    CONNECTION_DESTROYED = "connection.destroyed"
    SESSION_CREATED = "session.created"
    RECORDING_STARTED = "recording.started"


class Envelope(BaseModel):
    """Normalized event record. Immutable once constructed."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")

    type: str
    connection_id: str | None = Field(default=None, alias="connectionId")
    channel_id: str | None = Field(default=None, alias="channelId")
    payload: Any = None
    ts: int | float | None = None

    def to_wire(self) -> dict[str, Any]:
        """Return the JSON-ready mapping, omitting absent optional fields."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Connected(Envelope):
    """Handshake written as the first frame of every push stream."""

    type: Literal["connected"] = "connected"


class AuthWebhookHit(Envelope):
    type: Literal["auth_webhook.hit"] = "auth_webhook.hit"


class EventWebhookHit(Envelope):
    """SFU event whose category has no dedicated envelope."""

    type: Literal["event_webhook.hit"] = "event_webhook.hit"


class ConnectionCreated(Envelope):
    type: Literal["connection.created"] = "connection.created"


class ConnectionDestroyed(Envelope):
    type: Literal["connection.destroyed"] = "connection.destroyed"


class SessionCreated(Envelope):
    type: Literal["session.created"] = "session.created"


class RecordingStarted(Envelope):
    type: Literal["recording.started"] = "recording.started"


class UnknownEnvelope(Envelope):
    """Any other ``type``; unrecognized fields are preserved as extras."""


_ENVELOPE_TYPES: dict[str, type[Envelope]] = {
    EnvelopeType.CONNECTED.value: Connected,
    EnvelopeType.AUTH_WEBHOOK_HIT.value: AuthWebhookHit,
    EnvelopeType.EVENT_WEBHOOK_HIT.value: EventWebhookHit,
    EnvelopeType.CONNECTION_CREATED.value: ConnectionCreated,
    EnvelopeType.CONNECTION_DESTROYED.value: ConnectionDestroyed,
    EnvelopeType.SESSION_CREATED.value: SessionCreated,
    EnvelopeType.RECORDING_STARTED.value: RecordingStarted,
}


def envelope_class(type_: str) -> type[Envelope]:
    return _ENVELOPE_TYPES.get(type_, UnknownEnvelope)


def parse_envelope(data: Any) -> Envelope:
    """Build the envelope variant matching ``data["type"]``.

    Raises ``ValueError`` (pydantic's ``ValidationError`` included) when
    *data* is not a mapping or has no string ``type``.
    """
    if not isinstance(data, Mapping):
        raise ValueError(f"envelope must be an object, got {type(data).__name__}")
    type_ = data.get("type")
    if not isinstance(type_, str):
        raise ValueError("envelope has no string 'type'")
    return envelope_class(type_).model_validate(dict(data))
