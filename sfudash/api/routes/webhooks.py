"""Webhook ingest routes called by the SFU.

The SFU treats anything other than a timely HTTP 200 as a delivery or
infrastructure failure and retries, so every route here answers 200, even
for bodies it cannot decode. Recognized notifications are normalized into
envelopes and published on the ``front`` topic.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import APIRouter, Request

from sfudash.config import settings
from sfudash.core.bus import FRONT_TOPIC, EventBus
from sfudash.core.envelopes import (
    AuthWebhookHit,
    ConnectionCreated,
    ConnectionDestroyed,
    Envelope,
    EventWebhookHit,
    RecordingStarted,
    SessionCreated,
)

logger = logging.getLogger("sfudash.webhooks")

router = APIRouter(prefix="/sora", tags=["Webhooks"])

EVENT_TYPE_HEADER = "sora-event-webhook-type"
SESSION_ID_HEADER = "sora-session-id"
CONNECTION_ID_HEADER = "sora-connection-id"

DENIED_REASON = "channel_id policy"

_FORWARDED_CONNECTION_EVENTS: dict[str, type[Envelope]] = {
    "connection.created": ConnectionCreated,
    "connection.destroyed": ConnectionDestroyed,
}
_FORWARDED_SESSION_EVENTS: dict[str, type[Envelope]] = {
    "session.created": SessionCreated,
    "recording.started": RecordingStarted,
}


class _Undecodable(Exception):
    pass


async def _read_json(request: Request) -> Any:
    raw = await request.body()
    try:
        return json.loads(raw)
    except (ValueError, UnicodeDecodeError, RecursionError) as exc:
        raise _Undecodable(str(exc)) from exc


async def _read_object(request: Request) -> dict[str, Any]:
    """Decode the body as a JSON object, degrading to ``{}``."""
    try:
        body = await _read_json(request)
    except _Undecodable:
        logger.warning("Undecodable webhook body on %s", request.url.path)
        return {}
    return body if isinstance(body, dict) else {}


def _str_or_none(value: Any) -> str | None:
    return value if isinstance(value, str) and value else None


def _publish(request: Request, envelope: Envelope) -> None:
    bus: EventBus = request.app.state.bus
    bus.publish(FRONT_TOPIC, envelope)
    logger.info(
        "Published %s", envelope.type, extra={"topic": FRONT_TOPIC, "event_type": envelope.type}
    )


@router.post("/auth", summary="SFU authentication webhook")
async def auth_webhook(request: Request):
    """Decide whether a connection may join its channel.

    Only allowed connections are broadcast to the dashboard.
    """
    body = await _read_object(request)
    channel_id = _str_or_none(body.get("channel_id"))
    connection_id = _str_or_none(body.get("connection_id"))

    policy = request.app.state.auth_policy
    try:
        allowed = bool(policy(channel_id))
    except Exception:
        logger.warning("Auth policy failed for channel %r; denying", channel_id, exc_info=True)
        allowed = False

    if not allowed:
        logger.info("Denied connection %s on channel %r", connection_id, channel_id)
        return {"allowed": False, "reason": DENIED_REASON}

    _publish(
        request,
        AuthWebhookHit(
            channel_id=channel_id,
            connection_id=connection_id,
            payload={"allowed": True},
        ),
    )
    return {
        "allowed": True,
        "event_metadata": {"project": settings.project_name, "channel": channel_id},
    }


@router.post("/event", summary="SFU event webhook")
async def event_webhook(request: Request):
    """Acknowledge an SFU event and forward the ones the dashboard shows."""
    category = request.headers.get(EVENT_TYPE_HEADER)
    session_id = request.headers.get(SESSION_ID_HEADER) or None
    connection_id = request.headers.get(CONNECTION_ID_HEADER) or None

    try:
        payload = await _read_json(request)
    except _Undecodable:
        logger.error("Invalid JSON from SFU event webhook (%s)", category)
        return {"ok": True}

    body = payload if isinstance(payload, dict) else {}
    category = category or _str_or_none(body.get("type"))

    envelope_cls = _FORWARDED_CONNECTION_EVENTS.get(category or "")
    if envelope_cls is not None:
        _publish(
            request,
            envelope_cls(
                connection_id=connection_id or _str_or_none(body.get("connection_id")),
                channel_id=_str_or_none(body.get("channel_id")),
                payload=payload,
            ),
        )
    elif category == "connection.updated":
        pass
    elif category in ("recording.started", "recording.report"):
        logger.info("Recording event %s (session %s)", category, session_id)
    else:
        _publish(
            request,
            EventWebhookHit(
                connection_id=connection_id,
                payload={"category": category, "session_id": session_id, "data": payload},
            ),
        )
    return {"ok": True}


@router.post("/session", summary="SFU session webhook")
async def session_webhook(request: Request):
    body = await _read_object(request)
    type_ = _str_or_none(body.get("type"))
    logger.info("Session webhook received: %s", type_)

    envelope_cls = _FORWARDED_SESSION_EVENTS.get(type_ or "")
    if envelope_cls is not None:
        _publish(
            request,
            envelope_cls(channel_id=_str_or_none(body.get("channel_id")), payload=body),
        )
    elif type_ != "session.updated":
        logger.debug("Ignoring session event %s", type_)
    return {"ok": True}
