"""Receive-only consumer of the dashboard push stream.

:class:`StreamConsumer` keeps one ``text/event-stream`` connection open,
reconnecting after a fixed delay whenever the transport fails or the server
ends the stream. It tracks a ``connected`` flag across those transitions,
decodes frames, discards anything that is not a well-formed envelope and
hands every envelope except the ``connected`` handshake to one callback.

Envelopes of type ``auth_webhook.hit`` are first mirrored into a
:class:`~sfudash.client.storage.TTLStore` keyed by ``connectionId``.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from collections.abc import Callable
from typing import Any

import httpx
from httpx_sse import aconnect_sse

from sfudash.client.storage import DEFAULT_TTL_SECONDS, TTLStore
from sfudash.core.envelopes import AuthWebhookHit, Envelope, EnvelopeType, parse_envelope

logger = logging.getLogger("sfudash.client")

DEFAULT_RETRY_DELAY = 3.0


class StreamConsumer:
    def __init__(
        self,
        url: str,
        on_event: Callable[[Envelope], Any],
        *,
        store: TTLStore | None = None,
        metadata_ttl: float = DEFAULT_TTL_SECONDS,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        http: httpx.AsyncClient | None = None,
        on_status: Callable[[bool], Any] | None = None,
    ) -> None:
        self.url = url
        self._on_event = on_event
        self._on_status = on_status
        self._store = store
        self._metadata_ttl = metadata_ttl
        self._retry_delay = retry_delay
        self._owns_http = http is None
        # No read timeout: the stream is silent between keepalives.
        self._http = http or httpx.AsyncClient(timeout=httpx.Timeout(10.0, read=None))
        self._connected = False
        self._closed = False
        self._task: asyncio.Task[None] | None = None

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def closed(self) -> bool:
        return self._closed

    def _set_connected(self, value: bool) -> None:
        if value == self._connected:
            return
        self._connected = value
        logger.info("Stream %s: %s", "opened" if value else "lost", self.url)
        if self._on_status is not None:
            self._on_status(value)

    def start(self) -> asyncio.Task[None]:
        """Open the stream in a background task (idempotent)."""
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(self.run())
        return self._task

    async def run(self) -> None:
        """Receive until :meth:`close`, reconnecting after every drop."""
        while not self._closed:
            try:
                await self._listen()
            except httpx.HTTPError as exc:
                logger.warning("Stream error on %s: %s", self.url, exc)
            except Exception:
                logger.exception("Stream receive loop failed on %s", self.url)
            self._set_connected(False)
            if self._closed:
                break
            await asyncio.sleep(self._retry_delay)

    async def _listen(self) -> None:
        async with aconnect_sse(self._http, "GET", self.url) as source:
            source.response.raise_for_status()
            self._set_connected(True)
            # Keepalive comments never surface as events.
            async for event in source.aiter_sse():
                self.dispatch(event.data)
                if self._closed:
                    return

    def dispatch(self, data: str) -> Envelope | None:
        """Handle one frame payload; returns the envelope passed on, if any."""
        if self._closed:
            return None
        try:
            envelope = parse_envelope(json.loads(data))
        except (ValueError, RecursionError):
            logger.warning("Discarding malformed stream frame: %.200s", data)
            return None

        if envelope.type == EnvelopeType.CONNECTED.value:
            return None

        if (
            isinstance(envelope, AuthWebhookHit)
            and envelope.connection_id
            and self._store is not None
        ):
            try:
                self._store.set(
                    envelope.connection_id, envelope.to_wire(), ttl=self._metadata_ttl
                )
            except Exception:
                logger.warning(
                    "Could not cache metadata for %s", envelope.connection_id, exc_info=True
                )

        try:
            self._on_event(envelope)
        except Exception:
            logger.warning("Event handler failed for %s", envelope.type, exc_info=True)
        return envelope

    async def close(self) -> None:
        """Stop receiving; no envelope is dispatched after this returns."""
        self._closed = True
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
        self._set_connected(False)
        if self._owns_http:
            await self._http.aclose()
