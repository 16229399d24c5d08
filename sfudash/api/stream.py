"""Server-Sent Events push channel for dashboard clients.

Each dashboard client gets one :class:`StreamConnection`: a bounded
:class:`asyncio.Queue` of encoded frames (the transport buffer), a
heartbeat task writing keepalive comments, and a bus subscription that
encodes every envelope published on the ``front`` topic.

Teardown cancels the heartbeat, removes the subscription and only then
closes the transport, so the bus can never write into a closed queue.
:meth:`StreamConnection.close` may be called any number of times.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator
from typing import Any

from sfudash.core.bus import FRONT_TOPIC, EventBus, Subscription
from sfudash.core.envelopes import Connected, Envelope
from sfudash.core.framing import PING_FRAME, encode_data
from sfudash.exceptions import StreamClosedError

logger = logging.getLogger("sfudash.stream")

_CLOSED = object()


class StreamConnection:
    """One open push channel to one dashboard client."""

    def __init__(
        self,
        bus: EventBus,
        *,
        topic: str = FRONT_TOPIC,
        heartbeat_interval: float = 15.0,
        max_queue_size: int = 200,
    ) -> None:
        self._bus = bus
        self._topic = topic
        self._heartbeat_interval = heartbeat_interval
        self._queue: asyncio.Queue[Any] = asyncio.Queue(maxsize=max_queue_size)
        self._subscription: Subscription | None = None
        self._heartbeat: asyncio.Task[None] | None = None
        self._closing = False
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def open(self) -> None:
        """Write the handshake, attach to the bus and start heartbeating.

        Must be called from a running event loop.
        """
        self._write(encode_data(Connected(ts=int(time.time() * 1000)).to_wire()))
        self._subscription = self._bus.subscribe(self._topic, self._on_envelope)
        self._heartbeat = asyncio.get_running_loop().create_task(self._beat())

    def _on_envelope(self, envelope: Envelope | dict[str, Any]) -> None:
        data = envelope.to_wire() if isinstance(envelope, Envelope) else envelope
        # QueueFull propagates so the bus logs the drop for this client only.
        self._write(encode_data(data))

    def _write(self, frame: str) -> None:
        if self._closed:
            raise StreamClosedError("push stream is closed")
        self._queue.put_nowait(frame)

    async def _beat(self) -> None:
        while True:
            await asyncio.sleep(self._heartbeat_interval)
            try:
                self._write(PING_FRAME)
            except asyncio.QueueFull:
                logger.debug("Skipping keepalive for stalled stream")

    def close(self) -> None:
        """Tear the connection down: heartbeat, then subscription, then transport."""
        if self._closing:
            return
        self._closing = True

        if self._heartbeat is not None:
            self._heartbeat.cancel()
            self._heartbeat = None

        if self._subscription is not None:
            self._bus.unsubscribe(self._topic, self._subscription)
            self._subscription = None

        self._closed = True
        try:
            self._queue.put_nowait(_CLOSED)
        except asyncio.QueueFull:
            # Pending frames are undeliverable once the transport is closed.
            while not self._queue.empty():
                self._queue.get_nowait()
            self._queue.put_nowait(_CLOSED)

    async def frames(self) -> AsyncIterator[str]:
        """Yield encoded frames in write order until the connection closes."""
        while True:
            frame = await self._queue.get()
            if frame is _CLOSED:
                return
            yield frame


class StreamHub:
    """Registry of live push connections, drained on application shutdown."""

    def __init__(
        self,
        bus: EventBus,
        *,
        heartbeat_interval: float = 15.0,
        max_queue_size: int = 200,
    ) -> None:
        self._bus = bus
        self.heartbeat_interval = heartbeat_interval
        self.max_queue_size = max_queue_size
        self._connections: set[StreamConnection] = set()

    @property
    def active(self) -> int:
        return len(self._connections)

    def connect(self) -> StreamConnection:
        conn = StreamConnection(
            self._bus,
            heartbeat_interval=self.heartbeat_interval,
            max_queue_size=self.max_queue_size,
        )
        conn.open()
        self._connections.add(conn)
        logger.info("Stream client connected (%d active)", len(self._connections))
        return conn

    def disconnect(self, conn: StreamConnection) -> None:
        conn.close()
        if conn in self._connections:
            self._connections.discard(conn)
            logger.info("Stream client disconnected (%d active)", len(self._connections))

    async def stream(self) -> AsyncIterator[str]:
        """Frame generator for one client; tears down when the client goes away."""
        conn = self.connect()
        try:
            async for frame in conn.frames():
                yield frame
        finally:
            self.disconnect(conn)

    def close_all(self) -> None:
        for conn in list(self._connections):
            self.disconnect(conn)
