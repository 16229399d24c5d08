"""HTTP client for the SFU signaling API.

Every signaling call is a ``POST`` to a single endpoint with the operation
named in the ``x-sora-target`` header and a JSON body.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from sfudash.exceptions import UpstreamError, ValidationError

logger = logging.getLogger("sfudash.upstream")

LIST_SESSIONS = "Sora_20231220.ListSessions"
LIST_CONNECTIONS = "Sora_20201013.ListConnections"
DISCONNECT_CONNECTION = "Sora_20151104.DisconnectConnection"
START_RECORDING = "Sora_20231220.StartRecording"
STOP_RECORDING = "Sora_20231220.StopRecording"

# Operations the dashboard may invoke through the generic proxy route.
PROXY_TARGETS: frozenset[str] = frozenset(
    {LIST_SESSIONS, LIST_CONNECTIONS, DISCONNECT_CONNECTION}
)


class SignalingClient:
    """Thin async wrapper over the signaling endpoint."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        http: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url
        self._owns_http = http is None
        self.http = http or httpx.AsyncClient(timeout=httpx.Timeout(timeout))

    async def call(self, target: str, body: bytes | str | None = None) -> httpx.Response:
        """POST *body* verbatim for *target*; an empty body becomes ``{}``.

        Raises :class:`UpstreamError` when the request cannot be completed.
        Non-2xx responses are returned, not raised, so callers can relay
        them unchanged.
        """
        if isinstance(body, bytes):
            body = body.decode("utf-8", errors="replace")
        if not body or not body.strip():
            body = "{}"
        try:
            response = await self.http.post(
                self.base_url,
                content=body,
                headers={"x-sora-target": target, "Content-Type": "application/json"},
            )
        except httpx.HTTPError as exc:
            logger.warning("Signaling call %s failed: %s", target, exc)
            raise UpstreamError(f"{target} failed: {exc}") from exc
        logger.debug("Signaling call %s -> %s", target, response.status_code)
        return response

    async def call_json(self, target: str, payload: dict[str, Any] | None = None) -> Any:
        response = await self.call(target, json.dumps(payload or {}))
        if response.is_error:
            raise UpstreamError(f"{target} returned HTTP {response.status_code}")
        try:
            return response.json()
        except ValueError as exc:
            raise UpstreamError(f"{target} returned a non-JSON body") from exc

    async def list_sessions(self) -> Any:
        return await self.call_json(LIST_SESSIONS)

    async def list_connections(self, local: bool = True) -> Any:
        return await self.call_json(LIST_CONNECTIONS, {"local": local})

    async def disconnect_connection(self, channel_id: str, connection_id: str) -> Any:
        if not channel_id or not connection_id:
            raise ValidationError("channel_id and connection_id are required")
        return await self.call_json(
            DISCONNECT_CONNECTION, {"channel_id": channel_id, "connection_id": connection_id}
        )

    async def start_recording(self, channel_id: str, **options: Any) -> Any:
        payload = {"channel_id": channel_id}
        payload.update({k: v for k, v in options.items() if v is not None})
        return await self.call_json(START_RECORDING, payload)

    async def stop_recording(self, channel_id: str) -> Any:
        return await self.call_json(STOP_RECORDING, {"channel_id": channel_id})

    async def aclose(self) -> None:
        if self._owns_http:
            await self.http.aclose()
