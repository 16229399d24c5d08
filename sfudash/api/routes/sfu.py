"""Operator routes relayed to the SFU signaling API.

Responses from the SFU are passed through with their status code and
content type; only transport failures are turned into errors here.
"""

from __future__ import annotations

import logging
from typing import Any, Literal

import httpx
from fastapi import APIRouter, Request, Response
from pydantic import BaseModel, Field, model_validator

from sfudash.api.ratelimit import limiter, operator_limit
from sfudash.exceptions import ValidationError
from sfudash.upstream import (
    LIST_SESSIONS,
    PROXY_TARGETS,
    START_RECORDING,
    STOP_RECORDING,
    SignalingClient,
)

logger = logging.getLogger("sfudash.sfu")

router = APIRouter(prefix="/api", tags=["SFU"])

TARGET_HEADER = "x-sora-target"


class RecordingRequest(BaseModel):
    channel_id: str = Field(min_length=1, max_length=255)
    format: Literal["mp4", "webm"] | None = None
    expire_time: int | None = Field(default=None, ge=1, le=86400)
    split_duration: int | None = Field(default=None, ge=1, le=86400)
    split_only: bool | None = None
    metadata: dict[str, Any] | None = None

    @model_validator(mode="after")
    def _split_only_needs_duration(self) -> RecordingRequest:
        if self.split_only and self.split_duration is None:
            raise ValueError("split_duration is required when split_only is true")
        return self

    @property
    def is_start(self) -> bool:
        return self.format is not None or self.split_only is not None


def _relay(upstream: httpx.Response) -> Response:
    return Response(
        content=upstream.content,
        status_code=upstream.status_code,
        media_type=upstream.headers.get("Content-Type", "application/json"),
    )


def _client(request: Request) -> SignalingClient:
    return request.app.state.signaling


@router.post("/proxy", summary="Relay a signaling API call")
@limiter.limit(operator_limit)
async def proxy(request: Request):
    """Forward the raw body to the SFU for an allow-listed ``x-sora-target``."""
    target = request.headers.get(TARGET_HEADER) or LIST_SESSIONS
    if target not in PROXY_TARGETS:
        raise ValidationError(f"Unsupported {TARGET_HEADER}: {target}")
    body = await request.body()
    upstream = await _client(request).call(target, body)
    return _relay(upstream)


@router.post("/recording", summary="Start or stop a channel recording")
@limiter.limit(operator_limit)
async def recording(request: Request, req: RecordingRequest):
    target = START_RECORDING if req.is_start else STOP_RECORDING
    if req.is_start:
        payload = req.model_dump_json(exclude_none=True)
    else:
        payload = req.model_dump_json(include={"channel_id"})
    logger.info("Recording %s for channel %s", target, req.channel_id)
    upstream = await _client(request).call(target, payload)
    return _relay(upstream)
