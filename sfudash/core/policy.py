"""Authorization predicates for the SFU auth webhook.

A policy maps the requested ``channel_id`` (possibly missing) to an
allow/deny decision. The application keeps the active policy on
``app.state.auth_policy`` so deployments and tests can swap it.
"""

from __future__ import annotations

from collections.abc import Callable

from sfudash.config import settings

AuthPolicy = Callable[[str | None], bool]


def channel_prefix_policy(prefix: str = "") -> AuthPolicy:
    """Allow any non-empty channel id starting with *prefix*."""

    def _policy(channel_id: str | None) -> bool:
        return bool(channel_id) and channel_id.startswith(prefix)

    return _policy


def default_policy() -> AuthPolicy:
    return channel_prefix_policy(settings.auth_channel_prefix)
