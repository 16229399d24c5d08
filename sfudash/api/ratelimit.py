"""Rate limiting for operator-facing routes.

Webhook routes are never limited: the SFU must always get a 200.
"""

from __future__ import annotations

import warnings

# Suppress slowapi's use of deprecated asyncio.iscoroutinefunction (fixed upstream in Python 3.16)
warnings.filterwarnings(
    "ignore",
    message=r".*asyncio\.iscoroutinefunction.*",
    category=DeprecationWarning,
    module=r"slowapi\..*",
)
from slowapi import Limiter  # noqa: E402
from slowapi.util import get_remote_address  # noqa: E402

from sfudash.config import settings  # noqa: E402

limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limit_enabled)


def operator_limit() -> str:
    """Limit string for proxy and recording calls, read per request."""
    return settings.rate_limit
