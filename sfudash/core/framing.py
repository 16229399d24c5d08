"""Server-side framing for the ``text/event-stream`` push channel.

Data frames are ``data: <json>\\n\\n``; keepalives are the comment frame
``: ping\\n\\n``, which conforming readers skip.
"""

from __future__ import annotations

import json
from typing import Any

PING_FRAME = ": ping\n\n"


def encode_data(obj: Any) -> str:
    """Encode one JSON-serializable object as a single data frame."""
    return f"data: {json.dumps(obj, separators=(',', ':'), ensure_ascii=False)}\n\n"
