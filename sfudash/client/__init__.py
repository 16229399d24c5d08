"""Client-side consumer of the dashboard push stream."""

from sfudash.client.consumer import StreamConsumer
from sfudash.client.storage import TTLStore

__all__ = ["StreamConsumer", "TTLStore"]
