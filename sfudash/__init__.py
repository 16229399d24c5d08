"""Management backend and event fan-out for an external SFU media server."""

__version__ = "0.1.0"
