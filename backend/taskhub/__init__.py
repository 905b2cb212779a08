"""TaskHub notification delivery: API, realtime server, and sync client."""

__version__ = "0.1.0"
