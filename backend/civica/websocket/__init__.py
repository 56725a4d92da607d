"""WebSocket module for real-time issue updates."""

from civica.websocket.hub import BroadcastHub, Subscriber

__all__ = ["BroadcastHub", "Subscriber"]
