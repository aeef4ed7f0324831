"""WebSocket module for live report updates and map sessions."""

from parkpatrol.websocket.manager import ConnectionManager
from parkpatrol.websocket.router import router as websocket_router

__all__ = ["ConnectionManager", "websocket_router"]
