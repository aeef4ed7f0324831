"""WebSocket connection manager for broadcasting report changes."""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime

from fastapi import WebSocket

from parkpatrol.schemas.map import Viewport
from parkpatrol.schemas.report import ReportOut
from parkpatrol.services.report_store import StoreChange
from parkpatrol.websocket.schemas import ReportUpdateMessage

logger = logging.getLogger(__name__)


@dataclass
class ClientSubscription:
    """Tracks a client's subscription preferences."""

    websocket: WebSocket
    viewport: Viewport | None = None
    connected_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def matches(self, report: ReportOut) -> bool:
        """Check if a report falls inside this subscription's viewport."""
        if self.viewport is None:
            return True
        return self.viewport.contains(report.latitude, report.longitude)


class ConnectionManager:
    """
    Manages WebSocket connections and broadcasts report changes.

    Registered as a report store observer, so every committed create or
    delete reaches the live history and map views without a manual refresh.
    """

    def __init__(self):
        self._connections: dict[WebSocket, ClientSubscription] = {}
        self._lock = asyncio.Lock()

    @property
    def connection_count(self) -> int:
        """Number of active connections."""
        return len(self._connections)

    async def connect(self, websocket: WebSocket) -> None:
        """Accept a new WebSocket connection."""
        await websocket.accept()
        async with self._lock:
            self._connections[websocket] = ClientSubscription(websocket=websocket)
        logger.info(f"WebSocket connected. Total connections: {self.connection_count}")

    async def disconnect(self, websocket: WebSocket) -> None:
        """Remove a disconnected WebSocket."""
        async with self._lock:
            if websocket in self._connections:
                del self._connections[websocket]
        logger.info(f"WebSocket disconnected. Total connections: {self.connection_count}")

    async def update_subscription(
        self,
        websocket: WebSocket,
        viewport: Viewport | None = None,
    ) -> None:
        """Update a client's viewport; None clears the filter."""
        async with self._lock:
            if websocket in self._connections:
                self._connections[websocket].viewport = viewport
                logger.debug(f"Updated subscription: viewport={viewport}")

    async def handle_change(self, change: StoreChange) -> None:
        """Report store observer callback."""
        await self.broadcast(change.kind, change.reports, change.timestamp)

    async def broadcast(
        self,
        event: str,
        reports: list[ReportOut],
        timestamp: datetime | None = None,
    ) -> None:
        """
        Broadcast changed reports to all matching subscribers.

        Filters reports per-client based on viewport.
        """
        if not reports:
            return

        async with self._lock:
            if not self._connections:
                return

            timestamp = timestamp or datetime.now(UTC)

            tasks = []
            for websocket, subscription in list(self._connections.items()):
                matching = [r for r in reports if subscription.matches(r)]

                if matching:
                    message = ReportUpdateMessage(
                        event=event,
                        data=matching,
                        timestamp=timestamp,
                    )
                    tasks.append(self._send_safe(websocket, message))

            if tasks:
                await asyncio.gather(*tasks, return_exceptions=True)
                logger.info(
                    f"Broadcast {len(reports)} {event} reports to {len(tasks)} subscribers"
                )

    async def _send_safe(
        self, websocket: WebSocket, message: ReportUpdateMessage
    ) -> None:
        """Send message to websocket, handling errors gracefully."""
        try:
            await websocket.send_json(message.model_dump(mode="json"))
        except Exception as e:
            logger.warning(f"Failed to send to websocket: {e}")
            # Schedule disconnect (don't do it here to avoid deadlock)
            asyncio.create_task(self.disconnect(websocket))


# Global singleton instance
manager = ConnectionManager()
