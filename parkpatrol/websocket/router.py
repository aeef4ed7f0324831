"""WebSocket routers for live report updates and the map screen."""

import json
import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from pydantic import BaseModel, ValidationError

from parkpatrol.schemas.map import MapSnapshot
from parkpatrol.services.geocoder import ReverseGeocoder, get_geocoder
from parkpatrol.services.map_session import MapSession
from parkpatrol.services.report_store import ReportStore, get_report_store
from parkpatrol.websocket.manager import manager
from parkpatrol.websocket.schemas import (
    AuthorizationMessage,
    ErrorMessage,
    LocationMessage,
    MapStateMessage,
    PongMessage,
    ReportCreatedMessage,
    SubmitMessage,
    SubscribeMessage,
    TapMessage,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/ws/reports")
async def websocket_reports(websocket: WebSocket):
    """
    WebSocket endpoint for live report updates.

    Protocol:
    - Client connects
    - Client may send a subscribe message with a viewport filter
    - Server broadcasts created/deleted reports matching the filter
    - Server sends pong in response to ping for keep-alive

    Message formats:
    Client -> Server:
        {"type": "subscribe", "viewport": {"min_lat": 33.87, "max_lat": 33.89, "min_lng": -117.89, "max_lng": -117.88}}
        {"type": "ping"}

    Server -> Client:
        {"type": "report_update", "event": "created", "data": [...], "timestamp": "2026-10-16T10:30:00Z"}
        {"type": "pong"}
        {"type": "error", "message": "..."}
    """
    await manager.connect(websocket)

    try:
        while True:
            raw_message = await websocket.receive_text()

            try:
                data = json.loads(raw_message)
                msg_type = data.get("type")

                if msg_type == "subscribe":
                    msg = SubscribeMessage.model_validate(data)
                    await manager.update_subscription(websocket, viewport=msg.viewport)
                    logger.info(f"Subscription updated: viewport={msg.viewport}")

                elif msg_type == "ping":
                    await websocket.send_json(PongMessage().model_dump())

                else:
                    error = ErrorMessage(message=f"Unknown message type: {msg_type}")
                    await websocket.send_json(error.model_dump())

            except json.JSONDecodeError:
                error = ErrorMessage(message="Invalid JSON")
                await websocket.send_json(error.model_dump())
            except Exception as e:
                logger.exception(f"Error processing message: {e}")
                error = ErrorMessage(message=str(e))
                await websocket.send_json(error.model_dump())

    except WebSocketDisconnect:
        await manager.disconnect(websocket)
    except Exception as e:
        logger.exception(f"WebSocket error: {e}")
        await manager.disconnect(websocket)


async def handle_map_message(session: MapSession, data: dict[str, Any]) -> list[BaseModel]:
    """
    Apply one client message to a map session.

    Returns the direct replies; state changes are pushed separately through
    the session's on_change callback.
    """
    if not isinstance(data, dict):
        return [ErrorMessage(message="Message must be a JSON object")]

    msg_type = data.get("type")

    if msg_type == "tap":
        msg = TapMessage.model_validate(data)
        if msg.latitude is not None and msg.longitude is not None:
            await session.tap(msg.latitude, msg.longitude)
        else:
            await session.tap_at_point(msg.x, msg.y, msg.width, msg.height)
        return []

    if msg_type == "submit":
        SubmitMessage.model_validate(data)
        report = await session.submit()
        return [ReportCreatedMessage(data=report)] if report else []

    if msg_type == "location":
        msg = LocationMessage.model_validate(data)
        await session.update_location(msg.latitude, msg.longitude)
        return []

    if msg_type == "authorization":
        msg = AuthorizationMessage.model_validate(data)
        await session.set_authorization(msg.status)
        return []

    if msg_type == "ping":
        return [PongMessage()]

    return [ErrorMessage(message=f"Unknown message type: {msg_type}")]


@router.websocket("/ws/map")
async def websocket_map(
    websocket: WebSocket,
    store: Annotated[ReportStore, Depends(get_report_store)],
    geocoder: Annotated[ReverseGeocoder, Depends(get_geocoder)],
):
    """
    WebSocket endpoint hosting one map screen session.

    Client -> Server:
        {"type": "tap", "latitude": 33.88, "longitude": -117.88}
        {"type": "tap", "x": 120, "y": 340, "width": 390, "height": 600}
        {"type": "submit"}
        {"type": "authorization", "status": "authorized_when_in_use"}
        {"type": "location", "latitude": 33.88, "longitude": -117.88}
        {"type": "ping"}

    Server -> Client:
        {"type": "map_state", "data": {...}}
        {"type": "report_created", "data": {...}}
        {"type": "pong"}
        {"type": "error", "message": "..."}
    """
    await websocket.accept()

    async def push_state(snapshot: MapSnapshot) -> None:
        await websocket.send_json(MapStateMessage(data=snapshot).model_dump(mode="json"))

    session = MapSession(store, geocoder, on_change=push_state)
    await push_state(session.snapshot())

    try:
        while True:
            raw_message = await websocket.receive_text()

            try:
                replies = await handle_map_message(session, json.loads(raw_message))
            except json.JSONDecodeError:
                replies = [ErrorMessage(message="Invalid JSON")]
            except (ValidationError, ValueError) as e:
                replies = [ErrorMessage(message=str(e))]

            for reply in replies:
                await websocket.send_json(reply.model_dump(mode="json"))

    except WebSocketDisconnect:
        logger.info("Map session disconnected")
    except Exception as e:
        logger.exception(f"Map session error: {e}")
    finally:
        await session.close()
