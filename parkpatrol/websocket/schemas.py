"""WebSocket message schemas."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, model_validator

from parkpatrol.schemas.map import LocationAuthorization, MapSnapshot, Viewport
from parkpatrol.schemas.report import ReportOut


class SubscribeMessage(BaseModel):
    """Client subscription message to set the viewport filter."""

    type: Literal["subscribe"] = "subscribe"
    viewport: Viewport | None = None


class ReportUpdateMessage(BaseModel):
    """Server message with created or deleted reports."""

    type: Literal["report_update"] = "report_update"
    event: Literal["created", "deleted"]
    data: list[ReportOut]
    timestamp: datetime


class TapMessage(BaseModel):
    """Map tap, either as a coordinate or as a point in the client's view."""

    type: Literal["tap"] = "tap"
    latitude: float | None = Field(None, ge=-90, le=90)
    longitude: float | None = Field(None, ge=-180, le=180)
    x: float | None = None
    y: float | None = None
    width: float | None = Field(None, gt=0)
    height: float | None = Field(None, gt=0)

    @model_validator(mode="after")
    def _check_position(self) -> "TapMessage":
        has_coordinate = self.latitude is not None and self.longitude is not None
        has_point = None not in (self.x, self.y, self.width, self.height)
        if not (has_coordinate or has_point):
            raise ValueError("tap needs latitude/longitude or x/y/width/height")
        return self


class SubmitMessage(BaseModel):
    """Confirm the current pin as an alert."""

    type: Literal["submit"] = "submit"


class LocationMessage(BaseModel):
    """Device position update."""

    type: Literal["location"] = "location"
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class AuthorizationMessage(BaseModel):
    """Device location permission change."""

    type: Literal["authorization"] = "authorization"
    status: LocationAuthorization


class MapStateMessage(BaseModel):
    """Server message with the current map screen state."""

    type: Literal["map_state"] = "map_state"
    data: MapSnapshot


class ReportCreatedMessage(BaseModel):
    """Server message confirming a submitted alert."""

    type: Literal["report_created"] = "report_created"
    data: ReportOut


class PongMessage(BaseModel):
    """Pong response for keep-alive."""

    type: Literal["pong"] = "pong"


class ErrorMessage(BaseModel):
    """Error message from server."""

    type: Literal["error"] = "error"
    message: str
