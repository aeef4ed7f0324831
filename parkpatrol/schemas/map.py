"""Pydantic schemas for the map screen."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from parkpatrol.schemas.report import Coordinates


class Viewport(BaseModel):
    """Geographic viewport bounds for filtering updates."""

    min_lat: float
    max_lat: float
    min_lng: float
    max_lng: float

    def contains(self, lat: float, lng: float) -> bool:
        """Check if coordinates are within this viewport."""
        return (
            self.min_lat <= lat <= self.max_lat
            and self.min_lng <= lng <= self.max_lng
        )


class MapRegion(BaseModel):
    """Visible map region: a centre point and its latitude/longitude span."""

    model_config = ConfigDict(frozen=True)

    center: Coordinates
    latitude_delta: float = Field(..., gt=0)
    longitude_delta: float = Field(..., gt=0)

    def coordinate_at(self, x: float, y: float, width: float, height: float) -> Coordinates:
        """
        Convert a point in a ``width`` x ``height`` view to a coordinate.

        The view origin is the top-left corner, so y grows southwards.
        """
        if width <= 0 or height <= 0:
            raise ValueError("View size must be positive")

        latitude = self.center.latitude - (y / height - 0.5) * self.latitude_delta
        longitude = self.center.longitude + (x / width - 0.5) * self.longitude_delta
        return Coordinates(latitude=latitude, longitude=longitude)

    def recentered(self, latitude: float, longitude: float) -> "MapRegion":
        return self.model_copy(
            update={"center": Coordinates(latitude=latitude, longitude=longitude)}
        )

    def viewport(self) -> Viewport:
        half_lat = self.latitude_delta / 2
        half_lng = self.longitude_delta / 2
        return Viewport(
            min_lat=self.center.latitude - half_lat,
            max_lat=self.center.latitude + half_lat,
            min_lng=self.center.longitude - half_lng,
            max_lng=self.center.longitude + half_lng,
        )


class MapState(str, Enum):
    """Lifecycle of the pin on a map screen."""

    IDLE = "idle"
    PIN_PLACED = "pin_placed"
    NAME_RESOLVED = "name_resolved"
    SUBMITTED = "submitted"


class LocationAuthorization(str, Enum):
    """Device location permission as reported by the client."""

    NOT_DETERMINED = "not_determined"
    AUTHORIZED_WHEN_IN_USE = "authorized_when_in_use"
    AUTHORIZED_ALWAYS = "authorized_always"
    DENIED = "denied"
    RESTRICTED = "restricted"


class MapSnapshot(BaseModel):
    """Everything a client needs to render the map screen."""

    state: MapState
    pin: Coordinates | None = None
    nearest_location: str | None = None
    coordinates_text: str = ""
    region: MapRegion
    can_submit: bool
    alert_sent: bool
    tracking_location: bool
