"""Pydantic schemas for API request/response validation."""

from parkpatrol.schemas.map import MapRegion, MapSnapshot, MapState, Viewport
from parkpatrol.schemas.profile import ProfileResponse, ProfileUpdate, UserProfile
from parkpatrol.schemas.report import (
    Coordinates,
    DeleteResult,
    ReportCreate,
    ReportOut,
    ReportsResponse,
)

__all__ = [
    "Coordinates",
    "DeleteResult",
    "MapRegion",
    "MapSnapshot",
    "MapState",
    "ProfileResponse",
    "ProfileUpdate",
    "ReportCreate",
    "ReportOut",
    "ReportsResponse",
    "UserProfile",
    "Viewport",
]
