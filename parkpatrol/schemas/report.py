"""Pydantic schemas for reports."""

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from parkpatrol.config import get_settings

settings = get_settings()


class Coordinates(BaseModel):
    """Geographic coordinates."""

    model_config = ConfigDict(frozen=True)

    latitude: float
    longitude: float

    def __str__(self) -> str:
        return f"{self.latitude}, {self.longitude}"


class ReportOut(BaseModel):
    """Report snapshot handed to every consumer of the store."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: int
    timestamp: datetime
    latitude: float
    longitude: float
    location: str | None = None

    @field_validator("timestamp")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        # SQLite hands back naive datetimes
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    @computed_field
    @property
    def display_location(self) -> str:
        return self.location or settings.unknown_location

    @property
    def coordinates(self) -> Coordinates:
        return Coordinates(latitude=self.latitude, longitude=self.longitude)


class ReportCreate(BaseModel):
    """Request body for creating a report directly."""

    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    location: str | None = Field(None, max_length=255)


class ReportsResponse(BaseModel):
    """Paginated response for reports."""

    reports: list[ReportOut]
    next_cursor: str | None = None


class DeleteResult(BaseModel):
    """Result of a delete or clear-history operation."""

    deleted: int
    message: str
