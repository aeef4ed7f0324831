"""Pydantic schemas for the user profile."""

from pydantic import BaseModel, Field

from parkpatrol.schemas.report import ReportOut


class UserProfile(BaseModel):
    """Profile fields kept in the local key-value file."""

    first_name: str = "John"
    last_name: str = "Doe"
    username: str = "johndoe"
    email: str = "johndoe@example.com"


class ProfileUpdate(BaseModel):
    """Partial profile update; omitted fields keep their value."""

    first_name: str | None = Field(None, max_length=100)
    last_name: str | None = Field(None, max_length=100)
    username: str | None = Field(None, max_length=100)
    email: str | None = Field(None, max_length=255)


class ProfileResponse(BaseModel):
    """Profile with the user's alert history."""

    profile: UserProfile
    alerts: list[ReportOut]
    empty_message: str | None = None
