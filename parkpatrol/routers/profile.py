"""API routes for the user profile and alert history."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException
from fastapi.concurrency import run_in_threadpool

from parkpatrol.schemas.profile import ProfileResponse, ProfileUpdate, UserProfile
from parkpatrol.services.profile_store import ProfileStore, get_profile_store
from parkpatrol.services.report_store import ReportStore, get_report_store

router = APIRouter(prefix="/profile", tags=["profile"])

EMPTY_HISTORY_MESSAGE = "No alerts sent yet."


@router.get("", response_model=ProfileResponse)
async def get_profile(
    profiles: Annotated[ProfileStore, Depends(get_profile_store)],
    store: Annotated[ReportStore, Depends(get_report_store)],
) -> ProfileResponse:
    """
    Profile fields plus the alert history, most recent first.

    Reports with a latitude or a longitude of exactly 0 are left out of the
    history.
    """
    reports = await store.list_reports()
    alerts = [r for r in reports if r.latitude != 0 and r.longitude != 0]

    # Profile file reads are blocking
    profile = await run_in_threadpool(profiles.load)

    return ProfileResponse(
        profile=profile,
        alerts=alerts,
        empty_message=EMPTY_HISTORY_MESSAGE if not reports else None,
    )


@router.put("", response_model=UserProfile)
def update_profile(
    changes: ProfileUpdate,
    profiles: Annotated[ProfileStore, Depends(get_profile_store)],
) -> UserProfile:
    """Update some profile fields."""
    profile = profiles.update(changes)
    if profile is None:
        raise HTTPException(status_code=503, detail="Profile could not be saved")
    return profile


@router.post("/reset", response_model=UserProfile)
def reset_profile(
    profiles: Annotated[ProfileStore, Depends(get_profile_store)],
) -> UserProfile:
    """Log out: restore the default profile."""
    return profiles.reset()
