"""API routes for parking patrol reports."""

import base64
import logging
from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from parkpatrol.config import get_settings
from parkpatrol.limiter import limiter
from parkpatrol.schemas.report import DeleteResult, ReportCreate, ReportOut, ReportsResponse
from parkpatrol.services.geocoder import ReverseGeocoder, get_geocoder
from parkpatrol.services.report_store import ReportStore, get_report_store

logger = logging.getLogger(__name__)
settings = get_settings()
router = APIRouter(prefix="/reports", tags=["reports"])


def _encode_cursor(timestamp: datetime, id: int) -> str:
    """Encode cursor for keyset pagination."""
    cursor_str = f"{timestamp.isoformat()}|{id}"
    return base64.urlsafe_b64encode(cursor_str.encode()).decode()


def _decode_cursor(cursor: str) -> tuple[datetime, int]:
    """Decode cursor for keyset pagination."""
    cursor_str = base64.urlsafe_b64decode(cursor.encode()).decode()
    parts = cursor_str.split("|")
    timestamp = datetime.fromisoformat(parts[0])
    id = int(parts[1])
    return timestamp, id


@router.get("", response_model=ReportsResponse)
async def list_reports(
    store: Annotated[ReportStore, Depends(get_report_store)],
    cursor: str | None = None,
    limit: int = Query(50, ge=1, le=200),
) -> ReportsResponse:
    """
    List reports, most recent first, with cursor pagination.

    The cursor is an opaque string that encodes the position in the result set.
    """
    before = None
    if cursor:
        try:
            before = _decode_cursor(cursor)
        except Exception:
            logger.warning(f"Invalid cursor: {cursor}")

    # Fetch one extra to check for next page
    reports = await store.list_reports(limit=limit + 1, before=before)

    has_next = len(reports) > limit
    if has_next:
        reports = reports[:limit]

    next_cursor = None
    if has_next and reports:
        last = reports[-1]
        next_cursor = _encode_cursor(last.timestamp, last.id)

    return ReportsResponse(reports=reports, next_cursor=next_cursor)


@router.get("/latest", response_model=ReportOut)
async def latest_report(
    store: Annotated[ReportStore, Depends(get_report_store)],
) -> ReportOut:
    """Get the most recent report."""
    report = await store.latest()
    if report is None:
        raise HTTPException(status_code=404, detail="No alerts sent yet.")
    return report


@router.get("/bbox", response_model=list[ReportOut])
async def reports_in_bbox(
    store: Annotated[ReportStore, Depends(get_report_store)],
    min_lat: float = Query(..., ge=-90, le=90),
    min_lng: float = Query(..., ge=-180, le=180),
    max_lat: float = Query(..., ge=-90, le=90),
    max_lng: float = Query(..., ge=-180, le=180),
    limit: int = Query(200, ge=1, le=500),
) -> list[ReportOut]:
    """
    Get reports within a map viewport bounding box.

    Used for map rendering - only fetches visible reports.
    """
    return await store.list_in_bbox(min_lat, min_lng, max_lat, max_lng, limit=limit)


@router.get("/{report_id}", response_model=ReportOut)
async def get_report(
    report_id: int,
    store: Annotated[ReportStore, Depends(get_report_store)],
) -> ReportOut:
    """Get a specific report by ID."""
    report = await store.get(report_id)
    if report is None:
        raise HTTPException(status_code=404, detail="Report not found")
    return report


@router.post("", response_model=ReportOut, status_code=status.HTTP_201_CREATED)
@limiter.limit(f"{settings.rate_limit_per_minute}/minute")
async def create_report(
    request: Request,
    body: ReportCreate,
    store: Annotated[ReportStore, Depends(get_report_store)],
    geocoder: Annotated[ReverseGeocoder, Depends(get_geocoder)],
) -> ReportOut:
    """
    Send an alert for a location.

    When no place name is given it is looked up from the coordinates,
    falling back to the unknown-location placeholder.
    """
    location = body.location
    if not location:
        location = (
            await geocoder.reverse_geocode(body.latitude, body.longitude)
            or settings.unknown_location
        )

    report = await store.create(body.latitude, body.longitude, location)
    if report is None:
        raise HTTPException(status_code=503, detail="Alert could not be saved")
    return report


@router.delete("/{report_id}", response_model=DeleteResult)
async def delete_report(
    report_id: int,
    store: Annotated[ReportStore, Depends(get_report_store)],
) -> DeleteResult:
    """Delete one report. Missing reports are not an error."""
    deleted = await store.delete(report_id)
    return DeleteResult(
        deleted=int(deleted),
        message=f"Report {report_id} deleted" if deleted else f"Report {report_id} not deleted",
    )


@router.delete("", response_model=DeleteResult)
async def clear_history(
    store: Annotated[ReportStore, Depends(get_report_store)],
    ids: list[int] | None = Query(None, description="Reports to delete; all when omitted"),
) -> DeleteResult:
    """Clear alert history, or just the selected reports."""
    count = await store.delete_all(ids)
    return DeleteResult(deleted=count, message=f"Deleted {count} reports")
