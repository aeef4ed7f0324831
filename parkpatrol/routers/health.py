"""Health endpoints."""

from datetime import UTC, datetime
from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from parkpatrol.services.report_store import ReportStore, get_report_store

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    timestamp: datetime
    report_count: int
    newest_report: datetime | None = None


@router.get("/health", response_model=HealthResponse)
async def health_check(
    store: Annotated[ReportStore, Depends(get_report_store)],
) -> HealthResponse:
    """Health check endpoint with store status."""
    latest = await store.latest()

    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(UTC),
        report_count=await store.count(),
        newest_report=latest.timestamp if latest else None,
    )


@router.get("/ready")
async def readiness_check() -> dict:
    """Simple readiness probe."""
    return {"status": "ready"}


@router.get("/live")
async def liveness_check() -> dict:
    """Simple liveness probe."""
    return {"status": "alive"}
