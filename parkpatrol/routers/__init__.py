"""API routers."""

from parkpatrol.routers.health import router as health_router
from parkpatrol.routers.profile import router as profile_router
from parkpatrol.routers.reports import router as reports_router

__all__ = ["health_router", "profile_router", "reports_router"]
