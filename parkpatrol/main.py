"""FastAPI application for the Park Patrol backend."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from parkpatrol.config import get_settings
from parkpatrol.database import check_db_ready, init_db
from parkpatrol.limiter import limiter
from parkpatrol.routers import health_router, profile_router, reports_router
from parkpatrol.services.report_store import get_report_store
from parkpatrol.websocket import websocket_router
from parkpatrol.websocket.manager import manager as ws_manager

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management."""
    logger.info("Starting Park Patrol backend...")

    try:
        await init_db()
        await check_db_ready()
        logger.info("Database ready")
    except Exception as e:
        logger.error(f"Database not ready: {e}")
        raise

    # Live views follow every committed change
    unsubscribe = get_report_store().subscribe(ws_manager.handle_change)

    yield

    unsubscribe()
    logger.info("Park Patrol backend shut down")


app = FastAPI(
    title="Park Patrol API",
    description="Report parking patrol sightings on a map",
    version="0.1.0",
    lifespan=lifespan,
)

# Add rate limiter
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle unhandled exceptions."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


# Include routers
app.include_router(health_router)
app.include_router(reports_router, prefix=settings.api_v1_prefix)
app.include_router(profile_router, prefix=settings.api_v1_prefix)
app.include_router(websocket_router)  # /ws/reports and /ws/map


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "name": "Park Patrol API",
        "version": "0.1.0",
        "docs": "/docs",
        "health": "/health",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "parkpatrol.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )
