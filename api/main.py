"""
FastAPI application initialization
"""

from fastapi import FastAPI
from api.routes import health, sync
from api.middleware import SyncRequestMiddleware
from core.config import settings
from core.logging import setup_logging
from pipeline.scheduler import SyncScheduler
import logging

setup_logging()

logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Practice Sync API",
    description="Karbon to practice database sync status and control",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(SyncRequestMiddleware)

# Initialize Scheduler
scheduler = SyncScheduler(settings)


# Include routers
app.include_router(health.router)
app.include_router(sync.router)


@app.on_event("startup")
async def startup_event():
    """Application startup event"""
    logger.info("Starting Practice Sync API")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Database: {settings.DATABASE_URL.split('@')[1] if '@' in (settings.DATABASE_URL or '') else 'configured'}")

    if settings.SCHEDULER_ENABLED:
        scheduler.start()
    else:
        logger.info("Scheduler disabled (SCHEDULER_ENABLED=false)")


@app.on_event("shutdown")
async def shutdown_event():
    """Application shutdown event"""
    logger.info("Shutting down Practice Sync API")
    scheduler.stop()


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "Practice Sync API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
        "endpoints": {
            "runs": "/sync/runs",
            "sync_health": "/sync/health",
            "run_now": "/sync/run"
        }
    }
