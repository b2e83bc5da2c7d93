"""
Food Bank Check-In API
Main application file
"""

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging
import uvicorn

from foodbank.core.clock import now_local
from foodbank.core.config import settings
from foodbank.core.errors import FailureKind, StoreUnavailableError
from foodbank.core.store import build_store
from foodbank.routers import appointments, checkin, clients, csv, help_requests, status as status_router

# ============================================================================
# Logging Configuration
# ============================================================================

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format=settings.log_format
)
logger = logging.getLogger(__name__)

# ============================================================================
# FastAPI Application
# ============================================================================

docs_url = "/docs" if not settings.is_production else None
redoc_url = "/redoc" if not settings.is_production else None

app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Counter check-in, follow-up scheduling and daily CSV intake for a food bank",
    docs_url=docs_url,
    redoc_url=redoc_url,
)

app.state.store = build_store()

# ============================================================================
# CORS Configuration
# ============================================================================

origins = settings.cors_origins
# Wildcard origins cannot be combined with credentials
allow_credentials = origins != ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition"],
)

# ============================================================================
# Exception Handlers
# ============================================================================

@app.exception_handler(StoreUnavailableError)
async def store_unavailable_handler(request: Request, exc: StoreUnavailableError):
    logger.error(f"[Store] Unavailable while serving {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": {"kind": FailureKind.STORE_UNAVAILABLE.value, "message": str(exc)}},
    )

# ============================================================================
# Root & Health Endpoints
# ============================================================================

@app.get("/", tags=["Root"])
def root():
    """Root endpoint - API information"""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "status": "running",
        "documentation": docs_url,
        "endpoints": {
            "health": "/health",
            "checkin": "/api/checkin",
            "appointments": "/api/appointments",
            "csv": "/api/csv",
            "status": "/api/status",
            "help_requests": "/api/help-requests",
            "clients": "/api/admin/clients"
        }
    }


@app.get("/health", tags=["Health"])
def health_check(request: Request):
    """Health check endpoint for API monitoring"""
    store = getattr(request.app.state, "store", None)
    return {
        "status": "ok" if store is not None else "degraded",
        "message": f"{settings.app_name} is running",
        "version": settings.app_version,
        "environment": settings.ENVIRONMENT,
        "timezone": settings.service_timezone,
        "records": len(store) if store is not None else 0,
        "timestamp": now_local().isoformat()
    }

# ============================================================================
# Event Handlers
# ============================================================================

@app.on_event("startup")
async def startup_event():
    """Actions to perform on application startup"""
    logger.info("=" * 60)
    logger.info(f"Starting {settings.app_name}")
    logger.info("=" * 60)
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Timezone: {settings.service_timezone}")
    logger.info(f"CORS Origins: {settings.API_CORS_ORIGINS or 'Default'}")
    logger.info(f"Record retention: {settings.record_retention_hours} hours")
    logger.info(
        f"Check-in tolerance: +/-{settings.checkin_tolerance_minutes} min, "
        f"match fallback: {settings.match_fallback_policy}"
    )
    logger.info(f"Next appointment spacing: {settings.next_appointment_min_days} days")
    logger.info("=" * 60)


@app.on_event("shutdown")
async def shutdown_event():
    """Actions to perform on application shutdown"""
    logger.info("=" * 60)
    logger.info(f"Shutting down {settings.app_name} at {now_local().isoformat(timespec='seconds')}")
    logger.info("=" * 60)

# ============================================================================
# Router Registration
# ============================================================================

logger.info("Registering API routers...")
app.include_router(checkin.router)  # Counter check-in and special requests
app.include_router(appointments.router)  # Admin appointment management
app.include_router(csv.router)  # Daily sheet upload and export
app.include_router(status_router.router)  # Daily status, data version, reset
app.include_router(help_requests.router)  # Kiosk assistance requests
app.include_router(clients.router)  # Admin client search and edits
logger.info("All routers registered successfully")

if __name__ == "__main__":
    uvicorn.run(
        "foodbank.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
        log_level=settings.LOG_LEVEL.lower()
    )
