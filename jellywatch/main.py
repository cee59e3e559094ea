"""
FastAPI application entry point.

Run with:
    uvicorn jellywatch.main:app --reload --port 8000

Or, using the HOST / PORT / RELOAD / WORKERS settings:
    python -m jellywatch.main
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# ── Core infrastructure ──
from jellywatch.core.config import settings
from jellywatch.core.logging_config import setup_logging, get_logger
from jellywatch.core.errors import register_error_handlers
from jellywatch.core.middleware import RequestLoggingMiddleware
from jellywatch.core.health import HealthStatus, run_health_check
from jellywatch.risk.service import RiskService

# ── API routers ──
from jellywatch.api.v1.jellyfish import router as jellyfish_router

# ── Initialise logging ──
setup_logging()
logger = get_logger(__name__)


# ── Application lifespan (startup / shutdown) ──

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the shared risk service and close its HTTP client on exit."""
    logger.info(
        "Starting %s v%s [%s]",
        settings.APP_NAME, settings.APP_VERSION, settings.ENVIRONMENT,
    )
    if getattr(app.state, "risk_service", None) is None:
        app.state.risk_service = RiskService()
    yield
    await app.state.risk_service.close()
    logger.info("Shutting down %s", settings.APP_NAME)


# ── Create application ──

app = FastAPI(
    title=settings.APP_NAME,
    description=(
        "Jellyfish risk for beaches. "
        "Fuses recent Cnidaria sightings from iNaturalist, GBIF and OBIS "
        "within a search radius, ranks them by danger, recency and distance, "
        "and classifies the area into a five-level risk with safety advice."
    ),
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# ── Middleware stack (order matters — outermost first) ──

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS if not settings.CORS_ALLOW_ALL else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)

# ── Error handlers ──
register_error_handlers(app)

# ── Register routers ──
app.include_router(jellyfish_router)


# ── Root & health endpoints ──

@app.get("/", tags=["root"])
async def root():
    return {
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "modules": [
            "sighting-ingestion",
            "fan-out-aggregation",
            "sighting-curation",
            "risk-classification",
            "result-cache",
        ],
        "docs": "/docs",
    }


@app.get("/health", tags=["health"])
async def health_check(request: Request):
    """Deep health probe — checks all subsystems."""
    report = await run_health_check(getattr(request.app.state, "risk_service", None))
    return report.to_dict()


@app.get("/health/live", tags=["health"])
async def liveness():
    """Kubernetes liveness probe — is the process alive?"""
    return {"status": "alive"}


@app.get("/health/ready", tags=["health"])
async def readiness(request: Request):
    """Kubernetes readiness probe — can we serve traffic?"""
    report = await run_health_check(getattr(request.app.state, "risk_service", None))
    if report.status is HealthStatus.UNHEALTHY:
        return JSONResponse(status_code=503, content=report.to_dict())
    return report.to_dict()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "jellywatch.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.RELOAD,
        workers=None if settings.RELOAD else settings.WORKERS,
        log_config=None,
    )
