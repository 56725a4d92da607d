"""FastAPI application for the Civica live issue server."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from civica import __version__
from civica.config import get_settings
from civica.errors import ConflictError, NotFoundError, ValidationError
from civica.rate_limit import limiter
from civica.routers import health_router, insights_router, issues_router
from civica.runtime import build_runtime
from civica.services.seed import seed_registry
from civica.websocket.router import router as websocket_router

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management."""
    logger.info("Starting Civica live server...")

    runtime = build_runtime(settings)
    app.state.runtime = runtime

    if settings.seed_demo_data:
        await seed_registry(runtime.registry)

    if settings.live_simulation:
        runtime.simulation.setup_scheduler()

    yield

    # Shutdown
    runtime.simulation.shutdown_scheduler()
    await runtime.gateway.shutdown()
    await runtime.hub.close()
    logger.info("Civica live server shut down")


# Create FastAPI app
app = FastAPI(
    title="Civica API",
    description="Real-time civic issue registry with live broadcast to dashboards",
    version=__version__,
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


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(ConflictError)
async def conflict_handler(request: Request, exc: ConflictError):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(ValidationError)
async def validation_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=422, content={"detail": str(exc)})


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
app.include_router(issues_router, prefix=settings.api_v1_prefix)
app.include_router(insights_router, prefix=settings.api_v1_prefix)
app.include_router(websocket_router)  # WebSocket at /ws/issues


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "name": "Civica API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
        "websocket": "/ws/issues",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "civica.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )
