"""Timeshare Exchange Engine: FastAPI application entry point."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from timeshare.api.v1.availability import router as availability_router
from timeshare.api.v1.night_credits import router as night_credits_router
from timeshare.api.v1.staff import router as staff_router
from timeshare.api.v1.swaps import router as swaps_router
from timeshare.api.v1.timeshare import router as timeshare_router
from timeshare.config import settings
from timeshare.errors import EngineError

# Configure root logger so all timeshare.* loggers output to stderr (captured by Docker).
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan handler for startup and shutdown events."""
    # Startup
    yield
    # Shutdown: dispose engine connections
    if settings.store_backend == "sql":
        from timeshare.database import engine

        await engine.dispose()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Swap and night-credit transaction engine for timeshare owners.",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(EngineError)
async def engine_error_handler(request: Request, exc: EngineError) -> JSONResponse:
    """Translate domain errors raised by the services into JSON responses."""
    if exc.status_code >= 500:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder({"detail": exc.detail}))


# Routers
app.include_router(swaps_router)
app.include_router(staff_router)
app.include_router(night_credits_router)
app.include_router(timeshare_router)
app.include_router(availability_router)


@app.get("/health", tags=["health"])
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy", "service": settings.app_name}


@app.get("/", tags=["root"])
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {
        "service": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
    }
