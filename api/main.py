"""GeoImage FastAPI Application"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from dotenv import load_dotenv
load_dotenv()  # Load .env file

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.middleware.base import BaseHTTPMiddleware

from geoimage import __version__
from geoimage.errors import GeoImageError

from .routes import calibration, health, models

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Saved exports are served from here
OUTPUT_DIR = models.OUTPUT_DIR
OUTPUT_DIR.mkdir(parents=True, exist_ok=True)


class ProxyHeadersMiddleware(BaseHTTPMiddleware):
    """Middleware to handle X-Forwarded-Proto for HTTPS redirects behind a reverse proxy."""

    async def dispatch(self, request: Request, call_next):
        if request.headers.get("x-forwarded-proto") == "https":
            request.scope["scheme"] = "https"
        return await call_next(request)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Application lifespan handler."""
    logger.info(
        f"Starting GeoImage API (DXF {models.ENGINE_CONFIG.dxf_version}, "
        f"{models.ENGINE_CONFIG.dxf_color_policy} colors, "
        f"snap threshold {models.ENGINE_CONFIG.snap_threshold})"
    )
    yield
    logger.info(f"Shutting down GeoImage API, dropping {len(models.MODELS)} model(s)")


app = FastAPI(
    title="GeoImage",
    description="Primitive models to OBJ/DXF with real-world scale calibration",
    version=__version__,
    lifespan=lifespan,
)

# Proxy headers middleware (must be added first)
app.add_middleware(ProxyHeadersMiddleware)

# CORS middleware for the 3D viewer frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(GeoImageError)
async def geoimage_error_handler(request: Request, exc: GeoImageError):
    """Report engine errors not mapped by a route."""
    logger.error(f"{exc.error_type} on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content={"detail": str(exc), "error_type": exc.error_type},
    )


# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(models.router, prefix="/api/models", tags=["Models"])
app.include_router(calibration.router, prefix="/api/models", tags=["Calibration"])

# Serve saved exports
app.mount("/output", StaticFiles(directory=str(OUTPUT_DIR)), name="output")


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "GeoImage",
        "version": __version__,
        "status": "running",
        "docs": "/docs",
        "export_formats": sorted(models.EXPORT_MEDIA_TYPES),
    }
