"""
Rendition Packager - HTTP front end
"""
from contextlib import asynccontextmanager
from typing import Any, Dict

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
import structlog

from api.config import settings
from api.routers import health, upload
from api.utils.logger import setup_logging
from api.utils.error_handlers import (
    PipelineError, pipeline_exception_handler, http_exception_handler, general_exception_handler
)

# Setup structured logging
setup_logging()
logger = structlog.get_logger()

# StaticFiles checks the directory at construction time
settings.OUTPUT_ROOT.mkdir(parents=True, exist_ok=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown."""
    settings.UPLOAD_DIR.mkdir(parents=True, exist_ok=True)

    logger.info(
        "Starting Rendition Packager",
        version=settings.VERSION,
        output_root=str(settings.OUTPUT_ROOT),
        upload_dir=str(settings.UPLOAD_DIR),
        base_url=settings.BASE_URL,
        renditions=[spec.label for spec in settings.RENDITIONS],
        failure_policy=settings.FAILURE_POLICY.value,
    )

    yield

    logger.info("Shutting down Rendition Packager")


app = FastAPI(
    title="Rendition Packager",
    description="Adaptive-bitrate HLS packaging for uploaded videos",
    version=settings.VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

# Exception handlers
app.add_exception_handler(PipelineError, pipeline_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(Exception, general_exception_handler)

# Include routers
app.include_router(upload.router, tags=["upload"])
app.include_router(health.router, tags=["health"])

# Completed packages are plain static files
app.mount("/videos", StaticFiles(directory=str(settings.OUTPUT_ROOT)), name="videos")


@app.get("/", tags=["root"])
async def root() -> Dict[str, Any]:
    """Root endpoint with service information."""
    return {
        "name": "Rendition Packager",
        "version": settings.VERSION,
        "status": "operational",
        "upload": "/upload",
        "videos": "/videos/{asset_id}/master.m3u8",
        "health": "/health",
    }


def main():
    """Main entry point for API server."""
    import uvicorn

    uvicorn.run(
        "api.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        log_config=None,  # Use structlog
    )


if __name__ == "__main__":
    main()
