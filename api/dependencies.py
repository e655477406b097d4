"""
FastAPI dependencies for the packaging pipeline.
"""
from functools import lru_cache

from api.config import settings
from worker.processors.streaming import RenditionOrchestrator


@lru_cache()
def get_orchestrator() -> RenditionOrchestrator:
    """Process-wide orchestrator built from settings."""
    return RenditionOrchestrator.from_settings(settings)
