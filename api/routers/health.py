"""
Health check endpoints
"""
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends

from api.config import settings
from api.dependencies import get_orchestrator
from worker.processors.streaming import RenditionOrchestrator

router = APIRouter()


@router.get("/health")
async def health_check(
    orchestrator: RenditionOrchestrator = Depends(get_orchestrator),
) -> Dict[str, Any]:
    """
    Basic health check with the active rendition ladder.
    """
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": settings.VERSION,
        "failure_policy": orchestrator.policy.value,
        "renditions": [
            {"label": spec.label, "resolution": spec.resolution, "bandwidth": spec.bandwidth}
            for spec in orchestrator.renditions
        ],
    }
