"""
Upload endpoint: stage the video, package it, answer with the stream URL
"""
import re
import time
from pathlib import Path
from typing import Any, Dict, Optional

import aiofiles
from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
import structlog

from api.config import settings
from api.dependencies import get_orchestrator
from api.utils.error_handlers import StorageError
from worker.processors.streaming import RenditionOrchestrator

logger = structlog.get_logger()
router = APIRouter()

UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_-]+")
CHUNK_SIZE = 1024 * 1024


def staged_filename(field_name: str, original_name: Optional[str], now_ms: Optional[int] = None) -> str:
    """``<field>-<epoch ms><ext>``, unique per upload within one millisecond."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    suffix = Path(original_name or "").suffix.lower()
    if suffix and not re.fullmatch(r"\.[a-z0-9]+", suffix):
        suffix = ""
    stem = UNSAFE_CHARS.sub("_", field_name).strip("_") or "upload"
    return f"{stem}-{now_ms}{suffix}"


def asset_id_for(filename: str) -> str:
    """Asset id is the staged filename up to its first dot."""
    return filename.split(".")[0]


async def stage_upload(upload: UploadFile, destination: Path) -> int:
    """Copy the uploaded file to ``destination`` and return the bytes written."""
    destination.parent.mkdir(parents=True, exist_ok=True)
    written = 0
    try:
        async with aiofiles.open(destination, "wb") as f:
            while chunk := await upload.read(CHUNK_SIZE):
                await f.write(chunk)
                written += len(chunk)
    except OSError as e:
        raise StorageError(f"Cannot stage upload to {destination}: {e}", path=str(destination))
    return written


@router.post("/upload")
async def upload_video(
    video: Optional[UploadFile] = File(None),
    orchestrator: RenditionOrchestrator = Depends(get_orchestrator),
) -> Dict[str, Any]:
    """
    Receive one video and return its adaptive stream URL once every rendition has finished.
    """
    if video is None or not video.filename:
        raise HTTPException(status_code=400, detail="No file uploaded.")

    filename = staged_filename("video", video.filename)
    input_path = Path(settings.UPLOAD_DIR) / filename
    size = await stage_upload(video, input_path)
    asset_id = asset_id_for(filename)

    logger.info("Upload received", original_name=video.filename, staged=str(input_path),
                asset_id=asset_id, bytes=size)

    result = await orchestrator.process_asset(input_path, asset_id)
    result.raise_for_failure()

    return {
        "message": "Video processed",
        "streamUrl": result.stream_url,
        "renditions": result.renditions,
        "degraded": [
            {"rendition": label, "reason": reason}
            for label, reason in result.degraded.items()
        ],
    }
