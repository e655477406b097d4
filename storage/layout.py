"""
Per-asset output layout on the local filesystem.

    <output-root>/<asset_id>/
        <label>.m3u8       (+ <label>_NNN.ts segments)
        master.m3u8
"""
import os
from pathlib import Path
from typing import Union

import structlog

from api.utils.error_handlers import StorageError, ValidationError
from worker.renditions import RenditionSpec

logger = structlog.get_logger()

MASTER_MANIFEST_NAME = "master.m3u8"


class AssetLayout:
    """Maps asset identifiers to output directories under a single root."""

    def __init__(self, output_root: Union[str, Path]):
        self.output_root = Path(output_root)

    def output_dir(self, asset_id: str) -> Path:
        """Directory for an asset. Pure function of ``asset_id``."""
        if not asset_id or asset_id in (".", "..") or "/" in asset_id or "\\" in asset_id:
            raise ValidationError(f"Asset id {asset_id!r} is not a safe directory name", field="asset_id")

        full_path = self.output_root / asset_id

        # Security: ensure path is within output_root
        try:
            full_path.resolve().relative_to(self.output_root.resolve())
        except ValueError:
            raise ValidationError(f"Asset id {asset_id!r} is outside the output root", field="asset_id")

        return full_path

    def prepare_output_dir(self, asset_id: str) -> Path:
        """Create the asset's output directory if absent. Idempotent."""
        path = self.output_dir(asset_id)
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot create output directory {path}: {e}", path=str(path))

        if not os.access(path, os.W_OK | os.X_OK):
            raise StorageError(f"Output directory {path} is not writable", path=str(path))

        logger.debug("Output directory ready", asset_id=asset_id, output_dir=str(path))
        return path

    @staticmethod
    def playlist_path(output_dir: Path, spec: RenditionSpec) -> Path:
        return output_dir / spec.playlist_name

    @staticmethod
    def segment_pattern(output_dir: Path, spec: RenditionSpec) -> Path:
        return output_dir / f"{spec.label}_%03d.ts"

    @staticmethod
    def manifest_path(output_dir: Path) -> Path:
        return output_dir / MASTER_MANIFEST_NAME

    @staticmethod
    def stream_url(base_url: str, asset_id: str) -> str:
        return f"{base_url.rstrip('/')}/videos/{asset_id}/{MASTER_MANIFEST_NAME}"
