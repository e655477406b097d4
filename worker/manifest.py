"""
Master manifest assembly for adaptive-bitrate HLS playback.
"""
from pathlib import Path
from typing import Iterable, List

import aiofiles
import structlog

from api.utils.error_handlers import StorageError
from storage.layout import AssetLayout
from worker.jobs import ManifestEntry

logger = structlog.get_logger()

HLS_VERSION = 3


def render_master_manifest(entries: Iterable[ManifestEntry]) -> str:
    """Render the master playlist text. Entries keep the caller's order."""
    lines: List[str] = ["#EXTM3U", f"#EXT-X-VERSION:{HLS_VERSION}"]
    for entry in entries:
        lines.append(f"#EXT-X-STREAM-INF:BANDWIDTH={entry.bandwidth},RESOLUTION={entry.resolution}")
        lines.append(entry.uri)
    return "\n".join(lines) + "\n"


async def assemble_master_manifest(output_dir: Path, entries: Iterable[ManifestEntry]) -> Path:
    """Write ``master.m3u8`` into ``output_dir``, replacing any previous one."""
    entries = list(entries)
    manifest_path = AssetLayout.manifest_path(Path(output_dir))
    content = render_master_manifest(entries)

    try:
        async with aiofiles.open(manifest_path, "w", encoding="utf-8") as f:
            await f.write(content)
    except OSError as e:
        raise StorageError(f"Cannot write master manifest {manifest_path}: {e}", path=str(manifest_path))

    logger.info(
        "Master playlist created",
        path=str(manifest_path),
        renditions=[entry.label for entry in entries],
    )
    return manifest_path
