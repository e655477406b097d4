"""
Rendition job runner: one encode attempt through the codec engine.
"""
from pathlib import Path
from typing import Union

import structlog

from api.utils.error_handlers import EncodeError
from storage.layout import AssetLayout
from worker.jobs import Asset, RenditionJob, RenditionOutcome
from worker.renditions import RenditionSpec
from worker.utils.ffmpeg import CodecEngine, EncodeParameters

logger = structlog.get_logger()

SEGMENT_DURATION = 10


class RenditionJobRunner:
    """Executes rendition jobs. Engine errors are reported, never raised."""

    def __init__(self, engine: CodecEngine, segment_duration: int = SEGMENT_DURATION):
        self.engine = engine
        self.segment_duration = segment_duration

    def encode_parameters(self, output_dir: Path, spec: RenditionSpec) -> EncodeParameters:
        return EncodeParameters(
            width=spec.width,
            height=spec.height,
            video_bitrate_kbps=spec.bitrate_kbps,
            segment_duration=self.segment_duration,
            playlist_size=0,
            segment_pattern=str(AssetLayout.segment_pattern(output_dir, spec)),
        )

    async def run(self, job: RenditionJob) -> RenditionOutcome:
        """Drive ``job`` from PENDING to a terminal state and report the outcome."""
        job.mark_running()
        params = self.encode_parameters(job.asset.output_dir, job.spec)
        log = logger.bind(rendition=job.spec.label, playlist=str(job.playlist_path))
        log.info("Rendition encode started", resolution=job.spec.resolution, bitrate_kbps=job.spec.bitrate_kbps)

        try:
            await self.engine.encode(str(job.asset.input_path), str(job.playlist_path), params)
        except EncodeError as e:
            job.mark_failed(e.message)
            log.warning("Rendition encode failed", reason=e.message)
        except Exception as e:
            reason = str(e) or type(e).__name__
            job.mark_failed(reason)
            log.exception("Rendition encode crashed", reason=reason)
        else:
            job.mark_succeeded()
            log.info("Rendition encode finished")

        return job.outcome()

    async def run_job(self, input_path: Union[str, Path], output_dir: Union[str, Path],
                      spec: RenditionSpec) -> RenditionOutcome:
        """Run a single rendition of ``input_path`` into ``output_dir``."""
        output_dir = Path(output_dir)
        asset = Asset(asset_id=output_dir.name, input_path=Path(input_path), output_dir=output_dir)
        job = RenditionJob(asset, spec, AssetLayout.playlist_path(output_dir, spec))
        return await self.run(job)
