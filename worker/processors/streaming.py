"""
Adaptive-bitrate packaging: fan out one encode per rendition and publish a master playlist.
"""
import asyncio
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

import structlog

from api.config import FailurePolicy, Settings
from api.utils.error_handlers import AggregateFailure
from storage.layout import AssetLayout
from worker.jobs import Asset, JobState, ManifestEntry, OrchestrationResult, RenditionJob, RenditionOutcome
from worker.manifest import assemble_master_manifest
from worker.renditions import RenditionSpec, load_rendition_table
from worker.runner import RenditionJobRunner
from worker.utils.ffmpeg import FFmpegEngine

logger = structlog.get_logger()


class RenditionOrchestrator:
    """
    Processes one asset at a time into an HLS package.

    Every rendition is encoded concurrently and the master playlist is only
    written once all of them have finished. Which outcomes count as a
    publishable stream is decided by the failure policy:

    - ``best_effort``: publish the renditions that succeeded, report the rest
      as degraded, fail only if nothing succeeded.
    - ``all_or_nothing``: any failed rendition fails the asset and no master
      playlist is written. Renditions that did finish stay on disk.
    """

    def __init__(self, layout: AssetLayout, runner: RenditionJobRunner,
                 renditions: Iterable[RenditionSpec], base_url: str,
                 policy: FailurePolicy = FailurePolicy.BEST_EFFORT):
        self.layout = layout
        self.runner = runner
        self.renditions: List[RenditionSpec] = load_rendition_table(renditions)
        self.base_url = base_url
        self.policy = FailurePolicy(policy)
        self._asset_locks: Dict[str, List[Any]] = {}

    @classmethod
    def from_settings(cls, settings: Settings) -> "RenditionOrchestrator":
        engine = FFmpegEngine(ffmpeg_path=settings.FFMPEG_PATH, timeout=settings.JOB_TIMEOUT)
        return cls(
            layout=AssetLayout(settings.OUTPUT_ROOT),
            runner=RenditionJobRunner(engine, segment_duration=settings.SEGMENT_DURATION),
            renditions=settings.rendition_table(),
            base_url=settings.BASE_URL,
            policy=settings.FAILURE_POLICY,
        )

    async def process_asset(self, input_path: Union[str, Path], asset_id: str) -> OrchestrationResult:
        """
        Encode every configured rendition of ``input_path`` and assemble the master playlist.

        Raises:
            StorageError: the output directory could not be prepared; nothing was encoded
            ValidationError: ``asset_id`` is not a safe directory name
        """
        async with self._asset_lock(asset_id):
            with structlog.contextvars.bound_contextvars(asset_id=asset_id):
                return await self._process(Path(input_path), asset_id)

    @asynccontextmanager
    async def _asset_lock(self, asset_id: str):
        """Serialize runs for the same asset id within this process."""
        entry = self._asset_locks.setdefault(asset_id, [asyncio.Lock(), 0])
        entry[1] += 1
        try:
            async with entry[0]:
                yield
        finally:
            entry[1] -= 1
            if not entry[1]:
                del self._asset_locks[asset_id]

    async def _process(self, input_path: Path, asset_id: str) -> OrchestrationResult:
        output_dir = self.layout.prepare_output_dir(asset_id)
        asset = Asset(asset_id=asset_id, input_path=input_path.absolute(), output_dir=output_dir)

        jobs = [
            RenditionJob(asset, spec, self.layout.playlist_path(output_dir, spec))
            for spec in self.renditions
        ]
        logger.info(
            "Dispatching rendition jobs",
            input_path=str(asset.input_path),
            output_dir=str(output_dir),
            renditions=[spec.label for spec in self.renditions],
        )

        # Barrier: every job reaches a terminal state before anything is decided.
        results = await asyncio.gather(*(self.runner.run(job) for job in jobs), return_exceptions=True)
        outcomes: List[RenditionOutcome] = [
            self._settle(job, res) for job, res in zip(jobs, results)
        ]

        result = OrchestrationResult(asset_id=asset_id, output_dir=output_dir, outcomes=outcomes)
        succeeded = [o for o in outcomes if o.ok]

        failure = self._classify(asset_id, outcomes, succeeded)
        if failure is not None:
            result.error = failure
            logger.error("Asset processing failed", failures=failure.failures, policy=self.policy.value)
            return result

        entries = [ManifestEntry.from_outcome(o) for o in succeeded]
        result.manifest_path = await assemble_master_manifest(output_dir, entries)
        result.stream_url = self.layout.stream_url(self.base_url, asset_id)

        if result.degraded:
            logger.warning("Asset published with missing renditions", degraded=result.degraded,
                           stream_url=result.stream_url)
        else:
            logger.info("Asset published", stream_url=result.stream_url)
        return result

    @staticmethod
    def _settle(job: RenditionJob, result: Union[RenditionOutcome, BaseException]) -> RenditionOutcome:
        """Turn an exception that escaped the runner into a failed outcome."""
        if isinstance(result, RenditionOutcome):
            return result
        if not isinstance(result, Exception):
            raise result
        reason = str(result) or type(result).__name__
        logger.error("Rendition job raised", rendition=job.spec.label, reason=reason)
        if job.state is JobState.RUNNING:
            job.mark_failed(reason)
            return job.outcome()
        return RenditionOutcome.failed(job.spec, job.playlist_path, reason)

    def _classify(self, asset_id: str, outcomes: List[RenditionOutcome],
                  succeeded: List[RenditionOutcome]) -> Optional[AggregateFailure]:
        failures = {o.spec.label: o.reason or "unknown error" for o in outcomes if not o.ok}
        if not failures:
            return None
        if self.policy is FailurePolicy.ALL_OR_NOTHING or not succeeded:
            return AggregateFailure(asset_id, failures)
        return None
