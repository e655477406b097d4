"""
Data model for one asset's processing: the asset, its rendition jobs and their outcomes.
"""
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional

from api.utils.error_handlers import AggregateFailure, InvalidTransitionError
from worker.renditions import RenditionSpec


class JobState(str, Enum):
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"

    @property
    def terminal(self) -> bool:
        return self in (JobState.SUCCEEDED, JobState.FAILED)


_ALLOWED_TRANSITIONS = {
    JobState.PENDING: {JobState.RUNNING},
    JobState.RUNNING: {JobState.SUCCEEDED, JobState.FAILED},
    JobState.SUCCEEDED: set(),
    JobState.FAILED: set(),
}


@dataclass(frozen=True)
class Asset:
    """One uploaded input, immutable for the duration of processing."""

    asset_id: str
    input_path: Path
    output_dir: Path


@dataclass(frozen=True)
class RenditionOutcome:
    """Value reported by the job runner; the orchestrator decides what it means."""

    spec: RenditionSpec
    state: JobState
    playlist_path: Path
    reason: Optional[str] = None

    @classmethod
    def succeeded(cls, spec: RenditionSpec, playlist_path: Path) -> "RenditionOutcome":
        return cls(spec=spec, state=JobState.SUCCEEDED, playlist_path=playlist_path)

    @classmethod
    def failed(cls, spec: RenditionSpec, playlist_path: Path, reason: str) -> "RenditionOutcome":
        return cls(spec=spec, state=JobState.FAILED, playlist_path=playlist_path, reason=reason)

    @property
    def ok(self) -> bool:
        return self.state is JobState.SUCCEEDED


class RenditionJob:
    """
    One encode attempt for an (asset, rendition) pair.

    State only moves forward: PENDING -> RUNNING -> SUCCEEDED | FAILED.
    Terminal states are final.
    """

    def __init__(self, asset: Asset, spec: RenditionSpec, playlist_path: Path):
        self.asset = asset
        self.spec = spec
        self.playlist_path = playlist_path
        self.state = JobState.PENDING
        self.reason: Optional[str] = None
        self.history: List[JobState] = [JobState.PENDING]

    def __repr__(self) -> str:
        return f"RenditionJob(asset={self.asset.asset_id!r}, label={self.spec.label!r}, state={self.state.value})"

    def _transition(self, target: JobState) -> None:
        if target not in _ALLOWED_TRANSITIONS[self.state]:
            raise InvalidTransitionError(
                f"Rendition {self.spec.label} of asset {self.asset.asset_id} "
                f"cannot move from {self.state.value} to {target.value}"
            )
        self.state = target
        self.history.append(target)

    def mark_running(self) -> None:
        self._transition(JobState.RUNNING)

    def mark_succeeded(self) -> None:
        self._transition(JobState.SUCCEEDED)

    def mark_failed(self, reason: str) -> None:
        self._transition(JobState.FAILED)
        self.reason = reason

    def outcome(self) -> RenditionOutcome:
        if self.state is JobState.SUCCEEDED:
            return RenditionOutcome.succeeded(self.spec, self.playlist_path)
        if self.state is JobState.FAILED:
            return RenditionOutcome.failed(self.spec, self.playlist_path, self.reason or "unknown error")
        raise InvalidTransitionError(
            f"Rendition {self.spec.label} of asset {self.asset.asset_id} has not finished ({self.state.value})"
        )


@dataclass(frozen=True)
class ManifestEntry:
    """Projection of a succeeded rendition used to render one manifest stanza."""

    label: str
    bandwidth: int
    resolution: str
    uri: str

    @classmethod
    def from_outcome(cls, outcome: RenditionOutcome) -> "ManifestEntry":
        if not outcome.ok:
            raise ValueError(f"Rendition {outcome.spec.label} did not succeed")
        return cls(
            label=outcome.spec.label,
            bandwidth=outcome.spec.bandwidth,
            resolution=outcome.spec.resolution,
            uri=outcome.playlist_path.name,
        )


@dataclass
class OrchestrationResult:
    """Aggregate outcome of one asset: a playable stream or an AggregateFailure."""

    asset_id: str
    output_dir: Path
    outcomes: List[RenditionOutcome] = field(default_factory=list)
    manifest_path: Optional[Path] = None
    stream_url: Optional[str] = None
    error: Optional[AggregateFailure] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None

    @property
    def renditions(self) -> List[str]:
        return [o.spec.label for o in self.outcomes if o.ok]

    @property
    def failures(self) -> Dict[str, str]:
        return {o.spec.label: o.reason or "unknown error" for o in self.outcomes if not o.ok}

    @property
    def degraded(self) -> Dict[str, str]:
        """Renditions that failed while the stream was still published."""
        return self.failures if self.succeeded else {}

    def raise_for_failure(self) -> "OrchestrationResult":
        if self.error is not None:
            raise self.error
        return self
