"""
Rendition spec table: the ordered ladder of resolution/bitrate pairs produced per asset.
"""
import re
from typing import Any, Iterable, List, Mapping, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from api.utils.error_handlers import ValidationError

SAFE_LABEL = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]*$")


class RenditionSpec(BaseModel):
    """Immutable descriptor of one rendition to encode."""

    model_config = ConfigDict(frozen=True)

    label: str = Field(..., description="Playlist name stem, e.g. '720p'")
    width: int = Field(..., gt=0)
    height: int = Field(..., gt=0)
    bitrate_kbps: int = Field(..., gt=0, description="Target video bitrate in kbps")

    @field_validator("label")
    @classmethod
    def _label_is_filesystem_safe(cls, value: str) -> str:
        if not SAFE_LABEL.match(value):
            raise ValueError(f"rendition label {value!r} is not filesystem-safe")
        return value

    @property
    def resolution(self) -> str:
        return f"{self.width}x{self.height}"

    @property
    def bandwidth(self) -> int:
        """Bits per second as advertised in the master manifest."""
        return self.bitrate_kbps * 1000

    @property
    def playlist_name(self) -> str:
        return f"{self.label}.m3u8"


DEFAULT_RENDITIONS: List[RenditionSpec] = [
    RenditionSpec(label="360p", width=640, height=360, bitrate_kbps=800),
    RenditionSpec(label="720p", width=1280, height=720, bitrate_kbps=2500),
    RenditionSpec(label="1080p", width=1920, height=1080, bitrate_kbps=5000),
]


def load_rendition_table(
    entries: Iterable[Union[RenditionSpec, Mapping[str, Any]]],
) -> List[RenditionSpec]:
    """
    Build an ordered rendition table from specs or plain mappings.

    Order is preserved verbatim since it defines manifest ordering. Duplicate
    labels are rejected because two renditions would write the same playlist.
    """
    table: List[RenditionSpec] = []
    seen = set()
    for entry in entries:
        try:
            spec = entry if isinstance(entry, RenditionSpec) else RenditionSpec(**entry)
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Invalid rendition spec {entry!r}: {e}", field="renditions")
        if spec.label in seen:
            raise ValidationError(f"Duplicate rendition label: {spec.label}", field="renditions")
        seen.add(spec.label)
        table.append(spec)
    return table
