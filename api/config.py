from enum import Enum
from pathlib import Path
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from worker.renditions import DEFAULT_RENDITIONS, RenditionSpec, load_rendition_table


class FailurePolicy(str, Enum):
    BEST_EFFORT = "best_effort"
    ALL_OR_NOTHING = "all_or_nothing"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    VERSION: str = Field("1.0.0")
    DEBUG: bool = Field(False)

    API_HOST: str = Field("0.0.0.0")
    API_PORT: int = Field(3000)
    API_LOG_LEVEL: str = Field("INFO")

    OUTPUT_ROOT: Path = Field(Path("public/videos"))
    UPLOAD_DIR: Path = Field(Path("uploads"))
    BASE_URL: str = Field("http://localhost:3000")

    FFMPEG_PATH: str = Field("ffmpeg")
    SEGMENT_DURATION: int = Field(10, gt=0)
    # seconds; unset means an encode may run indefinitely
    JOB_TIMEOUT: Optional[float] = Field(None, gt=0)
    FAILURE_POLICY: FailurePolicy = Field(FailurePolicy.BEST_EFFORT)

    RENDITIONS: List[RenditionSpec] = Field(default_factory=lambda: list(DEFAULT_RENDITIONS))

    @field_validator("RENDITIONS")
    @classmethod
    def _unique_labels(cls, value: List[RenditionSpec]) -> List[RenditionSpec]:
        labels = [spec.label for spec in value]
        if len(labels) != len(set(labels)):
            raise ValueError(f"rendition labels must be unique, got {labels}")
        return value

    def rendition_table(self) -> List[RenditionSpec]:
        return load_rendition_table(self.RENDITIONS)


settings = Settings()
