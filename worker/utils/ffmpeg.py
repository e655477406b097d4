"""
Codec engine adapter: runs ffmpeg as a black-box process per rendition.
"""
import asyncio
import codecs
import re
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import structlog

from api.utils.error_handlers import EncodeError

logger = structlog.get_logger()

STDERR_CHUNK_SIZE = 4096


class FFmpegError(EncodeError):
    """Base exception for FFmpeg operations."""
    pass


class FFmpegExecutionError(FFmpegError):
    """FFmpeg could not be started or exited with a nonzero code."""
    pass


class FFmpegTimeoutError(FFmpegError):
    """FFmpeg did not finish within the allotted time."""
    pass


@dataclass(frozen=True)
class EncodeParameters:
    """Encoder settings for one segmented VOD rendition."""

    width: int
    height: int
    video_bitrate_kbps: int
    segment_duration: int = 10
    # 0 keeps every segment in the playlist (VOD, not a live window)
    playlist_size: int = 0
    video_codec: str = "libx264"
    audio_codec: str = "aac"
    segment_pattern: Optional[str] = None

    @property
    def size(self) -> str:
        return f"{self.width}x{self.height}"


class CodecEngine(ABC):
    """Invocation boundary around an external encoder."""

    @abstractmethod
    async def encode(self, input_path: str, playlist_path: str, params: EncodeParameters) -> None:
        """
        Encode ``input_path`` into an HLS playlist plus segments.

        Returns on a clean completion signal; raises EncodeError otherwise.
        """


class HLSCommandBuilder:
    """Build ffmpeg argument lists for HLS renditions."""

    def __init__(self, ffmpeg_path: str = "ffmpeg"):
        self.ffmpeg_path = ffmpeg_path

    def build_command(self, input_path: str, playlist_path: str, params: EncodeParameters) -> List[str]:
        cmd = [self.ffmpeg_path, '-y', '-i', input_path]

        cmd.extend(['-c:v', params.video_codec, '-c:a', params.audio_codec])
        cmd.extend(['-s', params.size, '-b:v', f"{params.video_bitrate_kbps}k"])

        cmd.extend([
            '-hls_time', str(params.segment_duration),
            '-hls_list_size', str(params.playlist_size),
        ])
        if params.segment_pattern:
            cmd.extend(['-hls_segment_filename', params.segment_pattern])

        cmd.extend(['-f', 'hls', playlist_path])
        return cmd


class FFmpegEngine(CodecEngine):
    """Runs one ffmpeg subprocess per encode without blocking the event loop."""

    def __init__(self, ffmpeg_path: str = "ffmpeg", timeout: Optional[float] = None,
                 stderr_tail: int = 10):
        self.command_builder = HLSCommandBuilder(ffmpeg_path)
        self.timeout = timeout
        self.stderr_tail = stderr_tail

    async def encode(self, input_path: str, playlist_path: str, params: EncodeParameters) -> None:
        cmd = self.command_builder.build_command(input_path, playlist_path, params)
        logger.info("Running ffmpeg", command=' '.join(cmd))

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE
            )
        except OSError as e:
            raise FFmpegExecutionError(f"Failed to start ffmpeg: {e}")

        stderr_lines = deque(maxlen=self.stderr_tail)

        async def read_stderr():
            # Progress stats are separated by \r, so read chunks rather than lines.
            if not process.stderr:
                return
            decoder = codecs.getincrementaldecoder('utf-8')(errors='ignore')
            pending = ''
            while True:
                chunk = await process.stderr.read(STDERR_CHUNK_SIZE)
                if not chunk:
                    break
                pending += decoder.decode(chunk)
                *complete, pending = re.split(r'[\r\n]', pending)
                stderr_lines.extend(line.strip() for line in complete if line.strip())
            if pending.strip():
                stderr_lines.append(pending.strip())

        stderr_task = asyncio.create_task(read_stderr())

        try:
            if self.timeout:
                await asyncio.wait_for(process.wait(), timeout=self.timeout)
            else:
                await process.wait()
        except asyncio.TimeoutError:
            process.terminate()
            await process.wait()
            await stderr_task
            raise FFmpegTimeoutError(f"FFmpeg execution timed out after {self.timeout} seconds")

        await stderr_task

        if process.returncode != 0:
            error_msg = '\n'.join(stderr_lines) or "Unknown FFmpeg error"
            raise FFmpegExecutionError(f"FFmpeg failed with code {process.returncode}: {error_msg}")
