from __future__ import annotations

"""
MP4 → HLS transcoding (ffmpeg)
==============================

`convert_to_hls(input_path, output_dir, watermark_text=None)` runs:

    ffmpeg -i <in> [-vf drawtext=...] -c:v libx264 -c:a aac -f hls
           -hls_time 10 -hls_list_size 0
           -hls_segment_filename <out>/segment_%03d.ts
           -hls_flags delete_segments <out>/playlist.m3u8

The binary comes from `FFMPEG_BINARY`; the run is bounded by
`FFMPEG_TIMEOUT_SECONDS` (the process is killed on timeout). Arguments are
passed as a list, never through a shell.
"""

import asyncio
import logging
from pathlib import Path
from typing import List, Optional, Union

from app.core.config import settings

logger = logging.getLogger("transcoder")

PLAYLIST_NAME = "playlist.m3u8"
SEGMENT_PATTERN = "segment_%03d.ts"
HLS_TIME = 10
STDERR_TAIL = 2000

PathLike = Union[str, Path]


class TranscodeError(RuntimeError):
    """ffmpeg failed, timed out or could not be started."""

    def __init__(self, message: str, *, returncode: Optional[int] = None, stderr: str = "") -> None:
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


def escape_drawtext(text: str) -> str:
    """Escape characters that are special inside a drawtext `text='...'` value."""
    for ch in ("\\", "'", ":", "%"):
        text = text.replace(ch, f"\\{ch}")
    return text


def watermark_filter(text: str) -> str:
    return f"drawtext=text='{escape_drawtext(text)}':fontcolor=white@0.3:fontsize=24:x=10:y=10"


def build_ffmpeg_command(
    input_path: PathLike,
    output_dir: PathLike,
    watermark_text: Optional[str] = None,
    *,
    binary: Optional[str] = None,
) -> List[str]:
    out = Path(output_dir)
    cmd: List[str] = [binary or settings.FFMPEG_BINARY, "-i", str(input_path)]
    if watermark_text:
        cmd += ["-vf", watermark_filter(watermark_text)]
    cmd += [
        "-c:v", "libx264",
        "-c:a", "aac",
        "-f", "hls",
        "-hls_time", str(HLS_TIME),
        "-hls_list_size", "0",
        "-hls_segment_filename", str(out / SEGMENT_PATTERN),
        "-hls_flags", "delete_segments",
        str(out / PLAYLIST_NAME),
    ]
    return cmd


async def convert_to_hls(
    input_path: PathLike,
    output_dir: PathLike,
    watermark_text: Optional[str] = None,
    *,
    timeout: Optional[float] = None,
) -> Path:
    """Transcode `input_path` into an HLS ladder under `output_dir`; returns the playlist path."""
    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)
    cmd = build_ffmpeg_command(input_path, out, watermark_text)
    limit = timeout if timeout is not None else settings.FFMPEG_TIMEOUT_SECONDS

    logger.info("[HLS] converting %s -> %s (watermark=%s)", input_path, out, bool(watermark_text))
    try:
        process = await asyncio.create_subprocess_exec(
            *cmd, stdout=asyncio.subprocess.PIPE, stderr=asyncio.subprocess.PIPE
        )
    except OSError as e:
        raise TranscodeError(f"Unable to start {cmd[0]}: {e}") from e

    try:
        _, stderr = await asyncio.wait_for(process.communicate(), timeout=limit)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        logger.error("[HLS] ffmpeg timed out after %ss for %s", limit, input_path)
        raise TranscodeError(f"ffmpeg timed out after {limit}s")

    tail = (stderr or b"").decode("utf-8", errors="ignore")[-STDERR_TAIL:]
    if process.returncode != 0:
        logger.error("[HLS] ffmpeg exited %s: %s", process.returncode, tail)
        raise TranscodeError(
            f"ffmpeg exited with code {process.returncode}",
            returncode=process.returncode,
            stderr=tail,
        )
    if tail:
        logger.debug("[HLS] ffmpeg output: %s", tail)

    playlist = out / PLAYLIST_NAME
    logger.info("[HLS] ✅ done: %s", playlist)
    return playlist


__all__ = [
    "TranscodeError",
    "escape_drawtext",
    "watermark_filter",
    "build_ffmpeg_command",
    "convert_to_hls",
]
