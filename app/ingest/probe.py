from __future__ import annotations

import json
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Literal, Tuple

from app.core.errors import ProbeFailed
from app.core.logging import get_logger

Orientation = Literal["landscape", "portrait", "other"]

LANDSCAPE_RATIO = 1.78
PORTRAIT_RATIO = 0.56

logger = get_logger(component="media_probe")


def classify_orientation(width: int, height: int) -> Orientation:
    """Bucket a frame size into one of three orientations.

    The ratio is rounded to two decimals, so only sizes close to 16:9 or 9:16
    count as landscape or portrait; everything else is ``"other"``.

    Args:
        width: Frame width in pixels.
        height: Frame height in pixels.

    Returns:
        The orientation label.
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"invalid_dimensions:{width}x{height}")
    ratio = round(width / height, 2)
    if ratio == LANDSCAPE_RATIO:
        return "landscape"
    if ratio == PORTRAIT_RATIO:
        return "portrait"
    return "other"


def parse_stream_dimensions(raw: Dict[str, Any]) -> Tuple[int, int]:
    """Extract width and height of the first stream from ffprobe JSON output.

    Args:
        raw: Decoded ffprobe output produced with ``-show_entries stream=width,height``.

    Returns:
        A ``(width, height)`` tuple.
    """
    streams = raw.get("streams") or []
    if not streams:
        raise ProbeFailed("no_video_stream")
    stream = streams[0]
    try:
        width = int(stream["width"])
        height = int(stream["height"])
    except (KeyError, TypeError, ValueError) as exc:
        raise ProbeFailed("missing_dimensions") from exc
    if width <= 0 or height <= 0:
        raise ProbeFailed(f"invalid_dimensions:{width}x{height}")
    return width, height


class MediaProber(ABC):
    @abstractmethod
    def probe(self, path: Path) -> Orientation: ...


class FFprobeProber(MediaProber):
    """Reads the first video stream's frame size with ffprobe."""

    def __init__(self, binary: str = "ffprobe"):
        self.binary = binary

    def command(self, path: Path) -> list[str]:
        return [
            self.binary,
            "-v",
            "error",
            "-select_streams",
            "v:0",
            "-show_entries",
            "stream=width,height",
            "-of",
            "json",
            str(path),
        ]

    def probe(self, path: Path) -> Orientation:
        command = self.command(path)
        logger.debug("ffprobe_run", command=command)
        try:
            proc = subprocess.run(
                command,
                check=True,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
            )
        except FileNotFoundError as exc:
            raise ProbeFailed(f"binary_not_found:{self.binary}") from exc
        except subprocess.CalledProcessError as exc:
            stderr = (exc.stderr or "").strip()
            raise ProbeFailed(f"ffprobe exited with status {exc.returncode}", stderr=stderr) from exc

        try:
            raw = json.loads(proc.stdout)
        except json.JSONDecodeError as exc:
            raise ProbeFailed("malformed_ffprobe_output", stderr=proc.stderr) from exc
        if not isinstance(raw, dict):
            raise ProbeFailed("malformed_ffprobe_output", stderr=proc.stderr)

        width, height = parse_stream_dimensions(raw)
        orientation = classify_orientation(width, height)
        logger.info("ffprobe_complete", path=str(path), width=width, height=height, orientation=orientation)
        return orientation


__all__ = [
    "Orientation",
    "MediaProber",
    "FFprobeProber",
    "classify_orientation",
    "parse_stream_dimensions",
]
