from __future__ import annotations

import subprocess
from abc import ABC, abstractmethod
from pathlib import Path

from app.core.errors import RemuxFailed
from app.core.logging import get_logger

PROCESSED_SUFFIX = ".processed"

logger = get_logger(component="faststart_remux")


def faststart_output_path(input_path: Path) -> Path:
    """Return where the remuxed copy of ``input_path`` is written.

    ``<dir>/<stem>.mp4`` maps to ``<dir>/<stem>.processed.mp4``.
    """
    return input_path.with_name(f"{input_path.stem}{PROCESSED_SUFFIX}{input_path.suffix}")


class Remuxer(ABC):
    @abstractmethod
    def remux(self, path: Path) -> Path: ...


class FFmpegRemuxer(Remuxer):
    """Moves the moov atom to the front with a stream copy; nothing is re-encoded."""

    def __init__(self, binary: str = "ffmpeg"):
        self.binary = binary

    def command(self, input_path: Path, output_path: Path) -> list[str]:
        return [
            self.binary,
            "-nostdin",
            "-v",
            "error",
            "-y",
            "-i",
            str(input_path),
            "-movflags",
            "faststart",
            "-map_metadata",
            "0",
            "-codec",
            "copy",
            "-f",
            "mp4",
            str(output_path),
        ]

    def remux(self, path: Path) -> Path:
        output_path = faststart_output_path(path)
        command = self.command(path, output_path)
        logger.debug("ffmpeg_run", command=command)
        try:
            subprocess.run(command, check=True, stdout=subprocess.PIPE, stderr=subprocess.PIPE, text=True)
        except FileNotFoundError as exc:
            raise RemuxFailed(f"binary_not_found:{self.binary}") from exc
        except subprocess.CalledProcessError as exc:
            stderr = (exc.stderr or "").strip()
            raise RemuxFailed(f"ffmpeg exited with status {exc.returncode}", stderr=stderr) from exc
        logger.info("faststart_complete", input=str(path), output=str(output_path))
        return output_path


__all__ = ["Remuxer", "FFmpegRemuxer", "faststart_output_path", "PROCESSED_SUFFIX"]
