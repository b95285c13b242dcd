from __future__ import annotations

import argparse
import shutil
import subprocess
import sys
from pathlib import Path
from typing import Optional

from rich.console import Console

from .core.errors import ProcessingError
from .ingest.faststart import FFmpegRemuxer, faststart_output_path
from .ingest.probe import FFprobeProber

console = Console()


def main(argv: Optional[list[str]] = None) -> None:
    """The main entry point for the CLI.

    Args:
        argv: The command-line arguments.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    if getattr(args, "check", False):
        _run_environment_check(ffprobe=args.ffprobe, ffmpeg=args.ffmpeg)
        return

    if not hasattr(args, "func"):
        parser.print_help()
        sys.exit(1)

    args.func(args)


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI.

    Returns:
        The argument parser.
    """
    parser = argparse.ArgumentParser(description="Reelhost media developer CLI")
    parser.add_argument("--check", action="store_true", help="Validate presence of ffmpeg/ffprobe dependencies")
    parser.add_argument("--ffprobe", default="ffprobe", help="ffprobe binary to invoke")
    parser.add_argument("--ffmpeg", default="ffmpeg", help="ffmpeg binary to invoke")

    subparsers = parser.add_subparsers(dest="command")

    probe_parser = subparsers.add_parser("probe", help="Print the orientation bucket of a video")
    probe_parser.add_argument("--file", required=True, help="Path to the source media file")
    probe_parser.set_defaults(func=_cmd_probe)

    faststart_parser = subparsers.add_parser("faststart", help="Rewrite an mp4 with its index at the front")
    faststart_parser.add_argument("--file", required=True, help="Path to the source media file")
    faststart_parser.add_argument(
        "--output",
        default=None,
        help="Where to move the result (defaults to <stem>.processed.mp4 next to the input).",
    )
    faststart_parser.set_defaults(func=_cmd_faststart)
    return parser


def _resolve_media(raw: str) -> Path:
    media_path = Path(raw).expanduser().resolve()
    if not media_path.exists():
        console.print(f"[red]File not found: {media_path}[/]")
        sys.exit(2)
    return media_path


def _cmd_probe(args: argparse.Namespace) -> None:
    """Run ffprobe and print the orientation as JSON.

    Args:
        args: The command-line arguments.
    """
    media_path = _resolve_media(args.file)
    try:
        orientation = FFprobeProber(binary=args.ffprobe).probe(media_path)
    except ProcessingError as exc:
        console.print(f"[red]ffprobe failed:[/] {exc.message} {exc.stderr or ''}".rstrip())
        sys.exit(3)
    console.print_json(data={"file": str(media_path), "orientation": orientation})


def _cmd_faststart(args: argparse.Namespace) -> None:
    media_path = _resolve_media(args.file)
    try:
        output = FFmpegRemuxer(binary=args.ffmpeg).remux(media_path)
    except ProcessingError as exc:
        faststart_output_path(media_path).unlink(missing_ok=True)
        console.print(f"[red]ffmpeg failed:[/] {exc.message} {exc.stderr or ''}".rstrip())
        sys.exit(3)
    if args.output:
        target = Path(args.output).expanduser().resolve()
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.move(str(output), target)
        output = target
    console.print(f"[green]Fast-start copy written to {output}[/]")


def _run_environment_check(*, ffprobe: str = "ffprobe", ffmpeg: str = "ffmpeg") -> None:
    """Check for the presence of required external dependencies."""
    checks = {
        "ffmpeg": [ffmpeg, "-version"],
        "ffprobe": [ffprobe, "-version"],
    }
    results = {}
    for label, cmd in checks.items():
        try:
            subprocess.run(cmd, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL, check=True)
            results[label] = True
        except (OSError, subprocess.CalledProcessError):
            results[label] = False

    console.rule("[bold]Environment Check")
    for label, ok in results.items():
        console.print(f"[bold]{label}[/]: {'✅' if ok else '❌'}")

    if not all(results.values()):
        console.print("[red]Missing dependencies detected. Install ffmpeg (it ships ffprobe).[/]")
        sys.exit(1)
    console.print("[green]Environment looks good![/]")


if __name__ == "__main__":
    main()
