from __future__ import annotations

import json
import shutil
import subprocess
from pathlib import Path

import pytest

from app.core.errors import ProbeFailed
from app.ingest.probe import FFprobeProber, classify_orientation, parse_stream_dimensions


@pytest.mark.parametrize(
    "width, height, expected",
    [
        (1920, 1080, "landscape"),
        (1280, 720, "landscape"),
        (128, 72, "landscape"),
        (1080, 1920, "portrait"),
        (720, 1280, "portrait"),
        (1, 1, "other"),
        (640, 480, "other"),
        (1080, 1350, "other"),
    ],
)
def test_classify_orientation(width, height, expected):
    assert classify_orientation(width, height) == expected


def test_classify_orientation_only_matches_after_rounding():
    # 1.777... and 1.784... both round to 1.78, 1.79 does not
    assert classify_orientation(1920, 1080) == "landscape"
    assert classify_orientation(1784, 1000) == "landscape"
    assert classify_orientation(1790, 1000) == "other"


@pytest.mark.parametrize("width, height", [(0, 1080), (1920, 0), (-1, 10)])
def test_classify_orientation_rejects_degenerate_sizes(width, height):
    with pytest.raises(ValueError):
        classify_orientation(width, height)


def test_parse_stream_dimensions_reads_first_stream():
    raw = {"programs": [], "streams": [{"width": 1080, "height": 1920}, {"width": 10, "height": 10}]}
    assert parse_stream_dimensions(raw) == (1080, 1920)


@pytest.mark.parametrize(
    "raw",
    [
        {},
        {"streams": []},
        {"streams": [{"width": 1920}]},
        {"streams": [{"width": "N/A", "height": 1080}]},
        {"streams": [{"width": 0, "height": 0}]},
    ],
)
def test_parse_stream_dimensions_errors(raw):
    with pytest.raises(ProbeFailed):
        parse_stream_dimensions(raw)


def _completed(stdout: str, stderr: str = "") -> subprocess.CompletedProcess:
    return subprocess.CompletedProcess(args=[], returncode=0, stdout=stdout, stderr=stderr)


def test_ffprobe_prober_invokes_expected_command(monkeypatch, tmp_path: Path):
    captured = {}

    def fake_run(command, **kwargs):
        captured["command"] = command
        return _completed(json.dumps({"streams": [{"width": 1920, "height": 1080}]}))

    monkeypatch.setattr(subprocess, "run", fake_run)
    target = tmp_path / "clip.mp4"

    assert FFprobeProber(binary="ffprobe-test").probe(target) == "landscape"
    assert captured["command"] == [
        "ffprobe-test",
        "-v",
        "error",
        "-select_streams",
        "v:0",
        "-show_entries",
        "stream=width,height",
        "-of",
        "json",
        str(target),
    ]


def test_ffprobe_prober_non_zero_exit(monkeypatch, tmp_path: Path):
    def fake_run(command, **kwargs):
        raise subprocess.CalledProcessError(1, command, output="", stderr="clip.mp4: Invalid data found\n")

    monkeypatch.setattr(subprocess, "run", fake_run)

    with pytest.raises(ProbeFailed) as excinfo:
        FFprobeProber().probe(tmp_path / "clip.mp4")
    assert excinfo.value.stderr == "clip.mp4: Invalid data found"


def test_ffprobe_prober_malformed_output(monkeypatch, tmp_path: Path):
    monkeypatch.setattr(subprocess, "run", lambda command, **kwargs: _completed("not json"))
    with pytest.raises(ProbeFailed):
        FFprobeProber().probe(tmp_path / "clip.mp4")


def test_ffprobe_prober_missing_binary(monkeypatch, tmp_path: Path):
    def fake_run(command, **kwargs):
        raise FileNotFoundError(command[0])

    monkeypatch.setattr(subprocess, "run", fake_run)
    with pytest.raises(ProbeFailed) as excinfo:
        FFprobeProber(binary="no-such-ffprobe").probe(tmp_path / "clip.mp4")
    assert "no-such-ffprobe" in excinfo.value.message


@pytest.mark.skipif(shutil.which("ffmpeg") is None or shutil.which("ffprobe") is None, reason="ffmpeg/ffprobe not installed")
def test_ffprobe_prober_on_real_file(generated_video_file: Path):
    assert FFprobeProber().probe(generated_video_file) == "landscape"
