"""
Pytest fixtures for Reelforge backend tests.

Most tests never launch a real encoder: the supervisor and API tests run
small shell scripts that stand in for ffmpeg (write the output path, print
progress to stderr, exit with a chosen code).

CI/CD Note:
Tests that launch a real ffmpeg are marked with @pytest.mark.requires_ffmpeg
and are skipped when no ffmpeg with libx264 is on PATH.
"""

import shutil
import stat
import subprocess
import tempfile
from pathlib import Path

import pytest


def pytest_configure(config):
    """Register custom markers for CI/CD test filtering."""
    config.addinivalue_line(
        "markers",
        "requires_ffmpeg: mark test as launching a real ffmpeg with libx264 (skipped when unavailable)",
    )


def _ffmpeg_with_x264_available() -> bool:
    ffmpeg = shutil.which("ffmpeg")
    if ffmpeg is None:
        return False
    try:
        result = subprocess.run([ffmpeg, "-hide_banner", "-encoders"], capture_output=True, text=True, timeout=10)
    except (OSError, subprocess.TimeoutExpired):
        return False
    return "libx264" in result.stdout


def pytest_collection_modifyitems(config, items):
    """Skip real-engine tests when ffmpeg with libx264 is not installed."""
    if _ffmpeg_with_x264_available():
        return
    skip = pytest.mark.skip(reason="ffmpeg with libx264 not available")
    for item in items:
        if "requires_ffmpeg" in item.keywords:
            item.add_marker(skip)


@pytest.fixture
def temp_output_dir():
    """Temporary directory for test outputs."""
    with tempfile.TemporaryDirectory(prefix="reelforge_test_") as tmpdir:
        yield Path(tmpdir)


FAKE_ENGINE_TEMPLATE = """#!/bin/sh
for last; do :; done
{stderr}
{write_output}
exit {exit_code}
"""


@pytest.fixture
def fake_ffmpeg(tmp_path: Path):
    """Factory for an executable that stands in for ffmpeg.

    The script echoes ``stderr_lines`` to stderr, writes a few bytes to its
    last argument (the output path) unless ``write_output`` is False, and
    exits with ``exit_code``.
    """

    def _make(
        exit_code: int = 0,
        stderr_lines: list[str] | None = None,
        write_output: bool = True,
        name: str = "fake-ffmpeg",
    ) -> str:
        lines = stderr_lines or []
        stderr = "\n".join(f"printf '%s\\r' '{line}' >&2" for line in lines)
        script = FAKE_ENGINE_TEMPLATE.format(
            stderr=stderr,
            write_output="printf 'fake mp4 payload' > \"$last\"" if write_output else ":",
            exit_code=exit_code,
        )
        path = tmp_path / name
        path.write_text(script)
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return str(path)

    return _make


@pytest.fixture
def make_settings(tmp_path: Path):
    """Settings pointing uploads and downloads at a temp dir."""
    from reelforge.config import Settings

    def _make(**overrides) -> Settings:
        values = {
            "uploads_dir": str(tmp_path / "uploads"),
            "downloads_dir": str(tmp_path / "downloads"),
            "ffmpeg_path": "ffmpeg",
        }
        values.update(overrides)
        return Settings(**values)

    return _make


@pytest.fixture
def ranking_scene():
    """Factory for ranking scenes with one clip per duration."""
    from reelforge.schemas.scene import SceneDescription

    def _make(durations: list[float] = (5, 5, 5), **fields) -> SceneDescription:
        clips = [{"filePath": f"/tmp/clip{i}.mp4", "durationSeconds": d} for i, d in enumerate(durations)]
        return SceneDescription.model_validate({"mode": "ranking", "clips": clips, **fields})

    return _make


@pytest.fixture
def split_scene():
    """Factory for split-screen scenes."""
    from reelforge.schemas.scene import SceneDescription

    def _make(**fields) -> SceneDescription:
        split = {"mainFile": "/tmp/main.mp4", "backgroundFile": "/tmp/bg.mp4", **fields.pop("split", {})}
        return SceneDescription.model_validate({"mode": "split_screen", "splitScreen": split, **fields})

    return _make
