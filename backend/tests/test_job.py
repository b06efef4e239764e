"""Tests for render job naming and scoped cleanup."""

import re

import pytest

from reelforge.render.job import RenderJob, generate_output_id, safe_filename


class TestOutputNaming:
    def test_id_is_sixteen_alphanumerics(self):
        for _ in range(50):
            output_id = generate_output_id()
            assert re.fullmatch(r"[A-Za-z0-9]{16}", output_id)

    def test_ids_differ(self):
        assert len({generate_output_id() for _ in range(100)}) == 100

    def test_output_name(self, tmp_path):
        job = RenderJob("splitscreen", str(tmp_path / "dl"), str(tmp_path / "up"))
        assert re.fullmatch(r"splitscreen_[A-Za-z0-9]{16}\.mp4", job.output_name)
        assert job.output_path.parent == tmp_path / "dl"

    @pytest.mark.parametrize(
        "filename,expected",
        [("clip.mp4", "clip.mp4"), ("../../etc/passwd", "passwd"), ("my clip (1).mov", "my_clip_1_.mov"), (None, "upload")],
    )
    def test_safe_filename(self, filename, expected):
        assert safe_filename(filename) == expected


class TestCleanup:
    def test_staged_files_removed_on_exit(self, tmp_path):
        with RenderJob("ranking", str(tmp_path / "dl"), str(tmp_path / "up")) as job:
            staged = job.stage_path("a.mp4")
            staged.write_bytes(b"a")
            job.output_path.write_bytes(b"out")
        assert not staged.exists()
        assert not job.staging_dir.exists()
        assert job.output_path.exists()

    def test_output_removed_when_block_raises(self, tmp_path):
        with pytest.raises(RuntimeError):
            with RenderJob("ranking", str(tmp_path / "dl"), str(tmp_path / "up")) as job:
                staged = job.stage_path("a.mp4")
                staged.write_bytes(b"a")
                job.output_path.write_bytes(b"partial")
                raise RuntimeError("boom")
        assert not staged.exists()
        assert not job.output_path.exists()

    def test_cleanup_is_idempotent(self, tmp_path):
        with RenderJob("ranking", str(tmp_path / "dl"), str(tmp_path / "up")) as job:
            job.stage_path("a.mp4").write_bytes(b"a")
            job.cleanup()
            job.cleanup()
        assert job.cleaned_up

    def test_missing_files_do_not_raise(self, tmp_path):
        with RenderJob("ranking", str(tmp_path / "dl"), str(tmp_path / "up")) as job:
            job.stage_path("never-written.mp4")
            job.register(tmp_path / "elsewhere.mp4")

    def test_stage_requires_enter(self, tmp_path):
        job = RenderJob("ranking", str(tmp_path / "dl"), str(tmp_path / "up"))
        with pytest.raises(RuntimeError):
            job.stage_path("a.mp4")

    def test_staged_names_are_unique(self, tmp_path):
        with RenderJob("ranking", str(tmp_path / "dl"), str(tmp_path / "up")) as job:
            first = job.stage_path("clip.mp4")
            second = job.stage_path("clip.mp4")
        assert first != second
