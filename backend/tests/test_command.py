"""Tests for FFmpeg argument assembly."""

from reelforge.config import Settings
from reelforge.render.command import CommandAssembler, CompiledProgram
from reelforge.render.quality import get_quality_profile


def _assembler(tier: str = "standard", **settings) -> CommandAssembler:
    return CommandAssembler(
        settings=Settings(ffmpeg_path="/usr/bin/ffmpeg", **settings),
        profile=get_quality_profile(tier),
        fps=30,
    )


class TestCommandAssembler:
    def test_full_order_with_audio(self):
        program = CompiledProgram(
            inputs=("/in/a.mp4", "/in/b.mp4", "/in/music.mp3"),
            filter_complex="PROGRAM",
            video_label="vout9",
            audio_label="amix12",
            duration_seconds=10,
        )
        cmd = _assembler().build(program, "/out/ranking_x.mp4")
        assert cmd == [
            "/usr/bin/ffmpeg",
            "-i", "/in/a.mp4",
            "-i", "/in/b.mp4",
            "-i", "/in/music.mp3",
            "-filter_complex", "PROGRAM",
            "-map", "[vout9]",
            "-map", "[amix12]",
            "-c:a", "aac",
            "-b:a", "192k",
            "-c:v", "libx264",
            "-preset", "medium",
            "-crf", "18",
            "-b:v", "8M",
            "-maxrate", "8M",
            "-bufsize", "16M",
            "-r", "30",
            "-pix_fmt", "yuv420p",
            "-movflags", "+faststart",
            "-y", "/out/ranking_x.mp4",
        ]

    def test_no_audio_flags_without_audio(self):
        program = CompiledProgram(inputs=("/in/a.mp4",), filter_complex="P", video_label="v0")
        cmd = _assembler("low").build(program, "/out/x.mp4")
        assert "-c:a" not in cmd
        assert cmd.count("-map") == 1
        assert cmd[cmd.index("-crf") + 1] == "23"
        assert cmd[cmd.index("-bufsize") + 1] == "6M"

    def test_duration_cap_before_overwrite(self):
        program = CompiledProgram(
            inputs=("/in/m.mp4", "/in/b.mp4"),
            filter_complex="P",
            video_label="v",
            audio_label="a",
            duration_seconds=30,
            limit_duration=True,
        )
        cmd = _assembler().build(program, "/out/splitscreen_x.mp4")
        assert cmd[-4:] == ["-t", "30", "-y", "/out/splitscreen_x.mp4"]

    def test_audio_bitrate_from_settings(self):
        program = CompiledProgram(inputs=("/in/a.mp4",), filter_complex="P", video_label="v", audio_label="a")
        cmd = _assembler(render_audio_bitrate="128k").build(program, "/out/x.mp4")
        assert cmd[cmd.index("-b:a") + 1] == "128k"

    def test_deterministic(self):
        program = CompiledProgram(inputs=("/in/a.mp4",), filter_complex="P", video_label="v")
        assembler = _assembler()
        assert assembler.build(program, "/o.mp4") == assembler.build(program, "/o.mp4")
