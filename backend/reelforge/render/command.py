"""FFmpeg argument list assembly.

Argument order is fixed so the emitted command can be asserted on directly:
inputs, filter program, maps, audio codec (only with an audio stream), video
codec and rate control, optional duration cap, overwrite flag, output path.
"""

from dataclasses import dataclass, field

from reelforge.config import Settings
from reelforge.render.graph import format_number
from reelforge.render.quality import QualityProfile


@dataclass(frozen=True)
class CompiledProgram:
    """A validated filter program plus the labels to map to the output."""

    inputs: tuple[str, ...]
    filter_complex: str
    video_label: str
    audio_label: str | None = None
    duration_seconds: float = 0.0
    # Cap the output length with -t (split-screen inputs run open-ended)
    limit_duration: bool = False


@dataclass
class CommandAssembler:
    settings: Settings
    profile: QualityProfile
    fps: int
    extra_output_args: list[str] = field(default_factory=list)

    def build(self, program: CompiledProgram, output_path: str) -> list[str]:
        cmd = [self.settings.ffmpeg_path]
        for path in program.inputs:
            cmd.extend(["-i", path])

        cmd.extend(["-filter_complex", program.filter_complex])
        cmd.extend(["-map", f"[{program.video_label}]"])
        if program.audio_label:
            cmd.extend(["-map", f"[{program.audio_label}]"])
            cmd.extend(
                [
                    "-c:a",
                    self.settings.render_audio_codec,
                    "-b:a",
                    self.settings.render_audio_bitrate,
                ]
            )

        profile = self.profile
        cmd.extend(
            [
                "-c:v",
                self.settings.render_video_codec,
                "-preset",
                profile.preset,
                "-crf",
                profile.crf,
                "-b:v",
                profile.bitrate,
                "-maxrate",
                profile.bitrate,
                "-bufsize",
                profile.bufsize,
                "-r",
                str(self.fps),
                "-pix_fmt",
                self.settings.render_pixel_format,
                "-movflags",
                "+faststart",
            ]
        )
        cmd.extend(self.extra_output_args)
        if program.limit_duration:
            cmd.extend(["-t", format_number(program.duration_seconds)])
        cmd.extend(["-y", output_path])
        return cmd
