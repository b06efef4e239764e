"""
Export render pipeline.

Compiles a SceneDescription into a linted FFmpeg filter_complex program and
runs it under a ProcessSupervisor.

Ranking mode stage order:
1. Per-clip normalize (trim, fit, pad, place on canvas)
2. Sequence join (concat or xfade)
3. Per-clip captions
4. Decorative overlays
5. Title
6. Ranking badges
7. Audio (clip audio and/or background music, optional ducking)
8. Final pixel format

Split-screen mode: panes, divider, effects, subtitles, overlays, pixel
format; audio balances the two inputs.
"""

import logging
from collections.abc import Callable
from pathlib import Path

from reelforge.config import Settings
from reelforge.render.audio_mixer import AudioMixer
from reelforge.render.command import CommandAssembler, CompiledProgram
from reelforge.render.graph import FilterGraph
from reelforge.render.job import RenderJob
from reelforge.render.layer_compositor import CanvasConfig, LayerCompositor, effect_filters
from reelforge.render.quality import QualityProfile, get_quality_profile
from reelforge.render.styles import ColorStrategy, StyleResolver
from reelforge.render.supervisor import ProcessSupervisor, SupervisorResult
from reelforge.render.text_renderer import TextRenderer, clip_windows
from reelforge.schemas.scene import SceneDescription

logger = logging.getLogger(__name__)


def style_resolver_from_settings(settings: Settings) -> StyleResolver:
    return StyleResolver(color_strategy=ColorStrategy(settings.color_strategy), font_dir=settings.font_dir)


class FilterGraphBuilder:
    """Builds the filter program for one scene.

    A builder owns its FilterGraph, so labels are unique per render and
    never shared between requests.
    """

    def __init__(self, scene: SceneDescription, styles: StyleResolver, pixel_format: str = "yuv420p"):
        self.scene = scene
        self.styles = styles
        self.pixel_format = pixel_format
        self.profile: QualityProfile = get_quality_profile(scene.output.quality_tier)
        self.graph = FilterGraph()
        self.text = TextRenderer(styles, self.profile.width, self.profile.height)
        self.audio = AudioMixer(self.graph)

    def compile(self) -> CompiledProgram:
        if self.scene.mode == "split_screen":
            return self._compile_split_screen()
        return self._compile_ranking()

    def _chain(self, label: str, filters: list[str], stem: str) -> str:
        """Append a stage to the video chain; empty stages emit nothing."""
        if not filters:
            return label
        return self.graph.add([label], filters, stem=stem)

    def _compile_ranking(self) -> CompiledProgram:
        scene = self.scene
        output = scene.output
        clips = scene.clips
        music = scene.background_music
        total = scene.timeline_duration

        inputs = [clip.file_path for clip in clips]
        if music:
            inputs.append(music.file_path)
        self.graph.input_count = len(inputs)

        canvas = CanvasConfig.from_profile(self.profile, output.fps, output.video_area_height_percent, output.background)
        compositor = LayerCompositor(self.graph, self.styles, canvas)

        logger.info(
            f"[RANKING] Compiling {len(clips)} clips, {canvas.width}x{canvas.height}@{canvas.fps}, "
            f"timeline={total:.3f}s, transition={scene.has_transition}"
        )

        # 1-2. Normalize and join
        normalized = [compositor.normalize_clip(i, clip) for i, clip in enumerate(clips)]
        video = compositor.join_clips(
            normalized,
            [clip.duration_seconds for clip in clips],
            scene.transition if scene.has_transition else None,
        )

        windows = clip_windows(scene.clip_start_times(), total)

        # 3. Captions
        captions = [
            self.text.caption_filter(clip.caption, window)
            for clip, window in zip(clips, windows)
            if clip.caption and clip.caption.text
        ]
        video = self._chain(video, captions, "cap")

        # 4. Overlays
        video = self._chain(video, self.text.overlay_filters(scene.overlays, total), "ovl")

        # 5. Title
        if scene.title and scene.title.text:
            video = self._chain(video, [self.text.title_filter(scene.title)], "title")

        # 6. Ranking badges
        if scene.ranking_graphic:
            video = self._chain(video, self.text.badge_filters(scene.ranking_graphic, windows), "rank")

        # 8. Final format
        video = self.graph.add([video], f"format={self.pixel_format}", stem="vout")

        # 7. Audio
        audio = self._ranking_audio(music_input=len(clips))

        mapped = [video] + ([audio] if audio else [])
        program = self.graph.validate(mapped)
        return CompiledProgram(
            inputs=tuple(inputs),
            filter_complex=program,
            video_label=video,
            audio_label=audio,
            duration_seconds=total,
        )

    def _ranking_audio(self, music_input: int) -> str | None:
        scene = self.scene
        music = scene.background_music
        wants_clip_audio = scene.output.keep_clip_audio or (music is not None and music.ducking)

        clip_audio = None
        if wants_clip_audio:
            clip_audio = self.audio.clip_audio(scene.clips, scene.transition_overlap)

        if music is None:
            return clip_audio

        bgm = self.audio.music(music_input, music, scene.timeline_duration)
        if clip_audio is None:
            return bgm
        if music.ducking:
            return self.audio.duck(clip_audio, bgm, music.ducking_amount_percent)
        return self.audio.mix(clip_audio, bgm)

    def _compile_split_screen(self) -> CompiledProgram:
        split = self.scene.split_screen
        self.graph.input_count = 2
        canvas = CanvasConfig.from_profile(self.profile, self.scene.output.fps, 100.0, "#000000")
        compositor = LayerCompositor(self.graph, self.styles, canvas)
        duration = split.duration_seconds

        logger.info(
            f"[SPLIT] Compiling {split.split_axis} split at {split.split_ratio:.2f}, "
            f"{canvas.width}x{canvas.height}, duration={duration}s"
        )

        video = compositor.split_panes(split.split_axis, split.split_ratio, split.fade_in)
        if split.divider.enabled:
            video = self._chain(video, [compositor.divider_filter(split.split_axis, split.split_ratio, split.divider)], "div")
        video = self._chain(video, effect_filters(split.effects), "fx")
        if split.subtitles:
            video = self._chain(video, self.text.subtitle_filters(split.subtitles, duration), "sub")
        video = self._chain(video, self.text.overlay_filters(split.overlays, duration), "ovl")
        video = self.graph.add([video], f"format={self.pixel_format}", stem="vout")

        audio = self.audio.split_screen(split.main_volume, split.background_volume)

        program = self.graph.validate([video, audio])
        return CompiledProgram(
            inputs=(split.main_file, split.background_file),
            filter_complex=program,
            video_label=video,
            audio_label=audio,
            duration_seconds=duration,
            limit_duration=True,
        )


def compile_scene(scene: SceneDescription, settings: Settings) -> CompiledProgram:
    builder = FilterGraphBuilder(scene, style_resolver_from_settings(settings), settings.render_pixel_format)
    return builder.compile()


def build_command(scene: SceneDescription, settings: Settings, output_path: str | Path) -> tuple[list[str], CompiledProgram]:
    """Compile the scene and assemble the full FFmpeg argument list."""
    program = compile_scene(scene, settings)
    assembler = CommandAssembler(
        settings=settings,
        profile=get_quality_profile(scene.output.quality_tier),
        fps=scene.output.fps,
    )
    return assembler.build(program, str(output_path)), program


async def run_export(
    scene: SceneDescription,
    job: RenderJob,
    settings: Settings,
    on_progress: Callable[[float], None] | None = None,
) -> SupervisorResult:
    """Render a scene into ``job.output_path``.

    Staged inputs are removed as soon as FFmpeg reaches an outcome.

    Raises:
        FilterGraphError: if the compiled program fails static validation
        EngineUnavailableError: if FFmpeg cannot be launched
        RenderFailedError: if FFmpeg exits with a non-zero code
    """
    cmd, program = build_command(scene, settings, job.output_path)
    logger.info(f"[EXPORT] {job.output_name}: {len(program.inputs)} inputs, program length {len(program.filter_complex)}")
    logger.debug(f"[EXPORT] filter_complex: {program.filter_complex}")

    supervisor = ProcessSupervisor(
        cmd,
        total_duration=program.duration_seconds,
        cleanup=job.cleanup,
        tail_chars=settings.render_diagnostic_tail_chars,
        buffer_chars=settings.render_diagnostic_buffer_chars,
        on_progress=on_progress,
    )
    result = await supervisor.run()
    logger.info(f"[EXPORT] {job.output_name}: {result.outcome.value} (history: {[s.value for s in supervisor.history]})")
    result.raise_for_outcome()
    return result
