"""Video-stream compositing stages of the export filter graph.

Ranking mode, per clip and then across clips:
1. Normalize: trim, retime, fit into the video area, pad, place on a canvas
2. Join: plain concat, or pairwise xfade when a transition is configured

Split-screen mode:
1. Scale + crop each pane to its share of the frame, stack them
2. Optional divider line and effects chain
"""

import logging
from dataclasses import dataclass

from reelforge.render.graph import FilterGraph, format_number, input_pad
from reelforge.render.quality import QualityProfile
from reelforge.render.styles import StyleResolver, transition_name
from reelforge.schemas.scene import ClipSpec, DividerSpec, EffectSpec, TransitionSpec

logger = logging.getLogger(__name__)

PANE_FADE_IN_S = 0.5


def even(value: float) -> int:
    """Round down to an even pixel count (yuv420p needs even dimensions)."""
    return int(round(value)) // 2 * 2


def xfade_offsets(durations: list[float], transition_duration: float) -> list[float]:
    """Offset of each pairwise crossfade.

    Each offset is the length of the stream joined so far minus the
    transition length, so every transition overlaps the tail of the stream
    it joins onto.
    """
    offsets = []
    joined = durations[0]
    for duration in durations[1:]:
        offsets.append(joined - transition_duration)
        joined += duration - transition_duration
    return offsets


@dataclass
class CanvasConfig:
    """Output frame and the video area inside it."""

    width: int
    height: int
    fps: int
    video_area_height_percent: float = 100.0
    background: str = "#000000"

    @classmethod
    def from_profile(
        cls, profile: QualityProfile, fps: int, video_area_height_percent: float, background: str
    ) -> "CanvasConfig":
        return cls(profile.width, profile.height, fps, video_area_height_percent, background)

    @property
    def area_height(self) -> int:
        return min(self.height, even(self.height * self.video_area_height_percent / 100))

    @property
    def area_y(self) -> int:
        """Top of the video area; the area sits at the bottom of the frame."""
        return self.height - self.area_height


class LayerCompositor:
    """Emits the video stages into a FilterGraph."""

    def __init__(self, graph: FilterGraph, styles: StyleResolver, canvas: CanvasConfig):
        self.graph = graph
        self.styles = styles
        self.canvas = canvas

    # ------------------------------------------------------------------
    # Ranking mode
    # ------------------------------------------------------------------

    def normalize_clip(self, input_index: int, clip: ClipSpec) -> str:
        """Trim one clip and place it on a full-frame background canvas."""
        canvas = self.canvas
        width, area_height = canvas.width, canvas.area_height
        background = self.styles.color(canvas.background, default="#000000")
        duration = format_number(clip.duration_seconds)

        base = self.graph.add(
            [],
            f"color=c={background}:s={width}x{canvas.height}:r={canvas.fps}:d={duration}",
            stem="bg",
        )
        fitted = self.graph.add(
            [input_pad(input_index, "v")],
            [
                f"trim=start={format_number(clip.trim_start_seconds)}:duration={duration}",
                "setpts=PTS-STARTPTS",
                f"fps={canvas.fps}",
                f"scale={width}:{area_height}:force_original_aspect_ratio=decrease:flags=lanczos",
                f"pad={width}:{area_height}:(ow-iw)/2:(oh-ih)/2:color={background}",
            ],
            stem="v",
        )
        return self.graph.add([base, fitted], f"overlay=0:{canvas.area_y}", stem="clip")

    def join_clips(
        self,
        labels: list[str],
        durations: list[float],
        transition: TransitionSpec | None,
    ) -> str:
        """Concatenate normalized clips, crossfading when a transition is set."""
        if len(labels) == 1:
            return labels[0]

        if transition is None or transition.is_hard_cut:
            return self.graph.add(labels, f"concat=n={len(labels)}:v=1:a=0", stem="joined")

        name = transition_name(transition.type_token)
        duration = transition.effective_duration
        logger.info(f"[COMPOSITOR] Joining {len(labels)} clips with xfade={name} d={duration}")

        current = labels[0]
        for label, offset in zip(labels[1:], xfade_offsets(durations, duration)):
            current = self.graph.add(
                [current, label],
                f"xfade=transition={name}:duration={format_number(duration)}:offset={format_number(offset)}",
                stem="xf",
            )
        return current

    # ------------------------------------------------------------------
    # Split-screen mode
    # ------------------------------------------------------------------

    def split_panes(self, split_axis: str, split_ratio: float, fade_in: bool) -> str:
        """Stack the main (input 0) and background (input 1) videos.

        ``vertical`` puts the panes side by side, ``horizontal`` one above
        the other. The main video takes ``split_ratio`` of the frame.
        """
        width, height = self.canvas.width, self.canvas.height
        if split_axis == "vertical":
            first = even(width * split_ratio)
            sizes = [(first, height), (width - first, height)]
            stack = "hstack=inputs=2"
        else:
            first = even(height * split_ratio)
            sizes = [(width, first), (width, height - first)]
            stack = "vstack=inputs=2"

        panes = []
        for index, (pane_w, pane_h) in enumerate(sizes):
            chain = [
                f"scale={pane_w}:{pane_h}:force_original_aspect_ratio=increase:flags=lanczos",
                f"crop={pane_w}:{pane_h}",
                "setsar=1",
                f"fps={self.canvas.fps}",
            ]
            if fade_in:
                chain.append(f"fade=t=in:st=0:d={PANE_FADE_IN_S}")
            panes.append(self.graph.add([input_pad(index, "v")], chain, stem="pane"))

        return self.graph.add(panes, stack, stem="split")

    def divider_filter(self, split_axis: str, split_ratio: float, divider: DividerSpec) -> str:
        width, height = self.canvas.width, self.canvas.height
        color = self.styles.color(divider.color)
        if split_axis == "vertical":
            x = max(0, even(width * split_ratio) - divider.width // 2)
            return f"drawbox=x={x}:y=0:w={divider.width}:h={height}:color={color}:t=fill"
        y = max(0, even(height * split_ratio) - divider.width // 2)
        return f"drawbox=x=0:y={y}:w={width}:h={divider.width}:color={color}:t=fill"


def effect_filters(effects: tuple[EffectSpec, ...]) -> list[str]:
    """Whole-frame effects; unknown effect types are skipped."""
    filters = []
    for effect in effects:
        if effect.type == "blur":
            filters.append(f"boxblur={format_number(effect.strength or 5)}")
        elif effect.type == "sharpen":
            filters.append(f"unsharp=5:5:{format_number(effect.strength or 1.0)}:5:5:0.0")
        elif effect.type == "brightness":
            filters.append(f"eq=brightness={format_number(effect.value or 0)}:saturation=1")
        elif effect.type == "contrast":
            filters.append(f"eq=contrast={format_number(effect.value or 1)}:brightness=0:saturation=1")
        elif effect.type == "vignette":
            filters.append("vignette=PI/4")
        else:
            logger.warning(f"[COMPOSITOR] Skipping unsupported effect: {effect.type}")
    return filters
