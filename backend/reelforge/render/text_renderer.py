"""drawtext / drawbox generation for titles, badges, captions and subtitles.

Features:
- Title text with stroke, positioned like the editor preview
- Time-windowed ranking badges (box + rank number)
- Per-clip captions with fade / slide-up animations
- Word-paced subtitle cards for split-screen videos
- Decorative overlays (text, watermark, lower third, progress bar, timer, frame)

Every function returns bare filter strings; the caller chains them onto a
stream with ``FilterGraph.add``.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Union

from reelforge.render.coordinates import (
    caption_anchor_y,
    centered_x_expr,
    percent_to_pixels,
    preview_font_size,
    ranking_badge_placement,
    scaled_stroke_width,
    title_placement,
    width_scale,
)
from reelforge.render.graph import format_number
from reelforge.render.styles import StyleResolver, css_to_hex, ranking_color
from reelforge.schemas.scene import (
    CaptionSpec,
    OverlaySpec,
    RankingGraphicSpec,
    SubtitleSpec,
    TitleSpec,
)

logger = logging.getLogger(__name__)

CAPTION_FADE_S = 0.5
SUBTITLE_FADE_S = 0.2
SUBTITLE_SLIDE_S = 0.3


@dataclass(frozen=True)
class TimeWindow:
    """Half-open interval [start, end) on the output timeline, in seconds."""

    start: float
    end: float

    def contains(self, t: float) -> bool:
        return self.start <= t < self.end

    def enable_expr(self) -> str:
        """FFmpeg's between() is closed on both ends; lt() excludes ``end``."""
        end = format_number(self.end)
        return f"between(t,{format_number(self.start)},{end})*lt(t,{end})"


def clip_windows(starts: list[float], total_duration: float) -> list[TimeWindow]:
    """Contiguous windows, one per clip, each ending where the next clip starts."""
    ends = starts[1:] + [total_duration]
    return [TimeWindow(start, end) for start, end in zip(starts, ends)]


@dataclass
class DrawTextConfig:
    """Parameters for one drawtext node (text is raw, escaping happens on render)."""

    text: str
    font_file: str
    font_size: int
    font_color: str
    x: Union[int, str]
    y: Union[int, str]
    border_width: int = 0
    border_color: Optional[str] = None
    box_color: Optional[str] = None
    box_border: int = 0
    alpha: Optional[str] = None
    window: Optional[TimeWindow] = None
    extra: list[str] = field(default_factory=list)


class TextRenderer:
    """Builds text and box filters for one output resolution."""

    def __init__(self, styles: StyleResolver, width: int, height: int):
        self.styles = styles
        self.width = width
        self.height = height

    def drawtext(self, config: DrawTextConfig) -> str:
        params = [
            f"text='{self.styles.text(config.text)}'",
            f"fontfile='{config.font_file}'",
            f"fontsize={config.font_size}",
            f"fontcolor={config.font_color}",
            f"x={config.x}",
            f"y={config.y}",
        ]
        if config.border_width > 0 and config.border_color:
            params.append(f"borderw={config.border_width}")
            params.append(f"bordercolor={config.border_color}")
        if config.box_color:
            params.extend(["box=1", f"boxcolor={config.box_color}", f"boxborderw={config.box_border}"])
        if config.alpha:
            params.append(f"alpha='{config.alpha}'")
        params.extend(config.extra)
        if config.window:
            params.append(f"enable='{config.window.enable_expr()}'")
        return "drawtext=" + ":".join(params)

    def drawbox(
        self,
        x: Union[int, str],
        y: Union[int, str],
        w: Union[int, str],
        h: Union[int, str],
        color: str,
        thickness: Union[int, str] = "fill",
        window: Optional[TimeWindow] = None,
    ) -> str:
        box = f"drawbox=x={x}:y={y}:w={w}:h={h}:color={color}:t={thickness}"
        if window:
            box += f":enable='{window.enable_expr()}'"
        return box

    # ------------------------------------------------------------------
    # Title
    # ------------------------------------------------------------------

    def title_filter(self, title: TitleSpec) -> str:
        style = title.style
        placement = title_placement(
            title.position_percent.x,
            title.position_percent.y,
            style.font_size,
            self.width,
            self.height,
        )
        logger.info(f"[TEXT] Title '{title.text[:30]}' at x={placement.x} y={placement.y} size={placement.font_size}")
        return self.drawtext(
            DrawTextConfig(
                text=title.text,
                font_file=self.styles.font(style.font_family, style.bold, style.italic),
                font_size=placement.font_size,
                font_color=self.styles.color(style.color),
                x=placement.x,
                y=placement.y,
                border_width=scaled_stroke_width(style.stroke_width, self.width),
                border_color=self.styles.color(style.stroke_color, default="#000000"),
            )
        )

    # ------------------------------------------------------------------
    # Ranking badges
    # ------------------------------------------------------------------

    def badge_filters(self, ranking: RankingGraphicSpec, windows: list[TimeWindow]) -> list[str]:
        """One box + rank number per clip, each visible only during its clip."""
        placement = ranking_badge_placement(
            ranking.position,
            ranking.size_pixels_at_reference_width,
            self.width,
            self.height,
        )
        box_color = self.styles.color(ranking_color(ranking.style_token))
        font_file = self.styles.font("Arial", bold=True)
        font_size = round(placement.size * 0.5)
        center_x = placement.x + placement.size / 2
        center_y = placement.y + placement.size / 2

        filters = []
        for rank, window in enumerate(windows, start=1):
            filters.append(
                self.drawbox(placement.x, placement.y, placement.size, placement.size, box_color, window=window)
            )
            filters.append(
                self.drawtext(
                    DrawTextConfig(
                        text=str(rank),
                        font_file=font_file,
                        font_size=font_size,
                        font_color=self.styles.color("#FFFFFF"),
                        x=centered_x_expr(center_x),
                        y=f"({format_number(center_y)}-text_h/2)",
                        window=window,
                    )
                )
            )
        return filters

    # ------------------------------------------------------------------
    # Per-clip captions
    # ------------------------------------------------------------------

    def caption_filter(self, caption: CaptionSpec, window: TimeWindow) -> str:
        font_size = round(caption.font_size * width_scale(self.width))
        anchor_y = caption_anchor_y(caption.position, self.height)
        y: Union[int, str] = round(anchor_y - font_size / 2)
        start, end = format_number(window.start), format_number(window.end)

        alpha = None
        if caption.animation == "fade":
            fade_in_end = format_number(window.start + CAPTION_FADE_S)
            fade_out_start = format_number(window.end - CAPTION_FADE_S)
            alpha = (
                f"if(lt(t,{start}),0,if(lt(t,{fade_in_end}),(t-{start})/{CAPTION_FADE_S},"
                f"if(lt(t,{fade_out_start}),1,({end}-t)/{CAPTION_FADE_S})))"
            )
        elif caption.animation == "slide-up":
            y = f"'if(lt(t-{start},0.5),{self.height}-(t-{start})*{self.height * 2},{y})'"

        return self.drawtext(
            DrawTextConfig(
                text=caption.text,
                font_file=self.styles.font("Arial", caption.bold, caption.italic),
                font_size=font_size,
                font_color=self.styles.color(caption.color),
                x="(w-text_w)/2",
                y=y,
                box_color=self.styles.color(caption.background_color, alpha=caption.background_opacity),
                box_border=10,
                alpha=alpha,
                window=window,
            )
        )

    # ------------------------------------------------------------------
    # Decorative overlays
    # ------------------------------------------------------------------

    def overlay_filters(self, overlays: tuple[OverlaySpec, ...], total_duration: float) -> list[str]:
        filters: list[str] = []
        font_file = self.styles.font("Arial")
        for overlay in overlays:
            if not overlay.enabled:
                continue
            x, y = percent_to_pixels(overlay.position_percent.x, overlay.position_percent.y, self.width, self.height)
            end = overlay.visibility.end if overlay.visibility.end is not None else total_duration
            window = TimeWindow(overlay.visibility.start, end)
            style = overlay.style

            if overlay.type == "text":
                filters.append(
                    self.drawtext(
                        DrawTextConfig(
                            text=overlay.content,
                            font_file=font_file,
                            font_size=round(style.font_size * width_scale(self.width)),
                            font_color=self.styles.color(style.color),
                            x=x,
                            y=y,
                            window=window,
                        )
                    )
                )
            elif overlay.type == "watermark":
                filters.append(
                    self.drawtext(
                        DrawTextConfig(
                            text=overlay.content or "WATERMARK",
                            font_file=font_file,
                            font_size=round(24 * width_scale(self.width)),
                            font_color=self.styles.color("#FFFFFF", alpha=0.5),
                            x=x,
                            y=y,
                        )
                    )
                )
            elif overlay.type == "lower-third":
                bar_height = round(80 * width_scale(self.width))
                bar_y = self.height - round(150 * width_scale(self.width))
                filters.append(
                    self.drawbox(
                        0,
                        bar_y,
                        self.width,
                        bar_height,
                        self.styles.color(style.background_color, alpha=0.5, default="#000000"),
                        window=window,
                    )
                )
                if overlay.content:
                    filters.append(
                        self.drawtext(
                            DrawTextConfig(
                                text=overlay.content,
                                font_file=self.styles.font("Arial", bold=True),
                                font_size=round(28 * width_scale(self.width)),
                                font_color=self.styles.color(style.color),
                                x=round(50 * width_scale(self.width)),
                                y=bar_y + round(20 * width_scale(self.width)),
                                window=window,
                            )
                        )
                    )
            elif overlay.type == "progress-bar":
                duration = format_number(total_duration)
                filters.append(
                    self.drawbox(
                        0,
                        self.height - 20,
                        f"'t/{duration}*{self.width}'",
                        6,
                        self.styles.color(style.color, default="#00FF00"),
                    )
                )
            elif overlay.type == "timer":
                filters.append(
                    "drawtext=text='%{pts\\:hms}'"
                    f":fontfile='{font_file}':fontsize=36:fontcolor=white:x={x}:y={y}"
                    f":box=1:boxcolor={self.styles.color('#000000', alpha=0.5)}:boxborderw=5"
                )
            elif overlay.type == "frame":
                width = overlay.width
                filters.append(
                    self.drawbox(
                        width,
                        width,
                        self.width - width * 2,
                        self.height - width * 2,
                        self.styles.color(overlay.color),
                        thickness=width,
                    )
                )
            else:
                logger.warning(f"[TEXT] Skipping unsupported overlay type: {overlay.type}")
        return filters

    # ------------------------------------------------------------------
    # Subtitles
    # ------------------------------------------------------------------

    def subtitle_filters(self, subtitles: SubtitleSpec, duration: float) -> list[str]:
        """Split the script into word cards paced at ``words_per_second_pacing``."""
        words = subtitles.script_text.split()
        if not words:
            return []

        template = subtitles.template
        font_size = preview_font_size(subtitles.size, self.width)
        font_file = self.styles.font(
            template.font_family,
            bold=template.weight in ("bold", "black"),
            italic=template.style == "italic",
        )

        if subtitles.position == "custom" and subtitles.custom_position:
            x: str = centered_x_expr(self.width * subtitles.custom_position.x / 100)
            y_position = round(self.height * subtitles.custom_position.y / 100 - font_size / 2)
        else:
            x = "(w-text_w)/2"
            if subtitles.position in ("center", "middle"):
                y_position = round(self.height * 0.5 - font_size / 2)
            else:
                y_position = caption_anchor_y(subtitles.position, self.height)

        text_color = self.styles.color(css_to_hex(template.color) or "#FFFFFF")
        stroke_hex = css_to_hex(template.stroke_color)
        bg_hex = css_to_hex(template.bg_color)
        word_duration = 1 / subtitles.words_per_second_pacing

        filters = []
        current = 0.0
        i = 0
        while i < len(words) and current < duration:
            chunk = words[i : i + subtitles.max_words_per_card]
            i += len(chunk)
            end = min(current + len(chunk) * word_duration, duration)
            window = TimeWindow(current, end)

            text = " ".join(chunk)
            if template.transform == "uppercase":
                text = text.upper()
            elif template.transform == "lowercase":
                text = text.lower()

            start_s, end_s = format_number(current), format_number(end)
            alpha = None
            y: Union[int, str] = y_position
            if template.animation == "fade":
                alpha = (
                    f"if(lt(t,{format_number(current + SUBTITLE_FADE_S)}),(t-{start_s})/{SUBTITLE_FADE_S},"
                    f"if(lt(t,{format_number(end - SUBTITLE_FADE_S)}),1,({end_s}-t)/{SUBTITLE_FADE_S}))"
                )
            elif template.animation == "slide":
                y = (
                    f"'if(lt(t-{start_s},{SUBTITLE_SLIDE_S}),"
                    f"{self.height}-(t-{start_s})*{self.height * 3},{y_position})'"
                )

            filters.append(
                self.drawtext(
                    DrawTextConfig(
                        text=text,
                        font_file=font_file,
                        font_size=font_size,
                        font_color=text_color,
                        x=x,
                        y=y,
                        border_width=round(template.stroke_width),
                        border_color=self.styles.color(stroke_hex) if stroke_hex else None,
                        box_color=self.styles.color(bg_hex, alpha=0.8) if bg_hex else None,
                        box_border=15,
                        alpha=alpha,
                        window=window,
                    )
                )
            )
            current = end
        logger.info(f"[TEXT] Built {len(filters)} subtitle cards from {len(words)} words")
        return filters
