"""Editor-preview layout math in output pixels.

The editor preview positions text with percentages and CSS centering and
shows fonts at 60% of their nominal size on a 1080 px wide canvas. The
functions here reproduce that layout for the export resolution so the render
lands where the user placed things. Parity is approximate: the preview is
maintained separately and the golden values in the tests pin this side.
"""

from dataclasses import dataclass

from reelforge.render.graph import format_number

REFERENCE_WIDTH = 1080
PREVIEW_FONT_SCALE = 0.6
# The preview keeps ranking badges inside the top 30% of the frame
BADGE_AREA_FRACTION = 0.3
BADGE_PADDING_FRACTION = 0.2

CAPTION_ANCHORS = {
    "top": 0.10,
    "middle": 0.50,
    "center": 0.50,
    "bottom": 0.85,
}


@dataclass(frozen=True)
class TextPlacement:
    """Absolute placement for a centered drawtext node."""

    x: str  # drawtext expression, centered on the anchor point
    y: int
    font_size: int


@dataclass(frozen=True)
class BadgePlacement:
    """Top-left corner and edge length of a ranking badge, in pixels."""

    x: int
    y: int
    size: int


def width_scale(output_width: int) -> float:
    """Scale factor from the 1080 px reference canvas to the output width."""
    return output_width / REFERENCE_WIDTH


def preview_font_size(font_size: float, output_width: int) -> int:
    """Font size in output pixels for a size picked in the preview."""
    return round(font_size * width_scale(output_width) * PREVIEW_FONT_SCALE)


def centered_x_expr(anchor_x: float) -> str:
    """drawtext x expression centering the text on ``anchor_x``."""
    return f"({format_number(anchor_x)}-text_w/2)"


def title_placement(
    x_percent: float,
    y_percent: float,
    font_size: float,
    output_width: int,
    output_height: int,
) -> TextPlacement:
    """Place a title the way the preview does (``translate(-50%, 0)``)."""
    anchor_x = x_percent / 100 * output_width
    y = round(y_percent / 100 * output_height)
    return TextPlacement(
        x=centered_x_expr(anchor_x),
        y=y,
        font_size=preview_font_size(font_size, output_width),
    )


def scaled_stroke_width(stroke_width: float, output_width: int) -> int:
    return round(stroke_width * width_scale(output_width))


def ranking_badge_placement(
    position: str,
    size: float,
    output_width: int,
    output_height: int,
) -> BadgePlacement:
    """Place a ranking badge inside the top 30% of the frame.

    Bottom positions are remapped upward to ``padding + size/2`` and every
    position is clamped so that ``y + size`` never crosses the 30% line.
    Unknown positions fall back to top-left.
    """
    scaled = round(size * width_scale(output_width))
    padding = round(scaled * BADGE_PADDING_FRACTION)
    limit = output_height * BADGE_AREA_FRACTION

    if position == "top-right":
        x, y = output_width - scaled - padding, padding
    elif position == "bottom-left":
        x, y = padding, padding + scaled * 0.5
    elif position == "bottom-right":
        x, y = output_width - scaled - padding, padding + scaled * 0.5
    elif position == "center":
        x, y = (output_width - scaled) / 2, limit / 2 - scaled / 2
    else:
        x, y = padding, padding

    # floor keeps y + size <= limit after rounding
    y = max(0, min(int(y), int(limit - scaled)))
    return BadgePlacement(x=max(0, round(x)), y=y, size=scaled)


def caption_anchor_y(position: str, output_height: int) -> int:
    """Vertical anchor for captions and subtitle cards (defaults to bottom)."""
    return round(output_height * CAPTION_ANCHORS.get(position, CAPTION_ANCHORS["bottom"]))


def percent_to_pixels(x_percent: float, y_percent: float, output_width: int, output_height: int) -> tuple[int, int]:
    return round(x_percent / 100 * output_width), round(y_percent / 100 * output_height)
