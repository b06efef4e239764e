"""Style tokens -> FFmpeg literals.

Maps the editor's abstract styling (hex colors, font families and weights,
transition names, ranking styles) onto values the FFmpeg filters accept, and
escapes free text before it is embedded in a filter graph.
"""

import platform
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

ESCAPED_CHARACTERS = ("'", ":", "[", "]", ",", ";")

DEFAULT_TRANSITION = "fade"
TRANSITIONS = {
    "fade": "fade",
    "wipe-left": "wipeleft",
    "wipe-right": "wiperight",
    "wipe-up": "wipeup",
    "wipe-down": "wipedown",
    "slide-left": "slideleft",
    "slide-right": "slideright",
    # No xfade equivalent; rendered as a plain fade
    "zoom-in": DEFAULT_TRANSITION,
    "zoom-out": DEFAULT_TRANSITION,
    "blur": DEFAULT_TRANSITION,
    "glitch": DEFAULT_TRANSITION,
    "rotate": DEFAULT_TRANSITION,
    "cube": DEFAULT_TRANSITION,
}

DEFAULT_RANKING_STYLE = "number"
RANKING_COLORS = {
    "number": "#3b82f6",
    "badge": "#8b5cf6",
    "medal": "#f59e0b",
    "trophy": "#10b981",
    "custom": "#ec4899",
}

# Theme variables used by subtitle templates in the editor
CSS_COLOR_VARIABLES = {
    "var(--color-text-primary)": "#FFFFFF",
    "var(--color-text-secondary)": "#A0A0A0",
    "var(--color-text-accent)": "#3B82F6",
    "var(--color-text-highlight)": "#FFD700",
    "var(--color-primary)": "#3B82F6",
    "var(--color-secondary)": "#8B5CF6",
    "var(--color-accent)": "#EC4899",
    "var(--color-brand-primary)": "#3B82F6",
    "var(--color-brand-secondary)": "#8B5CF6",
    "var(--color-brand-accent)": "#EC4899",
    "var(--color-background-primary)": "#000000",
    "var(--color-background-secondary)": "#1A1A1A",
}

_HEX_RE = re.compile(r"^#?([0-9a-fA-F]{6})$")
_PACKED_RE = re.compile(r"^0x([0-9a-fA-F]{6})([0-9a-fA-F]{2})?$")
_RGBA_RE = re.compile(r"rgba?\((\d+),\s*(\d+),\s*(\d+)(?:,\s*([\d.]+))?\)")
_COLOR_MIX_RE = re.compile(r"var\((--[^)]+)\)\s+(\d+)%")


class ColorStrategy(str, Enum):
    """How hex colors are packed into FFmpeg color literals.

    PACKED_BGRA is the current scheme. HEX is the older export path's plain
    ``#`` -> ``0x`` substitution, kept selectable for renders that must match
    videos exported before the switch.
    """

    PACKED_BGRA = "packed_bgra"
    HEX = "hex"


APOSTROPHE_ESCAPE = "'\\\\\\''"


def escape_text(text: str | None) -> str:
    """Escape text for a single-quoted filter argument.

    Handles, in order: apostrophe, colon, ``[``, ``]``, comma, semicolon.
    Quoted arguments are unquoted twice, once by the graph parser and once by
    the filter's option parser. Apostrophes close the quote, emit an escaped
    backslash plus an escaped quote and reopen it, so the option parser still
    receives a backslash-escaped quote.
    """
    if not text:
        return ""
    return (
        text.replace("'", APOSTROPHE_ESCAPE)
        .replace(":", "\\:")
        .replace("[", "\\[")
        .replace("]", "\\]")
        .replace(",", "\\,")
        .replace(";", "\\;")
    )


def escape_path(path: str) -> str:
    """Escape a file path for a single-quoted filter argument (Windows drive colons)."""
    return path.replace("'", APOSTROPHE_ESCAPE).replace(":", "\\:")


def _pack_bgra(hex_digits: str, alpha: float) -> str:
    r = int(hex_digits[0:2], 16)
    g = int(hex_digits[2:4], 16)
    b = int(hex_digits[4:6], 16)
    a = round(max(0.0, min(1.0, alpha)) * 255)
    return f"0x{b:02x}{g:02x}{r:02x}{a:02x}"


def resolve_color(
    color: str | None,
    alpha: float = 1.0,
    strategy: ColorStrategy = ColorStrategy.PACKED_BGRA,
    default: str = "#FFFFFF",
) -> str:
    """Turn an editor color into an FFmpeg color literal.

    ``#RRGGBB`` becomes ``0xBBGGRRAA`` under the packed strategy, or
    ``0xRRGGBB`` (``@alpha`` when translucent) under the legacy hex one.
    Named colors such as ``white`` pass through unchanged.
    """
    value = (color or default).strip()
    match = _HEX_RE.match(value)
    if not match:
        return value
    digits = match.group(1)
    if ColorStrategy(strategy) is ColorStrategy.HEX:
        literal = f"0x{digits.upper()}"
        return literal if alpha >= 1 else f"{literal}@{round(alpha, 2)}"
    return _pack_bgra(digits, alpha)


def decode_color(literal: str) -> tuple[str, float]:
    """Inverse of the packed strategy: ``0xBBGGRRAA`` -> (``#RRGGBB``, alpha)."""
    match = _PACKED_RE.match(literal)
    if not match:
        raise ValueError(f"Not a packed color literal: {literal}")
    bgr, alpha_hex = match.group(1), match.group(2) or "ff"
    b, g, r = bgr[0:2], bgr[2:4], bgr[4:6]
    return f"#{r}{g}{b}".upper(), int(alpha_hex, 16) / 255


def css_to_hex(color: str | None) -> str | None:
    """Resolve theme variables, ``color-mix`` and ``rgba()`` to ``#RRGGBB``.

    Returns None for transparent or missing colors.
    """
    if not color or color == "transparent":
        return None
    if color in ("gradient", "split"):
        return "#FFFFFF"
    for name, value in CSS_COLOR_VARIABLES.items():
        if name in color:
            return value
    if "color-mix" in color:
        match = _COLOR_MIX_RE.search(color)
        if match:
            return CSS_COLOR_VARIABLES.get(f"var({match.group(1)})", "#000000")
        return "#000000"
    if color.startswith("rgb"):
        match = _RGBA_RE.search(color)
        if match:
            r, g, b = (int(match.group(i)) for i in (1, 2, 3))
            return f"#{r:02x}{g:02x}{b:02x}"
    return color


def transition_name(token: str | None) -> str:
    """xfade transition for an editor transition token (unsupported -> fade)."""
    return TRANSITIONS.get(token or "", DEFAULT_TRANSITION)


def ranking_color(style_token: str | None) -> str:
    return RANKING_COLORS.get(style_token or "", RANKING_COLORS[DEFAULT_RANKING_STYLE])


# ============================================================================
# Fonts
# ============================================================================


@dataclass(frozen=True)
class FontFamily:
    regular: str
    bold: str | None = None
    italic: str | None = None
    bold_italic: str | None = None

    def variant(self, bold: bool, italic: bool) -> str:
        if bold and italic:
            return self.bold_italic or self.bold or self.regular
        if bold:
            return self.bold or self.regular
        if italic:
            return self.italic or self.regular
        return self.regular


DEFAULT_FONT_FAMILY = "Arial"

FONT_TABLE: dict[str, dict[str, FontFamily]] = {
    "windows": {
        "Arial": FontFamily(
            regular="C:/Windows/Fonts/arial.ttf",
            bold="C:/Windows/Fonts/arialbd.ttf",
            italic="C:/Windows/Fonts/ariali.ttf",
            bold_italic="C:/Windows/Fonts/arialbi.ttf",
        ),
        "Inter": FontFamily("C:/Windows/Fonts/Inter-Regular.ttf", bold="C:/Windows/Fonts/Inter-Bold.ttf"),
        "Oswald": FontFamily("C:/Windows/Fonts/Oswald-Regular.ttf", bold="C:/Windows/Fonts/Oswald-Bold.ttf"),
        "Roboto": FontFamily("C:/Windows/Fonts/Roboto-Regular.ttf", bold="C:/Windows/Fonts/Roboto-Bold.ttf"),
    },
    "darwin": {
        "Arial": FontFamily(
            regular="/System/Library/Fonts/Helvetica.ttc",
            bold="/System/Library/Fonts/Helvetica.ttc",
            italic="/System/Library/Fonts/Helvetica.ttc",
            bold_italic="/System/Library/Fonts/Helvetica.ttc",
        ),
        "Inter": FontFamily(
            "/System/Library/Fonts/Supplemental/Inter-Regular.otf",
            bold="/System/Library/Fonts/Supplemental/Inter-Bold.otf",
        ),
        "Oswald": FontFamily(
            "/System/Library/Fonts/Supplemental/Oswald-Regular.ttf",
            bold="/System/Library/Fonts/Supplemental/Oswald-Bold.ttf",
        ),
        "Roboto": FontFamily(
            "/System/Library/Fonts/Supplemental/Roboto-Regular.ttf",
            bold="/System/Library/Fonts/Supplemental/Roboto-Bold.ttf",
        ),
    },
    "linux": {
        "Arial": FontFamily(
            regular="/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf",
            bold="/usr/share/fonts/truetype/liberation/LiberationSans-Bold.ttf",
            italic="/usr/share/fonts/truetype/liberation/LiberationSans-Italic.ttf",
            bold_italic="/usr/share/fonts/truetype/liberation/LiberationSans-BoldItalic.ttf",
        ),
        "Inter": FontFamily(
            "/usr/share/fonts/truetype/inter/Inter-Regular.ttf",
            bold="/usr/share/fonts/truetype/inter/Inter-Bold.ttf",
        ),
        "Oswald": FontFamily(
            "/usr/share/fonts/truetype/oswald/Oswald-Regular.ttf",
            bold="/usr/share/fonts/truetype/oswald/Oswald-Bold.ttf",
        ),
        "Roboto": FontFamily(
            "/usr/share/fonts/truetype/roboto/Roboto-Regular.ttf",
            bold="/usr/share/fonts/truetype/roboto/Roboto-Bold.ttf",
        ),
    },
}


def os_family(system: str | None = None) -> str:
    """Collapse ``platform.system()`` to a FONT_TABLE key."""
    system = (system or platform.system()).lower()
    if system.startswith("win"):
        return "windows"
    if system == "darwin":
        return "darwin"
    return "linux"


def _font_dir_family(font_dir: str, family: str) -> FontFamily | None:
    base = Path(font_dir)

    def existing(name: str) -> str | None:
        path = base / f"{family}-{name}.ttf"
        return str(path) if path.exists() else None

    regular = existing("Regular")
    if regular is None:
        return None
    return FontFamily(
        regular=regular,
        bold=existing("Bold"),
        italic=existing("Italic"),
        bold_italic=existing("BoldItalic"),
    )


def resolve_font(
    family: str | None = DEFAULT_FONT_FAMILY,
    bold: bool = False,
    italic: bool = False,
    system: str | None = None,
    font_dir: str = "",
) -> str:
    """Absolute font file for a family/weight/style on this host.

    Missing variants fall back boldItalic -> bold -> regular and
    italic -> regular; unknown families use Arial.
    """
    family = family or DEFAULT_FONT_FAMILY
    if font_dir:
        fonts = _font_dir_family(font_dir, family) or _font_dir_family(font_dir, DEFAULT_FONT_FAMILY)
        if fonts is not None:
            return fonts.variant(bold, italic)
    table = FONT_TABLE[os_family(system)]
    fonts = table.get(family, table[DEFAULT_FONT_FAMILY])
    return fonts.variant(bold, italic)


@dataclass(frozen=True)
class StyleResolver:
    """Style resolution bound to one color strategy and font setup."""

    color_strategy: ColorStrategy = ColorStrategy.PACKED_BGRA
    font_dir: str = ""
    system: str | None = None

    def color(self, color: str | None, alpha: float = 1.0, default: str = "#FFFFFF") -> str:
        return resolve_color(color, alpha, self.color_strategy, default)

    def font(self, family: str | None = DEFAULT_FONT_FAMILY, bold: bool = False, italic: bool = False) -> str:
        return escape_path(resolve_font(family, bold, italic, self.system, self.font_dir))

    def text(self, text: str | None) -> str:
        return escape_text(text)
