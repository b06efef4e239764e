"""Tests for style resolution: colors, escaping, fonts, transitions."""

import pytest

from reelforge.render.graph import lint_program
from reelforge.render.styles import (
    ColorStrategy,
    FONT_TABLE,
    StyleResolver,
    css_to_hex,
    decode_color,
    escape_path,
    escape_text,
    os_family,
    ranking_color,
    resolve_color,
    resolve_font,
    transition_name,
)
from reelforge.render.text_renderer import DrawTextConfig, TextRenderer, TimeWindow


def _get_token(buf: str, terms: str) -> tuple[str, str]:
    """Read one token the way FFmpeg's av_get_token does.

    Outside quotes a backslash escapes the next character; inside single
    quotes everything is literal up to the closing quote.
    """
    out = []
    i = 0
    while i < len(buf) and buf[i] not in terms:
        ch = buf[i]
        if ch == "\\" and i + 1 < len(buf):
            out.append(buf[i + 1])
            i += 2
        elif ch == "'":
            end = buf.find("'", i + 1)
            end = len(buf) if end == -1 else end
            out.append(buf[i + 1 : end])
            i = end + 1
        else:
            out.append(ch)
            i += 1
    return "".join(out), buf[i:]


def _filter_options(node: str) -> dict[str, str]:
    """Options a filter receives after graph parsing and option parsing."""
    name, rest = _get_token(node, "=,;[")
    assert rest.startswith("="), node
    args, rest = _get_token(rest[1:], "[],;")
    assert rest == "", f"{name} arguments stopped early at {rest!r}"

    options = {}
    while args:
        key, args = _get_token(args, "=:")
        assert args.startswith("="), f"option {key!r} has no value"
        value, args = _get_token(args[1:], ":")
        options[key] = value
        args = args[1:]
    return options


class TestResolveColor:
    """Hex colors become packed BGR + alpha literals."""

    def test_packs_bgr_with_opaque_alpha(self):
        assert resolve_color("#3B82F6", alpha=1.0) == "0xf6823bff"

    def test_round_trip(self):
        assert decode_color(resolve_color("#3B82F6", alpha=1.0)) == ("#3B82F6", 1.0)

    @pytest.mark.parametrize("color", ["#000000", "#FFFFFF", "#10B981", "#EC4899", "#A0A0A0"])
    def test_round_trip_many(self, color):
        rgb, alpha = decode_color(resolve_color(color))
        assert rgb == color
        assert alpha == 1.0

    def test_alpha_is_appended(self):
        assert resolve_color("#000000", alpha=0.5) == "0x00000080"

    def test_missing_hash_accepted(self):
        assert resolve_color("ff0000") == "0x0000ffff"

    def test_named_color_passes_through(self):
        assert resolve_color("white") == "white"

    def test_none_uses_default(self):
        assert resolve_color(None, default="#000000") == "0x000000ff"

    def test_legacy_hex_strategy(self):
        assert resolve_color("#3B82F6", strategy=ColorStrategy.HEX) == "0x3B82F6"
        assert resolve_color("#3B82F6", alpha=0.5, strategy=ColorStrategy.HEX) == "0x3B82F6@0.5"

    def test_strategy_accepts_setting_string(self):
        assert resolve_color("#3B82F6", strategy="hex") == "0x3B82F6"

    def test_decode_rejects_garbage(self):
        with pytest.raises(ValueError):
            decode_color("#3B82F6")


class TestEscapeText:
    """Text escaping for single-quoted drawtext arguments."""

    def test_escapes_all_special_characters(self):
        escaped = escape_text("a:b,c;d[e]f'g")
        assert escaped == "a\\:b\\,c\\;d\\[e\\]f'\\\\\\''g"

    def test_idempotent_without_special_characters(self):
        text = "Top 3 clips of the week"
        assert escape_text(text) == text
        assert escape_text(escape_text(text)) == text

    def test_empty(self):
        assert escape_text("") == ""
        assert escape_text(None) == ""

    def test_escaped_text_keeps_graph_well_formed(self):
        text = "it's a [test]; really, ok: yes"
        program = f"[0:v]drawtext=text='{escape_text(text)}'[out0]"
        assert lint_program(program, 1, ["out0"]) == []

    @pytest.mark.parametrize(
        "text",
        [
            "Today's Top 3",
            "Top 3: best, [ever]; ok",
            "Rock'n'roll: #1, [live]; it's 'quoted'",
            "Best of 2024 (so far)",
        ],
    )
    def test_text_survives_both_parsing_levels(self, text):
        options = _filter_options(f"drawtext=text='{escape_text(text)}':fontsize=40")
        assert options == {"text": text, "fontsize": "40"}

    def test_path_survives_both_parsing_levels(self):
        path = "C:/Users/o'brien/fonts/arial.ttf"
        options = _filter_options(f"drawtext=fontfile='{escape_path(path)}':text='x'")
        assert options["fontfile"] == path

    def test_apostrophe_keeps_following_options(self):
        renderer = TextRenderer(StyleResolver(system="Linux"), 1080, 1920)
        node = renderer.drawtext(
            DrawTextConfig(
                text="Today's Top 3",
                font_file="/fonts/arial.ttf",
                font_size=40,
                font_color="0xffffffff",
                x=10,
                y=20,
                window=TimeWindow(0, 5),
            )
        )
        options = _filter_options(node)
        assert options["text"] == "Today's Top 3"
        assert options["fontfile"] == "/fonts/arial.ttf"
        assert options["fontsize"] == "40"
        assert (options["x"], options["y"]) == ("10", "20")
        assert options["enable"] == "between(t,0,5)*lt(t,5)"

    def test_unescaped_apostrophe_is_rejected(self):
        program = "[0:v]drawtext=text='it's'[out0]"
        problems = lint_program(program, 1, ["out0"])
        assert "unterminated quote" in problems

    def test_unescaped_semicolon_is_rejected(self):
        program = "[0:v]drawtext=text=a;b[out0]"
        problems = lint_program(program, 1, ["out0"])
        assert any("no output label" in p for p in problems)


class TestFonts:
    """Font resolution per OS family with variant fallback."""

    def test_os_family(self):
        assert os_family("Windows") == "windows"
        assert os_family("Darwin") == "darwin"
        assert os_family("Linux") == "linux"
        assert os_family("FreeBSD") == "linux"

    def test_bold_italic_on_windows(self):
        assert resolve_font("Arial", bold=True, italic=True, system="Windows") == "C:/Windows/Fonts/arialbi.ttf"

    def test_bold_italic_falls_back_to_bold(self):
        path = resolve_font("Inter", bold=True, italic=True, system="Linux")
        assert path == FONT_TABLE["linux"]["Inter"].bold

    def test_italic_falls_back_to_regular(self):
        path = resolve_font("Oswald", italic=True, system="Linux")
        assert path == FONT_TABLE["linux"]["Oswald"].regular

    def test_unknown_family_uses_arial(self):
        assert resolve_font("Comic Neue", system="Linux") == FONT_TABLE["linux"]["Arial"].regular

    def test_font_dir_overrides_table(self, tmp_path):
        (tmp_path / "Inter-Regular.ttf").write_bytes(b"")
        (tmp_path / "Inter-Bold.ttf").write_bytes(b"")
        assert resolve_font("Inter", bold=True, font_dir=str(tmp_path)) == str(tmp_path / "Inter-Bold.ttf")
        assert resolve_font("Inter", italic=True, font_dir=str(tmp_path)) == str(tmp_path / "Inter-Regular.ttf")

    def test_resolver_escapes_drive_colon(self):
        resolver = StyleResolver(system="Windows")
        assert resolver.font("Arial") == "C\\:/Windows/Fonts/arial.ttf"


class TestTokens:
    """Transition and ranking style tables degrade to defaults."""

    @pytest.mark.parametrize(
        "token,expected",
        [
            ("fade", "fade"),
            ("wipe-left", "wipeleft"),
            ("wipe-down", "wipedown"),
            ("slide-right", "slideright"),
            ("zoom-in", "fade"),
            ("glitch", "fade"),
            ("cube", "fade"),
            ("something-new", "fade"),
            (None, "fade"),
        ],
    )
    def test_transition_name(self, token, expected):
        assert transition_name(token) == expected

    def test_ranking_colors(self):
        assert ranking_color("medal") == "#f59e0b"
        assert ranking_color("trophy") == "#10b981"
        assert ranking_color("unknown") == "#3b82f6"
        assert ranking_color(None) == "#3b82f6"


class TestCssToHex:
    """Subtitle template colors resolve to hex."""

    def test_theme_variable(self):
        assert css_to_hex("var(--color-text-highlight)") == "#FFD700"

    def test_rgba(self):
        assert css_to_hex("rgba(255, 0, 128, 0.5)") == "#ff0080"

    def test_color_mix(self):
        assert css_to_hex("color-mix(in srgb, var(--color-accent) 80%, transparent)") == "#EC4899"

    def test_transparent(self):
        assert css_to_hex("transparent") is None
        assert css_to_hex(None) is None

    def test_gradient(self):
        assert css_to_hex("gradient") == "#FFFFFF"

    def test_plain_hex_unchanged(self):
        assert css_to_hex("#123456") == "#123456"
