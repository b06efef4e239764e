"""Scene description models.

A scene is built once per export request from the JSON ``config`` form field
and the paths of the staged uploads, then treated as read-only by the
compiler. The editor sends camelCase keys, sometimes in an older flat layout
(``clipDurations``, ``titleStyle``, ``quality: "1080p"`` ...);
``ranking_scene_from_config`` and ``split_screen_scene_from_config`` fold both
layouts into the same models.
"""

from typing import Any, Literal

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from reelforge.exceptions import InvalidSceneError

DEFAULT_CLIP_DURATION_S = 5.0
MAX_TRANSITION_DURATION_S = 2.0
MIN_SPLIT_RATIO = 0.1
MAX_SPLIT_RATIO = 0.9

QUALITY_ALIASES = {
    "720p": "low",
    "1080p": "standard",
    "4k": "high",
    "medium": "standard",
}


class SceneModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
        extra="ignore",
    )


class PositionPercent(SceneModel):
    x: float = 50.0
    y: float = 50.0


class TextStyle(SceneModel):
    font_family: str = "Arial"
    font_size: float = Field(24.0, gt=0)
    bold: bool = False
    italic: bool = False
    color: str = "#FFFFFF"
    stroke_color: str = "#000000"
    stroke_width: float = Field(2.0, ge=0)


class TitleSpec(SceneModel):
    text: str
    position_percent: PositionPercent = Field(
        default_factory=lambda: PositionPercent(x=50, y=10),
        validation_alias=AliasChoices("positionPercent", "position_percent", "position"),
    )
    style: TextStyle = Field(default_factory=TextStyle)


class CaptionSpec(SceneModel):
    text: str
    position: str = "bottom"
    color: str = "#FFFFFF"
    background_color: str = "#000000"
    background_opacity: float = Field(0.7, ge=0, le=1)
    font_size: float = Field(20.0, gt=0)
    bold: bool = False
    italic: bool = False
    animation: str = "none"


class ClipSpec(SceneModel):
    file_path: str
    trim_start_seconds: float = Field(0.0, ge=0)
    duration_seconds: float = Field(DEFAULT_CLIP_DURATION_S, gt=0)
    caption: CaptionSpec | None = None


class OutputSpec(SceneModel):
    quality_tier: Literal["low", "standard", "high"] = "standard"
    fps: int = Field(30, gt=0, le=120)
    video_area_height_percent: float = Field(100.0, gt=0, le=100)
    background: str = "#000000"
    keep_clip_audio: bool = False

    @field_validator("quality_tier", mode="before")
    @classmethod
    def _map_quality_alias(cls, v: Any) -> Any:
        if isinstance(v, str):
            key = v.strip().lower()
            return QUALITY_ALIASES.get(key, key)
        return v


class RankingGraphicSpec(SceneModel):
    style_token: str = Field("number", validation_alias=AliasChoices("styleToken", "style_token", "style"))
    position: str = "top-left"
    size_pixels_at_reference_width: float = Field(
        80.0,
        gt=0,
        validation_alias=AliasChoices("sizePixelsAtReferenceWidth", "size_pixels_at_reference_width", "size"),
    )


class TransitionSpec(SceneModel):
    type_token: str = Field("none", validation_alias=AliasChoices("typeToken", "type_token", "type"))
    duration_seconds: float = Field(
        0.5, ge=0, validation_alias=AliasChoices("durationSeconds", "duration_seconds", "duration")
    )

    @property
    def is_hard_cut(self) -> bool:
        return self.type_token in ("", "none") or self.duration_seconds <= 0

    @property
    def effective_duration(self) -> float:
        """Transition length actually rendered; never longer than 2 seconds."""
        return min(self.duration_seconds, MAX_TRANSITION_DURATION_S)


class BackgroundMusicSpec(SceneModel):
    file_path: str
    volume_percent: float = Field(
        50.0, ge=0, le=200, validation_alias=AliasChoices("volumePercent", "volume_percent", "volume")
    )
    fade_in: bool = False
    fade_out: bool = False
    ducking: bool = False
    ducking_amount_percent: float = Field(
        50.0,
        ge=0,
        le=100,
        validation_alias=AliasChoices("duckingAmountPercent", "ducking_amount_percent", "duckingAmount"),
    )


class OverlayVisibility(SceneModel):
    start: float = Field(0.0, ge=0)
    end: float | None = None


class OverlayStyle(SceneModel):
    color: str | None = None
    background_color: str | None = None
    font_size: float = Field(24.0, gt=0)


class OverlaySpec(SceneModel):
    type: str
    enabled: bool = True
    content: str = Field("", validation_alias=AliasChoices("content", "text"))
    position_percent: PositionPercent = Field(
        default_factory=PositionPercent,
        validation_alias=AliasChoices("positionPercent", "position_percent", "position"),
    )
    style: OverlayStyle = Field(default_factory=OverlayStyle)
    visibility: OverlayVisibility = Field(default_factory=OverlayVisibility)
    # Frame overlays only
    color: str | None = None
    width: int = Field(4, ge=1)


class SubtitleTemplate(SceneModel):
    color: str | None = "#FFFFFF"
    bg_color: str | None = None
    stroke_color: str | None = "#000000"
    stroke_width: float = Field(2.0, ge=0)
    transform: str = "none"
    font_family: str = "Arial"
    weight: str = "normal"
    style: str = "normal"
    animation: str = "none"


class SubtitleSpec(SceneModel):
    script_text: str
    words_per_second_pacing: float = Field(1.5, gt=0)
    max_words_per_card: int = Field(3, ge=1)
    position: str = "bottom"
    custom_position: PositionPercent | None = None
    size: float = Field(48.0, gt=0)
    template: SubtitleTemplate = Field(default_factory=SubtitleTemplate)


class DividerSpec(SceneModel):
    enabled: bool = False
    color: str = "#FFFFFF"
    width: int = Field(2, ge=1)


class EffectSpec(SceneModel):
    type: str
    strength: float | None = None
    value: float | None = None


class SplitScreenSpec(SceneModel):
    main_file: str
    background_file: str
    split_axis: Literal["vertical", "horizontal"] = Field(
        "vertical", validation_alias=AliasChoices("splitAxis", "split_axis", "splitVariant")
    )
    split_ratio: float = 0.5
    main_volume: float = Field(1.0, ge=0)
    background_volume: float = Field(0.1, ge=0)
    duration_seconds: float = Field(30.0, gt=0)
    fade_in: bool = False
    divider: DividerSpec = Field(default_factory=DividerSpec)
    effects: tuple[EffectSpec, ...] = ()
    overlays: tuple[OverlaySpec, ...] = ()
    subtitles: SubtitleSpec | None = None

    @field_validator("split_ratio")
    @classmethod
    def _clamp_ratio(cls, v: float) -> float:
        return max(MIN_SPLIT_RATIO, min(MAX_SPLIT_RATIO, v))


class SceneDescription(SceneModel):
    """Everything the compiler needs for one export."""

    mode: Literal["ranking", "split_screen"]
    output: OutputSpec = Field(default_factory=OutputSpec)
    clips: tuple[ClipSpec, ...] = ()
    title: TitleSpec | None = None
    ranking_graphic: RankingGraphicSpec | None = None
    transition: TransitionSpec | None = None
    background_music: BackgroundMusicSpec | None = None
    overlays: tuple[OverlaySpec, ...] = ()
    split_screen: SplitScreenSpec | None = None

    @model_validator(mode="after")
    def _check_mode(self) -> "SceneDescription":
        if self.mode == "ranking":
            if not self.clips:
                raise ValueError("ranking scene needs at least one clip")
            if self.split_screen is not None:
                raise ValueError("ranking scene cannot carry a split-screen pair")
        else:
            if self.split_screen is None:
                raise ValueError("split-screen scene needs a main and a background video")
            if self.clips:
                raise ValueError("split-screen scene cannot carry a clip list")
        return self

    @property
    def has_transition(self) -> bool:
        return self.transition is not None and not self.transition.is_hard_cut and len(self.clips) >= 2

    @property
    def transition_overlap(self) -> float:
        return self.transition.effective_duration if self.has_transition else 0.0

    def clip_start_times(self) -> list[float]:
        """Start of each clip on the output timeline.

        With a crossfade every clip after the first starts one transition
        length before the previous one ends.
        """
        starts: list[float] = []
        cursor = 0.0
        for clip in self.clips:
            starts.append(cursor)
            cursor += clip.duration_seconds - self.transition_overlap
        return starts

    @property
    def timeline_duration(self) -> float:
        """Length of the rendered output in seconds."""
        if self.mode == "split_screen":
            return self.split_screen.duration_seconds
        total = sum(clip.duration_seconds for clip in self.clips)
        return total - self.transition_overlap * (len(self.clips) - 1)


# ============================================================================
# Wire config -> SceneDescription
# ============================================================================


def _validation_message(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid scene description"
    first = errors[0]
    loc = " -> ".join(str(x) for x in first.get("loc", []))
    msg = first.get("msg", "Validation error")
    return f"{loc}: {msg}" if loc else msg


def _indexed(values: Any, index: int) -> Any:
    if isinstance(values, list) and index < len(values):
        return values[index]
    return None


def _ranking_clips(raw: dict[str, Any], video_paths: list[str]) -> list[dict[str, Any]]:
    clips_raw = raw.get("clips")
    videos_raw = raw.get("videos")
    clips: list[dict[str, Any]] = []
    for i, path in enumerate(video_paths):
        entry = _indexed(clips_raw, i)
        clip: dict[str, Any] = dict(entry) if isinstance(entry, dict) else {}
        clip["filePath"] = path

        duration = _indexed(raw.get("clipDurations"), i)
        if "durationSeconds" not in clip and duration is not None:
            clip["durationSeconds"] = duration
        trim_start = _indexed(raw.get("trimStarts"), i)
        if "trimStartSeconds" not in clip and trim_start is not None:
            clip["trimStartSeconds"] = trim_start

        video = _indexed(videos_raw, i)
        if "caption" not in clip and isinstance(video, dict):
            caption = video.get("caption")
            if isinstance(caption, dict) and caption.get("enabled") and caption.get("text"):
                fmt = caption.get("format") or {}
                clip["caption"] = {
                    "text": caption["text"],
                    "position": caption.get("position", "bottom"),
                    "animation": caption.get("animation", "none"),
                    **fmt,
                }
        clips.append(clip)
    return clips


def _ranking_output(raw: dict[str, Any]) -> dict[str, Any]:
    output = dict(raw.get("outputSpec") or {})
    legacy = {
        "qualityTier": raw.get("quality"),
        "fps": raw.get("fps"),
        "videoAreaHeightPercent": raw.get("videoHeight"),
        "background": raw.get("background"),
        "keepClipAudio": raw.get("keepClipAudio"),
    }
    for key, value in legacy.items():
        if key not in output and value is not None:
            output[key] = value
    return output


def _ranking_title(raw: dict[str, Any]) -> dict[str, Any] | None:
    title = raw.get("title")
    if isinstance(title, dict):
        return title if title.get("text") else None
    if not title:
        return None
    result: dict[str, Any] = {"text": str(title)}
    if isinstance(raw.get("titlePosition"), dict):
        result["positionPercent"] = raw["titlePosition"]
    if isinstance(raw.get("titleStyle"), dict):
        result["style"] = raw["titleStyle"]
    return result


def ranking_scene_from_config(
    raw: dict[str, Any],
    video_paths: list[str],
    music_path: str | None = None,
) -> SceneDescription:
    """Build a ranking-mode scene from the editor config and staged uploads.

    Raises:
        InvalidSceneError: if the config does not describe a renderable scene
    """
    if not isinstance(raw, dict):
        raise InvalidSceneError("Config must be a JSON object")

    ranking = raw.get("rankingGraphic")
    if isinstance(ranking, dict) and not (ranking.get("styleToken") or ranking.get("style")):
        ranking = None

    music = None
    if music_path:
        music = {**(raw.get("backgroundMusic") or {}), "filePath": music_path}

    data = {
        "mode": "ranking",
        "output": _ranking_output(raw),
        "clips": _ranking_clips(raw, video_paths),
        "title": _ranking_title(raw),
        "rankingGraphic": ranking,
        "transition": raw.get("transition") or raw.get("transitionSettings"),
        "backgroundMusic": music,
        "overlays": raw.get("overlays") or [],
    }
    try:
        return SceneDescription.model_validate(data)
    except ValidationError as e:
        raise InvalidSceneError(_validation_message(e)) from e


def split_screen_scene_from_config(
    raw: dict[str, Any],
    main_path: str,
    background_path: str,
) -> SceneDescription:
    """Build a split-screen scene from the editor config and staged uploads.

    Raises:
        InvalidSceneError: if the config does not describe a renderable scene
    """
    if not isinstance(raw, dict):
        raise InvalidSceneError("Config must be a JSON object")

    split = {
        key: value
        for key, value in raw.items()
        if key not in ("outputSpec", "quality", "fps", "transitions", "subtitles")
    }
    split["mainFile"] = main_path
    split["backgroundFile"] = background_path

    transitions = raw.get("transitions") or {}
    if transitions.get("enabled"):
        split.setdefault("fadeIn", True)
    if transitions.get("divider"):
        split.setdefault(
            "divider",
            {
                "enabled": True,
                "color": transitions.get("dividerColor", "#FFFFFF"),
                "width": transitions.get("dividerWidth", 2),
            },
        )

    subtitles = raw.get("subtitles")
    if isinstance(subtitles, dict) and subtitles.get("enabled", True) and str(subtitles.get("scriptText") or "").strip():
        split["subtitles"] = subtitles

    output = dict(raw.get("outputSpec") or {})
    if "qualityTier" not in output and raw.get("quality") is not None:
        output["qualityTier"] = raw["quality"]
    if "fps" not in output and raw.get("fps") is not None:
        output["fps"] = raw["fps"]

    data = {"mode": "split_screen", "output": output, "splitScreen": split}
    try:
        return SceneDescription.model_validate(data)
    except ValidationError as e:
        raise InvalidSceneError(_validation_message(e)) from e
