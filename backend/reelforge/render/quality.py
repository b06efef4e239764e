"""Quality tiers: output geometry and x264 rate control."""

import re
from dataclasses import dataclass
from typing import Literal

QualityTier = Literal["low", "standard", "high"]

_BITRATE_RE = re.compile(r"^(\d+(?:\.\d+)?)([kKmM]?)$")


@dataclass(frozen=True)
class QualityProfile:
    width: int
    height: int
    crf: str
    preset: str
    bitrate: str

    @property
    def bufsize(self) -> str:
        """Rate-control buffer, twice the target bitrate."""
        match = _BITRATE_RE.match(self.bitrate)
        if not match:
            raise ValueError(f"Unparseable bitrate: {self.bitrate}")
        value, unit = match.groups()
        doubled = float(value) * 2
        text = str(int(doubled)) if doubled.is_integer() else str(doubled)
        return f"{text}{unit}"

    def as_tuple(self) -> tuple[int, int, str, str, str]:
        return (self.width, self.height, self.crf, self.preset, self.bitrate)


QUALITY_PROFILES: dict[str, QualityProfile] = {
    "low": QualityProfile(width=720, height=1280, crf="23", preset="fast", bitrate="3M"),
    "standard": QualityProfile(width=1080, height=1920, crf="18", preset="medium", bitrate="8M"),
    "high": QualityProfile(width=2160, height=3840, crf="15", preset="slow", bitrate="20M"),
}


def get_quality_profile(tier: QualityTier) -> QualityProfile:
    """Look up a tier.

    Raises:
        KeyError: for an unknown tier (scene validation only lets known tiers through)
    """
    return QUALITY_PROFILES[tier]
