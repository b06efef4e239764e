import json
from functools import lru_cache
from typing import Literal

from pydantic import computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Application
    app_name: str = "Reelforge Export API"
    app_version: str = "0.1.0"
    git_hash: str = "unknown"  # Set via GIT_HASH env var at build time
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = True

    # CORS - stored as string, parsed via computed property
    cors_origins_raw: str = "http://localhost:5173,http://localhost:3000"

    @computed_field
    @property
    def cors_origins(self) -> list[str]:
        """Parse CORS origins from pipe/comma-separated string or JSON array."""
        v = self.cors_origins_raw
        if v.startswith("["):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                pass
        # Pipe-separated (for Cloud Run compatibility)
        if "|" in v:
            return [origin.strip() for origin in v.split("|") if origin.strip()]
        return [origin.strip() for origin in v.split(",") if origin.strip()]

    # File Upload
    uploads_dir: str = "./uploads"
    max_upload_size_mb: int = 100
    max_video_files: int = 10

    # Rendered output, served statically under downloads_url_prefix
    downloads_dir: str = "./downloads"
    downloads_url_prefix: str = "/downloads"

    # FFmpeg
    ffmpeg_path: str = "ffmpeg"

    # Render settings
    render_audio_codec: str = "aac"
    render_audio_bitrate: str = "192k"
    render_video_codec: str = "libx264"
    render_pixel_format: str = "yuv420p"
    # Characters of FFmpeg stderr returned to the client on failure
    render_diagnostic_tail_chars: int = 1000
    # Upper bound on stderr kept in memory per render
    render_diagnostic_buffer_chars: int = 64_000

    # Style resolution: "packed_bgra" (0xBBGGRRAA) or legacy "hex" (0xRRGGBB)
    color_strategy: Literal["packed_bgra", "hex"] = "packed_bgra"
    # Optional directory holding <Family>-<Variant>.ttf files; overrides the OS font table
    font_dir: str = ""


@lru_cache
def get_settings() -> Settings:
    return Settings()
