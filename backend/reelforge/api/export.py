"""Export API endpoints - synchronous FFmpeg renders.

Routes:
- POST /api/export-ranking-video
- POST /api/export-split-screen-video

Both take multipart uploads plus a JSON ``config`` form field and respond
with ``{url, size, duration}`` once the MP4 is written to the downloads
directory. Every staged upload is deleted before the response is sent.
"""

import asyncio
import json
import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, File, Form, UploadFile

from reelforge.config import Settings, get_settings
from reelforge.exceptions import (
    FileTooLargeError,
    InvalidConfigError,
    MissingConfigError,
    NoFilesUploadedError,
    TooManyFilesError,
)
from reelforge.render.job import RenderJob
from reelforge.render.pipeline import run_export
from reelforge.schemas.export import ErrorResponse, ExportResponse
from reelforge.schemas.scene import (
    SceneDescription,
    ranking_scene_from_config,
    split_screen_scene_from_config,
)

router = APIRouter()
logger = logging.getLogger(__name__)

SettingsDep = Annotated[Settings, Depends(get_settings)]

UPLOAD_CHUNK_SIZE = 1024 * 1024

ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    400: {"model": ErrorResponse, "description": "Missing or invalid config or files"},
    500: {"model": ErrorResponse, "description": "FFmpeg unavailable or render failed"},
}


def parse_config(config: str | None) -> dict[str, Any]:
    """Decode the ``config`` form field.

    Raises:
        MissingConfigError: if the field is absent or blank
        InvalidConfigError: if it is not a JSON object
    """
    if config is None or not config.strip():
        raise MissingConfigError()
    try:
        raw = json.loads(config)
    except json.JSONDecodeError as e:
        raise InvalidConfigError(f"Config is not valid JSON: {e.msg} (line {e.lineno}, column {e.colno})") from e
    if not isinstance(raw, dict):
        raise InvalidConfigError("Config must be a JSON object")
    return raw


async def stage_upload(job: RenderJob, upload: UploadFile, max_bytes: int) -> str:
    """Copy an upload into the job's staging directory, writing off the event loop."""
    path = job.stage_path(upload.filename)
    written = 0
    with open(path, "wb") as f:
        while chunk := await upload.read(UPLOAD_CHUNK_SIZE):
            written += len(chunk)
            if written > max_bytes:
                raise FileTooLargeError(upload.filename, max_bytes // (1024 * 1024))
            await asyncio.to_thread(f.write, chunk)
    logger.info(f"[EXPORT] Staged {upload.filename} ({written} bytes)")
    return str(path)


def _export_response(job: RenderJob, scene: SceneDescription, settings: Settings) -> ExportResponse:
    prefix = settings.downloads_url_prefix.rstrip("/")
    return ExportResponse(
        url=f"{prefix}/{job.output_name}",
        size=job.output_path.stat().st_size,
        duration=round(scene.timeline_duration, 3),
    )


@router.post("/export-ranking-video", response_model=ExportResponse, responses=ERROR_RESPONSES)
async def export_ranking_video(
    settings: SettingsDep,
    videos: Annotated[list[UploadFile] | None, File()] = None,
    background_music: Annotated[UploadFile | None, File(alias="backgroundMusic")] = None,
    config: Annotated[str | None, Form()] = None,
) -> ExportResponse:
    """Render a ranking video from ordered clips and optional background music."""
    raw = parse_config(config)
    if not videos:
        raise NoFilesUploadedError()
    if len(videos) > settings.max_video_files:
        raise TooManyFilesError(len(videos), settings.max_video_files)

    max_bytes = settings.max_upload_size_mb * 1024 * 1024
    logger.info(f"[EXPORT] Ranking export: {len(videos)} videos, music={background_music is not None}")

    with RenderJob("ranking", settings.downloads_dir, settings.uploads_dir) as job:
        video_paths = [await stage_upload(job, video, max_bytes) for video in videos]
        music_path = None
        if background_music is not None:
            music_path = await stage_upload(job, background_music, max_bytes)

        scene = ranking_scene_from_config(raw, video_paths, music_path)
        await run_export(scene, job, settings)
        response = _export_response(job, scene, settings)

    logger.info(f"[EXPORT] Ranking export done: {response.url} ({response.size} bytes)")
    return response


@router.post("/export-split-screen-video", response_model=ExportResponse, responses=ERROR_RESPONSES)
async def export_split_screen_video(
    settings: SettingsDep,
    main_video: Annotated[UploadFile | None, File(alias="mainVideo")] = None,
    background_video: Annotated[UploadFile | None, File(alias="backgroundVideo")] = None,
    config: Annotated[str | None, Form()] = None,
) -> ExportResponse:
    """Render a split-screen video from a main and a background video."""
    raw = parse_config(config)
    if main_video is None or background_video is None:
        raise NoFilesUploadedError("Both mainVideo and backgroundVideo are required")

    max_bytes = settings.max_upload_size_mb * 1024 * 1024
    logger.info("[EXPORT] Split-screen export")

    with RenderJob("splitscreen", settings.downloads_dir, settings.uploads_dir) as job:
        main_path = await stage_upload(job, main_video, max_bytes)
        background_path = await stage_upload(job, background_video, max_bytes)

        scene = split_screen_scene_from_config(raw, main_path, background_path)
        await run_export(scene, job, settings)
        response = _export_response(job, scene, settings)

    logger.info(f"[EXPORT] Split-screen export done: {response.url} ({response.size} bytes)")
    return response
