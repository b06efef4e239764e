"""Per-request render job: output naming and scoped cleanup of staged files."""

import base64
import logging
import re
import secrets
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)

OUTPUT_ID_LENGTH = 16
_UNSAFE_FILENAME_RE = re.compile(r"[^A-Za-z0-9._-]+")


def generate_output_id(length: int = OUTPUT_ID_LENGTH) -> str:
    """Random id: base64 of random bytes, alphanumerics only."""
    chars = ""
    while len(chars) < length:
        encoded = base64.b64encode(secrets.token_bytes(length)).decode("ascii")
        chars += "".join(c for c in encoded if c.isalnum())
    return chars[:length]


def safe_filename(filename: str | None, default: str = "upload") -> str:
    name = Path(filename or "").name
    name = _UNSAFE_FILENAME_RE.sub("_", name).strip("._")
    return name or default


class RenderJob:
    """Owns every file one export request creates.

    Use as a context manager. Staged inputs are removed when the job is
    cleaned up, on every exit path; the rendered output is kept unless the
    block exits with an exception.

    Example::

        with RenderJob("ranking", settings.downloads_dir, settings.uploads_dir) as job:
            path = job.stage_path("clip.mp4")
            ...
    """

    def __init__(self, prefix: str, downloads_dir: str, uploads_dir: str):
        self.prefix = prefix
        self.output_id = generate_output_id()
        self.output_name = f"{prefix}_{self.output_id}.mp4"
        self.downloads_dir = Path(downloads_dir)
        self.uploads_dir = Path(uploads_dir)
        self.output_path = self.downloads_dir / self.output_name
        self.temp_paths: list[Path] = []
        self.staging_dir: Path | None = None
        self.cleaned_up = False

    def __enter__(self) -> "RenderJob":
        self.downloads_dir.mkdir(parents=True, exist_ok=True)
        self.uploads_dir.mkdir(parents=True, exist_ok=True)
        self.staging_dir = Path(tempfile.mkdtemp(prefix=f"{self.prefix}_", dir=self.uploads_dir))
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cleanup()
        if exc_type is not None:
            self._remove(self.output_path)

    def stage_path(self, filename: str | None) -> Path:
        """Reserve a path in the staging directory and register it for cleanup."""
        if self.staging_dir is None:
            raise RuntimeError("RenderJob must be entered before staging files")
        path = self.staging_dir / f"{len(self.temp_paths)}_{safe_filename(filename)}"
        self.register(path)
        return path

    def register(self, path: str | Path) -> None:
        self.temp_paths.append(Path(path))

    def cleanup(self) -> None:
        """Delete staged inputs; safe to call more than once and never raises."""
        if self.cleaned_up:
            return
        self.cleaned_up = True
        for path in self.temp_paths:
            self._remove(path)
        if self.staging_dir is not None:
            try:
                self.staging_dir.rmdir()
            except OSError as e:
                logger.warning(f"[JOB] Could not remove staging dir {self.staging_dir}: {e}")
        logger.info(f"[JOB] Cleaned up {len(self.temp_paths)} staged files for {self.output_name}")

    @staticmethod
    def _remove(path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"[JOB] Failed to delete {path}: {e}")
