"""Custom exceptions for the export backend.

Every failure a request can hit maps onto one of these classes. The FastAPI
handlers in ``reelforge.main`` turn them into ``{error, message, details}``
JSON bodies with the class's status code.
"""

from typing import Any

from reelforge.constants.error_codes import get_error_spec


class ReelforgeError(Exception):
    """Base exception for all export errors."""

    code: str = "INTERNAL_ERROR"
    status_code: int = 500
    message: str = "An unexpected error occurred"

    def __init__(
        self,
        message: str | None = None,
        *,
        code: str | None = None,
        status_code: int | None = None,
        details: str | None = None,
    ):
        self.message = message or self.__class__.message
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for an API error response."""
        body: dict[str, Any] = {"error": self.code, "message": self.message}
        if self.details:
            body["details"] = self.details
        suggested_fix = get_error_spec(self.code).get("suggested_fix")
        if suggested_fix:
            body["suggested_fix"] = suggested_fix
        return body


# =============================================================================
# Validation Errors (400)
# =============================================================================


class ValidationError(ReelforgeError):
    """Base class for request validation errors."""

    code = "BAD_REQUEST"
    status_code = 400


class MissingConfigError(ValidationError):
    code = "MISSING_CONFIG"
    message = "Missing config parameter"


class InvalidConfigError(ValidationError):
    code = "INVALID_CONFIG"
    message = "Config is not valid JSON"


class NoFilesUploadedError(ValidationError):
    code = "NO_FILES_UPLOADED"
    message = "No video files uploaded"


class TooManyFilesError(ValidationError):
    code = "TOO_MANY_FILES"
    message = "Too many files uploaded"

    def __init__(self, count: int | None = None, max_count: int | None = None):
        message = self.message
        if count is not None and max_count is not None:
            message = f"Too many files uploaded ({count}, max: {max_count})"
        super().__init__(message)


class FileTooLargeError(ValidationError):
    code = "FILE_TOO_LARGE"
    message = "Uploaded file is too large"

    def __init__(self, filename: str | None = None, max_mb: int | None = None):
        message = self.message
        if filename and max_mb is not None:
            message = f"{filename} exceeds the {max_mb}MB upload limit"
        super().__init__(message)


class InvalidSceneError(ValidationError):
    """The config parsed as JSON but does not describe a renderable scene."""

    code = "INVALID_SCENE"
    message = "Invalid scene description"


# =============================================================================
# Engine Errors (500)
# =============================================================================


class EngineUnavailableError(ReelforgeError):
    """FFmpeg could not be launched (missing binary, not executable)."""

    code = "ENGINE_UNAVAILABLE"
    message = "Video engine is not available"


class RenderFailedError(ReelforgeError):
    """FFmpeg ran but exited with a non-zero code."""

    code = "RENDER_FAILED"
    message = "Video export failed"

    def __init__(self, returncode: int | None = None, details: str | None = None):
        message = self.message
        if returncode is not None:
            message = f"Video export failed: ffmpeg exited with code {returncode}"
        super().__init__(message, details=details)


class FilterGraphError(ReelforgeError):
    """The compiled filter graph failed static validation."""

    code = "INVALID_FILTER_GRAPH"
    message = "Compiled filter graph is invalid"

    def __init__(self, problems: list[str]):
        self.problems = problems
        super().__init__(self.message, details="; ".join(problems))
