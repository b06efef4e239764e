"""Error codes dictionary for the export API.

This is the single source of truth for all error codes and their retryability.
Used by the exception handlers to build machine-readable error responses.
"""

from typing import TypedDict


class ErrorCodeSpec(TypedDict, total=False):
    """Specification for an error code."""

    retryable: bool
    suggested_fix: str


ERROR_CODES: dict[str, ErrorCodeSpec] = {
    # ==========================================================================
    # Request errors (400) - nothing was spawned
    # ==========================================================================
    "MISSING_CONFIG": {
        "retryable": False,
        "suggested_fix": "Send the scene description as a JSON string in the 'config' form field",
    },
    "INVALID_CONFIG": {
        "retryable": False,
        "suggested_fix": "The 'config' form field must be a valid JSON object",
    },
    "NO_FILES_UPLOADED": {
        "retryable": False,
        "suggested_fix": "Attach the source clips as multipart files",
    },
    "TOO_MANY_FILES": {
        "retryable": False,
    },
    "INVALID_SCENE": {
        "retryable": False,
    },
    "FILE_TOO_LARGE": {
        "retryable": False,
        "suggested_fix": "Upload files under the configured size limit",
    },
    "BAD_REQUEST": {
        "retryable": False,
    },
    "VALIDATION_ERROR": {
        "retryable": False,
    },
    # ==========================================================================
    # Engine errors (500) - uploads are always removed
    # ==========================================================================
    "ENGINE_UNAVAILABLE": {
        "retryable": False,
        "suggested_fix": "Install ffmpeg or set FFMPEG_PATH",
    },
    "RENDER_FAILED": {
        "retryable": False,
    },
    "INVALID_FILTER_GRAPH": {
        "retryable": False,
    },
    "INTERNAL_ERROR": {
        "retryable": False,
    },
}


def get_error_spec(code: str) -> ErrorCodeSpec:
    """Get error specification by code."""
    return ERROR_CODES.get(code, {"retryable": False})


def is_retryable(code: str) -> bool:
    """Check if an error code is retryable."""
    return get_error_spec(code).get("retryable", False)
