"""Response schemas for the export endpoints."""

from pydantic import BaseModel, Field


class ExportResponse(BaseModel):
    """A finished render, served from the downloads mount."""

    url: str = Field(..., description="Download URL of the rendered MP4")
    size: int = Field(..., ge=0, description="File size in bytes")
    duration: float = Field(..., ge=0, description="Timeline duration in seconds")


class ErrorResponse(BaseModel):
    error: str
    message: str
    details: str | None = None
    suggested_fix: str | None = None
