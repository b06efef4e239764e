from reelforge.schemas.export import ErrorResponse, ExportResponse
from reelforge.schemas.scene import SceneDescription

__all__ = ["ErrorResponse", "ExportResponse", "SceneDescription"]
