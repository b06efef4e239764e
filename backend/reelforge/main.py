import logging
import os

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from reelforge.api import export
from reelforge.config import get_settings
from reelforge.constants.error_codes import get_error_spec
from reelforge.exceptions import ReelforgeError

settings = get_settings()
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _http_error_code(status_code: int) -> str:
    mapping = {
        400: "BAD_REQUEST",
        404: "NOT_FOUND",
        405: "METHOD_NOT_ALLOWED",
        413: "FILE_TOO_LARGE",
        422: "VALIDATION_ERROR",
        500: "INTERNAL_ERROR",
    }
    return mapping.get(status_code, "HTTP_ERROR")


def _error_body(code: str, message: str, details: str | None = None) -> dict[str, str]:
    body = {"error": code, "message": message}
    if details:
        body["details"] = details
    suggested_fix = get_error_spec(code).get("suggested_fix")
    if suggested_fix:
        body["suggested_fix"] = suggested_fix
    return body


@app.exception_handler(ReelforgeError)
async def reelforge_exception_handler(request: Request, exc: ReelforgeError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"[EXPORT] {exc.code}: {exc.message}")
    else:
        logger.info(f"[EXPORT] Rejected request ({exc.code}): {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle FastAPI request validation errors (422)."""
    errors = exc.errors()
    if errors:
        first_error = errors[0]
        loc = " -> ".join(str(x) for x in first_error.get("loc", []))
        msg = first_error.get("msg", "Validation error")
        message = f"{loc}: {msg}" if loc else msg
    else:
        message = "Request validation failed"
    return JSONResponse(status_code=422, content=_error_body("VALIDATION_ERROR", message))


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(_http_error_code(exc.status_code), str(exc.detail)),
    )


# Global exception handler to ensure errors return proper JSON
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled exception: {exc}")
    return JSONResponse(status_code=500, content=_error_body("INTERNAL_ERROR", "Internal server error"))


# Routers
app.include_router(export.router, prefix="/api", tags=["export"])

# Rendered videos
os.makedirs(settings.downloads_dir, exist_ok=True)
app.mount(settings.downloads_url_prefix, StaticFiles(directory=settings.downloads_dir), name="downloads")


@app.get("/health")
async def health_check() -> dict[str, str]:
    return {"status": "healthy", "version": settings.app_version, "git_hash": settings.git_hash}


@app.get("/api/version")
async def get_version() -> dict[str, str]:
    """Return the backend version info."""
    return {"version": settings.app_version, "git_hash": settings.git_hash}
