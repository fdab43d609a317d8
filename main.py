import inspect
import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from openai import AsyncOpenAI
from starlette.exceptions import HTTPException as StarletteHTTPException

from routes.analysis_route import router as analysis_router
from routes.report_route import router as report_router
from services.errors import AgriCareError
from services.openai.crop_analyzer import DEFAULT_MODEL
from services.openai.crop_prompts import PROMPT_VERSION
from utils.media_validation import max_image_bytes
from utils.storage_init import StorageConfig

load_dotenv()  # Load environment variables from .env file if present

LOGGER = logging.getLogger(__name__)


def build_openai_client() -> Optional[AsyncOpenAI]:
    """Create the OpenAI async client, or None when OPENAI_API_KEY is not set."""
    openai_api_key = os.getenv("OPENAI_API_KEY")
    if not openai_api_key:
        LOGGER.warning("OPENAI_API_KEY is not set; analysis requests will return 503")
        return None

    try:
        return AsyncOpenAI(api_key=openai_api_key)
    except Exception as exc:
        raise RuntimeError("Failed to initialize OpenAI Async client") from exc


async def _close_client(client) -> None:
    close = getattr(client, "aclose", None) or getattr(client, "close", None)
    if close is None:
        return
    try:
        result = close()
        if inspect.isawaitable(result):
            await result
    except Exception as exc:  # pylint: disable=broad-exception-caught
        # Ignore shutdown errors to avoid masking more important issues.
        LOGGER.warning("Error while closing OpenAI client: %s", exc)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan manager that creates the OpenAI async client from the environment
    unless one was injected into `create_app`, and closes it on shutdown.
    """
    owns_client = app.state.openai_client is None
    if owns_client:
        app.state.openai_client = build_openai_client()

    try:
        yield
    finally:
        client = app.state.openai_client
        if owns_client and client is not None:
            await _close_client(client)


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


def create_app(
    storage: Optional[StorageConfig] = None,
    openai_client: Optional[AsyncOpenAI] = None,
    max_upload_bytes: Optional[int] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application instance.

    Args:
        storage: Archive locations; defaults to ARCHIVE_DIR (see StorageConfig.from_env).
        openai_client: Pre-built client; when omitted the lifespan builds one from
            OPENAI_API_KEY.
        max_upload_bytes: Upload limit; defaults to MAX_UPLOAD_BYTES or 10 MB.
    """
    storage = storage or StorageConfig.from_env()
    storage.ensure_directories()

    app = FastAPI(title="AgriCare", lifespan=lifespan)
    app.state.storage = storage
    app.state.openai_client = openai_client
    app.state.max_upload_bytes = max_upload_bytes or max_image_bytes()

    @app.exception_handler(AgriCareError)
    async def handle_pipeline_error(request: Request, exc: AgriCareError):
        return _error_response(exc.status_code, exc.message)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException):
        return _error_response(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        return _error_response(400, "Invalid request body")

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.get("/api/diagnostics")
    async def diagnostics(request: Request):
        """
        Report whether the model is configured, without exposing secrets.
        """
        return {
            "message": "AgriCare API is working",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "method": request.method,
            "path": request.url.path,
            "hasApiKey": bool(os.getenv("OPENAI_API_KEY")),
            "openaiAvailable": request.app.state.openai_client is not None,
            "model": os.getenv("OPENAI_MODEL", DEFAULT_MODEL),
            "promptVersion": PROMPT_VERSION,
            "environment": os.getenv("APP_ENV", "development"),
        }

    app.include_router(analysis_router)
    app.include_router(report_router)

    # Archived files are served read-only.
    app.mount("/uploads", StaticFiles(directory=storage.uploads_dir), name="uploads")
    app.mount("/reports", StaticFiles(directory=storage.reports_dir), name="reports")

    return app


app = create_app()
