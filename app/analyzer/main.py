"""
FastAPI application for the PDF analyzer service.

Provides endpoints for:
- Uploading a PDF for AI analysis (POST /api/analyze)
- Health checks (GET /api/health)
- Serving the static upload page from public/
"""

import logging

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .config import get_settings
from .responses import envelope_response, error_envelope, error_response
from .routers import analyze, health
from .services.ai import AnalysisError

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
    "Cross-Origin-Resource-Policy": "same-origin",
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    settings = get_settings()
    logger.info("Starting PDF Analyzer Service (model=%s)...", settings.ai_model)
    if not settings.ai_base_url or not settings.ai_api_key:
        logger.warning(
            "AI_BASE_URL and AI_API_KEY must both be set; /api/analyze will fail until they are."
        )
    logger.info("Upload limit: %d bytes", settings.max_upload_bytes)
    yield
    logger.info("Shutting down PDF Analyzer Service...")


# Create FastAPI application
app = FastAPI(
    title="PDF Analyzer API",
    description="Extracts summaries, tables and key figures from PDFs using a generative-AI API",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


@app.middleware("http")
async def security_headers(request: Request, call_next):
    """Add basic security headers to every response."""
    response = await call_next(request)
    for name, value in SECURITY_HEADERS.items():
        response.headers.setdefault(name, value)
    return response


# =============================================================================
# Include Routers
# =============================================================================

app.include_router(health.router)
app.include_router(analyze.router)


# =============================================================================
# Exception Handlers
# =============================================================================


def _session_id(request: Request) -> str | None:
    return getattr(request.state, "session_id", None)


@app.exception_handler(AnalysisError)
async def analysis_error_handler(request: Request, exc: AnalysisError):
    """Handle validation, configuration and upstream errors."""
    session_id = _session_id(request)
    logger.warning(
        "%s on %s (session %s): %s",
        type(exc).__name__,
        request.url.path,
        session_id,
        exc.message,
    )
    return error_response(exc, session_id)


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    """Handle malformed form submissions (e.g. a text value in the pdf field)."""
    logger.warning("Invalid request on %s: %s", request.url.path, exc.errors())
    return envelope_response(
        error_envelope("Invalid upload request. Send one PDF file in the 'pdf' field."),
        status_code=400,
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Wrap framework HTTP errors (bad multipart body, 404, 405) in the envelope."""
    response = envelope_response(
        error_envelope(str(exc.detail), _session_id(request)),
        status_code=exc.status_code,
    )
    if exc.headers:
        response.headers.update(exc.headers)
    return response


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    """Last resort: anything that escaped the routes still gets an envelope."""
    session_id = _session_id(request)
    logger.exception("Unhandled error on %s (session %s)", request.url.path, session_id)
    return error_response(exc, session_id)


# =============================================================================
# Static Files
# =============================================================================

# Mounted last so the /api routes take precedence
_static_dir = get_settings().static_dir
if _static_dir.is_dir():
    app.mount("/", StaticFiles(directory=_static_dir, html=True), name="static")
else:
    logger.info("Static directory %s not found; serving API only", _static_dir)
