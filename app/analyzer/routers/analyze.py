"""
Router for the PDF analysis endpoint.

Handles:
- Single PDF upload, validation, upstream analysis and parsed response
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, File, Request, UploadFile
from fastapi.responses import JSONResponse

from ..config import Settings, get_settings
from ..models import ResponseEnvelope
from ..responses import INTERNAL_ERROR_MESSAGE, envelope_response, new_session_id, success_envelope
from ..services.ai import AnalysisError, AnalysisService, get_analysis_service
from ..services.upload_service import UploadService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["analyze"])


def get_upload_service(settings: Settings = Depends(get_settings)) -> UploadService:
    """FastAPI dependency returning an upload validator for the configured limits."""
    return UploadService.from_settings(settings)


@router.post(
    "/analyze",
    response_model=ResponseEnvelope,
    responses={
        400: {"model": ResponseEnvelope, "description": "Invalid or missing PDF"},
        500: {"model": ResponseEnvelope, "description": "Configuration or internal error"},
        502: {"model": ResponseEnvelope, "description": "Upstream AI service failure"},
    },
)
async def analyze_pdf(
    request: Request,
    pdf: Annotated[UploadFile | None, File(description="PDF file to analyze")] = None,
    settings: Settings = Depends(get_settings),
    upload_service: UploadService = Depends(get_upload_service),
    analysis_service: AnalysisService = Depends(get_analysis_service),
) -> JSONResponse:
    """
    Upload a PDF and return its parsed analysis.

    The file is validated, sent inline to the AI API, and the reply is
    parsed into summary, tables and key figures. A reply that cannot be
    parsed still returns 200 with empty structured data.
    """
    session_id = new_session_id()
    # Read back by the exception handlers in main
    request.state.session_id = session_id
    logger.info("Session %s: upload received", session_id)

    try:
        document = await upload_service.read_upload(pdf)
        logger.info("Session %s: analyzing %s", session_id, document.filename)

        outcome = await analysis_service.analyze(document)

        logger.info(
            "Session %s: analysis complete (strategy=%s, %d table(s))",
            session_id,
            outcome.strategy.value,
            len(outcome.result.tables),
        )

        envelope = success_envelope(
            session_id,
            document,
            outcome.result,
            logs=outcome.logs if settings.debug else None,
        )
        return envelope_response(envelope)

    except AnalysisError:
        raise
    except Exception as e:
        logger.exception("Unexpected error analyzing upload (session %s)", session_id)
        raise AnalysisError(INTERNAL_ERROR_MESSAGE) from e
