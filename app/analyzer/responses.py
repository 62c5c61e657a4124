"""
Uniform response envelope for the API.

Every /api/analyze response, success or failure, is a ResponseEnvelope
carrying a human-readable message and a per-request session id.
"""

import logging
import uuid

from fastapi import status
from fastapi.responses import JSONResponse

from .models import AnalysisData, AnalysisResult, ResponseEnvelope, UploadedDocument
from .services.ai.exceptions import AnalysisError, ConfigurationError, UpstreamError, UploadValidationError

logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "Internal server error"


def new_session_id() -> str:
    """Fresh correlation id; nothing is ever stored under it."""
    return str(uuid.uuid4())


def status_for_error(exc: Exception) -> int:
    """Map an error category to its HTTP status."""
    if isinstance(exc, UploadValidationError):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, ConfigurationError):
        return status.HTTP_500_INTERNAL_SERVER_ERROR
    if isinstance(exc, UpstreamError):
        return status.HTTP_502_BAD_GATEWAY
    if isinstance(exc, AnalysisError):
        return exc.status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def success_envelope(
    session_id: str,
    document: UploadedDocument,
    result: AnalysisResult,
    logs: list[str] | None = None,
) -> ResponseEnvelope:
    """Wrap a normalized result in the success envelope."""
    return ResponseEnvelope(
        success=True,
        message="File successfully analyzed",
        session_id=session_id,
        data=AnalysisData(
            session_id=session_id,
            filename=document.filename,
            size=document.size,
            mime_type=document.mime_type,
            summary=result.summary,
            structured_data=result.structured_data(),
            logs=logs,
        ),
    )


def error_envelope(message: str, session_id: str | None = None) -> ResponseEnvelope:
    """Build a failure envelope."""
    return ResponseEnvelope(
        success=False,
        message=message,
        session_id=session_id or new_session_id(),
    )


def envelope_response(envelope: ResponseEnvelope, status_code: int = status.HTTP_200_OK) -> JSONResponse:
    """Serialize an envelope with camelCase keys, omitting absent data."""
    # Nulls inside structuredData are kept; only the optional envelope keys are dropped
    content = envelope.model_dump(by_alias=True)
    if content["data"] is None:
        del content["data"]
    elif content["data"]["logs"] is None:
        del content["data"]["logs"]
    return JSONResponse(status_code=status_code, content=content)


def error_response(exc: Exception, session_id: str | None = None) -> JSONResponse:
    """
    Convert any exception into an error envelope response.

    Analysis errors carry a safe message; anything else is reported
    generically.
    """
    status_code = status_for_error(exc)
    if isinstance(exc, AnalysisError):
        message = exc.message
    else:
        message = INTERNAL_ERROR_MESSAGE
    return envelope_response(error_envelope(message, session_id), status_code)
