"""
AI service package for PDF analysis.

This package provides the analysis pipeline split into:
- prompts: the single request template and generation parameters
- client: the upstream OpenAI-compatible API client
- parsing: the JSON / markdown-table / empty fallback parser
- normalization: schema default filling, table repair and price cleanup

The AnalysisService class runs the stages in order for one document.
"""

import logging
from dataclasses import dataclass, field

import httpx
from fastapi import Depends

from ...config import Settings, get_settings
from ...models import AnalysisResult, UploadedDocument
from .client import UpstreamClient
from .exceptions import (
    AnalysisError,
    ConfigurationError,
    PayloadTooLargeError,
    UploadValidationError,
    UpstreamError,
)
from .parsing import ParseOutcome, ParseStrategy, parse_model_output
from .prompts import build_analysis_request

logger = logging.getLogger(__name__)

__all__ = [
    "AnalysisError",
    "AnalysisOutcome",
    "AnalysisService",
    "ConfigurationError",
    "ParseOutcome",
    "ParseStrategy",
    "PayloadTooLargeError",
    "UploadValidationError",
    "UpstreamClient",
    "UpstreamError",
    "get_analysis_service",
    "parse_model_output",
]


@dataclass
class AnalysisOutcome:
    """Result of analysing one document, with per-request processing logs."""

    result: AnalysisResult
    strategy: ParseStrategy
    logs: list[str] = field(default_factory=list)


class AnalysisService:
    """
    Runs one document through build request -> call upstream -> parse.

    Holds only read-only settings; every call builds its own request and
    upstream client, so one instance can serve concurrent requests.
    """

    def __init__(
        self,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the analysis service.

        Args:
            settings: Application settings.
            transport: Optional httpx transport for the upstream client.
        """
        self.settings = settings
        self.client = UpstreamClient(settings, transport=transport)

    async def analyze(self, document: UploadedDocument) -> AnalysisOutcome:
        """
        Analyze a validated document.

        Raises:
            ConfigurationError: Upstream endpoint or credential missing.
            PayloadTooLargeError: Encoded document exceeds the request body limit.
            UpstreamError: Upstream call failed or returned an unusable reply.
        """
        logs = [f"Received {document.filename} ({document.size} bytes)"]

        # Configuration problems must surface before the document is encoded
        self.client.check_configuration()

        request = build_analysis_request(document, self.settings)
        logs.append(f"Encoded document as {len(request.data_base64)} base64 characters")

        reply = await self.client.complete(request)
        logs.append(f"Received {len(reply.text)} characters from {reply.model or request.model}")
        if reply.finish_reason == "length":
            logs.append("Model reply was truncated by the token limit")

        outcome = parse_model_output(reply.text)
        logs.append(f"Parsed reply using {outcome.strategy.value} strategy")
        logs.extend(outcome.notes)
        if outcome.degraded:
            logger.warning(
                "Degraded parse for %s: strategy=%s",
                document.filename,
                outcome.strategy.value,
            )

        return AnalysisOutcome(
            result=outcome.to_result(),
            strategy=outcome.strategy,
            logs=logs,
        )


def get_analysis_service(settings: Settings = Depends(get_settings)) -> AnalysisService:
    """FastAPI dependency returning an analysis service bound to the settings."""
    return AnalysisService(settings)
