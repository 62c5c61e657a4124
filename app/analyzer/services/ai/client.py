"""
Client for the upstream generative-AI API.

Talks to any OpenAI-compatible chat completions endpoint through the
openai SDK. Provider errors are logged here and re-raised as a single
UpstreamError with a generic message.
"""

import json
import logging
from typing import Any, NoReturn

import httpx
import openai
from openai import AsyncOpenAI

from ...config import Settings
from ...models import AnalysisRequest, UpstreamReply
from .exceptions import ConfigurationError, PayloadTooLargeError, UpstreamError

logger = logging.getLogger(__name__)

UNAVAILABLE_MESSAGE = "The analysis service is temporarily unavailable. Please try again later."
REJECTED_MESSAGE = "The analysis service could not process this document."
INVALID_REPLY_MESSAGE = "The analysis service returned an unusable response."

# Statuses the SDK already retries; anything else in 4xx is a request problem
RETRYABLE_STATUSES = frozenset({408, 409, 429})


class UpstreamClient:
    """
    Sends analysis requests to the configured endpoint.

    A fresh SDK client is opened per call and closed when the call ends,
    so nothing is shared between requests.
    """

    def __init__(
        self,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the upstream client.

        Args:
            settings: Application settings with endpoint, credential and limits.
            transport: Optional httpx transport (used by tests to fake the API).
        """
        self.settings = settings
        self._transport = transport

    def check_configuration(self) -> None:
        """Fail fast when the endpoint or credential is missing."""
        if not self.settings.ai_base_url:
            raise ConfigurationError(
                "AI endpoint is not configured. Set the AI_BASE_URL environment variable."
            )
        if not self.settings.ai_api_key:
            raise ConfigurationError(
                "AI credential is not configured. Set the AI_API_KEY environment variable."
            )

    def _build_client(self) -> AsyncOpenAI:
        settings = self.settings
        default_query = None
        if settings.ai_auth_mode == "query":
            default_query = {"key": settings.ai_api_key}

        http_client = None
        if self._transport is not None:
            http_client = httpx.AsyncClient(
                transport=self._transport,
                timeout=settings.request_timeout_seconds,
            )

        return AsyncOpenAI(
            api_key=settings.ai_api_key,
            base_url=settings.ai_base_url,
            timeout=settings.request_timeout_seconds,
            max_retries=settings.max_retries,
            default_query=default_query,
            http_client=http_client,
        )

    def _request_body(self, request: AnalysisRequest) -> dict[str, Any]:
        return {
            "model": request.model,
            "messages": request.to_messages(),
            "temperature": request.generation.temperature,
            "max_tokens": request.generation.max_tokens,
            "top_p": request.generation.top_p,
        }

    async def complete(self, request: AnalysisRequest) -> UpstreamReply:
        """
        POST the analysis request and return the model's reply.

        Raises:
            ConfigurationError: Endpoint or credential missing (no network call made).
            PayloadTooLargeError: Serialized request exceeds max_request_bytes.
            UpstreamError: Network failure, timeout, non-2xx status or unusable reply.
        """
        self.check_configuration()

        body = self._request_body(request)
        body_size = len(json.dumps(body).encode("utf-8"))
        if body_size > self.settings.max_request_bytes:
            raise PayloadTooLargeError(
                f"Document is too large to send for analysis "
                f"({body_size} bytes encoded, limit {self.settings.max_request_bytes})."
            )

        logger.info(
            "Calling upstream model %s (%d byte request, timeout=%.0fs)",
            request.model,
            body_size,
            self.settings.request_timeout_seconds,
        )

        async with self._build_client() as client:
            try:
                response = await client.chat.completions.with_raw_response.create(**body)
            except openai.APITimeoutError as e:
                logger.error("Upstream request timed out: %s", e)
                raise UpstreamError(UNAVAILABLE_MESSAGE, retryable=True) from e
            except openai.APIConnectionError as e:
                logger.error("Upstream connection failed: %s", e)
                raise UpstreamError(UNAVAILABLE_MESSAGE, retryable=True) from e
            except openai.APIStatusError as e:
                self._raise_for_status(e)
            except openai.APIError as e:
                logger.error("Upstream request failed: %s", e)
                raise UpstreamError(INVALID_REPLY_MESSAGE) from e

            return self._read_reply(response)

    def _raise_for_status(self, error: openai.APIStatusError) -> NoReturn:
        status = error.status_code
        logger.error("Upstream returned HTTP %d: %s", status, error.message)
        if status >= 500 or status in RETRYABLE_STATUSES:
            raise UpstreamError(UNAVAILABLE_MESSAGE, retryable=True, upstream_status=status) from error
        raise UpstreamError(REJECTED_MESSAGE, retryable=False, upstream_status=status) from error

    def _read_reply(self, response: Any) -> UpstreamReply:
        http_response: httpx.Response = response.http_response
        if len(http_response.content) > self.settings.max_response_bytes:
            logger.error(
                "Upstream reply too large: %d bytes (limit %d)",
                len(http_response.content),
                self.settings.max_response_bytes,
            )
            raise UpstreamError(INVALID_REPLY_MESSAGE)

        try:
            raw = http_response.json()
        except ValueError as e:
            logger.error("Upstream reply is not JSON: %s", http_response.text[:500])
            raise UpstreamError(INVALID_REPLY_MESSAGE) from e

        if not isinstance(raw, dict):
            logger.error("Upstream reply has unexpected type: %s", type(raw).__name__)
            raise UpstreamError(INVALID_REPLY_MESSAGE)

        choices = raw.get("choices")
        if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
            logger.error("Upstream reply has no choices: %s", json.dumps(raw)[:500])
            raise UpstreamError(INVALID_REPLY_MESSAGE)

        choice = choices[0]
        message = choice.get("message") or {}
        text = message.get("content") if isinstance(message, dict) else None
        if not isinstance(text, str) or not text.strip():
            logger.error(
                "Upstream reply has no text content (finish_reason=%s)",
                choice.get("finish_reason"),
            )
            raise UpstreamError(INVALID_REPLY_MESSAGE)

        finish_reason = choice.get("finish_reason")
        if finish_reason == "length":
            logger.warning("Upstream reply was cut off by the token limit")

        logger.info("Upstream reply received (%d chars)", len(text))
        return UpstreamReply(
            text=text,
            raw=raw,
            model=raw.get("model"),
            finish_reason=finish_reason,
        )
