"""Pytest configuration and fixtures."""

import json
from typing import Any, Generator

import httpx
import pytest
from fastapi.testclient import TestClient

from app.analyzer.config import Settings, get_settings
from app.analyzer.main import app
from app.analyzer.services.ai import AnalysisService, get_analysis_service

UPSTREAM_URL = "https://upstream.test/v1"


def chat_completion(text: str | None, finish_reason: str = "stop") -> dict[str, Any]:
    """Build an OpenAI-style chat completion body around a reply text."""
    return {
        "id": "chatcmpl-test",
        "object": "chat.completion",
        "created": 1700000000,
        "model": "test-model",
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": text},
                "finish_reason": finish_reason,
            }
        ],
    }


class FakeUpstream:
    """
    Stand-in for the AI API, served through httpx.MockTransport.

    Records every request so tests can assert whether the network was used.
    """

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.status_code = 200
        self.reply_text: str | None = json.dumps({"summary": "A test document", "tables": []})
        self.body: Any = None
        self.error: Exception | None = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        if self.body is not None:
            if isinstance(self.body, (bytes, str)):
                return httpx.Response(self.status_code, content=self.body)
            return httpx.Response(self.status_code, json=self.body)
        return httpx.Response(self.status_code, json=chat_completion(self.reply_text))

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    @property
    def last_payload(self) -> dict[str, Any]:
        return json.loads(self.requests[-1].content)


def make_settings(**overrides: Any) -> Settings:
    """Settings for tests, never read from a local .env file."""
    values: dict[str, Any] = {
        "ai_api_key": "test-key",
        "ai_base_url": UPSTREAM_URL,
        "ai_model": "test-model",
        "max_retries": 0,
        "request_timeout_seconds": 5.0,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def fake_upstream() -> FakeUpstream:
    """A fresh fake upstream API per test."""
    return FakeUpstream()


@pytest.fixture
def settings() -> Settings:
    """Default test settings with a configured endpoint and credential."""
    return make_settings()


@pytest.fixture
def make_client(fake_upstream: FakeUpstream) -> Generator:
    """
    Factory for test clients bound to specific settings.

    Every client talks to the same fake upstream.
    """
    clients: list[TestClient] = []

    def _make(settings: Settings) -> TestClient:
        app.dependency_overrides[get_settings] = lambda: settings
        app.dependency_overrides[get_analysis_service] = lambda: AnalysisService(
            settings, transport=fake_upstream.transport
        )
        test_client = TestClient(app)
        test_client.__enter__()
        clients.append(test_client)
        return test_client

    yield _make

    for test_client in clients:
        test_client.__exit__(None, None, None)
    app.dependency_overrides.clear()


@pytest.fixture
def client(make_client, settings: Settings) -> TestClient:
    """Create a test client for the FastAPI application."""
    return make_client(settings)


@pytest.fixture
def sample_pdf_bytes() -> bytes:
    """
    Create a minimal valid PDF for testing.

    This is a minimal PDF structure that should be recognized as a valid PDF.
    """
    # Minimal valid PDF structure
    pdf_content = b"""%PDF-1.4
1 0 obj
<< /Type /Catalog /Pages 2 0 R >>
endobj
2 0 obj
<< /Type /Pages /Kids [3 0 R] /Count 1 >>
endobj
3 0 obj
<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] /Contents 4 0 R >>
endobj
4 0 obj
<< /Length 44 >>
stream
BT
/F1 12 Tf
100 700 Td
(Test) Tj
ET
endstream
endobj
xref
0 5
0000000000 65535 f 
0000000009 00000 n 
0000000058 00000 n 
0000000115 00000 n 
0000000214 00000 n 
trailer
<< /Size 5 /Root 1 0 R >>
startxref
306
%%EOF"""
    return pdf_content


@pytest.fixture
def invalid_file_bytes() -> bytes:
    """Create invalid (non-PDF) file bytes for testing."""
    return b"This is not a PDF file"
