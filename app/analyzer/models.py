"""
Pydantic models for the PDF analysis pipeline.

Defines the per-request document, the outbound analysis request, the
normalized analysis result and the uniform response envelope.
"""

import base64
import hashlib
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class UploadedDocument(BaseModel):
    """
    A single uploaded file, held fully in memory for one request.

    Attributes:
        content: Raw file bytes.
        filename: Original filename as sent by the client.
        size: Size of the content in bytes.
        mime_type: Declared MIME type of the upload.
    """

    content: bytes = Field(..., repr=False)
    filename: str = Field(default="document.pdf")
    size: int = Field(..., ge=0)
    mime_type: str = Field(default="application/pdf")

    def to_base64(self) -> str:
        """Encode the content for inline transmission."""
        return base64.b64encode(self.content).decode("ascii")

    @property
    def sha256(self) -> str:
        """Content hash, used for log correlation only."""
        return hashlib.sha256(self.content).hexdigest()


class GenerationParameters(BaseModel):
    """Sampling controls sent with every analysis request."""

    temperature: float = Field(default=0.1, ge=0.0, le=2.0)
    max_tokens: int = Field(default=2048, ge=1)
    top_p: float = Field(default=0.95, gt=0.0, le=1.0)


class AnalysisRequest(BaseModel):
    """Outbound payload for the upstream chat completions endpoint."""

    model: str
    system_instruction: str
    instruction: str
    filename: str
    mime_type: str
    data_base64: str = Field(..., repr=False)
    generation: GenerationParameters = Field(default_factory=GenerationParameters)

    @property
    def data_url(self) -> str:
        """Inline document as a data URL tagged with its MIME type."""
        return f"data:{self.mime_type};base64,{self.data_base64}"

    def to_messages(self) -> list[dict[str, Any]]:
        """Render the request as OpenAI-compatible chat messages."""
        return [
            {"role": "system", "content": self.system_instruction},
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": self.instruction},
                    {
                        "type": "file",
                        "file": {
                            "filename": self.filename,
                            "file_data": self.data_url,
                        },
                    },
                ],
            },
        ]


class UpstreamReply(BaseModel):
    """The model's reply text plus the provider's raw response structure."""

    text: str
    raw: dict[str, Any] = Field(default_factory=dict)
    model: str | None = None
    finish_reason: str | None = None


class Table(BaseModel):
    """
    A table recovered from the document.

    Invariant (after normalization): every row has exactly len(headers) cells.
    """

    model_config = ConfigDict(extra="allow")

    title: str = ""
    description: str = ""
    headers: list[str] = Field(default_factory=list)
    rows: list[list[Any]] = Field(default_factory=list)
    location: Any = ""


class KeyFigures(BaseModel):
    """Named numeric or textual figures pulled from the document."""

    model_config = ConfigDict(extra="allow")

    values: dict[str, Any] = Field(default_factory=dict)


class OtherStructuredData(BaseModel):
    """Auxiliary structured data: key figures and free-form lists."""

    model_config = ConfigDict(extra="allow")

    key_figures: KeyFigures = Field(default_factory=KeyFigures)
    lists: list[Any] = Field(default_factory=list)


class AnalysisResult(BaseModel):
    """
    Normalized output of the response parser.

    Unknown keys returned by the model are preserved as extras.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    summary: str = ""
    tables: list[Table] = Field(default_factory=list)
    artworks: list[Any] = Field(default_factory=list)
    other_structured_data: OtherStructuredData = Field(
        default_factory=OtherStructuredData,
        alias="otherStructuredData",
    )

    def structured_data(self) -> dict[str, Any]:
        """Everything except the summary, keyed as the model returned it."""
        data = self.model_dump(by_alias=True)
        data.pop("summary", None)
        return data


class AnalysisData(BaseModel):
    """Payload of a successful analysis response."""

    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(..., alias="sessionId")
    filename: str
    size: int = Field(..., ge=0)
    mime_type: str = Field(..., alias="mimeType")
    summary: str = ""
    structured_data: dict[str, Any] = Field(
        default_factory=dict,
        alias="structuredData",
    )
    logs: list[str] | None = None


class ResponseEnvelope(BaseModel):
    """Uniform success/error envelope returned by every API endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    message: str
    data: AnalysisData | None = None
    session_id: str = Field(..., alias="sessionId")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(default="healthy")
    timestamp: str = Field(..., description="Current server time (ISO 8601, UTC)")
    version: str = Field(default="1.0.0")
