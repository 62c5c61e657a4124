"""
Prompt construction for document analysis.

A single deterministic template is used for every request so the model
always answers with the same JSON shape.
"""

import json
import logging

from ...config import Settings
from ...models import AnalysisRequest, GenerationParameters, UploadedDocument

logger = logging.getLogger(__name__)


# =============================================================================
# Analysis Prompts
# =============================================================================

ANALYSIS_SYSTEM_PROMPT = """You are a meticulous document analyst.
You read business and catalogue documents and report their content as strict JSON.
You never answer with prose, never use markdown, and never wrap the JSON in code fences."""

RESPONSE_SHAPE = {
    "summary": "Two to four sentences describing the document",
    "tables": [
        {
            "title": "Table title as printed, or a short descriptive title",
            "description": "What the table contains",
            "headers": ["Column 1", "Column 2"],
            "rows": [["value", "value"]],
            "location": "Page or section where the table appears",
        }
    ],
    "artworks": [
        {"title": "Item title", "artist": "Name or null", "price": 1234.5}
    ],
    "otherStructuredData": {
        "key_figures": {"values": {"figure_name": 0}},
        "lists": [{"title": "List title", "items": ["item"]}],
    },
}

ANALYSIS_RULES = (
    "Respond with ONE JSON object and nothing else.",
    "The response must start with '{' and end with '}'.",
    "Do not use markdown, code fences, or commentary.",
    "Use null for any value that is missing or unreadable.",
    "Every row in a table must have exactly as many values as the table has headers.",
    "Strip currency symbols and thousands separators from numeric fields "
    "(write 1234.5, not \"$1,234.50\").",
    "Use an empty array when the document has no tables, artworks, or lists.",
)


def build_analysis_prompt(filename: str) -> str:
    """Build the user instruction for one document."""
    rules = "\n".join(f"{i}. {rule}" for i, rule in enumerate(ANALYSIS_RULES, start=1))
    shape = json.dumps(RESPONSE_SHAPE, indent=2)

    return f"""Analyze the attached PDF document "{filename}".

Extract a short summary, every table, any priced items (artworks or products),
and notable key figures.

## Response Format (MUST follow this exact structure):
{shape}

## Rules:
{rules}"""


def build_analysis_request(document: UploadedDocument, settings: Settings) -> AnalysisRequest:
    """
    Build the outbound request for an uploaded document.

    Args:
        document: The validated upload.
        settings: Application settings (model and generation parameters).

    Returns:
        AnalysisRequest with the document embedded as inline base64 data.
    """
    request = AnalysisRequest(
        model=settings.ai_model,
        system_instruction=ANALYSIS_SYSTEM_PROMPT,
        instruction=build_analysis_prompt(document.filename),
        filename=document.filename,
        mime_type=document.mime_type,
        data_base64=document.to_base64(),
        generation=GenerationParameters(
            temperature=settings.temperature,
            max_tokens=settings.max_output_tokens,
            top_p=settings.top_p,
        ),
    )
    logger.debug(
        "Built analysis request for %s (model=%s, %d base64 chars)",
        document.filename,
        request.model,
        len(request.data_base64),
    )
    return request
