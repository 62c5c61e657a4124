"""
Response parsing for free-text model replies.

The model is asked for strict JSON but does not always comply. Replies are
run through a fixed sequence of strategies, first match wins:

1. json            - the whole reply is a JSON object
2. embedded_json   - a JSON object is wrapped in prose or code fences
3. markdown_table  - no JSON, but one or more pipe-delimited tables
4. empty           - nothing recoverable; default structure

Parsing never raises. Anything other than the first strategy is a
degradation that gets logged, not an error.
"""

import json
import logging
import math
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ...models import AnalysisResult
from .normalization import empty_result, normalize_result

logger = logging.getLogger(__name__)


class ParseStrategy(str, Enum):
    """Which parser stage produced the result."""

    JSON = "json"
    EMBEDDED_JSON = "embedded_json"
    MARKDOWN_TABLE = "markdown_table"
    EMPTY = "empty"


@dataclass
class ParseOutcome:
    """Normalized result plus the strategy that recovered it."""

    data: dict[str, Any]
    strategy: ParseStrategy
    notes: list[str] = field(default_factory=list)

    @property
    def degraded(self) -> bool:
        return self.strategy is not ParseStrategy.JSON

    def to_result(self) -> AnalysisResult:
        return AnalysisResult.model_validate(self.data)


# =============================================================================
# JSON Strategies
# =============================================================================


def _finite_float(text: str) -> float | None:
    value = float(text)
    return value if math.isfinite(value) else None


def _loads_object(text: str) -> dict[str, Any] | None:
    # NaN, Infinity and overflowing numbers decode as null
    try:
        value = json.loads(text, parse_float=_finite_float, parse_constant=lambda name: None)
    except (json.JSONDecodeError, RecursionError):
        return None
    return value if isinstance(value, dict) else None


def parse_strict_json(text: str) -> dict[str, Any] | None:
    """Parse the reply as a JSON object if it is nothing but one."""
    text = text.strip()
    if text.startswith("{") and text.endswith("}"):
        return _loads_object(text)
    return None


def find_balanced_object(text: str, start: int) -> str | None:
    """
    Return the substring from `start` (a '{') to its matching '}'.

    Braces inside JSON strings are ignored. Returns None if the object is
    never closed (e.g. the reply was truncated).
    """
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        char = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
        elif char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start:i + 1]
    return None


def parse_embedded_json(text: str) -> dict[str, Any] | None:
    """
    Recover a JSON object surrounded by prose or code fences.

    Tries the balanced object starting at the first '{' and then the span
    from the first '{' to the last '}'.
    """
    start = text.find("{")
    if start == -1:
        return None

    candidate = find_balanced_object(text, start)
    if candidate is not None:
        parsed = _loads_object(candidate)
        if parsed is not None:
            return parsed

    end = text.rfind("}")
    if end > start:
        return _loads_object(text[start:end + 1])
    return None


# =============================================================================
# Markdown Table Strategy
# =============================================================================

SEPARATOR_CELL = re.compile(r"^:?-+:?$")
HEADING_LINE = re.compile(r"^(?:#{1,6}\s+|\*\*)(?P<title>.+?)(?:\*\*)?:?\s*$")


def split_table_row(line: str) -> list[str]:
    """
    Split a pipe-delimited row into trimmed cells.

    Only the empty cells produced by a leading or trailing pipe are dropped;
    empty cells in the middle of the row are kept.
    """
    cells = [cell.strip() for cell in line.strip().split("|")]
    if cells and cells[0] == "":
        cells = cells[1:]
    if cells and cells[-1] == "":
        cells = cells[:-1]
    return cells


def _is_table_line(line: str) -> bool:
    return "|" in line and bool(line.strip())


def _is_separator_line(line: str) -> bool:
    cells = split_table_row(line)
    return bool(cells) and all(SEPARATOR_CELL.match(cell.replace(" ", "")) for cell in cells)


def _heading_before(lines: list[str], index: int) -> str:
    for line in reversed(lines[:index]):
        stripped = line.strip()
        if not stripped:
            continue
        match = HEADING_LINE.match(stripped)
        return match.group("title").strip() if match else ""
    return ""


def parse_markdown_tables(text: str) -> list[dict[str, Any]]:
    """
    Extract every pipe-delimited markdown table from the text.

    A table is a header row, a separator row of dashes/colons, and at least
    one data row.
    """
    lines = text.splitlines()
    tables: list[dict[str, Any]] = []
    i = 0
    while i < len(lines) - 2:
        header_line, separator_line = lines[i], lines[i + 1]
        if not (_is_table_line(header_line) and _is_separator_line(separator_line)):
            i += 1
            continue

        headers = split_table_row(header_line)
        rows = []
        j = i + 2
        while j < len(lines) and _is_table_line(lines[j]) and not _is_separator_line(lines[j]):
            rows.append(split_table_row(lines[j]))
            j += 1

        if headers and rows:
            title = _heading_before(lines, i) or f"Table {len(tables) + 1}"
            tables.append(
                {
                    "title": title,
                    "description": "",
                    "headers": headers,
                    "rows": rows,
                    "location": "",
                }
            )
        i = max(j, i + 1)
    return tables


# =============================================================================
# Pipeline
# =============================================================================


def parse_model_output(text: str | None) -> ParseOutcome:
    """
    Turn a raw model reply into the normalized result structure.

    Args:
        text: The model's reply text.

    Returns:
        ParseOutcome with normalized data and the strategy used.
    """
    text = (text or "").strip()

    parsed = parse_strict_json(text)
    if parsed is not None:
        return ParseOutcome(normalize_result(parsed), ParseStrategy.JSON)

    parsed = parse_embedded_json(text)
    if parsed is not None:
        logger.warning("Model reply was not pure JSON; recovered embedded object")
        return ParseOutcome(
            normalize_result(parsed),
            ParseStrategy.EMBEDDED_JSON,
            notes=["Recovered JSON object embedded in surrounding text"],
        )

    tables = parse_markdown_tables(text)
    if tables:
        logger.warning("Model reply had no JSON; parsed %d markdown table(s)", len(tables))
        return ParseOutcome(
            normalize_result({"summary": "", "tables": tables}),
            ParseStrategy.MARKDOWN_TABLE,
            notes=[f"Parsed {len(tables)} markdown table(s) from reply"],
        )

    logger.warning("Could not parse model reply (%d chars): %s", len(text), text[:200])
    return ParseOutcome(
        empty_result(),
        ParseStrategy.EMPTY,
        notes=["Model reply could not be parsed; returning empty result"],
    )
