"""
Schema normalization for parsed model output.

Handles:
- Default filling (summary, tables, artworks, otherStructuredData)
- Table shape repair (rows padded or truncated to the header count)
- Price cleanup for price-like fields

Every function here is idempotent: normalizing an already normalized
structure returns an equal structure.
"""

import json
import logging
import math
import re
from decimal import Decimal, InvalidOperation
from typing import Any

from price_parser import Price

logger = logging.getLogger(__name__)

PRICE_KEY_PATTERN = re.compile(r"price", re.IGNORECASE)

# An optional currency symbol or code around one number with thousands separators
AMOUNT_TEXT = re.compile(
    r"^(?:[A-Z]{1,3}\$?|[^\w\s.,-]{1,3})?\s*"
    r"-?\d{1,3}(?:[,\s]?\d{3})*(?:\.\d+)?"
    r"\s*(?:[A-Z]{3}|[^\w\s.,-]{1,3})?$"
)


# =============================================================================
# Price Helpers
# =============================================================================


def is_price_field(name: Any) -> bool:
    """Whether a field or column name looks like it holds a price."""
    return isinstance(name, str) and bool(PRICE_KEY_PATTERN.search(name))


def parse_price(value: Any) -> Decimal | None:
    """
    Parse a price-like value to a Decimal.

    Strips currency symbols and thousands separators:
    - "$1,234.56" -> Decimal("1234.56")
    - "1,200" -> Decimal("1200")
    - 99.5 -> Decimal("99.5")

    Returns None when no amount can be recovered, or when the text holds
    anything besides a single amount (e.g. "2 for $10", "Lot 12 - on request").
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, (int, float)):
        try:
            return Decimal(str(value))
        except InvalidOperation:
            return None
    if not isinstance(value, str):
        return None

    value = value.strip()
    if not AMOUNT_TEXT.match(value):
        return None

    price = Price.fromstring(value, decimal_separator=".")
    return price.amount


def format_price(amount: Decimal | float | int) -> str:
    """Render an amount with two fraction digits and thousands separators."""
    return f"{Decimal(str(amount)):,.2f}"


def _price_number(amount: Decimal) -> int | float:
    if amount == amount.to_integral_value():
        return int(amount)
    return float(amount)


def clean_prices(data: Any) -> Any:
    """
    Recursively convert values under price-like keys to numbers.

    Values that cannot be parsed are left untouched.
    """
    if isinstance(data, dict):
        cleaned: dict[str, Any] = {}
        for key, value in data.items():
            if is_price_field(key) and not isinstance(value, (dict, list)):
                amount = parse_price(value)
                cleaned[key] = _price_number(amount) if amount is not None else value
            else:
                cleaned[key] = clean_prices(value)
        return cleaned
    if isinstance(data, list):
        return [clean_prices(item) for item in data]
    return data


# =============================================================================
# Table Normalization
# =============================================================================


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    return str(value)


def fit_row(row: list[Any], width: int) -> list[Any]:
    """Pad a row with empty strings or truncate it to exactly `width` cells."""
    if len(row) < width:
        return row + [""] * (width - len(row))
    return row[:width]


def _coerce_row(row: Any, headers: list[str]) -> list[Any]:
    if isinstance(row, list):
        return list(row)
    if isinstance(row, dict):
        return [row.get(header, "") for header in headers]
    if row is None:
        return []
    return [row]


def normalize_table(table: dict[str, Any]) -> dict[str, Any]:
    """
    Normalize one table so that every row matches the header count.

    Row objects are mapped onto header order. When headers are missing they
    are taken from the first row object, or generated as "Column N" from the
    widest row.
    """
    normalized = dict(table)
    raw_rows = table.get("rows")
    if not isinstance(raw_rows, list):
        raw_rows = []

    raw_headers = table.get("headers")
    if isinstance(raw_headers, list) and raw_headers:
        headers = [_cell_text(h) for h in raw_headers]
    else:
        first_object = next((r for r in raw_rows if isinstance(r, dict)), None)
        if first_object is not None:
            headers = [_cell_text(k) for k in first_object]
        else:
            width = max((len(r) for r in raw_rows if isinstance(r, list)), default=0)
            headers = [f"Column {i}" for i in range(1, width + 1)]

    price_columns = [i for i, header in enumerate(headers) if is_price_field(header)]

    rows = []
    for raw_row in raw_rows:
        row = fit_row(_coerce_row(raw_row, headers), len(headers))
        for i in price_columns:
            amount = parse_price(row[i])
            if amount is not None:
                row[i] = format_price(amount)
        rows.append(row)

    for key in ("title", "description"):
        value = table.get(key)
        normalized[key] = value if isinstance(value, str) else _cell_text(value)
    location = table.get("location")
    normalized["location"] = "" if location is None else location
    normalized["headers"] = headers
    normalized["rows"] = rows
    return normalized


# =============================================================================
# Result Normalization
# =============================================================================


def _as_list(value: Any) -> list[Any]:
    if isinstance(value, list):
        return value
    return []


def _normalize_summary(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def _normalize_other_data(value: Any) -> dict[str, Any]:
    other = dict(value) if isinstance(value, dict) else {}

    key_figures = other.get("key_figures")
    if not isinstance(key_figures, dict):
        key_figures = {"values": {}}
    elif "values" not in key_figures:
        key_figures = {"values": key_figures}
    elif not isinstance(key_figures["values"], dict):
        key_figures = {**key_figures, "values": {}}
    other["key_figures"] = key_figures

    other["lists"] = _as_list(other.get("lists"))
    return other


def empty_result() -> dict[str, Any]:
    """The default structure returned when nothing could be parsed."""
    return normalize_result({})


def normalize_result(data: dict[str, Any]) -> dict[str, Any]:
    """
    Coerce a parsed model reply into the fixed result schema.

    Args:
        data: Raw JSON object (or table-derived dict) from the parser.

    Returns:
        Dictionary with summary, tables, artworks and otherStructuredData
        always present. Unknown keys are preserved.
    """
    result = dict(data)
    result["summary"] = _normalize_summary(data.get("summary"))

    tables = []
    for table in _as_list(data.get("tables")):
        if isinstance(table, dict):
            tables.append(normalize_table(table))
        else:
            logger.debug("Dropping non-object table entry: %r", table)
    result["tables"] = tables

    result["artworks"] = _as_list(data.get("artworks"))
    result["otherStructuredData"] = _normalize_other_data(data.get("otherStructuredData"))

    # Table cells are formatted for display above; everything else gets numeric prices
    return {
        key: value if key in ("summary", "tables") else clean_prices({key: value})[key]
        for key, value in result.items()
    }
