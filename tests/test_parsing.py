"""Tests for the model reply parser."""

import json

import pytest

from app.analyzer.models import AnalysisResult
from app.analyzer.services.ai.parsing import (
    ParseStrategy,
    find_balanced_object,
    parse_embedded_json,
    parse_markdown_tables,
    parse_model_output,
    parse_strict_json,
    split_table_row,
)


class TestStrictJson:
    """Tests for the fast JSON path."""

    def test_plain_object(self):
        """Test that a bare JSON object is parsed."""
        assert parse_strict_json('  {"summary": "x"}\n') == {"summary": "x"}

    def test_rejects_prose(self):
        """Test that text not starting with '{' is left to the fallbacks."""
        assert parse_strict_json('Here: {"summary": "x"}') is None

    def test_rejects_array(self):
        """Test that only objects are accepted."""
        assert parse_strict_json("[1, 2]") is None

    def test_rejects_malformed(self):
        """Test that malformed JSON returns None instead of raising."""
        assert parse_strict_json('{"summary": }') is None

    def test_non_finite_numbers_become_null(self):
        """Test that NaN, Infinity and overflowing numbers decode as null."""
        parsed = parse_strict_json('{"score": NaN, "high": Infinity, "low": -Infinity, "price": 1e999, "ok": 1.5}')
        assert parsed == {"score": None, "high": None, "low": None, "price": None, "ok": 1.5}


class TestEmbeddedJson:
    """Tests for recovering JSON from surrounding text."""

    def test_prose_wrapped(self):
        """Test the conversational wrapper case."""
        text = 'Sure! Here\'s the data: {"summary":"x","tables":[]} Hope that helps!'
        assert parse_embedded_json(text) == {"summary": "x", "tables": []}

    def test_code_fence(self):
        """Test JSON inside a markdown code fence."""
        text = '```json\n{"summary": "fenced"}\n```'
        assert parse_embedded_json(text) == {"summary": "fenced"}

    def test_braces_inside_strings(self):
        """Test that braces in string values do not end the object early."""
        text = 'Result: {"summary": "uses {curly} braces \\" and quotes"} done {'
        assert parse_embedded_json(text) == {"summary": 'uses {curly} braces " and quotes'}

    def test_first_object_wins(self):
        """Test that the first complete object is taken when several appear."""
        text = 'A {"summary": "one"} and B {"summary": "two"}'
        assert parse_embedded_json(text) == {"summary": "one"}

    def test_truncated_json(self):
        """Test that a reply cut off mid-object is not recoverable as JSON."""
        assert parse_embedded_json('Here you go: {"summary": "cut off') is None

    def test_balanced_object_unclosed(self):
        """Test that an unclosed object returns None."""
        assert find_balanced_object('{"a": {"b": 1}', 0) is None


class TestMarkdownTables:
    """Tests for pipe-delimited table extraction."""

    def test_split_row_keeps_middle_empty_cells(self):
        """Test that only the outer empty cells are dropped."""
        assert split_table_row("| a |  | c |") == ["a", "", "c"]
        assert split_table_row("a | b") == ["a", "b"]

    def test_single_table(self):
        """Test a header, separator and two data rows."""
        text = (
            "Here is what I found:\n\n"
            "| Name | Qty |\n"
            "| :--- | ---: |\n"
            "| Bolt | 4 |\n"
            "| Nut | 10 |\n"
        )
        tables = parse_markdown_tables(text)
        assert len(tables) == 1
        assert tables[0]["headers"] == ["Name", "Qty"]
        assert tables[0]["rows"] == [["Bolt", "4"], ["Nut", "10"]]
        assert tables[0]["title"] == "Table 1"

    def test_heading_becomes_title(self):
        """Test that a heading directly above a table is used as its title."""
        text = "## Inventory\n\n| A | B |\n|---|---|\n| 1 | 2 |"
        assert parse_markdown_tables(text)[0]["title"] == "Inventory"

    def test_multiple_tables(self):
        """Test that every table in the reply is returned."""
        text = (
            "| A | B |\n|---|---|\n| 1 | 2 |\n"
            "\n"
            "**Second**\n"
            "| C |\n|---|\n| 3 |\n| 4 |\n"
        )
        tables = parse_markdown_tables(text)
        assert [t["title"] for t in tables] == ["Table 1", "Second"]
        assert tables[1]["rows"] == [["3"], ["4"]]

    def test_header_without_rows_ignored(self):
        """Test that a table needs at least one data row."""
        assert parse_markdown_tables("| A | B |\n|---|---|\n") == []

    def test_no_separator_ignored(self):
        """Test that pipes alone do not make a table."""
        assert parse_markdown_tables("a | b\nc | d\ne | f") == []

    @pytest.mark.parametrize("separator", ["|-|-|", "| -- | -- |", "| -- | :-: |"])
    def test_short_separators(self, separator):
        """Test that separator cells need only one dash."""
        text = f"| Item | Qty |\n{separator}\n| Lamp | 1 |\n| Desk | 2 |"
        tables = parse_markdown_tables(text)
        assert len(tables) == 1
        assert tables[0]["rows"] == [["Lamp", "1"], ["Desk", "2"]]

    def test_compact_table_reply(self):
        """Test that a compact table reply is recovered instead of dropped."""
        outcome = parse_model_output("| Item | Qty |\n|-|-|\n| Lamp | 1 |\n| Desk | 2 |")
        assert outcome.strategy is ParseStrategy.MARKDOWN_TABLE


class TestParseModelOutput:
    """Tests for the full parse pipeline."""

    def test_valid_json_uses_fast_path(self):
        """Test that valid JSON is parsed directly."""
        outcome = parse_model_output('{"summary": "Report", "tables": []}')
        assert outcome.strategy is ParseStrategy.JSON
        assert outcome.degraded is False
        assert outcome.data["summary"] == "Report"

    def test_embedded_json_recovered(self):
        """Test the prose-wrapped reply."""
        outcome = parse_model_output(
            'Sure! Here\'s the data: {"summary":"x","tables":[]} Hope that helps!'
        )
        assert outcome.strategy is ParseStrategy.EMBEDDED_JSON
        assert outcome.data["summary"] == "x"
        assert outcome.data["tables"] == []

    def test_markdown_only(self):
        """Test that a markdown-only reply produces table data and empty summary."""
        outcome = parse_model_output(
            "| Artist | Title |\n|---|---|\n| Monet | Water Lilies |\n| Degas | Dancers |"
        )
        assert outcome.strategy is ParseStrategy.MARKDOWN_TABLE
        assert outcome.data["summary"] == ""
        table = outcome.data["tables"][0]
        assert table["headers"] == ["Artist", "Title"]
        assert table["rows"] == [["Monet", "Water Lilies"], ["Degas", "Dancers"]]

    def test_json_wins_over_table(self):
        """Test that a JSON object is preferred when a table is also present."""
        text = (
            "| A | B |\n|---|---|\n| 1 | 2 |\n\n"
            '{"summary": "from json", "tables": []}'
        )
        outcome = parse_model_output(text)
        assert outcome.strategy is ParseStrategy.EMBEDDED_JSON
        assert outcome.data["summary"] == "from json"
        assert outcome.data["tables"] == []

    @pytest.mark.parametrize("text", ["I cannot process this file.", "", None, "   "])
    def test_unparseable_returns_empty(self, text):
        """Test that unparseable replies give the default structure."""
        outcome = parse_model_output(text)
        assert outcome.strategy is ParseStrategy.EMPTY
        assert outcome.data["summary"] == ""
        assert outcome.data["tables"] == []
        assert outcome.notes

    def test_result_defaults_filled(self):
        """Test that default keys are filled for a minimal object."""
        outcome = parse_model_output("{}")
        assert outcome.data == {
            "summary": "",
            "tables": [],
            "artworks": [],
            "otherStructuredData": {"key_figures": {"values": {}}, "lists": []},
        }

    def test_idempotent_on_reserialization(self):
        """Test that parsing the output's own JSON gives the same output."""
        reply = json.dumps(
            {
                "summary": "Catalogue",
                "tables": [
                    {
                        "title": "Lots",
                        "headers": ["Lot", "Price"],
                        "rows": [["1", "$1,500"], ["2"], ["3", "900", "extra"]],
                    }
                ],
                "artworks": [{"title": "Untitled", "price": "$2,000.50"}],
                "otherStructuredData": {"key_figures": {"values": {"total_price": "3,500"}}},
                "currency": "USD",
            }
        )
        first = parse_model_output(reply).data
        second = parse_model_output(json.dumps(first)).data
        assert first == second
        assert first["currency"] == "USD"

    def test_to_result_model(self):
        """Test conversion to the AnalysisResult model."""
        outcome = parse_model_output(
            '{"summary": "s", "tables": [{"headers": ["a"], "rows": [["1"]]}], "extra": 1}'
        )
        result = outcome.to_result()
        assert isinstance(result, AnalysisResult)
        assert result.tables[0].headers == ["a"]
        structured = result.structured_data()
        assert structured["extra"] == 1
        assert "otherStructuredData" in structured
        assert "summary" not in structured
