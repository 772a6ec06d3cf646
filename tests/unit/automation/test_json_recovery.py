"""
Unit tests for staged JSON recovery of model responses.
"""

import json

import pytest

from automation.errors import JSONRecoveryError
from automation.json_recovery import (
    balance_brackets,
    extract_json_candidate,
    parse_json_response,
    repair_json,
    strip_fences,
)


CLEAN = {"size": {"width": 5, "height": 4, "depth": 5}, "palette": ["stone", "glass"], "steps": [{"op": "set"}]}


class TestParseJsonResponse:
    """Tests for parse_json_response stages."""

    def test_clean_response(self):
        """Valid JSON parses directly."""
        assert parse_json_response(json.dumps(CLEAN)) == CLEAN

    def test_fenced_with_trailing_comma(self):
        """Fenced output with trailing commas parses to the clean object."""
        text = (
            "Here is the blueprint:\n```json\n"
            '{"size": {"width": 5, "height": 4, "depth": 5,}, '
            '"palette": ["stone", "glass",], "steps": [{"op": "set"},],}\n'
            "```\nLet me know if you need changes."
        )
        assert parse_json_response(text) == CLEAN

    def test_prose_around_object(self):
        """Text before and after the object is ignored."""
        text = "Sure! " + json.dumps(CLEAN) + " Enjoy."
        assert parse_json_response(text) == CLEAN

    def test_truncated_response(self):
        """A response cut off mid-element keeps the complete elements."""
        text = '{"palette": ["stone", "glass"], "steps": [{"op": "set", "block": "stone"}, {"op": "fi'
        data = parse_json_response(text)
        assert data == {"palette": ["stone", "glass"], "steps": [{"op": "set", "block": "stone"}]}

    def test_missing_comma_between_elements(self):
        """Adjacent objects get the missing separator."""
        text = '{"steps": [{"op": "set"} {"op": "fill"}]}'
        assert parse_json_response(text) == {"steps": [{"op": "set"}, {"op": "fill"}]}

    def test_newline_inside_string(self):
        """Raw newlines inside strings are turned into spaces."""
        text = '{"description": "a small\nhouse",}'
        assert parse_json_response(text) == {"description": "a small house"}

    def test_array_response(self):
        """Top-level arrays are supported."""
        assert parse_json_response("```\n[1, 2, 3,]\n```") == [1, 2, 3]

    def test_no_json(self):
        """Text without any bracket raises JSONRecoveryError."""
        with pytest.raises(JSONRecoveryError, match="no valid JSON object found"):
            parse_json_response("I cannot help with that.", label="blueprint")

    def test_none(self):
        """An empty response raises JSONRecoveryError."""
        with pytest.raises(JSONRecoveryError):
            parse_json_response(None)


class TestRepairHelpers:
    """Tests for the individual repair helpers."""

    def test_strip_fences(self):
        """Fences with and without a language tag are removed."""
        assert strip_fences("```json\n{}\n```") == "{}"
        assert strip_fences("```\n[]\n```") == "[]"

    def test_extract_candidate(self):
        """The candidate spans first opener to last closer."""
        assert extract_json_candidate('x {"a": [1]} y') == '{"a": [1]}'
        assert extract_json_candidate("nothing here") is None

    def test_balance_brackets(self):
        """Missing closers are appended in order."""
        assert balance_brackets('{"a": [1, 2') == '{"a": [1]}'
        assert balance_brackets('{"a": 1}') == '{"a": 1}'

    def test_repair_is_idempotent(self):
        """Repairing repaired text changes nothing."""
        broken = '{"a": [1, 2,], "b": {"c": "d"} "e": 3}'
        once = repair_json(broken)
        assert repair_json(once) == once
        assert json.loads(once) == {"a": [1, 2], "b": {"c": "d"}, "e": 3}

    def test_string_contents_untouched(self):
        """Bracket and quote sequences inside strings are not repaired."""
        text = '{"note": "ends with } {starts ] \\"quoted\\"", "tags": ["a" "b",], "steps": [{"op": "set"} {"op": "fill"}]}'
        assert parse_json_response(text) == {
            "note": 'ends with } {starts ] "quoted"',
            "tags": ["a", "b"],
            "steps": [{"op": "set"}, {"op": "fill"}],
        }

    def test_trailing_comma_inside_string_kept(self):
        assert repair_json('{"a": "x,]", "b": [1,]}') == '{"a": "x,]", "b": [1]}'
