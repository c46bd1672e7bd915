"""
Tests for JSON utilities, JSON-RPC templates and the request editor.
"""

import json

import pytest

from sse_inspector.jsonrpc.editor import RequestEditor
from sse_inspector.jsonrpc.json_value import (
    format_json,
    minify_json,
    parse_payload,
    validate_json,
)
from sse_inspector.jsonrpc.templates import (
    TEMPLATES,
    JsonRpcIdCounter,
    build_request,
    template_names,
)
from sse_inspector.utils.errors import JsonBodyError, TemplateNotFoundError


VALID_DOCUMENTS = [
    '{"jsonrpc":"2.0","id":1,"method":"tools/list","params":{}}',
    '[1, 2.5, -3e2, true, false, null, "s"]',
    '"just a string"',
    "42",
    "null",
    '{"nested": {"deep": [{"a": []}, {}]}, "unicode": "日本語 ✓"}',
    '  {"spaced"  :  1 }  ',
]


class TestValidateJson:
    """Test JSON validation."""

    def test_valid(self):
        result = validate_json('{"a":1}')
        assert result.valid
        assert result.error is None
        assert result.formatted == '{\n  "a": 1\n}'

    def test_invalid(self):
        result = validate_json('{"a":')
        assert not result.valid
        assert result.formatted is None
        assert result.error

    def test_empty_text_is_invalid(self):
        assert not validate_json("").valid

    def test_nan_is_rejected(self):
        assert not validate_json("[NaN]").valid
        assert not validate_json('{"x": Infinity}').valid

    @pytest.mark.parametrize("text", ["1e400", '{"v": -1e999}', "[1, 2e308]"])
    def test_out_of_range_numbers_are_rejected(self, text):
        result = validate_json(text)
        assert not result.valid
        assert result.formatted is None
        assert "out of range" in result.error

    def test_large_finite_numbers_kept(self):
        result = validate_json("[1e308, 123456789012345678901234567890]")
        assert result.valid
        assert json.loads(result.formatted) == [1e308, 123456789012345678901234567890]

    def test_key_order_preserved(self):
        result = validate_json('{"z": 1, "a": 2}')
        assert result.formatted.index('"z"') < result.formatted.index('"a"')


class TestFormatAndMinify:
    """Test re-serialization."""

    @pytest.mark.parametrize("text", VALID_DOCUMENTS)
    def test_format_round_trip(self, text):
        assert json.loads(format_json(text)) == json.loads(text)

    @pytest.mark.parametrize("text", VALID_DOCUMENTS)
    def test_format_is_fixed_point(self, text):
        once = format_json(text)
        assert format_json(once) == once

    @pytest.mark.parametrize("text", VALID_DOCUMENTS)
    def test_minify_round_trip(self, text):
        minified = minify_json(text)
        assert json.loads(minified) == json.loads(text)

    def test_minify_has_no_whitespace(self):
        assert minify_json('{ "a" : [ 1 , 2 ] }') == '{"a":[1,2]}'

    def test_unicode_kept_verbatim(self):
        assert minify_json('["é"]') == '["é"]'

    def test_format_invalid_raises(self):
        with pytest.raises(JsonBodyError) as exc_info:
            format_json("{oops}")
        assert exc_info.value.detail

    def test_minify_invalid_raises(self):
        with pytest.raises(JsonBodyError):
            minify_json("[1,")

    @pytest.mark.parametrize("text", ["1e400", '{"v": -1e999}'])
    def test_out_of_range_numbers_raise(self, text):
        with pytest.raises(JsonBodyError):
            format_json(text)
        with pytest.raises(JsonBodyError):
            minify_json(text)

    def test_formatted_output_is_strict_json(self):
        formatted = format_json('{"v": 1.5e300, "w": [-0.0, 1e-400]}')
        assert format_json(formatted) == formatted
        assert "Infinity" not in formatted


class TestParsePayload:
    """Test event payload parsing."""

    def test_object(self):
        assert parse_payload('{"id": 1}') == (True, {"id": 1})

    def test_null_is_json(self):
        assert parse_payload("null") == (True, None)

    def test_not_json(self):
        assert parse_payload("hello world") == (False, None)

    def test_surrounding_whitespace(self):
        assert parse_payload("  [1]\n") == (True, [1])

    @pytest.mark.parametrize("raw", ["1e400", '{"v": -1e999}'])
    def test_out_of_range_numbers_are_not_json(self, raw):
        assert parse_payload(raw) == (False, None)


class TestTemplates:
    """Test JSON-RPC templates."""

    def test_names(self):
        assert template_names() == [
            "tools/list", "tools/call", "resources/list", "resources/read",
            "prompts/list", "prompts/get", "custom",
        ]

    def test_build_request_stamps_counter(self):
        counter = JsonRpcIdCounter()
        first = build_request("tools/list", counter)
        second = build_request("tools/call", counter)
        assert first["id"] == 1
        assert second["id"] == 2
        assert second["params"] == {"name": "example_tool", "arguments": {}}
        assert counter.peek == 3

    def test_templates_are_not_mutated(self):
        counter = JsonRpcIdCounter(start=99)
        request = build_request("resources/read", counter)
        request["params"]["uri"] = "changed"
        assert TEMPLATES["resources/read"]["params"]["uri"] == "file://example.txt"
        assert TEMPLATES["resources/read"]["id"] == 4

    def test_unknown_template_keeps_counter(self):
        counter = JsonRpcIdCounter()
        with pytest.raises(TemplateNotFoundError):
            build_request("tools/unknown", counter)
        assert counter.peek == 1

    def test_independent_counters(self):
        a, b = JsonRpcIdCounter(), JsonRpcIdCounter()
        a.next_id()
        a.next_id()
        assert b.next_id() == 1


class TestRequestEditor:
    """Test body editing operations."""

    def test_load_template_ids_increase(self):
        editor = RequestEditor()
        editor.load_template("tools/list")
        first = json.loads(editor.body)
        editor.load_template("tools/call")
        second = json.loads(editor.body)
        assert isinstance(first["id"], int)
        assert second["id"] > first["id"]
        assert second["method"] == "tools/call"

    def test_template_body_is_indented(self):
        editor = RequestEditor()
        editor.load_template("prompts/list")
        assert editor.body.startswith('{\n  "jsonrpc": "2.0"')

    def test_format_success(self):
        editor = RequestEditor('{"a":1}')
        assert editor.format() is True
        assert editor.body == '{\n  "a": 1\n}'
        assert editor.json_error is None

    def test_format_failure_preserves_body(self):
        editor = RequestEditor('{"a":')
        assert editor.format() is False
        assert editor.body == '{"a":'
        assert editor.json_error

    def test_minify_failure_preserves_body(self):
        editor = RequestEditor("not json")
        assert editor.minify() is False
        assert editor.body == "not json"
        assert editor.json_error

    def test_minify_success(self):
        editor = RequestEditor('{\n  "a": [1, 2]\n}')
        assert editor.minify() is True
        assert editor.body == '{"a":[1,2]}'

    def test_set_body_clears_error(self):
        editor = RequestEditor("{")
        editor.validate()
        assert editor.json_error
        editor.set_body("{}")
        assert editor.json_error is None

    def test_validate_does_not_change_body(self):
        editor = RequestEditor('{"a":1}')
        assert editor.validate().valid
        assert editor.body == '{"a":1}'

    def test_on_change_called_only_for_changes(self):
        changes = []
        editor = RequestEditor('{"a":1}', on_change=changes.append)
        editor.format()
        editor.format()
        editor.minify()
        assert changes == ['{\n  "a": 1\n}', '{"a":1}']

    def test_shared_counter(self):
        counter = JsonRpcIdCounter()
        RequestEditor(counter=counter).load_template("tools/list")
        assert RequestEditor(counter=counter).load_template("tools/list") == 2

    def test_unknown_template(self):
        editor = RequestEditor("{}")
        with pytest.raises(TemplateNotFoundError):
            editor.load_template("nope")
        assert editor.body == "{}"
