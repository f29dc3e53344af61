"""
Unit tests for the inference response repair parser.

Run: pytest tests/unit/test_response_repair.py -v
"""

import json

import pytest

from exceptions import ResponseParseError
from parsers.response_repair import (
    extract_json_text,
    last_complete_entry_end,
    parse_mapping_response,
)


ENTRY_A = '{"sourceField":"A","targetField":"X","confidence":0.9,"reason":"ok"}'
ENTRY_B = '{"sourceField":"B","targetField":"Y","confidence":0.8,"reason":"fine"}'


class TestExtractJsonText:
    """Tests for extract_json_text()"""

    def test_plain_object_unchanged(self):
        """Should return a bare object as is."""
        assert extract_json_text('{"mappings": []}') == '{"mappings": []}'

    def test_strips_json_fence(self):
        """Should return the content of a ```json fence."""
        text = 'Sure!\n```json\n{"mappings": []}\n```\nHope this helps.'

        assert extract_json_text(text) == '{"mappings": []}'

    def test_unclosed_json_fence_keeps_tail(self):
        """Should take everything after an unclosed ```json fence."""
        text = '```json\n{"mappings": [' + ENTRY_A

        assert extract_json_text(text) == '{"mappings": [' + ENTRY_A

    def test_strips_bare_fence(self):
        """Should handle fences without a language tag."""
        text = '```\n{"mappings": []}\n```'

        assert extract_json_text(text) == '{"mappings": []}'

    def test_slices_object_out_of_prose(self):
        """Should cut from the first '{' to the last '}'."""
        text = 'The result is {"mappings": []} as requested.'

        assert extract_json_text(text) == '{"mappings": []}'

    def test_none_becomes_empty(self):
        """Should return '' for None."""
        assert extract_json_text(None) == ""


class TestParseMappingResponse:
    """Tests for parse_mapping_response()"""

    def test_valid_payload(self):
        """Should parse well-formed JSON directly."""
        payload = parse_mapping_response('{"mappings": [' + ENTRY_A + "]}")

        assert payload["mappings"][0]["sourceField"] == "A"

    @pytest.mark.parametrize("obj", [
        {"mappings": []},
        {"mappings": [json.loads(ENTRY_A), json.loads(ENTRY_B)]},
        {"mappings": [{
            "sourceField": "Size {cm}, Width",
            "targetField": "Dimensions",
            "confidence": 0.7,
            "reason": "Contains braces }{ and commas, ], inside strings",
        }]},
        {"mappings": [{
            "sourceField": "Größe",
            "targetField": "Size",
            "confidence": 1,
            "reason": "German \"Größe\"",
            "isOptional": False,
        }], "model": "gemini", "notes": {"unmapped": [], "count": 1}},
        {"summary": "done", "mappings": [json.loads(ENTRY_A)]},
    ])
    @pytest.mark.parametrize("indent", [None, 2])
    def test_well_formed_payload_returned_unchanged(self, obj, indent):
        """Should return exactly the serialized object for compact and indented JSON."""
        assert parse_mapping_response(json.dumps(obj, indent=indent)) == obj

    def test_fenced_payload(self):
        """Should parse JSON wrapped in a code fence."""
        text = "```json\n" + '{"mappings": [' + ENTRY_A + ", " + ENTRY_B + "]}" + "\n```"

        payload = parse_mapping_response(text)

        assert [m["sourceField"] for m in payload["mappings"]] == ["A", "B"]

    def test_truncated_mid_entry_keeps_complete_entries(self):
        """Should recover entries completed before the cut."""
        # Arrange
        text = '{"mappings":[' + ENTRY_A + ',{"sourceField":"B","targetF'

        # Act
        payload = parse_mapping_response(text)

        # Assert
        assert payload == {"mappings": [{
            "sourceField": "A",
            "targetField": "X",
            "confidence": 0.9,
            "reason": "ok",
        }]}

    def test_trailing_comma_after_entry(self):
        """Should close the array after a dangling '},'."""
        text = '{"mappings":[' + ENTRY_A + "," + ENTRY_B + ","

        payload = parse_mapping_response(text)

        assert [m["sourceField"] for m in payload["mappings"]] == ["A", "B"]

    def test_braces_inside_strings_do_not_confuse_scan(self):
        """Should ignore braces inside reason strings."""
        entry = '{"sourceField":"A","targetField":"X","confidence":0.9,"reason":"looks like {json}"}'
        text = '{"mappings":[' + entry + ',{"sourceField":"B","reason":"cut {'

        payload = parse_mapping_response(text)

        assert payload["mappings"][0]["reason"] == "looks like {json}"
        assert len(payload["mappings"]) == 1

    def test_object_without_mappings_key_becomes_empty(self):
        """Should repair a payload with no mappings key to empty mappings."""
        payload = parse_mapping_response('{"result": "I could not map these"}')

        assert payload == {"mappings": []}

    def test_truncated_before_any_complete_entry_raises(self):
        """Should raise when no entry survives and the regex finds nothing."""
        with pytest.raises(ResponseParseError):
            parse_mapping_response('{"mappings":[{"sourceField":"A","targ')

    def test_regex_fallback_on_raw_text(self):
        """Should extract the mappings array when the wrapper is broken."""
        # Arrange: entries not led by sourceField, trailing garbage breaks the object
        text = '{"mappings": [{"targetField":"X","sourceField":"A","confidence":0.9}], "notes": oops}'

        # Act
        payload = parse_mapping_response(text)

        # Assert
        assert payload["mappings"][0]["targetField"] == "X"

    def test_text_without_brace_raises(self):
        """Should fail fast on text with no JSON object."""
        with pytest.raises(ResponseParseError) as exc_info:
            parse_mapping_response("I am sorry, I cannot help with that.")

        assert exc_info.value.response_preview.startswith("I am sorry")

    def test_empty_text_raises(self):
        """Should raise for empty or None text."""
        with pytest.raises(ResponseParseError):
            parse_mapping_response(None)


class TestLastCompleteEntryEnd:
    """Tests for last_complete_entry_end()"""

    def test_returns_end_of_last_complete_entry(self):
        """Should point just past the closing brace of the last full entry."""
        text = '{"mappings":[' + ENTRY_A + "," + ENTRY_B + ',{"sourceField":"C"'

        end = last_complete_entry_end(text)

        assert text[:end].endswith(ENTRY_B)

    def test_none_when_no_entry_complete(self):
        """Should return None without a complete entry."""
        assert last_complete_entry_end('{"mappings":[{"sourceField":"A"') is None
