"""
Tests for the JSONC reader used for opencode.json and config.json.
"""

import json

import pytest

from gsdtools.errors import InvalidInputError, JsoncSyntaxError
from gsdtools.jsonc import parse_jsonc, strip_comments, strip_trailing_commas


class TestParseJsonc:
    """Tests for parse_jsonc."""

    def test_plain_json(self):
        """Plain JSON parses unchanged."""
        assert parse_jsonc('{"a": 1, "b": [true, null]}') == {"a": 1, "b": [True, None]}

    def test_line_comments(self):
        """// comments are dropped."""
        text = '{\n  // model to use\n  "model": "sonnet" // trailing\n}'
        assert parse_jsonc(text) == {"model": "sonnet"}

    def test_block_comments(self):
        """/* */ comments are dropped, including multi-line ones."""
        text = '{\n  /* permissions\n     block */\n  "read": true\n}'
        assert parse_jsonc(text) == {"read": True}

    def test_trailing_commas(self):
        """Commas before } or ] are tolerated."""
        text = '{"items": [1, 2, 3,], "nested": {"x": 1,},}'
        assert parse_jsonc(text) == {"items": [1, 2, 3], "nested": {"x": 1}}

    def test_comment_markers_inside_strings_kept(self):
        """Strings containing // or /* are not comments."""
        text = '{"url": "https://example.com/a", "glob": "src/*.ts", "c": "a,}"}'
        assert parse_jsonc(text) == {
            "url": "https://example.com/a",
            "glob": "src/*.ts",
            "c": "a,}",
        }

    def test_escaped_quote_in_string(self):
        """An escaped quote does not end the string."""
        text = '{"q": "say \\"hi\\" // not a comment"}'
        assert parse_jsonc(text) == {"q": 'say "hi" // not a comment'}

    def test_bom_is_skipped(self):
        """A leading byte-order mark is ignored."""
        assert parse_jsonc("\ufeff" + '{"a": 1}') == {"a": 1}

    def test_invalid_json_raises(self):
        """Text that is still invalid after cleaning raises JsoncSyntaxError."""
        with pytest.raises(JsoncSyntaxError):
            parse_jsonc('{"a": }')

    def test_error_types(self):
        """JsoncSyntaxError is both an input error and a ValueError."""
        with pytest.raises(ValueError):
            parse_jsonc("{not json")
        with pytest.raises(InvalidInputError):
            parse_jsonc("[1, 2")

    def test_unterminated_block_comment_fails(self):
        """An unterminated block comment is rejected, not silently eaten."""
        with pytest.raises(JsoncSyntaxError):
            parse_jsonc('{"a": 1 /* open')

    def test_matches_json_for_clean_input(self):
        """Clean input gives the same result as json.loads."""
        text = json.dumps({"x": [1, {"y": "z"}], "n": 1.5})
        assert parse_jsonc(text) == json.loads(text)


class TestHelpers:
    """Tests for the cleaning passes."""

    def test_strip_comments_keeps_newline(self):
        """A line comment is removed up to, not including, the newline."""
        assert strip_comments("1 // x\n2") == "1 \n2"

    def test_strip_trailing_commas_only_before_closers(self):
        """Commas between values are kept."""
        assert strip_trailing_commas("[1, 2,\n]") == "[1, 2\n]"
