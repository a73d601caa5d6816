"""
Unit tests for the CSV writer and the text helpers it relies on.

Run: pytest tests/unit/test_csv_writer.py -v
"""

import pytest

from parsers.csv_tokenizer import tokenize
from services.csv_writer import BOM, CSVWriter, escape_field, stringify
from utils.text_utils import (
    needs_injection_guard,
    normalize_key,
    sanitize_html,
    truncate,
    unguard_injection,
)


# ===================
# FIELD ESCAPING
# ===================

class TestEscapeField:
    """Tests for escape_field()"""

    def test_plain_value_unquoted(self):
        """Should leave simple values untouched."""
        assert escape_field("Widget") == "Widget"

    def test_quotes_and_commas(self):
        """Should wrap and double inner quotes."""
        value = 'Product with "quotes" and, commas'

        assert escape_field(value) == '"Product with ""quotes"" and, commas"'

    def test_line_breaks_are_quoted(self):
        assert escape_field("line one\nline two") == '"line one\nline two"'
        assert escape_field("a\rb") == '"a\rb"'

    @pytest.mark.parametrize("value", ["=SUM(A1)", "+1", "-5", "@cmd"])
    def test_formula_prefixes_are_guarded(self, value):
        """Should prefix an apostrophe and quote the field."""
        assert escape_field(value) == f"\"'{value}\""

    def test_semicolon_only_quoted_for_semicolon_delimiter(self):
        assert escape_field("a;b", ",") == "a;b"
        assert escape_field("a;b", ";") == '"a;b"'

    def test_stringify(self):
        assert stringify(None) == ""
        assert stringify(True) == "yes"
        assert stringify(False) == "no"
        assert stringify(12) == "12"


# ===================
# WRITER
# ===================

class TestCSVWriter:
    """Tests for CSVWriter.render()"""

    def test_excel_friendly_output(self):
        """Should start with a BOM and use CRLF line endings."""
        writer = CSVWriter(excel_friendly=True)

        content = writer.render(["a", "b"], [["1", "2"]])

        assert content == BOM + "a,b\r\n1,2\r\n"

    def test_plain_output(self):
        writer = CSVWriter(excel_friendly=False)

        content = writer.render(["a", "b"], [["1", "2"]])

        assert content == "a,b\n1,2\n"

    def test_without_headers(self):
        writer = CSVWriter(excel_friendly=False, include_headers=False)

        assert writer.render(["a"], [["1"], ["2"]]) == "1\n2\n"

    def test_empty_output(self):
        writer = CSVWriter(excel_friendly=False, include_headers=False)

        assert writer.render(["a"], []) == ""

    def test_semicolon_delimiter(self):
        writer = CSVWriter(delimiter=";", excel_friendly=False)

        assert writer.render(["a", "b"], [["1,5", "x;y"]]) == 'a;b\n1,5;"x;y"\n'

    def test_unsupported_delimiter_raises(self):
        with pytest.raises(ValueError):
            CSVWriter(delimiter="|")

    def test_encode_is_utf8(self):
        writer = CSVWriter(excel_friendly=True)

        data = writer.encode(["Title"], [["Café"]])

        assert data.startswith(b"\xef\xbb\xbf")
        assert "Café".encode("utf-8") in data

    def test_output_tokenizes_back(self):
        """Should produce text the tokenizer reads back cell for cell."""
        rows = [['Product with "quotes" and, commas', "multi\nline", "=1+1"]]
        writer = CSVWriter(excel_friendly=True)

        parsed = tokenize(writer.render(["a", "b", "c"], rows))

        assert parsed.rows[1] == ['Product with "quotes" and, commas', "multi\nline", "'=1+1"]


# ===================
# TEXT HELPERS
# ===================

class TestTextUtils:
    """Tests for utils.text_utils"""

    def test_sanitize_html_removes_script_and_style(self):
        html = "<p>Hi</p><script>alert(1)</script><STYLE type='x'>p{}</STYLE>"

        assert sanitize_html(html) == "<p>Hi</p>"

    def test_sanitize_html_keeps_other_markup(self):
        assert sanitize_html("<b>Bold</b> text") == "<b>Bold</b> text"
        assert sanitize_html(None) == ""

    def test_truncate(self):
        assert truncate("short", 10) == "short"
        assert truncate("abcdefghij", 8) == "abcde..."
        assert truncate("abcdefghij", 5, ellipsis="") == "abcde"
        assert truncate(None, 5) == ""

    def test_unguard_injection(self):
        assert unguard_injection("'=SUM(A1)") == "=SUM(A1)"
        assert unguard_injection("'-5") == "-5"
        assert unguard_injection("'quoted'") == "'quoted'"
        assert unguard_injection("'") == "'"

    def test_needs_injection_guard(self):
        assert needs_injection_guard("=A1")
        assert not needs_injection_guard("A1")
        assert not needs_injection_guard("")

    def test_normalize_key(self):
        assert normalize_key("  Café Crème ") == "cafe creme"
        assert normalize_key(None) == ""
