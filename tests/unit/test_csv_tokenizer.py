"""
Unit tests for the CSV tokenizer.

Covers quoting rules, line endings, blank rows, line numbers and the
tolerant handling of malformed input.
"""

from parsers.csv_tokenizer import (
    EMBEDDED_LINE_BREAK,
    OVERSIZED_FIELD,
    UNTERMINATED_QUOTE,
    detect_delimiter,
    tokenize,
)


# ===================
# QUOTING
# ===================

class TestQuoting:
    """Tests for quote handling."""

    def test_plain_fields_split_on_delimiter(self):
        """Unquoted fields split on every delimiter."""
        result = tokenize("a,b,c\n1,2,3\n")

        assert result.rows == [["a", "b", "c"], ["1", "2", "3"]]
        assert result.warnings == []

    def test_doubled_quote_is_literal(self):
        """'""' inside a quoted field yields one quote character."""
        result = tokenize('title\n"Product with ""quotes"" and, commas"\n')

        assert result.rows[1] == ['Product with "quotes" and, commas']

    def test_delimiter_inside_quotes_is_literal(self):
        """A quoted comma does not start a new field."""
        result = tokenize('a,b\n"x, y",z\n')

        assert result.rows[1] == ["x, y", "z"]

    def test_line_break_inside_quotes_is_literal(self):
        """A quoted newline stays in the field and is flagged."""
        result = tokenize('a,b\n"line one\nline two",z\n')

        assert result.rows[1] == ["line one\nline two", "z"]
        assert [w.code for w in result.warnings] == [EMBEDDED_LINE_BREAK]

    def test_empty_quoted_field(self):
        """'""' as a whole field is an empty string."""
        result = tokenize('a,b,c\n"",x,""\n')

        assert result.rows[1] == ["", "x", ""]


# ===================
# LINES
# ===================

class TestLines:
    """Tests for line endings, blank rows and line numbers."""

    def test_crlf_line_endings(self):
        """\\r\\n ends a row just like \\n."""
        result = tokenize("a,b\r\n1,2\r\n3,4\r\n")

        assert result.rows == [["a", "b"], ["1", "2"], ["3", "4"]]

    def test_missing_trailing_newline(self):
        """The last row does not need a line terminator."""
        result = tokenize("a,b\n1,2")

        assert result.rows == [["a", "b"], ["1", "2"]]

    def test_blank_rows_are_dropped(self):
        """Rows whose fields are all empty after trimming are removed."""
        result = tokenize("a,b\n\n , \n1,2\n")

        assert result.rows == [["a", "b"], ["1", "2"]]

    def test_line_numbers_are_physical_lines(self):
        """line_numbers records the 1-based line where each row starts."""
        result = tokenize('a,b\n\n"multi\nline",x\n1,2\n')

        assert result.line_numbers == [1, 3, 5]

    def test_bom_is_ignored(self):
        """A leading UTF-8 BOM does not end up in the first header."""
        result = tokenize("\ufeffUPC,Title\n1,2\n")

        assert result.header == ["UPC", "Title"]

    def test_semicolon_delimiter(self):
        """Any single-character delimiter can be used."""
        result = tokenize("a;b\n1,5;2\n", delimiter=";")

        assert result.rows[1] == ["1,5", "2"]

    def test_iterable_and_sized(self):
        """TokenizedFile iterates rows and supports len()."""
        result = tokenize("a\nb\nc\n")

        assert len(result) == 3
        assert list(result) == [["a"], ["b"], ["c"]]


# ===================
# MALFORMED INPUT
# ===================

class TestMalformedInput:
    """The tokenizer warns instead of raising."""

    def test_unterminated_quote_closes_row_at_line_end(self):
        """An unclosed quote does not swallow the rows that follow."""
        text = 'a,b\n"broken,1\nx,2\ny,3\n'

        result = tokenize(text)

        assert result.rows[1] == ["broken,1"]
        assert result.rows[2:] == [["x", "2"], ["y", "3"]]
        assert result.warnings[0].code == UNTERMINATED_QUOTE
        assert result.warnings[0].line == 2

    def test_unterminated_quote_on_last_line(self):
        """An unclosed quote at end of file keeps the partial field."""
        result = tokenize('a,b\nx,"tail')

        assert result.rows[1] == ["x", "tail"]
        assert result.warnings[0].code == UNTERMINATED_QUOTE

    def test_oversized_field_is_flagged_not_rejected(self):
        """Long fields produce a warning and are kept intact."""
        long_value = "x" * 50

        result = tokenize(f"a\n{long_value}\n", max_field_length=10)

        assert result.rows[1] == [long_value]
        assert result.warnings[0].code == OVERSIZED_FIELD
        assert result.warnings[0].field_index == 0

    def test_empty_input(self):
        """Empty text yields no rows and no warnings."""
        result = tokenize("")

        assert result.rows == []
        assert result.header == []


# ===================
# DELIMITER DETECTION
# ===================

class TestDetectDelimiter:
    """Tests for detect_delimiter."""

    def test_comma(self):
        assert detect_delimiter("a,b,c\n1;2,3\n") == ","

    def test_semicolon(self):
        assert detect_delimiter("a;b;c\n1;2;3\n") == ";"

    def test_tab(self):
        assert detect_delimiter("a\tb\tc\n") == "\t"

    def test_quoted_delimiters_not_counted(self):
        """Delimiters inside quotes do not vote."""
        assert detect_delimiter('"a;b;c;d",x,y\n') == ","

    def test_tie_prefers_comma(self):
        assert detect_delimiter("a,b;c\n") == ","
