"""
CSV serializer for exports.

Every value passes through escape_field():
    1. None -> "", booleans -> yes/no, everything else str()
    2. CSV injection guard: a leading = + - @ gets an apostrophe prefix
    3. Quoting: values containing the delimiter, a quote or a line break
       are wrapped in quotes with inner quotes doubled. Guarded values are
       always wrapped.
"""

from typing import Any, Iterable, Sequence

from utils.text_utils import needs_injection_guard

BOM = "\ufeff"
SUPPORTED_DELIMITERS = (",", ";")


def stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "yes" if value else "no"
    return str(value)


def escape_field(value: Any, delimiter: str = ",") -> str:
    """
    Render one value as a CSV field.

    Examples:
        'Product with "quotes" and, commas' → '"Product with ""quotes"" and, commas"'
        '=SUM(A1)' → '"\\'=SUM(A1)"'
    """
    text = stringify(value)
    guarded = needs_injection_guard(text)
    if guarded:
        text = "'" + text

    if guarded or delimiter in text or '"' in text or "\r" in text or "\n" in text:
        return '"' + text.replace('"', '""') + '"'
    return text


class CSVWriter:
    """
    Render header + rows to CSV text.

    Excel-friendly output uses CRLF line endings and starts with a UTF-8
    BOM so spreadsheet apps pick the right encoding.
    """

    def __init__(
        self,
        delimiter: str = ",",
        excel_friendly: bool = True,
        include_headers: bool = True,
    ):
        if delimiter not in SUPPORTED_DELIMITERS:
            raise ValueError(f"Unsupported delimiter {delimiter!r}; use ',' or ';'")
        self.delimiter = delimiter
        self.excel_friendly = excel_friendly
        self.include_headers = include_headers

    @property
    def line_ending(self) -> str:
        return "\r\n" if self.excel_friendly else "\n"

    def render_row(self, values: Sequence[Any]) -> str:
        return self.delimiter.join(escape_field(v, self.delimiter) for v in values)

    def render(self, headers: Sequence[str], rows: Iterable[Sequence[Any]]) -> str:
        lines = []
        if self.include_headers:
            lines.append(self.render_row(headers))
        lines.extend(self.render_row(row) for row in rows)

        content = self.line_ending.join(lines)
        if lines:
            content += self.line_ending
        if self.excel_friendly:
            content = BOM + content
        return content

    def encode(self, headers: Sequence[str], rows: Iterable[Sequence[Any]]) -> bytes:
        return self.render(headers, rows).encode("utf-8")
