"""
Delimited-text tokenizer.

Turns raw text into rows of string fields. Tolerant by construction:
malformed input degrades to best-effort rows plus ParseWarning diagnostics,
and nothing in this module raises.

Quoting rules:
    - '"' toggles the quoted state
    - '""' inside a quoted field is a literal quote
    - the delimiter and line breaks are literal inside quotes
    - a row ends at '\\n' or '\\r\\n' outside quotes
"""

from dataclasses import dataclass, field
from typing import Iterator, Optional
import structlog

logger = structlog.get_logger(__name__)

DEFAULT_MAX_FIELD_LENGTH = 1000
CANDIDATE_DELIMITERS = (",", ";", "\t")
BOM = "\ufeff"

# Warning codes
UNTERMINATED_QUOTE = "unterminated_quote"
EMBEDDED_LINE_BREAK = "embedded_line_break"
OVERSIZED_FIELD = "oversized_field"


@dataclass(frozen=True)
class ParseWarning:
    """Diagnostic raised while tokenizing. Processing always continues."""
    code: str
    line: int
    message: str
    field_index: Optional[int] = None


@dataclass
class _Row:
    cells: list[str]
    line: int


@dataclass
class TokenizedFile:
    """Rows of a tokenized file plus diagnostics."""
    rows: list[list[str]] = field(default_factory=list)
    line_numbers: list[int] = field(default_factory=list)
    warnings: list[ParseWarning] = field(default_factory=list)

    def __iter__(self) -> Iterator[list[str]]:
        return iter(self.rows)

    def __len__(self) -> int:
        return len(self.rows)

    @property
    def header(self) -> list[str]:
        return self.rows[0] if self.rows else []


def detect_delimiter(text: str) -> str:
    """
    Guess the delimiter from the first line.

    Counts unquoted ',', ';' and tab characters; comma wins ties.
    """
    counts = {d: 0 for d in CANDIDATE_DELIMITERS}
    in_quotes = False
    for ch in text.lstrip(BOM):
        if ch == '"':
            in_quotes = not in_quotes
        elif not in_quotes:
            if ch == "\n":
                break
            if ch in counts:
                counts[ch] += 1

    best = ","
    for delimiter in CANDIDATE_DELIMITERS:
        if counts[delimiter] > counts[best]:
            best = delimiter
    return best


def _is_blank(row: list[str]) -> bool:
    return all(not cell.strip() for cell in row)


def tokenize(
    text: str,
    delimiter: str = ",",
    max_field_length: int = DEFAULT_MAX_FIELD_LENGTH,
) -> TokenizedFile:
    """
    Tokenize delimited text into rows.

    Args:
        text: Decoded file content
        delimiter: Single-character field delimiter
        max_field_length: Fields longer than this are flagged, not rejected

    Returns:
        TokenizedFile with non-blank rows, their starting line numbers,
        and any warnings
    """
    result = TokenizedFile()
    if text.startswith(BOM):
        text = text[1:]

    length = len(text)
    pos = 0
    line = 1

    while pos < length:
        row, pos, line = _scan_row(text, pos, line, delimiter, result)
        _flag_fields(row.cells, row.line, max_field_length, result)
        if not _is_blank(row.cells):
            result.rows.append(row.cells)
            result.line_numbers.append(row.line)

    if result.warnings:
        logger.warning(
            "tokenizer_warnings",
            rows=len(result.rows),
            warning_count=len(result.warnings),
            codes=sorted({w.code for w in result.warnings}),
        )

    return result


def _scan_row(
    text: str,
    start: int,
    start_line: int,
    delimiter: str,
    result: TokenizedFile,
) -> tuple[_Row, int, int]:
    """
    Scan one logical row starting at `start`.

    Returns (row, next position, next line number). When the row runs to the
    end of the text still inside quotes, it is closed at the first line break
    seen inside the quotes and scanning resumes on the following line.
    """
    cells: list[str] = []
    current: list[str] = []
    in_quotes = False
    line = start_line
    # (position after the break, cells so far, current field so far, line after break)
    first_quoted_break: Optional[tuple[int, list[str], str, int]] = None

    pos = start
    length = len(text)
    while pos < length:
        ch = text[pos]

        if ch == '"':
            if in_quotes and pos + 1 < length and text[pos + 1] == '"':
                current.append('"')
                pos += 2
                continue
            in_quotes = not in_quotes
            pos += 1
            continue

        if ch == delimiter and not in_quotes:
            cells.append("".join(current))
            current = []
            pos += 1
            continue

        if ch == "\n" or (ch == "\r" and pos + 1 < length and text[pos + 1] == "\n"):
            step = 1 if ch == "\n" else 2
            if not in_quotes:
                cells.append("".join(current))
                return _Row(cells, start_line), pos + step, line + 1
            if first_quoted_break is None:
                first_quoted_break = (pos + step, list(cells), "".join(current), line + 1)
            current.append(text[pos:pos + step])
            line += 1
            pos += step
            continue

        current.append(ch)
        pos += 1

    if in_quotes and first_quoted_break is not None:
        resume, saved_cells, saved_current, resume_line = first_quoted_break
        result.warnings.append(ParseWarning(
            code=UNTERMINATED_QUOTE,
            line=start_line,
            field_index=len(saved_cells),
            message=f"Line {start_line}: unclosed quote; row closed at end of line",
        ))
        return _Row(saved_cells + [saved_current], start_line), resume, resume_line

    if in_quotes:
        result.warnings.append(ParseWarning(
            code=UNTERMINATED_QUOTE,
            line=start_line,
            field_index=len(cells),
            message=f"Line {start_line}: unclosed quote at end of file",
        ))

    cells.append("".join(current))
    return _Row(cells, start_line), length, line


def _flag_fields(
    cells: list[str],
    line: int,
    max_field_length: int,
    result: TokenizedFile,
) -> None:
    for index, cell in enumerate(cells):
        if "\n" in cell or "\r" in cell:
            result.warnings.append(ParseWarning(
                code=EMBEDDED_LINE_BREAK,
                line=line,
                field_index=index,
                message=f"Line {line}, field {index}: contains line breaks",
            ))
        if len(cell) > max_field_length:
            result.warnings.append(ParseWarning(
                code=OVERSIZED_FIELD,
                line=line,
                field_index=index,
                message=f"Line {line}, field {index}: unusually long field ({len(cell)} chars)",
            ))
