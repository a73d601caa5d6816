"""
CSV parsing and CPI schema module.

Tokenizer, canonical column layout, field mapping table and the heuristic
column analyzer for non-canonical files.
"""

from parsers.csv_tokenizer import (
    tokenize,
    detect_delimiter,
    TokenizedFile,
    ParseWarning,
)
from parsers.cpi_schema import (
    CPI_COLUMNS,
    columns,
    index_of,
    validate_header_layout,
    HeaderValidation,
)
from parsers.field_mappings import (
    FIELD_MAPPINGS,
    FieldMapping,
    TransformKind,
    TransformResult,
    apply_transform,
)
from parsers.column_analyzer import (
    analyze_columns,
    map_heuristic_row,
    ColumnAnalysis,
)

__all__ = [
    "tokenize",
    "detect_delimiter",
    "TokenizedFile",
    "ParseWarning",
    "CPI_COLUMNS",
    "columns",
    "index_of",
    "validate_header_layout",
    "HeaderValidation",
    "FIELD_MAPPINGS",
    "FieldMapping",
    "TransformKind",
    "TransformResult",
    "apply_transform",
    "analyze_columns",
    "map_heuristic_row",
    "ColumnAnalysis",
]
