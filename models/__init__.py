"""
Pydantic models for validation and serialization.
"""

from models.base import BaseSchema, FrozenSchema
from models.product import Dimensions, NormalizedProductRecord
from models.imports import (
    ImportMode,
    ImportOptions,
    ImportSummary,
    ImportWarning,
    MergePolicy,
    RowAction,
    RowErrorKind,
    RowResult,
)
from models.export import (
    ExportFilters,
    ExportFormat,
    ExportOptions,
    ExportRequest,
    ExportResult,
    ExportSelection,
    SkippedRecord,
)

__all__ = [
    # Base
    "BaseSchema",
    "FrozenSchema",

    # Product
    "Dimensions",
    "NormalizedProductRecord",

    # Import
    "ImportMode",
    "ImportOptions",
    "ImportSummary",
    "ImportWarning",
    "MergePolicy",
    "RowAction",
    "RowErrorKind",
    "RowResult",

    # Export
    "ExportFilters",
    "ExportFormat",
    "ExportOptions",
    "ExportRequest",
    "ExportResult",
    "ExportSelection",
    "SkippedRecord",
]
