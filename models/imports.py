"""
Import schemas: options, per-row results and the import summary.

The orchestrator never signals per-row failures with exceptions; every row
ends up as exactly one RowResult.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class ImportMode(str, Enum):
    """How matched / unmatched rows are treated."""
    UPSERT = "upsert"
    CREATE_ONLY = "create_only"
    UPDATE_ONLY = "update_only"


class MergePolicy(str, Enum):
    """How an incoming row is merged into an existing record."""
    NON_EMPTY = "non_empty"              # incoming non-empty values win
    OVERWRITE = "overwrite"              # incoming replaces every mapped field
    PREFER_EXISTING = "prefer_existing"  # incoming only fills blanks


class WeightUnit(str, Enum):
    G = "g"
    KG = "kg"
    LB = "lb"
    OZ = "oz"


class LengthUnit(str, Enum):
    CM = "cm"
    MM = "mm"
    IN = "in"
    FT = "ft"


class ImportOptions(BaseModel):
    """
    Explicit import configuration.

    Built from Settings once at startup and handed to ImportService.
    """

    mode: ImportMode = ImportMode.UPSERT
    merge_policy: MergePolicy = MergePolicy.NON_EMPTY
    success_error_ratio: float = Field(
        default=0.5,
        gt=0,
        le=1,
        description="Import succeeds while error rows < total rows * ratio"
    )
    default_weight_unit: WeightUnit = WeightUnit.G
    default_length_unit: LengthUnit = LengthUnit.CM
    default_currency: str = Field(default="USD", min_length=3, max_length=3)
    default_condition: str = "New"
    default_quantity: int = Field(default=1, ge=0)
    max_images: int = Field(default=10, ge=0, le=50)
    max_field_length: int = Field(default=1000, ge=1)
    delimiter: Optional[str] = Field(
        None,
        min_length=1,
        max_length=1,
        description="Field delimiter; detected from the header line when omitted"
    )
    dry_run: bool = False


class RowAction(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    SKIPPED = "skipped"
    ERROR = "error"


class RowErrorKind(str, Enum):
    STRUCTURE = "structure"    # field count differs from header count
    VALIDATION = "validation"  # missing required field, bad number
    STORE = "store"            # product store failure
    UNEXPECTED = "unexpected"


class RowResult(BaseModel):
    """Outcome of one data row."""

    row: int = Field(..., description="1-based line number in the file")
    identifier: Optional[str] = None
    success: bool
    action: RowAction
    error: Optional[str] = None
    error_kind: Optional[RowErrorKind] = None
    fields: list[str] = Field(default_factory=list, description="Fields written")
    product_id: Optional[str] = None
    image_count: int = 0
    data: list[str] = Field(default_factory=list, description="First cells of the row")

    @classmethod
    def failed(
        cls,
        row: int,
        kind: RowErrorKind,
        message: str,
        cells: list[str],
        identifier: Optional[str] = None,
    ) -> "RowResult":
        return cls(
            row=row,
            identifier=identifier,
            success=False,
            action=RowAction.ERROR,
            error=message,
            error_kind=kind,
            data=cells[:5],
        )

    @classmethod
    def skipped(cls, row: int, reason: str, identifier: Optional[str] = None) -> "RowResult":
        return cls(
            row=row,
            identifier=identifier,
            success=True,
            action=RowAction.SKIPPED,
            error=reason,
        )


class ImportWarning(BaseModel):
    """Tokenizer diagnostic surfaced to the caller."""
    code: str
    line: int
    field_index: Optional[int] = None
    message: str


class ImportSummary(BaseModel):
    """Aggregate result of one file import."""

    total_rows: int = 0
    processed: int = 0
    created: int = 0
    updated: int = 0
    skipped: int = 0
    error_rows: int = 0
    layout: str = "heuristic"
    dry_run: bool = False
    success_error_ratio: float = 0.5
    results: list[RowResult] = Field(default_factory=list)
    warnings: list[ImportWarning] = Field(default_factory=list)
    started_at: datetime = Field(default_factory=datetime.utcnow)
    completed_at: Optional[datetime] = None
    duration_ms: Optional[int] = None

    @property
    def errors(self) -> list[RowResult]:
        return [r for r in self.results if r.action == RowAction.ERROR]

    @property
    def success(self) -> bool:
        """
        Majority-success judgment.

        The import is successful while error rows stay below
        total_rows * success_error_ratio. A file without data rows has
        nothing that failed.
        """
        if self.total_rows == 0:
            return True
        return self.error_rows < self.total_rows * self.success_error_ratio

    def record(self, result: RowResult) -> None:
        """Accumulate one row outcome into the counters."""
        self.results.append(result)
        if result.action == RowAction.CREATED:
            self.created += 1
            self.processed += 1
        elif result.action == RowAction.UPDATED:
            self.updated += 1
            self.processed += 1
        elif result.action == RowAction.SKIPPED:
            self.skipped += 1
        else:
            self.error_rows += 1

    def finish(self) -> "ImportSummary":
        self.completed_at = datetime.utcnow()
        self.duration_ms = int((self.completed_at - self.started_at).total_seconds() * 1000)
        return self

    @property
    def message(self) -> str:
        parts = [
            f"{self.created} created",
            f"{self.updated} updated",
            f"{self.error_rows} errors",
        ]
        if self.skipped:
            parts.append(f"{self.skipped} skipped")
        prefix = "Dry run completed" if self.dry_run else "Import completed"
        return f"{prefix}: " + ", ".join(parts)

    def to_response(self) -> dict:
        """Convert to the bulk-import API response body."""
        return {
            "success": self.success,
            "message": self.message,
            "result": {
                "total_rows": self.total_rows,
                "processed": self.processed,
                "created": self.created,
                "updated": self.updated,
                "skipped": self.skipped,
                "error_rows": self.error_rows,
                "layout": self.layout,
                "dry_run": self.dry_run,
                "duration_ms": self.duration_ms,
                "errors": [
                    {"row": r.row, "error": r.error, "data": r.data}
                    for r in self.errors
                ],
                "warnings": [w.model_dump() for w in self.warnings],
            },
        }
