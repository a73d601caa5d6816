"""
Export schemas: format selector, product selection and serialization options.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from models.base import BaseSchema


class ExportFormat(str, Enum):
    """Supported target formats."""
    CPI = "cpi"
    BASELINKER = "baselinker"
    EBAY = "ebay"


class ExportOptions(BaseModel):
    """
    Serialization and mapping options.

    Mapper output depends only on the record and these options.
    """

    currency: str = Field(default="USD", min_length=3, max_length=3)
    category_id: Optional[str] = Field(
        None,
        description="Category override for every exported record"
    )
    delimiter: str = Field(default=",", description="Comma or semicolon")
    excel_friendly: bool = Field(
        default=True,
        description="CRLF line endings and a UTF-8 BOM"
    )
    include_headers: bool = True
    strict: bool = Field(
        default=False,
        description="Abort on the first record that fails validation"
    )
    max_rows: int = Field(default=50000, ge=1, le=50000)
    tax_rate: Optional[str] = Field(None, description="Baselinker tax rate (%)")

    @field_validator("delimiter")
    @classmethod
    def delimiter_supported(cls, v: str) -> str:
        if v not in (",", ";"):
            raise ValueError("Delimiter must be ',' or ';'")
        return v

    @field_validator("currency")
    @classmethod
    def currency_uppercase(cls, v: str) -> str:
        return v.upper()


class ExportFilters(BaseSchema):
    """Filter predicate for selecting products to export."""

    search: Optional[str] = Field(None, description="Matches title, UPC, EAN or brand")
    category_id: Optional[str] = None
    min_stock: Optional[int] = Field(None, ge=0)
    max_stock: Optional[int] = Field(None, ge=0)
    updated_after: Optional[datetime] = None


class ExportSelection(BaseSchema):
    """Explicit id list, or a filter predicate (empty selects everything)."""

    ids: Optional[list[str]] = None
    filters: Optional[ExportFilters] = None

    @model_validator(mode="after")
    def ids_not_empty(self) -> "ExportSelection":
        if self.ids is not None and len(self.ids) == 0:
            raise ValueError("ids must contain at least one product id")
        return self


class ExportRequest(BaseSchema):
    """Multi-format export request body."""

    format: str = Field(..., description="cpi, baselinker or ebay")
    selection: ExportSelection = Field(default_factory=ExportSelection)
    options: ExportOptions = Field(default_factory=ExportOptions)


class SkippedRecord(BaseSchema):
    """A record left out of an export because it failed validation."""
    id: Optional[str] = None
    reason: str


class ExportResult(BaseModel):
    """Rendered export."""

    format: ExportFormat
    content: str
    row_count: int
    skipped: list[SkippedRecord] = Field(default_factory=list)
    encoding: str = "utf-8"

    def to_bytes(self) -> bytes:
        return self.content.encode(self.encoding)

    def filename(self, now: Optional[datetime] = None) -> str:
        """inventory_<format>_<timestamp>.csv"""
        now = now or datetime.utcnow()
        return f"inventory_{self.format.value}_{now.strftime('%Y-%m-%dT%H-%M-%S')}.csv"
