"""
Export service: product records to marketplace CSV files.

Each target format is an ExportMapper (header list + one value list per
record). Mappers are pure: output depends only on the record and the
ExportOptions. The registry resolves a mapper by format name; the service
selects records, validates and maps them, and hands the rows to CSVWriter.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any, Iterable, Optional

import structlog

from exceptions import MapperValidationError, NoProductsFoundError, UnsupportedFormatError
from models.export import (
    ExportFormat,
    ExportOptions,
    ExportRequest,
    ExportResult,
    ExportSelection,
    SkippedRecord,
)
from models.product import NormalizedProductRecord
from parsers.cpi_schema import (
    CPI_COLUMNS,
    ID_COLUMN,
    IMAGE_COLUMNS,
    IMAGES_AGGREGATE_COLUMN,
    canonical_name,
    empty_row,
)
from parsers.field_mappings import FIELD_MAPPINGS, FieldMapping, TransformKind, unmapped_columns
from services.csv_writer import CSVWriter
from services.product_store import ProductStore
from utils.text_utils import sanitize_html, truncate

logger = structlog.get_logger(__name__)

BASELINKER_DESCRIPTION_LIMIT = 5000
BASELINKER_MAX_IMAGES = 5
DEFAULT_TAX_RATE = "23"

EBAY_TITLE_LIMIT = 80
EBAY_SUBTITLE_LIMIT = 55
EBAY_CONDITION_NEW = "1000"
EBAY_DURATION = "GTC"
EBAY_DEFAULT_CATEGORY = "1"

CURRENCY_CHOICES = ["USD", "EUR", "GBP", "PLN"]
DELIMITER_CHOICES = [",", ";"]


def format_number(value: Optional[float]) -> str:
    """Shortest fixed-point text: 1000.0 → "1000", 19.99 → "19.99", 1e-05 → "0.00001"."""
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, float):
        # str() switches to exponent notation below 1e-4, which the importer rejects.
        return format(Decimal(repr(value)), "f")
    return str(value)


def format_price(value: Optional[float]) -> str:
    """Two decimals; missing prices export as 0.00."""
    return f"{value or 0:.2f}"


def format_weight_kg(grams: Optional[float]) -> str:
    """Grams to kilograms with three decimals."""
    if not grams:
        return "0"
    return f"{grams / 1000:.3f}"


class ExportMapper(ABC):
    """
    One target format.

    map() never raises for missing optional fields; it substitutes empty
    strings or zero defaults. validate() raises MapperValidationError when
    the record cannot be expressed in the format at all.
    """

    name: str = ""
    label: str = ""
    description: str = ""

    @abstractmethod
    def headers(self, options: Optional[ExportOptions] = None) -> list[str]:
        ...

    @abstractmethod
    def map(self, record: NormalizedProductRecord, options: ExportOptions) -> list[Any]:
        ...

    def validate(self, record: NormalizedProductRecord) -> None:
        return None

    def _invalid(self, record: NormalizedProductRecord, reason: str) -> MapperValidationError:
        return MapperValidationError(self.name, record.id, reason)


# ===================
# CPI
# ===================

class CPIMapper(ExportMapper):
    """The 90-column canonical layout; re-importable without loss."""

    name = ExportFormat.CPI.value
    label = "CPI Sheet"
    description = "Canonical 90-column product information sheet"

    def headers(self, options=None):
        return list(CPI_COLUMNS)

    def map(self, record, options):
        row = empty_row()

        for column, mapping in FIELD_MAPPINGS.items():
            row[column] = _cpi_value(record, mapping)

        images = list(record.images)
        row[IMAGES_AGGREGATE_COLUMN] = ",".join(images)
        for column, url in zip(IMAGE_COLUMNS, images):
            row[column] = url

        passthrough = set(unmapped_columns())
        for key, value in record.additional_attributes.items():
            column = canonical_name(key)
            if column is None or column not in passthrough:
                logger.debug("export_attribute_dropped", attribute=key, record_id=record.id)
                continue
            row[column] = _attribute_text(value)

        row[ID_COLUMN] = record.id or ""
        return [row[column] for column in CPI_COLUMNS]

    def validate(self, record):
        if not record.title:
            raise self._invalid(record, "Product must have a title")
        if not record.has_identifier and not record.id:
            raise self._invalid(record, "Product must have an identifier (UPC, EAN, GTIN, SKU or ID)")


def _cpi_value(record: NormalizedProductRecord, mapping: FieldMapping) -> str:
    if mapping.field.startswith("dimensions."):
        value = getattr(record.dimensions, mapping.field.split(".", 1)[1])
    else:
        value = getattr(record, mapping.field)
    if value is None:
        return ""

    kind = mapping.transform
    if kind == TransformKind.WEIGHT:
        return f"{format_number(value)}g"
    if kind == TransformKind.LENGTH:
        return f"{format_number(value)}cm"
    if kind in (TransformKind.NUMBER, TransformKind.INTEGER):
        return format_number(value)
    if kind == TransformKind.DATE:
        return value.isoformat()
    if kind == TransformKind.BOOLEAN:
        return "yes" if value else "no"
    return str(value)


def _attribute_text(value: Any) -> str:
    if isinstance(value, bool):
        return "yes" if value else "no"
    if isinstance(value, float):
        return format_number(value)
    return "" if value is None else str(value)


# ===================
# BASELINKER
# ===================

class BaselinkerMapper(ExportMapper):
    """Baselinker catalog import."""

    name = ExportFormat.BASELINKER.value
    label = "Baselinker"
    description = "Baselinker marketplace integration format"

    def headers(self, options=None):
        return [
            "Product name",
            "SKU",
            "EAN",
            "UPC",
            "Price",
            "Stock",
            "Weight",
            "Description",
            "Category",
            "Manufacturer",
            "Tax rate (%)",
            "Images",
        ]

    def map(self, record, options):
        description = sanitize_html(
            record.description or record.long_description or record.short_description
        )
        category = (
            options.category_id
            or record.product_type
            or record.google_category_name
            or record.ebay_category_name
            or ""
        )
        return [
            record.title or "",
            record.sku or record.id or "",
            record.ean or "",
            record.upc or "",
            format_price(record.price),
            record.quantity if record.quantity is not None else 0,
            format_weight_kg(record.weight_grams),
            truncate(description, BASELINKER_DESCRIPTION_LIMIT),
            category,
            record.brand or "",
            options.tax_rate or DEFAULT_TAX_RATE,
            ";".join(record.images[:BASELINKER_MAX_IMAGES]),
        ]

    def validate(self, record):
        if not record.title:
            raise self._invalid(record, "Product must have a name")
        if not record.sku and not record.id:
            raise self._invalid(record, "Product must have SKU")


# ===================
# EBAY
# ===================

class EbayMapper(ExportMapper):
    """eBay File Exchange bulk listing upload."""

    name = ExportFormat.EBAY.value
    label = "eBay"
    description = "eBay bulk listing upload format"

    def headers(self, options=None):
        currency = options.currency if options else "USD"
        return [
            f"Action(SiteID=US|Country=US|Currency={currency}|Version=1193|CC=UTF-8)",
            "Category",
            "ConditionID",
            "Title",
            "SubTitle",
            "PicURL",
            "Quantity",
            "StartPrice",
            "BuyItNowPrice",
            "Duration",
            "Description",
            "Brand",
            "MPN",
            "UPC",
            "EAN",
            "CustomLabel",
            "ItemSpecifics",
        ]

    def map(self, record, options):
        title = record.title or f"Product - UPC: {record.upc or ''}"
        return [
            "Add",
            options.category_id or record.ebay_category_id or EBAY_DEFAULT_CATEGORY,
            EBAY_CONDITION_NEW,
            truncate(title, EBAY_TITLE_LIMIT, ellipsis=""),
            truncate(record.short_description, EBAY_SUBTITLE_LIMIT, ellipsis=""),
            record.images[0] if record.images else "",
            record.quantity or 1,
            format_price(record.price),
            format_price(record.regular_price or record.price),
            EBAY_DURATION,
            sanitize_html(record.description or record.long_description),
            record.brand or "",
            record.model or "",
            record.upc or "",
            record.ean or "",
            self.custom_label(record),
            self.item_specifics(record),
        ]

    @staticmethod
    def custom_label(record: NormalizedProductRecord) -> str:
        if record.id:
            return f"INV-{record.id}"
        return f"INV-{record.sku or record.upc or ''}"

    @staticmethod
    def item_specifics(record: NormalizedProductRecord) -> str:
        """Key:Value pairs joined by ';'."""
        specifics = {
            "Brand": record.brand or "Unbranded",
            "Type": record.type or "General",
            "Condition": record.condition or "New",
        }
        if record.color:
            specifics["Color"] = record.color
        if record.size:
            specifics["Size"] = record.size
        if record.material:
            specifics["Material"] = record.material
        return ";".join(f"{key}:{value}" for key, value in specifics.items())

    def validate(self, record):
        if not record.title and not record.upc:
            raise self._invalid(record, "Product must have a title or UPC")


# ===================
# REGISTRY
# ===================

class ExportMapperRegistry:
    """Format name → mapper."""

    def __init__(self, mappers: Iterable[ExportMapper]):
        self._mappers = {mapper.name.lower(): mapper for mapper in mappers}

    def get_mapper(self, name: Optional[str]) -> ExportMapper:
        """
        Raises:
            UnsupportedFormatError: If no mapper has that name
        """
        mapper = self._mappers.get((name or "").strip().lower())
        if mapper is None:
            raise UnsupportedFormatError(name or "", self.formats())
        return mapper

    def formats(self) -> list[str]:
        return list(self._mappers)

    def describe(self) -> dict:
        """Formats with their headers plus the option choices."""
        return {
            "formats": [
                {
                    "id": mapper.name,
                    "name": mapper.label,
                    "description": mapper.description,
                    "headers": mapper.headers(),
                }
                for mapper in self._mappers.values()
            ],
            "options": {
                "currency": CURRENCY_CHOICES,
                "delimiter": DELIMITER_CHOICES,
            },
        }


def default_registry() -> ExportMapperRegistry:
    return ExportMapperRegistry([CPIMapper(), BaselinkerMapper(), EbayMapper()])


# ===================
# SERVICE
# ===================

class ExportService:
    """
    Multi-format export.

    Handles selection, per-record validation and serialization.
    """

    def __init__(
        self,
        store: ProductStore,
        registry: Optional[ExportMapperRegistry] = None,
        defaults: Optional[ExportOptions] = None,
    ):
        self.store = store
        self.registry = registry or default_registry()
        self.defaults = defaults or ExportOptions()

    def resolve_options(self, options: Optional[ExportOptions]) -> ExportOptions:
        """Request options layered over the configured defaults."""
        if options is None:
            return self.defaults
        data = self.defaults.model_dump()
        data.update(options.model_dump(include=options.model_fields_set))
        return ExportOptions(**data)

    def select(self, selection: ExportSelection, max_rows: int) -> list[NormalizedProductRecord]:
        """Records for an id list, or for a filter predicate."""
        if selection.ids:
            records = self.store.get_many(selection.ids)[:max_rows]
        else:
            records = self.store.search(selection.filters, limit=max_rows)

        logger.info(
            "export_selection_resolved",
            by_ids=bool(selection.ids),
            count=len(records),
            max_rows=max_rows
        )
        return records

    def generate_csv(
        self,
        records: Iterable[NormalizedProductRecord],
        fmt: str,
        options: Optional[ExportOptions] = None,
    ) -> ExportResult:
        """
        Validate, map and serialize records.

        Invalid records are skipped and logged, unless options.strict is
        set, in which case the first MapperValidationError propagates.
        """
        mapper = self.registry.get_mapper(fmt)
        options = options or self.defaults
        rows: list[list[Any]] = []
        skipped: list[SkippedRecord] = []

        for record in records:
            try:
                mapper.validate(record)
            except MapperValidationError as e:
                if options.strict:
                    logger.error(
                        "export_aborted",
                        format=mapper.name,
                        record_id=record.id,
                        reason=e.reason
                    )
                    raise
                logger.warning(
                    "export_record_skipped",
                    format=mapper.name,
                    record_id=record.id,
                    reason=e.reason
                )
                skipped.append(SkippedRecord(id=record.id, reason=e.reason))
                continue
            rows.append(mapper.map(record, options))

        writer = CSVWriter(
            delimiter=options.delimiter,
            excel_friendly=options.excel_friendly,
            include_headers=options.include_headers,
        )
        content = writer.render(mapper.headers(options), rows)

        logger.info(
            "export_generated",
            format=mapper.name,
            rows=len(rows),
            skipped=len(skipped),
            bytes=len(content)
        )
        return ExportResult(
            format=ExportFormat(mapper.name),
            content=content,
            row_count=len(rows),
            skipped=skipped,
        )

    def export(self, request: ExportRequest) -> ExportResult:
        """
        Full export: resolve format, select records, render.

        Raises:
            UnsupportedFormatError: Unknown format
            NoProductsFoundError: Selection matched nothing
            MapperValidationError: Strict mode and a record is invalid
        """
        mapper = self.registry.get_mapper(request.format)
        options = self.resolve_options(request.options)
        records = self.select(request.selection, options.max_rows)

        if not records:
            selection = "ids" if request.selection.ids else "filters"
            raise NoProductsFoundError(selection)

        return self.generate_csv(records, mapper.name, options)
