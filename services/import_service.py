"""
Import service: delimited product files into the product store.

Two phases:
    1. Tokenize the whole file (a corrupt tail still lets earlier rows
       be diagnosed).
    2. Walk the data rows in file order. Each row becomes exactly one
       RowResult: created, updated, skipped or error.

Canonical CPI files map through FIELD_MAPPINGS; anything else goes through
the heuristic column analyzer. Rows are upserted by matching any of
UPC / EAN / SKU against the store.
"""

from dataclasses import dataclass, field
from typing import Any, Optional
from pydantic import ValidationError as RecordValidationError
import structlog

from exceptions import DatabaseError, UnreadableFileError
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
from models.product import (
    CURRENCY_CODE_RE,
    IDENTIFIER_MAX_LENGTHS,
    RECORD_DATA_FIELDS,
    NormalizedProductRecord,
)
from parsers.column_analyzer import map_heuristic_row
from parsers.cpi_schema import CPI_COLUMNS, REQUIRED_COLUMNS, validate_header_layout
from parsers.csv_tokenizer import detect_delimiter, tokenize
from parsers.field_mappings import (
    FIELD_MAPPINGS,
    apply_transform,
    build_additional_attributes,
    extract_image_urls,
)
from services.product_store import ProductStore
from utils.text_utils import unguard_injection

logger = structlog.get_logger(__name__)

DECODINGS = ("utf-8-sig", "cp1252")

# A bad or negative value in one of these fails the row.
VALIDATED_NUMERIC_FIELDS = ("quantity", "price", "cost", "weight_grams")

# Negative values here are dropped (the record cannot hold them).
NON_NEGATIVE_FIELDS = ("stock",)

# Parsed as numbers; fractions are truncated toward zero.
WHOLE_NUMBER_FIELDS = ("quantity", "stock")

DIMENSION_AXES = ("length_cm", "width_cm", "height_cm")


def decode_payload(data: bytes) -> str:
    """
    Decode uploaded bytes as text.

    UTF-8 (with or without BOM) first, then Windows-1252.

    Raises:
        UnreadableFileError: Binary content or an unknown encoding
    """
    if b"\x00" in data:
        raise UnreadableFileError("File contains NUL bytes (binary file?)")
    for encoding in DECODINGS:
        try:
            return data.decode(encoding)
        except UnicodeDecodeError:
            continue
    raise UnreadableFileError("File is not valid UTF-8 or Windows-1252 text")


@dataclass
class MappedRow:
    """Field values pulled from one row, before validation."""
    values: dict[str, Any] = field(default_factory=dict)
    raw: dict[str, str] = field(default_factory=dict)
    failures: dict[str, str] = field(default_factory=dict)
    images: list[str] = field(default_factory=list)
    mapped_fields: set[str] = field(default_factory=set)
    missing_required: list[str] = field(default_factory=list)


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (str, tuple, list, dict)):
        return len(value) == 0
    return False


class ImportService:
    """
    Import orchestrator.

    Holds a product store and the import policy. Rows never raise out of
    the loop: failures become RowResult errors and the batch continues.
    """

    def __init__(self, store: ProductStore, options: Optional[ImportOptions] = None):
        self.store = store
        self.options = options or ImportOptions()

    # ===================
    # ENTRY POINTS
    # ===================

    def import_bytes(self, data: bytes, options: Optional[ImportOptions] = None) -> ImportSummary:
        """Decode an uploaded file and import it."""
        return self.import_file(decode_payload(data), options)

    def import_file(self, raw_text: str, options: Optional[ImportOptions] = None) -> ImportSummary:
        """
        Import decoded file content.

        Args:
            raw_text: Whole file as text
            options: Overrides the service's import policy for this call

        Returns:
            ImportSummary with one RowResult per data row
        """
        opts = options or self.options
        delimiter = opts.delimiter or detect_delimiter(raw_text)
        tokens = tokenize(raw_text, delimiter=delimiter, max_field_length=opts.max_field_length)

        summary = ImportSummary(
            dry_run=opts.dry_run,
            success_error_ratio=opts.success_error_ratio,
            warnings=[
                ImportWarning(
                    code=w.code,
                    line=w.line,
                    field_index=w.field_index,
                    message=w.message,
                )
                for w in tokens.warnings
            ],
        )

        if not tokens.rows:
            logger.warning("import_empty_file")
            return summary.finish()

        headers = [h.strip().lower() for h in tokens.header]
        canonical = validate_header_layout(tokens.header).is_valid
        summary.layout = "canonical" if canonical else "heuristic"
        rows = list(zip(tokens.rows[1:], tokens.line_numbers[1:]))
        summary.total_rows = len(rows)

        logger.info(
            "import_started",
            total_rows=summary.total_rows,
            columns=len(headers),
            layout=summary.layout,
            delimiter=delimiter,
            mode=opts.mode.value,
            dry_run=opts.dry_run
        )

        for cells, line in rows:
            result = self._process_row(cells, line, headers, canonical, opts)
            if result.action == RowAction.ERROR:
                logger.warning(
                    "import_row_failed",
                    row=line,
                    kind=result.error_kind.value if result.error_kind else None,
                    error=result.error
                )
            summary.record(result)

        summary.finish()
        logger.info(
            "import_completed",
            total_rows=summary.total_rows,
            created=summary.created,
            updated=summary.updated,
            skipped=summary.skipped,
            error_rows=summary.error_rows,
            success=summary.success,
            duration_ms=summary.duration_ms
        )
        return summary

    # ===================
    # ROW PROCESSING
    # ===================

    def _process_row(
        self,
        cells: list[str],
        line: int,
        headers: list[str],
        canonical: bool,
        opts: ImportOptions,
    ) -> RowResult:
        if len(cells) != len(headers):
            logger.warning(
                "row_column_count_mismatch",
                row=line,
                expected=len(headers),
                got=len(cells)
            )
            return RowResult.failed(
                line,
                RowErrorKind.STRUCTURE,
                f"Column count mismatch: expected {len(headers)}, got {len(cells)}",
                cells,
            )

        if all(not cell.strip() for cell in cells):
            return RowResult.skipped(line, "Blank row")

        cells = [unguard_injection(cell.strip()) for cell in cells]

        try:
            if canonical:
                mapped = self.map_canonical_row(cells, opts)
            else:
                mapped = self.map_heuristic(cells, headers, opts)

            record = self.build_record(mapped, opts)
            problems = self.validate(mapped, record)
            if problems:
                return RowResult.failed(
                    line,
                    RowErrorKind.VALIDATION,
                    "; ".join(problems),
                    cells,
                    identifier=record.primary_identifier,
                )

            return self._upsert(record, mapped, line, opts)

        except RecordValidationError as e:
            return RowResult.failed(line, RowErrorKind.VALIDATION, _describe(e), cells)
        except DatabaseError as e:
            return RowResult.failed(line, RowErrorKind.STORE, e.message, cells)
        except Exception as e:
            logger.exception("import_row_unexpected_error", row=line, error=str(e))
            return RowResult.failed(line, RowErrorKind.UNEXPECTED, str(e), cells)

    def map_canonical_row(self, cells: list[str], opts: ImportOptions) -> MappedRow:
        """Map a row of a canonical-compliant file through FIELD_MAPPINGS."""
        row = dict(zip(CPI_COLUMNS, cells))
        mapped = MappedRow(raw=row)
        dimensions: dict[str, float] = {}

        for column, mapping in FIELD_MAPPINGS.items():
            result = apply_transform(mapping.transform, row.get(column), opts)
            target = mapping.field
            if target.startswith("dimensions."):
                mapped.mapped_fields.add("dimensions")
                if result.value is not None:
                    dimensions[target.split(".", 1)[1]] = result.value
            else:
                mapped.mapped_fields.add(target)
                if result.value is not None:
                    mapped.values[target] = result.value
            if not result.ok:
                mapped.failures[target] = f"Invalid {column}: {result.error}"

        mapped.values["dimensions"] = dimensions
        mapped.values["additional_attributes"] = build_additional_attributes(row)
        mapped.images = extract_image_urls(row, opts.max_images)
        mapped.mapped_fields.update({"images", "additional_attributes"})
        mapped.missing_required = [c for c in REQUIRED_COLUMNS if not row.get(c)]
        return mapped

    def map_heuristic(self, cells: list[str], headers: list[str], opts: ImportOptions) -> MappedRow:
        """Map a row of an arbitrary layout via the column analyzer."""
        result = map_heuristic_row(cells, headers, opts)
        mapped = MappedRow(
            values=dict(result.values),
            failures={k: f"Invalid {k}: {v}" for k, v in result.failures.items()},
            images=result.images[:opts.max_images],
        )
        mapped.mapped_fields = set(mapped.values) | set(mapped.failures)
        if mapped.images:
            mapped.mapped_fields.add("images")
        return mapped

    def build_record(self, mapped: MappedRow, opts: ImportOptions) -> NormalizedProductRecord:
        """Turn mapped values into a record. Unusable optional values are dropped."""
        values = dict(mapped.values)

        for name in NON_NEGATIVE_FIELDS:
            if name in values and values[name] < 0:
                logger.info("negative_value_dropped", field=name, value=values[name])
                values.pop(name)

        dimensions = values.get("dimensions") or {}
        for axis in DIMENSION_AXES:
            if axis in dimensions and dimensions[axis] < 0:
                logger.info("negative_value_dropped", field=axis, value=dimensions[axis])
                dimensions = {k: v for k, v in dimensions.items() if k != axis}
        values["dimensions"] = dimensions

        for name in VALIDATED_NUMERIC_FIELDS:
            # Kept out of the record; validate() reports them.
            if name in values and values[name] < 0:
                values.pop(name)

        for name in WHOLE_NUMBER_FIELDS:
            value = values.get(name)
            if isinstance(value, float):
                if not value.is_integer():
                    logger.info("fractional_value_truncated", field=name, value=value)
                values[name] = int(value)

        for name, limit in IDENTIFIER_MAX_LENGTHS.items():
            value = values.get(name)
            if isinstance(value, str) and len(value) > limit:
                logger.info("field_transform_failed", field=name, error=f"longer than {limit} characters")
                values.pop(name)

        currency = values.get("currency")
        if isinstance(currency, str) and currency and not CURRENCY_CODE_RE.match(currency):
            logger.info("field_transform_failed", field="currency", error=f"'{currency}' is not a currency code")
            values.pop("currency")

        for name, message in mapped.failures.items():
            if name not in VALIDATED_NUMERIC_FIELDS:
                logger.info("field_transform_failed", field=name, error=message)

        return NormalizedProductRecord(images=tuple(mapped.images), **values)

    def validate(self, mapped: MappedRow, record: NormalizedProductRecord) -> list[str]:
        """Field-level checks. Returns problems; empty means valid."""
        problems: list[str] = []

        if not record.title:
            problems.append("Missing required field: title")
        elif _looks_like_image_url(record.title):
            logger.warning("title_looks_like_image_url", title=record.title[:50])
        for column in mapped.missing_required:
            problems.append(f"Missing required field: {column}")
        if not record.has_identifier:
            problems.append("At least one identifier (UPC, EAN, GTIN or SKU) is required")

        for name in VALIDATED_NUMERIC_FIELDS:
            if name in mapped.failures:
                problems.append(mapped.failures[name])
            elif name in mapped.values and mapped.values[name] < 0:
                problems.append(f"{name} must be a non-negative number")

        return problems

    # ===================
    # UPSERT
    # ===================

    def _upsert(
        self,
        record: NormalizedProductRecord,
        mapped: MappedRow,
        line: int,
        opts: ImportOptions,
    ) -> RowResult:
        identifier = record.primary_identifier
        existing = self.store.find_by_identifiers(upc=record.upc, ean=record.ean, sku=record.sku)

        if existing is not None:
            if opts.mode == ImportMode.CREATE_ONLY:
                return RowResult.skipped(line, "Product already exists", identifier)

            changes = merge_changes(existing, record, mapped.mapped_fields, opts.merge_policy)
            if changes and not opts.dry_run:
                existing = self.store.update(existing.id, changes)

            logger.debug("import_row_updated", row=line, product_id=existing.id, fields=sorted(changes))
            return RowResult(
                row=line,
                identifier=identifier,
                success=True,
                action=RowAction.UPDATED,
                fields=sorted(changes),
                product_id=existing.id,
                image_count=len(existing.images),
            )

        if opts.mode == ImportMode.UPDATE_ONLY:
            return RowResult.skipped(line, "No matching product", identifier)

        new_record = apply_create_defaults(record, opts)
        product_id = None
        if not opts.dry_run:
            product_id = self.store.create(new_record).id

        logger.debug("import_row_created", row=line, product_id=product_id)
        return RowResult(
            row=line,
            identifier=identifier,
            success=True,
            action=RowAction.CREATED,
            fields=[name for name in RECORD_DATA_FIELDS if not _is_empty(_field_value(new_record, name))],
            product_id=product_id,
            image_count=len(new_record.images),
        )

    def pending_image_fetches(self, summary: ImportSummary) -> list[NormalizedProductRecord]:
        """Created products that have a UPC but no images."""
        pending = []
        for result in summary.results:
            if result.action != RowAction.CREATED or result.image_count or not result.product_id:
                continue
            record = self.store.get(result.product_id)
            if record is not None and record.upc:
                pending.append(record)
        return pending


def _describe(error: RecordValidationError) -> str:
    """One-line summary of a pydantic validation error."""
    parts = []
    for item in error.errors():
        location = ".".join(str(p) for p in item["loc"])
        parts.append(f"{location}: {item['msg']}")
    return "; ".join(parts)


def _looks_like_image_url(text: str) -> bool:
    lowered = text.lower()
    return lowered.startswith("http") or ".jpg" in lowered or ".png" in lowered


def _field_value(record: NormalizedProductRecord, name: str) -> Any:
    value = getattr(record, name)
    if name == "dimensions":
        return None if value.is_empty else value
    return value


def apply_create_defaults(record: NormalizedProductRecord, opts: ImportOptions) -> NormalizedProductRecord:
    """Fill condition / quantity / currency for a new product."""
    defaults = {}
    if not record.condition:
        defaults["condition"] = opts.default_condition
    if record.quantity is None:
        defaults["quantity"] = opts.default_quantity
    if not record.currency:
        defaults["currency"] = opts.default_currency.upper()
    return record.model_copy(update=defaults) if defaults else record


def merge_changes(
    existing: NormalizedProductRecord,
    incoming: NormalizedProductRecord,
    mapped_fields: set[str],
    policy: MergePolicy = MergePolicy.NON_EMPTY,
) -> dict[str, Any]:
    """
    Compute the field changes an incoming row makes to a stored record.

    Only fields the row's layout maps are considered. Returns field name ->
    new value for fields whose value actually changes.
    """
    changes: dict[str, Any] = {}

    for name in sorted(mapped_fields):
        old = getattr(existing, name)
        new = getattr(incoming, name)

        if name == "dimensions":
            merged = _merge_dimensions(old, new, policy)
            if merged != old.model_dump():
                changes[name] = merged
            continue

        if name == "additional_attributes":
            if policy == MergePolicy.OVERWRITE:
                merged_attrs = dict(new)
            elif policy == MergePolicy.PREFER_EXISTING:
                merged_attrs = {**new, **old}
            else:
                merged_attrs = {**old, **new}
            if merged_attrs != old:
                changes[name] = merged_attrs
            continue

        if policy == MergePolicy.OVERWRITE:
            candidate = new
        elif _is_empty(new):
            continue
        elif policy == MergePolicy.PREFER_EXISTING and not _is_empty(old):
            continue
        else:
            candidate = new

        if candidate != old:
            changes[name] = candidate

    return changes


def _merge_dimensions(old, new, policy: MergePolicy) -> dict[str, Optional[float]]:
    merged = {}
    for axis in DIMENSION_AXES:
        old_value = getattr(old, axis)
        new_value = getattr(new, axis)
        if policy == MergePolicy.OVERWRITE:
            merged[axis] = new_value
        elif policy == MergePolicy.PREFER_EXISTING:
            merged[axis] = old_value if old_value is not None else new_value
        else:
            merged[axis] = new_value if new_value is not None else old_value
    return merged
