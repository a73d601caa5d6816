"""
Heuristic column analyzer for arbitrary (non-canonical) spreadsheets.

Detects which columns hold the title, UPC, price, brand, quantity and
images by combining header keywords with the shape of the cell value.
Columns no rule claims fall through to a small table of well-known header
synonyms; everything else is dropped.
"""

from dataclasses import dataclass, field
from typing import Any, Optional
import re

import structlog

from models.imports import ImportOptions
from parsers.field_mappings import (
    TransformKind,
    apply_transform,
    parse_number,
)

logger = structlog.get_logger(__name__)

MAX_HEURISTIC_IMAGES = 10

_DIGITS_RE = re.compile(r"^\d+$")
_DECIMAL_RE = re.compile(r"^\d+\.\d+$")
_UPC_RE = re.compile(r"^\d{12,13}$")
_PRICE_RE = re.compile(r"^\$?[\d,]+\.?\d*$")
_DIMENSIONS_RE = re.compile(
    r"^\s*([\d.]+)\s*[x×*]\s*([\d.]+)\s*[x×*]\s*([\d.]+)\s*([a-zA-Z]+)?\s*$"
)

PERSONAL_DATA_HEADERS = frozenset({"seller", "owner", "user", "person"})

# Exact header -> (record field, transform). Only consulted for columns
# the content rules did not claim.
SYNONYMS: dict[str, tuple[str, TransformKind]] = {
    "ean": ("ean", TransformKind.TEXT),
    "gtin": ("ean", TransformKind.TEXT),
    "sku": ("sku", TransformKind.TEXT),
    "condition": ("condition", TransformKind.TEXT),
    "description": ("description", TransformKind.TEXT),
    "short description": ("description", TransformKind.TEXT),
    "long description": ("description", TransformKind.TEXT),
    "model": ("model", TransformKind.TEXT),
    "color": ("color", TransformKind.TEXT),
    "size": ("size", TransformKind.TEXT),
    "dimensions": ("dimensions", TransformKind.TEXT),
    "weight": ("weight_grams", TransformKind.WEIGHT),
    "weight (unit)": ("weight_grams", TransformKind.WEIGHT),
    "cost": ("cost", TransformKind.NUMBER),
    "category": ("product_type", TransformKind.TEXT),
    "material": ("material", TransformKind.TEXT),
    "currency": ("currency", TransformKind.TEXT),
}


@dataclass
class ColumnAnalysis:
    """Detected column indexes; None when no column qualified."""
    title: Optional[int] = None
    upc: Optional[int] = None
    price: Optional[int] = None
    brand: Optional[int] = None
    quantity: Optional[int] = None
    images: list[int] = field(default_factory=list)

    def claimed(self) -> set[int]:
        indexes = {self.title, self.upc, self.price, self.brand, self.quantity}
        indexes.update(self.images)
        indexes.discard(None)
        return indexes


@dataclass
class HeuristicMapping:
    """
    Result of mapping one row heuristically.

    values holds record fields; failures holds fields whose cell was present
    but could not be parsed (field -> message).
    """
    values: dict[str, Any] = field(default_factory=dict)
    images: list[str] = field(default_factory=list)
    failures: dict[str, str] = field(default_factory=dict)
    personal_columns: list[str] = field(default_factory=list)
    analysis: ColumnAnalysis = field(default_factory=ColumnAnalysis)


def _is_title_header(header: str) -> bool:
    return (
        ("title" in header or "name" in header or "product" in header)
        and "image" not in header
    )


def _looks_like_title(value: str) -> bool:
    return (
        len(value) > 10
        and not value.startswith("http")
        and not _DIGITS_RE.match(value)
        and not _DECIMAL_RE.match(value)
    )


def _split_urls(value: str) -> list[str]:
    if "," in value:
        return [url.strip() for url in value.split(",") if url.strip().startswith("http")]
    return [value] if value.startswith("http") else []


def analyze_columns(row: list[str], headers: list[str]) -> ColumnAnalysis:
    """
    Guess column roles from one sample row and its headers.

    Headers are compared lower-cased. For title and price a later column
    may replace an earlier match when its header is more specific.
    """
    analysis = ColumnAnalysis()

    for i in range(min(len(headers), len(row))):
        header = headers[i].strip().lower()
        value = (row[i] or "").strip()

        if _is_title_header(header) and _looks_like_title(value):
            if analysis.title is None or "title" in header:
                analysis.title = i

        if ("upc" in header or "barcode" in header) and _UPC_RE.match(value):
            analysis.upc = i

        if ("price" in header or "cost" in header) and _PRICE_RE.match(value):
            if analysis.price is None or header in ("price", "regular price"):
                analysis.price = i

        if "brand" in header and 0 < len(value) < 50:
            analysis.brand = i

        if ("quantity" in header or "qty" in header or "stock" in header) and _DIGITS_RE.match(value):
            analysis.quantity = i

        # A cell that only mentions a URL in prose stays available to the
        # synonym table.
        if "http" in value and _split_urls(value):
            analysis.images.append(i)

    return analysis


def _parse_dimensions(value: str, options: ImportOptions) -> Optional[dict[str, float]]:
    """Parse "LxWxH [unit]" into centimeter values."""
    match = _DIMENSIONS_RE.match(value)
    if not match:
        return None
    unit = match.group(4) or options.default_length_unit.value
    result = {}
    for key, raw in zip(("length_cm", "width_cm", "height_cm"), match.group(1, 2, 3)):
        converted = apply_transform(TransformKind.LENGTH, f"{raw}{unit}", options)
        if converted.value is None:
            return None
        result[key] = converted.value
    return result


def map_heuristic_row(
    row: list[str],
    headers: list[str],
    options: Optional[ImportOptions] = None,
) -> HeuristicMapping:
    """
    Map a non-canonical row to record fields.

    Detected columns are applied first. Remaining columns go through the
    synonym table; personal-data columns are skipped and logged.
    """
    options = options or ImportOptions()
    analysis = analyze_columns(row, headers)
    mapping = HeuristicMapping(analysis=analysis)
    values = mapping.values

    def cell(index: Optional[int]) -> str:
        return (row[index] or "").strip() if index is not None else ""

    if analysis.title is not None:
        values["title"] = cell(analysis.title)
    if analysis.upc is not None:
        values["upc"] = cell(analysis.upc)
    if analysis.price is not None:
        price = parse_number(cell(analysis.price).replace("$", ""))
        if price is not None:
            values["price"] = price
    if analysis.brand is not None:
        values["brand"] = cell(analysis.brand)
    if analysis.quantity is not None:
        values["quantity"] = int(cell(analysis.quantity))

    urls: list[str] = []
    for index in analysis.images:
        urls.extend(_split_urls(cell(index)))
    mapping.images = list(dict.fromkeys(urls))[:MAX_HEURISTIC_IMAGES]

    claimed = analysis.claimed()
    for i in range(min(len(headers), len(row))):
        if i in claimed:
            continue
        header = headers[i].strip().lower()
        value = (row[i] or "").strip()
        if not value or not header:
            continue

        if header in PERSONAL_DATA_HEADERS:
            mapping.personal_columns.append(header)
            logger.info("personal_data_column_skipped", column=header)
            continue

        synonym = SYNONYMS.get(header)
        if synonym is None:
            logger.debug("heuristic_column_dropped", column=header, index=i)
            continue

        target, kind = synonym
        if target == "description":
            if "description" not in values or header == "long description":
                values["description"] = value
            continue
        if target in values:
            continue
        if target == "dimensions":
            dimensions = _parse_dimensions(value, options)
            if dimensions is None:
                values.setdefault("additional_attributes", {})["Dimensions"] = value
            else:
                values["dimensions"] = dimensions
            continue

        result = apply_transform(kind, value, options)
        if result.ok:
            values[target] = result.value
        else:
            mapping.failures[target] = result.error

    return mapping
