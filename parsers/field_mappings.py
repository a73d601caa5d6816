"""
CPI field mapping table and value transforms.

FIELD_MAPPINGS is pure data: each entry names the canonical column, the
record field it fills and a TransformKind. apply_transform() dispatches on
the kind. Every transform is total: unparsable input yields a failed
TransformResult (value None plus an error message), never an exception.
"""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional
import math
import re

import structlog

from models.imports import ImportOptions
from parsers.cpi_schema import (
    CPI_COLUMNS,
    ID_COLUMN,
    IMAGE_COLUMNS,
    IMAGES_AGGREGATE_COLUMN,
)

logger = structlog.get_logger(__name__)


class TransformKind(str, Enum):
    TEXT = "text"
    NUMBER = "number"
    INTEGER = "integer"
    WEIGHT = "weight"
    LENGTH = "length"
    BOOLEAN = "boolean"
    DATE = "date"


class TargetEntity(str, Enum):
    """Storage area a mapped field belongs to."""
    PRODUCT = "product"
    CONTENT = "content"
    OFFER = "offer"
    CATEGORY = "category"


@dataclass(frozen=True)
class FieldMapping:
    """One column -> record field rule."""
    column: str
    entity: TargetEntity
    field: str
    transform: TransformKind = TransformKind.TEXT
    required: bool = False


@dataclass(frozen=True)
class TransformResult:
    """Outcome of one transform: a value, or None with an error."""
    value: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def missing(cls) -> "TransformResult":
        return cls(None, None)

    @classmethod
    def failure(cls, message: str) -> "TransformResult":
        return cls(None, message)


def _m(column: str, entity: TargetEntity, field: str,
       transform: TransformKind = TransformKind.TEXT, required: bool = False) -> FieldMapping:
    return FieldMapping(column, entity, field, transform, required)


P, C, O, K = TargetEntity.PRODUCT, TargetEntity.CONTENT, TargetEntity.OFFER, TargetEntity.CATEGORY

FIELD_MAPPINGS: dict[str, FieldMapping] = {m.column: m for m in (
    # Identifiers
    _m("UPC", P, "upc", required=True),
    _m("EAN", P, "ean"),
    _m("GTIN", P, "gtin"),
    _m("SKU", P, "sku"),

    # Basic information
    _m("Title", P, "title", required=True),
    _m("Description", P, "description"),
    _m("Brand", P, "brand"),
    _m("Model", P, "model"),
    _m("Condition", P, "condition"),

    # Quantities
    _m("Quantity", P, "quantity", TransformKind.NUMBER),
    _m("Stock", P, "stock", TransformKind.NUMBER),

    # Physical attributes
    _m("Color", P, "color"),
    _m("Size", P, "size"),
    _m("Material", P, "material"),
    _m("Weight (unit)", P, "weight_grams", TransformKind.WEIGHT),
    _m("Length (unit)", P, "dimensions.length_cm", TransformKind.LENGTH),
    _m("Width (unit)", P, "dimensions.width_cm", TransformKind.LENGTH),
    _m("Height (unit)", P, "dimensions.height_cm", TransformKind.LENGTH),

    # Pricing
    _m("Price", O, "price", TransformKind.NUMBER),
    _m("Regular Price", O, "regular_price", TransformKind.NUMBER),
    _m("Sale Price", O, "sale_price", TransformKind.NUMBER),
    _m("Lowest Recorded Price", P, "lowest_recorded_price", TransformKind.NUMBER),
    _m("Highest Recorded Price", P, "highest_recorded_price", TransformKind.NUMBER),
    _m("Currency", P, "currency"),
    _m("Date sale price starts", O, "sale_price_starts", TransformKind.DATE),
    _m("Date sale price ends", O, "sale_price_ends", TransformKind.DATE),

    # Content
    _m("Type", C, "type"),
    _m("Short Description", C, "short_description"),
    _m("Long Description", C, "long_description"),
    _m("Unique Selling Points", C, "unique_selling_points"),
    _m("Key Features", C, "key_features"),
    _m("Specifications", C, "specifications"),
    _m("Item Specifics", C, "item_specifics"),
    _m("Tags", C, "tags"),
    _m("Features", P, "features"),

    # Categories
    _m("eBay Category Id", K, "ebay_category_id"),
    _m("eBay Category", K, "ebay_category_name"),
    _m("Google ID #", K, "google_category_id"),
    _m("Google Category", K, "google_category_name"),
    _m("Product Type", K, "product_type"),
)}


# ===================
# UNIT CONVERSION
# ===================

GRAMS_PER_UNIT = {
    "g": 1.0,
    "kg": 1000.0,
    "lb": 453.592,
    "oz": 28.3495,
}

CM_PER_UNIT = {
    "cm": 1.0,
    "mm": 0.1,
    "in": 2.54,
    "ft": 30.48,
}

UNIT_ALIASES = {
    "gram": "g", "grams": "g", "gr": "g",
    "kilogram": "kg", "kilograms": "kg", "kgs": "kg",
    "lbs": "lb", "pound": "lb", "pounds": "lb",
    "ounce": "oz", "ounces": "oz",
    "centimeter": "cm", "centimeters": "cm",
    "millimeter": "mm", "millimeters": "mm",
    "inch": "in", "inches": "in",
    "foot": "ft", "feet": "ft",
}

_NUMBER_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")
_MEASUREMENT_RE = re.compile(r"^([\d.,]+)\s*([a-zA-Z]+)?$")

# Rounding keeps conversions free of binary noise such as 0.30000000000000004.
_PRECISION = 6


def _normalize_unit(unit: Optional[str]) -> Optional[str]:
    if not unit:
        return None
    unit = unit.strip().lower()
    return UNIT_ALIASES.get(unit, unit)


def parse_number(value: Optional[str]) -> Optional[float]:
    """
    Parse a number with optional thousands-separator commas.

    Returns None (never 0, never NaN) when the value is missing or invalid,
    so callers can tell "missing" from "zero".
    """
    if value is None:
        return None
    cleaned = str(value).replace(",", "").strip()
    if not cleaned or not _NUMBER_RE.match(cleaned):
        return None
    number = float(cleaned)
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def parse_integer(value: Optional[str]) -> Optional[int]:
    """Whole numbers only ("12", "1,200", "3.0"); None otherwise."""
    number = parse_number(value)
    if number is None or not number.is_integer():
        return None
    return int(number)


def convert_weight_to_grams(value: Any, unit: str = "g") -> Optional[float]:
    """kg x1000, lb x453.592, oz x28.3495, g x1. Unknown units count as grams."""
    number = value if isinstance(value, (int, float)) else parse_number(value)
    if number is None:
        return None
    factor = GRAMS_PER_UNIT.get(_normalize_unit(unit) or "g")
    if factor is None:
        logger.debug("unknown_weight_unit", unit=unit)
        factor = 1.0
    return round(number * factor, _PRECISION)


def convert_length_to_cm(value: Any, unit: str = "cm") -> Optional[float]:
    """mm x0.1, in x2.54, ft x30.48, cm x1. Unknown units count as centimeters."""
    number = value if isinstance(value, (int, float)) else parse_number(value)
    if number is None:
        return None
    factor = CM_PER_UNIT.get(_normalize_unit(unit) or "cm")
    if factor is None:
        logger.debug("unknown_length_unit", unit=unit)
        factor = 1.0
    return round(number * factor, _PRECISION)


def parse_measurement(raw: Optional[str], kind: TransformKind, default_unit: str) -> Optional[float]:
    """
    Parse a unit-bearing cell such as "100g", "2.2 lb" or "15".

    A unit suffix in the cell wins over default_unit.
    """
    if raw is None or not raw.strip():
        return None
    convert = convert_weight_to_grams if kind == TransformKind.WEIGHT else convert_length_to_cm
    text = raw.strip()
    match = _MEASUREMENT_RE.match(text)
    if match:
        return convert(match.group(1), match.group(2) or default_unit)
    return convert(text, default_unit)


# ===================
# BOOLEANS AND DATES
# ===================

TRUTHY = frozenset({"yes", "true", "1", "y", "t"})
FALSY_WORDS = frozenset({"no", "false", "n", "f", "0"})

DATE_FORMATS = (
    "%m/%d/%Y",
    "%Y/%m/%d",
    "%d.%m.%Y",
    "%b %d, %Y",
    "%B %d, %Y",
    "%d %b %Y",
    "%d %B %Y",
)


def parse_boolean(value: Optional[str]) -> bool:
    """Truthy tokens (yes, true, 1, y, t) -> True; anything else -> False."""
    if value is None:
        return False
    return value.strip().lower() in TRUTHY


def parse_date(value: Optional[str]) -> Optional[date]:
    """Parse a date; None when the string is not a valid date."""
    if value is None or not value.strip():
        return None
    text = value.strip()
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        pass
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


# ===================
# DISPATCH
# ===================

def apply_transform(
    kind: TransformKind,
    raw: Optional[str],
    options: Optional[ImportOptions] = None,
) -> TransformResult:
    """
    Run one transform.

    Empty input is "missing" (ok, value None). Unparsable input is a
    failure (value None, error set). Never raises.
    """
    if raw is None or not raw.strip():
        return TransformResult.missing()
    options = options or ImportOptions()
    text = raw.strip()

    if kind == TransformKind.TEXT:
        return TransformResult(text)

    if kind == TransformKind.BOOLEAN:
        return TransformResult(parse_boolean(text))

    if kind == TransformKind.NUMBER:
        value = parse_number(text)
        if value is None:
            return TransformResult.failure(f"'{text}' is not a number")
        return TransformResult(value)

    if kind == TransformKind.INTEGER:
        value = parse_integer(text)
        if value is None:
            return TransformResult.failure(f"'{text}' is not a whole number")
        return TransformResult(value)

    if kind == TransformKind.WEIGHT:
        value = parse_measurement(text, kind, options.default_weight_unit.value)
        if value is None:
            return TransformResult.failure(f"'{text}' is not a weight")
        return TransformResult(value)

    if kind == TransformKind.LENGTH:
        value = parse_measurement(text, kind, options.default_length_unit.value)
        if value is None:
            return TransformResult.failure(f"'{text}' is not a length")
        return TransformResult(value)

    if kind == TransformKind.DATE:
        value = parse_date(text)
        if value is None:
            return TransformResult.failure(f"'{text}' is not a date")
        return TransformResult(value)

    return TransformResult.failure(f"Unknown transform: {kind}")


# ===================
# ROUND-TRIP HELPERS
# ===================

_SPECIAL_COLUMNS = frozenset({IMAGES_AGGREGATE_COLUMN, ID_COLUMN, *IMAGE_COLUMNS})
_PLAIN_NUMBER_RE = re.compile(r"^\d+(\.\d+)?$")
_BOOLEAN_WORDS = frozenset({"yes", "no", "true", "false"})


def unmapped_columns() -> tuple[str, ...]:
    """Canonical columns with no mapping that are not image or ID columns."""
    return tuple(
        col for col in CPI_COLUMNS
        if col not in FIELD_MAPPINGS and col not in _SPECIAL_COLUMNS
    )


def build_additional_attributes(row: dict[str, str]) -> dict[str, Any]:
    """
    Collect unmapped columns so nothing is lost on round-trip.

    yes/no/true/false become booleans, plain decimals become numbers,
    everything else stays a string. Empty cells are left out.
    """
    attributes: dict[str, Any] = {}
    for column in unmapped_columns():
        value = (row.get(column) or "").strip()
        if not value:
            continue
        if value.lower() in _BOOLEAN_WORDS:
            attributes[column] = parse_boolean(value)
        elif _PLAIN_NUMBER_RE.match(value):
            attributes[column] = parse_number(value)
        else:
            attributes[column] = value
    return attributes


def extract_image_urls(row: dict[str, str], limit: Optional[int] = None) -> list[str]:
    """
    Image URLs from the Images aggregate (comma-joined) then Image 1..12.

    Trimmed, de-duplicated, order preserved, optionally capped.
    """
    urls: list[str] = []
    aggregate = row.get(IMAGES_AGGREGATE_COLUMN) or ""
    urls.extend(url.strip() for url in aggregate.split(",") if url.strip())
    for column in IMAGE_COLUMNS:
        value = (row.get(column) or "").strip()
        if value:
            urls.append(value)

    unique = list(dict.fromkeys(urls))
    if limit is not None:
        unique = unique[:limit]
    return unique
