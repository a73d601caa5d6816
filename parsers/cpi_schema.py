"""
Canonical CPI (Comprehensive Product Information) schema.

The fixed, ordered 90-column interchange layout used for import and export,
plus the role metadata the field mapping table relies on. Column order is
significant: a file is canonical-compliant only when its header matches
CPI_COLUMNS position by position.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


CPI_COLUMNS: tuple[str, ...] = (
    "Quantity",
    "SKU",
    "UPC",
    "Condition",
    "Title",
    "Type",
    "Brand",
    "Model",
    "Short Description",
    "Description",
    "Long Description",
    "Unique Selling Points",
    "Key Features",
    "Specifications",
    "Item Specifics",
    "Tags",
    "Additional Attributes",
    "Weight (unit)",
    "Length (unit)",
    "Width (unit)",
    "Height (unit)",
    "Price",
    "Regular Price",
    "Lowest Recorded Price",
    "Highest Recorded Price",
    "Currency",
    "Sale Price",
    "Date sale price starts",
    "Date sale price ends",
    "eBay Category Id",
    "eBay Category",
    "Google ID #",
    "Google Category",
    "Product Type",
    "Color",
    "Size",
    "Dimensions",
    "Material",
    "Pattern",
    "Style",
    "Features",
    "Occasion",
    "Suggested Use",
    "Ingredients",
    "Fitment & Compatibility",
    "Installation",
    "Care Instructions",
    "Key Benefits",
    "History & Provenance",
    "Condition Details",
    "Authentication",
    "Stock",
    "Low stock amount",
    "Backorders allowed?",
    "Sold individually?",
    "Tax status",
    "Tax class",
    "ePID",
    "Shipping class",
    "Images",
    "Image 1",
    "Image 2",
    "Image 3",
    "Image 4",
    "Image 5",
    "Image 6",
    "Image 7",
    "Image 8",
    "Image 9",
    "Image 10",
    "Image 11",
    "Image 12",
    "Published",
    "Is featured?",
    "Visibility in catalog",
    "Allow customer reviews?",
    "Purchase Note",
    "Download limit",
    "Download expiry days",
    "Parent",
    "Grouped products",
    "Upsells",
    "Cross-sells",
    "External URL",
    "Button text",
    "Position",
    "Upload Status",
    "EAN",
    "GTIN",
    "ID",
)

CPI_COLUMN_COUNT = len(CPI_COLUMNS)


class ColumnRole(str, Enum):
    """Classification of a canonical column."""
    NONE = "none"
    REQUIRED = "required"
    IMAGE = "image"
    BOOLEAN = "boolean"
    PRICE = "price"
    DATE = "date"
    UNIT = "unit"


class MeasurementKind(str, Enum):
    """Quantity measured by a unit-bearing column."""
    WEIGHT = "weight"
    LENGTH = "length"


# ===================
# ROLE SETS
# ===================

REQUIRED_COLUMNS: tuple[str, ...] = ("UPC",)

IMAGE_SLOT_COUNT = 12
IMAGE_COLUMNS: tuple[str, ...] = tuple(f"Image {n}" for n in range(1, IMAGE_SLOT_COUNT + 1))
IMAGES_AGGREGATE_COLUMN = "Images"
ID_COLUMN = "ID"

BOOLEAN_COLUMNS: tuple[str, ...] = (
    "Backorders allowed?",
    "Sold individually?",
    "Published",
    "Is featured?",
    "Allow customer reviews?",
)

PRICE_COLUMNS: tuple[str, ...] = (
    "Price",
    "Regular Price",
    "Lowest Recorded Price",
    "Highest Recorded Price",
    "Sale Price",
)

DATE_COLUMNS: tuple[str, ...] = (
    "Date sale price starts",
    "Date sale price ends",
)

UNIT_COLUMNS: dict[str, MeasurementKind] = {
    "Weight (unit)": MeasurementKind.WEIGHT,
    "Length (unit)": MeasurementKind.LENGTH,
    "Width (unit)": MeasurementKind.LENGTH,
    "Height (unit)": MeasurementKind.LENGTH,
}

CATEGORY_COLUMNS: dict[str, str] = {
    "ebay_id": "eBay Category Id",
    "ebay_name": "eBay Category",
    "google_id": "Google ID #",
    "google_name": "Google Category",
    "product_type": "Product Type",
}

_NORMALIZED_INDEX = {name.lower(): i for i, name in enumerate(CPI_COLUMNS)}


def normalize_header(header: str) -> str:
    """Header comparison key: trimmed and lower-cased."""
    return header.strip().lower()


def columns() -> tuple[str, ...]:
    """The canonical columns, in order."""
    return CPI_COLUMNS


def index_of(column: str) -> int:
    """
    0-based position of a canonical column (case-insensitive).

    Raises:
        ValueError: If the column is not part of the schema
    """
    try:
        return _NORMALIZED_INDEX[normalize_header(column)]
    except KeyError:
        raise ValueError(f"{column!r} is not a CPI column") from None


def canonical_name(header: str) -> Optional[str]:
    """Canonical spelling of a header, or None if it is not a CPI column."""
    index = _NORMALIZED_INDEX.get(normalize_header(header))
    return CPI_COLUMNS[index] if index is not None else None


def role_of(column: str) -> ColumnRole:
    """Role tag of a canonical column."""
    if column in REQUIRED_COLUMNS:
        return ColumnRole.REQUIRED
    if column in IMAGE_COLUMNS or column == IMAGES_AGGREGATE_COLUMN:
        return ColumnRole.IMAGE
    if column in BOOLEAN_COLUMNS:
        return ColumnRole.BOOLEAN
    if column in PRICE_COLUMNS:
        return ColumnRole.PRICE
    if column in DATE_COLUMNS:
        return ColumnRole.DATE
    if column in UNIT_COLUMNS:
        return ColumnRole.UNIT
    return ColumnRole.NONE


def measurement_of(column: str) -> Optional[MeasurementKind]:
    """Measurement kind for unit-bearing columns, else None."""
    return UNIT_COLUMNS.get(column)


@dataclass(frozen=True)
class HeaderValidation:
    """Result of comparing a header row with the canonical layout."""
    is_valid: bool
    missing: list[str] = field(default_factory=list)
    extra: list[str] = field(default_factory=list)
    out_of_order: list[str] = field(default_factory=list)


def validate_header_layout(headers: list[str]) -> HeaderValidation:
    """
    Compare provided headers with the canonical layout.

    Matching ignores case and surrounding whitespace. Order is only checked
    when no column is missing and none is extra. The layout is valid only if
    all three lists come back empty.
    """
    provided = [normalize_header(h) for h in headers]
    provided_set = set(provided)

    missing = [col for col in CPI_COLUMNS if col.lower() not in provided_set]
    extra = [
        headers[i] for i, key in enumerate(provided)
        if key not in _NORMALIZED_INDEX
    ]
    # Duplicated canonical headers leave the row longer than the schema.
    if not extra and len(provided) > CPI_COLUMN_COUNT:
        seen: set[str] = set()
        for i, key in enumerate(provided):
            if key in seen:
                extra.append(headers[i])
            seen.add(key)

    out_of_order: list[str] = []
    if not missing and not extra:
        out_of_order = [
            headers[i] for i, key in enumerate(provided)
            if key != CPI_COLUMNS[i].lower()
        ]

    return HeaderValidation(
        is_valid=not missing and not extra and not out_of_order,
        missing=missing,
        extra=extra,
        out_of_order=out_of_order,
    )


def empty_row() -> dict[str, str]:
    """A CPI row with every column set to the empty string."""
    return {column: "" for column in CPI_COLUMNS}
