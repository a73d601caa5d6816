"""
Product record schemas.

NormalizedProductRecord is the typed, unit-canonical view of one product row.
It is built fresh for every imported row and every exported record and is
never mutated afterwards (weight in grams, dimensions in centimeters).
"""

from datetime import date, datetime
from typing import Any, Optional
import re

from pydantic import Field, field_validator

from models.base import FrozenSchema

# Longest identifier the store accepts, per field.
IDENTIFIER_MAX_LENGTHS: dict[str, int] = {"upc": 50, "ean": 50, "gtin": 50, "sku": 100}

CURRENCY_CODE_RE = re.compile(r"^[A-Za-z]{3}$")


class Dimensions(FrozenSchema):
    """Package dimensions in centimeters."""

    length_cm: Optional[float] = Field(None, ge=0)
    width_cm: Optional[float] = Field(None, ge=0)
    height_cm: Optional[float] = Field(None, ge=0)

    @property
    def is_empty(self) -> bool:
        return self.length_cm is None and self.width_cm is None and self.height_cm is None


class NormalizedProductRecord(FrozenSchema):
    """
    One product, canonicalized.

    At least one of upc / ean / gtin / sku identifies the product. Every
    canonical column without an explicit mapping is preserved in
    additional_attributes so that files round-trip without data loss.
    """

    # Store identity (set only on records loaded from the store)
    id: Optional[str] = None

    # Identifiers
    upc: Optional[str] = Field(None, max_length=IDENTIFIER_MAX_LENGTHS["upc"])
    ean: Optional[str] = Field(None, max_length=IDENTIFIER_MAX_LENGTHS["ean"])
    gtin: Optional[str] = Field(None, max_length=IDENTIFIER_MAX_LENGTHS["gtin"])
    sku: Optional[str] = Field(None, max_length=IDENTIFIER_MAX_LENGTHS["sku"])

    # Descriptive
    title: Optional[str] = None
    description: Optional[str] = None
    brand: Optional[str] = None
    model: Optional[str] = None
    condition: Optional[str] = None
    type: Optional[str] = None

    # Quantities
    quantity: Optional[int] = Field(None, ge=0)
    stock: Optional[int] = Field(None, ge=0)

    # Physical attributes
    color: Optional[str] = None
    size: Optional[str] = None
    material: Optional[str] = None
    weight_grams: Optional[float] = Field(None, ge=0)
    dimensions: Dimensions = Field(default_factory=Dimensions)

    # Pricing
    price: Optional[float] = None
    regular_price: Optional[float] = None
    sale_price: Optional[float] = None
    lowest_recorded_price: Optional[float] = None
    highest_recorded_price: Optional[float] = None
    cost: Optional[float] = None
    currency: Optional[str] = Field(None, max_length=3)
    sale_price_starts: Optional[date] = None
    sale_price_ends: Optional[date] = None

    # Categories
    ebay_category_id: Optional[str] = None
    ebay_category_name: Optional[str] = None
    google_category_id: Optional[str] = None
    google_category_name: Optional[str] = None
    product_type: Optional[str] = None

    # Content
    short_description: Optional[str] = None
    long_description: Optional[str] = None
    unique_selling_points: Optional[str] = None
    key_features: Optional[str] = None
    specifications: Optional[str] = None
    item_specifics: Optional[str] = None
    tags: Optional[str] = None
    features: Optional[str] = None

    # Images and round-trip bag
    images: tuple[str, ...] = ()
    additional_attributes: dict[str, Any] = Field(default_factory=dict)

    # Store timestamps
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator(
        "upc", "ean", "gtin", "sku", "title", "description", "brand", "model",
        "condition", "type", "color", "size", "material", "currency",
        "ebay_category_id", "ebay_category_name", "google_category_id",
        "google_category_name", "product_type", "short_description",
        "long_description", "unique_selling_points", "key_features",
        "specifications", "item_specifics", "tags", "features",
    )
    @classmethod
    def empty_to_none(cls, v: Optional[str]) -> Optional[str]:
        """Blank strings mean 'not provided'."""
        if v is None:
            return None
        return v or None

    @field_validator("currency")
    @classmethod
    def currency_uppercase(cls, v: Optional[str]) -> Optional[str]:
        return v.upper() if v else v

    def identifiers(self) -> dict[str, str]:
        """Non-empty identifiers keyed by field name."""
        return {
            name: value
            for name, value in (
                ("upc", self.upc),
                ("ean", self.ean),
                ("gtin", self.gtin),
                ("sku", self.sku),
            )
            if value
        }

    @property
    def has_identifier(self) -> bool:
        return bool(self.identifiers())

    @property
    def primary_identifier(self) -> Optional[str]:
        """First identifier present, in upc/ean/gtin/sku order."""
        ids = self.identifiers()
        return next(iter(ids.values()), None)


# Fields that describe the product itself (everything except store identity).
RECORD_DATA_FIELDS: tuple[str, ...] = tuple(
    name
    for name in NormalizedProductRecord.model_fields
    if name not in ("id", "created_at", "updated_at")
)
